"""
Correcting a sorted arrangement after some keys changed.

Every station holds its position oldIdx in a sorted arrangement, the key oldKey
it held there, and a possibly changed key newKey. correct() computes for every
station a new position newIdx such that the keys ordered by newIdx are sorted,
without sorting the whole sequence again: only the k changed keys are sorted,
then merged into the n-k unchanged ones.


Functions
---------
correct(net, stations)
    Run all correction phases and commit the new arrangement.
splitAndCount(net, stations)
    Count changed keys and index both parts.
assignWorkers(net, stations, k)
    Hand every changed key to a team of virtual stations.
sortTeams(net, teams)
    Merge-sort the teams' keys.
mergeTeams(net, left, right)
    Merge two sorted blocks of teams.
rankTeams(net, teams, senders, inclusive, listeners)
    Rank every team's key among heap-ordered senders.
finalMerge(net, stations, teams)
    Merge the sorted changed keys into the unchanged ones.


Notes
-----
**Teams:**

Each changed key is carried by a team of n//k virtual stations hosted by
distinct physical stations. One member, the ranking worker, handles one tree
level of a ranking and hands its partial rank to the next member. Another,
the index worker, holds the team's current position and passes it on after
every merge. Rotating both roles spreads the listening energy of sorting over
the hosts.

**Ties:**

Earlier blocks rank before equal keys of later blocks, and a changed key ranks
before an equal unchanged key.
"""

from __future__ import annotations
from typing import List, Optional, Sequence, TYPE_CHECKING
from radionetsim import logger
from radionetsim import treeindex as ti
from radionetsim.faults import (DuplicateSender, MissingSender,
                                PostconditionViolation)
from radionetsim.network import NoMessage
from radionetsim.ranking import levelRank

if (TYPE_CHECKING):
    from radionetsim.network import Network
    from radionetsim.stations import Station

#-----------------------------------------------------------------------------#

# Type Aliases
Team = List['Station']

log = logger.addLog('corr')

###############################################################################

def _arrange(net:Network,
             stations:Sequence[Station],
             field:str,
             size:int,
             phase:str,
             allowMissing:bool = False,
             )->List[Optional[Station]]:
    """
    Order stations by an integer field.


    Returns
    -------
    table : list of Station or None
        table[v] is the station whose field equals v.


    Raises
    ------
    DuplicateSender
        If two stations share a value.
    MissingSender
        If a value in 0..size-1 is unowned and allowMissing is False.
    """

    table = [None] * size
    for s in stations:
        v = getattr(s, field)
        if (v is None):
            continue
        if not (0 <= v < size):
            raise MissingSender(f"{phase}: {field} outside 0..{size-1}",
                                stations=(s.index,), values=(v,),
                                slot=net.clock)
        if (table[v] is not None):
            raise DuplicateSender(f"{phase}: two stations own {field}={v}",
                                  stations=(table[v].index, s.index),
                                  values=(v,), slot=net.clock)
        table[v] = s
    if not (allowMissing):
        for v, s in enumerate(table):
            if (s is None):
                # name the owners around the gap
                near = tuple(table[u].index for u in (v - 1, v + 1)
                             if ((0 <= u < size) and (table[u] is not None)))
                raise MissingSender(f"{phase}: no station owns {field}={v}",
                                    stations=near, values=(v,),
                                    slot=net.clock)
    return table

###############################################################################

def splitAndCount(net:Network, stations:Sequence[Station])->int:
    """
    Count changed keys and index the changed and unchanged parts.


    Parameters
    ----------
    net : Network
        Simulation context.
    stations : sequence of Station
        All stations of the arrangement.


    Returns
    -------
    k : int
        Number of changed keys. Every station learns it in its k field.


    Notes
    -----
    The stations broadcast in oldIdx order a running count of changed keys.
    A changed station takes the count before it as idxB, its position among
    the changed stations. An unchanged one takes idxA = oldIdx - count. The
    last count is heard by everyone.
    """

    n = len(stations)
    for s in stations:
        s.idx = s.oldIdx
        s.sum = 0
        s.idxA = None
        s.idxB = None
        s.key = s.newKey
        s.changed = 1 if (s.newKey != s.oldKey) else 0

    senders = _arrange(net, stations, 'idx', n, 'splitAndCount')
    channel = net.channel

    for t in range(n):
        sender = senders[t]
        if (sender.changed):
            sender.idxB = sender.sum
        else:
            sender.idxA = sender.idx - sender.sum
        sender.send(channel, sender.sum + sender.changed)
        if (t < n - 1):
            senders[t + 1].sum = senders[t + 1].listen(channel)
        else:
            for s in stations:
                s.k = s.listen(channel)
        net.advanceSlot()

    return stations[0].k if (n) else 0

###############################################################################

def assignWorkers(net:Network, stations:Sequence[Station], k:int)->List[Team]:
    """
    Hand every changed key to a team of virtual stations.


    Parameters
    ----------
    net : Network
        Simulation context.
    stations : sequence of Station
        All stations. Team t is hosted by stations t*gs .. (t+1)*gs - 1 with
        gs = n//k.
    k : int
        Number of changed keys.


    Returns
    -------
    teams : list of list of Station
        Team t carries the key of the changed station with idxB == t. Every
        member starts with ranking worker 0 and index worker gs-1.
    """

    n = len(stations)
    gs = n // k
    changed = _arrange(net, [s for s in stations if s.idxB is not None],
                       'idxB', k, 'assignWorkers')
    channel = net.channel
    log.debug('assignWorkers: %d teams of %d', k, gs)

    teams = []
    for t in range(k):
        sender = changed[t]
        sender.send(channel, sender.newKey)
        team = []
        for j in range(t*gs, (t + 1)*gs):
            member = net.virtual(stations[j], index=j % gs)
            member.key = member.listen(channel)
            member.rworker = 0
            member.iworker = gs - 1
            team.append(member)
        teams.append(team)
        net.advanceSlot()

    return teams

###############################################################################

def _rworker(team:Team)->Station:
    return team[team[0].rworker]

def _iworker(team:Team)->Station:
    return team[team[0].iworker]

#-----------------------------------------------------------------------------#

def transferRanks(net:Network, teams:Sequence[Team])->None:
    """Pass every team's partial rank to the next ranking worker."""
    for team in teams:
        gs = len(team)
        rw = team[0].rworker
        team[rw].send(net.channel, team[rw].newRank)
        nxt = team[(rw + 1) % gs]
        nxt.rank = nxt.listen(net.channel)
        net.advanceSlot()
    for team in teams:
        for member in team:
            member.rworker = (member.rworker + 1) % len(team)

#-----------------------------------------------------------------------------#

def sendRanksToIndexes(net:Network,
                       teams:Sequence[Team],
                       listeners:Optional[Sequence[Station]] = None,
                       )->None:
    """
    Add every team's final rank to its position.

    The ranking worker broadcasts the rank, the index worker stores
    idx + rank in newIdx. If listeners are given, listeners[t] also stores
    team t's rank.
    """

    for t, team in enumerate(teams):
        rw = team[0].rworker
        iworker = _iworker(team)
        team[rw].send(net.channel, team[rw].newRank)
        iworker.newIdx = iworker.idx + iworker.listen(net.channel)
        if (listeners is not None):
            listeners[t].rank = listeners[t].listen(net.channel)
        net.advanceSlot()
    for team in teams:
        for member in team:
            member.rworker = (member.rworker + 1) % len(team)

#-----------------------------------------------------------------------------#

def transferIndexes(net:Network, teams:Sequence[Team])->None:
    """Pass every team's new position to the previous member."""
    for team in teams:
        gs = len(team)
        iw = team[0].iworker
        team[iw].send(net.channel, team[iw].newIdx)
        prev = team[(iw + gs - 1) % gs]
        prev.idx = prev.listen(net.channel)
        net.advanceSlot()
    for team in teams:
        for member in team:
            member.iworker = (member.iworker + len(team) - 1) % len(team)

###############################################################################

def rankTeams(net:Network,
              teams:Sequence[Team],
              senders:Sequence[Station],
              inclusive:bool = False,
              listeners:Optional[Sequence[Station]] = None,
              )->None:
    """
    Rank every team's key among sorted senders.


    Parameters
    ----------
    net : Network
        Simulation context.
    teams : sequence of Team
        Searching teams.
    senders : sequence of Station
        Reference stations. Each holds in idx its position in sorted order.
    inclusive : bool, default=False
        Count equal sender keys.
    listeners : sequence of Station, optional
        Physical stations that also learn the final rank of each team.


    Raises
    ------
    DuplicateSender
        If two senders claim the same position.


    Notes
    -----
    The search runs one tree level at a time with levelRank(). Between
    levels the ranking worker hands its position to the next member, so a
    team spends one listen per level on different hosts.
    """

    m = len(senders)
    bySlot = [None] * m
    for b in senders:
        y = ti.bso(m, b.idx)
        if not (0 <= y < m):
            raise MissingSender("rankTeams: sender position outside tree",
                                stations=(b.index,), values=(b.idx,),
                                slot=net.clock)
        if (bySlot[y] is not None):
            raise DuplicateSender("rankTeams: two senders for one node",
                                  stations=(bySlot[y].index, b.index),
                                  values=(b.idx,), slot=net.clock)
        bySlot[y] = b

    for team in teams:
        _rworker(team).rank = 0

    levels = ti.height(m)
    if (levels == 0):
        for team in teams:
            _rworker(team).newRank = 0
    for lev in range(levels):
        levelRank(net, lev, [_rworker(team) for team in teams], bySlot,
                  inclusive)
        if (lev < levels - 1):
            transferRanks(net, teams)

    sendRanksToIndexes(net, teams, listeners)

###############################################################################

def mergeTeams(net:Network, left:Sequence[Team], right:Sequence[Team])->None:
    """
    Merge two sorted blocks of teams.

    Every left team ranks among the right index workers, every right team
    among the left ones, then both blocks move the new positions to the next
    index worker.
    """

    rankTeams(net, left, [_iworker(team) for team in right])
    rankTeams(net, right, [_iworker(team) for team in left], inclusive=True)
    transferIndexes(net, left)
    transferIndexes(net, right)

#-----------------------------------------------------------------------------#

def sortTeams(net:Network, teams:Sequence[Team])->None:
    """
    Merge-sort the teams' keys bottom-up.

    After the call the index worker of every team holds in idx the team's
    position in sorted order. Blocks double in size each round and a
    leftover block longer than half a round block is merged as well.
    """

    k = len(teams)
    for team in teams:
        _iworker(team).idx = 0

    m = 1
    while (m < k):
        for i in range(k // (2*m)):
            mergeTeams(net, teams[2*i*m:(2*i + 1)*m],
                       teams[(2*i + 1)*m:(2*i + 2)*m])
        if (k % (2*m) > m):
            i1 = (k // (2*m)) * 2*m
            mergeTeams(net, teams[i1:i1 + m], teams[i1 + m:k])
        m *= 2

###############################################################################

def _checkSorted(stations:Sequence[Station], phase:str)->None:
    for i in range(len(stations) - 1):
        if (stations[i].key > stations[i + 1].key):
            raise PostconditionViolation(
                f"{phase}: keys not sorted",
                stations=(stations[i].index, stations[i + 1].index),
                values=(stations[i].key, stations[i + 1].key))

#-----------------------------------------------------------------------------#

def finalMerge(net:Network,
               stations:Sequence[Station],
               teams:Sequence[Team],
               )->None:
    """
    Merge the sorted changed keys into the unchanged ones.


    Parameters
    ----------
    net : Network
        Simulation context.
    stations : sequence of Station
        All stations, after splitAndCount().
    teams : sequence of Team
        Sorted teams, team t carrying the key of the changed station with
        idxB == t.


    Raises
    ------
    PostconditionViolation
        If the unchanged keys or the sorted changed keys are out of order.


    Notes
    -----
    **Ranking:** teams rank among the unchanged stations, and each changed
    station learns its team's rank and final position.

    **Moves:** the last changed key before every unchanged station tells it
    how many changed keys precede it. Unchanged stations that heard nothing
    copy the count of their predecessor.
    """

    n = len(stations)
    k = len(teams)
    channel = net.channel

    unchanged = _arrange(net, stations, 'idxA', n - k, 'finalMerge')
    changed = _arrange(net, stations, 'idxB', k, 'finalMerge')
    for a in unchanged:
        a.idx = a.idxA
    _checkSorted(unchanged, 'finalMerge unchanged')

    rankTeams(net, teams, unchanged, listeners=changed)

    for t in range(k):
        v = _iworker(teams[t])
        v.send(channel, v.newIdx)
        b = changed[t]
        b.newIdx = b.listen(channel)
        b.idx = b.newIdx - b.rank
        net.advanceSlot()

    ordered = _arrange(net, changed, 'idx', k, 'finalMerge')
    _checkSorted(ordered, 'finalMerge changed')

    ordered[k - 1].last = True
    for t in range(k - 1, 0, -1):
        ordered[t].send(channel, ordered[t].rank)
        prev = ordered[t - 1]
        prev.last = (prev.rank != prev.listen(channel))
        net.advanceSlot()

    movers = _arrange(net, [b for b in ordered if b.last], 'rank', n - k + 1,
                      'finalMerge', allowMissing=True)

    for a in unchanged:
        a.mov = None
    unchanged[0].mov = 0
    for t in range(n - k):
        if (movers[t] is not None):
            movers[t].send(channel, movers[t].idx)
        msg = unchanged[t].listen(channel)
        if (msg is not NoMessage):
            unchanged[t].mov = msg + 1
        net.advanceSlot()

    for t in range(n - k - 1):
        unchanged[t].send(channel, unchanged[t].mov)
        if (unchanged[t + 1].mov is None):
            unchanged[t + 1].mov = unchanged[t + 1].listen(channel)
        net.advanceSlot()

    for a in unchanged:
        a.newIdx = a.idx + a.mov

###############################################################################

def correct(net:Network, stations:Optional[Sequence[Station]]=None)->int:
    """
    Correct a sorted arrangement after some keys changed.


    Parameters
    ----------
    net : Network
        Simulation context.
    stations : sequence of Station, optional
        Stations of the arrangement, default all physical stations. Each
        holds oldIdx (a permutation of 0..n-1), oldKey (sorted by oldIdx)
        and newKey.


    Returns
    -------
    k : int
        Number of changed keys.


    Raises
    ------
    ValueError
        If every key changed. Sort from scratch instead.


    Notes
    -----
    With k == 0 only the counting phase runs. Otherwise every station ends
    with oldIdx = newIdx and oldKey = newKey, so the keys ordered by oldIdx
    are sorted again.
    """

    if (stations is None):
        stations = net.stations
    stations = list(stations)
    n = len(stations)
    if (n == 0):
        return 0

    log.info('Correction of %d stations from slot %d', n, net.clock)
    k = splitAndCount(net, stations)
    if (k == n):
        raise ValueError(f"all {n} keys changed, sort the sequence instead")
    if (k > 0):
        teams = assignWorkers(net, stations, k)
        sortTeams(net, teams)
        finalMerge(net, stations, teams)
        for s in stations:
            s.oldIdx = s.newIdx
            s.oldKey = s.newKey
    log.info('Correction of %d changed keys finished at slot %d',
             k, net.clock)
    return k

###############################################################################
