"""
Energy-reduced merging by regrouping.

Plain ranking makes every searcher listen once per tree level, height(m)
times. Regrouping splits the searchers into groups of h(m,i) stations whose
members take turns on successive tree levels, and narrows every search to one
small group of the reference sequence. Iterating the regrouping drives the
listening energy down to O(lg lg m) for rank1 and O(lg* m) for rank2.


Functions
---------
regroup(net, i, C, D, inclusive)
    Assign each station of D the group of C its rank falls into.
rank1(net, A, B, inclusive)
    Rank A in B searching inside groups of size h(m,1).
merge1(net, A, B)
    Merge with rank1.
mergeSort1(net, S)
    Merge-sort with merge1.
rank2(net, A, B, inclusive)
    Rank A in B and B in A by iterated regrouping.
merge2(net, A, B)
    Merge with rank2.
mergeSort2(net, S)
    Merge-sort with merge2.


Notes
-----
**Groups:**

At grouping level i a sequence of m stations is cut into g(m,i) groups of
h(m,i) consecutive stations. Member k of group j sits at the 1-based position
alpha(m,i,j,k). The last group is padded with virtual stations hosted by the
other sequence when h(m,i) does not divide m.

**Ties:**

As in the ranking module, the earlier sequence ranks before an equal key of
the later one. The leaders of C search D with C's own counting rule, which
makes the groups handed to D agree with D's opposite rule.

All protocols here take two sequences of equal length m.
"""

from __future__ import annotations
from typing import Sequence, TYPE_CHECKING
from radionetsim import logger
from radionetsim import treeindex as ti
from radionetsim.activation import ActivationQueue
from radionetsim.faults import ScheduleInconsistency
from radionetsim.network import NoMessage
from radionetsim.ranking import beyond, routeKeys

if (TYPE_CHECKING):
    from radionetsim.network import Network
    from radionetsim.stations import Station

#-----------------------------------------------------------------------------#

log = logger.addLog('regrp')

###############################################################################

def _checkEqual(A:Sequence[Station], B:Sequence[Station])->int:
    if (len(A) != len(B)):
        raise ValueError(f"sequences must have equal length, got "
                         f"{len(A)} and {len(B)}")
    return len(A)

#-----------------------------------------------------------------------------#

def _checkPowerOfTwo(S:Sequence[Station])->None:
    n = len(S)
    if ((n < 1) or (n & (n - 1))):
        raise ValueError(f"sequence length {n} is not a power of two")

#-----------------------------------------------------------------------------#

def _checkGroup(net:Network,
                s:Station,
                group:int,
                groups:int,
                allowZero:bool = False,
                )->None:
    """Raise ScheduleInconsistency unless group names one of the groups."""
    low = 0 if (allowZero) else 1
    if not (low <= group <= groups):
        raise ScheduleInconsistency(f"group outside {low}..{groups}",
                                    stations=(s.index,), values=(group,),
                                    slot=net.clock)

#-----------------------------------------------------------------------------#

def _checkDrained(net:Network, queue:ActivationQueue, lev:int)->None:
    """Raise ScheduleInconsistency if searchers are left pending at lev."""
    if not (queue.isEmpty()):
        raise ScheduleInconsistency(
            f"searchers left pending at end of level {lev}",
            values=(len(queue),), slot=net.clock)

###############################################################################

def regroup(net:Network,
            i:int,
            C:Sequence[Station],
            D:Sequence[Station],
            inclusive:bool = False,
            )->None:
    """
    Assign each station of D the group of C its rank falls into.


    Parameters
    ----------
    net : Network
        Simulation context.
    i : int
        Grouping level of C (i >= 1). D is grouped at level i-1.
    C : sequence of Station
        Sorted stations. Each holds in group the D group (level i-1) its own
        rank falls into, or 0 for rank 0.
    D : sequence of Station
        Sorted stations, same length as C.
    inclusive : bool, default=False
        C's counting rule: count equal keys of D.


    Notes
    -----
    **Phase 1:** the leader (first member) of every C group binary-searches
    the D group named by its group field. Member l handles tree level l-1
    of the search and hands the state (timer, rank1, group1, key1) to member
    l+1 as one tuple broadcast. One slot per node and D group.

    **Phase 2:** the last member reports rank1 to the leader. The previous
    leader listens too and stops being a winner if its rank is the same.

    **Phase 3:** every winner with rank r announces its group number to
    D[r], the first D station beyond its leader.

    **Phase 4:** D stations pass group numbers forward to the stations that
    heard nothing. D stations before every leader keep group 0.

    Afterwards each d in D has group j if d's rank in C (with D's opposite
    counting rule) lies in C group j at level i, or 0 if it is 0.
    """

    m = _checkEqual(C, D)
    if (m == 0):
        return
    hC = ti.h(m, i)
    gC = ti.g(m, i)
    hD = ti.h(m, i - 1)
    gD = ti.g(m, i - 1)
    channel = net.channel
    queue = net.queue
    log.debug('regroup %d: %d groups of %d over %d groups of %d',
              i, gC, hC, gD, hD)

    # C groups, last one padded with virtual members hosted by D
    groups = []
    for j in range(1, gC + 1):
        row = []
        for k in range(1, hC + 1):
            pos = ti.alpha(m, i, j, k)
            if (pos <= m):
                row.append(C[pos - 1])
            else:
                row.append(net.virtual(D[pos - m - 1], index=pos - 1))
        groups.append(row)

    ## Phase 1 ---------------------------------------------------------------#
    for row in groups:
        lead = row[0]
        lead.group1 = lead.group
        lead.key1 = lead.key
        lead.timer = 1
        lead.rank1 = 0

    for l in range(1, hC + 1):
        first = 1 << (l - 1)
        last = min(2*first - 1, hD)
        queue.reset((last - first + 1) * gD)
        for row in groups:
            c = row[l - 1]
            if ((c.timer == 0) or (c.group1 == 0)):
                continue
            _checkGroup(net, c, c.group1, gD)
            if not (first <= c.timer <= last):
                raise ScheduleInconsistency(
                    f"cursor outside level {l-1}",
                    stations=(c.index,), values=(c.timer,), slot=net.clock)
            queue.insert((c.timer - first)*gD + c.group1 - 1, c)

        for v in range(first, last + 1):
            x = ti.postorderToInorderValue(hD, v)
            for gq in range(1, gD + 1):
                pos = ti.alpha(m, i - 1, gq, x)
                if (pos <= m):
                    D[pos - 1].send(channel, D[pos - 1].key)
                for c in queue.drain((v - first)*gD + gq - 1):
                    msg = c.listen(channel)
                    if ((msg is not NoMessage) and
                        beyond(c.key1, msg, inclusive)):
                        c.rank1 = pos
                        c.timer = ti.preorderIndex(
                            hD, ti.rightChildValue(hD, x))
                    else:
                        c.timer = ti.preorderIndex(
                            hD, ti.leftChildValue(hD, x))
                net.advanceSlot()
        _checkDrained(net, queue, l - 1)

        if (l < hC):
            for row in groups:
                src = row[l - 1]
                dst = row[l]
                src.send(channel, (src.timer, src.rank1, src.group1,
                                   src.key1))
                dst.timer, dst.rank1, dst.group1, dst.key1 = \
                    dst.listen(channel)
                net.advanceSlot()

    ## Phase 2 ---------------------------------------------------------------#
    for row in groups:
        row[0].winner = True

    for j, row in enumerate(groups):
        tail = row[-1]
        lead = row[0]
        tail.send(channel, tail.rank1)
        lead.rank = lead.listen(channel)
        if (j > 0):
            prev = groups[j - 1][0]
            if (prev.listen(channel) == prev.rank):
                prev.winner = False
        net.advanceSlot()

    ## Phase 3 ---------------------------------------------------------------#
    for d in D:
        d.group = None
    D[0].group = 0

    number = {}
    queue.reset(m)
    for j, row in enumerate(groups, start=1):
        lead = row[0]
        if ((lead.winner) and (lead.rank < m)):
            number[id(lead)] = j
            queue.insert(lead.rank, lead)

    for l in range(m):
        for lead in queue.drain(l):
            lead.send(channel, number[id(lead)])
        msg = D[l].listen(channel)
        if (msg is not NoMessage):
            D[l].group = msg
        net.advanceSlot()

    ## Phase 4 ---------------------------------------------------------------#
    for l in range(m - 1):
        D[l].send(channel, D[l].group)
        if (D[l + 1].group is None):
            D[l + 1].group = D[l + 1].listen(channel)
        net.advanceSlot()

###############################################################################

def rank1(net:Network,
          A:Sequence[Station],
          B:Sequence[Station],
          inclusive:bool = False,
          )->None:
    """
    Rank A in B searching inside groups of size h(m,1).


    Parameters
    ----------
    net : Network
        Simulation context.
    A, B : sequence of Station
        Sorted stations of equal length m.
    inclusive : bool, default=False
        Count equal keys of B.


    Notes
    -----
    B is cut into groups of h(m,1). One regrouping tells every a the B group
    holding its rank. Then the groups broadcast one after another in tree
    schedule order, and each a binary-searches only its own group, listening
    height(h(m,1)) times.
    """

    m = _checkEqual(A, B)
    if (m == 0):
        return
    for b in B:
        b.group = 1
    regroup(net, 1, B, A, inclusive=not inclusive)

    h1 = ti.h(m, 1)
    g1 = ti.g(m, 1)
    channel = net.channel
    queue = net.queue

    members = ActivationQueue(g1 + 1)
    for a in A:
        a.rank = 0
        a.timer = 1
        _checkGroup(net, a, a.group, g1, allowZero=True)
        members.insert(a.group, a)

    for gq in range(1, g1 + 1):
        group = list(members.drain(gq))
        for lev in range(ti.height(h1)):
            first = 1 << lev
            queue.reset(first)
            for a in group:
                if (a.timer == 0):
                    continue
                if not (first <= a.timer < 2*first):
                    raise ScheduleInconsistency(
                        f"cursor outside level {lev}",
                        stations=(a.index,), values=(a.timer,),
                        slot=net.clock)
                queue.insert(a.timer - first, a)

            for k in range(first, min(2*first, h1 + 1)):
                x = ti.postorderToInorderValue(h1, k)
                pos = ti.alpha(m, 1, gq, x)
                if (pos <= m):
                    B[pos - 1].send(channel, B[pos - 1].key)
                for a in queue.drain(k - first):
                    msg = a.listen(channel)
                    if ((msg is not NoMessage) and
                        beyond(a.key, msg, inclusive)):
                        a.rank = pos
                        a.timer = ti.preorderIndex(
                            h1, ti.rightChildValue(h1, x))
                    else:
                        a.timer = ti.preorderIndex(
                            h1, ti.leftChildValue(h1, x))
                net.advanceSlot()
            _checkDrained(net, queue, lev)

#-----------------------------------------------------------------------------#

def merge1(net:Network, A:Sequence[Station], B:Sequence[Station])->None:
    """Merge two sorted sequences of equal length with rank1."""
    _checkEqual(A, B)
    rank1(net, A, B)
    rank1(net, B, A, inclusive=True)
    for i, a in enumerate(A):
        a.idx = i + a.rank
    for j, b in enumerate(B):
        b.idx = j + b.rank
    routeKeys(net, list(A) + list(B))

#-----------------------------------------------------------------------------#

def mergeSort1(net:Network, S:Sequence[Station])->None:
    """
    Sort a sequence in place with merge1.

    Raises ValueError unless len(S) is a power of two.
    """

    _checkPowerOfTwo(S)
    _mergeSort(net, S, merge1)

###############################################################################

def _finalRound(net:Network,
                listeners:Sequence[Station],
                senders:Sequence[Station],
                hh:int,
                inclusive:bool,
                )->None:
    """
    Rank listeners among senders grouped by hh.

    Each listener hears only the senders of its group and takes as rank the
    last position whose key counts.
    """

    m = len(senders)
    gg = (m + hh - 1) // hh
    members = ActivationQueue(gg + 1)
    for s in listeners:
        s.rank = 0
        _checkGroup(net, s, s.group, gg, allowZero=True)
        members.insert(s.group, s)

    current = []
    for i in range(1, m + 1):
        if ((i - 1) % hh == 0):
            current = list(members.drain((i + hh - 1) // hh))
        sender = senders[i - 1]
        sender.send(net.channel, sender.key)
        for s in current:
            msg = s.listen(net.channel)
            if (beyond(s.key, msg, inclusive)):
                s.rank = i
        net.advanceSlot()

#-----------------------------------------------------------------------------#

def rank2(net:Network,
          A:Sequence[Station],
          B:Sequence[Station],
          inclusive:bool = False,
          )->None:
    """
    Rank A in B and B in A by iterated regrouping.


    Parameters
    ----------
    net : Network
        Simulation context.
    A, B : sequence of Station
        Sorted stations of equal length m.
    inclusive : bool, default=False
        A's counting rule. B ranks with the opposite rule.


    Notes
    -----
    Regroupings alternate between the sequences, (lStar(m)+1)//2 + 1 times
    each, until groups hold at most two stations. A final round in each
    direction lets every station listen only to the two keys of its group.
    """

    m = _checkEqual(A, B)
    if (m == 0):
        return
    for a in A:
        a.group = 1

    rounds = (ti.lStar(m) + 1) // 2 + 1
    for i in range(1, rounds + 1):
        regroup(net, 2*i - 1, A, B, inclusive)
        regroup(net, 2*i, B, A, not inclusive)

    _finalRound(net, B, A, ti.h(m, 2*rounds - 1), not inclusive)
    _finalRound(net, A, B, ti.h(m, 2*rounds), inclusive)

#-----------------------------------------------------------------------------#

def merge2(net:Network, A:Sequence[Station], B:Sequence[Station])->None:
    """Merge two sorted sequences of equal length with rank2."""
    rank2(net, A, B)
    for i, a in enumerate(A):
        a.idx = i + a.rank
    for j, b in enumerate(B):
        b.idx = j + b.rank
    routeKeys(net, list(A) + list(B))

#-----------------------------------------------------------------------------#

def mergeSort2(net:Network, S:Sequence[Station])->None:
    """
    Sort a sequence in place with merge2.

    Raises ValueError unless len(S) is a power of two.
    """

    _checkPowerOfTwo(S)
    _mergeSort(net, S, merge2)

###############################################################################

def _mergeSort(net:Network, S:Sequence[Station], mergeFn)->None:
    n = len(S)
    if (n <= 1):
        return
    half = n // 2
    left = S[:half]
    right = S[half:]
    _mergeSort(net, left, mergeFn)
    _mergeSort(net, right, mergeFn)
    mergeFn(net, left, right)

###############################################################################
