"""
Tournament ranking, merging and merge-sort on the radio network.

Rank runs one binary search per listening station, all in lockstep over one
broadcast schedule: the reference stations broadcast their keys in tree
schedule order, one per slot, and every searcher whose cursor points at the
broadcasting node listens and moves to a child. Merge combines two rankings
with a routing round, and MergeSort applies Merge recursively.


Functions
---------
rank(net, A, B, inclusive)
    Rank every station of A among the sorted keys of B.
merge(net, A, B)
    Merge two sorted sequences in place.
mergeSort(net, S)
    Sort a sequence in place by recursive merging.
routeKeys(net, S)
    Move every key to the station at its computed destination.
levelRank(net, lev, listeners, senders, inclusive, queue)
    Rank listeners against one level of a heap-ordered reference tree.


Notes
-----
**Ties:**

A station of the earlier sequence ranks before an equal station of the later
one. rank(A, B) counts the keys of B strictly smaller than a key of A, and
merge() ranks B in A with inclusive=True, which counts the keys of A that are
smaller or equal.

**Energy:**

rank() charges one send to each reference station and at most height(|B|)
listens to each searcher. merge() adds one send and one listen per station
for routing.
"""

from __future__ import annotations
from typing import Optional, Sequence, TYPE_CHECKING
from radionetsim import logger
from radionetsim import treeindex as ti
from radionetsim.faults import MissingSender, ScheduleInconsistency

if (TYPE_CHECKING):
    from radionetsim.activation import ActivationQueue
    from radionetsim.network import Network
    from radionetsim.stations import Station

#-----------------------------------------------------------------------------#

log = logger.addLog('rank')

###############################################################################

def beyond(key:int, msg:int, inclusive:bool)->bool:
    """
    True if the broadcast key counts toward the rank of key.

    Strict ranking counts msg < key, inclusive ranking counts msg <= key.
    """

    if (inclusive):
        return msg <= key
    return msg < key

###############################################################################

def rank(net:Network,
         A:Sequence[Station],
         B:Sequence[Station],
         inclusive:bool = False,
         )->None:
    """
    Rank every station of A among the sorted keys of B.

    After the call, a.rank is the number of stations of B with a key strictly
    smaller than a.key (smaller or equal if inclusive).


    Parameters
    ----------
    net : Network
        Simulation context.
    A : sequence of Station
        Searchers. Keys in any order.
    B : sequence of Station
        Reference stations. Keys sorted.
    inclusive : bool, default=False
        Count equal keys of B.


    Raises
    ------
    ScheduleInconsistency
        If a searcher's cursor is outside the level being processed, if a
        level ends with searchers still pending, or if the scheduled
        broadcaster disagrees with the tree index.


    Notes
    -----
    **Schedule:**

    Slots d = 1..|B| visit the tree nodes in schedule order, level by level.
    In slot d the station of B holding value postorderToInorderValue(|B|, d)
    broadcasts its key. Every searcher with timer == d listens and either
    moves to the left child (key not beyond) or moves to the right child
    and records the broadcaster's value as its rank.

    **Dispatch:**

    Searchers are bucketed per level in the network's activation queue, so
    each slot touches only the searchers listening in it.
    """

    m = len(B)
    queue = net.queue
    for a in A:
        a.rank = 0
        a.timer = 1 if (m > 0) else 0
    log.debug('rank: %d searchers in %d references from slot %d',
              len(A), m, net.clock)

    for lev in range(ti.height(m)):
        first = 1 << lev
        width = first
        queue.reset(width)
        for a in A:
            if (a.timer == 0):
                continue
            if not (first <= a.timer < first + width):
                raise ScheduleInconsistency(
                    f"cursor outside level {lev}",
                    stations=(a.index,), values=(a.timer,), slot=net.clock)
            queue.insert(a.timer - first, a)

        for d in range(first, min(first + width, m + 1)):
            x = ti.postorderToInorderValue(m, d)
            sender = B[x - 1]
            if (net.checkSchedule):
                _checkBroadcaster(net, m, x, d, sender)
            sender.send(net.channel, sender.key)
            for a in queue.drain(d - first):
                msg = a.listen(net.channel)
                if (beyond(a.key, msg, inclusive)):
                    a.rank = x
                    a.timer = ti.preorderIndex(m, ti.rightChildValue(m, x))
                else:
                    a.timer = ti.preorderIndex(m, ti.leftChildValue(m, x))
            net.advanceSlot()

        if not (queue.isEmpty()):
            raise ScheduleInconsistency(
                f"searchers left pending at end of level {lev}",
                values=(len(queue),), slot=net.clock)

#-----------------------------------------------------------------------------#

def _checkBroadcaster(net:Network, m:int, x:int, d:int, sender:Station)->None:
    """Cross-check the broadcaster of slot d against both index families."""
    if ((ti.preorderIndex(m, x) != d) or (ti.bso(m, x - 1) + 1 != d)):
        raise ScheduleInconsistency("broadcaster does not match schedule",
                                    stations=(sender.index,), values=(x, d),
                                    slot=net.clock)

###############################################################################

def routeKeys(net:Network, S:Sequence[Station])->None:
    """
    Move every key to the station at its destination.

    In slot t the station with idx == t broadcasts its key and S[t] listens.
    Keys are copied from nextKey to key once all slots are done.


    Parameters
    ----------
    net : Network
        Simulation context.
    S : sequence of Station
        Stations with destinations idx forming a permutation of 0..len(S)-1.


    Raises
    ------
    ScheduleInconsistency
        If a destination is outside the sequence.
    MissingSender
        If no station owns a destination.
    CollisionFault
        If two stations own the same destination.
    """

    n = len(S)
    queue = net.queue
    queue.reset(n)
    for s in S:
        if not (0 <= s.idx < n):
            raise ScheduleInconsistency("destination outside sequence",
                                        stations=(s.index,), values=(s.idx,),
                                        slot=net.clock)
        queue.insert(s.idx, s)

    for t in range(n):
        owners = 0
        for s in queue.drain(t):
            s.send(net.channel, s.key)
            owners += 1
        if (owners == 0):
            raise MissingSender(f"no station routes to position {t}",
                                stations=(S[t].index,), values=(t,),
                                slot=net.clock)
        S[t].nextKey = S[t].listen(net.channel)
        net.advanceSlot()

    for s in S:
        s.key = s.nextKey

###############################################################################

def merge(net:Network, A:Sequence[Station], B:Sequence[Station])->None:
    """
    Merge two sorted sequences in place.

    After the call, the keys of A followed by B are sorted and are a
    permutation of the input keys. Sizes may differ.


    Parameters
    ----------
    net : Network
        Simulation context.
    A, B : sequence of Station
        Stations with sorted keys.


    Notes
    -----
    Time is 2(|A|+|B|) slots. Each station sends twice at most and listens at
    most height(max(|A|,|B|)) + 1 times.
    """

    rank(net, A, B)
    rank(net, B, A, inclusive=True)
    for i, a in enumerate(A):
        a.idx = i + a.rank
    for j, b in enumerate(B):
        b.idx = j + b.rank
    routeKeys(net, list(A) + list(B))

###############################################################################

def mergeSort(net:Network, S:Sequence[Station])->None:
    """
    Sort a sequence in place by recursive merging.

    Splits S at len(S)//2, sorts both halves and merges them. Clock and
    energy counters accumulate across the recursion.


    Parameters
    ----------
    net : Network
        Simulation context.
    S : sequence of Station
        Stations of any length. The energy claims of the algorithm hold for
        lengths that are powers of two.
    """

    n = len(S)
    if (n <= 1):
        return
    half = n // 2
    left = S[:half]
    right = S[half:]
    mergeSort(net, left)
    mergeSort(net, right)
    merge(net, left, right)

###############################################################################

def levelRank(net:Network,
              lev:int,
              listeners:Sequence[Station],
              senders:Sequence[Station],
              inclusive:bool = False,
              queue:Optional[ActivationQueue] = None,
              )->None:
    """
    Rank listeners against one level of a heap-ordered reference tree.


    Parameters
    ----------
    net : Network
        Simulation context.
    lev : int
        Tree level, 0 for the root.
    listeners : sequence of Station
        Searchers. Each holds in rank its position within level lev.
    senders : sequence of Station
        Reference stations ordered by heap index: senders[y] holds the
        node T[y] and its idx is the node's inorder value.
    inclusive : bool, default=False
        Count equal keys.
    queue : ActivationQueue, optional
        Bucket queue, default the network's.


    Raises
    ------
    ScheduleInconsistency
        If a listener position is outside the level, or a sender's inorder
        value does not map to its heap slot.


    Notes
    -----
    Each listener stores its next position in newRank: 2*rank when the
    search continues left, 2*rank+1 when it continues right. Listeners at
    positions beyond the last node of an incomplete level get
    rank + levelSize. After the last level, newRank is the number of smaller
    senders (smaller or equal if inclusive).
    """

    if (queue is None):
        queue = net.queue
    m = len(senders)
    width = 1 << lev
    size = ti.levelSize(m, lev)
    first = ti.heapIndexAt(lev, 0)

    queue.reset(width)
    for a in listeners:
        if not (0 <= a.rank < width):
            raise ScheduleInconsistency(
                f"position outside level {lev}",
                stations=(a.index,), values=(a.rank,), slot=net.clock)
        queue.insert(a.rank, a)

    for r in range(size):
        b = senders[first + r]
        if ((net.checkSchedule) and (ti.bso(m, b.idx) != first + r)):
            raise ScheduleInconsistency("bad sender for level slot",
                                        stations=(b.index,),
                                        values=(b.idx, first + r),
                                        slot=net.clock)
        b.send(net.channel, b.key)
        for a in queue.drain(r):
            msg = a.listen(net.channel)
            if (beyond(a.key, msg, inclusive)):
                a.newRank = 2*a.rank + 1
            else:
                a.newRank = 2*a.rank
        net.advanceSlot()

    for r in range(size, width):
        for a in queue.drain(r):
            a.newRank = a.rank + size

###############################################################################
