"""
Postcondition checks for protocol outputs.

The checks compare station fields against a brute-force computation on the
host side. They touch neither the channel nor the energy counters, and raise
PostconditionViolation on the first mismatch.


Functions
---------
checkSum(keys)
    Order-independent fingerprint of a key multiset.
isSorted(keys)
    True if keys are non-decreasing.
verifyOutput(stations, expected)
    Check that the station keys are a sorted permutation of the input.
verifyRanks(A, B, inclusive)
    Check every rank of A against a brute-force count over B.
verifyArrangement(stations)
    Check a corrected arrangement by position.
"""

from __future__ import annotations
from typing import Iterable, Optional, Sequence, TYPE_CHECKING
import numpy as np
from radionetsim import logger
from radionetsim.faults import PostconditionViolation

if (TYPE_CHECKING):
    from radionetsim.stations import Station

#-----------------------------------------------------------------------------#

log = logger.addLog('vrfy')

###############################################################################

def checkSum(keys:Iterable[int])->tuple:
    """
    Order-independent fingerprint of a key multiset.

    Returns (count, sum, sum of squares), exact for keys of any size.
    """

    keys = list(keys)
    return (len(keys), sum(keys), sum(k*k for k in keys))

#-----------------------------------------------------------------------------#

def isSorted(keys:Sequence[int])->bool:
    """True if keys are non-decreasing."""
    return all(keys[i] <= keys[i + 1] for i in range(len(keys) - 1))

###############################################################################

def verifyOutput(stations:Sequence[Station],
                 expected:Optional[Iterable[int]] = None,
                 )->None:
    """
    Check that the station keys are a sorted permutation of the input.


    Parameters
    ----------
    stations : sequence of Station
        Stations in sequence order after a merge or sort.
    expected : iterable of int, optional
        Input keys. If given, the output must carry the same multiset.


    Raises
    ------
    PostconditionViolation
        If the keys are out of order or differ from the input.
    """

    keys = [s.key for s in stations]
    for i in range(len(keys) - 1):
        if (keys[i] > keys[i + 1]):
            raise PostconditionViolation(
                "keys not sorted",
                stations=(stations[i].index, stations[i + 1].index),
                values=(keys[i], keys[i + 1]))
    if (expected is not None):
        expected = list(expected)
        if (checkSum(keys) != checkSum(expected)):
            raise PostconditionViolation("checksum mismatch",
                                         values=(checkSum(expected),
                                                 checkSum(keys)))
        if (keys != sorted(expected)):
            raise PostconditionViolation("output is not a permutation of "
                                         "the input")
    log.debug('verified %d sorted keys', len(keys))

#-----------------------------------------------------------------------------#

def verifyRanks(A:Sequence[Station],
                B:Sequence[Station],
                inclusive:bool = False,
                )->None:
    """
    Check every rank of A against a brute-force count over B.


    Parameters
    ----------
    A : sequence of Station
        Searchers after a ranking.
    B : sequence of Station
        Reference stations.
    inclusive : bool, default=False
        Counting rule used by the ranking.


    Raises
    ------
    PostconditionViolation
        Names the first station whose rank differs.
    """

    ref = np.sort(np.array([b.key for b in B], dtype=object))
    side = 'right' if (inclusive) else 'left'
    for a in A:
        want = int(np.searchsorted(ref, a.key, side=side))
        if (a.rank != want):
            raise PostconditionViolation("rank mismatch",
                                         stations=(a.index,),
                                         values=(a.rank, want))
    log.debug('verified %d ranks in %d references', len(A), len(B))

#-----------------------------------------------------------------------------#

def verifyArrangement(stations:Sequence[Station])->None:
    """
    Check a corrected arrangement.

    The oldIdx fields must be a permutation of 0..n-1 and the oldKey fields
    ordered by oldIdx must be sorted.


    Raises
    ------
    PostconditionViolation
        On a repeated or out-of-range position, or unsorted keys.
    """

    n = len(stations)
    byIdx = [None] * n
    for s in stations:
        if not (0 <= s.oldIdx < n):
            raise PostconditionViolation("position outside arrangement",
                                         stations=(s.index,),
                                         values=(s.oldIdx,))
        if (byIdx[s.oldIdx] is not None):
            raise PostconditionViolation("two stations share a position",
                                         stations=(byIdx[s.oldIdx].index,
                                                   s.index),
                                         values=(s.oldIdx,))
        byIdx[s.oldIdx] = s
    for i in range(n - 1):
        if (byIdx[i].oldKey > byIdx[i + 1].oldKey):
            raise PostconditionViolation(
                "arrangement not sorted",
                stations=(byIdx[i].index, byIdx[i + 1].index),
                values=(byIdx[i].oldKey, byIdx[i + 1].oldKey))
    log.debug('verified arrangement of %d stations', n)

###############################################################################
