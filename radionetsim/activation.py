"""
Activation bucket queue.

Dispatches all stations pending at a given tree position without scanning
every station. Buckets are numbered 0..capacity-1 and each holds a singly
linked chain of pending stations. Protocols reset the queue at the start of a
tree level, insert every station at the bucket of its cursor, and drain the
bucket of each node as that node broadcasts.


Classes
-------
ActivationQueue
    Bucket-indexed pending sets with O(1) insert and pop.
"""

from __future__ import annotations
from dataclasses import dataclass
from collections.abc import Generator
from typing import List, Optional, TYPE_CHECKING

if (TYPE_CHECKING):
    from radionetsim.stations import Station

###############################################################################

@dataclass
class PendingEntry:
    """
    Link of a bucket chain.

    Attributes
    ----------
    station : Station
        Pending station.
    next : PendingEntry or None
        Next link of the chain.
    """

    __slots__ = ('station', 'next')

    station: Station
    next: Optional[PendingEntry]

###############################################################################

class ActivationQueue:
    """
    Bucket-indexed pending sets of stations.


    Parameters
    ----------
    capacity : int, default=0
        Initial number of buckets.


    Notes
    -----
    The bucket table is reused across resets and only grows. A reset clears
    the buckets in use without reallocating the table.
    """

    ## Constructor ===========================================================#
    def __init__(self, capacity:int=0)->None:
        self._table: List[Optional[PendingEntry]] = []
        self._capacity = 0
        self._count = 0
        self.reset(capacity)

    ## Properties ============================================================#
    @property
    def capacity(self)->int:
        """Number of buckets in the current level."""
        return self._capacity

    ## Special Methods =======================================================#
    def __len__(self)->int:
        return self._count

    def __repr__(self)->str:
        return (f"{self.__class__.__name__}(capacity={self._capacity}, "
                f"pending={self._count})")

    ## Methods ===============================================================#
    def reset(self, capacity:int)->None:
        """
        Empty all buckets and set the number of buckets.


        Parameters
        ----------
        capacity : int
            Number of buckets for the next level.
        """

        if (capacity < 0):
            raise ValueError(f"negative capacity {capacity}")
        used = max(self._capacity, capacity)
        if (used > len(self._table)):
            self._table.extend([None] * (used - len(self._table)))
        for b in range(used):
            self._table[b] = None
        self._capacity = capacity
        self._count = 0

    #--------------------------------------------------------------------------
    def insert(self, bucket:int, station:Station)->None:
        """Prepend a station to the pending chain of a bucket."""
        self._check(bucket)
        self._table[bucket] = PendingEntry(station, self._table[bucket])
        self._count += 1

    #--------------------------------------------------------------------------
    def popOne(self, bucket:int)->Optional[Station]:
        """
        Remove and return one pending station of a bucket.


        Returns
        -------
        station : Station or None
            None if the bucket is empty.
        """

        self._check(bucket)
        entry = self._table[bucket]
        if (entry is None):
            return None
        self._table[bucket] = entry.next
        self._count -= 1
        return entry.station

    #--------------------------------------------------------------------------
    def drain(self, bucket:int)->Generator[Station, None, None]:
        """Pop stations of a bucket until it is empty."""
        while True:
            station = self.popOne(bucket)
            if (station is None):
                return
            yield station

    #--------------------------------------------------------------------------
    def isEmpty(self)->bool:
        """True if no station is pending in any bucket."""
        return (self._count == 0)

    ## Helper Methods ========================================================#
    def _check(self, bucket:int)->None:
        if not (0 <= bucket < self._capacity):
            raise IndexError(f"bucket {bucket} outside 0..{self._capacity-1}")

###############################################################################
