"""
Station entity model for the single-hop radio network.

A station is the unit of broadcast capability and energy measurement. Physical
stations own their send/listen counters. Virtual stations are delegated roles
bound to exactly one physical host: every send and listen they perform is
forwarded to the host and charged to the host's counters.


Classes
-------
Role
    Station role tag (physical or virtual).
Station
    Broadcastable entity holding protocol state and energy counters.


Notes
-----
- Stations are normally created through Network.addStations() and
  Network.virtual(), which keep the network's bookkeeping current.
- A station never swallows or retries a channel fault. A collision always
  indicates a protocol encoding error in the caller.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Optional, TYPE_CHECKING
from radionetsim import logger

if (TYPE_CHECKING):
    from radionetsim.network import Channel

#-----------------------------------------------------------------------------#

log = logger.addLog('sta')

# Energy and role state that seeding must not overwrite
RESERVED = frozenset({'sendCount', 'listenCount', '_host'})

###############################################################################

class Role(Enum):
    """Station role: PHYSICAL owns counters, VIRTUAL charges a host."""

    PHYSICAL = 'physical'
    VIRTUAL = 'virtual'

###############################################################################

class Station:
    """
    Physical or virtual broadcastable entity.


    Parameters
    ----------
    index : int
        Position within the owning sequence. Network index for physical
        stations, team position for virtual ones.
    role : Role, default=Role.PHYSICAL
        Station role.
    host : Station, optional
        Physical host. Required for virtual stations, forbidden otherwise.
    **kwargs
        Initial values of protocol fields (e.g. key=5).


    Attributes
    ----------
    index : int
        Position within the owning sequence.
    role : Role
        Station role.
    host : Station or None
        Physical host of a virtual station.
    sendCount : int
        Successful broadcasts charged to this station.
    listenCount : int
        Listens charged to this station.

    **Rank and merge fields:**

    key : int
        Current key.
    rank : int
        Accumulated rank (count of smaller reference keys).
    timer : int
        Tree cursor: 1-based heap index of the node the station listens for
        next, 0 once the search has left the tree.
    idx : int
        Destination position computed by merging.
    nextKey : int
        Key received during routing, copied to key when routing ends.

    **Regroup fields:**

    group, key1, rank1, group1 : int
        Designated group, carried key, partial rank and carried group.
    winner : bool
        Last group leader reporting its rank.

    **Correction fields:**

    oldKey, newKey : int
        Key before and after the change.
    oldIdx, newIdx : int
        Position in the old and corrected arrangements.
    changed : int
        1 if the key changed, else 0.
    idxA, idxB : int or None
        Position among unchanged or changed stations.
    sum, k : int
        Prefix count of changed stations and total number of changes.
    newRank : int
        Rank computed by one tree level.
    mov : int or None
        Number of changed keys placed before an unchanged station.
    last : bool
        Last changed key inserted before a given unchanged station.
    rworker, iworker : int
        Team positions of the ranking worker and the index worker.


    Raises
    ------
    ValueError
        If a virtual station has no physical host, or a physical station is
        given a host, or kwargs name an energy counter or the host.
    """

    ## Constructor ===========================================================#
    def __init__(self,
                 index:int,
                 role:Role = Role.PHYSICAL,
                 host:Optional[Station] = None,
                 **kwargs,
                 )->None:

        self.index = index
        self.role = role
        self._host = None
        if (role is Role.VIRTUAL):
            self._checkHost(host)
            self._host = host
        elif (host is not None):
            raise ValueError(f"physical station {index} cannot have a host")

        # Energy
        self.sendCount = 0
        self.listenCount = 0

        # Rank and merge
        self.key = None
        self.rank = 0
        self.timer = 0
        self.idx = 0
        self.nextKey = None

        # Regroup
        self.group = 0
        self.key1 = None
        self.rank1 = 0
        self.group1 = 0
        self.winner = False

        # Correction
        self.oldKey = None
        self.newKey = None
        self.oldIdx = None
        self.newIdx = None
        self.changed = 0
        self.idxA = None
        self.idxB = None
        self.sum = 0
        self.k = 0
        self.newRank = 0
        self.mov = None
        self.last = False
        self.rworker = 0
        self.iworker = 0

        # Seeded protocol fields
        reserved = RESERVED.intersection(kwargs)
        if (reserved):
            raise ValueError(f"station {index} cannot seed reserved "
                             f"field(s) {', '.join(sorted(reserved))}")
        self.__dict__.update(kwargs)

    ## Properties ============================================================#
    @property
    def host(self)->Optional[Station]:
        """Physical host of a virtual station, None for physical stations."""
        return self._host

    @property
    def isVirtual(self)->bool:
        """True if the station forwards its traffic to a host."""
        return (self.role is Role.VIRTUAL)

    @property
    def energy(self)->int:
        """Total energy charged to this station (sends plus listens)."""
        return self.sendCount + self.listenCount

    ## Special Methods =======================================================#
    def __repr__(self)->str:
        """Return concise string representation of Station object."""
        if (self.isVirtual):
            return (f"<{self.__class__.__name__} {self.index} "
                    f"on {self._host.index} at {hex(id(self))}>")
        return f"<{self.__class__.__name__} {self.index} at {hex(id(self))}>"

    #--------------------------------------------------------------------------
    def __str__(self)->str:
        """Return user-friendly summary of identity, key and energy."""
        if (self.isVirtual):
            who = f"Virtual {self.index:03} (host {self._host.index:03})"
        else:
            who = f"Station {self.index:03}"
        return (f"{who}: key={self.key} rank={self.rank} idx={self.idx} "
                f"send={self.sendCount} listen={self.listenCount}")

    ## Methods ===============================================================#
    def send(self, channel:Channel, value:Any)->None:
        """
        Broadcast a value on the channel.


        Parameters
        ----------
        channel : Channel
            Channel of the owning network.
        value : int or tuple of int
            Non-negative payload.


        Notes
        -----
        A virtual station delegates to its host, so the host's sendCount
        absorbs the broadcast. CollisionFault and InvalidPayload propagate
        unchanged and the counter is only charged for a successful broadcast.
        """

        if (self._host is not None):
            self._host.send(channel, value)
            return
        channel.broadcast(value, self.index)
        self.sendCount += 1

    #--------------------------------------------------------------------------
    def listen(self, channel:Channel)->Any:
        """
        Listen to the channel for one slot.


        Parameters
        ----------
        channel : Channel
            Channel of the owning network.


        Returns
        -------
        value : int, tuple of int, or NoMessage
            Payload broadcast in the current slot.
        """

        if (self._host is not None):
            return self._host.listen(channel)
        value = channel.receive(self.index)
        self.listenCount += 1
        return value

    #--------------------------------------------------------------------------
    def rebind(self, host:Station)->None:
        """
        Bind a virtual station to a new physical host.

        Rebinding has no effect on any energy counter: past traffic stays
        charged to the old host, future traffic is charged to the new one.


        Parameters
        ----------
        host : Station
            New physical host.


        Raises
        ------
        ValueError
            If this station is physical or the new host is not physical.
        """

        if not (self.isVirtual):
            raise ValueError(f"station {self.index} is physical and cannot "
                             "be rebound")
        self._checkHost(host)
        log.debug('Virtual %s rebound from %s to %s',
                  self.index, self._host.index, host.index)
        self._host = host

    ## Helper Methods ========================================================#
    def _checkHost(self, host:Optional[Station])->None:
        """Raise ValueError unless host is a physical station."""
        if (host is None):
            raise ValueError(f"virtual station {self.index} needs a host")
        if (host.isVirtual):
            raise ValueError(f"virtual station {self.index} cannot be hosted "
                             f"by virtual station {host.index}")

###############################################################################
