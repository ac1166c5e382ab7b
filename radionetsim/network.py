"""
Single-hop synchronous broadcast network: channel, slot clock and stations.

All stations of a network share one collision-detecting channel and advance
together through a global sequence of discrete slots. In each slot at most one
station broadcasts and any number of stations listen. The Network object is
the single explicit simulation context handed to every protocol function.


Classes
-------
Channel
    One-slot broadcast medium with collision detection and payload framing.
Network
    Slot clock, channel owner, station factory and energy readback.


Functions
---------
getFrameStruct()
    Binary frame structure carried by the channel.
encodePayload(value, maxFields)
    Validate and frame a payload.
decodePayload(frame)
    Recover a payload from its frame.


Global Variables
----------------
NoMessage
    Sentinel returned by a listen in a slot without a broadcast.


Notes
-----
**Wire Format:**

The only protocol surface of the network is the payload of one slot: a single
non-negative integer, or a short tuple of them. Payloads cross the channel as a
binary frame built with the construct library:

.. code-block:: none

    {
        'isTuple': bool,        # 1 byte  - tuple or single value
        'fields':  [int, ...],  # 1 byte count + 8 bytes per field
    }

**Logging:**

Per-slot traffic is written to the channel logger at DEBUG level only when the
network is built with traceSlots=True.
"""

from __future__ import annotations
from functools import lru_cache
from typing import Any, List, Optional, Tuple, Union
from numpy.typing import NDArray
import construct as cst
import numpy as np
from radionetsim import logger
from radionetsim.activation import ActivationQueue
from radionetsim.faults import CollisionFault, InvalidPayload
from radionetsim.stations import Role, Station

#-----------------------------------------------------------------------------#

# Type Aliases
NPIntArr = NDArray[np.int64]
Payload = Union[int, Tuple[int, ...]]

# Largest value one payload field can carry
FIELD_MAX = (1 << 64) - 1

# Loggers
log = logger.addLog('net')
chanLog = logger.setupChannel(file=False, out=False)

###############################################################################

class _NoMessageType:
    """Type of the NoMessage sentinel."""

    __slots__ = ()

    def __repr__(self)->str:
        return 'NoMessage'

    def __bool__(self)->bool:
        return False

    def __reduce__(self):
        return 'NoMessage'

NoMessage = _NoMessageType()

###############################################################################

@lru_cache(maxsize=1)
def getFrameStruct()->cst.Struct:
    """
    Return the binary frame structure for channel payloads.


    Returns
    -------
    cst.Struct
        Construct Struct. Use .build(dict) to frame and .parse(bytes) to
        recover a payload.


    Notes
    -----
    .. code-block:: none

        FRAME - 2 + 8*N bytes:
        {
            'isTuple': bool,        # 1 byte   - Flag
            'fields':  [int, ...],  # 1 byte   - Field count N
                                    # 8*N bytes - Unsigned little-endian
        }
    """

    return cst.Struct(
        "isTuple"   / cst.Flag,
        "fields"    / cst.PrefixedArray(cst.Int8ul, cst.Int64ul),
    )

#-----------------------------------------------------------------------------#

def _checkField(field:Any)->int:
    """Return field as int or raise InvalidPayload."""
    if (isinstance(field, (bool, np.bool_)) or
        not isinstance(field, (int, np.integer))):
        raise InvalidPayload("payload field is not an integer",
                             values=(field,))
    field = int(field)
    if (field < 0):
        raise InvalidPayload("negative payload", values=(field,))
    if (field > FIELD_MAX):
        raise InvalidPayload("payload field exceeds 64 bits", values=(field,))
    return field

#-----------------------------------------------------------------------------#

def encodePayload(value:Any, maxFields:int=4)->bytes:
    """
    Validate a payload and build its frame.


    Parameters
    ----------
    value : int or tuple of int
        Payload to frame.
    maxFields : int, default=4
        Largest tuple accepted.


    Returns
    -------
    frame : bytes
        Binary frame.


    Raises
    ------
    InvalidPayload
        If the payload is negative, not integral, wider than 64 bits, or a
        tuple that is empty or longer than maxFields.
    """

    if (isinstance(value, (tuple, list))):
        if not (1 <= len(value) <= maxFields):
            raise InvalidPayload(
                f"tuple payload needs 1..{maxFields} fields",
                values=(tuple(value),))
        fields = [_checkField(f) for f in value]
        isTuple = True
    else:
        fields = [_checkField(value)]
        isTuple = False
    try:
        return getFrameStruct().build({'isTuple': isTuple, 'fields': fields})
    except cst.ConstructError as e:
        raise InvalidPayload(f"payload cannot be framed: {e}",
                             values=(value,)) from e

#-----------------------------------------------------------------------------#

def decodePayload(frame:bytes)->Payload:
    """Recover an int or a tuple of ints from a frame."""
    parsed = getFrameStruct().parse(frame)
    if (parsed.isTuple):
        return tuple(parsed.fields)
    return parsed.fields[0]

###############################################################################

class Channel:
    """
    One-slot broadcast medium with collision detection.


    Parameters
    ----------
    maxFields : int, default=4
        Largest tuple payload accepted.
    trace : bool, default=False
        Log every broadcast and reception at DEBUG level.


    Attributes
    ----------
    slot : int
        Slot clock value, kept current by the owning network.
    stats : dict
        Traffic counters: 'broadcasts', 'receptions', 'silent' (receptions
        in a slot without broadcast), 'frameBytes'.


    Notes
    -----
    Between two resets at most one broadcast succeeds. The pending frame is
    decoded at most once per slot, on the first reception.
    """

    ## Constructor ===========================================================#
    def __init__(self, maxFields:int=4, trace:bool=False)->None:
        self.maxFields = maxFields
        self.trace = trace
        self.slot = 0
        self.stats = {
            'broadcasts': 0,
            'receptions': 0,
            'silent': 0,
            'frameBytes': 0,
        }
        self._frame = None
        self._sender = None
        self._value = None
        self._decoded = None

    ## Properties ============================================================#
    @property
    def busy(self)->bool:
        """True if a payload is pending in the current slot."""
        return (self._frame is not None)

    ## Special Methods =======================================================#
    def __repr__(self)->str:
        return (f"{self.__class__.__name__}(maxFields={self.maxFields}, "
                f"slot={self.slot}, busy={self.busy})")

    ## Methods ===============================================================#
    def broadcast(self, value:Any, sender:Optional[int]=None)->None:
        """
        Put a payload on the channel for the current slot.


        Parameters
        ----------
        value : int or tuple of int
            Non-negative payload.
        sender : int, optional
            Index of the broadcasting station, for fault reports and traces.


        Raises
        ------
        CollisionFault
            If a payload is already pending in this slot. Names both senders
            and both values.
        InvalidPayload
            If the value cannot be framed.
        """

        if (self._frame is not None):
            raise CollisionFault("collision on channel",
                                 stations=(self._sender, sender),
                                 values=(self._value, value),
                                 slot=self.slot)
        try:
            frame = encodePayload(value, self.maxFields)
        except InvalidPayload as e:
            e.stations = (sender,)
            e.slot = self.slot
            raise
        self._frame = frame
        self._sender = sender
        self._value = value
        self.stats['broadcasts'] += 1
        self.stats['frameBytes'] += len(frame)
        if (self.trace):
            chanLog.debug('{%03s:___} %s', sender, value)

    #--------------------------------------------------------------------------
    def receive(self, listener:Optional[int]=None)->Any:
        """
        Read the payload of the current slot.


        Parameters
        ----------
        listener : int, optional
            Index of the listening station, for traces.


        Returns
        -------
        value : int, tuple of int, or NoMessage
            Decoded payload, or NoMessage if nothing was broadcast.
        """

        self.stats['receptions'] += 1
        if (self._frame is None):
            self.stats['silent'] += 1
            if (self.trace):
                chanLog.debug('{___:%03s} -', listener)
            return NoMessage
        if (self._decoded is None):
            self._decoded = decodePayload(self._frame)
        if (self.trace):
            chanLog.debug('{___:%03s} %s', listener, self._decoded)
        return self._decoded

    #--------------------------------------------------------------------------
    def reset(self)->None:
        """Clear the pending payload. Called by Network.advanceSlot()."""
        self._frame = None
        self._sender = None
        self._value = None
        self._decoded = None

###############################################################################

class Network:
    """
    Single-hop synchronous broadcast network.

    Owns the channel, the slot clock, the activation queue shared by the
    protocols, and the physical stations.


    Parameters
    ----------
    n : int, default=0
        Number of physical stations to create.
    **kwargs
        Configuration overrides, see Attributes.


    Attributes
    ----------
    name : str, default='radioNet'
        Network name used in reports.
    maxFields : int, default=4
        Largest tuple payload the channel accepts.
    traceSlots : bool, default=False
        Log per-slot traffic at DEBUG level.
    checkSchedule : bool, default=True
        Cross-check every scheduled broadcaster against the tree index.
    clock : int
        Elapsed slots, starting at 0.
    channel : Channel
        Shared broadcast medium.
    queue : ActivationQueue
        Bucket queue reused by the protocols.
    stations : list of Station
        Physical stations in network index order.
    nVirtual : int
        Number of virtual stations created.


    Notes
    -----
    The clock is mutated only by advanceSlot(), which also resets the channel
    and stamps the logger with the new slot.
    """

    ## Constructor ===========================================================#
    def __init__(self, n:int=0, **kwargs)->None:

        ## Configuration
        self.name = 'radioNet'                      # report name
        self.maxFields = 4                          # tuple payload limit
        self.traceSlots = False                     # per-slot DEBUG traces
        self.checkSchedule = True                   # tree schedule checks

        ## User Keyword Attributes
        for key,value in kwargs.items():
            if key not in {                         # owned state
                'clock',
                'channel',
                'queue',
                'stations',
                'nVirtual',
            }:
                setattr(self, key, value)

        ## State
        self.clock = 0
        self.channel = Channel(self.maxFields, self.traceSlots)
        self.queue = ActivationQueue()
        self.stations: List[Station] = []
        self.nVirtual = 0
        logger.slot = '0'

        self.addStations(n)
        log.info('%s: %d stations, maxFields=%d, traceSlots=%s, '
                 'checkSchedule=%s', self.name, n, self.maxFields,
                 self.traceSlots, self.checkSchedule)

    ## Special Methods =======================================================#
    def __len__(self)->int:
        return len(self.stations)

    def __repr__(self)->str:
        """Detailed description of the network."""
        return (
            f"{self.__class__.__name__}("
            f"name={self.name!r}, "
            f"stations={len(self.stations)}, "
            f"nVirtual={self.nVirtual}, "
            f"clock={self.clock}, "
            f"maxFields={self.maxFields}, "
            f"traceSlots={self.traceSlots}, "
            f"checkSchedule={self.checkSchedule})"
        )

    #-------------------------------------------------------------------------#
    def __str__(self)->str:
        """User friendly description of the network."""
        cw = 20
        out = [
            f"Network: {self.name}",
            f"{'Stations:':{cw}} {len(self.stations)}",
            f"{'Virtual Stations:':{cw}} {self.nVirtual}",
            f"{'Max Tuple Fields:':{cw}} {self.maxFields}",
            f"{'Slot Tracing:':{cw}} "
            f"{'Enabled' if self.traceSlots else 'Disabled'}",
            f"{'Schedule Checks:':{cw}} "
            f"{'Enabled' if self.checkSchedule else 'Disabled'}",
            f"{'Clock:':{cw}} {self.clock}",
        ]
        line = '-' * max([len(line) for line in out])
        out.insert(1, line)
        out.append(line)
        return "\n".join(out)

    ## Methods ===============================================================#
    def addStations(self, n:int, **kwargs)->List[Station]:
        """
        Create n physical stations and append them to the network.


        Parameters
        ----------
        n : int
            Number of stations.
        **kwargs
            Initial protocol fields passed to every new station.


        Returns
        -------
        new : list of Station
            The created stations, indexed after the existing ones.
        """

        if (n < 0):
            raise ValueError(f"cannot add {n} stations")
        start = len(self.stations)
        new = [Station(start + i, **kwargs) for i in range(n)]
        self.stations.extend(new)
        return new

    #--------------------------------------------------------------------------
    def virtual(self, host:Station, index:int=0, **kwargs)->Station:
        """
        Create a virtual station charged to a physical host.


        Parameters
        ----------
        host : Station
            Physical host.
        index : int, default=0
            Position of the virtual station in its own sequence.
        **kwargs
            Initial protocol fields.


        Returns
        -------
        station : Station
            Virtual station.
        """

        station = Station(index, Role.VIRTUAL, host, **kwargs)
        self.nVirtual += 1
        return station

    #--------------------------------------------------------------------------
    def advanceSlot(self)->None:
        """Advance the clock by one slot and clear the channel."""
        self.clock += 1
        self.channel.slot = self.clock
        self.channel.reset()
        logger.slot = str(self.clock)

    #--------------------------------------------------------------------------
    def keys(self, stations:Optional[List[Station]]=None)->list:
        """Keys of the given stations (default all) in sequence order."""
        if (stations is None):
            stations = self.stations
        return [s.key for s in stations]

    #--------------------------------------------------------------------------
    def sendCounts(self)->NPIntArr:
        """Send energy of every physical station."""
        return np.array([s.sendCount for s in self.stations], dtype=np.int64)

    #--------------------------------------------------------------------------
    def listenCounts(self)->NPIntArr:
        """Listen energy of every physical station."""
        return np.array([s.listenCount for s in self.stations],
                        dtype=np.int64)

    #--------------------------------------------------------------------------
    def energyProfile(self)->NPIntArr:
        """
        Energy of every physical station.


        Returns
        -------
        profile : ndarray, shape (n, 3)
            Columns are sends, listens, and their sum.
        """

        sends = self.sendCounts()
        listens = self.listenCounts()
        return np.column_stack((sends, listens, sends + listens))

    #--------------------------------------------------------------------------
    def maxSendEnergy(self)->int:
        """Largest send count over the physical stations, 0 if none."""
        counts = self.sendCounts()
        return int(counts.max()) if (counts.size) else 0

    #--------------------------------------------------------------------------
    def maxListenEnergy(self)->int:
        """Largest listen count over the physical stations, 0 if none."""
        counts = self.listenCounts()
        return int(counts.max()) if (counts.size) else 0

    #--------------------------------------------------------------------------
    def maxEnergy(self)->int:
        """Largest send plus listen count over the physical stations."""
        profile = self.energyProfile()
        return int(profile[:, 2].max()) if (len(profile)) else 0

    #--------------------------------------------------------------------------
    def getStatsReport(self)->str:
        """
        Return formatted time and energy report.


        Returns
        -------
        str
            Multi-line report of the slot clock, channel traffic, and the
            per-station energy extremes.
        """

        cw = 22
        cw2 = 10
        profile = self.energyProfile()
        if (len(profile)):
            meanEnergy = float(profile[:, 2].mean())
        else:
            meanEnergy = 0.0
        stats = self.channel.stats

        report = [
            f"\n{self.name}: Time and Energy Summary",
            f"Time",
            f"{' Slots:':{cw}} {self.clock:>{cw2}}",
            f"",
            f"Traffic",
            f"{' Broadcasts:':{cw}} {stats['broadcasts']:>{cw2}}",
            f"{' Receptions:':{cw}} {stats['receptions']:>{cw2}}",
            f"{' Silent Receptions:':{cw}} {stats['silent']:>{cw2}}",
            f"{' Frame Bytes:':{cw}} {stats['frameBytes']:>{cw2}}",
            f"",
            f"Energy",
            f"{' Stations:':{cw}} {len(self.stations):>{cw2}}",
            f"{' Virtual Stations:':{cw}} {self.nVirtual:>{cw2}}",
            f"{' Max Send:':{cw}} {self.maxSendEnergy():>{cw2}}",
            f"{' Max Listen:':{cw}} {self.maxListenEnergy():>{cw2}}",
            f"{' Max Total:':{cw}} {self.maxEnergy():>{cw2}}",
            f"{' Mean Total:':{cw}} {meanEnergy:>{cw2}.2f}",
        ]
        line = '-' * max([len(line) for line in report])
        report.insert(1, line)
        report.append(line)
        return "\n".join(report)

###############################################################################
