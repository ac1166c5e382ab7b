"""
Simulation faults raised by the radio network substrate and its protocols.

Every fault aborts a run at the point of detection. Faults carry the indices of
the offending stations, the values that triggered them, and the slot in which
they were detected, so a caller can pinpoint the flawed protocol phase.


Classes
-------
SimulationFault
    Base class of all simulation faults.
CollisionFault
    Two broadcasts in one slot.
InvalidPayload
    Broadcast value cannot be carried by the channel.
ScheduleInconsistency
    Broadcaster or listener state disagrees with the tree schedule.
MissingSender
    A round expected exactly one designated sender and found none.
DuplicateSender
    A round expected exactly one designated sender and found more.
PostconditionViolation
    Final arrangement fails a sortedness or permutation check.


Notes
-----
Argument misuse (wrong sequence lengths, rebinding a physical station) is not a
simulation fault and raises ValueError instead.
"""

from typing import Any, Optional, Sequence

###############################################################################

class SimulationFault(Exception):
    """
    Base class for faults detected while driving a protocol.


    Parameters
    ----------
    message : str
        Description of the fault.
    stations : sequence of int, optional
        Indices of the offending stations.
    values : sequence, optional
        Values that triggered the fault.
    slot : int, optional
        Slot clock value at detection.


    Attributes
    ----------
    stations : tuple of int
    values : tuple
    slot : int or None
    """

    def __init__(self,
                 message:str,
                 stations:Sequence[Optional[int]] = (),
                 values:Sequence[Any] = (),
                 slot:Optional[int] = None,
                 )->None:

        self.message = message
        self.stations = tuple(stations)
        self.values = tuple(values)
        self.slot = slot
        super().__init__(self.__str__())

    def __str__(self)->str:
        parts = [self.message]
        if (self.stations):
            parts.append(f"stations={list(self.stations)}")
        if (self.values):
            parts.append(f"values={list(self.values)}")
        if (self.slot is not None):
            parts.append(f"slot={self.slot}")
        return ', '.join(parts)

###############################################################################

class CollisionFault(SimulationFault):
    """Second broadcast attempted in a slot that already carries a payload."""

###############################################################################

class InvalidPayload(SimulationFault):
    """
    Broadcast value that cannot be framed for the channel.

    Payloads are one non-negative integer or a short tuple of them. Negative
    values, non-integers, values beyond 64 bits, and empty or oversized tuples
    are all invalid.
    """

###############################################################################

class ScheduleInconsistency(SimulationFault):
    """Station state disagrees with what the tree schedule predicts."""

###############################################################################

class MissingSender(SimulationFault):
    """No station owned a round that needed exactly one sender."""

###############################################################################

class DuplicateSender(SimulationFault):
    """More than one station claimed a round that needed exactly one sender."""

###############################################################################

class PostconditionViolation(SimulationFault):
    """Final arrangement is not sorted or is not a permutation of the input."""

###############################################################################
