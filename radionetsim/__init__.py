"""
radioNetSim: Verification Simulator for Radio Network Sorting Protocols

A slot-accurate simulation of a single-hop synchronous broadcast network, with
energy-efficient ranking, merging, sorting and sequence correction protocols
running on top of it. Every run counts slots and per-station energy and checks
its output against a brute-force result.

Modules
-------
network : Channel, slot clock and station registry
stations : Physical and virtual stations with energy counters
activation : Bucket queue dispatching listeners per slot
treeindex : Index arithmetic of the implicit search tree
ranking : Tournament ranking, merge and merge-sort
regroup : Energy-reduced merging by regrouping
correction : Re-sorting after a few keys changed
verify : Postcondition checks
faults : Simulation fault hierarchy
simulator : Run orchestration and reporting
logger : Logging configuration and utilities

Examples
--------
### Merge two sorted sequences:

>>> import radionetsim as rn
>>>
>>> net = rn.Network(8)
>>> for s, k in zip(net.stations, [1, 4, 6, 9, 2, 3, 7, 8]):
...     s.key = k
>>> rn.ranking.merge(net, net.stations[:4], net.stations[4:])
>>> net.keys()
[1, 2, 3, 4, 6, 7, 8, 9]

### Sort with the simulator:

>>> sim = rn.Simulator("SortDemo", protocol="mergeSort1", logging="none")
>>> report = sim.run([5, 3, 7, 1])
>>> report['keys']
[1, 3, 5, 7]
"""

# Core modules - import for direct access
from . import activation
from . import correction
from . import faults
from . import logger
from . import network
from . import ranking
from . import regroup
from . import simulator
from . import stations
from . import treeindex
from . import verify

# Classes for convenience
from .network import Network, NoMessage
from .simulator import Simulator
from .stations import Role, Station

# Version info
__version__ = "0.1.0"
__author__ = "radioNetSim developers"

# Define what gets imported with "from radionetsim import *"
__all__ = [
    # Modules
    'activation',
    'correction',
    'faults',
    'logger',
    'network',
    'ranking',
    'regroup',
    'simulator',
    'stations',
    'treeindex',
    'verify',
    # Main classes
    'Network',
    'NoMessage',
    'Role',
    'Simulator',
    'Station',
]
