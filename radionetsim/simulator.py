"""
Run driver for radio network protocol simulations.

Provides the Simulator class, which builds a network for given key sequences,
runs one protocol on it, verifies the output against a brute-force result, and
logs the time and energy report.


Classes
-------
Simulator
    Protocol run orchestrator.


Global Variables
----------------
PROTOCOLS : tuple of str
    Protocol names accepted by Simulator.


Notes
-----
A Simulator owns the logging configuration of a run: the main logger with its
console and file handlers, and the channel traffic logger, which only receives
records when the network traces slots.
"""

from typing import Dict, List, Optional, Sequence
import time
import datetime
import numpy as np
from radionetsim import correction as corr
from radionetsim import network as net
from radionetsim import ranking as rnk
from radionetsim import regroup as rgp
from radionetsim import verify as vrf
from radionetsim import logger
from radionetsim.faults import SimulationFault

#-----------------------------------------------------------------------------#

PROTOCOLS = (
    'rank',
    'merge',
    'mergeSort',
    'merge1',
    'mergeSort1',
    'merge2',
    'mergeSort2',
    'correct',
)

###############################################################################

class Simulator:
    """
    Protocol run orchestrator.

    Builds a fresh Network for every run, seeds its stations with the given
    keys, runs the selected protocol, checks the postcondition, and reports
    the slot clock and the per-station energy.


    Parameters
    ----------
    name : str, default='Simulation'
        Simulation title.
    protocol : str, default='mergeSort'
        One of PROTOCOLS. Case-insensitive.
    logging : str, default='all'
        Main logger configuration, see the logging property.
    chanLogging : str, default='all'
        Channel logger configuration, see the chanLogging property.
    logFile : str, optional
        Main log file. If None, the main logger writes to the console only.
    chanFile : str, optional
        Channel log file. If None, channel records go to the main log file.
    **kwargs
        Additional attributes, see Attributes.


    Attributes
    ----------
    network : Network or None
        Network of the last run.
    inclusive : bool, default=False
        Counting rule of the 'rank' protocol.
    verify : bool, default=True
        Check the protocol output after every run.
    maxFields : int, default=4
        Passed to the Network.
    traceSlots : bool, default=False
        Passed to the Network. Enables channel traffic records.
    checkSchedule : bool, default=True
        Passed to the Network.


    Examples
    --------
    ### Sort eight random keys:

    >>> import numpy as np
    >>> from radionetsim.simulator import Simulator
    >>> rng = np.random.default_rng(7)
    >>> sim = Simulator('demo', protocol='mergeSort2', logging='none')
    >>> report = sim.run(rng.permutation(8))
    >>> report['keys']
    [0, 1, 2, 3, 4, 5, 6, 7]

    ### Correct a sorted arrangement after two keys changed:

    >>> sim = Simulator('fix', protocol='correct', logging='none')
    >>> report = sim.run([1, 3, 5, 7, 9, 11], [1, 12, 5, 7, 0, 11])
    >>> report['changed'], report['keys']
    (2, [0, 1, 5, 7, 11, 12])
    """

    ## Constructor ===========================================================#
    def __init__(self,
                 name:str = 'Simulation',
                 protocol:str = 'mergeSort',
                 logging:str = 'all',
                 chanLogging:str = 'all',
                 logFile:Optional[str] = None,
                 chanFile:Optional[str] = None,
                 **kwargs,
                 )->None:

        ## Simulation
        self.name = name                            # simulation title
        self.protocol = protocol                    # protocol name
        self.network = None                         # network of last run
        self.inclusive = False                      # rank counting rule
        self.verify = True                          # postcondition checks

        ## Network Configuration
        self.maxFields = 4                          # tuple payload limit
        self.traceSlots = False                     # channel traffic records
        self.checkSchedule = True                   # tree schedule checks

        ## User Keyword Attributes
        for key,value in kwargs.items():
            if key not in {                         # computed attributes
                'network',
                'report',
            }:
                setattr(self, key, value)

        ## Report
        self.report = None                          # report of last run

        ## Logging
        self.logFile = logFile                      # main log file
        self.chanFile = chanFile                    # channel log file
        self.log = None                             # main logger
        self.logging = logging                      # logging setting
        self.chanLogging = chanLogging              # channel logging setting

    ## Properties ============================================================#
    @property
    def protocol(self)->str:
        """Get protocol name."""
        return self._protocol

    @protocol.setter
    def protocol(self, protocol:str)->None:
        """
        Set protocol and select the run method.


        Parameters
        ----------
        protocol : str
            One of PROTOCOLS, case-insensitive.


        Raises
        ------
        ValueError
            If the protocol is unknown.
        """

        # Map the protocol names to run methods
        runners = {
            'RANK': self._runRank,
            'MERGE': self._runMerge,
            'MERGE1': self._runMerge,
            'MERGE2': self._runMerge,
            'MERGESORT': self._runSort,
            'MERGESORT1': self._runSort,
            'MERGESORT2': self._runSort,
            'CORRECT': self._runCorrect,
        }

        # Map the protocol names to protocol functions
        protocols = {
            'RANK': rnk.rank,
            'MERGE': rnk.merge,
            'MERGE1': rgp.merge1,
            'MERGE2': rgp.merge2,
            'MERGESORT': rnk.mergeSort,
            'MERGESORT1': rgp.mergeSort1,
            'MERGESORT2': rgp.mergeSort2,
            'CORRECT': corr.correct,
        }

        key = protocol.upper()
        if (key not in runners):
            raise ValueError(f"unknown protocol '{protocol}', expected one "
                             f"of {', '.join(PROTOCOLS)}")
        self._runner = runners[key]
        self._protocolFn = protocols[key]
        self._protocol = {p.upper():p for p in PROTOCOLS}[key]

    #--------------------------------------------------------------------------
    @property
    def logging(self)->str:
        """Get main logger configuration."""
        return self._logging

    @logging.setter
    def logging(self, logging:str)->None:
        """
        Set main logger configuration.


        Parameters
        ----------
        logging : str
            'all', 'none', 'noout', 'nofile', 'quiet', 'onlyfile',
            'onlyconsole'.
        """

        def setNoneLog()->None:
            """Set the main logger to no logging"""
            self.log = logger.noneLog(logger.MAIN_LOG)

        def setNoConsoleLog()->None:
            """Set the main logger to no console logging"""
            self._resetMainLog()
            self.log = logger.setupMain(fileName=self.logFile,outFormat=None)

        def setNoFileLog()->None:
            """Set the main logger to no file logging"""
            self._resetMainLog()
            self.log = logger.setupMain(fileFormat=None)

        def setDefaultLog()->None:
            """Set the main logger to default logging to console and file"""
            self._resetMainLog()
            self.log = logger.setupMain(fileName=self.logFile)

        # Map the logging settings to logging setter functions
        logSettings = {
            # No logging
            'NONE': setNoneLog,
            'OFF': setNoneLog,
            # No console logging
            'NOOUT': setNoConsoleLog,
            'QUIET': setNoConsoleLog,
            'NOCONSOLE': setNoConsoleLog,
            'ONLYFILE': setNoConsoleLog,
            # No file logging
            'NOFILE': setNoFileLog,
            'ONLYOUT': setNoFileLog,
            'ONLYCONSOLE': setNoFileLog,
        }

        # Set the logging settings
        configLog = logSettings.get(logging.upper(), setDefaultLog)
        configLog()
        self._logging = logging

        # Channel logger shares the main handlers
        if ('_chanLogging' in self.__dict__):
            self.chanLogging = self._chanLogging

    #--------------------------------------------------------------------------
    @property
    def chanLogging(self)->str:
        """Get channel logger configuration."""
        return self._chanLogging

    @chanLogging.setter
    def chanLogging(self, chanLogging:str)->None:
        """
        Set channel logger configuration.


        Parameters
        ----------
        chanLogging : str
            'all', 'none', 'noout', 'nofile', 'quiet'.


        Notes
        -----
        The channel logger is rebuilt and handed to the network module, where
        every Channel writes its traffic records.
        """

        name = net.chanLog.name
        logger.removeHandlers(name)

        # Define channel logger setting functions
        def setNoneChan()->None:
            """Set the channel logger to no logging"""
            net.chanLog = logger.setupChannel(name=name, file=False,
                                              out=False)

        def setNoConsoleChan()->None:
            """Set the channel logger to no console logging"""
            net.chanLog = logger.setupChannel(name=name,
                                              fileName=self.chanFile,
                                              out=False)

        def setNoFileChan()->None:
            """Set the channel logger to no unique file logging"""
            net.chanLog = logger.setupChannel(name=name, file=False)

        def setDefaultChan()->None:
            """Set the channel logger to default logging"""
            net.chanLog = logger.setupChannel(name=name,
                                              fileName=self.chanFile)

        # Map the channel logging settings to channel log setting functions
        chanSettings = {
            # No console or unique file logging
            'NONE': setNoneChan,
            'OFF': setNoneChan,
            # No console logging
            'NOOUT': setNoConsoleChan,
            'QUIET': setNoConsoleChan,
            'NOCONSOLE': setNoConsoleChan,
            # No unique file logging
            'NOFILE': setNoFileChan,
        }

        # Set the channel logging settings
        configChanLog = chanSettings.get(chanLogging.upper(), setDefaultChan)
        configChanLog()
        self._chanLogging = chanLogging

    ## Special Methods =======================================================#
    def __repr__(self)->str:
        return (f"<{self.__class__.__name__} {self.name!r} "
                f"protocol={self.protocol} at {hex(id(self))}>")

    #--------------------------------------------------------------------------
    def __str__(self)->str:
        """
        Return user-friendly string representation of simulator configuration.
        """
        line = '*' * 64
        cw = 20
        return "\n".join([
            line,
            f"{self.__class__.__name__}: {self.name}",
            line,
            f"{'Protocol:':{cw}} {self.protocol}",
            f"{'Verification:':{cw}} "
            f"{'Enabled' if self.verify else 'Disabled'}",
            f"{'Max Tuple Fields:':{cw}} {self.maxFields}",
            f"{'Slot Tracing:':{cw}} "
            f"{'Enabled' if self.traceSlots else 'Disabled'}",
            f"{'Schedule Checks:':{cw}} "
            f"{'Enabled' if self.checkSchedule else 'Disabled'}",
            line,
        ])

    ## Methods ===============================================================#
    def run(self, *sequences:Sequence[int])->Dict:
        """
        Run the protocol on fresh stations seeded with the given keys.


        Parameters
        ----------
        *sequences : sequence of int
            Input keys. 'rank' and the merge protocols take two sequences
            (searchers and references, or two sorted halves), the sort
            protocols take one, and 'correct' takes the sorted old keys and
            the new keys.


        Returns
        -------
        report : dict
            'protocol', 'stations', 'clock', 'maxSend', 'maxListen',
            'maxEnergy', 'verified', 'keys' (output keys in sequence order,
            ranks for 'rank'), and 'changed' for 'correct'.


        Raises
        ------
        SimulationFault
            Any fault detected during the run, logged before it propagates.
        ValueError
            On a wrong number of sequences or unsupported lengths.
        """

        self.log.info(f"{self}")
        line = '*' * 64
        start = time.time()

        try:
            report = self._runner(*[self._toKeys(s) for s in sequences])
        except SimulationFault as e:
            self.log.error('%s aborted at slot %d: %s', self.protocol,
                           self.network.clock, e)
            raise

        report.update({
            'protocol': self.protocol,
            'stations': len(self.network),
            'clock': self.network.clock,
            'maxSend': self.network.maxSendEnergy(),
            'maxListen': self.network.maxListenEnergy(),
            'maxEnergy': self.network.maxEnergy(),
            'verified': self.verify,
        })
        self.report = report

        endRun = round(time.time() - start)
        self.log.info(line)
        self.log.info(self.network.getStatsReport())
        self.log.info(f'Run Time: (Real) '
                      f'{datetime.timedelta(seconds=endRun)}, '
                      f'(Simulated) {self.network.clock} slots')
        self.log.info(line)
        return report

    #--------------------------------------------------------------------------
    def newNetwork(self, n:int)->net.Network:
        """Create the network for a run with n physical stations."""
        self.network = net.Network(n,
                                   name=self.name,
                                   maxFields=self.maxFields,
                                   traceSlots=self.traceSlots,
                                   checkSchedule=self.checkSchedule)
        return self.network

    ## Helper Methods ========================================================#
    def _resetMainLog(self)->None:
        """Close the shared main handlers and drop the main logger."""
        for handler in (logger.consoleHandler, logger.fileHandler):
            if (handler is not None):
                logger.deepRemoveHandler(handler)
        if (logger.log is not None):
            logger.removeLog(logger.MAIN_LOG)

    #--------------------------------------------------------------------------
    @staticmethod
    def _toKeys(keys:Sequence[int])->List[int]:
        """Convert keys (including NumPy integers) to Python ints."""
        return [int(k) for k in np.ravel(keys)]

    #--------------------------------------------------------------------------
    def _checkArgs(self, sequences:tuple, count:int)->None:
        if (len(sequences) != count):
            raise ValueError(f"'{self.protocol}' takes {count} key "
                             f"sequence(s), got {len(sequences)}")

    #--------------------------------------------------------------------------
    def _seed(self, *sequences:List[int])->List[List]:
        """Build the network and return one station list per sequence."""
        network = self.newNetwork(sum(len(s) for s in sequences))
        out = []
        start = 0
        for keys in sequences:
            part = network.stations[start:start + len(keys)]
            for s, k in zip(part, keys):
                s.key = k
            out.append(part)
            start += len(keys)
        return out

    #--------------------------------------------------------------------------
    def _runRank(self, *sequences:List[int])->Dict:
        """Rank the first sequence among the second."""
        self._checkArgs(sequences, 2)
        A, B = self._seed(*sequences)
        self._protocolFn(self.network, A, B, inclusive=self.inclusive)
        if (self.verify):
            vrf.verifyRanks(A, B, self.inclusive)
        return {'keys': [a.rank for a in A]}

    #--------------------------------------------------------------------------
    def _runMerge(self, *sequences:List[int])->Dict:
        """Merge two sorted sequences."""
        self._checkArgs(sequences, 2)
        A, B = self._seed(*sequences)
        self._protocolFn(self.network, A, B)
        if (self.verify):
            vrf.verifyOutput(A + B, sequences[0] + sequences[1])
        return {'keys': self.network.keys(A + B)}

    #--------------------------------------------------------------------------
    def _runSort(self, *sequences:List[int])->Dict:
        """Sort one sequence."""
        self._checkArgs(sequences, 1)
        S, = self._seed(*sequences)
        self._protocolFn(self.network, S)
        if (self.verify):
            vrf.verifyOutput(S, sequences[0])
        return {'keys': self.network.keys(S)}

    #--------------------------------------------------------------------------
    def _runCorrect(self, *sequences:List[int])->Dict:
        """Correct the sorted arrangement of the first sequence."""
        self._checkArgs(sequences, 2)
        oldKeys, newKeys = sequences
        if (len(oldKeys) != len(newKeys)):
            raise ValueError(f"old and new keys differ in length, "
                             f"{len(oldKeys)} and {len(newKeys)}")
        S, = self._seed(oldKeys)
        for i, s in enumerate(S):
            s.oldIdx = i
            s.oldKey = oldKeys[i]
            s.newKey = newKeys[i]
        if (self.verify):
            vrf.verifyArrangement(S)
        k = self._protocolFn(self.network, S)
        if (self.verify):
            vrf.verifyArrangement(S)
            vrf.verifyOutput(sorted(S, key=lambda s: s.oldIdx), newKeys)
        ordered = sorted(S, key=lambda s: s.oldIdx)
        return {'keys': [s.oldKey for s in ordered], 'changed': k}

###############################################################################
