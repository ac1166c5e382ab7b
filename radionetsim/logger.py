"""
Slot-stamped logging for radio network simulations.

Every record produced while a protocol runs carries the slot in which it was
emitted, so a log line can be matched to the channel traffic of that slot. Two
loggers are configured here: the main logger, whose console and file handlers
are shared by the module loggers of the package, and the channel logger, which
receives per-slot traffic and may write to a file of its own.


Functions
---------
**Main Logger:**

    setupMain(fileName, fileFormat, fileLevel, outFormat, outLevel)
        Build the main logger and hand its handlers to the module loggers.
    addLog(name)
        Register a module logger that writes through the main handlers.
    noneLog(name)
        Strip a logger down to warnings without handlers.
    removeLog(name)
        Forget a logger and release the handlers only it used.

**Channel Logger:**

    setupChannel(name, fileName, file, out)
        Build the channel traffic logger.

**Handlers:**

    removeHandlers(name)
        Detach every handler of a logger.
    deepRemoveHandler(handler)
        Detach a handler from every logger and close it.

**Records:**

    slotRecordFactory(args, kwargs)
        Record factory adding the slot field.
    SlotFormatter
        Formatter for slot-stamped, possibly multi-line records.


Global Variables
----------------
log : logging.Logger or None
    Main logger, None until setupMain() runs.
consoleHandler, fileHandler : logging.Handler or None
    Handlers shared by the main logger and the module loggers.
registered : list of str
    Module logger names, in registration order.
slot : str
    Slot written into every new record.


Notes
-----
Network.advanceSlot() writes the clock into slot. Nothing else in the package
reads it, so the stamp is presentation only.
"""

from typing import Optional
from datetime import datetime
import logging
import os

#-----------------------------------------------------------------------------#

# Levels used by the package
DEBUG = logging.DEBUG
INFO = logging.INFO
WARNING = logging.WARNING

# Record fields
SLOT = '%(slot)8s'
DATETIME = '%(asctime)s'
NAME = '%(name)-8s'
LEVEL = '%(levelname)-7s'
FUNCTION = '%(funcName)s'
MESSAGE = '%(message)s'

# Record layouts: console shows slot and origin, file adds time and function
FMT_DATE = '%H:%M:%S'
FMT_OUT = f"|{SLOT}| {NAME} : {LEVEL} > {MESSAGE}"
FMT_FILE = f"|{SLOT} {DATETIME}| {NAME} {LEVEL} {FUNCTION} : {MESSAGE}"

MAIN_LOG = 'rnSim'

# Module state ---------------------------------------------------------------#

log = None
consoleHandler = None
fileHandler = None
registered = []
slot = '0'

_baseFactory = logging.getLogRecordFactory()

###############################################################################

class SlotFormatter(logging.Formatter):
    """
    Formatter for slot-stamped records.

    Function names are bracketed and padded to a fixed column. A message
    spanning several lines, such as the time and energy report, gets the
    record prefix on every line so each line stays attributable to its slot.
    """

    def format(self, record:logging.LogRecord)->str:
        if not (record.funcName.startswith('[')):
            record.funcName = f"{'[' + record.funcName + ']':19}"

        if (isinstance(record.msg, str) and ('\n' in record.msg)):
            record = logging.makeLogRecord(record.__dict__)
            head = self._fmt.partition(MESSAGE)[0]
            if (DATETIME in head):
                record.asctime = self.formatTime(record, self.datefmt)
            record.msg = ('\n' + head % record.__dict__).join(
                record.msg.split('\n'))

        return super().format(record)

###############################################################################

def slotRecordFactory(*args, **kwargs)->logging.LogRecord:
    """Create a record through the base factory and add the slot field."""
    record = _baseFactory(*args, **kwargs)
    record.slot = slot
    return record

#-----------------------------------------------------------------------------#

def _newHandler(handler:logging.Handler,
                name:str,
                level:int,
                fmt:str,
                datefmt:Optional[str] = None,
                )->logging.Handler:
    """Name, level and format a fresh handler."""
    handler.set_name(name)
    handler.setLevel(level)
    handler.setFormatter(SlotFormatter(fmt, datefmt))
    return handler

#-----------------------------------------------------------------------------#

def _release(handler:logging.Handler)->None:
    """Close a handler and clear the global that pointed to it."""
    global consoleHandler, fileHandler

    handler.close()
    if (handler is consoleHandler):
        consoleHandler = None
    elif (handler is fileHandler):
        fileHandler = None

#-----------------------------------------------------------------------------#

def _holders(handler:logging.Handler)->list:
    """Loggers that currently hold handler."""
    return [l for l in logging.Logger.manager.loggerDict.values()
            if (isinstance(l, logging.Logger) and (handler in l.handlers))]

###############################################################################

def setupMain(fileName:Optional[str] = None,
              fileFormat:Optional[str] = FMT_FILE,
              fileLevel:int = DEBUG,
              outFormat:Optional[str] = FMT_OUT,
              outLevel:int = INFO,
              )->logging.Logger:
    """
    Build the main logger and hand its handlers to the module loggers.


    Parameters
    ----------
    fileName : str, optional
        Log file. No file output without it.
    fileFormat : str, optional
        File record layout. None disables file output.
    fileLevel : int, default=DEBUG
        File threshold.
    outFormat : str, optional
        Console record layout. None disables console output.
    outLevel : int, default=INFO
        Console threshold.


    Returns
    -------
    log : logging.Logger
        The main logger. An existing one is returned unchanged; call
        removeLog(MAIN_LOG) first to rebuild it.
    """

    global log, consoleHandler, fileHandler

    if (log is not None):
        return log

    logging.setLogRecordFactory(slotRecordFactory)
    log = logging.getLogger(MAIN_LOG)
    log.setLevel(DEBUG)

    if (outFormat is not None):
        if (consoleHandler is None):
            consoleHandler = _newHandler(logging.StreamHandler(),
                                         'Console handler', outLevel,
                                         outFormat)
        log.addHandler(consoleHandler)
        log.info('Console logging started')

    if ((fileFormat is not None) and (fileName is not None)):
        if (fileHandler is None):
            fileHandler = _newHandler(logging.FileHandler(fileName),
                                      'File handler', fileLevel,
                                      fileFormat, FMT_DATE)
        log.addHandler(fileHandler)
        log.info('File logging started at %s in %s',
                 datetime.now().strftime("%m/%d/%Y %H:%M:%S"),
                 os.path.basename(fileName))

    for name in registered:
        _shareMain(logging.getLogger(name))

    return log

#-----------------------------------------------------------------------------#

def _shareMain(subLog:logging.Logger)->None:
    """Attach the main handlers that exist to subLog."""
    for handler in (consoleHandler, fileHandler):
        if ((handler is not None) and (handler not in subLog.handlers)):
            subLog.addHandler(handler)

#-----------------------------------------------------------------------------#

def addLog(name:str)->logging.Logger:
    """
    Register a module logger that writes through the main handlers.

    The logger picks up the main handlers now if the main logger exists, and
    again on every later setupMain().
    """

    thisLog = logging.getLogger(name)
    if (name not in registered):
        thisLog.setLevel(DEBUG)
        registered.append(name)
        if (log is not None):
            _shareMain(thisLog)
    return thisLog

#-----------------------------------------------------------------------------#

def noneLog(name:str)->logging.Logger:
    """
    Strip a logger down to warnings without handlers.

    For the main logger, the shared handlers are detached everywhere and
    closed, and the stripped logger becomes the main logger.
    """

    global log

    thisLog = logging.getLogger(name)
    thisLog.setLevel(WARNING)
    if (name == MAIN_LOG):
        while (thisLog.handlers):
            deepRemoveHandler(thisLog.handlers[0])
        log = thisLog
    else:
        removeHandlers(name)
    return thisLog

#-----------------------------------------------------------------------------#

def removeLog(name:str)->None:
    """Forget a logger and release the handlers only it used."""
    global log

    thisLog = logging.getLogger(name)
    removeHandlers(name)
    del logging.Logger.manager.loggerDict[name]
    if (thisLog is log):
        log = None

###############################################################################

def setupChannel(name:str = 'channel',
                 fileName:Optional[str] = None,
                 file:bool = True,
                 out:bool = True,
                 )->logging.Logger:
    """
    Build the channel traffic logger.


    Parameters
    ----------
    name : str, default='channel'
        Logger name.
    fileName : str, optional
        Dedicated traffic file, used only if file is True.
    file : bool, default=True
        Write traffic to fileName instead of the main log file.
    out : bool, default=True
        Echo traffic on the main console handler, if there is one.


    Returns
    -------
    chanLog : logging.Logger
        Channel logger at DEBUG level.


    Notes
    -----
    The slot record factory is installed here too, so traffic records carry
    the slot when the main logger is disabled. Without a dedicated file the
    traffic goes to the main file handler, if there is one.
    """

    logging.setLogRecordFactory(slotRecordFactory)
    chanLog = logging.getLogger(name)
    chanLog.setLevel(DEBUG)

    if ((out) and (consoleHandler is not None)):
        chanLog.addHandler(consoleHandler)

    if ((file) and (fileName is not None)):
        level = fileHandler.level if (fileHandler is not None) else DEBUG
        chanLog.addHandler(_newHandler(logging.FileHandler(fileName),
                                       'Channel file handler', level,
                                       FMT_FILE, FMT_DATE))
        chanLog.info('Channel file logging started at %s in %s',
                     datetime.now().strftime("%m/%d/%Y %H:%M:%S"),
                     os.path.basename(fileName))
    elif (fileHandler is not None):
        chanLog.addHandler(fileHandler)

    return chanLog

###############################################################################

def removeHandlers(name:str)->None:
    """Detach every handler of a logger, closing those no logger holds."""
    thisLog = logging.getLogger(name)
    while (thisLog.handlers):
        handler = thisLog.handlers[0]
        thisLog.removeHandler(handler)
        if not (_holders(handler)):
            _release(handler)

#-----------------------------------------------------------------------------#

def deepRemoveHandler(handler:logging.Handler)->None:
    """Detach a handler from every logger and close it."""
    for l in _holders(handler):
        l.removeHandler(handler)
    _release(handler)

###############################################################################
