import logging
import os
import sys

FORMAT = (
    '+%(process)-6d %(levelname)-9s '
    '%(name)-24s %(filename)20s:%(lineno)-5d '
    '[%(asctime)s] %(message)s')

_STDERR_LEVELS = [logging.ERROR, logging.WARNING, logging.INFO]


def getLogger(name):
    return logging.getLogger(name)


def stderrLevel(verbosity):
    """Map the number of -v flags to a stderr log level."""
    return _STDERR_LEVELS[min(verbosity, len(_STDERR_LEVELS) - 1)]


def setup(logDir, debugLogFileName, debug=False, verbosity=0):
    if debug:
        logFileName = os.path.join(logDir, debugLogFileName)
        logging.basicConfig(
            filename=logFileName,
            level=logging.DEBUG,
            format=FORMAT)
    else:
        logging.basicConfig(
            stream=sys.stderr, level=stderrLevel(verbosity), format=FORMAT)
