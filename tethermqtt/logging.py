"""Lightweight logging for TetherMQTT."""

DEBUG = 0
INFO = 1
WARNING = 2
ERROR = 3

_LEVEL_NAMES = {0: 'DEBUG', 1: 'INFO', 2: 'WARN', 3: 'ERROR'}
_NAME_LEVELS = {'DEBUG': 0, 'INFO': 1, 'WARNING': 2, 'ERROR': 3}


def _resolve_level(level):
    if isinstance(level, str):
        return _NAME_LEVELS.get(level.upper(), INFO)
    return level


class Logger:
    __slots__ = ('name', 'level')

    def __init__(self, name, level=INFO):
        self.name = name
        self.level = _resolve_level(level)

    def set_level(self, level):
        self.level = _resolve_level(level)

    def _log(self, level, msg, *args):
        if level >= self.level:
            if args:
                msg = msg % args
            print("[%s] %s: %s" % (_LEVEL_NAMES.get(level, '?'), self.name, msg))

    def debug(self, msg, *args):
        self._log(DEBUG, msg, *args)

    def info(self, msg, *args):
        self._log(INFO, msg, *args)

    def warning(self, msg, *args):
        self._log(WARNING, msg, *args)

    def error(self, msg, *args):
        self._log(ERROR, msg, *args)

_loggers = {}

def get_logger(name, level=None):
    """Return the cached logger for ``name``.

    The level is applied only when given, so a component asking for its
    logger never resets a level the application chose earlier.
    """
    logger = _loggers.get(name)
    if logger is None:
        logger = Logger(name, INFO if level is None else level)
        _loggers[name] = logger
    elif level is not None:
        logger.set_level(level)
    return logger
