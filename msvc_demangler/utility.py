# -*- coding: UTF-8 -*-

import sys
import functools

from msvc_demangler.config import Config


def profiler(func):
    """ wrap a batch entry point according to Config.cfgProfilerMode
    """
    mode = Config.cfgProfilerMode
    if not mode:
        return func

    @functools.wraps(func)
    def timed(*args, **kwargs):
        from time import perf_counter
        start = perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            Logging.print('{}() takes {:.3f} second(s).'.format(func.__name__,
                                                               perf_counter() - start))

    @functools.wraps(func)
    def profiled(*args, **kwargs):
        from cProfile import Profile
        pr = Profile()
        try:
            return pr.runcall(func, *args, **kwargs)
        finally:
            pr.print_stats(sort="cumulative")

    return profiled if mode == 2 else timed


class Logging:
    """ leveled console output, filtered by Config.cfgLoggingLevel
    """

    NOTSET = 0
    DEBUG = 10
    VERBOSE = 20
    INFO = 30
    WARN = 40
    ERROR = 50
    CRITICAL = 60

    # level name: (ansi color, goes to stderr)
    _styles = {
        'critical': (35, True),
        'error': (31, True),
        'warn': (33, True),
        'info': (32, False),
        'verbose': (None, False),
        'debug': (None, True),
    }

    @classmethod
    def getLevel(cls):
        return Config.cfgLoggingLevel

    @classmethod
    def setLevel(cls, level):
        Config.SetValue('cfgLoggingLevel', level)

    @classmethod
    def _output(cls, sz, level=None, color=None, pad=0, stream=None):
        if level and level < cls.getLevel():
            return

        stream = stream or sys.stdout
        if pad > 0:
            sz = "%*s%s" % (pad, ' ', sz)
        if color is not None and stream.isatty():
            sz = '\033[%dm%s\033[0m' % (color, sz)
        print(sz, file=stream)

    @classmethod
    def _log(cls, name, sz, level):
        color, to_stderr = cls._styles[name]
        base = getattr(cls, name.upper())
        cls._output(sz, base + level, color=color,
                    stream=sys.stderr if to_stderr else sys.stdout)

    @classmethod
    def critical(cls, sz, level=0):
        cls._log('critical', sz, level)

    @classmethod
    def error(cls, sz, level=0):
        cls._log('error', sz, level)

    @classmethod
    def warn(cls, sz, level=0):
        cls._log('warn', sz, level)

    @classmethod
    def info(cls, sz, level=0):
        cls._log('info', sz, level)

    @classmethod
    def verbose(cls, sz, level=0):
        cls._log('verbose', sz, level)

    @classmethod
    def debug(cls, sz, level=0):
        cls._log('debug', sz, level)

    @classmethod
    def print(cls, sz, pos=0):
        """ print is not controlled by level, always output. """
        cls._output(sz, pad=pos)


def TextShort(any_str, limit=-1):
    """ one-line excerpt of a symbol for messages, mangled bytes are shown as latin-1 """
    if limit < 0:
        limit = Config.cfgStringShortLength

    if isinstance(any_str, (bytes, bytearray)):
        any_str = bytes(any_str).decode('latin-1')

    if len(any_str) > limit:
        any_str = any_str[:limit] + '...'
    return any_str.replace('\r', '').replace('\n', '')
