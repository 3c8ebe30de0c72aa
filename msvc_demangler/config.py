# -*- coding: UTF-8 -*-

class Config:

    """ how much of the unparsed input an error message quotes """
    cfgStringShortLength = 50

    """ deepest nesting of types, template names and embedded symbols
        a symbol may have before the parser gives up with TooDeep
    """
    cfgMaxNesting = 100

    """ default whitespace style of the command line, overridden by -w
        'less': 'int*x'
        'lots': 'int * x'
    """
    cfgWhitespaceMode = 'less'

    """ profiling of command line batches
        0: off
        1: wall time of the batch
        2: cProfile statistics, sorted by cumulative time
    """
    cfgProfilerMode = 0

    """ lowest Logging level that is printed
        DEBUG 10, VERBOSE 20, INFO 30, WARN 40, ERROR 50, CRITICAL 60
    """
    cfgLoggingLevel = 30

    @classmethod
    def Keys(cls):
        return [k for k in cls.__dict__ if k.startswith('cfg')]

    @classmethod
    def Show(cls, Key=None):
        for k in cls.Keys():
            if Key is None or k == Key:
                print(k, "=", getattr(cls, k))

    @classmethod
    def SetValue(cls, key, value):
        """ returns the stored value, or None for an unknown key """
        if key not in cls.Keys():
            return None
        # values usually come in as strings, keep the declared type.
        if isinstance(getattr(cls, key), int) and not isinstance(value, int):
            value = int(value, 0)
        setattr(cls, key, value)
        return value
