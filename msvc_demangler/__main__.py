# -*- coding: UTF-8 -*-

import argparse
import sys

from msvc_demangler import WhitespaceMode, DemangleException, parse, serialize
from msvc_demangler.config import Config
from msvc_demangler.utility import Logging as log, profiler


def _symbols(args):
    if args.symbols:
        yield from args.symbols
        return
    for line in sys.stdin:
        line = line.strip()
        if line:
            yield line


def _demangle_all(args, mode):
    failed = 0
    for name in _symbols(args):
        try:
            result = parse(name)
            if args.ast:
                log.print(repr(result))
            log.print(serialize(result, mode))
        except DemangleException as e:
            log.error('%s: %s' % (name, e))
            failed += 1
    return failed


def main(argv=None):
    parser = argparse.ArgumentParser(prog='msvc_demangler',
                                     description='demangle MSVC C++ symbols')
    parser.add_argument('symbols', nargs='*', help="mangled symbols, read from stdin if none")
    parser.add_argument('-w', '--lots-of-whitespace', action='store_true',
                        help="'int * x' instead of 'int*x'")
    parser.add_argument('--ast', action='store_true', help="also print the parse tree")
    parser.add_argument('-v', '--verbose', action='store_true', help="log debug output")
    args = parser.parse_args(argv)

    if args.verbose:
        log.setLevel(log.DEBUG)

    if args.lots_of_whitespace:
        mode = WhitespaceMode.LotsOfWhitespace
    else:
        mode = WhitespaceMode(Config.cfgWhitespaceMode)

    failed = profiler(_demangle_all)(args, mode)
    if failed:
        log.debug('%d symbol(s) failed' % failed)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
