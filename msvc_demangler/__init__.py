# -*- coding: UTF-8 -*-

""" MSVC C++ symbol demangler

    demangle('?x@@YAXMH@Z') -> 'void __cdecl x(float,int)'
"""

from msvc_demangler.errors import (
    DemangleException, ParseError, SerializeError,
    NotMangled, UnexpectedEnd, ExpectedLiteral, BadNumber, MissingTerminator,
    BackrefOutOfRange, UnknownOperator, UnknownCallingConv, UnknownStorageClass,
    UnknownPrimitive, UnknownFuncClass, InvalidDimension, MissingScope, TooDeep,
)
from msvc_demangler.fmt.ast import (
    StorageClass, FuncClass, CallingConv, ParseResult, Symbol, is_ctor_or_dtor,
)
from msvc_demangler.fmt.parser import parse
from msvc_demangler.fmt.serializer import WhitespaceMode, serialize
from msvc_demangler.utility import Logging as log


def demangle(mangled, mode=WhitespaceMode.LessWhitespace):
    """ parse and serialize in one go, errors of either step propagate unchanged """
    return serialize(parse(mangled), mode)


def try_demangle(mangled, mode=WhitespaceMode.LessWhitespace):
    """ like demangle(), but returns None for symbols that cannot be demangled """
    try:
        return demangle(mangled, mode)
    except DemangleException as e:
        log.debug('demangle %r failed: %s' % (mangled, e))
        return None
