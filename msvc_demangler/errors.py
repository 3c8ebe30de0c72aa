# -*- coding: UTF-8 -*-

from msvc_demangler.utility import TextShort


class DemangleException(Exception):
    pass


class ParseError(DemangleException):
    """ malformed mangled input.

        `remaining` holds the unparsed suffix at the point of failure.
    """
    reason = 'parse error'

    def __init__(self, remaining=b'', detail=None):
        self.remaining = remaining
        self.detail = detail
        msg = self.reason
        if detail is not None:
            msg += ' %s' % detail
        msg += ': %s' % TextShort(remaining)
        super().__init__(msg)


class NotMangled(ParseError):
    reason = "does not start with '?'"


class UnexpectedEnd(ParseError):
    reason = 'unexpected end of input'


class ExpectedLiteral(ParseError):
    reason = 'expected'

    def __init__(self, literal, remaining):
        self.literal = literal
        super().__init__(remaining, TextShort(literal) + ', but got')


class BadNumber(ParseError):
    reason = 'bad number'


class MissingTerminator(ParseError):
    reason = "missing '@'"


class BackrefOutOfRange(ParseError):
    reason = 'backreference out of range'

    def __init__(self, index, remaining):
        self.index = index
        super().__init__(remaining, str(index))


class UnknownOperator(ParseError):
    reason = 'unknown operator name'


class UnknownCallingConv(ParseError):
    reason = 'unknown calling conv'


class UnknownStorageClass(ParseError):
    reason = 'unknown storage class'


class UnknownPrimitive(ParseError):
    reason = 'unknown primitive type'


class UnknownFuncClass(ParseError):
    reason = 'unknown func class'


class InvalidDimension(ParseError):
    reason = 'invalid array dimension'

    def __init__(self, dimension, remaining):
        self.dimension = dimension
        super().__init__(remaining, str(dimension))


class MissingScope(ParseError):
    reason = 'constructor or destructor without enclosing class'


class TooDeep(ParseError):
    reason = 'nesting too deep'


class SerializeError(DemangleException):
    """ the AST does not match what the serializer expects.
        Never raised for trees built by the parser.
    """
    pass
