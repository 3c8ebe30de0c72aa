# encoding:utf-8

"""
This module implements the parsing half of the MSVC demangler.

`parse` turns a mangled symbol into a `ParseResult` (see `msvc_demangler.fmt.ast`)
or raises a `ParseError`. The grammar is read strictly left to right with at most
a few bytes of lookahead, so the work done is linear in the input length.

Grammar summary (after MicrosoftMangle.cpp):

    <mangled-name>     ::= ? <name> <type-encoding>
    <name>             ::= <unqualified-name> {<nested-name>}* @
    <unqualified-name> ::= <operator-name> | <source-name> | <template-name>
    <source-name>      ::= <identifier> @
    <template-name>    ::= ?$ <unqualified-name> <template-args>
    <type-encoding>    ::= <function-class> <function-type>
                       ::= <storage-class> <variable-type>
    <number>           ::= [?] <decimal digit>     # 1 <= N <= 10
                       ::= [?] <hex digit>+ @      # A = 0, B = 1, ... P = 15

The first ten distinct names and the first ten distinct multi-byte types seen
can be referred back to by a single digit. Template instantiations open a
fresh backreference scope of their own.
"""

from contextlib import contextmanager

from msvc_demangler import errors
from msvc_demangler.config import Config
from msvc_demangler.fmt.ast import (
    StorageClass, FuncClass, CallingConv, NO_STORAGE,
    Node, QualNode, TemplateNode, ArrayNode, FuncNode, MemberPtrNode,
    Symbol, ParseResult, ANONYMOUS_NAMESPACE, VARARGS, EMPTY_PACK, NULLPTR,
    builtin,
)

_MAX_BACKREFS = 10


class _Cursor:
    def __init__(self, raw, pos=0):
        self._raw = raw
        self._pos = pos

    @property
    def remaining(self):
        return self._raw[self._pos:]

    @property
    def pos(self):
        return self._pos

    def at_end(self):
        return self._pos >= len(self._raw)

    def peek(self):
        if self.at_end():
            return None
        return self._raw[self._pos:self._pos + 1]

    def startswith(self, delim):
        return self._raw.startswith(delim, self._pos)

    def get(self):
        if self.at_end():
            raise errors.UnexpectedEnd(self.remaining)
        result = self._raw[self._pos:self._pos + 1]
        self._pos += 1
        return result

    def consume(self, delim):
        if self._raw.startswith(delim, self._pos):
            self._pos += len(delim)
            return True
        return False

    def expect(self, delim):
        if not self.consume(delim):
            raise errors.ExpectedLiteral(delim, self.remaining)

    def consume_digit(self):
        c = self.peek()
        if c is not None and c.isdigit():
            self._pos += 1
            return ord(c) - ord('0')
        return None

    def consume_hex_digit(self):
        c = self.peek()
        if c is not None and c in b'0123456789abcdefABCDEF':
            self._pos += 1
            return True
        return False

    def read_number(self):
        orig = self.remaining
        neg = self.consume(b'?')

        digit = self.consume_digit()
        if digit is not None:
            ret = digit + 1
            return -ret if neg else ret

        ret = 0
        while not self.at_end():
            c = self.get()
            if c == b'@':
                return -ret if neg else ret
            if b'A' <= c <= b'P':
                ret = (ret << 4) + (ord(c) - ord('A'))
            else:
                break
        raise errors.BadNumber(orig)

    def read_string(self):
        """ read until the next '@', which is consumed but not returned """
        end = self._raw.find(b'@', self._pos)
        if end == -1:
            raise errors.MissingTerminator(self.remaining)
        result = self._raw[self._pos:end]
        self._pos = end + 1
        return result

    def __repr__(self):
        return "_Cursor({!r}, {})".format(self._raw[:self._pos] + b'|' + self._raw[self._pos:],
                                          self._pos)


class _Backrefs:
    """ the first ten distinct names and types of one backreference scope """

    def __init__(self):
        self.names = []
        self.types = []

    def memorize_name(self, node):
        if len(self.names) < _MAX_BACKREFS and node not in self.names:
            self.names.append(node)

    def memorize_type(self, node):
        if len(self.types) < _MAX_BACKREFS and node not in self.types:
            self.types.append(node)


_operators = {
    b'0': 'ctor',
    b'1': 'dtor',
    b'2': 'operator new',
    b'3': 'operator delete',
    b'4': 'operator=',
    b'5': 'operator>>',
    b'6': 'operator<<',
    b'7': 'operator!',
    b'8': 'operator==',
    b'9': 'operator!=',
    b'A': 'operator[]',
    b'B': 'operatorcast',
    b'C': 'operator->',
    b'D': 'operator*',
    b'E': 'operator++',
    b'F': 'operator--',
    b'G': 'operator-',
    b'H': 'operator+',
    b'I': 'operator&',
    b'J': 'operator->*',
    b'K': 'operator/',
    b'L': 'operator%',
    b'M': 'operator<',
    b'N': 'operator<=',
    b'O': 'operator>',
    b'P': 'operator>=',
    b'Q': 'operator,',
    b'R': 'operator()',
    b'S': 'operator~',
    b'T': 'operator^',
    b'U': 'operator|',
    b'V': 'operator&&',
    b'W': 'operator||',
    b'X': 'operator*=',
    b'Y': 'operator+=',
    b'Z': 'operator-=',
}

_extended_operators = {
    b'0': 'operator/=',
    b'1': 'operator%=',
    b'2': 'operator>>=',
    b'3': 'operator<<=',
    b'4': 'operator&=',
    b'5': 'operator|=',
    b'6': 'operator^=',
    b'7': "`vftable'",
    b'8': "`vbtable'",
    b'9': "`vcall'",
    b'A': "`typeof'",
    b'B': "`local static guard'",
    b'D': "`vbase destructor'",
    b'E': "`vector deleting destructor'",
    b'F': "`default constructor closure'",
    b'G': "`scalar deleting destructor'",
    b'H': "`vector constructor iterator'",
    b'I': "`vector destructor iterator'",
    b'J': "`vector vbase constructor iterator'",
    b'K': "`virtual displacement map'",
    b'L': "`eh vector constructor iterator'",
    b'M': "`eh vector destructor iterator'",
    b'N': "`eh vector vbase constructor iterator'",
    b'O': "`copy constructor closure'",
    b'S': "`local vftable'",
    b'T': "`local vftable constructor closure'",
    b'U': 'operator new[]',
    b'V': 'operator delete[]',
    b'X': "`placement delete closure'",
    b'Y': "`placement delete[] closure'",
}

# (func class, thunk)
_func_classes = {
    b'A': (FuncClass.PRIVATE, False),
    b'B': (FuncClass.PRIVATE | FuncClass.FAR, False),
    b'C': (FuncClass.PRIVATE | FuncClass.STATIC, False),
    b'D': (FuncClass.PRIVATE | FuncClass.STATIC, False),
    b'E': (FuncClass.PRIVATE | FuncClass.VIRTUAL, False),
    b'F': (FuncClass.PRIVATE | FuncClass.VIRTUAL, False),
    b'G': (FuncClass.PRIVATE | FuncClass.VIRTUAL, True),
    b'H': (FuncClass.PRIVATE | FuncClass.VIRTUAL | FuncClass.FAR, True),
    b'I': (FuncClass.PROTECTED, False),
    b'J': (FuncClass.PROTECTED | FuncClass.FAR, False),
    b'K': (FuncClass.PROTECTED | FuncClass.STATIC, False),
    b'L': (FuncClass.PROTECTED | FuncClass.STATIC | FuncClass.FAR, False),
    b'M': (FuncClass.PROTECTED | FuncClass.VIRTUAL, False),
    b'N': (FuncClass.PROTECTED | FuncClass.VIRTUAL | FuncClass.FAR, False),
    b'O': (FuncClass.PROTECTED | FuncClass.VIRTUAL, True),
    b'P': (FuncClass.PROTECTED | FuncClass.VIRTUAL | FuncClass.FAR, True),
    b'Q': (FuncClass.PUBLIC, False),
    b'R': (FuncClass.PUBLIC | FuncClass.FAR, False),
    b'S': (FuncClass.PUBLIC | FuncClass.STATIC, False),
    b'T': (FuncClass.PUBLIC | FuncClass.STATIC | FuncClass.FAR, False),
    b'U': (FuncClass.PUBLIC | FuncClass.VIRTUAL, False),
    b'V': (FuncClass.PUBLIC | FuncClass.VIRTUAL | FuncClass.FAR, False),
    b'W': (FuncClass.PUBLIC | FuncClass.VIRTUAL, True),
    b'X': (FuncClass.PUBLIC | FuncClass.VIRTUAL | FuncClass.FAR, True),
    b'Y': (FuncClass.GLOBAL, False),
    b'Z': (FuncClass.GLOBAL | FuncClass.FAR, False),
}

_calling_convs = {
    b'A': CallingConv.Cdecl,
    b'B': CallingConv.Cdecl,
    b'C': CallingConv.Pascal,
    b'D': CallingConv.Pascal,
    b'E': CallingConv.Thiscall,
    b'F': CallingConv.Thiscall,
    b'G': CallingConv.Stdcall,
    b'H': CallingConv.Stdcall,
    b'I': CallingConv.Fastcall,
    b'J': CallingConv.Fastcall,
    b'w': CallingConv.Regcall,
}

# this-pointer and vtable qualifiers
_qualifiers = {
    b'A': NO_STORAGE,
    b'B': StorageClass.CONST,
    b'C': StorageClass.VOLATILE,
    b'D': StorageClass.CONST | StorageClass.VOLATILE,
}

# pointee qualifiers
_storage_classes = {
    b'A': NO_STORAGE,
    b'B': StorageClass.CONST,
    b'C': StorageClass.VOLATILE,
    b'D': StorageClass.CONST | StorageClass.VOLATILE,
    b'E': StorageClass.FAR,
    b'F': StorageClass.CONST | StorageClass.FAR,
    b'G': StorageClass.VOLATILE | StorageClass.FAR,
    b'H': StorageClass.CONST | StorageClass.VOLATILE | StorageClass.FAR,
}

_builtin_types = {
    b'X': 'void',
    b'D': 'char',
    b'C': 'signed char',
    b'E': 'unsigned char',
    b'F': 'short',
    b'G': 'unsigned short',
    b'H': 'int',
    b'I': 'unsigned int',
    b'J': 'long',
    b'K': 'unsigned long',
    b'M': 'float',
    b'N': 'double',
    b'O': 'long double',
}

_extended_builtin_types = {
    b'N': 'bool',
    b'J': 'int64_t',
    b'K': 'uint64_t',
    b'W': 'wchar_t',
    b'S': 'char16_t',
    b'U': 'char32_t',
}

_nominal_types = {
    b'T': 'union',
    b'U': 'struct',
    b'V': 'class',
}

# pointer codes and the storage class they force on the pointer itself,
# None keeps the one handed in by the caller.
_indirect_types = {
    b'A': ('lvalue', None),
    b'B': ('lvalue', StorageClass.VOLATILE),
    b'P': ('pointer', None),
    b'Q': ('pointer', StorageClass.CONST),
    b'R': ('pointer', StorageClass.VOLATILE),
    b'S': ('pointer', StorageClass.CONST | StorageClass.VOLATILE),
}


class Parser:
    """ recursive descent over one mangled symbol """

    def __init__(self, raw):
        self._cursor = _Cursor(raw)
        self._backrefs = [_Backrefs()]
        self._depth = 0

    @property
    def memorized_names(self):
        return self._backrefs[-1].names

    @property
    def memorized_types(self):
        return self._backrefs[-1].types

    @contextmanager
    def _template_scope(self):
        """ templates have their own context for backreferences """
        self._backrefs.append(_Backrefs())
        try:
            yield
        finally:
            self._backrefs.pop()

    @contextmanager
    def _nested(self, levels=1):
        """ bound the recursion of types, template names and embedded symbols """
        if self._depth + levels > Config.cfgMaxNesting:
            raise errors.TooDeep(self._cursor.remaining)
        self._depth += levels
        try:
            yield
        finally:
            self._depth -= levels

    def parse(self):
        cursor = self._cursor
        if not cursor.consume(b'?'):
            raise errors.NotMangled(cursor.remaining)

        if cursor.consume(b'$'):
            if cursor.consume(b'TSS'):
                return self._read_thread_safe_static_guard()
            name = self.read_template_name()
            return ParseResult(Symbol(name, ()), None)

        # main symbol name, possibly qualified by namespaces or classes.
        symbol = self.read_name(True)

        if cursor.at_end():
            return ParseResult(symbol, None)

        c = cursor.get()
        if b'0' <= c <= b'5':
            symbol_type = self.read_var_type(NO_STORAGE)
        elif c == b'6':
            access_class = self.read_qualifier()
            symbol_type = QualNode('vftable', self.read_scope(), access_class)
        elif c == b'7':
            access_class = self.read_qualifier()
            symbol_type = QualNode('vbtable', self.read_scope(), access_class)
        elif c == b'Y':
            calling_conv = self.read_calling_conv()
            storage_class = self.read_storage_class_for_return()
            return_type = self.read_var_type(storage_class)
            params = self.read_func_params()
            symbol_type = FuncNode('func', FuncClass(0), calling_conv, params,
                                   NO_STORAGE, return_type)
        else:
            func_class = self.read_func_class(c)
            if func_class & FuncClass.STATIC:
                access_class = NO_STORAGE
            else:
                # 64-bit 'this' pointer
                cursor.consume(b'E')
                access_class = self.read_qualifier()
            calling_conv = self.read_calling_conv()
            storage_class = self.read_storage_class_for_return()
            return_type = self.read_func_return_type(storage_class)
            params = self.read_func_params()
            symbol_type = FuncNode('member_func', func_class, calling_conv, params,
                                   access_class, return_type)
        return ParseResult(symbol, symbol_type)

    def _read_thread_safe_static_guard(self):
        cursor = self._cursor
        guard_num = cursor.consume_digit()
        if guard_num is None:
            raise errors.BadNumber(cursor.remaining)
        while not cursor.consume(b'@'):
            digit = cursor.consume_digit()
            if digit is None:
                raise errors.BadNumber(cursor.remaining)
            guard_num = guard_num * 10 + digit
        name = self.read_nested_name()
        scope = self.read_scope()
        cursor.expect(b'4HA')
        return ParseResult(Symbol(name, scope), Node('tss_guard', guard_num))

    def _memorized_name(self, index, orig):
        if index >= len(self.memorized_names):
            raise errors.BackrefOutOfRange(index, orig)
        return self.memorized_names[index]

    def _memorized_type(self, index, orig):
        if index >= len(self.memorized_types):
            raise errors.BackrefOutOfRange(index, orig)
        return self.memorized_types[index]

    def read_template_name(self):
        with self._nested(), self._template_scope():
            name = self.read_unqualified_name(False)
            params = self.read_params()
        return TemplateNode('template', name, params)

    def read_nested_name(self):
        cursor = self._cursor
        orig = cursor.remaining

        index = cursor.consume_digit()
        if index is not None:
            return self._memorized_name(index, orig)

        if cursor.consume(b'?'):
            if cursor.peek() == b'?':
                with self._nested():
                    return Node('parsed_name', self.parse())
            if cursor.consume(b'$'):
                name = self.read_template_name()
                self._backrefs[-1].memorize_name(name)
                return name
            if cursor.consume(b'A'):
                if cursor.consume(b'0x'):
                    while cursor.consume_hex_digit():
                        pass
                cursor.expect(b'@')
                return ANONYMOUS_NAMESPACE
            return Node('discriminator', cursor.read_number())

        # non-template functions or classes.
        name = Node('name', cursor.read_string())
        self._backrefs[-1].memorize_name(name)
        return name

    def read_unqualified_name(self, function):
        cursor = self._cursor
        orig = cursor.remaining

        index = cursor.consume_digit()
        if index is not None:
            return self._memorized_name(index, orig)

        if cursor.consume(b'?$'):
            name = self.read_template_name()
            if not function:
                self._backrefs[-1].memorize_name(name)
            return name

        if cursor.consume(b'?'):
            return self.read_operator()

        name = Node('name', cursor.read_string())
        self._backrefs[-1].memorize_name(name)
        return name

    def read_scope(self):
        names = []
        while not self._cursor.consume(b'@'):
            names.append(self.read_nested_name())
        return tuple(names)

    def read_name(self, function):
        """ parse a name in the form of A@B@C@@ which represents C::B::A """
        orig = self._cursor.remaining
        name = self.read_unqualified_name(function)
        scope = self.read_scope()
        if not scope and name.kind == 'oper' and name.value in ('ctor', 'dtor'):
            raise errors.MissingScope(orig)
        return Symbol(name, scope)

    def read_func_type(self):
        calling_conv = self.read_calling_conv()
        return_type = self.read_var_type(NO_STORAGE)
        params = self.read_func_params()
        return FuncNode('func', FuncClass(0), calling_conv, params, NO_STORAGE, return_type)

    def read_operator(self):
        return Node('oper', self.read_operator_name())

    def read_operator_name(self):
        cursor = self._cursor
        orig = cursor.remaining

        c = cursor.get()
        if c != b'_':
            if c in _operators:
                return _operators[c]
            raise errors.UnknownOperator(orig)

        c = cursor.get()
        if c == b'_':
            if cursor.consume(b'L'):
                return ' co_await'
            if cursor.consume(b'K'):
                # TODO: read the <source-name> that follows, it is the literal suffix.
                return ' CXXLiteralOperatorName'
            raise errors.UnknownOperator(orig)
        if c in _extended_operators:
            return _extended_operators[c]
        raise errors.UnknownOperator(orig)

    def read_func_class(self, c):
        if c not in _func_classes:
            raise errors.UnknownFuncClass(c + self._cursor.remaining)
        func_class, thunk = _func_classes[c]
        if thunk:
            # the this-adjustment is not part of the printed form.
            self._cursor.read_number()
            func_class |= FuncClass.THUNK
        return func_class

    def _read_table_byte(self, table):
        c = self._cursor.peek()
        if c not in table:
            return NO_STORAGE
        self._cursor.get()
        return table[c]

    def read_qualifier(self):
        return self._read_table_byte(_qualifiers)

    def read_storage_class(self):
        return self._read_table_byte(_storage_classes)

    def read_calling_conv(self):
        orig = self._cursor.remaining
        c = self._cursor.get()
        if c not in _calling_convs:
            raise errors.UnknownCallingConv(orig)
        return _calling_convs[c]

    def read_func_return_type(self, storage_class):
        """ structors have no declared return type and encode '@' instead """
        if self._cursor.consume(b'@'):
            return None
        return self.read_var_type(storage_class)

    def read_storage_class_for_return(self):
        cursor = self._cursor
        if not cursor.consume(b'?'):
            return NO_STORAGE
        orig = cursor.remaining
        c = cursor.get()
        if c not in _qualifiers:
            raise errors.UnknownStorageClass(orig)
        return _qualifiers[c]

    def read_var_type(self, sc):
        with self._nested():
            return self._read_var_type(sc)

    def _read_var_type(self, sc):
        cursor = self._cursor

        if cursor.consume(b'W4'):
            return QualNode('enum', self.read_name(False), sc)

        if cursor.consume(b'A6'):
            return QualNode('lvalue', self.read_func_type(), sc)

        if cursor.consume(b'P6'):
            return QualNode('pointer', self.read_func_type(), sc)

        if cursor.consume(b'P8'):
            name = self.read_unqualified_name(True)
            cursor.expect(b'@')
            cursor.expect(b'E')
            access_class = self.read_qualifier()
            # the calling convention of the pointee is not kept
            self.read_calling_conv()
            storage_class = self.read_storage_class_for_return()
            return_type = self.read_func_return_type(storage_class)
            params = self.read_func_params()
            return MemberPtrNode('member_func_ptr', name, params, access_class, return_type)

        if cursor.consume(b'$'):
            if cursor.consume(b'0'):
                return Node('constant', cursor.read_number())
            if cursor.consume(b'D'):
                return Node('tpl_param', cursor.read_number())
            if cursor.consume(b'$BY'):
                return self.read_array()
            if cursor.consume(b'$Q'):
                return QualNode('rvalue', self.read_pointee(), sc)
            if cursor.consume(b'$C'):
                sc = self.read_qualifier()
            if cursor.consume(b'$V'):
                return EMPTY_PACK
            if cursor.consume(b'$T'):
                return NULLPTR
            if cursor.consume(b'$A6'):
                return self.read_func_type()

        if cursor.consume(b'?'):
            return Node('tpl_param', -cursor.read_number())

        orig = cursor.remaining
        index = cursor.consume_digit()
        if index is not None:
            return self._memorized_type(index, orig)

        c = cursor.get()
        if c in _nominal_types:
            return QualNode(_nominal_types[c], self.read_name(False), sc)
        if c in _indirect_types:
            kind, forced = _indirect_types[c]
            pointee = self.read_pointee()
            return QualNode(kind, pointee, sc if forced is None else forced)
        if c == b'Y':
            return self.read_array()
        if c in _builtin_types:
            return builtin(_builtin_types[c], sc)
        if c == b'_':
            c = cursor.get()
            if c in _extended_builtin_types:
                return builtin(_extended_builtin_types[c], sc)
        raise errors.UnknownPrimitive(orig)

    def read_pointee(self):
        # 64-bit pointer
        self._cursor.consume(b'E')
        storage_class = self.read_storage_class()
        return self.read_var_type(storage_class)

    def read_array(self):
        orig = self._cursor.remaining
        dimension = self._cursor.read_number()
        if dimension <= 0:
            raise errors.InvalidDimension(dimension, orig)
        # every dimension is one more level for the printer
        with self._nested(dimension):
            lengths = [self._cursor.read_number() for _ in range(dimension)]
            ty = self.read_array_element()
        # the outermost length comes first
        for length in reversed(lengths):
            ty = ArrayNode('array', length, ty, NO_STORAGE)
        return ty

    def read_array_element(self):
        """ element type, optionally preceded by its own qualifier """
        cursor = self._cursor
        storage_class = NO_STORAGE
        if cursor.consume(b'$$C'):
            if cursor.consume(b'B'):
                storage_class = StorageClass.CONST
            elif cursor.consume(b'C') or cursor.consume(b'D'):
                storage_class = StorageClass.CONST | StorageClass.VOLATILE
            elif not cursor.consume(b'A'):
                raise errors.UnknownStorageClass(cursor.remaining)
        return self.read_var_type(storage_class)

    def read_params(self):
        """ read function or template parameters """
        cursor = self._cursor
        params = []

        while not (cursor.startswith(b'@') or cursor.startswith(b'Z') or cursor.at_end()):
            orig = cursor.remaining
            index = cursor.consume_digit()
            if index is not None:
                params.append(self._memorized_type(index, orig))
                continue

            start = cursor.pos
            param_type = self.read_var_type(NO_STORAGE)
            # single-letter types are not worth a backreference slot.
            if cursor.pos - start > 1:
                self._backrefs[-1].memorize_type(param_type)
            params.append(param_type)

        if cursor.consume(b'Z'):
            params.append(VARARGS)
        elif cursor.at_end():
            # standalone template manglings may end here
            pass
        else:
            cursor.expect(b'@')
        return tuple(params)

    def read_func_params(self):
        if self._cursor.consume(b'X'):
            params = (builtin('void'),)
        else:
            params = self.read_params()
        self._cursor.expect(b'Z')
        return params


def parse(raw):
    """ parse a mangled symbol, `raw` is bytes or an ASCII/UTF-8 str """
    if isinstance(raw, str):
        raw = raw.encode('utf-8')
    parser = Parser(bytes(raw))
    try:
        return parser.parse()
    except RecursionError:
        # only reachable with cfgMaxNesting raised past what the stack allows
        raise errors.TooDeep(parser._cursor.remaining) from None
