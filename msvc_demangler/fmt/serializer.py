# encoding:utf-8

"""
Converts a demangler AST to a string.

Converting an AST representing a C++ type to a string is tricky due to the
grammar of C declarations: the string has to be built from the inside out.
If X is a pointer to a function returning int:

    (1) X is a pointer: *X
    (2) (1) is a function returning int: int (*X)()

so the result cannot be produced by appending strings left to right.

The printer is therefore split in two. `write_pre` writes the first half of a
declaration (return type, qualifiers, opening parenthesis, '*'), `write_post`
writes the second half (parameter lists, array bounds, closing parenthesis),
and the declared name goes in between.
"""

import enum

from msvc_demangler import errors
from msvc_demangler.fmt.ast import StorageClass, FuncClass, CallingConv, EMPTY_PACK


class WhitespaceMode(enum.Enum):
    LessWhitespace = 'less'
    LotsOfWhitespace = 'lots'


_calling_convs = {
    CallingConv.Cdecl: '__cdecl ',
    CallingConv.Pascal: '',
    CallingConv.Thiscall: '__thiscall ',
    CallingConv.Stdcall: '__stdcall ',
    CallingConv.Fastcall: '__fastcall ',
    CallingConv.Regcall: '__regcall ',
}

_access = (
    (FuncClass.PRIVATE, 'private: '),
    (FuncClass.PROTECTED, 'protected: '),
    (FuncClass.PUBLIC, 'public: '),
    (FuncClass.STATIC, 'static '),
    (FuncClass.VIRTUAL, 'virtual '),
)

_indirections = {
    'pointer': '*',
    'lvalue': '&',
    'rvalue': '&&',
}


def _needs_parens(ty):
    """ '[]' and '()' bind tighter than '*' """
    return ty is not None and ty.kind in ('func', 'member_func', 'array')


class Serializer:
    def __init__(self, mode=WhitespaceMode.LessWhitespace):
        self._mode = mode
        self._out = []
        self._last = ''
        self._vbtable_open = False

    @property
    def lots(self):
        return self._mode is WhitespaceMode.LotsOfWhitespace

    def serialize(self, result):
        self.write_pre(result.type)
        self.write_name(result.symbol, result.type)
        self.write_post(result.type)
        return ''.join(self._out)

    def _write(self, sz):
        if sz:
            self._out.append(sz)
            self._last = sz[-1]

    def write_space_pre(self):
        """ space before a declared name, '*' does not ask for one """
        c = self._last
        if c.isascii() and c.isalpha():
            self._write(' ')
        elif self.lots and c and c in '&>':
            self._write(' ')

    def write_space(self):
        c = self._last
        if c.isascii() and c.isalpha():
            self._write(' ')
        elif self.lots and c and c in '*&>':
            self._write(' ')

    def write_calling_conv(self, calling_conv):
        if self._last != ' ':
            self._write(' ')
        self._write(_calling_convs[calling_conv])

    def write_pre(self, t):
        """ write the first half of a given type """
        if t is None:
            return

        kind = t.kind
        if kind == 'member_func':
            if t.func_class & FuncClass.THUNK:
                self._write('[thunk]:')
            for flag, sz in _access:
                if t.func_class & flag:
                    self._write(sz)
            self.write_pre(t.ret_ty)
            self.write_calling_conv(t.calling_conv)
            return
        elif kind == 'member_func_ptr':
            self.write_pre(t.ret_ty)
            if self.lots:
                self.write_space()
            self._write('(')
            if self.lots:
                self.write_space()
            self.write_one_name(t.name)
            self._write('::*)')
            return
        elif kind == 'func':
            self.write_pre(t.ret_ty)
            self.write_calling_conv(t.calling_conv)
            return
        elif kind in ('vftable', 'vbtable'):
            storage_class = t.qual
        elif kind == 'tpl_param':
            self._write("`template-parameter{}'".format(t.value))
            return
        elif kind == 'tss_guard':
            self._write('TSS{}'.format(t.value))
            return
        elif kind == 'constant':
            self._write(str(t.value))
            return
        elif kind == 'varargs':
            self._write('...')
            return
        elif kind in _indirections:
            self.write_pre(t.value)
            if _needs_parens(t.value):
                if self.lots:
                    self.write_space()
                self._write('(')
            if self.lots:
                self.write_space()
            self._write(_indirections[kind])
            storage_class = t.qual
        elif kind == 'array':
            self.write_pre(t.ty)
            storage_class = t.qual
        elif kind in ('struct', 'union', 'class', 'enum'):
            self.write_class(t.value, kind)
            storage_class = t.qual
        elif kind == 'builtin':
            self._write(t.value)
            storage_class = t.qual
        elif kind == 'nullptr':
            self._write('std::nullptr_t')
            return
        elif kind == 'empty_pack':
            return
        else:
            raise errors.SerializeError('not a type node: %r' % (t,))

        if storage_class & StorageClass.CONST:
            self.write_space()
            self._write('const')
        if storage_class & StorageClass.VOLATILE:
            self.write_space()
            self._write('volatile')

    def write_post(self, t):
        """ write the second half of a given type """
        if t is None:
            return

        kind = t.kind
        if kind in ('member_func', 'func', 'member_func_ptr'):
            self._write('(')
            self.write_types(t.params)
            self._write(')')
            self.write_post(t.ret_ty)
            if t.this_qual & StorageClass.CONST:
                self._write('const')
                if self.lots:
                    self.write_space()
        elif kind == 'vbtable':
            # the rest of the "operator", only when write_name opened it
            if self._vbtable_open:
                self.write_scope(t.value)
                self._write("'}")
                self._vbtable_open = False
        elif kind in _indirections:
            if _needs_parens(t.value):
                self._write(')')
            self.write_post(t.value)
        elif kind == 'array':
            self._write('[{}]'.format(t.dimension))
            self.write_post(t.ty)

    def write_types(self, types):
        """ write a function or template parameter list """
        for i, param in enumerate(types):
            if i:
                self._write(',')
            self.write_pre(param)
            self.write_post(param)

    def write_class(self, symbol, keyword):
        self._write(keyword)
        self._write(' ')
        self.write_name(symbol)

    def _identifier(self, raw):
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise errors.SerializeError('bad identifier %r: %s' % (raw, e)) from e

    def write_one_name(self, name):
        kind = name.kind
        if kind == 'oper':
            if self.lots:
                self.write_space()
            self._write(name.value)
        elif kind == 'name':
            self._write(self._identifier(name.value))
        elif kind == 'template':
            self.write_one_name(name.name)
            self.write_tmpl_params(name.params)
        elif kind == 'discriminator':
            self._write("`{}'".format(name.value))
        elif kind == 'parsed_name':
            self._write("`{}'".format(serialize(name.value, self._mode)))
        elif kind == 'anon_ns':
            self._write('`anonymous namespace`')
        else:
            raise errors.SerializeError('not a name node: %r' % (name,))

    def write_scope(self, names):
        """ print out namespaces or outer class names, outermost first """
        for i, name in enumerate(reversed(names)):
            if i:
                self._write('::')
            self.write_one_name(name)

    def write_name(self, symbol, ty=None):
        """ write a name read by Parser.read_name() """
        self.write_space_pre()
        self.write_scope(symbol.scope)
        if symbol.scope:
            self._write('::')

        name = symbol.name
        if name.kind == 'oper':
            if name.value in ('ctor', 'dtor'):
                if not symbol.scope:
                    raise errors.SerializeError('%s without a class: %r' % (name.value, symbol))
                if name.value == 'dtor':
                    self._write('~')
                # constructors are spelled like the class
                self.write_one_name(symbol.scope[0])
            elif name.value == "`vbtable'" and ty is not None and ty.kind == 'vbtable':
                # closed by write_post of the vbtable type
                self._write("`vbtable'{for `")
                self._vbtable_open = True
            else:
                if self.lots:
                    self.write_space()
                self._write(name.value)
        elif name.kind == 'parsed_name':
            self._write(serialize(name.value, self._mode))
        elif name.kind == 'anon_ns':
            raise errors.SerializeError('anonymous namespace is not a declared name')
        else:
            self.write_one_name(name)

    def write_tmpl_params(self, params):
        # an explicit empty pack is not an argument.
        if params and params[-1] == EMPTY_PACK:
            params = params[:-1]

        self._write('<')
        if params:
            self.write_types(params)
            # no '>>' token
            if self._last == '>':
                self._write(' ')
        self._write('>')


def serialize(result, mode=WhitespaceMode.LessWhitespace):
    try:
        return Serializer(mode).serialize(result)
    except RecursionError:
        raise errors.SerializeError('nesting too deep to print') from None
