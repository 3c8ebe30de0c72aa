# encoding:utf-8

"""
Abstract syntax tree produced by the MSVC demangler.

Every node is an immutable namedtuple whose first field, `kind`, tags the
variant. Equality and hashing are structural, which is what the backreference
tables rely on.

Name nodes:
    * `oper`: `node.value` (`str`) holds an entry of the operator table,
      `"ctor"` and `"dtor"` stand for constructors and destructors
    * `name`: `node.value` (`bytes`) holds a plain identifier
    * `template`: `TemplateNode`, `node.name` is a name node and `node.params`
      a tuple of type nodes
    * `discriminator`: `node.value` (`int`) numbers an anonymous or local entity
    * `parsed_name`: `node.value` holds a nested `ParseResult`
    * `anon_ns`: the anonymous namespace, `node.value` is `None`

Type nodes:
    * `builtin`: `QualNode`, `node.value` (`str`) is the C++ keyword
    * `pointer`, `lvalue`, `rvalue`: `QualNode`, `node.value` is the pointee
    * `struct`, `union`, `class`, `enum`: `QualNode`, `node.value` is a `Symbol`
    * `vftable`, `vbtable`: `QualNode`, `node.value` is a scope tuple
    * `array`: `ArrayNode`, `node.dimension` (`int`) and `node.ty`
    * `func`, `member_func`: `FuncNode`
    * `member_func_ptr`: `MemberPtrNode`
    * `tpl_param`, `tss_guard`, `constant`: `node.value` (`int`)
    * `varargs`, `empty_pack`, `nullptr`: sentinels, `node.value` is `None`

The `qual` field of a `QualNode` or `ArrayNode` is a `StorageClass` and
applies to that node only.

A symbol with no type encoding carries `None` as its type.
"""

import enum
from collections import namedtuple


class StorageClass(enum.IntFlag):
    CONST = 0x01
    VOLATILE = 0x02
    FAR = 0x04
    HUGE = 0x08
    UNALIGNED = 0x10
    RESTRICT = 0x20


class FuncClass(enum.IntFlag):
    PUBLIC = 0x01
    PROTECTED = 0x02
    PRIVATE = 0x04
    GLOBAL = 0x08
    STATIC = 0x10
    VIRTUAL = 0x20
    FAR = 0x40
    THUNK = 0x80


class CallingConv(enum.Enum):
    Cdecl = 'cdecl'
    Pascal = 'pascal'
    Thiscall = 'thiscall'
    Stdcall = 'stdcall'
    Fastcall = 'fastcall'
    Regcall = 'regcall'


NO_STORAGE = StorageClass(0)


class Node(namedtuple('Node', 'kind value')):
    def __repr__(self):
        return "<Node {} {}>".format(self.kind, repr(self.value))


class QualNode(namedtuple('QualNode', 'kind value qual')):
    def __repr__(self):
        return "<QualNode {} {} {}>".format(self.kind, repr(self.qual), repr(self.value))


class TemplateNode(namedtuple('TemplateNode', 'kind name params')):
    def __repr__(self):
        return "<TemplateNode {} {}>".format(repr(self.name), repr(self.params))


class ArrayNode(namedtuple('ArrayNode', 'kind dimension ty qual')):
    def __repr__(self):
        return "<ArrayNode {} {} {}>".format(self.dimension, repr(self.qual), repr(self.ty))


class FuncNode(namedtuple('FuncNode', 'kind func_class calling_conv params this_qual ret_ty')):
    def __repr__(self):
        return "<FuncNode {} {} {} {} {} {}>".format(self.kind, repr(self.func_class),
                                                     self.calling_conv.name, repr(self.params),
                                                     repr(self.this_qual), repr(self.ret_ty))


class MemberPtrNode(namedtuple('MemberPtrNode', 'kind name params this_qual ret_ty')):
    def __repr__(self):
        return "<MemberPtrNode {} {} {} {}>".format(repr(self.name), repr(self.params),
                                                    repr(self.this_qual), repr(self.ret_ty))


class Symbol(namedtuple('Symbol', 'name scope')):
    """ `scope` is a tuple of name nodes, innermost first. """

    def __repr__(self):
        return "<Symbol {} {}>".format(repr(self.name), repr(self.scope))


class ParseResult(namedtuple('ParseResult', 'symbol type')):
    def __repr__(self):
        return "<ParseResult {} {}>".format(repr(self.symbol), repr(self.type))


ANONYMOUS_NAMESPACE = Node('anon_ns', None)
VARARGS = Node('varargs', None)
EMPTY_PACK = Node('empty_pack', None)
NULLPTR = Node('nullptr', None)


def builtin(keyword, qual=NO_STORAGE):
    return QualNode('builtin', keyword, qual)


def is_function(ty):
    return ty is not None and ty.kind in ('func', 'member_func')


def is_ctor_or_dtor(result):
    name = result.symbol.name
    return name.kind == 'oper' and name.value in ('ctor', 'dtor')
