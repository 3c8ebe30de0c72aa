import unittest

from msvc_demangler import errors, try_demangle
from msvc_demangler.config import Config
from msvc_demangler.fmt.ast import (
    StorageClass, FuncClass, CallingConv, NO_STORAGE,
    Node, QualNode, TemplateNode, ArrayNode, FuncNode, Symbol, ParseResult,
    VARARGS, builtin, is_function, is_ctor_or_dtor,
)
from msvc_demangler.fmt.parser import Parser, parse, _Cursor


class TestCursor(unittest.TestCase):
    def test_peek_and_get(self):
        cursor = _Cursor(b'ab')
        self.assertEqual(cursor.peek(), b'a')
        self.assertEqual(cursor.get(), b'a')
        self.assertEqual(cursor.get(), b'b')
        self.assertIsNone(cursor.peek())
        self.assertTrue(cursor.at_end())

    def test_get_at_end(self):
        with self.assertRaises(errors.UnexpectedEnd):
            _Cursor(b'').get()

    def test_consume_and_expect(self):
        cursor = _Cursor(b'$$Qrest')
        self.assertFalse(cursor.consume(b'$Q'))
        self.assertTrue(cursor.consume(b'$$Q'))
        self.assertEqual(cursor.remaining, b'rest')
        with self.assertRaises(errors.ExpectedLiteral) as cm:
            cursor.expect(b'@')
        self.assertEqual(cm.exception.literal, b'@')
        self.assertEqual(cm.exception.remaining, b'rest')

    def test_digits(self):
        cursor = _Cursor(b'7x')
        self.assertEqual(cursor.consume_digit(), 7)
        self.assertIsNone(cursor.consume_digit())
        self.assertFalse(_Cursor(b'g').consume_hex_digit())
        self.assertTrue(_Cursor(b'f').consume_hex_digit())

    def test_read_number(self):
        self.assertEqual(_Cursor(b'0').read_number(), 1)
        self.assertEqual(_Cursor(b'9').read_number(), 10)
        self.assertEqual(_Cursor(b'?4').read_number(), -5)
        self.assertEqual(_Cursor(b'A@').read_number(), 0)
        self.assertEqual(_Cursor(b'BA@').read_number(), 16)
        self.assertEqual(_Cursor(b'NKM@').read_number(), 3500)
        self.assertEqual(_Cursor(b'?BA@').read_number(), -16)

    def test_bad_number(self):
        with self.assertRaises(errors.BadNumber):
            _Cursor(b'BA').read_number()
        with self.assertRaises(errors.BadNumber):
            _Cursor(b'BZ@').read_number()
        with self.assertRaises(errors.BadNumber):
            _Cursor(b'').read_number()

    def test_read_string(self):
        cursor = _Cursor(b'klass@@')
        self.assertEqual(cursor.read_string(), b'klass')
        self.assertEqual(cursor.remaining, b'@')
        with self.assertRaises(errors.MissingTerminator):
            _Cursor(b'klass').read_string()


class TestParser(unittest.TestCase):
    def assertParses(self, mangled, result):
        self.assertEqual(parse(mangled), result)

    def assertParseError(self, mangled, error):
        with self.assertRaises(error) as cm:
            parse(mangled)
        self.assertIsInstance(cm.exception, errors.ParseError)
        return cm.exception

    def test_variable(self):
        self.assertParses('?x@@3HA',
                          ParseResult(Symbol(Node('name', b'x'), ()), builtin('int')))

    def test_pointer_qualifiers(self):
        result = parse('?x@@3QEBHEB')
        self.assertEqual(result.type,
                         QualNode('pointer', builtin('int', StorageClass.CONST), StorageClass.CONST))

    def test_scope_order(self):
        result = parse('?x@inner@outer@@3HA')
        self.assertEqual(result.symbol.scope, (Node('name', b'inner'), Node('name', b'outer')))

    def test_function(self):
        result = parse('?x@@YAXMH@Z')
        self.assertEqual(result.type,
                         FuncNode('func', FuncClass(0), CallingConv.Cdecl,
                                  (builtin('float'), builtin('int')), NO_STORAGE, builtin('void')))
        self.assertTrue(is_function(result.type))
        self.assertFalse(is_ctor_or_dtor(result))

    def test_varargs(self):
        self.assertEqual(parse('?f@@YAXHZZ').type.params, (builtin('int'), VARARGS))

    def test_member_function(self):
        result = parse('??0klass@@QEAA@XZ')
        self.assertEqual(result.type.kind, 'member_func')
        self.assertEqual(result.type.func_class, FuncClass.PUBLIC)
        self.assertIsNone(result.type.ret_ty)
        self.assertTrue(is_ctor_or_dtor(result))

    def test_thunk_adjustment_dropped(self):
        result = parse('?Release@ContentSignatureVerifier@@WBA@AGKXZ')
        self.assertEqual(result.type.func_class,
                         FuncClass.PUBLIC | FuncClass.VIRTUAL | FuncClass.THUNK)
        self.assertEqual(result.type.calling_conv, CallingConv.Stdcall)

    def test_multidimensional_array(self):
        result = parse('?x@@3PEAY124$$CBHEA')
        array = result.type.value
        self.assertEqual(array, ArrayNode('array', 3,
                                          ArrayNode('array', 5,
                                                    builtin('int', StorageClass.CONST),
                                                    NO_STORAGE),
                                          NO_STORAGE))

    def test_template_name(self):
        result = parse('?$foo@H')
        self.assertIsNone(result.type)
        self.assertEqual(result.symbol.name,
                         TemplateNode('template', Node('name', b'foo'), (builtin('int'),)))

    def test_anonymous_namespace(self):
        result = parse('??_7W@?A0x1234abcd@@6B@')
        self.assertEqual(result.symbol.scope[1].kind, 'anon_ns')
        self.assertEqual(result.type, QualNode('vftable', (), StorageClass.CONST))

    def test_nested_parsed_name(self):
        result = parse('?cached@?1??GetLong@BinaryPath@mozilla@@SA?AW4nsresult@@QA_W@Z@4_NA')
        discriminator, nested = result.symbol.scope
        self.assertEqual(discriminator, Node('discriminator', 2))
        self.assertEqual(nested.kind, 'parsed_name')
        self.assertEqual(nested.value.symbol.name, Node('name', b'GetLong'))
        self.assertEqual(result.type, builtin('bool'))

    def test_deterministic(self):
        mangled = '??$new_@VWatchpointMap@js@@$$V@?$MallocProvider@UZone@JS@@@js@@QAEPAVWatchpointMap@1@XZ'
        self.assertEqual(parse(mangled), parse(mangled))
        self.assertEqual(hash(parse(mangled)), hash(parse(mangled)))

    def test_bytes_and_str(self):
        self.assertEqual(parse(b'?x@@3HA'), parse('?x@@3HA'))


class TestBackreferences(unittest.TestCase):
    def test_bounded_and_distinct(self):
        classes = ''.join('V%s@@' % c for c in 'abcdefghijkl')
        parser = Parser(('?f@@YAX%sVa@@@Z' % classes).encode())
        parser.parse()
        self.assertEqual(len(parser.memorized_names), 10)
        self.assertEqual(len(set(parser.memorized_names)), 10)
        self.assertEqual(len(parser.memorized_types), 10)
        self.assertEqual(len(set(parser.memorized_types)), 10)

    def test_single_letter_types_not_memorized(self):
        parser = Parser(b'?f@@YAXHMPAH@Z')
        parser.parse()
        self.assertEqual(parser.memorized_types,
                         [QualNode('pointer', builtin('int'), NO_STORAGE)])

    def test_template_scope_is_isolated(self):
        parser = Parser(b'?f@@YAXVa@@V?$t@V0@@@V1@@Z')
        result = parser.parse()
        a, t, a_again = result.type.params
        self.assertEqual(a, a_again)
        # inside the template '0' is the template's own name, not 'f'
        self.assertEqual(t.value.name.params[0].value.name, Node('name', b't'))
        # the template does not leak its names into the outer table
        self.assertEqual(parser.memorized_names,
                         [Node('name', b'f'), Node('name', b'a'), t.value.name])

    def test_template_scope_restored_after_error(self):
        parser = Parser(b'?f@@YAXV?$t@5@Z')
        with self.assertRaises(errors.BackrefOutOfRange):
            parser.parse()
        self.assertEqual(parser.memorized_names, [Node('name', b'f')])


class TestParseErrors(unittest.TestCase):
    def assertParseError(self, mangled, error):
        with self.assertRaises(error) as cm:
            parse(mangled)
        self.assertIsInstance(cm.exception, errors.ParseError)
        self.assertIsInstance(cm.exception, errors.DemangleException)
        return cm.exception

    def test_not_mangled(self):
        e = self.assertParseError('x@@3HA', errors.NotMangled)
        self.assertEqual(e.remaining, b'x@@3HA')
        self.assertParseError('', errors.NotMangled)

    def test_unexpected_end(self):
        self.assertParseError('?x@@3', errors.UnexpectedEnd)
        self.assertParseError('?x@@3_', errors.UnexpectedEnd)

    def test_missing_terminator(self):
        self.assertParseError('?', errors.MissingTerminator)
        self.assertParseError('?x', errors.MissingTerminator)

    def test_expected_literal(self):
        self.assertParseError('?x@@YAXH', errors.ExpectedLiteral)
        self.assertParseError('?$TSS0@?1??f@@YAXXZ@4H', errors.ExpectedLiteral)

    def test_bad_number(self):
        self.assertParseError('?x@@3PEAYZ@HEA', errors.BadNumber)
        self.assertParseError('?$TSS@', errors.BadNumber)

    def test_backref_out_of_range(self):
        e = self.assertParseError('?x@@YAX5@Z', errors.BackrefOutOfRange)
        self.assertEqual(e.index, 5)
        self.assertParseError('?x@5@3HA', errors.BackrefOutOfRange)
        self.assertParseError('?x@@3PEAV3@EA', errors.BackrefOutOfRange)

    def test_unknown_operator(self):
        self.assertParseError('??_Cfoo@@QAEXXZ', errors.UnknownOperator)
        self.assertParseError('??__Xfoo@@QAEXXZ', errors.UnknownOperator)
        self.assertParseError('??ofoo@@QAEXXZ', errors.UnknownOperator)
        self.assertParseError('??__Mfoo@@QAEXXZ', errors.UnknownOperator)

    def test_unknown_calling_conv(self):
        self.assertParseError('?x@@YZXXZ', errors.UnknownCallingConv)

    def test_unknown_storage_class(self):
        self.assertParseError('?x@@YA?ZHXZ', errors.UnknownStorageClass)
        self.assertParseError('?x@@3PEAY02$$CZHEA', errors.UnknownStorageClass)

    def test_unknown_primitive(self):
        self.assertParseError('?x@@3LA', errors.UnknownPrimitive)
        self.assertParseError('?x@@3_ZA', errors.UnknownPrimitive)

    def test_unknown_func_class(self):
        self.assertParseError('?x@@aAEXXZ', errors.UnknownFuncClass)

    def test_invalid_dimension(self):
        e = self.assertParseError('?x@@3PEAYA@HEA', errors.InvalidDimension)
        self.assertEqual(e.dimension, 0)
        self.assertParseError('?x@@3PEAY?0HEA', errors.InvalidDimension)

    def test_structor_without_class(self):
        self.assertParseError('??0@QAE@XZ', errors.MissingScope)
        self.assertParseError('??1@QAE@XZ', errors.MissingScope)

    def test_too_deep(self):
        deep = '?x@@3' + 'V?$a@' * 300 + 'H' + '@@' * 300 + 'A'
        e = self.assertParseError(deep, errors.TooDeep)
        self.assertTrue(e.remaining)
        self.assertIsNone(try_demangle(deep))
        # each array dimension counts as one level
        self.assertParseError('?x@@3PEAYMI@', errors.TooDeep)

    def test_nesting_limit(self):
        saved = Config.cfgMaxNesting
        try:
            Config.cfgMaxNesting = 3
            self.assertParseError('?x@@3PEAPEAPEAHEA', errors.TooDeep)
            Config.cfgMaxNesting = 4
            parse('?x@@3PEAPEAPEAHEA')
        finally:
            Config.cfgMaxNesting = saved

    def test_message_quotes_input(self):
        e = self.assertParseError('?x@@3LA', errors.UnknownPrimitive)
        self.assertIn('LA', str(e))


if __name__ == '__main__':
    unittest.main()
