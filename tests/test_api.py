"""
Unit tests for the dictc Python API.

Tests for the compile context, builds, source emission and the command
line interface.
"""

import os
import tempfile
import unittest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dictapi import Build, Context, compile_dictionary, emit_java
from dictapi.cli import main
from dictapi.emitter import constant_name, escape
from dictc.codegen import ResolutionOrder
from dictc.errors import SectionError, UnresolvedWordOrLiteralError


SOURCE = """\
class Stos {
/*CONSTS*/
\tprivate short[] stack;
/*CODE*/
\tvoid boot() { docol(WORD_TWO); }
}
========
here
base
state
========
int
\tpush(next());
false
\tpush(0);
'1 one
\tpush(1);
vars
\tpush(varBase);
litstring litstring_compile Pushes a literal string\\nfollowing the word
\tdoLitString();
dup
\tpush(peek());
========
: ' ( -- n ) dup ;
: two ( 'TWO ) dup dup ;
: hi ." hi" $state ;
"""


class TestContextBasic(unittest.TestCase):
    """Test basic Context functionality."""

    def test_create_context_default(self):
        """Test creating context with default options."""
        ctx = Context()
        self.assertEqual(ctx.order, ResolutionOrder.SHADOWING)
        self.assertFalse(ctx.strict)
        self.assertFalse(ctx.debug)

    def test_order_by_name(self):
        """Test selecting the resolution order by its option name."""
        ctx = Context(order="first-match")
        self.assertEqual(ctx.order, ResolutionOrder.FIRST_MATCH)

    def test_compile_source(self):
        """Test compiling a complete source."""
        build = Context().compile(SOURCE)
        self.assertIsInstance(build, Build)
        self.assertEqual(build.diagnostics, [])
        self.assertEqual(build.table.native_count, 6)
        self.assertEqual(build.table.names[6:], ["'", "two", "hi"])
        self.assertEqual(build.table.codes[8], [0, 4, 0x0268, 0x6900, 3, 6, 2])

    def test_compile_dictionary(self):
        """Test the module-level helper."""
        build = compile_dictionary(SOURCE)
        self.assertEqual(build.table.compiled_count, 3)

    def test_diagnostics_recorded(self):
        """Test that recoverable errors do not stop the run."""
        build = Context().compile(SOURCE + ": bad nope ;\n")
        self.assertEqual(len(build.diagnostics), 1)
        self.assertIsInstance(build.diagnostics[0], UnresolvedWordOrLiteralError)
        self.assertEqual(build.table.codes[-1], [0, 0])

    def test_strict_raises(self):
        """Test that strict mode raises the first diagnostic."""
        with self.assertRaises(UnresolvedWordOrLiteralError):
            Context(strict=True).compile(SOURCE + ": bad nope ;\n")

    def test_bad_layout(self):
        """Test that a source without sections is rejected."""
        with self.assertRaises(SectionError):
            Context().compile(": a ;\n")


class TestBuildFiles(unittest.TestCase):
    """Test reading and writing files."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.source_path = os.path.join(self.tmpdir.name, "internals.txt")
        with open(self.source_path, 'w', encoding='utf-8') as f:
            f.write(SOURCE)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_compile_file(self):
        """Test compiling from a file path."""
        build = Context().compile_file(self.source_path)
        self.assertEqual(build.filename, self.source_path)
        self.assertEqual(build.table.compiled_count, 3)

    def test_save_and_load(self):
        """Test the binary table format through a file."""
        build = Context().compile_file(self.source_path)
        path = os.path.join(self.tmpdir.name, "internals.dct")
        build.save(path)
        table = Build.load(path)
        self.assertEqual(table.names, build.table.names)
        self.assertEqual(table.codes, build.table.codes)
        self.assertEqual(table.variables, ["here", "base", "state"])

    def test_write(self):
        """Test writing the generated source."""
        ctx = Context()
        build = ctx.compile_file(self.source_path)
        path = os.path.join(self.tmpdir.name, "Stos.java")
        ctx.write(build, path)
        with open(path, encoding='utf-8') as f:
            self.assertEqual(f.read(), build.to_java())


class TestEmitter(unittest.TestCase):
    """Test generated interpreter source."""

    @classmethod
    def setUpClass(cls):
        cls.build = Context().compile(SOURCE)
        cls.java = cls.build.to_java()

    def test_escape(self):
        self.assertEqual(escape('a"b\\'), 'a\\"b\\\\')
        self.assertEqual(constant_name("dup"), "WORD_DUP")

    def test_templates_in_order(self):
        java = self.java
        self.assertTrue(java.startswith("class Stos {\n"))
        self.assertLess(java.index("INTERNAL_SIZE"), java.index("private short[] stack;"))
        self.assertLess(java.index("private short[] stack;"), java.index("private void dup()"))
        self.assertTrue(java.endswith("}\n"))

    def test_constants(self):
        self.assertIn("private static final int INTERNAL_SIZE = 6;", self.java)
        self.assertIn("private static final short WORD_DUP = (short)5;", self.java)
        self.assertIn("private static final short WORD_ONE = (short)2;", self.java)

    def test_compiled_constants_only_when_referenced(self):
        self.assertIn("private static final short WORD_TWO = (short)7;", self.java)
        self.assertNotIn("WORD_HI", self.java)

    def test_redefined_native_constant_declared_once(self):
        source = SOURCE.replace("docol(WORD_TWO)", "docol(WORD_DUP)") + ": dup int 1 ;\n"
        java = Context().compile(source).to_java()
        self.assertEqual(java.count("private static final short WORD_DUP ="), 1)
        self.assertIn("private static final short WORD_DUP = (short)5;", java)

    def test_names(self):
        self.assertIn('"\'" /*6*/', self.java)
        self.assertIn('"two" /*7*/', self.java)

    def test_code(self):
        self.assertIn("{/*6 ' ( -- n )*/0, 5},", self.java)
        self.assertIn("{/*7 two*/0, 5, 5},", self.java)

    def test_variables(self):
        self.assertIn("private static final int state = 2;", self.java)
        self.assertIn("private static final int INITIAL_VAR_TOP = 3;", self.java)

    def test_natives(self):
        self.assertIn("\t/**\n\t * Pushes a literal string\n\t * following the word\n\t */\n"
                      "\tprivate void litstring_compile() {\n\t\tdoLitString();\n\t}\n",
                      self.java)

    def test_dispatch(self):
        self.assertIn("private void dostep(short w) {", self.java)
        self.assertIn("case WORD_DUP:", self.java)
        self.assertIn("docol(w);", self.java)

    def test_signed_units(self):
        build = Context().compile(SOURCE.replace(": hi", ": neg -1 ;\n: hi"))
        java = emit_java(build.result.sections, build.table)
        self.assertIn("{/*8 neg*/0, -1},", java)


class TestCommandLine(unittest.TestCase):
    """Test the dictc command."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.source_path = os.path.join(self.tmpdir.name, "internals.txt")
        with open(self.source_path, 'w', encoding='utf-8') as f:
            f.write(SOURCE)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_outputs(self):
        java = os.path.join(self.tmpdir.name, "Stos.java")
        binary = os.path.join(self.tmpdir.name, "internals.dct")
        status = main(["-o", java, "--binary", binary, self.source_path])
        self.assertEqual(status, 0)
        self.assertTrue(os.path.exists(java))
        self.assertEqual(Build.load(binary).compiled_count, 3)

    def test_missing_file(self):
        status = main([os.path.join(self.tmpdir.name, "missing.txt")])
        self.assertEqual(status, 1)

    def test_strict_status(self):
        with open(self.source_path, 'a', encoding='utf-8') as f:
            f.write(": bad nope ;\n")
        self.assertEqual(main([self.source_path]), 0)
        self.assertEqual(main(["--strict", self.source_path]), 2)


if __name__ == "__main__":
    unittest.main()
