"""
Dictionary Source Emitter

Renders compiled dictionary tables into the interpreter's Java source,
wrapping them in the template text of the dictionary source file.
"""

import re
from typing import List

from dictc.bytecode import as_signed
from dictc.sections import SourceSections
from dictc.tables import DictionaryTable


CONSTANT_PREFIX = "WORD_"
UNITS_PER_LINE = 16

IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def escape(s: str) -> str:
    """Escape a name for a Java string literal."""
    return s.replace('\\', '\\\\').replace('"', '\\"')


def constant_name(constant: str) -> str:
    return CONSTANT_PREFIX + constant.upper()


class JavaEmitter:
    """
    Generates the interpreter source from templates and tables.

    Output order: prefix template, constants, name table, code table,
    variable slots, infix template, native methods, dispatch switch,
    postfix template.
    """

    def __init__(self, sections: SourceSections, table: DictionaryTable):
        self.sections = sections
        self.table = table
        self.lines: List[str] = []

    def render(self) -> str:
        """Render the complete source file."""
        self.lines = []
        out = self.lines.append

        out(self.sections.prefix)
        self.emit_constants()
        self.emit_names()
        self.emit_code()
        self.emit_variables()
        out(self.sections.infix)
        self.emit_natives()
        self.emit_dispatch()
        out(self.sections.postfix)
        return ''.join(self.lines)

    # =========================================================================
    # Tables
    # =========================================================================

    def referenced(self, name: str) -> bool:
        """Check if a generated constant is used by any template or native."""
        for text in self.sections.templates():
            if name in text:
                return True
        return any(name in native.body for native in self.sections.natives)

    def emit_constants(self) -> None:
        table = self.table
        out = self.lines.append

        out(f"\tprivate static final int INTERNAL_SIZE = {table.native_count};\n\n")
        declared = set()
        for i in range(table.native_count):
            name = constant_name(table.constants[i])
            declared.add(name)
            out(f"\tprivate static final short {name} = (short){i};\n")

        # Compiled words only get a constant when something refers to it;
        # a redefined native keeps the native's constant
        for i in range(table.native_count, len(table.names)):
            constant = table.constants[i]
            if constant is None or not IDENTIFIER.match(constant):
                continue
            name = constant_name(constant)
            if name not in declared and self.referenced(name):
                declared.add(name)
                out(f"\tprivate static final short {name} = (short){i};\n")

    def emit_names(self) -> None:
        out = self.lines.append
        out("\n\tprivate static final String[] INTERNAL_NAMES = {\n")
        for i, name in enumerate(self.table.names):
            out(f"\t\t\"{escape(name)}\" /*{i}*/,\n")
        out("\t};\n\n")

    def emit_code(self) -> None:
        table = self.table
        out = self.lines.append
        out("\tprivate static final short[][] INTERNAL_WORDS = {\n")
        for i in range(table.native_count, len(table.names)):
            code = table.codes[i]
            comment = f"{i} {table.names[i]}"
            if table.docs[i]:
                comment += f" ( {table.docs[i]} )"
            out(f"\t\t{{/*{comment.replace('*/', '* /')}*/")
            out(self.format_units(code))
            out("},\n")
        out("\t};\n\n")

    def format_units(self, code: List[int]) -> str:
        """Comma-separate signed units, wrapping long words."""
        parts = []
        for j, unit in enumerate(code):
            if j > 0:
                parts.append(", ")
                if j % UNITS_PER_LINE == 0:
                    parts.append("\n\t\t\t")
            parts.append(str(as_signed(unit)))
        return ''.join(parts)

    def emit_variables(self) -> None:
        out = self.lines.append
        for i, name in enumerate(self.table.variables):
            out(f"\tprivate static final int {name} = {i};\n")
        out(f"\tprivate static final int INITIAL_VAR_TOP = {self.table.variable_count};\n\n")

    # =========================================================================
    # Native words
    # =========================================================================

    def emit_natives(self) -> None:
        out = self.lines.append
        for native, constant in zip(self.sections.natives, self.table.constants):
            if native.doc:
                doc = native.doc.replace('\\n', '\n\t * ')
                out(f"\t/**\n\t * {doc}\n\t */\n")
            out(f"\tprivate void {constant}() {{\n")
            for line in native.body.splitlines():
                out(f"\t{line}\n")
            out("\t}\n\n")

    def emit_dispatch(self) -> None:
        out = self.lines.append
        natives = self.table.constants[:self.table.native_count]
        width = max([len(c) for c in natives], default=0)

        out("\t/**\n\t * dispatches a word to the appropriate handler.\n"
            "\t * @param w  the number of the word.\n\t */\n"
            "\tprivate void dostep(short w) {\n\t\tswitch (w) {\n")
        for constant in natives:
            tabs = '\t' * ((width - len(constant) + 7) >> 2)
            out(f"\t\t\tcase {constant_name(constant)}:{tabs}{constant}();{tabs}break;\n")
        tabs = '\t' * ((width + 7) >> 2)
        out(f"\t\t\tdefault:{tabs}docol(w);\n\t\t}}\n\t}}\n")


def emit_java(sections: SourceSections, table: DictionaryTable) -> str:
    """Render the interpreter source for a compiled dictionary."""
    return JavaEmitter(sections, table).render()
