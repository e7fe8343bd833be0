"""
Threaded-Code Dictionary Compiler Package

Compiles a textual Forth-style dictionary definition into tables of
16-bit threaded code for a stack-machine interpreter.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .tokens import Token, TokenType, WordFlags
from .lexer import Lexer
from .bytecode import CodeBuffer, pack_string, unpack_string
from .dictionary import DictionaryEntry, NativeWordCatalog, VariableTable
from .tables import Bootstrap, BootstrapNames, DictionaryTable, DictionaryTableBuilder
from .codegen import CompilerState, ResolutionOrder, WordCompiler
from .sections import SourceSections, read_sections
from .errors import DictError, CompileError, SectionError, StringTooLongError

__version__ = "0.1.0"
__all__ = [
    "Token",
    "TokenType",
    "WordFlags",
    "Lexer",
    "CodeBuffer",
    "pack_string",
    "unpack_string",
    "DictionaryEntry",
    "NativeWordCatalog",
    "VariableTable",
    "Bootstrap",
    "BootstrapNames",
    "DictionaryTable",
    "DictionaryTableBuilder",
    "CompilerState",
    "ResolutionOrder",
    "WordCompiler",
    "SourceSections",
    "read_sections",
    "CompileResult",
    "compile_sections",
    "compile_source",
    "compile_file",
    "DictError",
    "CompileError",
    "SectionError",
    "StringTooLongError",
]


@dataclass
class CompileResult:
    """Output of a whole compilation run."""

    sections: SourceSections
    table: DictionaryTable
    diagnostics: List[CompileError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics


def compile_sections(sections: SourceSections,
                     order: ResolutionOrder = ResolutionOrder.SHADOWING,
                     names: BootstrapNames = BootstrapNames(),
                     filename: Optional[str] = None) -> CompileResult:
    """
    Compile already split source sections.

    Every native word is registered before the first definition is
    compiled, so the bootstrap indices are known to the compiler.
    """
    catalog = NativeWordCatalog()
    for native in sections.natives:
        catalog.register(native.name, native.constant, native.doc, native.body)
    variables = VariableTable(sections.variables)

    builder = DictionaryTableBuilder(catalog, names)
    state = CompilerState(catalog, variables, builder.bootstrap(), order,
                          names, filename=filename)
    compiler = WordCompiler(state)
    for definition in sections.definitions:
        compiler.compile(definition.text, definition.line)
    diagnostics = state.finish()

    table = builder.build(state.compiled, variables, state.bootstrap)
    return CompileResult(sections, table, diagnostics)


def compile_source(source: str, filename: Optional[str] = None,
                   order: ResolutionOrder = ResolutionOrder.SHADOWING) -> CompileResult:
    """
    Compile dictionary source text.

    Args:
        source: Complete dictionary source
        filename: Optional filename for error messages
        order: Name resolution order

    Returns:
        CompileResult with the tables and any recoverable diagnostics

    Raises:
        SectionError: If the source does not have the expected sections
        CompileError: On errors that abort the run
    """
    sections = read_sections(source, filename)
    return compile_sections(sections, order, filename=filename)


def compile_file(filepath: str,
                 order: ResolutionOrder = ResolutionOrder.SHADOWING) -> CompileResult:
    """
    Compile a dictionary source file.

    Args:
        filepath: Path to the source file

    Returns:
        CompileResult with the tables and any recoverable diagnostics
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        source = f.read()
    return compile_source(source, filepath, order)
