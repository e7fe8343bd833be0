"""
Dictionary Word Compiler

Compiles word definitions into 16-bit threaded code. One CompilerState
carries the growing dictionary through the whole run; each definition gets
a fresh CompilationContext.
"""

import logging
import re
from enum import Enum
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from .tokens import Token, TokenType, WordFlags
from .lexer import Lexer
from .bytecode import CodeBuffer, INT32_MAX, INT32_MIN, pack_string, split_wide
from .dictionary import DictionaryEntry, NativeWordCatalog, VariableTable
from .tables import Bootstrap, BootstrapNames, DictionaryTableBuilder
from .errors import (
    CompileError,
    MalformedDefinitionHeaderError,
    MissingBootstrapWordError,
    StringTooLongError,
    UnresolvedForwardReferenceError,
    UnresolvedLabelError,
    UnresolvedWordOrLiteralError,
)

logger = logging.getLogger(__name__)

DEFINITION_MARKER = ':'
DEFINITION_TERMINATOR = ';'

HEADER_PATTERN = re.compile(r'\s*(\S+)(?:\s+(\S+))?', re.DOTALL)
INTEGER_PATTERN = re.compile(r'^[+-]?[0-9]+$')


class ResolutionOrder(Enum):
    """How a name is looked up when several words carry it."""

    # Newest declaration first, compiled words before natives
    SHADOWING = "shadowing"
    # Oldest declaration first, natives before compiled words
    FIRST_MATCH = "first-match"


def parse_int(text: str) -> Optional[int]:
    """Parse a signed 32-bit decimal integer, or return None."""
    if not INTEGER_PATTERN.match(text):
        return None
    value = int(text)
    if value < INT32_MIN or value > INT32_MAX:
        return None
    return value


@dataclass
class PendingReference:
    """A %NAME reference waiting for a constant declared later in the run."""

    entry: DictionaryEntry
    position: int       # position in entry.code
    name: str
    line: Optional[int] = None
    column: Optional[int] = None


@dataclass
class CompilationContext:
    """State of the definition currently being compiled."""

    word: str
    index: int
    code: CodeBuffer = field(default_factory=CodeBuffer)
    flags: WordFlags = WordFlags.NONE
    labels: Dict[str, int] = field(default_factory=dict)
    pending_labels: List[Tuple[int, str, Token]] = field(default_factory=list)
    forward_refs: List[Tuple[int, str, Token]] = field(default_factory=list)
    comment_depth: int = 0
    first_comment_done: bool = False
    inferred_constant: Optional[str] = None
    doc: List[str] = field(default_factory=list)

    # Word index emitted as the most recent unit, None after anything else
    last_word: Optional[int] = None

    def emit_word(self, index: int) -> int:
        offset = self.code.emit(index)
        self.last_word = index
        return offset

    def emit_literal(self, value: int) -> int:
        offset = self.code.emit(value)
        self.last_word = None
        return offset


class CompilerState:
    """
    Running state of one compilation pass.

    Owns the native catalog, the variable table and the list of compiled
    words. Compiled words are only ever appended, so a word's dictionary
    index is fixed the moment it is compiled.
    """

    def __init__(self,
                 catalog: NativeWordCatalog,
                 variables: VariableTable,
                 bootstrap: Optional[Bootstrap] = None,
                 order: ResolutionOrder = ResolutionOrder.SHADOWING,
                 names: BootstrapNames = BootstrapNames(),
                 encoding: str = 'utf-8',
                 filename: Optional[str] = None):
        """
        Create the state for a compilation pass.

        Args:
            catalog: Fully loaded native word catalog
            variables: Variable table
            bootstrap: Bootstrap indices; looked up in the catalog if omitted
            order: Name resolution order for plain tokens and %NAME
            names: Names of the bootstrap words
            encoding: Encoding of ." literal strings
            filename: Source file name for diagnostics
        """
        self.catalog = catalog
        self.variables = variables
        self.names = names
        if bootstrap is None:
            bootstrap = DictionaryTableBuilder(catalog, names).bootstrap()
        self.bootstrap = bootstrap
        self.order = order
        self.encoding = encoding
        self.filename = filename

        self.compiled: List[DictionaryEntry] = []
        self.diagnostics: List[CompileError] = []
        self.pending_refs: List[PendingReference] = []

    @property
    def native_count(self) -> int:
        return len(self.catalog)

    @property
    def next_index(self) -> int:
        """Dictionary index the next compiled word will receive."""
        return len(self.catalog) + len(self.compiled)

    def _search(self, matches) -> Optional[int]:
        """Search the dictionary in resolution order for an entry."""
        native_count = len(self.catalog)
        if self.order == ResolutionOrder.SHADOWING:
            for i in range(len(self.compiled) - 1, -1, -1):
                if matches(self.compiled[i]):
                    return native_count + i
            for i in range(native_count - 1, -1, -1):
                if matches(self.catalog[i]):
                    return i
        else:
            for i, entry in enumerate(self.catalog):
                if matches(entry):
                    return i
            for i, entry in enumerate(self.compiled):
                if matches(entry):
                    return native_count + i
        return None

    def find_word(self, name: str) -> Optional[int]:
        """Resolve a word by its display name."""
        return self._search(lambda entry: entry.name == name)

    def find_constant(self, constant: str) -> Optional[int]:
        """Resolve a word by its constant identifier."""
        return self._search(lambda entry: entry.constant_id == constant)

    def error(self, cls, message: str, word: Optional[str] = None,
              token: Optional[Token] = None, line: Optional[int] = None) -> None:
        """Report a recoverable error of the given class at a token."""
        column = None
        if token is not None:
            line, column = token.line, token.column
        self.report(cls(message, word, line, column, self.filename))

    def report(self, error: CompileError) -> None:
        """Record a recoverable error and keep going."""
        self.diagnostics.append(error)
        logger.warning("%s", error)

    def finish(self) -> List[CompileError]:
        """
        Resolve %NAME references to constants declared after their use.

        Returns:
            All diagnostics recorded during the run
        """
        pending, self.pending_refs = self.pending_refs, []
        for ref in pending:
            index = self.find_constant(ref.name)
            if index is None:
                self.report(UnresolvedForwardReferenceError(
                    f"Could not find {ref.name}", ref.entry.name,
                    ref.line, ref.column, self.filename))
                continue
            ref.entry.code[ref.position] = index
        return self.diagnostics


class WordCompiler:
    """Compiles one definition at a time against a CompilerState."""

    def __init__(self, state: CompilerState):
        self.state = state

    def compile(self, source: str, line: int = 1) -> Optional[DictionaryEntry]:
        """
        Compile a single ': NAME ... ;' definition.

        Args:
            source: Definition text, possibly spanning several lines
            line: Line number of the definition in the input file

        Returns:
            The new dictionary entry, or None if the definition has no name

        Raises:
            StringTooLongError: If a literal string exceeds 255 bytes
            UnterminatedStringError: If a literal string has no closing quote
        """
        header = HEADER_PATTERN.match(source)
        if header is None or header.group(2) in (None, DEFINITION_TERMINATOR):
            self.state.error(MalformedDefinitionHeaderError,
                f"Definition has no name: {source.strip()!r}", line=line)
            return None

        marker, name = header.group(1), header.group(2)
        if marker != DEFINITION_MARKER:
            self.state.error(MalformedDefinitionHeaderError,
                f"Line does not start with '{DEFINITION_MARKER}'", name, line=line)

        body_line = line + source.count('\n', 0, header.end())
        tokens = Lexer(source[header.end():], name, body_line).tokenize()

        if tokens and tokens[-1].type == TokenType.WORD \
                and tokens[-1].lexeme == DEFINITION_TERMINATOR:
            tokens.pop()
        else:
            self.state.error(MalformedDefinitionHeaderError,
                f"Definition does not end with '{DEFINITION_TERMINATOR}'", name, line=line)

        ctx = CompilationContext(word=name, index=self.state.next_index)
        for token in tokens:
            self.compile_token(ctx, token)

        return self.finalize(ctx)

    # =========================================================================
    # Token dispatch
    # =========================================================================

    def compile_token(self, ctx: CompilationContext, token: Token) -> None:
        """Compile one token of the definition body."""
        if ctx.comment_depth > 0:
            self.comment_token(ctx, token)
            return

        kind = token.type
        if kind == TokenType.COMMENT_OPEN:
            ctx.comment_depth = 1
        elif kind == TokenType.FLAG:
            ctx.flags |= token.value
        elif kind == TokenType.RECURSE:
            ctx.emit_word(ctx.index)
        elif kind == TokenType.FORWARD_REF:
            self.forward_ref(ctx, token)
        elif kind == TokenType.VARIABLE_REF:
            self.variable_ref(ctx, token)
        elif kind == TokenType.LABEL_DEF:
            ctx.labels[token.value] = ctx.code.current_offset()
        elif kind == TokenType.LABEL_USE:
            ctx.pending_labels.append((ctx.code.current_offset(), token.value, token))
            ctx.code.emit_placeholder()
            ctx.last_word = None
        elif kind == TokenType.STRING_LITERAL:
            self.string_literal(ctx, token)
        elif kind in (TokenType.WORD, TokenType.COMMENT_CLOSE):
            # a ')' outside any comment is an ordinary word
            self.word_or_literal(ctx, token)
        else:
            raise CompileError(f"Unknown token type: {kind}", ctx.word,
                               token.line, token.column)

    def comment_token(self, ctx: CompilationContext, token: Token) -> None:
        """Handle a token inside ( ... )."""
        if token.type == TokenType.COMMENT_OPEN:
            ctx.comment_depth += 1
            return
        if token.type == TokenType.COMMENT_CLOSE:
            ctx.comment_depth -= 1
            if ctx.comment_depth == 0:
                ctx.first_comment_done = True
            return

        constant = token.constant_hint()
        if constant is not None:
            ctx.inferred_constant = constant
        elif not ctx.first_comment_done and ctx.comment_depth == 1:
            ctx.doc.append(token.lexeme)

    # =========================================================================
    # Token kinds
    # =========================================================================

    def forward_ref(self, ctx: CompilationContext, token: Token) -> None:
        """Compile %NAME, a reference by constant identifier."""
        name = token.value
        index = self.state.find_constant(name)
        if index is None and name == ctx.inferred_constant:
            index = ctx.index

        if index is None:
            # May be declared later; resolved in finalize() or finish()
            ctx.forward_refs.append((ctx.code.emit_placeholder(), name, token))
            ctx.last_word = None
        else:
            ctx.emit_word(index)

    def variable_ref(self, ctx: CompilationContext, token: Token) -> None:
        """Compile $NAME as a push of the variable's slot."""
        slot = self.state.variables.find(token.value)
        if slot is None:
            self.word_or_literal(ctx, token)
            return

        bootstrap = self.state.bootstrap
        ctx.emit_word(self.bootstrap_word(ctx, token, bootstrap.push_variable,
                                          self.state.names.push_variable))
        if slot == 0:
            ctx.emit_word(self.bootstrap_word(ctx, token, bootstrap.false,
                                              self.state.names.false))
        elif slot == 1:
            ctx.emit_word(self.bootstrap_word(ctx, token, bootstrap.one,
                                              self.state.names.one))
        else:
            short = self.state.find_word(self.state.names.short_literal)
            ctx.emit_word(self.bootstrap_word(ctx, token, short,
                                              self.state.names.short_literal))
            ctx.emit_literal(slot)

    def string_literal(self, ctx: CompilationContext, token: Token) -> None:
        """Compile ." text" as the packer word followed by the packed bytes."""
        data = token.value.encode(self.state.encoding)
        try:
            units = pack_string(data)
        except StringTooLongError as e:
            raise StringTooLongError(e.message, ctx.word, token.line,
                                     token.column, self.state.filename) from e

        ctx.emit_word(self.bootstrap_word(ctx, token, self.state.bootstrap.litstring,
                                          self.state.names.litstring_constant))
        ctx.code.emit_all(units)
        ctx.last_word = None

    def word_or_literal(self, ctx: CompilationContext, token: Token) -> None:
        """Compile a word reference, falling back to an integer literal."""
        index = self.state.find_word(token.lexeme)
        if index is not None:
            ctx.emit_word(index)
            return

        value = parse_int(token.lexeme)
        if value is None:
            self.state.error(UnresolvedWordOrLiteralError,
                f"Could not find {token.lexeme}", ctx.word, token)
            ctx.emit_literal(0)
            return

        # Split only right after a reference to the wide-int word; a literal
        # or label placeholder that happens to equal its index does not count
        wide_int = self.state.bootstrap.wide_int
        if wide_int is not None and ctx.last_word == wide_int:
            ctx.code.emit_all(split_wide(value))
            ctx.last_word = None
        else:
            ctx.emit_literal(value)

    def bootstrap_word(self, ctx: CompilationContext, token: Token,
                       index: Optional[int], name: str) -> int:
        """Return a bootstrap word index, reporting it if missing."""
        if index is None:
            self.state.error(MissingBootstrapWordError,
                f"Word {name} is not defined", ctx.word, token)
            return 0
        return index

    # =========================================================================
    # Finalization
    # =========================================================================

    def finalize(self, ctx: CompilationContext) -> DictionaryEntry:
        """Patch labels, prepend flags and append the entry to the dictionary."""
        for position, label, token in ctx.pending_labels:
            target = ctx.labels.get(label)
            if target is None:
                self.state.error(UnresolvedLabelError,
                    f"Label {label} is not defined", ctx.word, token)
                offset = 0
            else:
                offset = target - position
                if offset < -0x8000 or offset > 0x7FFF:
                    self.state.error(UnresolvedLabelError,
                        f"Label {label} is out of range ({offset})", ctx.word, token)
                    offset = 0
            ctx.code.patch_i16(position, offset)

        entry = DictionaryEntry(
            name=ctx.word,
            constant_id=ctx.inferred_constant or ctx.word,
            flags=ctx.flags,
            code=[int(ctx.flags)] + ctx.code.units,
            doc=' '.join(ctx.doc) or None,
        )
        self.state.compiled.append(entry)

        # Unit 0 holds the flags, so body positions shift by one.
        # The comment naming the constant may follow its first use.
        for position, name, token in ctx.forward_refs:
            index = self.state.find_constant(name)
            if index is None:
                self.state.pending_refs.append(PendingReference(
                    entry, position + 1, name, token.line, token.column))
            else:
                entry.code[position + 1] = index

        logger.debug("compiled %s as word %d (%d units)",
                     entry.name, ctx.index, len(entry.code))
        return entry
