"""
Dictionary Source Sections

Splits a dictionary source file into its template, variable, native word
and definition sections.

File layout, sections separated by a line holding only SECTION_DELIMITER:

    template text, split in three by the CONSTS_MARKER and CODE_MARKER lines
    ========
    variable names, one per line
    ========
    native words: a header 'NAME [CONST [doc...]]' at column 0,
    body lines indented
    ========
    word definitions ': NAME ... ;', possibly spanning lines
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import SectionError


SECTION_DELIMITER = "========"
CONSTS_MARKER = "/*CONSTS*/"
CODE_MARKER = "/*CODE*/"

SECTION_COUNT = 4

DEFINITION_END = re.compile(r';\s*$')


@dataclass
class NativeSource:
    """Header and body of a native word as written in the source."""

    name: str
    constant: Optional[str]
    doc: Optional[str]
    body: str
    line: int


@dataclass
class DefinitionSource:
    """Text of one word definition and the line it starts on."""

    text: str
    line: int


@dataclass
class SourceSections:
    """A dictionary source file split into its parts."""

    prefix: str = ""
    infix: str = ""
    postfix: str = ""
    variables: List[str] = field(default_factory=list)
    natives: List[NativeSource] = field(default_factory=list)
    definitions: List[DefinitionSource] = field(default_factory=list)

    def templates(self) -> Tuple[str, str, str]:
        return (self.prefix, self.infix, self.postfix)


class SectionReader:
    """Reads a dictionary source file into SourceSections."""

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename

    def read(self) -> SourceSections:
        """
        Split the source into its sections.

        Raises:
            SectionError: If delimiters or template markers are missing
        """
        sections: List[List[Tuple[int, str]]] = [[]]
        for number, line in enumerate(self.source.splitlines(), 1):
            if line == SECTION_DELIMITER:
                sections.append([])
            else:
                sections[-1].append((number, line))

        if len(sections) != SECTION_COUNT:
            raise SectionError(
                f"Expected {SECTION_COUNT} sections separated by "
                f"{SECTION_DELIMITER!r}, found {len(sections)}",
                filename=self.filename)

        template, variables, natives, definitions = sections
        result = SourceSections()
        result.prefix, result.infix, result.postfix = self.read_template(template)
        result.variables = self.read_variables(variables)
        result.natives = self.read_natives(natives)
        result.definitions = self.read_definitions(definitions)
        return result

    def read_template(self, lines: List[Tuple[int, str]]) -> Tuple[str, str, str]:
        """Split the template at its two marker lines."""
        parts: List[List[str]] = [[]]
        markers = [CONSTS_MARKER, CODE_MARKER]
        for number, line in lines:
            if markers and markers[0] in line:
                markers.pop(0)
                parts.append([])
                continue
            parts[-1].append(line + '\n')

        if markers:
            raise SectionError(f"Template has no {markers[0]} marker",
                               filename=self.filename)

        return tuple(''.join(part) for part in parts)

    def read_variables(self, lines: List[Tuple[int, str]]) -> List[str]:
        return [line.strip() for _, line in lines if line.strip()]

    def read_natives(self, lines: List[Tuple[int, str]]) -> List[NativeSource]:
        """Group native word headers with their indented body lines."""
        natives: List[NativeSource] = []
        body: List[str] = []

        for number, line in lines:
            if not line.strip():
                continue

            if line[0] in ' \t':
                if not natives:
                    raise SectionError("Native word body without a header",
                                       line=number, filename=self.filename)
                body.append(line)
                continue

            if natives:
                natives[-1].body = '\n'.join(body)
                body = []

            fields = line.split(None, 2)
            natives.append(NativeSource(
                name=fields[0],
                constant=fields[1] if len(fields) > 1 else None,
                doc=fields[2].strip() if len(fields) > 2 else None,
                body="",
                line=number,
            ))

        if natives:
            natives[-1].body = '\n'.join(body)
        return natives

    def read_definitions(self, lines: List[Tuple[int, str]]) -> List[DefinitionSource]:
        """Join definition lines up to the line ending in ';'."""
        definitions: List[DefinitionSource] = []
        buffer: List[str] = []
        start = 0

        for number, line in lines:
            if not buffer:
                if not line.strip():
                    continue
                start = number
            buffer.append(line)
            if DEFINITION_END.search(line):
                definitions.append(DefinitionSource('\n'.join(buffer).strip(), start))
                buffer = []

        if buffer:
            # Unterminated; the compiler reports the missing ';'
            definitions.append(DefinitionSource('\n'.join(buffer).strip(), start))
        return definitions


def read_sections(source: str, filename: Optional[str] = None) -> SourceSections:
    """Split dictionary source text into its sections."""
    return SectionReader(source, filename).read()
