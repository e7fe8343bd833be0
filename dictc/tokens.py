"""
Dictionary Compiler Token Definitions

Defines the token kinds of a word definition and the Token class.
"""

import re
from enum import Enum, IntFlag, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token kinds found in a word definition."""
    
    FLAG = auto()            # IMMEDIATE, HIDDEN, COMPILE-ONLY
    RECURSE = auto()         # recurse
    FORWARD_REF = auto()     # %NAME
    VARIABLE_REF = auto()    # $NAME
    LABEL_DEF = auto()       # :NAME
    LABEL_USE = auto()       # NAME:
    STRING_LITERAL = auto()  # ." text"
    WORD = auto()            # word name or integer literal
    COMMENT_OPEN = auto()    # (
    COMMENT_CLOSE = auto()   # )


class WordFlags(IntFlag):
    """Flag bits stored in unit 0 of every compiled word."""
    
    NONE = 0
    IMMEDIATE = 1
    HIDDEN = 2
    COMPILE_ONLY = 4


# Flag keyword mapping
FLAGS = {
    'IMMEDIATE': WordFlags.IMMEDIATE,
    'HIDDEN': WordFlags.HIDDEN,
    'COMPILE-ONLY': WordFlags.COMPILE_ONLY,
}

RECURSE = 'recurse'
STRING_INTRO = '."'

LABEL_DEF_PATTERN = re.compile(r'^:([A-Z0-9]+)$')
LABEL_USE_PATTERN = re.compile(r'^([A-Z0-9]+):$')
# 'NAME inside a comment names the constant of the word being defined
CONSTANT_HINT_PATTERN = re.compile(r"^'(\S+)$")


@dataclass
class Token:
    """Represents a single classified token of a definition."""
    
    type: TokenType
    lexeme: str
    value: Any
    line: int
    column: int
    
    def __repr__(self) -> str:
        if self.value is not None:
            return f"Token({self.type.name}, {self.lexeme!r}, {self.value!r}, line={self.line})"
        return f"Token({self.type.name}, {self.lexeme!r}, line={self.line})"
    
    def constant_hint(self) -> Optional[str]:
        """Return NAME for a 'NAME token, otherwise None."""
        match = CONSTANT_HINT_PATTERN.match(self.lexeme)
        if match:
            return match.group(1)
        return None


def classify(text: str) -> TokenType:
    """
    Classify a whitespace-delimited token by its shape alone.
    
    The order of the checks is the grammar: flags and keywords first,
    then sigils, then label forms, then everything else.
    """
    if text == '(':
        return TokenType.COMMENT_OPEN
    if text == ')':
        return TokenType.COMMENT_CLOSE
    if text in FLAGS:
        return TokenType.FLAG
    if text == RECURSE:
        return TokenType.RECURSE
    if text == STRING_INTRO:
        return TokenType.STRING_LITERAL
    if len(text) > 1 and text[0] == '%':
        return TokenType.FORWARD_REF
    if len(text) > 1 and text[0] == '$':
        return TokenType.VARIABLE_REF
    if LABEL_DEF_PATTERN.match(text):
        return TokenType.LABEL_DEF
    if LABEL_USE_PATTERN.match(text):
        return TokenType.LABEL_USE
    return TokenType.WORD


def token_value(token_type: TokenType, text: str) -> Any:
    """Get the payload of a token: the name without its sigil."""
    if token_type == TokenType.FLAG:
        return FLAGS[text]
    if token_type in (TokenType.FORWARD_REF, TokenType.VARIABLE_REF):
        return text[1:]
    if token_type == TokenType.LABEL_DEF:
        return text[1:]
    if token_type == TokenType.LABEL_USE:
        return text[:-1]
    return None
