"""
Dictionary Compiler Lexer

Splits the text of one word definition into classified tokens.
"""

from typing import List, Optional
from .tokens import Token, TokenType, STRING_INTRO, classify, token_value
from .errors import UnterminatedStringError


class Lexer:
    """Lexical analyzer for a single word definition."""
    
    def __init__(self, source: str, word: Optional[str] = None, line: int = 1):
        """
        Initialize the lexer.
        
        Args:
            source: Raw definition text, possibly spanning several lines
            word: Name of the word being defined, for error messages
            line: Line number of the first character of source
        """
        self.source = source
        self.word = word
        self.tokens: List[Token] = []
        self.start = 0      # Start of current token
        self.current = 0    # Current position
        self.line = line    # Current line number
        self.line_start = 0 # Position of current line start
        self.depth = 0      # Comment nesting depth
    
    def tokenize(self) -> List[Token]:
        """
        Tokenize the entire definition.
        
        Returns:
            List of tokens
        """
        while not self.is_at_end():
            self.start = self.current
            self.scan_token()
        return self.tokens
    
    def scan_token(self) -> None:
        """Scan the next token."""
        c = self.advance()
        
        if c == '\n':
            self.line += 1
            self.line_start = self.current
            return
        
        if c.isspace():
            return
        
        while not self.is_at_end() and not self.peek().isspace():
            self.advance()
        
        text = self.source[self.start:self.current]
        token_type = classify(text)
        
        if token_type == TokenType.COMMENT_OPEN:
            self.depth += 1
        elif token_type == TokenType.COMMENT_CLOSE and self.depth > 0:
            self.depth -= 1
        elif token_type == TokenType.STRING_LITERAL:
            if self.depth > 0:
                # ." inside a comment is just comment text
                token_type = TokenType.WORD
            else:
                self.string()
                return
        
        self.add_token(token_type, token_value(token_type, text))
    
    def advance(self) -> str:
        """Consume and return the current character."""
        c = self.source[self.current]
        self.current += 1
        return c
    
    def peek(self) -> str:
        """Return the current character without consuming it."""
        if self.is_at_end():
            return '\0'
        return self.source[self.current]
    
    def is_at_end(self) -> bool:
        """Check if we've reached the end of the source."""
        return self.current >= len(self.source)
    
    def add_token(self, type: TokenType, value=None, lexeme: Optional[str] = None) -> None:
        """Add a token to the token list."""
        if lexeme is None:
            lexeme = self.source[self.start:self.current]
        col = self.start - self.line_start + 1
        self.tokens.append(Token(type, lexeme, value, self.line, col))
    
    def string(self) -> None:
        """Scan the text of a ." literal up to the closing quote."""
        line, line_start = self.line, self.line_start
        
        # Whitespace between ." and the text is a separator
        while not self.is_at_end() and self.peek().isspace():
            if self.advance() == '\n':
                self.line += 1
                self.line_start = self.current
        
        text_start = self.current
        while self.peek() != '"' and not self.is_at_end():
            if self.advance() == '\n':
                self.line += 1
                self.line_start = self.current
        
        if self.is_at_end():
            raise UnterminatedStringError("Unterminated string literal", self.word,
                                          line, self.start - line_start + 1)
        
        value = self.source[text_start:self.current]
        
        # Consume closing quote
        self.advance()
        
        col = self.start - line_start + 1
        self.tokens.append(Token(TokenType.STRING_LITERAL, STRING_INTRO, value, line, col))
