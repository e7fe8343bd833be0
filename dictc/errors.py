"""
Dictionary Compiler Errors

Defines exception classes for compilation errors and diagnostics.
"""

from typing import Optional


class DictError(Exception):
    """Base exception for all dictionary compiler errors."""
    
    def __init__(self, message: str, word: Optional[str] = None,
                 line: Optional[int] = None, column: Optional[int] = None,
                 filename: Optional[str] = None):
        self.message = message
        self.word = word
        self.line = line
        self.column = column
        self.filename = filename
        super().__init__(self._format_message())
    
    def _format_message(self) -> str:
        """Format the error message with location information."""
        parts = []
        
        if self.filename:
            parts.append(self.filename)
        
        if self.line is not None:
            if parts:
                parts.append(f"{self.line}")
            else:
                parts.append(f"line {self.line}")
            
            if self.column is not None:
                parts.append(f"{self.column}")
        
        message = self.message
        if self.word is not None:
            message = f"{message} (in definition of {self.word})"
        
        if parts:
            return f"{':'.join(parts)}: {message}"
        return message


class SectionError(DictError):
    """Raised when the input file does not have the expected sections."""
    pass


class CompileError(DictError):
    """Raised for errors while compiling word definitions."""
    pass


class StringTooLongError(CompileError):
    """Raised when a literal string does not fit the one-byte length prefix."""
    pass


class UnterminatedStringError(CompileError):
    """Raised when a ." literal has no closing quote."""
    pass


class DuplicateConstantError(CompileError):
    """Raised when two native words share a constant identifier."""
    pass


class UnresolvedWordOrLiteralError(CompileError):
    """A plain token is neither a known word nor an integer."""
    pass


class UnresolvedForwardReferenceError(CompileError):
    """A %NAME reference matches no constant in the whole run."""
    pass


class UnresolvedLabelError(CompileError):
    """A label is used but never defined in the same word."""
    pass


class MalformedDefinitionHeaderError(CompileError):
    """A definition lacks its ':' marker, name or ';' terminator."""
    pass


class MissingBootstrapWordError(CompileError):
    """A word the compiler emits implicitly is not in the dictionary."""
    pass
