"""
Dictionary Compiler Context

The main interface for compiling dictionary sources and writing the
generated interpreter tables.
"""

from typing import List, Optional, Union
from dataclasses import dataclass

from dictc import CompileResult, compile_source
from dictc.codegen import ResolutionOrder
from dictc.errors import CompileError
from dictc.tables import DictionaryTable

from .emitter import emit_java


@dataclass
class Build:
    """
    A compiled dictionary.
    
    Contains the tables, the templates they are emitted into and the
    diagnostics of the run.
    """
    
    source: str
    result: CompileResult
    filename: Optional[str] = None
    
    @property
    def table(self) -> DictionaryTable:
        return self.result.table
    
    @property
    def diagnostics(self) -> List[CompileError]:
        return self.result.diagnostics
    
    def disassemble(self) -> str:
        """Get a listing of the compiled words."""
        return self.table.disassemble()
    
    def to_java(self) -> str:
        """Render the interpreter source for this dictionary."""
        return emit_java(self.result.sections, self.table)
    
    def save(self, path: str) -> None:
        """Save the dictionary tables to a binary file."""
        data = self.table.serialize()
        with open(path, 'wb') as f:
            f.write(data)
    
    @staticmethod
    def load(path: str) -> DictionaryTable:
        """Load dictionary tables from a binary file."""
        with open(path, 'rb') as f:
            data = f.read()
        return DictionaryTable.deserialize(data)


class Context:
    """
    Dictionary compiler context.
    
    Holds the options of a compilation run.
    
    Example:
        ctx = Context()
        build = ctx.compile_file('stos-internals.txt')
        ctx.write(build, 'Stos.java')
    """
    
    def __init__(self,
                 order: Union[ResolutionOrder, str] = ResolutionOrder.SHADOWING,
                 strict: bool = False,
                 debug: bool = False):
        """
        Create a new compiler context.
        
        Args:
            order: Name resolution order ("shadowing" or "first-match")
            strict: Raise the first diagnostic instead of only recording it
            debug: Enable debug mode
        """
        self.order = ResolutionOrder(order)
        self.strict = strict
        self.debug = debug
    
    def compile(self, source: str, filename: Optional[str] = None) -> Build:
        """
        Compile dictionary source text.
        
        Args:
            source: Dictionary source string
            filename: Optional filename for error messages
            
        Returns:
            Compiled Build object
            
        Raises:
            CompileError: In strict mode, the first recorded diagnostic
        """
        result = compile_source(source, filename, self.order)
        
        if self.debug:
            table = result.table
            print(f"Compiled {table.compiled_count} words "
                  f"({table.native_count} native, {table.variable_count} variables)")
            for error in result.diagnostics:
                print(f"  {error}")
        
        if self.strict and result.diagnostics:
            raise result.diagnostics[0]
        
        return Build(source=source, result=result, filename=filename)
    
    def compile_file(self, path: str) -> Build:
        """
        Compile a dictionary source file.
        
        Args:
            path: Path to the source file
            
        Returns:
            Compiled Build object
        """
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
        return self.compile(source, filename=path)
    
    def write(self, build: Build, path: str) -> None:
        """Write the generated interpreter source."""
        with open(path, 'w', encoding='utf-8') as f:
            f.write(build.to_java())
        if self.debug:
            print(f"Wrote {path}")


def compile_dictionary(source: str, **kwargs) -> Build:
    """
    Compile dictionary source text with a fresh context.
    
    Args:
        source: Dictionary source
        **kwargs: Context options
        
    Returns:
        Compiled Build object
    """
    return Context(**kwargs).compile(source)
