"""
Dictionary Compiler Python API

Compiles dictionary sources and renders the interpreter tables.
"""

from .context import Build, Context, compile_dictionary
from .emitter import JavaEmitter, emit_java

__all__ = [
    'Build',
    'Context',
    'compile_dictionary',
    'JavaEmitter',
    'emit_java',
]
