"""
Dictionary Tables

Bootstrap index lookup and assembly of the final name and code tables
across native and compiled words.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import struct

import numpy as np

from .dictionary import DictionaryEntry, NativeWordCatalog, VariableTable
from .bytecode import as_signed, join_wide, packed_length, unpack_string
from .errors import DuplicateConstantError


NO_INDEX = 0xFFFF


@dataclass(frozen=True)
class BootstrapNames:
    """Names of the words the compiler emits on its own."""
    
    litstring_constant: str = "litstring_compile"   # looked up by constant
    push_variable: str = "vars"
    false: str = "false"
    one: str = "'1"
    wide_int: str = "int"
    short_literal: str = "'"                        # may be a compiled word


@dataclass
class Bootstrap:
    """Dictionary indices of the bootstrap words, None when absent."""
    
    litstring: Optional[int] = None
    push_variable: Optional[int] = None
    false: Optional[int] = None
    one: Optional[int] = None
    wide_int: Optional[int] = None
    
    def as_tuple(self) -> Tuple[Optional[int], ...]:
        return (self.litstring, self.push_variable, self.false, self.one, self.wide_int)


class DictionaryTableBuilder:
    """Combines the native catalog and compiled words into one dictionary."""
    
    def __init__(self, catalog: NativeWordCatalog,
                 names: BootstrapNames = BootstrapNames()):
        self.catalog = catalog
        self.names = names
    
    def validate(self) -> None:
        """Check that native constants are unique."""
        seen: Dict[str, int] = {}
        for i, entry in enumerate(self.catalog):
            if entry.constant_id in seen:
                raise DuplicateConstantError(
                    f"Constant {entry.constant_id!r} of native word {i} "
                    f"already used by native word {seen[entry.constant_id]}")
            seen[entry.constant_id] = i
    
    def bootstrap(self) -> Bootstrap:
        """
        Find the bootstrap words in the native catalog.
        
        Must run after every native word is registered and before any
        definition is compiled.
        
        Raises:
            DuplicateConstantError: If two native words share a constant
        """
        self.validate()
        names = self.names
        return Bootstrap(
            litstring=self.catalog.find_by_constant(names.litstring_constant),
            push_variable=self.catalog.find_by_name(names.push_variable),
            false=self.catalog.find_by_name(names.false),
            one=self.catalog.find_by_name(names.one),
            wide_int=self.catalog.find_by_name(names.wide_int),
        )
    
    def build(self, compiled: List[DictionaryEntry],
              variables: VariableTable,
              bootstrap: Optional[Bootstrap] = None) -> 'DictionaryTable':
        """Assemble the final tables in dictionary-global order."""
        if bootstrap is None:
            bootstrap = self.bootstrap()
        table = DictionaryTable(
            native_count=len(self.catalog),
            bootstrap=bootstrap,
            variables=list(variables.names),
        )
        for entry in list(self.catalog) + list(compiled):
            table.names.append(entry.name)
            table.constants.append(entry.constant_id)
            table.docs.append(entry.doc)
            table.codes.append(None if entry.code is None else list(entry.code))
        return table


@dataclass
class DictionaryTable:
    """Name and code tables of the whole dictionary."""
    
    MAGIC = b'DCT\x00'
    VERSION = 1
    
    native_count: int = 0
    bootstrap: Bootstrap = field(default_factory=Bootstrap)
    variables: List[str] = field(default_factory=list)
    names: List[str] = field(default_factory=list)
    constants: List[Optional[str]] = field(default_factory=list)
    docs: List[Optional[str]] = field(default_factory=list)
    codes: List[Optional[List[int]]] = field(default_factory=list)
    
    @property
    def variable_count(self) -> int:
        return len(self.variables)
    
    @property
    def compiled_count(self) -> int:
        return len(self.names) - self.native_count
    
    def compiled_codes(self) -> List[List[int]]:
        """Code arrays of the compiled words, in index order."""
        return [code for code in self.codes[self.native_count:] if code is not None]
    
    def index_of(self, name: str) -> Optional[int]:
        """Find the latest word with the given name."""
        for i in range(len(self.names) - 1, -1, -1):
            if self.names[i] == name:
                return i
        return None
    
    def to_numpy(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Flatten all compiled code into one uint16 array.
        
        Returns:
            (units, offsets) where offsets[i] is the start of compiled word i
            in units and offsets[-1] == len(units)
        """
        codes = self.compiled_codes()
        lengths = np.array([len(code) for code in codes], dtype=np.uint32)
        offsets = np.zeros(len(codes) + 1, dtype=np.uint32)
        np.cumsum(lengths, out=offsets[1:])
        if codes:
            units = np.concatenate([np.asarray(code, dtype=np.uint16) for code in codes])
        else:
            units = np.zeros(0, dtype=np.uint16)
        return units, offsets
    
    def serialize(self) -> bytes:
        """Serialize the tables to binary format."""
        output = bytearray()
        
        # Header
        output.extend(self.MAGIC)
        output.extend(struct.pack('<H', self.VERSION))
        output.extend(struct.pack('<H', 0))  # Flags
        output.extend(struct.pack('<HHH', self.native_count, self.compiled_count,
                                  len(self.variables)))
        for index in self.bootstrap.as_tuple():
            output.extend(struct.pack('<H', NO_INDEX if index is None else index))
        
        # Names and constants
        for name, constant in zip(self.names, self.constants):
            _write_string(output, name)
            _write_string(output, constant or "")
        
        for name in self.variables:
            _write_string(output, name)
        
        # Code
        for code in self.compiled_codes():
            output.extend(struct.pack('<H', len(code)))
            output.extend(np.asarray(code, dtype='<u2').tobytes())
        
        return bytes(output)
    
    @classmethod
    def deserialize(cls, data: bytes) -> 'DictionaryTable':
        """Deserialize tables from binary format."""
        offset = 0
        
        # Header
        magic = data[offset:offset + 4]
        if magic != cls.MAGIC:
            raise ValueError("Invalid dictionary magic number")
        offset += 4
        
        version = struct.unpack_from('<H', data, offset)[0]
        if version != cls.VERSION:
            raise ValueError(f"Unsupported dictionary version: {version}")
        offset += 4  # version + flags
        
        native_count, compiled_count, variable_count = struct.unpack_from('<HHH', data, offset)
        offset += 6
        
        indices = struct.unpack_from('<5H', data, offset)
        offset += 10
        bootstrap = Bootstrap(*[None if i == NO_INDEX else i for i in indices])
        
        table = cls(native_count=native_count, bootstrap=bootstrap)
        
        for _ in range(native_count + compiled_count):
            name, offset = _read_string(data, offset)
            constant, offset = _read_string(data, offset)
            table.names.append(name)
            table.constants.append(constant or None)
            table.docs.append(None)
        
        for _ in range(variable_count):
            name, offset = _read_string(data, offset)
            table.variables.append(name)
        
        table.codes = [None] * native_count
        for _ in range(compiled_count):
            length = struct.unpack_from('<H', data, offset)[0]
            offset += 2
            units = np.frombuffer(data, dtype='<u2', count=length, offset=offset)
            table.codes.append([int(u) for u in units])
            offset += 2 * length
        
        return table
    
    def disassemble(self) -> str:
        """Disassemble the compiled words to human-readable format."""
        lines = []
        lines.append("=== Dictionary ===")
        lines.append("")
        
        lines.append("Variables:")
        for i, name in enumerate(self.variables):
            lines.append(f"  [{i:4d}] {name}")
        lines.append("")
        
        lines.append("Native words:")
        for i in range(self.native_count):
            lines.append(f"  [{i:4d}] {self.names[i]}")
        lines.append("")
        
        lines.append("Compiled words:")
        for i in range(self.native_count, len(self.names)):
            code = self.codes[i]
            doc = f" ( {self.docs[i]} )" if self.docs[i] else ""
            lines.append(f"  [{i:4d}] {self.names[i]}{doc} flags={code[0]}")
            lines.extend(self._disassemble_code(code))
        
        return "\n".join(lines)
    
    def _disassemble_code(self, code: List[int]) -> List[str]:
        """Disassemble the body of one compiled word."""
        lines = []
        offset = 1
        while offset < len(code):
            unit = code[offset]
            if unit == self.bootstrap.wide_int and offset + 2 < len(code):
                value = join_wide(code[offset + 1], code[offset + 2])
                lines.append(f"    {offset:04d}: {self._word_name(unit)} {value}")
                offset += 3
                continue
            if unit == self.bootstrap.litstring and offset + 1 < len(code):
                count = packed_length((code[offset + 1] >> 8) & 0xFF)
                if offset + count < len(code):
                    text = unpack_string(code[offset + 1:offset + 1 + count])
                    lines.append(f"    {offset:04d}: {self._word_name(unit)} {text!r}")
                    offset += 1 + count
                    continue
            lines.append(f"    {offset:04d}: {unit:5d} {as_signed(unit):+6d}  {self._word_name(unit)}")
            offset += 1
        return lines
    
    def _word_name(self, unit: int) -> str:
        if unit < len(self.names):
            return self.names[unit]
        return "?"


def _write_string(output: bytearray, s: str) -> None:
    encoded = s.encode('utf-8')
    output.extend(struct.pack('<H', len(encoded)))
    output.extend(encoded)


def _read_string(data: bytes, offset: int) -> Tuple[str, int]:
    length = struct.unpack_from('<H', data, offset)[0]
    offset += 2
    return data[offset:offset + length].decode('utf-8'), offset + length
