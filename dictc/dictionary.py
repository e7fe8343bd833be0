"""
Dictionary Model

Dictionary entries, the native word catalog and the variable table.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .tokens import WordFlags


@dataclass
class DictionaryEntry:
    """One word of the dictionary, native or compiled."""
    
    name: str
    constant_id: Optional[str] = None
    flags: WordFlags = WordFlags.NONE
    code: Optional[List[int]] = None   # compiled words only, unit 0 = flags
    body: Optional[str] = None         # native words only
    doc: Optional[str] = None


class NativeWordCatalog:
    """
    Built-in words in declaration order.
    
    The index of a native word is its declaration position; natives occupy
    the low end of the dictionary index space.
    """
    
    def __init__(self):
        self.entries: List[DictionaryEntry] = []
    
    def register(self, name: str, constant_id: Optional[str] = None,
                 doc: Optional[str] = None, body: str = "") -> int:
        """Add a native word, returning its index."""
        index = len(self.entries)
        self.entries.append(DictionaryEntry(
            name=name,
            constant_id=constant_id or name,
            body=body,
            doc=doc,
        ))
        return index
    
    def find_by_constant(self, constant: str) -> Optional[int]:
        """Find the first native word declared with the given constant."""
        for i, entry in enumerate(self.entries):
            if entry.constant_id == constant:
                return i
        return None
    
    def find_by_name(self, name: str) -> Optional[int]:
        """Find the latest native word declared with the given name."""
        for i in range(len(self.entries) - 1, -1, -1):
            if self.entries[i].name == name:
                return i
        return None
    
    def __len__(self) -> int:
        return len(self.entries)
    
    def __iter__(self) -> Iterator[DictionaryEntry]:
        return iter(self.entries)
    
    def __getitem__(self, index: int) -> DictionaryEntry:
        return self.entries[index]


class VariableTable:
    """Interpreter variable slots; index = declaration position."""
    
    def __init__(self, names: Optional[List[str]] = None):
        self.names: List[str] = []
        self._index: Dict[str, int] = {}
        for name in names or []:
            self.register(name)
    
    def register(self, name: str) -> int:
        """Add a variable, returning its slot."""
        index = len(self.names)
        self.names.append(name)
        # A repeated name shadows the earlier slot
        self._index[name] = index
        return index
    
    def find(self, name: str) -> Optional[int]:
        return self._index.get(name)
    
    def __len__(self) -> int:
        return len(self.names)
    
    def __iter__(self) -> Iterator[str]:
        return iter(self.names)
