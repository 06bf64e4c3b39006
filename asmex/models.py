#!/usr/bin/env python3
"""
Data models shared by the Asmex builders, the section matcher and the
query interface.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Instruction:
    """One line of the disassembly listing"""
    address: int
    encoded: str                # hex byte pairs separated by spaces
    text: Optional[str] = None  # None for continuation/data lines

    @property
    def size(self) -> int:
        """Number of encoded bytes"""
        return len(self.encoded.replace(' ', '')) // 2

    @property
    def end_address(self) -> int:
        """Address immediately following this instruction"""
        return self.address + self.size


@dataclass(frozen=True)
class SectionBounds:
    """Address extent of a disassembled section"""
    lo_addr: int
    hi_addr: int    # first address past the last instruction

    def contains_span(self, start: int, end: int) -> bool:
        """Check whether [start, end] fits inside the section"""
        return self.lo_addr <= start and end <= self.hi_addr


@dataclass(frozen=True)
class SymbolAlias:
    """A symbol table name located at some address"""
    name: str
    end_address: int


@dataclass
class SubprogramRecord:
    """Subprogram attributes collected from one debug info node"""
    node_id: str
    name: Optional[str] = None
    linkage_name: Optional[str] = None
    file_index: Optional[int] = None
    line: Optional[int] = None
    origin: Optional[str] = None

    @property
    def symbol_name(self) -> Optional[str]:
        """Linkage name when present, plain name otherwise"""
        return self.linkage_name if self.linkage_name is not None else self.name

    @property
    def has_location(self) -> bool:
        """True when both declaration file and line are known"""
        return self.file_index is not None and self.line is not None


@dataclass(frozen=True)
class Declaration:
    """Source location where a subprogram is declared"""
    file: str
    line: int


@dataclass(frozen=True)
class SourcePosition:
    """One row of the line number table"""
    file: Optional[str]
    line: int
    column: int
    is_stmt: bool
    discriminator: int = 0

    def __str__(self):
        return f"{self.file}:{self.line}:{self.column}"


@dataclass
class LineSequence:
    """Contiguous run of the line number program.

    Rows are keyed by address; several positions may be recorded for the
    same address and are kept in emission order.
    """
    rows: Dict[int, List[SourcePosition]] = field(default_factory=dict)

    def add(self, address: int, position: SourcePosition) -> None:
        """Record a position at the given address"""
        self.rows.setdefault(address, []).append(position)

    @property
    def addresses(self) -> List[int]:
        """Row addresses in increasing order"""
        return sorted(self.rows)

    @property
    def start(self) -> int:
        return min(self.rows)

    @property
    def end(self) -> int:
        return max(self.rows)

    @property
    def span(self) -> int:
        return self.end - self.start

    def positions_at(self, address: int) -> Optional[List[SourcePosition]]:
        """Return a copy of the positions recorded at address, if any"""
        positions = self.rows.get(address)
        if positions is None:
            return None
        return list(positions)

    def fingerprint(self) -> Tuple:
        """Hashable value equal for byte-for-byte identical sequences"""
        return tuple(
            (address, tuple(self.rows[address])) for address in self.addresses
        )

    def __len__(self):
        return len(self.rows)


@dataclass(frozen=True)
class MatchedInterval:
    """Address range of a section bound to one line sequence"""
    start: int
    end: int
    sequence_index: int
    sequence: LineSequence = field(compare=False, repr=False)

    def contains(self, address: int) -> bool:
        return self.start <= address <= self.end


@dataclass(frozen=True)
class AnnotatedInstruction:
    """Instruction paired with the source positions resolved for it"""
    section: str
    entry: str
    instruction: Instruction
    positions: Optional[List[SourcePosition]] = None


@dataclass(frozen=True)
class AnnotatedSourceLine:
    """Source line paired with the instructions generated from it"""
    number: int
    text: str
    instruction_indices: List[int] = field(default_factory=list)
