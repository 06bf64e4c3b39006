#!/usr/bin/env python3
"""
Line number program decoding (`objdump --dwarf=rawline`).

The raw dump lists the directory and file tables followed by the opcodes of
the line number state machine. Decoding is a fold over those opcodes: the
machine registers live in an immutable `LineRegisters` record, every opcode
maps the current record to the next one, and emitting opcodes append a row
to the sequence being built. An end of sequence closes the current
`LineSequence` and restarts from the initial record.

Note: nothing in the dump tells which ELF section a sequence describes, so
several sequences may give different answers for the same address. Sorting
that out is the job of `matcher.py`.
"""

import logging
import re
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from ..exceptions import StructuralError
from ..models import LineSequence, SourcePosition
from .base import DumpParser, FILE_FORMAT_PATTERN

logger = logging.getLogger(__name__)

OPCODE_LINE_PATTERN = re.compile(r'^\s+\[0x[0-9a-f]+\]\s+(.*)$')
FILE_ENTRY_PATTERN = re.compile(r'^\s+(\d+)\s+(\d+)\s+\(.*\):\s+(.*)$')
DIRECTORY_ENTRY_PATTERN = re.compile(r'^\s+(\d+)\s+\(.*\):\s+(.*)$')
# DWARF 4 and older tables: "1 0 0 0 main.c" and "1 /usr/include"
LEGACY_FILE_ENTRY_PATTERN = re.compile(r'^\s+(\d+)\s+(\d+)\s+\d+\s+\d+\s+(\S.*)$')
LEGACY_DIRECTORY_ENTRY_PATTERN = re.compile(r'^\s+(\d+)\s+([^\s(].*)$')
DEFAULT_IS_STMT_PATTERN = re.compile(r"^\s+Initial value of 'is_stmt':\s+(\d)$")

# Header and layout lines carrying nothing the decoder needs
IGNORED_LINE_PATTERNS = [
    re.compile(r'^\s+Opcode.*$'),
    re.compile(r'^\s+.*:\s+-?(?:0x[0-9a-f]+|\d+)$'),
    re.compile(r'^\s+The .* Table \(offset .*\):$'),
    re.compile(r'^\s+Line Number Statements:$'),
    re.compile(r'^\s+Entry\s+Name$'),
    re.compile(r'^\s+Entry\s+Dir\s+Name$'),
    re.compile(r'^\s+Entry\s+Dir\s+Time\s+Size\s+Name$'),
    re.compile(r'^Raw dump of debug contents of section \.debug_line.*:$'),
    re.compile(r'^\s+No Line Number Statements\.$'),
    re.compile(r'^\s+The (?:Directory|File Name) Table is empty\.$'),
    FILE_FORMAT_PATTERN,
]

FIRST_FILE_INDEX = 1


@dataclass(frozen=True)
class LineRegisters:
    """State registers of the line number machine"""
    address: int = 0
    file: Optional[str] = None
    line: int = 1
    column: int = 0
    is_stmt: bool = True
    discriminator: int = 0

    def position(self) -> SourcePosition:
        return SourcePosition(file=self.file, line=self.line, column=self.column,
                              is_stmt=self.is_stmt, discriminator=self.discriminator)


class LineProgramDecoder(DumpParser):
    """Decoder turning the raw line program dump into line sequences"""

    dump_name = 'line program'

    def __init__(self):
        super().__init__()
        self.sequences: List[LineSequence] = []
        self.unknown_opcodes: List[str] = []
        self._directories: Dict[int, str] = {}
        self._files: Dict[int, str] = {}
        self._default_is_stmt = True
        self._registers = LineRegisters()
        self._rows = LineSequence()
        self._opcodes: List[Tuple[re.Pattern, Callable]] = [
            (re.compile(r'^Set column to (\d+)$'), self._set_column),
            (re.compile(r'^Extended opcode 2: set Address to 0x([0-9a-f]+)$'),
             self._set_address),
            (re.compile(r'^Advance Line by -?\d+ to (\d+)$'), self._advance_line),
            (re.compile(r'^Special opcode \d+: advance Address by \d+ to 0x([0-9a-f]+) '
                        r'and Line by -?\d+ to (\d+)(?: \(view \d+\))?$'),
             self._special_opcode),
            (re.compile(r'^Copy(?: \(view \d+\))?$'), self._copy),
            (re.compile(r'^Set is_stmt to (\d+)$'), self._set_is_stmt),
            (re.compile(r'^Advance PC by -?\d+ to 0x([0-9a-f]+)$'), self._set_address),
            (re.compile(r'^Advance PC by constant -?\d+ to 0x([0-9a-f]+)$'),
             self._set_address),
            (re.compile(r'^Extended opcode \d+: set Discriminator to (\d+)$'),
             self._set_discriminator),
            (re.compile(r'^Set File Name to entry (\d+) in the File Name Table$'),
             self._set_file),
            (re.compile(r'^Extended opcode \d+: End of Sequence$'), self._end_sequence),
        ]

    @property
    def file_table(self) -> Mapping[int, str]:
        return MappingProxyType(self._files)

    def initial_registers(self) -> LineRegisters:
        """Register values at the start of every sequence"""
        return LineRegisters(file=self._files.get(FIRST_FILE_INDEX),
                             is_stmt=self._default_is_stmt)

    def _parse_line(self, line: str) -> bool:
        match = OPCODE_LINE_PATTERN.match(line)
        if match:
            self._execute(match.group(1))
            return True

        match = FILE_ENTRY_PATTERN.match(line) or LEGACY_FILE_ENTRY_PATTERN.match(line)
        if match:
            self._add_file(int(match.group(1)), int(match.group(2)), match.group(3))
            return True

        match = (DIRECTORY_ENTRY_PATTERN.match(line)
                 or LEGACY_DIRECTORY_ENTRY_PATTERN.match(line))
        if match:
            self._directories[int(match.group(1))] = match.group(2)
            logger.debug("Directory table [%s] = '%s'", match.group(1), match.group(2))
            return True

        match = DEFAULT_IS_STMT_PATTERN.match(line)
        if match:
            self._default_is_stmt = match.group(1) != '0'
            self._registers = replace(self._registers, is_stmt=self._default_is_stmt)
            return True

        if line == '':
            return True

        return any(pattern.match(line) for pattern in IGNORED_LINE_PATTERNS)

    def _add_file(self, index: int, directory: int, name: str) -> None:
        if directory != 0:
            name = f"{self._directories.get(directory)}/{name}"

        logger.debug("File table [%d] = '%s'", index, name)
        self._files[index] = name

        if index == FIRST_FILE_INDEX:
            self._registers = replace(self._registers, file=name)

    def _execute(self, instruction: str) -> None:
        if not self._files:
            raise StructuralError(
                f"Line number statement before any file table: '{instruction}'")

        for pattern, handler in self._opcodes:
            match = pattern.match(instruction)
            if match:
                self._registers = handler(self._registers, *match.groups())
                return

        self.unknown_opcodes.append(instruction)
        logger.warning("Unknown line program instruction: '%s'", instruction)

    def _emit(self, registers: LineRegisters) -> LineRegisters:
        """Append a row for the current registers and clear the discriminator"""
        self._rows.add(registers.address, registers.position())
        return replace(registers, discriminator=0)

    # Opcode handlers: (registers, *captured groups) -> registers

    def _set_column(self, registers, column):
        return replace(registers, column=int(column))

    def _set_address(self, registers, address):
        return replace(registers, address=int(address, 16))

    def _advance_line(self, registers, line):
        return replace(registers, line=int(line))

    def _special_opcode(self, registers, address, line):
        return self._emit(replace(registers, address=int(address, 16), line=int(line)))

    def _copy(self, registers):
        return self._emit(registers)

    def _set_is_stmt(self, registers, flag):
        return replace(registers, is_stmt=flag != '0')

    def _set_discriminator(self, registers, discriminator):
        return replace(registers, discriminator=int(discriminator))

    def _set_file(self, registers, index):
        path = self._files.get(int(index))
        if path is None:
            logger.warning("Line program refers to unknown file entry %s", index)
        return replace(registers, file=path)

    def _end_sequence(self, registers):
        self._emit(registers)
        self.sequences.append(self._rows)
        logger.debug("Sequence %d closed with %d addresses",
                     len(self.sequences) - 1, len(self._rows))
        self._rows = LineSequence()
        return self.initial_registers()

    def finish(self) -> None:
        """Drop a trailing sequence the dump never closed"""
        if len(self._rows):
            logger.warning("Discarding unterminated line sequence of %d addresses",
                           len(self._rows))
            self._rows = LineSequence()


def decode_line_program(lines) -> LineProgramDecoder:
    """Decode a raw line program dump and return the populated decoder"""
    decoder = LineProgramDecoder()
    decoder.feed(lines)
    decoder.finish()
    logger.debug("Decoded %d line sequences", len(decoder.sequences))
    return decoder
