#!/usr/bin/env python3
"""
Disassembly listing parsing (`objdump -dCr`).

Builds the code table: for every section, in listing order, the entries
(symbol headers) it contains and for every entry its instructions in the
order they appear.
"""

import logging
import re
from typing import Dict, List, Optional

from ..models import Instruction, SectionBounds
from .base import DumpParser, FILE_FORMAT_PATTERN

logger = logging.getLogger(__name__)

SECTION_PATTERN = re.compile(r'^Disassembly of section (.*):\s*$')
ENTRY_PATTERN = re.compile(r'^([0-9a-f]+) <(.*)>:\s*$')
INSTRUCTION_PATTERN = re.compile(
    r'^\s*([0-9a-f]+):\s+([0-9a-f]{2}(?: [0-9a-f]{2})*)(?:\s+(.*\S))?\s*$')
RELOCATION_PATTERN = re.compile(r'^\s*([0-9a-f]+):\s+(R_.*\S)\s+(.*\S)\s*$')

# Symbolic operand printed at the end of an instruction, e.g. "call 1a <foo+0x4>"
OPERAND_TARGET_PATTERN = re.compile(r'<.*>\s*$')
SYMBOL_OFFSET_PATTERN = re.compile(r'[-+]0x[0-9a-f]+$')
ZERO_BLOCK_MARKER = '...'

CodeTable = Dict[str, Dict[str, List[Instruction]]]


class CodeTableBuilder(DumpParser):
    """Parser for the disassembly listing"""

    dump_name = 'disassembly'

    def __init__(self):
        super().__init__()
        self.sections: List[str] = []
        self.code: CodeTable = {}
        self._section: Optional[str] = None
        self._entry: Optional[str] = None

    def _parse_line(self, line: str) -> bool:
        match = INSTRUCTION_PATTERN.match(line)
        if match:
            return self._add_instruction(
                int(match.group(1), 16), match.group(2), match.group(3))

        match = RELOCATION_PATTERN.match(line)
        if match:
            return self._apply_relocation(match.group(3))

        match = ENTRY_PATTERN.match(line)
        if match:
            if self._section is None:
                return False
            self._entry = match.group(2)
            self.code[self._section].setdefault(self._entry, [])
            return True

        # Blank lines, and the "..." objdump prints for skipped zero blocks
        if not line.strip() or line.strip() == ZERO_BLOCK_MARKER:
            return True

        match = SECTION_PATTERN.match(line)
        if match:
            self._section = match.group(1)
            self._entry = None
            if self._section not in self.code:
                self.sections.append(self._section)
                self.code[self._section] = {}
            return True

        return bool(FILE_FORMAT_PATTERN.match(line))

    def _add_instruction(self, address: int, encoded: str, text: Optional[str]) -> bool:
        if self._section is None or self._entry is None:
            return False

        self.code[self._section][self._entry].append(
            Instruction(address=address, encoded=encoded, text=text))
        return True

    def _apply_relocation(self, symbol: str) -> bool:
        """Rewrite the operand of the previous instruction to the relocated symbol"""
        if self._section is None or self._entry is None:
            return False

        instructions = self.code[self._section][self._entry]
        if not instructions:
            return False

        symbol = SYMBOL_OFFSET_PATTERN.sub('', symbol)
        previous = instructions[-1]
        if previous.text is not None:
            text = OPERAND_TARGET_PATTERN.sub(f'<{symbol}>', previous.text)
            instructions[-1] = Instruction(previous.address, previous.encoded, text)
        return True


def build_code_table(lines) -> CodeTableBuilder:
    """Parse a disassembly listing and return the populated builder"""
    builder = CodeTableBuilder()
    builder.feed(lines)
    logger.debug("Parsed %d sections from disassembly", len(builder.sections))
    return builder


def section_bounds(entries: Dict[str, List[Instruction]]) -> Optional[SectionBounds]:
    """Compute the address extent of one section of the code table.

    Args:
        entries: Entry name to instruction list mapping of a section

    Returns:
        SectionBounds, or None when the section has no instruction
    """
    lo_addr = None
    hi_addr = None

    for instructions in entries.values():
        if not instructions:
            continue
        start = instructions[0].address
        end = instructions[-1].end_address
        if lo_addr is None or start < lo_addr:
            lo_addr = start
        if hi_addr is None or end > hi_addr:
            hi_addr = end

    if lo_addr is None:
        return None
    return SectionBounds(lo_addr=lo_addr, hi_addr=hi_addr)
