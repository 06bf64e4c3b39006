#!/usr/bin/env python3
"""
Symbol table parsing (`objdump --syms`).
"""

import logging
import re
from typing import Dict, List

from ..models import SymbolAlias
from .base import DumpParser, FILE_FORMAT_PATTERN

logger = logging.getLogger(__name__)

# "0000000000001129 g     F .text  0000000000000016              main"
SYMBOL_ROW_PATTERN = re.compile(r'^([0-9a-f]+) .{7} (\S+)\s+([0-9a-f]+)\s+(.*)$')
SYMBOL_TABLE_HEADER = 'SYMBOL TABLE:'

SymbolTable = Dict[str, Dict[int, List[SymbolAlias]]]


class SymbolTableBuilder(DumpParser):
    """Parser accumulating, per section and address, every symbol name found there.

    Several names at one address (aliases) are kept in dump order.
    """

    dump_name = 'symbol table'

    def __init__(self):
        super().__init__()
        self.symbols: SymbolTable = {}

    def _parse_line(self, line: str) -> bool:
        match = SYMBOL_ROW_PATTERN.match(line)
        if match:
            address = int(match.group(1), 16)
            section = match.group(2)
            size = int(match.group(3), 16)
            name = match.group(4)
            self.symbols.setdefault(section, {}).setdefault(address, []).append(
                SymbolAlias(name=name, end_address=address + size))
            return True

        if line == '' or line == SYMBOL_TABLE_HEADER:
            return True

        return bool(FILE_FORMAT_PATTERN.match(line))

    def names_at(self, section: str, address: int) -> List[str]:
        """Return every symbol name recorded at the given section address"""
        return [alias.name for alias in self.symbols.get(section, {}).get(address, [])]


def build_symbol_table(lines) -> SymbolTableBuilder:
    """Parse a symbol table dump and return the populated builder"""
    builder = SymbolTableBuilder()
    builder.feed(lines)
    logger.debug("Parsed symbols for %d sections", len(builder.symbols))
    return builder
