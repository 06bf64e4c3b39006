#!/usr/bin/env python3
"""
Subprogram declaration index from the debug info tree (`objdump --dwarf=info`).

The DWARF info has two ways to record where a function is declared, both
under a `DW_TAG_subprogram` tag: a direct entry carrying `DW_AT_decl_file`
and `DW_AT_decl_line`, or an indirect entry carrying `DW_AT_abstract_origin`
which points to the direct entry holding the information.

Two immutable maps come out of this module:
- the node table (node id -> SubprogramRecord) built while parsing, and
- the declaration index (symbol name -> Declaration) obtained by resolving
  the node table and joining its file indices with the line program file
  table (see `lines.py`), since both dumps share the same file numbering.
"""

import logging
import re
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from ..models import Declaration, SubprogramRecord
from .base import DumpParser

logger = logging.getLogger(__name__)

NODE_PATTERN = re.compile(r'<([0-9a-f]+)>:\s*.*\(DW_TAG_(.*)\)$')
NAME_PATTERN = re.compile(
    r'DW_AT(_linkage)?_name\s*:(?:\s*\(indirect (?:line )?string.*?\):)?\s+(.*)$')
ORIGIN_PATTERN = re.compile(r'DW_AT_abstract_origin\s*:\s+<0x([0-9a-f]+)>$')
DECL_FILE_PATTERN = re.compile(r'DW_AT_decl_file\s*:\s+(\d+)$')
DECL_LINE_PATTERN = re.compile(r'DW_AT_decl_line\s*:\s+(\d+)$')

SUBPROGRAM_TAG = 'subprogram'


class SubprogramIndexBuilder(DumpParser):
    """Parser collecting the attributes of every subprogram node.

    Lines outside subprogram nodes carry attributes of no interest here and
    are accepted silently; the info dump is far too rich to report them.
    """

    dump_name = 'debug info'

    def __init__(self):
        super().__init__()
        self._nodes: Dict[str, SubprogramRecord] = {}
        self._current: Optional[SubprogramRecord] = None
        self._tag = ''

    @property
    def nodes(self) -> Mapping[str, SubprogramRecord]:
        return MappingProxyType(self._nodes)

    def _parse_line(self, line: str) -> bool:
        match = NODE_PATTERN.search(line)
        if match:
            node_id, self._tag = match.group(1), match.group(2)
            self._current = SubprogramRecord(node_id=node_id)
            self._nodes[node_id] = self._current
            return True

        if self._tag != SUBPROGRAM_TAG:
            return True

        record = self._current

        match = NAME_PATTERN.search(line)
        if match:
            if match.group(1):
                record.linkage_name = match.group(2)
            else:
                record.name = match.group(2)
            return True

        match = ORIGIN_PATTERN.search(line)
        if match:
            record.origin = match.group(1)
            return True

        match = DECL_FILE_PATTERN.search(line)
        if match:
            record.file_index = int(match.group(1))
            return True

        match = DECL_LINE_PATTERN.search(line)
        if match:
            record.line = int(match.group(1))

        return True

    def resolve(self) -> Mapping[str, Tuple[int, int]]:
        """Resolve every named subprogram to its (file index, line).

        A node's own location wins; otherwise exactly one abstract origin
        hop is followed. Nodes with no name, or no location after the hop,
        are dropped.
        """
        resolved: Dict[str, Tuple[int, int]] = {}

        for record in self._nodes.values():
            name = record.symbol_name
            if name is None:
                continue

            if record.has_location:
                resolved[name] = (record.file_index, record.line)
                continue

            origin = self._nodes.get(record.origin) if record.origin else None
            if origin is not None and origin.has_location:
                resolved[name] = (origin.file_index, origin.line)
                continue

            logger.debug("Subprogram '%s' at <%s> has no declaration location",
                         name, record.node_id)

        return MappingProxyType(resolved)


def join_declarations(resolved: Mapping[str, Tuple[int, int]],
                      file_table: Mapping[int, str]) -> Mapping[str, Declaration]:
    """Substitute file indices with the paths of the line program file table.

    Args:
        resolved: Symbol name to (file index, line) mapping
        file_table: File index to path mapping from the line program dump

    Returns:
        Read-only symbol name to Declaration mapping
    """
    declarations: Dict[str, Declaration] = {}

    for name, (file_index, line) in resolved.items():
        path = file_table.get(file_index)
        if path is None:
            logger.debug("Subprogram '%s' refers to unknown file index %d",
                         name, file_index)
            continue
        declarations[name] = Declaration(file=path, line=line)

    return MappingProxyType(declarations)


def build_subprogram_index(lines) -> SubprogramIndexBuilder:
    """Parse a debug info dump and return the populated builder"""
    builder = SubprogramIndexBuilder()
    builder.feed(lines)
    logger.debug("Parsed %d debug info nodes", len(builder.nodes))
    return builder
