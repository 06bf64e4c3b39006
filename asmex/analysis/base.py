#!/usr/bin/env python3
"""
Common line-oriented driver for the objdump output parsers.
"""

import logging
import re
from typing import Iterable, List, Set

logger = logging.getLogger(__name__)

# Banner printed by objdump before every dump: "path.o:     file format elf64-x86-64"
FILE_FORMAT_PATTERN = re.compile(r'^.*\S:\s+file format .*$')


class DumpParser:
    """Feed a text dump line by line to a parser, collecting unknown lines.

    Subclasses implement `_parse_line()` returning True when the line was
    understood (consumed or deliberately ignored) and False otherwise.
    """

    # Human readable name of the dump, used in diagnostics
    dump_name = 'dump'

    def __init__(self):
        self.unrecognized: List[str] = []
        self._reported: Set[str] = set()

    def feed(self, lines: Iterable[str]) -> None:
        """Parse every line of the dump"""
        for line in lines:
            line = line.rstrip('\r\n')
            if not self._parse_line(line):
                self._report_unrecognized(line)

    def _parse_line(self, line: str) -> bool:
        raise NotImplementedError

    def _report_unrecognized(self, line: str) -> None:
        """Record a line no pattern accepted; parsing continues"""
        if line in self._reported:
            logger.debug("Unknown line in %s (repeated): '%s'", self.dump_name, line)
        else:
            logger.warning("Unknown line in %s: '%s'", self.dump_name, line)
            self._reported.add(line)
        self.unrecognized.append(line)
