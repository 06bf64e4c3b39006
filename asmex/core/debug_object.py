#!/usr/bin/env python3
"""
Debug information snapshot of one object file.

`DebugObject` owns every table built from the four dumps of an object and
answers the queries of the display layer: sections, entries, instructions
and the source positions of a (section, address) pair. A snapshot is never
modified once built; reloading produces a new snapshot.
"""

import bisect
import logging
import os
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..analysis.code import CodeTableBuilder, build_code_table
from ..analysis.lines import LineProgramDecoder, decode_line_program
from ..analysis.matcher import MatchResult, SectionMatcher
from ..analysis.subprograms import (SubprogramIndexBuilder, build_subprogram_index,
                                    join_declarations)
from ..analysis.symbols import SymbolTableBuilder, build_symbol_table
from ..models import (AnnotatedInstruction, AnnotatedSourceLine, Declaration,
                      Instruction, LineSequence, MatchedInterval, SourcePosition)

logger = logging.getLogger(__name__)


class DebugObject:  # pylint: disable=too-many-instance-attributes
    """Instruction to source line mapping of an object file"""

    def __init__(self,
                 code: CodeTableBuilder,
                 symbols: SymbolTableBuilder,
                 subprograms: SubprogramIndexBuilder,
                 lines: LineProgramDecoder,
                 compdir: Optional[str] = None,
                 path: Optional[str] = None):
        """Assemble a snapshot from the four builders and run the section matcher.

        Args:
            code: Populated disassembly parser
            symbols: Populated symbol table parser
            subprograms: Populated debug info parser
            lines: Populated line program decoder
            compdir: Compilation directory of the object, if known
            path: Path of the object the dumps were taken from
        """
        self.path = path
        self.compdir = compdir

        self._sections: Tuple[str, ...] = tuple(code.sections)
        self._code = code.code
        self._symbols = symbols.symbols
        self._sequences: Tuple[LineSequence, ...] = tuple(lines.sequences)
        self._file_table = lines.file_table
        self._declarations = join_declarations(subprograms.resolve(), lines.file_table)

        self._matching = SectionMatcher(
            self._sections, self._code, self._sequences,
            self._symbols, self._declarations).match()
        self._starts: Dict[str, List[int]] = {
            section: [interval.start for interval in intervals]
            for section, intervals in self._matching.table.items()
        }

        logger.debug("Matched %d line sequences over %d sections (stage: %s)",
                     len(self._sequences), len(self._sections), self._matching.stage)

    @classmethod
    def from_streams(cls,
                     code: Iterable[str],
                     symbols: Iterable[str],
                     info: Iterable[str],
                     lines: Iterable[str],
                     compdir: Optional[str] = None,
                     path: Optional[str] = None) -> 'DebugObject':
        """Build a snapshot from already captured dump text.

        Args:
            code: Lines of `objdump -dCr`
            symbols: Lines of `objdump --syms`
            info: Lines of `objdump --dwarf=info`
            lines: Lines of `objdump --dwarf=rawline`
            compdir: Compilation directory of the object, if known
            path: Path of the object the dumps were taken from

        Raises:
            StructuralError: If the line program dump has no file table
        """
        return cls(build_code_table(code), build_symbol_table(symbols),
                   build_subprogram_index(info), decode_line_program(lines),
                   compdir=compdir, path=path)

    @classmethod
    def load(cls, path: str, runner=None, jobs: int = 4) -> 'DebugObject':
        """Dump the object with objdump and build a snapshot from the output"""
        from .loader import load_object  # pylint: disable=import-outside-toplevel
        return load_object(path, runner=runner, jobs=jobs)

    def reload(self, runner=None, jobs: int = 4) -> 'DebugObject':
        """Build a fresh snapshot of the same object; this one is left untouched"""
        if self.path is None:
            raise ValueError("Snapshot was not loaded from a file")
        return self.load(self.path, runner=runner, jobs=jobs)

    # Code table projections

    def sections(self) -> List[str]:
        """Section names in disassembly listing order"""
        return list(self._sections)

    def entries(self, section: str) -> Optional[List[str]]:
        """Entry names of a section ordered by their first instruction address"""
        section_code = self._code.get(section)
        if section_code is None:
            return None

        return sorted(
            (name for name, instructions in section_code.items() if instructions),
            key=lambda name: section_code[name][0].address)

    def instructions(self, section: str, entry: str) -> Optional[List[Instruction]]:
        """Instructions of an entry, in listing order.

        The entry may be named by any symbol table alias located at the
        entry's first instruction.
        """
        section_code = self._code.get(section)
        if section_code is None:
            return None

        instructions = section_code.get(entry)
        if instructions is not None:
            return list(instructions)

        for address, aliases in self._symbols.get(section, {}).items():
            if not any(alias.name == entry for alias in aliases):
                continue
            for candidate in section_code.values():
                if candidate and candidate[0].address == address:
                    return list(candidate)

        return None

    # Line information

    def resolve(self, section: str, address: int) -> Optional[List[SourcePosition]]:
        """Source positions recorded for an instruction address.

        Returns:
            Positions at that exact address in the sequence bound to the
            enclosing range, or None if no row exists there
        """
        starts = self._starts.get(section)
        if not starts:
            return None

        index = bisect.bisect_right(starts, address) - 1
        if index < 0:
            return None

        interval = self._matching.table[section][index]
        if not interval.contains(address):
            return None
        return interval.sequence.positions_at(address)

    @property
    def matching(self) -> MatchResult:
        return self._matching

    def intervals(self, section: str) -> List[MatchedInterval]:
        """Sorted address ranges of a section bound to line sequences"""
        return list(self._matching.table.get(section, []))

    @property
    def sequences(self) -> Tuple[LineSequence, ...]:
        return self._sequences

    @property
    def declarations(self) -> Mapping[str, Declaration]:
        return self._declarations

    @property
    def file_table(self) -> Mapping[int, str]:
        return self._file_table

    def source_files(self) -> List[str]:
        """Every source file mentioned by a matched line sequence, sorted"""
        files = set()
        for intervals in self._matching.table.values():
            for interval in intervals:
                for positions in interval.sequence.rows.values():
                    files.update(p.file for p in positions if p.file is not None)
        return sorted(files)

    # Derived listings for the display layer

    def annotated_instructions(self, section: str,
                               entry: Optional[str] = None) -> List[AnnotatedInstruction]:
        """Pair instructions with their resolved source positions.

        Args:
            section: Section name
            entry: Entry name; every entry of the section when omitted

        Returns:
            Annotated instructions in entry then listing order
        """
        if entry is not None:
            entries = [entry]
        else:
            entries = self.entries(section) or []

        listing = []
        for name in entries:
            for instruction in self.instructions(section, name) or []:
                listing.append(AnnotatedInstruction(
                    section=section, entry=name, instruction=instruction,
                    positions=self.resolve(section, instruction.address)))
        return listing

    def annotate_source(self, source_file: str, source_lines: List[str],
                        listing: List[AnnotatedInstruction]) -> List[AnnotatedSourceLine]:
        """Pair every line of a source file with the instructions it produced.

        Args:
            source_file: Path of the file as recorded in the line program
            source_lines: Text of the file, one item per line
            listing: Annotated instructions, see `annotated_instructions()`

        Returns:
            One AnnotatedSourceLine per source line holding indices into listing
        """
        wanted = os.path.normpath(source_file)
        by_line: Dict[int, List[int]] = {}

        for index, annotated in enumerate(listing):
            lines_hit = {
                position.line for position in annotated.positions or []
                if position.file is not None and os.path.normpath(position.file) == wanted
            }
            for line in lines_hit:
                by_line.setdefault(line, []).append(index)

        return [
            AnnotatedSourceLine(number=number, text=text.rstrip('\n'),
                                instruction_indices=by_line.get(number, []))
            for number, text in enumerate(source_lines, start=1)
        ]
