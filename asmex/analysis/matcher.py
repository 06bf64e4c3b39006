#!/usr/bin/env python3
"""
Association of line sequences with ELF sections.

Compilers emit the address to source line mapping as one or more line
sequences, but nothing in the debug information says which section a
sequence is about. Given a section and an address there may therefore be
several sequences claiming a source line for it.

The matcher assigns every sequence to a single section and address range.
It keeps, for every sequence, the tuple of sections it may still describe
(its candidates, in listing order) and narrows these tuples with successive
filters. Every filter is a pure function from candidates to candidates.
After each filter the matching is checked for completeness (every sequence
with candidates left has exactly one and no two intervals of a section
overlap); if the filters run out, a best effort pass forces an assignment.

Note: a (section, address) pair ends up bound to a single sequence, while a
single sequence may cover many addresses.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..models import (Declaration, Instruction, LineSequence, MatchedInterval,
                      SectionBounds, SymbolAlias)
from .code import section_bounds

logger = logging.getLogger(__name__)

Candidates = List[Tuple[str, ...]]
Span = Tuple[int, int]

STAGE_SIZE = 'size'
STAGE_OVERLAP = 'overlap'
STAGE_ALIGNMENT = 'alignment'
STAGE_SYMBOL = 'symbol'
STAGE_SYMBOL_OVERLAP = 'symbol-overlap'
STAGE_BEST_EFFORT = 'best-effort'


def spans_overlap(first: Span, second: Span) -> bool:
    """Check whether two sequence spans claim common addresses.

    Spans are closed ranges, end of range marker included, so two spans that
    merely touch (one ends where the other starts) overlap as well.
    """
    first_start, first_end = first
    second_start, second_end = second
    return first_start <= second_end and second_start <= first_end


@dataclass
class MatchResult:
    """Outcome of the section matching"""
    table: Dict[str, List[MatchedInterval]]
    stage: str
    duplicates: Dict[int, int] = field(default_factory=dict)
    unmatched: List[int] = field(default_factory=list)
    # sequence index -> section -> average line distances per corroborating symbol
    evidence: Dict[int, Dict[str, List[float]]] = field(default_factory=dict)

    def section_of(self, sequence_index: int) -> Optional[str]:
        """Return the section a sequence (or the sequence it duplicates) was bound to"""
        sequence_index = self.duplicates.get(sequence_index, sequence_index)
        for section, intervals in self.table.items():
            if any(interval.sequence_index == sequence_index for interval in intervals):
                return section
        return None


class SectionMatcher:
    """Resolve which section and address range every line sequence describes"""

    def __init__(self,
                 sections: Sequence[str],
                 code: Mapping[str, Mapping[str, List[Instruction]]],
                 sequences: Sequence[LineSequence],
                 symbols: Optional[Mapping[str, Mapping[int, List[SymbolAlias]]]] = None,
                 declarations: Optional[Mapping[str, Declaration]] = None):
        """Initialize the matcher with the outputs of the four builders.

        Args:
            sections: Section names in listing order
            code: Section -> entry -> instructions table
            sequences: Decoded line sequences, in dump order
            symbols: Section -> address -> symbol aliases table
            declarations: Symbol name -> subprogram declaration index
        """
        self.sequences = list(sequences)
        self.symbols = symbols or {}
        self.declarations = declarations or {}
        self.code = code

        # Sections without any instruction cannot be described by a sequence
        self.bounds: Dict[str, SectionBounds] = {}
        for section in sections:
            bounds = section_bounds(code.get(section, {}))
            if bounds is not None:
                self.bounds[section] = bounds
        self.sections: Tuple[str, ...] = tuple(s for s in sections if s in self.bounds)

        self._spans: List[Span] = [
            (seq.start, seq.end) if seq else (0, 0) for seq in self.sequences
        ]
        self._instruction_addresses: Dict[str, Set[int]] = {}

    def match(self) -> MatchResult:
        """Run the filters in order and return the first complete matching"""
        duplicates = find_duplicate_sequences(self.sequences)
        candidates: Candidates = [
            () if index in duplicates or not sequence else self.sections
            for index, sequence in enumerate(self.sequences)
        ]
        evidence: Dict[int, Dict[str, List[float]]] = {}

        def filter_by_symbol(current: Candidates) -> Candidates:
            filtered, found = self.filter_by_symbol(current)
            evidence.update(found)
            return filtered

        steps = [
            (STAGE_SIZE, self.filter_by_size),
            (STAGE_OVERLAP, self.filter_by_overlap),
            (STAGE_ALIGNMENT, self.filter_by_alignment),
            (STAGE_SYMBOL, filter_by_symbol),
            (STAGE_SYMBOL_OVERLAP, self.filter_by_overlap),
        ]

        for stage, step in steps:
            candidates = step(candidates)

            table = self.try_complete(candidates)
            if table is not None:
                logger.debug("Section matching complete after %s filter", stage)
                return self._result(table, stage, duplicates, evidence)

        logger.debug("Section matching still ambiguous, using best effort")
        table = self.complete_best_effort(candidates)
        return self._result(table, STAGE_BEST_EFFORT, duplicates, evidence)

    # Filters

    def filter_by_size(self, candidates: Candidates) -> Candidates:
        """Drop sections a sequence does not fit in.

        A line sequence is about contiguous addresses, so it cannot be larger
        than (or outside of) the section it describes.
        """
        filtered = []
        for index, sections in enumerate(candidates):
            start, end = self._spans[index]
            filtered.append(tuple(
                section for section in sections
                if self.bounds[section].contains_span(start, end)
            ))
        return filtered

    def filter_by_overlap(self, candidates: Candidates) -> Candidates:
        """Make the address range of a sequence bound to one section exclusive.

        The span of every sequence left with a single section is reserved on
        that section; ambiguous sequences overlapping a reservation lose the
        section. Only ranges are reserved, not whole sections: several
        sequences may share a section as long as their ranges are disjoint.

        Repeats until a full pass removes nothing.
        """
        while True:
            reservations = self._reservations(candidates)
            changed = False
            filtered = []

            for index, sections in enumerate(candidates):
                if len(sections) <= 1:
                    filtered.append(sections)
                    continue

                span = self._spans[index]
                kept = tuple(
                    section for section in sections
                    if not any(spans_overlap(span, reserved)
                               for reserved in reservations.get(section, []))
                )
                if kept != sections:
                    changed = True
                filtered.append(kept)

            candidates = filtered
            if not changed:
                return candidates

    def filter_by_alignment(self, candidates: Candidates) -> Candidates:
        """Drop sections where a sequence points inside an instruction.

        Line rows always refer to the first byte of an instruction. The
        highest address of a sequence may instead be the address right
        after the last instruction of the section.
        """
        filtered = []
        for index, sections in enumerate(candidates):
            if len(sections) <= 1:
                filtered.append(sections)
                continue

            addresses = self.sequences[index].addresses
            filtered.append(tuple(
                section for section in sections
                if self._is_aligned(section, addresses)
            ))
        return filtered

    def filter_by_symbol(self, candidates: Candidates
                         ) -> Tuple[Candidates, Dict[int, Dict[str, List[float]]]]:
        """Drop sections for which the debug info gives no corroborating symbol.

        For every symbol of a candidate section with a known declaration,
        the rows the sequence records at the symbol address in the declaring
        file, at or after the declaration line, are corroborating evidence.
        When some candidate of a sequence has evidence, candidates without
        any are dropped.

        The average line distance of every corroborating symbol is returned
        alongside (lower means a closer match) but does not decide anything.
        """
        filtered = []
        evidence: Dict[int, Dict[str, List[float]]] = {}

        for index, sections in enumerate(candidates):
            if len(sections) <= 1:
                filtered.append(sections)
                continue

            distances = {}
            for section in sections:
                section_distances = self._symbol_distances(self.sequences[index], section)
                if section_distances:
                    distances[section] = section_distances

            if distances:
                evidence[index] = distances
                logger.debug("Sequence %d symbol evidence: %s", index, distances)
                sections = tuple(section for section in sections if section in distances)
            filtered.append(sections)

        return filtered, evidence

    # Completion

    def try_complete(self, candidates: Candidates) -> Optional[Dict[str, List[MatchedInterval]]]:
        """Build the matching table if the candidates are unambiguous.

        Returns:
            The table, or None when a sequence still has several candidates
            or two intervals of a section overlap
        """
        placed: Dict[str, List[MatchedInterval]] = {}

        for index, sections in enumerate(candidates):
            if not sections:
                continue
            if len(sections) > 1:
                return None
            start, end = self._spans[index]
            placed.setdefault(sections[0], []).append(
                MatchedInterval(start, end, index, self.sequences[index]))

        for intervals in placed.values():
            intervals.sort(key=lambda interval: interval.start)
            for previous, current in zip(intervals, intervals[1:]):
                if spans_overlap((previous.start, previous.end),
                                 (current.start, current.end)):
                    return None

        return self._ordered(placed)

    def complete_best_effort(self, candidates: Candidates) -> Dict[str, List[MatchedInterval]]:
        """Force an association when the filters cannot decide.

        Sequences are placed in order, each on the first of its candidate
        sections where it fits: a section whose reserved ranges do not
        overlap the sequence, or where it overlaps exactly one reservation
        with a strictly smaller span, which it then replaces. A candidate
        overlapping several reservations is skipped. Sequences skipped or
        replaced are not reconsidered.
        """
        reserved: Dict[str, Dict[int, Tuple[int, int]]] = {}

        for index, sections in enumerate(candidates):
            start, end = self._spans[index]

            for section in sections:
                ranges = reserved.setdefault(section, {})
                conflicts = [
                    other_start for other_start in sorted(ranges)
                    if spans_overlap((start, end), (other_start, ranges[other_start][0]))
                ]

                if len(conflicts) > 1:
                    continue

                if conflicts:
                    other_start = conflicts[0]
                    other_end, other_index = ranges[other_start]
                    if end - start <= other_end - other_start:
                        continue
                    logger.debug("Sequence %d replaces sequence %d on %s",
                                 index, other_index, section)
                    del ranges[other_start]

                ranges[start] = (end, index)
                break

        placed = {
            section: [
                MatchedInterval(start, end, index, self.sequences[index])
                for start, (end, index) in sorted(ranges.items())
            ]
            for section, ranges in reserved.items() if ranges
        }
        return self._ordered(placed)

    # Helpers

    def _reservations(self, candidates: Candidates) -> Dict[str, List[Span]]:
        reservations: Dict[str, List[Span]] = {}
        for index, sections in enumerate(candidates):
            if len(sections) == 1:
                reservations.setdefault(sections[0], []).append(self._spans[index])
        return reservations

    def _addresses_of(self, section: str) -> Set[int]:
        if section not in self._instruction_addresses:
            self._instruction_addresses[section] = {
                instruction.address
                for instructions in self.code[section].values()
                for instruction in instructions
            }
        return self._instruction_addresses[section]

    def _is_aligned(self, section: str, addresses: List[int]) -> bool:
        allowed = self._addresses_of(section)
        *inner, last = addresses
        if last not in allowed and last != self.bounds[section].hi_addr:
            return False
        return all(address in allowed for address in inner)

    def _symbol_distances(self, sequence: LineSequence, section: str) -> List[float]:
        distances = []
        for address, aliases in self.symbols.get(section, {}).items():
            positions = sequence.rows.get(address)
            if not positions:
                continue
            for alias in aliases:
                declaration = self.declarations.get(alias.name)
                if declaration is None:
                    continue
                gaps = [
                    position.line - declaration.line for position in positions
                    if position.file == declaration.file
                    and position.line >= declaration.line
                ]
                if gaps:
                    distances.append(sum(gaps) / len(gaps))
        return distances

    def _ordered(self, placed: Dict[str, List[MatchedInterval]]) -> Dict[str, List[MatchedInterval]]:
        """Order the table by section listing order"""
        return {section: placed[section] for section in self.sections if section in placed}

    def _result(self, table, stage, duplicates, evidence) -> MatchResult:
        matched = {interval.sequence_index
                   for intervals in table.values() for interval in intervals}
        unmatched = [
            index for index in range(len(self.sequences))
            if index not in duplicates and index not in matched
        ]
        if unmatched:
            logger.info("%d line sequences could not be bound to a section",
                        len(unmatched))
        return MatchResult(table=table, stage=stage, duplicates=duplicates,
                           unmatched=unmatched, evidence=evidence)


def find_duplicate_sequences(sequences: Iterable[LineSequence]) -> Dict[int, int]:
    """Find sequences identical to an earlier one.

    Some compilers emit sets of identical line sequences; only the first of
    each set needs matching.

    Returns:
        Mapping from the index of every repeated sequence to the index of
        its first occurrence (first occurrences never appear as keys)
    """
    first_seen: Dict[Tuple, int] = {}
    duplicates: Dict[int, int] = {}

    for index, sequence in enumerate(sequences):
        fingerprint = sequence.fingerprint()
        if fingerprint in first_seen:
            duplicates[index] = first_seen[fingerprint]
        else:
            first_seen[fingerprint] = index

    return duplicates


def match_sections(sections, code, sequences, symbols=None, declarations=None) -> MatchResult:
    """Convenience wrapper running a SectionMatcher once"""
    return SectionMatcher(sections, code, sequences, symbols, declarations).match()
