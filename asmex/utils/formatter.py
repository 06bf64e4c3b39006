#!/usr/bin/env python3
"""
Plain text rendering of annotated listings.
"""

from typing import List, Optional

from ..models import AnnotatedInstruction, AnnotatedSourceLine, SourcePosition

BYTES_COLUMN_WIDTH = 24


def format_positions(positions: Optional[List[SourcePosition]]) -> str:
    """Render source positions as 'file:line:column' items, deduplicated in order"""
    if not positions:
        return ''

    rendered = []
    for position in positions:
        text = str(position)
        if text not in rendered:
            rendered.append(text)
    return ', '.join(rendered)


def format_instruction(annotated: AnnotatedInstruction) -> str:
    """Render one instruction line with its source positions"""
    instruction = annotated.instruction
    line = f"{instruction.address:8x}:  {instruction.encoded:<{BYTES_COLUMN_WIDTH}} "
    line += instruction.text or ''

    positions = format_positions(annotated.positions)
    if positions:
        line = f"{line:<72} ; {positions}"
    return line.rstrip()


def format_listing(listing: List[AnnotatedInstruction]) -> List[str]:
    """Render an annotated instruction list, with a header before every entry"""
    lines = []
    entry = None

    for annotated in listing:
        if annotated.entry != entry:
            entry = annotated.entry
            if lines:
                lines.append('')
            lines.append(f"{annotated.instruction.address:016x} <{entry}>:")
        lines.append(format_instruction(annotated))

    return lines


def format_source(source: List[AnnotatedSourceLine],
                  listing: List[AnnotatedInstruction]) -> List[str]:
    """Render source lines followed by the addresses of their instructions"""
    lines = []
    for source_line in source:
        line = f"{source_line.number:6d}  {source_line.text}"
        if source_line.instruction_indices:
            addresses = ' '.join(
                f"{listing[index].instruction.address:x}"
                for index in source_line.instruction_indices)
            line = f"{line:<80} ; {addresses}"
        lines.append(line.rstrip())
    return lines
