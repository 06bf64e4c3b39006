"""Parsers for the objdump dumps and the line sequence to section matcher."""

from .code import CodeTableBuilder, build_code_table
from .lines import LineProgramDecoder, decode_line_program
from .matcher import MatchResult, SectionMatcher, match_sections
from .subprograms import SubprogramIndexBuilder, build_subprogram_index, join_declarations
from .symbols import SymbolTableBuilder, build_symbol_table

__all__ = [
    'CodeTableBuilder', 'build_code_table',
    'LineProgramDecoder', 'decode_line_program',
    'MatchResult', 'SectionMatcher', 'match_sections',
    'SubprogramIndexBuilder', 'build_subprogram_index', 'join_declarations',
    'SymbolTableBuilder', 'build_symbol_table',
]
