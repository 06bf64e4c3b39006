#!/usr/bin/env python3
"""
Sample objdump output used across the test suite.

The dumps describe a small x86-64 executable built from two compilation
units: main.c (main) and util.c (square), plus the crt `.init` section
which has no line information.
"""

from typing import Dict, List, Tuple

from asmex.core.debug_object import DebugObject
from asmex.models import Instruction, LineSequence, SourcePosition

CODE_DUMP = """
prog:     file format elf64-x86-64


Disassembly of section .init:

0000000000001000 <_init>:
    1000:\tf3 0f 1e fa          \tendbr64
    1004:\t48 83 ec 08          \tsub    $0x8,%rsp
    1008:\t48 83 c4 08          \tadd    $0x8,%rsp
    100c:\tc3                   \tret

Disassembly of section .text:

0000000000001040 <main>:
    1040:\t55                   \tpush   %rbp
    1041:\t48 89 e5             \tmov    %rsp,%rbp
    1044:\tbf 02 00 00 00       \tmov    $0x2,%edi
    1049:\te8 12 00 00 00       \tcall   1060 <square>
    104e:\t5d                   \tpop    %rbp
    104f:\tc3                   \tret
\t...

0000000000001060 <square>:
    1060:\t55                   \tpush   %rbp
    1061:\t48 89 e5             \tmov    %rsp,%rbp
    1064:\t89 7d fc             \tmov    %edi,-0x4(%rbp)
    1067:\t8b 45 fc             \tmov    -0x4(%rbp),%eax
    106a:\t0f af c0             \timul   %eax,%eax
    106d:\t5d                   \tpop    %rbp
    106e:\tc3                   \tret
""".splitlines()

SYMBOL_DUMP = """
prog:     file format elf64-x86-64

SYMBOL TABLE:
0000000000000000 l    df *ABS*\t0000000000000000              main.c
0000000000001000 g     F .init\t0000000000000000              .hidden _init
0000000000001040 g     F .text\t0000000000000010              main
0000000000001060 g     F .text\t000000000000000f              square
0000000000001060 g     F .text\t000000000000000f              square_alias
""".splitlines()

INFO_DUMP = """
prog:     file format elf64-x86-64

Contents of the .debug_info section:

  Compilation Unit @ offset 0x0:
   Length:        0x4e (32-bit)
   Version:       5
   Unit Type:     DW_UT_compile (1)
   Abbrev Offset: 0x0
   Pointer Size:  8
 <0><c>: Abbrev Number: 1 (DW_TAG_compile_unit)
    <d>   DW_AT_producer    : (indirect string, offset: 0x0): GNU C17 13.2.0 -g
    <11>   DW_AT_language    : 29\t(C11)
    <12>   DW_AT_name        : (indirect line string, offset: 0x0): main.c
    <16>   DW_AT_comp_dir    : (indirect line string, offset: 0x7): /home/user/prog
 <1><2d>: Abbrev Number: 2 (DW_TAG_subprogram)
    <2e>   DW_AT_external    : 1
    <2e>   DW_AT_name        : (indirect string, offset: 0x10): main
    <32>   DW_AT_decl_file   : 1
    <33>   DW_AT_decl_line   : 3
    <34>   DW_AT_decl_column : 5
    <35>   DW_AT_type        : <0x4b>
 <1><4b>: Abbrev Number: 3 (DW_TAG_base_type)
    <4c>   DW_AT_byte_size   : 4
    <4e>   DW_AT_name        : int
 <1><52>: Abbrev Number: 0
  Compilation Unit @ offset 0x53:
   Length:        0x40 (32-bit)
   Version:       5
 <0><5f>: Abbrev Number: 1 (DW_TAG_compile_unit)
    <65>   DW_AT_name        : (indirect line string, offset: 0x20): util.c
    <69>   DW_AT_comp_dir    : (indirect line string, offset: 0x7): /home/user/prog
 <1><80>: Abbrev Number: 2 (DW_TAG_subprogram)
    <81>   DW_AT_external    : 1
    <81>   DW_AT_name        : (indirect string, offset: 0x15): square
    <85>   DW_AT_decl_file   : 1
    <86>   DW_AT_decl_line   : 1
    <87>   DW_AT_decl_column : 5
 <2><90>: Abbrev Number: 4 (DW_TAG_formal_parameter)
    <91>   DW_AT_name        : x
    <93>   DW_AT_decl_file   : 1
    <94>   DW_AT_decl_line   : 1
""".splitlines()

LINES_DUMP = """
prog:     file format elf64-x86-64

Raw dump of debug contents of section .debug_line:

  Offset:                      0x0
  Length:                      80
  DWARF Version:               5
  Address size (bytes):        8
  Segment selector (bytes):    0
  Prologue Length:             42
  Minimum Instruction Length:  1
  Maximum Ops per Instruction: 1
  Initial value of 'is_stmt':  1
  Line Base:                   -5
  Line Range:                  14
  Opcode Base:                 13

 Opcodes:
  Opcode 1 has 0 args
  Opcode 2 has 1 arg
  Opcode 3 has 1 arg

 The Directory Table (offset 0x22, lines 1, columns 1):
  Entry\tName
  0\t(line_strp)\t(offset: 0x7): /home/user/prog

 The File Name Table (offset 0x30, lines 2, columns 2):
  Entry\tDir\tName
  0\t0\t(line_strp)\t(offset: 0x0): main.c
  1\t0\t(line_strp)\t(offset: 0x0): main.c

 Line Number Statements:
  [0x0000003c]  Set column to 12
  [0x0000003e]  Extended opcode 2: set Address to 0x1040
  [0x00000049]  Special opcode 7: advance Address by 0 to 0x1040 and Line by 2 to 3
  [0x0000004a]  Set column to 5
  [0x0000004c]  Special opcode 62: advance Address by 4 to 0x1044 and Line by 1 to 4
  [0x0000004d]  Extended opcode 4: set Discriminator to 1
  [0x00000051]  Special opcode 75: advance Address by 5 to 0x1049 and Line by 0 to 4 (view 1)
  [0x00000052]  Set column to 1
  [0x00000054]  Special opcode 76: advance Address by 5 to 0x104e and Line by 1 to 5
  [0x00000055]  Advance PC by 2 to 0x1050
  [0x00000057]  Extended opcode 1: End of Sequence

  Offset:                      0x5a
  Length:                      70
  DWARF Version:               5
  Initial value of 'is_stmt':  1

 The Directory Table (offset 0x7c, lines 1, columns 1):
  Entry\tName
  0\t(line_strp)\t(offset: 0x7): /home/user/prog

 The File Name Table (offset 0x8a, lines 2, columns 2):
  Entry\tDir\tName
  0\t0\t(line_strp)\t(offset: 0x20): util.c
  1\t0\t(line_strp)\t(offset: 0x20): util.c

 Line Number Statements:
  [0x00000096]  Set column to 16
  [0x00000098]  Extended opcode 2: set Address to 0x1060
  [0x000000a3]  Copy
  [0x000000a4]  Set column to 12
  [0x000000a6]  Special opcode 104: advance Address by 7 to 0x1067 and Line by 1 to 2
  [0x000000a7]  Set column to 1
  [0x000000a9]  Special opcode 90: advance Address by 6 to 0x106d and Line by 1 to 3
  [0x000000aa]  Advance PC by 2 to 0x106f
  [0x000000ac]  Extended opcode 1: End of Sequence

""".splitlines()

COMPDIR = '/home/user/prog'


def build_sample_object(path=None) -> DebugObject:
    """Build the DebugObject of the sample executable from its dumps"""
    return DebugObject.from_streams(CODE_DUMP, SYMBOL_DUMP, INFO_DUMP, LINES_DUMP,
                                    compdir=COMPDIR, path=path)


def make_instructions(layout: List[Tuple[int, int]]) -> List[Instruction]:
    """Build instructions from (address, size) pairs"""
    return [
        Instruction(address=address, encoded=' '.join(['90'] * size), text='nop')
        for address, size in layout
    ]


def make_code(sections: Dict[str, List[Tuple[int, int]]]) -> Dict[str, Dict[str, List[Instruction]]]:
    """Build a code table holding one entry per section"""
    return {
        section: {f"{section}_entry": make_instructions(layout)}
        for section, layout in sections.items()
    }


def make_sequence(rows: Dict[int, List[Tuple[str, int]]]) -> LineSequence:
    """Build a line sequence from address -> [(file, line)] rows"""
    sequence = LineSequence()
    for address in sorted(rows):
        for file, line in rows[address]:
            sequence.add(address, SourcePosition(file=file, line=line, column=0,
                                                 is_stmt=True))
    return sequence


def span_sequence(start: int, end: int, step: int = 4, file: str = 'a.c') -> LineSequence:
    """Build a sequence with one row every `step` bytes from start to end"""
    return make_sequence({
        address: [(file, 1 + (address - start) // step)]
        for address in range(start, end + 1, step)
    })
