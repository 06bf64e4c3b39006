#!/usr/bin/env python3
"""
Unit tests for listing rendering
"""

import unittest

from asmex.models import (AnnotatedInstruction, AnnotatedSourceLine, Instruction,
                          SourcePosition)
from asmex.utils.formatter import (format_instruction, format_listing, format_positions,
                                   format_source)

MAIN_C_3 = SourcePosition('main.c', 3, 12, True)


def annotated(entry, address, encoded, text, positions=None):
    """Build an annotated .text instruction"""
    return AnnotatedInstruction(section='.text', entry=entry,
                                instruction=Instruction(address, encoded, text),
                                positions=positions)


class TestFormatter(unittest.TestCase):
    """Test rendering of annotated listings"""

    def test_positions(self):
        """Test that repeated positions are printed once, in order"""
        positions = [MAIN_C_3, SourcePosition('main.c', 3, 12, False),
                     SourcePosition('inc.h', 7, 1, True)]
        self.assertEqual(format_positions(positions), 'main.c:3:12, inc.h:7:1')

    def test_no_positions(self):
        """Test rendering without positions"""
        self.assertEqual(format_positions(None), '')
        self.assertEqual(format_positions([]), '')

    def test_instruction_with_position(self):
        """Test an instruction line carrying its source position"""
        line = format_instruction(annotated('main', 0x1040, '55', 'push   %rbp', [MAIN_C_3]))
        self.assertTrue(line.startswith('    1040:  55 '))
        self.assertIn('push   %rbp', line)
        self.assertTrue(line.endswith(' ; main.c:3:12'))

    def test_continuation_line(self):
        """Test an encoding continuation without text or position"""
        line = format_instruction(annotated('main', 0x1050, '33 22 11', None))
        self.assertEqual(line, '    1050:  33 22 11')

    def test_listing_headers(self):
        """Test that every entry gets a header, separated by a blank line"""
        listing = [
            annotated('main', 0x1040, '55', 'push   %rbp'),
            annotated('main', 0x1041, 'c3', 'ret'),
            annotated('square', 0x1050, 'c3', 'ret'),
        ]
        lines = format_listing(listing)
        self.assertEqual(lines[0], '0000000000001040 <main>:')
        self.assertEqual(lines[3], '')
        self.assertEqual(lines[4], '0000000000001050 <square>:')
        self.assertEqual(len(lines), 6)

    def test_empty_listing(self):
        """Test rendering an empty listing"""
        self.assertEqual(format_listing([]), [])

    def test_source(self):
        """Test source lines followed by instruction addresses"""
        listing = [annotated('square', 0x1050, '55', 'push   %rbp'),
                   annotated('square', 0x1057, '8b 45 fc', 'mov    -0x4(%rbp),%eax')]
        source = [AnnotatedSourceLine(1, 'int square(int x)', [0, 1]),
                  AnnotatedSourceLine(2, '{', [])]

        lines = format_source(source, listing)

        self.assertTrue(lines[0].startswith('     1  int square(int x)'))
        self.assertTrue(lines[0].endswith(' ; 1050 1057'))
        self.assertEqual(lines[1], '     2  {')


if __name__ == '__main__':
    unittest.main()
