#!/usr/bin/env python3
"""
Tests for the asmex command line tool
"""

import io
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest.mock import patch

from asmex.cli import build_parser, main
from asmex.core.debug_object import DebugObject
from asmex.exceptions import DumpCommandError

from sample_dumps import build_sample_object

SQUARE_SOURCE = 'int square(int x)\n{\n    return x * x;\n}\n'


class CLITestCase(unittest.TestCase):
    """Base class running the CLI against the sample snapshot"""

    def setUp(self):
        """Serve the sample snapshot instead of running objdump"""
        patcher = patch.object(DebugObject, 'load', return_value=build_sample_object('prog'))
        self.mock_load = patcher.start()
        self.addCleanup(patcher.stop)

    def run_cli(self, *argv):
        """Run main() and return (exit code, captured stdout)"""
        output = io.StringIO()
        with redirect_stdout(output):
            code = main(list(argv))
        return code, output.getvalue()


class TestParser(CLITestCase):
    """Test argument parsing"""

    def test_subcommand_required(self):
        """Test that a subcommand must be given"""
        with self.assertRaises(SystemExit):
            build_parser().parse_args([])

    def test_global_options_reach_loader(self):
        """Test that objdump options are used to load the object"""
        code, _ = self.run_cli('--objdump', 'cross-objdump', '--jobs', '2',
                               '--timeout', '5', 'sections', 'prog')

        self.assertEqual(code, 0)
        args, kwargs = self.mock_load.call_args
        self.assertEqual(args, ('prog',))
        self.assertEqual(kwargs['runner'].executable, 'cross-objdump')
        self.assertEqual(kwargs['runner'].timeout, 5.0)
        self.assertEqual(kwargs['jobs'], 2)


class TestSectionsCommand(CLITestCase):
    """Test the sections subcommand"""

    def test_sections(self):
        """Test the section summary"""
        code, output = self.run_cli('sections', 'prog')

        self.assertEqual(code, 0)
        lines = output.splitlines()
        self.assertTrue(lines[0].startswith('.init'))
        self.assertIn('0x00001040', lines[1])
        self.assertIn('2 entries', lines[1])
        self.assertIn('2 line sequences', lines[1])

    def test_sections_with_entries(self):
        """Test listing entries under their section"""
        _, output = self.run_cli('sections', 'prog', '--entries')
        self.assertIn('    square', output.splitlines())

    def test_load_failure(self):
        """Test that load errors give exit code 1"""
        self.mock_load.side_effect = DumpCommandError('objdump exited with status 1')
        code, output = self.run_cli('sections', 'prog')
        self.assertEqual(code, 1)
        self.assertEqual(output, '')


class TestDisasmCommand(CLITestCase):
    """Test the disasm subcommand"""

    def test_entry(self):
        """Test the annotated listing of one entry"""
        code, output = self.run_cli('disasm', 'prog', '.text', 'square')

        self.assertEqual(code, 0)
        lines = output.splitlines()
        self.assertEqual(lines[0], '0000000000001060 <square>:')
        self.assertTrue(lines[1].endswith('; util.c:1:16'))
        self.assertEqual(len(lines), 8)

    def test_section(self):
        """Test the annotated listing of a whole section"""
        _, output = self.run_cli('disasm', 'prog', '.text')
        self.assertIn('0000000000001040 <main>:', output)
        self.assertIn('0000000000001060 <square>:', output)

    def test_unknown_section(self):
        """Test a section missing from the disassembly"""
        code, _ = self.run_cli('disasm', 'prog', '.data')
        self.assertEqual(code, 1)

    def test_unknown_entry(self):
        """Test an entry missing from the section"""
        code, _ = self.run_cli('disasm', 'prog', '.text', 'cube')
        self.assertEqual(code, 1)


class TestSourceCommand(CLITestCase):
    """Test the source subcommand"""

    def setUp(self):
        """Write util.c to a search directory"""
        super().setUp()
        self.temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.temp_dir)
        with open(os.path.join(self.temp_dir, 'util.c'), 'w', encoding='utf-8') as f:
            f.write(SQUARE_SOURCE)

    def test_source(self):
        """Test a source file annotated with instruction addresses"""
        code, output = self.run_cli('source', 'prog', 'util.c', '--search-dir', self.temp_dir)

        self.assertEqual(code, 0)
        lines = output.splitlines()
        self.assertEqual(len(lines), 4)
        self.assertTrue(lines[0].endswith('; 1060'))
        self.assertTrue(lines[1].endswith('; 1067'))
        self.assertTrue(lines[2].endswith('; 106d'))
        self.assertEqual(lines[3], '     4  }')

    def test_missing_source(self):
        """Test a source file that cannot be found"""
        code, _ = self.run_cli('source', 'prog', 'missing.c', '--search-dir', self.temp_dir)
        self.assertEqual(code, 1)


if __name__ == '__main__':
    unittest.main()
