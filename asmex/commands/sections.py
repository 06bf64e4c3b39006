"""Sections subcommand - list disassembled sections and their line coverage."""

import argparse
import logging

from ..exceptions import AsmexError
from .common import add_object_argument, load_from_args

logger = logging.getLogger(__name__)


def add_sections_parser(subparsers) -> argparse.ArgumentParser:
    """Add 'sections' subcommand parser."""
    parser = subparsers.add_parser(
        'sections',
        help='List sections with their address range and matched line sequences',
    )
    add_object_argument(parser)
    parser.add_argument(
        '--entries',
        action='store_true',
        help='Also list the entries of every section',
    )
    return parser


def run_sections(args: argparse.Namespace) -> int:
    """
    Run sections subcommand.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        debug_object = load_from_args(args)
    except AsmexError as e:
        logger.error("Could not read debug information from %s: %s", args.elf_path, e)
        return 1

    for section in debug_object.sections():
        entries = debug_object.entries(section) or []
        intervals = debug_object.intervals(section)
        if entries:
            first = debug_object.instructions(section, entries[0])[0].address
            print(f"{section:<24} {first:#010x}  {len(entries):5d} entries  "
                  f"{len(intervals):4d} line sequences")
        else:
            print(f"{section:<24} {'(empty)':<10}")

        if args.entries:
            for entry in entries:
                print(f"    {entry}")

    unmatched = debug_object.matching.unmatched
    if unmatched:
        print(f"\n{len(unmatched)} line sequences not bound to any section")
    return 0
