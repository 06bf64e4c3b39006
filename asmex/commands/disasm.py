"""Disasm subcommand - print instructions annotated with their source lines."""

import argparse
import logging

from ..exceptions import AsmexError
from ..utils.formatter import format_listing
from .common import add_object_argument, load_from_args

logger = logging.getLogger(__name__)


def add_disasm_parser(subparsers) -> argparse.ArgumentParser:
    """Add 'disasm' subcommand parser."""
    parser = subparsers.add_parser(
        'disasm',
        help='Print the annotated disassembly of a section or entry',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  # Whole section
  asmex disasm prog .text

  # Single function
  asmex disasm prog .text main
        """
    )
    add_object_argument(parser)
    parser.add_argument('section', help='Section name, e.g. .text')
    parser.add_argument('entry', nargs='?', help='Entry (symbol) name')
    return parser


def run_disasm(args: argparse.Namespace) -> int:
    """
    Run disasm subcommand.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        debug_object = load_from_args(args)
    except AsmexError as e:
        logger.error("Could not read debug information from %s: %s", args.elf_path, e)
        return 1

    if debug_object.entries(args.section) is None:
        logger.error("No section '%s' in disassembly", args.section)
        return 1

    if args.entry is not None and debug_object.instructions(args.section, args.entry) is None:
        logger.error("No entry '%s' in section '%s'", args.entry, args.section)
        return 1

    listing = debug_object.annotated_instructions(args.section, args.entry)
    for line in format_listing(listing):
        print(line)
    return 0
