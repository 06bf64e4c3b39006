"""Source subcommand - print a source file annotated with instruction addresses."""

import argparse
import logging

from ..core.source import SourceFileResolver
from ..exceptions import AsmexError
from ..utils.formatter import format_source
from .common import add_object_argument, load_from_args

logger = logging.getLogger(__name__)


def add_source_parser(subparsers) -> argparse.ArgumentParser:
    """Add 'source' subcommand parser."""
    parser = subparsers.add_parser(
        'source',
        help='Print a source file with the addresses of the instructions of every line',
    )
    add_object_argument(parser)
    parser.add_argument('file', help='Source file, as recorded in the line program')
    parser.add_argument(
        '--section',
        default='.text',
        help='Section whose instructions are mapped (default: %(default)s)',
    )
    parser.add_argument(
        '--search-dir',
        action='append',
        default=[],
        metavar='DIR',
        help='Extra directory to look for relative source paths (repeatable)',
    )
    return parser


def _recorded_name(debug_object, requested: str) -> str:
    """Map a user supplied file name to the path recorded in the line program"""
    files = debug_object.source_files()
    if requested in files:
        return requested
    suffix_matches = [path for path in files if path.endswith('/' + requested)]
    if len(suffix_matches) == 1:
        return suffix_matches[0]
    return requested


def run_source(args: argparse.Namespace) -> int:
    """
    Run source subcommand.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        debug_object = load_from_args(args)
    except AsmexError as e:
        logger.error("Could not read debug information from %s: %s", args.elf_path, e)
        return 1

    recorded = _recorded_name(debug_object, args.file)
    resolver = SourceFileResolver(debug_object.compdir, args.search_dir)
    text = resolver.read_lines(recorded)
    if text is None:
        logger.error("Cannot read source file %s", recorded)
        return 1

    listing = debug_object.annotated_instructions(args.section)
    annotated = debug_object.annotate_source(recorded, text, listing)
    for line in format_source(annotated, listing):
        print(line)
    return 0
