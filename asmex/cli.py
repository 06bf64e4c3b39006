#!/usr/bin/env python3
"""
Command line entry point for Asmex.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .commands.disasm import add_disasm_parser, run_disasm
from .commands.sections import add_sections_parser, run_sections
from .commands.source import add_source_parser, run_source
from .core.loader import DEFAULT_JOBS, OBJDUMP_ENV_VAR, default_objdump

COMMANDS = {
    'sections': run_sections,
    'disasm': run_disasm,
    'source': run_source,
}


def build_parser() -> argparse.ArgumentParser:
    """Create the top level argument parser with every subcommand"""
    parser = argparse.ArgumentParser(
        prog='asmex',
        description='Navigate between the assembly and the source of an ELF object',
    )
    parser.add_argument(
        '--objdump',
        default=default_objdump(),
        help=f'objdump executable (default: ${OBJDUMP_ENV_VAR} or %(default)s)',
    )
    parser.add_argument(
        '--jobs',
        type=int,
        default=DEFAULT_JOBS,
        help='Number of objdump dumps taken concurrently (default: %(default)s)',
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=None,
        help='Seconds after which an objdump run is abandoned',
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output',
    )

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True
    add_sections_parser(subparsers)
    add_disasm_parser(subparsers)
    add_source_parser(subparsers)
    return parser


def configure_logging(verbose: bool = False) -> None:
    """Configure basic logging for the command line tool."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(levelname)s: %(message)s'
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    return COMMANDS[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
