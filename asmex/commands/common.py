"""Helpers shared by the asmex subcommands."""

import argparse

from ..core.debug_object import DebugObject
from ..core.loader import ObjdumpRunner


def add_object_argument(parser: argparse.ArgumentParser) -> None:
    """Add the positional object file argument"""
    parser.add_argument('elf_path', help='Path to the ELF object (built with -g)')


def load_from_args(args: argparse.Namespace) -> DebugObject:
    """Build the snapshot of the object named on the command line"""
    runner = ObjdumpRunner(executable=args.objdump, timeout=args.timeout)
    return DebugObject.load(args.elf_path, runner=runner, jobs=args.jobs)
