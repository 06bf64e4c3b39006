#!/usr/bin/env python3
"""
Dump an object with objdump and build its DebugObject snapshot.

The four dumps are independent of each other, so they are taken and parsed
concurrently; each task owns the builder it returns. Only once every task
has finished is the snapshot assembled, so a failed load never publishes a
partial result.
"""

import logging
import os
import subprocess
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..analysis.code import build_code_table
from ..analysis.lines import decode_line_program
from ..analysis.subprograms import build_subprogram_index
from ..analysis.symbols import build_symbol_table
from ..exceptions import DumpCommandError
from .debug_object import DebugObject
from .elf import inspect_object

logger = logging.getLogger(__name__)

OBJDUMP_ENV_VAR = 'ASMEX_OBJDUMP'
DEFAULT_OBJDUMP = 'objdump'
DEFAULT_JOBS = 4

# dump name -> (objdump arguments, parser)
DUMPS: Dict[str, tuple] = {
    'code': (['-dCr'], build_code_table),
    'symbols': (['--syms'], build_symbol_table),
    'info': (['--dwarf=info'], build_subprogram_index),
    'lines': (['--dwarf=rawline'], decode_line_program),
}


def default_objdump() -> str:
    """objdump executable from the environment, falling back to the default"""
    return os.environ.get(OBJDUMP_ENV_VAR) or DEFAULT_OBJDUMP


@dataclass
class ObjdumpRunner:
    """Runs the objdump executable and returns its output lines"""
    executable: str = field(default_factory=default_objdump)
    timeout: Optional[float] = None

    def dump(self, path: str, arguments: List[str]) -> List[str]:
        """Run objdump on path with the given arguments.

        Raises:
            DumpCommandError: If objdump cannot be started, times out or fails
        """
        command = [self.executable] + arguments + [path]
        logger.debug("Running: %s", ' '.join(command))

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error("Failed to run %s: %s", self.executable, e)
            raise DumpCommandError(f"Failed to run {' '.join(command)}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            logger.error("%s exited with status %d: %s",
                         self.executable, result.returncode, stderr)
            raise DumpCommandError(
                f"{' '.join(command)} exited with status {result.returncode}: {stderr}")

        return result.stdout.splitlines()


def _dump_and_parse(runner: ObjdumpRunner, path: str, name: str):
    arguments, parse = DUMPS[name]
    builder = parse(runner.dump(path, arguments))
    if builder.unrecognized:
        logger.info("%d unrecognized lines in %s dump", len(builder.unrecognized), name)
    return builder


def load_object(path: str,
                runner: Optional[ObjdumpRunner] = None,
                jobs: int = DEFAULT_JOBS,
                inspect: Callable = inspect_object) -> DebugObject:
    """Build the DebugObject snapshot of an object file.

    Args:
        path: Path to the ELF object
        runner: objdump runner (default: ObjdumpRunner())
        jobs: Number of dumps taken concurrently
        inspect: Object inspection hook, see `elf.inspect_object()`

    Returns:
        The new snapshot

    Raises:
        ObjectLoadError: If debug information cannot be read from the object
    """
    runner = runner or ObjdumpRunner()
    info = inspect(path)

    with ThreadPoolExecutor(max_workers=max(1, jobs)) as executor:
        futures = {
            name: executor.submit(_dump_and_parse, runner, path, name)
            for name in DUMPS
        }
        builders = {name: future.result() for name, future in futures.items()}

    return DebugObject(builders['code'], builders['symbols'], builders['info'],
                       builders['lines'], compdir=info.comp_dir, path=path)
