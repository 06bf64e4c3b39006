#!/usr/bin/env python3
"""
ELF object inspection with pyelftools.

Checks that an object can be analysed at all before the dumps are taken and
reads the compilation directory recorded in its DWARF data.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from elftools.common.exceptions import DWARFError, ELFError
from elftools.elf.elffile import ELFFile

from ..exceptions import MissingDebugInfoError, ObjectLoadError

logger = logging.getLogger(__name__)


@dataclass
class ObjectInfo:
    """Basic facts about an ELF object"""
    path: str
    machine: str
    comp_dir: Optional[str] = None


def _extract_string_value(value) -> Optional[str]:
    """Decode a DWARF attribute value to text"""
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='ignore')
    if isinstance(value, str):
        return value
    return None


def _first_comp_dir(elffile) -> Optional[str]:
    """Return DW_AT_comp_dir of the first compilation unit declaring one"""
    try:
        dwarfinfo = elffile.get_dwarf_info()
        for cu in dwarfinfo.iter_CUs():
            top_die = cu.get_top_DIE()
            comp_dir_attr = top_die.attributes.get('DW_AT_comp_dir')
            if comp_dir_attr:
                return _extract_string_value(comp_dir_attr.value)
    except (DWARFError, ELFError) as e:
        logger.warning("Could not read compilation directory: %s", e)
    return None


def inspect_object(path: str) -> ObjectInfo:
    """Make sure path is an ELF object with DWARF data.

    Args:
        path: Path to the object file

    Returns:
        ObjectInfo for the object

    Raises:
        ObjectLoadError: If the file cannot be read
        MissingDebugInfoError: If the file is not ELF or has no DWARF sections
    """
    try:
        with open(path, 'rb') as f:
            elffile = ELFFile(f)
            if not elffile.has_dwarf_info():
                raise MissingDebugInfoError(f"No DWARF debug information in {path}")

            info = ObjectInfo(path=path, machine=elffile['e_machine'],
                              comp_dir=_first_comp_dir(elffile))
    except (IOError, OSError) as e:
        logger.error("Could not read object file %s: %s", path, e)
        raise ObjectLoadError(f"Could not read object file {path}: {e}") from e
    except ELFError as e:
        logger.error("Invalid ELF file %s: %s", path, e)
        raise MissingDebugInfoError(f"Invalid ELF file {path}: {e}") from e

    logger.debug("Object %s: machine %s, compilation directory %s",
                 path, info.machine, info.comp_dir)
    return info
