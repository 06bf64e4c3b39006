#!/usr/bin/env python3
"""
Asmex - navigate between assembly and source code.

This package rebuilds a per-instruction source mapping from the textual
dumps of an ELF object (disassembly, symbol table, debug info and raw line
program) and exposes it through a small query interface.
"""

from .core.debug_object import DebugObject
from .exceptions import AsmexError, ObjectLoadError

__all__ = ['DebugObject', 'AsmexError', 'ObjectLoadError']
