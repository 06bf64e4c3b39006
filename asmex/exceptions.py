#!/usr/bin/env python3
"""
Exception hierarchy for Asmex.

Builders never raise on a single malformed line; only failures that prevent
reading an object's debug information as a whole are surfaced here.
"""


class AsmexError(Exception):
    """Base exception for Asmex errors"""


class ObjectLoadError(AsmexError):
    """Raised when debug information cannot be read from an object"""


class DumpCommandError(ObjectLoadError):
    """Raised when the external dump tool cannot be run or fails"""


class MissingDebugInfoError(ObjectLoadError):
    """Raised when the object is not an ELF file or carries no DWARF data"""


class StructuralError(ObjectLoadError):
    """Raised when a dump lacks a record every later record depends on"""
