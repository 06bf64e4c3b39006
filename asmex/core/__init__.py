"""Snapshot, loading and source access for Asmex."""

from .debug_object import DebugObject
from .loader import ObjdumpRunner, load_object
from .source import SourceFileResolver

__all__ = ['DebugObject', 'ObjdumpRunner', 'load_object', 'SourceFileResolver']
