"""Utility modules for the Asmex CLI."""

from . import formatter

__all__ = ['formatter']
