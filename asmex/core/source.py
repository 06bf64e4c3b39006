#!/usr/bin/env python3
"""
Source file resolution for paths recorded in the line number program.
"""

import logging
import os
from typing import List, Optional

logger = logging.getLogger(__name__)


class SourceFileResolver:
    """Locates and reads the source files a line program refers to"""

    def __init__(self, compdir: Optional[str] = None, search_dirs: Optional[List[str]] = None):
        """Initialize with the compilation directory and extra search directories."""
        self.compdir = compdir
        self.search_dirs = list(search_dirs or [])
        self._cache = {}

    def resolve(self, path: str) -> Optional[str]:
        """Return an existing filesystem path for a recorded source path.

        Absolute paths are used as is. Relative paths are tried against the
        compilation directory, then every search directory, then the
        current directory.
        """
        if os.path.isabs(path):
            return path if os.path.isfile(path) else None

        bases = ([self.compdir] if self.compdir else []) + self.search_dirs + [os.getcwd()]
        for base in bases:
            candidate = os.path.join(base, path)
            if os.path.isfile(candidate):
                return candidate
        return None

    def read_lines(self, path: str) -> Optional[List[str]]:
        """Read a source file, or return None when it cannot be found or read"""
        if path in self._cache:
            return self._cache[path]

        resolved = self.resolve(path)
        if resolved is None:
            logger.warning("Source file not found: %s", path)
            return None

        try:
            with open(resolved, 'r', encoding='utf-8', errors='replace') as f:
                lines = f.read().splitlines()
        except (IOError, OSError) as e:
            logger.warning("Could not read source file %s: %s", resolved, e)
            return None

        self._cache[path] = lines
        return lines
