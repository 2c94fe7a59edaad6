"""
Centralized exclusion rules for project file collection.

Single source of truth for paths that never become part of the Project
File Set, whatever tsconfig.json says.

Usage:
    from tsunami.core.parsing.exclusions import ExclusionConfig

    exclusions = ExclusionConfig.default()
    exclusions.is_excluded(Path("node_modules/react/index.d.ts"))  # True
"""

import fnmatch
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import FrozenSet


# Directory names skipped at any depth
_DEFAULT_DIRECTORIES = frozenset({
    # Version control
    '.git',
    '.svn',
    '.hg',

    # IDE/Editor
    '.idea',
    '.vscode',

    # Package managers
    'node_modules',
    'bower_components',
    'jspm_packages',
    '.npm',
    '.yarn',
    '.pnpm-store',

    # Framework caches
    '.next',
    '.turbo',
    '.vercel',

    # Our own state
    '.tsunami',
})

# File name globs skipped in any directory
_DEFAULT_FILE_PATTERNS = frozenset({
    '*.min.js',
    '*.bundle.js',
    '*.swp',
    '*.tmp',
})


@dataclass(frozen=True)
class ExclusionConfig:
    """
    Immutable set of exclusion rules.

    Directories match on any path component; file patterns match on the
    final component only.
    """
    directories: FrozenSet[str] = field(default_factory=frozenset)
    file_patterns: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def default(cls) -> 'ExclusionConfig':
        return cls(directories=_DEFAULT_DIRECTORIES, file_patterns=_DEFAULT_FILE_PATTERNS)

    def is_excluded(self, rel_path: PurePath) -> bool:
        """Check a path relative to the project root."""
        parts = PurePath(rel_path).parts
        if any(part in self.directories for part in parts[:-1]):
            return True
        if not parts:
            return False
        name = parts[-1]
        return any(fnmatch.fnmatch(name, pattern) for pattern in self.file_patterns)
