"""
Parsing configuration data structures.

Defines LanguageConfig: which tree-sitter grammar parses which file
extensions, and which of those files belong in a project.

Design principle: New grammars are added via config, not code changes.
"""

from dataclasses import dataclass
from typing import Set


@dataclass
class LanguageConfig:
    """
    Configuration for parsing one source dialect.

    Attributes:
        name: Human-readable name (e.g., "TypeScript", "TSX")
        tree_sitter_name: Grammar name for tree-sitter (e.g., "typescript", "tsx")
        extensions: File extensions this config handles (e.g., {'.ts'})
        requires_allow_js: Only part of a project when compilerOptions.allowJs is set
        max_file_size: Larger files are refused (bytes, default 2MB)
    """
    # Identity
    name: str
    tree_sitter_name: str
    extensions: Set[str]

    # Project membership
    requires_allow_js: bool = False
    max_file_size: int = 2_000_000

    def matches_extension(self, ext: str) -> bool:
        """Check if this config handles the given extension."""
        return ext.lower() in self.extensions

