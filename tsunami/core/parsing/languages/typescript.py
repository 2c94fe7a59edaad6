"""
TypeScript grammar configurations.

TypeScript and TSX are separate tree-sitter grammars: angle-bracket type
assertions are only legal in .ts files, JSX only in .tsx files.
"""

from ..config import LanguageConfig


TYPESCRIPT_CONFIG = LanguageConfig(
    name="TypeScript",
    tree_sitter_name="typescript",
    extensions={'.ts', '.mts', '.cts'},  # .d.ts is covered by .ts
)

TSX_CONFIG = LanguageConfig(
    name="TSX",
    tree_sitter_name="tsx",
    extensions={'.tsx'},
)
