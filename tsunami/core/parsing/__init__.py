"""
Parsing module — tree-sitter access for TypeScript projects.

- LanguageConfig: Per-dialect grammar and extension rules
- ParserRegistry: Extension-based routing (longest suffix wins)
- SourceParser: Parses text into a ParsedSource
- ExclusionConfig: Paths that never join a project

Usage:
    from tsunami.core.parsing import ParserRegistry, SourceParser

    parser = SourceParser(ParserRegistry.default())
    parsed = parser.parse("src/app.ts", text)
"""

from .config import LanguageConfig
from .registry import ParserRegistry
from .parser import SourceParser, ParsedSource
from .exclusions import ExclusionConfig

__all__ = [
    'LanguageConfig',
    'ParserRegistry',
    'SourceParser',
    'ParsedSource',
    'ExclusionConfig',
]
