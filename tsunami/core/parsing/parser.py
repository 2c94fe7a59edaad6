"""
SourceParser — tree-sitter parsing for snapshots.

Parses source text with the grammar the ParserRegistry picks for a file
and hands back a ParsedSource that knows how to slice node text and turn
tree-sitter byte offsets into character offsets.

Usage:
    from tsunami.core.parsing import ParserRegistry, SourceParser

    parser = SourceParser(ParserRegistry.default())
    parsed = parser.parse("src/app.ts", text)
    for node in parsed.root.named_children:
        ...
"""

import threading
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Dict, List, TYPE_CHECKING

from tree_sitter_language_pack import get_parser

from ...errors import SourceParseError
from .config import LanguageConfig
from .registry import ParserRegistry

if TYPE_CHECKING:
    from tree_sitter import Node, Parser, Tree


@dataclass
class ParsedSource:
    """A parse tree together with the text it was built from."""
    file_path: str
    text: str
    source: bytes
    tree: 'Tree'
    config: LanguageConfig
    _char_starts: List[int] = field(default_factory=list, repr=False)
    _extra_bytes: List[int] = field(default_factory=list, repr=False)

    @property
    def root(self) -> 'Node':
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        return self.tree.root_node.has_error

    def node_text(self, node: 'Node') -> str:
        """Decoded source text covered by a node."""
        return self.source[node.start_byte:node.end_byte].decode('utf-8')

    def char_offset(self, byte_offset: int) -> int:
        """
        Convert a UTF-8 byte offset into a character offset.

        Built lazily from the byte position of every non-ASCII character,
        so pure-ASCII files never pay for it.
        """
        if len(self.source) == len(self.text):
            return byte_offset
        if not self._char_starts:
            self._build_char_table()
        # Count the multi-byte characters whose last byte precedes the offset.
        index = bisect_right(self._char_starts, byte_offset - 1)
        return byte_offset - self._extra_bytes[index]

    def _build_char_table(self) -> None:
        starts = []
        extra = [0]
        position = 0
        total_extra = 0
        for char in self.text:
            width = len(char.encode('utf-8'))
            if width > 1:
                total_extra += width - 1
                starts.append(position + width - 1)
                extra.append(total_extra)
            position += width
        self._char_starts = starts
        self._extra_bytes = extra


class SourceParser:
    """
    Parses text with tree-sitter, routed by file extension.

    tree-sitter Parser objects are not safe to share across threads, so
    each grammar's parser is used under its own lock.
    """

    def __init__(self, registry: ParserRegistry):
        self.registry = registry
        self._parsers: Dict[str, 'Parser'] = {}  # Lazy-loaded parsers
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _get_parser(self, tree_sitter_name: str) -> 'Parser':
        """Get tree-sitter parser for a grammar (lazy-loaded)."""
        with self._guard:
            if tree_sitter_name not in self._parsers:
                self._parsers[tree_sitter_name] = get_parser(tree_sitter_name)
                self._locks[tree_sitter_name] = threading.Lock()
            return self._parsers[tree_sitter_name]

    def parse(self, file_path: str, text: str) -> ParsedSource:
        """
        Parse source text.

        Raises:
            SourceParseError: If the file is too large or the grammar
                cannot be loaded or run
        """
        config = self.registry.get_config(file_path)
        source = text.encode('utf-8')
        if len(source) > config.max_file_size:
            raise SourceParseError(
                f"{file_path} is {len(source)} bytes, over the "
                f"{config.max_file_size} byte limit for {config.name}"
            )

        try:
            parser = self._get_parser(config.tree_sitter_name)
            with self._locks[config.tree_sitter_name]:
                tree = parser.parse(source)
        except (LookupError, ValueError, RuntimeError) as e:
            raise SourceParseError(f"Cannot parse {file_path} as {config.name}: {e}") from e

        return ParsedSource(
            file_path=file_path,
            text=text,
            source=source,
            tree=tree,
            config=config,
        )
