"""
FileIndexer — Exported-symbol index per file

Answers "what can another file import from here": walks the top-level
statements of a parsed snapshot and records one SymbolDefinition per
exported name, noting whether it is the module's default export.

Key design principles:
- Only exports are indexed; local declarations are invisible to importers
- Wholesale rebuild: every reload produces a brand-new FileIndex and the
  previous one is discarded, never patched
- Last declaration wins within a file (overloads, re-declared defaults)

Usage:
    indexer = FileIndexer(SourceParser(ParserRegistry.default()))
    file_index = indexer.index(snapshot)

    project_index = ProjectIndex()
    project_index.replace(snapshot.file_path, file_index)
    project_index.definitions()   # every definition of every tracked file
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, TYPE_CHECKING

from .documents import Snapshot
from .parsing import ParsedSource, SourceParser

if TYPE_CHECKING:
    from tree_sitter import Node

logger = logging.getLogger(__name__)


# Declarations whose name sits in the "name" field
_NAMED_DECLARATIONS = frozenset({
    'function_declaration',
    'generator_function_declaration',
    'function_signature',
    'class_declaration',
    'abstract_class_declaration',
    'interface_declaration',
    'type_alias_declaration',
    'enum_declaration',
    'internal_module',
    'module',
})

# Declarations binding one name per declarator
_VARIABLE_DECLARATIONS = frozenset({
    'lexical_declaration',
    'variable_declaration',
})


@dataclass(frozen=True)
class SymbolDefinition:
    """One exported name and where it is declared."""
    name: str
    file_path: str
    position: int            # Character offset of the name in the snapshot text
    is_default_export: bool = False

    def to_location(self) -> dict:
        """Wire shape used in SYMBOL_LOCATIONS responses."""
        return {
            "name": self.name,
            "location": {
                "filename": self.file_path,
                "pos": self.position,
            },
            "default": self.is_default_export,
        }


@dataclass
class FileIndex:
    """Exported symbols of one file, keyed by name."""
    file_path: str
    version: int
    symbols: Dict[str, SymbolDefinition] = field(default_factory=dict)

    def add(self, definition: SymbolDefinition) -> None:
        self.symbols[definition.name] = definition

    def get(self, name: str) -> Optional[SymbolDefinition]:
        return self.symbols.get(name)

    def definitions(self) -> List[SymbolDefinition]:
        return list(self.symbols.values())

    def __contains__(self, name: str) -> bool:
        return name in self.symbols

    def __len__(self) -> int:
        return len(self.symbols)


class FileIndexer:
    """
    Builds a FileIndex from a snapshot.

    Stateless apart from the shared parser; one instance serves every file.
    """

    def __init__(self, parser: SourceParser):
        self.parser = parser

    def index(self, snapshot: Snapshot) -> FileIndex:
        """
        Index the exports of a snapshot.

        Syntax errors do not stop indexing; tree-sitter recovers and the
        statements it could parse are still indexed.

        Raises:
            SourceParseError: If the snapshot cannot be parsed at all
        """
        parsed = self.parser.parse(snapshot.file_path, snapshot.text)
        if parsed.has_errors:
            logger.debug("Indexing %s despite syntax errors", snapshot.file_path)

        file_index = FileIndex(file_path=snapshot.file_path, version=snapshot.version)
        for statement in parsed.root.named_children:
            if statement.type == 'export_statement':
                for definition in self._export_definitions(statement, parsed):
                    file_index.add(definition)

        logger.debug(
            "Indexed %s at version %d: %d exports",
            snapshot.file_path, snapshot.version, len(file_index),
        )
        return file_index

    def _export_definitions(self, statement: 'Node', parsed: ParsedSource) -> Iterator[SymbolDefinition]:
        is_default = any(child.type == 'default' for child in statement.children)

        declaration = statement.child_by_field_name('declaration')
        if declaration is not None:
            for name_node in self._declared_names(declaration):
                yield self._definition(parsed, name_node, is_default)
            return

        value = statement.child_by_field_name('value')
        if value is not None:
            # export default foo;  (anonymous function/class/object values have no name)
            if is_default and value.type == 'identifier':
                yield self._definition(parsed, value, True)
            return

        for child in statement.named_children:
            if child.type == 'export_clause':
                for specifier in child.named_children:
                    if specifier.type == 'export_specifier':
                        definition = self._specifier_definition(specifier, parsed)
                        if definition is not None:
                            yield definition
            elif child.type == 'namespace_export':
                # export * as ns from "./m"
                for name_node in child.named_children:
                    if name_node.type in ('identifier', 'string'):
                        yield self._definition(parsed, name_node, False)

    def _specifier_definition(self, specifier: 'Node', parsed: ParsedSource) -> Optional[SymbolDefinition]:
        name_node = specifier.child_by_field_name('name')
        alias_node = specifier.child_by_field_name('alias')
        if name_node is None:
            return None
        if alias_node is not None and _unquote(parsed.node_text(alias_node)) == 'default':
            # export { foo as default }
            return self._definition(parsed, name_node, True)
        return self._definition(parsed, alias_node or name_node, False)

    def _declared_names(self, declaration: 'Node') -> Iterator['Node']:
        if declaration.type == 'ambient_declaration':
            # export declare function f(): void;
            for child in declaration.named_children:
                yield from self._declared_names(child)
        elif declaration.type in _VARIABLE_DECLARATIONS:
            for declarator in declaration.named_children:
                if declarator.type == 'variable_declarator':
                    name = declarator.child_by_field_name('name')
                    if name is not None:
                        yield from _binding_identifiers(name)
        elif declaration.type in _NAMED_DECLARATIONS:
            name = declaration.child_by_field_name('name')
            if name is None:
                return
            if name.type == 'string':
                # declare module "pkg" names no importable symbol
                return
            if name.type == 'nested_identifier':
                # namespace A.B {} exports A
                while name.type == 'nested_identifier' and name.named_children:
                    name = name.named_children[0]
            yield name

    def _definition(self, parsed: ParsedSource, name_node: 'Node', is_default: bool) -> SymbolDefinition:
        return SymbolDefinition(
            name=_unquote(parsed.node_text(name_node)),
            file_path=parsed.file_path,
            position=parsed.char_offset(name_node.start_byte),
            is_default_export=is_default,
        )


def _binding_identifiers(pattern: 'Node') -> Iterator['Node']:
    """Identifiers bound by a declarator name, including destructuring."""
    if pattern.type in ('identifier', 'shorthand_property_identifier_pattern'):
        yield pattern
    elif pattern.type == 'pair_pattern':
        value = pattern.child_by_field_name('value')
        if value is not None:
            yield from _binding_identifiers(value)
    elif pattern.type in ('assignment_pattern', 'object_assignment_pattern'):
        left = pattern.child_by_field_name('left')
        if left is not None:
            yield from _binding_identifiers(left)
    elif pattern.type in ('object_pattern', 'array_pattern', 'rest_pattern'):
        for child in pattern.named_children:
            yield from _binding_identifiers(child)


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ('"', "'"):
        return text[1:-1]
    return text


class ProjectIndex:
    """
    One FileIndex per tracked file.

    replace() swaps a file's index wholesale; readers always see either the
    old or the new index of a file, never a mix.
    """

    def __init__(self):
        self._indexes: Dict[str, FileIndex] = {}
        self._lock = threading.Lock()

    def replace(self, path: str, file_index: FileIndex) -> Optional[FileIndex]:
        """Install a new index for a path. Returns the discarded one."""
        with self._lock:
            previous = self._indexes.get(path)
            self._indexes[path] = file_index
        return previous

    def remove(self, path: str) -> Optional[FileIndex]:
        with self._lock:
            return self._indexes.pop(path, None)

    def get(self, path: str) -> Optional[FileIndex]:
        with self._lock:
            return self._indexes.get(path)

    def paths(self) -> List[str]:
        with self._lock:
            return list(self._indexes.keys())

    def definitions(self) -> List[SymbolDefinition]:
        """Every definition of every tracked file, file by file."""
        with self._lock:
            indexes = list(self._indexes.values())
        return [definition for file_index in indexes for definition in file_index.definitions()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._indexes)
