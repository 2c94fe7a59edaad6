"""
ImportSorter — Canonical ordering of a file's import declarations

Reorders and merges the top-level ES import declarations of a snapshot:
- External modules first, then relative ("./", "../") modules,
  separated by one blank line when both groups exist
- Alphabetical by module specifier within a group
- One statement per module where the syntax allows it; named
  specifiers are deduplicated and sorted
- Comments between imports travel with the import below them;
  comments on the same line travel with that import

Nothing but import declarations is touched. The sorter never raises:
every failure comes back as an ImportSortResult with ok=False, and a
failed result never carries partially rewritten text.

Usage:
    sorter = ImportSorter(SourceParser(ParserRegistry.default()))
    result = sorter.organize_imports(snapshot)
    if result.ok:
        buffer.replace(result.text)
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple, TYPE_CHECKING

from .documents import Snapshot
from .parsing import ParsedSource, SourceParser

if TYPE_CHECKING:
    from tree_sitter import Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportSortResult:
    """Outcome of organizing one file's imports."""
    ok: bool
    text: Optional[str] = None
    error: Optional[str] = None
    changed: bool = False

    @classmethod
    def success(cls, text: str, changed: bool) -> 'ImportSortResult':
        return cls(ok=True, text=text, changed=changed)

    @classmethod
    def failure(cls, error: str) -> 'ImportSortResult':
        return cls(ok=False, error=error)


@dataclass
class ImportDeclaration:
    """One parsed import statement and the comments attached to it."""
    node: 'Node'
    module: str                      # Unquoted specifier
    module_literal: str              # Specifier as written, quotes included
    type_only: bool = False
    default: Optional[str] = None
    namespace: Optional[str] = None
    named: List[Tuple[str, str]] = field(default_factory=list)  # (sort key, text)
    raw: Optional[str] = None        # Set for declarations that cannot be merged
    leading_comments: List[str] = field(default_factory=list)
    leading_nodes: List['Node'] = field(default_factory=list)  # Moved along when scattered
    trailing_comment: Optional['Node'] = None
    trailing_text: Optional[str] = None

    @property
    def is_side_effect(self) -> bool:
        return self.raw is None and not (self.default or self.namespace or self.named)

    @property
    def start_byte(self) -> int:
        if self.leading_nodes:
            return self.leading_nodes[0].start_byte
        return self.node.start_byte

    @property
    def anchors(self) -> Set[Tuple[str, str]]:
        """Bindings that identify the statement this declaration ends up in."""
        if self.raw is not None:
            return {('raw', self.raw)}
        if self.is_side_effect:
            return {('side', self.module_literal)}
        anchors = {('named', text) for _, text in self.named}
        if self.default:
            anchors.add(('default', self.default))
        if self.namespace:
            anchors.add(('namespace', self.namespace))
        return anchors

    @property
    def end_byte(self) -> int:
        if self.trailing_comment is not None:
            return self.trailing_comment.end_byte
        return self.node.end_byte


@dataclass
class _ModuleGroup:
    """Everything imported from one module with one import kind."""
    module: str
    module_literal: str
    type_only: bool
    defaults: List[str] = field(default_factory=list)
    namespaces: List[str] = field(default_factory=list)
    named: Dict[str, Tuple[str, str]] = field(default_factory=dict)  # text -> (key, text)
    raws: List[str] = field(default_factory=list)
    side_effect: bool = False
    leading_comments: List[str] = field(default_factory=list)
    trailing_comments: List[Tuple[Set[Tuple[str, str]], str]] = field(default_factory=list)


def _is_relative(module: str) -> bool:
    return module in ('.', '..') or module.startswith('./') or module.startswith('../')


def _normalize_space(text: str) -> str:
    return ' '.join(text.split())


class ImportSorter:
    """
    Organizes the imports of a snapshot.

    Stateless apart from the shared parser; one instance serves every file.
    """

    def __init__(self, parser: SourceParser):
        self.parser = parser

    def organize_imports(self, snapshot: Snapshot) -> ImportSortResult:
        """
        Compute the organized text of a snapshot.

        Returns:
            ImportSortResult: the new text (unchanged text when the file has
            no imports), or an error description
        """
        try:
            return self._organize(snapshot)
        except Exception as e:
            logger.exception("Organizing imports failed for %s", snapshot.file_path)
            return ImportSortResult.failure(f"Cannot organize imports in {snapshot.file_path}: {e}")

    def _organize(self, snapshot: Snapshot) -> ImportSortResult:
        parsed = self.parser.parse(snapshot.file_path, snapshot.text)
        if parsed.has_errors:
            return ImportSortResult.failure(
                f"Cannot organize imports in {snapshot.file_path}: file has syntax errors"
            )

        region, scattered = self._collect(parsed)
        if not region:
            return ImportSortResult.success(snapshot.text, changed=False)

        newline = b'\r\n' if b'\r\n' in parsed.source else b'\n'
        block = self._render(region + scattered, newline.decode('ascii'))

        # Replace the contiguous import block, drop imports found further down
        edits = [(region[0].node.start_byte, region[-1].end_byte, block.encode('utf-8'))]
        for declaration in scattered:
            start, end = self._removal_span(parsed.source, declaration)
            edits.append((start, end, b''))

        source = parsed.source
        for start, end, replacement in sorted(edits, key=lambda edit: edit[0], reverse=True):
            source = source[:start] + replacement + source[end:]
        text = source.decode('utf-8')

        check = self.parser.parse(snapshot.file_path, text)
        if check.has_errors:
            return ImportSortResult.failure(
                f"Cannot organize imports in {snapshot.file_path}: rewrite produced invalid syntax"
            )

        changed = text != snapshot.text
        logger.debug(
            "Organized %d imports in %s (%s)",
            len(region) + len(scattered), snapshot.file_path,
            "changed" if changed else "already sorted",
        )
        return ImportSortResult.success(text, changed=changed)

    # =========================================================================
    # Collection
    # =========================================================================

    def _collect(self, parsed: ParsedSource) -> Tuple[List[ImportDeclaration], List[ImportDeclaration]]:
        """
        Split the file's imports into the leading block and the rest.

        The block starts at the first import and runs while only imports and
        comments follow. Comments above the first import stay where they are;
        comment lines directly above a later import move with it.
        """
        region: List[ImportDeclaration] = []
        scattered: List[ImportDeclaration] = []
        pending_comments: List[str] = []
        consumed_ids = set()
        in_region = None  # None until the first import is seen

        for child in parsed.root.named_children:
            if child.id in consumed_ids:
                continue
            declaration = self._parse_declaration(child, parsed) if child.type == 'import_statement' else None

            if declaration is not None:
                trailing = child.next_named_sibling
                if (trailing is not None and trailing.type == 'comment'
                        and trailing.start_point[0] == child.end_point[0]):
                    declaration.trailing_comment = trailing
                    declaration.trailing_text = parsed.node_text(trailing)
                    consumed_ids.add(trailing.id)
                if in_region is None:
                    in_region = True
                if in_region:
                    declaration.leading_comments = pending_comments
                    region.append(declaration)
                else:
                    declaration.leading_nodes = self._comments_above(child, consumed_ids)
                    declaration.leading_comments = [parsed.node_text(n) for n in declaration.leading_nodes]
                    scattered.append(declaration)
                pending_comments = []
            elif child.type == 'comment':
                if in_region:
                    pending_comments.append(parsed.node_text(child))
            elif in_region:
                in_region = False
                pending_comments = []

        return region, scattered

    def _comments_above(self, node: 'Node', consumed_ids: set) -> List['Node']:
        """Comment nodes on the lines immediately above node, each owning its line."""
        comments: List['Node'] = []
        row = node.start_point[0]
        sibling = node.prev_named_sibling
        while (sibling is not None and sibling.type == 'comment'
               and sibling.id not in consumed_ids and sibling.end_point[0] == row - 1):
            before = sibling.prev_named_sibling
            if before is not None and before.end_point[0] == sibling.start_point[0]:
                break
            comments.insert(0, sibling)
            row = sibling.start_point[0]
            sibling = before
        return comments

    def _parse_declaration(self, node: 'Node', parsed: ParsedSource) -> Optional[ImportDeclaration]:
        source = node.child_by_field_name('source')
        if source is None:
            # import x = require("y") is a TypeScript binding, left in place
            return None

        literal = parsed.node_text(source)
        declaration = ImportDeclaration(
            node=node,
            module=literal[1:-1],
            module_literal=literal,
            type_only=any(child.type == 'type' for child in node.children),
        )

        if any(child.type in ('import_attribute', 'assert', 'with') for child in node.children):
            # Import attributes are kept verbatim
            declaration.raw = _normalize_space(parsed.node_text(node))
            if not declaration.raw.endswith(';'):
                declaration.raw += ';'
            return declaration

        for child in node.named_children:
            if child.type != 'import_clause':
                continue
            for part in child.named_children:
                if part.type == 'identifier':
                    declaration.default = parsed.node_text(part)
                elif part.type == 'namespace_import':
                    names = [n for n in part.named_children if n.type == 'identifier']
                    if names:
                        declaration.namespace = parsed.node_text(names[-1])
                elif part.type == 'named_imports':
                    for specifier in part.named_children:
                        if specifier.type != 'import_specifier':
                            continue
                        name = specifier.child_by_field_name('name')
                        key = parsed.node_text(name) if name is not None else parsed.node_text(specifier)
                        declaration.named.append((key, _normalize_space(parsed.node_text(specifier))))
        return declaration

    def _removal_span(self, source: bytes, declaration: ImportDeclaration) -> Tuple[int, int]:
        """Byte span covering a scattered import, its comments and, when it owns its line, the line break."""
        start = declaration.start_byte
        end = declaration.end_byte

        line_start = source.rfind(b'\n', 0, start) + 1
        owns_line = source[line_start:start].strip(b' \t') == b''
        if not owns_line:
            return start, end

        while end < len(source) and source[end:end + 1] in (b' ', b'\t'):
            end += 1
        if source[end:end + 2] == b'\r\n':
            end += 2
        elif source[end:end + 1] == b'\n':
            end += 1
        return line_start, end

    # =========================================================================
    # Rendering
    # =========================================================================

    def _render(self, declarations: List[ImportDeclaration], newline: str) -> str:
        groups = self._merge(declarations)

        external = [g for g in groups if not _is_relative(g.module)]
        relative = [g for g in groups if _is_relative(g.module)]

        sections = []
        for section in (external, relative):
            if not section:
                continue
            lines: List[str] = []
            for group in sorted(section, key=_group_sort_key):
                lines.extend(self._render_group(group))
            sections.append(newline.join(lines))
        return (newline * 2).join(sections)

    def _merge(self, declarations: List[ImportDeclaration]) -> List[_ModuleGroup]:
        groups: Dict[Tuple[str, bool], _ModuleGroup] = {}
        for declaration in declarations:
            key = (declaration.module, declaration.type_only)
            group = groups.get(key)
            if group is None:
                group = _ModuleGroup(
                    module=declaration.module,
                    module_literal=declaration.module_literal,
                    type_only=declaration.type_only,
                )
                groups[key] = group

            group.leading_comments.extend(declaration.leading_comments)
            if declaration.trailing_text is not None:
                group.trailing_comments.append((declaration.anchors, declaration.trailing_text))

            if declaration.raw is not None:
                if declaration.raw not in group.raws:
                    group.raws.append(declaration.raw)
            elif declaration.is_side_effect:
                group.side_effect = True
            else:
                if declaration.default and declaration.default not in group.defaults:
                    group.defaults.append(declaration.default)
                if declaration.namespace and declaration.namespace not in group.namespaces:
                    group.namespaces.append(declaration.namespace)
                for key_text, text in declaration.named:
                    group.named.setdefault(text, (key_text, text))

        # A side-effect import adds nothing when the module is imported anyway
        for (module, type_only), group in groups.items():
            if type_only or not group.side_effect:
                continue
            if group.defaults or group.namespaces or group.named or group.raws:
                group.side_effect = False
        return list(groups.values())

    def _render_group(self, group: _ModuleGroup) -> List[str]:
        prefix = 'import type ' if group.type_only else 'import '
        source = f"from {group.module_literal};"

        # (clause, anchors of the bindings it carries)
        clauses: List[Tuple[str, Set[Tuple[str, str]]]] = []
        defaults = sorted(group.defaults)
        namespaces = sorted(group.namespaces)
        named = [text for _, text in sorted(group.named.values(), key=lambda kt: (kt[0].lower(), kt[0], kt[1]))]
        named_clause = "{ " + ", ".join(named) + " }" if named else None
        named_anchors = {('named', text) for text in named}

        if group.type_only:
            # A type-only import cannot combine a default with other bindings
            if named_clause:
                clauses.append((named_clause, named_anchors))
            clauses.extend((d, {('default', d)}) for d in defaults)
            clauses.extend((f"* as {ns}", {('namespace', ns)}) for ns in namespaces)
        else:
            if named_clause:
                if defaults:
                    default = defaults.pop(0)
                    clauses.append((f"{default}, {named_clause}", named_anchors | {('default', default)}))
                else:
                    clauses.append((named_clause, named_anchors))
            while defaults or namespaces:
                default = defaults.pop(0) if defaults else None
                namespace = namespaces.pop(0) if namespaces else None
                if default and namespace:
                    clauses.append((f"{default}, * as {namespace}", {('default', default), ('namespace', namespace)}))
                elif default:
                    clauses.append((default, {('default', default)}))
                else:
                    clauses.append((f"* as {namespace}", {('namespace', namespace)}))

        statements = [(f"{prefix}{clause} {source}", anchors) for clause, anchors in clauses]
        if group.side_effect:
            statements.append((f"import {group.module_literal};", {('side', group.module_literal)}))
        statements.extend((raw, {('raw', raw)}) for raw in group.raws)

        # Same-line comments follow the statement holding their bindings
        attached: List[List[str]] = [[] for _ in statements]
        for anchors, text in group.trailing_comments:
            index = next((i for i, (_, owned) in enumerate(statements) if owned & anchors), len(statements) - 1)
            attached[index].append(text)

        lines = list(group.leading_comments)
        for (statement, _), comments in zip(statements, attached):
            # First same-line comment stays on the line; any others move above
            lines.extend(comments[1:])
            lines.append(f"{statement} {comments[0]}" if comments else statement)
        return lines


def _group_sort_key(group: _ModuleGroup) -> Tuple[str, str, bool]:
    # Value imports before type-only imports of the same module
    return group.module.lower(), group.module, group.type_only
