"""
Core layer — the interposer's own model of the project's source files.

- documents: versioned text snapshots per file
- indexer: exported symbols per file, and across the project
- imports: canonical import ordering
- parsing: tree-sitter access
"""

from .documents import Snapshot, DocumentSnapshotStore
from .indexer import SymbolDefinition, FileIndex, FileIndexer, ProjectIndex
from .imports import ImportSorter, ImportSortResult

__all__ = [
    'Snapshot', 'DocumentSnapshotStore',
    'SymbolDefinition', 'FileIndex', 'FileIndexer', 'ProjectIndex',
    'ImportSorter', 'ImportSortResult',
]
