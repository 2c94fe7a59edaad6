"""
TsunamiContext — Process-wide state, created once and passed explicitly

Bundles the project, the snapshot store, the parsers and the project
index so every component receives the same instances by argument.

Usage:
    context = TsunamiContext.build(TsProject.load(Path(".")))
    context.prime()                         # acquire + index every project file
    context.reload_file("/src/a.ts")        # re-read, re-index, replace
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .core import DocumentSnapshotStore, FileIndex, FileIndexer, ImportSorter, ProjectIndex, Snapshot
from .core.parsing import ParserRegistry, SourceParser
from .errors import FatalStartupError, LocalProcessingError
from .project import TsProject

logger = logging.getLogger(__name__)


@dataclass
class TsunamiContext:
    """Everything the processor and the CLI share."""
    project: Optional[TsProject]
    documents: DocumentSnapshotStore
    parser: SourceParser
    indexer: FileIndexer
    sorter: ImportSorter
    index: ProjectIndex = field(default_factory=ProjectIndex)

    @classmethod
    def build(cls, project: Optional[TsProject] = None, registry: Optional[ParserRegistry] = None) -> 'TsunamiContext':
        registry = registry or (project.registry if project is not None else ParserRegistry.default())
        parser = SourceParser(registry)
        return cls(
            project=project,
            documents=DocumentSnapshotStore(),
            parser=parser,
            indexer=FileIndexer(parser),
            sorter=ImportSorter(parser),
        )

    def file_set(self) -> List[str]:
        """The Project File Set: every path acquired so far."""
        return self.documents.paths()

    def _index_snapshot(self, snapshot: Snapshot) -> FileIndex:
        file_index = self.indexer.index(snapshot)
        self.index.replace(snapshot.file_path, file_index)
        return file_index

    def reload_file(self, path: str, source_path: Optional[str] = None) -> FileIndex:
        """
        Re-read a file (optionally from a temp copy) and rebuild its index.

        Unknown paths join the Project File Set. A read failure leaves the
        previous snapshot and index in place. A parse failure leaves the
        previous index in place, but the snapshot already holds the new text.

        Raises:
            LocalProcessingError: If the file cannot be read or parsed
        """
        with self.documents.locked(path):
            snapshot = self.documents.update(path, source_path)
            file_index = self._index_snapshot(snapshot)
        logger.info("Reloaded %s (version %d, %d exports)", path, snapshot.version, len(file_index))
        return file_index

    def prime(self) -> int:
        """
        Acquire and index every project file.

        Returns the number of files primed.

        Raises:
            FatalStartupError: If any project file cannot be read or parsed
        """
        if self.project is None:
            return 0
        paths = self.project.file_names()
        for path in paths:
            try:
                with self.documents.locked(path):
                    self._index_snapshot(self.documents.acquire(path))
            except LocalProcessingError as e:
                raise FatalStartupError(f"Priming failed at {path}: {e}") from e
        logger.info("Primed %d files, %d exported symbols", len(paths), len(self.index.definitions()))
        return len(paths)
