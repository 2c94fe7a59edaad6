"""
tsunami — TypeScript analysis server interposer

Sits between an editor and tsserver on the same framed JSON protocol.
Symbol-location and organize-imports requests are answered from
tsunami's own snapshots and export index; reloads are observed on the
way through; everything else reaches tsserver untouched.

Usage:
    tsunami                          # editor launches this instead of tsserver
    tsunami --tsserver "node tsserver.js"
    tsunami symbols
    tsunami organize-imports src/app.ts
"""

__version__ = "0.1.0"

# Core layer
from .core import (
    Snapshot, DocumentSnapshotStore,
    SymbolDefinition, FileIndex, FileIndexer, ProjectIndex,
    ImportSorter, ImportSortResult,
)
from .project import TsProject
from .context import TsunamiContext

# Protocol layer
from .protocol import (
    CommandClass, Command, Response, parse_command, classify,
    CommandProcessor, StreamMultiplexer, FrameWriter,
)
from .server import ServerProcessManager

# Ambient
from .config import Config, ConfigManager
from .errors import (
    TsunamiError, CommandFormatError, LocalProcessingError, SnapshotReadError,
    SourceParseError, FramingError, UpstreamClosedError, EditorClosedError,
    FatalStartupError, ConfigError, ProjectConfigError,
)

__all__ = [
    '__version__',
    'Snapshot', 'DocumentSnapshotStore',
    'SymbolDefinition', 'FileIndex', 'FileIndexer', 'ProjectIndex',
    'ImportSorter', 'ImportSortResult',
    'TsProject', 'TsunamiContext',
    'CommandClass', 'Command', 'Response', 'parse_command', 'classify',
    'CommandProcessor', 'StreamMultiplexer', 'FrameWriter',
    'ServerProcessManager',
    'Config', 'ConfigManager',
    'TsunamiError', 'CommandFormatError', 'LocalProcessingError', 'SnapshotReadError',
    'SourceParseError', 'FramingError', 'UpstreamClosedError', 'EditorClosedError',
    'FatalStartupError', 'ConfigError', 'ProjectConfigError',
]
