"""
Errors — Exception hierarchy for the interposer

Three boundaries decide what happens to an error:
- Per message: CommandFormatError drops the message, nothing else.
- Per local command: LocalProcessingError becomes a failure response
  (locally-handled) or a log line (wiretapped).
- Per process: FatalStartupError, FramingError, UpstreamClosedError and
  EditorClosedError end the process through the CLI's top-level boundary.
"""


class TsunamiError(Exception):
    """Base class for all tsunami errors."""


class CommandFormatError(TsunamiError):
    """Inbound object is not a usable command (missing command/seq/arguments)."""


class LocalProcessingError(TsunamiError):
    """Failure while computing a locally-handled answer."""


class SnapshotReadError(LocalProcessingError):
    """Backing file of a snapshot is missing or unreadable."""

    def __init__(self, path: str, source_path: str, reason: str):
        self.path = path
        self.source_path = source_path
        if source_path != path:
            super().__init__(f"Cannot read {source_path} (for {path}): {reason}")
        else:
            super().__init__(f"Cannot read {path}: {reason}")


class SourceParseError(LocalProcessingError):
    """Source text could not be parsed."""


class FramingError(TsunamiError):
    """Wire framing is broken; the stream cannot be resynchronized."""


class UpstreamClosedError(TsunamiError):
    """Analysis server output ended or one of its pipes broke."""


class EditorClosedError(TsunamiError):
    """The editor stopped accepting output."""


class FatalStartupError(TsunamiError):
    """Startup cannot complete; there is no degraded mode before priming."""


class ConfigError(FatalStartupError):
    """tsunami's own configuration is malformed or invalid."""


class ProjectConfigError(FatalStartupError):
    """tsconfig.json is missing or unreadable."""
