"""
Protocol layer — classification, framing and routing of wire messages.

- commands: tagged command variants, classify(), Response
- framing: Content-Length / line-delimited codec
- processor: local answers and wiretap side effects
- multiplexer: the two pumps between editor and server
"""

from .commands import (
    SYMBOL_LOCATIONS, ORGANIZE_IMPORTS, RELOAD,
    CommandClass, Command, FetchSymbolLocationsCommand, OrganizeImportsCommand,
    ReloadCommand, PassThroughCommand, Response, parse_command, classify,
)
from .framing import FrameWriter, read_messages, read_frames, encode_message, encode_forward
from .processor import CommandProcessor
from .multiplexer import StreamMultiplexer

__all__ = [
    'SYMBOL_LOCATIONS', 'ORGANIZE_IMPORTS', 'RELOAD',
    'CommandClass', 'Command', 'FetchSymbolLocationsCommand', 'OrganizeImportsCommand',
    'ReloadCommand', 'PassThroughCommand', 'Response', 'parse_command', 'classify',
    'FrameWriter', 'read_messages', 'read_frames', 'encode_message', 'encode_forward',
    'CommandProcessor',
    'StreamMultiplexer',
]
