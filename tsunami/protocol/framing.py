"""
Framing — Wire codec for both sides of the interposer

Editor -> interposer: either header-framed messages
    Content-Length: <n>\r\n
    \r\n
    <n bytes of JSON>
or one JSON object per line. Blank lines between messages are skipped.

Interposer -> server: one JSON object per line (what tsserver reads).

Server -> editor: frames are relayed byte for byte; synthesized responses
are written as "Content-Length: <n>\r\n\r\n<json>\n" where n counts the
JSON bytes only.
"""

import logging
import threading
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Tuple

import orjson

from ..errors import EditorClosedError, FramingError

logger = logging.getLogger(__name__)

CONTENT_LENGTH = b"content-length"


def _is_blank(line: bytes) -> bool:
    return not line.strip()


def _is_header(line: bytes) -> bool:
    name, sep, _ = line.partition(b":")
    return bool(sep) and name.strip().lower() == CONTENT_LENGTH


def _read_header_block(stream: BinaryIO, first: bytes) -> Tuple[List[bytes], int]:
    """Read header lines up to the blank separator. Returns (lines, content length)."""
    lines = [first]
    length: Optional[int] = None
    line = first
    while True:
        name, _, value = line.partition(b":")
        if name.strip().lower() == CONTENT_LENGTH:
            try:
                length = int(value.strip())
            except ValueError as e:
                raise FramingError(f"Invalid Content-Length header: {line!r}") from e
            if length < 0:
                raise FramingError(f"Invalid Content-Length header: {line!r}")
        line = stream.readline()
        if not line:
            raise FramingError("Stream ended inside a header block")
        lines.append(line)
        if _is_blank(line):
            break
    if length is None:
        raise FramingError("Header block without Content-Length")
    return lines, length


def _read_body(stream: BinaryIO, length: int) -> bytes:
    body = stream.read(length) if length else b""
    if len(body) != length:
        raise FramingError(f"Truncated frame: expected {length} bytes, got {len(body)}")
    return body


def _decode(payload: bytes) -> Any:
    try:
        return orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        raise FramingError(f"Invalid JSON: {e}") from e


def read_messages(stream: BinaryIO) -> Iterator[Any]:
    """
    Decode editor messages until EOF.

    Yields whatever the JSON decodes to; deciding whether that is a usable
    command is the caller's job.

    Raises:
        FramingError: On invalid JSON or a truncated/invalid frame
    """
    while True:
        line = stream.readline()
        if not line:
            return
        if _is_blank(line):
            continue
        if _is_header(line):
            _, length = _read_header_block(stream, line)
            yield _decode(_read_body(stream, length))
        else:
            yield _decode(line)


def read_frames(stream: BinaryIO) -> Iterator[bytes]:
    """
    Split server output into frames, keeping their exact bytes.

    A frame is a header block plus its body. Lines outside any frame are
    yielded as they are.

    Raises:
        FramingError: If the stream ends inside a frame
    """
    while True:
        line = stream.readline()
        if not line:
            return
        if not _is_header(line):
            yield line
            continue
        headers, length = _read_header_block(stream, line)
        yield b"".join(headers) + _read_body(stream, length)


def encode_message(message: Dict[str, Any]) -> bytes:
    """Header-framed encoding of a synthesized response."""
    payload = orjson.dumps(message)
    return b"Content-Length: %d\r\n\r\n" % len(payload) + payload + b"\n"


def encode_forward(raw: Any) -> bytes:
    """Line-delimited encoding of a command forwarded to the server."""
    return orjson.dumps(raw) + b"\n"


class FrameWriter:
    """
    Serializes writes to one output stream.

    Synthesized responses and relayed server frames share this writer, so
    whole frames never interleave.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self._lock = threading.Lock()

    def write_raw(self, data: bytes) -> None:
        """Write one whole frame. A broken editor pipe raises EditorClosedError."""
        with self._lock:
            try:
                self.stream.write(data)
                self.stream.flush()
            except (OSError, ValueError) as e:
                raise EditorClosedError(f"Cannot write to editor: {e}") from e

    def write_message(self, message: Dict[str, Any]) -> None:
        self.write_raw(encode_message(message))
