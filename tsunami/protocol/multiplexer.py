"""
StreamMultiplexer — Two pumps between the editor and the analysis server

    editor stdin  --read_messages-->  dispatch  --encode_forward-->  server stdin
                                         |
                                         +-- LOCAL --> IOPool --> FrameWriter
    server stdout --read_frames------------------------------------> FrameWriter --> editor stdout

Ordering:
- Forwarding happens on the editor pump only, in receipt order.
- A wiretapped command is observed before it is forwarded.
- Relayed frames and synthesized responses share one FrameWriter, so
  they never interleave mid-frame. Synthesized responses may overtake
  earlier forwarded commands; request_seq is how the editor matches them.

Lifecycle:
- Editor EOF: drain local work, close the server's stdin, wait for the
  server's output to end, return.
- Server EOF before editor EOF, a framing error or a broken pipe on
  either side: run() raises, including when the editor pipe breaks while
  a local answer is being written on a pool thread.
"""

import logging
import threading
from typing import Any, BinaryIO, Callable, Optional

from ..errors import CommandFormatError, EditorClosedError, UpstreamClosedError
from ..orchestrator import IOPool, OrchestratorConfig, local_task
from .commands import Command, CommandClass, parse_command
from .framing import FrameWriter, encode_forward, read_frames, read_messages
from .processor import CommandProcessor

logger = logging.getLogger(__name__)


class StreamMultiplexer:
    """
    Routes editor commands and relays server output.

    Usage:
        mux = StreamMultiplexer(processor, sys.stdin.buffer, FrameWriter(sys.stdout.buffer),
                                server.stdin, server.stdout)
        mux.run()     # returns after editor EOF, raises on fatal errors
    """

    def __init__(
        self,
        processor: CommandProcessor,
        editor_in: BinaryIO,
        writer: FrameWriter,
        upstream_in: BinaryIO,
        upstream_out: BinaryIO,
        pool: Optional[IOPool] = None,
    ):
        self.processor = processor
        self.editor_in = editor_in
        self.writer = writer
        self.upstream_in = upstream_in
        self.upstream_out = upstream_out
        self._owns_pool = pool is None
        self.pool = pool or IOPool(OrchestratorConfig.from_env())

        self._editor_done = threading.Event()
        self._finished = threading.Event()
        self._error_lock = threading.Lock()
        self._error: Optional[BaseException] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def run(self) -> None:
        """
        Pump both directions until the editor closes its input.

        Raises:
            FramingError: Editor or server framing is broken
            UpstreamClosedError: Server output ended early or its pipe broke
            EditorClosedError: Editor output pipe broke
        """
        upstream = threading.Thread(
            target=self._guarded, args=(self._pump_upstream,), name="tsunami-upstream", daemon=True
        )
        editor = threading.Thread(
            target=self._guarded, args=(self._pump_editor,), name="tsunami-editor", daemon=True
        )
        upstream.start()
        editor.start()
        try:
            self._finished.wait()
            self._raise_error()
            upstream.join(timeout=self.pool.config.shutdown_timeout)
            if upstream.is_alive():
                logger.warning("Server output still open %.1fs after editor EOF", self.pool.config.shutdown_timeout)
            self._raise_error()
        finally:
            if self._owns_pool:
                self.pool.shutdown(wait=False)

    def _raise_error(self) -> None:
        with self._error_lock:
            error = self._error
        if error is not None:
            raise error

    def _fail(self, error: BaseException) -> None:
        with self._error_lock:
            if self._error is None:
                self._error = error
        self._finished.set()

    def _guarded(self, pump: Callable[[], None]) -> None:
        try:
            pump()
        except Exception as e:
            logger.error("%s stopped: %s", threading.current_thread().name, e)
            self._fail(e)

    # =========================================================================
    # Pumps
    # =========================================================================

    def _pump_editor(self) -> None:
        for raw in read_messages(self.editor_in):
            self.dispatch(raw)
        logger.info("Editor input closed")

        if not self.pool.drain(timeout=self.pool.config.shutdown_timeout):
            logger.warning("Local work still running at shutdown")
        logger.info("Local work: %s", self.pool.stats().to_dict())
        self._editor_done.set()
        try:
            self.upstream_in.close()
        except OSError as e:
            logger.debug("Closing server stdin: %s", e)
        self._finished.set()

    def _pump_upstream(self) -> None:
        for frame in read_frames(self.upstream_out):
            logger.debug("Relaying %d bytes from server", len(frame))
            self.writer.write_raw(frame)
        if not self._editor_done.is_set():
            raise UpstreamClosedError("Analysis server output ended")
        logger.info("Server output closed")

    # =========================================================================
    # Routing
    # =========================================================================

    def dispatch(self, raw: Any) -> None:
        """Route one decoded editor message. Runs on the editor pump."""
        try:
            command = parse_command(raw)
        except CommandFormatError as e:
            logger.warning("Dropping malformed message: %s", e)
            return

        if command.kind is CommandClass.LOCAL:
            logger.info("Handling %s (seq %s) locally", command.command, command.seq)
            self.pool.submit(local_task(fn=self._answer, args=(command,), command=command.command))
        elif command.kind is CommandClass.WIRETAP:
            self.processor.observe(command)
            self._forward(command)
        else:
            self._forward(command)

    def _answer(self, command: Command) -> None:
        response = self.processor.respond(command)
        try:
            self.writer.write_message(response.to_dict())
        except EditorClosedError as e:
            logger.error("Cannot deliver %s response (seq %s): %s", command.command, command.seq, e)
            self._fail(e)

    def _forward(self, command: Command) -> None:
        logger.debug("Forwarding %s (seq %s)", command.command, command.seq)
        try:
            self.upstream_in.write(encode_forward(command.raw))
            self.upstream_in.flush()
        except (OSError, ValueError) as e:
            raise UpstreamClosedError(f"Cannot write to analysis server: {e}") from e
