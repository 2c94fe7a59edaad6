"""
CommandProcessor — Answers locally-handled commands, observes wiretapped ones

Two entry points, two error boundaries:
- respond(command) -> Response: never raises; a failure becomes a
  response with success=False and message=str(error)
- observe(command): never raises; a failure is logged and the caller
  forwards the command regardless

Handlers are keyed by command name.
"""

import itertools
import logging
import threading
from typing import Callable, Dict

from ..context import TsunamiContext
from .commands import (
    Command,
    FetchSymbolLocationsCommand,
    OrganizeImportsCommand,
    ReloadCommand,
    Response,
    SYMBOL_LOCATIONS,
    ORGANIZE_IMPORTS,
    RELOAD,
)

logger = logging.getLogger(__name__)


class CommandProcessor:
    """
    Computes answers from the context's snapshots and indexes.

    Usage:
        processor = CommandProcessor(context)
        response = processor.respond(parse_command(raw))
        writer.write_message(response.to_dict())
    """

    def __init__(self, context: TsunamiContext):
        self.context = context
        self._seq = itertools.count(1)
        self._seq_lock = threading.Lock()
        self._responders: Dict[str, Callable[[Command], Response]] = {
            SYMBOL_LOCATIONS: self._symbol_locations,
            ORGANIZE_IMPORTS: self._organize_imports,
        }
        self._observers: Dict[str, Callable[[Command], None]] = {
            RELOAD: self._reload,
        }

    def next_seq(self) -> int:
        """Next sequence number of the interposer's own response stream."""
        with self._seq_lock:
            return next(self._seq)

    def _response(self, command: Command, success: bool, message: str = None, body=None) -> Response:
        return Response(
            seq=self.next_seq(),
            command=command.command,
            request_seq=command.seq,
            success=success,
            message=message,
            body=body,
        )

    def respond(self, command: Command) -> Response:
        """Answer a LOCAL command. Never raises."""
        try:
            handler = self._responders.get(command.command)
            if handler is None:
                raise ValueError(f"{command.command} is not handled locally")
            return handler(command)
        except Exception as e:
            logger.exception("Error processing %s (seq %s)", command.command, command.seq)
            return self._response(command, False, message=str(e))

    def observe(self, command: Command) -> None:
        """Apply the local side effect of a WIRETAP command. Never raises."""
        handler = self._observers.get(command.command)
        if handler is None:
            return
        try:
            handler(command)
        except Exception:
            logger.exception("Error wiretapping %s (seq %s)", command.command, command.seq)

    # =========================================================================
    # Handlers
    # =========================================================================

    def _symbol_locations(self, command: FetchSymbolLocationsCommand) -> Response:
        # The prefix is only logged; filtering is left to the caller
        logger.info("Fetching symbols for prefix %r", command.prefix)
        locations = [definition.to_location() for definition in self.context.index.definitions()]
        return self._response(command, True, body={"symbolLocations": locations})

    def _organize_imports(self, command: OrganizeImportsCommand) -> Response:
        filename = command.filename
        logger.info("Organizing imports for %s", filename)
        documents = self.context.documents
        with documents.locked(filename):
            snapshot = documents.update(filename)
            result = self.context.sorter.organize_imports(snapshot)
        if not result.ok:
            logger.warning("Cannot organize imports of %s: %s", filename, result.error)
            return self._response(command, False, message=result.error, body=result.error)
        return self._response(command, True, body=result.text)

    def _reload(self, command: ReloadCommand) -> None:
        logger.info("Reloading %s%s", command.file, f" from {command.tmpfile}" if command.tmpfile else "")
        self.context.reload_file(command.file, command.tmpfile)
