"""
Commands — Tagged command variants and the classifier

Every inbound object becomes exactly one Command variant at receipt
time. The name -> variant table (COMMAND_TYPES) is the single place a
new locally-handled command is added.

Classes:
- LOCAL: answered here, never forwarded
- WIRETAP: observed here, then forwarded
- PASSTHROUGH: forwarded untouched

Usage:
    command = parse_command({"command": "reload", "seq": 3, "arguments": {"file": "a.ts"}})
    command.kind            # CommandClass.WIRETAP
    command.file            # "a.ts"
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Type

from ..errors import CommandFormatError


SYMBOL_LOCATIONS = "SYMBOL_LOCATIONS"
ORGANIZE_IMPORTS = "ORGANIZE_IMPORTS"
RELOAD = "reload"


class CommandClass(Enum):
    """Routing decision for a command."""
    LOCAL = "local"
    WIRETAP = "wiretap"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class Command:
    """A received command. `raw` is the decoded object exactly as received."""
    command: str
    seq: Any
    raw: Dict[str, Any] = field(repr=False, compare=False)

    kind = CommandClass.PASSTHROUGH

    @property
    def arguments(self) -> Dict[str, Any]:
        arguments = self.raw.get("arguments")
        return arguments if isinstance(arguments, dict) else {}

    def _required(self, name: str) -> Any:
        value = self.arguments.get(name)
        if value is None:
            raise CommandFormatError(f"{self.command} requires argument '{name}'")
        return value


@dataclass(frozen=True)
class FetchSymbolLocationsCommand(Command):
    kind = CommandClass.LOCAL

    @property
    def prefix(self) -> Optional[str]:
        return self.arguments.get("prefix")


@dataclass(frozen=True)
class OrganizeImportsCommand(Command):
    kind = CommandClass.LOCAL

    @property
    def filename(self) -> str:
        return str(self._required("filename"))


@dataclass(frozen=True)
class ReloadCommand(Command):
    kind = CommandClass.WIRETAP

    @property
    def file(self) -> str:
        return str(self._required("file"))

    @property
    def tmpfile(self) -> Optional[str]:
        tmpfile = self.arguments.get("tmpfile")
        return str(tmpfile) if tmpfile else None


@dataclass(frozen=True)
class PassThroughCommand(Command):
    kind = CommandClass.PASSTHROUGH


COMMAND_TYPES: Dict[str, Type[Command]] = {
    SYMBOL_LOCATIONS: FetchSymbolLocationsCommand,
    ORGANIZE_IMPORTS: OrganizeImportsCommand,
    RELOAD: ReloadCommand,
}


def parse_command(raw: Any) -> Command:
    """
    Turn a decoded object into its Command variant.

    Raises:
        CommandFormatError: If raw is not an object with "command" and "seq"
    """
    if not isinstance(raw, dict):
        raise CommandFormatError(f"Expected a JSON object, got {type(raw).__name__}")
    name = raw.get("command")
    if not isinstance(name, str) or not name:
        raise CommandFormatError("Missing 'command'")
    if raw.get("seq") is None:
        raise CommandFormatError(f"{name} is missing 'seq'")
    variant = COMMAND_TYPES.get(name, PassThroughCommand)
    return variant(command=name, seq=raw["seq"], raw=raw)


def classify(raw: Any) -> CommandClass:
    """Routing class of a decoded object. Raises CommandFormatError when malformed."""
    return parse_command(raw).kind


@dataclass
class Response:
    """A synthesized response. None fields are left off the wire."""
    seq: int
    command: str
    request_seq: Any
    success: bool
    message: Optional[str] = None
    body: Any = None
    type: str = "response"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "seq": self.seq,
            "type": self.type,
            "command": self.command,
            "request_seq": self.request_seq,
            "success": self.success,
        }
        if self.message is not None:
            data["message"] = self.message
        if self.body is not None:
            data["body"] = self.body
        return data
