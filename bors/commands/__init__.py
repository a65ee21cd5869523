from bors.commands.parser import CommandParser
from bors.commands.types import (
    Approve,
    BorsCommand,
    Help,
    ParseError,
    ParseResult,
    Ping,
    Try,
    TryCancel,
    Unapprove,
)

__all__ = [
    "CommandParser",
    "Approve",
    "BorsCommand",
    "Help",
    "ParseError",
    "ParseResult",
    "Ping",
    "Try",
    "TryCancel",
    "Unapprove",
]
