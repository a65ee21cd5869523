"""
Comment command parser.

A command is the configured prefix (e.g. `@bors`) followed by a keyword. The
prefix may appear anywhere in the comment; the first recognized command wins.
"""

import re
from typing import List, Optional

from bors.commands.types import (
    Approve,
    Help,
    ParseError,
    ParseResult,
    Ping,
    Try,
    TryCancel,
    Unapprove,
)

SHA_PATTERN = re.compile(r"^[0-9a-fA-F]{7,40}$")


class CommandParser:
    """Turns comment bodies into at most one command."""

    def __init__(self, prefix: str, bot_login: Optional[str] = None):
        self.prefix = prefix
        self.bot_login = bot_login

    def parse(self, text: str, author: Optional[str] = None) -> Optional[ParseResult]:
        """
        Parse a comment body.

        Args:
            text: The comment body.
            author: Login of the comment author.

        Returns:
            The command, a ParseError for a known command with bad arguments,
            or None if the comment contains no command.
        """
        if author is not None and self.bot_login is not None and author == self.bot_login:
            return None

        for line in text.splitlines():
            for words in self._command_candidates(line):
                result = self._parse_words(words)
                if result is not None:
                    return result
        return None

    def _command_candidates(self, line: str) -> List[List[str]]:
        """Word lists following each occurrence of the prefix in `line`."""
        candidates = []
        start = line.find(self.prefix)
        while start != -1:
            end = start + len(self.prefix)
            # `@borsbot` is not `@bors`
            if end == len(line) or line[end].isspace():
                candidates.append(line[end:].split())
            start = line.find(self.prefix, end)
        return candidates

    def _parse_words(self, words: List[str]) -> Optional[ParseResult]:
        if not words:
            return None
        keyword, args = words[0], words[1:]

        if keyword == "ping":
            return Ping()
        if keyword == "help":
            return Help()
        if keyword == "r+":
            return Approve()
        if keyword == "r-":
            return Unapprove()
        if keyword.startswith("r="):
            approver = keyword[len("r=") :].lstrip("@")
            if not approver:
                return ParseError(message="Approver must not be empty, use `r=<user>`.")
            return Approve(approver=approver)
        if keyword == "try-":
            return TryCancel()
        if keyword == "try":
            return self._parse_try(args)
        return None

    def _parse_try(self, args: List[str]) -> ParseResult:
        if not args:
            return Try()
        arg = args[0]
        if arg == "cancel":
            return TryCancel()
        if "=" not in arg:
            # Trailing prose, e.g. "@bors try please"
            return Try()
        key, _, value = arg.partition("=")
        if key != "parent":
            return ParseError(message=f"Unknown argument `{key}`.")
        if not SHA_PATTERN.match(value):
            return ParseError(message=f"`{value}` is not a valid commit SHA.")
        return Try(parent=value)
