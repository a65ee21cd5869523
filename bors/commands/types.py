"""Typed bot commands parsed from PR comments."""

from typing import Optional, Union

from pydantic import BaseModel


class BorsCommand(BaseModel):
    """Base class of every command."""


class Ping(BorsCommand):
    pass


class Help(BorsCommand):
    pass


class Approve(BorsCommand):
    # None means the comment author approves (`r+`), otherwise `r=<approver>`
    approver: Optional[str] = None


class Unapprove(BorsCommand):
    pass


class Try(BorsCommand):
    parent: Optional[str] = None


class TryCancel(BorsCommand):
    pass


class ParseError(BaseModel):
    """A known command was recognized but its arguments are invalid."""

    message: str


ParseResult = Union[BorsCommand, ParseError]
