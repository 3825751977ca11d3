from __future__ import annotations

from dataclasses import dataclass


# -----------------------------------------------
# Token carriers handed over by the scanner
# -----------------------------------------------

@dataclass(frozen=True)
class Token:
    line: int
    column: int


@dataclass(frozen=True)
class IdToken(Token):
    value: str


@dataclass(frozen=True)
class IntLitToken(Token):
    value: int


@dataclass(frozen=True)
class StrLitToken(Token):
    # Raw text, quotes and escapes included
    value: str
