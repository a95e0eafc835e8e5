from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Position:
    """A concrete source position.

    Offsets are 0-based; line/column are 1-based for user-facing messages.
    """

    offset: int
    line: int
    column: int


START = Position(offset=0, line=1, column=1)


@dataclass(frozen=True, slots=True)
class Span:
    """Half-open span [start, end) in a single file."""

    file: str
    start: Position
    end: Position

    @classmethod
    def at_start(cls, file: str) -> "Span":
        return cls(file=file, start=START, end=START)

    def join(self, other: "Span") -> "Span":
        return Span(file=self.file, start=self.start, end=other.end)

    def format(self) -> str:
        return f"{self.file}:{self.start.line}:{self.start.column}"


@dataclass(frozen=True, slots=True)
class Annotation:
    """Where a declaration came from: never part of its identity."""

    span: Span
    comments: tuple[str, ...] = ()
