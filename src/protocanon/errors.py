from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .spans import Span


@dataclass(slots=True)
class ParseError(Exception):
    span: Span
    message: str
    hint: str | None = None

    def __str__(self) -> str:
        base = f"{self.span.format()}: {self.message}"
        if self.hint:
            return f"{base}\nhint: {self.hint}"
        return base


class ValidationErrorKind(str, Enum):
    DUPLICATE_FIELD_NUMBER = "duplicate field number"
    DUPLICATE_NAME = "duplicate name"
    MALFORMED_IDENTIFIER = "malformed identifier"
    MALFORMED_NAMESPACE = "malformed namespace"
    DUPLICATE_ENUM_VALUE = "duplicate enum value"
    RESERVED_NUMBER_COLLISION = "reserved number collision"
    RESERVED_NAME_COLLISION = "reserved name collision"
    INVALID_NUMBER = "invalid number"
    INVALID_TYPE = "invalid type"
    INVALID_CARDINALITY = "invalid cardinality"
    INVALID_DEFAULT = "invalid default"
    DUPLICATE_OPTION = "duplicate option"
    DUPLICATE_IMPORT = "duplicate import"
    MALFORMED_IMPORT = "malformed import"


@dataclass(frozen=True, slots=True)
class Location:
    """Dotted path to the offending declaration, plus its span when known.

    Examples:
      - foo.bar.User
      - foo.bar.User.id
      - foo.bar.User.option(deprecated)
    """

    path: str
    span: Span | None = None

    def __str__(self) -> str:
        if self.span is None:
            return self.path or "<file>"
        return f"{self.span.format()}: {self.path or '<file>'}"


@dataclass(slots=True)
class ValidationError(Exception):
    kind: ValidationErrorKind
    location: Location
    message: str
    # Set by the merger to the position of the offending input.
    input_index: int | None = None

    def __str__(self) -> str:
        prefix = f"input #{self.input_index}: " if self.input_index is not None else ""
        return f"{prefix}{self.location}: {self.kind.value}: {self.message}"


@dataclass(slots=True)
class MergeError(Exception):
    """A cross-file conflict inside one namespace group."""

    namespace: str
    members: tuple[int, ...]

    def _where(self) -> str:
        ns = self.namespace or "<no package>"
        idx = ", ".join(f"#{i}" for i in self.members)
        return f"package {ns} (inputs {idx})"


@dataclass(slots=True)
class OptionConflict(MergeError):
    key: str

    def __str__(self) -> str:
        return f"{self._where()}: conflicting values for file option {self.key!r}"


@dataclass(slots=True)
class TypeConflict(MergeError):
    name: str

    def __str__(self) -> str:
        return f"{self._where()}: conflicting definitions of {self.name!r}"


@dataclass(slots=True)
class ExtensionConflict(MergeError):
    extendee: str
    number: int

    def __str__(self) -> str:
        return f"{self._where()}: conflicting extensions of {self.extendee!r} with number {self.number}"


@dataclass(slots=True)
class EditionConflict(MergeError):
    syntaxes: tuple[str, ...]

    def __str__(self) -> str:
        found = ", ".join(self.syntaxes)
        return f"{self._where()}: syntax version conflict ({found})"


@dataclass(slots=True)
class RenderError(Exception):
    pass


@dataclass(slots=True)
class Unrepresentable(RenderError):
    construct: str

    def __str__(self) -> str:
        return f"cannot render {self.construct}"
