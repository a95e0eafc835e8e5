from __future__ import annotations

from .api import (
    canonicalize_to_text,
    fingerprint_source,
    merge_by_namespace,
    merge_sources,
    normalize_source,
    parse_file,
    parse_source,
)
from .canonical import canonicalize
from .descriptor import ProtoFile
from .errors import (
    EditionConflict,
    ExtensionConflict,
    MergeError,
    OptionConflict,
    ParseError,
    RenderError,
    TypeConflict,
    Unrepresentable,
    ValidationError,
    ValidationErrorKind,
)
from .fingerprint import FINGERPRINT_VERSION, fingerprint
from .merge import MERGE_ALGORITHM_VERSION, MergeOptions, MergeReport, MergeResult, merge_groups
from .render import RENDER_STYLE_VERSION, render

__all__ = [
    "EditionConflict",
    "ExtensionConflict",
    "FINGERPRINT_VERSION",
    "MERGE_ALGORITHM_VERSION",
    "MergeError",
    "MergeOptions",
    "MergeReport",
    "MergeResult",
    "OptionConflict",
    "ParseError",
    "ProtoFile",
    "RENDER_STYLE_VERSION",
    "RenderError",
    "TypeConflict",
    "Unrepresentable",
    "ValidationError",
    "ValidationErrorKind",
    "canonicalize",
    "canonicalize_to_text",
    "fingerprint",
    "fingerprint_source",
    "merge_by_namespace",
    "merge_groups",
    "merge_sources",
    "normalize_source",
    "parse_file",
    "parse_source",
    "render",
]
