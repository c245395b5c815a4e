"""Shared security utilities — raw-string URL validation.

Checks run on the string exactly as supplied. Parsing first would hide the
attack: ``httpx.URL("http://a.com/../b")`` already reads ``http://a.com/b``.
"""

import re
from collections.abc import Mapping
from enum import StrEnum
from typing import Any
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, Field, field_validator

# CR / LF / TAB enable request splitting and header injection
CONTROL_CHARS = re.compile(r"[\r\n\t]")

# ".." as a whole path segment: (^|/) .. (/|$)
TRAVERSAL_SEGMENT = re.compile(r"(^|/)\.\.(/|$)")
TRAVERSAL_SEGMENT_BACKSLASH = re.compile(r"(^|[/\\])\.\.([/\\]|$)")

DEFAULT_PROTOCOLS = ("http", "https")
DEFAULT_DECODE_PASSES = 3  # enough for triple encoding (%25252e)
MAX_DECODE_PASSES = 8


class Violation(StrEnum):
    """Rule that rejected a URL. Only exposed through check_url()."""

    INVALID_INPUT = "invalid_input"
    CONTROL_CHARACTER = "control_character"
    PATH_TRAVERSAL = "path_traversal"
    DISALLOWED_PROTOCOL = "disallowed_protocol"
    RELATIVE_NOT_ALLOWED = "relative_not_allowed"


class SafeUrlOptions(BaseModel):
    """Per-call validation options."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    allow_relative: bool = True
    allowed_protocols: tuple[str, ...] = DEFAULT_PROTOCOLS
    decode_passes: int = Field(default=DEFAULT_DECODE_PASSES, ge=0, le=MAX_DECODE_PASSES)
    backslash_is_separator: bool = True

    @field_validator("allowed_protocols", mode="before")
    @classmethod
    def normalize_protocols(cls, v: object) -> object:
        """Lower-case scheme names and strip a trailing ':' or '://'."""
        if isinstance(v, str):
            raise ValueError("allowed_protocols must be a list of scheme names, not a string")
        if not isinstance(v, (list, tuple, set, frozenset)):
            return v
        names: list[str] = []
        for item in v:
            if not isinstance(item, str):
                raise ValueError(f"scheme name must be a string, got {type(item).__name__}")
            name = item.strip().lower().removesuffix("://").removesuffix(":")
            if not name:
                raise ValueError("scheme name must not be empty")
            names.append(name)
        return tuple(dict.fromkeys(names))


def _resolve_options(options: "SafeUrlOptions | Mapping[str, Any] | None") -> SafeUrlOptions:
    if options is None:
        return SafeUrlOptions()
    if isinstance(options, SafeUrlOptions):
        return options
    return SafeUrlOptions.model_validate(dict(options))


def _decoded_forms(url: str, passes: int):
    """Yield successive percent-decodings of url, stopping at a fixed point."""
    current = url
    for _ in range(passes):
        decoded = unquote(current)
        if decoded == current:
            return
        yield decoded
        current = decoded


def _has_traversal(url: str, options: SafeUrlOptions) -> bool:
    pattern = TRAVERSAL_SEGMENT_BACKSLASH if options.backslash_is_separator else TRAVERSAL_SEGMENT
    if pattern.search(url):
        return True
    # Decoded forms are only inspected, never returned to the caller
    return any(pattern.search(form) for form in _decoded_forms(url, options.decode_passes))


def _has_scheme(url: str) -> bool:
    """True when a ':' appears before the first '/' (javascript:, mailto:, data:...)."""
    colon = url.find(":")
    slash = url.find("/")
    return colon != -1 and (slash == -1 or colon < slash)


def check_url(
    url: object, options: "SafeUrlOptions | Mapping[str, Any] | None" = None
) -> Violation | None:
    """Return the first rule that rejects url, or None if it is safe.

    Diagnostic counterpart of is_safe_url(); both always agree.
    """
    opts = _resolve_options(options)

    if not isinstance(url, str) or not url:
        return Violation.INVALID_INPUT

    if CONTROL_CHARS.search(url):
        return Violation.CONTROL_CHARACTER

    if _has_traversal(url, opts):
        return Violation.PATH_TRAVERSAL

    lowered = url.lower()
    if any(lowered.startswith(f"{protocol}://") for protocol in opts.allowed_protocols):
        return None

    if _has_scheme(url):
        return Violation.DISALLOWED_PROTOCOL

    # No scheme: relative URL (including protocol-relative "//host/path")
    if not opts.allow_relative:
        return Violation.RELATIVE_NOT_ALLOWED

    return None


def is_safe_url(url: object, options: "SafeUrlOptions | Mapping[str, Any] | None" = None) -> bool:
    """Return True if url is safe to hand to an HTTP client.

    Rejects control characters, ".." path segments and schemes outside
    options.allowed_protocols. Relative URLs pass only if
    options.allow_relative is set. Never raises for any url value.
    """
    return check_url(url, options) is None
