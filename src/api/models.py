"""Pydantic models for API request/response."""

from pydantic import BaseModel, ConfigDict, Field

from src.utils.security import MAX_DECODE_PASSES


class CheckOptions(BaseModel):
    """Per-request overrides; unset fields fall back to server defaults."""

    model_config = ConfigDict(extra="forbid")

    allow_relative: bool | None = None
    allowed_protocols: list[str] | None = Field(default=None, max_length=32)
    decode_passes: int | None = Field(default=None, ge=0, le=MAX_DECODE_PASSES)
    explain: bool = False


class CheckRequest(CheckOptions):
    """Validate a single URL."""

    url: str = Field(max_length=8192)


class BatchCheckRequest(CheckOptions):
    """Validate several URLs with the same options."""

    urls: list[str] = Field(min_length=1)


class CheckResult(BaseModel):
    """Verdict for one URL. ``violation`` is only filled when explain=True."""

    url: str
    safe: bool
    violation: str | None = None


class BatchCheckResult(BaseModel):
    results: list[CheckResult]
    safe_count: int
    unsafe_count: int
