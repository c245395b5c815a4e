"""API endpoints for URL checks."""

import logging
import os

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.api.models import BatchCheckRequest, BatchCheckResult, CheckOptions, CheckRequest, CheckResult
from src.fetch.guard import ensure_safe_url
from src.utils.security import DEFAULT_DECODE_PASSES, SafeUrlOptions, check_url

logger = logging.getLogger(__name__)
router = APIRouter()

# Environment variables
ALLOWED_PROTOCOLS = [
    p.strip()
    for p in os.environ.get("URLGUARD_ALLOWED_PROTOCOLS", "http,https").split(",")
    if p.strip()
]
ALLOW_RELATIVE = os.environ.get("URLGUARD_ALLOW_RELATIVE", "true").strip().lower() in (
    "1",
    "true",
    "yes",
    "on",
)
DECODE_PASSES = int(os.environ.get("URLGUARD_DECODE_PASSES", str(DEFAULT_DECODE_PASSES)))
MAX_BATCH = int(os.environ.get("URLGUARD_MAX_BATCH", "100"))
RATE_LIMIT = os.environ.get("RATE_LIMIT", "60/minute")

DEFAULT_OPTIONS = SafeUrlOptions(
    allow_relative=ALLOW_RELATIVE,
    allowed_protocols=ALLOWED_PROTOCOLS,
    decode_passes=DECODE_PASSES,
)

API_VERSION = "1.0.0"

limiter = Limiter(key_func=get_remote_address)


def _build_options(overrides: CheckOptions) -> SafeUrlOptions:
    """Merge request overrides onto the server defaults."""
    update = overrides.model_dump(
        include={"allow_relative", "allowed_protocols", "decode_passes"},
        exclude_none=True,
    )
    if not update:
        return DEFAULT_OPTIONS
    try:
        return SafeUrlOptions.model_validate({**DEFAULT_OPTIONS.model_dump(), **update})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=[err["msg"] for err in e.errors()])


def _verdict(url: str, options: SafeUrlOptions, explain: bool) -> CheckResult:
    violation = check_url(url, options)
    return CheckResult(
        url=url,
        safe=violation is None,
        violation=violation.value if explain and violation is not None else None,
    )


@router.post("/check")
@limiter.limit(RATE_LIMIT)
async def check(request: Request, payload: CheckRequest) -> CheckResult:
    """Check a single URL."""
    options = _build_options(payload)
    result = _verdict(payload.url, options, payload.explain)
    # Never log the URL itself — it is untrusted input
    logger.info("URL check", extra={"safe": result.safe})
    return result


@router.post("/validate")
@limiter.limit(RATE_LIMIT)
async def validate(request: Request, payload: CheckRequest) -> CheckResult:
    """Strict check: a rejected URL raises UnsafeUrlError, answered with 400."""
    ensure_safe_url(payload.url, _build_options(payload))
    return CheckResult(url=payload.url, safe=True)


@router.post("/check/batch")
@limiter.limit(RATE_LIMIT)
async def check_batch(request: Request, payload: BatchCheckRequest) -> BatchCheckResult:
    """Check several URLs with the same options."""
    if len(payload.urls) > MAX_BATCH:
        raise HTTPException(
            status_code=422,
            detail=f"Too many URLs: {len(payload.urls)} (max {MAX_BATCH})",
        )
    options = _build_options(payload)
    results = [_verdict(url, options, payload.explain) for url in payload.urls]
    safe_count = sum(1 for r in results if r.safe)
    logger.info(
        f"Checked {len(results)} URLs",
        extra={"safe_count": safe_count, "unsafe_count": len(results) - safe_count},
    )
    return BatchCheckResult(
        results=results,
        safe_count=safe_count,
        unsafe_count=len(results) - safe_count,
    )


@router.get("/health")
async def health() -> dict:
    """Liveness check with the active server-side defaults."""
    return {
        "status": "ok",
        "version": API_VERSION,
        "defaults": {
            "allow_relative": DEFAULT_OPTIONS.allow_relative,
            "allowed_protocols": list(DEFAULT_OPTIONS.allowed_protocols),
            "decode_passes": DEFAULT_OPTIONS.decode_passes,
            "max_batch": MAX_BATCH,
        },
    }
