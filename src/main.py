"""FastAPI application entry point."""

import json
import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from src.api.routes import API_VERSION, limiter, router
from src.exceptions import UnsafeUrlError

# Attributes every LogRecord carries; anything else came in through extra=
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    """One JSON object per line; extra= fields are merged in at top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _STANDARD_ATTRS
        )
        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_type"] = record.exc_info[0].__name__
        return json.dumps(payload, default=str)


def setup_logging(level: str | None = None) -> None:
    """Route all loggers through a single JSON stream handler."""
    level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter())
    logging.basicConfig(level=getattr(logging, level, logging.INFO), handlers=[handler], force=True)


setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Urlguard", version=API_VERSION)
app.state.limiter = limiter
app.include_router(router, prefix="/api")


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(status_code=429, content={"detail": str(exc.detail)})


@app.exception_handler(UnsafeUrlError)
async def unsafe_url_handler(request: Request, exc: UnsafeUrlError) -> JSONResponse:
    """A rejected URL is a permanent client error, never a 5xx."""
    logger.info("URL rejected", extra={"path": request.url.path, "category": exc.category})
    return JSONResponse(
        status_code=400,
        content={"detail": "URL rejected by security policy", "category": exc.category},
    )
