"""Guarded fetch — validate the raw URL, then delegate to httpx unchanged."""

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

import httpx

from src.exceptions import InvalidRequestError, UnsafeUrlError
from src.utils.security import SafeUrlOptions, check_url

logger = logging.getLogger(__name__)

# Keyword arguments httpx.AsyncClient.send() accepts next to a built Request
SEND_OPTIONS = frozenset({"stream", "auth", "follow_redirects"})

# Mapping keys forwarded to httpx.AsyncClient.request() along with "url"
REQUEST_KEYS = frozenset(
    {
        "method",
        "params",
        "headers",
        "cookies",
        "content",
        "data",
        "files",
        "json",
        "auth",
        "follow_redirects",
        "timeout",
        "extensions",
    }
)


class RequestDescriptor(Protocol):
    """Anything exposing a ``url`` field, e.g. httpx.Request."""

    url: Any


# Closed set of accepted input shapes.
# NOTE: an httpx.URL has already been parsed, so dot segments may be resolved
# before we see it. For that shape only control characters are reliably caught.
# A mapping forwards its REQUEST_KEYS to httpx; any other key is refused.
FetchTarget = str | httpx.URL | RequestDescriptor | Mapping[str, Any]

_Call = Callable[[httpx.AsyncClient], Awaitable[httpx.Response]]


def _url_field(target: object) -> object:
    if isinstance(target, Mapping):
        if "url" not in target:
            raise InvalidRequestError("mapping has no 'url' key")
        return target["url"]
    if not hasattr(target, "url"):
        raise InvalidRequestError(f"unsupported input type {type(target).__name__}")
    return target.url


def extract_url(target: FetchTarget) -> str:
    """Return the string form of a fetch target.

    Raises InvalidRequestError if a descriptor has no usable URL string.
    """
    if isinstance(target, str):
        return target
    if isinstance(target, httpx.URL):
        return str(target)

    value = _url_field(target)
    if isinstance(value, str):
        return value
    if isinstance(value, httpx.URL):
        return str(value)
    raise InvalidRequestError(f"'url' is {type(value).__name__}, expected str")


def ensure_safe_url(target: FetchTarget, options: SafeUrlOptions | None = None) -> str:
    """Extract and validate the URL of target; raise UnsafeUrlError if rejected."""
    url = extract_url(target)
    violation = check_url(url, options)
    if violation is not None:
        # The URL itself stays out of the log; it is attacker-controlled
        logger.warning("Blocked unsafe URL", extra={"category": violation.value})
        raise UnsafeUrlError(url, violation.value)
    return url


def _plan_call(target: FetchTarget, method: str | None, kwargs: dict[str, Any]) -> _Call:
    """Work out the httpx call for target, refusing options it cannot carry."""
    if isinstance(target, httpx.Request):
        if method is not None and method.upper() != target.method:
            raise InvalidRequestError(
                f"method {method!r} conflicts with the request's own {target.method!r}"
            )
        unsupported = sorted(set(kwargs) - SEND_OPTIONS)
        if unsupported:
            raise InvalidRequestError(
                f"an httpx.Request only takes {sorted(SEND_OPTIONS)}, got {unsupported}"
            )
        return lambda client: client.send(target, **kwargs)

    if isinstance(target, Mapping):
        url = _url_field(target)
        extra = {key: value for key, value in target.items() if key != "url"}
        unknown = sorted(set(extra) - REQUEST_KEYS)
        if unknown:
            raise InvalidRequestError(f"unrecognised mapping keys {unknown}")
        given = set(kwargs) | ({"method"} if method is not None else set())
        clash = sorted(set(extra) & given)
        if clash:
            raise InvalidRequestError(f"{clash} given both in the mapping and as arguments")
        verb = method or extra.pop("method", None) or "GET"
        return lambda client: client.request(verb, url, **extra, **kwargs)

    url = target if isinstance(target, (str, httpx.URL)) else _url_field(target)
    return lambda client: client.request(method or "GET", url, **kwargs)


async def safe_fetch(
    target: FetchTarget,
    *,
    method: str | None = None,
    client: httpx.AsyncClient | None = None,
    options: SafeUrlOptions | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Validate target, then send it with httpx.

    Extra kwargs (follow_redirects, timeout, headers, ...) are forwarded
    untouched. For an httpx.Request only send() options are accepted, and
    ``method`` defaults to GET for every other shape. Nothing is sent when
    validation fails. Transport errors propagate unchanged.
    """
    call = _plan_call(target, method, kwargs)
    ensure_safe_url(target, options)

    if client is None:
        async with httpx.AsyncClient() as owned:
            return await call(owned)
    logger.debug("Delegating validated request to caller's client")
    return await call(client)
