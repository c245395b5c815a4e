"""Custom exceptions for Urlguard with user-friendly messages."""


class UrlguardError(Exception):
    """Base exception for Urlguard errors."""

    def __init__(self, message: str, user_hint: str | None = None):
        self.message = message
        self.user_hint = user_hint
        super().__init__(message)

    def __str__(self) -> str:
        if self.user_hint:
            return f"{self.message}\n  Hint: {self.user_hint}"
        return self.message


class InvalidRequestError(UrlguardError, ValueError):
    """Fetch target has no usable URL string, or carries options it cannot forward."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Invalid fetch target: {reason}",
            user_hint="Pass a str, an httpx.URL, or an object with a string 'url' field",
        )


class UnsafeUrlError(UrlguardError, ValueError):
    """URL was rejected by the validator; the request was never sent."""

    def __init__(self, url: str, category: str):
        self.url = url
        self.category = category
        # repr() keeps CR/LF out of log lines and tracebacks
        super().__init__(
            message=(
                "Security Violation: URL contains unsafe characters or traversal "
                f"attempts: {url!r} ({category})"
            )
        )
