from __future__ import annotations

from dataclasses import dataclass


class ProviderError(RuntimeError):
    """Base exception for provider-related failures."""


class ProviderRequestError(ProviderError):
    """HTTP/network/transport layer failures (timeouts, connection errors, non-2xx, etc.)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderRateLimited(ProviderRequestError):
    """Provider throttled the request (HTTP 429 or a `ratelimited` API error)."""


class RateLimitExceeded(ProviderRateLimited):
    """Throttling persisted through every retry of a rate class."""

    def __init__(self, rate_class: str, attempts: int) -> None:
        super().__init__(
            f"Rate limit still exceeded for class={rate_class} after {attempts} attempts",
            status_code=429,
        )
        self.rate_class = rate_class
        self.attempts = attempts


class ProviderResponseError(ProviderError):
    """Provider returned a well-formed response indicating an application-level error."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class ProviderMappingError(ProviderError):
    """Mapping/extraction failed due to unexpected schema or values."""
    message: str
    context: dict[str, object] | None = None

    def __str__(self) -> str:  # pragma: no cover
        if not self.context:
            return self.message
        return f"{self.message} | context={self.context}"
