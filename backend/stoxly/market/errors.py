"""Error taxonomy for the quote layer.

Everything raised on purpose by the market package derives from QuoteError,
so the HTTP layer can map failures without knowing which component failed.
"""

from __future__ import annotations


class QuoteError(Exception):
    """Base class for quote-layer failures."""


class ExhaustedRetries(QuoteError):
    """Every attempt of a retried operation failed."""

    def __init__(self, last_error: BaseException, attempts: int) -> None:
        super().__init__(f"gave up after {attempts} attempt(s): {last_error}")
        self.last_error = last_error
        self.attempts = attempts


class UpstreamError(QuoteError):
    """A single upstream call failed at the transport or HTTP level. Retryable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamUnavailable(QuoteError):
    """Upstream stayed unreachable after retries were exhausted."""

    def __init__(self, symbol: str, message: str) -> None:
        super().__init__(f"{symbol}: upstream unavailable ({message})")
        self.symbol = symbol
        self.message = message


class ProviderRejected(QuoteError):
    """The provider answered with a client error (unknown symbol, bad request)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NormalizationError(QuoteError, ValueError):
    """A payload could not be mapped onto a Quote."""


class QuoteUnavailable(NormalizationError):
    """The provider answered, but not with a usable quote for this symbol."""

    def __init__(self, symbol: str, message: str) -> None:
        super().__init__(f"{symbol}: {message}")
        self.symbol = symbol
        self.message = message


class RateLimited(QuoteError):
    """The provider asked us to slow down. Callers should back off longer."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ConnectionLost(QuoteError):
    """The streaming connection dropped and was not re-established."""


class BatchUnavailable(QuoteError):
    """Every symbol of a batch request failed."""

    def __init__(self, failures: dict[str, QuoteError]) -> None:
        symbols = ", ".join(sorted(failures))
        super().__init__(f"no quotes available for: {symbols}")
        self.failures = failures
