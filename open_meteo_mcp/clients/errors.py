"""Exceptions raised by the Open-Meteo clients."""


class OpenMeteoError(RuntimeError):
    """Base class for every failure talking to Open-Meteo."""

    # Whether another attempt at the same request may succeed.
    retryable: bool = False


class UpstreamUnavailableError(OpenMeteoError):
    """Server errors or connection failures that outlasted the retry budget."""

    retryable = True


class UpstreamTimeoutError(OpenMeteoError):
    """Every attempt timed out."""

    retryable = True


class RateLimitedError(OpenMeteoError):
    """Open-Meteo answered 429. Never retried."""


class UpstreamRequestError(OpenMeteoError):
    """Open-Meteo rejected the request with a 4xx status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidUpstreamDataError(OpenMeteoError):
    """The response body was not valid JSON or lacked the expected blocks."""


class LocationNotFoundError(OpenMeteoError):
    """Geocoding returned no match for the requested place."""
