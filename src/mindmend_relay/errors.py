"""Error taxonomy for calls to the external model APIs.

Client input errors never reach this module: they are rejected by pydantic
at the HTTP boundary. Everything raised here is absorbed by the fallback
generator before it reaches the caller.
"""


class UpstreamError(Exception):
    """The external API failed in a way that is not worth retrying."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RateLimitedError(UpstreamError):
    """The external API refused the call because of a rate limit (HTTP 429).

    Attributes:
        retry_after: Seconds the provider asked us to wait, when it said so.
    """

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class MissingCredentialsError(UpstreamError):
    """No API key is configured for the requested provider."""

    def __init__(self, variable: str) -> None:
        super().__init__(f"{variable} is not configured")
        self.variable = variable
