"""Errors raised by the WaniKani API client."""
from typing import Optional


class NetworkError(Exception):
    """Base class for every failure talking to the WaniKani API."""


class NoConnectionError(NetworkError):
    def __init__(self, message: str = "No connection to WaniKani"):
        super().__init__(message)


class UnauthorizedError(NetworkError):
    def __init__(self, message: str = "API token was rejected"):
        super().__init__(message)


class RateLimitedError(NetworkError):
    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Rate limited, retry after {retry_after} seconds")


class ServerError(NetworkError):
    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Server error (HTTP {status_code})")


class DecodingError(NetworkError):
    def __init__(self, message: str = "Could not decode API response"):
        super().__init__(message)


class UnknownNetworkError(NetworkError):
    def __init__(self, status_code: Optional[int] = None, message: str = "Unexpected API response"):
        self.status_code = status_code
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        super().__init__(message)
