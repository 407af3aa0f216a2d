"""
Exceptions shared by the session, collector and store layers.
"""


class PoolMonitorError(Exception):
    """Base class for poolmon errors."""


class AuthenticationError(PoolMonitorError):
    """Bad credentials or a login page whose form could not be parsed."""


class NotAuthenticatedError(PoolMonitorError):
    """A request was attempted on a session that has not logged in."""


class RequestTimeoutError(PoolMonitorError):
    """The remote panel did not answer within the per-request timeout."""

    def __init__(self, path: str, timeout: float):
        super().__init__(f"Request to {path} timed out after {timeout}s")
        self.path = path
        self.timeout = timeout


class InvalidPointError(PoolMonitorError):
    """A time-series point without a timestamp."""


class WeatherUnavailableError(PoolMonitorError):
    """Every configured weather backend failed."""
