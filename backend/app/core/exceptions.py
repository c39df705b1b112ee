class RequestValidationFailed(ValueError):
    """Input rejected before any external call is made."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class QueryBackendError(Exception):
    """The analytical query backend rejected or failed a call."""


class QueryThrottledError(QueryBackendError):
    """The backend asked us to slow down."""


class ResultNotFound(LookupError):
    """No stored result exists under the requested key."""
