"""
Exceptions raised by the search backend layer.

The hierarchy separates transient transport failures from request
rejections and lapsed scroll contexts so callers can decide what to retry.
"""


class SearchError(Exception):
    """Base exception for search backend errors."""

    def __init__(self, message: str, status: int | None = None, reason: str | None = None):
        super().__init__(message)
        self.status = status
        self.reason = reason


class BackendUnavailable(SearchError):
    """Raised when the backend cannot be reached or is temporarily overloaded."""

    pass


class QueryError(SearchError):
    """Raised when the backend rejects a request or returns an unreadable response."""

    pass


class CursorExpired(SearchError):
    """Raised when a scroll keep-alive lapsed between two page fetches."""

    pass


class CursorReleasedError(SearchError):
    """Raised when a cursor is used before it was opened or after it was released."""

    pass
