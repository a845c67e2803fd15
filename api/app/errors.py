class SwapError(Exception):
    """Base class for matching and conversation errors."""

    status_code = 500

    def __init__(self, detail: str = "", *, reason: str | None = None):
        self.detail = detail or self.__class__.__name__
        self.reason = reason
        super().__init__(self.detail)


class NotAuthenticated(SwapError):
    status_code = 401


class InvalidOperation(SwapError):
    status_code = 400


class NotFound(SwapError):
    status_code = 404


class StoreUnavailable(SwapError):
    """Transient store failure. Writes may be retried by the caller."""

    status_code = 503
    retry_after_seconds = 2


class ConstraintConflict(SwapError):
    """A unique constraint rejected an insert.

    Raised by the repository layer and absorbed by the interest recorder and
    the match formation engine; it never reaches an HTTP client.
    """

    status_code = 409
