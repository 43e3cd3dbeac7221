"""
Domain Exceptions

Raised by the service layer and translated into JSON responses by the
handlers registered in ``orderdesk.main``. Services never build HTTP
responses themselves.
"""


class OrderDeskError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    title = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OrderDeskError):
    """Missing or invalid input (required field, unknown status, bad transition)."""

    status_code = 400
    title = "Validation Error"


class NotFoundError(OrderDeskError):
    """Unknown id, tracking id or contact number."""

    status_code = 404
    title = "Not Found"


class StoreFailure(OrderDeskError):
    """Database unreachable or write conflict."""

    status_code = 500
    title = "Store Failure"


class TrackingIdExhausted(StoreFailure):
    """No free tracking id could be found within the attempt budget."""


class AuthFailure(OrderDeskError):
    """Missing/invalid credentials (401) or insufficient role (403)."""

    status_code = 401
    title = "Unauthorized"

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code
        if status_code == 403:
            self.title = "Forbidden"
