"""Error taxonomy for the booking backend.

Every error carries the HTTP status and code it maps to, so the API layer
renders them with a single exception handler.
"""
from typing import Optional


class PortalError(Exception):
    """Base class for all domain and upstream errors."""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "internal error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.detail = detail


class Unauthorized(PortalError):
    """No credential was presented."""
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "unauthorized access"


class Forbidden(PortalError):
    """Credential present but invalid, expired, or lacking the required role."""
    status_code = 403
    code = "FORBIDDEN"
    default_message = "forbidden access"


class NotFound(PortalError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "not found"


class BadRequest(PortalError):
    status_code = 400
    code = "BAD_REQUEST"
    default_message = "bad request"


class InvalidBooking(BadRequest):
    """Booking references an unknown treatment or a slot outside its catalog."""
    code = "INVALID_BOOKING"
    default_message = "invalid booking"


class UpstreamFailure(PortalError):
    """Store or payment service failed. Not recovered locally."""
    status_code = 503
    code = "UPSTREAM_FAILURE"
    default_message = "upstream service failure"


class UpstreamTimeout(UpstreamFailure):
    status_code = 504
    code = "UPSTREAM_TIMEOUT"
    default_message = "upstream service timed out"


class StoreUnavailable(UpstreamFailure):
    code = "STORE_UNAVAILABLE"
    default_message = "document store unavailable"


class StoreTimeout(UpstreamTimeout):
    code = "STORE_TIMEOUT"
    default_message = "document store timed out"


class DuplicateKeyError(PortalError):
    """Unique constraint violated in the store."""
    status_code = 409
    code = "DUPLICATE_KEY"
    default_message = "duplicate key"


class PaymentServiceError(UpstreamFailure):
    status_code = 502
    code = "PAYMENT_SERVICE_ERROR"
    default_message = "payment service error"


class PaymentServiceTimeout(UpstreamTimeout):
    code = "PAYMENT_SERVICE_TIMEOUT"
    default_message = "payment service timed out"
