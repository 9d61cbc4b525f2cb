"""API package initialization."""
from doctors_portal.api.models import ErrorResponse, BookingIn, PaymentIn, UserIn, DoctorIn

__all__ = ["ErrorResponse", "BookingIn", "PaymentIn", "UserIn", "DoctorIn"]
