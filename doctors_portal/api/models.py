"""Pydantic models for API request/response validation.

Wire format is camelCase to stay compatible with existing clients.
"""
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python; unknown keys ignored."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class BookingIn(WireModel):
    """Request schema for POST /booking."""
    appointment_date: str = Field(..., min_length=1, max_length=64, examples=["Jan 15, 2024"])
    email: str = Field(..., min_length=3, max_length=255)
    treatment_name: str = Field(..., min_length=1, max_length=200, examples=["Teeth Cleaning"])
    slot: str = Field(..., min_length=1, max_length=100, examples=["08.00 AM - 08.30 AM"])
    price: Optional[float] = Field(None, ge=0)
    patient: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "appointmentDate": "Jan 15, 2024",
                "treatmentName": "Teeth Cleaning",
                "patient": "Jane Doe",
                "slot": "08.00 AM - 08.30 AM",
                "email": "jane@example.com",
                "phone": "555-0100",
                "price": 99
            }
        }
    )


class PaymentIntentIn(WireModel):
    """Request schema for POST /create-payment-intent (usually the booking itself)."""
    price: Optional[float] = Field(None, ge=0)
    booking_id: Optional[str] = Field(None, validation_alias=AliasChoices("_id", "bookingId"))


class PaymentIn(WireModel):
    """Request schema for POST /payments."""
    booking_id: str = Field(..., min_length=1)
    transaction_id: str = Field(..., min_length=1, max_length=255)
    price: Optional[float] = Field(None, ge=0, validation_alias=AliasChoices("price", "amount"))
    email: Optional[str] = Field(None, max_length=255)


class UserIn(WireModel):
    """Request schema for POST /users. Role cannot be supplied by clients."""
    email: str = Field(..., min_length=3, max_length=255)
    name: Optional[str] = Field(None, max_length=200)


class DoctorIn(WireModel):
    """Request schema for POST /doctors."""
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=255)
    specialty: Optional[str] = Field(None, max_length=200)
    image: Optional[str] = Field(None, max_length=1000)


class TokenResponse(WireModel):
    access_token: str


class AdminStatusResponse(WireModel):
    is_admin: bool


class ClientSecretResponse(WireModel):
    client_secret: str


class ErrorResponse(BaseModel):
    """Error response schema."""
    message: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    code: Optional[str] = Field(None, description="Error code")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "forbidden access",
                "detail": "admin role required",
                "code": "FORBIDDEN"
            }
        }
    )
