"""SQLAlchemy database models backing the document store.

Each model declares FIELDS, the mapping from the camelCase document keys used
on the wire to column attributes. ``_id`` always maps to ``id``.
"""
import itertools
import time
import uuid
from datetime import datetime, UTC

from sqlalchemy import Column, String, DateTime, Boolean, Float, JSON, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(UTC)


_id_counter = itertools.count()


def new_id() -> str:
    """
    Generate a 32-char document id that sorts by creation time.

    Layout: 16 hex nanosecond timestamp + 4 hex process counter + 12 random hex,
    so ordering by id gives insertion order within a process.
    """
    counter = next(_id_counter) & 0xFFFF
    return f"{time.time_ns():016x}{counter:04x}{uuid.uuid4().hex[:12]}"


class DocumentMixin:
    """Conversion between rows and plain documents."""

    FIELDS = {}

    def to_document(self) -> dict:
        doc = {"_id": self.id}
        for key, attr in self.FIELDS.items():
            doc[key] = getattr(self, attr)
        return doc


class AppointmentOption(DocumentMixin, Base):
    """Treatment offering with its full (date independent) slot catalog."""
    __tablename__ = "appointment_options"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False, unique=True, index=True)
    price = Column(Float, nullable=False, default=0)
    slots = Column(JSON, nullable=False, default=list)

    FIELDS = {"name": "name", "price": "price", "slots": "slots"}

    def __repr__(self):
        return f"<AppointmentOption(name={self.name}, slots={len(self.slots or [])})>"


class Booking(DocumentMixin, Base):
    """One reserved slot for one treatment, date and owner email."""
    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint("appointment_date", "email", "treatment_name", name="uq_booking_owner_day_treatment"),
        UniqueConstraint("appointment_date", "treatment_name", "slot", name="uq_booking_slot"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    appointment_date = Column(String(64), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    treatment_name = Column(String(200), nullable=False)
    slot = Column(String(100), nullable=False)
    price = Column(Float, nullable=True)
    patient = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    paid = Column(Boolean, nullable=False, default=False)
    transaction_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    FIELDS = {
        "appointmentDate": "appointment_date",
        "email": "email",
        "treatmentName": "treatment_name",
        "slot": "slot",
        "price": "price",
        "patient": "patient",
        "phone": "phone",
        "paid": "paid",
        "transactionId": "transaction_id",
    }

    def __repr__(self):
        return f"<Booking(date={self.appointment_date}, email={self.email}, treatment={self.treatment_name})>"


class User(DocumentMixin, Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    # Nullable: role elevation upserts by id and may create an email-less row
    email = Column(String(255), nullable=True, unique=True, index=True)
    name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    FIELDS = {"email": "email", "name": "name", "role": "role"}

    def __repr__(self):
        return f"<User(email={self.email}, role={self.role})>"


class Doctor(DocumentMixin, Base):
    __tablename__ = "doctors"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    specialty = Column(String(200), nullable=True)
    image = Column(String(1000), nullable=True)

    FIELDS = {"name": "name", "email": "email", "specialty": "specialty", "image": "image"}

    def __repr__(self):
        return f"<Doctor(name={self.name}, specialty={self.specialty})>"


class Payment(DocumentMixin, Base):
    """Immutable record of a confirmed external payment."""
    __tablename__ = "payments"

    id = Column(String(32), primary_key=True, default=new_id)
    booking_id = Column(String(32), nullable=False, index=True)
    transaction_id = Column(String(255), nullable=False, unique=True)
    price = Column(Float, nullable=True)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    FIELDS = {
        "bookingId": "booking_id",
        "transactionId": "transaction_id",
        "price": "price",
        "email": "email",
    }

    def __repr__(self):
        return f"<Payment(booking={self.booking_id}, transaction={self.transaction_id})>"
