"""Shared test fixtures."""
import pytest

from doctors_portal.config import Settings
from doctors_portal.payments import PaymentGateway, PaymentIntent
from doctors_portal.store import DocumentStore

TEST_SECRET = "test-access-token-secret"


class FakePaymentGateway(PaymentGateway):
    """Records intent requests instead of calling a provider."""

    def __init__(self):
        self.calls = []

    def create_payment_intent(self, amount, currency, payment_method_types):
        self.calls.append({"amount": amount, "currency": currency, "types": payment_method_types})
        n = len(self.calls)
        return PaymentIntent(id=f"pi_{n}", client_secret=f"pi_{n}_secret", amount=amount, currency=currency)


@pytest.fixture
def store():
    """DocumentStore backed by an in-memory SQLite database."""
    store = DocumentStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def catalog(store):
    """Two appointment options."""
    store.appointment_options.insert_one({"name": "Cleaning", "price": 50, "slots": ["9:00", "10:00"]})
    store.appointment_options.insert_one({"name": "Whitening", "price": 120.5, "slots": ["9:00", "11:00", "12:00"]})
    return store


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def settings():
    return Settings(database_url="sqlite:///:memory:", access_token_secret=TEST_SECRET)


@pytest.fixture
def make_booking():
    """Factory for booking documents with overridable fields."""
    def _create(**overrides):
        booking = {
            "appointmentDate": "2024-01-01",
            "email": "a@x.com",
            "treatmentName": "Cleaning",
            "slot": "9:00",
            "price": 50,
        }
        booking.update(overrides)
        return booking
    return _create
