"""Payment intents and reconciliation of confirmed payments with bookings."""
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

import requests

from doctors_portal.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from doctors_portal.errors import (
    BadRequest,
    NotFound,
    PaymentServiceError,
    PaymentServiceTimeout,
)
from doctors_portal.http_client import create_http_session
from doctors_portal.logging_config import get_logger
from doctors_portal.store import DocumentStore

logger = get_logger(__name__)


def to_minor_units(price) -> int:
    """Convert a price in major units to integer cents (half-up rounding)."""
    cents = (Decimal(str(price)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


@dataclass
class PaymentIntent:
    id: str
    client_secret: str
    amount: int
    currency: str


class PaymentGateway(ABC):
    """Abstract payment-intent service."""

    @abstractmethod
    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        payment_method_types: List[str],
    ) -> PaymentIntent:
        """Create an authorized-but-unconfirmed charge for ``amount`` minor units."""


class StripePaymentGateway(PaymentGateway):
    """
    Stripe PaymentIntents over the REST API.

    Every call carries an Idempotency-Key and a bounded timeout. Connection
    errors and timeouts are retried ``max_retries`` times (default none) with
    the same key, so the provider never creates a second intent. 5xx
    responses and connection failures feed the circuit breaker; 4xx
    responses (bad request, declined) do not.
    """

    def __init__(
        self,
        secret_key: Optional[str],
        base_url: str = "https://api.stripe.com",
        timeout: float = 15,
        max_retries: int = 0,
        session: Optional[requests.Session] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.session = session or create_http_session(max_retries=max_retries, timeout=timeout)
        self.breaker = breaker or CircuitBreaker(
            "stripe",
            failure_threshold=5,
            timeout=60,
            counted_exceptions=(requests.exceptions.RequestException,),
        )

    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        payment_method_types: List[str],
    ) -> PaymentIntent:
        if not self.secret_key:
            raise PaymentServiceError(detail="payment service is not configured")

        data = {"amount": amount, "currency": currency}
        for index, method in enumerate(payment_method_types):
            data[f"payment_method_types[{index}]"] = method
        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Idempotency-Key": uuid.uuid4().hex,
        }

        try:
            response = self.breaker.call(self._post, "/v1/payment_intents", data, headers)
        except CircuitBreakerOpen as e:
            raise PaymentServiceError(detail=str(e)) from e
        except requests.exceptions.Timeout as e:
            logger.error("payment_service_timeout", amount=amount)
            raise PaymentServiceTimeout(detail=str(e)) from e
        except requests.exceptions.RequestException as e:
            logger.error("payment_service_error", amount=amount, error=str(e))
            raise PaymentServiceError(detail=str(e)) from e

        try:
            body = response.json()
        except ValueError as e:
            logger.error("payment_service_bad_response", status=response.status_code)
            raise PaymentServiceError(detail=f"HTTP {response.status_code}: response is not JSON") from e

        if response.status_code >= 400:
            detail = _error_message(body)
            logger.warning("payment_intent_rejected", status=response.status_code, detail=detail)
            raise PaymentServiceError(detail=detail or f"HTTP {response.status_code}")

        if not isinstance(body, dict) or "id" not in body or "client_secret" not in body:
            logger.error("payment_service_bad_response", status=response.status_code)
            raise PaymentServiceError(detail="payment intent response is missing id or client_secret")

        return PaymentIntent(
            id=body["id"],
            client_secret=body["client_secret"],
            amount=body.get("amount", amount),
            currency=body.get("currency", currency),
        )

    def _post(self, path: str, data: Dict[str, Any], headers: Dict[str, str]) -> requests.Response:
        response = self.session.post(f"{self.base_url}{path}", data=data, headers=headers)
        if response.status_code >= 500:
            response.raise_for_status()
        return response


def _error_message(body) -> Optional[str]:
    """Provider error text from ``{"error": {"message": ...}}`` or ``{"error": "..."}``."""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message")
    if isinstance(error, str):
        return error
    return None


@dataclass
class PaymentRecord:
    payment: Dict[str, Any]
    replayed: bool = False

    def to_dict(self) -> dict:
        return {"acknowledged": True, "insertedId": self.payment["_id"]}


class PaymentReconciliation:
    """Creates payment intents and marks bookings paid once payment is confirmed."""

    def __init__(
        self,
        store: DocumentStore,
        gateway: PaymentGateway,
        currency: str = "usd",
        verify_amount: bool = True,
    ):
        self.store = store
        self.gateway = gateway
        self.currency = currency
        self.verify_amount = verify_amount

    def create_payment_intent(self, price: Optional[float] = None, booking_id: Optional[str] = None) -> str:
        """
        Create a card payment intent and return its client secret.

        With amount verification on, the price is the catalog price of the
        booking's treatment (the booking's own price only if the treatment
        has left the catalog) and the client-supplied price is ignored.

        Raises:
            BadRequest: Missing booking id or non-positive amount, or booking already paid
            NotFound: Booking id does not exist
            PaymentServiceError / PaymentServiceTimeout: Gateway failure
        """
        if self.verify_amount:
            price = self._booking_price(booking_id)

        if price is None or price <= 0:
            raise BadRequest("price must be a positive amount")

        amount = to_minor_units(price)
        intent = self.gateway.create_payment_intent(amount, self.currency, ["card"])
        logger.info("payment_intent_created", booking_id=booking_id, amount=amount, intent_id=intent.id)
        return intent.client_secret

    def _booking_price(self, booking_id: Optional[str]) -> Optional[float]:
        if not booking_id:
            raise BadRequest("booking id is required to create a payment intent")
        booking = self.store.bookings.find_one({"_id": booking_id})
        if booking is None:
            raise NotFound(f"booking {booking_id} not found")
        if booking.get("paid"):
            raise BadRequest(f"booking {booking_id} is already paid")
        option = self.store.appointment_options.find_one({"name": booking["treatmentName"]})
        if option is not None and option.get("price") is not None:
            return option["price"]
        return booking.get("price")

    def record_payment(self, payment: Dict[str, Any]) -> PaymentRecord:
        """
        Store ``payment`` and flag its booking paid, in one transaction.

        Replaying an already recorded transactionId returns the stored payment
        and re-applies the booking update, so a retry after a partial failure
        converges.

        Raises:
            NotFound: Referenced booking does not exist
            BadRequest: transactionId already recorded against another booking,
                or the booking is already paid under a different transactionId
        """
        booking_id = payment["bookingId"]
        transaction_id = payment["transactionId"]

        with self.store.transaction() as db:
            booking = self.store.bookings.find_one({"_id": booking_id}, session=db)
            if booking is None:
                raise NotFound(f"booking {booking_id} not found")
            if booking.get("paid") and booking.get("transactionId") not in (None, transaction_id):
                raise BadRequest(f"booking {booking_id} is already paid")

            existing = self.store.payments.find_one({"transactionId": transaction_id}, session=db)
            if existing is not None:
                if existing["bookingId"] != booking_id:
                    raise BadRequest(f"transaction {transaction_id} belongs to another booking")
                record = PaymentRecord(payment=existing, replayed=True)
            else:
                result = self.store.payments.insert_one(payment, session=db)
                record = PaymentRecord(payment={**payment, "_id": result.inserted_id})

            self.store.bookings.update_one(
                {"_id": booking_id},
                {"paid": True, "transactionId": transaction_id},
                session=db,
            )

        logger.info(
            "payment_recorded",
            booking_id=booking_id,
            transaction_id=transaction_id,
            replayed=record.replayed,
        )
        return record
