"""Booking ledger with duplicate prevention.

A caller may hold at most one booking per (appointmentDate, email,
treatmentName); the slot is not part of that key. The check-then-insert runs
inside a per-key critical section, and the store's unique constraints turn any
remaining race (e.g. across processes) into the same rejection.
"""
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional

from doctors_portal.errors import DuplicateKeyError, Forbidden, InvalidBooking
from doctors_portal.logging_config import get_logger
from doctors_portal.store import DocumentStore

logger = get_logger(__name__)


@dataclass
class BookingResult:
    """Outcome of create_booking. Rejections carry a human readable message."""
    accepted: bool
    booking_id: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> dict:
        if self.accepted:
            return {"acknowledged": True, "insertedId": self.booking_id}
        return {"acknowledged": False, "message": self.message}


class KeyedLock:
    """
    Arena of in-flight keys: callers holding the same key run one at a time,
    different keys never wait on each other. Entries are dropped when the last
    holder leaves.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, list] = {}

    @contextmanager
    def hold(self, key: Hashable):
        with self._guard:
            entry = self._entries.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self):
        with self._guard:
            return len(self._entries)


def already_booked_message(date: str) -> str:
    return f"You already have a booking on {date}"


def slot_taken_message(slot: str, date: str) -> str:
    return f"{slot} is no longer available on {date}"


class BookingLedger:
    """Creates and looks up bookings."""

    def __init__(self, store: DocumentStore, locks: Optional[KeyedLock] = None):
        self.store = store
        self.locks = locks or KeyedLock()

    def create_booking(self, booking: Dict[str, Any]) -> BookingResult:
        """
        Insert ``booking`` unless the owner already booked this treatment that day.

        Args:
            booking: Booking document (appointmentDate, email, treatmentName, slot, ...)

        Returns:
            BookingResult; accepted=False with a message naming the date on conflict

        Raises:
            InvalidBooking: Unknown treatment, or slot outside the treatment's catalog
        """
        date = booking["appointmentDate"]
        email = booking["email"]
        treatment = booking["treatmentName"]
        slot = booking["slot"]
        owner_key = {"appointmentDate": date, "email": email, "treatmentName": treatment}

        with self.locks.hold((date, email, treatment)):
            if self.store.bookings.find(owner_key):
                return self._reject(date, email, treatment, already_booked_message(date))

            option = self.store.appointment_options.find_one({"name": treatment})
            if option is None:
                raise InvalidBooking(f"Unknown treatment '{treatment}'")
            if slot not in (option["slots"] or []):
                raise InvalidBooking(f"'{slot}' is not a slot offered for {treatment}")

            if self.store.bookings.find_one({"appointmentDate": date, "treatmentName": treatment, "slot": slot}):
                return self._reject(date, email, treatment, slot_taken_message(slot, date))

            # Price comes from the catalog; a client-sent price is not trusted
            doc = {**booking, "price": option["price"], "paid": False}
            doc.pop("transactionId", None)
            try:
                result = self.store.bookings.insert_one(doc)
            except DuplicateKeyError:
                # Lost a race to another process; report which key collided
                if self.store.bookings.find_one(owner_key):
                    return self._reject(date, email, treatment, already_booked_message(date))
                return self._reject(date, email, treatment, slot_taken_message(slot, date))

        logger.info("booking_accepted", booking_id=result.inserted_id, date=date, treatment=treatment, slot=slot)
        return BookingResult(accepted=True, booking_id=result.inserted_id)

    @staticmethod
    def _reject(date: str, email: str, treatment: str, message: str) -> BookingResult:
        logger.info("booking_rejected", date=date, email=email, treatment=treatment, reason=message)
        return BookingResult(accepted=False, message=message)

    def get_bookings_by_owner(self, email: str, requester_email: str) -> List[Dict[str, Any]]:
        """
        Bookings owned by ``email``.

        Raises:
            Forbidden: If the authenticated requester is not the owner
        """
        if email != requester_email:
            logger.warning("booking_owner_mismatch", requested=email, requester=requester_email)
            raise Forbidden(message="unauthorized access")
        return self.store.bookings.find({"email": email})

    def get_booking_by_id(self, booking_id: str) -> Optional[Dict[str, Any]]:
        """Unauthenticated lookup; unknown or malformed ids give None."""
        return self.store.bookings.find_one({"_id": booking_id})
