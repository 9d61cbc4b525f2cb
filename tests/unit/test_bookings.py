"""Test booking ledger duplicate prevention and lookups."""
import threading

import pytest
from doctors_portal.bookings import BookingLedger, KeyedLock
from doctors_portal.errors import Forbidden, InvalidBooking
from doctors_portal.store import DocumentStore


@pytest.fixture
def ledger(catalog):
    return BookingLedger(catalog)


def test_create_booking_accepts_new_booking(ledger, catalog, make_booking):
    result = ledger.create_booking(make_booking())

    assert result.accepted is True
    assert result.booking_id
    stored = catalog.bookings.find_one({"_id": result.booking_id})
    assert stored["slot"] == "9:00"
    assert stored["paid"] is False


def test_duplicate_booking_rejected_with_date(ledger, catalog, make_booking):
    """Same (date, email, treatment) twice leaves exactly one booking."""
    ledger.create_booking(make_booking())

    result = ledger.create_booking(make_booking())

    assert result.accepted is False
    assert "2024-01-01" in result.message
    assert len(catalog.bookings.find({"email": "a@x.com"})) == 1


def test_different_slot_same_key_still_rejected(ledger, catalog, make_booking):
    """Slot is not part of the uniqueness key."""
    ledger.create_booking(make_booking(slot="9:00"))

    result = ledger.create_booking(make_booking(slot="10:00"))

    assert result.accepted is False
    assert result.message == "You already have a booking on 2024-01-01"
    assert len(catalog.bookings.find({})) == 1


def test_same_owner_other_treatment_accepted(ledger, make_booking):
    ledger.create_booking(make_booking())

    result = ledger.create_booking(make_booking(treatmentName="Whitening", slot="11:00"))

    assert result.accepted is True


def test_same_owner_other_date_accepted(ledger, make_booking):
    ledger.create_booking(make_booking())

    result = ledger.create_booking(make_booking(appointmentDate="2024-01-02"))

    assert result.accepted is True


def test_slot_taken_by_other_owner_rejected(ledger, make_booking):
    ledger.create_booking(make_booking(email="a@x.com"))

    result = ledger.create_booking(make_booking(email="b@x.com"))

    assert result.accepted is False
    assert "9:00" in result.message


def test_unknown_treatment_is_invalid(ledger, make_booking):
    with pytest.raises(InvalidBooking):
        ledger.create_booking(make_booking(treatmentName="Surgery"))


def test_slot_outside_catalog_is_invalid(ledger, make_booking):
    with pytest.raises(InvalidBooking):
        ledger.create_booking(make_booking(slot="23:00"))


def test_client_cannot_create_paid_booking(ledger, catalog, make_booking):
    result = ledger.create_booking(make_booking(paid=True, transactionId="tx-forged"))

    stored = catalog.bookings.find_one({"_id": result.booking_id})
    assert stored["paid"] is False
    assert stored["transactionId"] is None


def test_stored_price_comes_from_catalog(ledger, catalog, make_booking):
    result = ledger.create_booking(make_booking(treatmentName="Whitening", price=0.5))

    assert catalog.bookings.find_one({"_id": result.booking_id})["price"] == 120.5


def test_result_to_dict_shapes(ledger, make_booking):
    accepted = ledger.create_booking(make_booking()).to_dict()
    rejected = ledger.create_booking(make_booking()).to_dict()

    assert accepted["acknowledged"] is True and accepted["insertedId"]
    assert rejected == {"acknowledged": False, "message": "You already have a booking on 2024-01-01"}


def test_get_bookings_by_owner_requires_matching_requester(ledger, make_booking):
    ledger.create_booking(make_booking())

    assert len(ledger.get_bookings_by_owner("a@x.com", requester_email="a@x.com")) == 1
    with pytest.raises(Forbidden):
        ledger.get_bookings_by_owner("a@x.com", requester_email="mallory@x.com")


def test_get_booking_by_id(ledger, make_booking):
    booking_id = ledger.create_booking(make_booking()).booking_id

    assert ledger.get_booking_by_id(booking_id)["email"] == "a@x.com"
    assert ledger.get_booking_by_id("not-an-id") is None


def test_concurrent_duplicates_leave_one_booking(tmp_path, make_booking):
    """Racing identical requests: one accepted, the rest rejected."""
    store = DocumentStore(f"sqlite:///{tmp_path / 'race.db'}", timeout=30)
    store.appointment_options.insert_one({"name": "Cleaning", "price": 50, "slots": ["9:00", "10:00"]})
    ledger = BookingLedger(store)
    results = []
    barrier = threading.Barrier(8)

    def book():
        barrier.wait()
        results.append(ledger.create_booking(make_booking()))

    threads = [threading.Thread(target=book) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(r.accepted for r in results) == 1
    assert len(store.bookings.find({})) == 1
    store.close()


def test_keyed_lock_releases_entries():
    locks = KeyedLock()

    with locks.hold(("2024-01-01", "a@x.com", "Cleaning")):
        assert len(locks) == 1

    assert len(locks) == 0


def test_keyed_lock_does_not_block_other_keys():
    locks = KeyedLock()
    entered = threading.Event()

    def other_key():
        with locks.hold("b"):
            entered.set()

    with locks.hold("a"):
        t = threading.Thread(target=other_key)
        t.start()
        assert entered.wait(timeout=2)
        t.join()
