"""Test slot availability computation."""
import pytest
from doctors_portal.availability import SlotAvailabilityEngine, remaining_slots


@pytest.fixture
def engine(catalog):
    return SlotAvailabilityEngine(catalog)


def _slots_by_name(options):
    return {option["name"]: option["slots"] for option in options}


def test_no_bookings_returns_full_catalog(engine):
    """Without bookings every option keeps its whole catalog."""
    slots = _slots_by_name(engine.get_available_slots("2024-01-01"))

    assert slots == {"Cleaning": ["9:00", "10:00"], "Whitening": ["9:00", "11:00", "12:00"]}


def test_booked_slot_removed_for_that_treatment_only(engine, catalog, make_booking):
    """Cleaning at 9:00 is taken; Whitening at 9:00 stays open."""
    catalog.bookings.insert_one(make_booking())

    slots = _slots_by_name(engine.get_available_slots("2024-01-01"))

    assert slots["Cleaning"] == ["10:00"]
    assert slots["Whitening"] == ["9:00", "11:00", "12:00"]


def test_bookings_on_other_dates_are_ignored(engine, catalog, make_booking):
    catalog.bookings.insert_one(make_booking(appointmentDate="2024-01-02"))

    slots = _slots_by_name(engine.get_available_slots("2024-01-01"))

    assert slots["Cleaning"] == ["9:00", "10:00"]


def test_fully_booked_option_is_returned_empty(engine, catalog, make_booking):
    """Options with zero remaining slots are kept, not dropped."""
    catalog.bookings.insert_one(make_booking(slot="9:00", email="a@x.com"))
    catalog.bookings.insert_one(make_booking(slot="10:00", email="b@x.com"))

    options = engine.get_available_slots("2024-01-01")

    assert [o["name"] for o in options] == ["Cleaning", "Whitening"]
    assert _slots_by_name(options)["Cleaning"] == []


def test_catalog_order_is_preserved(engine, catalog, make_booking):
    catalog.bookings.insert_one(make_booking(treatmentName="Whitening", slot="11:00"))

    slots = _slots_by_name(engine.get_available_slots("2024-01-01"))

    assert slots["Whitening"] == ["9:00", "12:00"]


def test_repeated_calls_are_identical(engine, catalog, make_booking):
    """Two calls with no intervening booking give the same answer."""
    catalog.bookings.insert_one(make_booking())

    first = engine.get_available_slots("2024-01-01")
    second = engine.get_available_slots("2024-01-01")

    assert first == second


def test_result_reflects_latest_bookings(engine, catalog, make_booking):
    """No caching: a new booking shows up on the next call."""
    assert _slots_by_name(engine.get_available_slots("2024-01-01"))["Cleaning"] == ["9:00", "10:00"]

    catalog.bookings.insert_one(make_booking(slot="10:00"))

    assert _slots_by_name(engine.get_available_slots("2024-01-01"))["Cleaning"] == ["9:00"]


def test_catalog_is_not_mutated(engine, catalog, make_booking):
    catalog.bookings.insert_one(make_booking())
    engine.get_available_slots("2024-01-01")

    stored = catalog.appointment_options.find_one({"name": "Cleaning"})
    assert stored["slots"] == ["9:00", "10:00"]


def test_get_specialties_projects_names(engine):
    specialties = engine.get_specialties()

    assert [s["name"] for s in specialties] == ["Cleaning", "Whitening"]
    assert all(set(s) == {"_id", "name"} for s in specialties)


def test_remaining_slots_helper():
    assert remaining_slots(["a", "b", "c"], [{"slot": "b"}, {"slot": "z"}]) == ["a", "c"]
