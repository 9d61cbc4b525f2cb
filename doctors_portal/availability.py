"""Slot availability per date.

The catalog of slots is static per treatment; availability for a date is the
catalog minus the slots already booked on that date. Computed fresh on every
call so two clients never see a stale open slot.
"""
from typing import Any, Dict, List

from doctors_portal.logging_config import get_logger
from doctors_portal.store import DocumentStore

logger = get_logger(__name__)


def remaining_slots(catalog: List[str], bookings: List[Dict[str, Any]]) -> List[str]:
    """Catalog slots not taken by ``bookings``, in catalog order."""
    taken = {booking["slot"] for booking in bookings}
    return [slot for slot in catalog if slot not in taken]


class SlotAvailabilityEngine:
    """Computes remaining bookable slots for each appointment option."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get_available_slots(self, date: str) -> List[Dict[str, Any]]:
        """
        Every appointment option with its slots reduced to those still open.

        Options with no remaining slots are kept with an empty list; display
        policy is left to the caller.

        Args:
            date: Appointment date string, matched exactly against bookings

        Returns:
            Appointment option documents with adjusted ``slots``
        """
        options = self.store.appointment_options.find({})
        booked = self.store.bookings.find({"appointmentDate": date})

        by_treatment: Dict[str, List[Dict[str, Any]]] = {}
        for booking in booked:
            by_treatment.setdefault(booking["treatmentName"], []).append(booking)

        for option in options:
            option["slots"] = remaining_slots(option["slots"] or [], by_treatment.get(option["name"], []))

        logger.debug("slots_computed", date=date, options=len(options), bookings=len(booked))
        return options

    def get_specialties(self) -> List[Dict[str, Any]]:
        """Name-only projection of the catalog."""
        return self.store.appointment_options.find({}, projection=["name"])
