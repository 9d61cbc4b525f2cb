"""Appointment option catalog maintenance (seeding and repricing)."""
from typing import Any, Dict, List

from doctors_portal.logging_config import get_logger
from doctors_portal.store import DocumentStore, UpdateResult

logger = get_logger(__name__)


def seed_catalog(store: DocumentStore, options: List[Dict[str, Any]]) -> int:
    """
    Insert or refresh appointment options keyed by name.

    Safe to call multiple times (idempotent).

    Returns:
        Number of options newly created
    """
    created = 0
    for option in options:
        values = {"price": option.get("price", 0), "slots": list(option["slots"])}
        result = store.appointment_options.update_one({"name": option["name"]}, values, upsert=True)
        if result.upserted_id:
            created += 1
    logger.info("catalog_seeded", options=len(options), created=created)
    return created


def set_price(store: DocumentStore, price: float) -> UpdateResult:
    """Set the same price on every appointment option."""
    if price < 0:
        raise ValueError("price must not be negative")
    result = store.appointment_options.update_many({}, {"price": price})
    logger.info("catalog_repriced", price=price, matched=result.matched_count)
    return result
