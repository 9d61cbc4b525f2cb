"""User registration, role elevation and doctor roster management.

Authorization happens before these methods are reached (see
api.dependencies); this module only performs the writes.
"""
from typing import Any, Dict, List

from doctors_portal.auth import ADMIN_ROLE
from doctors_portal.logging_config import get_logger
from doctors_portal.store import DeleteResult, DocumentStore, InsertResult, UpdateResult

logger = get_logger(__name__)


class AdminService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def register_user(self, user: Dict[str, Any]) -> UpdateResult:
        """Create the user on first registration. Role is never set here."""
        values = {k: v for k, v in user.items() if k != "role"}
        email = values.pop("email")
        result = self.store.users.update_one({"email": email}, values, upsert=True)
        if result.upserted_id:
            logger.info("user_registered", email=email, user_id=result.upserted_id)
        return result

    def list_users(self) -> List[Dict[str, Any]]:
        return self.store.users.find({})

    def set_admin_role(self, user_id: str) -> UpdateResult:
        """Idempotent upsert of role=admin on the given user id."""
        result = self.store.users.update_one({"_id": user_id}, {"role": ADMIN_ROLE}, upsert=True)
        logger.info("role_elevated", user_id=user_id, modified=result.modified_count, upserted=bool(result.upserted_id))
        return result

    def grant_admin_by_email(self, email: str) -> UpdateResult:
        """Promote an existing user; used to bootstrap the first admin."""
        result = self.store.users.update_one({"email": email}, {"role": ADMIN_ROLE})
        logger.info("role_elevated", email=email, matched=result.matched_count)
        return result

    def add_doctor(self, doctor: Dict[str, Any]) -> InsertResult:
        result = self.store.doctors.insert_one(doctor)
        logger.info("doctor_added", doctor_id=result.inserted_id, name=doctor.get("name"))
        return result

    def list_doctors(self) -> List[Dict[str, Any]]:
        return self.store.doctors.find({})

    def remove_doctor(self, doctor_id: str) -> DeleteResult:
        result = self.store.doctors.delete_one({"_id": doctor_id})
        logger.info("doctor_removed", doctor_id=doctor_id, deleted=result.deleted_count)
        return result
