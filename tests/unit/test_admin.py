"""Test user registration, role elevation, doctor roster and catalog upkeep."""
import pytest
from doctors_portal.admin import AdminService
from doctors_portal.catalog import seed_catalog, set_price


@pytest.fixture
def admin(store):
    return AdminService(store)


def test_register_user_creates_once(admin, store):
    first = admin.register_user({"email": "a@x.com", "name": "A"})
    second = admin.register_user({"email": "a@x.com", "name": "A"})

    assert first.upserted_id
    assert second.upserted_id is None
    assert len(store.users.find({"email": "a@x.com"})) == 1


def test_register_user_ignores_role(admin, store):
    admin.register_user({"email": "a@x.com", "role": "admin"})

    assert store.users.find_one({"email": "a@x.com"})["role"] is None


def test_register_does_not_downgrade_admin(admin, store):
    store.users.insert_one({"email": "a@x.com", "role": "admin"})

    admin.register_user({"email": "a@x.com", "name": "A"})

    assert store.users.find_one({"email": "a@x.com"})["role"] == "admin"


def test_set_admin_role_is_idempotent(admin, store):
    user_id = store.users.insert_one({"email": "a@x.com"}).inserted_id

    first = admin.set_admin_role(user_id)
    second = admin.set_admin_role(user_id)

    assert first.modified_count == 1
    assert second.modified_count == 0
    assert store.users.find_one({"_id": user_id})["role"] == "admin"


def test_set_admin_role_upserts_unknown_id(admin, store):
    result = admin.set_admin_role("ghost-id")

    assert result.upserted_id == "ghost-id"
    assert store.users.find_one({"_id": "ghost-id"})["role"] == "admin"


def test_grant_admin_by_email(admin, store):
    store.users.insert_one({"email": "owner@x.com"})

    assert admin.grant_admin_by_email("owner@x.com").matched_count == 1
    assert admin.grant_admin_by_email("nobody@x.com").matched_count == 0
    assert store.users.find_one({"email": "owner@x.com"})["role"] == "admin"


def test_doctor_crud(admin):
    doctor_id = admin.add_doctor({"name": "Dr. Garcia", "specialty": "Orthodontics"}).inserted_id

    assert [d["name"] for d in admin.list_doctors()] == ["Dr. Garcia"]
    assert admin.remove_doctor(doctor_id).deleted_count == 1
    assert admin.remove_doctor(doctor_id).deleted_count == 0
    assert admin.list_doctors() == []


def test_seed_catalog_is_idempotent(store):
    options = [{"name": "Cleaning", "price": 50, "slots": ["9:00", "10:00"]}]

    assert seed_catalog(store, options) == 1
    assert seed_catalog(store, options) == 0
    assert len(store.appointment_options.find({})) == 1


def test_set_price_updates_every_option(store):
    seed_catalog(store, [
        {"name": "Cleaning", "price": 50, "slots": ["9:00"]},
        {"name": "Whitening", "price": 70, "slots": ["9:00"]},
    ])

    result = set_price(store, 99)

    assert result.matched_count == 2
    assert {o["price"] for o in store.appointment_options.find({})} == {99}


def test_set_price_rejects_negative(store):
    with pytest.raises(ValueError):
        set_price(store, -1)
