"""Test the catalog maintenance CLI against a file-backed database."""
import pytest

from doctors_portal.config import DEFAULT_APPOINTMENT_OPTIONS
from doctors_portal.store import DocumentStore
from scripts.manage_catalog import main


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'portal.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setattr("doctors_portal.config.load_dotenv", lambda: None)
    return url


def _options(url):
    store = DocumentStore(url)
    try:
        return store.appointment_options.find({})
    finally:
        store.close()


def test_no_command_prints_usage(database_url, capsys):
    assert main([]) == 1
    assert "Usage" in capsys.readouterr().out


def test_seed_then_set_price(database_url, capsys):
    assert main(["seed"]) == 0
    assert main(["seed"]) == 0
    assert main(["set-price", "75"]) == 0

    options = _options(database_url)
    assert len(options) == len(DEFAULT_APPOINTMENT_OPTIONS)
    assert {o["price"] for o in options} == {75}
    assert "0 new options" in capsys.readouterr().out


def test_grant_admin_unknown_user_fails(database_url, capsys):
    assert main(["grant-admin", "nobody@x.com"]) == 1
    assert "❌" in capsys.readouterr().out


def test_grant_admin(database_url):
    store = DocumentStore(database_url)
    store.users.insert_one({"email": "owner@x.com"})
    store.close()

    assert main(["grant-admin", "owner@x.com"]) == 0

    store = DocumentStore(database_url)
    try:
        assert store.users.find_one({"email": "owner@x.com"})["role"] == "admin"
    finally:
        store.close()
