#!/usr/bin/env python3
"""CLI tool for catalog and admin maintenance.

Commands:
    seed                 Load the default appointment options
    set-price <price>    Set one price on every appointment option
    grant-admin <email>  Promote a registered user to admin
"""
import sys

from doctors_portal.admin import AdminService
from doctors_portal.catalog import seed_catalog, set_price
from doctors_portal.config import DEFAULT_APPOINTMENT_OPTIONS, Settings
from doctors_portal.store import DocumentStore

USAGE = """Usage: python scripts/manage_catalog.py <command> [args]

Commands:
  seed                 Load the default appointment options
  set-price <price>    Set one price on every appointment option
  grant-admin <email>  Promote a registered user to admin

Example:
  python scripts/manage_catalog.py grant-admin owner@clinic.example"""


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(USAGE)
        return 1

    settings = Settings.from_env()
    store = DocumentStore(settings.database_url, timeout=settings.store_timeout_seconds)
    command = args[0]

    try:
        if command == "seed":
            created = seed_catalog(store, DEFAULT_APPOINTMENT_OPTIONS)
            print(f"✅ Catalog seeded ({created} new options)")
        elif command == "set-price" and len(args) == 2:
            result = set_price(store, float(args[1]))
            print(f"✅ Price set on {result.matched_count} options")
        elif command == "grant-admin" and len(args) == 2:
            result = AdminService(store).grant_admin_by_email(args[1])
            if not result.matched_count:
                print(f"❌ No registered user with email {args[1]}")
                return 1
            print(f"✅ {args[1]} is now an admin")
        else:
            print(USAGE)
            return 1
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
