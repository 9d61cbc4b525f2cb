"""FastAPI dependency injection: service container and access pipelines."""
from dataclasses import dataclass, field
from typing import Callable, Optional

from fastapi import Depends, Request

from doctors_portal.admin import AdminService
from doctors_portal.auth import Identity, IdentityService
from doctors_portal.availability import SlotAvailabilityEngine
from doctors_portal.bookings import BookingLedger
from doctors_portal.config import Settings
from doctors_portal.errors import Unauthorized
from doctors_portal.payments import PaymentReconciliation
from doctors_portal.store import DocumentStore


@dataclass
class Services:
    """Everything a request handler needs, built once by create_app."""
    settings: Settings
    store: DocumentStore
    identity: IdentityService
    availability: SlotAvailabilityEngine
    ledger: BookingLedger
    payments: PaymentReconciliation
    admin: AdminService


def get_services(request: Request) -> Services:
    return request.app.state.services


@dataclass
class AccessContext:
    """State threaded through the checks of one pipeline run."""
    request: Request
    identity: Optional[Identity] = field(default=None)


# A check either returns (allow) or raises Unauthorized/Forbidden (deny)
AccessCheck = Callable[[AccessContext, Services], None]


def authenticated(context: AccessContext, services: Services) -> None:
    """Bearer token must be present (401) and valid (403)."""
    header = context.request.headers.get("Authorization")
    if not header:
        raise Unauthorized()
    parts = header.split(" ")
    token = parts[1] if len(parts) == 2 else ""
    context.identity = services.identity.verify_token(token)


def admin(context: AccessContext, services: Services) -> None:
    """Verified identity must hold the admin role. Runs after authenticated."""
    if context.identity is None:
        raise Unauthorized()
    services.identity.verify_admin(context.identity.email)


class AccessPipeline:
    """
    Ordered capability checks, composed per route.

    Usage:
        @app.get("/doctors")
        def list_doctors(identity: Identity = Depends(AccessPipeline(authenticated, admin))):
            ...
    """

    def __init__(self, *checks: AccessCheck):
        self.checks = checks

    def __call__(self, request: Request, services: Services = Depends(get_services)) -> Optional[Identity]:
        context = AccessContext(request=request)
        for check in self.checks:
            check(context, services)
        return context.identity


require_token = AccessPipeline(authenticated)
require_admin = AccessPipeline(authenticated, admin)
