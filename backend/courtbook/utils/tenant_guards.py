"""
Tenant-scoped lookups.

Every lookup is filtered by tenant id. A row owned by another tenant is
reported exactly like a missing row.
"""

from sqlmodel import Session

from courtbook.models.client import Client
from courtbook.models.court import Court
from courtbook.models.reservation import Reservation
from courtbook.models.tenant import Tenant
from courtbook.services.booking_errors import NotFoundError


def get_tenant_or_404(session: Session, tenant_id: int) -> Tenant:
    tenant = session.get(Tenant, tenant_id)
    if not tenant:
        raise NotFoundError("Tenant not found")
    return tenant


def get_court_or_404(session: Session, court_id: int, tenant_id: int) -> Court:
    """
    Get a court owned by the tenant.

    Raises:
        NotFoundError: court missing or owned by another tenant
    """
    court = session.get(Court, court_id)
    if not court or court.tenant_id != tenant_id:
        raise NotFoundError("Court not found")
    return court


def get_reservation_or_404(session: Session, reservation_id: int, tenant_id: int) -> Reservation:
    reservation = session.get(Reservation, reservation_id)
    if not reservation or reservation.tenant_id != tenant_id:
        raise NotFoundError("Reservation not found")
    return reservation


def get_client_or_404(session: Session, client_id: int, tenant_id: int) -> Client:
    client = session.get(Client, client_id)
    if not client or client.tenant_id != tenant_id:
        raise NotFoundError("Client not found")
    return client
