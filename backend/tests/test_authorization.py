"""
Test suite for capability checks
"""

from types import SimpleNamespace

import pytest

from courtbook.services.authorization import CAPABILITIES, Actor, authorize
from courtbook.services.booking_errors import AuthorizationError, NotFoundError


def reservation(tenant_id=1, created_by=10):
    return SimpleNamespace(tenant_id=tenant_id, created_by=created_by)


def test_staff_can_run_front_desk_actions():
    actor = Actor(tenant_id=1, user_id=1, role="staff")
    for action in ("reservation.create", "reservation.payment", "reservation.status", "availability.read"):
        authorize(actor, action, reservation())


def test_staff_cannot_manage_courts_or_pricing():
    actor = Actor(tenant_id=1, user_id=1, role="staff")
    with pytest.raises(AuthorizationError):
        authorize(actor, "court.manage")
    with pytest.raises(AuthorizationError):
        authorize(actor, "pricing.manage")


def test_admin_manages_catalog_but_not_tenants():
    actor = Actor(tenant_id=1, user_id=1, role="admin")
    authorize(actor, "court.manage")
    authorize(actor, "pricing.manage")
    with pytest.raises(AuthorizationError):
        authorize(actor, "tenant.manage")


def test_teacher_cannot_take_payments():
    actor = Actor(tenant_id=1, user_id=3, role="teacher")
    authorize(actor, "reservation.create_recurring")
    with pytest.raises(AuthorizationError):
        authorize(actor, "reservation.payment", reservation())


def test_super_admin_bypasses_capabilities():
    actor = Actor(tenant_id=1, user_id=0, role="super_admin")
    authorize(actor, "tenant.manage")
    authorize(actor, "reservation.cancel", reservation(tenant_id=2))


def test_unknown_role_is_rejected():
    with pytest.raises(AuthorizationError):
        authorize(Actor(tenant_id=1, user_id=1, role="janitor"), "availability.read")


def test_cross_tenant_resource_looks_missing():
    actor = Actor(tenant_id=1, user_id=1, role="admin")
    with pytest.raises(NotFoundError):
        authorize(actor, "reservation.read", reservation(tenant_id=2))


@pytest.mark.parametrize("role", ["client", "rental_player"])
def test_self_service_roles_only_change_own_bookings(role):
    actor = Actor(tenant_id=1, user_id=10, role=role)
    authorize(actor, "reservation.cancel", reservation(created_by=10))
    authorize(actor, "reservation.read", reservation(created_by=11))
    with pytest.raises(AuthorizationError):
        authorize(actor, "reservation.cancel", reservation(created_by=11))
    with pytest.raises(AuthorizationError):
        authorize(actor, "reservation.reschedule", reservation(created_by=11))


def test_self_service_roles_have_no_back_office_actions():
    for role in ("client", "rental_player"):
        assert "reservation.payment" not in CAPABILITIES[role]
        assert "client.manage" not in CAPABILITIES[role]
