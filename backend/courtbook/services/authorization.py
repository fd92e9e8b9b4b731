"""
Capability checks for booking engine operations.

The engine calls authorize() once per operation. Identity comes from the
caller (already authenticated upstream); this module only decides whether
that identity may perform the action on the resource.

Tenant isolation: an actor touching another tenant's resource gets
NotFoundError, never a hint that the resource exists.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional

from courtbook.services.booking_errors import AuthorizationError, NotFoundError

ROLES = ("super_admin", "admin", "staff", "teacher", "rental_player", "client")

_STAFF_ACTIONS = frozenset(
    {
        "availability.read",
        "reservation.create",
        "reservation.create_recurring",
        "reservation.read",
        "reservation.cancel",
        "reservation.reschedule",
        "reservation.payment",
        "reservation.status",
        "client.manage",
    }
)

_SELF_SERVICE_ACTIONS = frozenset(
    {
        "availability.read",
        "reservation.create",
        "reservation.create_recurring",
        "reservation.read",
        "reservation.cancel",
        "reservation.reschedule",
    }
)

CAPABILITIES: Dict[str, FrozenSet[str]] = {
    "admin": _STAFF_ACTIONS | {"court.manage", "pricing.manage"},
    "staff": _STAFF_ACTIONS,
    "teacher": _STAFF_ACTIONS - {"reservation.payment", "reservation.status", "client.manage"},
    "rental_player": _SELF_SERVICE_ACTIONS,
    "client": _SELF_SERVICE_ACTIONS,
}

# Self-service roles may only touch reservations they created
_OWNER_ONLY_ROLES = frozenset({"client", "rental_player"})
_OWNER_SCOPED_ACTIONS = frozenset({"reservation.cancel", "reservation.reschedule"})


@dataclass(frozen=True)
class Actor:
    tenant_id: int
    user_id: int
    role: str

    @property
    def is_super_admin(self) -> bool:
        return self.role == "super_admin"


def authorize(actor: Actor, action: str, resource: Optional[Any] = None) -> None:
    """
    Raises:
        AuthorizationError: role lacks the capability
        NotFoundError: resource belongs to another tenant
    """
    if actor.role not in ROLES:
        raise AuthorizationError(f"Unknown role '{actor.role}'")

    if actor.is_super_admin:
        return

    if action not in CAPABILITIES.get(actor.role, frozenset()):
        raise AuthorizationError(f"Role '{actor.role}' may not perform '{action}'")

    if resource is None:
        return

    resource_tenant = getattr(resource, "tenant_id", None)
    if resource_tenant is not None and resource_tenant != actor.tenant_id:
        raise NotFoundError(f"{type(resource).__name__} not found")

    if actor.role in _OWNER_ONLY_ROLES and action in _OWNER_SCOPED_ACTIONS:
        if getattr(resource, "created_by", None) != actor.user_id:
            raise AuthorizationError("Only the creator of this reservation may change it")
