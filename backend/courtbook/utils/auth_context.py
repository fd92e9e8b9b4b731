"""
Request actor context.

Authentication happens upstream; the gateway forwards the verified identity
as headers. This module only turns those headers into an Actor.
"""

from fastapi import Header, HTTPException

from courtbook.services.authorization import ROLES, Actor


def get_actor(
    x_tenant_id: int = Header(...),
    x_user_id: int = Header(...),
    x_role: str = Header(...),
) -> Actor:
    role = x_role.strip().lower()
    if role not in ROLES:
        raise HTTPException(status_code=403, detail=f"Unknown role '{x_role}'")
    return Actor(tenant_id=x_tenant_id, user_id=x_user_id, role=role)
