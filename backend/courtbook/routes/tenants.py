from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from courtbook.database import get_session
from courtbook.models.tenant import TENANT_PLANS, TENANT_STATUSES, Tenant
from courtbook.services.authorization import Actor, authorize
from courtbook.utils.auth_context import get_actor

router = APIRouter()


class TenantCreate(BaseModel):
    name: str
    subdomain: str
    trade_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    plan: str = "basic"

    @field_validator("subdomain")
    @classmethod
    def validate_subdomain(cls, v):
        v = v.strip().lower()
        if not v or not v.replace("-", "").isalnum():
            raise ValueError("subdomain must be alphanumeric (dashes allowed)")
        return v

    @field_validator("plan")
    @classmethod
    def validate_plan(cls, v):
        if v not in TENANT_PLANS:
            raise ValueError(f"plan must be one of {list(TENANT_PLANS)}")
        return v


class TenantResponse(BaseModel):
    id: int
    name: str
    trade_name: Optional[str]
    subdomain: str
    status: str
    plan: str
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("/admin/tenants", response_model=TenantResponse, status_code=201)
def create_tenant(
    request: TenantCreate, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)
):
    """Register a new court operator (super-admin only)"""
    authorize(actor, "tenant.manage")

    tenant = Tenant(**request.model_dump())
    try:
        session.add(tenant)
        session.commit()
        session.refresh(tenant)
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail=f"Subdomain '{request.subdomain}' is already taken")
    return tenant


@router.get("/admin/tenants", response_model=List[TenantResponse])
def list_tenants(
    status: Optional[str] = None, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)
):
    authorize(actor, "tenant.manage")
    if status and status not in TENANT_STATUSES:
        raise HTTPException(status_code=400, detail=f"status must be one of {list(TENANT_STATUSES)}")

    query = select(Tenant)
    if status:
        query = query.where(Tenant.status == status)
    return session.exec(query.order_by(Tenant.id)).all()
