from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from courtbook.database import get_session
from courtbook.models.client import Client
from courtbook.services.authorization import Actor, authorize
from courtbook.utils.auth_context import get_actor

router = APIRouter()


class ClientCreate(BaseModel):
    full_name: str
    phone: str
    email: Optional[str] = None

    @field_validator("full_name", "phone")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class ClientResponse(BaseModel):
    id: int
    tenant_id: int
    full_name: str
    phone: str
    email: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True


@router.post("/clients", response_model=ClientResponse, status_code=201)
def create_client(request: ClientCreate, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    authorize(actor, "client.manage")

    client = Client(tenant_id=actor.tenant_id, **request.model_dump())
    session.add(client)
    session.commit()
    session.refresh(client)
    return client


@router.get("/clients/search", response_model=List[ClientResponse])
def search_clients(query: str = "", session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    """Match on name (case-insensitive) or phone substring within the tenant"""
    authorize(actor, "client.manage")
    needle = query.strip()
    if not needle:
        return []

    clients = session.exec(
        select(Client).where(Client.tenant_id == actor.tenant_id, Client.is_active).order_by(Client.full_name)
    ).all()
    lowered = needle.lower()
    return [c for c in clients if lowered in c.full_name.lower() or (c.phone and needle in c.phone)]
