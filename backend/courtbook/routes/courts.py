from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator, model_validator
from sqlmodel import Session, select

from courtbook.database import get_session
from courtbook.models.court import COURT_SPORTS, COURT_STATUSES, Court
from courtbook.services.authorization import Actor, authorize
from courtbook.services.booking_engine import BookingEngine
from courtbook.utils.auth_context import get_actor
from courtbook.utils.booking_schemas import SlotResponse
from courtbook.utils.tenant_guards import get_court_or_404, get_tenant_or_404

router = APIRouter()


class CourtCreate(BaseModel):
    name: str
    sport: str = "multiuso"
    location: Optional[str] = None
    price_per_hour: Optional[Decimal] = None
    opening_time: Optional[time] = None
    closing_time: Optional[time] = None

    @field_validator("sport")
    @classmethod
    def validate_sport(cls, v):
        if v not in COURT_SPORTS:
            raise ValueError(f"sport must be one of {list(COURT_SPORTS)}")
        return v

    @field_validator("price_per_hour")
    @classmethod
    def validate_price(cls, v):
        if v is not None and v < 0:
            raise ValueError("price_per_hour must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_hours(self):
        if self.opening_time and self.closing_time and self.closing_time <= self.opening_time:
            raise ValueError("closing_time must be greater than opening_time")
        return self


class CourtUpdate(BaseModel):
    name: Optional[str] = None
    status: Optional[str] = None
    location: Optional[str] = None
    price_per_hour: Optional[Decimal] = None
    opening_time: Optional[time] = None
    closing_time: Optional[time] = None
    inactive_reason: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in COURT_STATUSES:
            raise ValueError(f"status must be one of {list(COURT_STATUSES)}")
        return v


class CourtResponse(BaseModel):
    id: int
    tenant_id: int
    name: str
    sport: str
    status: str
    location: Optional[str]
    price_per_hour: Optional[Decimal]
    opening_time: Optional[time]
    closing_time: Optional[time]
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("/courts", response_model=CourtResponse, status_code=201)
def create_court(request: CourtCreate, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    authorize(actor, "court.manage")
    get_tenant_or_404(session, actor.tenant_id)

    court = Court(tenant_id=actor.tenant_id, **request.model_dump())
    session.add(court)
    session.commit()
    session.refresh(court)
    return court


@router.get("/courts", response_model=List[CourtResponse])
def list_courts(session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    authorize(actor, "availability.read")
    return session.exec(select(Court).where(Court.tenant_id == actor.tenant_id).order_by(Court.id)).all()


@router.get("/courts/{court_id}", response_model=CourtResponse)
def get_court(court_id: int, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    court = get_court_or_404(session, court_id, actor.tenant_id)
    authorize(actor, "availability.read", court)
    return court


@router.patch("/courts/{court_id}", response_model=CourtResponse)
def update_court(
    court_id: int, request: CourtUpdate, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)
):
    court = get_court_or_404(session, court_id, actor.tenant_id)
    authorize(actor, "court.manage", court)

    for field, value in request.model_dump(exclude_unset=True).items():
        setattr(court, field, value)

    session.add(court)
    session.commit()
    session.refresh(court)
    return court


@router.get("/courts/{court_id}/availability", response_model=List[SlotResponse])
def get_court_availability(
    court_id: int, date: date, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)
):
    """Slot grid for one day; identical on repeated calls until something is booked"""
    slots = BookingEngine(session, actor).check_availability(court_id, date)
    return [
        SlotResponse(
            start_time=s.start_time,
            end_time=s.end_time,
            status=s.status,
            price=s.price,
            reservation_id=s.reservation_id,
        )
        for s in slots
    ]
