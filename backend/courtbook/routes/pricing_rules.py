from datetime import datetime, time
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator, model_validator
from sqlmodel import Session, select

from courtbook.database import get_session
from courtbook.models.pricing_rule import PRICE_TYPES, PricingRule
from courtbook.services.authorization import Actor, authorize
from courtbook.services.pricing import WEEKDAY_NAMES
from courtbook.utils.auth_context import get_actor

router = APIRouter()


class PricingRuleCreate(BaseModel):
    name: str
    description: Optional[str] = None
    priority: int = 0
    is_active: bool = True
    court_ids: Optional[List[int]] = None
    days_of_week: Optional[List[str]] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    price_type: str
    base_price: Optional[Decimal] = None
    percentage_modifier: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None

    @field_validator("price_type")
    @classmethod
    def validate_price_type(cls, v):
        if v not in PRICE_TYPES:
            raise ValueError(f"price_type must be one of {list(PRICE_TYPES)}")
        return v

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, v):
        if v is None:
            return v
        days = [d.strip().lower() for d in v]
        unknown = [d for d in days if d not in WEEKDAY_NAMES]
        if unknown:
            raise ValueError(f"unknown weekday(s): {unknown}")
        return days

    @model_validator(mode="after")
    def validate_rule(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("end_time must be greater than start_time")
        required = {"fixed": "base_price", "percentage": "percentage_modifier", "discount": "discount_amount"}
        field = required[self.price_type]
        if getattr(self, field) is None:
            raise ValueError(f"{field} is required for price_type '{self.price_type}'")
        return self


class PricingRuleResponse(BaseModel):
    id: int
    tenant_id: int
    name: str
    priority: int
    is_active: bool
    court_ids: Optional[List[int]]
    days_of_week: Optional[List[str]]
    start_time: Optional[time]
    end_time: Optional[time]
    price_type: str
    base_price: Optional[Decimal]
    percentage_modifier: Optional[Decimal]
    discount_amount: Optional[Decimal]
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("/pricing-rules", response_model=PricingRuleResponse, status_code=201)
def create_pricing_rule(
    request: PricingRuleCreate, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)
):
    authorize(actor, "pricing.manage")

    rule = PricingRule(tenant_id=actor.tenant_id, **request.model_dump())
    session.add(rule)
    session.commit()
    session.refresh(rule)
    return rule


@router.get("/pricing-rules", response_model=List[PricingRuleResponse])
def list_pricing_rules(session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    authorize(actor, "pricing.manage")
    return session.exec(
        select(PricingRule)
        .where(PricingRule.tenant_id == actor.tenant_id)
        .order_by(PricingRule.priority.desc(), PricingRule.id)
    ).all()
