from datetime import datetime, time
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

from courtbook.utils.clock import utc_now

PRICE_TYPES = ("fixed", "percentage", "discount")


class PricingRule(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    name: str
    description: Optional[str] = None
    priority: int = Field(default=0)  # Higher priority overrides lower
    is_active: bool = Field(default=True)

    # Empty/None means "every court" / "every day"
    court_ids: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))
    days_of_week: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    price_type: str = Field(max_length=20)
    base_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    percentage_modifier: Optional[Decimal] = Field(default=None, max_digits=6, decimal_places=2)  # 150 = +50%
    discount_amount: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    created_at: datetime = Field(default_factory=utc_now)
