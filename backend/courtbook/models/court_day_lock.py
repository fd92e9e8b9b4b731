from datetime import date, datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

from courtbook.utils.clock import utc_now


class CourtDayLock(SQLModel, table=True):
    """Serialization point for bookings on one court/day (row-locked on insert)."""

    __table_args__ = (
        SAUniqueConstraint("tenant_id", "court_id", "lock_date", name="uq_court_day_lock"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: int = Field(foreign_key="tenant.id")
    court_id: int = Field(foreign_key="court.id")
    lock_date: date
    version: int = Field(default=0)
    updated_at: datetime = Field(default_factory=utc_now)
