from datetime import datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

from courtbook.utils.clock import utc_now

if TYPE_CHECKING:
    from courtbook.models.tenant import Tenant

COURT_SPORTS = ("futevolei", "beach_tennis", "volleyball", "football", "tennis", "multiuso")
COURT_STATUSES = ("active", "inactive", "maintenance")


class Court(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    name: str
    sport: str = Field(default="multiuso", max_length=20)
    status: str = Field(default="active", max_length=20)
    location: Optional[str] = None
    price_per_hour: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    # None means "use the configured default operating hours"
    opening_time: Optional[time] = None
    closing_time: Optional[time] = None
    inactive_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    # Relationships
    tenant: "Tenant" = Relationship(back_populates="courts")
