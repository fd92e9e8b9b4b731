from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

from courtbook.utils.clock import utc_now

if TYPE_CHECKING:
    from courtbook.models.court import Court

TENANT_STATUSES = ("active", "inactive", "suspended")
TENANT_PLANS = ("basic", "premium", "enterprise")


class Tenant(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    trade_name: Optional[str] = None
    subdomain: str = Field(unique=True, index=True)
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str = Field(default="active", max_length=20)
    plan: str = Field(default="basic", max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    # Relationships
    courts: List["Court"] = Relationship(back_populates="tenant")
