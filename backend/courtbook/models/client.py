from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from courtbook.utils.clock import utc_now


class Client(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: int = Field(foreign_key="tenant.id", index=True)
    full_name: str
    phone: str
    email: Optional[str] = None
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
