from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Index, text
from sqlmodel import Column, Field, SQLModel

from courtbook.utils.clock import utc_now

RESERVATION_KINDS = ("single_rental", "lesson", "event", "recurring_instance")
RESERVATION_STATUSES = ("pending", "confirmed", "paid", "blocked", "cancelled", "completed", "no_show")
# Statuses that occupy a court slot
ACTIVE_STATUSES = ("pending", "confirmed", "paid", "blocked")
# no_charge: total is zero (blocked or courtesy slot), nothing was ever owed
PAYMENT_STATUSES = ("awaiting", "paid", "partially_paid", "refunded", "no_charge")
PAYMENT_METHODS = ("pix", "card", "cash", "credits", "gympass", "totalpass")

_ACTIVE_STATUS_SQL = "status IN ({})".format(", ".join(f"'{s}'" for s in ACTIVE_STATUSES))


class Reservation(SQLModel, table=True):
    __table_args__ = (
        # Two racing inserts for the same start cannot both commit
        Index(
            "uq_reservation_active_slot",
            "tenant_id",
            "court_id",
            "booking_date",
            "start_time",
            unique=True,
            sqlite_where=text(_ACTIVE_STATUS_SQL),
            postgresql_where=text(_ACTIVE_STATUS_SQL),
        ),
        Index("ix_reservation_tenant_court_date", "tenant_id", "court_id", "booking_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: int = Field(foreign_key="tenant.id")
    court_id: int = Field(foreign_key="court.id")
    created_by: int
    client_id: Optional[int] = Field(default=None, foreign_key="client.id")
    teacher_id: Optional[int] = None

    booking_date: date
    start_time: time
    end_time: time

    kind: str = Field(default="single_rental", max_length=20)
    status: str = Field(default="pending", max_length=20)

    base_price: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    total_amount: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    advance_payment: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    remaining_amount: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    # Advance returned on a refunded cancellation
    refund_amount: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    payment_status: str = Field(default="awaiting", max_length=20)
    payment_method: Optional[str] = Field(default=None, max_length=20)

    # Snapshot taken at booking time, not a live join
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    client_email: Optional[str] = None

    recurring_parent_id: Optional[int] = Field(default=None, foreign_key="reservation.id", index=True)
    recurrence_rule: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    notes: Optional[str] = None
    internal_notes: Optional[str] = None

    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
