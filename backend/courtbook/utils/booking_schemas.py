"""
Booking Request/Response Models

Pydantic models shared by the BookingEngine service and the route handlers.
Engine inputs are validated here (types, enums, non-negative money); interval
ordering and operating hours are checked by the engine itself.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, field_validator

from courtbook.models.reservation import PAYMENT_METHODS, RESERVATION_KINDS, RESERVATION_STATUSES
from courtbook.services.recurrence import FREQUENCIES

# Statuses a booking may be created in
INITIAL_STATUSES = ("pending", "confirmed", "blocked")
# recurring_instance rows are only produced by the recurring expansion
CREATABLE_KINDS = tuple(k for k in RESERVATION_KINDS if k != "recurring_instance")


class RecurrenceSpec(BaseModel):
    frequency: str
    end_date: Optional[date] = None
    occurrences: Optional[int] = None

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v):
        if v not in FREQUENCIES:
            raise ValueError(f"frequency must be one of {list(FREQUENCIES)}")
        return v

    @field_validator("occurrences")
    @classmethod
    def validate_occurrences(cls, v):
        if v is not None and v < 1:
            raise ValueError("occurrences must be >= 1")
        return v


class ReservationCreate(BaseModel):
    court_id: int
    booking_date: date
    start_time: time
    end_time: time
    kind: str = "single_rental"
    status: str = "pending"
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    client_email: Optional[str] = None
    teacher_id: Optional[int] = None
    # Omitted -> computed from the court rate and pricing rules
    total_amount: Optional[Decimal] = None
    advance_payment: Decimal = Decimal("0.00")
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v):
        if v not in CREATABLE_KINDS:
            raise ValueError(f"kind must be one of {list(CREATABLE_KINDS)}")
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in INITIAL_STATUSES:
            raise ValueError(f"status must be one of {list(INITIAL_STATUSES)}")
        return v

    @field_validator("payment_method")
    @classmethod
    def validate_payment_method(cls, v):
        if v is not None and v not in PAYMENT_METHODS:
            raise ValueError(f"payment_method must be one of {list(PAYMENT_METHODS)}")
        return v

    @field_validator("total_amount", "advance_payment")
    @classmethod
    def validate_non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("amounts must be >= 0")
        return v


class RecurringReservationCreate(ReservationCreate):
    recurrence: RecurrenceSpec


class RescheduleRequest(BaseModel):
    booking_date: date
    start_time: time
    end_time: time


class PaymentUpdate(BaseModel):
    advance_payment: Decimal
    payment_method: Optional[str] = None

    @field_validator("advance_payment")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("advance_payment must be >= 0")
        return v

    @field_validator("payment_method")
    @classmethod
    def validate_payment_method(cls, v):
        if v is not None and v not in PAYMENT_METHODS:
            raise ValueError(f"payment_method must be one of {list(PAYMENT_METHODS)}")
        return v


class StatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in RESERVATION_STATUSES:
            raise ValueError(f"status must be one of {list(RESERVATION_STATUSES)}")
        return v


class CancelRequest(BaseModel):
    reason: Optional[str] = None
    refund: bool = False


class ReservationResponse(BaseModel):
    id: int
    tenant_id: int
    court_id: int
    created_by: int
    client_id: Optional[int]
    teacher_id: Optional[int]
    booking_date: date
    start_time: time
    end_time: time
    kind: str
    status: str
    base_price: Decimal
    total_amount: Decimal
    advance_payment: Decimal
    remaining_amount: Decimal
    refund_amount: Decimal
    payment_status: str
    payment_method: Optional[str]
    client_name: Optional[str]
    client_phone: Optional[str]
    client_email: Optional[str]
    recurring_parent_id: Optional[int]
    recurrence_rule: Optional[dict]
    notes: Optional[str]
    cancelled_at: Optional[datetime]
    cancel_reason: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class SlotResponse(BaseModel):
    start_time: str
    end_time: str
    status: str  # available | occupied | closed
    price: Decimal
    reservation_id: Optional[int] = None


class ConflictDetail(BaseModel):
    reservation_id: int
    date: str
    start_time: str
    end_time: str
    status: str


class SkippedOccurrenceResponse(BaseModel):
    booking_date: date
    reason: str
    conflicts: List[ConflictDetail]


class RecurringReservationResponse(BaseModel):
    parent: ReservationResponse
    created_instances: List[ReservationResponse]
    skipped_instances: List[SkippedOccurrenceResponse]
    truncated: bool


class LogicalReservationResponse(BaseModel):
    id: int
    reservation_ids: List[int]
    court_id: int
    court_name: Optional[str]
    booking_date: date
    start_time: str
    end_time: str
    duration_minutes: int
    client_id: Optional[int]
    client_name: Optional[str]
    client_phone: Optional[str]
    status: str
    kind: str
    total_amount: Decimal
    booked_amount: Decimal
    amount_paid: Decimal
    remaining_amount: Decimal

    class Config:
        from_attributes = True
