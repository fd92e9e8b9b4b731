from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from courtbook.database import get_session
from courtbook.services.authorization import Actor
from courtbook.services.booking_engine import BookingEngine
from courtbook.services.recurrence import RecurrenceRule
from courtbook.services.reservation_aggregator import LogicalReservation
from courtbook.utils.auth_context import get_actor
from courtbook.utils.booking_schemas import (
    CancelRequest,
    LogicalReservationResponse,
    PaymentUpdate,
    RecurringReservationCreate,
    RecurringReservationResponse,
    ReservationCreate,
    ReservationResponse,
    RescheduleRequest,
    StatusUpdate,
)

router = APIRouter()


def _logical_to_response(group: LogicalReservation) -> LogicalReservationResponse:
    return LogicalReservationResponse(
        id=group.id,
        reservation_ids=group.reservation_ids,
        court_id=group.court_id,
        court_name=group.court_name,
        booking_date=group.booking_date,
        start_time=group.start_time,
        end_time=group.end_time,
        duration_minutes=group.duration_minutes,
        client_id=group.client_id,
        client_name=group.client_name,
        client_phone=group.client_phone,
        status=group.status,
        kind=group.kind,
        total_amount=group.total_amount,
        booked_amount=group.booked_amount,
        amount_paid=group.amount_paid,
        remaining_amount=group.remaining_amount,
    )


@router.post("/reservations", response_model=ReservationResponse, status_code=201)
def create_reservation(
    request: ReservationCreate, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)
):
    """
    Book a court slot.

    409 carries the colliding reservations when the slot is taken.
    """
    return BookingEngine(session, actor).create_reservation(request)


@router.post("/reservations/recurring", response_model=RecurringReservationResponse, status_code=201)
def create_recurring_reservation(
    request: RecurringReservationCreate, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)
):
    """
    Book a recurring series. Occurrences that collide are reported in
    skipped_instances; the rest are created.
    """
    rule = RecurrenceRule(
        frequency=request.recurrence.frequency,
        end_date=request.recurrence.end_date,
        occurrences=request.recurrence.occurrences,
    )
    data = ReservationCreate(**request.model_dump(exclude={"recurrence"}))
    result = BookingEngine(session, actor).create_recurring_reservation(data, rule)
    return RecurringReservationResponse(
        parent=ReservationResponse.model_validate(result.parent),
        created_instances=[ReservationResponse.model_validate(r) for r in result.created_instances],
        skipped_instances=[
            {"booking_date": s.booking_date, "reason": s.reason, "conflicts": s.conflicts}
            for s in result.skipped_instances
        ],
        truncated=result.truncated,
    )


@router.get("/reservations", response_model=List[ReservationResponse])
def list_reservations(
    court_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    kind: Optional[str] = None,
    payment_status: Optional[str] = None,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    """Calendar view of the tenant's reservations"""
    return BookingEngine(session, actor).list_reservations(
        court_id=court_id,
        start_date=start_date,
        end_date=end_date,
        kind=kind,
        payment_status=payment_status,
    )


@router.get("/reservations/logical", response_model=List[LogicalReservationResponse])
def list_logical_reservations(session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    """Back-to-back slots of the same client/court/day merged into one booking"""
    groups = BookingEngine(session, actor).list_logical_reservations()
    return [_logical_to_response(g) for g in groups]


@router.get("/reservations/{reservation_id}", response_model=ReservationResponse)
def get_reservation(reservation_id: int, session: Session = Depends(get_session), actor: Actor = Depends(get_actor)):
    return BookingEngine(session, actor).get_reservation(reservation_id)


@router.post("/reservations/{reservation_id}/cancel", response_model=ReservationResponse)
def cancel_reservation(
    reservation_id: int,
    request: Optional[CancelRequest] = None,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    request = request or CancelRequest()
    return BookingEngine(session, actor).cancel_reservation(reservation_id, reason=request.reason, refund=request.refund)


@router.post("/reservations/{reservation_id}/cancel-series", response_model=List[ReservationResponse])
def cancel_recurring_series(
    reservation_id: int,
    request: Optional[CancelRequest] = None,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    request = request or CancelRequest()
    return BookingEngine(session, actor).cancel_recurring_series(reservation_id, reason=request.reason)


@router.post("/reservations/{reservation_id}/reschedule", response_model=ReservationResponse)
def reschedule_reservation(
    reservation_id: int,
    request: RescheduleRequest,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return BookingEngine(session, actor).reschedule_reservation(
        reservation_id, request.booking_date, request.start_time, request.end_time
    )


@router.patch("/reservations/{reservation_id}/payment", response_model=ReservationResponse)
def record_payment(
    reservation_id: int,
    request: PaymentUpdate,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return BookingEngine(session, actor).record_payment(
        reservation_id, request.advance_payment, payment_method=request.payment_method
    )


@router.patch("/reservations/{reservation_id}/status", response_model=ReservationResponse)
def update_reservation_status(
    reservation_id: int,
    request: StatusUpdate,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return BookingEngine(session, actor).update_status(reservation_id, request.status)
