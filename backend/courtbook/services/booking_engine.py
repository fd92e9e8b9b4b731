"""
Booking Engine

Entry point for every reservation operation. Each public method:
1. authorizes the actor once,
2. validates input before touching availability,
3. reads the availability index and runs the conflict detector,
4. writes through commit_if_free(), which re-checks under the court/day lock.

Recurring bookings are best-effort: the parent (first occurrence) must
succeed, later occurrences that collide are skipped and reported, not fatal.
Each occurrence is its own atomic check-and-insert.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import Session, select

from courtbook.models.court import Court
from courtbook.models.reservation import ACTIVE_STATUSES, PAYMENT_METHODS, Reservation
from courtbook.services.authorization import Actor, authorize
from courtbook.services.availability_index import AvailabilityIndex
from courtbook.services.booking_errors import BookingValidationError, SlotOccupiedError
from courtbook.services.conflict_detector import commit_if_free, ensure_slot_free
from courtbook.services.pricing import PricingCalculator, to_money
from courtbook.services.recurrence import RecurrenceRule, date_matches_rule, expand_dates
from courtbook.services.reservation_aggregator import LogicalReservation, ReservationAggregator, index_courts
from courtbook.services.time_interval import TimeInterval, format_minutes, time_to_minutes
from courtbook.settings import AVAILABILITY_SLOT_MINUTES, DEFAULT_CLOSING_TIME, DEFAULT_OPENING_TIME
from courtbook.utils.booking_schemas import ReservationCreate
from courtbook.utils.clock import utc_now
from courtbook.utils.tenant_guards import get_client_or_404, get_court_or_404, get_reservation_or_404

logger = logging.getLogger(__name__)

# Allowed lifecycle moves outside of cancellation
STATUS_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "pending": ("confirmed", "paid", "blocked", "completed", "no_show"),
    "confirmed": ("paid", "completed", "no_show"),
    "paid": ("confirmed", "completed", "no_show"),
    "blocked": ("pending", "confirmed"),
    "cancelled": (),
    "completed": (),
    "no_show": (),
}


@dataclass
class SlotAvailability:
    start: int
    end: int
    status: str
    price: Decimal
    reservation_id: Optional[int] = None

    @property
    def start_time(self) -> str:
        return format_minutes(self.start)

    @property
    def end_time(self) -> str:
        return format_minutes(self.end)


@dataclass
class SkippedOccurrence:
    booking_date: date
    reason: str
    conflicts: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class RecurringBookingResult:
    parent: Reservation
    created_instances: List[Reservation]
    skipped_instances: List[SkippedOccurrence]
    truncated: bool = False


def settle_amounts(total_amount: Decimal, advance_payment: Decimal) -> Tuple[Decimal, str]:
    """
    remaining = total - advance, plus the derived payment status.

    A zero total is "no_charge" (blocked or courtesy slots), never "paid".

    Raises:
        BookingValidationError: advance exceeds total (overpayment is a
            data-entry error and is never clamped)
    """
    total = to_money(total_amount)
    advance = to_money(advance_payment)
    remaining = total - advance
    if remaining < 0:
        raise BookingValidationError(
            f"Advance payment {advance} exceeds total amount {total}"
        )
    if total == 0:
        return remaining, "no_charge"
    if advance == 0:
        return remaining, "awaiting"
    if remaining == 0:
        return remaining, "paid"
    return remaining, "partially_paid"


def operating_window(court: Court) -> Tuple[int, int]:
    opening = court.opening_time or DEFAULT_OPENING_TIME
    closing = court.closing_time or DEFAULT_CLOSING_TIME
    return time_to_minutes(opening), time_to_minutes(closing)


class BookingEngine:
    def __init__(self, session: Session, actor: Actor, pricing: Optional[PricingCalculator] = None):
        self.session = session
        self.actor = actor
        self.tenant_id = actor.tenant_id
        self._pricing = pricing

    @property
    def pricing(self) -> PricingCalculator:
        if self._pricing is None:
            self._pricing = PricingCalculator.for_tenant(self.session, self.tenant_id)
        return self._pricing

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _bookable_court(self, court_id: int) -> Court:
        court = get_court_or_404(self.session, court_id, self.tenant_id)
        if court.status != "active":
            raise BookingValidationError(f"Court {court.name} is not accepting bookings ({court.status})")
        return court

    def _check_operating_hours(self, court: Court, interval: TimeInterval) -> None:
        opening, closing = operating_window(court)
        if interval.start < opening or interval.end > closing:
            raise BookingValidationError(
                f"{interval.label()} is outside operating hours "
                f"{format_minutes(opening)}-{format_minutes(closing)}"
            )

    def _client_snapshot(self, data: ReservationCreate) -> Dict[str, Optional[str]]:
        if data.client_id is not None:
            client = get_client_or_404(self.session, data.client_id, self.tenant_id)
            return {
                "client_name": client.full_name,
                "client_phone": client.phone,
                "client_email": client.email or data.client_email,
            }
        if not data.client_name or not data.client_name.strip():
            raise BookingValidationError("client_name is required when client_id is not given")
        return {
            "client_name": data.client_name.strip(),
            "client_phone": (data.client_phone or "").strip() or None,
            "client_email": data.client_email,
        }

    def _build_reservation(
        self,
        data: ReservationCreate,
        court: Court,
        interval: TimeInterval,
        snapshot: Dict[str, Optional[str]],
        *,
        kind: Optional[str] = None,
        advance_payment: Optional[Decimal] = None,
        recurring_parent_id: Optional[int] = None,
        recurrence_rule: Optional[Dict[str, Any]] = None,
    ) -> Reservation:
        base_price = self.pricing.price(court, interval)
        total_amount = to_money(data.total_amount) if data.total_amount is not None else base_price
        advance = to_money(data.advance_payment if advance_payment is None else advance_payment)
        remaining, payment_status = settle_amounts(total_amount, advance)

        return Reservation(
            tenant_id=self.tenant_id,
            court_id=court.id,
            created_by=self.actor.user_id,
            client_id=data.client_id,
            teacher_id=data.teacher_id,
            booking_date=interval.day,
            start_time=interval.start_time,
            end_time=interval.end_time,
            kind=kind or data.kind,
            status=data.status,
            base_price=base_price,
            total_amount=total_amount,
            advance_payment=advance,
            remaining_amount=remaining,
            payment_status=payment_status,
            payment_method=data.payment_method,
            recurring_parent_id=recurring_parent_id,
            recurrence_rule=recurrence_rule,
            notes=data.notes,
            internal_notes=data.internal_notes,
            **snapshot,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def check_availability(self, court_id: int, day: date) -> List[SlotAvailability]:
        """Slot grid over the court's operating hours for one day."""
        court = get_court_or_404(self.session, court_id, self.tenant_id)
        authorize(self.actor, "availability.read", court)

        opening, closing = operating_window(court)
        index = AvailabilityIndex.load(self.session, self.tenant_id, court.id, day)
        closed = court.status != "active"

        slots: List[SlotAvailability] = []
        start = opening
        while start + AVAILABILITY_SLOT_MINUTES <= closing:
            slot = TimeInterval(day=day, start=start, end=start + AVAILABILITY_SLOT_MINUTES)
            occupant = index.occupant_of(slot)
            if closed:
                status = "closed"
            elif occupant is not None:
                status = "occupied"
            else:
                status = "available"
            slots.append(
                SlotAvailability(
                    start=slot.start,
                    end=slot.end,
                    status=status,
                    price=self.pricing.price(court, slot),
                    reservation_id=occupant.reservation_id if occupant else None,
                )
            )
            start += AVAILABILITY_SLOT_MINUTES
        return slots

    def get_reservation(self, reservation_id: int) -> Reservation:
        reservation = get_reservation_or_404(self.session, reservation_id, self.tenant_id)
        authorize(self.actor, "reservation.read", reservation)
        return reservation

    def list_reservations(
        self,
        court_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        kind: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> List[Reservation]:
        """Calendar listing, every status included, ordered by date and start."""
        authorize(self.actor, "reservation.read")

        query = select(Reservation).where(Reservation.tenant_id == self.tenant_id)
        if court_id:
            query = query.where(Reservation.court_id == court_id)
        if start_date:
            query = query.where(Reservation.booking_date >= start_date)
        if end_date:
            query = query.where(Reservation.booking_date <= end_date)
        if kind:
            query = query.where(Reservation.kind == kind)
        if payment_status:
            query = query.where(Reservation.payment_status == payment_status)

        query = query.order_by(Reservation.booking_date, Reservation.start_time, Reservation.court_id, Reservation.id)
        return list(self.session.exec(query).all())

    def list_logical_reservations(self) -> List[LogicalReservation]:
        authorize(self.actor, "reservation.read")

        reservations = self.session.exec(
            select(Reservation).where(
                Reservation.tenant_id == self.tenant_id,
                Reservation.status.in_(ACTIVE_STATUSES),
            )
        ).all()
        courts = self.session.exec(select(Court).where(Court.tenant_id == self.tenant_id)).all()

        aggregator = ReservationAggregator(self.pricing)
        return aggregator.aggregate(reservations, index_courts(courts))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_reservation(self, data: ReservationCreate) -> Reservation:
        """
        Raises:
            BookingValidationError, NotFoundError, AuthorizationError,
            SlotOccupiedError (with the colliding ranges)
        """
        authorize(self.actor, "reservation.create")
        interval = TimeInterval.from_times(data.booking_date, data.start_time, data.end_time)
        court = self._bookable_court(data.court_id)
        self._check_operating_hours(court, interval)
        snapshot = self._client_snapshot(data)

        reservation = self._build_reservation(data, court, interval, snapshot)
        ensure_slot_free(interval, AvailabilityIndex.load(self.session, self.tenant_id, court.id, interval.day))
        commit_if_free(self.session, reservation)

        logger.info(
            "Reservation %d created: court %d %s (%s)", reservation.id, court.id, interval, reservation.kind
        )
        return reservation

    def create_recurring_reservation(self, data: ReservationCreate, rule: RecurrenceRule) -> RecurringBookingResult:
        """
        Create the parent on the anchor date, then one instance per later
        occurrence. Occurrences that collide are skipped and reported.

        Raises:
            SlotOccupiedError: only when the anchor occurrence itself collides
        """
        authorize(self.actor, "reservation.create_recurring")
        interval = TimeInterval.from_times(data.booking_date, data.start_time, data.end_time)
        court = self._bookable_court(data.court_id)
        self._check_operating_hours(court, interval)
        snapshot = self._client_snapshot(data)
        expansion = expand_dates(interval.day, rule)

        parent = self._build_reservation(data, court, interval, snapshot, recurrence_rule=rule.to_dict())
        ensure_slot_free(interval, AvailabilityIndex.load(self.session, self.tenant_id, court.id, interval.day))
        commit_if_free(self.session, parent)
        parent_id = parent.id

        created: List[Reservation] = [parent]
        skipped: List[SkippedOccurrence] = []

        for occurrence_day in expansion.dates[1:]:
            occurrence = TimeInterval(day=occurrence_day, start=interval.start, end=interval.end)
            instance = self._build_reservation(
                data,
                court,
                occurrence,
                snapshot,
                kind="recurring_instance",
                advance_payment=Decimal("0.00"),
                recurring_parent_id=parent_id,
            )
            try:
                commit_if_free(self.session, instance)
            except SlotOccupiedError as exc:
                logger.info("Skipped recurring occurrence %s of parent %d: %s", occurrence, parent_id, exc.message)
                skipped.append(
                    SkippedOccurrence(booking_date=occurrence_day, reason=exc.message, conflicts=exc.conflicts)
                )
                continue
            created.append(instance)

        logger.info(
            "Recurring reservation %d: %d created, %d skipped", parent_id, len(created), len(skipped)
        )
        return RecurringBookingResult(
            parent=self.session.get(Reservation, parent_id),
            created_instances=created,
            skipped_instances=skipped,
            truncated=expansion.truncated,
        )

    def reschedule_reservation(self, reservation_id: int, new_date: date, start: time, end: time) -> Reservation:
        reservation = get_reservation_or_404(self.session, reservation_id, self.tenant_id)
        authorize(self.actor, "reservation.reschedule", reservation)
        if reservation.status not in ACTIVE_STATUSES:
            raise BookingValidationError(f"Cannot reschedule a {reservation.status} reservation")

        interval = TimeInterval.from_times(new_date, start, end)
        court = self._bookable_court(reservation.court_id)
        self._check_operating_hours(court, interval)

        if reservation.recurring_parent_id is not None:
            parent = self.session.get(Reservation, reservation.recurring_parent_id)
            if parent is not None and parent.recurrence_rule:
                rule = RecurrenceRule.from_dict(parent.recurrence_rule)
                if not date_matches_rule(interval.day, parent.booking_date, rule):
                    raise BookingValidationError(
                        f"{interval.day.isoformat()} is not an occurrence of the parent recurrence rule"
                    )
        elif reservation.recurrence_rule and interval.day != reservation.booking_date:
            raise BookingValidationError("The first occurrence of a recurring booking cannot change date")

        ensure_slot_free(
            interval,
            AvailabilityIndex.load(
                self.session, self.tenant_id, court.id, interval.day, exclude_reservation_id=reservation.id
            ),
        )

        old_base = to_money(reservation.base_price)
        new_base = self.pricing.price(court, interval)
        total = new_base if to_money(reservation.total_amount) == old_base else to_money(reservation.total_amount)
        remaining, payment_status = settle_amounts(total, reservation.advance_payment)

        reservation.booking_date = interval.day
        reservation.start_time = interval.start_time
        reservation.end_time = interval.end_time
        reservation.base_price = new_base
        reservation.total_amount = total
        reservation.remaining_amount = remaining
        if reservation.payment_status != "refunded":
            reservation.payment_status = payment_status
        reservation.updated_at = utc_now()
        commit_if_free(self.session, reservation)

        logger.info("Reservation %d rescheduled to %s", reservation.id, interval)
        return reservation

    def record_payment(
        self, reservation_id: int, advance_payment: Decimal, payment_method: Optional[str] = None
    ) -> Reservation:
        reservation = get_reservation_or_404(self.session, reservation_id, self.tenant_id)
        authorize(self.actor, "reservation.payment", reservation)
        if reservation.status == "cancelled":
            raise BookingValidationError("Cannot record a payment on a cancelled reservation")
        if payment_method is not None and payment_method not in PAYMENT_METHODS:
            raise BookingValidationError(f"payment_method must be one of {list(PAYMENT_METHODS)}")
        if Decimal(advance_payment) < 0:
            raise BookingValidationError("advance_payment must be >= 0")

        remaining, payment_status = settle_amounts(reservation.total_amount, advance_payment)
        reservation.advance_payment = to_money(advance_payment)
        reservation.remaining_amount = remaining
        reservation.payment_status = payment_status
        if payment_method is not None:
            reservation.payment_method = payment_method
        reservation.updated_at = utc_now()

        self.session.add(reservation)
        self.session.commit()
        self.session.refresh(reservation)
        return reservation

    def update_status(self, reservation_id: int, status: str) -> Reservation:
        reservation = get_reservation_or_404(self.session, reservation_id, self.tenant_id)
        if status == "cancelled":
            return self.cancel_reservation(reservation_id)

        authorize(self.actor, "reservation.status", reservation)
        if status not in STATUS_TRANSITIONS:
            raise BookingValidationError(f"Unknown status '{status}'")
        if status == reservation.status:
            return reservation
        if status not in STATUS_TRANSITIONS[reservation.status]:
            raise BookingValidationError(f"Cannot move reservation from {reservation.status} to {status}")

        reservation.status = status
        reservation.updated_at = utc_now()
        self.session.add(reservation)
        self.session.commit()
        self.session.refresh(reservation)
        return reservation

    def _mark_cancelled(self, reservation: Reservation, reason: Optional[str], refund: bool) -> None:
        """
        A cancelled booking owes nothing. Without a refund the advance is kept;
        with one it moves to refund_amount and the payment reads "refunded".
        """
        reservation.status = "cancelled"
        reservation.cancelled_at = utc_now()
        reservation.cancel_reason = reason
        reservation.updated_at = reservation.cancelled_at
        reservation.remaining_amount = Decimal("0.00")
        if refund:
            reservation.refund_amount = to_money(reservation.advance_payment)
            reservation.advance_payment = Decimal("0.00")
            reservation.payment_status = "refunded"
        self.session.add(reservation)

    def cancel_reservation(self, reservation_id: int, reason: Optional[str] = None, refund: bool = False) -> Reservation:
        """Soft cancel: the row stays for history but stops occupying the slot."""
        reservation = get_reservation_or_404(self.session, reservation_id, self.tenant_id)
        authorize(self.actor, "reservation.cancel", reservation)
        if reservation.status == "cancelled":
            raise BookingValidationError("Reservation is already cancelled")
        if reservation.status not in ACTIVE_STATUSES:
            raise BookingValidationError(f"Cannot cancel a {reservation.status} reservation")

        self._mark_cancelled(reservation, reason, refund)
        self.session.commit()
        self.session.refresh(reservation)

        logger.info("Reservation %d cancelled", reservation.id)
        return reservation

    def cancel_recurring_series(self, parent_id: int, reason: Optional[str] = None) -> List[Reservation]:
        """Cancel the parent and every still-active instance in one commit."""
        parent = get_reservation_or_404(self.session, parent_id, self.tenant_id)
        authorize(self.actor, "reservation.cancel", parent)
        if not parent.recurrence_rule:
            raise BookingValidationError("Reservation is not the parent of a recurring booking")

        instances = self.session.exec(
            select(Reservation).where(
                Reservation.tenant_id == self.tenant_id,
                Reservation.recurring_parent_id == parent.id,
            )
        ).all()

        cancelled: List[Reservation] = []
        for reservation in [parent, *instances]:
            if reservation.status in ACTIVE_STATUSES:
                self._mark_cancelled(reservation, reason, refund=False)
                cancelled.append(reservation)
        self.session.commit()
        for reservation in cancelled:
            self.session.refresh(reservation)

        logger.info("Recurring series %d cancelled (%d reservations)", parent.id, len(cancelled))
        return sorted(cancelled, key=lambda r: (r.booking_date, r.id))
