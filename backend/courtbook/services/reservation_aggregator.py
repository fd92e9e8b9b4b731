"""
Reservation Aggregator

Presents back-to-back slot reservations of one client on one court and day
as a single logical reservation (14:00-15:00 + 15:00-16:00 -> 14:00-16:00).

Walk order is (date, court, start time, id). A reservation extends the open
group only when it has the same group key and starts exactly where the group
currently ends; anything else closes the group and opens a new one.

The merged view's ``id`` is the last physical reservation absorbed into the
group. It is not a stable identifier; ``reservation_ids`` always lists every
constituent row and is what callers should reference.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

from courtbook.models.court import Court
from courtbook.models.reservation import ACTIVE_STATUSES, Reservation
from courtbook.services.availability_index import reservation_interval
from courtbook.services.pricing import PricingCalculator, to_money
from courtbook.services.time_interval import TimeInterval, format_minutes


def client_group_key(reservation: Reservation) -> Tuple[Hashable, ...]:
    """
    Who the reservation belongs to, for grouping.

    - Registered client: the client id.
    - Walk-in: normalized name + phone digits (two walk-ins sharing a name
      but not a phone stay apart).
    - Nothing to identify the client: the row never merges.
    """
    if reservation.client_id is not None:
        return ("client", reservation.client_id)

    name = " ".join((reservation.client_name or "").split()).casefold()
    phone = "".join(ch for ch in (reservation.client_phone or "") if ch.isdigit())
    if not name and not phone:
        return ("reservation", reservation.id)
    return ("walk_in", name, phone)


@dataclass
class LogicalReservation:
    id: int
    tenant_id: int
    court_id: int
    court_name: Optional[str]
    booking_date: date
    start: int
    end: int
    client_id: Optional[int]
    client_name: Optional[str]
    client_phone: Optional[str]
    status: str
    kind: str
    total_amount: Decimal = Decimal("0.00")
    booked_amount: Decimal = Decimal("0.00")
    amount_paid: Decimal = Decimal("0.00")
    remaining_amount: Decimal = Decimal("0.00")
    reservation_ids: List[int] = field(default_factory=list)
    slot_prices: List[Decimal] = field(default_factory=list)

    @property
    def start_time(self) -> str:
        return format_minutes(self.start)

    @property
    def end_time(self) -> str:
        return format_minutes(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start


class ReservationAggregator:
    def __init__(self, pricing: Optional[PricingCalculator] = None):
        self.pricing = pricing or PricingCalculator()

    def _open_group(self, reservation: Reservation, interval: TimeInterval, court: Court) -> LogicalReservation:
        group = LogicalReservation(
            id=reservation.id,
            tenant_id=reservation.tenant_id,
            court_id=reservation.court_id,
            court_name=court.name,
            booking_date=reservation.booking_date,
            start=interval.start,
            end=interval.start,
            client_id=reservation.client_id,
            client_name=reservation.client_name,
            client_phone=reservation.client_phone,
            status=reservation.status,
            kind=reservation.kind,
        )
        self._absorb(group, reservation, interval, court)
        return group

    def _absorb(self, group: LogicalReservation, reservation: Reservation, interval: TimeInterval, court: Court) -> None:
        slot_price = self.pricing.price(court, interval)
        group.end = interval.end
        group.id = reservation.id
        group.reservation_ids.append(reservation.id)
        group.slot_prices.append(slot_price)
        group.total_amount = to_money(group.total_amount + slot_price)
        group.booked_amount = to_money(group.booked_amount + Decimal(reservation.total_amount or 0))
        group.amount_paid = to_money(group.amount_paid + Decimal(reservation.advance_payment or 0))
        group.remaining_amount = to_money(group.remaining_amount + Decimal(reservation.remaining_amount or 0))

    def aggregate(
        self, reservations: Sequence[Reservation], courts: Mapping[int, Court]
    ) -> List[LogicalReservation]:
        """
        Args:
            reservations: one tenant's reservations (non-active rows are ignored)
            courts: court id -> Court; rows whose court is unknown are skipped

        Returns:
            Logical reservations in walk order
        """
        active = [r for r in reservations if r.status in ACTIVE_STATUSES and r.court_id in courts]
        ordered = sorted(active, key=lambda r: (r.booking_date, r.court_id, r.start_time, r.id))

        groups: List[LogicalReservation] = []
        open_group: Optional[LogicalReservation] = None
        open_key: Optional[Tuple[Hashable, ...]] = None

        for reservation in ordered:
            interval = reservation_interval(reservation)
            court = courts[reservation.court_id]
            key = (client_group_key(reservation), reservation.court_id, reservation.booking_date)

            if open_group is not None and key == open_key and interval.start == open_group.end:
                self._absorb(open_group, reservation, interval, court)
                continue

            open_group = self._open_group(reservation, interval, court)
            open_key = key
            groups.append(open_group)

        return groups


def index_courts(courts: Sequence[Court]) -> Dict[int, Court]:
    return {c.id: c for c in courts}
