"""
Availability Index

Answers "which intervals are already occupied on court C, day D?" for one
tenant. Built fresh from the database on every call; no caching, so every
check sees the latest committed state.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from courtbook.models.reservation import ACTIVE_STATUSES, Reservation
from courtbook.services.time_interval import TimeInterval, time_to_minutes


@dataclass(frozen=True)
class OccupiedInterval:
    reservation_id: int
    interval: TimeInterval
    status: str
    client_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "date": self.interval.day.isoformat(),
            "start_time": self.interval.start_time.strftime("%H:%M"),
            "end_time": self.interval.end_time.strftime("%H:%M"),
            "status": self.status,
        }


def reservation_interval(reservation: Reservation) -> TimeInterval:
    return TimeInterval(
        day=reservation.booking_date,
        start=time_to_minutes(reservation.start_time),
        end=time_to_minutes(reservation.end_time),
    )


def list_active_reservations(
    session: Session,
    tenant_id: int,
    court_id: int,
    day: date,
    exclude_reservation_id: Optional[int] = None,
) -> List[Reservation]:
    """
    All slot-occupying reservations for (tenant, court, day), from any creator.

    Args:
        exclude_reservation_id: Skip this row (used when rescheduling it)
    """
    query = select(Reservation).where(
        Reservation.tenant_id == tenant_id,
        Reservation.court_id == court_id,
        Reservation.booking_date == day,
        Reservation.status.in_(ACTIVE_STATUSES),
    )
    if exclude_reservation_id is not None:
        query = query.where(Reservation.id != exclude_reservation_id)

    return list(session.exec(query.order_by(Reservation.start_time, Reservation.id)).all())


@dataclass
class AvailabilityIndex:
    tenant_id: int
    court_id: int
    day: date
    occupied: List[OccupiedInterval] = field(default_factory=list)

    @classmethod
    def load(
        cls,
        session: Session,
        tenant_id: int,
        court_id: int,
        day: date,
        exclude_reservation_id: Optional[int] = None,
    ) -> "AvailabilityIndex":
        rows = list_active_reservations(session, tenant_id, court_id, day, exclude_reservation_id)
        occupied = [
            OccupiedInterval(
                reservation_id=r.id,
                interval=reservation_interval(r),
                status=r.status,
                client_name=r.client_name,
            )
            for r in rows
        ]
        return cls(tenant_id=tenant_id, court_id=court_id, day=day, occupied=occupied)

    @property
    def intervals(self) -> List[TimeInterval]:
        return [o.interval for o in self.occupied]

    def occupant_of(self, interval: TimeInterval) -> Optional[OccupiedInterval]:
        """First occupied interval overlapping ``interval``, if any."""
        for entry in self.occupied:
            if entry.interval.overlaps(interval):
                return entry
        return None
