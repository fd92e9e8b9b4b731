"""
Conflict Detector

Tests a candidate interval against the Availability Index for the same
(tenant, court, day) and owns the atomic check-and-insert path.

Collision rule (half-open intervals):
- exact duplicate, containment either way, partial overlap on either edge -> conflict
- candidate.start == existing.end or candidate.end == existing.start -> free

Insert atomicity:
    Every write on a court/day goes through its CourtDayLock row:
    1. read the row (SELECT ... FOR UPDATE where the backend supports it)
    2. compare-and-swap its version (UPDATE ... WHERE version = <read>)
    3. read availability, check, insert, commit
    A zero-row swap means a concurrent booking on the same court/day
    committed after step 1; that is reported as SlotOccupiedError(race_lost=True)
    before anything is read or written. On SQLite, which ignores FOR UPDATE,
    the swap is also what acquires the write lock, so steps 2-3 of two
    writers never interleave. The partial unique index on active
    reservations is a last guard; an IntegrityError at commit is reported
    the same way.
"""

import logging
from datetime import date
from typing import Iterable, List, Union

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select

from courtbook.models.court_day_lock import CourtDayLock
from courtbook.models.reservation import Reservation
from courtbook.services.availability_index import AvailabilityIndex, OccupiedInterval, reservation_interval
from courtbook.services.booking_errors import SlotOccupiedError
from courtbook.services.time_interval import TimeInterval
from courtbook.utils.clock import utc_now

logger = logging.getLogger(__name__)


def find_conflicts(
    candidate: TimeInterval, occupied: Union[AvailabilityIndex, Iterable[OccupiedInterval]]
) -> List[OccupiedInterval]:
    """Linear scan; per-day occupancy is bounded by operating hours."""
    entries = occupied.occupied if isinstance(occupied, AvailabilityIndex) else occupied
    return [entry for entry in entries if entry.interval.overlaps(candidate)]


def has_conflict(candidate: TimeInterval, occupied: Union[AvailabilityIndex, Iterable[OccupiedInterval]]) -> bool:
    return bool(find_conflicts(candidate, occupied))


def conflict_error(candidate: TimeInterval, conflicts: List[OccupiedInterval], race_lost: bool = False) -> SlotOccupiedError:
    ranges = ", ".join(f"#{c.reservation_id} {c.interval.label()}" for c in conflicts)
    if ranges:
        message = f"Slot occupied: {candidate} collides with {ranges}"
    else:
        message = f"Slot occupied: {candidate} was booked by a concurrent request"
    return SlotOccupiedError(message, conflicts=[c.to_dict() for c in conflicts], race_lost=race_lost)


def ensure_slot_free(candidate: TimeInterval, index: AvailabilityIndex) -> None:
    """
    Raises:
        SlotOccupiedError carrying every colliding reservation
    """
    conflicts = find_conflicts(candidate, index)
    if conflicts:
        raise conflict_error(candidate, conflicts)


def _lock_court_day(session: Session, tenant_id: int, court_id: int, day: date) -> CourtDayLock:
    """Fetch-or-create the court/day lock row and hold it for this transaction."""
    query = (
        select(CourtDayLock)
        .where(
            CourtDayLock.tenant_id == tenant_id,
            CourtDayLock.court_id == court_id,
            CourtDayLock.lock_date == day,
        )
        .with_for_update()
        # Never trust a version cached in this session
        .execution_options(populate_existing=True)
    )
    lock = session.exec(query).first()
    if lock is None:
        lock = CourtDayLock(tenant_id=tenant_id, court_id=court_id, lock_date=day)
        session.add(lock)
        # A concurrent creator surfaces here as IntegrityError (uq_court_day_lock)
        session.flush()
    return lock


def _claim_court_day(session: Session, lock: CourtDayLock) -> bool:
    """
    Compare-and-swap the lock version read by _lock_court_day.

    Matches zero rows when another booking on this court/day committed since
    the read. On SQLite this UPDATE is also what takes the database write
    lock, so it runs before the availability read.
    """
    table = CourtDayLock.__table__
    result = session.connection().execute(
        update(table)
        .where(table.c.id == lock.id, table.c.version == lock.version)
        .values(version=table.c.version + 1, updated_at=utc_now())
    )
    return result.rowcount == 1


def commit_if_free(session: Session, reservation: Reservation) -> Reservation:
    """
    Atomically re-check availability and persist ``reservation``.

    Works for inserts and for rescheduling an existing row (the row itself
    is excluded from the availability read).

    Raises:
        SlotOccupiedError: collision found under the lock, or race lost at commit
    """
    candidate = reservation_interval(reservation)
    try:
        lock = _lock_court_day(session, reservation.tenant_id, reservation.court_id, reservation.booking_date)
        if not _claim_court_day(session, lock):
            session.rollback()
            logger.warning("Court/day lock moved under %s on court %d", candidate, reservation.court_id)
            raise conflict_error(candidate, [], race_lost=True)

        index = AvailabilityIndex.load(
            session,
            reservation.tenant_id,
            reservation.court_id,
            reservation.booking_date,
            exclude_reservation_id=reservation.id,
        )
        conflicts = find_conflicts(candidate, index)
        if conflicts:
            session.rollback()
            logger.info("Rejected booking %s on court %d: %d conflict(s)", candidate, reservation.court_id, len(conflicts))
            raise conflict_error(candidate, conflicts)

        session.add(reservation)
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.warning("Lost insert race for %s on court %d", candidate, reservation.court_id)
        raise conflict_error(candidate, [], race_lost=True)
    except OperationalError as exc:
        # SQLite reports a concurrent writer holding the database as "database is locked"
        if "locked" not in str(exc.orig):
            raise
        session.rollback()
        logger.warning("Court/day busy for %s on court %d", candidate, reservation.court_id)
        raise conflict_error(candidate, [], race_lost=True)

    session.refresh(reservation)
    return reservation
