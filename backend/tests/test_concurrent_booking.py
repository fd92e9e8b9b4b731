"""
Concurrent booking tests on a file-backed SQLite database

Two sessions on separate connections interleave inside commit_if_free the
way two requests would. Of two overlapping bookings with different start
times (so the active-slot unique index cannot help), exactly one commits.
"""

from datetime import date, time
from decimal import Decimal

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

import courtbook.models  # noqa: F401
from courtbook.models.court import Court
from courtbook.models.reservation import ACTIVE_STATUSES, Reservation
from courtbook.models.tenant import Tenant
from courtbook.services import conflict_detector
from courtbook.services.availability_index import AvailabilityIndex
from courtbook.services.booking_errors import SlotOccupiedError
from courtbook.services.conflict_detector import commit_if_free
from courtbook.services.time_interval import TimeInterval, time_to_minutes

DAY = date(2025, 1, 6)


def booking(tenant_id: int, court_id: int, start: time, end: time, client_name: str = "Ana Souza") -> Reservation:
    return Reservation(
        tenant_id=tenant_id,
        court_id=court_id,
        created_by=1,
        booking_date=DAY,
        start_time=start,
        end_time=end,
        status="confirmed",
        client_name=client_name,
    )


def active_labels(engine, court_id: int):
    with Session(engine) as session:
        rows = session.exec(
            select(Reservation)
            .where(Reservation.court_id == court_id, Reservation.status.in_(ACTIVE_STATUSES))
            .order_by(Reservation.start_time)
        ).all()
        return [
            TimeInterval(day=r.booking_date, start=time_to_minutes(r.start_time), end=time_to_minutes(r.end_time)).label()
            for r in rows
        ]


@pytest.fixture
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'courtbook.db'}",
        # Short busy timeout so a writer blocked by the other session fails fast
        connect_args={"check_same_thread": False, "timeout": 0.2},
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def court_ids(file_engine):
    """(tenant_id, court_id) with one 07:00-08:00 booking, so the court/day lock row exists"""
    with Session(file_engine) as session:
        tenant = Tenant(name="Premium Beach", subdomain="premium-beach")
        session.add(tenant)
        session.commit()
        session.refresh(tenant)

        court = Court(tenant_id=tenant.id, name="Quadra 1", sport="beach_tennis", price_per_hour=Decimal("50.00"))
        session.add(court)
        session.commit()
        session.refresh(court)

        commit_if_free(session, booking(tenant.id, court.id, time(7, 0), time(8, 0)))
        return tenant.id, court.id


def test_rival_commit_after_lock_read_rejects_the_slower_booking(file_engine, court_ids, monkeypatch):
    tenant_id, court_id = court_ids
    real_lock_court_day = conflict_detector._lock_court_day
    rival_bookings = []

    with Session(file_engine) as first, Session(file_engine) as second:

        def lock_then_rival_commits(session, *args):
            lock = real_lock_court_day(session, *args)
            if session is first and not rival_bookings:
                rival = booking(tenant_id, court_id, time(10, 0), time(11, 0), client_name="Bruno Lima")
                rival_bookings.append(commit_if_free(second, rival))
            return lock

        monkeypatch.setattr(conflict_detector, "_lock_court_day", lock_then_rival_commits)

        with pytest.raises(SlotOccupiedError) as exc_info:
            commit_if_free(first, booking(tenant_id, court_id, time(10, 30), time(11, 30)))

    assert exc_info.value.race_lost is True
    assert len(rival_bookings) == 1
    assert active_labels(file_engine, court_id) == ["07:00-08:00", "10:00-11:00"]


def test_rival_during_availability_read_is_rejected(file_engine, court_ids, monkeypatch):
    tenant_id, court_id = court_ids
    real_load = AvailabilityIndex.load.__func__
    rival_errors = []

    with Session(file_engine) as first, Session(file_engine) as second:

        def load_while_rival_books(cls, session, *args, **kwargs):
            if session is first and not rival_errors:
                rival = booking(tenant_id, court_id, time(10, 0), time(11, 0), client_name="Bruno Lima")
                try:
                    commit_if_free(second, rival)
                except SlotOccupiedError as exc:
                    rival_errors.append(exc)
            return real_load(cls, session, *args, **kwargs)

        monkeypatch.setattr(AvailabilityIndex, "load", classmethod(load_while_rival_books))

        winner = commit_if_free(first, booking(tenant_id, court_id, time(10, 30), time(11, 30)))

    assert winner.id is not None
    assert len(rival_errors) == 1
    assert rival_errors[0].race_lost is True
    assert active_labels(file_engine, court_id) == ["07:00-08:00", "10:30-11:30"]
