"""
Test auditorium booking service functions.
"""
import datetime as dt
from contextlib import contextmanager

import pytest
from sqlalchemy.orm import Session, sessionmaker

from campus_events.core.locks import redis_lock
from campus_events.models.bookings import AudiBooking, BookingStatus
from campus_events.models.users import Role
from campus_events.services.bookings import (
    decide_booking,
    list_available_auditoriums,
    list_bookings,
    request_booking,
    slot_lock_key,
)
from campus_events.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidIntervalError,
    InvalidStateError,
    LockUnavailableError,
    NotFoundError,
    UnauthorizedError,
)

DAY = dt.date(2031, 3, 14)


@pytest.fixture
def add_booking(db_session: Session, coordinator, make_event):
    def _add_booking(auditorium, start, end, status=BookingStatus.PENDING, on_date=DAY):
        event = make_event(coordinator, date=on_date)
        booking = AudiBooking(
            event_id=event.id,
            auditorium_id=auditorium.id,
            date=on_date,
            start_time=start,
            end_time=end,
            requested_by=coordinator.id,
            status=status,
        )
        db_session.add(booking)
        db_session.commit()
        db_session.refresh(booking)
        return booking

    return _add_booking


class TestAvailability:
    def test_all_free_sorted_by_name(self, db_session: Session, auditoriums):
        available = list_available_auditoriums(
            db_session, on_date=DAY, start_time=dt.time(10), end_time=dt.time(11)
        )
        assert [a.name for a in available] == ["Main Auditorium", "Open Air Theatre", "Seminar Hall 1"]

    def test_back_to_back_is_available(self, db_session: Session, auditoriums, add_booking):
        main = auditoriums[0]
        add_booking(main, dt.time(9), dt.time(10), BookingStatus.APPROVED)

        available = list_available_auditoriums(
            db_session, on_date=DAY, start_time=dt.time(10), end_time=dt.time(11)
        )
        assert main.id in [a.id for a in available]

    def test_overlapping_approved_booking_blocks(self, db_session: Session, auditoriums, add_booking):
        main = auditoriums[0]
        add_booking(main, dt.time(9), dt.time(11), BookingStatus.APPROVED)

        available = list_available_auditoriums(
            db_session, on_date=DAY, start_time=dt.time(10), end_time=dt.time(12)
        )
        ids = [a.id for a in available]
        assert main.id not in ids
        assert len(ids) == 2

    def test_pending_and_rejected_do_not_block(self, db_session: Session, auditoriums, add_booking):
        main = auditoriums[0]
        add_booking(main, dt.time(9), dt.time(12), BookingStatus.PENDING)
        add_booking(main, dt.time(9), dt.time(12), BookingStatus.REJECTED)

        available = list_available_auditoriums(
            db_session, on_date=DAY, start_time=dt.time(10), end_time=dt.time(11)
        )
        assert main.id in [a.id for a in available]

    def test_other_dates_do_not_block(self, db_session: Session, auditoriums, add_booking):
        main = auditoriums[0]
        add_booking(main, dt.time(9), dt.time(12), BookingStatus.APPROVED, on_date=DAY + dt.timedelta(days=1))

        available = list_available_auditoriums(
            db_session, on_date=DAY, start_time=dt.time(10), end_time=dt.time(11)
        )
        assert main.id in [a.id for a in available]

    def test_invalid_interval(self, db_session: Session, auditoriums):
        with pytest.raises(InvalidIntervalError):
            list_available_auditoriums(db_session, on_date=DAY, start_time=dt.time(11), end_time=dt.time(11))


class TestRequestBooking:
    def test_creates_pending_booking(self, db_session: Session, coordinator, make_event, auditoriums):
        event = make_event(coordinator)
        booking = request_booking(
            db_session,
            requester_id=coordinator.id,
            event_id=event.id,
            auditorium_id=auditoriums[1].id,
            on_date=DAY,
            start_time=dt.time(14),
            end_time=dt.time(15),
        )
        assert booking.id is not None
        assert booking.status is BookingStatus.PENDING
        assert booking.requested_by == coordinator.id
        assert booking.auditorium.name == "Seminar Hall 1"

    def test_overlap_not_checked_at_creation(self, db_session: Session, coordinator, make_event,
                                             auditoriums, add_booking):
        add_booking(auditoriums[0], dt.time(14), dt.time(15), BookingStatus.APPROVED)
        event = make_event(coordinator)

        booking = request_booking(
            db_session,
            requester_id=coordinator.id,
            event_id=event.id,
            auditorium_id=auditoriums[0].id,
            on_date=DAY,
            start_time=dt.time(14),
            end_time=dt.time(15),
        )
        assert booking.status is BookingStatus.PENDING

    def test_event_not_found(self, db_session: Session, coordinator, auditoriums):
        with pytest.raises(NotFoundError, match="Event not found"):
            request_booking(
                db_session, requester_id=coordinator.id, event_id=999, auditorium_id=auditoriums[0].id,
                on_date=DAY, start_time=dt.time(9), end_time=dt.time(10),
            )

    def test_event_owned_by_someone_else(self, db_session: Session, coordinator, make_user,
                                         make_event, auditoriums):
        other = make_user(Role.COORDINATOR)
        event = make_event(other)
        with pytest.raises(ForbiddenError):
            request_booking(
                db_session, requester_id=coordinator.id, event_id=event.id, auditorium_id=auditoriums[0].id,
                on_date=DAY, start_time=dt.time(9), end_time=dt.time(10),
            )

    def test_auditorium_not_found(self, db_session: Session, coordinator, make_event):
        event = make_event(coordinator)
        with pytest.raises(NotFoundError, match="Auditorium not found"):
            request_booking(
                db_session, requester_id=coordinator.id, event_id=event.id, auditorium_id=999,
                on_date=DAY, start_time=dt.time(9), end_time=dt.time(10),
            )

    def test_second_booking_for_same_event(self, db_session: Session, coordinator, make_event, auditoriums):
        event = make_event(coordinator)
        kwargs = dict(requester_id=coordinator.id, event_id=event.id, on_date=DAY)
        request_booking(db_session, auditorium_id=auditoriums[0].id,
                        start_time=dt.time(9), end_time=dt.time(10), **kwargs)

        # Different hall and slot: still one booking per event
        with pytest.raises(ConflictError, match="already exists"):
            request_booking(db_session, auditorium_id=auditoriums[1].id,
                            start_time=dt.time(15), end_time=dt.time(16), **kwargs)

    def test_invalid_interval(self, db_session: Session, coordinator, make_event, auditoriums):
        event = make_event(coordinator)
        with pytest.raises(InvalidIntervalError):
            request_booking(
                db_session, requester_id=coordinator.id, event_id=event.id, auditorium_id=auditoriums[0].id,
                on_date=DAY, start_time=dt.time(10), end_time=dt.time(9),
            )


class TestDecideBooking:
    def test_approve(self, db_session: Session, hod, auditoriums, add_booking):
        booking = add_booking(auditoriums[0], dt.time(14), dt.time(15))

        decided = decide_booking(
            db_session, booking_id=booking.id, decision=BookingStatus.APPROVED, actor_id=hod.id
        )
        assert decided.status is BookingStatus.APPROVED
        assert decided.approved_by == hod.id
        assert decided.approver.name == hod.name

    def test_overlapping_second_approval_conflicts(self, db_session: Session, hod, auditoriums, add_booking):
        first = add_booking(auditoriums[0], dt.time(14), dt.time(15))
        second = add_booking(auditoriums[0], dt.time(14, 30), dt.time(15, 30))

        decide_booking(db_session, booking_id=first.id, decision=BookingStatus.APPROVED, actor_id=hod.id)
        with pytest.raises(ConflictError, match="already booked"):
            decide_booking(db_session, booking_id=second.id, decision=BookingStatus.APPROVED, actor_id=hod.id)

        db_session.expire_all()
        second = db_session.get(AudiBooking, second.id)
        assert second.status is BookingStatus.PENDING
        assert second.approved_by is None

    def test_back_to_back_approvals(self, db_session: Session, hod, auditoriums, add_booking):
        first = add_booking(auditoriums[0], dt.time(14), dt.time(15))
        second = add_booking(auditoriums[0], dt.time(15), dt.time(16))

        decide_booking(db_session, booking_id=first.id, decision=BookingStatus.APPROVED, actor_id=hod.id)
        decided = decide_booking(db_session, booking_id=second.id, decision=BookingStatus.APPROVED, actor_id=hod.id)
        assert decided.status is BookingStatus.APPROVED

    def test_same_slot_other_auditorium(self, db_session: Session, hod, auditoriums, add_booking):
        first = add_booking(auditoriums[0], dt.time(14), dt.time(15))
        second = add_booking(auditoriums[1], dt.time(14), dt.time(15))

        decide_booking(db_session, booking_id=first.id, decision=BookingStatus.APPROVED, actor_id=hod.id)
        decided = decide_booking(db_session, booking_id=second.id, decision=BookingStatus.APPROVED, actor_id=hod.id)
        assert decided.status is BookingStatus.APPROVED

    def test_reject_ignores_overlap(self, db_session: Session, hod, auditoriums, add_booking):
        add_booking(auditoriums[0], dt.time(14), dt.time(15), BookingStatus.APPROVED)
        pending = add_booking(auditoriums[0], dt.time(14), dt.time(15))

        decided = decide_booking(db_session, booking_id=pending.id, decision=BookingStatus.REJECTED, actor_id=hod.id)
        assert decided.status is BookingStatus.REJECTED
        assert decided.approved_by == hod.id

    @pytest.mark.parametrize("first", [BookingStatus.APPROVED, BookingStatus.REJECTED])
    @pytest.mark.parametrize("second", [BookingStatus.APPROVED, BookingStatus.REJECTED])
    def test_terminal_states_are_final(self, db_session: Session, hod, auditoriums, add_booking, first, second):
        booking = add_booking(auditoriums[0], dt.time(9), dt.time(10))
        decide_booking(db_session, booking_id=booking.id, decision=first, actor_id=hod.id)

        with pytest.raises(InvalidStateError, match="Only pending bookings"):
            decide_booking(db_session, booking_id=booking.id, decision=second, actor_id=hod.id)

    def test_pending_is_not_a_decision(self, db_session: Session, hod, auditoriums, add_booking):
        booking = add_booking(auditoriums[0], dt.time(9), dt.time(10))
        with pytest.raises(InvalidStateError):
            decide_booking(db_session, booking_id=booking.id, decision=BookingStatus.PENDING, actor_id=hod.id)
        with pytest.raises(InvalidStateError):
            decide_booking(db_session, booking_id=booking.id, decision="MAYBE", actor_id=hod.id)

    def test_missing_actor(self, db_session: Session, auditoriums, add_booking):
        booking = add_booking(auditoriums[0], dt.time(9), dt.time(10))
        with pytest.raises(UnauthorizedError):
            decide_booking(db_session, booking_id=booking.id, decision=BookingStatus.APPROVED, actor_id=None)

    def test_booking_not_found(self, db_session: Session, hod):
        with pytest.raises(NotFoundError):
            decide_booking(db_session, booking_id=424242, decision=BookingStatus.APPROVED, actor_id=hod.id)

    def test_slot_locked_elsewhere(self, db_session: Session, hod, auditoriums, add_booking,
                                   fake_redis, monkeypatch):
        """A held slot lock makes the decision fail without touching the booking."""
        monkeypatch.setattr("campus_events.core.locks.LOCK_BLOCKING_TIMEOUT_SECONDS", 0.1)
        booking = add_booking(auditoriums[0], dt.time(9), dt.time(10))
        held = fake_redis.lock(slot_lock_key(auditoriums[0].id, DAY), timeout=10)
        assert held.acquire(blocking=False)
        try:
            with pytest.raises(LockUnavailableError):
                decide_booking(
                    db_session, booking_id=booking.id, decision=BookingStatus.APPROVED,
                    actor_id=hod.id,
                )
        finally:
            held.release()

        db_session.expire_all()
        assert db_session.get(AudiBooking, booking.id).status is BookingStatus.PENDING

    def test_slot_lock_starts_a_fresh_transaction(self, db_session: Session, hod, auditoriums, add_booking,
                                                  monkeypatch):
        booking = add_booking(auditoriums[0], dt.time(9), dt.time(10))
        inside_transaction = []

        @contextmanager
        def recording_lock(key):
            inside_transaction.append(db_session.in_transaction())
            with redis_lock(key):
                yield

        monkeypatch.setattr("campus_events.services.bookings.redis_lock", recording_lock)
        db_session.get(AudiBooking, booking.id)
        assert db_session.in_transaction()

        decide_booking(db_session, booking_id=booking.id, decision=BookingStatus.APPROVED, actor_id=hod.id)
        assert inside_transaction == [False]

    def test_approval_sees_decisions_committed_while_waiting(self, db_session: Session, hod, auditoriums,
                                                              add_booking, monkeypatch):
        first_id = add_booking(auditoriums[0], dt.time(14), dt.time(15)).id
        second_id = add_booking(auditoriums[0], dt.time(14, 30), dt.time(15, 30)).id
        hod_id = hod.id
        waiting_for = [first_id]

        @contextmanager
        def lock_after_other_hod(key):
            # Another HOD approves an overlapping booking while this call waits for the lock
            if waiting_for:
                other_session = sessionmaker(bind=db_session.get_bind())()
                try:
                    decide_booking(other_session, booking_id=waiting_for.pop(),
                                   decision=BookingStatus.APPROVED, actor_id=hod_id)
                finally:
                    other_session.close()
            with redis_lock(key):
                yield

        db_session.get(AudiBooking, second_id)
        monkeypatch.setattr("campus_events.services.bookings.redis_lock", lock_after_other_hod)
        with pytest.raises(ConflictError, match="already booked"):
            decide_booking(db_session, booking_id=second_id, decision=BookingStatus.APPROVED, actor_id=hod_id)

        db_session.expire_all()
        assert db_session.get(AudiBooking, first_id).status is BookingStatus.APPROVED
        assert db_session.get(AudiBooking, second_id).status is BookingStatus.PENDING


class TestListBookings:
    def test_filters(self, db_session: Session, coordinator, make_user, make_event, auditoriums, add_booking):
        approved = add_booking(auditoriums[0], dt.time(9), dt.time(10), BookingStatus.APPROVED)
        add_booking(auditoriums[0], dt.time(11), dt.time(12))

        other = make_user(Role.COORDINATOR)
        other_event = make_event(other)
        request_booking(
            db_session, requester_id=other.id, event_id=other_event.id, auditorium_id=auditoriums[2].id,
            on_date=DAY, start_time=dt.time(9), end_time=dt.time(10),
        )

        assert len(list_bookings(db_session)) == 3
        assert [b.id for b in list_bookings(db_session, status=BookingStatus.APPROVED)] == [approved.id]
        assert len(list_bookings(db_session, status=BookingStatus.PENDING)) == 2
        assert len(list_bookings(db_session, requested_by=coordinator.id)) == 2
        assert [b.requested_by for b in list_bookings(db_session, requested_by=other.id)] == [other.id]
