import threading
import time
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from salon_booking.database import Base
from salon_booking.domain.scheduling.booking_service import BookingService
from salon_booking.domain.scheduling.repository import SchedulingRepository
from salon_booking.domain.scheduling.schemas import BookingRequest
from salon_booking.errors import Conflict
from salon_booking.models import Appointment, Salon, Service, Staff, User


class SlowInsertRepository(SchedulingRepository):
    """Widens the gap between the conflict check and the insert"""

    @staticmethod
    def add_appointment(db, **appointment_data):
        time.sleep(0.2)
        return SchedulingRepository.add_appointment(db, **appointment_data)


@pytest.fixture
def file_sessionmaker(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'bookings.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def seeded(file_sessionmaker):
    session = file_sessionmaker()
    user = User(email="racer@example.com", full_name="Rae Racer")
    salon = Salon(name="Corner Cuts", email="corner@cuts.test", hours={"monday": "9:00 AM - 5:00 PM"})
    session.add_all([user, salon])
    session.flush()
    staff = Staff(salon_id=salon.id, name="Alex Stylist")
    haircut = Service(name="Haircut", duration=60, price=Decimal("20.00"))
    salon.services.append(haircut)
    session.add(staff)
    session.commit()
    ids = {"user": user.id, "salon": salon.id, "staff": staff.id, "service": haircut.id}
    session.close()
    return ids


def test_overlapping_bookings_issued_concurrently_commit_once(file_sessionmaker, seeded):
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def book(start_at):
        session = file_sessionmaker()
        try:
            user = session.get(User, seeded["user"])
            service = BookingService(session, repo=SlowInsertRepository(), notifier=lambda *args, **kwargs: {})
            data = BookingRequest(
                salon_id=seeded["salon"],
                staff_id=seeded["staff"],
                start_at=start_at,
                service_ids=[seeded["service"]],
            )
            barrier.wait()
            try:
                service.book_appointment(data, user)
                result = "booked"
            except Conflict:
                result = "conflict"
            with lock:
                outcomes.append(result)
        finally:
            session.close()

    threads = [
        threading.Thread(target=book, args=("2030-01-07T10:00:00Z",)),
        threading.Thread(target=book, args=("2030-01-07T10:30:00Z",)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["booked", "conflict"]

    session = file_sessionmaker()
    try:
        assert session.query(Appointment).filter(Appointment.staff_id == seeded["staff"]).count() == 1
    finally:
        session.close()
