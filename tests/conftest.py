import os

# Must be set before salon_booking.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from salon_booking.auth import get_current_user  # noqa: E402
from salon_booking.database import Base, get_db  # noqa: E402
from salon_booking.main import app  # noqa: E402
from salon_booking.models import Salon, Service, Staff, User  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

WEEKDAY_HOURS = {
    "monday": "9:00 AM - 5:00 PM",
    "tuesday": "9:00 AM - 5:00 PM",
    "wednesday": "9:00 AM - 5:00 PM",
    "thursday": "9:00 AM - 5:00 PM",
    "friday": "9:00 AM - 8:00 PM",
    "saturday": "10:00 AM - 2:00 PM",
    "sunday": "closed",
}


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user(db):
    user = User(email="customer@example.com", full_name="Casey Customer")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def other_user(db):
    user = User(email="someone@example.com", full_name="Sam Someone")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def salon(db):
    salon = Salon(name="Downtown Cuts", email="hello@downtowncuts.test", hours=dict(WEEKDAY_HOURS))
    db.add(salon)
    db.commit()
    return salon


@pytest.fixture
def other_salon(db):
    salon = Salon(name="Uptown Styles", email="hi@uptown.test", hours=dict(WEEKDAY_HOURS))
    db.add(salon)
    db.commit()
    return salon


@pytest.fixture
def staff(db, salon):
    member = Staff(salon_id=salon.id, name="Alex Stylist", email="alex@downtowncuts.test")
    db.add(member)
    db.commit()
    return member


@pytest.fixture
def second_staff(db, salon):
    member = Staff(salon_id=salon.id, name="Jordan Barber", email="jordan@downtowncuts.test")
    db.add(member)
    db.commit()
    return member


@pytest.fixture
def services(db, salon):
    """Two services offered by the salon: 30 min / 20.00 and 45 min / 35.00"""
    haircut = Service(name="Haircut", duration=30, price=Decimal("20.00"))
    coloring = Service(name="Coloring", duration=45, price=Decimal("35.00"))
    salon.services.extend([haircut, coloring])
    db.commit()
    return [haircut, coloring]


@pytest.fixture
def foreign_service(db, other_salon):
    """A service offered only by another salon"""
    massage = Service(name="Massage", duration=60, price=Decimal("50.00"))
    other_salon.services.append(massage)
    db.commit()
    return massage


@pytest.fixture
def sent_notifications():
    return []


@pytest.fixture
def recording_notifier(sent_notifications):
    def notifier(db, user_ids, title, body, data=None):
        sent_notifications.append({"user_ids": user_ids, "title": title, "body": body, "data": data})
        return {"success": len(user_ids), "failure": 0, "total": len(user_ids)}

    return notifier


@pytest.fixture
def client(db, user):
    def override_get_db():
        yield db

    async def override_get_current_user():
        return user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
