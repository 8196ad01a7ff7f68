from datetime import timedelta
from decimal import Decimal
from itertools import count
from pathlib import Path

from dotenv import load_dotenv
from fastapi.testclient import TestClient
import pytest

# Load environment variables for tests before the app reads its settings
load_dotenv(Path(__file__).resolve().parents[1] / ".env.test")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from marketplace.database import enable_sqlite_foreign_keys, get_db  # noqa: E402
from marketplace.main import app  # noqa: E402
from marketplace.models import (  # noqa: E402
    Booking,
    BookingStatus,
    PricingOption,
    Service,
    TechnicianProfile,
    TechnicianStatus,
    User,
    UserRole,
)
from marketplace.models.base import BaseModel, utcnow  # noqa: E402


def setup_db():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    BaseModel.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autoflush=False)
    return Session()


@pytest.fixture
def db():
    session = setup_db()
    try:
        yield session
    finally:
        session.close()


class Factory:
    """Builds users, technicians, services and bookings in a test session."""

    def __init__(self, db):
        self.db = db
        self._seq = count(1)

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, role=UserRole.CLIENT, name=None, password="x", is_active=True):
        n = next(self._seq)
        return self._save(
            User(
                email=f"{role.value.lower()}{n}@test.com",
                password=password,
                name=name or f"{role.value.title()} {n}",
                phone=f"+97330000{n:03d}",
                role=role,
                is_active=is_active,
            )
        )

    def client(self, **kwargs):
        return self.user(UserRole.CLIENT, **kwargs)

    def admin(self, **kwargs):
        return self.user(UserRole.ADMIN, **kwargs)

    def technician(self, status=TechnicianStatus.ACTIVE, specialties=None, **kwargs):
        user = self.user(UserRole.TECHNICIAN, **kwargs)
        self._save(
            TechnicianProfile(
                user_id=user.id,
                status=status,
                specialties=specialties if specialties is not None else ["Plumbing"],
            )
        )
        return user

    def service(self, name="Plumbing Repair", category="plumbing", price=Decimal("25.000")):
        service = self._save(Service(name=name, category=category))
        self._save(PricingOption(service_id=service.id, name="Standard", price=price, duration=60))
        return service

    def booking(
        self,
        client,
        service=None,
        technician=None,
        status=BookingStatus.PENDING,
        scheduled_in=timedelta(days=3),
        estimated_price=Decimal("25.000"),
    ):
        service = service or self.service()
        n = next(self._seq)
        return self._save(
            Booking(
                booking_number=f"BK-{n:05d}",
                client_id=client.id,
                technician_id=technician.id if technician is not None else None,
                service_id=service.id,
                pricing_option_id=service.pricing_options[0].id if service.pricing_options else None,
                status=status,
                scheduled_date=utcnow() + scheduled_in,
                time_slot="09:00-11:00",
                estimated_price=estimated_price,
            )
        )


@pytest.fixture
def make(db):
    return Factory(db)



@pytest.fixture
def api(db):
    """TestClient bound to the test session."""
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
