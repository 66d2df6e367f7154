from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from carhire.core import rate_limit
from carhire.core.config import settings
from carhire.db.base import Base
from carhire.db.models import Booking, ServiceLocation, Vehicle
from carhire.db.session import get_db
from carhire.main import app


@pytest.fixture
def session_factory():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, expire_on_commit=False)
    yield Session
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_db
    rate_limit.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {'X-Admin-Key': settings.ADMIN_API_KEY}


@pytest.fixture
def make_vehicle(db):
    def _make(title='Toyota Axio', registration_number='LT 123', **kwargs):
        vehicle = Vehicle(title=title, registration_number=registration_number, **kwargs)
        db.add(vehicle)
        db.commit()
        db.refresh(vehicle)
        return vehicle

    return _make


@pytest.fixture
def make_booking(db):
    counter = {'n': 0}

    def _make(vehicle, start, end, status='confirmed', created_at=None, **kwargs):
        counter['n'] += 1
        fields = dict(
            code=f"BK-{counter['n']:04d}",
            pickup_location='Nadi Airport',
            dropoff_location='Nadi Airport',
            customer_name='Test Customer',
            contact_number='+679 555 0100',
            email='customer@test.com',
        )
        fields.update(kwargs)
        booking = Booking(
            vehicle_id=vehicle.id if hasattr(vehicle, 'id') else vehicle,
            start_date=start if isinstance(start, date) else date.fromisoformat(start),
            end_date=end if isinstance(end, date) else date.fromisoformat(end),
            status=status,
            created_at=created_at or datetime.now(timezone.utc),
            **fields,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def make_location(db):
    def _make(name, fee_fjd=0, is_active=True):
        location = ServiceLocation(name=name, fee_fjd=fee_fjd, is_active=is_active)
        db.add(location)
        db.commit()
        db.refresh(location)
        return location

    return _make
