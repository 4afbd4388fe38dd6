# tests/conftest.py
import os
import tempfile
import uuid
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.db import Base, create_db_engine, get_db
from app.models import Hospital, Doctor, Clinic, TimeSlot, OWNER_CLINIC, OWNER_HOSPITAL_DOCTOR
from app.main import app


class FixedClock:
    """Callable stand-in for clock.now that tests can move forward."""

    def __init__(self, current: datetime):
        self.current = current

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture
def clock():
    # 2025-06-01 08:00 local
    return FixedClock(datetime(2025, 6, 1, 8, 0))


@pytest.fixture(scope="function")
def session_factory():
    os.environ["SKIP_DB_INIT"] = "1"
    os.environ["SKIP_SLOT_SWEEPER"] = "1"

    # temp DB file so several connections (threads) see the same data
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    engine = create_db_engine(f"sqlite:///{tmp.name}")
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()
        os.unlink(tmp.name)


@pytest.fixture(scope="function")
def test_db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


def _persist(session, obj):
    """Commit `obj` and hand it back detached, leaving no transaction open on `session`."""
    session.add(obj)
    session.commit()
    session.refresh(obj)
    session.expunge(obj)
    session.commit()
    return obj


@pytest.fixture
def reload_slot(session_factory):
    """Read a slot through a throwaway session."""
    def _reload(slot_id):
        with session_factory() as db:
            slot = db.get(TimeSlot, slot_id)
            if slot is not None:
                db.expunge(slot)
            return slot
    return _reload


# —— Factories ——
@pytest.fixture
def make_hospital(test_db_session):
    def _make_hospital(hospital_id=1, name="City General", max_bookings_per_slot=5):
        h = Hospital(hospital_id=hospital_id, name=name, location="Downtown",
                     max_bookings_per_slot=max_bookings_per_slot)
        return _persist(test_db_session, h)
    return _make_hospital


@pytest.fixture
def make_doctor(test_db_session):
    def _make_doctor(doctor_id=5, name="Dr. Rao", specialization="Cardiology", hospital_id=1, available=True):
        d = Doctor(doctor_id=doctor_id, name=name, specialization=specialization,
                   hospital_id=hospital_id, available=available)
        return _persist(test_db_session, d)
    return _make_doctor


@pytest.fixture
def make_clinic(test_db_session):
    def _make_clinic(clinic_id=501, name="Lakeside Clinic", doctor_name="Dr. Lin",
                     specialization="General Practice", max_bookings_per_slot=3):
        c = Clinic(clinic_id=clinic_id, name=name, doctor_name=doctor_name, specialization=specialization,
                   location="Lakeside", max_bookings_per_slot=max_bookings_per_slot)
        return _persist(test_db_session, c)
    return _make_clinic


@pytest.fixture
def make_slot(test_db_session):
    """Insert a slot row directly, skipping the future-time check so past slots can be staged."""
    def _make_slot(doctor_id=5, hospital_id=1, date="2025-06-01", time="10:00",
                   max_bookings=5, current_bookings=0, is_active=True):
        ts = TimeSlot(
            id=str(uuid.uuid4()),
            doctor_id=doctor_id,
            hospital_id=hospital_id,
            owner_kind=OWNER_HOSPITAL_DOCTOR if hospital_id else OWNER_CLINIC,
            date=date,
            time=time,
            max_bookings=max_bookings,
            current_bookings=current_bookings,
            is_active=is_active,
        )
        return _persist(test_db_session, ts)
    return _make_slot
