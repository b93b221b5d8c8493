from datetime import datetime

import pytest
import pytz
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from mileage_tracker import models  # noqa: F401
from mileage_tracker.core.database import Base, build_engine, get_db
from mileage_tracker.main import app
from mileage_tracker.models import Staff


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_staff(db, name="Dana Reyes", department="Nursing", email="dana@example.org", cost_per_mile=None):
    staff = Staff(name=name, department=department, email=email, cost_per_mile=cost_per_mile)
    db.add(staff)
    db.commit()
    db.refresh(staff)
    return staff


@pytest.fixture
def staff(db_session):
    return make_staff(db_session)


@pytest.fixture
def t0():
    return datetime(2026, 3, 10, 14, 0, tzinfo=pytz.UTC)
