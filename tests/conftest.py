"""Shared fixtures: a throwaway SQLite file per test plus seeding helpers."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from studyrooms import crud
from studyrooms.database import Base, make_engine
from studyrooms.main import app, get_db, get_now

# Saturday morning; "now" for every test unless overridden
NOW = datetime(2026, 10, 17, 9, 15, 30)


def at(clock: str, day: datetime = NOW) -> datetime:
    hours, minutes = clock.split(":")
    return day.replace(hour=int(hours), minute=int(minutes), second=0, microsecond=0)


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'studyrooms-test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


class Seeder:
    """Writes rows through short-lived sessions so no test session holds a lock."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def room(self, name="Study Room", is_active=True, access_group=None):
        with self.session_factory() as session:
            return crud.create_room(session, name=name, access_group=access_group, is_active=is_active).id

    def booking(self, room_id, start, end, student_id="1234567"):
        with self.session_factory() as session:
            return crud.create_booking(session, room_id, student_id, start, end).id


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: NOW
    yield TestClient(app)
    app.dependency_overrides.clear()
