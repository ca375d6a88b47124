"""
Pytest fixtures for StudyHall backend tests.

Provides test database setup, reference-data factories, and test client.
"""

from datetime import timedelta

import pytest
from studyhall import create_app
from studyhall.extensions import db
from studyhall.models import Branch, Seat, Shift
from studyhall.time_utils import today


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'EXPIRING_SOON_DAYS': 30,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def branch(db_session):
    """Create the main branch."""
    branch = Branch(name="Main Branch", address="1 Library Road", phone="555-0100")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def other_branch(db_session):
    """Create a second branch."""
    branch = Branch(name="North Wing")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def shifts(db_session):
    """Create morning and evening shifts."""
    morning = Shift(title="Morning", time="06:00-12:00")
    evening = Shift(title="Evening", time="18:00-23:00")
    db_session.add_all([morning, evening])
    db_session.commit()
    return morning, evening


@pytest.fixture(scope='function')
def seats(db_session, branch):
    """Create seats 1-3 in the main branch."""
    created = [Seat(branch_id=branch.id, seat_number=str(n)) for n in (1, 2, 3)]
    db_session.add_all(created)
    db_session.commit()
    return created


@pytest.fixture(scope='function')
def other_seat(db_session, other_branch):
    """Create a seat in the second branch."""
    seat = Seat(branch_id=other_branch.id, seat_number="A1")
    db_session.add(seat)
    db_session.commit()
    return seat


@pytest.fixture(scope='function')
def student_payload():
    """Factory for a valid create payload: one-month membership, 1000 fee, 400 cash + 100 online."""
    def build(branch_id: int, **overrides) -> dict:
        start = today()
        payload = {
            "name": "Asha Verma",
            "email": "asha@example.com",
            "phone": "9990001111",
            "address": "12 Park Street",
            "branch_id": branch_id,
            "membership_start": start.isoformat(),
            "membership_end": (start + timedelta(days=30)).isoformat(),
            "total_fee": 1000,
            "cash": 400,
            "online": 100,
            "security_money": 200,
        }
        payload.update(overrides)
        return payload

    return build
