"""
Shared fixtures for the sheet import tests.

Each test gets a fresh in-memory SQLite central database seeded with a
few lead sources. Google APIs are never called; tests that need them
use unittest.mock.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app
from models import HearUsFrom, db
from services.importer import ColumnMapping, RawRow

BRANCH = 7
OTHER_BRANCH = 8
SYSTEM_USER_ID = 'system-user-0001'
TODAY = date(2025, 6, 15)

# Column layout of the test sheet
COLUMNS = {
    'registrationDate': 0,
    'firstName': 1,
    'lastName': 2,
    'email': 3,
    'phone': 4,
    'gender': 5,
    'birthDate': 6,
    'age': 7,
    'occupation': 8,
    'hearUsFrom': 9,
    'postItColumns': [10, 11],
}

TEST_CONFIG = {
    'TESTING': True,
    'SECRET_KEY': 'test-secret',
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'SQLALCHEMY_ENGINE_OPTIONS': {},
    'DATABASE_URL': 'sqlite://',
    'DB_HOST': 'localhost',
    'DB_PORT': '3306',
    'DB_NAME': 'central_test',
    'DB_DIALECT': 'sqlite',
    'CENTRAL_BRANCH': BRANCH,
    'CENTRAL_SYSTEM_USER_ID': SYSTEM_USER_ID,
    'ENV': 'PROD',
    'GOOGLE_CLIENT_ID': 'client-id.apps.googleusercontent.com',
    'GOOGLE_CLIENT_SECRET': 'client-secret',
    'GOOGLE_REDIRECT_URI': 'http://localhost:5005/auth/callback',
}


def seed_lead_source(value, branch=BRANCH, deleted=0, lead_group=38):
    lead_source = HearUsFrom(hear_us_from=value, branch=branch, deleted=deleted,
                             lead_group=lead_group, type=2, product=1, status=1,
                             created_by=SYSTEM_USER_ID, updated_by=SYSTEM_USER_ID)
    db.session.add(lead_source)
    return lead_source


@pytest.fixture
def app():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        db.create_all()
        seed_lead_source('Facebook')
        seed_lead_source('Instagram', deleted=1)
        seed_lead_source('Google', branch=OTHER_BRANCH)
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def mapping():
    return ColumnMapping.from_payload(COLUMNS)


def sheet_values(first='Jane', last='Doe', email='jane@example.com', phone='+852 9123-4567',
                 gender='F', birth='11/18/1976', age='', occupation='Nurse',
                 hear_us_from='Facebook', registered='2025-01-04T00:34:25+08:00',
                 notes=('Likes hiking', '')):
    return [registered, first, last, email, phone, gender, birth, age, occupation,
            hear_us_from, *notes]


@pytest.fixture
def make_row():
    """Build a RawRow in the test sheet layout; keyword arguments override cells."""
    def _make_row(row_index, **overrides):
        return RawRow(row_index=row_index, values=tuple(sheet_values(**overrides)))
    return _make_row


@pytest.fixture
def make_payload_row():
    """Build a selectedRows entry as the browser posts it."""
    def _make_payload_row(row_index, **overrides):
        return {
            'rowIndex': row_index,
            'data': {'values': [{'formattedValue': value} for value in sheet_values(**overrides)]},
        }
    return _make_payload_row
