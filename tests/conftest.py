"""Shared fixtures for the salon vault test suite.

Provides an in-memory SalonDatabase (mirror pushes run inline), a temp-file
SQLite SalonDatabase, a mocked requests session for mirror tests and a few
seeded records used across business workflow tests.
"""
import os
import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from database import MemoryStorageAdapter, RemoteMirrorClient, SalonDatabase
from database.schemas import generate_id

MIRROR_URL = "https://script.google.com/macros/s/test/exec"


def make_response(payload=None, status_code=200, json_error=False):
    """Build a fake requests.Response with the given JSON payload."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    if json_error:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def fake_session():
    """A mocked requests.Session; tests set get/post return values."""
    session = MagicMock(spec=requests.Session)
    session.get.return_value = make_response({"status": "success", "data": {}})
    session.post.return_value = make_response({"status": "success", "message": "ok"})
    return session


@pytest.fixture
def memory_storage():
    return MemoryStorageAdapter()


@pytest.fixture
def memory_db(memory_storage):
    """SalonDatabase on an in-memory dict with no mirror configured."""
    db = SalonDatabase(storage=memory_storage, push_in_background=False)
    yield db
    db.close()


@pytest.fixture
def mirrored_db(memory_storage, fake_session):
    """SalonDatabase whose mirror points at a mocked Apps Script endpoint."""
    mirror = RemoteMirrorClient(MIRROR_URL, storage=memory_storage, session=fake_session)
    db = SalonDatabase(storage=memory_storage, mirror=mirror, push_in_background=False)
    yield db
    db.close()


@pytest.fixture
def temp_db():
    """Yield a SalonDatabase bound to a temp SQLite file."""
    temp_dir = tempfile.mkdtemp(prefix="salon-tests-")
    db_path = os.path.join(temp_dir, "test.db")
    db = SalonDatabase(database_url=f"sqlite:///{db_path}", push_in_background=False)
    try:
        yield db
    finally:
        db.close()
        shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def fixed_now():
    """Stable aware datetime for deterministic tests."""
    return datetime(2024, 3, 5, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def stylist(memory_db):
    record = {
        "id": generate_id(),
        "name": "Priya",
        "role": "Hair Stylist",
        "specialties": ["Cut", "Colour"],
        "active": True,
        "target": 50000,
    }
    memory_db.staff.save(memory_db.staff.get_all() + [record])
    return record


@pytest.fixture
def customer(memory_db):
    record = {
        "id": generate_id(),
        "name": "Asha",
        "email": "asha@example.com",
        "phone": "9876500000",
        "apartment": "B-204",
        "birthday": "2000-07-14",
        "anniversary": "",
        "walletBalance": 0,
        "isMember": False,
        "coupons": [],
        "joinDate": "2024-01-10",
    }
    memory_db.customers.save(memory_db.customers.get_all() + [record])
    return record


@pytest.fixture
def member(memory_db, fixed_now):
    """A customer with an active membership and some wallet credit."""
    record = {
        "id": generate_id(),
        "name": "Meera",
        "email": "",
        "phone": "9000000001",
        "apartment": "",
        "birthday": "",
        "anniversary": "",
        "walletBalance": 2000,
        "isMember": True,
        "membershipExpiry": (fixed_now + timedelta(days=90)).isoformat(),
        "coupons": [],
        "joinDate": "2023-06-01",
    }
    memory_db.customers.save(memory_db.customers.get_all() + [record])
    return record


@pytest.fixture
def shampoo(memory_db):
    record = {
        "id": generate_id(),
        "name": "Argan Shampoo",
        "brand": "Loreal",
        "quantity": 10,
        "price": 150,
        "category": "Hair Care",
        "minThreshold": 3,
    }
    memory_db.inventory.save(memory_db.inventory.get_all() + [record])
    return record
