import asyncio
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from api.main import create_app
from models.database import db, get_database, get_users_collection
from services.session import create_session_token
from utils.helpers import isoformat_z, utcnow


def run(coroutine):
    """Run a database coroutine from synchronous test code."""
    return asyncio.run(coroutine)


@pytest.fixture()
def mongo():
    db.client = AsyncMongoMockClient()
    yield get_database()
    db.client = None


@pytest.fixture()
def client(mongo):
    return TestClient(create_app(use_lifespan=False))


@pytest.fixture()
def make_user(mongo):
    """Create a user and return ``(user_id, auth_headers)``."""

    def _make_user(email: str, name: str = None):
        document = {"email": email, "created_at": utcnow(), "updated_at": utcnow()}
        if name is not None:
            document["name"] = name
        result = run(get_users_collection().insert_one(document))
        token = create_session_token(str(result.inserted_id), email=email)
        return str(result.inserted_id), {"Authorization": f"Bearer {token}"}

    return _make_user


def goal_payload(**overrides):
    payload = {
        "title": "House deposit",
        "targetAmount": 12000,
        "currency": "usd",
        "targetDate": isoformat_z(utcnow() + timedelta(days=3 * 365)),
        "expectedRate": 5,
        "compounding": "monthly",
        "contributionFrequency": "monthly",
        "existingSavings": 1000,
    }
    payload.update(overrides)
    return payload
