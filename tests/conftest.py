"""
Pytest fixtures for ClickTrail tests.

Provides a temporary SQLite database, a database session and httpx
clients for both apps. Environment overrides must be in place before
any clicktrail module is imported.
"""

import os
import tempfile

_db_dir = tempfile.mkdtemp(prefix="clicktrail-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_db_dir}/test.db"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CLEANUP_SCHEDULER_ENABLED"] = "false"

import httpx
import pytest
import pytest_asyncio
from sqlmodel import SQLModel

from clicktrail.db import session as db_session
from clicktrail.main import app, redirect_app

from tests.helpers import OTHER_USER, OWNER


@pytest_asyncio.fixture
async def db():
    """Fresh schema for every test."""
    async with db_session.engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    yield


@pytest_asyncio.fixture
async def session(db):
    async with db_session.async_session_maker() as s:
        yield s


@pytest_asyncio.fixture
async def admin_client(db):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://admin.test") as client:
        yield client


@pytest_asyncio.fixture
async def redirect_client(db):
    transport = httpx.ASGITransport(app=redirect_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://go.test") as client:
        yield client


@pytest.fixture
def owner_headers():
    return {"X-Principal-Id": OWNER}


@pytest.fixture
def other_headers():
    return {"X-Principal-Id": OTHER_USER}

