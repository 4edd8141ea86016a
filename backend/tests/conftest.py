"""Shared pytest configuration and fixtures for the overlay studio test suite."""

import asyncio
import os
import uuid
from typing import Any, Coroutine, TypeVar

# Point the app at an in-memory database before anything imports it
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ROLLBACK_ON_FAILED_UPDATE"] = "false"

import httpx
import pytest
from fastapi.testclient import TestClient

from overlay_studio.core.db import Base, SessionLocal, engine
from overlay_studio.main import app
from overlay_studio.services.overlay_rules import validate_and_fill_defaults

T = TypeVar("T")

API_BASE_URL = "http://testserver/api/v1"


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously for testing."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def asgi_http_client() -> httpx.AsyncClient:
    """AsyncClient wired straight into the FastAPI app, no network."""
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=API_BASE_URL)


def mock_http_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=API_BASE_URL)


def overlay_wire(overlay_type: str = "text", name: str = "Overlay", **fields) -> dict[str, Any]:
    """A stored-looking overlay payload, as the API would return it."""
    overlay = validate_and_fill_defaults({"type": overlay_type, "name": name, **fields})
    wire = overlay.to_wire()
    wire["id"] = str(uuid.uuid4())
    return wire


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
