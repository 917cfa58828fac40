from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from invoice_desk.config import get_settings
from invoice_desk.db import get_session, init_db, reset_engine
from invoice_desk.models import Client, Invoice


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    monkeypatch.setenv("INVOICE_DESK_DATABASE_URL", f"sqlite:///{tmp_path}/test.db")
    monkeypatch.setenv("INVOICE_DESK_MEDIA_PATH", str(tmp_path / "media"))
    get_settings.cache_clear()
    reset_engine()
    init_db()
    yield
    reset_engine()
    get_settings.cache_clear()


@pytest.fixture
def api() -> TestClient:
    from invoice_desk.app import app

    return TestClient(app)


@pytest.fixture
def make_client():
    def _make(name: str = "Zigzag Car Wash", **fields) -> Client:
        with get_session() as session:
            client = Client(name=name, **fields)
            session.add(client)
            session.flush()
            session.refresh(client)
            return client

    return _make


@pytest.fixture
def store_invoice_number():
    """Insert a bare invoice row carrying ``number``, bypassing the allocator."""

    def _store(number: str, issued: date = date(2026, 1, 10)) -> None:
        with get_session() as session:
            session.add(Invoice(invoice_number=number, date_of_issue=issued, date_due=issued))

    return _store
