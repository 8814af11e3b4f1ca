from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from finhub.db import build_engine
from finhub.dependencies import get_store
from finhub.main import create_app
from finhub.services import importing
from finhub.store import RowStore, create_tables, session_factory_for


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_tables(engine, include_web_orders=True)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine) -> RowStore:
    return RowStore(session_factory=session_factory_for(engine), batch_size=2)


@pytest.fixture(autouse=True)
def no_upload_archive(monkeypatch):
    monkeypatch.setattr(importing, "UPLOAD_DIR", None)


@pytest.fixture
def app(store):
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def upload(client):
    """POST a file to an import endpoint as multipart form data."""

    def _upload(path: str, file_name: str, content: bytes | str):
        if isinstance(content, str):
            content = content.encode("utf-8")
        return client.post(path, files={"file": (file_name, content, "text/csv")})

    return _upload
