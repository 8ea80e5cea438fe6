# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.application import create_app
from app.config.settings import Settings
from app.database import build_engine, build_session_factory, create_tables
from app.services.document_store import DocumentStore
from app.services.sync_engine import SyncEngine


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[DocumentStore]:
    """A real store on a throwaway SQLite file."""
    db_engine = build_engine(f"sqlite:///{tmp_path / 'store.sqlite3'}")
    create_tables(db_engine)
    yield DocumentStore(build_session_factory(db_engine))
    db_engine.dispose()


@pytest.fixture()
def engine(store: DocumentStore) -> SyncEngine:
    return SyncEngine(store)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'api.sqlite3'}",
        sync_audit_enabled=False,
        default_task_limit=100,
    )


@pytest.fixture()
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
