from fastapi import Depends, Request

from app.config.settings import Settings
from app.services.document_store import DocumentStore
from app.services.sync_engine import SyncEngine


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_sync_engine(store: DocumentStore = Depends(get_store)) -> SyncEngine:
    return SyncEngine(store)
