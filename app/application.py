# app/application.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config.settings import Settings
from app.database import build_engine, build_session_factory, create_tables
from app.routers import task, user
from app.services.document_store import DocumentStore
from app.services.scheduler import ConsistencyScheduler
from app.utils.responses import register_exception_handlers

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API; the database engine and store live as long as the app"""
    settings = settings or Settings()

    engine = build_engine(settings.database_url, settings.db_sslmode)
    create_tables(engine)
    store = DocumentStore(build_session_factory(engine))
    audit = ConsistencyScheduler(
        store,
        interval_minutes=settings.sync_audit_interval_minutes,
        repair_enabled=settings.sync_audit_repair,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Task Board API...")
        if settings.sync_audit_enabled:
            audit.start()
        yield
        logger.info("Shutting down Task Board API...")
        audit.stop()
        engine.dispose()

    app = FastAPI(title="Task Board API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.audit = audit

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Route registration
    app.include_router(user.router, prefix="/api/users", tags=["Users"])
    app.include_router(task.router, prefix="/api/tasks", tags=["Tasks"])

    @app.get("/")
    def read_root():
        return {"message": "Task Board API"}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/scheduler/status")
    async def get_scheduler_status():
        """Get consistency audit status and job information"""
        return await audit.get_scheduler_status()

    @app.post("/scheduler/trigger/audit")
    async def trigger_audit():
        """Manually run the consistency audit"""
        return await audit.run_audit()

    return app
