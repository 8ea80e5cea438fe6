from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def build_engine(database_url: str, sslmode: str = None) -> Engine:
    """Create the SQLAlchemy engine for the configured database"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    # If you're using PostgreSQL on Render or similar, set DB_SSLMODE=require
    connect_args = {"sslmode": sslmode} if sslmode else {}
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    # Documents are handed back to callers after their session closes
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine: Engine):
    # Models must be imported so they register on Base.metadata
    from app import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
