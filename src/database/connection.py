"""
Engine and session construction.

There is no module-level engine: the process entry point builds one and
passes the session (wrapped in a PersistenceGateway) to the services that need it.
"""

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from src.models.base import Base

logger = structlog.get_logger()


def build_engine(database_url: str, pool_size: int = 5) -> Engine:
    """Create a SQLAlchemy engine for the given URL."""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_size=pool_size, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready", tables=sorted(Base.metadata.tables.keys()))


def check_connection(engine: Engine) -> bool:
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return False
