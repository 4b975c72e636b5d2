from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from ordering.order.records import Base


def create_db_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine for the order database."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Requests are served from a thread pool
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def setup_db(engine: Engine) -> None:
    """Setup database schema"""
    Base.metadata.create_all(engine)


def drop_db(engine: Engine) -> None:
    """Drop database schema"""
    Base.metadata.drop_all(engine)
