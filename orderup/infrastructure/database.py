import logging
import time

from sqlalchemy import JSON, Column, Integer, String, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()

class OrderRow(Base):
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    customer_email = Column(String, nullable=False)
    # Line items never change after creation, so they live in one JSON column.
    line_items = Column(JSON, nullable=False)
    status = Column(Integer, nullable=False, index=True)


def build_engine(database_url: str) -> Engine:
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # A private in-memory database only exists on one connection.
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine, retries: int = 10, wait_seconds: float = 3.0) -> None:
    """Create tables, waiting for the database to come up if it is not ready yet."""
    for attempt in range(retries):
        try:
            logger.info("attempting DB connection (%d/%d)", attempt + 1, retries)
            Base.metadata.create_all(bind=engine)
            logger.info("DB connected and tables created")
            return
        except OperationalError as e:
            if attempt + 1 >= retries:
                logger.error("could not connect to DB after %d attempts: %s", retries, e)
                raise
            logger.warning("DB not ready yet, waiting %ss", wait_seconds)
            time.sleep(wait_seconds)
