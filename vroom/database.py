import logging

from sqlalchemy import create_engine

from vroom import config

log = logging.getLogger(__name__)

# Get connection URL from config
connection_url = config.get_settings().DATABASE_URL

# Normalise Postgres URLs to the synchronous psycopg2 driver
if connection_url.startswith("postgres://"):
    connection_url = connection_url.replace("postgres://", "postgresql+psycopg2://", 1)
elif "postgresql+psycopg:" in connection_url and "postgresql+psycopg2:" not in connection_url:
    connection_url = connection_url.replace("postgresql+psycopg:", "postgresql+psycopg2:")

if connection_url.startswith("sqlite"):
    # Request handlers run in a threadpool, so the SQLite connection is shared across threads
    engine = create_engine(
        connection_url,
        connect_args={"check_same_thread": False},
        echo=False
    )
else:
    engine = create_engine(
        connection_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=3,
        max_overflow=7,
        pool_recycle=300,
        echo=False  # Set to True for SQL debugging
    )

log.info(f"[Database] SQLAlchemy engine created for {connection_url.split('://')[0]}")
