from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from vicomm.config import settings
import os

# Safety check: Prevent accidental production database usage in tests
if os.getenv("TESTING") == "true" and not settings.DATABASE_URL.startswith("sqlite"):
    import warnings
    warnings.warn(
        f"WARNING: Tests are configured but DATABASE_URL points to non-SQLite: {settings.DATABASE_URL[:50]}...\n"
        "This could cause tests to write to a real database!\n"
        "Set DATABASE_URL=sqlite:///:memory: before importing vicomm modules.",
        RuntimeWarning,
        stacklevel=2
    )

# SQLite needs check_same_thread, PostgreSQL doesn't
if settings.DATABASE_URL.startswith("sqlite"):
    from sqlalchemy.pool import NullPool
    connect_args = {"check_same_thread": False}
    # SQLite doesn't support max_overflow, pool_timeout, pool_recycle or pool_pre_ping
    engine_kwargs = {
        "connect_args": connect_args,
        "poolclass": NullPool,
        "echo": False,
    }
else:
    connect_args = {
        "connect_timeout": 10,  # 10 second connection timeout
    }
    engine_kwargs = {
        "connect_args": connect_args,
        "pool_size": 20,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_timeout": 30,
        "echo": False,  # Set to True for SQL query logging (debug only)
    }

engine = create_engine(settings.DATABASE_URL, **engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def enable_sqlite_foreign_keys(target_engine):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    if target_engine.dialect.name != "sqlite":
        return

    @event.listens_for(target_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)
