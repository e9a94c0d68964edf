#!/usr/bin/env python3
"""Create all database tables for the configured SQL backend."""
import sys

from tasktrack.config import Settings
from tasktrack.db import Base, make_engine
from tasktrack.models import User, Session, Task  # noqa: F401 – register models

if __name__ == "__main__":
    settings = Settings.from_env()
    if settings.uses_memory_store:
        sys.exit("TASKTRACK_DATABASE_URL is 'memory'; set a SQLAlchemy URL first")
    engine = make_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    print(f"Database created at {engine.url}")
