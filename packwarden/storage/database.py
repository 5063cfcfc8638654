"""
PackWarden Database Manager

Handles database connections, initialization, and session management.
"""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base
from ..config import get_settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Manages the record store engine and sessions.
    """
    
    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        """
        Initialize database manager.
        
        Args:
            url: SQLAlchemy database URL. If None, uses config.
            echo: Log SQL statements. If None, uses config.
        """
        if url is None or echo is None:
            settings = get_settings()
            url = url or settings.database_url()
            echo = settings.database.echo if echo is None else echo
        
        self.url = url
        self._is_sqlite = url.startswith("sqlite")
        
        engine_args = {"echo": echo}
        if self._is_sqlite:
            engine_args["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every session sees an empty database
                engine_args["poolclass"] = StaticPool
            else:
                self._ensure_directory()
        
        self.engine = create_engine(url, **engine_args)
        
        self.session_factory = sessionmaker(
            self.engine,
            expire_on_commit=False,
        )
        
        if self._is_sqlite:
            @event.listens_for(self.engine, "connect")
            def set_sqlite_pragma(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
                cursor.close()
    
    def _ensure_directory(self):
        """Ensure database directory exists."""
        database = make_url(self.url).database
        if database:
            Path(database).parent.mkdir(parents=True, exist_ok=True)
    
    def init_db(self):
        """Initialize database tables."""
        Base.metadata.create_all(self.engine)
        logger.info(f"Record store initialized at {self.url}")
    
    def close(self):
        """Close database connections."""
        self.engine.dispose()
