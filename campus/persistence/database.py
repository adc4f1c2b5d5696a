"""
Database management and connection handling.
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from ..core.exceptions import PersistenceError, ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

MEMORY_DATABASE = ":memory:"

ENTITIES_SCHEMA = """
    CREATE TABLE IF NOT EXISTS entities (
        id TEXT NOT NULL,
        type TEXT NOT NULL,
        data TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        version INTEGER DEFAULT 1,
        status TEXT DEFAULT 'active',
        PRIMARY KEY (id, type)
    )
"""


class DatabaseManager(ABC):
    """Abstract base class for database management."""

    @abstractmethod
    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        pass

    @abstractmethod
    def execute_update(self, query: str, params: Optional[tuple] = None) -> int:
        """Execute an update query and return affected rows."""
        pass

    @abstractmethod
    def execute_transaction(self, queries: List[tuple]) -> bool:
        """Execute multiple queries in a transaction."""
        pass

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release any open connection."""
        pass


class SQLiteDatabase(DatabaseManager):
    """SQLite database implementation.

    File databases open a connection per call. An in-memory database keeps
    one shared connection, since each new connection would see an empty
    database.
    """

    def __init__(self, database_path: str = MEMORY_DATABASE):
        self._database_path = database_path
        self._lock = threading.RLock()
        self._shared_connection: Optional[sqlite3.Connection] = None
        self._closed = False
        if database_path == MEMORY_DATABASE:
            self._shared_connection = self._connect()
        self._initialize_database()

    @property
    def database_path(self) -> str:
        return self._database_path

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._database_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _initialize_database(self) -> None:
        """Initialize the database with basic schema."""
        with self._get_connection() as conn:
            conn.execute(ENTITIES_SCHEMA)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_entities_type ON entities (type)")
            conn.commit()
        logger.info("SQLite database ready at %s", self._database_path)

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper cleanup."""
        with self._lock:
            if self._closed:
                raise PersistenceError(f"Database {self._database_path} is closed")
            conn = self._shared_connection or self._connect()
            try:
                yield conn
            except sqlite3.Error as e:
                conn.rollback()
                raise PersistenceError(f"Database error: {str(e)}") from e
            finally:
                if conn is not self._shared_connection:
                    conn.close()

    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        with self._get_connection() as conn:
            cursor = conn.execute(query, params or ())
            return [dict(row) for row in cursor.fetchall()]

    def execute_update(self, query: str, params: Optional[tuple] = None) -> int:
        """Execute an update query and return affected rows."""
        with self._get_connection() as conn:
            cursor = conn.execute(query, params or ())
            conn.commit()
            return cursor.rowcount

    def execute_transaction(self, queries: List[tuple]) -> bool:
        """Execute multiple queries in a transaction."""
        with self._get_connection() as conn:
            for query, params in queries:
                conn.execute(query, params or ())
            conn.commit()
            return True

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        query = "SELECT name FROM sqlite_master WHERE type='table' AND name=?"
        return len(self.execute_query(query, (table_name,))) > 0

    def close(self) -> None:
        """Close the database. Queries made afterwards raise PersistenceError."""
        with self._lock:
            self._closed = True
            if self._shared_connection is not None:
                self._shared_connection.close()
                self._shared_connection = None


class DatabaseFactory:
    """Factory for creating database instances."""

    @staticmethod
    def create_database(db_type: str = "sqlite", **kwargs) -> DatabaseManager:
        """Create a database instance of the specified type."""
        if db_type == "sqlite":
            return SQLiteDatabase(kwargs.get("database_path", MEMORY_DATABASE))
        if db_type == "memory":
            return SQLiteDatabase(MEMORY_DATABASE)
        raise ConfigurationError(f"Unsupported database type: {db_type}")
