"""Key/value stores for persisted session settings.

The session reads its configuration from a store once at startup and
writes it back on every change. Stores only deal in strings; parsing and
validation belong to the session.
"""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

# Keys used for persisted configuration
STYLE_KEY = "chronolens_style"
RESOLUTION_KEY = "chronolens_resolution"
DETAIL_KEY = "chronolens_detail"


@runtime_checkable
class SettingsStore(Protocol):
    """Minimal key -> string store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> bool: ...


class InMemorySettingsStore:
    """Dictionary-backed store, used for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> bool:
        self._values[key] = str(value)
        return True

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)


class SQLiteSettingsStore:
    """Manage persisted settings using SQLite.

    One row per key; writes replace the previous value. There is no schema
    versioning: unknown or malformed values are tolerated by the reader.
    """

    def __init__(self, db_path: Path):
        """Initialize the settings database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()
        logger.info(f"Initialized settings database at {self.db_path}")

    def _initialize_db(self) -> None:
        """Create database schema if it doesn't exist."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """)
            conn.commit()

    def get(self, key: str) -> str | None:
        """Read a value.

        Returns:
            Stored string, or None if missing or the database is unreadable
        """
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT value FROM settings WHERE key = ? LIMIT 1", (key,))
                row = cursor.fetchone()
                return row[0] if row else None

        except sqlite3.Error as e:
            logger.error(f"Error reading setting {key}: {e}")
            return None

    def set(self, key: str, value: str) -> bool:
        """Write a value, replacing any previous one.

        Returns:
            True if written, False on database error
        """
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO settings (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, str(value), datetime.now().isoformat()),
                )
                conn.commit()
                logger.debug(f"Saved setting {key}={value}")
                return True

        except sqlite3.Error as e:
            logger.error(f"Error saving setting {key}: {e}")
            return False

    def all(self) -> dict[str, str]:
        """All stored settings."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT key, value FROM settings ORDER BY key")
                return {key: value for key, value in cursor.fetchall()}

        except sqlite3.Error as e:
            logger.error(f"Error reading settings: {e}")
            return {}

    def clear(self) -> None:
        """Remove every stored setting.

        This is primarily for testing purposes.
        """
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM settings")
                conn.commit()
                logger.info("Cleared all settings")

        except sqlite3.Error as e:
            logger.error(f"Error clearing settings: {e}")
