"""SQLite storage for recipes, tags and baskets."""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from .config import DATABASE_FILE, ensure_config_dir
from .errors import StoreError

logger = logging.getLogger(__name__)


def get_db_path() -> Path:
    """Get the path to the recipe database."""
    ensure_config_dir()
    return DATABASE_FILE


def get_connection(db_path: Path | None = None) -> sqlite3.Connection:
    """Get a database connection."""
    path = db_path or get_db_path()
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize the database schema."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS recipes (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            image_url TEXT NOT NULL DEFAULT '',
            source_url TEXT,
            tags TEXT NOT NULL DEFAULT '[]',
            ingredients TEXT NOT NULL DEFAULT '[]',
            steps TEXT NOT NULL DEFAULT '[]',
            prep_time INTEGER,
            cook_time INTEGER,
            servings INTEGER,
            translation TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS tags (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            recipe_count INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS baskets (
            id TEXT PRIMARY KEY,
            name TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS basket_recipes (
            basket_id TEXT NOT NULL,
            recipe_id TEXT NOT NULL,
            title TEXT NOT NULL,
            servings INTEGER NOT NULL CHECK (servings >= 1),
            original_servings INTEGER NOT NULL CHECK (original_servings >= 1),
            PRIMARY KEY (basket_id, recipe_id),
            FOREIGN KEY (basket_id) REFERENCES baskets(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS basket_items (
            id TEXT PRIMARY KEY,
            basket_id TEXT NOT NULL,
            name TEXT NOT NULL,
            amount REAL,
            unit TEXT,
            category TEXT NOT NULL DEFAULT 'Other',
            checked INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY (basket_id) REFERENCES baskets(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS basket_item_recipes (
            item_id TEXT NOT NULL,
            recipe_id TEXT NOT NULL,
            PRIMARY KEY (item_id, recipe_id),
            FOREIGN KEY (item_id) REFERENCES basket_items(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_recipes_created_at ON recipes(created_at);
        CREATE INDEX IF NOT EXISTS idx_basket_items_basket ON basket_items(basket_id);
        CREATE INDEX IF NOT EXISTS idx_basket_item_recipes_recipe
            ON basket_item_recipes(recipe_id);
    """)
    conn.commit()


def now_iso() -> str:
    return datetime.now().isoformat()


def parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class Database:
    """Lazily opened SQLite connection shared by the catalog and the basket store."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                self._conn = get_connection(self.db_path)
                init_db(self._conn)
            except sqlite3.Error as e:
                raise StoreError(f"Could not open database: {e}") from e
        return self._conn

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block of statements atomically.

        Commits when the block completes and rolls back on any exception,
        so a failed mutation leaves the last committed state in place.

        Raises:
            StoreError: If SQLite reports an error
        """
        conn = self.conn
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            logger.warning("Transaction rolled back: %s", e)
            raise StoreError(f"Database error: {e}") from e

    @contextmanager
    def reading(self) -> Iterator[sqlite3.Connection]:
        """Run read-only queries, translating SQLite errors to StoreError."""
        try:
            yield self.conn
        except sqlite3.Error as e:
            raise StoreError(f"Database error: {e}") from e

    def get_setting(self, key: str) -> str | None:
        with self.reading() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
