"""SQLite cache storage implementation."""

import sqlite3
from datetime import datetime
from pathlib import Path

from .models import CacheEntry

_COLUMNS = "key, text, language, voice, encoding, pitch, audio_path, size, timestamp"


class CacheStorage:
    """SQLite-based cache storage for synthesis metadata.

    Stores cache entry metadata in SQLite database while audio files
    are stored separately on the filesystem.
    """

    def __init__(self, cache_dir: Path):
        """Initialize cache storage with database in given directory.

        Args:
            cache_dir: Directory containing cache database
        """
        self.cache_dir = cache_dir

        # Create cache directory if it doesn't exist
        cache_dir.mkdir(parents=True, exist_ok=True)

        self.db_path = cache_dir / "cache.db"

        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection with WAL mode for concurrency."""
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=30.0,  # 30 second timeout if locked
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=30000")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    def _init_db(self) -> None:
        """Initialize database schema with tables and indexes."""
        conn = self._get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cache (
                    key TEXT PRIMARY KEY,
                    text TEXT NOT NULL,
                    language TEXT NOT NULL,
                    voice TEXT NOT NULL,
                    encoding TEXT NOT NULL,
                    pitch REAL NOT NULL,
                    audio_path TEXT NOT NULL,
                    size INTEGER NOT NULL,
                    timestamp TEXT NOT NULL
                )
            """)

            # Oldest-first scans for eviction
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_timestamp
                ON cache(timestamp)
            """)

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> CacheEntry:
        return CacheEntry(
            key=row["key"],
            text=row["text"],
            language=row["language"],
            voice=row["voice"],
            encoding=row["encoding"],
            pitch=row["pitch"],
            audio_path=Path(row["audio_path"]),
            size=row["size"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )

    def save(self, entry: CacheEntry) -> bool:
        """Save cache entry to database.

        Entries are write-once: saving a key that already exists leaves the
        stored row untouched.

        Args:
            entry: Cache entry to save

        Returns:
            True if a new row was inserted, False if the key already existed
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                f"""
                INSERT OR IGNORE INTO cache ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    entry.key,
                    entry.text,
                    entry.language,
                    entry.voice,
                    entry.encoding,
                    entry.pitch,
                    str(entry.audio_path),
                    entry.size,
                    entry.timestamp.isoformat(),
                ),
            )
            conn.commit()
            return cursor.rowcount == 1
        finally:
            conn.close()

    def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key.

        Args:
            key: Content address to look up

        Returns:
            Cache entry if found, None otherwise
        """
        conn = self._get_connection()
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM cache WHERE key = ?", (key,)
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return self._row_to_entry(row)

    def delete(self, key: str) -> None:
        """Remove the row for key (the audio file is the caller's concern)."""
        conn = self._get_connection()
        try:
            conn.execute("DELETE FROM cache WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    def oldest(self, limit: int) -> list[CacheEntry]:
        """Return up to limit entries, oldest first."""
        if limit <= 0:
            return []
        conn = self._get_connection()
        try:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM cache ORDER BY timestamp ASC LIMIT ?",
                (limit,),
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_entry(row) for row in rows]

    def all_entries(self) -> list[CacheEntry]:
        conn = self._get_connection()
        try:
            rows = conn.execute(f"SELECT {_COLUMNS} FROM cache").fetchall()
        finally:
            conn.close()
        return [self._row_to_entry(row) for row in rows]

    def totals(self) -> tuple[int, int]:
        """Return (entry count, total audio bytes)."""
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT COUNT(*) AS count, COALESCE(SUM(size), 0) AS total FROM cache"
            ).fetchone()
        finally:
            conn.close()
        return int(row["count"]), int(row["total"])
