import sqlite3
from pathlib import Path

from . import config
from .errors import PromptLibError
from .models import SCHEMA_VERSION, now_iso

PROMPTS_KEY = "prompts"
BACKUP_KEY = "prompts_backup"


class MemoryBlobStore:
    """Dict-backed key/value store. Ephemeral; used by tests."""

    def __init__(self, quota_bytes: int | None = None):
        self.quota_bytes = quota_bytes
        self._data: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        if self.quota_bytes is not None:
            others = sum(len(v) for k, v in self._data.items() if k != key)
            if others + len(value) > self.quota_bytes:
                raise PromptLibError.storage_write_failed(key, "quota exceeded")
        self._data[key] = bytes(value)

    def keys(self) -> list[str]:
        return sorted(self._data)


class SQLiteBlobStore:
    def __init__(self, db_path: Path | None = None, quota_bytes: int | None = None):
        self.db_path = db_path or config.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.quota_bytes = quota_bytes
        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.row_factory = sqlite3.Row
        self.init_db()

    def init_db(self) -> None:
        try:
            self._conn.executescript("""
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS blobs (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    updated_at TEXT NOT NULL
                );
            """)
            row = self._conn.execute(
                "SELECT value FROM meta WHERE key = 'schema_version'"
            ).fetchone()
            if row is None:
                self._conn.execute(
                    "INSERT INTO meta (key, value) VALUES ('schema_version', ?)",
                    (str(SCHEMA_VERSION),),
                )
                self._conn.commit()
            else:
                self.check_schema_version(int(row["value"]))
        except sqlite3.Error as e:
            raise PromptLibError.storage(str(e)) from e

    def check_schema_version(self, version: int) -> None:
        if version != SCHEMA_VERSION:
            raise PromptLibError.schema_version(SCHEMA_VERSION, version)

    def get(self, key: str) -> bytes | None:
        try:
            row = self._conn.execute(
                "SELECT value FROM blobs WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PromptLibError.storage(str(e)) from e
        if row is None:
            return None
        return bytes(row["value"])

    def set(self, key: str, value: bytes) -> None:
        try:
            if self.quota_bytes is not None:
                row = self._conn.execute(
                    "SELECT COALESCE(SUM(LENGTH(value)), 0) AS used FROM blobs WHERE key != ?",
                    (key,),
                ).fetchone()
                if row["used"] + len(value) > self.quota_bytes:
                    raise PromptLibError.storage_write_failed(key, "quota exceeded")
            self._conn.execute(
                """INSERT INTO blobs (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                (key, sqlite3.Binary(value), now_iso()),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise PromptLibError.storage_write_failed(key, str(e)) from e

    def keys(self) -> list[str]:
        try:
            rows = self._conn.execute("SELECT key FROM blobs ORDER BY key").fetchall()
        except sqlite3.Error as e:
            raise PromptLibError.storage(str(e)) from e
        return [row["key"] for row in rows]

    def close(self) -> None:
        self._conn.close()
