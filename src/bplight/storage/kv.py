from __future__ import annotations

import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Optional, Protocol

import psycopg
import structlog

from bplight.config import settings

log = structlog.get_logger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore:
    """All keys in one JSON object file, rewritten atomically on each set."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            log.warning("store_file_unreadable", path=str(self.path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        os.replace(tmp, self.path)


class PostgresStore:
    def __init__(self, dsn: str):
        self.dsn = dsn
        self._ensure_table()

    @contextmanager
    def get_conn(self):
        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                yield conn, cur

    def _ensure_table(self) -> None:
        with self.get_conn() as (conn, cur):
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )
            conn.commit()

    def get(self, key: str) -> Optional[str]:
        with self.get_conn() as (_, cur):
            cur.execute("SELECT value FROM kv_store WHERE key = %s;", (key,))
            row = cur.fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self.get_conn() as (conn, cur):
            cur.execute(
                """
                INSERT INTO kv_store (key, value)
                VALUES (%s, %s)
                ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value;
                """,
                (key, value),
            )
            conn.commit()


def open_store() -> KeyValueStore:
    if settings.DATABASE_URL:
        return PostgresStore(settings.DATABASE_URL)
    return JsonFileStore(settings.BP_STORE_PATH)
