from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import duckdb

from .config import Config


@dataclass(frozen=True)
class TableSchema:
    name: str
    ddl: str


def _resolve_db_path(
    db_path: str | os.PathLike[str] | None = None,
    config: Config | None = None,
) -> str:
    cfg = config or Config()
    candidate = db_path or os.environ.get(cfg.cache_db_env, cfg.cache_db_default)
    return str(Path(candidate).expanduser())


class DuckDb:
    """Wrapper around a DuckDB connection holding the fetch cache."""

    def __init__(
        self,
        db_path: str | os.PathLike[str] | None = None,
        *,
        config: Config | None = None,
    ):
        self._config = config or Config()
        self.db_path = _resolve_db_path(db_path, self._config)
        self._conn = None

        self.initialize_db()

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = duckdb.connect(database=self.db_path, read_only=False)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __call__(self, query: str, parameters: tuple = ()) -> duckdb.DuckDBPyConnection:
        conn = self.conn
        if not parameters:
            return conn.execute(query)
        return conn.execute(query, list(parameters))

    def initialize_db(self):
        """Create necessary tables if they don't exist."""
        schemas = [
            TableSchema(
                name="cache_entries",
                ddl="""
                CREATE TABLE IF NOT EXISTS cache_entries (
                    key TEXT PRIMARY KEY,
                    blob_value BLOB,
                    float_value DOUBLE,
                    last_updated TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
                """,
            ),
        ]
        for schema in schemas:
            self(schema.ddl)

    def _get(self, column: str, key: str):
        row = self(
            f"SELECT {column} FROM cache_entries WHERE key = ?;", (key,)
        ).fetchone()
        return None if row is None else row[0]

    def _put(self, key: str, blob: bytes | None, number: float | None) -> None:
        query = """
            INSERT INTO cache_entries (key, blob_value, float_value, last_updated)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (key) DO UPDATE
            SET blob_value = EXCLUDED.blob_value,
                float_value = EXCLUDED.float_value,
                last_updated = EXCLUDED.last_updated;
            """
        self(query, (key, blob, number, datetime.now()))

    def get_bytes(self, key: str) -> bytes | None:
        value = self._get("blob_value", key)
        if value is None:
            return None
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)

    def put_bytes(self, key: str, value: bytes) -> None:
        self._put(key, bytes(value), None)

    def get_float(self, key: str) -> float | None:
        value = self._get("float_value", key)
        return None if value is None else float(value)

    def put_float(self, key: str, value: float) -> None:
        self._put(key, None, float(value))
