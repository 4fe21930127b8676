"""Persistence for the weather lookup history.

The store is an explicit handle: build it from a database URL, ``open()`` it
at process start and ``close()`` it at shutdown. One connection is shared
behind a lock so concurrent requests are serialised at the database.
"""
from __future__ import annotations

import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional
from urllib.parse import unquote, urlparse

try:  # Optional import for MySQL support
    import pymysql
    from pymysql.cursors import DictCursor
except ImportError:  # pragma: no cover - pymysql is optional
    pymysql = None  # type: ignore
    DictCursor = None  # type: ignore


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "location_name",
    "start_date",
    "end_date",
    "avg_temp",
    "humidity",
    "wind_speed",
    "description",
)


@dataclass
class WeatherHistoryRecord:
    id: int
    location_name: str
    location_type: str
    start_date: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    end_date: Optional[str] = None
    avg_temp: Optional[float] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    description: Optional[str] = None
    created_at: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class HistoryStoreError(RuntimeError):
    """Raised for misuse of the store, e.g. queries before ``open()``."""


_SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS weather_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    location_name VARCHAR(100) NOT NULL,
    location_type VARCHAR(20) NOT NULL,
    lat REAL,
    lon REAL,
    start_date TEXT NOT NULL,
    end_date TEXT,
    avg_temp REAL,
    humidity REAL,
    wind_speed REAL,
    description TEXT,
    created_at TEXT NOT NULL
)
"""

_MYSQL_SCHEMA = """
CREATE TABLE IF NOT EXISTS weather_history (
    id INTEGER PRIMARY KEY AUTO_INCREMENT,
    location_name VARCHAR(100) NOT NULL,
    location_type VARCHAR(20) NOT NULL,
    lat DECIMAL(10, 7),
    lon DECIMAL(10, 7),
    start_date VARCHAR(10) NOT NULL,
    end_date VARCHAR(10),
    avg_temp DECIMAL(5, 2),
    humidity DECIMAL(5, 2),
    wind_speed DECIMAL(5, 2),
    description TEXT,
    created_at VARCHAR(40) NOT NULL
)
"""


def detect_driver(url: str) -> tuple[str, str]:
    parsed = urlparse(url)
    if parsed.scheme.startswith("mysql"):
        if pymysql is None:
            raise RuntimeError("PyMySQL is required for MySQL connections")
        return "mysql", "%s"
    if parsed.scheme.startswith("sqlite") or parsed.scheme == "":
        return "sqlite", "?"
    raise ValueError(f"Unsupported database scheme: {parsed.scheme}")


def create_connection(url: str, driver: str):
    parsed = urlparse(url)
    if driver == "sqlite":
        path = unquote(parsed.path or parsed.netloc or ":memory:")
        if path in ("/:memory:", ":memory:"):
            db_path = ":memory:"
        elif path.startswith("/"):
            db_path = path
        else:
            db_path = os.path.abspath(path)
        connection = sqlite3.connect(db_path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        return connection

    if driver == "mysql":
        assert pymysql is not None and DictCursor is not None
        params = {
            "host": parsed.hostname or "localhost",
            "user": parsed.username,
            "password": parsed.password,
            "database": parsed.path.lstrip("/") or None,
            "port": parsed.port or 3306,
            "cursorclass": DictCursor,
            "autocommit": False,
        }
        return pymysql.connect(**params)

    raise ValueError(f"Unsupported driver: {driver}")


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _record_from_row(row) -> WeatherHistoryRecord:
    def value(name: str) -> Any:
        item = row[name]
        if item is not None and name in ("lat", "lon", "avg_temp", "humidity", "wind_speed"):
            return float(item)
        return item

    return WeatherHistoryRecord(
        id=int(row["id"]),
        location_name=row["location_name"],
        location_type=row["location_type"],
        lat=value("lat"),
        lon=value("lon"),
        start_date=row["start_date"],
        end_date=row["end_date"],
        avg_temp=value("avg_temp"),
        humidity=value("humidity"),
        wind_speed=value("wind_speed"),
        description=row["description"],
        created_at=row["created_at"],
    )


class HistoryStore:
    """Weather history table behind a single DB-API connection."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.driver, self.placeholder = detect_driver(url)
        self._connection = None
        self._lock = threading.Lock()

    # -- lifecycle ----------------------------------------------------------
    def open(self) -> "HistoryStore":
        if self._connection is not None:
            return self
        self._connection = create_connection(self.url, self.driver)
        with self._transaction() as cursor:
            cursor.execute(_MYSQL_SCHEMA if self.driver == "mysql" else _SQLITE_SCHEMA)
        logger.info("weather_history ready (%s)", self.driver)
        return self

    def close(self) -> None:
        with self._lock:
            if self._connection is None:
                return
            self._connection.close()
            self._connection = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def __enter__(self) -> "HistoryStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- queries ------------------------------------------------------------
    def insert(self, fields: Mapping[str, Any]) -> WeatherHistoryRecord:
        columns = [
            "location_name",
            "location_type",
            "lat",
            "lon",
            "start_date",
            "end_date",
            "avg_temp",
            "humidity",
            "wind_speed",
            "description",
            "created_at",
        ]
        values = dict(fields)
        values.setdefault("created_at", utcnow_iso())
        params = tuple(values.get(column) for column in columns)
        with self._transaction() as cursor:
            cursor.execute(
                self._sql(
                    f"INSERT INTO weather_history ({', '.join(columns)}) "
                    f"VALUES ({', '.join('?' for _ in columns)})"
                ),
                params,
            )
            record_id = cursor.lastrowid
            cursor.execute(self._sql("SELECT * FROM weather_history WHERE id = ?"), (record_id,))
            return _record_from_row(cursor.fetchone())

    def list_records(self) -> List[WeatherHistoryRecord]:
        with self._transaction() as cursor:
            cursor.execute("SELECT * FROM weather_history ORDER BY created_at DESC, id DESC")
            return [_record_from_row(row) for row in cursor.fetchall()]

    def get(self, record_id: int) -> Optional[WeatherHistoryRecord]:
        with self._transaction() as cursor:
            cursor.execute(self._sql("SELECT * FROM weather_history WHERE id = ?"), (record_id,))
            row = cursor.fetchone()
        return _record_from_row(row) if row else None

    def update(self, record_id: int, changes: Mapping[str, Any]) -> Optional[WeatherHistoryRecord]:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        with self._transaction() as cursor:
            if changes:
                assignments = ", ".join(f"{name} = ?" for name in changes)
                cursor.execute(
                    self._sql(f"UPDATE weather_history SET {assignments} WHERE id = ?"),
                    tuple(changes.values()) + (record_id,),
                )
            cursor.execute(self._sql("SELECT * FROM weather_history WHERE id = ?"), (record_id,))
            row = cursor.fetchone()
        return _record_from_row(row) if row else None

    def delete(self, record_id: int) -> bool:
        with self._transaction() as cursor:
            cursor.execute(self._sql("DELETE FROM weather_history WHERE id = ?"), (record_id,))
            return cursor.rowcount > 0

    # -- helpers ------------------------------------------------------------
    def _sql(self, sql: str) -> str:
        if self.placeholder == "?":
            return sql
        return sql.replace("?", self.placeholder)

    @contextmanager
    def _transaction(self) -> Iterator[Any]:
        with self._lock:
            if self._connection is None:
                raise HistoryStoreError("history store is not open")
            cursor = self._connection.cursor()
            try:
                yield cursor
                self._connection.commit()
            except Exception:
                self._connection.rollback()
                raise
            finally:
                cursor.close()


__all__ = [
    "HistoryStore",
    "HistoryStoreError",
    "WeatherHistoryRecord",
    "UPDATABLE_FIELDS",
    "detect_driver",
]
