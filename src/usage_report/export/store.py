from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, List, Optional, Sequence

from ..logging import get_logger
from ..util.errors import StoreError
from .rows import ExportRow

LOG = get_logger(__name__)

DEFAULT_DB_PATH = Path("usagereport.db")

TABLE_NAME = "trueupreport"
STORE_COLUMNS = (
    ("api_ep", "TEXT"),
    ("report_date", "DATE"),
    ("org_name", "TEXT"),
    ("space_name", "TEXT"),
    ("space_memory_used", "NUMERIC"),
    ("org_memory_quota", "NUMERIC"),
    ("apps_deployed", "NUMERIC"),
    ("apps_running", "NUMERIC"),
    ("app_instances_configured", "NUMERIC"),
    ("app_instances_running", "NUMERIC"),
    ("total_service_instances_deployed", "NUMERIC"),
    ("rabbitmq_service_instance_deployed", "NUMERIC"),
    ("redis_service_instance_deployed", "NUMERIC"),
    ("mysql_service_instance_deployed", "NUMERIC"),
    ("spring_cloud_service_instance_deployed", "NUMERIC"),
    ("spring_cloud_dataflow_server_instance_deployed", "NUMERIC"),
)
UNIQUE_KEY = ("api_ep", "report_date", "org_name", "space_name")

_SCHEMA_SQL = (
    f"CREATE TABLE IF NOT EXISTS {TABLE_NAME} ("
    + ", ".join(f"{name} {sql_type}" for name, sql_type in STORE_COLUMNS)
    + ")",
    f"CREATE UNIQUE INDEX IF NOT EXISTS {TABLE_NAME}idx ON {TABLE_NAME} ({', '.join(UNIQUE_KEY)})",
)
_INSERT_SQL = (
    f"INSERT OR IGNORE INTO {TABLE_NAME} ({', '.join(name for name, _ in STORE_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in STORE_COLUMNS)})"
)
_SELECT_SQL = f"SELECT {', '.join(name for name, _ in STORE_COLUMNS)} FROM {TABLE_NAME}"


class ReportStore:
    """
    Append-only history of export rows, keyed by (env, report date, org, space).

    Re-exporting the same key is ignored, so a run can be repeated on the same
    day without duplicating history. One connection per store; not shared
    across threads.
    """

    def __init__(self, db_path: Path, conn: sqlite3.Connection) -> None:
        self._db_path = db_path
        self._conn = conn
        self._closed = False

    @classmethod
    def open(cls, db_path: Path = DEFAULT_DB_PATH) -> ReportStore:
        conn: Optional[sqlite3.Connection] = None
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode; transactions are issued explicitly in save_rows.
            conn = sqlite3.connect(str(db_path), isolation_level=None)
            for stmt in _SCHEMA_SQL:
                conn.execute(stmt)
        except (sqlite3.Error, OSError) as e:
            if conn is not None:
                conn.close()
            raise StoreError(f"Failed to open report store {db_path}: {e}") from e
        LOG.debug("Report store opened", extra={"db_path": str(db_path)})
        return cls(db_path, conn)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        if self._closed:
            return
        self._conn.close()
        self._closed = True

    def __enter__(self) -> ReportStore:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def save_rows(self, rows: Sequence[ExportRow]) -> int:
        """
        Insert rows in a single transaction and return how many were new.
        Either every row is committed or none are.
        """
        if self._closed:
            raise StoreError("Report store is closed")
        inserted = 0
        try:
            self._conn.execute("BEGIN")
            for row in rows:
                cur = self._conn.execute(_INSERT_SQL, row.as_tuple())
                inserted += max(cur.rowcount, 0)
            self._conn.execute("COMMIT")
        except sqlite3.Error as e:
            try:
                self._conn.execute("ROLLBACK")
            except sqlite3.Error:
                LOG.warning("Rollback failed", extra={"db_path": str(self._db_path)})
            raise StoreError(f"Failed to save {len(rows)} rows to {self._db_path}: {e}") from e
        return inserted

    def fetch_rows(self, env: Optional[str] = None) -> List[ExportRow]:
        if self._closed:
            raise StoreError("Report store is closed")
        sql = _SELECT_SQL
        params: tuple = ()
        if env is not None:
            sql += " WHERE api_ep = ?"
            params = (env,)
        sql += " ORDER BY report_date, org_name, space_name"
        try:
            records = self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read rows from {self._db_path}: {e}") from e
        return [ExportRow(*record) for record in records]
