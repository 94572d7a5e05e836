from __future__ import annotations

import sqlite3

import pytest

from usage_report.export.csv import export_report
from usage_report.export.rows import build_rows
from usage_report.export.store import ReportStore
from usage_report.models import App, Org, Report, Service, Space
from usage_report.util.errors import StoreError


def _report() -> Report:
    return Report(
        orgs=(
            Org(
                name="acme",
                memory_quota=2048,
                memory_usage=1024,
                spaces=(
                    Space(name="dev", apps=(App(actual=1, desired=1, ram=256),)),
                    Space(name="test", services=(Service(label="p-mysql", service_plan="100mb"),)),
                ),
            ),
        )
    )


class _FailingConnection:
    """Delegates to a real connection but fails the Nth insert."""

    def __init__(self, conn: sqlite3.Connection, fail_on: int) -> None:
        self._conn = conn
        self._fail_on = fail_on
        self._inserts = 0

    def execute(self, sql, params=()):
        if sql.startswith("INSERT"):
            self._inserts += 1
            if self._inserts == self._fail_on:
                raise sqlite3.OperationalError("disk I/O error")
        return self._conn.execute(sql, params)

    def close(self) -> None:
        self._conn.close()


def test_save_rows_is_idempotent_per_key(tmp_path) -> None:
    db_path = tmp_path / "usagereport.db"
    rows = build_rows(_report(), "prod", report_date="2026-01-31")

    with ReportStore.open(db_path) as store:
        assert store.save_rows(rows) == 2
    with ReportStore.open(db_path) as store:
        assert store.save_rows(rows) == 0
        stored = store.fetch_rows()

    assert stored == rows


def test_new_date_or_env_creates_new_rows(tmp_path) -> None:
    with ReportStore.open(tmp_path / "usagereport.db") as store:
        store.save_rows(build_rows(_report(), "prod", report_date="2026-01-31"))
        store.save_rows(build_rows(_report(), "prod", report_date="2026-02-01"))
        store.save_rows(build_rows(_report(), "staging", report_date="2026-01-31"))

        assert len(store.fetch_rows()) == 6
        prod = store.fetch_rows(env="prod")

    assert [(r.report_date, r.space_name) for r in prod] == [
        ("2026-01-31", "dev"),
        ("2026-01-31", "test"),
        ("2026-02-01", "dev"),
        ("2026-02-01", "test"),
    ]


def test_save_rows_rolls_back_on_failure(tmp_path) -> None:
    db_path = tmp_path / "usagereport.db"
    rows = build_rows(_report(), "prod", report_date="2026-01-31")

    store = ReportStore.open(db_path)
    store._conn = _FailingConnection(store._conn, fail_on=2)  # type: ignore[assignment]
    with pytest.raises(StoreError) as excinfo:
        store.save_rows(rows)
    store.close()

    assert isinstance(excinfo.value.__cause__, sqlite3.OperationalError)
    with ReportStore.open(db_path) as store:
        assert store.fetch_rows() == []


def test_export_report_persists_and_renders(tmp_path) -> None:
    with ReportStore.open(tmp_path / "usagereport.db") as store:
        text = export_report(_report(), "prod", store, report_date="2026-01-31")
        text_again = export_report(_report(), "prod", store, report_date="2026-01-31")
        stored = store.fetch_rows()

    assert text == text_again
    assert len(text.splitlines()) == 3
    assert len(stored) == 2


def test_export_report_propagates_store_errors(tmp_path) -> None:
    store = ReportStore.open(tmp_path / "usagereport.db")
    store._conn = _FailingConnection(store._conn, fail_on=1)  # type: ignore[assignment]

    with pytest.raises(StoreError):
        export_report(_report(), "prod", store, report_date="2026-01-31")
    store.close()


def test_open_failure_raises_store_error(tmp_path) -> None:
    # a directory cannot be opened as a database file
    with pytest.raises(StoreError):
        ReportStore.open(tmp_path)


def test_closed_store_rejects_writes(tmp_path) -> None:
    store = ReportStore.open(tmp_path / "usagereport.db")
    store.close()
    store.close()

    with pytest.raises(StoreError):
        store.save_rows([])


def test_schema_has_unique_key_index(tmp_path) -> None:
    db_path = tmp_path / "usagereport.db"
    ReportStore.open(db_path).close()

    conn = sqlite3.connect(str(db_path))
    try:
        indexes = conn.execute("PRAGMA index_list(trueupreport)").fetchall()
        names = {row[1]: row[2] for row in indexes}
        columns = [row[2] for row in conn.execute("PRAGMA index_info(trueupreportidx)").fetchall()]
    finally:
        conn.close()

    assert names["trueupreportidx"] == 1
    assert columns == ["api_ep", "report_date", "org_name", "space_name"]
