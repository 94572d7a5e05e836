from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional

from ..logging import get_logger
from ..models import Report
from .rows import EXPORT_HEADERS, ExportRow, build_rows
from .store import ReportStore

LOG = get_logger(__name__)

CSV_DELIMITER = ", "


def render_csv(rows: Iterable[ExportRow]) -> str:
    """
    Render the header and rows as comma-and-space delimited text, one line per row.
    Values are not quoted.
    """
    lines: List[str] = [CSV_DELIMITER.join(EXPORT_HEADERS)]
    lines.extend(CSV_DELIMITER.join(row.as_list()) for row in rows)
    return "\n".join(lines) + "\n"


def write_csv(text: str, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def export_report(
    report: Report,
    env: str,
    store: ReportStore,
    *,
    report_date: Optional[str] = None,
) -> str:
    """
    Build the export rows, persist them in one store transaction and return
    the rendered CSV text. Nothing is rendered if the store write fails.
    """
    rows = build_rows(report, env, report_date=report_date)
    inserted = store.save_rows(rows)
    LOG.info(
        "Export rows persisted",
        extra={"step": "export", "phase": "store", "rows": len(rows), "inserted": inserted, "env": env},
    )
    return render_csv(rows)
