from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Sequence

from ..logging import get_logger
from .rows import ExportRow

LOG = get_logger(__name__)

_STRING_FIELDS = {"env", "report_date", "org_name", "space_name"}


class ParquetNotAvailable(RuntimeError):
    pass


def _require_pyarrow():
    try:
        import pyarrow as pa  # type: ignore
        import pyarrow.parquet as pq  # type: ignore
    except ImportError as e:  # pragma: no cover
        raise ParquetNotAvailable(
            "pyarrow is required for Parquet export. Install with: pip install .[parquet]"
        ) from e
    return pa, pq


def _row_schema(pa) -> Any:
    return pa.schema(
        [
            pa.field(f.name, pa.string() if f.name in _STRING_FIELDS else pa.int64(), nullable=False)
            for f in fields(ExportRow)
        ]
    )


def write_parquet(rows: Sequence[ExportRow], path: Path) -> Path:
    """
    Write export rows to a Parquet file with a fixed schema, preserving row order.
    """
    pa, pq = _require_pyarrow()
    path.parent.mkdir(parents=True, exist_ok=True)
    table = pa.Table.from_pylist([row.as_dict() for row in rows], schema=_row_schema(pa))
    pq.write_table(table, path)
    LOG.debug("Parquet written", extra={"step": "export", "artifact": "parquet", "rows": len(rows)})
    return path
