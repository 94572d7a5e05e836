from __future__ import annotations

import logging
import sys
from time import perf_counter
from typing import Any, Dict, Optional

from .config import RunConfig, dump_config, load_run_config
from .export.csv import export_report, write_csv
from .export.parquet import write_parquet
from .export.rows import build_rows
from .export.store import ReportStore
from .logging import LogConfig, add_run_log_file, get_logger, setup_logging
from .models import Report, load_report
from .render.text import render_text
from .stats import org_stats
from .util.errors import ConfigError, as_exit_code
from .util.time import report_date_today
from .util.rich_table import render_org_stats_table

LOG = get_logger(__name__)

CSV_FILENAME = "usagereport.csv"
PARQUET_FILENAME = "usagereport.parquet"
LOG_FILENAME = "usagereport.log"


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def _log_event(
    logger: Any,
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: Optional[_StepTimers] = None,
    timer_key: Optional[str] = None,
    **extra: Any,
) -> None:
    key = timer_key or step
    duration_ms = None
    if timers is not None:
        if phase == "start":
            timers.start(key)
        elif phase in {"complete", "error"}:
            duration_ms = timers.finish(key)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    logger.log(level, message, extra=payload)


def _load_inventory(cfg: RunConfig, timers: _StepTimers) -> Report:
    if cfg.inventory is None:
        raise ConfigError("An inventory snapshot is required (--inventory or USAGE_REPORT_INVENTORY)")
    _log_event(LOG, logging.INFO, "Loading inventory", step="inventory", phase="start", timers=timers)
    report = load_report(cfg.inventory)
    _log_event(
        LOG,
        logging.INFO,
        "Inventory loaded",
        step="inventory",
        phase="complete",
        timers=timers,
        path=str(cfg.inventory),
        orgs=len(report.orgs),
    )
    return report


def _summary(cfg: RunConfig, report: Report, timers: _StepTimers) -> None:
    _log_event(LOG, logging.INFO, "Rendering summary", step="summary", phase="start", timers=timers)
    text = render_text(report, max_workers=cfg.workers)
    sys.stdout.write(text)
    render_org_stats_table(
        org_stats(report.orgs, max_workers=cfg.workers),
        enabled=cfg.format == "table",
    )
    _log_event(LOG, logging.INFO, "Summary rendered", step="summary", phase="complete", timers=timers)


def _export(cfg: RunConfig, report: Report, timers: _StepTimers) -> None:
    _log_event(
        LOG,
        logging.INFO,
        "Export started",
        step="export",
        phase="start",
        timers=timers,
        env=cfg.env,
        db_path=str(cfg.db_path),
    )
    report_date = cfg.report_date or report_date_today()
    with ReportStore.open(cfg.db_path) as store:
        text = export_report(report, cfg.env, store, report_date=report_date)
    if cfg.outdir is not None:
        write_csv(text, cfg.outdir / CSV_FILENAME)
        if cfg.parquet:
            write_parquet(build_rows(report, cfg.env, report_date=report_date), cfg.outdir / PARQUET_FILENAME)
    elif cfg.parquet:
        LOG.warning("Parquet export requires --outdir; skipped", extra={"step": "export", "phase": "skipped"})
    sys.stdout.write(text)
    _log_event(
        LOG,
        logging.INFO,
        "Export complete",
        step="export",
        phase="complete",
        timers=timers,
        outdir=str(cfg.outdir) if cfg.outdir else None,
    )


def cmd_summary(cfg: RunConfig) -> int:
    timers = _StepTimers()
    report = _load_inventory(cfg, timers)
    _summary(cfg, report, timers)
    return 0


def cmd_export(cfg: RunConfig) -> int:
    timers = _StepTimers()
    report = _load_inventory(cfg, timers)
    _export(cfg, report, timers)
    return 0


def cmd_report(cfg: RunConfig) -> int:
    timers = _StepTimers()
    report = _load_inventory(cfg, timers)
    _summary(cfg, report, timers)
    _export(cfg, report, timers)
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    try:
        command, cfg = load_run_config(argv=argv)
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))
        if cfg.outdir is not None:
            add_run_log_file(cfg.outdir / LOG_FILENAME)
        LOG.debug("Configuration resolved", extra={"command": command, "config": dump_config(cfg)})

        if command == "summary":
            code = cmd_summary(cfg)
        elif command == "export":
            code = cmd_export(cfg)
        elif command == "report":
            code = cmd_report(cfg)
        else:
            raise ConfigError(f"Unknown command: {command}")

        sys.exit(code)
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except Exception as e:
        # Map to consistent exit code and log
        setup_logging(LogConfig())  # ensure something is configured
        LOG.error("Execution failed", extra={"error": str(e), "error_type": type(e).__name__})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
