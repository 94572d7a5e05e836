from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .export.store import DEFAULT_DB_PATH
from .util.time import parse_report_date

# --------
# Defaults
# --------
DEFAULT_ENV = "default"
DEFAULT_FORMAT = "text"
DEFAULT_WORKERS = 1
FORMATS = {"text", "table"}
COMMANDS = ("summary", "export", "report")
ALLOWED_CONFIG_KEYS = {
    "inventory",
    "env",
    "format",
    "outdir",
    "db_path",
    "parquet",
    "workers",
    "report_date",
    "json_logs",
    "log_level",
}
BOOL_CONFIG_KEYS = {"parquet", "json_logs"}
INT_CONFIG_KEYS = {"workers"}
PATH_CONFIG_KEYS = {"inventory", "outdir", "db_path"}
STR_CONFIG_KEYS = {"env", "format", "report_date", "log_level"}


@dataclass(frozen=True)
class RunConfig:
    inventory: Optional[Path] = None
    env: str = DEFAULT_ENV
    format: str = DEFAULT_FORMAT  # text|table
    outdir: Optional[Path] = None
    db_path: Path = DEFAULT_DB_PATH
    parquet: bool = False
    workers: int = DEFAULT_WORKERS
    report_date: Optional[str] = None  # YYYY-MM-DD, defaults to today at export time
    json_logs: bool = False
    log_level: str = "INFO"


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (ValueError, yaml.YAMLError) as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip().lower()
    if not raw:
        return None
    return raw in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Config field '{key}' must be a boolean")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be an integer")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS:
            continue
        if value is None:
            normalized[key] = None
            continue
        if key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in INT_CONFIG_KEYS:
            normalized[key] = _coerce_int(key, value)
        elif key in PATH_CONFIG_KEYS:
            if isinstance(value, (str, Path)):
                normalized[key] = value
            else:
                raise ValueError(f"Config field '{key}' must be a string path")
        elif key in STR_CONFIG_KEYS:
            # YAML reads an unquoted 2026-01-31 as a date
            if key == "report_date" and hasattr(value, "isoformat"):
                value = value.isoformat()
            if isinstance(value, str):
                normalized[key] = value
            else:
                raise ValueError(f"Config field '{key}' must be a string")
    fmt = normalized.get("format")
    if fmt is not None:
        fmt = str(fmt).lower()
        if fmt not in FORMATS:
            raise ValueError(f"Config field 'format' must be one of: {', '.join(sorted(FORMATS))}")
        normalized["format"] = fmt
    return _compact_dict(normalized)


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cf-usage-report", description="Org/space usage report")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # common flags builder
    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
        p.add_argument("--inventory", type=Path, default=None, help="Inventory snapshot (YAML/JSON)")
        p.add_argument(
            "--workers",
            type=int,
            default=None,
            help=f"Parallel stats workers (default {DEFAULT_WORKERS})",
        )
        p.add_argument(
            "--json-logs",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Enable JSON logs",
        )
        p.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")

    def add_export(p: argparse.ArgumentParser) -> None:
        p.add_argument("--env", default=None, help="Environment identifier stored with each row")
        p.add_argument("--db", dest="db_path", type=Path, default=None, help="History database path")
        p.add_argument("--outdir", type=Path, default=None, help="Directory for usagereport.csv")
        p.add_argument(
            "--parquet",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Also write usagereport.parquet (pyarrow)",
        )
        p.add_argument("--report-date", default=None, help="Report date YYYY-MM-DD (default: today)")

    def add_format(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--format",
            default=None,
            choices=sorted(FORMATS),
            help="text prints the summary; table also prints an org table",
        )

    p_summary = subparsers.add_parser("summary", help="Print the usage summary")
    add_common(p_summary)
    add_format(p_summary)

    p_export = subparsers.add_parser("export", help="Persist and print the per-space CSV export")
    add_common(p_export)
    add_export(p_export)

    p_report = subparsers.add_parser("report", help="Summary followed by the CSV export")
    add_common(p_report)
    add_format(p_report)
    add_export(p_report)

    return parser


def load_run_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[list[str]] = None,
) -> Tuple[str, RunConfig]:
    """
    Build RunConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.

    Returns:
      (command, RunConfig) where command is one of: summary|export|report
    """
    ns = args if args is not None else build_parser().parse_args(argv)
    command = ns.command

    # defaults
    base: Dict[str, Any] = {
        "inventory": None,
        "env": DEFAULT_ENV,
        "format": DEFAULT_FORMAT,
        "outdir": None,
        "db_path": DEFAULT_DB_PATH,
        "parquet": False,
        "workers": DEFAULT_WORKERS,
        "report_date": None,
        "json_logs": False,
        "log_level": "INFO",
    }

    # config file
    file_cfg: Dict[str, Any] = {}
    if getattr(ns, "config", None):
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    # env
    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "inventory": _env_str("USAGE_REPORT_INVENTORY"),
            "env": _env_str("USAGE_REPORT_ENV"),
            "format": _env_str("USAGE_REPORT_FORMAT"),
            "outdir": _env_str("USAGE_REPORT_OUTDIR"),
            "db_path": _env_str("USAGE_REPORT_DB"),
            "parquet": _env_bool("USAGE_REPORT_PARQUET"),
            "workers": _env_int("USAGE_REPORT_WORKERS"),
            "report_date": _env_str("USAGE_REPORT_DATE"),
            "json_logs": _env_bool("USAGE_REPORT_JSON_LOGS"),
            "log_level": _env_str("USAGE_REPORT_LOG_LEVEL"),
        }
    )

    # CLI
    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "inventory": getattr(ns, "inventory", None),
            "env": getattr(ns, "env", None),
            "format": getattr(ns, "format", None),
            "outdir": getattr(ns, "outdir", None),
            "db_path": getattr(ns, "db_path", None),
            "parquet": getattr(ns, "parquet", None),
            "workers": getattr(ns, "workers", None),
            "report_date": getattr(ns, "report_date", None),
            "json_logs": getattr(ns, "json_logs", None),
            "log_level": getattr(ns, "log_level", None),
        }
    )

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    # Normalize/construct types
    fmt = str(merged.get("format") or DEFAULT_FORMAT).lower()
    if fmt not in FORMATS:
        raise ValueError(f"Format must be one of: {', '.join(sorted(FORMATS))}")
    report_date = merged.get("report_date")
    workers = int(merged["workers"] if merged.get("workers") is not None else DEFAULT_WORKERS)
    if workers < 1:
        raise ValueError("Workers must be at least 1")

    cfg = RunConfig(
        inventory=Path(merged["inventory"]) if merged.get("inventory") else None,
        env=str(merged.get("env") or DEFAULT_ENV),
        format=fmt,
        outdir=Path(merged["outdir"]) if merged.get("outdir") else None,
        db_path=Path(merged.get("db_path") or DEFAULT_DB_PATH),
        parquet=bool(merged["parquet"]),
        workers=workers,
        report_date=parse_report_date(str(report_date)) if report_date else None,
        json_logs=bool(merged["json_logs"]),
        log_level=(merged.get("log_level") or "INFO").upper(),
    )
    return command, cfg


def dump_config(cfg: RunConfig) -> Dict[str, Any]:
    return {
        "inventory": str(cfg.inventory) if cfg.inventory else None,
        "env": cfg.env,
        "format": cfg.format,
        "outdir": str(cfg.outdir) if cfg.outdir else None,
        "db_path": str(cfg.db_path),
        "parquet": cfg.parquet,
        "workers": cfg.workers,
        "report_date": cfg.report_date,
        "json_logs": cfg.json_logs,
        "log_level": cfg.log_level,
    }
