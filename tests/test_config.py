from __future__ import annotations

from pathlib import Path

import pytest

from usage_report.config import DEFAULT_ENV, RunConfig, dump_config, load_run_config
from usage_report.export.store import DEFAULT_DB_PATH


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in (
        "USAGE_REPORT_INVENTORY",
        "USAGE_REPORT_ENV",
        "USAGE_REPORT_FORMAT",
        "USAGE_REPORT_OUTDIR",
        "USAGE_REPORT_DB",
        "USAGE_REPORT_PARQUET",
        "USAGE_REPORT_WORKERS",
        "USAGE_REPORT_DATE",
        "USAGE_REPORT_JSON_LOGS",
        "USAGE_REPORT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    command, cfg = load_run_config(argv=["summary"])
    assert command == "summary"
    assert isinstance(cfg, RunConfig)
    assert cfg.inventory is None
    assert cfg.env == DEFAULT_ENV
    assert cfg.format == "text"
    assert cfg.db_path == DEFAULT_DB_PATH
    assert cfg.workers == 1
    assert cfg.report_date is None
    assert cfg.parquet is False
    assert cfg.log_level == "INFO"


def test_export_flags_parsed() -> None:
    command, cfg = load_run_config(
        argv=[
            "export",
            "--inventory",
            "inv.yaml",
            "--env",
            "api.sys.example.com",
            "--db",
            "hist.db",
            "--outdir",
            "out",
            "--parquet",
            "--report-date",
            "2026-01-31",
        ]
    )
    assert command == "export"
    assert cfg.inventory == Path("inv.yaml")
    assert cfg.env == "api.sys.example.com"
    assert cfg.db_path == Path("hist.db")
    assert cfg.outdir == Path("out")
    assert cfg.parquet is True
    assert cfg.report_date == "2026-01-31"


def test_env_overrides_config_file(monkeypatch, tmp_path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("env: from-config\nworkers: 3\n", encoding="utf-8")
    monkeypatch.setenv("USAGE_REPORT_ENV", "from-env")

    _, cfg = load_run_config(argv=["export", "--config", str(cfg_path)])
    assert cfg.env == "from-env"
    assert cfg.workers == 3


def test_cli_overrides_env_and_config(monkeypatch, tmp_path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("env: from-config\nworkers: 3\nparquet: true\n", encoding="utf-8")
    monkeypatch.setenv("USAGE_REPORT_ENV", "from-env")
    monkeypatch.setenv("USAGE_REPORT_WORKERS", "5")

    _, cfg = load_run_config(
        argv=["report", "--config", str(cfg_path), "--env", "from-cli", "--workers", "7", "--no-parquet"]
    )
    assert cfg.env == "from-cli"
    assert cfg.workers == 7
    assert cfg.parquet is False


def test_env_boolean_overrides_config_boolean(monkeypatch, tmp_path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("parquet: true\n", encoding="utf-8")
    monkeypatch.setenv("USAGE_REPORT_PARQUET", "0")

    _, cfg = load_run_config(argv=["export", "--config", str(cfg_path)])
    assert cfg.parquet is False


def test_json_config_file(tmp_path) -> None:
    cfg_path = tmp_path / "config.json"
    cfg_path.write_text('{"inventory": "snap.json", "format": "TABLE"}', encoding="utf-8")

    _, cfg = load_run_config(argv=["summary", "--config", str(cfg_path)])
    assert cfg.inventory == Path("snap.json")
    assert cfg.format == "table"


def test_yaml_date_in_config_file(tmp_path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("report_date: 2026-01-31\n", encoding="utf-8")

    _, cfg = load_run_config(argv=["export", "--config", str(cfg_path)])
    assert cfg.report_date == "2026-01-31"


def test_unknown_config_keys_warn(tmp_path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("env: from-config\nunknown_key: value\n", encoding="utf-8")

    with pytest.warns(UserWarning):
        _, cfg = load_run_config(argv=["export", "--config", str(cfg_path)])
    assert cfg.env == "from-config"


@pytest.mark.parametrize(
    "content",
    [
        "workers: not-a-number\n",
        "parquet: maybe\n",
        "format: csv\n",
        "env: [a, b]\n",
        "report_date: 31/01/2026\n",
        "workers: 0\n",
    ],
)
def test_invalid_config_values_raise(tmp_path, content) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError):
        load_run_config(argv=["export", "--config", str(cfg_path)])


def test_missing_config_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_run_config(argv=["summary", "--config", str(tmp_path / "nope.yaml")])


def test_dump_config_is_json_safe() -> None:
    _, cfg = load_run_config(argv=["export", "--inventory", "inv.yaml", "--outdir", "out"])

    dumped = dump_config(cfg)
    assert dumped["inventory"] == "inv.yaml"
    assert dumped["outdir"] == "out"
    assert dumped["db_path"] == str(DEFAULT_DB_PATH)
    assert dumped["report_date"] is None
