from __future__ import annotations

import json
from dataclasses import FrozenInstanceError

import pytest

from usage_report.models import App, Org, Report, Service, Space, load_report
from usage_report.util.errors import InventoryError

INVENTORY_YAML = """\
orgs:
  - name: acme
    memory_quota: 1000
    memory_usage: 500
    spaces:
      - name: dev
        apps:
          - {actual: 1, desired: 2, ram: 512}
        services:
          - {label: p-mysql, service_plan: 100mb}
      - name: empty
  - name: other
"""


def test_report_from_dict_builds_nested_model() -> None:
    report = Report.from_dict(
        {
            "orgs": [
                {
                    "name": "acme",
                    "memory_quota": 1000,
                    "memory_usage": "500",
                    "spaces": [
                        {
                            "name": "dev",
                            "apps": [{"actual": 1, "desired": 2, "ram": 512}],
                            "services": [{"label": "p-mysql", "service_plan": "100mb"}],
                        }
                    ],
                }
            ]
        }
    )

    assert report == Report(
        orgs=(
            Org(
                name="acme",
                memory_quota=1000,
                memory_usage=500,
                spaces=(
                    Space(
                        name="dev",
                        apps=(App(actual=1, desired=2, ram=512),),
                        services=(Service(label="p-mysql", service_plan="100mb"),),
                    ),
                ),
            ),
        )
    )


def test_missing_fields_default_to_empty_and_zero() -> None:
    report = Report.from_dict({"orgs": [{"name": "bare", "spaces": [{"name": "s"}]}]})

    org = report.orgs[0]
    assert org.memory_quota == 0
    assert org.memory_usage == 0
    assert org.spaces[0].apps == ()
    assert org.spaces[0].services == ()


def test_models_are_immutable() -> None:
    app = App(actual=1, desired=1, ram=64)
    with pytest.raises(FrozenInstanceError):
        app.actual = 2  # type: ignore[misc]


@pytest.mark.parametrize(
    "data",
    [
        {"orgs": [{"name": "x", "memory_quota": "lots"}]},
        {"orgs": [{"name": "x", "memory_quota": True}]},
        {"orgs": [{"name": "x", "spaces": [{"name": "s", "apps": [{"ram": 1.5}]}]}]},
        {"orgs": "acme"},
        {"orgs": [{"name": "x", "spaces": ["dev"]}]},
    ],
)
def test_invalid_inventory_raises(data) -> None:
    with pytest.raises(InventoryError):
        Report.from_dict(data)


def test_load_report_yaml(tmp_path) -> None:
    path = tmp_path / "inventory.yaml"
    path.write_text(INVENTORY_YAML, encoding="utf-8")

    report = load_report(path)

    assert [o.name for o in report.orgs] == ["acme", "other"]
    assert [s.name for s in report.orgs[0].spaces] == ["dev", "empty"]
    assert report.orgs[0].spaces[0].services[0].service_plan == "100mb"


def test_load_report_json(tmp_path) -> None:
    path = tmp_path / "inventory.json"
    path.write_text(json.dumps({"orgs": [{"name": "acme", "memory_quota": 10}]}), encoding="utf-8")

    assert load_report(path).orgs[0].memory_quota == 10


def test_load_report_missing_file(tmp_path) -> None:
    with pytest.raises(InventoryError):
        load_report(tmp_path / "missing.yaml")


def test_load_report_malformed(tmp_path) -> None:
    bad_json = tmp_path / "inventory.json"
    bad_json.write_text("{not json", encoding="utf-8")
    not_object = tmp_path / "inventory.yaml"
    not_object.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(InventoryError):
        load_report(bad_json)
    with pytest.raises(InventoryError):
        load_report(not_object)
