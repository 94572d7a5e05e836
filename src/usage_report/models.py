from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Tuple

import yaml

from .util.errors import InventoryError


def _as_int(data: Mapping[str, Any], key: str, where: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool):
        raise InventoryError(f"{where}: field '{key}' must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise InventoryError(f"{where}: field '{key}' must be an integer")


def _as_list(data: Mapping[str, Any], key: str, where: str) -> Iterable[Mapping[str, Any]]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise InventoryError(f"{where}: field '{key}' must be a list of objects")
    return value


@dataclass(frozen=True)
class App:
    actual: int = 0
    desired: int = 0
    ram: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], where: str = "app") -> App:
        return cls(
            actual=_as_int(data, "actual", where),
            desired=_as_int(data, "desired", where),
            ram=_as_int(data, "ram", where),
        )


@dataclass(frozen=True)
class Service:
    label: str = ""
    service_plan: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Service:
        return cls(
            label=str(data.get("label") or ""),
            service_plan=str(data.get("service_plan") or ""),
        )


@dataclass(frozen=True)
class Space:
    name: str
    apps: Tuple[App, ...] = ()
    services: Tuple[Service, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], where: str = "space") -> Space:
        name = str(data.get("name") or "")
        where = f"{where} {name!r}"
        return cls(
            name=name,
            apps=tuple(App.from_dict(a, f"{where} app[{i}]") for i, a in enumerate(_as_list(data, "apps", where))),
            services=tuple(Service.from_dict(s) for s in _as_list(data, "services", where)),
        )


@dataclass(frozen=True)
class Org:
    name: str
    memory_quota: int = 0
    memory_usage: int = 0
    spaces: Tuple[Space, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Org:
        name = str(data.get("name") or "")
        where = f"org {name!r}"
        return cls(
            name=name,
            memory_quota=_as_int(data, "memory_quota", where),
            memory_usage=_as_int(data, "memory_usage", where),
            spaces=tuple(Space.from_dict(s, f"{where} space") for s in _as_list(data, "spaces", where)),
        )


@dataclass(frozen=True)
class Report:
    orgs: Tuple[Org, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Report:
        if not isinstance(data, Mapping):
            raise InventoryError("Top-level inventory must be an object")
        return cls(orgs=tuple(Org.from_dict(o) for o in _as_list(data, "orgs", "inventory")))


@dataclass(frozen=True)
class SpaceStats:
    name: str
    deployed_apps_count: int
    running_apps_count: int
    stopped_apps_count: int
    deployed_app_instances_count: int
    running_app_instances_count: int
    stopped_app_instances_count: int
    services_count: int
    consumed_memory: int


@dataclass(frozen=True)
class OrgStats:
    name: str
    memory_quota: int
    memory_usage: int
    spaces: Tuple[Space, ...] = field(repr=False)
    deployed_apps_count: int = 0
    running_apps_count: int = 0
    stopped_apps_count: int = 0
    deployed_app_instances_count: int = 0
    running_app_instances_count: int = 0
    stopped_app_instances_count: int = 0
    services_count: int = 0


def _parse_inventory_text(path: Path, text: str) -> Dict[str, Any]:
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            # YAML is a superset of JSON for the documents we read
            data = yaml.safe_load(text) or {}
    except (ValueError, yaml.YAMLError) as e:
        raise InventoryError(f"Failed to parse inventory file {path}: {e}") from e
    if not isinstance(data, dict):
        raise InventoryError("Top-level inventory must be an object")
    return data


def load_report(path: Path) -> Report:
    """
    Load an inventory snapshot (JSON or YAML) into a Report.
    """
    if not path.exists():
        raise InventoryError(f"Inventory file not found: {path}")
    return Report.from_dict(_parse_inventory_text(path, path.read_text(encoding="utf-8")))
