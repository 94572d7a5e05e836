from __future__ import annotations

from typing import List

from ..metrics import SCS_ORG
from ..models import OrgStats, Report, SpaceStats
from ..stats import org_stats, space_stats
from ..util.errors import ZeroQuotaError


def _quota_pct(org: OrgStats, space: SpaceStats) -> int:
    if org.memory_quota == 0:
        raise ZeroQuotaError(org.name, space.name)
    return 100 * space.consumed_memory // org.memory_quota


def _space_lines(org: OrgStats, space: SpaceStats) -> List[str]:
    return [
        f"\tSpace {space.name} is consuming {space.consumed_memory} MB memory "
        f"({_quota_pct(org, space)}%) of org quota.",
        f"\t\t{space.deployed_apps_count} apps: {space.running_apps_count} running "
        f"{space.stopped_apps_count} stopped",
        f"\t\t{space.deployed_app_instances_count} app instances: "
        f"{space.running_app_instances_count} running, {space.stopped_app_instances_count} stopped",
        f"\t\t{space.services_count} service instances of type Service Suite",
    ]


def render_text(report: Report, *, max_workers: int = 1) -> str:
    """
    Render the human-readable usage summary: one paragraph per org with its
    spaces nested below, then a closing line with totals across all orgs.
    """
    lines: List[str] = []
    total_apps = 0
    total_instances = 0
    total_running_apps = 0
    total_running_instances = 0
    total_service_instances = 0

    for org in org_stats(report.orgs, max_workers=max_workers):
        lines.append(f"Org {org.name} is consuming {org.memory_usage} MB of {org.memory_quota} MB.")
        for space in space_stats(org.spaces, org.name == SCS_ORG, max_workers=max_workers):
            lines.extend(_space_lines(org, space))
        total_apps += org.deployed_apps_count
        total_instances += org.deployed_app_instances_count
        total_running_apps += org.running_apps_count
        total_running_instances += org.running_app_instances_count
        total_service_instances += org.services_count

    lines.append(
        f"You have deployed {total_apps} apps across {len(report.orgs)} org(s), "
        f"with a total of {total_instances} app instances configured. "
        f"You are currently running {total_running_apps} apps with {total_running_instances} app instances "
        f"and using {total_service_instances} service instances of type Service Suite."
    )
    return "\n".join(lines) + "\n"
