from __future__ import annotations

from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

from ..models import OrgStats


def _quota_share(org: OrgStats) -> str:
    if org.memory_quota <= 0:
        return "n/a"
    return f"{100 * org.memory_usage // org.memory_quota}%"


def render_org_stats_table(
    org_stats: Sequence[OrgStats],
    *,
    enabled: bool,
    console: Optional[Console] = None,
) -> None:
    if not enabled:
        return
    table = Table(title="Org Usage", show_header=True, header_style="bold")
    table.add_column("Org", style="cyan")
    table.add_column("Memory (MB)", justify="right")
    table.add_column("Quota (MB)", justify="right")
    table.add_column("Used", justify="right")
    table.add_column("Apps", justify="right")
    table.add_column("Running", justify="right")
    table.add_column("Instances", justify="right")
    table.add_column("Running Inst.", justify="right")
    table.add_column("Services", justify="right")
    for org in org_stats:
        table.add_row(
            org.name,
            str(org.memory_usage),
            str(org.memory_quota),
            _quota_share(org),
            str(org.deployed_apps_count),
            str(org.running_apps_count),
            str(org.deployed_app_instances_count),
            str(org.running_app_instances_count),
            str(org.services_count),
        )
    (console or Console()).print(table)
