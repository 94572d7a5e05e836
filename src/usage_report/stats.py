from __future__ import annotations

from functools import partial
from typing import List, Sequence

from . import metrics
from .models import Org, OrgStats, Space, SpaceStats
from .util.concurrency import parallel_map_ordered


def _space_stats(space: Space, skip_service_instance_count: bool) -> SpaceStats:
    scs = metrics.scs_count(space)
    scdf = metrics.scdf_count(space)
    virtual = scs + metrics.SCDF_INSTANCES_PER_BINDING * scdf

    deployed_apps = len(space.apps)
    running_apps = metrics.running_apps_count(space)
    deployed_instances = metrics.instances_count(space) + virtual
    running_instances = metrics.running_instances_count(space) + virtual

    services = metrics.services_count(space) - (scs + scdf)
    if skip_service_instance_count:
        services = 0

    return SpaceStats(
        name=space.name,
        deployed_apps_count=deployed_apps,
        running_apps_count=running_apps,
        stopped_apps_count=deployed_apps - running_apps,
        deployed_app_instances_count=deployed_instances,
        running_app_instances_count=running_instances,
        stopped_app_instances_count=deployed_instances - running_instances,
        services_count=services,
        consumed_memory=metrics.consumed_memory(space) + metrics.VIRTUAL_INSTANCE_MEMORY_MB * virtual,
    )


def _org_stats(org: Org) -> OrgStats:
    deployed_apps = metrics.org_apps_count(org)
    running_apps = metrics.org_running_apps_count(org)
    deployed_instances = metrics.org_instances_count(org)
    running_instances = metrics.org_running_instances_count(org)
    return OrgStats(
        name=org.name,
        memory_quota=org.memory_quota,
        memory_usage=org.memory_usage,
        spaces=org.spaces,
        deployed_apps_count=deployed_apps,
        running_apps_count=running_apps,
        stopped_apps_count=deployed_apps - running_apps,
        deployed_app_instances_count=deployed_instances,
        running_app_instances_count=running_instances,
        stopped_app_instances_count=deployed_instances - running_instances,
        services_count=metrics.org_services_count(org),
    )


def space_stats(
    spaces: Sequence[Space],
    skip_service_instance_count: bool,
    *,
    max_workers: int = 1,
) -> List[SpaceStats]:
    """
    Derive SpaceStats for every space, in input order.

    skip_service_instance_count zeroes the service count; it is set for the org
    that hosts the bundled products so their bindings are not counted twice.
    """
    return parallel_map_ordered(
        partial(_space_stats, skip_service_instance_count=skip_service_instance_count),
        spaces,
        max_workers=max_workers,
    )


def org_stats(orgs: Sequence[Org], *, max_workers: int = 1) -> List[OrgStats]:
    """
    Derive OrgStats for every org, in input order.
    """
    return parallel_map_ordered(_org_stats, orgs, max_workers=max_workers)
