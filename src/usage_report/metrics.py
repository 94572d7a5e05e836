"""
Space- and org-level usage metrics.

Bundled Spring Cloud products are bound as services but run app instances on
the platform's behalf. Each "p-spring-cloud-services" binding accounts for one
virtual app instance and each "p-dataflow-servers" binding for three, at
1024 MB apiece. Space-level counters below are the plain figures; the
virtual_* helpers give the add-on that callers fold in. Label matching is a
case-sensitive substring test, so "p-mysql" counts as "mysql".
"""

from __future__ import annotations

from .models import Org, Space

SCS_LABEL = "p-spring-cloud-services"
SCDF_LABEL = "p-dataflow-servers"
RABBIT_LABEL = "rabbit"
REDIS_LABEL = "redis"
MYSQL_LABEL = "mysql"

# Orgs that host the bundled products themselves
SCS_ORG = "p-spring-cloud-services"
SCDF_ORG = "p-dataflow"
EXCLUDED_ORGS = (SCS_ORG, SCDF_ORG)

VIRTUAL_INSTANCE_MEMORY_MB = 1024
SCDF_INSTANCES_PER_BINDING = 3


def consumed_memory(space: Space) -> int:
    return sum(app.actual * app.ram for app in space.apps)


def running_apps_count(space: Space) -> int:
    return sum(1 for app in space.apps if app.actual > 0)


def instances_count(space: Space) -> int:
    return sum(app.desired for app in space.apps)


def running_instances_count(space: Space) -> int:
    return sum(app.actual for app in space.apps)


def services_count(space: Space) -> int:
    return len(space.services)


def service_instances_count(space: Space, label: str) -> int:
    return sum(1 for service in space.services if label in service.label)


def scs_count(space: Space) -> int:
    return service_instances_count(space, SCS_LABEL)


def scdf_count(space: Space) -> int:
    return service_instances_count(space, SCDF_LABEL)


def virtual_instances(space: Space) -> int:
    return scs_count(space) + SCDF_INSTANCES_PER_BINDING * scdf_count(space)


def virtual_memory(space: Space) -> int:
    return VIRTUAL_INSTANCE_MEMORY_MB * virtual_instances(space)


def bundled_services_count(space: Space) -> int:
    """Bindings that are bundled products rather than ordinary service instances."""
    return scs_count(space) + scdf_count(space)


def org_instances_count(org: Org) -> int:
    return sum(instances_count(space) + virtual_instances(space) for space in org.spaces)


def org_running_apps_count(org: Org) -> int:
    return sum(running_apps_count(space) for space in org.spaces)


def org_running_instances_count(org: Org) -> int:
    return sum(running_instances_count(space) + virtual_instances(space) for space in org.spaces)


def org_apps_count(org: Org) -> int:
    return sum(len(space.apps) for space in org.spaces)


def org_services_count(org: Org) -> int:
    return sum(services_count(space) - bundled_services_count(space) for space in org.spaces)
