from __future__ import annotations

from dataclasses import astuple, dataclass, fields
from typing import Any, List, Optional, Tuple

from .. import metrics
from ..logging import get_logger
from ..models import Org, Report, Space
from ..util.time import report_date_today

LOG = get_logger(__name__)

EXPORT_HEADERS = (
    "Env",
    "ReportDate",
    "OrgName",
    "SpaceName",
    "SpaceMemoryUsed",
    "OrgMemoryQuota",
    "AppsDeployed",
    "AppsRunning",
    "AppInstancesConfigured",
    "AppInstancesRunning",
    "TotalServiceInstancesDeployed",
    "RabbitMQServiceInstanceDeployed",
    "RedisServiceInstanceDeployed",
    "MySQLServiceInstanceDeployed",
    "SpringCloudServiceInstanceDeployed",
    "SpringCloudDataFlowServerInstanceDeployed",
)


@dataclass(frozen=True)
class ExportRow:
    # Field order matches EXPORT_HEADERS and the store's column order.
    env: str
    report_date: str
    org_name: str
    space_name: str
    space_memory_used: int
    org_memory_quota: int
    apps_deployed: int
    apps_running: int
    app_instances_configured: int
    app_instances_running: int
    total_service_instances_deployed: int
    rabbitmq_service_instance_deployed: int
    redis_service_instance_deployed: int
    mysql_service_instance_deployed: int
    spring_cloud_service_instance_deployed: int
    spring_cloud_dataflow_server_instance_deployed: int

    def as_tuple(self) -> Tuple[Any, ...]:
        return astuple(self)

    def as_list(self) -> List[str]:
        return [str(v) for v in self.as_tuple()]

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _space_row(env: str, report_date: str, org: Org, space: Space) -> ExportRow:
    scs = metrics.scs_count(space)
    scdf = metrics.scdf_count(space)
    return ExportRow(
        env=env,
        report_date=report_date,
        org_name=org.name,
        space_name=space.name,
        space_memory_used=metrics.consumed_memory(space) + metrics.virtual_memory(space),
        org_memory_quota=org.memory_quota,
        apps_deployed=len(space.apps),
        apps_running=metrics.running_apps_count(space),
        # configured instances stay plain; running instances include the virtual ones
        app_instances_configured=metrics.instances_count(space),
        app_instances_running=metrics.running_instances_count(space) + metrics.virtual_instances(space),
        total_service_instances_deployed=metrics.services_count(space) - (scs + scdf),
        rabbitmq_service_instance_deployed=metrics.service_instances_count(space, metrics.RABBIT_LABEL),
        redis_service_instance_deployed=metrics.service_instances_count(space, metrics.REDIS_LABEL),
        mysql_service_instance_deployed=metrics.service_instances_count(space, metrics.MYSQL_LABEL),
        spring_cloud_service_instance_deployed=scs,
        spring_cloud_dataflow_server_instance_deployed=metrics.SCDF_INSTANCES_PER_BINDING * scdf,
    )


def build_rows(report: Report, env: str, *, report_date: Optional[str] = None) -> List[ExportRow]:
    """
    One row per (org, space), in inventory order. Orgs hosting the bundled
    products are skipped; their usage is already attributed to consumers.
    """
    date_str = report_date or report_date_today()
    rows: List[ExportRow] = []
    for org in report.orgs:
        if org.name in metrics.EXCLUDED_ORGS:
            LOG.debug("Skipping bundled product org", extra={"org": org.name})
            continue
        for space in org.spaces:
            rows.append(_space_row(env, date_str, org, space))
    return rows
