from fastapi import APIRouter, Request, Response

from service_registry.constants import METRICS_ENDPOINT
from service_registry.logger_config import RegistryLogger
from service_registry.api.routes import router as registry_router

logger = RegistryLogger.get_logger(__name__)

PROMETHEUS_MEDIA_TYPE = "text/plain; version=0.0.4; charset=utf-8"

# Main API router that includes all sub-routers
api_router = APIRouter()

api_router.include_router(registry_router, tags=["Service Registry"])


def _escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\"", "\\\"").replace("\n", "\\n")


def _metric(lines: list, name: str, metric_type: str, help_text: str, value) -> None:
    lines.append(f"# HELP {name} {help_text}")
    lines.append(f"# TYPE {name} {metric_type}")
    lines.append(f"{name} {value}")


@api_router.get(METRICS_ENDPOINT)
async def get_prometheus_metrics(request: Request):
    """Prometheus metrics endpoint for monitoring the registry"""
    registry = request.app.state.registry
    reaper = request.app.state.reaper
    try:
        counts = await registry.stats()
        sweep_stats = reaper.get_stats()
        all_services = await registry.list_all()

        metrics = []
        gauges_and_counters = [
            ("service_registry_services", "gauge", "Number of registered services", counts["services"]),
            ("service_registry_instances", "gauge", "Number of registered instances", counts["instances"]),
            ("service_registry_running_instances", "gauge", "Number of RUNNING instances", counts["running"]),
            ("service_registry_down_instances", "gauge", "Number of DOWN instances", counts["down"]),
            ("service_registry_reaper_sweeps_total", "counter", "Reaper sweeps performed", sweep_stats["sweeps"]),
            ("service_registry_reaper_marked_down_total", "counter", "Instances marked DOWN by the reaper", sweep_stats["marked_down"]),
            ("service_registry_reaper_evicted_total", "counter", "Instances evicted by the reaper", sweep_stats["evicted"]),
            ("service_registry_reaper_errors_total", "counter", "Instance evaluation errors during sweeps", sweep_stats["instance_errors"]),
            ("service_registry_reaper_running", "gauge", "Whether the reaper loop is running", 1 if reaper.is_running() else 0),
        ]
        for name, metric_type, help_text, value in gauges_and_counters:
            _metric(metrics, name, metric_type, help_text, value)

        # Per identity
        for service_name, versions in all_services.items():
            for version, instances in versions.items():
                running = len([inst for inst in instances if inst.is_running])
                labels = (
                    f'service="{_escape_label_value(service_name)}",'
                    f'version="{_escape_label_value(version)}"'
                )
                metrics.append(
                    f"service_registry_identity_instances{{{labels}}} {len(instances)}"
                )
                metrics.append(
                    f"service_registry_identity_running_instances{{{labels}}} {running}"
                )

        return Response(content="\n".join(metrics) + "\n", media_type=PROMETHEUS_MEDIA_TYPE)

    except Exception as e:
        logger.error(f"Error generating Prometheus metrics: {e}")
        return Response(
            content=f"# Error generating metrics: {str(e)}\n",
            media_type=PROMETHEUS_MEDIA_TYPE,
            status_code=500,
        )
