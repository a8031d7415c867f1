"""Prometheus metrics collector for SimAction."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from prometheus_client.core import CollectorRegistry, CounterMetricFamily, GaugeMetricFamily
from prometheus_client.registry import Collector

if TYPE_CHECKING:
    from prometheus_client.core import Metric

from SimAction.logger import logger
from SimAction.version import APP_VERSION


class SimActionMetricsCollector(Collector):
    """
    Custom Prometheus collector for SimAction metrics.

    Collects on demand from the current singletons, so scraped values are
    never stale and label cardinality stays bounded by the device fleet.
    """

    def collect(self) -> list[Metric]:
        """Called by Prometheus client on each scrape."""
        metrics = []

        try:
            metrics.extend(self._collect_device_metrics())
            metrics.extend(self._collect_dispatch_metrics())
            metrics.append(self._collect_build_info())
        except Exception as e:
            logger.error(f"Error collecting Prometheus metrics: {e}")

        return metrics

    def _collect_device_metrics(self) -> list[Metric]:
        from SimAction.device_manager import DeviceManager
        from SimAction.models import DeviceSource, DeviceState

        manager = DeviceManager.get_instance()
        snapshot = manager.device_set

        devices_gauge = GaugeMetricFamily(
            "simaction_devices_total",
            "Devices in the current snapshot by source and state",
            labels=["source", "state"],
        )
        for source in DeviceSource:
            for state in DeviceState:
                count = sum(1 for d in snapshot if d.source == source and d.state == state)
                devices_gauge.add_metric([source.value, state.value], count)

        log_gauge = GaugeMetricFamily(
            "simaction_audit_log_entries",
            "Entries currently held by the audit log",
        )
        log_gauge.add_metric([], len(manager.audit_log))

        refresh_gauge = GaugeMetricFamily(
            "simaction_last_refresh_ok",
            "1 if the last refresh succeeded, 0 if it failed or never ran",
        )
        last = manager.last_refresh
        refresh_gauge.add_metric([], 1 if last is not None and last.ok else 0)

        return [devices_gauge, log_gauge, refresh_gauge]

    def _collect_dispatch_metrics(self) -> list[Metric]:
        from SimAction.action_dispatcher import ActionDispatcher

        outcomes = CounterMetricFamily(
            "simaction_dispatch_outcomes",
            "Per-device dispatch outcomes by action and status",
            labels=["action", "status"],
        )
        for (action, status), count in sorted(ActionDispatcher.get_instance().stats.items()):
            outcomes.add_metric([action, status], count)

        return [outcomes]

    def _collect_build_info(self) -> Metric:
        build_info = GaugeMetricFamily(
            "simaction_build_info",
            "Build information",
            labels=["version", "python_version"],
        )

        python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
        build_info.add_metric([APP_VERSION, python_version], 1)

        return build_info


# Global collector instance (registered once)
_collector_registry: CollectorRegistry | None = None
_collector_instance: SimActionMetricsCollector | None = None


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the Prometheus registry with the SimAction collector."""
    global _collector_registry, _collector_instance

    if _collector_registry is None:
        _collector_registry = CollectorRegistry()
        _collector_instance = SimActionMetricsCollector()
        _collector_registry.register(_collector_instance)
        logger.info("Prometheus metrics collector registered")

    return _collector_registry
