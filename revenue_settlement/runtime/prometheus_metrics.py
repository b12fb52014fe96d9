from __future__ import annotations

import logging

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

LOGGER = logging.getLogger(__name__)


class PrometheusMetricsClient:
    """Minimal Prometheus Pushgateway client for the settlement processes.

    The gateway URL and grouping key come from SettlementConfig
    (``PROMETHEUS_PUSHGATEWAY_URL`` / ``PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON``).
    Without a grouping key, pushes from different hosts overwrite each other.

    This client is intentionally best-effort: callers should treat it as a
    side-effect and never fail settlement because of metrics delivery.
    """

    def __init__(
        self,
        pushgateway_url: str | None,
        grouping_key: dict[str, str] | None = None,
    ) -> None:
        self._pushgateway_url = pushgateway_url
        self._grouping_key = dict(grouping_key or {})
        self._registry = CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}

    def is_enabled(self) -> bool:
        return self._pushgateway_url is not None

    def push_gauge(
        self,
        *,
        name: str,
        value: float,
        labels: dict[str, str],
    ) -> None:
        if not self._pushgateway_url:
            return

        # One Gauge per metric name; several funds share it through labels.
        gauge = self._gauges.get(name)
        if gauge is None:
            gauge = Gauge(
                name,
                documentation=name,
                labelnames=sorted(labels.keys()),
                registry=self._registry,
            )
            self._gauges[name] = gauge

        gauge.labels(**labels).set(value)

    def push_all(self, *, job: str) -> None:
        if not self._pushgateway_url:
            return

        push_to_gateway(
            gateway=self._pushgateway_url,
            job=job,
            registry=self._registry,
            grouping_key=self._grouping_key,
        )

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": job, "grouping_key": self._grouping_key},
        )
