"""Prometheus instrumentation for the HTTP service and the store layer."""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator, metrics

STORE_CONFLICTS = Counter(
    "groupwatch_store_conflicts_total",
    "Unique-constraint races resolved by the data store instead of a pre-check.",
    labelnames=("entity",),
)


def record_store_conflict(entity: str) -> None:
    STORE_CONFLICTS.labels(entity=entity).inc()


def setup_metrics(app: FastAPI) -> None:
    """Attach Prometheus instrumentation and expose the /metrics endpoint."""

    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_round_latency_decimals=True,
        round_latency_decimals=4,
        should_respect_env_var=False,
        excluded_handlers=[r"/metrics"],
    )
    instrumentator.add(metrics.default(should_only_respect_2xx_for_highr=True))
    instrumentator.instrument(app).expose(app, include_in_schema=False, tags=["observability"])


__all__ = ["STORE_CONFLICTS", "record_store_conflict", "setup_metrics"]
