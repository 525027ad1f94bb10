"""Shared Prometheus metric configuration.

This module provides the standard histogram buckets and a factory so that
every duration histogram in the service is bucketed the same way.
"""

import prometheus_client

BUCKETS = (
    # log spaced with 1 sig-fig rounding, 3 per decade
    0.001,  # 1 ms
    0.002,
    0.005,
    0.01,
    0.02,
    0.05,
    0.1,
    0.2,
    0.5,
    1,
    2,
    5,
    10,
    20,
    50,
    100,
    200,  # long multi-step runs
    float("inf"),
)


def setup_metrics_factory(registry, name, documentation, labelnames):
    """Create a Prometheus histogram with standard bucket configuration.

    Args:
        registry: Prometheus registry to register the metric with
        name: Metric name (e.g., "agent_tool_call_duration_seconds")
        documentation: Human-readable metric description
        labelnames: Tuple of label names for the histogram

    Returns:
        Configured Prometheus Histogram instance
    """
    prom_histogram = prometheus_client.Histogram(
        name=name,
        documentation=documentation,
        labelnames=labelnames,
        registry=registry,
        buckets=BUCKETS,
    )

    return prom_histogram


def metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output for scraping.

    Returns:
        Tuple of (metrics_body, content_type)
    """
    return (
        prometheus_client.generate_latest(prometheus_client.REGISTRY),
        prometheus_client.CONTENT_TYPE_LATEST,
    )
