"""Prometheus metrics helpers for result collection."""

import os
from prometheus_client import Counter, Histogram, start_http_server
from . import config

TESTS_COLLECTED = Counter(
    "resultlog_tests_total",
    "Number of leaf test results collected by outcome.",
    ["result_type"],
)

OUTPUT_EVENTS = Counter(
    "resultlog_output_events_total",
    "Output events forwarded to the output store.",
    ["destination"],
)

# Output events that carried no class name and could not be attributed.
OUTPUT_DROPPED = Counter(
    "resultlog_output_dropped_total",
    "Number of output events discarded for lack of a class name.",
)

SERIALIZATIONS = Counter(
    "resultlog_serializations_total",
    "Number of times the results table was serialized.",
)

SERIALIZE_LATENCY = Histogram(
    "resultlog_serialize_seconds",
    "Time spent finalizing output and writing results.",
)


def start_metrics_server(port: int | None = None) -> None:
    """Start a Prometheus metrics HTTP server.

    Parameters
    ----------
    port:
        Port for the HTTP server. If ``None`` the value from the
        ``RESULTLOG_METRICS_PORT`` environment variable is used when set,
        otherwise the configured ``metrics_port``.
    """

    if port is None:
        env = os.getenv("RESULTLOG_METRICS_PORT")
        if env:
            port = int(env)
        else:
            port = config.settings.metrics_port
    start_http_server(port)
