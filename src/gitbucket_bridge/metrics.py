"""
Prometheus metrics for the GitBucket bridge.

This module defines the metrics collected while receiving webhooks, dispatching
pushes to jobs, polling for SCM changes and posting issue comments back to
GitBucket.
"""

from prometheus_client import Counter, Histogram, Gauge
import time


# Webhook reception metrics
webhooks_received_total = Counter(
    "gitbucket_bridge_webhooks_received_total",
    "Total number of webhooks received",
    ["event_type"],
)

webhook_processing_errors_total = Counter(
    "gitbucket_bridge_webhook_processing_errors_total",
    "Total number of webhook processing errors",
    ["event_type", "error_type"],
)

webhook_processing_duration_seconds = Histogram(
    "gitbucket_bridge_webhook_processing_duration_seconds",
    "Time spent handling a webhook up to enqueueing trigger tasks",
    ["event_type"],
)

# Dispatch metrics
pushes_dispatched_total = Counter(
    "gitbucket_bridge_pushes_dispatched_total",
    "Total number of trigger tasks enqueued for a push",
    ["job_name"],
)

# Polling metrics
polling_duration_seconds = Histogram(
    "gitbucket_bridge_polling_duration_seconds",
    "Time spent polling a job for SCM changes",
    ["job_name"],
)

polling_errors_total = Counter(
    "gitbucket_bridge_polling_errors_total",
    "Total number of SCM polling failures",
    ["job_name", "error_type"],
)

builds_scheduled_total = Counter(
    "gitbucket_bridge_builds_scheduled_total",
    "Total number of build schedule requests after a push",
    ["job_name", "outcome"],  # outcome = scheduled|already_queued
)

queued_tasks = Gauge(
    "gitbucket_bridge_queued_tasks",
    "Number of trigger tasks waiting in the serial queue",
)

# Issue comment metrics
issue_comments_total = Counter(
    "gitbucket_bridge_issue_comments_total",
    "Total number of issue comments posted to GitBucket",
    ["status"],  # status = posted|failed|sterile
)


class MetricsContext:
    """Context manager for timing operations and handling errors with metrics."""

    def __init__(self, histogram, error_counter, error_labels=None):
        self.histogram = histogram
        self.error_counter = error_counter
        self.error_labels = error_labels or []
        self.start_time = None
        self.duration = None

    def __enter__(self):
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            self.duration = time.monotonic() - self.start_time
            self.histogram.observe(self.duration)

        if exc_type is not None:
            error_type = exc_type.__name__
            self.error_counter.labels(*self.error_labels, error_type).inc()

        return False  # Don't suppress exceptions


def track_webhook_processing(event_type: str):
    """Context manager for tracking webhook processing metrics."""
    return MetricsContext(
        webhook_processing_duration_seconds.labels(event_type),
        webhook_processing_errors_total,
        error_labels=[event_type],
    )


def track_polling(job_name: str):
    """Context manager for tracking SCM polling metrics."""
    return MetricsContext(
        polling_duration_seconds.labels(job_name),
        polling_errors_total,
        error_labels=[job_name],
    )
