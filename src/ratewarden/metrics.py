"""Prometheus metrics for ratewarden."""

from prometheus_client import Counter, Gauge, Histogram, Info

from ratewarden import __version__


class RateWardenMetrics:
    """Metrics collection for the admission controller."""

    def __init__(self) -> None:
        self.info = Info("ratewarden", "ratewarden admission controller")
        self.info.info({"version": __version__})

        # Admission decisions
        self.evaluations_total = Counter(
            "ratewarden_evaluations_total",
            "Total number of rate limit evaluations",
            ["policy", "result"],
        )

        self.evaluation_failures_total = Counter(
            "ratewarden_evaluation_failures_total",
            "Evaluations that failed and were let through",
            ["policy"],
        )

        self.evaluate_duration = Histogram(
            "ratewarden_evaluate_duration_seconds",
            "Duration of rate limit evaluations",
            ["policy"],
            buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1],
        )

        # Store housekeeping
        self.store_keys = Gauge(
            "ratewarden_store_keys",
            "Number of keys held in the state store after the last sweep",
        )

        self.janitor_evicted_total = Counter(
            "ratewarden_janitor_evicted_total",
            "State entries evicted by the janitor",
        )

        # Host application
        self.http_requests_total = Counter(
            "ratewarden_http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
        )

        self.http_request_duration = Histogram(
            "ratewarden_http_request_duration_seconds",
            "Duration of HTTP requests",
            ["method", "endpoint"],
            buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
        )


# Singleton instance
metrics = RateWardenMetrics()
