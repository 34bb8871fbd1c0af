"""
Prometheus metrics for the Suite backend.

Service timings come from the ``@measure_operation`` decorator; cancellation
settlement adds outcome counters so partially settled cancellations can be
alerted on and reconciled.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "suite_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

service_operations_total = Counter(
    "suite_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "suite_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

cancellation_settlements_total = Counter(
    "suite_cancellation_settlements_total",
    "Cancellation settlements by policy branch and resulting payment status",
    ["branch", "status"],  # branch: policy | no_policy
    registry=REGISTRY,
)

cancellation_fee_charges_total = Counter(
    "suite_cancellation_fee_charges_total",
    "Separate cancellation-fee charges created after a rejected partial capture",
    ["status"],  # success | error
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingCancellationService')
            operation: Operation/method name (e.g., 'cancellation.settle')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_cancellation_settlement(branch: str, status: str) -> None:
        cancellation_settlements_total.labels(branch=branch, status=status).inc()

    @staticmethod
    def record_cancellation_fee_charge(status: str) -> None:
        cancellation_fee_charges_total.labels(status=status).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
