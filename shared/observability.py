"""
Observability facade for the Identity Bridge.
Combines structured logging with Prometheus metrics.
"""

from typing import Optional

from .logging import configure_logging, get_logger
from .metrics import MetricsCollector, get_metrics_collector


class ObservabilityManager:
    """Centralized observability manager for services."""

    def __init__(self, service_name: str, log_level: str = "info",
                 metrics: Optional[MetricsCollector] = None):
        self.service_name = service_name
        self.log_level = log_level

        configure_logging(service_name, log_level)
        self.metrics = metrics or get_metrics_collector(service_name)
        self.logger = get_logger(f"{service_name}.observability")

        self.logger.info("Observability initialized",
                         service=service_name,
                         log_level=log_level)

    def log_business_event(self, event_type: str, **kwargs):
        """Log business event with full context."""
        self.logger.info(
            "Business event",
            event_type=event_type,
            **kwargs
        )
        self.metrics.record_business_event(event_type)


def get_observability_manager(service_name: str, log_level: str = "info",
                              metrics: Optional[MetricsCollector] = None) -> ObservabilityManager:
    """Create an observability manager for a service."""
    return ObservabilityManager(service_name, log_level=log_level, metrics=metrics)
