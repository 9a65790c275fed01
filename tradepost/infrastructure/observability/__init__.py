"""Observability and logging facades."""

from .logging import (
    configure_logging,
    current_log_context,
    get_logger,
    log_context,
    log_exception,
)
from .metrics import (
    Timer,
    format_prometheus,
    get_metrics_summary,
    increment_counter,
    observe_histogram,
    record_api_request,
    record_bid,
    record_buy_order,
    record_grouping,
    record_photo_sync,
    reset_metrics,
)

__all__ = [
    # Logging
    "configure_logging",
    "current_log_context",
    "get_logger",
    "log_context",
    "log_exception",
    # Metrics
    "Timer",
    "format_prometheus",
    "get_metrics_summary",
    "increment_counter",
    "observe_histogram",
    "record_api_request",
    "record_bid",
    "record_buy_order",
    "record_grouping",
    "record_photo_sync",
    "reset_metrics",
]
