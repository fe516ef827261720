"""Structured logging and Prometheus metrics."""

from frontline.observability.logging import bind_call_context, get_logger, setup_logging

__all__ = ["bind_call_context", "get_logger", "setup_logging"]
