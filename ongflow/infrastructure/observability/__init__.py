"""Structured logging and request correlation.

Usage:
    from ongflow.infrastructure.observability import configure_structlog

    configure_structlog(environment="production")
"""

from ongflow.infrastructure.observability.correlation import (
    correlation_id_processor,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from ongflow.infrastructure.observability.logging import configure_structlog

__all__: list[str] = [
    "configure_structlog",
    "correlation_id_processor",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]
