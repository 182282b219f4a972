"""Observability module for ledgerdb.

Structured logging built on structlog: configure_logging, get_logger,
bind_context, unbind_context.
"""

from ledgerdb.observability.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_current_config,
    get_logger,
    is_configured,
    reset_logging,
    set_console_logging,
    unbind_context,
)

__all__ = [
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_current_config",
    "get_logger",
    "is_configured",
    "reset_logging",
    "set_console_logging",
    "unbind_context",
]
