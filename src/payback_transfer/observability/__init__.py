"""Observability - logging and reporting."""

from .logger import LogContext, configure_logging
from .reporter import TransferReporter, result_to_dict

__all__ = [
    "configure_logging",
    "LogContext",
    "TransferReporter",
    "result_to_dict",
]
