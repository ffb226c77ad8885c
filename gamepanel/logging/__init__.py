from .config import get_logger, setup_logging
from .correlation import clear_context, get_correlation_id, set_correlation_id

__all__ = [
    "setup_logging",
    "get_logger",
    "set_correlation_id",
    "get_correlation_id",
    "clear_context",
]
