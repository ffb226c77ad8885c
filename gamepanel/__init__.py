"""Game server panel core: reconciliation, quotas and lifecycle over XManage."""

from .errors import (
    ConfigurationError,
    InvalidTransition,
    NotFound,
    PanelError,
    PermissionDenied,
    QuotaError,
    TransportError,
    ValidationError,
)
from .panel import ServerPanel

__all__ = [
    "ConfigurationError",
    "InvalidTransition",
    "NotFound",
    "PanelError",
    "PermissionDenied",
    "QuotaError",
    "ServerPanel",
    "TransportError",
    "ValidationError",
]
