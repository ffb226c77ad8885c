"""Schemas for external API payloads."""

from .xmanage import (
    XManageBackup,
    XManageGauge,
    XManageResources,
    XManageServer,
    XManageServerCreate,
    XManageServerUpdate,
    XManageStatus,
)

__all__ = [
    "XManageBackup",
    "XManageGauge",
    "XManageResources",
    "XManageServer",
    "XManageServerCreate",
    "XManageServerUpdate",
    "XManageStatus",
]
