from .server import Gauge, ServerCreate, ServerRecord, ServerResources, ServerStatus
from .user import UserAccount, UserCreate, UserRole, UserUpdate

__all__ = [
    "Gauge",
    "ServerCreate",
    "ServerRecord",
    "ServerResources",
    "ServerStatus",
    "UserAccount",
    "UserCreate",
    "UserRole",
    "UserUpdate",
]
