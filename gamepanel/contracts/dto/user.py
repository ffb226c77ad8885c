from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class UserAccount(BaseModel):
    """Account as seen by the panel."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    email: str
    role: UserRole = UserRole.USER
    server_limit: int = 1
    subscription: str | None = None
    last_active: datetime | None = None
    servers: int = 0

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class UserCreate(BaseModel):
    username: str
    email: str
    role: UserRole = UserRole.USER
    server_limit: int = 1
    subscription: str | None = None


class UserUpdate(BaseModel):
    username: str | None = None
    email: str | None = None
    role: UserRole | None = None
    server_limit: int | None = None
    subscription: str | None = None
