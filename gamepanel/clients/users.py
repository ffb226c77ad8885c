"""User directory and mocked login.

There is no user backend: accounts live in memory, and login recognises two
hardcoded credential pairs.
"""

from datetime import UTC, datetime
import uuid

from gamepanel.contracts.dto.user import UserAccount, UserCreate, UserRole, UserUpdate
from gamepanel.errors import NotFound
from gamepanel.logging import get_logger

logger = get_logger(__name__)

ADMIN_ACCOUNT = UserAccount(
    id="1",
    username="Admin",
    email="admin@example.com",
    role=UserRole.ADMIN,
    server_limit=10,
    subscription="premium",
    last_active=datetime(2025, 5, 3, 10, 30, tzinfo=UTC),
    servers=1,
)

USER_ACCOUNT = UserAccount(
    id="2",
    username="User",
    email="user@example.com",
    role=UserRole.USER,
    server_limit=3,
    subscription="basic",
    last_active=datetime(2025, 5, 2, 15, 45, tzinfo=UTC),
    servers=2,
)

# email -> (password, account)
_CREDENTIALS: dict[str, tuple[str, UserAccount]] = {
    ADMIN_ACCOUNT.email: ("password", ADMIN_ACCOUNT),
    USER_ACCOUNT.email: ("password", USER_ACCOUNT),
}


def _seed_users() -> list[UserAccount]:
    return [
        ADMIN_ACCOUNT,
        USER_ACCOUNT,
        UserAccount(
            id="3",
            username="GameMaster",
            email="gamemaster@example.com",
            server_limit=5,
            subscription="premium",
            last_active=datetime(2025, 5, 1, 9, 15, tzinfo=UTC),
            servers=3,
        ),
        UserAccount(
            id="4",
            username="FreeUser",
            email="free@example.com",
            server_limit=1,
            subscription=None,
            last_active=datetime(2025, 4, 28, 14, 20, tzinfo=UTC),
            servers=1,
        ),
        UserAccount(
            id="5",
            username="ProGamer",
            email="progamer@example.com",
            server_limit=5,
            subscription="premium",
            last_active=datetime(2025, 5, 3, 8, 10, tzinfo=UTC),
            servers=0,
        ),
    ]


def authenticate(email: str, password: str) -> UserAccount | None:
    """Mocked login. Returns the account, or None for invalid credentials."""
    entry = _CREDENTIALS.get(email.strip().lower())
    if entry is None or entry[0] != password:
        logger.warning("login_failed", email=email)
        return None
    logger.info("login_succeeded", user_id=entry[1].id, role=entry[1].role.value)
    return entry[1]


def register(username: str, email: str) -> UserAccount:
    """Mocked registration: a plain user with a single-server limit and no plan."""
    account = UserAccount(
        id=uuid.uuid4().hex[:9],
        username=username,
        email=email,
        role=UserRole.USER,
        server_limit=1,
        subscription=None,
        last_active=datetime.now(UTC),
    )
    logger.info("user_registered", user_id=account.id)
    return account


class UserDirectory:
    """In-memory account list, as shown in the admin user view."""

    def __init__(self, users: list[UserAccount] | None = None):
        seed = _seed_users() if users is None else users
        self.users: dict[str, UserAccount] = {u.id: u for u in seed}

    async def list_users(self) -> list[UserAccount]:
        return list(self.users.values())

    async def get_user(self, user_id: str) -> UserAccount:
        try:
            return self.users[user_id]
        except KeyError:
            raise NotFound(f"User with ID {user_id} not found") from None

    async def create_user(self, request: UserCreate) -> UserAccount:
        account = UserAccount(
            id=uuid.uuid4().hex[:9],
            last_active=datetime.now(UTC),
            servers=0,
            **request.model_dump(),
        )
        self.users[account.id] = account
        logger.info("user_created", user_id=account.id)
        return account

    async def update_user(self, user_id: str, request: UserUpdate) -> UserAccount:
        current = await self.get_user(user_id)
        updated = current.model_copy(update=request.model_dump(exclude_none=True))
        self.users[user_id] = updated
        return updated

    async def delete_user(self, user_id: str) -> None:
        await self.get_user(user_id)
        del self.users[user_id]
        logger.info("user_deleted", user_id=user_id)
