"""Tests for the user directory and mocked login."""

import pytest

from gamepanel.clients.users import (
    ADMIN_ACCOUNT,
    USER_ACCOUNT,
    UserDirectory,
    authenticate,
    register,
)
from gamepanel.contracts.dto.user import UserCreate, UserRole, UserUpdate
from gamepanel.errors import NotFound


class TestAuthenticate:
    def test_admin_login(self):
        assert authenticate("admin@example.com", "password") == ADMIN_ACCOUNT

    def test_email_is_case_insensitive(self):
        assert authenticate(" User@Example.com ", "password") == USER_ACCOUNT

    @pytest.mark.parametrize(
        "email,password",
        [("admin@example.com", "wrong"), ("nobody@example.com", "password"), ("", "")],
    )
    def test_invalid_credentials(self, email, password):
        assert authenticate(email, password) is None


def test_register_creates_free_user():
    account = register("newbie", "newbie@example.com")

    assert account.role == UserRole.USER
    assert account.server_limit == 1
    assert account.subscription is None
    assert not account.is_admin


@pytest.mark.asyncio
async def test_directory_is_seeded():
    directory = UserDirectory()

    users = await directory.list_users()

    assert [u.username for u in users] == ["Admin", "User", "GameMaster", "FreeUser", "ProGamer"]


@pytest.mark.asyncio
async def test_create_update_delete_user():
    directory = UserDirectory(users=[])

    created = await directory.create_user(
        UserCreate(username="mod", email="mod@example.com", server_limit=2)
    )
    updated = await directory.update_user(created.id, UserUpdate(subscription="basic"))

    assert updated.subscription == "basic"
    assert updated.server_limit == 2  # noqa: PLR2004

    await directory.delete_user(created.id)
    assert await directory.list_users() == []


@pytest.mark.asyncio
async def test_unknown_user():
    directory = UserDirectory()

    with pytest.raises(NotFound, match="User with ID 99 not found"):
        await directory.get_user("99")
