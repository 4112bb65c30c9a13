"""Tests for registration, login and the session marker."""

import pytest

from markhub.exceptions import AuthError, ConflictError, ValidationError
from markhub.services.identity import IdentityStore
from markhub.services.local_storage import LocalStorage, SESSION_TOKEN_KEY


@pytest.fixture
def identity(session_factory, storage: LocalStorage) -> IdentityStore:
    return IdentityStore(session_factory, storage)


class TestRegister:
    @pytest.mark.asyncio
    async def test_returns_derived_user_id(self, identity: IdentityStore):
        assert await identity.register("Alice", "pw12") == "user_alice"

    @pytest.mark.asyncio
    async def test_establishes_session(self, identity: IdentityStore):
        await identity.register("Alice", "pw12")
        assert await identity.is_logged_in()
        assert await identity.current_user() == "Alice"

    @pytest.mark.asyncio
    async def test_username_too_short(self, identity: IdentityStore):
        with pytest.raises(ValidationError):
            await identity.register("ab", "pw1")

    @pytest.mark.asyncio
    async def test_password_too_short(self, identity: IdentityStore):
        with pytest.raises(ValidationError):
            await identity.register("abc", "p")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("username,password", [("", "pw12"), ("alice", ""), ("", "")])
    async def test_empty_input(self, identity: IdentityStore, username, password):
        with pytest.raises(ValidationError):
            await identity.register(username, password)

    @pytest.mark.asyncio
    async def test_duplicate_username(self, identity: IdentityStore):
        await identity.register("alice", "pw12")
        with pytest.raises(ConflictError):
            await identity.register("alice", "other")

    @pytest.mark.asyncio
    async def test_colliding_names_conflict(self, identity: IdentityStore):
        await identity.register("a.bc", "pw12")
        with pytest.raises(ConflictError):
            await identity.register("A_BC", "pw12")


class TestLogin:
    @pytest.mark.asyncio
    async def test_success(self, identity: IdentityStore):
        await identity.register("alice", "pw12")
        await identity.logout()
        assert await identity.login("ALICE", "pw12") == "user_alice"
        assert await identity.is_logged_in()

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user_look_the_same(self, identity: IdentityStore):
        await identity.register("alice", "pw12")

        with pytest.raises(AuthError) as wrong_password:
            await identity.login("alice", "nope")
        with pytest.raises(AuthError) as unknown_user:
            await identity.login("mallory", "pw12")

        assert wrong_password.value.message == unknown_user.value.message

    @pytest.mark.asyncio
    async def test_empty_input(self, identity: IdentityStore):
        with pytest.raises(ValidationError):
            await identity.login("", "")


class TestLogout:
    @pytest.mark.asyncio
    async def test_clears_marker_keeps_user_id(self, identity: IdentityStore):
        await identity.register("alice", "pw12")
        await identity.logout()
        assert not await identity.is_logged_in()
        assert await identity.current_user() is None
        assert await identity.current_user_id() == "user_alice"

    @pytest.mark.asyncio
    async def test_not_logged_in_initially(self, identity: IdentityStore):
        assert not await identity.is_logged_in()

    @pytest.mark.asyncio
    async def test_unresolvable_marker(self, identity: IdentityStore, storage: LocalStorage):
        await identity.register("alice", "pw12")
        await storage.set_item(SESSION_TOKEN_KEY, "tampered")
        assert not await identity.is_logged_in()
