"""
Tests for device-scoped preferences and their storage backends.
"""

import json
from datetime import date
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from familysync.core.exceptions import StorageError
from familysync.domains.user.models import AuthProvider
from familysync.domains.user.preferences import (
    ALL_KEYS,
    HAS_SEEN_ONBOARDING,
    USER_BIRTHDAY,
    LocalPreferences,
)
from familysync.infra.storage import JsonFileStore, RedisStore


class TestLocalPreferences:
    """Tests for LocalPreferences over a JSON file."""

    @pytest.mark.asyncio
    async def test_defaults(self, preferences):
        """An empty store yields empty values."""
        assert await preferences.get_has_seen_onboarding() is False
        assert await preferences.get_user_name() is None
        assert await preferences.get_user_birthday() is None
        assert await preferences.get_onboarding_step() is None
        assert await preferences.get_auth_provider() == AuthProvider.NONE
        assert await preferences.get_user_id() is None

    @pytest.mark.asyncio
    async def test_round_trip_values(self, preferences):
        """Stored values read back with their types."""
        await preferences.set_has_seen_onboarding(True)
        await preferences.set_user_name("Jane")
        await preferences.set_user_birthday(date(1990, 5, 17))
        await preferences.set_onboarding_step(3)
        await preferences.set_auth_provider(AuthProvider.APPLE)
        await preferences.set_user_id("a1b2c3")

        assert await preferences.get_has_seen_onboarding() is True
        assert await preferences.get_user_name() == "Jane"
        assert await preferences.get_user_birthday() == date(1990, 5, 17)
        assert await preferences.get_onboarding_step() == 3
        assert await preferences.get_auth_provider() == AuthProvider.APPLE
        assert await preferences.get_user_id() == "a1b2c3"

    @pytest.mark.asyncio
    async def test_birthday_stored_as_iso_date(self, preferences, store):
        """The birthday is persisted as an ISO date string."""
        await preferences.set_user_birthday(date(2001, 1, 2))

        assert json.loads(store.path.read_text())[USER_BIRTHDAY] == "2001-01-02"

    @pytest.mark.asyncio
    async def test_clear_removes_everything(self, preferences, store):
        """clear() removes every key."""
        await preferences.set_has_seen_onboarding(True)
        await preferences.set_user_name("Jane")
        await preferences.set_auth_provider(AuthProvider.GOOGLE)
        await preferences.set_user_id("a1b2c3")

        await preferences.clear()

        stored = json.loads(store.path.read_text())
        assert not set(ALL_KEYS) & set(stored)
        assert await preferences.get_has_seen_onboarding() is False

    @pytest.mark.asyncio
    async def test_malformed_values_are_ignored(self, store):
        """Corrupted values read as absent."""
        await store.set(USER_BIRTHDAY, "not-a-date")
        await store.set("onboardingStep", "three")
        preferences = LocalPreferences(store)

        assert await preferences.get_user_birthday() is None
        assert await preferences.get_onboarding_step() is None

    @pytest.mark.asyncio
    async def test_unknown_provider_reads_as_none(self, store):
        """An unknown stored provider becomes NONE."""
        await store.set("authProvider", "email")

        assert await LocalPreferences(store).get_auth_provider() == AuthProvider.NONE


class TestJsonFileStore:
    """Tests for JsonFileStore."""

    @pytest.mark.asyncio
    async def test_creates_parent_directories(self, tmp_path):
        """The file and its directories are created on first write."""
        store = JsonFileStore(tmp_path / "nested" / "dir" / "prefs.json")

        await store.set(HAS_SEEN_ONBOARDING, True)

        assert store.path.exists()
        assert await store.get(HAS_SEEN_ONBOARDING) is True

    @pytest.mark.asyncio
    async def test_corrupted_file_reads_empty(self, tmp_path):
        """An unparseable file behaves like an empty store and is kept aside."""
        path = tmp_path / "prefs.json"
        path.write_text("{not json")
        store = JsonFileStore(path)

        assert await store.get(HAS_SEEN_ONBOARDING) is None

        backup = tmp_path / "prefs.json.corrupt"
        assert backup.read_text() == "{not json"

        await store.set(HAS_SEEN_ONBOARDING, True)
        assert json.loads(path.read_text()) == {HAS_SEEN_ONBOARDING: True}
        assert backup.read_text() == "{not json"

    @pytest.mark.asyncio
    async def test_non_object_file_is_kept_aside(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("[1, 2]")

        assert await JsonFileStore(path).get(HAS_SEEN_ONBOARDING) is None
        assert (tmp_path / "prefs.json.corrupt").read_text() == "[1, 2]"

    @pytest.mark.asyncio
    async def test_unreadable_file_raises_storage_error(self, tmp_path):
        """A file that cannot be read is an error, not an empty store."""
        path = tmp_path / "prefs.json"
        path.mkdir()

        with pytest.raises(StorageError):
            await JsonFileStore(path).get(HAS_SEEN_ONBOARDING)

    @pytest.mark.asyncio
    async def test_delete_missing_key_is_noop(self, store):
        """Deleting absent keys does not create the file."""
        await store.delete("missing")

        assert not store.path.exists()

    @pytest.mark.asyncio
    async def test_write_failure_raises_storage_error(self, tmp_path):
        """Write failures surface as StorageError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = JsonFileStore(blocker / "prefs.json")

        with pytest.raises(StorageError):
            await store.set(HAS_SEEN_ONBOARDING, True)


class TestRedisStore:
    """Tests for RedisStore with a mocked client."""

    @pytest.fixture
    def redis(self):
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_values_are_prefixed_and_json_encoded(self, redis):
        """Keys are namespaced and values JSON-encoded."""
        store = RedisStore(redis, prefix="fs")

        await store.set(HAS_SEEN_ONBOARDING, True)

        redis.set.assert_awaited_once_with("fs:prefs:hasSeenOnboarding", "true")

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, redis):
        """Stored JSON is decoded."""
        redis.get.return_value = '"Jane"'
        store = RedisStore(redis, prefix="fs")

        assert await store.get("userName") == "Jane"
        redis.get.assert_awaited_once_with("fs:prefs:userName")

    @pytest.mark.asyncio
    async def test_get_missing(self, redis):
        """Missing keys read as None."""
        redis.get.return_value = None

        assert await RedisStore(redis).get("userName") is None

    @pytest.mark.asyncio
    async def test_corrupt_value_raises_storage_error(self, redis):
        """A value that is not JSON surfaces as StorageError."""
        redis.get.return_value = "not json"

        with pytest.raises(StorageError):
            await RedisStore(redis, prefix="fs").get("userName")

    @pytest.mark.asyncio
    async def test_clear_deletes_all_keys(self, redis):
        """Clearing preferences deletes every key in one call."""
        preferences = LocalPreferences(RedisStore(redis, prefix="fs"))

        await preferences.clear()

        redis.delete.assert_awaited_once_with(*(f"fs:prefs:{key}" for key in ALL_KEYS))

    @pytest.mark.asyncio
    async def test_connection_failure_raises_storage_error(self, redis):
        """Redis failures surface as StorageError."""
        redis.get.side_effect = RedisConnectionError("refused")

        with pytest.raises(StorageError):
            await RedisStore(redis).get("userName")
