"""Tests for last-writer-wins reconciliation with the remote document."""

import pytest

from markhub.exceptions import SyncError
from markhub.schemas.bookmark import Category
from markhub.schemas.sync import RemoteDocument
from markhub.services.bookmarks import BookmarkStore
from markhub.services.local_storage import LocalStorage, data_key
from markhub.services.remote import MemoryDocumentStore
from markhub.services.sync import SyncManager, SyncState

USER = "user_alice"


class FlakyDocumentStore(MemoryDocumentStore):
    """Memory store whose writes can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail = False

    async def set(self, user_id, document):
        if self.fail:
            raise SyncError("boom")
        await super().set(user_id, document)


def _remote_doc(names, last_modified):
    return RemoteDocument(
        categories=[Category(name=n, bookmarks=[]) for n in names],
        last_modified=last_modified,
    )


def _names(store: BookmarkStore):
    return [c.name for c in store.categories]


class TestEnable:
    @pytest.mark.asyncio
    async def test_pushes_full_tree_and_listens(self, store, sync, remote, clock):
        await store.add_category("Work", "#FF5722")
        clock.set(2_000)

        assert await sync.enable()

        doc = await remote.get(USER)
        assert [c.name for c in doc.categories] == ["Work"]
        assert doc.last_modified == 2_000
        assert sync.last_sync_time == 2_000
        assert sync.state == SyncState.SYNCING
        assert remote.subscriber_count(USER) == 1

    @pytest.mark.asyncio
    async def test_initial_snapshot_is_an_echo(self, store, sync, remote, clock):
        await store.add_category("Work", "#FF5722")
        clock.set(2_000)
        await sync.enable()
        await remote.drain()
        assert _names(store) == ["Work"]

    @pytest.mark.asyncio
    async def test_failed_push_stays_disabled(self, store, storage, clock):
        flaky = FlakyDocumentStore()
        flaky.fail = True
        manager = SyncManager(USER, store, storage, flaky, clock=clock)

        assert not await manager.enable()
        assert manager.state == SyncState.FAILED
        assert not manager.sync_enabled
        assert manager.last_error == "boom"
        assert flaky.subscriber_count(USER) == 0
        await manager.close()

    @pytest.mark.asyncio
    async def test_without_remote(self, store, storage, clock):
        manager = SyncManager(USER, store, storage, None, clock=clock)
        assert not await manager.enable()
        assert manager.state == SyncState.DISABLED
        await manager.close()


@pytest.fixture
async def enabled(store, sync, remote, clock):
    await store.add_category("Local", "#111111")  # lastLocalChange = 1000
    clock.set(2_000)
    await sync.enable()  # last push = 2000
    await remote.drain()
    return sync


class TestRemoteChange:
    @pytest.mark.asyncio
    async def test_echo_is_discarded(self, enabled, store):
        assert not await enabled.handle_remote_change(_remote_doc(["Echo"], 2_000))
        assert not await enabled.handle_remote_change(_remote_doc(["Older"], 1_500))
        assert _names(store) == ["Local"]

    @pytest.mark.asyncio
    async def test_newer_remote_overwrites(self, enabled, store, storage, clock):
        clock.set(3_000)
        assert await enabled.handle_remote_change(_remote_doc(["Remote"], 5_000))
        assert _names(store) == ["Remote"]
        assert [c["name"] for c in await storage.get_json(data_key(USER))] == ["Remote"]
        assert await storage.get_last_local_change() == 3_000

    @pytest.mark.asyncio
    async def test_local_newer_wins(self, enabled, store, storage):
        await storage.set_last_local_change(6_000)
        assert not await enabled.handle_remote_change(_remote_doc(["Remote"], 5_000))
        assert not await enabled.handle_remote_change(_remote_doc(["Remote"], 6_000))
        assert _names(store) == ["Local"]

    @pytest.mark.asyncio
    async def test_notification_from_other_writer(self, enabled, store, remote):
        await remote.set(USER, _remote_doc(["Other device"], 9_000))
        await remote.drain()
        assert _names(store) == ["Other device"]

    @pytest.mark.asyncio
    async def test_overwrite_is_not_pushed_back(self, enabled, remote):
        await remote.set(USER, _remote_doc(["Other device"], 9_000))
        await remote.drain()
        await enabled.wait_idle()
        assert (await remote.get(USER)).last_modified == 9_000

    @pytest.mark.asyncio
    async def test_concurrent_edit_is_lost(self, enabled, store, remote, clock):
        # local edit at 3000 is pushed; another device then writes a tree
        # without it at 3500 and wins
        clock.set(3_000)
        await store.add_category("Local edit", "#222222")
        await enabled.wait_idle()
        await remote.drain()

        await remote.set(USER, _remote_doc(["Local"], 3_500))
        await remote.drain()
        assert _names(store) == ["Local"]

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_discarded(self, enabled, store, storage, clock):
        document = RemoteDocument(
            categories=[
                Category(id="x", name="A", bookmarks=[]),
                Category(id="x", name="B", bookmarks=[]),
            ],
            last_modified=5_000,
        )
        assert not await enabled.handle_remote_change(document)
        assert _names(store) == ["Local"]

        again = BookmarkStore(USER, storage, clock=clock)
        await again.load()
        assert [c.name for c in again.categories] == ["Local"]

    @pytest.mark.asyncio
    async def test_missing_document(self, enabled):
        assert not await enabled.handle_remote_change(None)


class TestBackgroundPush:
    @pytest.mark.asyncio
    async def test_mutation_is_pushed(self, store, sync, remote, clock):
        await sync.enable()
        clock.set(3_000)
        await store.add_category("New", "#123456")
        await sync.wait_idle()

        doc = await remote.get(USER)
        assert [c.name for c in doc.categories] == ["New"]
        assert doc.last_modified == 3_000

        await remote.drain()
        assert _names(store) == ["New"]

    @pytest.mark.asyncio
    async def test_nothing_pushed_while_disabled(self, store, sync, remote):
        await store.add_category("New", "#123456")
        await sync.wait_idle()
        assert await remote.get(USER) is None
        assert sync.status().pending_pushes == 0

    @pytest.mark.asyncio
    async def test_failure_reverts_to_disabled(self, store, storage, clock):
        flaky = FlakyDocumentStore()
        manager = SyncManager(USER, store, storage, flaky, clock=clock)
        assert await manager.enable()

        flaky.fail = True
        await store.add_category("New", "#123456")
        await manager.wait_idle()

        assert manager.state == SyncState.FAILED
        assert flaky.subscriber_count(USER) == 0
        assert _names(store) == ["New"]
        await manager.close()


class TestSyncNow:
    @pytest.mark.asyncio
    async def test_accept_remote(self, store, sync, remote, clock):
        await store.add_category("Local", "#111111")
        await remote.set(USER, _remote_doc(["Cloud"], 500))
        offered = []

        async def choose(categories):
            offered.append([c.name for c in categories])
            return True

        clock.set(2_000)
        assert await sync.sync_now(choose)
        assert offered == [["Cloud"]]
        assert _names(store) == ["Cloud"]
        assert [c.name for c in (await remote.get(USER)).categories] == ["Cloud"]
        assert sync.sync_enabled

    @pytest.mark.asyncio
    async def test_keep_local(self, store, sync, remote, clock):
        await store.add_category("Local", "#111111")
        await remote.set(USER, _remote_doc(["Cloud"], 500))

        async def choose(categories):
            return False

        clock.set(2_000)
        assert await sync.sync_now(choose)
        assert _names(store) == ["Local"]
        assert [c.name for c in (await remote.get(USER)).categories] == ["Local"]

    @pytest.mark.asyncio
    async def test_empty_remote_skips_choice(self, store, sync, remote):
        await remote.set(USER, _remote_doc([], 500))

        async def choose(categories):
            raise AssertionError("should not be asked")

        assert await sync.sync_now(choose)

    @pytest.mark.asyncio
    async def test_invalid_remote_is_not_offered(self, store, sync, remote, clock):
        await store.add_category("Local", "#111111")
        await remote.set(USER, RemoteDocument(
            categories=[
                Category(id="x", name="A", bookmarks=[]),
                Category(id="x", name="B", bookmarks=[]),
            ],
            last_modified=500,
        ))

        async def choose(categories):
            raise AssertionError("should not be asked")

        clock.set(2_000)
        assert await sync.sync_now(choose)
        assert _names(store) == ["Local"]
        assert [c.name for c in (await remote.get(USER)).categories] == ["Local"]

    @pytest.mark.asyncio
    async def test_already_enabled_pushes(self, store, sync, remote, clock):
        await sync.enable()
        clock.set(7_000)
        assert await sync.sync_now()
        assert sync.last_sync_time == 7_000
        assert (await remote.get(USER)).last_modified == 7_000


class TestDisable:
    @pytest.mark.asyncio
    async def test_idempotent(self, sync, remote):
        await sync.enable()
        sync.disable()
        sync.disable()
        assert sync.state == SyncState.DISABLED
        assert remote.subscriber_count(USER) == 0

    @pytest.mark.asyncio
    async def test_no_more_notifications(self, store, sync, remote):
        await sync.enable()
        await remote.drain()
        sync.disable()
        await remote.set(USER, _remote_doc(["Other"], 99_000))
        await remote.drain()
        assert _names(store) == []

    @pytest.mark.asyncio
    async def test_status(self, sync, clock):
        clock.set(2_000)
        await sync.enable()
        status = sync.status()
        assert status.user_id == USER
        assert status.state == "syncing"
        assert status.sync_enabled
        assert status.last_sync_time == 2_000
