"""云端同步（最后写入者胜出）

- enable(): 推送一次完整的本地树，然后订阅远端文档变更
- 本地每次保存后把快照交给后台推送队列，不阻塞修改路径
- 远端变更：lastModified <= 本会话最近一次推送时间的视为回声丢弃；
  大于本地 lastLocalChange 的整树覆盖本地，否则丢弃（本地优先）

没有合并、没有操作日志：两端在同一时间窗口内的并发修改会丢失其中一方。
"""
from enum import Enum
from typing import Awaitable, Callable, List, Optional
import asyncio
import logging

from ..exceptions import SyncError, StorageError, ValidationError
from ..schemas.bookmark import Category, dump_tree, parse_snapshot
from ..schemas.sync import RemoteDocument, SyncStatus
from ..utils.clock import MonotonicClock
from .bookmarks import BookmarkStore
from .local_storage import LocalStorage
from .remote import RemoteDocumentStore

logger = logging.getLogger(__name__)

# 云端已有数据时询问保留哪一份，返回 True 表示采用云端数据
Chooser = Callable[[List[Category]], Awaitable[bool]]


class SyncState(str, Enum):
    """同步状态（FAILED 在行为上等同于 DISABLED）"""
    DISABLED = "disabled"
    SYNCING = "syncing"
    FAILED = "failed"


class PushWorker:
    """后台推送队列

    按提交顺序逐个推送快照，不合并。join() 可等待所有已提交的推送完成。
    """

    def __init__(self, push: Callable[[list], Awaitable[None]]):
        self._push = push
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._in_flight = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize() + self._in_flight

    def submit(self, tree: list):
        self._queue.put_nowait(tree)
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def join(self):
        await self._queue.join()

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        # 丢弃未开始的推送，避免 join() 永久等待
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    async def _run(self):
        while True:
            tree = await self._queue.get()
            self._in_flight = 1
            try:
                await self._push(tree)
            except Exception as e:
                logger.exception(f"[Sync] 后台推送异常: {e}")
            finally:
                self._in_flight = 0
                self._queue.task_done()


class SyncManager:
    """单个用户会话的同步管理器"""

    def __init__(
        self,
        user_id: str,
        store: BookmarkStore,
        storage: LocalStorage,
        remote: Optional[RemoteDocumentStore],
        clock: Callable[[], int] = None,
    ):
        self.user_id = user_id
        self.state = SyncState.DISABLED
        self.last_sync_time: Optional[int] = None
        self.last_error: Optional[str] = None
        self._store = store
        self._storage = storage
        self._remote = remote
        self._clock = clock or MonotonicClock()
        self._unsubscribe = None
        self._worker = PushWorker(self._background_push)
        store.add_save_hook(self._on_local_save)

    @property
    def sync_enabled(self) -> bool:
        return self.state == SyncState.SYNCING

    @property
    def available(self) -> bool:
        return self._remote is not None

    # ==================== 状态切换 ====================

    async def enable(self) -> bool:
        """推送一次完整的本地树并开始监听远端变更"""
        if self._remote is None:
            self.last_error = "云端存储未配置"
            logger.warning(f"[Sync] 云端存储未配置，无法启用同步: {self.user_id}")
            return False

        try:
            await self.push()
        except SyncError as e:
            self._fail(e)
            return False

        self.state = SyncState.SYNCING
        self.last_error = None
        self._listen()
        logger.info(f"[Sync] 已启用同步: {self.user_id}")
        return True

    def disable(self):
        """停止监听远端变更（幂等）"""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.state == SyncState.SYNCING:
            self.state = SyncState.DISABLED
            logger.info(f"[Sync] 已停用同步: {self.user_id}")

    def _fail(self, error: SyncError):
        self.disable()
        self.state = SyncState.FAILED
        self.last_error = error.message
        logger.error(f"[Sync] 同步失败，已停用: {self.user_id} - {error.message}")

    def _listen(self):
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._remote.subscribe(self.user_id, self.handle_remote_change)

    # ==================== 推送 / 拉取 ====================

    async def push(self, tree: list = None):
        """把整棵树连同 lastModified 写成一份远端文档（整份覆盖）"""
        if self._remote is None:
            raise SyncError("云端存储未配置")

        if tree is None:
            tree = dump_tree(self._store.categories)
        document = RemoteDocument(categories=tree, last_modified=self._clock())
        await self._remote.set(self.user_id, document)
        self.last_sync_time = self._clock()
        logger.info(f"[Sync] 已上传到云端: {self.user_id} lastModified={document.last_modified}")

    async def pull(self) -> Optional[List[Category]]:
        """读取远端分类树；没有远端文档、读取失败或数据无效时返回 None"""
        if self._remote is None:
            return None
        try:
            document = await self._remote.get(self.user_id)
        except SyncError as e:
            logger.warning(f"[Sync] 下载失败: {self.user_id} - {e.message}")
            return None
        if document is None:
            return None
        return self._checked(document.categories)

    def _checked(self, categories: List[Category]) -> Optional[List[Category]]:
        """远端树按导入规则校验（含 ID 去重），无效时返回 None"""
        try:
            return parse_snapshot(dump_tree(categories))
        except ValidationError as e:
            logger.warning(f"[Sync] 云端数据无效，已忽略: {self.user_id} - {e.message}")
            return None

    def _on_local_save(self, tree: list):
        if self.sync_enabled:
            self._worker.submit(tree)

    async def _background_push(self, tree: list):
        try:
            await self.push(tree)
        except SyncError as e:
            self._fail(e)

    async def wait_idle(self):
        """等待已提交的后台推送全部完成"""
        await self._worker.join()

    # ==================== 远端变更 ====================

    async def handle_remote_change(self, document: Optional[RemoteDocument]) -> bool:
        """处理一次远端变更通知，返回是否覆盖了本地数据"""
        if document is None:
            return False

        cloud_time = document.last_modified or 0
        if cloud_time <= (self.last_sync_time or 0):
            logger.debug(f"[Sync] 忽略自身写入的回声: {cloud_time}")
            return False

        local_time = await self._storage.get_last_local_change()
        if cloud_time <= local_time:
            logger.info(f"[Sync] 本地数据较新，忽略云端变更: cloud={cloud_time} local={local_time}")
            return False

        categories = self._checked(document.categories)
        if categories is None:
            return False

        try:
            await self._store.replace_categories(categories)
        except StorageError as e:
            logger.error(f"[Sync] 云端数据已应用但本地保存失败: {e.message}")
        logger.info(f"[Sync] 已从云端同步: {self.user_id} lastModified={cloud_time}")
        return True

    # ==================== 手动同步 ====================

    async def sync_now(self, chooser: Chooser = None) -> bool:
        """未启用时先拉取云端数据（二选一）再启用；已启用时推送一次"""
        if not self.sync_enabled:
            remote_categories = await self.pull()
            if remote_categories:
                accept_remote = await chooser(remote_categories) if chooser else False
                if accept_remote:
                    await self._store.replace_categories(remote_categories)
                    logger.info(f"[Sync] 已采用云端数据: {self.user_id}")
            return await self.enable()

        try:
            await self.push()
        except SyncError as e:
            self._fail(e)
            return False
        return True

    def status(self) -> SyncStatus:
        return SyncStatus(
            user_id=self.user_id,
            state=self.state.value,
            sync_enabled=self.sync_enabled,
            last_sync_time=self.last_sync_time,
            last_error=self.last_error,
            pending_pushes=self._worker.pending,
        )

    async def close(self):
        """会话结束：停止监听，等待已提交的推送完成后停止后台任务"""
        self.disable()
        self._store.remove_save_hook(self._on_local_save)
        await self._worker.join()
        await self._worker.stop()
