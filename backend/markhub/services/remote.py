"""远端文档存储

每个用户一份文档 {categories, lastModified}，只支持读取、整份覆盖和变更订阅。
订阅者会收到包括自己写入在内的每一次变更。
"""
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, List, Optional, Set
import asyncio
import logging

import httpx

from ..exceptions import SyncError
from ..schemas.sync import RemoteDocument

logger = logging.getLogger(__name__)

RemoteHandler = Callable[[RemoteDocument], Awaitable[None]]
Unsubscribe = Callable[[], None]


class RemoteDocumentStore(ABC):
    """远端文档存储接口"""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[RemoteDocument]:
        """读取文档，不存在返回 None"""

    @abstractmethod
    async def set(self, user_id: str, document: RemoteDocument):
        """整份覆盖写入"""

    @abstractmethod
    def subscribe(self, user_id: str, handler: RemoteHandler) -> Unsubscribe:
        """订阅文档变更，返回取消订阅函数"""

    async def close(self):
        pass


async def _call_handler(handler: RemoteHandler, document: RemoteDocument, user_id: str):
    try:
        await handler(document)
    except Exception as e:
        logger.exception(f"[Remote] 变更处理失败: {user_id} - {e}")


class MemoryDocumentStore(RemoteDocumentStore):
    """进程内文档存储

    写入后异步通知所有订阅者；订阅时若文档已存在，立即推送一次当前快照。
    """

    def __init__(self):
        self._documents: Dict[str, dict] = {}
        self._subscribers: Dict[str, List[RemoteHandler]] = {}
        self._pending: Set[asyncio.Task] = set()

    async def get(self, user_id: str) -> Optional[RemoteDocument]:
        data = self._documents.get(user_id)
        return RemoteDocument.model_validate(data) if data is not None else None

    async def set(self, user_id: str, document: RemoteDocument):
        self._documents[user_id] = document.to_wire()
        for handler in list(self._subscribers.get(user_id, [])):
            self._deliver(user_id, handler)

    def subscribe(self, user_id: str, handler: RemoteHandler) -> Unsubscribe:
        self._subscribers.setdefault(user_id, []).append(handler)
        if user_id in self._documents:
            self._deliver(user_id, handler)

        def unsubscribe():
            handlers = self._subscribers.get(user_id, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscribers.get(user_id, []))

    async def drain(self):
        """等待所有已安排的通知处理完毕"""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _deliver(self, user_id: str, handler: RemoteHandler):
        snapshot = RemoteDocument.model_validate(self._documents[user_id])
        task = asyncio.get_running_loop().create_task(self._run(user_id, handler, snapshot))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run(self, user_id: str, handler: RemoteHandler, snapshot: RemoteDocument):
        # 取消订阅后不再投递
        if handler not in self._subscribers.get(user_id, []):
            return
        await _call_handler(handler, snapshot, user_id)


class HttpDocumentStore(RemoteDocumentStore):
    """基于 HTTP 的文档存储

    GET/PUT {base_url}/bookmarks/{user_id}，404 表示文档不存在。
    订阅通过定时轮询实现，lastModified 变化时投递。
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        poll_interval: float = 5.0,
        timeout: float = 15.0,
        client: httpx.AsyncClient = None,
    ):
        self._owns_client = client is None
        if client is None:
            headers = {"Authorization": f"Bearer {token}"} if token else {}
            client = httpx.AsyncClient(
                base_url=base_url.rstrip("/"),
                timeout=timeout,
                headers=headers,
            )
        self._client = client
        self._poll_interval = poll_interval
        self._pollers: Set[asyncio.Task] = set()

    async def get(self, user_id: str) -> Optional[RemoteDocument]:
        try:
            response = await self._client.get(f"/bookmarks/{user_id}")
        except httpx.HTTPError as e:
            logger.warning(f"[Remote] 读取失败: {user_id} - {e}")
            raise SyncError(f"云端读取失败: {e}")

        if response.status_code == 404:
            return None
        if response.is_error:
            raise SyncError(f"云端读取失败: HTTP {response.status_code}")

        try:
            return RemoteDocument.model_validate(response.json())
        except ValueError:
            raise SyncError("云端数据格式错误")

    async def set(self, user_id: str, document: RemoteDocument):
        try:
            response = await self._client.put(f"/bookmarks/{user_id}", json=document.to_wire())
        except httpx.HTTPError as e:
            logger.warning(f"[Remote] 写入失败: {user_id} - {e}")
            raise SyncError(f"云端写入失败: {e}")

        if response.is_error:
            raise SyncError(f"云端写入失败: HTTP {response.status_code}")

    def subscribe(self, user_id: str, handler: RemoteHandler) -> Unsubscribe:
        task = asyncio.get_running_loop().create_task(self._poll(user_id, handler))
        self._pollers.add(task)
        task.add_done_callback(self._pollers.discard)
        return task.cancel

    async def _poll(self, user_id: str, handler: RemoteHandler):
        seen = False
        last_modified = None
        while True:
            try:
                document = await self.get(user_id)
            except SyncError as e:
                logger.warning(f"[Remote] 轮询失败: {user_id} - {e.message}")
            else:
                marker = document.last_modified if document else None
                if not seen or marker != last_modified:
                    seen = True
                    last_modified = marker
                    if document is not None:
                        await _call_handler(handler, document, user_id)
            await asyncio.sleep(self._poll_interval)

    async def close(self):
        for task in list(self._pollers):
            task.cancel()
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()


def build_remote_store(config) -> Optional[RemoteDocumentStore]:
    """根据配置创建远端存储；REMOTE_STORE=none 时不启用云端同步"""
    kind = (config.REMOTE_STORE or "none").lower()
    if kind == "memory":
        return MemoryDocumentStore()
    if kind == "http":
        if not config.REMOTE_STORE_URL:
            logger.warning("[Remote] REMOTE_STORE=http 但未配置 REMOTE_STORE_URL，云端同步不可用")
            return None
        return HttpDocumentStore(
            config.REMOTE_STORE_URL,
            token=config.REMOTE_STORE_TOKEN,
            poll_interval=config.REMOTE_POLL_INTERVAL,
            timeout=config.REMOTE_TIMEOUT,
        )
    return None
