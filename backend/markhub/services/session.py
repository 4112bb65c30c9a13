"""用户会话上下文

登录/注册时构造 UserSession（书签存储 + 同步管理器），登出时拆除。
SessionManager 持有进程内唯一的活动会话。
"""
from typing import Callable, Optional
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import logging

from ..utils.clock import MonotonicClock
from .bookmarks import BookmarkStore
from .identity import IdentityStore
from .local_storage import LocalStorage
from .remote import RemoteDocumentStore
from .sync import SyncManager

logger = logging.getLogger(__name__)


class UserSession:
    """单个登录用户的上下文"""

    def __init__(
        self,
        user_id: str,
        username: str,
        token: str,
        storage: LocalStorage,
        remote: Optional[RemoteDocumentStore] = None,
        clock: Callable[[], int] = None,
        seed_defaults: bool = False,
    ):
        self.user_id = user_id
        self.username = username
        self.token = token
        clock = clock or MonotonicClock()
        self.store = BookmarkStore(user_id, storage, clock=clock, seed_defaults=seed_defaults)
        self.sync = SyncManager(user_id, self.store, storage, remote, clock=clock)

    async def open(self) -> "UserSession":
        await self.store.load()
        return self

    async def close(self):
        await self.sync.close()


class SessionManager:
    """进程级会话管理"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        remote: Optional[RemoteDocumentStore] = None,
        storage_quota: int = None,
        clock: Callable[[], int] = None,
        seed_defaults: bool = False,
    ):
        self.storage = LocalStorage(session_factory, quota=storage_quota)
        self.identity = IdentityStore(session_factory, self.storage)
        self.remote = remote
        self.current: Optional[UserSession] = None
        self._clock = clock or MonotonicClock()
        self._seed_defaults = seed_defaults

    async def register(self, username: str, password: str) -> UserSession:
        user_id = await self.identity.register(username, password)
        await self._teardown()
        return await self._open(user_id, username)

    async def login(self, username: str, password: str) -> UserSession:
        user_id = await self.identity.login(username, password)
        await self._teardown()
        return await self._open(user_id, username)

    async def logout(self):
        await self._teardown()
        await self.identity.logout()

    async def restore(self) -> Optional[UserSession]:
        """启动时恢复仍然有效的会话"""
        if not await self.identity.is_logged_in():
            return None
        user_id = await self.identity.current_user_id()
        username = await self.identity.current_user()
        session = await self._open(user_id, username)
        logger.info(f"[Session] 已恢复会话: {user_id}")
        return session

    async def close(self):
        await self._teardown()
        if self.remote is not None:
            await self.remote.close()

    async def _open(self, user_id: str, username: str) -> UserSession:
        token = await self.identity.session_token()
        session = UserSession(
            user_id,
            username,
            token,
            self.storage,
            remote=self.remote,
            clock=self._clock,
            seed_defaults=self._seed_defaults,
        )
        self.current = await session.open()
        return session

    async def _teardown(self):
        if self.current is not None:
            await self.current.close()
            self.current = None


_session_manager: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    """全局会话管理器（首次调用时按配置创建）"""
    global _session_manager
    if _session_manager is None:
        from ..config import settings
        from ..database import AsyncSessionLocal
        from .remote import build_remote_store

        _session_manager = SessionManager(
            AsyncSessionLocal,
            remote=build_remote_store(settings),
            storage_quota=settings.LOCAL_STORAGE_QUOTA,
            seed_defaults=settings.SEED_DEFAULT_DATA,
        )
    return _session_manager
