"""本地键值存储

每个用户的书签树、会话指针和最近一次本地修改时间都以整值 JSON
形式保存在 local_storage 表中。写入串行化，失败统一抛出 StorageError。
"""
from typing import Any, Optional
from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import asyncio
import json
import logging

from ..exceptions import StorageError
from ..models import LocalEntry

logger = logging.getLogger(__name__)

# 存储键
CURRENT_USER_KEY = "currentUser"
USER_ID_KEY = "userId"
SESSION_TOKEN_KEY = "sessionToken"
LAST_LOCAL_CHANGE_KEY = "lastLocalChange"


def data_key(user_id: str) -> str:
    """用户书签数据的存储键"""
    return f"bookmarkData_{user_id}"


def backup_key(user_id: str) -> str:
    """加载时发现无效的书签数据备份到这里"""
    return f"bookmarkData_{user_id}_invalid"


class LocalStorage:
    """基于 SQLAlchemy 的本地键值存储"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], quota: int = None):
        self._session_factory = session_factory
        self._quota = quota
        self._write_lock = asyncio.Lock()

    async def get_item(self, key: str) -> Optional[str]:
        """读取原始字符串值，不存在返回 None"""
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(LocalEntry.value).where(LocalEntry.key == key))
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"[Storage] 读取失败: {key} - {e}")
            raise StorageError("数据读取失败")

    async def set_item(self, key: str, value: str):
        """整值写入"""
        if self._quota is not None and len(value.encode("utf-8")) > self._quota:
            logger.warning(f"[Storage] 超出配额: {key} ({len(value)} 字符)")
            raise StorageError()

        async with self._write_lock:
            try:
                async with self._session_factory() as db:
                    entry = await db.get(LocalEntry, key)
                    if entry is None:
                        db.add(LocalEntry(key=key, value=value))
                    else:
                        entry.value = value
                    await db.commit()
            except SQLAlchemyError as e:
                logger.error(f"[Storage] 写入失败: {key} - {e}")
                raise StorageError()

    async def remove_item(self, key: str):
        async with self._write_lock:
            try:
                async with self._session_factory() as db:
                    await db.execute(delete(LocalEntry).where(LocalEntry.key == key))
                    await db.commit()
            except SQLAlchemyError as e:
                logger.error(f"[Storage] 删除失败: {key} - {e}")
                raise StorageError()

    async def get_json(self, key: str, default: Any = None) -> Any:
        """读取 JSON 值，损坏的数据按不存在处理"""
        raw = await self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"[Storage] 数据损坏，已忽略: {key}")
            return default

    async def set_json(self, key: str, value: Any):
        await self.set_item(key, json.dumps(value, ensure_ascii=False))

    async def get_last_local_change(self) -> int:
        """最近一次本地修改时间（毫秒），未记录时为 0"""
        raw = await self.get_item(LAST_LOCAL_CHANGE_KEY)
        try:
            return int(raw) if raw else 0
        except ValueError:
            return 0

    async def set_last_local_change(self, timestamp: int):
        await self.set_item(LAST_LOCAL_CHANGE_KEY, str(timestamp))
