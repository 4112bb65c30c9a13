"""身份服务：注册、登录、会话标记"""
from typing import Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import logging

from ..exceptions import ValidationError, ConflictError, AuthError, StorageError
from ..models import User
from ..utils.security import (
    hash_password,
    verify_password,
    derive_user_id,
    create_session_token,
    decode_token,
)
from .local_storage import LocalStorage, CURRENT_USER_KEY, USER_ID_KEY, SESSION_TOKEN_KEY

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 4

# 登录失败统一提示，避免泄露用户是否存在
INVALID_CREDENTIALS = "用户名或密码错误"


class IdentityStore:
    """用户记录保存在 users 表，会话标记保存在本地存储"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], storage: LocalStorage):
        self._session_factory = session_factory
        self._storage = storage

    async def register(self, username: str, password: str) -> str:
        """注册新用户并建立会话，返回 user_id"""
        if not username or not password:
            raise ValidationError("请输入用户名和密码")
        if len(username) < MIN_USERNAME_LENGTH:
            raise ValidationError(f"用户名至少 {MIN_USERNAME_LENGTH} 个字符")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"密码至少 {MIN_PASSWORD_LENGTH} 个字符")

        user_id = derive_user_id(username)
        try:
            async with self._session_factory() as db:
                if await db.get(User, user_id) is not None:
                    raise ConflictError()
                db.add(User(
                    id=user_id,
                    username=username,
                    password_hash=hash_password(password)
                ))
                await db.commit()
        except IntegrityError:
            raise ConflictError()
        except SQLAlchemyError as e:
            logger.error(f"[Auth] 创建用户失败: {user_id} - {e}")
            raise StorageError()

        logger.info(f"[Auth] 注册成功: {user_id}")
        await self._establish_session(username, user_id)
        return user_id

    async def login(self, username: str, password: str) -> str:
        """校验凭据并建立会话，返回 user_id"""
        if not username or not password:
            raise ValidationError("请输入用户名和密码")

        user_id = derive_user_id(username)
        user = await self._get_user(user_id)
        if user is None or not verify_password(password, user.password_hash):
            logger.info(f"[Auth] 登录失败: {user_id}")
            raise AuthError(INVALID_CREDENTIALS)

        logger.info(f"[Auth] 登录成功: {user_id}")
        await self._establish_session(username, user_id)
        return user_id

    async def logout(self):
        """清除会话标记；userId 保留，下次登录复用同一份数据"""
        await self._storage.remove_item(CURRENT_USER_KEY)
        await self._storage.remove_item(SESSION_TOKEN_KEY)
        logger.info("[Auth] 已登出")

    async def is_logged_in(self) -> bool:
        """会话标记存在且可解析"""
        if not await self.current_user():
            return False
        token = await self.session_token()
        payload = decode_token(token) if token else None
        if payload is None:
            return False
        user_id = await self.current_user_id()
        if payload.get("sub") != user_id:
            return False
        return await self._get_user(user_id) is not None

    async def current_user(self) -> Optional[str]:
        return await self._storage.get_item(CURRENT_USER_KEY)

    async def current_user_id(self) -> Optional[str]:
        return await self._storage.get_item(USER_ID_KEY)

    async def session_token(self) -> Optional[str]:
        return await self._storage.get_item(SESSION_TOKEN_KEY)

    async def _establish_session(self, username: str, user_id: str):
        await self._storage.set_item(CURRENT_USER_KEY, username)
        await self._storage.set_item(USER_ID_KEY, user_id)
        await self._storage.set_item(SESSION_TOKEN_KEY, create_session_token(user_id))

    async def _get_user(self, user_id: str) -> Optional[User]:
        try:
            async with self._session_factory() as db:
                return await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error(f"[Auth] 查询用户失败: {user_id} - {e}")
            raise StorageError("数据读取失败")
