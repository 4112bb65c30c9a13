"""安全相关工具"""
from datetime import datetime, timedelta
from typing import Optional
import re
from jose import jwt, JWTError
from passlib.context import CryptContext

from ..config import settings

# 密码摘要上下文
# 注意：hex_sha256 是无盐、单轮的通用摘要，并非凭据级哈希。
# 为兼容已存储的用户记录而保留，升级算法会使旧记录无法登录。
pwd_context = CryptContext(schemes=["hex_sha256"])

USER_ID_PREFIX = "user_"

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def hash_password(password: str) -> str:
    """哈希密码（SHA-256 十六进制摘要）"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    return pwd_context.verify(plain_password, hashed_password)


def derive_user_id(username: str) -> str:
    """由用户名派生 user_id

    小写化后把 [a-z0-9] 之外的字符替换为 "_"。派生是有损的，
    "a.b" 与 "a_b" 会得到同一个 user_id。
    """
    return USER_ID_PREFIX + _NON_ALNUM.sub("_", username.lower())


def create_session_token(user_id: str) -> str:
    """创建会话令牌"""
    expire = datetime.utcnow() + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": user_id,
        "exp": expire,
        "type": "session"
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """解码令牌"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return payload
    except JWTError:
        return None
