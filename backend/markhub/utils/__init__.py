"""工具函数"""
from .clock import now_ms, MonotonicClock
from .security import (
    hash_password,
    verify_password,
    derive_user_id,
    create_session_token,
    decode_token,
)

__all__ = [
    "now_ms", "MonotonicClock",
    "hash_password", "verify_password", "derive_user_id", "create_session_token", "decode_token",
]
