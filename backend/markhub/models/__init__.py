"""数据模型"""
from .user import User
from .local_storage import LocalEntry

__all__ = [
    "User",
    "LocalEntry",
]
