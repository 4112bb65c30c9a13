"""Markhub - 个人书签管理服务"""

__version__ = "1.0.0"
