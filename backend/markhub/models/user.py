"""用户模型"""
from sqlalchemy import Column, String, DateTime
from datetime import datetime

from ..database import Base


class User(Base):
    """用户表

    主键是由用户名派生的 user_id（见 utils.security.derive_user_id），
    同时也是该用户书签数据的存储键。
    """
    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    username = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
