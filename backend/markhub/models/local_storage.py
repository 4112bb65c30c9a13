"""本地键值存储模型"""
from sqlalchemy import Column, String, DateTime, Text
from datetime import datetime

from ..database import Base


class LocalEntry(Base):
    """本地存储表（整值读写，无局部更新）"""
    __tablename__ = "local_storage"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
