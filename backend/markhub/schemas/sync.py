"""同步相关 Schema"""
from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from .bookmark import Category


class RemoteDocument(BaseModel):
    """远端文档：每个用户一份，整份覆盖"""
    categories: List[Category] = []
    last_modified: int = Field(0, alias="lastModified")

    class Config:
        populate_by_name = True

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class SyncStatus(BaseModel):
    """同步状态"""
    user_id: str
    state: str
    sync_enabled: bool
    last_sync_time: Optional[int] = None
    last_error: Optional[str] = None
    pending_pushes: int = 0


class SyncNowRequest(BaseModel):
    """立即同步：云端已有数据时保留本地还是采用云端"""
    prefer: Literal["local", "remote"] = "local"


class SyncResult(BaseModel):
    """同步操作结果"""
    success: bool
    status: SyncStatus
