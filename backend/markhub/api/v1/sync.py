"""云端同步路由"""
from fastapi import APIRouter, Depends
from typing import List, Optional

from ...schemas import Category, SyncNowRequest, SyncResult, SyncStatus
from ...services.session import UserSession
from ..deps import get_current_session

router = APIRouter()


@router.get("/status", response_model=SyncStatus)
async def get_sync_status(current: UserSession = Depends(get_current_session)):
    """同步状态"""
    return current.sync.status()


@router.post("/enable", response_model=SyncResult)
async def enable_sync(current: UserSession = Depends(get_current_session)):
    """启用同步：上传本地数据并监听云端变更"""
    success = await current.sync.enable()
    return SyncResult(success=success, status=current.sync.status())


@router.post("/disable", response_model=SyncResult)
async def disable_sync(current: UserSession = Depends(get_current_session)):
    """停用同步"""
    current.sync.disable()
    return SyncResult(success=True, status=current.sync.status())


@router.post("/now", response_model=SyncResult)
async def sync_now(
    request: Optional[SyncNowRequest] = None,
    current: UserSession = Depends(get_current_session)
):
    """立即同步

    首次同步且云端已有数据时，按 prefer 决定保留本地数据还是采用云端数据。
    """
    prefer = request.prefer if request else "local"

    async def choose(remote_categories: List[Category]) -> bool:
        return prefer == "remote"

    success = await current.sync.sync_now(choose)
    return SyncResult(success=success, status=current.sync.status())
