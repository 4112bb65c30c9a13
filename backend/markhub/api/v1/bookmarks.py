"""书签路由"""
from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import Response
from typing import Any, List, Optional

from ...schemas import (
    Bookmark, Category,
    CategoryCreate, CategoryUpdate, BookmarkCreate, BookmarkUpdate, MoveRequest,
    StatsResponse, ImportResponse,
)
from ...services.bookmarks import export_filename
from ...services.session import UserSession
from ..deps import get_current_session

router = APIRouter()


# ==================== 查询 ====================

@router.get("", response_model=List[Category])
async def get_bookmarks(
    q: Optional[str] = None,
    current: UserSession = Depends(get_current_session)
):
    """获取分类树（q 不为空时按名称/URL/描述搜索）"""
    return current.store.search(q or "")


@router.get("/stats", response_model=StatsResponse)
async def get_stats(current: UserSession = Depends(get_current_session)):
    """分类数与书签数"""
    return StatsResponse(**current.store.stats())


# ==================== 分类 ====================

@router.post("/categories", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_in: CategoryCreate,
    current: UserSession = Depends(get_current_session)
):
    """创建分类（追加到末尾）"""
    return await current.store.add_category(category_in.name, category_in.color)


@router.patch("/categories/{category_id}", response_model=Category)
async def update_category(
    category_id: str,
    category_in: CategoryUpdate,
    current: UserSession = Depends(get_current_session)
):
    """更新分类"""
    if not await current.store.update_category(category_id, category_in.name, category_in.color):
        raise HTTPException(status_code=404, detail="分类不存在")
    return current.store.get_category(category_id)


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: str,
    current: UserSession = Depends(get_current_session)
):
    """删除分类（连同其中的书签）"""
    if not await current.store.delete_category(category_id):
        raise HTTPException(status_code=404, detail="分类不存在")
    return {"message": "删除成功"}


@router.post("/categories/{category_id}/move", response_model=List[Category])
async def move_category(
    category_id: str,
    move: MoveRequest,
    current: UserSession = Depends(get_current_session)
):
    """拖拽调整分类顺序"""
    category = current.store.get_category(category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="分类不存在")
    if current.store.categories.index(category) != move.from_index:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="分类位置已变化，请刷新后重试")
    if not await current.store.move_category(move.from_index, move.to_index):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="无效的目标位置")
    return current.store.categories


# ==================== 书签 ====================

@router.post(
    "/categories/{category_id}/bookmarks",
    response_model=Bookmark,
    status_code=status.HTTP_201_CREATED,
)
async def create_bookmark(
    category_id: str,
    bookmark_in: BookmarkCreate,
    current: UserSession = Depends(get_current_session)
):
    """创建书签（URL 缺少协议时补 https://）"""
    bookmark = await current.store.add_bookmark(
        category_id, bookmark_in.name, bookmark_in.url, bookmark_in.description
    )
    if bookmark is None:
        raise HTTPException(status_code=404, detail="分类不存在")
    return bookmark


@router.patch("/categories/{category_id}/bookmarks/{bookmark_id}", response_model=Category)
async def update_bookmark(
    category_id: str,
    bookmark_id: str,
    bookmark_in: BookmarkUpdate,
    current: UserSession = Depends(get_current_session)
):
    """更新书签"""
    updated = await current.store.update_bookmark(
        category_id, bookmark_id, bookmark_in.name, bookmark_in.url, bookmark_in.description
    )
    if not updated:
        raise HTTPException(status_code=404, detail="书签不存在")
    return current.store.get_category(category_id)


@router.delete("/categories/{category_id}/bookmarks/{bookmark_id}")
async def delete_bookmark(
    category_id: str,
    bookmark_id: str,
    current: UserSession = Depends(get_current_session)
):
    """删除书签"""
    if not await current.store.delete_bookmark(category_id, bookmark_id):
        raise HTTPException(status_code=404, detail="书签不存在")
    return {"message": "删除成功"}


@router.post("/categories/{category_id}/bookmarks/move", response_model=Category)
async def move_bookmark(
    category_id: str,
    move: MoveRequest,
    current: UserSession = Depends(get_current_session)
):
    """拖拽调整分类内书签顺序"""
    if current.store.get_category(category_id) is None:
        raise HTTPException(status_code=404, detail="分类不存在")
    if not await current.store.move_bookmark(category_id, move.from_index, move.to_index):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="无效的目标位置")
    return current.store.get_category(category_id)


# ==================== 导入导出 ====================

@router.get("/export")
async def export_bookmarks(current: UserSession = Depends(get_current_session)):
    """导出为 JSON 文件"""
    return Response(
        content=current.store.export_snapshot(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_bookmarks(
    payload: Any = Body(...),
    current: UserSession = Depends(get_current_session)
):
    """导入 JSON（{"categories": [...]} 或旧版裸数组），整体替换现有数据"""
    if not await current.store.import_snapshot(payload):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="导入失败，文件格式不正确")
    return ImportResponse(success=True, category_count=len(current.store.categories))
