"""Pydantic Schemas"""
from .user import UserCreate, UserLogin, SessionResponse, UserResponse
from .bookmark import (
    Bookmark, Category,
    CategoryCreate, CategoryUpdate, BookmarkCreate, BookmarkUpdate, MoveRequest,
    StatsResponse, ImportResponse,
    parse_snapshot, dump_tree, normalize_url, new_id,
)
from .sync import RemoteDocument, SyncStatus, SyncNowRequest, SyncResult

__all__ = [
    "UserCreate", "UserLogin", "SessionResponse", "UserResponse",
    "Bookmark", "Category",
    "CategoryCreate", "CategoryUpdate", "BookmarkCreate", "BookmarkUpdate", "MoveRequest",
    "StatsResponse", "ImportResponse",
    "parse_snapshot", "dump_tree", "normalize_url", "new_id",
    "RemoteDocument", "SyncStatus", "SyncNowRequest", "SyncResult",
]
