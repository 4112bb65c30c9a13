"""业务服务"""
from .local_storage import LocalStorage, backup_key, data_key
from .identity import IdentityStore
from .bookmarks import BookmarkStore, default_categories, export_filename
from .remote import RemoteDocumentStore, MemoryDocumentStore, HttpDocumentStore, build_remote_store
from .sync import SyncManager, SyncState, PushWorker
from .session import UserSession, SessionManager, get_session_manager

__all__ = [
    "LocalStorage", "backup_key", "data_key",
    "IdentityStore",
    "BookmarkStore", "default_categories", "export_filename",
    "RemoteDocumentStore", "MemoryDocumentStore", "HttpDocumentStore", "build_remote_store",
    "SyncManager", "SyncState", "PushWorker",
    "UserSession", "SessionManager", "get_session_manager",
]
