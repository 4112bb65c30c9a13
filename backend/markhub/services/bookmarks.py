"""书签存储：内存中的分类树 + 每次修改后整树持久化"""
from datetime import date
from typing import Any, Callable, Dict, List, Optional
import json
import logging

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import StorageError, ValidationError
from ..schemas.bookmark import (
    Bookmark,
    Category,
    dump_tree,
    new_id,
    normalize_url,
    parse_snapshot,
)
from ..utils.clock import MonotonicClock
from .local_storage import LocalStorage, backup_key, data_key

logger = logging.getLogger(__name__)

SaveHook = Callable[[list], None]
ChangeListener = Callable[[str], None]


def default_categories() -> List[Category]:
    """新用户的示例数据"""
    samples = [
        ("兴趣", "#4CAF50", [
            ("YouTube", "https://www.youtube.com", "视频分享网站"),
            ("Netflix", "https://www.netflix.com", "流媒体视频"),
        ]),
        ("私人", "#2196F3", [
            ("Gmail", "https://mail.google.com", "邮件"),
            ("日历", "https://calendar.google.com", "日程管理"),
        ]),
        ("工作", "#FF5722", [
            ("Slack", "https://slack.com", "团队沟通"),
            ("Zoom", "https://zoom.us", "视频会议"),
        ]),
        ("学习", "#9C27B0", [
            ("Google", "https://www.google.com", "搜索引擎"),
            ("Wikipedia", "https://zh.wikipedia.org", "在线百科"),
        ]),
    ]
    return [
        Category(
            name=name,
            color=color,
            bookmarks=[Bookmark(name=n, url=u, description=d) for n, u, d in items],
        )
        for name, color, items in samples
    ]


def export_filename(today: date = None) -> str:
    """导出文件名，如 bookmarks_2024-05-01.json"""
    return f"bookmarks_{(today or date.today()).isoformat()}.json"


def _build(model: type, data: dict) -> BaseModel:
    """按模型校验构造；失败转为业务 ValidationError"""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"{location} {first['msg']}")


def _move(items: list, from_index: int, to_index: int) -> bool:
    if from_index == to_index:
        return False
    if not (0 <= from_index < len(items) and 0 <= to_index < len(items)):
        return False
    item = items.pop(from_index)
    items.insert(to_index, item)
    return True


class BookmarkStore:
    """当前登录用户的分类树

    所有修改都是先改内存再整树写入本地存储。写入失败抛出 StorageError，
    但内存中的修改不会回滚。写入成功后调用保存钩子（同步管理器借此安排推送）。
    """

    def __init__(
        self,
        user_id: str,
        storage: LocalStorage,
        clock: Callable[[], int] = None,
        seed_defaults: bool = False,
    ):
        self.user_id = user_id
        self.categories: List[Category] = []
        self._storage = storage
        self._clock = clock or MonotonicClock()
        self._seed_defaults = seed_defaults
        self._save_hooks: List[SaveHook] = []
        self._listeners: List[ChangeListener] = []

    # ==================== 持久化 ====================

    async def load(self) -> List[Category]:
        """从本地存储加载；没有数据或数据无效时使用示例数据（不立即写入）

        无效数据会先备份到 backup_key，原键保持不变直到下一次修改。
        """
        raw = await self._storage.get_item(data_key(self.user_id))
        categories = None
        if raw is not None:
            try:
                categories = parse_snapshot(raw)
            except ValidationError as e:
                logger.error(f"[Store] 本地数据无效，已忽略: {self.user_id} - {e.message}")
                await self._backup_invalid(raw)

        if categories is None:
            categories = default_categories() if self._seed_defaults else []

        self.categories = categories
        logger.info(f"[Store] 已加载 {len(categories)} 个分类: {self.user_id}")
        return self.categories

    async def _backup_invalid(self, raw: str):
        """无效数据另存一份，下次保存覆盖原键后仍可手工恢复"""
        try:
            await self._storage.set_item(backup_key(self.user_id), raw)
        except StorageError as e:
            logger.error(f"[Store] 无效数据备份失败: {self.user_id} - {e.message}")
            return
        logger.warning(f"[Store] 无效数据已备份到 {backup_key(self.user_id)}")

    async def save(self, sync: bool = True):
        """整树写入本地存储并记录 lastLocalChange"""
        tree = dump_tree(self.categories)
        await self._storage.set_json(data_key(self.user_id), tree)
        await self._storage.set_last_local_change(self._clock())
        if sync:
            for hook in self._save_hooks:
                hook(tree)

    def add_save_hook(self, hook: SaveHook):
        self._save_hooks.append(hook)

    def remove_save_hook(self, hook: SaveHook):
        if hook in self._save_hooks:
            self._save_hooks.remove(hook)

    def add_listener(self, listener: ChangeListener):
        """注册变更监听（展示层据此重新渲染）"""
        self._listeners.append(listener)

    async def _commit(self, reason: str, sync: bool = True):
        try:
            await self.save(sync=sync)
        finally:
            for listener in self._listeners:
                listener(reason)

    # ==================== 分类 ====================

    def get_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    async def add_category(self, name: str, color: str) -> Category:
        """追加到末尾"""
        category = _build(Category, {"id": new_id(), "name": name, "color": color, "bookmarks": []})
        self.categories.append(category)
        await self._commit("category_added")
        return category

    async def update_category(self, category_id: str, name: str, color: str) -> bool:
        category = self.get_category(category_id)
        if category is None:
            return False
        updated = _build(Category, {**category.model_dump(), "name": name, "color": color})
        category.name = updated.name
        category.color = updated.color
        await self._commit("category_updated")
        return True

    async def delete_category(self, category_id: str) -> bool:
        """删除分类及其全部书签"""
        category = self.get_category(category_id)
        if category is None:
            return False
        self.categories.remove(category)
        await self._commit("category_deleted")
        return True

    async def move_category(self, from_index: int, to_index: int) -> bool:
        if not _move(self.categories, from_index, to_index):
            return False
        await self._commit("category_moved")
        return True

    # ==================== 书签 ====================

    async def add_bookmark(
        self, category_id: str, name: str, url: str, description: str = ""
    ) -> Optional[Bookmark]:
        category = self.get_category(category_id)
        if category is None:
            return None
        bookmark = _build(Bookmark, {
            "id": new_id(),
            "name": name,
            "url": url and normalize_url(url),
            "description": description,
        })
        category.bookmarks.append(bookmark)
        await self._commit("bookmark_added")
        return bookmark

    async def update_bookmark(
        self, category_id: str, bookmark_id: str, name: str, url: str, description: str = ""
    ) -> bool:
        category = self.get_category(category_id)
        if category is None:
            return False
        bookmark = next((b for b in category.bookmarks if b.id == bookmark_id), None)
        if bookmark is None:
            return False
        updated = _build(Bookmark, {
            "id": bookmark.id,
            "name": name,
            "url": url and normalize_url(url),
            "description": description,
        })
        bookmark.name = updated.name
        bookmark.url = updated.url
        bookmark.description = updated.description
        await self._commit("bookmark_updated")
        return True

    async def delete_bookmark(self, category_id: str, bookmark_id: str) -> bool:
        category = self.get_category(category_id)
        if category is None:
            return False
        bookmark = next((b for b in category.bookmarks if b.id == bookmark_id), None)
        if bookmark is None:
            return False
        category.bookmarks.remove(bookmark)
        await self._commit("bookmark_deleted")
        return True

    async def move_bookmark(self, category_id: str, from_index: int, to_index: int) -> bool:
        """同一分类内调整书签顺序"""
        category = self.get_category(category_id)
        if category is None or not _move(category.bookmarks, from_index, to_index):
            return False
        await self._commit("bookmark_moved")
        return True

    # ==================== 查询 ====================

    def search(self, query: str) -> List[Category]:
        """按名称、URL、描述做不区分大小写的子串匹配

        只返回至少有一个匹配书签的分类；空查询返回完整的树。返回的是副本。
        """
        if not query or not query.strip():
            return [c.model_copy(deep=True) for c in self.categories]

        needle = query.lower()
        results = []
        for category in self.categories:
            matched = [
                b.model_copy()
                for b in category.bookmarks
                if needle in b.name.lower()
                or needle in b.url.lower()
                or needle in b.description.lower()
            ]
            if matched:
                results.append(category.model_copy(update={"bookmarks": matched}))
        return results

    def stats(self) -> Dict[str, int]:
        return {
            "category_count": len(self.categories),
            "bookmark_count": sum(len(c.bookmarks) for c in self.categories),
        }

    # ==================== 导入导出 ====================

    def export_snapshot(self) -> str:
        return json.dumps({"categories": dump_tree(self.categories)}, ensure_ascii=False, indent=2)

    async def import_snapshot(self, data: Any) -> bool:
        """校验后整体替换分类树；格式错误返回 False 而不抛异常"""
        try:
            categories = parse_snapshot(data)
        except ValidationError as e:
            logger.warning(f"[Store] 导入失败: {e.message}")
            return False

        self.categories = categories
        await self._commit("imported")
        logger.info(f"[Store] 已导入 {len(categories)} 个分类: {self.user_id}")
        return True

    async def replace_categories(self, categories: List[Category], sync: bool = False):
        """用外部（云端）的树覆盖本地，默认不再触发推送"""
        self.categories = [c.model_copy(deep=True) for c in categories]
        await self._commit("replaced", sync=sync)
