"""书签相关 Schema"""
from pydantic import BaseModel, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError
from typing import Any, List, Optional
import json
import uuid

from ..exceptions import ValidationError

DEFAULT_COLOR = "#4CAF50"
HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{3}([0-9a-fA-F]{3})?$"


def new_id() -> str:
    """生成新的实体 ID"""
    return str(uuid.uuid4())


def normalize_url(url: str) -> str:
    """没有 http:// 或 https:// 前缀时补上 https://"""
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


class Bookmark(BaseModel):
    """书签"""
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    description: str = ""

    @field_validator("description", mode="before")
    @classmethod
    def empty_description(cls, v: Any) -> str:
        """旧数据中的 null 视为空字符串"""
        return "" if v is None else v


class Category(BaseModel):
    """分类（有序的书签集合）"""
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    color: str = DEFAULT_COLOR
    bookmarks: List[Bookmark]

    @field_validator("color", mode="before")
    @classmethod
    def default_color(cls, v: Any) -> str:
        return v or DEFAULT_COLOR


class CategoryCreate(BaseModel):
    """创建分类"""
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(DEFAULT_COLOR, pattern=HEX_COLOR_PATTERN)


class CategoryUpdate(BaseModel):
    """更新分类"""
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(..., pattern=HEX_COLOR_PATTERN)


class BookmarkCreate(BaseModel):
    """创建书签"""
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=2000)
    description: Optional[str] = ""


class BookmarkUpdate(BookmarkCreate):
    """更新书签"""
    pass


class MoveRequest(BaseModel):
    """拖拽排序：把 from_index 处的元素移动到 to_index"""
    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., ge=0)


class StatsResponse(BaseModel):
    """统计信息"""
    category_count: int
    bookmark_count: int


class ImportResponse(BaseModel):
    """导入结果"""
    success: bool
    category_count: int = 0


_tree_adapter = TypeAdapter(List[Category])


def parse_snapshot(data: Any) -> List[Category]:
    """解析并校验导出快照

    接受 {"categories": [...]} 或旧版的裸数组；字符串/字节先按 JSON 解析。
    每个分类必须有 name 和 bookmarks 数组，ID 在整个数据集中不得重复。
    """
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise ValidationError(f"JSON 格式错误: {e.msg}")

    if isinstance(data, dict):
        if "categories" not in data:
            raise ValidationError("缺少 categories 字段")
        data = data["categories"]

    if not isinstance(data, list):
        raise ValidationError("数据必须是分类数组")

    try:
        categories = _tree_adapter.validate_python(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"数据格式错误: {location} {first['msg']}")

    seen = set()
    for category in categories:
        for entity_id in [category.id] + [b.id for b in category.bookmarks]:
            if entity_id in seen:
                raise ValidationError(f"ID 重复: {entity_id}")
            seen.add(entity_id)

    return categories


def dump_tree(categories: List[Category]) -> list:
    """序列化分类树（保持顺序）"""
    return [c.model_dump() for c in categories]
