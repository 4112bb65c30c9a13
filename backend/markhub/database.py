"""数据库配置"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import event
from .config import settings
import os

# 确保数据目录存在
os.makedirs(settings.DATA_DIR, exist_ok=True)


class Base(DeclarativeBase):
    """模型基类"""
    pass


def set_sqlite_pragma(dbapi_connection, connection_record):
    """SQLite 性能优化"""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA temp_store=MEMORY")
    cursor.close()


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """创建异步引擎（SQLite 自动挂载 PRAGMA）"""
    new_engine = create_async_engine(url, echo=echo, future=True)
    if url.startswith("sqlite"):
        event.listen(new_engine.sync_engine, "connect", set_sqlite_pragma)
    return new_engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """创建异步会话工厂"""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


# 创建异步引擎
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# 异步会话工厂
AsyncSessionLocal = build_session_factory(engine)


async def init_db(bind: AsyncEngine = None):
    """初始化数据库表"""
    from . import models  # noqa: F401  注册所有表

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
