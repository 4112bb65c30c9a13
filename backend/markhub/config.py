"""应用配置"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional
from pathlib import Path
import os

# 确定项目根目录（支持本地开发和 Docker 部署）
# 本地开发: backend/markhub/config.py -> 项目根目录是 ../../
# Docker: /app/markhub/config.py -> 数据目录是 /app/data
_current_file = Path(__file__).resolve()
_backend_dir = _current_file.parent.parent  # backend 目录
_project_root = _backend_dir.parent  # 项目根目录

# 检测运行环境
if os.path.exists("/app/data"):
    # Docker 环境
    _data_dir = Path("/app/data")
    _env_file = Path("/app/.env") if Path("/app/.env").exists() else None
else:
    # 本地开发环境
    _data_dir = _project_root / "data"
    _env_file = _project_root / ".env" if (_project_root / ".env").exists() else None


class Settings(BaseSettings):
    """应用设置"""
    # 应用
    APP_NAME: str = "Markhub"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # 数据目录与数据库（本地键值存储和用户表共用）
    DATA_DIR: str = str(_data_dir)
    DATABASE_URL: str = f"sqlite+aiosqlite:///{_data_dir}/markhub.db"

    # 会话令牌
    JWT_SECRET_KEY: str = "change-this-secret-key-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30  # 30 天

    # 本地存储
    LOCAL_STORAGE_QUOTA: int = 5 * 1024 * 1024  # 单个值最大 5MB，与浏览器 localStorage 一致
    SEED_DEFAULT_DATA: bool = True  # 新用户首次加载时写入示例书签

    # 云端同步
    REMOTE_STORE: str = "none"  # none, memory, http
    REMOTE_STORE_URL: Optional[str] = None  # 如: https://sync.example.com/api
    REMOTE_STORE_TOKEN: Optional[str] = None
    REMOTE_POLL_INTERVAL: float = 5.0  # http 模式下轮询远端文档的间隔（秒）
    REMOTE_TIMEOUT: float = 15.0

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost",
        "http://localhost:80",
        "http://localhost:5173",
        "https://localhost",
        "https://localhost:5173",
    ]

    # 日志
    LOG_FILE: str = str(_data_dir / "markhub.log")
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = str(_env_file) if _env_file else ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


settings = get_settings()
