"""FastAPI 应用入口"""
import logging
import logging.config
import os

from .config import settings

# 日志配置
os.makedirs(os.path.dirname(settings.LOG_FILE) or ".", exist_ok=True)

logging.config.dictConfig({
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {"format": "%(levelname)s:%(name)s:%(message)s"}
    },
    "handlers": {
        "file": {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "filename": settings.LOG_FILE,
            "mode": "a",
            "encoding": "utf-8"
        },
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        }
    },
    "root": {
        "level": settings.LOG_LEVEL,
        "handlers": ["file", "console"]
    },
    "loggers": {
        "markhub": {"level": settings.LOG_LEVEL},
        "httpx": {"level": "WARNING"},
    }
})

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .database import init_db
from .api import api_router
from .exceptions import MarkhubError
from .services.session import get_session_manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时
    await init_db()

    manager = get_session_manager()
    session = await manager.restore()
    if session is not None:
        print(f"🔑 已恢复用户会话: {session.username}")

    print(f"🚀 {settings.APP_NAME} v{settings.APP_VERSION} 启动成功")
    yield
    # 关闭时
    print("👋 正在清理资源...")
    try:
        await manager.close()
    except MarkhubError as e:
        print(f"⚠️ 关闭会话失败: {e.message}")
    print("👋 应用关闭完成")


# 创建应用
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="个人书签管理 API",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MarkhubError)
async def markhub_error_handler(request: Request, exc: MarkhubError):
    """业务异常统一转为 JSON 响应"""
    if exc.status_code >= 500:
        logger.error(f"[API] {request.method} {request.url.path} - {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# 注册路由
app.include_router(api_router, prefix="/api")


# 健康检查
@app.get("/health", tags=["系统"], summary="健康检查")
async def health_check():
    """检查服务运行状态"""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION
    }


# 根路由
@app.get("/", tags=["系统"], summary="欢迎页")
async def root():
    """返回 API 基本信息"""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/api/docs"
    }
