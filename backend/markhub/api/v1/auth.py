"""认证路由"""
from fastapi import APIRouter, Depends, status

from ...schemas import UserCreate, UserLogin, SessionResponse, UserResponse
from ...services.session import SessionManager, UserSession, get_session_manager
from ..deps import get_current_session

router = APIRouter()


def _session_response(session: UserSession) -> SessionResponse:
    return SessionResponse(
        access_token=session.token,
        user_id=session.user_id,
        username=session.username,
    )


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def register(user_in: UserCreate, manager: SessionManager = Depends(get_session_manager)):
    """用户注册（成功后直接登录）"""
    session = await manager.register(user_in.username, user_in.password)
    return _session_response(session)


@router.post("/login", response_model=SessionResponse)
async def login(user_in: UserLogin, manager: SessionManager = Depends(get_session_manager)):
    """用户登录"""
    session = await manager.login(user_in.username, user_in.password)
    return _session_response(session)


@router.post("/logout")
async def logout(
    current: UserSession = Depends(get_current_session),
    manager: SessionManager = Depends(get_session_manager),
):
    """登出（数据保留在本地，下次登录继续使用）"""
    await manager.logout()
    return {"message": "已登出"}


@router.get("/me", response_model=UserResponse)
async def get_me(current: UserSession = Depends(get_current_session)):
    """获取当前用户"""
    return UserResponse(user_id=current.user_id, username=current.username, logged_in=True)
