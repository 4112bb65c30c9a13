"""用户相关 Schema"""
from pydantic import BaseModel, Field
from typing import Optional


class UserCreate(BaseModel):
    """用户注册（长度规则由身份服务校验，以便统一错误信息）"""
    username: str = Field("", max_length=50)
    password: str = Field("", max_length=100)


class UserLogin(BaseModel):
    """用户登录"""
    username: str = ""
    password: str = ""


class SessionResponse(BaseModel):
    """登录/注册成功响应"""
    access_token: str
    token_type: str = "bearer"
    user_id: str
    username: str


class UserResponse(BaseModel):
    """当前用户"""
    user_id: str
    username: Optional[str] = None
    logged_in: bool
