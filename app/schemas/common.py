"""
通用Schema模型
"""
from pydantic import AliasChoices, BaseModel, Field
from typing import Optional


class MessageResponse(BaseModel):
    """标准响应模型"""
    message: str
    id: Optional[str] = None


class ErrorResponse(BaseModel):
    """错误响应模型"""
    message: str
    error: str


# 路由统一声明的错误响应
ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


class LoginRequest(BaseModel):
    """登录请求模型"""
    username: str = Field(..., min_length=1, validation_alias=AliasChoices("username", "name"))
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """登录响应模型"""
    token: str
    message: str
