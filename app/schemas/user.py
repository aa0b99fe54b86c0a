"""
用户Schema模型
"""
from pydantic import BaseModel, Field
from typing import Optional


class UserCreate(BaseModel):
    """创建用户请求模型"""
    name: str = Field(..., min_length=1, max_length=255, description="用户名")
    password: str = Field(..., min_length=4, description="密码，至少4个字符")


class UserUpdate(BaseModel):
    """修改用户请求模型"""
    name: str = Field(..., min_length=1, max_length=255, description="用户名")
    password: Optional[str] = Field(None, min_length=4, description="新密码，为null表示不修改")


class UserResponse(BaseModel):
    """用户响应模型（不含密码）"""
    user_id: str
    name: str
    updated_at: int
