"""
分类Schema模型
"""
import uuid

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    """创建分类请求模型"""
    name: str = Field(..., min_length=1, max_length=255, description="分类名称")


class CategoryUpdate(BaseModel):
    """修改分类请求模型，userId 不同时把分类移动到另一个用户下"""
    userId: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255, description="分类名称")


class CategoryResponse(BaseModel):
    """分类响应模型"""
    categ_id: str
    user_id: str
    name: str
    updated_at: int
