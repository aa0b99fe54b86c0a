"""
文件Schema模型
"""
import base64
import binascii
import uuid
from typing import Optional

from pydantic import BaseModel, Field


def decode_content(content: str) -> bytes:
    """
    解码文件内容

    content 按 base64 解析，不是合法 base64 时按 UTF-8 原文保存。
    """
    try:
        return base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError):
        return content.encode("utf-8")


class FileBase(BaseModel):
    """文件基础模型"""
    name: str = Field(..., min_length=1, max_length=255, description="文件名（不含扩展名）")
    extension: str = Field("", max_length=32, pattern=r"^(\.[A-Za-z0-9_.-]*)?$", description="扩展名，包含前导点")
    mimetype: str = Field(..., min_length=1, max_length=255, description="MIME类型")


class FileCreate(FileBase):
    """创建文件请求模型"""
    content: str = Field(..., description="base64编码的文件内容")


class FileUpdate(FileBase):
    """修改文件请求模型，categId 不同时移动到同一用户的另一个分类"""
    categId: uuid.UUID
    content: Optional[str] = Field(None, description="新内容，为null表示只修改元数据")


class FileResponse(BaseModel):
    """文件响应模型"""
    file_id: str
    categ_id: str
    name: str
    extension: str
    mimetype: str
    updated_at: int
