"""
分类管理API
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends

from app.core.context import AppContext, get_context
from app.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from app.schemas.common import ERROR_RESPONSES, MessageResponse
from app.services.query_service import QueryService
from app.services.store_service import StoreService
from app.utils.auth import get_current_claims
from app.utils.deadline import with_deadline

router = APIRouter(
    prefix="/user/{user_id}/category",
    tags=["分类管理"],
    dependencies=[Depends(get_current_claims)],
    responses=ERROR_RESPONSES,
)


@router.post("", response_model=MessageResponse, response_model_exclude_none=True)
async def create_category(user_id: uuid.UUID, body: CategoryCreate, ctx: AppContext = Depends(get_context)):
    """
    在用户下创建分类
    """
    user = await QueryService.get_user(ctx, str(user_id))
    categ_id = await with_deadline(StoreService.create_category(ctx, user.user_id, body.name))
    return MessageResponse(message="Categoria criada com sucesso.", id=categ_id)


@router.get("", response_model=List[CategoryResponse])
async def list_categories(user_id: uuid.UUID, ctx: AppContext = Depends(get_context)):
    """
    获取用户的所有分类
    """
    return await QueryService.get_categories(ctx, str(user_id))


@router.get("/{categ_id}", response_model=CategoryResponse)
async def get_category(user_id: uuid.UUID, categ_id: uuid.UUID, ctx: AppContext = Depends(get_context)):
    """
    获取分类详情
    """
    return await QueryService.get_owned_category(ctx, str(user_id), str(categ_id))


@router.patch("/{categ_id}", response_model=MessageResponse, response_model_exclude_none=True)
async def update_category(
    user_id: uuid.UUID,
    categ_id: uuid.UUID,
    body: CategoryUpdate,
    ctx: AppContext = Depends(get_context),
):
    """
    修改分类名称，或把分类移动到另一个用户下（分类必须为空）
    """
    old = await QueryService.get_owned_category(ctx, str(user_id), str(categ_id))
    await with_deadline(StoreService.update_category(ctx, old, str(body.userId), body.name))
    return MessageResponse(message="Categoria alterada com sucesso.")


@router.delete("/{categ_id}", response_model=MessageResponse, response_model_exclude_none=True)
async def delete_category(user_id: uuid.UUID, categ_id: uuid.UUID, ctx: AppContext = Depends(get_context)):
    """
    删除分类，分类下还有文件时失败
    """
    categ = await QueryService.get_owned_category(ctx, str(user_id), str(categ_id))
    await with_deadline(StoreService.delete_category(ctx, categ))
    return MessageResponse(message="Categoria removida com sucesso.")
