"""
用户管理API
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends

from app.core.context import AppContext, get_context
from app.schemas.common import ERROR_RESPONSES, ErrorResponse, MessageResponse
from app.schemas.user import UserCreate, UserResponse, UserUpdate
from app.services.query_service import QueryService
from app.services.store_service import StoreService
from app.utils.auth import get_current_claims
from app.utils.deadline import with_deadline

router = APIRouter(
    prefix="/user",
    tags=["用户管理"],
    responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse}},
)


@router.post("", response_model=MessageResponse, response_model_exclude_none=True)
async def create_user(body: UserCreate, ctx: AppContext = Depends(get_context)):
    """
    创建用户（无需登录）
    """
    user_id = await with_deadline(StoreService.create_user(ctx, body.name, body.password))
    return MessageResponse(message="Usuário criado com sucesso.", id=user_id)


@router.get("", response_model=List[UserResponse], dependencies=[Depends(get_current_claims)])
async def list_users(ctx: AppContext = Depends(get_context)):
    """
    获取所有用户
    """
    return await QueryService.get_all_users(ctx)


@router.get("/{user_id}", response_model=UserResponse, dependencies=[Depends(get_current_claims)])
async def get_user(user_id: uuid.UUID, ctx: AppContext = Depends(get_context)):
    """
    获取用户详情
    """
    return await QueryService.get_user(ctx, str(user_id))


@router.patch("/{user_id}", response_model=MessageResponse, response_model_exclude_none=True,
              dependencies=[Depends(get_current_claims)])
async def update_user(user_id: uuid.UUID, body: UserUpdate, ctx: AppContext = Depends(get_context)):
    """
    修改用户名或密码
    """
    old = await QueryService.get_user(ctx, str(user_id))
    await with_deadline(StoreService.update_user(ctx, old, body.name, body.password))
    return MessageResponse(message="Usuário alterado com sucesso.")


@router.delete("/{user_id}", response_model=MessageResponse, response_model_exclude_none=True,
               dependencies=[Depends(get_current_claims)])
async def delete_user(user_id: uuid.UUID, ctx: AppContext = Depends(get_context)):
    """
    删除用户，用户下还有分类时失败
    """
    user = await QueryService.get_user(ctx, str(user_id))
    await with_deadline(StoreService.delete_user(ctx, user.user_id))
    return MessageResponse(message="Usuário removido com sucesso.")
