"""
登录API
"""
from fastapi import APIRouter, Depends, Response

from app.core.context import AppContext, get_context
from app.schemas.common import ERROR_RESPONSES, LoginRequest, LoginResponse
from app.services.query_service import QueryService
from app.utils.auth import generate_token

router = APIRouter(tags=["认证"], responses=ERROR_RESPONSES)


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    ctx: AppContext = Depends(get_context),
):
    """
    用户名密码登录

    成功时返回token，同时写入 Authorization 响应头
    """
    user = await QueryService.get_credentials(ctx, body.username, body.password)
    token = generate_token(ctx.config, user.user_id, user.name)
    response.headers["Authorization"] = f"Bearer {token}"
    return LoginResponse(token=token, message="Usuário autenticado com sucesso.")
