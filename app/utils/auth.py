"""
认证工具函数
"""
import time
from typing import Any, Dict, Optional

from fastapi import Depends, Header
from jose import JWTError, jwt

from app.core.config import AppConfig
from app.core.context import AppContext, get_context
from app.core.errors import UnauthenticatedError

ALGORITHM = "HS256"


def generate_token(cfg: AppConfig, user_id: str, name: str) -> str:
    """
    签发JWT

    Args:
        cfg: 当前配置，提供 jwt_secret 和 jwt_expires（分钟）
        user_id: 用户ID
        name: 用户名

    Returns:
        str: JWT token字符串
    """
    expires_at = int(time.time()) + cfg.jwt_expires * 60
    claims = {
        "id": user_id,
        "name": name,
        # 暂无权限模型，所有登录用户都视为管理员
        "admin": True,
        "expires_at": expires_at,
        "exp": expires_at,
    }
    return jwt.encode(claims, cfg.jwt_secret, algorithm=ALGORITHM)


def verify_token(cfg: AppConfig, token: str) -> Dict[str, Any]:
    """
    验证JWT

    Raises:
        UnauthenticatedError: token无效或过期
    """
    try:
        return jwt.decode(token, cfg.jwt_secret, algorithms=[ALGORITHM])
    except JWTError as e:
        raise UnauthenticatedError(f"token inválido: {e}") from e


async def get_current_claims(
    authorization: Optional[str] = Header(None),
    ctx: AppContext = Depends(get_context),
) -> Dict[str, Any]:
    """
    从 Authorization 请求头获取当前用户声明

    格式为 "Bearer {token}"
    """
    if not authorization:
        raise UnauthenticatedError("cabeçalho Authorization ausente")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthenticatedError("formato de autenticação inválido")
    return verify_token(ctx.config, parts[1])
