"""
管理员服务
"""
import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.context import AppContext
from app.core.errors import DBError
from app.schemas.user import UserResponse
from app.services.store_service import StoreService

logger = logging.getLogger(__name__)


class AdminService:
    """管理员账号维护"""

    @classmethod
    async def reset_password(cls, ctx: AppContext, username: str, password: str) -> bool:
        """
        重置管理员密码

        管理员不存在时通过协调器创建（同时创建用户目录），存在时只更新密码和 updated_at。

        Args:
            ctx: 应用上下文
            username: 管理员用户名
            password: 新密码

        Returns:
            bool: True 表示新建，False 表示更新
        """
        try:
            async with ctx.use() as state, state.sessionmaker() as session:
                result = await session.execute(
                    text(state.queries.select_user_id_by_name()), {"name": username}
                )
                rows = result.all()
        except SQLAlchemyError as e:
            raise DBError(str(e)) from e

        if not rows:
            user_id = await StoreService.create_user(ctx, username, password)
            logger.info("Administrador %s criado: %s", username, user_id)
            return True

        user_id = rows[0][0]
        old = UserResponse(user_id=user_id, name=username, updated_at=0)
        await StoreService.update_user(ctx, old, username, password)
        logger.info("Senha do administrador %s atualizada", username)
        return False
