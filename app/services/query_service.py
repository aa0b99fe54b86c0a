"""
只读查询服务

只访问数据库，不触碰文件系统；返回给调用方的用户数据从不包含密码哈希。
"""
import asyncio
import logging
from typing import List

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.context import AppContext, ContextState
from app.core.errors import DBError, NotFoundError, UnauthenticatedError
from app.schemas.category import CategoryResponse
from app.schemas.file import FileResponse
from app.schemas.user import UserResponse
from app.services.password import verify_password

logger = logging.getLogger(__name__)


def _user(row) -> UserResponse:
    user_id, name, updated_at = row
    return UserResponse(user_id=user_id, name=name, updated_at=updated_at)


def _category(row) -> CategoryResponse:
    categ_id, user_id, name, updated_at = row
    return CategoryResponse(categ_id=categ_id, user_id=user_id, name=name, updated_at=updated_at)


def _file(row) -> FileResponse:
    file_id, categ_id, name, extension, mimetype, updated_at = row
    # Oracle 把空字符串存成 NULL
    return FileResponse(
        file_id=file_id,
        categ_id=categ_id,
        name=name,
        extension=extension or "",
        mimetype=mimetype,
        updated_at=updated_at,
    )


class QueryService:
    """元数据查询"""

    @staticmethod
    async def _fetch_all(state: ContextState, sql: str, params: dict) -> list:
        try:
            async with state.sessionmaker() as session:
                result = await session.execute(text(sql), params)
                return result.all()
        except SQLAlchemyError as e:
            raise DBError(str(e)) from e

    @classmethod
    async def _fetch_one(cls, state: ContextState, sql: str, params: dict, message: str):
        rows = await cls._fetch_all(state, sql, params)
        if not rows:
            raise NotFoundError(f"{message} {params}", message=message)
        return rows[0]

    @classmethod
    async def get_all_users(cls, ctx: AppContext) -> List[UserResponse]:
        async with ctx.use() as state:
            rows = await cls._fetch_all(state, state.queries.select_all_users(), {})
        return [_user(row) for row in rows]

    @classmethod
    async def get_user(cls, ctx: AppContext, user_id: str) -> UserResponse:
        """
        按ID查询用户

        Raises:
            NotFoundError: 用户不存在
        """
        async with ctx.use() as state:
            row = await cls._fetch_one(state, state.queries.select_user_by_id(), {"user_id": user_id}, "Usuário não encontrado.")
        return _user(row)

    @classmethod
    async def get_categories(cls, ctx: AppContext, user_id: str) -> List[CategoryResponse]:
        async with ctx.use() as state:
            rows = await cls._fetch_all(state, state.queries.select_categories_by_user(), {"user_id": user_id})
        return [_category(row) for row in rows]

    @classmethod
    async def get_category(cls, ctx: AppContext, categ_id: str) -> CategoryResponse:
        async with ctx.use() as state:
            row = await cls._fetch_one(state, state.queries.select_category_by_id(), {"categ_id": categ_id}, "Categoria não encontrada.")
        return _category(row)

    @classmethod
    async def get_files(cls, ctx: AppContext, categ_id: str) -> List[FileResponse]:
        async with ctx.use() as state:
            rows = await cls._fetch_all(state, state.queries.select_files_by_category(), {"categ_id": categ_id})
        return [_file(row) for row in rows]

    @classmethod
    async def get_file(cls, ctx: AppContext, file_id: str) -> FileResponse:
        async with ctx.use() as state:
            row = await cls._fetch_one(state, state.queries.select_file_by_id(), {"file_id": file_id}, "Arquivo não encontrado.")
        return _file(row)

    @classmethod
    async def get_credentials(cls, ctx: AppContext, name: str, password: str) -> UserResponse:
        """
        校验登录凭据

        同名用户可能短暂存在多行，逐行校验哈希直到匹配。

        Raises:
            UnauthenticatedError: 没有匹配的用户
        """
        async with ctx.use() as state:
            rows = await cls._fetch_all(state, state.queries.select_credentials(), {"name": name})
        for user_id, user_name, hashed in rows:
            if await asyncio.to_thread(verify_password, hashed, password):
                return UserResponse(user_id=user_id, name=user_name, updated_at=0)
        logger.info("Falha de autenticação para %s", name)
        raise UnauthenticatedError(f"credenciais inválidas para {name}")

    @classmethod
    async def get_owned_category(cls, ctx: AppContext, user_id: str, categ_id: str) -> CategoryResponse:
        """按ID查询分类，分类不属于该用户时视为不存在"""
        categ = await cls.get_category(ctx, categ_id)
        if categ.user_id != user_id:
            raise NotFoundError(f"categoria {categ_id} não pertence a {user_id}", message="Categoria não encontrada.")
        return categ

    @classmethod
    async def get_owned_file(cls, ctx: AppContext, categ: CategoryResponse, file_id: str) -> FileResponse:
        """按ID查询文件，文件不属于该分类时视为不存在"""
        file = await cls.get_file(ctx, file_id)
        if file.categ_id != categ.categ_id:
            raise NotFoundError(f"arquivo {file_id} não pertence a {categ.categ_id}", message="Arquivo não encontrado.")
        return file
