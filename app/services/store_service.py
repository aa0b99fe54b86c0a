"""
双存储协调器

每个变更操作同时修改数据库和文件系统。两者之间没有两阶段提交，
所以按固定顺序执行，并在第二步失败时补偿已经完成的一步：

- 创建：INSERT -> 创建文件系统实体 -> COMMIT，失败时回滚事务并删除新实体
- 修改：检查新父目录 -> UPDATE -> 移动/写入 -> COMMIT，失败时回滚并反向移动
- 删除：检查目录为空、备份文件内容 -> DELETE -> COMMIT -> 删除实体，
  删除失败时用备份重建实体

文件系统调用和 bcrypt 在线程池中执行，不阻塞事件循环。
补偿动作失败只记录日志，不覆盖原始错误。
"""
import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import AppContext, ContextState
from app.core.errors import (
    AlreadyExistsError,
    DBError,
    DuplicateUserError,
    IntegrityViolationError,
    MultipleRowsAffectedError,
    NotEmptyError,
    NotFoundError,
    ParentMissingError,
)
from app.db.queries import QueryBuilder
from app.schemas.category import CategoryResponse
from app.schemas.file import FileResponse
from app.schemas.user import UserResponse
from app.services.fs_engine import EntityType, FileSystem
from app.services.password import hash_password

logger = logging.getLogger(__name__)

_NOT_FOUND = {
    EntityType.USER: "Usuário não encontrado.",
    EntityType.CATEGORY: "Categoria não encontrada.",
    EntityType.FILE: "Arquivo não encontrado.",
}


def _now() -> int:
    return int(time.time())


async def _run_fs(fn, *args):
    """
    在线程池中执行文件系统调用

    调用所在的任务被取消时，先等线程里的调用结束再传播取消，
    这样补偿动作看到的总是确定的文件系统状态。
    """
    future = asyncio.ensure_future(asyncio.to_thread(fn, *args))
    try:
        return await asyncio.shield(future)
    except asyncio.CancelledError:
        try:
            await future
        except Exception:
            logger.exception("Falha no sistema de arquivos durante cancelamento")
        raise


async def _rollback(session: AsyncSession, what: str) -> None:
    """回滚事务；已经提交时是空操作"""
    try:
        await session.rollback()
    except Exception:
        logger.exception("Falha ao desfazer transação (%s)", what)


async def _compensate(description: str, fn, *args) -> bool:
    """执行补偿动作，失败时只记录日志"""
    try:
        await _run_fs(fn, *args)
    except Exception:
        logger.exception("Falha na compensação: %s", description)
        return False
    logger.info("Compensação executada: %s", description)
    return True


def _integrity_violation(kind: EntityType, entity_id: str, path: Path, reason: str) -> None:
    """记录两个存储不一致的实体"""
    error = IntegrityViolationError(f"{reason}: kind={kind.value} id={entity_id} path={path}")
    logger.error("%s: %s", error.error_code, error.detail)


class StoreService:
    """协调数据库与文件系统的变更"""

    # ---------- 数据库辅助 ----------

    @staticmethod
    async def _execute(session: AsyncSession, sql: str, params: dict, kind: EntityType) -> int:
        try:
            result = await session.execute(text(sql), params)
        except IntegrityError as e:
            if kind == EntityType.USER:
                raise DuplicateUserError(str(e)) from e
            raise DBError(str(e)) from e
        except SQLAlchemyError as e:
            raise DBError(str(e)) from e
        return result.rowcount

    @staticmethod
    async def _commit(session: AsyncSession, kind: EntityType) -> None:
        try:
            await session.commit()
        except IntegrityError as e:
            if kind == EntityType.USER:
                raise DuplicateUserError(str(e)) from e
            raise DBError(str(e)) from e
        except SQLAlchemyError as e:
            raise DBError(str(e)) from e

    @staticmethod
    def _check_rows(rowcount: int, kind: EntityType, entity_id: str) -> None:
        """每个变更必须恰好影响一行"""
        if rowcount == 0:
            raise NotFoundError(f"{kind.value} {entity_id}", message=_NOT_FOUND[kind])
        if rowcount > 1:
            logger.error("MultipleRowsAffected: kind=%s id=%s rows=%s", kind.value, entity_id, rowcount)
            raise MultipleRowsAffectedError(f"{rowcount} linhas afetadas para {kind.value} {entity_id}")

    @staticmethod
    async def _check_username(
        session: AsyncSession, queries: QueryBuilder, name: str, user_id: Optional[str] = None
    ) -> None:
        """
        用户名唯一性预检查

        并发创建时仍以数据库唯一约束为准。
        """
        try:
            result = await session.execute(text(queries.select_user_id_by_name()), {"name": name})
            rows = result.all()
        except SQLAlchemyError as e:
            raise DBError(str(e)) from e
        if any(row[0] != user_id for row in rows):
            raise DuplicateUserError(f"nome de usuário já existe: {name}")

    # ---------- 模板 ----------

    @classmethod
    async def _create(
        cls,
        fs: FileSystem,
        state: ContextState,
        kind: EntityType,
        sql: str,
        params: dict,
        path: Path,
        content: Optional[bytes] = None,
    ) -> None:
        if not fs.entity_exists(path.parent):
            raise ParentMissingError(f"diretório pai ausente: {path.parent}")

        fs_touched = False
        committed = False
        async with state.sessionmaker() as session:
            try:
                if kind == EntityType.USER:
                    await cls._check_username(session, state.queries, params["name"])
                await cls._execute(session, sql, params, kind)

                if fs.entity_exists(path):
                    raise AlreadyExistsError(f"entidade já existe: {path}")
                fs_touched = True
                await _run_fs(fs.create_entity, path, kind, content)

                await cls._commit(session, kind)
                committed = True
            finally:
                if not committed:
                    await _rollback(session, str(path))
                    if fs_touched and fs.entity_exists(path):
                        await _compensate(f"remover {path}", fs.delete_entity, path)

    @classmethod
    async def _update(
        cls,
        fs: FileSystem,
        state: ContextState,
        kind: EntityType,
        entity_id: str,
        sql: str,
        params: dict,
        old_path: Path,
        new_path: Path,
        content: Optional[bytes] = None,
    ) -> None:
        if not fs.entity_exists(new_path.parent):
            raise ParentMissingError(f"diretório pai ausente: {new_path.parent}")

        moved = False
        created_new = False
        backup: Optional[bytes] = None
        committed = False
        async with state.sessionmaker() as session:
            try:
                rowcount = await cls._execute(session, sql, params, kind)
                cls._check_rows(rowcount, kind, entity_id)

                if content is None:
                    if old_path != new_path:
                        await _run_fs(fs.update_entity, old_path, new_path)
                        moved = True
                elif old_path != new_path:
                    if fs.entity_exists(new_path):
                        raise AlreadyExistsError(f"entidade já existe: {new_path}")
                    created_new = True
                    await _run_fs(fs.create_entity, new_path, EntityType.FILE, content)
                else:
                    # 同一路径：先备份旧内容再替换
                    old_content = await _run_fs(fs.read_content, old_path)
                    await _run_fs(fs.delete_entity, old_path)
                    backup = old_content
                    await _run_fs(fs.create_entity, new_path, EntityType.FILE, content)

                await cls._commit(session, kind)
                committed = True
            finally:
                if not committed:
                    await _rollback(session, str(old_path))
                    if moved and not await _compensate(
                        f"mover {new_path} para {old_path}", fs.update_entity, new_path, old_path
                    ):
                        _integrity_violation(kind, entity_id, old_path, "falha ao desfazer movimentação")
                    if created_new and fs.entity_exists(new_path):
                        await _compensate(f"remover {new_path}", fs.delete_entity, new_path)
                    if backup is not None:
                        await cls._restore_file(fs, entity_id, old_path, backup)

        if created_new:
            # 新内容已提交，删除旧路径
            if not await _compensate(f"remover {old_path}", fs.delete_entity, old_path):
                _integrity_violation(kind, entity_id, old_path, "arquivo antigo não removido")

    @staticmethod
    async def _restore_file(fs: FileSystem, entity_id: str, path: Path, backup: bytes) -> None:
        if fs.entity_exists(path) and not await _compensate(f"remover {path}", fs.delete_entity, path):
            _integrity_violation(EntityType.FILE, entity_id, path, "falha ao restaurar conteúdo")
            return
        if not await _compensate(f"restaurar {path}", fs.create_entity, path, EntityType.FILE, backup):
            _integrity_violation(EntityType.FILE, entity_id, path, "falha ao restaurar conteúdo")

    @classmethod
    async def _delete(
        cls,
        fs: FileSystem,
        state: ContextState,
        kind: EntityType,
        entity_id: str,
        sql: str,
        params: dict,
        path: Path,
    ) -> None:
        # 目录非空时在修改数据库之前拒绝
        if not fs.is_empty(path):
            raise NotEmptyError(f"diretório não vazio: {path}")
        backup = await _run_fs(fs.read_content, path) if kind == EntityType.FILE else None

        committed = False
        async with state.sessionmaker() as session:
            try:
                rowcount = await cls._execute(session, sql, params, kind)
                cls._check_rows(rowcount, kind, entity_id)
                await cls._commit(session, kind)
                committed = True
            finally:
                if not committed:
                    await _rollback(session, str(path))

        if not fs.entity_exists(path):
            logger.warning("Entidade %s %s já ausente do sistema de arquivos: %s", kind.value, entity_id, path)
            return
        try:
            await _run_fs(fs.delete_entity, path)
        except Exception:
            # 数据库已提交，只能重建文件系统实体
            if not fs.entity_exists(path) and not await _compensate(
                f"recriar {path}", fs.create_entity, path, kind, backup
            ):
                _integrity_violation(kind, entity_id, path, "falha ao recriar entidade")
            raise

    # ---------- 用户 ----------

    @classmethod
    async def create_user(cls, ctx: AppContext, name: str, password: str) -> str:
        """
        创建用户

        Returns:
            str: 新用户ID

        Raises:
            DuplicateUserError: 用户名已存在
        """
        user_id = str(uuid.uuid4())
        params = {
            "user_id": user_id,
            "name": name,
            "password": await asyncio.to_thread(hash_password, password),
            "updated_at": _now(),
        }
        async with ctx.use() as state:
            await cls._create(
                ctx.fs, state, EntityType.USER, state.queries.insert_user(), params, ctx.fs.user_path(user_id)
            )
        logger.info("Usuário criado: %s", user_id)
        return user_id

    @classmethod
    async def update_user(
        cls, ctx: AppContext, old: UserResponse, name: str, password: Optional[str] = None
    ) -> None:
        """
        修改用户名和/或密码

        用户目录只由ID决定，这里只涉及数据库。
        """
        new = {"name": name}
        if password is not None:
            new["password"] = await asyncio.to_thread(hash_password, password)

        async with ctx.use() as state:
            sql, params = state.queries.update_user(old.user_id, {"name": old.name}, new, _now())
            committed = False
            async with state.sessionmaker() as session:
                try:
                    if name != old.name:
                        await cls._check_username(session, state.queries, name, old.user_id)
                    rowcount = await cls._execute(session, sql, params, EntityType.USER)
                    cls._check_rows(rowcount, EntityType.USER, old.user_id)
                    await cls._commit(session, EntityType.USER)
                    committed = True
                finally:
                    if not committed:
                        await _rollback(session, old.user_id)
        logger.info("Usuário alterado: %s", old.user_id)

    @classmethod
    async def delete_user(cls, ctx: AppContext, user_id: str) -> None:
        """删除用户，用户下还有分类时拒绝"""
        async with ctx.use() as state:
            await cls._delete(
                ctx.fs, state, EntityType.USER, user_id,
                state.queries.delete_user(), {"user_id": user_id}, ctx.fs.user_path(user_id),
            )
        logger.info("Usuário removido: %s", user_id)

    # ---------- 分类 ----------

    @classmethod
    async def create_category(cls, ctx: AppContext, user_id: str, name: str) -> str:
        categ_id = str(uuid.uuid4())
        params = {"categ_id": categ_id, "user_id": user_id, "name": name, "updated_at": _now()}
        async with ctx.use() as state:
            await cls._create(
                ctx.fs, state, EntityType.CATEGORY, state.queries.insert_category(), params,
                ctx.fs.categ_path(user_id, categ_id),
            )
        logger.info("Categoria criada: %s", categ_id)
        return categ_id

    @classmethod
    async def update_category(cls, ctx: AppContext, old: CategoryResponse, user_id: str, name: str) -> None:
        """
        修改分类，user_id 改变时把目录移动到新用户下

        Raises:
            ParentMissingError: 新用户目录不存在
            NotEmptyError: 需要移动但分类下还有文件
        """
        async with ctx.use() as state:
            sql, params = state.queries.update_category(
                old.categ_id,
                {"user_id": old.user_id, "name": old.name},
                {"user_id": user_id, "name": name},
                _now(),
            )
            await cls._update(
                ctx.fs, state, EntityType.CATEGORY, old.categ_id, sql, params,
                ctx.fs.categ_path(old.user_id, old.categ_id),
                ctx.fs.categ_path(user_id, old.categ_id),
            )
        logger.info("Categoria alterada: %s", old.categ_id)

    @classmethod
    async def delete_category(cls, ctx: AppContext, categ: CategoryResponse) -> None:
        """删除分类，分类下还有文件时拒绝"""
        async with ctx.use() as state:
            await cls._delete(
                ctx.fs, state, EntityType.CATEGORY, categ.categ_id,
                state.queries.delete_category(), {"categ_id": categ.categ_id},
                ctx.fs.categ_path(categ.user_id, categ.categ_id),
            )
        logger.info("Categoria removida: %s", categ.categ_id)

    # ---------- 文件 ----------

    @classmethod
    async def create_file(
        cls,
        ctx: AppContext,
        user_id: str,
        categ_id: str,
        name: str,
        extension: str,
        mimetype: str,
        content: bytes,
    ) -> str:
        file_id = str(uuid.uuid4())
        params = {
            "file_id": file_id,
            "categ_id": categ_id,
            "name": name,
            "extension": extension,
            "mimetype": mimetype,
            "updated_at": _now(),
        }
        async with ctx.use() as state:
            await cls._create(
                ctx.fs, state, EntityType.FILE, state.queries.insert_file(), params,
                ctx.fs.file_path(user_id, categ_id, file_id, extension), content,
            )
        logger.info("Arquivo criado: %s", file_id)
        return file_id

    @classmethod
    async def update_file(
        cls,
        ctx: AppContext,
        user_id: str,
        old: FileResponse,
        categ_id: str,
        name: str,
        extension: str,
        mimetype: str,
        content: Optional[bytes] = None,
    ) -> None:
        """
        修改文件元数据，可选替换内容

        Args:
            user_id: 文件所属用户（由分类决定）
            old: 修改前的文件记录
            categ_id: 新分类，必须属于同一用户
            content: 新内容，None 表示只修改元数据（必要时重命名）
        """
        async with ctx.use() as state:
            sql, params = state.queries.update_file(
                old.file_id,
                {"categ_id": old.categ_id, "name": old.name, "extension": old.extension, "mimetype": old.mimetype},
                {"categ_id": categ_id, "name": name, "extension": extension, "mimetype": mimetype},
                _now(),
            )
            await cls._update(
                ctx.fs, state, EntityType.FILE, old.file_id, sql, params,
                ctx.fs.file_path(user_id, old.categ_id, old.file_id, old.extension),
                ctx.fs.file_path(user_id, categ_id, old.file_id, extension),
                content,
            )
        logger.info("Arquivo alterado: %s", old.file_id)

    @classmethod
    async def delete_file(cls, ctx: AppContext, user_id: str, file: FileResponse) -> None:
        """删除文件，文件系统删除失败时用备份内容重建"""
        async with ctx.use() as state:
            await cls._delete(
                ctx.fs, state, EntityType.FILE, file.file_id,
                state.queries.delete_file(), {"file_id": file.file_id},
                ctx.fs.file_path(user_id, file.categ_id, file.file_id, file.extension),
            )
        logger.info("Arquivo removido: %s", file.file_id)
