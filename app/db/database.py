"""
数据库连接和会话管理
"""
import logging
from typing import Union

from sqlalchemy import URL, make_url, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import AppConfig, DatabaseConfig
from app.core.errors import DBError
from app.db.queries import QueryBuilder

logger = logging.getLogger(__name__)


def build_url(db: DatabaseConfig) -> Union[str, URL]:
    """
    构造数据库 URL

    配置了 url 时直接使用，否则按 Oracle 连接参数拼装。
    """
    if db.url:
        return db.url
    return URL.create(
        "oracle+oracledb",
        username=db.username,
        password=db.password,
        host=db.server,
        port=int(db.port),
        query={"service_name": db.service},
    )


def create_engine(cfg: AppConfig) -> AsyncEngine:
    """创建异步引擎"""
    url = build_url(cfg.database)
    kwargs = {"pool_pre_ping": True}
    try:
        if make_url(url).get_backend_name() != "sqlite":
            kwargs.update(pool_size=10, max_overflow=20)
        return create_async_engine(url, echo=False, **kwargs)
    except SQLAlchemyError as e:
        raise DBError(f"configuração de banco de dados inválida: {e}") from e


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """创建会话工厂"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def validate_schema(engine: AsyncEngine, queries: QueryBuilder) -> None:
    """
    连通性检查 + 模式校验

    对每张表执行一条不返回行的 SELECT，表或列不存在时报错。

    Raises:
        DBError: 连接失败或模式不匹配
    """
    try:
        async with engine.connect() as conn:
            for table, sql in queries.probes().items():
                await conn.execute(text(sql))
                logger.debug("Tabela %s validada", table)
    except SQLAlchemyError as e:
        raise DBError(f"falha ao validar banco de dados: {e}") from e
