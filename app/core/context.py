"""
应用上下文

持有当前配置、数据库引擎和文件系统引擎。配置热重载时整体替换 ContextState，
每个操作开始时租用一次当前状态，操作期间始终使用同一份配置和连接池。
被替换的状态在最后一个租用结束后才释放连接池。
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Optional, Set

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from app.core.config import AppConfig
from app.db.database import create_engine, create_session_factory, validate_schema
from app.db.queries import QueryBuilder
from app.services.fs_engine import FileSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ContextState:
    """一次配置对应的不可变状态"""
    config: AppConfig
    engine: AsyncEngine
    sessionmaker: async_sessionmaker
    queries: QueryBuilder


async def build_state(cfg: AppConfig) -> ContextState:
    """
    按配置创建引擎并校验模式

    校验失败时释放新引擎并抛出异常，调用方保留旧状态。
    """
    engine = create_engine(cfg)
    queries = QueryBuilder(cfg.database.db_schema)
    try:
        await validate_schema(engine, queries)
    except BaseException:
        await engine.dispose()
        raise
    return ContextState(
        config=cfg,
        engine=engine,
        sessionmaker=create_session_factory(engine),
        queries=queries,
    )


class AppContext:
    """共享上下文"""

    def __init__(self, state: ContextState, fs: FileSystem, restart: Optional[asyncio.Queue] = None):
        self._state = state
        self.fs = fs
        # 需要重启 HTTP 服务时放入 True
        self.restart = restart if restart is not None else asyncio.Queue()
        self._leases: Dict[ContextState, int] = {}
        self._retired: Set[ContextState] = set()

    @classmethod
    async def create(cls, cfg: AppConfig, fs: FileSystem) -> "AppContext":
        fs.ensure_root()
        state = await build_state(cfg)
        return cls(state, fs)

    def snapshot(self) -> ContextState:
        return self._state

    @property
    def config(self) -> AppConfig:
        return self._state.config

    def in_use(self, state: ContextState) -> int:
        """状态当前的租用数"""
        return self._leases.get(state, 0)

    @asynccontextmanager
    async def use(self) -> AsyncIterator[ContextState]:
        """
        租用当前状态

        操作期间状态即使被替换也不会释放，最后一个租用结束时释放已退役的连接池。
        """
        state = self._state
        self._leases[state] = self._leases.get(state, 0) + 1
        try:
            yield state
        finally:
            self._leases[state] -= 1
            if not self._leases[state]:
                del self._leases[state]
                if state in self._retired:
                    self._retired.discard(state)
                    await self._dispose(state)

    async def swap(self, state: ContextState) -> ContextState:
        """替换当前状态，返回旧状态；旧状态没有租用时立即释放连接池"""
        old, self._state = self._state, state
        if old.engine is state.engine:
            return old
        if self.in_use(old):
            logger.info("Pool anterior mantido até o fim de %s operações em andamento", self.in_use(old))
            self._retired.add(old)
        else:
            await self._dispose(old)
        return old

    @staticmethod
    async def _dispose(state: ContextState) -> None:
        try:
            await state.engine.dispose()
        except Exception:
            logger.exception("Falha ao liberar pool de conexões anterior")
            return
        logger.debug("Pool de conexões anterior liberado")

    async def close(self) -> None:
        for state in list(self._retired):
            await self._dispose(state)
        self._retired.clear()
        await self._state.engine.dispose()


def get_context(request: Request) -> AppContext:
    """获取应用上下文依赖"""
    return request.app.state.ctx
