"""
配置文件监听

轮询配置文件的修改时间，变化后比较内容哈希，只有内容真正改变时才重载：
解析 -> 新建引擎并校验模式 -> 原子替换上下文。任一步失败都保留旧配置。
端口、环境或证书变化时向 ctx.restart 发送重启信号。
"""
import asyncio
import hashlib
import logging
import os
from pathlib import Path
from typing import Optional, Tuple, Union

from app.core.config import parse_config, server_params_changed, settings
from app.core.context import AppContext, build_state
from app.core.errors import RepositoryError

logger = logging.getLogger(__name__)


def file_digest(path: Union[str, Path]) -> str:
    """计算文件内容的 SHA256"""
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


class ConfigWatcher:
    """配置热重载"""

    def __init__(self, ctx: AppContext, path: Union[str, Path, None] = None, interval: Optional[float] = None):
        self.ctx = ctx
        self.path = Path(path or settings.CONFIG_FILE)
        self.interval = settings.CONFIG_POLL_SECONDS if interval is None else interval
        self._signature = self._stat()
        self._digest = self._safe_digest()
        self._task: Optional[asyncio.Task] = None

    def _stat(self) -> Optional[Tuple[int, int]]:
        try:
            st = os.stat(self.path)
        except OSError:
            return None
        return st.st_mtime_ns, st.st_size

    def _safe_digest(self) -> Optional[str]:
        try:
            return file_digest(self.path)
        except OSError:
            return None

    async def check_once(self) -> bool:
        """
        检查一次配置文件

        Returns:
            bool: 是否完成了一次替换
        """
        signature = self._stat()
        if signature is None or signature == self._signature:
            return False
        self._signature = signature

        digest = self._safe_digest()
        if digest is None or digest == self._digest:
            return False
        self._digest = digest

        logger.warning("Mudanças detectadas no arquivo de configurações %s", self.path)
        return await self.reload()

    async def reload(self) -> bool:
        """解析并应用新配置，失败时保留旧配置"""
        try:
            new_cfg = parse_config(self.path.read_bytes())
            state = await build_state(new_cfg)
        except (OSError, RepositoryError) as e:
            logger.error("Falha ao recarregar configurações, mantendo anteriores: %s", e)
            return False

        old = await self.ctx.swap(state)
        logger.warning("Configurações recarregadas")

        if server_params_changed(old.config, new_cfg):
            logger.warning("Parâmetros do servidor alterados, reiniciando")
            self.ctx.restart.put_nowait(True)
        return True

    async def run(self) -> None:
        logger.info("Observando arquivo de configurações %s", self.path)
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.check_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Erro no observador de configurações")

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
