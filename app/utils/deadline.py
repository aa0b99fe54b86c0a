"""
操作时限
"""
import asyncio
from typing import Awaitable, Optional, TypeVar

from app.core.config import settings
from app.core.errors import DeadlineExceededError

T = TypeVar("T")


async def with_deadline(aw: Awaitable[T], timeout: Optional[float] = None) -> T:
    """在时限内执行，超时时取消并抛出 DeadlineExceededError"""
    timeout = settings.REQUEST_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        return await asyncio.wait_for(aw, timeout)
    except asyncio.TimeoutError as e:
        raise DeadlineExceededError(f"operação excedeu {timeout}s") from e
