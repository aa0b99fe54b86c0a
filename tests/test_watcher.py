"""
测试配置热重载
"""
import asyncio
import os
import time

from jose import jwt

from app.core.watcher import ConfigWatcher
from app.utils.auth import generate_token


def token_ttl(ctx) -> int:
    token = generate_token(ctx.config, "u", "alice")
    return jwt.get_unverified_claims(token)["expires_at"] - int(time.time())


async def test_jwt_expires_swapped_without_restart(ctx, config_file, rewrite_config):
    watcher = ConfigWatcher(ctx, config_file, interval=0)
    old_engine = ctx.snapshot().engine
    assert 59 * 60 <= token_ttl(ctx) <= 60 * 60

    rewrite_config(jwt_expires=5)
    assert await watcher.check_once()

    assert ctx.config.jwt_expires == 5
    assert ctx.snapshot().engine is not old_engine
    assert 4 * 60 <= token_ttl(ctx) <= 5 * 60
    assert ctx.restart.empty()


async def test_port_change_emits_restart(ctx, config_file, rewrite_config):
    watcher = ConfigWatcher(ctx, config_file, interval=0)

    rewrite_config(port=8001)
    assert await watcher.check_once()

    assert ctx.config.port == 8001
    assert ctx.restart.get_nowait() is True


async def test_touch_without_content_change_ignored(ctx, config_file):
    watcher = ConfigWatcher(ctx, config_file, interval=0)
    state = ctx.snapshot()

    st = os.stat(config_file)
    os.utime(config_file, ns=(st.st_atime_ns, st.st_mtime_ns + 5_000_000_000))

    assert not await watcher.check_once()
    assert ctx.snapshot() is state


async def test_invalid_config_keeps_old(ctx, config_file, rewrite_config):
    watcher = ConfigWatcher(ctx, config_file, interval=0)
    state = ctx.snapshot()

    rewrite_config("{ not json")
    assert not await watcher.check_once()
    assert ctx.snapshot() is state


async def test_unknown_table_keeps_old(ctx, config_file, config_factory, rewrite_config):
    """模式描述引用了不存在的表：替换前校验失败"""
    watcher = ConfigWatcher(ctx, config_file, interval=0)
    state = ctx.snapshot()

    data = config_factory(jwt_expires=5)
    data["database"]["schema"]["file_table"]["name"] = "missing_files"
    rewrite_config(data)

    assert not await watcher.check_once()
    assert ctx.snapshot() is state
    assert ctx.config.jwt_expires == 60


async def test_unknown_column_keeps_old(ctx, config_file, config_factory, rewrite_config):
    watcher = ConfigWatcher(ctx, config_file, interval=0)

    data = config_factory(jwt_expires=5)
    data["database"]["schema"]["user_table"]["columns"]["password"] = "pwd_hash"
    rewrite_config(data)

    assert not await watcher.check_once()
    assert ctx.config.jwt_expires == 60


async def test_run_loop_picks_up_changes(ctx, config_file, rewrite_config):
    watcher = ConfigWatcher(ctx, config_file, interval=0.01)
    watcher.start()
    try:
        rewrite_config(jwt_expires=7)
        for _ in range(200):
            if ctx.config.jwt_expires == 7:
                break
            await asyncio.sleep(0.01)
    finally:
        await watcher.stop()

    assert ctx.config.jwt_expires == 7
