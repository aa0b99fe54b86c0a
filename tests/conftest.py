"""
测试公共夹具

数据库使用临时 SQLite 文件（aiosqlite），文件根目录使用 tmp_path。
"""
import asyncio
import json
import os
import time
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import load_config, settings
from app.core.context import AppContext
from app.db.database import create_engine
from app.models import build_metadata
from app.services.fs_engine import FileSystem
from app.services.store_service import StoreService
from main import create_app

TEST_PASSWORD = "s3cret-pass"


def make_config(db_path: Path, **overrides) -> dict:
    """生成指向 SQLite 的配置字典"""
    cfg = {
        "environment": "development",
        "origins": ["http://localhost:5173"],
        "port": 8000,
        "database": {
            "url": f"sqlite+aiosqlite:///{db_path}",
            "schema": {
                "name": "main",
                "user_table": {
                    "name": "users",
                    "columns": {
                        "user_id": "user_id",
                        "name": "name",
                        "password": "password",
                        "updated_at": "updated_at",
                    },
                },
                "categ_table": {
                    "name": "categories",
                    "columns": {
                        "categ_id": "categ_id",
                        "user_id": "user_id",
                        "name": "name",
                        "updated_at": "updated_at",
                    },
                },
                "file_table": {
                    "name": "files",
                    "columns": {
                        "file_id": "file_id",
                        "categ_id": "categ_id",
                        "name": "name",
                        "extension": "extension",
                        "mimetype": "mimetype",
                        "updated_at": "updated_at",
                    },
                },
            },
        },
        "jwt_secret": "test-secret",
        "jwt_expires": 60,
    }
    cfg.update(overrides)
    return cfg


def write_config(path: Path, data) -> None:
    """写入配置并推进修改时间，保证监听器能看到变化"""
    previous = path.stat().st_mtime_ns if path.exists() else 0
    text = data if isinstance(data, str) else json.dumps(data, indent=2)
    path.write_text(text, encoding="utf-8")
    bumped = max(previous + 1_000_000_000, path.stat().st_mtime_ns)
    os.utime(path, ns=(bumped, bumped))


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """降低 bcrypt 代价因子以加快测试"""
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "repo.db"


@pytest.fixture
def config_file(tmp_path, db_path) -> Path:
    path = tmp_path / "config.json"
    write_config(path, make_config(db_path))
    return path


@pytest.fixture
def files_root(tmp_path) -> Path:
    return tmp_path / "files"


@pytest.fixture
async def ctx(config_file, files_root):
    """已建表的应用上下文"""
    cfg = load_config(config_file)
    engine = create_engine(cfg)
    async with engine.begin() as conn:
        await conn.run_sync(build_metadata(cfg.database.db_schema).create_all)
    await engine.dispose()

    context = await AppContext.create(cfg, FileSystem(files_root))
    yield context
    await context.close()


@pytest.fixture
async def client(ctx):
    app = create_app(ctx)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
async def auth_headers(ctx, client) -> dict:
    """创建测试用户并登录，返回 Authorization 请求头"""
    await StoreService.create_user(ctx, "tester", TEST_PASSWORD)
    resp = await client.post("/login", json={"username": "tester", "password": TEST_PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def config_factory(db_path):
    """返回生成配置字典的函数，关键字参数覆盖默认字段"""
    def factory(**overrides) -> dict:
        return make_config(db_path, **overrides)
    return factory


@pytest.fixture
def rewrite_config(config_file, config_factory):
    """用新字段重写配置文件"""
    def rewrite(data=None, **overrides) -> None:
        write_config(config_file, data if data is not None else config_factory(**overrides))
    return rewrite


@pytest.fixture
def max_loop_gap():
    """执行协程，同时返回期间事件循环两次调度之间的最大间隔（秒）"""
    async def measure(aw):
        gaps = []
        done = asyncio.Event()

        async def ticker():
            last = time.perf_counter()
            while not done.is_set():
                await asyncio.sleep(0.005)
                now = time.perf_counter()
                gaps.append(now - last)
                last = now

        task = asyncio.create_task(ticker())
        try:
            result = await aw
        finally:
            done.set()
            await task
        return result, max(gaps, default=0.0)
    return measure
