"""
创建仓库表（开发环境）

按配置文件中的模式描述创建 用户/分类/文件 三张表，已存在的表会跳过。
"""
import asyncio

from app.core.config import load_config
from app.db.database import create_engine
from app.models import build_metadata


async def init_db():
    """创建所有表"""
    cfg = load_config()
    engine = create_engine(cfg)
    metadata = build_metadata(cfg.database.db_schema)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        for table in metadata.sorted_tables:
            print(f"✅ Tabela {table.fullname}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init_db())
