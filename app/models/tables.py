"""
仓库表结构

表名、列名来自配置，所以这里用 SQLAlchemy Core 按模式描述动态构造。
"""
from sqlalchemy import BigInteger, Column, ForeignKey, MetaData, String, Table

from app.core.config import SchemaConfig


def build_metadata(schema: SchemaConfig) -> MetaData:
    """
    按模式描述构造 用户/分类/文件 三张表

    Args:
        schema: 配置中的模式描述

    Returns:
        MetaData: 包含三张表的元数据
    """
    metadata = MetaData(schema=schema.name)

    users = schema.user_table
    uc = users.columns
    Table(
        users.name,
        metadata,
        Column(uc.user_id, String(36), primary_key=True),
        Column(uc.name, String(255), nullable=False, unique=True),
        Column(uc.password, String(255), nullable=False),
        Column(uc.updated_at, BigInteger, nullable=False),
    )

    categs = schema.categ_table
    cc = categs.columns
    Table(
        categs.name,
        metadata,
        Column(cc.categ_id, String(36), primary_key=True),
        Column(cc.user_id, String(36), ForeignKey(f"{schema.name}.{users.name}.{uc.user_id}"), nullable=False),
        Column(cc.name, String(255), nullable=False),
        Column(cc.updated_at, BigInteger, nullable=False),
    )

    files = schema.file_table
    fc = files.columns
    Table(
        files.name,
        metadata,
        Column(fc.file_id, String(36), primary_key=True),
        Column(fc.categ_id, String(36), ForeignKey(f"{schema.name}.{categs.name}.{cc.categ_id}"), nullable=False),
        Column(fc.name, String(255), nullable=False),
        Column(fc.extension, String(32), nullable=True),
        Column(fc.mimetype, String(255), nullable=False),
        Column(fc.updated_at, BigInteger, nullable=False),
    )

    return metadata
