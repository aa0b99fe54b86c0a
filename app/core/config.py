"""
应用配置文件

进程级配置（环境变量 / .env）由 Settings 提供；
业务配置（数据库、表结构、JWT 等）来自 JSON 配置文件，可热重载。
"""
import logging
import re
from pathlib import Path
from typing import Annotated, Generic, List, Optional, TypeVar, Union

from pydantic import AfterValidator, BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from app.core.errors import ConfigError

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("production", "development")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$#]*$")


class Settings(BaseSettings):
    """进程配置"""

    APP_NAME: str = "File Repository"
    APP_VERSION: str = "1.0.0"

    # JSON 配置文件路径
    CONFIG_FILE: str = "config.json"

    # 文件存储根目录
    FILES_ROOT: str = "files"

    # 配置文件轮询间隔（秒）
    CONFIG_POLL_SECONDS: float = 1.0

    # 单次变更操作的时限（秒）
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # bcrypt 代价因子
    BCRYPT_ROUNDS: int = 12

    # 日志
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()


def _check_identifier(value: str) -> str:
    if not _IDENTIFIER.match(value):
        raise ValueError(f"identificador SQL inválido: {value!r}")
    return value


Identifier = Annotated[str, AfterValidator(_check_identifier)]

ColumnsT = TypeVar("ColumnsT")


class UserColumns(BaseModel):
    """用户表列名"""
    user_id: Identifier
    name: Identifier
    password: Identifier
    updated_at: Identifier


class CategColumns(BaseModel):
    """分类表列名"""
    categ_id: Identifier
    user_id: Identifier
    name: Identifier
    updated_at: Identifier


class FileColumns(BaseModel):
    """文件表列名"""
    file_id: Identifier
    categ_id: Identifier
    name: Identifier
    extension: Identifier
    mimetype: Identifier
    updated_at: Identifier


class TableConfig(BaseModel, Generic[ColumnsT]):
    """表名及其列"""
    name: Identifier
    columns: ColumnsT


class SchemaConfig(BaseModel):
    """数据库模式描述"""
    name: Identifier
    user_table: TableConfig[UserColumns]
    categ_table: TableConfig[CategColumns]
    file_table: TableConfig[FileColumns]


class DatabaseConfig(BaseModel):
    """数据库连接配置"""
    service: str = ""
    username: str = ""
    server: str = ""
    port: Union[int, str] = 1521
    password: str = ""
    # 直接指定 SQLAlchemy URL 时忽略上面的连接参数
    url: Optional[str] = None
    db_schema: SchemaConfig = Field(..., alias="schema")

    model_config = {"populate_by_name": True}


class AppConfig(BaseModel):
    """JSON 配置文件"""
    environment: str = "development"
    origins: List[str] = Field(default_factory=list)
    port: int
    database: DatabaseConfig
    jwt_secret: str = Field(..., min_length=1)
    jwt_expires: int = Field(..., gt=0, description="JWT有效期（分钟）")
    cert_file: Optional[str] = None
    key_file: Optional[str] = None

    @field_validator("environment", mode="before")
    @classmethod
    def fallback_environment(cls, value):
        if value not in ENVIRONMENTS:
            logger.warning("Ambiente %r não definido. Fallback para development", value)
            return "development"
        return value

    @property
    def tls_enabled(self) -> bool:
        return bool(self.cert_file and self.key_file)


def parse_config(raw: Union[str, bytes]) -> AppConfig:
    """
    解析 JSON 配置内容

    Raises:
        ConfigError: 内容不是合法的配置
    """
    try:
        return AppConfig.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigError(f"não foi possível desagrupar dados de configuração: {e}") from e


def load_config(path: Union[str, Path, None] = None) -> AppConfig:
    """
    从 JSON 文件加载配置

    Args:
        path: 配置文件路径，默认使用 settings.CONFIG_FILE

    Returns:
        AppConfig: 解析后的配置
    """
    path = Path(path or settings.CONFIG_FILE)
    logger.info("Carregando arquivo de configurações %s", path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"não foi possível ler arquivo de configuração: {e}") from e

    cfg = parse_config(raw)
    if cfg.environment == "production":
        logger.info("Configurando servidor de produção")
    else:
        logger.info("Configurando servidor de desenvolvimento")
    return cfg


def server_params_changed(old: AppConfig, new: AppConfig) -> bool:
    """判断是否需要重启 HTTP 服务（端口、环境或证书变化）"""
    return (
        new.port != old.port
        or new.environment != old.environment
        or new.cert_file != old.cert_file
        or new.key_file != old.key_file
    )
