"""
文件系统引擎

在单一根目录下维护 用户/分类/文件 三级实体：
    <root>/<user_id>/
    <root>/<user_id>/<categ_id>/
    <root>/<user_id>/<categ_id>/<file_id><extension>
"""
import enum
import io
import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Union

from app.core.errors import (
    AlreadyExistsError,
    FSError,
    InvalidPathError,
    MissingContentError,
    NotEmptyError,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class EntityType(str, enum.Enum):
    """实体类型"""
    USER = "user"
    CATEGORY = "category"
    FILE = "file"


def normalize_extension(extension: Optional[str]) -> str:
    """空字符串或单独的 "." 视为无扩展名"""
    if not extension or extension == ".":
        return ""
    return extension


def is_valid_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, TypeError):
        return False
    return True


class FileSystem:
    """
    文件系统引擎

    所有实体都位于 root 之下，路径的 basename（文件去掉扩展名）必须是 UUID。
    """

    def __init__(self, root: PathLike):
        self.root = Path(root)

    # ---------- 路径 ----------

    def user_path(self, user_id: str) -> Path:
        return self.root / str(user_id)

    def categ_path(self, user_id: str, categ_id: str) -> Path:
        return self.user_path(user_id) / str(categ_id)

    def file_path(self, user_id: str, categ_id: str, file_id: str, extension: Optional[str]) -> Path:
        return self.categ_path(user_id, categ_id) / f"{file_id}{normalize_extension(extension)}"

    def ensure_root(self) -> None:
        """创建根目录（若不存在）"""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FSError(f"não foi possível criar diretório raiz {self.root}: {e}") from e

    # ---------- 操作 ----------

    def entity_exists(self, path: PathLike) -> bool:
        """
        实体是否存在

        只有 stat 明确报告不存在时才返回 False，其他错误一律视为存在。
        """
        try:
            os.stat(path)
        except FileNotFoundError:
            return False
        except OSError:
            return True
        return True

    def is_empty(self, path: PathLike) -> bool:
        """目录为空时返回 True；普通文件和不存在的路径也视为空"""
        path = Path(path)
        if not path.is_dir():
            return True
        try:
            with os.scandir(path) as it:
                return next(it, None) is None
        except OSError as e:
            raise FSError(f"não foi possível listar {path}: {e}") from e

    def create_entity(self, path: PathLike, kind: EntityType, content: Optional[bytes] = None) -> None:
        """
        创建实体

        Args:
            path: 目标路径
            kind: 实体类型，USER/CATEGORY 创建目录，FILE 创建普通文件
            content: 文件内容，仅 FILE 需要

        Raises:
            AlreadyExistsError: 路径已存在
            InvalidPathError: basename 不是 UUID
            MissingContentError: 创建文件但没有内容
            FSError: 系统调用失败
        """
        path = Path(path)
        if self.entity_exists(path):
            raise AlreadyExistsError(f"entidade já existe: {path}")

        # 扩展名可能包含多个点（.tar.gz）
        stem = path.name.split(".", 1)[0] if kind == EntityType.FILE else path.name
        if not is_valid_uuid(stem):
            raise InvalidPathError(f"caminho inválido: {path}")

        if kind in (EntityType.USER, EntityType.CATEGORY):
            try:
                path.mkdir(mode=0o777)
            except FileExistsError as e:
                raise AlreadyExistsError(f"entidade já existe: {path}") from e
            except OSError as e:
                raise FSError(f"não foi possível criar diretório {path}: {e}") from e
            return

        if content is None:
            raise MissingContentError(f"conteúdo ausente para {path}")
        self._write_file(path, content)

    def _write_file(self, path: Path, content: bytes) -> None:
        try:
            with open(path, "wb", buffering=0) as raw:
                writer = io.BufferedWriter(raw)
                view = memoryview(content)
                # 部分写入时继续写剩余字节
                while view:
                    written = writer.write(view)
                    view = view[written:]
                writer.flush()
                writer.detach()
        except OSError as e:
            raise FSError(f"não foi possível escrever arquivo {path}: {e}") from e

    def read_content(self, path: PathLike) -> bytes:
        """读取文件全部内容"""
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise FSError(f"não foi possível ler arquivo {path}: {e}") from e

    def update_entity(self, old_path: PathLike, new_path: PathLike) -> None:
        """
        重命名 / 移动实体

        Raises:
            NotEmptyError: old_path 是非空目录
        """
        if not self.is_empty(old_path):
            raise NotEmptyError(f"diretório não vazio: {old_path}")
        try:
            os.rename(old_path, new_path)
        except OSError as e:
            raise FSError(f"não foi possível mover {old_path} para {new_path}: {e}") from e

    def delete_entity(self, path: PathLike) -> None:
        """
        删除单个实体

        Raises:
            NotEmptyError: path 是非空目录
        """
        path = Path(path)
        if not self.is_empty(path):
            raise NotEmptyError(f"diretório não vazio: {path}")
        try:
            if path.is_dir():
                path.rmdir()
            else:
                path.unlink()
        except OSError as e:
            raise FSError(f"não foi possível remover {path}: {e}") from e
