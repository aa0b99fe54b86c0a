"""
测试文件系统引擎
"""
import uuid

import pytest

from app.core.errors import (
    AlreadyExistsError,
    InvalidPathError,
    MissingContentError,
    NotEmptyError,
)
from app.services.fs_engine import EntityType, FileSystem, normalize_extension


@pytest.fixture
def fs(tmp_path) -> FileSystem:
    fs = FileSystem(tmp_path / "root")
    fs.ensure_root()
    return fs


def new_id() -> str:
    return str(uuid.uuid4())


def test_paths_follow_hierarchy(fs):
    """路径按 用户/分类/文件 组织"""
    uid, cid, fid = new_id(), new_id(), new_id()
    assert fs.user_path(uid) == fs.root / uid
    assert fs.categ_path(uid, cid) == fs.root / uid / cid
    assert fs.file_path(uid, cid, fid, ".txt") == fs.root / uid / cid / f"{fid}.txt"


@pytest.mark.parametrize("extension", ["", ".", None])
def test_empty_extension_means_no_extension(fs, extension):
    fid = new_id()
    assert normalize_extension(extension) == ""
    assert fs.file_path(new_id(), new_id(), fid, extension).name == fid


def test_create_directories_and_file(fs):
    uid, cid, fid = new_id(), new_id(), new_id()
    fs.create_entity(fs.user_path(uid), EntityType.USER)
    fs.create_entity(fs.categ_path(uid, cid), EntityType.CATEGORY)
    path = fs.file_path(uid, cid, fid, ".bin")
    payload = bytes(range(256)) * 100
    fs.create_entity(path, EntityType.FILE, payload)

    assert fs.user_path(uid).is_dir()
    assert fs.categ_path(uid, cid).is_dir()
    assert fs.read_content(path) == payload


def test_create_refuses_existing_path(fs):
    path = fs.user_path(new_id())
    fs.create_entity(path, EntityType.USER)
    with pytest.raises(AlreadyExistsError):
        fs.create_entity(path, EntityType.USER)


def test_create_refuses_non_uuid_basename(fs):
    with pytest.raises(InvalidPathError):
        fs.create_entity(fs.root / "not-a-uuid", EntityType.USER)
    with pytest.raises(InvalidPathError):
        fs.create_entity(fs.root / "report.txt", EntityType.FILE, b"x")
    assert list(fs.root.iterdir()) == []


def test_create_file_with_multi_dot_extension(fs):
    path = fs.root / f"{new_id()}.tar.gz"
    fs.create_entity(path, EntityType.FILE, b"gz")
    assert path.read_bytes() == b"gz"


def test_create_file_requires_content(fs):
    path = fs.root / f"{new_id()}.txt"
    with pytest.raises(MissingContentError):
        fs.create_entity(path, EntityType.FILE, None)
    assert not path.exists()


def test_empty_content_is_allowed(fs):
    path = fs.root / f"{new_id()}.txt"
    fs.create_entity(path, EntityType.FILE, b"")
    assert path.read_bytes() == b""


def test_entity_exists(fs):
    path = fs.user_path(new_id())
    assert not fs.entity_exists(path)
    fs.create_entity(path, EntityType.USER)
    assert fs.entity_exists(path)


def test_update_moves_empty_directory(fs):
    a, b, cid = new_id(), new_id(), new_id()
    fs.create_entity(fs.user_path(a), EntityType.USER)
    fs.create_entity(fs.user_path(b), EntityType.USER)
    fs.create_entity(fs.categ_path(a, cid), EntityType.CATEGORY)

    fs.update_entity(fs.categ_path(a, cid), fs.categ_path(b, cid))

    assert not fs.entity_exists(fs.categ_path(a, cid))
    assert fs.categ_path(b, cid).is_dir()


def test_update_refuses_non_empty_directory(fs):
    a, b, cid = new_id(), new_id(), new_id()
    fs.create_entity(fs.user_path(a), EntityType.USER)
    fs.create_entity(fs.user_path(b), EntityType.USER)
    fs.create_entity(fs.categ_path(a, cid), EntityType.CATEGORY)
    fs.create_entity(fs.file_path(a, cid, new_id(), ".txt"), EntityType.FILE, b"x")

    with pytest.raises(NotEmptyError):
        fs.update_entity(fs.categ_path(a, cid), fs.categ_path(b, cid))
    assert fs.categ_path(a, cid).is_dir()


def test_update_renames_file(fs):
    old = fs.root / f"{new_id()}.txt"
    new = old.with_suffix(".csv")
    fs.create_entity(old, EntityType.FILE, b"data")
    fs.update_entity(old, new)
    assert not old.exists()
    assert new.read_bytes() == b"data"


def test_delete_refuses_non_empty_directory(fs):
    uid = new_id()
    fs.create_entity(fs.user_path(uid), EntityType.USER)
    fs.create_entity(fs.categ_path(uid, new_id()), EntityType.CATEGORY)
    with pytest.raises(NotEmptyError):
        fs.delete_entity(fs.user_path(uid))
    assert fs.user_path(uid).is_dir()


def test_delete_removes_single_entity(fs):
    uid = new_id()
    fs.create_entity(fs.user_path(uid), EntityType.USER)
    path = fs.root / f"{new_id()}.txt"
    fs.create_entity(path, EntityType.FILE, b"x")

    fs.delete_entity(path)
    fs.delete_entity(fs.user_path(uid))

    assert not path.exists()
    assert not fs.user_path(uid).exists()


def test_is_empty(fs):
    uid = new_id()
    fs.create_entity(fs.user_path(uid), EntityType.USER)
    assert fs.is_empty(fs.user_path(uid))
    fs.create_entity(fs.categ_path(uid, new_id()), EntityType.CATEGORY)
    assert not fs.is_empty(fs.user_path(uid))
    # 普通文件和不存在的路径都视为空
    assert fs.is_empty(fs.root / "missing")
