"""
测试配置解析
"""
import json

import pytest

from app.core.config import load_config, parse_config, server_params_changed
from app.core.errors import ConfigError


def test_load_config(config_file):
    cfg = load_config(config_file)
    assert cfg.port == 8000
    assert cfg.jwt_expires == 60
    assert cfg.database.db_schema.user_table.columns.password == "password"
    assert not cfg.tls_enabled


def test_unknown_environment_falls_back_to_development(config_factory):
    cfg = parse_config(json.dumps(config_factory(environment="staging")))
    assert cfg.environment == "development"


def test_production_environment_kept(config_factory):
    cfg = parse_config(json.dumps(config_factory(environment="production")))
    assert cfg.environment == "production"


def test_database_port_accepts_string(config_factory):
    data = config_factory()
    data["database"]["port"] = "1521"
    assert parse_config(json.dumps(data)).database.port == "1521"


@pytest.mark.parametrize("bad", ["users; DROP TABLE users", "1users", "user name", ""])
def test_rejects_unsafe_identifiers(config_factory, bad):
    data = config_factory()
    data["database"]["schema"]["user_table"]["name"] = bad
    with pytest.raises(ConfigError):
        parse_config(json.dumps(data))


def test_rejects_missing_fields(config_factory):
    data = config_factory()
    del data["jwt_secret"]
    with pytest.raises(ConfigError):
        parse_config(json.dumps(data))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.json")


def test_dump_roundtrip(config_file):
    cfg = load_config(config_file)
    assert parse_config(json.dumps(cfg.model_dump(by_alias=True))) == cfg


def test_server_params_changed(config_factory):
    base = parse_config(json.dumps(config_factory()))
    assert not server_params_changed(base, base.model_copy(update={"jwt_expires": 5}))
    assert server_params_changed(base, base.model_copy(update={"port": 9000}))
    assert server_params_changed(base, base.model_copy(update={"environment": "production"}))
    assert server_params_changed(base, base.model_copy(update={"cert_file": "cert.pem"}))
    assert server_params_changed(base, base.model_copy(update={"key_file": "key.pem"}))
