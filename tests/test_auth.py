"""
测试 JWT 签发与校验
"""
import json
import time

import pytest
from jose import jwt

from app.core.config import parse_config
from app.core.errors import UnauthenticatedError
from app.utils.auth import generate_token, verify_token


@pytest.fixture
def cfg(config_factory):
    return parse_config(json.dumps(config_factory(jwt_expires=30)))


def test_token_claims(cfg):
    before = int(time.time())
    token = generate_token(cfg, "user-1", "alice")
    claims = verify_token(cfg, token)

    assert claims["id"] == "user-1"
    assert claims["name"] == "alice"
    assert claims["admin"] is True
    assert before + 30 * 60 <= claims["expires_at"] <= int(time.time()) + 30 * 60


def test_token_signed_with_hs256(cfg):
    token = generate_token(cfg, "user-1", "alice")
    assert jwt.get_unverified_header(token)["alg"] == "HS256"


def test_wrong_secret_rejected(cfg):
    token = generate_token(cfg, "user-1", "alice")
    other = cfg.model_copy(update={"jwt_secret": "another"})
    with pytest.raises(UnauthenticatedError):
        verify_token(other, token)


def test_expired_token_rejected(cfg):
    token = jwt.encode({"id": "u", "exp": int(time.time()) - 10}, cfg.jwt_secret, algorithm="HS256")
    with pytest.raises(UnauthenticatedError):
        verify_token(cfg, token)
