"""
密码哈希
"""
import bcrypt

from app.core.config import settings
from app.core.errors import BadRequestError

# bcrypt 只处理前 72 字节
MAX_PASSWORD_BYTES = 72


def hash_password(plain: str) -> str:
    """生成带随机盐的 bcrypt 哈希"""
    raw = plain.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise BadRequestError("senha maior que 72 bytes")
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(hashed: str, plain: str) -> bool:
    """校验明文与哈希是否匹配，哈希格式错误时返回 False"""
    raw = plain.encode("utf-8")
    if not hashed or len(raw) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(raw, hashed.encode("utf-8"))
    except ValueError:
        return False
