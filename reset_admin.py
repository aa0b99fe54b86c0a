"""
重置管理员密码

直接连接配置中的数据库：管理员不存在时创建，存在时更新密码。
"""
import asyncio
import getpass
import sys
from typing import Callable, Optional, Tuple

from app.core.config import load_config, settings
from app.core.context import AppContext
from app.core.errors import RepositoryError
from app.core.logger import setup_logging
from app.services.admin_service import AdminService
from app.services.fs_engine import FileSystem

DEFAULT_ADMIN = "admin"
MIN_PASSWORD_LENGTH = 4


def prompt_credentials(
    input_fn: Callable[[str], str] = input,
    getpass_fn: Callable[[str], str] = getpass.getpass,
) -> Optional[Tuple[str, str]]:
    """
    交互式读取用户名和密码

    Returns:
        (username, password)，用户取消时返回 None
    """
    username = input_fn(f"Usuário [{DEFAULT_ADMIN}]: ").strip() or DEFAULT_ADMIN

    while True:
        password = getpass_fn("Nova senha: ")
        if len(password) < MIN_PASSWORD_LENGTH:
            print(f"A senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres.")
            continue
        if getpass_fn("Confirme a senha: ") != password:
            print("As senhas não conferem.")
            continue
        break

    confirm = input_fn("Deseja continuar? [S/n]: ").strip().lower()
    if confirm not in ("", "s", "sim", "y", "yes"):
        return None
    return username, password


async def reset(username: str, password: str) -> int:
    """执行重置，返回进程退出码"""
    ctx = None
    try:
        ctx = await AppContext.create(load_config(), FileSystem(settings.FILES_ROOT))
        created = await AdminService.reset_password(ctx, username, password)
    except RepositoryError as e:
        print(f"❌ Erro: {e.detail}", file=sys.stderr)
        return 1
    finally:
        if ctx is not None:
            await ctx.close()

    if created:
        print(f"✅ Administrador {username} criado")
    else:
        print(f"✅ Senha de {username} atualizada")
    return 0


def main() -> int:
    setup_logging()
    print("=" * 60)
    print("Redefinir senha do administrador")
    print("=" * 60)

    credentials = prompt_credentials()
    if credentials is None:
        print("\n❌ Operação cancelada")
        return 0
    return asyncio.run(reset(*credentials))


if __name__ == "__main__":
    sys.exit(main())
