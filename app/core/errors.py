"""
仓库错误类型
"""
from typing import Optional


class RepositoryError(Exception):
    """所有业务错误的基类"""

    status_code: int = 500
    error_code: str = "InternalError"
    default_message: str = "Erro interno no sistema. Tente novamente."

    def __init__(self, detail: str = "", message: Optional[str] = None):
        super().__init__(detail or self.default_message)
        self.detail = detail or self.default_message
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        """转换为 API 响应体"""
        return {"message": self.message, "error": self.error_code}


class BadRequestError(RepositoryError):
    status_code = 400
    error_code = "BadRequest"
    default_message = "Falha na requisição. Verifique os dados e tente novamente."


class UnauthenticatedError(RepositoryError):
    status_code = 401
    error_code = "Unauthenticated"
    default_message = "Acesso negado. Verifique suas credenciais."


class NotFoundError(RepositoryError):
    status_code = 404
    error_code = "NotFound"
    default_message = "Registro não encontrado."


class DuplicateUserError(RepositoryError):
    status_code = 409
    error_code = "DuplicateUser"
    default_message = "Nome de usuário já existente."


class ParentMissingError(RepositoryError):
    """新路径的父目录不存在"""
    status_code = 400
    error_code = "ParentMissing"
    default_message = "Entidade pai não existe."


class MissingContentError(RepositoryError):
    status_code = 400
    error_code = "MissingContent"
    default_message = "Conteúdo do arquivo não informado."


class InvalidPathError(RepositoryError):
    error_code = "InvalidPath"


class AlreadyExistsError(RepositoryError):
    error_code = "AlreadyExists"


class NotEmptyError(RepositoryError):
    """对非空目录执行更新或删除"""
    error_code = "NotEmpty"
    default_message = "A entidade não está vazia. Remova seus itens antes de continuar."


class MultipleRowsAffectedError(RepositoryError):
    error_code = "MultipleRowsAffected"


class IntegrityViolationError(RepositoryError):
    """补偿动作本身失败，两个存储已不一致"""
    error_code = "IntegrityViolation"


class DBError(RepositoryError):
    error_code = "DBError"


class FSError(RepositoryError):
    error_code = "FSError"


class DeadlineExceededError(RepositoryError):
    status_code = 504
    error_code = "DeadlineExceeded"
    default_message = "Tempo limite da operação excedido."


class ConfigError(RepositoryError):
    error_code = "ConfigError"
