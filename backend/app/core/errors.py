"""
Taxonomia de erros da API

Todos os erros de negócio derivam de AppError (que é uma HTTPException do
FastAPI), então podem ser levantados direto das rotas e dependencies.
O formato de resposta é sempre:

    {"error": {"message": "...", "statusCode": 400, "code": "opcional"}}
"""
from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException
from jose import JWTError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.logger import get_logger

logger = get_logger(__name__)


class AppError(HTTPException):
    """Erro base da aplicação"""

    def __init__(
        self,
        status_code: int,
        message: str,
        is_operational: bool = True,
        code: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message = message
        self.is_operational = is_operational
        self.code = code
        self.extra = extra or {}


class ValidationError(AppError):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(400, message, code=code)


class AuthenticationError(AppError):
    def __init__(self, message: str = "Não autenticado", code: Optional[str] = None):
        super().__init__(401, message, code=code)


class AuthorizationError(AppError):
    def __init__(self, message: str = "Não autorizado"):
        super().__init__(403, message)


class NotFoundError(AppError):
    def __init__(self, message: str = "Recurso não encontrado"):
        super().__init__(404, message)


class ConflictError(AppError):
    def __init__(self, message: str = "Este registro já existe"):
        super().__init__(409, message)


class RateLimitError(AppError):
    """429 com cabeçalhos Retry-After / X-RateLimit-*"""

    def __init__(
        self,
        message: str = "Muitas requisições. Tente novamente mais tarde.",
        retry_after: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        extra = {"retryAfter": retry_after} if retry_after is not None else None
        super().__init__(429, message, headers=headers, extra=extra)
        self.retry_after = retry_after


class DatabaseError(AppError):
    def __init__(self, message: str = "Erro no banco de dados"):
        super().__init__(500, message, is_operational=False)


# Códigos conhecidos da plataforma de auth/banco -> (mensagem, status)
ERROR_CODES: Dict[str, Tuple[str, int]] = {
    # Auth
    "invalid_credentials": ("Email ou senha incorretos", 401),
    "user_not_found": ("Usuário não encontrado", 404),
    "invalid_grant": ("Email ou senha incorretos", 401),
    "email_not_confirmed": ("Por favor, confirme seu email", 403),
    "user_already_exists": ("Este email já está em uso", 409),
    "weak_password": ("Senha muito fraca", 400),
    "over_request_rate_limit": ("Muitas tentativas. Tente novamente mais tarde", 429),
    "email_exists": ("Este email já está em uso", 409),
    "validation_failed": ("Dados inválidos", 400),
    # Banco (SQLSTATE)
    "PGRST116": ("Nenhum registro encontrado", 404),
    "23505": ("Este registro já existe", 409),
    "23503": ("Operação não permitida - registro referenciado", 400),
    "42501": ("Permissão negada", 403),
    # Sessão
    "invalid_token": ("Sessão expirada. Faça login novamente", 401),
    "token_expired": ("Sessão expirada. Faça login novamente", 401),
    "refresh_token_not_found": ("Sessão inválida. Faça login novamente", 401),
}


def _sqlstate(error: IntegrityError) -> Optional[str]:
    """Extrai o SQLSTATE do driver (psycopg2 expõe pgcode)"""
    orig = getattr(error, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return str(code)
    texto = str(orig or error).lower()
    if "unique" in texto or "duplicate" in texto:
        return "23505"
    if "foreign key" in texto:
        return "23503"
    return None


def _body(message: str, status_code: int, code: Optional[str] = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"message": message, "statusCode": status_code}
    if code:
        error["code"] = code
    return {"error": error}


def format_error_response(error: Exception) -> Tuple[int, Dict[str, Any]]:
    """
    Converte qualquer exceção em (status, corpo JSON).

    Erros desconhecidos viram 500 genérico e são logados.
    """
    if isinstance(error, AppError):
        body = _body(error.message, error.status_code, error.code)
        body.update(error.extra)
        return error.status_code, body

    code = getattr(error, "code", None)
    if isinstance(code, str) and code in ERROR_CODES:
        message, status_code = ERROR_CODES[code]
        return status_code, _body(message, status_code, code)

    if isinstance(error, IntegrityError):
        sqlstate = _sqlstate(error) or "23505"
        message, status_code = ERROR_CODES.get(sqlstate, ERROR_CODES["23505"])
        return status_code, _body(message, status_code, sqlstate)

    if isinstance(error, JWTError):
        message, status_code = ERROR_CODES["invalid_token"]
        return status_code, _body(message, status_code, "invalid_token")

    if isinstance(error, SQLAlchemyError):
        logger.error(f"[ERROR] Erro de banco de dados: {error}")
        return 500, _body("Erro no banco de dados", 500)

    logger.error(f"[ERROR] Erro inesperado: {error}", exc_info=error)
    return 500, _body("Erro interno do servidor", 500)
