"""
Dependencies de autenticação/autorização

Único lugar onde o token é resolvido e o papel é verificado;
as rotas só declaram Depends(get_current_user), Depends(require_admin)...
"""
from typing import Optional

from fastapi import Depends, Request
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.errors import AuthenticationError, AuthorizationError
from app.core.security import decode_access_token, has_role, resolve_token
from app.database import get_db
from app.models.fornecedor import Fornecedor
from app.models.usuario import Role, Usuario, UserStatus
from app.services.audit_service import log_unauthorized_access

__all__ = [
    "get_db",
    "get_current_user",
    "get_optional_user",
    "require_admin",
    "require_fornecedor",
    "get_fornecedor_id",
]


def _user_from_token(token: str, db: Session) -> Optional[Usuario]:
    try:
        payload = decode_access_token(token)
    except JWTError:
        return None

    sub = payload.get("sub")
    if sub is None:
        return None
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        return None

    return db.query(Usuario).filter(Usuario.id == user_id).first()


def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
) -> Usuario:
    """
    Usuário autenticado pelo token (header Bearer ou cookie)

    Raises:
        AuthenticationError 401 sem token ou token inválido
        AuthorizationError 403 para conta suspensa/inativa
    """
    token = resolve_token(request)
    if not token:
        raise AuthenticationError("Token não fornecido")

    user = _user_from_token(token, db)
    if not user:
        raise AuthenticationError("Token inválido")

    if user.status in (UserStatus.SUSPENDED, UserStatus.INACTIVE):
        raise AuthorizationError("Conta suspensa ou inativa")

    request.state.user_id = user.id
    return user


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db)
) -> Optional[Usuario]:
    """Mesmo que get_current_user, mas retorna None em vez de 401"""
    token = resolve_token(request)
    if not token:
        return None
    return _user_from_token(token, db)


def require_admin(
    request: Request,
    user: Usuario = Depends(get_current_user)
) -> Usuario:
    """
    Dependency que requer papel admin
    """
    if not has_role(user, Role.ADMIN):
        log_unauthorized_access(request, user.id, request.url.path)
        raise AuthorizationError("Acesso negado. Apenas administradores.")
    return user


def require_fornecedor(
    request: Request,
    user: Usuario = Depends(get_current_user)
) -> Usuario:
    """
    Dependency que requer papel fornecedor (admin também passa)
    """
    if not (has_role(user, Role.FORNECEDOR) or has_role(user, Role.ADMIN)):
        log_unauthorized_access(request, user.id, request.url.path)
        raise AuthorizationError("Acesso negado. Apenas fornecedores.")
    return user


def get_fornecedor_id(db: Session, user: Usuario) -> Optional[int]:
    """
    Fornecedor vinculado ao usuário: users.fornecedor_id ou,
    na falta dele, fornecedores.user_id
    """
    if user.fornecedor_id:
        return user.fornecedor_id
    fornecedor = db.query(Fornecedor.id).filter(Fornecedor.user_id == user.id).first()
    return fornecedor.id if fornecedor else None
