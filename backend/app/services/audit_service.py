"""
Audit Log - registro das ações críticas para auditoria e segurança

Cada evento é gravado em sessão própria: falha no log nunca derruba a
operação principal, e rollback da operação não apaga o log.
"""
import enum
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.core.logger import get_logger
from app.database import SessionLocal
from app.models.auditoria import AuditLog

logger = get_logger(__name__)


class AuditAction(str, enum.Enum):
    # Autenticação
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    LOGIN_FAILED = "LOGIN_FAILED"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    PASSWORD_RESET = "PASSWORD_RESET"

    # Usuários
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_DELETED = "USER_DELETED"
    USER_ROLE_CHANGED = "USER_ROLE_CHANGED"

    # Fornecedores
    SUPPLIER_CREATED = "SUPPLIER_CREATED"
    SUPPLIER_UPDATED = "SUPPLIER_UPDATED"
    SUPPLIER_DELETED = "SUPPLIER_DELETED"

    # Clientes
    CLIENT_CREATED = "CLIENT_CREATED"
    CLIENT_UPDATED = "CLIENT_UPDATED"

    # Cotações e Pedidos
    QUOTATION_CREATED = "QUOTATION_CREATED"
    PROPOSAL_CREATED = "PROPOSAL_CREATED"
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"

    # Segurança
    UNAUTHORIZED_ACCESS = "UNAUTHORIZED_ACCESS"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"
    CHAT_MESSAGE_BLOCKED = "CHAT_MESSAGE_BLOCKED"

    # Webhooks
    WEBHOOK_RECEIVED = "WEBHOOK_RECEIVED"


def extract_request_metadata(request: Optional[Request]) -> Dict[str, str]:
    """
    IP e User-Agent da requisição

    x-forwarded-for (primeiro IP) e x-real-ip só valem com TRUST_PROXY_HEADERS.
    """
    if request is None:
        return {"ip_address": "unknown", "user_agent": "unknown"}

    headers = request.headers
    ip = None
    if settings.TRUST_PROXY_HEADERS:
        forwarded = headers.get("x-forwarded-for")
        ip = forwarded.split(",")[0].strip() if forwarded else headers.get("x-real-ip")
    if not ip:
        ip = request.client.host if request.client else "unknown"

    return {"ip_address": ip, "user_agent": headers.get("user-agent") or "unknown"}


def log_audit_event(
    action: AuditAction,
    user_id: Optional[int] = None,
    user_email: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[Any] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
    success: bool = True,
    error_message: Optional[str] = None
) -> None:
    """
    Registra uma ação no audit log. Nunca levanta exceção.
    """
    metadata = extract_request_metadata(request)
    db = SessionLocal()
    try:
        db.add(AuditLog(
            action=getattr(action, "value", action),
            user_id=user_id,
            user_email=user_email,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            ip_address=metadata["ip_address"],
            user_agent=metadata["user_agent"],
            details=details,
            success=success,
            error_message=error_message,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[AUDIT] Erro ao registrar {getattr(action, 'value', action)}: {e}")
    finally:
        db.close()


def log_login(
    request: Request,
    user_id: Optional[int],
    user_email: Optional[str],
    success: bool = True,
    error_message: Optional[str] = None,
    role: Optional[str] = None
) -> None:
    log_audit_event(
        AuditAction.LOGIN if success else AuditAction.LOGIN_FAILED,
        user_id=user_id,
        user_email=user_email,
        details={"role": role} if role else None,
        request=request,
        success=success,
        error_message=error_message,
    )


def log_logout(request: Request, user_id: Optional[int], user_email: Optional[str]) -> None:
    log_audit_event(AuditAction.LOGOUT, user_id=user_id, user_email=user_email, request=request)


def log_unauthorized_access(request: Request, user_id: Optional[int], target_path: str) -> None:
    log_audit_event(
        AuditAction.UNAUTHORIZED_ACCESS,
        user_id=user_id,
        details={"targetPath": target_path},
        request=request,
        success=False,
    )


def log_rate_limit_exceeded(request: Request, identifier: str) -> None:
    log_audit_event(
        AuditAction.RATE_LIMIT_EXCEEDED,
        details={"identifier": identifier},
        request=request,
        success=False,
    )
