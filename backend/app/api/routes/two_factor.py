"""
Rotas de 2FA (TOTP)

Sempre operam sobre o usuário autenticado; nenhum user id do corpo é aceito.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.core.errors import AuthenticationError, ConflictError, ValidationError
from app.core.logger import get_logger
from app.core.security import verify_password
from app.core.two_factor import (
    generate_2fa_qrcode, generate_2fa_secret, generate_backup_codes, verify_2fa_code
)
from app.models.usuario import Usuario
from app.schemas.usuario import TwoFactorDisableRequest, TwoFactorVerifyRequest
from app.services.audit_service import AuditAction, log_audit_event

router = APIRouter()
logger = get_logger(__name__)


def _audit(user: Usuario, request: Request, acao: str, success: bool = True):
    log_audit_event(
        AuditAction.USER_UPDATED,
        user_id=user.id,
        user_email=user.email,
        resource_type="users",
        resource_id=user.id,
        details={"action": acao},
        request=request,
        success=success,
    )


@router.post("/enable")
def habilitar_2fa(
    request: Request,
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """
    Inicia o cadastro do 2FA

    Gera segredo + códigos de backup. O 2FA só fica ativo depois do /verify.
    Com o 2FA já ativo é preciso passar pelo /disable (que exige senha).
    """
    if user.two_factor_enabled:
        _audit(user, request, "2fa_setup_rejected", success=False)
        raise ConflictError("2FA já está ativo. Desative antes de configurar novamente.")

    secret, otpauth_url = generate_2fa_secret(user.email)
    backup_codes = generate_backup_codes()

    user.two_factor_secret = secret
    user.two_factor_backup_codes = backup_codes
    user.two_factor_enabled = False
    user.two_factor_enrolled_at = None
    db.commit()

    _audit(user, request, "2fa_setup_initiated")
    logger.info(f"[2FA] Setup iniciado para {user.email}")

    return {
        "success": True,
        "qrCode": generate_2fa_qrcode(otpauth_url),
        "backupCodes": backup_codes,
        "message": "Escaneie o QR code no seu app autenticador e confirme com um código",
    }


@router.post("/verify")
def verificar_2fa(
    body: TwoFactorVerifyRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """Confirma o código do app autenticador e ativa o 2FA"""
    if not body.code:
        raise ValidationError("Código é obrigatório")

    if not user.two_factor_secret:
        raise AuthenticationError("2FA not initialized")

    if not verify_2fa_code(user.two_factor_secret, body.code.strip()):
        _audit(user, request, "2fa_verification_failed", success=False)
        raise ValidationError("Código inválido")

    user.two_factor_enabled = True
    user.two_factor_enrolled_at = datetime.utcnow()
    db.commit()

    _audit(user, request, "2fa_enabled")
    logger.info(f"[2FA] Ativado para {user.email}")

    return {"success": True, "message": "2FA ativado com sucesso"}


@router.post("/disable")
def desabilitar_2fa(
    body: TwoFactorDisableRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """Desativa o 2FA (exige a senha atual)"""
    if not body.password or not verify_password(body.password, user.senha_hash):
        raise AuthenticationError("Senha incorreta")

    user.two_factor_enabled = False
    user.two_factor_secret = None
    user.two_factor_backup_codes = None
    user.two_factor_enrolled_at = None
    db.commit()

    _audit(user, request, "2fa_disabled")
    logger.info(f"[2FA] Desativado para {user.email}")

    return {"success": True, "message": "2FA desativado"}
