"""
Rotas de Autenticação

Login único (token no corpo + cookies para o route guard), cadastro de
cliente, sessão, recuperação e troca de senha.
"""
import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, Response
from jose import JWTError
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.api.utils import validate_unique
from app.config import settings
from app.core.errors import AuthenticationError, RateLimitError, ValidationError
from app.core.logger import get_logger
from app.core.rate_limit import RateLimitResult, check_rate_limit
from app.core.security import (
    create_access_token, decode_access_token, hash_password,
    resolve_primary_role, verify_password
)
from app.core.two_factor import verify_2fa_code, verify_backup_code
from app.core.validation import sanitize_email, sanitize_string, validate_email, validate_password
from app.jobs.scheduler import enfileirar_email
from app.models.password_reset import PasswordReset
from app.models.usuario import Role, UserStatus, Usuario
from app.schemas.usuario import (
    ChangePasswordRequest, ForgotPasswordRequest, LoginRequest,
    RegisterRequest, ResetPasswordRequest
)
from app.services.audit_service import (
    AuditAction, extract_request_metadata, log_audit_event,
    log_login, log_logout, log_rate_limit_exceeded
)

router = APIRouter()
logger = get_logger(__name__)

# Cookies lidos pelo route guard
SESSION_COOKIES = ("token", "role", "userId", "userEmail", "mustChangePassword")


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _rate_limited(request: Request, identifier: str, result: RateLimitResult, message: str):
    log_rate_limit_exceeded(request, identifier)
    retry_after = result.retry_after()
    headers = result.headers()
    headers["Retry-After"] = str(retry_after)
    raise RateLimitError(message, retry_after=retry_after, headers=headers)


def _validar_senha_forte(password: str) -> None:
    valida, erros = validate_password(password)
    if not valida:
        raise ValidationError("Senha fraca: " + "; ".join(erros), code="weak_password")


def _set_session_cookies(response: Response, token: str, user: Usuario, role: Role) -> None:
    max_age = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    secure = settings.ENVIRONMENT == "production"
    response.set_cookie("token", token, max_age=max_age, httponly=True, secure=secure, samesite="lax")
    response.set_cookie("role", role.value, max_age=max_age, secure=secure, samesite="lax")
    response.set_cookie("userId", str(user.id), max_age=max_age, secure=secure, samesite="lax")
    response.set_cookie("userEmail", user.email, max_age=max_age, secure=secure, samesite="lax")
    response.set_cookie(
        "mustChangePassword",
        "true" if user.must_change_password else "false",
        max_age=max_age, secure=secure, samesite="lax"
    )


# ============ LOGIN / LOGOUT ============

@router.post("/login")
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Autenticação de usuário

    Fluxo:
    1. Rate limit por IP (5 tentativas/minuto)
    2. Valida email e senha
    3. Se 2FA estiver ativo, exige código TOTP ou código de backup
    4. Gera JWT e grava os cookies de sessão
    """
    ip = extract_request_metadata(request)["ip_address"]
    identifier = f"login:{ip}"
    limite = check_rate_limit(identifier, settings.LOGIN_RATE_LIMIT, settings.LOGIN_RATE_WINDOW)
    if not limite.success:
        logger.warning(f"[AUTH] Rate limit de login excedido para {ip}")
        _rate_limited(request, identifier, limite, "Muitas tentativas de login. Tente novamente mais tarde.")

    if not body.email or not body.password:
        raise ValidationError("Email e senha são obrigatórios")

    email = sanitize_email(body.email)
    if not validate_email(email):
        raise ValidationError("Email inválido")

    user = db.query(Usuario).filter(Usuario.email == email).first()
    if not user or not verify_password(body.password, user.senha_hash):
        log_login(request, user.id if user else None, email, success=False,
                  error_message="Email ou senha incorretos")
        raise AuthenticationError("Email ou senha incorretos")

    if user.two_factor_enabled:
        if not body.two_factor_code:
            raise AuthenticationError("Código 2FA obrigatório", code="2fa_required")

        codigo = body.two_factor_code.strip()
        if not verify_2fa_code(user.two_factor_secret, codigo):
            valido, restantes = verify_backup_code(user.two_factor_backup_codes, codigo)
            if not valido:
                log_login(request, user.id, email, success=False, error_message="Código 2FA inválido")
                raise AuthenticationError("Código 2FA inválido")
            user.two_factor_backup_codes = restantes
            logger.info(f"[AUTH] Código de backup usado por {email} ({len(restantes)} restantes)")

    role = resolve_primary_role(user.roles, user.role)
    user.last_login_at = datetime.utcnow()
    db.commit()

    token = create_access_token(data={"sub": str(user.id), "email": user.email, "role": role.value})

    log_login(request, user.id, email, success=True, role=role.value)
    logger.info(f"[AUTH] Login: {email} ({role.value})")

    _set_session_cookies(response, token, user, role)
    for nome, valor in limite.headers().items():
        response.headers[nome] = valor

    return {
        "success": True,
        "token": token,
        "user": {
            "uid": user.id,
            "email": user.email,
            "role": role.value,
            "roles": user.roles or [role.value],
            "mustChangePassword": bool(user.must_change_password),
        },
    }


@router.post("/logout")
def logout(request: Request, response: Response):
    """Limpa os cookies de sessão (audita quando sabe quem era)"""
    user_id = request.cookies.get("userId")
    user_email = request.cookies.get("userEmail")
    if user_id and user_email:
        try:
            log_logout(request, int(user_id), user_email)
        except ValueError:
            logger.warning(f"[AUTH] Cookie userId inválido no logout: {user_id}")

    for nome in SESSION_COOKIES:
        response.delete_cookie(nome)

    return {"success": True, "message": "Logout realizado com sucesso"}


# ============ CADASTRO / SESSÃO ============

@router.post("/register")
def register(
    body: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """Cadastro público: sempre cria conta de cliente"""
    if not body.email or not body.password:
        raise ValidationError("Email e senha são obrigatórios")

    email = sanitize_email(body.email)
    if not validate_email(email):
        raise ValidationError("Email inválido")
    _validar_senha_forte(body.password)

    validate_unique(db, Usuario, "email", email, message="Este email já está em uso")

    user = Usuario(
        email=email,
        senha_hash=hash_password(body.password),
        nome=sanitize_string(body.nome) or None,
        telefone=body.telefone,
        role=Role.CLIENTE,
        roles=[Role.CLIENTE.value],
        status=UserStatus.ACTIVE,
        is_verified=False,
        must_change_password=False,
        password_changed_at=datetime.utcnow(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    log_audit_event(AuditAction.USER_CREATED, user_id=user.id, user_email=email,
                    resource_type="users", resource_id=user.id,
                    details={"origem": "register"}, request=request)
    enfileirar_email("welcome", email=email, nome=user.nome or email)
    logger.info(f"[AUTH] Novo cadastro: {email}")

    return {"success": True, "userId": user.id}


@router.get("/session")
def session(request: Request, db: Session = Depends(get_db)):
    """Valida o token do header Authorization (ignora cookies)"""
    auth_header = request.headers.get("authorization") or ""
    token = auth_header[len("Bearer "):].strip() if auth_header.startswith("Bearer ") else ""
    if not token:
        raise AuthenticationError("Token não encontrado")

    user: Optional[Usuario] = None
    try:
        payload = decode_access_token(token)
        user = db.query(Usuario).filter(Usuario.id == int(payload.get("sub"))).first()
    except (JWTError, ValueError, TypeError) as e:
        logger.info(f"[AUTH] Sessão inválida: {e}")

    if not user:
        raise AuthenticationError("Sessão inválida ou expirada")

    role = resolve_primary_role(user.roles, user.role)
    return {
        "valid": True,
        "userId": user.id,
        "email": user.email,
        "role": role.value,
        "roles": user.roles or [role.value],
        "status": user.status.value,
    }


# ============ SENHA ============

@router.post("/forgot-password")
def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Solicita link de recuperação

    Resposta é sempre a mesma, exista ou não o email.
    """
    email = sanitize_email(body.email)
    if not email or not validate_email(email):
        raise ValidationError("Email inválido")

    identifier = f"forgot-password:{email}"
    limite = check_rate_limit(identifier, settings.FORGOT_PASSWORD_RATE_LIMIT,
                              settings.FORGOT_PASSWORD_RATE_WINDOW)
    if not limite.success:
        _rate_limited(request, identifier, limite, "Muitas solicitações. Tente novamente mais tarde.")

    user = db.query(Usuario).filter(Usuario.email == email).first()
    if user:
        token = secrets.token_urlsafe(32)
        db.add(PasswordReset(
            user_id=user.id,
            email=email,
            token_hash=_hash_token(token),
            expires_at=datetime.utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
        ))
        db.commit()

        link = f"{settings.APP_URL}/reset-password?{urlencode({'token': token, 'email': email})}"
        enfileirar_email("password-reset", email=email, link=link, nome=user.nome)
        log_audit_event(AuditAction.PASSWORD_RESET, user_id=user.id, user_email=email,
                        details={"step": "requested"}, request=request)
        logger.info(f"[AUTH] Link de recuperação gerado para {email}")

    return {"success": True, "message": "Se o email existir, você receberá um link de recuperação."}


@router.post("/reset-password")
def reset_password(
    body: ResetPasswordRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """Redefine a senha a partir do token recebido por email"""
    if not body.token or not body.email or not body.new_password:
        raise ValidationError("Token, email e nova senha são obrigatórios")
    _validar_senha_forte(body.new_password)

    email = sanitize_email(body.email)
    user = db.query(Usuario).filter(Usuario.email == email).first()
    if not user:
        raise AuthenticationError("Token inválido ou expirado")

    reset = db.query(PasswordReset).filter(
        PasswordReset.user_id == user.id,
        PasswordReset.token_hash == _hash_token(body.token),
        PasswordReset.used.is_(False),
    ).first()
    agora = datetime.utcnow()
    if not reset or reset.expires_at < agora:
        raise AuthenticationError("Token inválido ou expirado")

    user.senha_hash = hash_password(body.new_password)
    user.status = UserStatus.ACTIVE
    user.must_change_password = False
    user.password_changed_at = agora
    reset.used = True
    reset.used_at = agora
    db.commit()

    enfileirar_email("password-changed", email=email, nome=user.nome)
    log_audit_event(AuditAction.PASSWORD_CHANGED, user_id=user.id, user_email=email,
                    details={"via": "reset"}, request=request)
    logger.info(f"[AUTH] Senha redefinida: {email}")

    return {"success": True, "message": "Senha redefinida com sucesso"}


@router.post("/change-password")
def change_password(
    body: ChangePasswordRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """Troca de senha do usuário logado (inclusive a troca obrigatória)"""
    if not body.current_password or not body.new_password:
        raise ValidationError("Senha atual e nova senha são obrigatórias")

    if not verify_password(body.current_password, user.senha_hash):
        raise ValidationError("Senha atual incorreta")
    _validar_senha_forte(body.new_password)

    user.senha_hash = hash_password(body.new_password)
    user.must_change_password = False
    user.password_changed_at = datetime.utcnow()
    if user.status == UserStatus.PENDING:
        user.status = UserStatus.ACTIVE
    db.commit()

    response.delete_cookie("mustChangePassword")
    enfileirar_email("password-changed", email=user.email, nome=user.nome)
    log_audit_event(AuditAction.PASSWORD_CHANGED, user_id=user.id, user_email=user.email,
                    details={"via": "change"}, request=request)

    return {"success": True, "message": "Senha alterada com sucesso"}
