"""
Contas de acesso para clientes/fornecedores já cadastrados (somente admin)
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_admin
from app.api.utils import get_by_id, validate_unique
from app.config import settings
from app.core.errors import ValidationError
from app.core.logger import get_logger
from app.core.validation import sanitize_email, validate_email
from app.models.cliente import Cliente
from app.models.fornecedor import Fornecedor
from app.models.usuario import Role, UserStatus, Usuario
from app.schemas.usuario import AccountCreateRequest, AccountResetRequest
from app.services.audit_service import AuditAction, log_audit_event
from app.services.conta_service import aplicar_senha_temporaria, enviar_credenciais

router = APIRouter()
logger = get_logger(__name__)

ENTIDADES = {
    Role.CLIENTE: (Cliente, "Cliente não encontrado"),
    Role.FORNECEDOR: (Fornecedor, "Fornecedor não encontrado"),
}


@router.post("")
def criar_conta(
    body: AccountCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin)
):
    """
    Cria a conta de acesso vinculada a um cliente ou fornecedor

    Senha padrão + troca obrigatória no primeiro acesso.
    Usuário e vínculo são gravados no mesmo commit.
    """
    if not body.email or not body.entity_type or not body.entity_id or not body.entity_name:
        raise ValidationError("Dados incompletos")
    if body.entity_type not in ENTIDADES:
        raise ValidationError("Tipo de entidade inválido")

    email = sanitize_email(body.email)
    if not validate_email(email):
        raise ValidationError("Email inválido")

    validate_unique(db, Usuario, "email", email, message="Este email já possui uma conta cadastrada")

    model, mensagem = ENTIDADES[body.entity_type]
    entidade = get_by_id(db, model, body.entity_id, error_message=mensagem)

    user = Usuario(
        email=email,
        nome=body.entity_name,
        telefone=body.whatsapp,
        role=body.entity_type,
        roles=[body.entity_type.value],
        status=UserStatus.PENDING,
        is_verified=False,
    )
    senha = aplicar_senha_temporaria(user)
    if body.entity_type == Role.CLIENTE:
        user.cliente_id = entidade.id
    else:
        user.fornecedor_id = entidade.id

    try:
        db.add(user)
        db.flush()
        entidade.user_id = user.id
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[CONTAS] Erro ao criar conta para {email}: {e}")
        raise

    log_audit_event(
        AuditAction.USER_CREATED,
        user_id=admin.id,
        user_email=admin.email,
        resource_type="users",
        resource_id=user.id,
        details={"email": email, "entityType": body.entity_type.value, "entityId": entidade.id},
        request=request,
    )
    enviar_credenciais(email, body.entity_name, senha, whatsapp=body.whatsapp)
    logger.info(f"[CONTAS] Conta criada: {email} ({body.entity_type.value} #{entidade.id})")

    return {"success": True, "userId": user.id}


@router.put("")
def resetar_conta(
    body: AccountResetRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin)
):
    """Volta a conta para a senha padrão e reenvia as credenciais"""
    if not body.user_id:
        raise ValidationError("ID do usuário é obrigatório")

    user = get_by_id(db, Usuario, body.user_id, error_message="Usuário não encontrado")

    senha = aplicar_senha_temporaria(user, settings.DEFAULT_ACCOUNT_PASSWORD)
    user.status = UserStatus.PENDING
    db.commit()

    log_audit_event(
        AuditAction.USER_UPDATED,
        user_id=admin.id,
        user_email=admin.email,
        resource_type="users",
        resource_id=user.id,
        details={"action": "password_reset_by_admin"},
        request=request,
    )

    whatsapp = user.telefone
    if not whatsapp and user.fornecedor_id:
        fornecedor = db.query(Fornecedor).filter(Fornecedor.id == user.fornecedor_id).first()
        whatsapp = fornecedor.whatsapp if fornecedor else None
    enviar_credenciais(user.email, user.nome or user.email, senha, whatsapp=whatsapp, recadastro=True)

    return {"success": True}
