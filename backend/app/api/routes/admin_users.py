"""
Rotas de Gestão de Usuários (somente admin)

Listagem paginada (página começa em 0), criação, atualização parcial
e exclusão de contas.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy import String, cast, desc, or_
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_admin
from app.api.utils import (
    apply_search_filter, get_by_id, paginate_query, serialize, serialize_many, update_entity, validate_unique
)
from app.config import settings
from app.core.errors import ValidationError
from app.core.logger import get_logger
from app.core.security import resolve_primary_role
from app.core.validation import sanitize_email, validate_email
from app.models.usuario import Role, UserStatus, Usuario
from app.schemas.usuario import AdminUserCreate, UsuarioResponse
from app.services.audit_service import AuditAction, log_audit_event
from app.services.conta_service import aplicar_senha_temporaria, enviar_credenciais

router = APIRouter()
logger = get_logger(__name__)

# Colunas que o PATCH pode alterar diretamente
CAMPOS_EDITAVEIS = (
    "nome", "telefone", "cpf_cnpj", "status", "is_verified",
    "cliente_id", "fornecedor_id", "must_change_password",
)


def _filtro_role(query, role: str):
    """Papel escalar ou contido na lista JSON de papéis"""
    return query.filter(or_(
        Usuario.role == role,
        cast(Usuario.roles, String).like(f'%"{role}"%'),
    ))


@router.get("")
def listar_usuarios(
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin),
    page: int = Query(0, ge=0),
    per_page: int = Query(10, ge=1, le=100, alias="perPage"),
    role: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None
):
    """
    Listar usuários

    role=all (ou vazio) não filtra; search busca em email e nome.
    """
    query = db.query(Usuario)

    if role and role != "all":
        if role not in {r.value for r in Role}:
            raise ValidationError("Papel inválido")
        query = _filtro_role(query, role)
    if status:
        if status not in {s.value for s in UserStatus}:
            raise ValidationError("Status inválido")
        query = query.filter(Usuario.status == status)
    query = apply_search_filter(query, search, Usuario.email, Usuario.nome)

    users, total = paginate_query(query, page=page, page_size=per_page, order_by=desc(Usuario.created_at))

    return {
        "success": True,
        "users": serialize_many(UsuarioResponse, users),
        "total": total,
        "page": page,
        "perPage": per_page,
    }


@router.post("")
def criar_usuario(
    data: AdminUserCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin)
):
    """
    Criar novo usuário

    Fornecedor recebe a senha padrão e o email de recadastro com credenciais.
    """
    if not data.email or not data.password:
        raise ValidationError("Email e senha são obrigatórios")

    email = sanitize_email(data.email)
    if not validate_email(email):
        raise ValidationError("Email inválido")

    validate_unique(db, Usuario, "email", email, message="Email já cadastrado")

    usuario = Usuario(
        email=email,
        nome=data.nome,
        telefone=data.telefone,
        role=data.role,
        roles=[data.role.value],
        status=UserStatus.ACTIVE,
        is_verified=True,
    )
    senha = data.password
    if data.role == Role.FORNECEDOR:
        senha = settings.DEFAULT_ACCOUNT_PASSWORD
    aplicar_senha_temporaria(usuario, senha)

    db.add(usuario)
    db.commit()
    db.refresh(usuario)

    if data.role == Role.FORNECEDOR:
        enviar_credenciais(email, data.nome or email, senha, whatsapp=data.telefone, recadastro=True)

    log_audit_event(AuditAction.USER_CREATED, user_id=admin.id, user_email=admin.email,
                    resource_type="users", resource_id=usuario.id,
                    details={"email": email, "role": data.role.value}, request=request)
    logger.info(f"[ADMIN] Usuário criado: {email} ({data.role.value})")

    return {"success": True, "user": serialize(UsuarioResponse, usuario)}


@router.patch("")
def atualizar_usuario(
    request: Request,
    body: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin)
):
    """
    Atualização parcial: {userId, ...campos}

    - password: gera novo hash e força troca no próximo login
    - roles: recalcula o papel principal
    """
    user_id = body.get("userId")
    if not user_id:
        raise ValidationError("ID do usuário é obrigatório")

    usuario = get_by_id(db, Usuario, user_id, error_message="Usuário não encontrado")
    detalhes: Dict[str, Any] = {"campos": sorted(k for k in body if k in CAMPOS_EDITAVEIS)}

    if body.get("password"):
        aplicar_senha_temporaria(usuario, body["password"])
        detalhes["password"] = True

    if body.get("roles") is not None:
        roles = [str(r).lower() for r in body["roles"] if r]
        if any(r not in {p.value for p in Role} for r in roles):
            raise ValidationError("Papel inválido")
        anterior = usuario.role
        usuario.roles = roles
        usuario.role = resolve_primary_role(roles)
        if usuario.role != anterior:
            log_audit_event(AuditAction.USER_ROLE_CHANGED, user_id=admin.id, user_email=admin.email,
                            resource_type="users", resource_id=usuario.id,
                            details={"de": anterior.value, "para": usuario.role.value}, request=request)

    if body.get("status") and body["status"] not in {s.value for s in UserStatus}:
        raise ValidationError("Status inválido")

    usuario.updated_at = datetime.utcnow()
    # Troca de senha pelo admin sempre exige nova troca pelo usuário
    exclude = ("must_change_password",) if detalhes.get("password") else None
    usuario = update_entity(db, usuario, body, allowed_fields=CAMPOS_EDITAVEIS, exclude_fields=exclude)

    log_audit_event(AuditAction.USER_UPDATED, user_id=admin.id, user_email=admin.email,
                    resource_type="users", resource_id=usuario.id, details=detalhes, request=request)

    return {"success": True, "user": serialize(UsuarioResponse, usuario)}


@router.delete("")
def excluir_usuario(
    request: Request,
    user_id: Optional[int] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin)
):
    """Excluir usuário (não é possível excluir a si mesmo)"""
    if not user_id:
        raise ValidationError("ID do usuário é obrigatório")
    if user_id == admin.id:
        raise ValidationError("Não é possível excluir a si mesmo")

    usuario = get_by_id(db, Usuario, user_id, error_message="Usuário não encontrado")
    email = usuario.email
    db.delete(usuario)
    db.commit()

    log_audit_event(AuditAction.USER_DELETED, user_id=admin.id, user_email=admin.email,
                    resource_type="users", resource_id=user_id, details={"email": email}, request=request)
    logger.info(f"[ADMIN] Usuário excluído: {email}")

    return {"success": True}
