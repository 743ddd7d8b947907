"""
Conclusão de cadastro: vincula o usuário logado a um cliente ou fornecedor
"""
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.core.errors import ConflictError, ValidationError
from app.core.logger import get_logger
from app.core.validation import sanitize_email, sanitize_numeric, sanitize_string
from app.models.cliente import Cliente, ClienteStatus
from app.models.fornecedor import Fornecedor, FornecedorStatus
from app.models.usuario import Usuario
from app.schemas.cliente import ProfileCompleteRequest
from app.services.audit_service import AuditAction, log_audit_event

router = APIRouter()
logger = get_logger(__name__)


def _texto(data: Dict[str, Any], *chaves: str):
    for chave in chaves:
        valor = data.get(chave)
        if valor:
            return sanitize_string(str(valor)) or None
    return None


def _verificar_vinculo(entidade, user: Usuario, mensagem: str) -> None:
    """Cadastro existente só pode ser vinculado se estiver livre ou já for do usuário"""
    if entidade.user_id is not None and entidade.user_id != user.id:
        logger.warning(f"[PERFIL] {user.email} tentou vincular cadastro de outro usuário: {entidade.email}")
        raise ConflictError(mensagem)


def _completar_cliente(db: Session, user: Usuario, data: Dict[str, Any], email: str) -> int:
    cliente = db.query(Cliente).filter(Cliente.email == email).first() if email else None
    if cliente is None:
        cliente = Cliente(
            nome=_texto(data, "nome", "razaoSocial", "razao_social") or user.nome or email or user.email,
            email=email or user.email,
            telefone=sanitize_numeric(data.get("telefone")) or None,
            cpf_cnpj=sanitize_numeric(data.get("cpf") or data.get("cnpj")) or None,
            cep=sanitize_numeric(data.get("cep")) or None,
            logradouro=_texto(data, "endereco", "logradouro"),
            numero=_texto(data, "numero"),
            complemento=_texto(data, "complemento"),
            bairro=_texto(data, "bairro"),
            cidade=_texto(data, "cidade"),
            estado=_texto(data, "estado"),
            status=ClienteStatus.ACTIVE,
        )
        db.add(cliente)
        db.flush()
        logger.info(f"[PERFIL] Cliente criado para {user.email}: {cliente.id}")
    else:
        _verificar_vinculo(cliente, user, "Este cliente já está vinculado a outra conta")

    cliente.user_id = user.id
    cliente.updated_at = datetime.utcnow()
    user.cliente_id = cliente.id
    return cliente.id


def _completar_fornecedor(db: Session, user: Usuario, data: Dict[str, Any], email: str) -> int:
    fornecedor = db.query(Fornecedor).filter(Fornecedor.email == email).first() if email else None
    if fornecedor is None:
        fornecedor = Fornecedor(
            razao_social=_texto(data, "razaoSocial", "razao_social", "nome") or user.nome or user.email,
            nome_fantasia=_texto(data, "nomeFantasia", "nome_fantasia"),
            cnpj=sanitize_numeric(data.get("cnpj")) or None,
            email=email or user.email,
            telefone=sanitize_numeric(data.get("telefone")) or None,
            cep=sanitize_numeric(data.get("cep")) or None,
            logradouro=_texto(data, "endereco", "logradouro"),
            numero=_texto(data, "numero"),
            complemento=_texto(data, "complemento"),
            bairro=_texto(data, "bairro"),
            cidade=_texto(data, "cidade"),
            estado=_texto(data, "estado"),
            status=FornecedorStatus.PENDING,
        )
        db.add(fornecedor)
        db.flush()
        logger.info(f"[PERFIL] Fornecedor criado para {user.email}: {fornecedor.id} (pendente)")
    else:
        _verificar_vinculo(fornecedor, user, "Este fornecedor já está vinculado a outra conta")

    fornecedor.user_id = user.id
    fornecedor.updated_at = datetime.utcnow()
    user.fornecedor_id = fornecedor.id
    return fornecedor.id


@router.post("/complete")
def completar_cadastro(
    body: ProfileCompleteRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """
    type=cliente    vincula/cria cliente (ativo)
    type=fornecedor vincula/cria fornecedor (pendente de aprovação)
    """
    data = body.data or {}
    email = sanitize_email(data.get("email"))

    if body.type == "cliente":
        cliente_id = _completar_cliente(db, user, data, email)
        db.commit()
        log_audit_event(AuditAction.CLIENT_CREATED, user_id=user.id, user_email=user.email,
                        resource_type="clientes", resource_id=cliente_id, request=request)
        return {"success": True, "clienteId": cliente_id}

    if body.type == "fornecedor":
        fornecedor_id = _completar_fornecedor(db, user, data, email)
        db.commit()
        log_audit_event(AuditAction.SUPPLIER_CREATED, user_id=user.id, user_email=user.email,
                        resource_type="fornecedores", resource_id=fornecedor_id, request=request)
        return {"success": True, "fornecedorId": fornecedor_id}

    raise ValidationError("Tipo inválido")
