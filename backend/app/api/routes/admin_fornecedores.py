"""
Gestão de fornecedores pelo painel admin

POST usa o campo "action": create | addGrupo | removeGrupo
"""
import time
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_admin
from app.api.utils import get_by_id, serialize, serialize_many, update_entity
from app.core.errors import ValidationError
from app.core.logger import get_logger
from app.models.fornecedor import Fornecedor, FornecedorStatus, fornecedor_grupo
from app.models.material import GrupoInsumo
from app.models.usuario import Usuario
from app.schemas.admin import FornecedorGrupoRequest
from app.schemas.fornecedor import FornecedorCreate, FornecedorResponse, GrupoInsumoResponse
from app.services.audit_service import AuditAction, log_audit_event

router = APIRouter()
logger = get_logger(__name__)

# Colunas que o admin pode alterar via PUT
CAMPOS_EDITAVEIS = (
    "codigo", "razao_social", "nome_fantasia", "cnpj", "inscricao_estadual",
    "email", "telefone", "whatsapp", "contato", "site",
    "logradouro", "numero", "complemento", "bairro", "cidade", "estado", "cep",
    "regioes_atendimento", "observacoes", "status",
)


def _gerar_codigo() -> str:
    """F + últimos 6 dígitos do timestamp em ms"""
    return f"F{str(int(time.time() * 1000))[-6:]}"


@router.get("")
def listar_fornecedores(
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin)
):
    """Fornecedores + grupos + vínculos usados pela tela de gestão"""
    fornecedores = db.query(Fornecedor).order_by(Fornecedor.razao_social).all()
    grupos = db.query(GrupoInsumo).order_by(GrupoInsumo.nome).all()
    users = db.query(Usuario.id, Usuario.fornecedor_id).filter(Usuario.fornecedor_id.isnot(None)).all()
    vinculos = db.execute(select(fornecedor_grupo.c.fornecedor_id, fornecedor_grupo.c.grupo_id)).all()

    return {
        "fornecedores": serialize_many(FornecedorResponse, fornecedores),
        "grupos": serialize_many(GrupoInsumoResponse, grupos),
        "users": [{"id": u.id, "fornecedor_id": u.fornecedor_id} for u in users],
        "fornecedorGrupos": [{"fornecedor_id": v.fornecedor_id, "grupo_id": v.grupo_id} for v in vinculos],
    }


def _criar(db: Session, dados: Optional[Dict[str, Any]]) -> Fornecedor:
    try:
        data = FornecedorCreate.model_validate(dados or {})
    except PydanticValidationError as e:
        raise ValidationError(f"Dados do fornecedor inválidos: {e.errors()[0].get('msg')}")

    fornecedor = Fornecedor(**data.model_dump())
    if not fornecedor.codigo:
        fornecedor.codigo = _gerar_codigo()
    db.add(fornecedor)
    db.commit()
    db.refresh(fornecedor)
    return fornecedor


def _tocar(db: Session, fornecedor_id: int) -> None:
    fornecedor = get_by_id(db, Fornecedor, fornecedor_id, error_message="Fornecedor não encontrado")
    fornecedor.updated_at = datetime.utcnow()


@router.post("")
def acao_fornecedor(
    body: FornecedorGrupoRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin)
):
    """Criação de fornecedor e vínculo com grupos de insumo"""
    if body.action == "create":
        fornecedor = _criar(db, body.fornecedor)
        log_audit_event(AuditAction.SUPPLIER_CREATED, user_id=admin.id, user_email=admin.email,
                        resource_type="fornecedores", resource_id=fornecedor.id, request=request)
        logger.info(f"[ADMIN] Fornecedor criado: {fornecedor.razao_social} ({fornecedor.codigo})")
        return {"success": True, "fornecedor": serialize(FornecedorResponse, fornecedor)}

    if body.action in ("addGrupo", "removeGrupo"):
        if not body.fornecedor_id or not body.grupo_id:
            raise ValidationError("fornecedorId e grupoId são obrigatórios")

        _tocar(db, body.fornecedor_id)
        filtro = (
            (fornecedor_grupo.c.fornecedor_id == body.fornecedor_id)
            & (fornecedor_grupo.c.grupo_id == body.grupo_id)
        )
        if body.action == "addGrupo":
            get_by_id(db, GrupoInsumo, body.grupo_id, error_message="Grupo não encontrado")
            existe = db.execute(select(func.count()).select_from(fornecedor_grupo).where(filtro)).scalar()
            if not existe:
                db.execute(insert(fornecedor_grupo).values(
                    fornecedor_id=body.fornecedor_id, grupo_id=body.grupo_id
                ))
        else:
            db.execute(delete(fornecedor_grupo).where(filtro))
        db.commit()

        log_audit_event(AuditAction.SUPPLIER_UPDATED, user_id=admin.id, user_email=admin.email,
                        resource_type="fornecedores", resource_id=body.fornecedor_id,
                        details={"action": body.action, "grupoId": body.grupo_id}, request=request)
        return {"success": True}

    raise ValidationError("Ação não reconhecida")


@router.put("")
def atualizar_fornecedor(
    request: Request,
    body: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin)
):
    """Atualiza apenas as colunas da lista branca"""
    fornecedor_id = body.get("id")
    if not fornecedor_id:
        raise ValidationError("ID é obrigatório")

    if body.get("status") is not None:
        try:
            body = {**body, "status": FornecedorStatus(body["status"])}
        except ValueError:
            raise ValidationError("Status inválido")

    fornecedor = get_by_id(db, Fornecedor, fornecedor_id, error_message="Fornecedor não encontrado")
    fornecedor = update_entity(db, fornecedor, body, allowed_fields=CAMPOS_EDITAVEIS)

    log_audit_event(AuditAction.SUPPLIER_UPDATED, user_id=admin.id, user_email=admin.email,
                    resource_type="fornecedores", resource_id=fornecedor.id,
                    details={"campos": sorted(k for k in body if k in CAMPOS_EDITAVEIS)}, request=request)

    return {"success": True, "fornecedor": serialize(FornecedorResponse, fornecedor)}


@router.delete("")
def excluir_fornecedor(
    request: Request,
    id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin)
):
    """Remove vínculos com grupos e depois o fornecedor"""
    if not id:
        raise ValidationError("ID é obrigatório")

    fornecedor = get_by_id(db, Fornecedor, id, error_message="Fornecedor não encontrado")
    db.execute(delete(fornecedor_grupo).where(fornecedor_grupo.c.fornecedor_id == id))
    db.delete(fornecedor)
    db.commit()

    log_audit_event(AuditAction.SUPPLIER_DELETED, user_id=admin.id, user_email=admin.email,
                    resource_type="fornecedores", resource_id=id, request=request)
    logger.info(f"[ADMIN] Fornecedor {id} excluído")

    return {"success": True}
