"""
Perfil do fornecedor (dados da empresa, responsável e grupos de insumo atendidos)
"""
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.api.utils import serialize, serialize_many
from app.core.errors import AuthorizationError, ValidationError
from app.core.logger import get_logger
from app.core.validation import sanitize_numeric
from app.models.fornecedor import Fornecedor, fornecedor_grupo
from app.models.material import GrupoInsumo, Material, material_grupo
from app.models.usuario import Usuario
from app.schemas.fornecedor import FornecedorResponse, GrupoInsumoResponse
from app.schemas.usuario import UsuarioResponse

router = APIRouter()
logger = get_logger(__name__)


def _digitos(valor: Optional[str]) -> Optional[str]:
    return sanitize_numeric(valor) or None


@router.get("")
def carregar_perfil(
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """Usuário + fornecedor vinculado + grupos e prévia de materiais por grupo"""
    fornecedor = None
    supplier_groups: List[int] = []
    if user.fornecedor_id:
        fornecedor = db.query(Fornecedor).filter(Fornecedor.id == user.fornecedor_id).first()
        supplier_groups = [
            row.grupo_id for row in db.execute(
                select(fornecedor_grupo.c.grupo_id).where(fornecedor_grupo.c.fornecedor_id == user.fornecedor_id)
            )
        ]

    grupos = db.query(GrupoInsumo).order_by(GrupoInsumo.nome).all()

    materiais = {m.id: m for m in db.query(Material).order_by(Material.nome)}
    materiais_por_grupo: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
    for row in db.execute(select(material_grupo.c.material_id, material_grupo.c.grupo_id)):
        material = materiais.get(row.material_id)
        if material:
            materiais_por_grupo[row.grupo_id].append(
                {"id": material.id, "nome": material.nome, "unidade": material.unidade}
            )

    return {
        "userProfile": serialize(UsuarioResponse, user),
        "fornecedor": serialize(FornecedorResponse, fornecedor) if fornecedor else None,
        "supplierGroups": supplier_groups,
        "allGroups": serialize_many(GrupoInsumoResponse, grupos),
        "materiaisByGrupo": {str(k): v for k, v in materiais_por_grupo.items()},
    }


@router.put("")
def salvar_perfil(
    body: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """
    Salva {company, manager, preferences}

    CNPJ, telefones e CEP são gravados só com dígitos.
    """
    company = body.get("company") or {}
    manager = body.get("manager") or {}
    preferences = body.get("preferences") or {}

    if manager.get("nome"):
        user.nome = manager["nome"]
    telefone = _digitos(manager.get("whatsapp")) or _digitos(company.get("telefone"))
    if telefone:
        user.telefone = telefone
    if company.get("cnpj"):
        user.cpf_cnpj = _digitos(company["cnpj"])
    user.preferencias = preferences or user.preferencias
    user.updated_at = datetime.utcnow()

    if user.fornecedor_id:
        fornecedor = db.query(Fornecedor).filter(Fornecedor.id == user.fornecedor_id).first()
        if fornecedor:
            if company.get("razaoSocial"):
                fornecedor.razao_social = company["razaoSocial"]
            fornecedor.cnpj = _digitos(company.get("cnpj"))
            fornecedor.inscricao_estadual = company.get("inscricaoEstadual") or None
            fornecedor.telefone = _digitos(company.get("telefone"))
            fornecedor.contato = manager.get("nome") or None
            fornecedor.email = manager.get("email") or None
            fornecedor.whatsapp = _digitos(manager.get("whatsapp"))
            fornecedor.cep = _digitos(company.get("cep"))
            fornecedor.logradouro = company.get("logradouro") or None
            fornecedor.numero = company.get("numero") or None
            fornecedor.complemento = company.get("complemento") or None
            fornecedor.bairro = company.get("bairro") or None
            fornecedor.cidade = company.get("cidade") or None
            fornecedor.estado = company.get("estado") or None
            if preferences.get("regioesAtendimento") is not None:
                fornecedor.regioes_atendimento = preferences["regioesAtendimento"]
            fornecedor.updated_at = datetime.utcnow()

    db.commit()
    logger.info(f"[PERFIL] Perfil de fornecedor salvo: {user.email}")
    return {"success": True}


@router.post("")
def salvar_grupos(
    body: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """Substitui os grupos de insumo atendidos pelo fornecedor"""
    fornecedor_id = body.get("fornecedorId")
    if not fornecedor_id:
        raise ValidationError("Fornecedor não identificado")
    try:
        fornecedor_id = int(fornecedor_id)
    except (TypeError, ValueError):
        raise ValidationError("Fornecedor não identificado")

    if user.fornecedor_id != fornecedor_id:
        raise AuthorizationError("Acesso negado")

    grupos = {int(g) for g in (body.get("groups") or [])}

    db.execute(delete(fornecedor_grupo).where(fornecedor_grupo.c.fornecedor_id == fornecedor_id))
    if grupos:
        db.execute(insert(fornecedor_grupo), [
            {"fornecedor_id": fornecedor_id, "grupo_id": grupo_id} for grupo_id in sorted(grupos)
        ])
    db.commit()

    logger.info(f"[PERFIL] Fornecedor {fornecedor_id} atende {len(grupos)} grupo(s)")
    return {"success": True}
