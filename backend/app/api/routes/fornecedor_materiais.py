"""
Materiais do fornecedor: preço, estoque, ativação e pedidos de inclusão no catálogo
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.api.utils import serialize, serialize_many
from app.core.errors import AuthorizationError, ValidationError
from app.core.logger import get_logger
from app.models.fornecedor import Fornecedor
from app.models.material import FornecedorMaterial, SolicitacaoMaterial, StatusSolicitacaoMaterial
from app.models.usuario import Usuario
from app.schemas.fornecedor import FornecedorMaterialResponse

router = APIRouter()
logger = get_logger(__name__)


def _verificar_dono(db: Session, user: Usuario, fornecedor_id: Any) -> int:
    """fornecedores.user_id == usuário ou users.fornecedor_id == fornecedor"""
    if not fornecedor_id:
        raise ValidationError("fornecedor_id é obrigatório")
    try:
        fornecedor_id = int(fornecedor_id)
    except (TypeError, ValueError):
        raise ValidationError("fornecedor_id inválido")

    fornecedor = db.query(Fornecedor).filter(Fornecedor.id == fornecedor_id).first()
    if fornecedor and fornecedor.user_id == user.id:
        return fornecedor_id
    if user.fornecedor_id == fornecedor_id:
        return fornecedor_id
    raise AuthorizationError("Acesso negado")


def _registro(db: Session, fornecedor_id: int, material_id: Any) -> Optional[FornecedorMaterial]:
    return db.query(FornecedorMaterial).filter(
        FornecedorMaterial.fornecedor_id == fornecedor_id,
        FornecedorMaterial.material_id == material_id
    ).first()


@router.get("")
def listar_materiais(
    fornecedor_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    fornecedor_id = _verificar_dono(db, user, fornecedor_id)
    registros = db.query(FornecedorMaterial).filter(FornecedorMaterial.fornecedor_id == fornecedor_id).all()
    return {"data": serialize_many(FornecedorMaterialResponse, registros)}


@router.post("")
def acao_material(
    body: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """
    action:
    - upsert: configura preço/estoque (padrões 0, ativo=true)
    - toggle_ativo: ativa/desativa; cria registro zerado se não existir
    - request_material: pede inclusão de um material no catálogo
    """
    fornecedor_id = _verificar_dono(db, user, body.get("fornecedor_id"))
    action = body.get("action")
    material_id = body.get("material_id")

    if action in ("upsert", "toggle_ativo") and not material_id:
        raise ValidationError("material_id é obrigatório")

    if action == "upsert":
        registro = _registro(db, fornecedor_id, material_id)
        if registro is None:
            registro = FornecedorMaterial(fornecedor_id=fornecedor_id, material_id=material_id)
            db.add(registro)
        registro.preco = body.get("preco") if body.get("preco") is not None else 0
        registro.estoque = body.get("estoque") if body.get("estoque") is not None else 0
        registro.ativo = body["ativo"] if body.get("ativo") is not None else True
        db.commit()
        db.refresh(registro)
        return {"success": True, "data": serialize(FornecedorMaterialResponse, registro)}

    if action == "toggle_ativo":
        ativo = bool(body.get("ativo"))
        registro = _registro(db, fornecedor_id, material_id)
        if registro is None:
            registro = FornecedorMaterial(
                fornecedor_id=fornecedor_id, material_id=material_id, preco=0, estoque=0
            )
            db.add(registro)
        registro.ativo = ativo
        db.commit()
        db.refresh(registro)
        logger.info(f"[MATERIAIS] Fornecedor {fornecedor_id}: material {material_id} ativo={ativo}")
        return {"success": True, "data": serialize(FornecedorMaterialResponse, registro)}

    if action == "request_material":
        nome = (body.get("nome") or "").strip()
        if not nome:
            raise ValidationError("Nome do material é obrigatório")

        solicitacao = SolicitacaoMaterial(
            fornecedor_id=fornecedor_id,
            nome=nome,
            unidade=body.get("unidade") or "unid",
            descricao=body.get("descricao"),
            grupo_sugerido=body.get("grupo_sugerido"),
            status=StatusSolicitacaoMaterial.PENDENTE,
        )
        db.add(solicitacao)
        db.commit()
        db.refresh(solicitacao)
        logger.info(f"[MATERIAIS] Solicitação de material '{nome}' pelo fornecedor {fornecedor_id}")
        return {
            "success": True,
            "data": {
                "id": solicitacao.id,
                "fornecedor_id": fornecedor_id,
                "nome": solicitacao.nome,
                "unidade": solicitacao.unidade,
                "descricao": solicitacao.descricao,
                "grupo_sugerido": solicitacao.grupo_sugerido,
                "status": solicitacao.status.value,
            },
        }

    raise ValidationError("Ação inválida")
