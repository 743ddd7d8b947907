"""
Cadastro de fabricantes (somente admin)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_admin
from app.api.utils import serialize
from app.core.errors import ValidationError
from app.core.validation import sanitize_string
from app.models.fabricante import Fabricante
from app.models.usuario import Usuario
from app.schemas.admin import FabricanteCreate, FabricanteResponse

router = APIRouter()


@router.get("")
def listar_fabricantes(
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin)
):
    """
    Lista ordenada por nome (sem diferenciar maiúsculas), sem duplicatas
    de nome + contato
    """
    fabricantes = sorted(db.query(Fabricante).all(), key=lambda f: (f.name or "").lower())

    vistos = set()
    unicos = []
    for fabricante in fabricantes:
        chave = f"{(fabricante.name or '').strip().lower()}|{(fabricante.contact or '').strip().lower()}"
        if chave in vistos:
            continue
        vistos.add(chave)
        unicos.append(serialize(FabricanteResponse, fabricante))

    return {"manufacturers": unicos, "total": len(unicos)}


@router.post("")
def criar_fabricante(
    data: FabricanteCreate,
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin)
):
    nome = sanitize_string(data.name)
    if not nome:
        raise ValidationError("Nome do fabricante é obrigatório.")

    fabricante = Fabricante(
        name=nome,
        category=sanitize_string(data.category) or None,
        contact=sanitize_string(data.contact) or None,
        status=data.status or "Ativo",
    )
    db.add(fabricante)
    db.commit()
    db.refresh(fabricante)

    return {"success": True, "manufacturer": serialize(FabricanteResponse, fabricante)}
