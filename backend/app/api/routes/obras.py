"""
Obras do cliente
"""
from fastapi import APIRouter, Depends
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.api.utils import serialize, serialize_many
from app.core.validation import sanitize_numeric
from app.models.cliente import Obra
from app.models.usuario import Usuario
from app.schemas.cliente import ObraCreate, ObraResponse

router = APIRouter()


@router.get("")
def listar_obras(
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    obras = db.query(Obra).filter(Obra.user_id == user.id).order_by(desc(Obra.created_at), desc(Obra.id)).all()
    return {"data": serialize_many(ObraResponse, obras)}


@router.post("")
def criar_obra(
    data: ObraCreate,
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """Cadastra obra (endereço de entrega); CEP só com dígitos"""
    valores = data.model_dump()
    valores["cep"] = sanitize_numeric(data.cep) or None
    obra = Obra(user_id=user.id, **valores)
    db.add(obra)
    db.commit()
    db.refresh(obra)
    return {"success": True, "data": serialize(ObraResponse, obra)}
