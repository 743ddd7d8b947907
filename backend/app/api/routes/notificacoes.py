"""
Notificações do dashboard
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.api.utils import get_by_id, serialize_many
from app.models.mensagem import Notificacao
from app.models.usuario import Usuario
from app.schemas.comunicacao import NotificacaoResponse

router = APIRouter()


@router.get("")
def listar_notificacoes(
    apenas_nao_lidas: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    query = db.query(Notificacao).filter(Notificacao.user_id == user.id)
    if apenas_nao_lidas:
        query = query.filter(Notificacao.lida.is_(False))

    notificacoes = query.order_by(desc(Notificacao.created_at), desc(Notificacao.id)).limit(limit).all()
    nao_lidas = db.query(Notificacao).filter(
        Notificacao.user_id == user.id,
        Notificacao.lida.is_(False)
    ).count()

    return {"data": serialize_many(NotificacaoResponse, notificacoes), "unread": nao_lidas}


@router.post("/{notificacao_id}/lida")
def marcar_como_lida(
    notificacao_id: int,
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """Marca uma notificação do próprio usuário como lida"""
    notificacao = get_by_id(db, Notificacao, notificacao_id, user_id=user.id,
                            error_message="Notificação não encontrada")
    notificacao.lida = True
    db.commit()
    return {"success": True}
