"""
Notificações do dashboard

Criadas na mesma sessão da operação que as origina (entram no mesmo commit).
"""
from typing import Optional

from sqlalchemy.orm import Session

from app.models.mensagem import Notificacao


def criar_notificacao(
    db: Session,
    user_id: Optional[int],
    titulo: str,
    mensagem: str,
    tipo: str = "info",
    link: Optional[str] = None
) -> Optional[Notificacao]:
    """Adiciona a notificação à sessão (sem commit). Sem destinatário, não faz nada."""
    if not user_id:
        return None
    notificacao = Notificacao(
        user_id=user_id,
        titulo=titulo,
        mensagem=mensagem,
        tipo=tipo,
        link=link,
    )
    db.add(notificacao)
    return notificacao
