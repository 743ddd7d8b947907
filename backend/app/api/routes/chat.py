"""
Chat entre cliente e fornecedor

Salas:
- "<cotacao_id>::<fornecedor_id>" negociação (exige proposta enviada)
- "<pedido_id>" acompanhamento do pedido
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.api.utils import serialize, serialize_many
from app.core.chat_moderation import analyze_chat_message
from app.core.errors import AuthorizationError, ValidationError
from app.core.logger import get_logger
from app.models.cotacao import Cotacao, Proposta
from app.models.fornecedor import Fornecedor
from app.models.mensagem import Mensagem
from app.models.pedido import Pedido
from app.models.usuario import Usuario
from app.schemas.comunicacao import MensagemCreate, MensagemResponse
from app.services.audit_service import AuditAction, log_audit_event
from app.services.notificacao_service import criar_notificacao

router = APIRouter()
logger = get_logger(__name__)

MAX_MENSAGEM = 2000


@dataclass
class AcessoChat:
    allowed: bool
    recipient_id: Optional[int] = None
    cliente_id: Optional[int] = None
    fornecedor_id: Optional[int] = None
    cotacao_id: Optional[int] = None
    pedido_id: Optional[int] = None


NEGADO = AcessoChat(allowed=False)


def _inteiro(valor: str) -> Optional[int]:
    try:
        return int(valor.strip())
    except (TypeError, ValueError):
        return None


def resolver_acesso(db: Session, room_id: str, user_id: int) -> AcessoChat:
    """Decide se o usuário participa da sala e quem é o outro lado"""
    if "::" in room_id:
        cotacao_raw, _, fornecedor_raw = room_id.partition("::")
        cotacao_id, fornecedor_id = _inteiro(cotacao_raw), _inteiro(fornecedor_raw)
        if cotacao_id is None or fornecedor_id is None:
            return NEGADO

        cotacao = db.query(Cotacao).filter(Cotacao.id == cotacao_id).first()
        fornecedor = db.query(Fornecedor).filter(Fornecedor.id == fornecedor_id).first()
        if not cotacao or not fornecedor or not fornecedor.user_id:
            return NEGADO

        proposta = db.query(Proposta.id).filter(
            Proposta.cotacao_id == cotacao_id,
            Proposta.fornecedor_id == fornecedor_id
        ).first()
        if not proposta:
            return NEGADO

        is_cliente = user_id == cotacao.user_id
        if not is_cliente and user_id != fornecedor.user_id:
            return NEGADO

        return AcessoChat(
            allowed=True,
            recipient_id=fornecedor.user_id if is_cliente else cotacao.user_id,
            cliente_id=cotacao.user_id,
            fornecedor_id=fornecedor.id,
            cotacao_id=cotacao.id,
        )

    pedido_id = _inteiro(room_id)
    if pedido_id is None:
        return NEGADO

    pedido = db.query(Pedido).filter(Pedido.id == pedido_id).first()
    if not pedido:
        return NEGADO

    fornecedor = db.query(Fornecedor).filter(Fornecedor.id == pedido.fornecedor_id).first()
    fornecedor_user_id = fornecedor.user_id if fornecedor else None

    is_cliente = user_id == pedido.user_id
    if not is_cliente and not (fornecedor_user_id and user_id == fornecedor_user_id):
        return NEGADO

    return AcessoChat(
        allowed=True,
        recipient_id=fornecedor_user_id if is_cliente else pedido.user_id,
        cliente_id=pedido.user_id,
        fornecedor_id=fornecedor.id if fornecedor else None,
        cotacao_id=pedido.cotacao_id,
        pedido_id=pedido.id,
    )


def montar_link_notificacao(destinatario: Optional[Usuario], room_id: str, remetente: Usuario) -> str:
    """Link do dashboard conforme o papel de quem recebe"""
    if destinatario is None:
        return "/dashboard"

    papeis = set(destinatario.roles or [])
    papel = getattr(destinatario.role, "value", destinatario.role)

    params = {"chatRoom": room_id, "senderId": remetente.id}
    nome = remetente.nome or remetente.email
    if nome:
        params["senderName"] = nome
    if "::" in room_id:
        params["cotacaoId"] = room_id.split("::")[0]
    else:
        params["pedidoId"] = room_id

    if "fornecedor" in papeis or papel == "fornecedor":
        params["tab"] = "vendas-cotacoes"
        return f"/dashboard/fornecedor?{urlencode(params)}"
    if "cliente" in papeis or papel == "cliente":
        params["tab"] = "pedidos"
        return f"/dashboard/cliente?{urlencode(params)}"
    return "/dashboard"


# ============ MENSAGENS ============

@router.get("/messages")
def listar_mensagens(
    room_id: str = Query("", alias="roomId"),
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """Mensagens da sala em ordem cronológica; marca as recebidas como lidas"""
    room_id = room_id.strip()
    if not room_id:
        raise ValidationError("roomId é obrigatório")

    if not resolver_acesso(db, room_id, user.id).allowed:
        raise AuthorizationError("Acesso negado ao chat")

    mensagens = db.query(Mensagem).filter(Mensagem.chat_id == room_id).order_by(
        Mensagem.created_at, Mensagem.id
    ).all()

    nao_lidas = [m for m in mensagens if m.sender_id != user.id and not m.lida]
    if nao_lidas:
        for mensagem in nao_lidas:
            mensagem.lida = True
        db.commit()

    return {"data": serialize_many(MensagemResponse, mensagens)}


@router.post("/messages")
def enviar_mensagem(
    request: Request,
    body: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """
    Envia mensagem após moderação

    Contato externo (email, telefone, links, redes sociais) é bloqueado com 422.
    """
    dados = MensagemCreate.model_validate(body)
    room_id = (dados.room_id or "").strip()
    texto = (dados.text or "").strip()

    if not room_id or not texto:
        raise ValidationError("roomId e text são obrigatórios")
    if len(texto) > MAX_MENSAGEM:
        raise ValidationError("Mensagem muito longa")

    acesso = resolver_acesso(db, room_id, user.id)
    if not acesso.allowed:
        raise AuthorizationError("Acesso negado ao chat")

    moderacao = analyze_chat_message(texto)
    if moderacao.blocked:
        logger.warning(f"[CHAT] Mensagem bloqueada na sala {room_id} (user {user.id}): {moderacao.reasons}")
        log_audit_event(
            AuditAction.CHAT_MESSAGE_BLOCKED,
            user_id=user.id,
            user_email=user.email,
            resource_type="chat_message",
            details={"roomId": room_id, "reasons": moderacao.reasons, "contentPreview": texto[:160]},
            request=request,
            success=False,
        )
        return JSONResponse(
            status_code=422,
            content={
                "error": "Mensagem bloqueada por política da plataforma",
                "reasons": moderacao.reasons,
            },
        )

    mensagem = Mensagem(
        chat_id=room_id,
        sender_id=user.id,
        conteudo=texto,
        tipo="texto",
        cliente_id=acesso.cliente_id,
        fornecedor_id=acesso.fornecedor_id,
        cotacao_id=acesso.cotacao_id,
        pedido_id=acesso.pedido_id,
    )
    db.add(mensagem)

    if acesso.recipient_id:
        destinatario = db.query(Usuario).filter(Usuario.id == acesso.recipient_id).first()
        criar_notificacao(
            db,
            acesso.recipient_id,
            "Nova mensagem no chat",
            f"Nova mensagem de {user.nome or user.email or 'um usuário'} em uma negociação.",
            tipo="info",
            link=montar_link_notificacao(destinatario, room_id, user),
        )

    db.commit()
    db.refresh(mensagem)
    return {"success": True, "data": serialize(MensagemResponse, mensagem)}


# ============ SALAS ============

def _titulo_sala(db: Session, room_id: str) -> str:
    if "::" in room_id:
        cotacao_id = _inteiro(room_id.split("::")[0])
        cotacao = db.query(Cotacao).filter(Cotacao.id == cotacao_id).first() if cotacao_id else None
        return f"Cotação #{cotacao.numero}" if cotacao else "Cotação"

    pedido_id = _inteiro(room_id)
    pedido = db.query(Pedido).filter(Pedido.id == pedido_id).first() if pedido_id else None
    return f"Pedido #{pedido.numero}" if pedido else "Pedido"


def _participantes(db: Session, room_id: str) -> set:
    acesso = None
    if "::" in room_id:
        cotacao_raw, _, fornecedor_raw = room_id.partition("::")
        cotacao = db.query(Cotacao).filter(Cotacao.id == _inteiro(cotacao_raw)).first()
        fornecedor = db.query(Fornecedor).filter(Fornecedor.id == _inteiro(fornecedor_raw)).first()
        if cotacao and fornecedor:
            acesso = {cotacao.user_id, fornecedor.user_id}
    else:
        pedido = db.query(Pedido).filter(Pedido.id == _inteiro(room_id)).first()
        if pedido:
            fornecedor = db.query(Fornecedor).filter(Fornecedor.id == pedido.fornecedor_id).first()
            acesso = {pedido.user_id, fornecedor.user_id if fornecedor else None}
    return acesso or set()


@router.get("/rooms")
def listar_salas(
    recipient_id: Optional[int] = Query(None, alias="recipientId"),
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """Salas em comum entre o usuário e o destinatário, mais recentes primeiro"""
    if not recipient_id:
        raise ValidationError("recipientId é obrigatório")

    def salas_de(sender_id: int) -> set:
        return {
            row.chat_id for row in
            db.query(Mensagem.chat_id).filter(Mensagem.sender_id == sender_id).distinct()
        }

    minhas = salas_de(user.id)
    deles = salas_de(recipient_id)

    compartilhadas = minhas & deles
    for room_id in minhas ^ deles:
        if {user.id, recipient_id} <= _participantes(db, room_id):
            compartilhadas.add(room_id)

    rooms = []
    for room_id in compartilhadas:
        ultima = db.query(Mensagem).filter(Mensagem.chat_id == room_id).order_by(
            desc(Mensagem.created_at), desc(Mensagem.id)
        ).first()
        nao_lidas = db.query(Mensagem).filter(
            Mensagem.chat_id == room_id,
            Mensagem.sender_id != user.id,
            Mensagem.lida.is_(False)
        ).count()
        rooms.append({
            "roomId": room_id,
            "title": _titulo_sala(db, room_id),
            "lastMessage": ultima.conteudo if ultima else "",
            "lastMessageAt": ultima.created_at.isoformat() if ultima and ultima.created_at else "",
            "unreadCount": nao_lidas,
        })

    rooms.sort(key=lambda r: r["lastMessageAt"], reverse=True)
    return {"rooms": rooms}
