"""
Rotas de Pedidos (visão do fornecedor)
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy import desc
from sqlalchemy.orm import Session, selectinload

from app.api.deps import get_current_user, get_db, get_fornecedor_id
from app.api.utils import get_by_id, serialize
from app.core.errors import NotFoundError, ValidationError
from app.core.logger import get_logger
from app.models.cliente import Obra
from app.models.cotacao import Cotacao
from app.models.pedido import Pedido, StatusPedido
from app.models.usuario import Usuario
from app.schemas.pedido import PedidoActionRequest, PedidoResponse
from app.services.audit_service import AuditAction, log_audit_event
from app.services.notificacao_service import criar_notificacao

router = APIRouter()
logger = get_logger(__name__)


@router.get("")
def listar_pedidos(
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """Pedidos do fornecedor logado com obra, cotação e cliente"""
    fornecedor_id = get_fornecedor_id(db, user)
    if not fornecedor_id:
        return {"data": [], "fornecedor_id": None}

    pedidos = db.query(Pedido).options(selectinload(Pedido.itens)).filter(
        Pedido.fornecedor_id == fornecedor_id
    ).order_by(desc(Pedido.created_at), desc(Pedido.id)).all()

    obras = {o.id: o for o in db.query(Obra).filter(Obra.id.in_([p.obra_id for p in pedidos if p.obra_id]))}
    cotacoes = {c.id: c for c in db.query(Cotacao).filter(Cotacao.id.in_([p.cotacao_id for p in pedidos if p.cotacao_id]))}
    clientes = {u.id: u for u in db.query(Usuario).filter(Usuario.id.in_([p.user_id for p in pedidos]))}

    data = []
    for pedido in pedidos:
        item = serialize(PedidoResponse, pedido)
        obra = obras.get(pedido.obra_id)
        cotacao = cotacoes.get(pedido.cotacao_id)
        cliente = clientes.get(pedido.user_id)
        item["_obra"] = {
            "id": obra.id, "nome": obra.nome, "endereco": obra.endereco,
            "bairro": obra.bairro, "cidade": obra.cidade, "estado": obra.estado,
        } if obra else None
        item["_cotacao"] = {"id": cotacao.id, "numero": cotacao.numero, "status": cotacao.status.value} if cotacao else None
        item["_cliente"] = {"id": cliente.id, "nome": cliente.nome, "email": cliente.email} if cliente else None
        data.append(item)

    return {"data": data, "fornecedor_id": fornecedor_id}


@router.post("")
def atualizar_status_pedido(
    body: PedidoActionRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """
    action=update_status: fornecedor define o status do pedido

    confirmado grava data_confirmacao; o cliente é notificado.
    """
    fornecedor_id = get_fornecedor_id(db, user)
    if not fornecedor_id:
        raise NotFoundError("Fornecedor não encontrado")

    if body.action != "update_status":
        raise ValidationError("Ação inválida")
    if not body.pedido_id or not body.status:
        raise ValidationError("pedido_id e status são obrigatórios")

    try:
        novo_status = StatusPedido(body.status)
    except ValueError:
        raise ValidationError(f"Status inválido: {body.status}")

    pedido = get_by_id(db, Pedido, body.pedido_id, fornecedor_id=fornecedor_id,
                       error_message="Pedido não encontrado ou acesso negado")

    anterior = pedido.status
    pedido.status = novo_status
    pedido.updated_at = datetime.utcnow()
    if novo_status == StatusPedido.CONFIRMADO:
        pedido.data_confirmacao = datetime.utcnow()

    if novo_status != anterior:
        criar_notificacao(
            db,
            pedido.user_id,
            "Atualização de Pedido",
            f"O pedido {pedido.numero} mudou para {novo_status.value.replace('_', ' ')}.",
            link="/dashboard/cliente",
        )

    db.commit()
    db.refresh(pedido)

    log_audit_event(AuditAction.ORDER_STATUS_CHANGED, user_id=user.id, user_email=user.email,
                    resource_type="pedidos", resource_id=pedido.id,
                    details={"de": anterior.value, "para": novo_status.value}, request=request)
    logger.info(f"[PEDIDO] {pedido.numero}: {anterior.value} -> {novo_status.value}")

    return {"success": True, "data": serialize(PedidoResponse, pedido)}
