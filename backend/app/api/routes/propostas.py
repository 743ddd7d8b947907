"""
Rotas de Propostas (fornecedor responde uma cotação)
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, get_fornecedor_id
from app.api.utils import get_by_id, serialize
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.logger import get_logger
from app.jobs.scheduler import enfileirar_whatsapp
from app.models.cotacao import Cotacao, Proposta, PropostaItem, StatusCotacao, StatusProposta
from app.models.fornecedor import Fornecedor
from app.models.usuario import Usuario
from app.schemas.cotacao import PropostaActionRequest, PropostaResponse
from app.services.audit_service import AuditAction, log_audit_event
from app.services.notificacao_service import criar_notificacao

router = APIRouter()
logger = get_logger(__name__)


@router.post("")
def criar_proposta(
    body: PropostaActionRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """
    Envia proposta para uma cotação

    Fluxo:
    1. Resolve o fornecedor do usuário
    2. Uma proposta por fornecedor/cotação (409 na segunda)
    3. Cotação ENVIADA passa a RESPONDIDA
    4. Notifica o cliente (dashboard + WhatsApp)
    """
    if body.action != "create":
        raise ValidationError("Ação inválida")

    fornecedor_id = get_fornecedor_id(db, user)
    if not fornecedor_id:
        raise NotFoundError("Fornecedor não encontrado")

    if not body.cotacao_id or body.itens is None:
        raise ValidationError("Dados incompletos")

    cotacao = get_by_id(db, Cotacao, body.cotacao_id, error_message="Cotação não encontrada")

    existente = db.query(Proposta.id).filter(
        Proposta.cotacao_id == cotacao.id,
        Proposta.fornecedor_id == fornecedor_id
    ).first()
    if existente:
        raise ConflictError("Você já enviou uma proposta para esta cotação")

    proposta = Proposta(
        cotacao_id=cotacao.id,
        fornecedor_id=fornecedor_id,
        status=StatusProposta.ENVIADA,
        valor_total=body.valor_total or 0,
        valor_frete=body.valor_frete or 0,
        condicoes_pagamento=body.condicoes_pagamento or None,
        observacoes=body.observacoes or None,
        data_envio=datetime.utcnow(),
        data_validade=body.data_validade,
    )
    for item in body.itens:
        proposta.itens.append(PropostaItem(
            cotacao_item_id=item.cotacao_item_id,
            preco_unitario=item.preco_unitario or 0,
            quantidade=item.quantidade,
            subtotal=item.subtotal or 0,
            disponibilidade=item.disponibilidade or "indisponivel",
            prazo_dias=item.prazo_dias if item.prazo_dias is not None else -1,
            observacao=item.observacao or None,
        ))
    db.add(proposta)

    if cotacao.status == StatusCotacao.ENVIADA:
        cotacao.status = StatusCotacao.RESPONDIDA

    fornecedor = db.query(Fornecedor).filter(Fornecedor.id == fornecedor_id).first()
    nome = (fornecedor.nome_fantasia or fornecedor.razao_social) if fornecedor else None
    criar_notificacao(
        db,
        cotacao.user_id,
        "Nova Proposta Recebida",
        f"{nome or 'Um fornecedor'} enviou uma proposta para sua cotação.",
        tipo="success",
        link="/dashboard/cliente",
    )

    db.commit()
    db.refresh(proposta)

    cliente = db.query(Usuario).filter(Usuario.id == cotacao.user_id).first()
    if cliente and cliente.telefone:
        enfileirar_whatsapp("notificar_nova_proposta", cliente.telefone, cotacao.numero)

    log_audit_event(AuditAction.PROPOSAL_CREATED, user_id=user.id, user_email=user.email,
                    resource_type="propostas", resource_id=proposta.id,
                    details={"cotacao": cotacao.numero, "fornecedor_id": fornecedor_id}, request=request)
    logger.info(f"[PROPOSTA] Fornecedor {fornecedor_id} respondeu {cotacao.numero}")

    return {"success": True, "data": serialize(PropostaResponse, proposta)}
