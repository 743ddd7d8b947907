"""
Processamento de webhooks recebidos (payload genérico assinado)

Formato esperado: {"event": "...", "timestamp": 1700000000000, "data": {...}}
"""
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.logger import get_logger
from app.core.webhooks import WebhookEvent
from app.models.cotacao import Cotacao
from app.models.email_evento import EmailEvent

logger = get_logger(__name__)


def _cotacao_do_pagamento(db: Session, data: Dict[str, Any]) -> Optional[Cotacao]:
    cotacao_id = data.get("cotacaoId") or (data.get("metadata") or {}).get("cotacaoId")
    if not cotacao_id:
        return None
    return db.query(Cotacao).filter(Cotacao.id == int(cotacao_id)).first()


def atualizar_pagamento(db: Session, cotacao: Cotacao, status: str, payment_id: Optional[Any]) -> None:
    cotacao.payment_status = status
    if payment_id is not None:
        cotacao.payment_id = str(payment_id)
    db.commit()
    logger.info(f"[WEBHOOK] Pagamento da cotação {cotacao.numero}: {status}")


def _pagamento(db: Session, data: Dict[str, Any], status: str) -> None:
    cotacao = _cotacao_do_pagamento(db, data)
    if cotacao is None:
        logger.warning(f"[WEBHOOK] Pagamento {status} sem cotação associada: {data}")
        return
    atualizar_pagamento(db, cotacao, status, data.get("paymentId") or data.get("id"))


def _email_problema(db: Session, data: Dict[str, Any], evento: str) -> None:
    logger.warning(f"[WEBHOOK] Email {evento}: {data.get('email')}")
    db.add(EmailEvent(
        email=data.get("email"),
        event=evento,
        timestamp=data.get("timestamp"),
        raw_data=data,
    ))
    db.commit()


def process_webhook(db: Session, payload: Dict[str, Any]) -> None:
    """Despacha o evento; eventos sem handler só são logados"""
    event = payload.get("event")
    data = payload.get("data") or {}
    logger.info(f"[WEBHOOK] Processando evento: {event}")

    if event == WebhookEvent.PAYMENT_APPROVED.value:
        _pagamento(db, data, "approved")
    elif event == WebhookEvent.PAYMENT_REJECTED.value:
        _pagamento(db, data, "rejected")
    elif event == WebhookEvent.EMAIL_BOUNCED.value:
        _email_problema(db, data, "bounce")
    elif event == WebhookEvent.EMAIL_SPAM.value:
        _email_problema(db, data, "spamreport")
    else:
        logger.info(f"[WEBHOOK] Evento sem handler: {event}")
