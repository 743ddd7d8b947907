"""
Webhooks recebidos (genérico assinado, Mercado Pago, SendGrid, WhatsApp)

Sempre respondem 200 para que o provedor não fique reenviando; falhas
ficam no log e no audit log.
"""
import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.config import settings
from app.core.logger import get_logger
from app.core.webhooks import verify_mercadopago_signature, verify_sendgrid_signature, verify_webhook_signature
from app.jobs.scheduler import enfileirar_email
from app.models.cotacao import Cotacao
from app.models.email_evento import EmailEvent
from app.services.audit_service import AuditAction, log_audit_event
from app.services.webhook_service import atualizar_pagamento, process_webhook
from app.services.whatsapp_service import parse_webhook_messages, parse_webhook_statuses, whatsapp_service

router = APIRouter()
logger = get_logger(__name__)

FALHA = {"received": True, "error": "Processing failed"}


def _assinatura_invalida(request: Request, webhook: str) -> Dict[str, Any]:
    logger.warning(f"[WEBHOOK] Assinatura inválida ({webhook})")
    log_audit_event(
        AuditAction.WEBHOOK_RECEIVED,
        details={"webhook": webhook},
        request=request,
        success=False,
        error_message="Invalid signature",
    )
    return {"received": False, "error": "Invalid signature"}


# ============ GENÉRICO ============

@router.post("/generic")
async def webhook_generico(request: Request, db: Session = Depends(get_db)):
    """Payload {event, timestamp, data} assinado em X-Webhook-Signature"""
    try:
        raw = await request.body()
        signature = request.headers.get("x-webhook-signature")

        if not verify_webhook_signature(raw, signature, settings.WEBHOOK_SECRET):
            return _assinatura_invalida(request, "generic")

        payload = json.loads(raw)
        process_webhook(db, payload)

        log_audit_event(
            AuditAction.WEBHOOK_RECEIVED,
            details={"webhook": "generic", "event": payload.get("event"), "timestamp": payload.get("timestamp")},
            request=request,
        )
        return {"received": True}
    except Exception as e:
        logger.exception(f"[WEBHOOK] Erro processando webhook genérico: {e}")
        return FALHA


# ============ MERCADO PAGO ============

@router.post("/mercadopago")
async def webhook_mercadopago(request: Request, db: Session = Depends(get_db)):
    """Atualiza payment_status da cotação; aprovado dispara email de confirmação"""
    try:
        body = await request.json()
        signature = request.headers.get("x-signature")
        data_id = request.headers.get("x-request-id")

        if signature and data_id and settings.MERCADOPAGO_WEBHOOK_SECRET:
            if not verify_mercadopago_signature(data_id, signature, settings.MERCADOPAGO_WEBHOOK_SECRET):
                return _assinatura_invalida(request, "mercadopago")

        tipo = body.get("type")
        action = body.get("action")
        data = body.get("data") or {}
        cotacao_id = (body.get("metadata") or {}).get("cotacaoId")

        if tipo == "payment" and action in ("payment.created", "payment.updated") and cotacao_id:
            cotacao = db.query(Cotacao).filter(Cotacao.id == int(cotacao_id)).first()
            if cotacao is None:
                logger.warning(f"[WEBHOOK] Mercado Pago: cotação {cotacao_id} não encontrada")
            else:
                status = data.get("status")
                atualizar_pagamento(db, cotacao, status, data.get("id"))

                payer_email = (body.get("payer") or {}).get("email")
                if status == "approved" and payer_email:
                    enfileirar_email(
                        "payment-confirmation",
                        email=payer_email,
                        cotacao_numero=cotacao.numero,
                        valor=data.get("transaction_amount"),
                    )

        log_audit_event(
            AuditAction.WEBHOOK_RECEIVED,
            details={"webhook": "mercadopago", "type": tipo, "action": action, "paymentId": data.get("id")},
            request=request,
        )
        return {"received": True}
    except Exception as e:
        logger.exception(f"[WEBHOOK] Erro processando Mercado Pago: {e}")
        return FALHA


# ============ SENDGRID ============

@router.post("/sendgrid")
async def webhook_sendgrid(request: Request, db: Session = Depends(get_db)):
    """Lista de eventos de entrega de email"""
    try:
        raw = await request.body()

        if settings.SENDGRID_WEBHOOK_PUBLIC_KEY:
            valido = verify_sendgrid_signature(
                raw,
                request.headers.get("x-twilio-email-event-webhook-signature"),
                settings.SENDGRID_WEBHOOK_PUBLIC_KEY,
                request.headers.get("x-twilio-email-event-webhook-timestamp"),
            )
            if not valido:
                return _assinatura_invalida(request, "sendgrid")

        eventos = json.loads(raw)
        if isinstance(eventos, dict):
            eventos = [eventos]
        logger.info(f"[WEBHOOK] SendGrid: {len(eventos)} evento(s)")

        for evento in eventos:
            email = evento.get("email")
            tipo = evento.get("event")
            timestamp = evento.get("timestamp")
            db.add(EmailEvent(
                email=email,
                event=tipo or "unknown",
                timestamp=int(timestamp) * 1000 if timestamp else None,
                cotacao_id=evento.get("cotacao_id"),
                raw_data=evento,
            ))

            if tipo in ("bounce", "dropped"):
                logger.warning(f"[WEBHOOK] Email bounce: {email}")
            elif tipo in ("spam", "spamreport"):
                logger.warning(f"[WEBHOOK] Email marcado como spam: {email}")
            elif tipo == "open":
                logger.info(f"[WEBHOOK] Email aberto: {email}")
            elif tipo == "click":
                logger.info(f"[WEBHOOK] Link clicado: {email}")

        db.commit()

        log_audit_event(
            AuditAction.WEBHOOK_RECEIVED,
            details={"webhook": "sendgrid", "eventCount": len(eventos)},
            request=request,
        )
        return {"received": True}
    except Exception as e:
        logger.exception(f"[WEBHOOK] Erro processando SendGrid: {e}")
        return FALHA


# ============ WHATSAPP ============

@router.get("/whatsapp")
def verificar_whatsapp(
    mode: str = Query(None, alias="hub.mode"),
    token: str = Query(None, alias="hub.verify_token"),
    challenge: str = Query("", alias="hub.challenge")
):
    """Challenge de verificação da Meta"""
    if mode == "subscribe" and settings.WHATSAPP_VERIFY_TOKEN and token == settings.WHATSAPP_VERIFY_TOKEN:
        logger.info("[WHATSAPP] Webhook verificado")
        return PlainTextResponse(challenge or "")

    logger.warning(f"[WHATSAPP] Falha na verificação do webhook (mode={mode})")
    return JSONResponse(status_code=403, content={"error": "Verification failed"})


@router.post("/whatsapp")
async def webhook_whatsapp(request: Request):
    """Mensagens recebidas são marcadas como lidas; falhas de entrega vão para o log"""
    try:
        body = await request.json()
        mensagens = parse_webhook_messages(body)
        statuses = parse_webhook_statuses(body)

        for mensagem in mensagens:
            logger.info(
                f"[WHATSAPP] Mensagem de {mensagem.get('name') or mensagem.get('from')}: "
                f"[{mensagem.get('type')}] {mensagem.get('text') or '(mídia)'}"
            )
            if mensagem.get("message_id"):
                whatsapp_service.marcar_como_lida(mensagem["message_id"])

        for status in statuses:
            if status.get("status") == "failed":
                logger.error(f"[WHATSAPP] Falha para {status.get('recipient_id')}: {status.get('errors')}")
            else:
                logger.info(f"[WHATSAPP] Status {status.get('message_id')} -> {status.get('status')}")

        if mensagens or statuses:
            log_audit_event(
                AuditAction.WEBHOOK_RECEIVED,
                details={"webhook": "whatsapp", "messagesCount": len(mensagens), "statusesCount": len(statuses)},
                request=request,
            )
        return {"received": True}
    except Exception as e:
        logger.exception(f"[WHATSAPP] Erro processando webhook: {e}")
        return FALHA
