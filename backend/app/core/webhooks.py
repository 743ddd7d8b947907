"""
Assinatura e verificação de webhooks

- Genérico: HMAC-SHA256 (hex) do corpo, header X-Webhook-Signature
- Mercado Pago: HMAC-SHA256 (hex) do data.id
- SendGrid: ECDSA P-256/SHA-256 sobre timestamp + corpo, assinatura base64
"""
import base64
import enum
import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional, Union

import requests
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.core.logger import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"


class WebhookEvent(str, enum.Enum):
    """Eventos conhecidos"""
    # Pagamentos
    PAYMENT_APPROVED = "payment.approved"
    PAYMENT_REJECTED = "payment.rejected"
    PAYMENT_PENDING = "payment.pending"
    PAYMENT_REFUNDED = "payment.refunded"

    # Emails
    EMAIL_DELIVERED = "email.delivered"
    EMAIL_OPENED = "email.opened"
    EMAIL_CLICKED = "email.clicked"
    EMAIL_BOUNCED = "email.bounced"
    EMAIL_SPAM = "email.spam"

    # Sistema
    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"
    COTACAO_CREATED = "cotacao.created"
    PROPOSTA_RECEIVED = "proposta.received"


def _to_bytes(payload: Union[str, bytes, Dict[str, Any]]) -> bytes:
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def sign_webhook_payload(payload: Union[str, bytes, Dict[str, Any]], secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), _to_bytes(payload), hashlib.sha256).hexdigest()


def verify_webhook_signature(
    payload: Union[str, bytes, Dict[str, Any]],
    signature: Optional[str],
    secret: Optional[str]
) -> bool:
    """Comparação em tempo constante; sem assinatura ou segredo -> False"""
    if not signature or not secret:
        return False
    expected = sign_webhook_payload(payload, secret)
    return hmac.compare_digest(signature.strip().lower(), expected)


def verify_mercadopago_signature(data_id: str, signature: str, secret: str) -> bool:
    if not data_id or not signature or not secret:
        return False
    expected = hmac.new(secret.encode("utf-8"), str(data_id).encode("utf-8"), hashlib.sha256).hexdigest()
    return hmac.compare_digest(signature.strip(), expected)


def _load_public_key(public_key: str):
    """Aceita PEM ou o base64 DER que o painel do SendGrid exibe"""
    if "BEGIN PUBLIC KEY" in public_key:
        return serialization.load_pem_public_key(public_key.encode("utf-8"))
    return serialization.load_der_public_key(base64.b64decode(public_key))


def verify_sendgrid_signature(
    payload: Union[str, bytes],
    signature: Optional[str],
    public_key: Optional[str],
    timestamp: Optional[str]
) -> bool:
    if not signature or not public_key or not timestamp:
        return False
    try:
        key = _load_public_key(public_key)
        key.verify(
            base64.b64decode(signature),
            timestamp.encode("utf-8") + _to_bytes(payload),
            ec.ECDSA(hashes.SHA256()),
        )
        return True
    except (InvalidSignature, ValueError, TypeError) as e:
        logger.warning(f"[WEBHOOK] Assinatura SendGrid inválida: {e}")
        return False


def create_webhook_payload(
    event: Union[WebhookEvent, str],
    data: Any,
    metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    payload = {
        "event": getattr(event, "value", event),
        "timestamp": int(time.time() * 1000),
        "data": data,
    }
    if metadata:
        payload["metadata"] = metadata
    return payload


def send_webhook(url: str, payload: Dict[str, Any], secret: str) -> bool:
    """Envia webhook assinado. Retorna True em 2xx."""
    body = _to_bytes(payload)
    try:
        response = requests.post(
            url,
            data=body,
            headers={
                "Content-Type": "application/json",
                SIGNATURE_HEADER: sign_webhook_payload(body, secret),
            },
            timeout=10
        )
        if not response.ok:
            logger.warning(f"[WEBHOOK] Envio para {url} falhou: HTTP {response.status_code}")
        return response.ok
    except requests.RequestException as e:
        logger.error(f"[WEBHOOK] Erro ao enviar para {url}: {e}")
        return False
