"""
Serviço de WhatsApp - Meta Cloud API

Envio de mensagens de texto/template, confirmação de leitura e
parse dos payloads do webhook.

Variáveis de ambiente:
- WHATSAPP_ACCESS_TOKEN: token permanente (System User)
- WHATSAPP_PHONE_NUMBER_ID: ID do número no WhatsApp Business
- WHATSAPP_VERIFY_TOKEN: token de verificação do webhook
"""
import re
from typing import Any, Dict, List, Optional

import requests

from app.config import settings
from app.core.logger import get_logger

logger = get_logger(__name__)


class WhatsAppService:
    """Cliente da WhatsApp Business Cloud API"""

    @property
    def is_configured(self) -> bool:
        return bool(settings.WHATSAPP_ACCESS_TOKEN and settings.WHATSAPP_PHONE_NUMBER_ID)

    @property
    def _messages_url(self) -> str:
        return f"{settings.WHATSAPP_API_URL}/{settings.WHATSAPP_PHONE_NUMBER_ID}/messages"

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {settings.WHATSAPP_ACCESS_TOKEN}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def formatar_numero(numero: str) -> str:
        """
        Normaliza para o formato internacional sem "+"
        Entrada: (11) 99999-9999, 011999999999 ou +5511999999999
        Saída: 5511999999999
        """
        digits = re.sub(r"\D", "", numero or "")
        digits = digits.lstrip("0")
        if digits and not digits.startswith("55"):
            digits = "55" + digits
        return digits

    def _enviar(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured:
            logger.warning("[WHATSAPP] Não configurado - pulando envio")
            return {"sucesso": False, "erro": "WhatsApp não configurado"}

        try:
            response = requests.post(self._messages_url, json=payload, headers=self._headers, timeout=10)
            data = response.json() if response.content else {}
        except requests.exceptions.Timeout:
            logger.error("[WHATSAPP] Timeout ao enviar mensagem (>10s)")
            return {"sucesso": False, "erro": "Timeout"}
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[WHATSAPP] Erro ao enviar: {e}")
            return {"sucesso": False, "erro": str(e)}

        if not response.ok:
            erro = (data.get("error") or {}).get("message") or f"HTTP {response.status_code}"
            logger.error(f"[WHATSAPP] Falha ao enviar para {payload.get('to')}: {erro}")
            return {"sucesso": False, "erro": erro}

        message_id = (data.get("messages") or [{}])[0].get("id")
        logger.info(f"[WHATSAPP] Enviado para {payload.get('to')} (ID: {message_id})")
        return {"sucesso": True, "message_id": message_id}

    def enviar_texto(self, numero: str, texto: str) -> Dict[str, Any]:
        return self._enviar({
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": self.formatar_numero(numero),
            "type": "text",
            "text": {"preview_url": False, "body": texto},
        })

    def enviar_template(
        self,
        numero: str,
        template: str,
        idioma: str = "pt_BR",
        componentes: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        template_payload: Dict[str, Any] = {"name": template, "language": {"code": idioma}}
        if componentes:
            template_payload["components"] = componentes
        return self._enviar({
            "messaging_product": "whatsapp",
            "to": self.formatar_numero(numero),
            "type": "template",
            "template": template_payload,
        })

    def marcar_como_lida(self, message_id: str) -> bool:
        if not self.is_configured:
            return False
        try:
            response = requests.post(
                self._messages_url,
                json={"messaging_product": "whatsapp", "status": "read", "message_id": message_id},
                headers=self._headers,
                timeout=10
            )
            return response.ok
        except requests.RequestException as e:
            logger.error(f"[WHATSAPP] Erro ao marcar mensagem como lida: {e}")
            return False

    # ============ MENSAGENS DO SISTEMA ============

    def notificar_nova_cotacao(self, numero: str, cotacao_numero: str, obra_nome: str) -> Dict[str, Any]:
        return self.enviar_texto(
            numero,
            f"🔔 *Nova Cotação Recebida!*\n\nCotação #{cotacao_numero}\nObra: {obra_nome}\n\n"
            f"Acesse a plataforma para enviar sua proposta:\n{settings.APP_URL}/login"
        )

    def notificar_nova_proposta(self, numero: str, cotacao_numero: str) -> Dict[str, Any]:
        return self.enviar_texto(
            numero,
            f"📋 *Nova Proposta Recebida!*\n\nUm fornecedor enviou uma proposta para a Cotação #{cotacao_numero}.\n\n"
            f"Acesse o mapa comparativo na plataforma:\n{settings.APP_URL}/login"
        )

    def notificar_pedido_aprovado(self, numero: str, pedido_numero: str, cliente_nome: str) -> Dict[str, Any]:
        return self.enviar_texto(
            numero,
            f"✅ *Pedido Aprovado!*\n\nPedido #{pedido_numero}\nCliente: {cliente_nome}\n\n"
            f"Acesse a plataforma para confirmar e preparar o envio:\n{settings.APP_URL}/login"
        )

    def enviar_credenciais(self, numero: str, email: str, senha: str) -> Dict[str, Any]:
        return self.enviar_texto(
            numero,
            f"🏗️ *Bem-vindo ao {settings.PROJECT_NAME}!*\n\nSuas credenciais de acesso:\n"
            f"📧 Email: {email}\n🔑 Senha: {senha}\n\n"
            f"Altere sua senha no primeiro acesso: {settings.APP_URL}/login"
        )


# ============ WEBHOOK (payload da Meta) ============

def _changes(body: Dict[str, Any]):
    for entry in body.get("entry") or []:
        for change in entry.get("changes") or []:
            if change.get("field") == "messages":
                yield change.get("value") or {}


def parse_webhook_messages(body: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Mensagens recebidas: from, message_id, timestamp, type, text, name"""
    messages = []
    for value in _changes(body):
        contacts = value.get("contacts") or []
        for msg in value.get("messages") or []:
            contact = next((c for c in contacts if c.get("wa_id") == msg.get("from")), {})
            text = (
                (msg.get("text") or {}).get("body")
                or ((msg.get("interactive") or {}).get("button_reply") or {}).get("title")
                or (msg.get("button") or {}).get("text")
            )
            messages.append({
                "from": msg.get("from"),
                "message_id": msg.get("id"),
                "timestamp": msg.get("timestamp"),
                "type": msg.get("type"),
                "text": text,
                "name": (contact.get("profile") or {}).get("name"),
            })
    return messages


def parse_webhook_statuses(body: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Atualizações de entrega: sent, delivered, read, failed"""
    statuses = []
    for value in _changes(body):
        for status in value.get("statuses") or []:
            statuses.append({
                "message_id": status.get("id"),
                "status": status.get("status"),
                "timestamp": status.get("timestamp"),
                "recipient_id": status.get("recipient_id"),
                "errors": status.get("errors"),
            })
    return statuses


# Instância global
whatsapp_service = WhatsAppService()
