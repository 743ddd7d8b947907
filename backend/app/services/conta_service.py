"""
Contas de acesso criadas pelo admin

Toda redefinição feita pelo admin força a troca de senha no próximo
acesso: must_change_password=True e password_changed_at=None.
"""
from typing import Optional

from app.config import settings
from app.core.logger import get_logger
from app.core.security import hash_password
from app.jobs.scheduler import enfileirar_email, enfileirar_whatsapp
from app.models.usuario import Usuario

logger = get_logger(__name__)


def aplicar_senha_temporaria(user: Usuario, senha: Optional[str] = None) -> str:
    """Define senha temporária e exige troca no primeiro acesso (sem commit)"""
    senha = senha or settings.DEFAULT_ACCOUNT_PASSWORD
    user.senha_hash = hash_password(senha)
    user.must_change_password = True
    user.password_changed_at = None
    return senha


def enviar_credenciais(
    email: str,
    nome: str,
    senha: str,
    whatsapp: Optional[str] = None,
    recadastro: bool = False
) -> None:
    """Envia as credenciais por email e, se houver número, por WhatsApp"""
    enfileirar_email("credentials", email=email, nome=nome, senha_temporaria=senha, recadastro=recadastro)
    if whatsapp:
        enfileirar_whatsapp("enviar_credenciais", whatsapp, email, senha)
    logger.info(f"[CONTAS] Credenciais enfileiradas para {email}")
