"""
Moderação do chat

A negociação deve acontecer dentro da plataforma: mensagens com email,
telefone, links, redes sociais ou convite para contato externo são
bloqueadas.
"""
import re
import unicodedata
from dataclasses import dataclass, field
from typing import List

EMAIL_PATTERN = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"(?:\+?55\s?)?(?:\(?\d{2}\)?\s?)?(?:9\d{4}|\d{4})[-\s]?\d{4}")
URL_PATTERN = re.compile(r"(https?://|www\.)\S+", re.IGNORECASE)
SOCIAL_PATTERN = re.compile(
    r"(?:instagram|insta|telegram|tiktok|facebook|linkedin|discord|skype)\s*[:@]?\s*@?[a-z0-9._-]{3,}",
    re.IGNORECASE,
)

CONTACT_KEYWORDS = [
    "whatsapp",
    "zap",
    "telefone",
    "celular",
    "me liga",
    "chama no",
    "contato",
    "email",
    "e-mail",
    "arroba",
    "instagram",
    "telegram",
    "fora da plataforma",
    "pagamento por fora",
    "pix direto",
    "transferencia direta",
]


@dataclass
class ModerationResult:
    blocked: bool
    reasons: List[str] = field(default_factory=list)


def _normalize(text: str) -> str:
    """Minúsculas e sem acentos ("transferência" -> "transferencia")"""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(c for c in decomposed if unicodedata.category(c) != "Mn")


def analyze_chat_message(text: str) -> ModerationResult:
    text = (text or "").strip()
    reasons: List[str] = []
    if not text:
        return ModerationResult(blocked=False, reasons=reasons)

    def add(reason: str):
        if reason not in reasons:
            reasons.append(reason)

    if EMAIL_PATTERN.search(text):
        add("email")
    if PHONE_PATTERN.search(text):
        add("telefone")
    if URL_PATTERN.search(text):
        add("link externo")
    if SOCIAL_PATTERN.search(text):
        add("rede social")

    normalizado = _normalize(text)
    if any(k in normalizado for k in CONTACT_KEYWORDS):
        add("tentativa de contato externo")

    return ModerationResult(blocked=len(reasons) > 0, reasons=reasons)
