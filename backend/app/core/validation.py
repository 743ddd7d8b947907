"""
Sanitização e validação de entradas

Documentos brasileiros (CPF/CNPJ/CEP/telefone) são sempre tratados
apenas com dígitos.
"""
import html
import re
from typing import List, Optional, Tuple
from urllib.parse import urlparse

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_TAGS = re.compile(r"[<>]")
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)
_DATA_HTML = re.compile(r"data:text/html", re.IGNORECASE)


def sanitize_string(value: Optional[str]) -> str:
    """Remove sinais de tag, protocolo javascript:, handlers on*= e data:text/html"""
    if not value:
        return ""
    value = _TAGS.sub("", value)
    value = _JS_PROTOCOL.sub("", value)
    value = _EVENT_HANDLER.sub("", value)
    value = _DATA_HTML.sub("", value)
    return value.strip()


def sanitize_email(email: Optional[str]) -> str:
    if not email:
        return ""
    return email.strip().lower()


def sanitize_numeric(value: Optional[str]) -> str:
    """Mantém só os dígitos"""
    if not value:
        return ""
    return re.sub(r"\D", "", str(value))


def validate_email(email: Optional[str]) -> bool:
    if not email or len(email) > 254:
        return False
    return bool(EMAIL_REGEX.match(email))


def _all_same(digits: str) -> bool:
    return len(set(digits)) == 1


def validate_cnpj(cnpj: Optional[str]) -> bool:
    digits = sanitize_numeric(cnpj)
    if len(digits) != 14 or _all_same(digits):
        return False

    def calc(base: str, pesos: List[int]) -> int:
        soma = sum(int(d) * p for d, p in zip(base, pesos))
        resto = soma % 11
        return 0 if resto < 2 else 11 - resto

    pesos1 = [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]
    pesos2 = [6] + pesos1
    d1 = calc(digits[:12], pesos1)
    d2 = calc(digits[:12] + str(d1), pesos2)
    return digits[12:] == f"{d1}{d2}"


def validate_cpf(cpf: Optional[str]) -> bool:
    digits = sanitize_numeric(cpf)
    if len(digits) != 11 or _all_same(digits):
        return False

    for pos in (9, 10):
        soma = sum(int(digits[i]) * (pos + 1 - i) for i in range(pos))
        digito = (soma * 10) % 11
        if digito == 10:
            digito = 0
        if digito != int(digits[pos]):
            return False
    return True


def validate_password(password: Optional[str]) -> Tuple[bool, List[str]]:
    """
    Regras de senha forte.

    Returns:
        (valida, lista_de_erros)
    """
    erros = []
    password = password or ""

    if len(password) < 8:
        erros.append("Senha deve ter no mínimo 8 caracteres")
    if not re.search(r"[A-Z]", password):
        erros.append("Senha deve conter pelo menos uma letra maiúscula")
    if not re.search(r"[a-z]", password):
        erros.append("Senha deve conter pelo menos uma letra minúscula")
    if not re.search(r"\d", password):
        erros.append("Senha deve conter pelo menos um número")
    if not re.search(r"[!@#$%^&*(),.?\":{}|<>_\-+=\[\];'/\\`~]", password):
        erros.append("Senha deve conter pelo menos um caractere especial")

    return len(erros) == 0, erros


def validate_phone(phone: Optional[str]) -> bool:
    """Telefone brasileiro com DDD (10 ou 11 dígitos)"""
    digits = sanitize_numeric(phone)
    return len(digits) in (10, 11)


def validate_cep(cep: Optional[str]) -> bool:
    return len(sanitize_numeric(cep)) == 8


def escape_html(text: Optional[str]) -> str:
    if not text:
        return ""
    return html.escape(text, quote=True)


def validate_url(url: Optional[str]) -> bool:
    """Aceita apenas http(s) com host"""
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
