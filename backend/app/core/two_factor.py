"""
Autenticação em dois fatores (TOTP)

Segredo e verificação via pyotp; QR Code via qrcode (PNG em data URL
para o frontend exibir direto em <img src=...>).
"""
import base64
import secrets
import string
from io import BytesIO
from typing import List, Optional, Tuple

import pyotp
import qrcode

from app.config import settings

BACKUP_CODE_ALPHABET = string.ascii_uppercase + string.digits
BACKUP_CODE_LENGTH = 8
TOTP_VALID_WINDOW = 2  # aceita ±2 passos de 30s


def generate_2fa_secret(email: str) -> Tuple[str, str]:
    """
    Gera segredo base32 (32 caracteres) e a URL otpauth:// do app autenticador.

    Returns:
        (secret, otpauth_url)
    """
    secret = pyotp.random_base32(length=32)
    issuer = settings.TWO_FACTOR_ISSUER
    url = pyotp.TOTP(secret).provisioning_uri(
        name=f"{issuer} ({email})",
        issuer_name=issuer
    )
    return secret, url


def generate_2fa_qrcode(otpauth_url: str) -> str:
    """QR Code da URL otpauth em data URL PNG"""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(otpauth_url)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def verify_2fa_code(secret: Optional[str], code: Optional[str]) -> bool:
    """Valida código TOTP de 6 dígitos"""
    if not secret or not code:
        return False
    code = str(code).strip().replace(" ", "")
    if not code.isdigit():
        return False
    return pyotp.TOTP(secret).verify(code, valid_window=TOTP_VALID_WINDOW)


def generate_backup_codes(count: int = 10) -> List[str]:
    """Códigos de recuperação de uso único (8 caracteres A-Z0-9)"""
    return [
        "".join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(BACKUP_CODE_LENGTH))
        for _ in range(count)
    ]


def verify_backup_code(codes: Optional[List[str]], code: Optional[str]) -> Tuple[bool, List[str]]:
    """
    Verifica um código de recuperação.

    Returns:
        (valido, codigos_restantes) - o código usado é removido da lista
    """
    restantes = list(codes or [])
    if not code:
        return False, restantes
    normalizado = str(code).strip().upper()
    if normalizado not in restantes:
        return False, restantes
    restantes.remove(normalizado)
    return True, restantes
