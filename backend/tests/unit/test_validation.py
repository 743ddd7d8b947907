"""
Sanitização, documentos brasileiros e moderação do chat
"""
import pytest

from app.core.chat_moderation import analyze_chat_message
from app.core.validation import (
    escape_html, sanitize_email, sanitize_numeric, sanitize_string, validate_cep,
    validate_cnpj, validate_cpf, validate_email, validate_password, validate_phone, validate_url
)


def test_sanitize_string_remove_vetores_de_script():
    assert sanitize_string('<b onclick=alert(1)>oi</b>') == "b alert(1)oi/b"
    assert sanitize_string("javascript:void(0)") == "void(0)"
    assert sanitize_string("data:text/html,xyz") == ",xyz"
    assert sanitize_string(None) == ""


def test_sanitize_email_e_numeric():
    assert sanitize_email("  Fulano@Obra.COM ") == "fulano@obra.com"
    assert sanitize_numeric("12.345-678") == "12345678"
    assert sanitize_numeric(None) == ""


@pytest.mark.parametrize("email,valido", [
    ("compras@obra.com", True),
    ("sem-arroba.com", False),
    ("a b@obra.com", False),
    ("x@" + "a" * 250 + ".com", False),
])
def test_validate_email(email, valido):
    assert validate_email(email) is valido


@pytest.mark.parametrize("cnpj,valido", [
    ("11.222.333/0001-81", True),
    ("11222333000181", True),
    ("11222333000182", False),
    ("11111111111111", False),
    ("1122233300018", False),
])
def test_validate_cnpj(cnpj, valido):
    assert validate_cnpj(cnpj) is valido


@pytest.mark.parametrize("cpf,valido", [
    ("529.982.247-25", True),
    ("52998224724", False),
    ("00000000000", False),
    ("5299822472", False),
])
def test_validate_cpf(cpf, valido):
    assert validate_cpf(cpf) is valido


def test_validate_password_lista_todos_os_erros():
    valida, erros = validate_password("abc")

    assert valida is False
    assert len(erros) == 4
    assert validate_password("Forte@2025") == (True, [])


def test_telefone_cep_url():
    assert validate_phone("(11) 98888-7777") is True
    assert validate_phone("8888-7777") is False
    assert validate_cep("13010-000") is True
    assert validate_url("https://construir.com/ajuda") is True
    assert validate_url("ftp://construir.com") is False
    assert escape_html('<a href="x">') == "&lt;a href=&quot;x&quot;&gt;"


# ============ MODERAÇÃO ============

@pytest.mark.parametrize("texto,motivo", [
    ("manda no compras@deposito.com", "email"),
    ("liga (11) 98888-7777", "telefone"),
    ("veja www.deposito.com.br", "link externo"),
    ("segue no instagram @depositosilva", "rede social"),
    ("podemos fechar por fora da plataforma?", "tentativa de contato externo"),
    ("faço transferência direta", "tentativa de contato externo"),
])
def test_moderacao_bloqueia(texto, motivo):
    resultado = analyze_chat_message(texto)

    assert resultado.blocked is True
    assert motivo in resultado.reasons


def test_moderacao_libera_negociacao():
    resultado = analyze_chat_message("Consigo 5% de desconto para 40 sacos, entrega em 3 dias.")

    assert resultado.blocked is False
    assert resultado.reasons == []


def test_moderacao_motivos_sem_repeticao():
    resultado = analyze_chat_message("whatsapp whatsapp zap")

    assert resultado.reasons == ["tentativa de contato externo"]
