"""
Conversão de exceções no corpo de erro padrão da API
"""
from jose import JWTError
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.errors import (
    AuthorizationError, NotFoundError, RateLimitError, ValidationError, format_error_response
)


class ErroComCodigo(Exception):
    def __init__(self, code):
        super().__init__(code)
        self.code = code


def test_app_error():
    assert format_error_response(NotFoundError("Cotação não encontrada")) == (
        404, {"error": {"message": "Cotação não encontrada", "statusCode": 404}}
    )
    assert format_error_response(AuthorizationError())[0] == 403


def test_app_error_com_codigo():
    status_code, body = format_error_response(ValidationError("Senha muito fraca", code="weak_password"))

    assert status_code == 400
    assert body["error"]["code"] == "weak_password"


def test_rate_limit_inclui_retry_after():
    status_code, body = format_error_response(RateLimitError(retry_after=42))

    assert status_code == 429
    assert body["retryAfter"] == 42


def test_codigo_conhecido():
    status_code, body = format_error_response(ErroComCodigo("email_exists"))

    assert status_code == 409
    assert body["error"] == {"message": "Este email já está em uso", "statusCode": 409, "code": "email_exists"}


def test_codigo_desconhecido_vira_500():
    status_code, body = format_error_response(ErroComCodigo("qualquer_coisa"))

    assert status_code == 500
    assert body["error"]["message"] == "Erro interno do servidor"


def test_violacao_de_unicidade():
    erro = IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed: users.email"))

    status_code, body = format_error_response(erro)

    assert status_code == 409
    assert body["error"]["code"] == "23505"


def test_violacao_de_chave_estrangeira():
    erro = IntegrityError("DELETE FROM obras", {}, Exception("FOREIGN KEY constraint failed"))

    status_code, body = format_error_response(erro)

    assert status_code == 400
    assert body["error"]["message"] == "Operação não permitida - registro referenciado"


def test_jwt_invalido():
    status_code, body = format_error_response(JWTError("Signature verification failed"))

    assert status_code == 401
    assert body["error"]["code"] == "invalid_token"


def test_erro_de_banco_generico():
    erro = OperationalError("SELECT 1", {}, Exception("connection refused"))

    assert format_error_response(erro) == (500, {"error": {"message": "Erro no banco de dados", "statusCode": 500}})


def test_erro_inesperado():
    assert format_error_response(KeyError("x"))[0] == 500


def test_corpo_invalido_vira_400(client, cliente, headers_for):
    response = client.post("/api/obras", headers=headers_for(cliente), json={"nome": "x", "estado": "SPX"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == {"message": "Dados inválidos", "statusCode": 400, "code": "validation_failed"}
    assert {d["campo"] for d in body["details"]} == {"nome", "estado"}
