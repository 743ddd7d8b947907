"""
Login, cadastro, sessão e fluxos de senha
"""
from urllib.parse import parse_qs, urlparse

from app.config import settings
from app.core.security import verify_password
from app.jobs import scheduler
from app.models import AuditLog, PasswordReset, Role, UserStatus, Usuario


def test_register_cria_cliente(client, db):
    response = client.post("/api/auth/register", json={
        "email": "  Nova@Obra.com ",
        "password": "Forte@2025",
        "nome": "Nova Obra",
        "telefone": "11912345678",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True

    user = db.query(Usuario).filter(Usuario.id == body["userId"]).first()
    assert user.email == "nova@obra.com"
    assert user.role == Role.CLIENTE
    assert user.roles == ["cliente"]
    assert user.must_change_password is False


def test_register_email_duplicado(client, cliente):
    response = client.post("/api/auth/register", json={"email": cliente.email, "password": "Forte@2025"})

    assert response.status_code == 409
    assert response.json()["error"]["message"] == "Este email já está em uso"


def test_register_senha_fraca(client):
    response = client.post("/api/auth/register", json={"email": "fraca@obra.com", "password": "123"})

    assert response.status_code == 400
    erro = response.json()["error"]
    assert erro["code"] == "weak_password"
    assert "8 caracteres" in erro["message"]


def test_login_retorna_token_e_cookies(client, cliente):
    response = client.post("/api/auth/login", json={"email": cliente.email, "password": "Senha@123"})

    assert response.status_code == 200
    body = response.json()
    assert body["token"]
    assert body["user"]["role"] == "cliente"
    assert body["user"]["mustChangePassword"] is False
    assert response.cookies.get("role") == "cliente"
    assert response.cookies.get("mustChangePassword") == "false"
    assert response.headers["X-RateLimit-Limit"] == "5"


def test_login_papel_principal_segue_precedencia(client, make_user):
    make_user("misto@obra.com", role=Role.CLIENTE, roles=["cliente", "fornecedor"])

    response = client.post("/api/auth/login", json={"email": "misto@obra.com", "password": "Senha@123"})

    assert response.json()["user"]["role"] == "fornecedor"


def test_login_senha_errada(client, cliente, db):
    response = client.post("/api/auth/login", json={"email": cliente.email, "password": "Errada@123"})

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Email ou senha incorretos"
    falha = db.query(AuditLog).filter(AuditLog.action == "LOGIN_FAILED").first()
    assert falha is not None
    assert falha.success is False


def test_login_rate_limit(client):
    for _ in range(5):
        assert client.post("/api/auth/login", json={"email": "invalido", "password": "x"}).status_code == 400

    response = client.post("/api/auth/login", json={"email": "invalido", "password": "x"})

    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) >= 1
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.json()["retryAfter"] >= 1


def test_login_rate_limit_ignora_x_forwarded_for(client):
    for i in range(5):
        client.post("/api/auth/login", headers={"x-forwarded-for": f"10.0.0.{i}"},
                    json={"email": "invalido", "password": "x"})

    response = client.post("/api/auth/login", headers={"x-forwarded-for": "10.0.0.99"},
                           json={"email": "invalido", "password": "x"})

    assert response.status_code == 429


def test_x_forwarded_for_atras_de_proxy_confiavel(client, cliente, db, monkeypatch):
    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", True)
    for i in range(6):
        response = client.post("/api/auth/login", headers={"x-forwarded-for": f"10.0.0.{i}, 172.16.0.1"},
                               json={"email": cliente.email, "password": "Errada@123"})
        assert response.status_code == 401

    falhas = db.query(AuditLog).filter(AuditLog.action == "LOGIN_FAILED").order_by(AuditLog.id).all()
    assert [f.ip_address for f in falhas] == [f"10.0.0.{i}" for i in range(6)]


def test_login_exige_codigo_2fa(client, make_user):
    make_user("seguro@obra.com", two_factor_enabled=True, two_factor_secret="JBSWY3DPEHPK3PXPJBSWY3DPEHPK3PXP")

    response = client.post("/api/auth/login", json={"email": "seguro@obra.com", "password": "Senha@123"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "2fa_required"


def test_session_aceita_apenas_header(client, cliente, headers_for):
    com_header = client.get("/api/auth/session", headers=headers_for(cliente))
    assert com_header.status_code == 200
    assert com_header.json()["email"] == cliente.email

    token = headers_for(cliente)["Authorization"].split(" ", 1)[1]
    client.cookies.set("token", token)
    assert client.get("/api/auth/session").status_code == 401


def test_header_tem_precedencia_sobre_cookie(client, cliente, fornecedor_user, headers_for):
    token_cliente = headers_for(cliente)["Authorization"].split(" ", 1)[1]
    client.cookies.set("token", token_cliente)

    response = client.get("/api/supplier/profile", headers=headers_for(fornecedor_user))

    assert response.status_code == 200
    assert response.json()["userProfile"]["email"] == fornecedor_user.email


def test_token_invalido(client):
    response = client.get("/api/obras", headers={"Authorization": "Bearer nao-e-um-jwt"})

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Token inválido"


def test_conta_suspensa_bloqueada(client, make_user, headers_for):
    suspenso = make_user("suspenso@obra.com", status=UserStatus.SUSPENDED)

    response = client.get("/api/obras", headers=headers_for(suspenso))

    assert response.status_code == 403


def test_logout_limpa_cookies(client):
    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    apagados = {c.split("=", 1)[0] for c in response.headers.get_list("set-cookie")}
    assert {"token", "role", "userId", "userEmail", "mustChangePassword"} <= apagados


def test_forgot_password_resposta_neutra(client):
    response = client.post("/api/auth/forgot-password", json={"email": "ninguem@obra.com"})

    assert response.status_code == 200
    assert response.json()["message"] == "Se o email existir, você receberá um link de recuperação."


def test_fluxo_de_recuperacao_de_senha(client, cliente, db, monkeypatch):
    enviados = []
    monkeypatch.setitem(scheduler.EMAIL_JOBS, "password-reset", lambda **dados: enviados.append(dados) or True)
    monkeypatch.setitem(scheduler.EMAIL_JOBS, "password-changed", lambda **dados: True)

    response = client.post("/api/auth/forgot-password", json={"email": cliente.email})
    assert response.status_code == 200
    assert len(enviados) == 1

    query = parse_qs(urlparse(enviados[0]["link"]).query)
    token = query["token"][0]
    assert query["email"][0] == cliente.email

    reset = db.query(PasswordReset).filter(PasswordReset.user_id == cliente.id).first()
    assert reset.token_hash != token

    response = client.post("/api/auth/reset-password", json={
        "token": token, "email": cliente.email, "newPassword": "NovaSenha@456",
    })
    assert response.status_code == 200

    login = client.post("/api/auth/login", json={"email": cliente.email, "password": "NovaSenha@456"})
    assert login.status_code == 200

    reuso = client.post("/api/auth/reset-password", json={
        "token": token, "email": cliente.email, "newPassword": "OutraSenha@789",
    })
    assert reuso.status_code == 401


def test_reset_password_token_errado(client, cliente):
    response = client.post("/api/auth/reset-password", json={
        "token": "qualquer", "email": cliente.email, "newPassword": "NovaSenha@456",
    })

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Token inválido ou expirado"


def test_change_password_libera_conta_pendente(client, make_user, headers_for, db):
    pendente = make_user("primeiro@obra.com", status=UserStatus.PENDING, must_change_password=True)

    errada = client.post("/api/auth/change-password", headers=headers_for(pendente), json={
        "currentPassword": "Errada@000", "newPassword": "Definitiva@1",
    })
    assert errada.status_code == 400
    assert errada.json()["error"]["message"] == "Senha atual incorreta"

    response = client.post("/api/auth/change-password", headers=headers_for(pendente), json={
        "currentPassword": "Senha@123", "newPassword": "Definitiva@1",
    })
    assert response.status_code == 200

    db.expire_all()
    atualizado = db.query(Usuario).filter(Usuario.id == pendente.id).first()
    assert atualizado.must_change_password is False
    assert atualizado.status == UserStatus.ACTIVE
    assert atualizado.password_changed_at is not None
    assert verify_password("Definitiva@1", atualizado.senha_hash)
