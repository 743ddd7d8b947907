"""
Painel admin: contas de acesso, usuários, fornecedores, fabricantes e auditoria
"""
from sqlalchemy import select

from app.core.security import verify_password
from app.jobs import scheduler
from app.models import AuditLog, Cliente, Fornecedor, FornecedorStatus, Role, UserStatus, Usuario, fornecedor_grupo


def test_criar_conta_para_cliente(client, admin, cliente_cadastro, headers_for, db, monkeypatch):
    enviados = []
    monkeypatch.setitem(scheduler.EMAIL_JOBS, "credentials", lambda **dados: enviados.append(dados) or True)

    response = client.post("/api/admin/accounts", headers=headers_for(admin), json={
        "email": "Compras@Horizonte.com",
        "entityType": "cliente",
        "entityId": cliente_cadastro.id,
        "entityName": "Construtora Horizonte",
    })

    assert response.status_code == 200
    user_id = response.json()["userId"]

    db.expire_all()
    conta = db.query(Usuario).filter(Usuario.id == user_id).first()
    assert conta.email == "compras@horizonte.com"
    assert conta.status == UserStatus.PENDING
    assert conta.must_change_password is True
    assert conta.password_changed_at is None
    assert conta.cliente_id == cliente_cadastro.id
    assert verify_password("123456", conta.senha_hash)

    vinculado = db.query(Cliente).filter(Cliente.id == cliente_cadastro.id).first()
    assert vinculado.user_id == user_id

    assert enviados[0]["email"] == "compras@horizonte.com"
    assert enviados[0]["senha_temporaria"] == "123456"


def test_criar_conta_email_existente(client, admin, cliente, cliente_cadastro, headers_for):
    response = client.post("/api/admin/accounts", headers=headers_for(admin), json={
        "email": cliente.email,
        "entityType": "cliente",
        "entityId": cliente_cadastro.id,
        "entityName": "Construtora Horizonte",
    })

    assert response.status_code == 409
    assert response.json()["error"]["message"] == "Este email já possui uma conta cadastrada"


def test_criar_conta_dados_incompletos(client, admin, headers_for):
    response = client.post("/api/admin/accounts", headers=headers_for(admin), json={"email": "x@y.com"})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Dados incompletos"


def test_criar_conta_entidade_inexistente(client, admin, headers_for):
    response = client.post("/api/admin/accounts", headers=headers_for(admin), json={
        "email": "novo@fornecedor.com",
        "entityType": "fornecedor",
        "entityId": 999,
        "entityName": "Fantasma",
    })

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Fornecedor não encontrado"


def test_conta_exige_admin(client, cliente, cliente_cadastro, headers_for, db):
    response = client.post("/api/admin/accounts", headers=headers_for(cliente), json={
        "email": "outro@obra.com",
        "entityType": "cliente",
        "entityId": cliente_cadastro.id,
        "entityName": "Construtora Horizonte",
    })

    assert response.status_code == 403
    negado = db.query(AuditLog).filter(AuditLog.action == "UNAUTHORIZED_ACCESS").first()
    assert negado.user_id == cliente.id
    assert negado.details["targetPath"] == "/api/admin/accounts"


def test_conta_sem_token(client):
    assert client.post("/api/admin/accounts", json={}).status_code == 401


def test_resetar_conta(client, admin, make_user, headers_for, db):
    usuario = make_user("antigo@obra.com", password_changed_at=None)

    response = client.put("/api/admin/accounts", headers=headers_for(admin), json={"userId": usuario.id})

    assert response.status_code == 200
    db.expire_all()
    resetado = db.query(Usuario).filter(Usuario.id == usuario.id).first()
    assert resetado.status == UserStatus.PENDING
    assert resetado.must_change_password is True
    assert verify_password("123456", resetado.senha_hash)


def test_listar_usuarios_por_papel(client, admin, cliente, fornecedor_user, headers_for):
    response = client.get("/api/admin/users", headers=headers_for(admin), params={"role": "fornecedor"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["users"][0]["email"] == fornecedor_user.email
    assert "senha_hash" not in body["users"][0]


def test_listar_usuarios_busca_e_paginacao(client, admin, cliente, fornecedor_user, headers_for):
    busca = client.get("/api/admin/users", headers=headers_for(admin), params={"search": "silva"})
    assert [u["email"] for u in busca.json()["users"]] == [fornecedor_user.email]

    pagina = client.get("/api/admin/users", headers=headers_for(admin), params={"page": 1, "perPage": 2})
    body = pagina.json()
    assert body["total"] == 3
    assert len(body["users"]) == 1


def test_listar_usuarios_papel_invalido(client, admin, headers_for):
    response = client.get("/api/admin/users", headers=headers_for(admin), params={"role": "gerente"})

    assert response.status_code == 400


def test_criar_usuario_fornecedor_recebe_senha_padrao(client, admin, headers_for, db):
    response = client.post("/api/admin/users", headers=headers_for(admin), json={
        "email": "deposito@novo.com",
        "password": "Qualquer@1",
        "role": "fornecedor",
    })

    assert response.status_code == 200
    assert response.json()["user"]["must_change_password"] is True
    criado = db.query(Usuario).filter(Usuario.email == "deposito@novo.com").first()
    assert verify_password("123456", criado.senha_hash)


def test_atualizar_papeis_recalcula_principal(client, admin, cliente, headers_for, db):
    response = client.patch("/api/admin/users", headers=headers_for(admin), json={
        "userId": cliente.id,
        "roles": ["cliente", "fornecedor"],
        "nome": "Carlos Atualizado",
    })

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["role"] == "fornecedor"
    assert user["nome"] == "Carlos Atualizado"
    assert db.query(AuditLog).filter(AuditLog.action == "USER_ROLE_CHANGED").count() == 1


def test_atualizar_senha_forca_troca(client, admin, cliente, headers_for):
    response = client.patch("/api/admin/users", headers=headers_for(admin), json={
        "userId": cliente.id,
        "password": "Temporaria@1",
        "must_change_password": False,
    })

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["must_change_password"] is True
    assert user["password_changed_at"] is None


def test_atualizar_status_invalido(client, admin, cliente, headers_for):
    response = client.patch("/api/admin/users", headers=headers_for(admin), json={
        "userId": cliente.id,
        "status": "banido",
    })

    assert response.status_code == 400


def test_excluir_a_si_mesmo(client, admin, headers_for):
    response = client.delete("/api/admin/users", headers=headers_for(admin), params={"userId": admin.id})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Não é possível excluir a si mesmo"


def test_excluir_usuario(client, admin, cliente, headers_for, db):
    cliente_id = cliente.id

    response = client.delete("/api/admin/users", headers=headers_for(admin), params={"userId": cliente_id})

    assert response.status_code == 200
    db.expire_all()
    assert db.query(Usuario).filter(Usuario.id == cliente_id).first() is None


def test_fabricantes_sem_duplicatas(client, admin, headers_for):
    headers = headers_for(admin)
    client.post("/api/admin/manufacturers", headers=headers, json={"name": "Votorantim", "contact": "vendas@vc.com"})
    client.post("/api/admin/manufacturers", headers=headers, json={"name": " votorantim ", "contact": "VENDAS@vc.com"})
    client.post("/api/admin/manufacturers", headers=headers, json={"name": "Gerdau"})

    response = client.get("/api/admin/manufacturers", headers=headers)

    body = response.json()
    assert body["total"] == 2
    assert [f["name"] for f in body["manufacturers"]] == ["Gerdau", "Votorantim"]


def test_fabricante_sem_nome(client, admin, headers_for):
    response = client.post("/api/admin/manufacturers", headers=headers_for(admin), json={"name": "<>"})

    assert response.status_code == 400


def test_fornecedor_criado_pelo_admin_recebe_codigo(client, admin, headers_for):
    response = client.post("/api/admin/fornecedores", headers=headers_for(admin), json={
        "action": "create",
        "fornecedor": {"razao_social": "Madeireira Central"},
    })

    assert response.status_code == 200
    fornecedor = response.json()["fornecedor"]
    assert fornecedor["codigo"].startswith("F")
    assert len(fornecedor["codigo"]) == 7
    assert fornecedor["status"] == "active"


def test_vinculo_de_grupo_sem_duplicar(client, admin, fornecedor, grupo, headers_for, db):
    headers = headers_for(admin)
    corpo = {"action": "addGrupo", "fornecedorId": fornecedor.id, "grupoId": grupo.id}

    assert client.post("/api/admin/fornecedores", headers=headers, json=corpo).status_code == 200

    vinculos = db.execute(select(fornecedor_grupo).where(fornecedor_grupo.c.fornecedor_id == fornecedor.id)).all()
    assert len(vinculos) == 1

    corpo["action"] = "removeGrupo"
    assert client.post("/api/admin/fornecedores", headers=headers, json=corpo).status_code == 200
    vinculos = db.execute(select(fornecedor_grupo).where(fornecedor_grupo.c.fornecedor_id == fornecedor.id)).all()
    assert vinculos == []


def test_atualizar_fornecedor_status_invalido(client, admin, fornecedor, headers_for, db):
    response = client.put("/api/admin/fornecedores", headers=headers_for(admin), json={
        "id": fornecedor.id,
        "status": "bloqueado",
    })

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Status inválido"
    db.expire_all()
    assert db.get(Fornecedor, fornecedor.id).status == FornecedorStatus.ACTIVE


def test_atualizar_fornecedor_suspende(client, admin, fornecedor, headers_for, db):
    response = client.put("/api/admin/fornecedores", headers=headers_for(admin), json={
        "id": fornecedor.id,
        "status": "suspended",
    })

    assert response.status_code == 200
    assert response.json()["fornecedor"]["status"] == "suspended"
    db.expire_all()
    assert db.get(Fornecedor, fornecedor.id).status == FornecedorStatus.SUSPENDED


def test_audit_logs_filtrados(client, admin, cliente, headers_for):
    client.post("/api/auth/login", json={"email": cliente.email, "password": "Errada@000"})

    response = client.get("/api/admin/audit-logs", headers=headers_for(admin), params={"action": "LOGIN_FAILED"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["user_email"] == cliente.email
    assert body["items"][0]["success"] is False


def test_status_das_filas(client, admin, headers_for):
    response = client.get("/api/admin/queues", headers=headers_for(admin))

    assert response.status_code == 200
    body = response.json()
    assert set(body["queues"]) == {"emails", "notifications", "cleanup"}
    assert body["schedulerRunning"] is False
