"""
Conclusão de cadastro, perfil do fornecedor, obras, notificações e materiais
"""
import pytest
from sqlalchemy import select

from app.models import (
    Cliente, ClienteStatus, Fornecedor, FornecedorStatus, GrupoInsumo, Notificacao, Usuario, fornecedor_grupo
)
from app.models.material import FornecedorMaterial, Material, SolicitacaoMaterial, material_grupo


def _recarregar(db, modelo, id_):
    db.expire_all()
    return db.query(modelo).filter(modelo.id == id_).first()


# ============ CONCLUSÃO DE CADASTRO ============

def test_completar_como_cliente(client, db, make_user, headers_for):
    usuario = make_user("nova@obra.com", nome="Nova Obra")

    response = client.post("/api/profile/complete", headers=headers_for(usuario), json={
        "type": "cliente",
        "data": {"nome": "Nova Obra Engenharia", "email": "nova@obra.com", "cpf": "529.982.247-25",
                 "telefone": "(19) 3333-4444", "cep": "13010-000", "cidade": "Campinas"},
    })

    assert response.status_code == 200
    cliente_id = response.json()["clienteId"]
    cadastro = _recarregar(db, Cliente, cliente_id)
    assert cadastro.status == ClienteStatus.ACTIVE
    assert cadastro.cpf_cnpj == "52998224725"
    assert cadastro.telefone == "1933334444"
    assert cadastro.cep == "13010000"
    assert cadastro.user_id == usuario.id
    assert _recarregar(db, Usuario, usuario.id).cliente_id == cliente_id


def test_completar_vincula_cliente_existente(client, db, cliente_cadastro, make_user, headers_for):
    usuario = make_user("compras@horizonte.com")

    response = client.post("/api/profile/complete", headers=headers_for(usuario), json={
        "type": "cliente", "data": {"email": "Compras@Horizonte.com"},
    })

    assert response.json()["clienteId"] == cliente_cadastro.id
    assert db.query(Cliente).count() == 1
    assert _recarregar(db, Cliente, cliente_cadastro.id).user_id == usuario.id


def test_completar_como_fornecedor_fica_pendente(client, db, make_user, headers_for):
    usuario = make_user("contato@novodeposito.com")

    response = client.post("/api/profile/complete", headers=headers_for(usuario), json={
        "type": "fornecedor",
        "data": {"razaoSocial": "Novo Depósito LTDA", "cnpj": "11.222.333/0001-81", "email": "contato@novodeposito.com"},
    })

    fornecedor = _recarregar(db, Fornecedor, response.json()["fornecedorId"])
    assert fornecedor.status == FornecedorStatus.PENDING
    assert fornecedor.cnpj == "11222333000181"
    assert _recarregar(db, Usuario, usuario.id).fornecedor_id == fornecedor.id


def test_completar_nao_toma_fornecedor_de_outra_conta(client, db, cliente, fornecedor, fornecedor_user, headers_for):
    response = client.post("/api/profile/complete", headers=headers_for(cliente), json={
        "type": "fornecedor", "data": {"email": "vendas@depositosilva.com"},
    })

    assert response.status_code == 409
    assert response.json()["error"]["message"] == "Este fornecedor já está vinculado a outra conta"
    assert _recarregar(db, Fornecedor, fornecedor.id).user_id == fornecedor_user.id
    assert _recarregar(db, Usuario, cliente.id).fornecedor_id is None

    pedidos = client.get("/api/pedidos", headers=headers_for(cliente)).json()
    assert pedidos["data"] == []


def test_completar_nao_toma_cliente_de_outra_conta(client, db, cliente_cadastro, make_user, headers_for):
    dono = make_user("compras@horizonte.com")
    cliente_cadastro.user_id = dono.id
    db.commit()
    intruso = make_user("intruso@obra.com")

    response = client.post("/api/profile/complete", headers=headers_for(intruso), json={
        "type": "cliente", "data": {"email": "compras@horizonte.com"},
    })

    assert response.status_code == 409
    assert _recarregar(db, Cliente, cliente_cadastro.id).user_id == dono.id


def test_completar_revincula_o_proprio_fornecedor(client, fornecedor, fornecedor_user, headers_for):
    response = client.post("/api/profile/complete", headers=headers_for(fornecedor_user), json={
        "type": "fornecedor", "data": {"email": "vendas@depositosilva.com"},
    })

    assert response.status_code == 200
    assert response.json()["fornecedorId"] == fornecedor.id


def test_completar_tipo_invalido(client, cliente, headers_for):
    response = client.post("/api/profile/complete", headers=headers_for(cliente), json={"type": "admin"})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Tipo inválido"


# ============ PERFIL DO FORNECEDOR ============

@pytest.fixture
def material(db, grupo):
    material = Material(nome="Cimento CP-II 50kg", unidade="saco")
    db.add(material)
    db.commit()
    db.execute(material_grupo.insert().values(material_id=material.id, grupo_id=grupo.id))
    db.commit()
    return material


def test_carregar_perfil_do_fornecedor(client, fornecedor, fornecedor_user, grupo, material, headers_for):
    response = client.get("/api/supplier/profile", headers=headers_for(fornecedor_user))

    assert response.status_code == 200
    body = response.json()
    assert body["userProfile"]["email"] == "vendas@depositosilva.com"
    assert body["fornecedor"]["razao_social"] == "Depósito Silva LTDA"
    assert body["supplierGroups"] == [grupo.id]
    assert [g["nome"] for g in body["allGroups"]] == ["Cimento e Argamassa"]
    assert body["materiaisByGrupo"] == {
        str(grupo.id): [{"id": material.id, "nome": "Cimento CP-II 50kg", "unidade": "saco"}]
    }


def test_perfil_sem_fornecedor_vinculado(client, cliente, headers_for):
    body = client.get("/api/supplier/profile", headers=headers_for(cliente)).json()

    assert body["fornecedor"] is None
    assert body["supplierGroups"] == []


def test_salvar_perfil_grava_digitos(client, db, fornecedor, fornecedor_user, headers_for):
    response = client.put("/api/supplier/profile", headers=headers_for(fornecedor_user), json={
        "company": {"razaoSocial": "Depósito Silva e Filhos LTDA", "cnpj": "11.222.333/0001-81",
                    "telefone": "(19) 3232-1010", "cep": "13070-178", "cidade": "Campinas", "estado": "SP"},
        "manager": {"nome": "João Silva", "email": "joao@depositosilva.com", "whatsapp": "(19) 99999-0000"},
        "preferences": {"regioesAtendimento": ["Campinas", "Sumaré"]},
    })

    assert response.status_code == 200
    atualizado = _recarregar(db, Fornecedor, fornecedor.id)
    assert atualizado.razao_social == "Depósito Silva e Filhos LTDA"
    assert atualizado.cnpj == "11222333000181"
    assert atualizado.telefone == "1932321010"
    assert atualizado.whatsapp == "19999990000"
    assert atualizado.cep == "13070178"
    assert atualizado.contato == "João Silva"
    assert atualizado.regioes_atendimento == ["Campinas", "Sumaré"]

    usuario = _recarregar(db, Usuario, fornecedor_user.id)
    assert usuario.nome == "João Silva"
    assert usuario.telefone == "19999990000"


def test_salvar_grupos_substitui(client, db, fornecedor, fornecedor_user, grupo, headers_for):
    novos = [GrupoInsumo(nome="Aço e Ferragens"), GrupoInsumo(nome="Hidráulica")]
    db.add_all(novos)
    db.commit()

    response = client.post("/api/supplier/profile", headers=headers_for(fornecedor_user), json={
        "fornecedorId": fornecedor.id, "groups": [novos[0].id, novos[1].id],
    })

    assert response.status_code == 200
    atuais = {row.grupo_id for row in db.execute(
        select(fornecedor_grupo.c.grupo_id).where(fornecedor_grupo.c.fornecedor_id == fornecedor.id)
    )}
    assert atuais == {novos[0].id, novos[1].id}


def test_salvar_grupos_de_outro_fornecedor(client, fornecedor, make_user, headers_for):
    intruso = make_user("intruso@deposito.com")

    response = client.post("/api/supplier/profile", headers=headers_for(intruso), json={
        "fornecedorId": fornecedor.id, "groups": [],
    })

    assert response.status_code == 403


# ============ OBRAS ============

def test_criar_e_listar_obras(client, cliente, make_user, headers_for):
    criada = client.post("/api/obras", headers=headers_for(cliente), json={
        "nome": "Edifício Aurora", "cidade": "Valinhos", "estado": "SP", "cep": "13270-000",
    })

    assert criada.status_code == 200
    assert criada.json()["data"]["cep"] == "13270000"

    listadas = client.get("/api/obras", headers=headers_for(cliente)).json()["data"]
    assert [o["nome"] for o in listadas] == ["Edifício Aurora"]

    outro = make_user("outro@obra.com")
    assert client.get("/api/obras", headers=headers_for(outro)).json()["data"] == []


# ============ NOTIFICAÇÕES ============

def test_notificacoes_e_leitura(client, db, cliente, make_user, headers_for):
    outro = make_user("outro@obra.com")
    db.add_all([
        Notificacao(user_id=cliente.id, titulo="Nova proposta", mensagem="Cotação CT-2025-00001"),
        Notificacao(user_id=cliente.id, titulo="Pedido enviado", mensagem="PD-2025-00001", lida=True),
        Notificacao(user_id=outro.id, titulo="Alheia", mensagem="não aparece"),
    ])
    db.commit()

    body = client.get("/api/notificacoes", headers=headers_for(cliente)).json()
    assert len(body["data"]) == 2
    assert body["unread"] == 1

    nao_lidas = client.get("/api/notificacoes", headers=headers_for(cliente), params={"apenas_nao_lidas": True})
    assert [n["titulo"] for n in nao_lidas.json()["data"]] == ["Nova proposta"]

    pendente = nao_lidas.json()["data"][0]["id"]
    assert client.post(f"/api/notificacoes/{pendente}/lida", headers=headers_for(cliente)).status_code == 200
    assert _recarregar(db, Notificacao, pendente).lida is True


def test_marcar_notificacao_alheia(client, db, cliente, make_user, headers_for):
    outro = make_user("outro@obra.com")
    alheia = Notificacao(user_id=outro.id, titulo="Alheia", mensagem="x")
    db.add(alheia)
    db.commit()

    response = client.post(f"/api/notificacoes/{alheia.id}/lida", headers=headers_for(cliente))

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Notificação não encontrada"


# ============ MATERIAIS DO FORNECEDOR ============

def test_upsert_e_toggle_de_material(client, db, fornecedor, fornecedor_user, material, headers_for):
    headers = headers_for(fornecedor_user)

    criado = client.post("/api/fornecedor-materiais", headers=headers, json={
        "action": "upsert", "fornecedor_id": fornecedor.id, "material_id": material.id, "preco": 38.9,
    })
    assert criado.status_code == 200
    assert criado.json()["data"]["preco"] == 38.9
    assert criado.json()["data"]["estoque"] == 0
    assert criado.json()["data"]["ativo"] is True

    desativado = client.post("/api/fornecedor-materiais", headers=headers, json={
        "action": "toggle_ativo", "fornecedor_id": fornecedor.id, "material_id": material.id, "ativo": False,
    })
    assert desativado.json()["data"]["ativo"] is False
    assert db.query(FornecedorMaterial).count() == 1

    listados = client.get("/api/fornecedor-materiais", headers=headers, params={"fornecedor_id": fornecedor.id})
    assert [m["material_id"] for m in listados.json()["data"]] == [material.id]


def test_toggle_cria_registro_zerado(client, db, fornecedor, fornecedor_user, material, headers_for):
    response = client.post("/api/fornecedor-materiais", headers=headers_for(fornecedor_user), json={
        "action": "toggle_ativo", "fornecedor_id": fornecedor.id, "material_id": material.id, "ativo": True,
    })

    assert response.json()["data"]["preco"] == 0
    assert response.json()["data"]["ativo"] is True


def test_solicitar_material(client, db, fornecedor, fornecedor_user, headers_for):
    response = client.post("/api/fornecedor-materiais", headers=headers_for(fornecedor_user), json={
        "action": "request_material", "fornecedor_id": fornecedor.id, "nome": "Argamassa AC-III",
        "grupo_sugerido": "Cimento e Argamassa",
    })

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["unidade"] == "unid"
    assert data["status"] == "pendente"
    assert db.query(SolicitacaoMaterial).count() == 1


@pytest.mark.parametrize("corpo,mensagem", [
    ({"action": "upsert"}, "material_id é obrigatório"),
    ({"action": "request_material", "nome": "  "}, "Nome do material é obrigatório"),
    ({"action": "apagar_tudo"}, "Ação inválida"),
])
def test_acoes_invalidas(client, fornecedor, fornecedor_user, headers_for, corpo, mensagem):
    response = client.post("/api/fornecedor-materiais", headers=headers_for(fornecedor_user),
                           json={**corpo, "fornecedor_id": fornecedor.id})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == mensagem


def test_materiais_de_outro_fornecedor(client, fornecedor, cliente, headers_for):
    response = client.get("/api/fornecedor-materiais", headers=headers_for(cliente),
                          params={"fornecedor_id": fornecedor.id})

    assert response.status_code == 403
