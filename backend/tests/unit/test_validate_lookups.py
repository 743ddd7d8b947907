"""
Consulta de CEP e CNPJ na BrasilAPI (requests substituído por respostas fixas)
"""
import pytest
import requests

from app.api.routes import validate


class RespostaFake:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.ok = status_code < 400

    def json(self):
        return self._payload


@pytest.fixture
def brasilapi(monkeypatch):
    """Registra as URLs consultadas e devolve a resposta configurada"""
    estado = {"chamadas": [], "resposta": RespostaFake({})}

    def fake_get(url, headers=None, timeout=None):
        estado["chamadas"].append(url)
        resposta = estado["resposta"]
        if isinstance(resposta, Exception):
            raise resposta
        return resposta

    monkeypatch.setattr(validate.requests, "get", fake_get)
    return estado


CEP_CAMPINAS = {
    "cep": "13010000",
    "street": "Rua Barão de Jaguara",
    "neighborhood": "Centro",
    "city": "Campinas",
    "state": "SP",
}


def test_cep_mapeia_campos_e_usa_cache(client, brasilapi):
    brasilapi["resposta"] = RespostaFake(CEP_CAMPINAS)

    primeira = client.get("/api/validate/cep", params={"cep": "13010-000"})
    segunda = client.get("/api/validate/cep", params={"cep": "13010000"})

    assert primeira.status_code == 200
    assert primeira.json() == {
        "success": True,
        "data": {
            "cep": "13010000",
            "logradouro": "Rua Barão de Jaguara",
            "bairro": "Centro",
            "cidade": "Campinas",
            "estado": "SP",
        },
    }
    assert segunda.json() == primeira.json()
    assert len(brasilapi["chamadas"]) == 1
    assert brasilapi["chamadas"][0].endswith("/cep/v1/13010000")


@pytest.mark.parametrize("params,mensagem", [
    ({}, "CEP é obrigatório"),
    ({"cep": "1301"}, "CEP deve ter 8 dígitos"),
])
def test_cep_invalido(client, brasilapi, params, mensagem):
    response = client.get("/api/validate/cep", params=params)

    assert response.status_code == 400
    assert response.json()["error"]["message"] == mensagem
    assert brasilapi["chamadas"] == []


def test_cep_nao_encontrado(client, brasilapi):
    brasilapi["resposta"] = RespostaFake({"message": "not found"}, status_code=404)

    response = client.get("/api/validate/cep", params={"cep": "99999999"})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "CEP não encontrado"


def test_cep_limite_por_ip(client, brasilapi):
    brasilapi["resposta"] = RespostaFake(CEP_CAMPINAS)

    for _ in range(20):
        assert client.get("/api/validate/cep", params={"cep": "13010000"}).status_code == 200
    bloqueada = client.get("/api/validate/cep", params={"cep": "13010000"})

    assert bloqueada.status_code == 429
    assert int(bloqueada.headers["Retry-After"]) >= 1
    assert bloqueada.headers["X-RateLimit-Remaining"] == "0"


def test_cnpj_invalido_nao_consulta(client, brasilapi):
    response = client.get("/api/validate/cnpj", params={"cnpj": "11.222.333/0001-82"})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "CNPJ inválido"
    assert brasilapi["chamadas"] == []


def test_cnpj_mapeia_campos(client, brasilapi):
    brasilapi["resposta"] = RespostaFake({
        "cnpj": "11222333000181",
        "razao_social": "DEPOSITO SILVA LTDA",
        "nome_fantasia": "DEPOSITO SILVA",
        "descricao_situacao_cadastral": "ATIVA",
        "data_inicio_atividade": "2010-03-15",
        "logradouro": "AV BRASIL",
        "numero": "1200",
        "bairro": "JARDIM GUANABARA",
        "municipio": "CAMPINAS",
        "uf": "SP",
        "cep": "13070178",
        "ddd_telefone_1": "1932345678",
        "cnae_fiscal_descricao": "Comércio varejista de materiais de construção em geral",
    })

    response = client.get("/api/validate/cnpj", params={"cnpj": "11.222.333/0001-81"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["cnpj"] == "11222333000181"
    assert data["razaoSocial"] == "DEPOSITO SILVA LTDA"
    assert data["situacao"] == "ATIVA"
    assert data["cidade"] == "CAMPINAS"
    assert data["complemento"] == ""
    assert data["email"] == ""


def test_cnpj_falha_de_rede(client, brasilapi):
    brasilapi["resposta"] = requests.ConnectionError("timeout")

    response = client.get("/api/validate/cnpj", params={"cnpj": "11222333000181"})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "CNPJ não encontrado ou erro na consulta"
