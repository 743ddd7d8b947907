"""
Fixtures compartilhadas

Banco SQLite em memória (StaticPool: uma conexão para todas as threads),
jobs executados na hora (sem scheduler) e rate limit em memória.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_SCHEDULED_JOBS"] = "false"
os.environ["REDIS_URL"] = ""
os.environ["SECRET_KEY"] = "chave-de-testes-com-pelo-menos-32-caracteres"
os.environ["SMTP_USER"] = ""
os.environ["WHATSAPP_ACCESS_TOKEN"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.api.routes import validate as validate_routes
from app.core.rate_limit import invalidate_cache, reset_local_limiters
from app.core.security import create_access_token, hash_password
from app.database import SessionLocal, get_db
from app.main import app
from app.models import (
    Base, Cliente, Cotacao, CotacaoItem, Fornecedor, FornecedorStatus, GrupoInsumo,
    Obra, Role, StatusCotacao, UserStatus, Usuario, fornecedor_grupo
)

SENHA_PADRAO = "Senha@123"

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
SessionLocal.configure(bind=test_engine)

# Hash calculado uma vez: bcrypt é lento de propósito
_SENHA_HASH = hash_password(SENHA_PADRAO)


def override_get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def banco_limpo():
    Base.metadata.create_all(bind=test_engine)
    reset_local_limiters()
    validate_routes.cep_limiter.clear()
    validate_routes.cnpj_limiter.clear()
    invalidate_cache("*")
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def criar_usuario(db, email, role=Role.CLIENTE, roles=None, **campos) -> Usuario:
    campos.setdefault("status", UserStatus.ACTIVE)
    campos.setdefault("is_verified", True)
    usuario = Usuario(
        email=email,
        senha_hash=campos.pop("senha_hash", _SENHA_HASH),
        role=role,
        roles=roles if roles is not None else [role.value],
        **campos,
    )
    db.add(usuario)
    db.commit()
    db.refresh(usuario)
    return usuario


def auth_headers(usuario: Usuario) -> dict:
    role = usuario.role.value if hasattr(usuario.role, "value") else usuario.role
    token = create_access_token({"sub": str(usuario.id), "email": usuario.email, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(db):
    return criar_usuario(db, "admin@construir.com", role=Role.ADMIN, nome="Administrador")


@pytest.fixture
def cliente(db):
    return criar_usuario(db, "cliente@obra.com", role=Role.CLIENTE, nome="Carlos Cliente", telefone="11988887777")


@pytest.fixture
def grupo(db):
    grupo = GrupoInsumo(nome="Cimento e Argamassa")
    db.add(grupo)
    db.commit()
    db.refresh(grupo)
    return grupo


@pytest.fixture
def fornecedor(db, grupo):
    """Fornecedor ativo com conta vinculada, atendendo o grupo de cimento"""
    usuario = criar_usuario(db, "vendas@depositosilva.com", role=Role.FORNECEDOR, nome="Silva Vendas")
    fornecedor = Fornecedor(
        razao_social="Depósito Silva LTDA",
        nome_fantasia="Depósito Silva",
        email="vendas@depositosilva.com",
        whatsapp="11977776666",
        cidade="Campinas",
        estado="SP",
        regioes_atendimento=["Campinas", "Valinhos"],
        status=FornecedorStatus.ACTIVE,
        user_id=usuario.id,
    )
    db.add(fornecedor)
    db.commit()
    db.execute(fornecedor_grupo.insert().values(fornecedor_id=fornecedor.id, grupo_id=grupo.id))
    usuario.fornecedor_id = fornecedor.id
    db.commit()
    db.refresh(fornecedor)
    return fornecedor


@pytest.fixture
def fornecedor_user(db, fornecedor):
    return db.query(Usuario).filter(Usuario.id == fornecedor.user_id).first()


@pytest.fixture
def obra(db, cliente):
    obra = Obra(user_id=cliente.id, nome="Residencial Jardim", endereco="Rua das Flores, 100",
                bairro="Centro", cidade="Campinas", estado="SP", cep="13010000")
    db.add(obra)
    db.commit()
    db.refresh(obra)
    return obra


@pytest.fixture
def cotacao(db, cliente, obra):
    """Cotação enviada com um item do grupo de cimento"""
    cotacao = Cotacao(numero="CT-2025-00001", user_id=cliente.id, obra_id=obra.id, status=StatusCotacao.ENVIADA)
    cotacao.itens.append(CotacaoItem(nome="Cimento CP-II 50kg", quantidade=20, unidade="saco", grupo="Cimento e Argamassa"))
    db.add(cotacao)
    db.commit()
    db.refresh(cotacao)
    return cotacao


@pytest.fixture
def cliente_cadastro(db):
    cadastro = Cliente(nome="Construtora Horizonte", email="compras@horizonte.com")
    db.add(cadastro)
    db.commit()
    db.refresh(cadastro)
    return cadastro


@pytest.fixture
def make_user(db):
    def _make(email, role=Role.CLIENTE, roles=None, **campos):
        return criar_usuario(db, email, role=role, roles=roles, **campos)
    return _make


@pytest.fixture
def headers_for():
    return auth_headers
