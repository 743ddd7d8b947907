from sqlalchemy import Column, Integer, String, Text, JSON, ForeignKey, Table, Index
import enum
from app.models.base import Base, TimestampMixin, enum_column


class FornecedorStatus(str, enum.Enum):
    """Situação cadastral do fornecedor"""
    ACTIVE = "active"
    PENDING = "pending"        # Autocadastro aguardando aprovação
    SUSPENDED = "suspended"    # Não recebe cotações
    INACTIVE = "inactive"


# Grupos de insumo atendidos pelo fornecedor (N:N)
fornecedor_grupo = Table(
    'fornecedor_grupo',
    Base.metadata,
    Column('fornecedor_id', Integer, ForeignKey('fornecedores.id', ondelete='CASCADE'), primary_key=True),
    Column('grupo_id', Integer, ForeignKey('grupos_insumo.id', ondelete='CASCADE'), primary_key=True),
    Index('idx_forn_grupo_grupo', 'grupo_id'),
)


class Fornecedor(Base, TimestampMixin):
    """
    Fornecedores de materiais de construção

    Recebem as cotações dos grupos/materiais que atendem,
    dentro das regiões de atendimento declaradas.
    """
    __tablename__ = "fornecedores"

    id = Column(Integer, primary_key=True, index=True)
    codigo = Column(String(20), nullable=True, index=True)  # F123456

    # Dados cadastrais
    razao_social = Column(String(200), nullable=False)
    nome_fantasia = Column(String(200), nullable=True)
    cnpj = Column(String(14), nullable=True, index=True)  # Apenas números
    inscricao_estadual = Column(String(20), nullable=True)

    # Contato
    email = Column(String(200), nullable=True, index=True)
    telefone = Column(String(20), nullable=True)
    whatsapp = Column(String(20), nullable=True)
    contato = Column(String(200), nullable=True)  # Nome do responsável
    site = Column(String(200), nullable=True)

    # Endereço
    logradouro = Column(String(200), nullable=True)
    numero = Column(String(20), nullable=True)
    complemento = Column(String(100), nullable=True)
    bairro = Column(String(100), nullable=True)
    cidade = Column(String(100), nullable=True)
    estado = Column(String(2), nullable=True)  # UF
    cep = Column(String(8), nullable=True)  # Apenas números

    # Atuação
    regioes_atendimento = Column(JSON, nullable=True)  # ["São Paulo", "Guarulhos"]
    observacoes = Column(Text, nullable=True)

    status = Column(enum_column(FornecedorStatus, "fornecedor_status_enum"), default=FornecedorStatus.ACTIVE, nullable=False)

    # Conta de acesso do fornecedor
    user_id = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)

    def __repr__(self):
        return f"<Fornecedor {self.razao_social}>"
