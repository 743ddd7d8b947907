from sqlalchemy import Column, Integer, String, Text, ForeignKey, Index
import enum
from app.models.base import Base, TimestampMixin, enum_column


class ClienteStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Cliente(Base, TimestampMixin):
    """
    Clientes (construtoras, empreiteiros, pessoas físicas)
    que solicitam cotações
    """
    __tablename__ = "clientes"

    id = Column(Integer, primary_key=True, index=True)

    nome = Column(String(200), nullable=False)
    email = Column(String(200), nullable=True, index=True)
    telefone = Column(String(20), nullable=True)
    cpf_cnpj = Column(String(14), nullable=True)  # Apenas números

    # Endereço
    logradouro = Column(String(200), nullable=True)
    numero = Column(String(20), nullable=True)
    complemento = Column(String(100), nullable=True)
    bairro = Column(String(100), nullable=True)
    cidade = Column(String(100), nullable=True)
    estado = Column(String(2), nullable=True)
    cep = Column(String(8), nullable=True)

    status = Column(enum_column(ClienteStatus, "cliente_status_enum"), default=ClienteStatus.ACTIVE, nullable=False)

    user_id = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)

    def __repr__(self):
        return f"<Cliente {self.nome}>"


class Obra(Base, TimestampMixin):
    """
    Obra do cliente (endereço de entrega das cotações)
    """
    __tablename__ = "obras"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    nome = Column(String(200), nullable=False)
    endereco = Column(String(300), nullable=True)
    bairro = Column(String(100), nullable=True)
    cidade = Column(String(100), nullable=True)
    estado = Column(String(2), nullable=True)
    cep = Column(String(8), nullable=True)
    observacoes = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Obra {self.nome}>"

    __table_args__ = (
        Index('idx_obras_user_cidade', 'user_id', 'cidade'),
    )
