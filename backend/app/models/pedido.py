from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.models.base import Base, TimestampMixin, enum_column
import enum


class StatusPedido(str, enum.Enum):
    """Status do pedido de compra"""
    PENDENTE = "pendente"
    CONFIRMADO = "confirmado"
    EM_SEPARACAO = "em_separacao"
    ENVIADO = "enviado"
    ENTREGUE = "entregue"
    CANCELADO = "cancelado"


class Pedido(Base, TimestampMixin):
    """
    Pedido de compra gerado ao fechar o mapa comparativo
    Um pedido por fornecedor vencedor
    """
    __tablename__ = "pedidos"

    id = Column(Integer, primary_key=True, index=True)
    numero = Column(String(20), nullable=False, index=True)  # PD-2025-00001

    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)  # Cliente
    fornecedor_id = Column(Integer, ForeignKey('fornecedores.id', ondelete='CASCADE'), nullable=False, index=True)
    cotacao_id = Column(Integer, ForeignKey('cotacoes.id', ondelete='SET NULL'), nullable=True, index=True)
    obra_id = Column(Integer, ForeignKey('obras.id', ondelete='SET NULL'), nullable=True)
    proposta_id = Column(Integer, ForeignKey('propostas.id', ondelete='SET NULL'), nullable=True)

    status = Column(enum_column(StatusPedido, "status_pedido_enum"), default=StatusPedido.PENDENTE, nullable=False)
    valor_total = Column(Numeric(14, 2), default=0)

    # Snapshot de cliente, fornecedor e itens no momento do fechamento
    endereco_entrega = Column(JSON, nullable=True)
    observacoes = Column(Text, nullable=True)
    data_confirmacao = Column(DateTime, nullable=True)

    itens = relationship("PedidoItem", back_populates="pedido", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Pedido {self.numero} - {self.status}>"


class PedidoItem(Base):
    __tablename__ = "pedido_itens"

    id = Column(Integer, primary_key=True, index=True)
    pedido_id = Column(Integer, ForeignKey('pedidos.id', ondelete='CASCADE'), nullable=False, index=True)

    descricao = Column(String(200), nullable=False)
    quantidade = Column(Numeric(12, 3), nullable=False, default=0)
    unidade = Column(String(20), nullable=True)
    preco_unitario = Column(Numeric(12, 2), nullable=False, default=0)
    valor_total = Column(Numeric(14, 2), nullable=False, default=0)

    pedido = relationship("Pedido", back_populates="itens")
