from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from app.models.base import Base, TimestampMixin, enum_column
from datetime import datetime
import enum


class StatusCotacao(str, enum.Enum):
    """Status da cotação do cliente"""
    RASCUNHO = "rascunho"
    ENVIADA = "enviada"          # Visível aos fornecedores
    RESPONDIDA = "respondida"    # Recebeu ao menos uma proposta
    FECHADA = "fechada"          # Pedidos gerados
    CANCELADA = "cancelada"


class StatusProposta(str, enum.Enum):
    """Status da proposta do fornecedor"""
    ENVIADA = "enviada"
    ACEITA = "aceita"
    RECUSADA = "recusada"


class Cotacao(Base, TimestampMixin):
    """
    Cotação de materiais para uma obra

    Fluxo:
    1. Cliente cria a cotação (ENVIADA)
    2. Fornecedores dos grupos/materiais enviam propostas (RESPONDIDA)
    3. Cliente fecha pedidos pelo mapa comparativo (FECHADA)
    """
    __tablename__ = "cotacoes"

    id = Column(Integer, primary_key=True, index=True)
    numero = Column(String(20), nullable=False, index=True)  # CT-2025-00001

    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    obra_id = Column(Integer, ForeignKey('obras.id', ondelete='SET NULL'), nullable=True, index=True)

    status = Column(enum_column(StatusCotacao, "status_cotacao_enum"), default=StatusCotacao.ENVIADA, nullable=False)
    observacoes = Column(Text, nullable=True)
    data_envio = Column(DateTime, nullable=True)

    # Pagamento (Mercado Pago)
    payment_status = Column(String(30), nullable=True)
    payment_id = Column(String(60), nullable=True)

    itens = relationship("CotacaoItem", back_populates="cotacao", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Cotacao {self.numero} - {self.status}>"

    __table_args__ = (
        Index('idx_cotacoes_status_created', 'status', 'created_at'),
    )


class CotacaoItem(Base):
    """Item da cotação (material do catálogo ou texto livre)"""
    __tablename__ = "cotacao_itens"

    id = Column(Integer, primary_key=True, index=True)
    cotacao_id = Column(Integer, ForeignKey('cotacoes.id', ondelete='CASCADE'), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey('materiais.id', ondelete='SET NULL'), nullable=True, index=True)

    nome = Column(String(200), nullable=False)
    quantidade = Column(Numeric(12, 3), nullable=False, default=1)
    unidade = Column(String(20), nullable=True)
    grupo = Column(String(150), nullable=True)  # Nome do grupo de insumo
    observacao = Column(Text, nullable=True)

    # Origem no orçamento da obra
    fase_nome = Column(String(150), nullable=True)
    servico_nome = Column(String(150), nullable=True)

    cotacao = relationship("Cotacao", back_populates="itens")


class Proposta(Base, TimestampMixin):
    """
    Proposta de um fornecedor para uma cotação
    Um fornecedor envia no máximo uma proposta por cotação
    """
    __tablename__ = "propostas"

    id = Column(Integer, primary_key=True, index=True)
    cotacao_id = Column(Integer, ForeignKey('cotacoes.id', ondelete='CASCADE'), nullable=False, index=True)
    fornecedor_id = Column(Integer, ForeignKey('fornecedores.id', ondelete='CASCADE'), nullable=False, index=True)

    status = Column(enum_column(StatusProposta, "status_proposta_enum"), default=StatusProposta.ENVIADA, nullable=False)

    # Valores
    valor_total = Column(Numeric(14, 2), default=0)
    valor_frete = Column(Numeric(12, 2), default=0)

    # Condições
    condicoes_pagamento = Column(String(200), nullable=True)
    observacoes = Column(Text, nullable=True)
    data_envio = Column(DateTime, default=datetime.utcnow)
    data_validade = Column(DateTime, nullable=True)

    itens = relationship("PropostaItem", back_populates="proposta", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Proposta cotacao={self.cotacao_id} fornecedor={self.fornecedor_id}>"

    __table_args__ = (
        UniqueConstraint('cotacao_id', 'fornecedor_id', name='uq_proposta_cotacao_fornecedor'),
    )


class PropostaItem(Base):
    __tablename__ = "proposta_itens"

    id = Column(Integer, primary_key=True, index=True)
    proposta_id = Column(Integer, ForeignKey('propostas.id', ondelete='CASCADE'), nullable=False, index=True)
    cotacao_item_id = Column(Integer, ForeignKey('cotacao_itens.id', ondelete='CASCADE'), nullable=False)

    preco_unitario = Column(Numeric(12, 2), nullable=False, default=0)
    quantidade = Column(Numeric(12, 3), nullable=False, default=0)
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    disponibilidade = Column(String(20), nullable=False, default="indisponivel")  # disponivel, parcial, indisponivel
    prazo_dias = Column(Integer, nullable=False, default=-1)  # -1 = não informado
    observacao = Column(Text, nullable=True)

    proposta = relationship("Proposta", back_populates="itens")
