from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, Index
from app.models.base import Base, TimestampMixin


class Mensagem(Base, TimestampMixin):
    """
    Mensagem de chat entre cliente e fornecedor

    chat_id identifica a sala:
    - "<cotacao_id>::<fornecedor_id>" negociação de uma cotação
    - "<pedido_id>" acompanhamento de um pedido
    """
    __tablename__ = "mensagens"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(60), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)

    conteudo = Column(Text, nullable=False)
    tipo = Column(String(20), nullable=False, default="texto")
    lida = Column(Boolean, default=False, nullable=False)

    # Contexto da conversa
    cliente_id = Column(Integer, nullable=True)  # users.id do cliente
    fornecedor_id = Column(Integer, nullable=True)
    cotacao_id = Column(Integer, nullable=True)
    pedido_id = Column(Integer, nullable=True)

    __table_args__ = (
        Index('idx_mensagens_chat_created', 'chat_id', 'created_at'),
    )


class Notificacao(Base, TimestampMixin):
    """Notificação exibida no dashboard do usuário"""
    __tablename__ = "notificacoes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    titulo = Column(String(200), nullable=False)
    mensagem = Column(Text, nullable=False)
    tipo = Column(String(20), nullable=False, default="info")  # info, success, warning, error
    link = Column(String(500), nullable=True)
    lida = Column(Boolean, default=False, nullable=False)
