"""
Models do marketplace

Importar este pacote registra todas as tabelas no metadata
(usado por Base.metadata.create_all no startup e nos testes).
"""

from app.models.base import Base, TimestampMixin
from app.models.usuario import Usuario, Role, UserStatus
from app.models.cliente import Cliente, ClienteStatus, Obra
from app.models.fornecedor import Fornecedor, FornecedorStatus, fornecedor_grupo
from app.models.material import (
    GrupoInsumo,
    Material,
    material_grupo,
    FornecedorMaterial,
    SolicitacaoMaterial,
    StatusSolicitacaoMaterial,
)
from app.models.cotacao import (
    Cotacao,
    CotacaoItem,
    Proposta,
    PropostaItem,
    StatusCotacao,
    StatusProposta,
)
from app.models.pedido import Pedido, PedidoItem, StatusPedido
from app.models.mensagem import Mensagem, Notificacao
from app.models.auditoria import AuditLog
from app.models.password_reset import PasswordReset
from app.models.email_evento import EmailEvent
from app.models.fabricante import Fabricante
from app.models.sequencia import Sequencia

__all__ = [
    "Base",
    "TimestampMixin",
    "Usuario",
    "Role",
    "UserStatus",
    "Cliente",
    "ClienteStatus",
    "Obra",
    "Fornecedor",
    "FornecedorStatus",
    "fornecedor_grupo",
    "GrupoInsumo",
    "Material",
    "material_grupo",
    "FornecedorMaterial",
    "SolicitacaoMaterial",
    "StatusSolicitacaoMaterial",
    "Cotacao",
    "CotacaoItem",
    "Proposta",
    "PropostaItem",
    "StatusCotacao",
    "StatusProposta",
    "Pedido",
    "PedidoItem",
    "StatusPedido",
    "Mensagem",
    "Notificacao",
    "AuditLog",
    "PasswordReset",
    "EmailEvent",
    "Fabricante",
    "Sequencia",
]
