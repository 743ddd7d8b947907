"""
Catálogo de insumos

- GrupoInsumo: agrupamento (ex: "Cimento e Argamassa", "Elétrica")
- Material: item do catálogo, pode pertencer a vários grupos
- FornecedorMaterial: preço/estoque de um material em um fornecedor
- SolicitacaoMaterial: pedido de inclusão de material no catálogo
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, ForeignKey, Table, Index, UniqueConstraint
import enum
from app.models.base import Base, TimestampMixin, enum_column


# Materiais de cada grupo (N:N)
material_grupo = Table(
    'material_grupo',
    Base.metadata,
    Column('material_id', Integer, ForeignKey('materiais.id', ondelete='CASCADE'), primary_key=True),
    Column('grupo_id', Integer, ForeignKey('grupos_insumo.id', ondelete='CASCADE'), primary_key=True),
    Index('idx_material_grupo_grupo', 'grupo_id'),
)


class GrupoInsumo(Base, TimestampMixin):
    __tablename__ = "grupos_insumo"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(150), nullable=False, unique=True)
    descricao = Column(Text, nullable=True)

    def __repr__(self):
        return f"<GrupoInsumo {self.nome}>"


class Material(Base, TimestampMixin):
    __tablename__ = "materiais"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(200), nullable=False, index=True)
    unidade = Column(String(20), nullable=True)  # un, m², saco, kg
    descricao = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Material {self.nome}>"


class FornecedorMaterial(Base, TimestampMixin):
    """
    Material oferecido por um fornecedor
    Materiais ativos definem quais cotações o fornecedor recebe
    """
    __tablename__ = "fornecedor_materiais"

    id = Column(Integer, primary_key=True, index=True)
    fornecedor_id = Column(Integer, ForeignKey('fornecedores.id', ondelete='CASCADE'), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey('materiais.id', ondelete='CASCADE'), nullable=False, index=True)

    preco = Column(Numeric(12, 2), default=0)
    estoque = Column(Integer, default=0)
    ativo = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint('fornecedor_id', 'material_id', name='uq_fornecedor_material'),
    )


class StatusSolicitacaoMaterial(str, enum.Enum):
    PENDENTE = "pendente"
    APROVADA = "aprovada"
    RECUSADA = "recusada"


class SolicitacaoMaterial(Base, TimestampMixin):
    """Fornecedor pede inclusão de um material que não está no catálogo"""
    __tablename__ = "solicitacoes_materiais"

    id = Column(Integer, primary_key=True, index=True)
    fornecedor_id = Column(Integer, ForeignKey('fornecedores.id', ondelete='CASCADE'), nullable=False, index=True)
    nome = Column(String(200), nullable=False)
    unidade = Column(String(20), nullable=False, default="unid")
    descricao = Column(Text, nullable=True)
    grupo_sugerido = Column(String(150), nullable=True)
    status = Column(
        enum_column(StatusSolicitacaoMaterial, "status_solicitacao_material_enum"),
        default=StatusSolicitacaoMaterial.PENDENTE,
        nullable=False
    )
