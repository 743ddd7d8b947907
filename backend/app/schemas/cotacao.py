from pydantic import BaseModel, Field
from typing import Optional, List, Any, Dict
from datetime import datetime
from app.models.cotacao import StatusCotacao, StatusProposta


# ============ COTAÇÃO ============

class CotacaoItemCreate(BaseModel):
    material_id: Optional[int] = None
    nome: str = Field(..., min_length=1, max_length=200)
    quantidade: float = Field(1, gt=0)
    unidade: Optional[str] = None
    grupo: Optional[str] = None
    observacao: Optional[str] = None
    fase_nome: Optional[str] = None
    servico_nome: Optional[str] = None


class CotacaoActionRequest(BaseModel):
    """POST /cotacoes - action "create" """
    action: Optional[str] = None
    obra_id: Optional[int] = None
    itens: Optional[List[CotacaoItemCreate]] = None
    observacoes: Optional[str] = None


class CotacaoItemResponse(BaseModel):
    id: int
    material_id: Optional[int] = None
    nome: str
    quantidade: float
    unidade: Optional[str] = None
    grupo: Optional[str] = None
    observacao: Optional[str] = None
    fase_nome: Optional[str] = None
    servico_nome: Optional[str] = None

    class Config:
        from_attributes = True


class CotacaoResponse(BaseModel):
    id: int
    numero: str
    user_id: int
    obra_id: Optional[int] = None
    status: StatusCotacao
    observacoes: Optional[str] = None
    data_envio: Optional[datetime] = None
    payment_status: Optional[str] = None
    created_at: datetime
    itens: List[CotacaoItemResponse] = []

    class Config:
        from_attributes = True


# ============ FECHAMENTO (MAPA COMPARATIVO) ============

class FinalizeOrderItem(BaseModel):
    name: str
    quantity: float = 0
    unit: Optional[str] = None
    unit_price: float = Field(0, alias="unitPrice")
    total: float = 0

    class Config:
        populate_by_name = True


class SupplierOrderGroup(BaseModel):
    supplier_id: int = Field(..., alias="supplierId")
    proposal_id: Optional[int] = Field(None, alias="proposalId")
    supplier_user_id: Optional[int] = Field(None, alias="supplierUserId")
    supplier_name: Optional[str] = Field(None, alias="supplierName")
    supplier_details: Optional[Dict[str, Any]] = Field(None, alias="supplierDetails")
    items: List[FinalizeOrderItem] = []

    class Config:
        populate_by_name = True


class CotacaoDetailActionRequest(BaseModel):
    action: Optional[str] = None
    cotacao_id: Optional[int] = Field(None, alias="cotacaoId")
    obra_id: Optional[int] = Field(None, alias="obraId")
    items_by_supplier: Optional[List[SupplierOrderGroup]] = Field(None, alias="itemsBySupplier")
    client_details: Optional[Dict[str, Any]] = Field(None, alias="clientDetails")

    class Config:
        populate_by_name = True


# ============ PROPOSTA ============

class PropostaItemCreate(BaseModel):
    cotacao_item_id: int
    preco_unitario: float = Field(0, ge=0)
    quantidade: float = Field(0, ge=0)
    subtotal: Optional[float] = None
    disponibilidade: str = "indisponivel"
    prazo_dias: int = -1
    observacao: Optional[str] = None


class PropostaActionRequest(BaseModel):
    action: Optional[str] = None
    cotacao_id: Optional[int] = None
    itens: Optional[List[PropostaItemCreate]] = None
    valor_total: Optional[float] = None
    valor_frete: float = 0
    condicoes_pagamento: Optional[str] = None
    observacoes: Optional[str] = None
    data_validade: Optional[datetime] = None


class PropostaItemResponse(BaseModel):
    id: int
    cotacao_item_id: int
    preco_unitario: float
    quantidade: float
    subtotal: float
    disponibilidade: str
    prazo_dias: int
    observacao: Optional[str] = None

    class Config:
        from_attributes = True


class PropostaResponse(BaseModel):
    id: int
    cotacao_id: int
    fornecedor_id: int
    status: StatusProposta
    valor_total: float = 0
    valor_frete: float = 0
    condicoes_pagamento: Optional[str] = None
    observacoes: Optional[str] = None
    data_envio: Optional[datetime] = None
    data_validade: Optional[datetime] = None
    itens: List[PropostaItemResponse] = []

    class Config:
        from_attributes = True
