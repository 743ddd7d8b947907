from pydantic import BaseModel
from typing import Optional, List, Any, Dict
from datetime import datetime
from app.models.pedido import StatusPedido


class PedidoItemResponse(BaseModel):
    id: int
    descricao: str
    quantidade: float
    unidade: Optional[str] = None
    preco_unitario: float
    valor_total: float

    class Config:
        from_attributes = True


class PedidoResponse(BaseModel):
    id: int
    numero: str
    user_id: int
    fornecedor_id: int
    cotacao_id: Optional[int] = None
    obra_id: Optional[int] = None
    proposta_id: Optional[int] = None
    status: StatusPedido
    valor_total: float = 0
    endereco_entrega: Optional[Dict[str, Any]] = None
    observacoes: Optional[str] = None
    data_confirmacao: Optional[datetime] = None
    created_at: datetime
    itens: List[PedidoItemResponse] = []

    class Config:
        from_attributes = True


class PedidoActionRequest(BaseModel):
    """POST /pedidos - action "update_status" """
    action: Optional[str] = None
    pedido_id: Optional[int] = None
    status: Optional[str] = None
