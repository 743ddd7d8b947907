from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime


class ObraCreate(BaseModel):
    nome: str = Field(..., min_length=2, max_length=200)
    endereco: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    estado: Optional[str] = Field(None, max_length=2)
    cep: Optional[str] = None
    observacoes: Optional[str] = None


class ObraResponse(ObraCreate):
    id: int
    user_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class ClienteResumo(BaseModel):
    id: int
    nome: str
    email: Optional[str] = None
    telefone: Optional[str] = None
    cidade: Optional[str] = None
    estado: Optional[str] = None

    class Config:
        from_attributes = True


class ProfileCompleteRequest(BaseModel):
    """Completa o cadastro: type = cliente | fornecedor"""
    type: Optional[str] = None
    data: Dict[str, Any] = {}
