from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from app.models.fornecedor import FornecedorStatus


class FornecedorBase(BaseModel):
    """Schema base para Fornecedor"""
    razao_social: str = Field(..., min_length=2, max_length=200)
    nome_fantasia: Optional[str] = Field(None, max_length=200)
    cnpj: Optional[str] = None
    inscricao_estadual: Optional[str] = Field(None, max_length=20)

    email: Optional[str] = None
    telefone: Optional[str] = None
    whatsapp: Optional[str] = None
    contato: Optional[str] = None
    site: Optional[str] = None

    logradouro: Optional[str] = None
    numero: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    estado: Optional[str] = Field(None, max_length=2)
    cep: Optional[str] = None

    regioes_atendimento: Optional[List[str]] = None
    observacoes: Optional[str] = None


class FornecedorCreate(FornecedorBase):
    """Schema para criar Fornecedor (painel admin)"""
    codigo: Optional[str] = None
    status: FornecedorStatus = FornecedorStatus.ACTIVE


class FornecedorResponse(FornecedorBase):
    id: int
    codigo: Optional[str] = None
    status: FornecedorStatus
    user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FornecedorResumo(BaseModel):
    """Dados do fornecedor exibidos junto de propostas/pedidos"""
    id: int
    razao_social: str
    nome_fantasia: Optional[str] = None
    cidade: Optional[str] = None
    estado: Optional[str] = None
    telefone: Optional[str] = None
    email: Optional[str] = None
    user_id: Optional[int] = None

    class Config:
        from_attributes = True


class GrupoInsumoResponse(BaseModel):
    id: int
    nome: str
    descricao: Optional[str] = None

    class Config:
        from_attributes = True


class FornecedorMaterialResponse(BaseModel):
    id: int
    fornecedor_id: int
    material_id: int
    preco: float = 0
    estoque: int = 0
    ativo: bool
    updated_at: datetime

    class Config:
        from_attributes = True
