from pydantic import BaseModel, Field
from typing import Optional, Any, Dict
from datetime import datetime


class FabricanteCreate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    contact: Optional[str] = None
    status: str = "Ativo"


class FabricanteResponse(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    contact: Optional[str] = None
    status: str

    class Config:
        from_attributes = True


class AuditLogResponse(BaseModel):
    id: int
    action: str
    user_id: Optional[int] = None
    user_email: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    ip_address: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    success: bool
    error_message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class FornecedorGrupoRequest(BaseModel):
    """POST /admin/fornecedores - action create | addGrupo | removeGrupo"""
    action: Optional[str] = None
    fornecedor: Optional[Dict[str, Any]] = None
    fornecedor_id: Optional[int] = Field(None, alias="fornecedorId")
    grupo_id: Optional[int] = Field(None, alias="grupoId")

    class Config:
        populate_by_name = True
