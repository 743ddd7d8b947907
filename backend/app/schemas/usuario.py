from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from app.models.usuario import Role, UserStatus


# ============ RESPOSTAS ============

class UsuarioResponse(BaseModel):
    """Schema de resposta para Usuario (SEM senha e SEM segredo 2FA!)"""
    id: int
    email: str
    nome: Optional[str] = None
    telefone: Optional[str] = None
    cpf_cnpj: Optional[str] = None
    role: Role
    roles: List[str] = []
    status: UserStatus
    is_verified: bool
    must_change_password: bool
    password_changed_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    cliente_id: Optional[int] = None
    fornecedor_id: Optional[int] = None
    two_factor_enabled: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


# ============ AUTENTICAÇÃO ============
# Campos opcionais: a rota devolve a mensagem de obrigatoriedade em português

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    two_factor_code: Optional[str] = Field(None, alias="twoFactorCode")

    class Config:
        populate_by_name = True


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    nome: Optional[str] = Field(None, max_length=200)
    telefone: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    email: Optional[str] = None
    new_password: Optional[str] = Field(None, alias="newPassword")

    class Config:
        populate_by_name = True


class ChangePasswordRequest(BaseModel):
    current_password: Optional[str] = Field(None, alias="currentPassword")
    new_password: Optional[str] = Field(None, alias="newPassword")

    class Config:
        populate_by_name = True


class TwoFactorVerifyRequest(BaseModel):
    code: Optional[str] = None


class TwoFactorDisableRequest(BaseModel):
    password: Optional[str] = None


# ============ ADMIN ============

class AdminUserCreate(BaseModel):
    """Schema para admin criar usuário"""
    email: Optional[str] = None
    password: Optional[str] = None
    nome: Optional[str] = Field(None, max_length=200)
    role: Role = Role.CLIENTE
    telefone: Optional[str] = None


class AccountCreateRequest(BaseModel):
    """Conta de acesso para um cliente/fornecedor já cadastrado"""
    email: Optional[str] = None
    entity_type: Optional[Role] = Field(None, alias="entityType")
    entity_id: Optional[int] = Field(None, alias="entityId")
    entity_name: Optional[str] = Field(None, alias="entityName")
    whatsapp: Optional[str] = None

    class Config:
        populate_by_name = True


class AccountResetRequest(BaseModel):
    user_id: Optional[int] = Field(None, alias="userId")

    class Config:
        populate_by_name = True
