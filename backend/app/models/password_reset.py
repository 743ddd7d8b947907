from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from datetime import datetime
from app.models.base import Base


class PasswordReset(Base):
    """
    Token de recuperação de senha

    Apenas o hash SHA-256 do token é armazenado; o token em claro
    vai somente no link enviado por email.
    """
    __tablename__ = "password_resets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    email = Column(String(200), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, index=True)

    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
