from sqlalchemy import Column, Integer, String, Boolean, Text, DateTime, JSON, Index
from datetime import datetime
from app.models.base import Base


class AuditLog(Base):
    """
    Trilha de auditoria de segurança

    Não tem FK para users: o registro deve sobreviver à exclusão
    do usuário. Retenção controlada pelo job de limpeza diário.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    action = Column(String(50), nullable=False, index=True)  # LOGIN, PASSWORD_CHANGED...
    user_id = Column(Integer, nullable=True, index=True)
    user_email = Column(String(200), nullable=True)
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(String(60), nullable=True)

    ip_address = Column(String(60), nullable=True)
    user_agent = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)

    success = Column(Boolean, default=True, nullable=False)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<AuditLog {self.action} user={self.user_id}>"

    __table_args__ = (
        Index('idx_audit_created', 'created_at'),
    )
