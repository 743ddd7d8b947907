from sqlalchemy import Column, DateTime, Enum as SQLEnum
from datetime import datetime
from app.database import Base


class TimestampMixin:
    """
    Mixin para campos de auditoria temporal
    Todas as tabelas terão created_at e updated_at
    """
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


def enum_column(enum_cls, name: str, length: int = 30) -> SQLEnum:
    """
    Tipo Enum que grava o VALOR do enum (ex: "admin", "enviada")
    como VARCHAR, igual em PostgreSQL e SQLite.
    """
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=length,
        values_callable=lambda e: [m.value for m in e],
    )


__all__ = ['Base', 'TimestampMixin', 'enum_column']
