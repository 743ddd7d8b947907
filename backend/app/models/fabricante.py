from sqlalchemy import Column, Integer, String
from app.models.base import Base, TimestampMixin


class Fabricante(Base, TimestampMixin):
    """Fabricantes de materiais (cadastro administrativo)"""
    __tablename__ = "fabricantes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    category = Column(String(100), nullable=True)
    contact = Column(String(200), nullable=True)
    status = Column(String(20), nullable=False, default="Ativo")
