from sqlalchemy import Column, Integer, String, BigInteger, DateTime, JSON
from datetime import datetime
from app.models.base import Base


class EmailEvent(Base):
    """
    Eventos de entrega de email recebidos por webhook
    (delivered, open, click, bounce, dropped, spamreport)
    """
    __tablename__ = "email_events"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(200), nullable=True, index=True)
    event = Column(String(30), nullable=False, index=True)
    timestamp = Column(BigInteger, nullable=True)  # epoch em milissegundos
    cotacao_id = Column(Integer, nullable=True)
    raw_data = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
