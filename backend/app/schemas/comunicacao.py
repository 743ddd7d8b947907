from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class MensagemResponse(BaseModel):
    id: int
    sender_id: int
    conteudo: str
    created_at: datetime

    class Config:
        from_attributes = True


class MensagemCreate(BaseModel):
    room_id: Optional[str] = Field(None, alias="roomId")
    text: Optional[str] = None

    class Config:
        populate_by_name = True


class NotificacaoResponse(BaseModel):
    id: int
    titulo: str
    mensagem: str
    tipo: str
    link: Optional[str] = None
    lida: bool
    created_at: datetime

    class Config:
        from_attributes = True
