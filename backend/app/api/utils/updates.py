"""
Update Helpers - Funções para atualização de entidades
"""
from typing import Any, Dict, Iterable, TypeVar, Union
from sqlalchemy.orm import Session
from pydantic import BaseModel

T = TypeVar('T')


def update_entity(
    db: Session,
    entity: T,
    update_data: Union[BaseModel, Dict[str, Any]],
    allowed_fields: Iterable[str] = None,
    exclude_fields: Iterable[str] = None,
    commit: bool = True
) -> T:
    """
    Atualiza entidade com dados do schema Pydantic (ou dict do body).

    Args:
        db: Sessão do banco
        entity: Entidade a atualizar
        update_data: Schema Pydantic ou dict com dados de atualização
        allowed_fields: Lista branca de colunas editáveis (opcional)
        exclude_fields: Campos a ignorar na atualização
        commit: Se deve fazer commit automático

    Usage:
        fornecedor = update_entity(db, fornecedor, body, allowed_fields=CAMPOS_EDITAVEIS)
    """
    if isinstance(update_data, BaseModel):
        data = update_data.model_dump(exclude_unset=True)
    else:
        data = dict(update_data)

    if allowed_fields is not None:
        allowed = set(allowed_fields)
        data = {k: v for k, v in data.items() if k in allowed}

    if exclude_fields:
        excluded = set(exclude_fields)
        data = {k: v for k, v in data.items() if k not in excluded}

    for field, value in data.items():
        if hasattr(entity, field):
            setattr(entity, field, value)

    if commit:
        db.commit()
        db.refresh(entity)

    return entity
