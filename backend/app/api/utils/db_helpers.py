"""
Database Helpers - Funções utilitárias para operações de banco de dados
Elimina duplicação de código em todas as rotas
"""
from typing import Type, TypeVar, Optional, Any
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError

T = TypeVar('T')


def get_by_id(
    db: Session,
    model: Type[T],
    entity_id: int,
    raise_not_found: bool = True,
    error_message: str = None,
    **filters
) -> Optional[T]:
    """
    Busca entidade por ID com validação automática.

    Args:
        db: Sessão do banco de dados
        model: Classe do modelo SQLAlchemy
        entity_id: ID da entidade
        raise_not_found: Se True, levanta NotFoundError quando não encontrado
        error_message: Mensagem customizada de erro (opcional)
        **filters: Filtros extras de posse (ex: user_id=user.id)

    Usage:
        obra = get_by_id(db, Obra, obra_id, user_id=user.id,
                         error_message="Obra não encontrada ou acesso negado")
    """
    query = db.query(model).filter(model.id == entity_id)
    if filters:
        query = query.filter_by(**filters)

    entity = query.first()

    if not entity and raise_not_found:
        raise NotFoundError(error_message or f"{model.__name__} não encontrado")

    return entity


def validate_unique(
    db: Session,
    model: Type[T],
    field_name: str,
    field_value: Any,
    exclude_id: int = None,
    message: str = None
) -> None:
    """
    Valida unicidade de campo.

    Raises:
        ConflictError 409 se valor já existir

    Usage:
        validate_unique(db, Usuario, "email", email, message="Este email já está em uso")
    """
    field = getattr(model, field_name)
    query = db.query(model).filter(field == field_value)

    if exclude_id:
        query = query.filter(model.id != exclude_id)

    if query.first():
        raise ConflictError(message or f"{field_name} já cadastrado")
