"""
Pagination Helpers - Funções utilitárias para paginação e filtros
"""
from typing import TypeVar, Any, Optional, Tuple, List
from sqlalchemy.orm import Query
from sqlalchemy import or_

T = TypeVar('T')


def paginate_query(
    query: Query,
    page: int = 0,
    page_size: int = 20,
    order_by: Any = None
) -> Tuple[List[T], int]:
    """
    Aplica paginação em uma query e retorna itens + total.

    Args:
        query: Query SQLAlchemy
        page: Número da página (0-indexed, como o painel admin envia)
        page_size: Tamanho da página
        order_by: Coluna(s) para ordenação - pode ser único ou tupla

    Usage:
        items, total = paginate_query(query, page=0, page_size=10, order_by=desc(Usuario.created_at))
    """
    total = query.count()

    if order_by is not None:
        if isinstance(order_by, tuple):
            query = query.order_by(*order_by)
        else:
            query = query.order_by(order_by)

    items = query.offset(max(page, 0) * page_size).limit(page_size).all()

    return items, total


def apply_search_filter(
    query: Query,
    search_term: Optional[str],
    *fields
) -> Query:
    """
    Aplica filtro de busca ILIKE em múltiplos campos.

    Usage:
        query = apply_search_filter(query, search, Usuario.email, Usuario.nome)
    """
    if not search_term or not fields:
        return query

    conditions = [field.ilike(f"%{search_term}%") for field in fields]
    return query.filter(or_(*conditions))


def apply_filters(
    query: Query,
    filters: List[Tuple[Any, Any, str]]
) -> Query:
    """
    Aplica múltiplos filtros de uma vez; valores None são ignorados.

    Args:
        filters: Lista de (valor, campo, operador)
                 operador pode ser: "eq", "like", "gte", "lte"

    Usage:
        query = apply_filters(query, [
            (action, AuditLog.action, "eq"),
            (user_id, AuditLog.user_id, "eq"),
        ])
    """
    for value, field, operator in filters:
        if value is None:
            continue

        if operator == "eq":
            query = query.filter(field == value)
        elif operator == "like":
            query = query.filter(field.ilike(f"%{value}%"))
        elif operator == "gte":
            query = query.filter(field >= value)
        elif operator == "lte":
            query = query.filter(field <= value)

    return query
