"""
Serializers - Converte models em dicts JSON via schemas Pydantic
"""
from typing import Any, Dict, Iterable, List, Type

from pydantic import BaseModel


def serialize(schema: Type[BaseModel], obj: Any) -> Dict[str, Any]:
    """
    Usage:
        return {"success": True, "data": serialize(PedidoResponse, pedido)}
    """
    return schema.model_validate(obj).model_dump(mode="json")


def serialize_many(schema: Type[BaseModel], objs: Iterable[Any]) -> List[Dict[str, Any]]:
    return [serialize(schema, o) for o in objs]
