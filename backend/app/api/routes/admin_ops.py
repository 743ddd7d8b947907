"""
Rotas de operação do painel admin - filas de jobs e trilha de auditoria
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_admin
from app.api.utils import apply_filters, paginate_query
from app.jobs.scheduler import status_filas
from app.models.auditoria import AuditLog
from app.models.usuario import Usuario
from app.schemas.admin import AuditLogResponse

router = APIRouter()


# ============ SCHEMAS ============

class AuditLogListResponse(BaseModel):
    items: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# ============ ENDPOINTS ============

@router.get("/queues")
def status_das_filas(admin: Usuario = Depends(require_admin)):
    """Contadores das filas (emails, notifications, cleanup) e próximos jobs"""
    status = status_filas()
    return {
        "success": True,
        "queues": status["filas"],
        "jobs": status["jobs"],
        "schedulerRunning": status["ativo"],
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/audit-logs", response_model=AuditLogListResponse)
def listar_audit_logs(
    db: Session = Depends(get_db),
    admin: Usuario = Depends(require_admin),
    page: int = Query(0, ge=0),
    page_size: int = Query(50, ge=1, le=200),
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    success: Optional[bool] = None,
    desde: Optional[datetime] = Query(None, description="Somente eventos a partir desta data")
):
    """
    Trilha de auditoria, mais recentes primeiro
    """
    query = apply_filters(db.query(AuditLog), [
        (action, AuditLog.action, "eq"),
        (user_id, AuditLog.user_id, "eq"),
        (success, AuditLog.success, "eq"),
        (desde, AuditLog.created_at, "gte"),
    ])

    items, total = paginate_query(query, page=page, page_size=page_size,
                                  order_by=(desc(AuditLog.created_at), desc(AuditLog.id)))

    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )
