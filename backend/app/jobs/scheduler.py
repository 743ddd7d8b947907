"""
Filas e jobs agendados (APScheduler)

Filas:
- emails: envio de emails transacionais (job único, executa assim que possível)
- notifications: mensagens de WhatsApp
- cleanup: limpeza diária às 03:00 (tokens de senha e logs antigos)

Sem scheduler ativo (testes, ENABLE_SCHEDULED_JOBS=false) os jobs
rodam na hora, na própria thread da request.
"""
import threading
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.core.logger import get_logger
from app.database import SessionLocal
from app.models.auditoria import AuditLog
from app.models.email_evento import EmailEvent
from app.models.password_reset import PasswordReset
from app.services.email_service import email_service
from app.services.whatsapp_service import whatsapp_service

logger = get_logger(__name__)

# Scheduler global
scheduler: Optional[BackgroundScheduler] = None

FILAS = ("emails", "notifications", "cleanup")

_stats_lock = threading.Lock()
_stats: Dict[str, Dict[str, int]] = {}


def _zerar_stats():
    with _stats_lock:
        for fila in FILAS:
            _stats[fila] = {"waiting": 0, "active": 0, "completed": 0, "failed": 0}


_zerar_stats()


def _incrementar(fila: str, campo: str, delta: int = 1):
    with _stats_lock:
        _stats[fila][campo] += delta


def _executar(fila: str, func: Callable, args: tuple, kwargs: dict):
    """Executa o job contabilizando sucesso/falha na fila"""
    _incrementar(fila, "active")
    try:
        resultado = func(*args, **kwargs)
        ok = resultado is not False and not (isinstance(resultado, dict) and resultado.get("sucesso") is False)
        _incrementar(fila, "completed" if ok else "failed")
        return resultado
    except Exception as e:
        # Job em background: erro vira contagem de falha + log
        logger.error(f"[JOBS] Falha no job da fila {fila}: {type(e).__name__} - {e}")
        _incrementar(fila, "failed")
        return None
    finally:
        _incrementar(fila, "active", -1)


def _executar_agendado(fila: str, func: Callable, args: tuple, kwargs: dict):
    _incrementar(fila, "waiting", -1)
    _executar(fila, func, args, kwargs)


def enfileirar(fila: str, func: Callable, *args, **kwargs) -> Optional[str]:
    """
    Coloca um job na fila. Retorna o ID do job agendado
    (None quando executado imediatamente).
    """
    if fila not in FILAS:
        raise ValueError(f"Fila desconhecida: {fila}")

    if scheduler is None or not scheduler.running:
        _executar(fila, func, args, kwargs)
        return None

    job_id = f"{fila}-{uuid.uuid4().hex[:12]}"
    _incrementar(fila, "waiting")
    scheduler.add_job(
        func=_executar_agendado,
        args=[fila, func, args, kwargs],
        id=job_id,
        name=f"{fila}:{getattr(func, '__name__', 'job')}",
        misfire_grace_time=300
    )
    return job_id


# ============ JOBS DE EMAIL / WHATSAPP ============

EMAIL_JOBS: Dict[str, Callable[..., bool]] = {
    "welcome": email_service.enviar_boas_vindas,
    "password-reset": email_service.enviar_reset_senha,
    "password-changed": email_service.enviar_senha_alterada,
    "credentials": email_service.enviar_credenciais,
    "payment-confirmation": email_service.enviar_confirmacao_pagamento,
}


def enfileirar_email(tipo: str, **dados) -> Optional[str]:
    """
    Usage:
        enfileirar_email("password-reset", email=user.email, link=link, nome=user.nome)
    """
    func = EMAIL_JOBS.get(tipo)
    if func is None:
        raise ValueError(f"Tipo de email desconhecido: {tipo}")
    return enfileirar("emails", func, **dados)


def enfileirar_whatsapp(metodo: str, *args) -> Optional[str]:
    """
    Usage:
        enfileirar_whatsapp("notificar_nova_proposta", telefone, cotacao.numero)
    """
    return enfileirar("notifications", getattr(whatsapp_service, metodo), *args)


# ============ LIMPEZA ============

def limpar_dados_antigos() -> Dict[str, int]:
    """
    Remove tokens de senha usados/expirados, audit logs e eventos de email
    mais antigos que AUDIT_LOG_RETENTION_DAYS.
    """
    agora = datetime.utcnow()
    limite = agora - timedelta(days=settings.AUDIT_LOG_RETENTION_DAYS)
    db = SessionLocal()
    try:
        resets = db.query(PasswordReset).filter(
            or_(PasswordReset.used.is_(True), PasswordReset.expires_at < agora)
        ).delete(synchronize_session=False)

        logs = db.query(AuditLog).filter(AuditLog.created_at < limite).delete(synchronize_session=False)
        eventos = db.query(EmailEvent).filter(EmailEvent.created_at < limite).delete(synchronize_session=False)

        db.commit()
        logger.info(f"[CLEANUP] Removidos: {resets} tokens, {logs} audit logs, {eventos} eventos de email")
        return {"password_resets": resets, "audit_logs": logs, "email_events": eventos}
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[CLEANUP] Erro na limpeza: {e}")
        raise
    finally:
        db.close()


def _job_limpeza():
    _executar("cleanup", limpar_dados_antigos, (), {})


# ============ CICLO DE VIDA ============

def iniciar_scheduler():
    """Inicia o scheduler e registra a limpeza diária (03:00)."""
    global scheduler

    if scheduler is not None:
        logger.info("[JOBS] Scheduler já iniciado")
        return

    scheduler = BackgroundScheduler()

    scheduler.add_job(
        func=_job_limpeza,
        trigger=CronTrigger(hour=3, minute=0),
        id='daily_cleanup',
        name='Limpeza diária de tokens e logs',
        replace_existing=True
    )

    scheduler.start()
    logger.info("[JOBS] Scheduler iniciado - limpeza diária às 03:00")


def parar_scheduler():
    """Para o scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("[JOBS] Scheduler parado")


def status_filas() -> Dict[str, Any]:
    """Contadores por fila + próximos jobs agendados"""
    with _stats_lock:
        filas = {fila: dict(valores) for fila, valores in _stats.items()}

    jobs = []
    if scheduler is not None:
        jobs = [
            {
                "id": job.id,
                "nome": job.name,
                "proxima_execucao": job.next_run_time.isoformat() if job.next_run_time else None
            }
            for job in scheduler.get_jobs()
        ]

    return {
        "ativo": scheduler is not None and scheduler.running,
        "filas": filas,
        "jobs": jobs,
    }
