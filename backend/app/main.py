import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from app.config import settings
from app.core.errors import AppError, format_error_response
from app.core.logger import get_logger, setup_logging
from app.middleware.route_guard import DashboardGuardMiddleware, SecurityHeadersMiddleware
from app.api.routes import (
    auth, two_factor, admin_accounts, admin_fornecedores, admin_users, admin_ops,
    admin_fabricantes, cotacoes, propostas, pedidos, fornecedor_materiais,
    supplier_profile, profile, obras, notificacoes, chat, validate, webhooks
)

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

# O último middleware adicionado é o mais externo
app.add_middleware(DashboardGuardMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Diretório do frontend estático
# Em produção (Docker): /app/static
# Em desenvolvimento: backend/static (pode não existir)
STATIC_DIR = "/app/static" if os.path.exists("/app/static") else os.path.join(os.path.dirname(os.path.dirname(__file__)), "static")


# ============ ERROS ============

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    status_code, body = format_error_response(exc)
    return JSONResponse(status_code=status_code, content=body, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    erros = [
        {"campo": ".".join(str(p) for p in e.get("loc", ()) if p != "body"), "mensagem": e.get("msg")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": {"message": "Dados inválidos", "statusCode": 400, "code": "validation_failed"}, "details": erros},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    status_code, body = format_error_response(exc)
    return JSONResponse(status_code=status_code, content=body)


# Rota de health check
@app.get("/health")
def health_check():
    """Health check para monitoramento"""
    return {"status": "healthy"}


# ============ ROUTERS ============

api = settings.API_PREFIX
app.include_router(auth.router, prefix=f"{api}/auth", tags=["auth"])
app.include_router(two_factor.router, prefix=f"{api}/auth/2fa", tags=["auth"])
app.include_router(admin_accounts.router, prefix=f"{api}/admin/accounts", tags=["admin"])
app.include_router(admin_fornecedores.router, prefix=f"{api}/admin/fornecedores", tags=["admin"])
app.include_router(admin_users.router, prefix=f"{api}/admin/users", tags=["admin"])
app.include_router(admin_fabricantes.router, prefix=f"{api}/admin/manufacturers", tags=["admin"])
app.include_router(admin_ops.router, prefix=f"{api}/admin", tags=["admin"])
app.include_router(cotacoes.router, prefix=f"{api}/cotacoes", tags=["cotacoes"])
app.include_router(propostas.router, prefix=f"{api}/propostas", tags=["propostas"])
app.include_router(pedidos.router, prefix=f"{api}/pedidos", tags=["pedidos"])
app.include_router(fornecedor_materiais.router, prefix=f"{api}/fornecedor-materiais", tags=["fornecedores"])
app.include_router(supplier_profile.router, prefix=f"{api}/supplier/profile", tags=["fornecedores"])
app.include_router(profile.router, prefix=f"{api}/profile", tags=["perfil"])
app.include_router(obras.router, prefix=f"{api}/obras", tags=["clientes"])
app.include_router(notificacoes.router, prefix=f"{api}/notificacoes", tags=["notificacoes"])
app.include_router(chat.router, prefix=f"{api}/chat", tags=["chat"])
app.include_router(validate.router, prefix=f"{api}/validate", tags=["validate"])
app.include_router(webhooks.router, prefix=f"{api}/webhooks", tags=["webhooks"])


@app.on_event("startup")
def startup_event():
    logger.info(f"[STARTUP] {settings.PROJECT_NAME} iniciado (ambiente: {settings.ENVIRONMENT})")

    # Criar tabelas do banco de dados automaticamente
    from app.database import engine
    from app.models import Base
    Base.metadata.create_all(bind=engine)
    logger.info("[STARTUP] Tabelas do banco de dados criadas/verificadas")

    # Pode ser desabilitado com ENABLE_SCHEDULED_JOBS=false
    if settings.ENABLE_SCHEDULED_JOBS:
        from app.jobs.scheduler import iniciar_scheduler
        iniciar_scheduler()


@app.on_event("shutdown")
def shutdown_event():
    from app.jobs.scheduler import parar_scheduler
    parar_scheduler()
    logger.info("[SHUTDOWN] Sistema encerrado")


# Catch-all para SPA - qualquer rota não-API retorna index.html ou arquivos estáticos
@app.get("/{full_path:path}", include_in_schema=False)
async def serve_spa(full_path: str):
    if full_path.startswith(api.strip("/") + "/") or full_path in ("docs", "redoc", "health"):
        return JSONResponse(status_code=404, content={"error": {"message": "Recurso não encontrado", "statusCode": 404}})

    # Tentar servir arquivo estático (assets, favicon, etc)
    static_file = os.path.realpath(os.path.join(STATIC_DIR, full_path))
    dentro_do_static = static_file.startswith(os.path.realpath(STATIC_DIR) + os.sep)
    if full_path and dentro_do_static and os.path.isfile(static_file):
        return FileResponse(static_file)

    # Retorna o index.html para o router do frontend tratar
    index_path = os.path.join(STATIC_DIR, "index.html")
    if os.path.exists(index_path):
        return FileResponse(index_path)
    return {
        "message": f"{settings.PROJECT_NAME} API",
        "environment": settings.ENVIRONMENT,
    }
