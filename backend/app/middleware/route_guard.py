from typing import Mapping, Optional
from urllib.parse import quote

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings

ADMIN_ROLES = ("admin", "administrador")

DASHBOARDS = {
    "admin": "/dashboard/admin",
    "administrador": "/dashboard/admin",
    "fornecedor": "/dashboard/fornecedor",
    "cliente": "/dashboard/cliente",
}

PUBLIC_PAGES = ("/", "/login", "/termos", "/privacidade", "/ajuda")

CHANGE_PASSWORD_PATH = "/dashboard/change-password"


def _is_admin(role: Optional[str]) -> bool:
    return role in ADMIN_ROLES


def _dashboard_or_login(role: Optional[str]) -> str:
    return DASHBOARDS.get(role or "", "/login")


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def resolve_redirect(path: str, cookies: Mapping[str, str]) -> Optional[str]:
    """
    Decide o redirecionamento de uma página do frontend

    Returns:
        URL de destino, ou None quando a página pode ser servida
    """
    token = cookies.get("authToken") or cookies.get("token")
    role = cookies.get("userRole") or cookies.get("role")
    must_change = cookies.get("mustChangePassword") == "true"

    if path == "/login" and token and role in DASHBOARDS:
        return DASHBOARDS[role]

    if path in PUBLIC_PAGES or not _under(path, "/dashboard"):
        return None

    if not token:
        return f"/login?redirect={quote(path, safe='/')}"

    troca_de_senha = _under(path, CHANGE_PASSWORD_PATH)

    if must_change and not troca_de_senha:
        return CHANGE_PASSWORD_PATH

    if troca_de_senha:
        # sem a flag, papel conhecido volta ao próprio painel; desconhecido segue
        return None if must_change else DASHBOARDS.get(role or "")

    if _under(path, "/dashboard/admin"):
        return None if _is_admin(role) else _dashboard_or_login(role)

    if _under(path, "/dashboard/fornecedor"):
        if role == "fornecedor" or _is_admin(role):
            return None
        return DASHBOARDS["cliente"] if role == "cliente" else "/login"

    if _under(path, "/dashboard/cliente"):
        if role == "cliente" or _is_admin(role):
            return None
        return DASHBOARDS["fornecedor"] if role == "fornecedor" else "/login"

    if path.rstrip("/") == "/dashboard":
        return _dashboard_or_login(role)

    return None


class DashboardGuardMiddleware(BaseHTTPMiddleware):
    """
    Protege as páginas do dashboard pelos cookies de sessão

    Rotas da API e arquivos estáticos passam direto; a API valida o
    token em cada endpoint.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if request.method == "OPTIONS" or path.startswith(settings.API_PREFIX + "/") or path.startswith("/assets"):
            return await call_next(request)

        destino = resolve_redirect(path, request.cookies)
        if destino:
            return RedirectResponse(destino, status_code=307)
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Cabeçalhos de segurança em todas as respostas"""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    }

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for header, value in self.HEADERS.items():
            response.headers.setdefault(header, value)
        return response
