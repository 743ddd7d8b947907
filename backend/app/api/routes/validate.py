"""
Consulta de CEP e CNPJ (BrasilAPI) com rate limit por IP e cache
"""
from typing import Any, Dict, Optional

import requests
from fastapi import APIRouter, Query, Request

from app.config import settings
from app.core.errors import RateLimitError, ValidationError
from app.core.logger import get_logger
from app.core.rate_limit import RateLimiter, get_cached
from app.core.validation import sanitize_numeric, validate_cnpj
from app.services.audit_service import extract_request_metadata

router = APIRouter()
logger = get_logger(__name__)

cep_limiter = RateLimiter(interval=60, unique_token_per_interval=100)
cnpj_limiter = RateLimiter(interval=60, unique_token_per_interval=100)

HEADERS = {"User-Agent": "CotaReconstruir/1.0"}


def _verificar_limite(limiter: RateLimiter, request: Request, limite: int) -> None:
    ip = extract_request_metadata(request)["ip_address"]
    resultado = limiter.check(ip, limite)
    if not resultado.success:
        raise RateLimitError(
            "Muitas consultas. Tente novamente em instantes.",
            retry_after=resultado.retry_after(),
            headers={**resultado.headers(), "Retry-After": str(resultado.retry_after())},
        )


def _consultar(caminho: str, erro: str) -> Dict[str, Any]:
    url = f"{settings.BRASILAPI_URL}/{caminho}"
    try:
        response = requests.get(url, headers=HEADERS, timeout=10)
    except requests.RequestException as e:
        logger.warning(f"[LOOKUP] Falha ao consultar {url}: {e}")
        raise ValidationError(erro)

    if not response.ok:
        logger.info(f"[LOOKUP] {url} respondeu {response.status_code}")
        raise ValidationError(erro)
    return response.json()


@router.get("/cep")
def consultar_cep(request: Request, cep: Optional[str] = Query(None)):
    """CEP -> endereço (20 consultas/min por IP)"""
    _verificar_limite(cep_limiter, request, settings.CEP_RATE_LIMIT)

    if not cep:
        raise ValidationError("CEP é obrigatório")
    cep = sanitize_numeric(cep)
    if len(cep) != 8:
        raise ValidationError("CEP deve ter 8 dígitos")

    def buscar():
        data = _consultar(f"cep/v1/{cep}", "CEP não encontrado")
        return {
            "cep": cep,
            "logradouro": data.get("street") or "",
            "bairro": data.get("neighborhood") or "",
            "cidade": data.get("city") or "",
            "estado": data.get("state") or "",
        }

    return {"success": True, "data": get_cached(f"cep:{cep}", buscar, ttl=settings.LOOKUP_CACHE_TTL)}


@router.get("/cnpj")
def consultar_cnpj(request: Request, cnpj: Optional[str] = Query(None)):
    """CNPJ -> dados cadastrais da empresa (10 consultas/min por IP)"""
    _verificar_limite(cnpj_limiter, request, settings.CNPJ_RATE_LIMIT)

    if not cnpj:
        raise ValidationError("CNPJ é obrigatório")
    cnpj = sanitize_numeric(cnpj)
    if not validate_cnpj(cnpj):
        raise ValidationError("CNPJ inválido")

    def buscar():
        data = _consultar(f"cnpj/v1/{cnpj}", "CNPJ não encontrado ou erro na consulta")
        return {
            "cnpj": cnpj,
            "razaoSocial": data.get("razao_social") or "",
            "nomeFantasia": data.get("nome_fantasia") or "",
            "situacao": data.get("descricao_situacao_cadastral") or "",
            "dataAbertura": data.get("data_inicio_atividade") or "",
            "logradouro": data.get("logradouro") or "",
            "numero": data.get("numero") or "",
            "complemento": data.get("complemento") or "",
            "bairro": data.get("bairro") or "",
            "cidade": data.get("municipio") or "",
            "estado": data.get("uf") or "",
            "cep": data.get("cep") or "",
            "telefone": data.get("ddd_telefone_1") or "",
            "email": data.get("email") or "",
            "atividadePrincipal": data.get("cnae_fiscal_descricao") or "",
        }

    return {"success": True, "data": get_cached(f"cnpj:{cnpj}", buscar, ttl=settings.LOOKUP_CACHE_TTL)}
