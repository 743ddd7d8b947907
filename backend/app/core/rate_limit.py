"""
Rate limiting e cache

Dois níveis:
- RateLimiter: janela fixa em memória (por processo, zera no restart)
- check_rate_limit: contador no Redis (INCR/EXPIRE) compartilhado entre
  instâncias; sem REDIS_URL usa um RateLimiter em memória por janela.

Erros do Redis NÃO bloqueiam a requisição (fail open).
"""
import fnmatch
import json
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import redis

from app.config import settings
from app.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: int  # epoch (segundos) do fim da janela

    def headers(self) -> Dict[str, str]:
        """Cabeçalhos X-RateLimit-* para a resposta"""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }

    def retry_after(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        return max(int(math.ceil(self.reset - now)), 1)


class RateLimiter:
    """
    Contador de janela fixa em memória.

    A chave é "<token>_<janela>", onde janela = floor(agora / intervalo).
    Entradas de janelas passadas são removidas a cada consulta e, acima
    da capacidade, as mais antigas são descartadas.
    """

    def __init__(
        self,
        interval: int = 60,
        unique_token_per_interval: int = 500,
        clock: Callable[[], float] = time.time
    ):
        self.interval = interval
        self.unique_token_per_interval = unique_token_per_interval
        self._clock = clock
        self._counts: Dict[str, Tuple[int, float]] = {}  # chave -> (contagem, expira_em)
        self._lock = threading.Lock()

    def _sweep(self, now: float) -> None:
        expiradas = [k for k, (_, expira) in self._counts.items() if expira <= now]
        for k in expiradas:
            del self._counts[k]

        excesso = len(self._counts) - self.unique_token_per_interval
        if excesso > 0:
            # dict preserva ordem de inserção: as primeiras são as mais antigas
            for k in list(self._counts)[:excesso]:
                del self._counts[k]

    def check(self, token: str, limit: int) -> RateLimitResult:
        """Conta uma tentativa para o token e diz se ainda está no limite"""
        with self._lock:
            now = self._clock()
            window = int(now // self.interval)
            reset = (window + 1) * self.interval
            key = f"{token}_{window}"

            self._sweep(now)

            count, _ = self._counts.get(key, (0, reset))
            count += 1
            self._counts[key] = (count, reset)

        return RateLimitResult(
            success=count <= limit,
            limit=limit,
            remaining=max(limit - count, 0),
            reset=int(reset),
        )

    def reset(self, token: str) -> None:
        with self._lock:
            for k in [k for k in self._counts if k.rsplit("_", 1)[0] == token]:
                del self._counts[k]

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()


# ============ REDIS ============

_redis_client: Optional[redis.Redis] = None
_local_limiters: Dict[int, RateLimiter] = {}
_local_lock = threading.Lock()


def get_redis() -> Optional[redis.Redis]:
    """Cliente Redis (lazy). None quando REDIS_URL não está configurada."""
    global _redis_client
    if not settings.REDIS_URL:
        return None
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=2,
            socket_connect_timeout=2,
        )
    return _redis_client


def _local_limiter(window: int) -> RateLimiter:
    with _local_lock:
        limiter = _local_limiters.get(window)
        if limiter is None:
            limiter = RateLimiter(interval=window)
            _local_limiters[window] = limiter
        return limiter


def check_rate_limit(identifier: str, limit: int = 5, window: int = 60) -> RateLimitResult:
    """
    Verifica o limite para o identificador (ex: "login:1.2.3.4").

    Returns:
        RateLimitResult; success=False quando o limite foi excedido
    """
    client = get_redis()
    if client is None:
        return _local_limiter(window).check(identifier, limit)

    key = f"ratelimit:{identifier}"
    now = int(time.time())
    try:
        count = client.incr(key)
        if count == 1:
            client.expire(key, window)
        ttl = client.ttl(key)
        if ttl is None or ttl < 0:
            client.expire(key, window)
            ttl = window
    except redis.RedisError as e:
        logger.warning(f"[RATE LIMIT] Redis indisponível, liberando requisição: {e}")
        return RateLimitResult(success=True, limit=limit, remaining=limit, reset=now + window)

    return RateLimitResult(
        success=count <= limit,
        limit=limit,
        remaining=max(limit - count, 0),
        reset=now + ttl,
    )


def clear_rate_limit(identifier: str) -> None:
    """Zera o contador (ex: após login bem-sucedido em testes/admin)"""
    client = get_redis()
    if client is None:
        with _local_lock:
            limiters = list(_local_limiters.values())
        for limiter in limiters:
            limiter.reset(identifier)
        return
    try:
        client.delete(f"ratelimit:{identifier}")
    except redis.RedisError as e:
        logger.warning(f"[RATE LIMIT] Erro ao limpar limite de {identifier}: {e}")


def reset_local_limiters() -> None:
    """Descarta todos os contadores em memória"""
    with _local_lock:
        _local_limiters.clear()


# ============ CACHE ============

_local_cache: Dict[str, Tuple[Any, float]] = {}  # chave -> (valor, expira_em)
_cache_lock = threading.Lock()
LOCAL_CACHE_MAX_ENTRIES = 1000


def _sweep_cache(now: float) -> None:
    """Remove entradas vencidas e, acima do teto, as mais antigas. Chamar com _cache_lock."""
    expiradas = [k for k, (_, expira) in _local_cache.items() if expira <= now]
    for k in expiradas:
        del _local_cache[k]

    excesso = len(_local_cache) - LOCAL_CACHE_MAX_ENTRIES
    if excesso > 0:
        for k in list(_local_cache)[:excesso]:
            del _local_cache[k]


def get_cached(key: str, fetcher: Callable[[], Any], ttl: int = 300) -> Any:
    """
    Retorna o valor em cache ou chama fetcher() e guarda por ttl segundos.
    Valores None não são cacheados.
    """
    client = get_redis()
    if client is not None:
        try:
            cached = client.get(f"cache:{key}")
            if cached is not None:
                return json.loads(cached)
            value = fetcher()
            if value is not None:
                client.setex(f"cache:{key}", ttl, json.dumps(value))
            return value
        except redis.RedisError as e:
            logger.warning(f"[CACHE] Redis indisponível para {key}: {e}")
            return fetcher()

    now = time.time()
    with _cache_lock:
        hit = _local_cache.get(key)
        if hit and hit[1] > now:
            return hit[0]

    value = fetcher()
    if value is not None:
        with _cache_lock:
            # reinsere no fim para manter a ordem de escrita
            _local_cache.pop(key, None)
            _local_cache[key] = (value, now + ttl)
            _sweep_cache(now)
    return value


def invalidate_cache(pattern: str) -> int:
    """Remove chaves do cache que casam com o padrão glob (ex: "cep:*")"""
    client = get_redis()
    if client is not None:
        try:
            keys = list(client.scan_iter(match=f"cache:{pattern}"))
            if keys:
                client.delete(*keys)
            return len(keys)
        except redis.RedisError as e:
            logger.warning(f"[CACHE] Erro ao invalidar {pattern}: {e}")
            return 0

    with _cache_lock:
        keys = [k for k in _local_cache if fnmatch.fnmatch(k, pattern)]
        for k in keys:
            del _local_cache[k]
    return len(keys)
