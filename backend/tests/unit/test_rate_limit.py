"""
Limitador de janela fixa e cache com TTL (modo em memória)
"""
import redis

from app.core import rate_limit
from app.core.rate_limit import (
    RateLimiter, check_rate_limit, clear_rate_limit, get_cached, invalidate_cache
)


class Relogio:
    def __init__(self, agora=1_000.0):
        self.agora = agora

    def __call__(self):
        return self.agora


def test_bloqueia_acima_do_limite():
    limiter = RateLimiter(interval=60, clock=Relogio())

    resultados = [limiter.check("1.2.3.4", 3) for _ in range(4)]

    assert [r.success for r in resultados] == [True, True, True, False]
    assert [r.remaining for r in resultados] == [2, 1, 0, 0]


def test_nova_janela_zera_contagem():
    relogio = Relogio(1_000.0)
    limiter = RateLimiter(interval=60, clock=relogio)
    limiter.check("ip", 1)
    assert limiter.check("ip", 1).success is False

    relogio.agora = 1_021.0  # 1020 é o início da próxima janela
    assert limiter.check("ip", 1).success is True


def test_reset_e_retry_after():
    limiter = RateLimiter(interval=60, clock=Relogio(1_000.0))

    resultado = limiter.check("ip", 5)

    assert resultado.reset == 1_020
    assert resultado.retry_after(now=1_000.0) == 20
    assert resultado.retry_after(now=1_030.0) == 1
    assert resultado.headers()["X-RateLimit-Limit"] == "5"


def test_tokens_independentes():
    limiter = RateLimiter(interval=60, clock=Relogio())
    limiter.check("a", 1)

    assert limiter.check("b", 1).success is True


def test_capacidade_descarta_os_mais_antigos():
    limiter = RateLimiter(interval=60, unique_token_per_interval=2, clock=Relogio())
    limiter.check("primeiro", 1)
    limiter.check("segundo", 1)
    limiter.check("terceiro", 1)

    # "primeiro" foi descartado e volta a ter a cota inteira
    assert limiter.check("primeiro", 1).success is True
    assert limiter.check("terceiro", 1).success is False


def test_reset_por_token():
    limiter = RateLimiter(interval=60, clock=Relogio())
    limiter.check("ip", 1)

    limiter.reset("ip")

    assert limiter.check("ip", 1).success is True


def test_check_rate_limit_em_memoria():
    for _ in range(2):
        assert check_rate_limit("teste:ip", limit=2, window=60).success is True
    assert check_rate_limit("teste:ip", limit=2, window=60).success is False

    clear_rate_limit("teste:ip")

    assert check_rate_limit("teste:ip", limit=2, window=60).success is True


class RedisFora:
    def incr(self, key):
        raise redis.ConnectionError("sem conexão")


def test_redis_indisponivel_libera(monkeypatch):
    monkeypatch.setattr(rate_limit, "get_redis", lambda: RedisFora())

    resultado = check_rate_limit("login:ip", limit=1, window=60)

    assert resultado.success is True
    assert resultado.remaining == 1


def test_get_cached_chama_fetcher_uma_vez():
    chamadas = []

    def buscar():
        chamadas.append(1)
        return {"cidade": "Campinas"}

    assert get_cached("cep:13010000", buscar, ttl=60) == {"cidade": "Campinas"}
    assert get_cached("cep:13010000", buscar, ttl=60) == {"cidade": "Campinas"}
    assert len(chamadas) == 1


def test_get_cached_nao_guarda_none():
    chamadas = []

    def buscar():
        chamadas.append(1)
        return None

    get_cached("cnpj:vazio", buscar)
    get_cached("cnpj:vazio", buscar)

    assert len(chamadas) == 2


def test_get_cached_expira(monkeypatch):
    agora = [1_000.0]
    monkeypatch.setattr(rate_limit.time, "time", lambda: agora[0])
    valores = iter(["antigo", "novo"])

    assert get_cached("chave", lambda: next(valores), ttl=10) == "antigo"
    agora[0] = 1_011.0
    assert get_cached("chave", lambda: next(valores), ttl=10) == "novo"


def test_get_cached_descarta_entradas_vencidas(monkeypatch):
    agora = [1_000.0]
    monkeypatch.setattr(rate_limit.time, "time", lambda: agora[0])
    for i in range(50):
        get_cached(f"cep:{i}", lambda: i, ttl=10)

    agora[0] = 1_011.0
    get_cached("cep:novo", lambda: "x", ttl=10)

    assert list(rate_limit._local_cache) == ["cep:novo"]


def test_get_cached_respeita_teto(monkeypatch):
    monkeypatch.setattr(rate_limit, "LOCAL_CACHE_MAX_ENTRIES", 3)
    for i in range(5):
        get_cached(f"cnpj:{i}", lambda: i)

    assert list(rate_limit._local_cache) == ["cnpj:2", "cnpj:3", "cnpj:4"]
    assert get_cached("cnpj:4", lambda: 99) == 4


def test_invalidate_cache_por_padrao():
    get_cached("cep:1", lambda: 1)
    get_cached("cep:2", lambda: 2)
    get_cached("cnpj:1", lambda: 3)

    assert invalidate_cache("cep:*") == 2
    assert get_cached("cnpj:1", lambda: 99) == 3
    assert get_cached("cep:1", lambda: 10) == 10
