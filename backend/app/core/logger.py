"""
Configuração centralizada de logging

As mensagens seguem o padrão "[TAG] mensagem" (ex: [AUTH], [WEBHOOK])
para facilitar o filtro nos logs do servidor.
"""
import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """
    Configura o logger raiz da aplicação.

    Args:
        level: Nível de log (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    # Reduzir ruído de bibliotecas verbosas
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Retorna o logger do módulo (normalmente __name__)"""
    return logging.getLogger(name)
