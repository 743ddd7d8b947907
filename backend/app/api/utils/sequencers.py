"""
Sequencers - Geradores de números sequenciais

Usa a tabela 'sequencias' para garantir que números NUNCA reiniciem,
mesmo se os registros forem deletados.
"""
from datetime import datetime
from sqlalchemy.orm import Session


def generate_sequential_number(
    db: Session,
    prefix: str,
    year: int = None,
    digits: int = 5
) -> str:
    """
    Gera número sequencial no formato: PREFIX-AAAA-NNNNN

    Args:
        db: Sessão do banco
        prefix: Prefixo (ver Prefixes)
        year: Ano (default: ano atual)
        digits: Quantidade de dígitos para padding (default: 5)

    Returns:
        Número formatado (ex: "CT-2025-00001")
    """
    from app.models.sequencia import Sequencia

    ano = year or datetime.now().year

    sequencia = db.query(Sequencia).filter(
        Sequencia.prefixo == prefix,
        Sequencia.ano == ano
    ).with_for_update().first()

    if not sequencia:
        sequencia = Sequencia(prefixo=prefix, ano=ano, ultimo_numero=0)
        db.add(sequencia)

    sequencia.ultimo_numero += 1
    proximo = sequencia.ultimo_numero

    # Flush para garantir que o número seja reservado
    db.flush()

    return f"{prefix}-{ano}-{proximo:0{digits}d}"


# Constantes de prefixos para padronização
class Prefixes:
    COTACAO = "CT"
    PEDIDO = "PD"
