"""
Rotas de Cotações

- GET  /cotacoes          feed do fornecedor (cotações enviadas que casam com seus materiais/grupos)
- POST /cotacoes          cliente cria cotação para uma obra
- GET  /cotacoes/detail   listagens e detalhe para o cliente
- POST /cotacoes/detail   fechamento do mapa comparativo (gera pedidos)
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session, selectinload

from app.api.deps import get_current_user, get_db, get_fornecedor_id
from app.api.utils import Prefixes, generate_sequential_number, get_by_id, serialize, serialize_many
from app.core.errors import NotFoundError, ValidationError
from app.core.logger import get_logger
from app.jobs.scheduler import enfileirar_whatsapp
from app.models.cliente import Obra
from app.models.cotacao import Cotacao, CotacaoItem, Proposta, StatusCotacao, StatusProposta
from app.models.fornecedor import Fornecedor, FornecedorStatus, fornecedor_grupo
from app.models.material import FornecedorMaterial, GrupoInsumo, material_grupo
from app.models.pedido import Pedido, PedidoItem, StatusPedido
from app.models.usuario import Usuario
from app.schemas.cotacao import (
    CotacaoActionRequest, CotacaoDetailActionRequest, CotacaoResponse, PropostaResponse
)
from app.schemas.fornecedor import FornecedorResumo
from app.schemas.pedido import PedidoResponse
from app.services.audit_service import AuditAction, log_audit_event
from app.services.notificacao_service import criar_notificacao

router = APIRouter()
logger = get_logger(__name__)


def _obra_resumo(obra: Optional[Obra]) -> Optional[Dict[str, Any]]:
    if obra is None:
        return None
    return {
        "id": obra.id,
        "nome": obra.nome,
        "endereco": obra.endereco,
        "bairro": obra.bairro,
        "cidade": obra.cidade,
        "estado": obra.estado,
        "cep": obra.cep,
    }


# ============ FEED DO FORNECEDOR ============

def _materiais_do_fornecedor(db: Session, fornecedor_id: int) -> Set[int]:
    """Materiais ativos do fornecedor + materiais dos grupos que ele atende"""
    ativos = db.query(FornecedorMaterial.material_id).filter(
        FornecedorMaterial.fornecedor_id == fornecedor_id,
        FornecedorMaterial.ativo.is_(True)
    ).all()
    ids = {row.material_id for row in ativos}

    dos_grupos = db.execute(
        select(material_grupo.c.material_id)
        .join(fornecedor_grupo, fornecedor_grupo.c.grupo_id == material_grupo.c.grupo_id)
        .where(fornecedor_grupo.c.fornecedor_id == fornecedor_id)
    ).all()
    ids.update(row.material_id for row in dos_grupos)
    return ids


def _grupos_do_fornecedor(db: Session, fornecedor_id: int) -> List[str]:
    nomes = db.execute(
        select(GrupoInsumo.nome)
        .join(fornecedor_grupo, fornecedor_grupo.c.grupo_id == GrupoInsumo.id)
        .where(fornecedor_grupo.c.fornecedor_id == fornecedor_id)
    ).all()
    return [row.nome.lower() for row in nomes]


@router.get("")
def feed_cotacoes(
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """
    Cotações abertas visíveis ao fornecedor logado

    Uma cotação aparece quando ao menos um item casa com:
    - material ativo do fornecedor ou de um grupo que ele atende
    - nome do grupo do item igual (sem caixa) a um grupo do fornecedor
    """
    fornecedor_id = get_fornecedor_id(db, user)
    fornecedor = db.query(Fornecedor).filter(Fornecedor.id == fornecedor_id).first() if fornecedor_id else None
    if not fornecedor:
        return {"data": [], "fornecedor_id": None, "fornecedor_status": "not_found", "regioes": []}

    regioes = [r.lower() for r in (fornecedor.regioes_atendimento or [])]
    if fornecedor.status == FornecedorStatus.SUSPENDED:
        return {
            "data": [],
            "fornecedor_id": fornecedor.id,
            "fornecedor_status": fornecedor.status.value,
            "regioes": regioes,
        }

    material_ids = _materiais_do_fornecedor(db, fornecedor.id)
    grupos = _grupos_do_fornecedor(db, fornecedor.id)

    cotacoes: List[Cotacao] = []
    if material_ids or grupos:
        condicoes = []
        if material_ids:
            condicoes.append(CotacaoItem.material_id.in_(list(material_ids)))
        if grupos:
            condicoes.append(func.lower(CotacaoItem.grupo).in_(grupos))

        casam = select(CotacaoItem.cotacao_id).where(or_(*condicoes))
        cotacoes = db.query(Cotacao).options(selectinload(Cotacao.itens)).filter(
            Cotacao.status == StatusCotacao.ENVIADA,
            Cotacao.id.in_(casam)
        ).order_by(desc(Cotacao.created_at), desc(Cotacao.id)).all()

    obras = {o.id: o for o in db.query(Obra).filter(Obra.id.in_([c.obra_id for c in cotacoes if c.obra_id]))}
    clientes = {u.id: u for u in db.query(Usuario).filter(Usuario.id.in_([c.user_id for c in cotacoes]))}
    propostas = dict(db.query(Proposta.cotacao_id, Proposta.status).filter(
        Proposta.fornecedor_id == fornecedor.id
    ).all())

    data = []
    for cotacao in cotacoes:
        item = serialize(CotacaoResponse, cotacao)
        cliente = clientes.get(cotacao.user_id)
        item["_obra"] = _obra_resumo(obras.get(cotacao.obra_id))
        item["_cliente"] = {"id": cliente.id, "nome": cliente.nome, "email": cliente.email} if cliente else None
        status = propostas.get(cotacao.id)
        item["_proposta_status"] = status.value if status else None
        data.append(item)

    return {
        "data": data,
        "fornecedor_id": fornecedor.id,
        "fornecedor_status": fornecedor.status.value,
        "regioes": regioes,
    }


# ============ CRIAÇÃO (CLIENTE) ============

@router.post("")
def criar_cotacao(
    body: CotacaoActionRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """
    Cria cotação já enviada aos fornecedores

    Cotação e itens são gravados no mesmo commit.
    """
    if body.action != "create":
        raise ValidationError("Ação inválida")
    if not body.obra_id:
        raise ValidationError("obra_id é obrigatório")
    if not body.itens:
        raise ValidationError("Itens são obrigatórios")

    obra = get_by_id(db, Obra, body.obra_id, user_id=user.id,
                     error_message="Obra não encontrada ou acesso negado")

    cotacao = Cotacao(
        numero=generate_sequential_number(db, Prefixes.COTACAO),
        user_id=user.id,
        obra_id=obra.id,
        status=StatusCotacao.ENVIADA,
        data_envio=datetime.utcnow(),
        observacoes=body.observacoes or None,
    )
    for item in body.itens:
        cotacao.itens.append(CotacaoItem(**item.model_dump()))

    db.add(cotacao)
    db.commit()
    db.refresh(cotacao)

    log_audit_event(AuditAction.QUOTATION_CREATED, user_id=user.id, user_email=user.email,
                    resource_type="cotacoes", resource_id=cotacao.id,
                    details={"numero": cotacao.numero, "itens": len(body.itens)}, request=request)
    logger.info(f"[COTACAO] {cotacao.numero} criada por {user.email} ({len(body.itens)} itens)")

    resposta = {"success": True, "data": serialize(CotacaoResponse, cotacao), "obra": _obra_resumo(obra)}

    if obra.cidade:
        cidade = obra.cidade.lower()
        ativos = db.query(Fornecedor).filter(Fornecedor.status == FornecedorStatus.ACTIVE).all()
        da_regiao = [
            f for f in ativos
            if any(cidade in (r or "").lower() for r in (f.regioes_atendimento or []))
        ]
        for fornecedor in da_regiao:
            if fornecedor.whatsapp:
                enfileirar_whatsapp("notificar_nova_cotacao", fornecedor.whatsapp, cotacao.numero, obra.nome)
        resposta["suppliers_notified"] = len(da_regiao)

    return resposta


# ============ DETALHE E FECHAMENTO (CLIENTE) ============

@router.get("/detail")
def detalhe_cotacao(
    action: str = Query("detail"),
    id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """
    action=list        cotações do cliente (com ids dos itens)
    action=list-obras  obras do cliente [{id, nome}]
    action=detail      cotação + propostas (menor valor primeiro) + pedidos
    """
    if action == "list":
        cotacoes = db.query(Cotacao).options(selectinload(Cotacao.itens)).filter(
            Cotacao.user_id == user.id
        ).order_by(desc(Cotacao.created_at), desc(Cotacao.id)).all()
        data = []
        for cotacao in cotacoes:
            item = serialize(CotacaoResponse, cotacao)
            item["itens"] = [{"id": i["id"]} for i in item["itens"]]
            data.append(item)
        return {"data": data}

    if action == "list-obras":
        obras = db.query(Obra.id, Obra.nome).filter(Obra.user_id == user.id).all()
        return {"data": [{"id": o.id, "nome": o.nome} for o in obras]}

    if not id:
        raise ValidationError("id é obrigatório")

    cotacao = get_by_id(db, Cotacao, id, user_id=user.id, error_message="Cotação não encontrada")

    propostas = db.query(Proposta).options(selectinload(Proposta.itens)).filter(
        Proposta.cotacao_id == cotacao.id
    ).order_by(Proposta.valor_total.asc()).all()

    pedidos: List[Pedido] = []
    if cotacao.status == StatusCotacao.FECHADA:
        pedidos = db.query(Pedido).options(selectinload(Pedido.itens)).filter(
            Pedido.cotacao_id == cotacao.id
        ).all()

    ids = {p.fornecedor_id for p in propostas} | {p.fornecedor_id for p in pedidos}
    fornecedores = {f.id: serialize(FornecedorResumo, f) for f in db.query(Fornecedor).filter(Fornecedor.id.in_(list(ids)))}

    def _com_fornecedor(schema, obj):
        item = serialize(schema, obj)
        item["fornecedor"] = fornecedores.get(obj.fornecedor_id)
        return item

    return {
        "cotacao": serialize(CotacaoResponse, cotacao),
        "propostas": [_com_fornecedor(PropostaResponse, p) for p in propostas],
        "pedidos": [_com_fornecedor(PedidoResponse, p) for p in pedidos],
    }


@router.post("/detail")
def fechar_pedidos(
    body: CotacaoDetailActionRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: Usuario = Depends(get_current_user)
):
    """
    Fecha o mapa comparativo: um pedido por fornecedor vencedor

    Para cada grupo: pedido pendente + itens, proposta aceita e
    notificação ao fornecedor. No fim a cotação fica fechada.
    """
    if body.action != "finalize-order":
        raise ValidationError("Ação não reconhecida")
    if not body.cotacao_id or not body.items_by_supplier:
        raise ValidationError("Dados incompletos")

    cotacao = get_by_id(db, Cotacao, body.cotacao_id, user_id=user.id, error_message="Cotação não encontrada")

    client_details = body.client_details or {
        "name": user.nome or "Cliente",
        "document": user.cpf_cnpj or "",
        "email": user.email,
        "phone": user.telefone or "",
    }

    pedidos: List[Pedido] = []
    avisos = []
    for grupo in body.items_by_supplier:
        fornecedor = db.query(Fornecedor).filter(Fornecedor.id == grupo.supplier_id).first()
        if not fornecedor:
            raise NotFoundError(f"Fornecedor {grupo.supplier_id} não encontrado")

        itens = [i.model_dump(by_alias=True) for i in grupo.items]
        pedido = Pedido(
            numero=generate_sequential_number(db, Prefixes.PEDIDO),
            user_id=user.id,
            fornecedor_id=fornecedor.id,
            cotacao_id=cotacao.id,
            obra_id=body.obra_id or cotacao.obra_id,
            proposta_id=grupo.proposal_id,
            status=StatusPedido.PENDENTE,
            valor_total=sum(i.total for i in grupo.items),
            endereco_entrega={
                "clientDetails": client_details,
                "supplierDetails": grupo.supplier_details,
                "items": itens,
            },
            observacoes="Pedido gerado via mapa comparativo",
        )
        for i in grupo.items:
            pedido.itens.append(PedidoItem(
                descricao=i.name,
                quantidade=i.quantity,
                unidade=i.unit,
                preco_unitario=i.unit_price,
                valor_total=i.total,
            ))
        db.add(pedido)

        if grupo.proposal_id:
            proposta = db.query(Proposta).filter(
                Proposta.id == grupo.proposal_id,
                Proposta.cotacao_id == cotacao.id
            ).first()
            if proposta:
                proposta.status = StatusProposta.ACEITA

        criar_notificacao(
            db,
            grupo.supplier_user_id or fornecedor.user_id,
            "Novo Pedido Recebido!",
            "Você recebeu um novo pedido de compra.",
            tipo="success",
            link="/dashboard/fornecedor",
        )
        pedidos.append(pedido)
        if fornecedor.whatsapp:
            avisos.append((fornecedor.whatsapp, pedido))

    cotacao.status = StatusCotacao.FECHADA
    db.commit()

    for pedido in pedidos:
        db.refresh(pedido)
        log_audit_event(AuditAction.ORDER_CREATED, user_id=user.id, user_email=user.email,
                        resource_type="pedidos", resource_id=pedido.id,
                        details={"numero": pedido.numero, "cotacao": cotacao.numero}, request=request)
    for whatsapp, pedido in avisos:
        enfileirar_whatsapp("notificar_pedido_aprovado", whatsapp, pedido.numero, client_details.get("name") or "Cliente")
    logger.info(f"[COTACAO] {cotacao.numero} fechada com {len(pedidos)} pedido(s)")

    return {"success": True, "orders": serialize_many(PedidoResponse, pedidos)}
