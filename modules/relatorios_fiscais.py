"""Relatórios agregados sobre um conjunto de documentos fiscais.

Todas as funções são puras e totais: aceitam lista vazia e qualquer razão
com denominador zero vale ``0``.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Sequence, Tuple

from modules.modelos import Documento, StatusDocumento, TipoDocumento
from utils.formatador_utils import formatar_data_curta

log = logging.getLogger(__name__)

CLIENTE_SEM_NOME = "Cliente sem nome"
PRODUTO_SEM_NOME = "Produto sem nome"
TRANSPORTADORA_SEM_NOME = "Transportadora sem nome"
SEM_NUMERO = "Sem número"
SEM_DATA = "Sem data"
SEM_MOTIVO = "Motivo não informado"


@dataclass(frozen=True)
class PorTipo:
    venda: int = 0
    # Devolução e complementar não têm sinal no XML lido; permanecem zerados.
    devolucao: int = 0
    complementar: int = 0
    cancelada: int = 0


@dataclass(frozen=True)
class ResumoNotas:
    total_notas: int = 0
    total_valor: float = 0.0
    por_tipo: PorTipo = field(default_factory=PorTipo)
    media_valor: float = 0.0


@dataclass(frozen=True)
class ResumoImpostos:
    icms_total: float = 0.0
    ipi_total: float = 0.0
    pis_total: float = 0.0
    cofins_total: float = 0.0
    total_impostos: float = 0.0
    percentual_sobre_receita: float = 0.0


@dataclass(frozen=True)
class ClienteRanking:
    nome: str
    cnpj_cpf: str
    total_notas: int
    total_valor: float
    ticket_medio: float


@dataclass(frozen=True)
class ProdutoRanking:
    codigo: str
    nome: str
    total_quantidade: float
    total_valor: float
    preco_medio: float


@dataclass(frozen=True)
class TransportadoraResumo:
    nome: str
    cnpj_cpf: str
    total_servicos: int
    total_valor: float


@dataclass(frozen=True)
class FreteResumo:
    total_frete: float = 0.0
    total_servicos: int = 0
    custo_medio: float = 0.0
    transportadoras: Tuple[TransportadoraResumo, ...] = ()


@dataclass(frozen=True)
class NotaCancelada:
    numero: str
    data: str
    valor: float
    motivo: str


@dataclass(frozen=True)
class NotasCanceladas:
    total: int = 0
    percentual: float = 0.0
    notas: Tuple[NotaCancelada, ...] = ()


@dataclass(frozen=True)
class RelatoriosFiscais:
    resumo_notas: ResumoNotas
    resumo_impostos: ResumoImpostos
    ranking_clientes: List[ClienteRanking]
    ranking_produtos: List[ProdutoRanking]
    resumo_fretes: FreteResumo
    notas_canceladas: NotasCanceladas


def _dividir(numerador: float, denominador: float) -> float:
    return numerador / denominador if denominador else 0.0


def _normais(documentos: Sequence[Documento]) -> List[Documento]:
    return [doc for doc in documentos if doc.status is StatusDocumento.NORMAL]


def _nfes_normais(documentos: Sequence[Documento]) -> List[Documento]:
    return [doc for doc in _normais(documentos) if doc.tipo is TipoDocumento.NFE]


def _ordenar_por_valor(registros):
    # sorted é estável: empates mantêm a ordem de primeira ocorrência
    return sorted(registros, key=lambda r: r.total_valor, reverse=True)


def gerar_resumo_notas(documentos: Sequence[Documento]) -> ResumoNotas:
    validas = [
        doc for doc in documentos if doc.tipo in (TipoDocumento.NFE, TipoDocumento.CTE)
    ]
    total_notas = len(validas)
    total_valor = sum(doc.valor_total for doc in validas)

    por_tipo = PorTipo(
        venda=sum(
            1
            for doc in validas
            if doc.tipo is TipoDocumento.NFE and doc.status is StatusDocumento.NORMAL
        ),
        cancelada=sum(1 for doc in validas if doc.cancelado),
    )

    return ResumoNotas(
        total_notas=total_notas,
        total_valor=total_valor,
        por_tipo=por_tipo,
        media_valor=_dividir(total_valor, total_notas),
    )


def gerar_resumo_impostos(documentos: Sequence[Documento]) -> ResumoImpostos:
    validas = _nfes_normais(documentos)

    icms = sum(doc.impostos.icms_total for doc in validas)
    ipi = sum(doc.impostos.ipi_total for doc in validas)
    pis = sum(doc.impostos.pis_total for doc in validas)
    cofins = sum(doc.impostos.cofins_total for doc in validas)
    total_impostos = icms + ipi + pis + cofins
    receita = sum(doc.valor_total for doc in validas)

    return ResumoImpostos(
        icms_total=icms,
        ipi_total=ipi,
        pis_total=pis,
        cofins_total=cofins,
        total_impostos=total_impostos,
        percentual_sobre_receita=_dividir(total_impostos, receita),
    )


def gerar_ranking_clientes(documentos: Sequence[Documento]) -> List[ClienteRanking]:
    """Agrupa documentos normais por CNPJ/CPF do destinatário.

    Documentos sem CNPJ/CPF do cliente são ignorados.
    """
    clientes: Dict[str, ClienteRanking] = {}

    for doc in _normais(documentos):
        cnpj_cpf = doc.cliente.cnpj_cpf
        if not cnpj_cpf:
            continue
        valor = doc.valor_total

        atual = clientes.get(cnpj_cpf)
        if atual is None:
            clientes[cnpj_cpf] = ClienteRanking(
                nome=doc.cliente.nome or CLIENTE_SEM_NOME,
                cnpj_cpf=cnpj_cpf,
                total_notas=1,
                total_valor=valor,
                ticket_medio=valor,
            )
            continue

        total_notas = atual.total_notas + 1
        total_valor = atual.total_valor + valor
        clientes[cnpj_cpf] = replace(
            atual,
            total_notas=total_notas,
            total_valor=total_valor,
            ticket_medio=total_valor / total_notas,
        )

    return _ordenar_por_valor(clientes.values())


def gerar_ranking_produtos(documentos: Sequence[Documento]) -> List[ProdutoRanking]:
    """Agrupa os itens das NF-e normais pelo código do produto."""
    produtos: Dict[str, ProdutoRanking] = {}

    for doc in _nfes_normais(documentos):
        for item in doc.itens:
            if not item.codigo:
                continue

            atual = produtos.get(item.codigo)
            if atual is None:
                quantidade = item.quantidade
                valor = item.valor_total
                nome = item.nome or PRODUTO_SEM_NOME
            else:
                quantidade = atual.total_quantidade + item.quantidade
                valor = atual.total_valor + item.valor_total
                nome = atual.nome

            produtos[item.codigo] = ProdutoRanking(
                codigo=item.codigo,
                nome=nome,
                total_quantidade=quantidade,
                total_valor=valor,
                preco_medio=_dividir(valor, quantidade),
            )

    return _ordenar_por_valor(produtos.values())


def gerar_resumo_fretes(documentos: Sequence[Documento]) -> FreteResumo:
    """Resume os CT-e normais e agrupa os documentos por transportadora.

    A tabela de transportadoras considera todos os documentos normais: o
    valor só soma CT-e, mas a contagem de serviços inclui também as NF-e que
    citam a transportadora.
    """
    normais = _normais(documentos)
    ctes = [doc for doc in normais if doc.tipo is TipoDocumento.CTE]

    total_frete = sum(doc.valor_total for doc in ctes)
    total_servicos = len(ctes)

    transportadoras: Dict[str, TransportadoraResumo] = {}
    for doc in normais:
        cnpj_cpf = doc.transportadora.cnpj_cpf
        if not cnpj_cpf:
            continue
        valor = doc.valor_total if doc.tipo is TipoDocumento.CTE else 0.0

        atual = transportadoras.get(cnpj_cpf)
        if atual is None:
            transportadoras[cnpj_cpf] = TransportadoraResumo(
                nome=doc.transportadora.nome or TRANSPORTADORA_SEM_NOME,
                cnpj_cpf=cnpj_cpf,
                total_servicos=1,
                total_valor=valor,
            )
        else:
            transportadoras[cnpj_cpf] = replace(
                atual,
                total_servicos=atual.total_servicos + 1,
                total_valor=atual.total_valor + valor,
            )

    return FreteResumo(
        total_frete=total_frete,
        total_servicos=total_servicos,
        custo_medio=_dividir(total_frete, total_servicos),
        transportadoras=tuple(_ordenar_por_valor(transportadoras.values())),
    )


def gerar_notas_canceladas(documentos: Sequence[Documento]) -> NotasCanceladas:
    canceladas = [doc for doc in documentos if doc.cancelado]

    notas = tuple(
        NotaCancelada(
            numero=doc.numero or SEM_NUMERO,
            data=formatar_data_curta(doc.data) if doc.data else SEM_DATA,
            valor=doc.valor_total,
            motivo=doc.motivo or SEM_MOTIVO,
        )
        for doc in canceladas
    )

    return NotasCanceladas(
        total=len(canceladas),
        percentual=_dividir(len(canceladas), len(documentos)),
        notas=notas,
    )


def gerar_relatorios(documentos: Sequence[Documento]) -> RelatoriosFiscais:
    """Gera os seis relatórios de uma vez sobre o mesmo conjunto."""
    documentos = list(documentos)
    log.info("Gerando relatórios para %d documentos", len(documentos))
    return RelatoriosFiscais(
        resumo_notas=gerar_resumo_notas(documentos),
        resumo_impostos=gerar_resumo_impostos(documentos),
        ranking_clientes=gerar_ranking_clientes(documentos),
        ranking_produtos=gerar_ranking_produtos(documentos),
        resumo_fretes=gerar_resumo_fretes(documentos),
        notas_canceladas=gerar_notas_canceladas(documentos),
    )
