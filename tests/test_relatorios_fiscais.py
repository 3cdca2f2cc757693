import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, ROOT)

from modules.modelos import (
    Cliente,
    Documento,
    ImpostosTotais,
    Item,
    StatusDocumento,
    TipoDocumento,
    Transportadora,
)
from modules.relatorios_fiscais import (
    gerar_notas_canceladas,
    gerar_ranking_clientes,
    gerar_ranking_produtos,
    gerar_relatorios,
    gerar_resumo_fretes,
    gerar_resumo_impostos,
    gerar_resumo_notas,
)


def nfe(id_, valor, cliente=None, itens=(), status=StatusDocumento.NORMAL, **kwargs):
    return Documento(
        id=id_,
        nome_arquivo=f"{id_}.xml",
        tipo=TipoDocumento.NFE,
        numero=id_,
        data="2024-03-10T10:00:00",
        valor_total=valor,
        cliente=cliente or Cliente(),
        itens=tuple(itens),
        status=status,
        **kwargs,
    )


def cte(id_, valor, transportadora, status=StatusDocumento.NORMAL):
    return Documento(
        id=id_,
        nome_arquivo=f"{id_}.xml",
        tipo=TipoDocumento.CTE,
        valor_total=valor,
        transportadora=transportadora,
        status=status,
    )


def test_resumo_notas_basico():
    docs = [nfe("1", 100.0), nfe("2", 300.0)]
    resumo = gerar_resumo_notas(docs)

    assert resumo.total_notas == 2
    assert resumo.total_valor == pytest.approx(400.0)
    assert resumo.media_valor == pytest.approx(200.0)
    assert resumo.por_tipo.venda == 2
    assert resumo.por_tipo.devolucao == 0
    assert resumo.por_tipo.complementar == 0
    assert resumo.por_tipo.cancelada == 0


def test_resumo_notas_inclui_cte_e_cancelada_e_ignora_desconhecido():
    docs = [
        nfe("1", 100.0),
        nfe("2", 50.0, status=StatusDocumento.CANCELADA),
        cte("3", 30.0, Transportadora("T", "1")),
        Documento(id="4", nome_arquivo="x.xml", valor_total=999.0),
        nfe("5", 20.0, status=StatusDocumento.INUTILIZADA),
    ]
    resumo = gerar_resumo_notas(docs)

    assert resumo.total_notas == 4
    assert resumo.total_valor == pytest.approx(200.0)
    assert resumo.por_tipo.venda == 1
    assert resumo.por_tipo.cancelada == 2


def test_relatorios_vazios():
    relatorios = gerar_relatorios([])

    assert relatorios.resumo_notas.total_notas == 0
    assert relatorios.resumo_notas.media_valor == 0.0
    assert relatorios.resumo_impostos.percentual_sobre_receita == 0.0
    assert relatorios.ranking_clientes == []
    assert relatorios.ranking_produtos == []
    assert relatorios.resumo_fretes.custo_medio == 0.0
    assert relatorios.resumo_fretes.transportadoras == ()
    assert relatorios.notas_canceladas.total == 0
    assert relatorios.notas_canceladas.percentual == 0.0


def test_resumo_impostos_so_nfe_normais():
    docs = [
        nfe("1", 1000.0, impostos=ImpostosTotais(100.0, 20.0, 5.0, 25.0)),
        nfe("2", 500.0, impostos=ImpostosTotais(999.0, 0, 0, 0), status=StatusDocumento.CANCELADA),
    ]
    resumo = gerar_resumo_impostos(docs)

    assert resumo.icms_total == pytest.approx(100.0)
    assert resumo.total_impostos == pytest.approx(150.0)
    assert resumo.percentual_sobre_receita == pytest.approx(0.15)


def test_ranking_clientes_agrupa_e_ordena():
    a = Cliente("Alfa", "111")
    b = Cliente("", "222")
    docs = [
        nfe("1", 100.0, a),
        nfe("2", 500.0, b),
        nfe("3", 300.0, Cliente("Alfa Renomeada", "111")),
        nfe("4", 50.0, Cliente("Sem documento", "")),
        nfe("5", 900.0, a, status=StatusDocumento.CANCELADA),
    ]
    ranking = gerar_ranking_clientes(docs)

    assert [c.cnpj_cpf for c in ranking] == ["222", "111"]
    assert ranking[0].nome == "Cliente sem nome"
    alfa = ranking[1]
    assert alfa.nome == "Alfa"
    assert alfa.total_notas == 2
    assert alfa.total_valor == pytest.approx(400.0)
    assert alfa.ticket_medio == pytest.approx(200.0)


def test_ranking_estavel_em_empates():
    docs = [
        nfe("1", 100.0, Cliente("B", "2")),
        nfe("2", 100.0, Cliente("A", "1")),
        nfe("3", 100.0, Cliente("C", "3")),
    ]
    assert [c.cnpj_cpf for c in gerar_ranking_clientes(docs)] == ["2", "1", "3"]


def test_ranking_produtos():
    docs = [
        nfe("1", 0, itens=[
            Item("P1", "Parafuso", 10, "UN", 2.0, 20.0),
            Item("P2", "", 1, "UN", 50.0, 50.0),
            Item("", "Sem código", 1, "UN", 1000.0, 1000.0),
        ]),
        nfe("2", 0, itens=[Item("P1", "Outro nome", 5, "UN", 4.0, 20.0)]),
        cte("3", 0, Transportadora()),
    ]
    ranking = gerar_ranking_produtos(docs)

    assert [p.codigo for p in ranking] == ["P2", "P1"]
    assert ranking[0].nome == "Produto sem nome"
    p1 = ranking[1]
    assert p1.nome == "Parafuso"
    assert p1.total_quantidade == pytest.approx(15)
    assert p1.total_valor == pytest.approx(40.0)
    assert p1.preco_medio == pytest.approx(40.0 / 15)


def test_ranking_produtos_estavel_em_empates():
    docs = [
        nfe("1", 0, itens=[Item("B", "Bravo", 1, "UN", 10.0, 10.0)]),
        nfe("2", 0, itens=[Item("A", "Alfa", 2, "UN", 5.0, 10.0), Item("C", "Charlie", 1, "UN", 10.0, 10.0)]),
    ]
    assert [p.codigo for p in gerar_ranking_produtos(docs)] == ["B", "A", "C"]


def test_ranking_produtos_quantidade_zero():
    docs = [nfe("1", 0, itens=[Item("P1", "Brinde", 0, "UN", 0.0, 10.0)])]
    produto = gerar_ranking_produtos(docs)[0]
    assert produto.preco_medio == 0.0


def test_resumo_fretes_conta_nfe_na_transportadora():
    t = Transportadora("Rápida", "999")
    docs = [
        cte("1", 150.0, t),
        cte("2", 50.0, Transportadora("", "888")),
        nfe("3", 1000.0, transportadora=t),
        cte("4", 70.0, t, status=StatusDocumento.CANCELADA),
    ]
    fretes = gerar_resumo_fretes(docs)

    assert fretes.total_frete == pytest.approx(200.0)
    assert fretes.total_servicos == 2
    assert fretes.custo_medio == pytest.approx(100.0)
    assert [t.cnpj_cpf for t in fretes.transportadoras] == ["999", "888"]
    rapida = fretes.transportadoras[0]
    assert rapida.total_servicos == 2
    assert rapida.total_valor == pytest.approx(150.0)
    assert fretes.transportadoras[1].nome == "Transportadora sem nome"


def test_transportadoras_estaveis_em_empates():
    docs = [
        cte("1", 80.0, Transportadora("Zeta", "3")),
        cte("2", 80.0, Transportadora("Alfa", "1")),
        cte("3", 80.0, Transportadora("Meio", "2")),
    ]
    fretes = gerar_resumo_fretes(docs)
    assert [t.cnpj_cpf for t in fretes.transportadoras] == ["3", "1", "2"]


def test_notas_canceladas():
    docs = [
        nfe("10", 100.0, status=StatusDocumento.CANCELADA, motivo="Erro de digitação"),
        nfe("11", 300.0),
        Documento(
            id="x",
            nome_arquivo="x.xml",
            tipo=TipoDocumento.NFE,
            valor_total=20.0,
            status=StatusDocumento.CANCELADA,
        ),
        nfe("12", 10.0),
        nfe("13", 5.0, status=StatusDocumento.INUTILIZADA),
        nfe("14", 1.0),
    ]
    canceladas = gerar_notas_canceladas(docs)

    assert canceladas.total == 3
    assert canceladas.percentual == pytest.approx(0.5)
    primeira, segunda, inutilizada = canceladas.notas
    assert primeira.numero == "10"
    assert primeira.data == "10/03/2024"
    assert primeira.motivo == "Erro de digitação"
    assert segunda.numero == "Sem número"
    assert segunda.data == "Sem data"
    assert segunda.motivo == "Motivo não informado"
    assert inutilizada.numero == "13"
    assert inutilizada.valor == pytest.approx(5.0)


def test_gerar_relatorios_consistente_com_funcoes_individuais():
    docs = [nfe("1", 100.0, Cliente("A", "1")), cte("2", 40.0, Transportadora("T", "9"))]
    relatorios = gerar_relatorios(docs)

    assert relatorios.resumo_notas == gerar_resumo_notas(docs)
    assert relatorios.ranking_clientes == gerar_ranking_clientes(docs)
    assert relatorios.resumo_fretes == gerar_resumo_fretes(docs)
