import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, ROOT)

import modules.processador_lote as pl
from modules.modelos import TipoDocumento
from utils.identificador_utils import GeradorIds, gerar_id_aleatorio

NFE = '<NFe><infNFe Id="NFe{n:044d}"><ide><nNF>{n}</nNF></ide><total><ICMSTot><vNF>{n}.00</vNF></ICMSTot></total></infNFe></NFe>'


def _entradas(qtd):
    return [(NFE.format(n=n), f"nota_{n}.xml") for n in range(1, qtd + 1)]


def test_processa_em_ordem():
    entradas = _entradas(12) + [("<quebrado", "ruim.xml"), ("<outro/>", "outro.xml")]
    resultado = pl.processar_lote(entradas, max_paralelo=3)

    assert [d.nome_arquivo for d in resultado.documentos] == [nome for _, nome in entradas]
    assert [d.numero for d in resultado.documentos[:12]] == [str(n) for n in range(1, 13)]
    assert resultado.total == 14
    assert resultado.reconhecidos == 12
    assert resultado.desconhecidos == 2
    assert len(resultado.validos) == 12
    assert resultado.documentos[12].motivo.startswith("Erro ao processar")


def test_ids_unicos_no_lote():
    resultado = pl.processar_lote(_entradas(50), max_paralelo=5)
    ids = [d.id for d in resultado.documentos]
    assert len(set(ids)) == len(ids)


def test_usa_gerador_informado():
    resultado = pl.processar_lote(_entradas(2), max_paralelo=1, gerar_id=GeradorIds("lote"))
    assert sorted(d.id for d in resultado.documentos) == ["lote-000001", "lote-000002"]


@pytest.mark.parametrize("limite", [0, -1])
def test_limite_invalido(limite):
    with pytest.raises(ValueError):
        pl.processar_lote(_entradas(1), max_paralelo=limite)


def test_lote_vazio(caplog):
    resultado = pl.processar_lote([], max_paralelo=2)
    assert resultado.total == 0
    assert resultado.documentos == []
    assert any("Nenhum arquivo" in r.message for r in caplog.records)


def test_limite_respeitado(monkeypatch):
    ativos = 0
    pico = 0
    lock = threading.Lock()
    original = pl.ler_documento

    def leitor_lento(conteudo, nome, gerar_id=None):
        nonlocal ativos, pico
        with lock:
            ativos += 1
            pico = max(pico, ativos)
        try:
            threading.Event().wait(0.01)
            return original(conteudo, nome, gerar_id)
        finally:
            with lock:
                ativos -= 1

    monkeypatch.setattr(pl, "ler_documento", leitor_lento)
    pl.processar_lote(_entradas(20), max_paralelo=2)
    assert 1 <= pico <= 2


def test_obter_max_paralelo(monkeypatch):
    monkeypatch.delenv("XML_MAX_PARALELO", raising=False)
    assert pl.obter_max_paralelo() == pl.CONFIG_PROCESSAMENTO.get("max_paralelo", 5)

    monkeypatch.setenv("XML_MAX_PARALELO", "3")
    assert pl.obter_max_paralelo() == 3

    monkeypatch.setenv("XML_MAX_PARALELO", "muitos")
    assert pl.obter_max_paralelo() == pl.CONFIG_PROCESSAMENTO.get("max_paralelo", 5)


def test_processar_arquivos(tmp_path):
    arquivo = tmp_path / "nota.xml"
    arquivo.write_bytes(NFE.format(n=7).encode("utf-8"))
    ausente = tmp_path / "nao_existe.xml"

    resultado = pl.processar_arquivos([str(arquivo), str(ausente)], max_paralelo=2)

    lido, ilegivel = resultado.documentos
    assert lido.tipo is TipoDocumento.NFE
    assert lido.nome_arquivo == "nota.xml"
    assert lido.numero == "7"
    assert ilegivel.tipo is TipoDocumento.DESCONHECIDO
    assert ilegivel.nome_arquivo == "nao_existe.xml"
    # a mensagem é a do OSError, não a de um XML vazio
    assert ilegivel.motivo.startswith("Erro ao processar: ")
    assert str(ausente) in ilegivel.motivo
    assert "no element found" not in ilegivel.motivo
    assert resultado.desconhecidos == 1


def test_processar_arquivos_limite_invalido(tmp_path):
    with pytest.raises(ValueError):
        pl.processar_arquivos([str(tmp_path / "a.xml")], max_paralelo=0)


def test_gerador_ids_entre_threads():
    gerador = GeradorIds()
    with ThreadPoolExecutor(max_workers=8) as executor:
        ids = list(executor.map(lambda _: gerador(), range(1000)))
    assert len(set(ids)) == 1000
    assert all(i.startswith(gerador.prefixo + "-") for i in ids)


def test_geradores_distintos_nao_colidem():
    assert GeradorIds()() != GeradorIds()()
    assert len(gerar_id_aleatorio()) == 26
    assert gerar_id_aleatorio() != gerar_id_aleatorio()


def test_prefixo_padrao_e_aleatorio():
    gerador = GeradorIds(None)
    assert len(gerador.prefixo) == 8
    assert gerador().startswith(gerador.prefixo)
