import io
import json
import logging
import os
import zipfile
from dataclasses import asdict
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from modules.modelos import Documento, TipoDocumento
from modules.relatorios_fiscais import RelatoriosFiscais
from utils.formatador_utils import formatar_data_curta, formatar_moeda

log = logging.getLogger(__name__)

# Caminho para a pasta de configurações
CONFIG_PATH = os.path.join(os.path.dirname(__file__), "..", "config")

# Carregar Configuração com fallback
try:
    with open(os.path.join(CONFIG_PATH, "layout_colunas.json"), encoding="utf-8") as f:
        LAYOUT = json.load(f)
except (FileNotFoundError, json.JSONDecodeError) as exc:
    log.warning(f"Falha ao carregar layout_colunas.json: {exc}")
    # Define um layout padrao caso ocorra erro na leitura
    LAYOUT = {
        "Itens": {
            "Código": {"campo": "codigo", "tipo": "str", "ordem": 1},
            "Nome do Produto": {"campo": "nome", "tipo": "str", "ordem": 2},
            "Quantidade": {"campo": "quantidade", "tipo": "float", "ordem": 3},
            "Unidade": {"campo": "unidade", "tipo": "str", "ordem": 4},
            "Valor Unitário": {"campo": "valor_unitario", "tipo": "moeda", "ordem": 5},
            "Valor Total": {"campo": "valor_total", "tipo": "moeda", "ordem": 6},
            "ICMS": {"campo": "icms", "tipo": "moeda", "ordem": 7},
            "IPI": {"campo": "ipi", "tipo": "moeda", "ordem": 8},
            "PIS": {"campo": "pis", "tipo": "moeda", "ordem": 9},
            "COFINS": {"campo": "cofins", "tipo": "moeda", "ordem": 10},
        },
        "Documentos": {
            "Arquivo": {"campo": "nome_arquivo", "tipo": "str", "ordem": 1},
            "Tipo": {"campo": "tipo", "tipo": "str", "ordem": 2},
            "Número": {"campo": "numero", "tipo": "str", "ordem": 3},
            "Chave": {"campo": "chave", "tipo": "texto", "ordem": 4},
            "Data Emissão": {"campo": "data", "tipo": "date", "ordem": 5},
            "Valor Total": {"campo": "valor_total", "tipo": "moeda", "ordem": 6},
            "Cliente": {"campo": "cliente_nome", "tipo": "str", "ordem": 7},
            "Cliente CNPJ/CPF": {"campo": "cliente_cnpj_cpf", "tipo": "texto", "ordem": 8},
            "Transportadora": {"campo": "transportadora_nome", "tipo": "str", "ordem": 9},
            "Status": {"campo": "status", "tipo": "str", "ordem": 10},
            "Motivo": {"campo": "motivo", "tipo": "str", "ordem": 11},
        },
    }

NAO_INFORMADO = "N/A"


def _colunas_ordenadas(aba: str) -> List[str]:
    return [col for col, _ in sorted(LAYOUT[aba].items(), key=lambda x: x[1]["ordem"])]


def _montar_dataframe(aba: str, registros: Iterable[dict]) -> pd.DataFrame:
    """Monta o DataFrame da aba conforme o layout, com tipagem por coluna."""
    layout = LAYOUT[aba]
    linhas = [
        {col: registro.get(props["campo"]) for col, props in layout.items()}
        for registro in registros
    ]
    df = pd.DataFrame(linhas, columns=list(layout.keys()))

    for col, props in layout.items():
        tipo = props["tipo"]
        if tipo in ("float", "moeda"):
            df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)
        elif tipo == "date":
            df[col] = df[col].apply(lambda v: formatar_data_curta(v) if v else "")
        else:
            df[col] = df[col].fillna("").astype(str)

    return df[_colunas_ordenadas(aba)]


def _formatar_aba(writer, aba: str, df: pd.DataFrame, tipos: Dict[str, str]) -> None:
    worksheet = writer.sheets[aba]
    book = writer.book
    for i, col in enumerate(df.columns):
        tipo = tipos.get(col)
        if tipo == "moeda":
            worksheet.set_column(i, i, 14, book.add_format({"num_format": "R$ #,##0.00"}))
        elif tipo == "percentual":
            worksheet.set_column(i, i, 12, book.add_format({"num_format": "0.00%"}))
        elif tipo == "texto":
            worksheet.set_column(i, i, 46, book.add_format({"num_format": "@"}))
        elif tipo == "int":
            worksheet.set_column(i, i, 10, book.add_format({"num_format": "0"}))
        else:
            worksheet.set_column(i, i, 18)


def _escrever_aba(writer, aba: str, df: pd.DataFrame, tipos: Optional[Dict[str, str]] = None) -> None:
    df.to_excel(writer, sheet_name=aba[:31], index=False)
    _formatar_aba(writer, aba[:31], df, tipos or {})
    log.info("Aba '%s' adicionada.", aba)


def _tipos_layout(aba: str) -> Dict[str, str]:
    return {col: props["tipo"] for col, props in LAYOUT[aba].items()}


def _registro_documento(doc: Documento) -> dict:
    return {
        "nome_arquivo": doc.nome_arquivo,
        "tipo": doc.tipo.value,
        "numero": doc.numero,
        "chave": doc.chave,
        "data": doc.data,
        "valor_total": doc.valor_total,
        "cliente_nome": doc.cliente.nome,
        "cliente_cnpj_cpf": doc.cliente.cnpj_cpf,
        "transportadora_nome": doc.transportadora.nome,
        "status": doc.status.value,
        "motivo": doc.motivo,
    }


def _registro_item(item) -> dict:
    registro = asdict(item)
    registro.update(registro.pop("impostos"))
    return registro


def informacoes_documento(doc: Documento) -> pd.DataFrame:
    """Quadro ``Campo``/``Valor`` com os dados gerais do documento."""
    impostos = doc.impostos
    linhas = [
        ("INFORMAÇÕES DO DOCUMENTO", ""),
        ("Tipo", doc.tipo.value),
        ("Número", doc.numero or NAO_INFORMADO),
        ("Chave", doc.chave or NAO_INFORMADO),
        ("Data de Emissão", formatar_data_curta(doc.data) if doc.data else NAO_INFORMADO),
        ("Valor Total", formatar_moeda(doc.valor_total)),
        ("Status", doc.status.value),
        ("Motivo", doc.motivo),
        ("", ""),
        ("CLIENTE/DESTINATÁRIO", ""),
        ("Nome", doc.cliente.nome or NAO_INFORMADO),
        ("CNPJ/CPF", doc.cliente.cnpj_cpf or NAO_INFORMADO),
        ("Endereço", doc.cliente.endereco or NAO_INFORMADO),
        ("", ""),
        ("TRANSPORTADORA", ""),
        ("Nome", doc.transportadora.nome or NAO_INFORMADO),
        ("CNPJ/CPF", doc.transportadora.cnpj_cpf or NAO_INFORMADO),
        ("", ""),
        ("IMPOSTOS", ""),
        ("ICMS Total", formatar_moeda(impostos.icms_total)),
        ("IPI Total", formatar_moeda(impostos.ipi_total)),
        ("PIS Total", formatar_moeda(impostos.pis_total)),
        ("COFINS Total", formatar_moeda(impostos.cofins_total)),
        ("Total de Impostos", formatar_moeda(impostos.total)),
    ]
    return pd.DataFrame(linhas, columns=["Campo", "Valor"])


def itens_documento(doc: Documento) -> pd.DataFrame:
    return _montar_dataframe("Itens", (_registro_item(item) for item in doc.itens))


def documentos_para_dataframe(documentos: Sequence[Documento]) -> pd.DataFrame:
    return _montar_dataframe("Documentos", (_registro_documento(doc) for doc in documentos))


def relatorios_para_dataframes(relatorios: RelatoriosFiscais) -> Dict[str, pd.DataFrame]:
    """Converte cada relatório em um DataFrame, na ordem das abas."""
    resumo = relatorios.resumo_notas
    impostos = relatorios.resumo_impostos
    fretes = relatorios.resumo_fretes
    canceladas = relatorios.notas_canceladas

    return {
        "Resumo Notas": pd.DataFrame(
            [
                ("Total de Notas", resumo.total_notas),
                ("Valor Total", resumo.total_valor),
                ("Valor Médio", resumo.media_valor),
                ("Vendas", resumo.por_tipo.venda),
                ("Devoluções", resumo.por_tipo.devolucao),
                ("Complementares", resumo.por_tipo.complementar),
                ("Canceladas", resumo.por_tipo.cancelada),
            ],
            columns=["Indicador", "Valor"],
        ),
        "Impostos": pd.DataFrame(
            [
                ("ICMS", impostos.icms_total),
                ("IPI", impostos.ipi_total),
                ("PIS", impostos.pis_total),
                ("COFINS", impostos.cofins_total),
                ("Total de Impostos", impostos.total_impostos),
                ("% sobre Receita", impostos.percentual_sobre_receita),
            ],
            columns=["Imposto", "Valor"],
        ),
        "Ranking Clientes": pd.DataFrame(
            [asdict(c) for c in relatorios.ranking_clientes],
            columns=["nome", "cnpj_cpf", "total_notas", "total_valor", "ticket_medio"],
        ).rename(
            columns={
                "nome": "Cliente",
                "cnpj_cpf": "CNPJ/CPF",
                "total_notas": "Notas",
                "total_valor": "Valor Total",
                "ticket_medio": "Ticket Médio",
            }
        ),
        "Ranking Produtos": pd.DataFrame(
            [asdict(p) for p in relatorios.ranking_produtos],
            columns=["codigo", "nome", "total_quantidade", "total_valor", "preco_medio"],
        ).rename(
            columns={
                "codigo": "Código",
                "nome": "Produto",
                "total_quantidade": "Quantidade",
                "total_valor": "Valor Total",
                "preco_medio": "Preço Médio",
            }
        ),
        "Fretes": pd.DataFrame(
            [
                ("Total de Fretes", fretes.total_frete),
                ("Serviços", fretes.total_servicos),
                ("Custo Médio", fretes.custo_medio),
            ],
            columns=["Indicador", "Valor"],
        ),
        "Transportadoras": pd.DataFrame(
            [asdict(t) for t in fretes.transportadoras],
            columns=["nome", "cnpj_cpf", "total_servicos", "total_valor"],
        ).rename(
            columns={
                "nome": "Transportadora",
                "cnpj_cpf": "CNPJ/CPF",
                "total_servicos": "Serviços",
                "total_valor": "Valor Total",
            }
        ),
        "Canceladas": pd.DataFrame(
            [asdict(n) for n in canceladas.notas],
            columns=["numero", "data", "valor", "motivo"],
        ).rename(
            columns={"numero": "Número", "data": "Data", "valor": "Valor", "motivo": "Motivo"}
        ),
    }


TIPOS_RELATORIOS = {
    "Ranking Clientes": {"Valor Total": "moeda", "Ticket Médio": "moeda", "Notas": "int", "CNPJ/CPF": "texto"},
    "Ranking Produtos": {"Valor Total": "moeda", "Preço Médio": "moeda"},
    "Transportadoras": {"Valor Total": "moeda", "Serviços": "int", "CNPJ/CPF": "texto"},
    "Canceladas": {"Valor": "moeda"},
}


def _salvar(escrever, destino: Optional[str]) -> Optional[bytes]:
    """Executa ``escrever(writer)`` em ``destino`` ou em memória."""
    alvo = destino if destino is not None else io.BytesIO()
    try:
        with pd.ExcelWriter(alvo, engine="xlsxwriter") as writer:
            escrever(writer)
    except Exception as e:
        log.error(f"Erro ao salvar o arquivo Excel: {e}")
        raise
    if destino is None:
        return alvo.getvalue()
    log.info(f"Planilha salva em: {destino}")
    return None


def exportar_documento_excel(doc: Documento, destino: Optional[str] = None) -> Optional[bytes]:
    """Gera a planilha de um documento (abas ``Informações`` e ``Itens``).

    Sem ``destino`` os bytes do arquivo ``.xlsx`` são retornados.
    """

    def escrever(writer):
        _escrever_aba(writer, "Informações", informacoes_documento(doc))
        if doc.tipo is TipoDocumento.NFE and doc.itens:
            _escrever_aba(writer, "Itens", itens_documento(doc), _tipos_layout("Itens"))

    return _salvar(escrever, destino)


def exportar_relatorios_excel(
    relatorios: RelatoriosFiscais,
    documentos: Optional[Sequence[Documento]] = None,
    destino: Optional[str] = None,
) -> Optional[bytes]:
    """Gera uma planilha com uma aba por relatório e, opcionalmente, a lista de documentos."""

    def escrever(writer):
        for aba, df in relatorios_para_dataframes(relatorios).items():
            _escrever_aba(writer, aba, df, TIPOS_RELATORIOS.get(aba))
        if documentos is not None:
            _escrever_aba(
                writer,
                "Documentos",
                documentos_para_dataframe(documentos),
                _tipos_layout("Documentos"),
            )

    return _salvar(escrever, destino)


def nome_arquivo_exportacao(doc: Documento, extensao: str = "xlsx") -> str:
    return f"{doc.tipo.value}_{doc.numero or 'sem_numero'}.{extensao}"


def exportar_lote_zip(documentos: Sequence[Documento], destino: Optional[str] = None) -> Optional[bytes]:
    """Compacta a planilha de cada documento em ``excel/<tipo>_<numero>.xlsx``.

    Nomes repetidos recebem sufixo numérico.
    """
    alvo = destino if destino is not None else io.BytesIO()
    usados = set()
    with zipfile.ZipFile(alvo, "w", zipfile.ZIP_DEFLATED) as zf:
        for doc in documentos:
            nome = nome_arquivo_exportacao(doc)
            base, ext = os.path.splitext(nome)
            contador = 1
            while nome in usados:
                nome = f"{base}_{contador}{ext}"
                contador += 1
            usados.add(nome)
            zf.writestr(f"excel/{nome}", exportar_documento_excel(doc))
    log.info("Pacote com %d planilhas gerado", len(usados))
    if destino is None:
        return alvo.getvalue()
    return None
