import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from modules.leitor_documentos import Conteudo, documento_com_erro, ler_documento
from modules.modelos import Documento, TipoDocumento
from utils.arquivo_utils import ler_arquivo
from utils.identificador_utils import GeradorIds

log = logging.getLogger(__name__)

# Caminhos de configuração
CONFIG_PATH = os.path.join(os.path.dirname(__file__), "..", "config")

try:
    with open(os.path.join(CONFIG_PATH, "processamento_config.json"), encoding="utf-8") as f:
        CONFIG_PROCESSAMENTO = json.load(f)
except (FileNotFoundError, json.JSONDecodeError) as exc:
    log.warning(f"Falha ao carregar processamento_config.json: {exc}")
    CONFIG_PROCESSAMENTO = {
        "max_paralelo": 5,
        "periodo_padrao": "todos",
        "extensoes": [".xml"],
    }


@dataclass
class ResultadoLote:
    documentos: List[Documento] = field(default_factory=list)
    reconhecidos: int = 0
    desconhecidos: int = 0

    @property
    def total(self) -> int:
        return len(self.documentos)

    @property
    def validos(self) -> List[Documento]:
        return [d for d in self.documentos if d.tipo is not TipoDocumento.DESCONHECIDO]


def obter_max_paralelo() -> int:
    """Limite de leituras simultâneas: ``XML_MAX_PARALELO`` ou configuração."""
    bruto = os.getenv("XML_MAX_PARALELO")
    if bruto:
        try:
            return int(bruto)
        except ValueError:
            log.warning("XML_MAX_PARALELO inválido (%s), usando configuração", bruto)
    return int(CONFIG_PROCESSAMENTO.get("max_paralelo", 5))


def _executar(tarefa, itens: list, max_paralelo: Optional[int]) -> ResultadoLote:
    """Aplica ``tarefa`` a cada item com no máximo ``max_paralelo`` threads."""
    if max_paralelo is None:
        max_paralelo = obter_max_paralelo()
    if max_paralelo < 1:
        raise ValueError(f"max_paralelo deve ser >= 1, recebido {max_paralelo}")

    if not itens:
        log.warning("Nenhum arquivo XML fornecido para processamento")
        return ResultadoLote()

    log.info(f"Iniciando processamento de {len(itens)} arquivos XML (paralelo={max_paralelo})")

    with ThreadPoolExecutor(max_workers=max_paralelo) as executor:
        documentos = list(executor.map(tarefa, itens))

    desconhecidos = sum(1 for d in documentos if d.tipo is TipoDocumento.DESCONHECIDO)
    resultado = ResultadoLote(
        documentos=documentos,
        reconhecidos=len(documentos) - desconhecidos,
        desconhecidos=desconhecidos,
    )

    log.info(
        f"Processamento concluído: {resultado.reconhecidos} reconhecidos, "
        f"{resultado.desconhecidos} desconhecidos"
    )
    for doc in documentos:
        if doc.tipo is TipoDocumento.DESCONHECIDO and doc.motivo:
            log.warning(f"{doc.nome_arquivo}: {doc.motivo}")
    return resultado


def processar_lote(
    entradas: Iterable[Tuple[Conteudo, str]],
    max_paralelo: Optional[int] = None,
    gerar_id: Optional[Callable[[], str]] = None,
) -> ResultadoLote:
    """Lê vários XMLs em paralelo, preservando a ordem de entrada.

    ``entradas`` são pares ``(conteudo, nome_arquivo)``. Cada leitura é
    independente; apenas o gerador de ids é compartilhado entre as threads.
    """
    if gerar_id is None:
        gerar_id = GeradorIds()
    return _executar(
        lambda par: ler_documento(par[0], par[1], gerar_id),
        list(entradas),
        max_paralelo,
    )


def _ler_caminho(caminho: str, gerar_id: Callable[[], str]) -> Documento:
    try:
        conteudo, nome = ler_arquivo(caminho)
    except OSError as e:
        log.error(f"Erro de leitura em {caminho}: {e}")
        return documento_com_erro(os.path.basename(caminho), gerar_id(), e)
    return ler_documento(conteudo, nome, gerar_id)


def processar_arquivos(
    caminhos: Sequence[str],
    max_paralelo: Optional[int] = None,
    gerar_id: Optional[Callable[[], str]] = None,
) -> ResultadoLote:
    """Como ``processar_lote``, mas lendo cada arquivo do disco na própria thread.

    Arquivos ilegíveis entram como documento desconhecido com a mensagem do
    ``OSError`` em ``motivo``.
    """
    if gerar_id is None:
        gerar_id = GeradorIds()
    return _executar(lambda caminho: _ler_caminho(caminho, gerar_id), list(caminhos), max_paralelo)
