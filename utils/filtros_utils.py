import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

import pandas as pd

from modules.modelos import Documento

log = logging.getLogger(__name__)


class PeriodoFiltro(str, Enum):
    HOJE = "hoje"
    SETE_DIAS = "7dias"
    MES = "mes"
    TODOS = "todos"


def para_local_sem_fuso(dt: datetime) -> datetime:
    """Converte ``dt`` com fuso para o horário local; sem fuso fica como está."""
    if dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)
    return dt


def converter_data(valor: Optional[str]) -> Optional[datetime]:
    """Converte a data do documento para ``datetime`` local sem fuso.

    Datas com fuso são convertidas para o horário local. Retorna ``None``
    quando a data está ausente ou não pode ser interpretada.
    """
    if not valor:
        return None
    try:
        dt = pd.to_datetime(valor, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(dt):
        return None
    return para_local_sem_fuso(dt.to_pydatetime())


def inicio_periodo(periodo: PeriodoFiltro, agora: datetime) -> Optional[datetime]:
    """Limite inferior (inclusivo) do período; ``None`` para ``todos``."""
    hoje = agora.replace(hour=0, minute=0, second=0, microsecond=0)
    if periodo is PeriodoFiltro.HOJE:
        return hoje
    if periodo is PeriodoFiltro.SETE_DIAS:
        return hoje - timedelta(days=7)
    if periodo is PeriodoFiltro.MES:
        return hoje.replace(day=1)
    return None


def filtrar_por_periodo(
    documentos: Iterable[Documento],
    periodo: Union[PeriodoFiltro, str],
    agora: Optional[datetime] = None,
) -> List[Documento]:
    """Filtra ``documentos`` pelo período selecionado.

    Documentos sem data ou com data inválida ficam de fora de todos os
    períodos, exceto ``todos``.
    """
    periodo = PeriodoFiltro(periodo)
    documentos = list(documentos)
    if periodo is PeriodoFiltro.TODOS:
        return documentos

    agora = para_local_sem_fuso(agora) if agora is not None else datetime.now()
    inicio = inicio_periodo(periodo, agora)

    filtrados = []
    for doc in documentos:
        data = converter_data(doc.data)
        if data is None:
            continue
        if data >= inicio:
            filtrados.append(doc)

    log.debug(
        "Filtro '%s': %d de %d documentos a partir de %s",
        periodo.value,
        len(filtrados),
        len(documentos),
        inicio,
    )
    return filtrados


def obter_anos_meses_unicos(documentos: Iterable[Documento]) -> Tuple[List[int], List[int]]:
    """Retorna listas de anos e meses presentes nas datas dos documentos."""
    datas = [d for d in (converter_data(doc.data) for doc in documentos) if d is not None]
    anos = sorted({d.year for d in datas})
    meses = sorted({d.month for d in datas})
    return anos, meses
