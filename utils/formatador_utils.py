import pandas as pd

from utils.filtros_utils import para_local_sem_fuso


def formatar_moeda(valor):
    try:
        return "R$ {:,.2f}".format(valor).replace(",", "X").replace(".", ",").replace("X", ".")
    except (TypeError, ValueError):
        return valor


def formatar_percentual(valor):
    """Formata uma razão (``0.125``) como percentual brasileiro (``12,50%``)."""
    try:
        return "{:.2f}%".format(valor * 100).replace(".", ",")
    except (TypeError, ValueError):
        return valor


def formatar_data_curta(valor):
    """Formata datas no padrão brasileiro ``dd/mm/aaaa``.

    Datas com fuso são convertidas para o horário local antes de formatar.
    Valores que não são datas são devolvidos como vieram.
    """
    try:
        dt = pd.to_datetime(valor, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return valor
    if pd.isna(dt):
        return valor
    return para_local_sem_fuso(dt.to_pydatetime()).strftime("%d/%m/%Y")
