import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, ROOT)

from utils.filtros_utils import converter_data
from utils.formatador_utils import formatar_data_curta, formatar_moeda, formatar_percentual


@pytest.mark.parametrize(
    "valor, esperado",
    [
        (1234.56, "R$ 1.234,56"),
        (0, "R$ 0,00"),
        (1000000, "R$ 1.000.000,00"),
        ("abc", "abc"),
    ],
)
def test_formatar_moeda(valor, esperado):
    assert formatar_moeda(valor) == esperado


def test_formatar_percentual():
    assert formatar_percentual(0.125) == "12,50%"
    assert formatar_percentual(0) == "0,00%"
    assert formatar_percentual(None) is None


@pytest.mark.parametrize(
    "valor, esperado",
    [
        ("2024-03-10T10:30:00", "10/03/2024"),
        ("2024-03-10", "10/03/2024"),
        ("sem data", "sem data"),
    ],
)
def test_formatar_data_curta(valor, esperado):
    assert formatar_data_curta(valor) == esperado


@pytest.mark.parametrize("valor", ["2024-03-10T23:30:00-03:00", "2024-03-10T00:15:00+09:00"])
def test_data_com_fuso_usa_o_mesmo_dia_do_filtro(valor):
    assert formatar_data_curta(valor) == converter_data(valor).strftime("%d/%m/%Y")
