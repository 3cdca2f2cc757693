import logging
import xml.etree.ElementTree as ET
from typing import Optional

from utils.xml_utils import converter_decimal, filho, texto

log = logging.getLogger(__name__)

# Subgrupos reconhecidos, na ordem em que são examinados. Cada grupo de
# imposto do item (ICMS, IPI, PIS, COFINS) traz apenas um deles.
VARIANTES_IMPOSTO = (
    "ICMS00",
    "ICMS02",
    "ICMS10",
    "ICMS15",
    "ICMS20",
    "ICMS30",
    "ICMS40",
    "ICMS51",
    "ICMS53",
    "ICMS60",
    "ICMS61",
    "ICMS70",
    "ICMS90",
    "ICMSPart",
    "ICMSST",
    "ICMSSN101",
    "ICMSSN102",
    "ICMSSN201",
    "ICMSSN202",
    "ICMSSN500",
    "ICMSSN900",
    "IPITrib",
    "IPINT",
    "PISAliq",
    "PISQtde",
    "PISNT",
    "PISOutr",
    "COFINSAliq",
    "COFINSQtde",
    "COFINSNT",
    "COFINSOutr",
)

CAMPOS_VALOR = ("vICMS", "vIPI", "vPIS", "vCOFINS")


def extrair_valor_imposto(grupo: Optional[ET.Element]) -> float:
    """Extrai o valor de um grupo de imposto de item (``<ICMS>``, ``<IPI>``...).

    Percorre ``VARIANTES_IMPOSTO`` em ordem e devolve o primeiro campo de
    ``CAMPOS_VALOR`` preenchido. Apenas um valor é lido por grupo, mesmo que o
    subgrupo traga mais de um desses campos.
    """
    if grupo is None:
        return 0.0

    for variante in VARIANTES_IMPOSTO:
        subgrupo = filho(grupo, variante)
        if subgrupo is None:
            continue
        for campo in CAMPOS_VALOR:
            valor = texto(subgrupo, campo)
            if valor:
                return converter_decimal(valor)

    log.debug("Nenhum valor de imposto reconhecido no grupo %s", grupo.tag)
    return 0.0
