"""Consultas tolerantes sobre ``xml.etree.ElementTree``.

Todas as funções aceitam ``None`` como nó e devolvem um valor padrão em vez
de lançar exceção, de modo que cada campo possa ser lido como uma cadeia de
tentativas (``primeiro_texto``).
"""

import math
import re
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional, Sequence


def nome_local(tag) -> str:
    """Remove o namespace (``{uri}``) de uma tag."""
    if not isinstance(tag, str):
        return ""
    return tag.split("}", 1)[-1] if "}" in tag else tag


def filhos(no: Optional[ET.Element], nome: str) -> List[ET.Element]:
    """Lista os filhos diretos de ``no`` com o nome local informado.

    Um único filho ou vários produzem sempre uma lista.
    """
    if no is None:
        return []
    return [el for el in no if nome_local(el.tag) == nome]


def filho(no: Optional[ET.Element], nome: str) -> Optional[ET.Element]:
    encontrados = filhos(no, nome)
    return encontrados[0] if encontrados else None


def buscar(no: Optional[ET.Element], caminho: str) -> Optional[ET.Element]:
    """Segue um caminho ``a/b/c`` por nomes locais; ``None`` se faltar algum nó."""
    atual = no
    for parte in caminho.split("/"):
        if not parte:
            continue
        atual = filho(atual, parte)
        if atual is None:
            return None
    return atual


def texto(no: Optional[ET.Element], caminho: str) -> str:
    el = buscar(no, caminho)
    if el is None or el.text is None:
        return ""
    return el.text.strip()


def primeiro_texto(no: Optional[ET.Element], caminhos: Iterable[str]) -> str:
    """Retorna o primeiro texto não vazio entre os ``caminhos``."""
    for caminho in caminhos:
        valor = texto(no, caminho)
        if valor:
            return valor
    return ""


def converter_decimal(valor) -> float:
    """Converte ``1234.56``, ``1234,56``, ``1.234,56`` ou ``1,234.56`` para ``float``.

    Com os dois separadores presentes, o último é o decimal.

    Ausência, formato inválido ou valores não finitos resultam em ``0.0``.
    """
    if valor is None:
        return 0.0
    s = str(valor).strip()
    if not s:
        return 0.0
    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    else:
        s = s.replace(",", ".")
    try:
        numero = float(s)
    except ValueError:
        return 0.0
    if not math.isfinite(numero):
        return 0.0
    return numero


def somente_digitos(valor: Optional[str]) -> str:
    if not valor:
        return ""
    return re.sub(r"\D", "", str(valor))


def juntar_nao_vazios(partes: Sequence[str], separador: str = ", ") -> str:
    return separador.join(p for p in partes if p)
