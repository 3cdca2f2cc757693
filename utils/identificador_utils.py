"""Geração de identificadores para documentos de um lote."""

import itertools
import secrets
import threading
from typing import Optional


def gerar_id_aleatorio() -> str:
    """Retorna um identificador aleatório de 26 caracteres hexadecimais."""
    return secrets.token_hex(13)


class GeradorIds:
    """Alocador sequencial seguro para uso entre threads.

    Cada instância recebe um prefixo aleatório, então dois lotes distintos
    não repetem identificadores na prática.
    """

    def __init__(self, prefixo: Optional[str] = None):
        self.prefixo = prefixo if prefixo is not None else secrets.token_hex(4)
        self._contador = itertools.count(1)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            numero = next(self._contador)
        return f"{self.prefixo}-{numero:06d}"
