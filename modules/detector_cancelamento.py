import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional

from modules.modelos import StatusDocumento
from utils.xml_utils import filho, nome_local, texto

log = logging.getLogger(__name__)

ENVELOPES_EVENTO = ("procEventoNFe", "procEventoCTe")
EVENTO_CANCELAMENTO = "110111"
MOTIVO_PADRAO = "Cancelada"


@dataclass(frozen=True)
class SituacaoDocumento:
    status: StatusDocumento = StatusDocumento.NORMAL
    motivo: str = ""


def localizar_envelope_evento(raiz: Optional[ET.Element]) -> Optional[ET.Element]:
    """Procura um envelope de evento na raiz ou entre seus filhos diretos."""
    if raiz is None:
        return None
    if nome_local(raiz.tag) in ENVELOPES_EVENTO:
        return raiz
    for nome in ENVELOPES_EVENTO:
        envelope = filho(raiz, nome)
        if envelope is not None:
            return envelope
    return None


def detectar_cancelamento(raiz: Optional[ET.Element]) -> SituacaoDocumento:
    envelope = localizar_envelope_evento(raiz)
    if envelope is None:
        return SituacaoDocumento()

    tp_evento = texto(envelope, "evento/infEvento/tpEvento")
    if tp_evento != EVENTO_CANCELAMENTO:
        log.debug("Evento %s ignorado", tp_evento or "sem tipo")
        return SituacaoDocumento()

    justificativa = texto(envelope, "evento/infEvento/detEvento/xJust")
    return SituacaoDocumento(
        status=StatusDocumento.CANCELADA,
        motivo=justificativa or MOTIVO_PADRAO,
    )
