from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class TipoDocumento(str, Enum):
    NFE = "NFe"
    CTE = "CTe"
    DESCONHECIDO = "Desconhecido"


class StatusDocumento(str, Enum):
    NORMAL = "Normal"
    CANCELADA = "Cancelada"
    INUTILIZADA = "Inutilizada"  # nenhum evento lido hoje produz este status


@dataclass(frozen=True)
class Cliente:
    nome: str = ""
    cnpj_cpf: str = ""
    endereco: str = ""


@dataclass(frozen=True)
class Transportadora:
    nome: str = ""
    cnpj_cpf: str = ""


@dataclass(frozen=True)
class ImpostosItem:
    icms: float = 0.0
    ipi: float = 0.0
    pis: float = 0.0
    cofins: float = 0.0


@dataclass(frozen=True)
class Item:
    codigo: str = ""
    nome: str = ""
    quantidade: float = 0.0
    unidade: str = ""
    valor_unitario: float = 0.0
    valor_total: float = 0.0
    impostos: ImpostosItem = field(default_factory=ImpostosItem)


@dataclass(frozen=True)
class ImpostosTotais:
    icms_total: float = 0.0
    ipi_total: float = 0.0
    pis_total: float = 0.0
    cofins_total: float = 0.0

    @property
    def total(self) -> float:
        return self.icms_total + self.ipi_total + self.pis_total + self.cofins_total


@dataclass(frozen=True)
class Documento:
    """Registro canônico de um XML fiscal.

    Documentos ``Desconhecido`` só carregam ``id``, ``nome_arquivo``,
    ``status`` e ``motivo``; os demais campos ficam nos valores padrão.
    """

    id: str
    nome_arquivo: str
    tipo: TipoDocumento = TipoDocumento.DESCONHECIDO
    chave: str = ""
    numero: str = ""
    data: str = ""
    valor_total: float = 0.0
    cliente: Cliente = field(default_factory=Cliente)
    transportadora: Transportadora = field(default_factory=Transportadora)
    itens: Tuple[Item, ...] = ()
    impostos: ImpostosTotais = field(default_factory=ImpostosTotais)
    status: StatusDocumento = StatusDocumento.NORMAL
    motivo: str = ""

    @property
    def cancelado(self) -> bool:
        return self.status in (StatusDocumento.CANCELADA, StatusDocumento.INUTILIZADA)
