import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

from modules.detector_cancelamento import detectar_cancelamento
from modules.extrator_impostos import extrair_valor_imposto
from modules.modelos import (
    Cliente,
    Documento,
    ImpostosItem,
    ImpostosTotais,
    Item,
    TipoDocumento,
    Transportadora,
)
from utils.identificador_utils import gerar_id_aleatorio
from utils.xml_utils import (
    buscar,
    converter_decimal,
    filho,
    filhos,
    juntar_nao_vazios,
    nome_local,
    primeiro_texto,
    somente_digitos,
    texto,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FamiliaDocumento:
    """Variante de leiaute reconhecida pelo leitor.

    ``marcador`` é a sequência de nomes locais da raiz (ou envelope) até o nó
    do documento; ``no_info`` é o nó de informações dentro dele.
    """

    tipo: TipoDocumento
    marcador: Tuple[str, ...]
    no_info: str
    caminhos_valor_total: Tuple[str, ...]
    caminho_transportadora: str
    le_itens: bool = False
    le_totais_impostos: bool = False


# Ordem de prioridade: a primeira família encontrada vence.
FAMILIAS = (
    FamiliaDocumento(
        tipo=TipoDocumento.NFE,
        marcador=("nfeProc", "NFe"),
        no_info="infNFe",
        caminhos_valor_total=("total/ICMSTot/vNF",),
        caminho_transportadora="transp/transporta",
        le_itens=True,
        le_totais_impostos=True,
    ),
    FamiliaDocumento(
        tipo=TipoDocumento.NFE,
        marcador=("NFe",),
        no_info="infNFe",
        caminhos_valor_total=("total/ICMSTot/vNF",),
        caminho_transportadora="transp/transporta",
        le_itens=True,
        le_totais_impostos=True,
    ),
    FamiliaDocumento(
        tipo=TipoDocumento.CTE,
        marcador=("cteProc", "CTe"),
        no_info="infCte",
        caminhos_valor_total=("vPrest/vTPrest",),
        caminho_transportadora="emit",
    ),
    FamiliaDocumento(
        tipo=TipoDocumento.CTE,
        marcador=("CTe",),
        no_info="infCte",
        caminhos_valor_total=("vPrest/vTPrest",),
        caminho_transportadora="emit",
    ),
)

CAMINHOS_NUMERO = ("ide/nNF", "ide/nCT")
CAMINHOS_DATA = ("ide/dhEmi", "ide/dEmi", "ide/dhCT")
CAMPOS_ENDERECO = ("xLgr", "nro", "xBairro", "xMun", "UF")

Conteudo = Union[str, bytes]


def identificar_familia(
    raiz: ET.Element,
) -> Tuple[Optional[FamiliaDocumento], Optional[ET.Element]]:
    """Retorna a família e o nó do documento, ou ``(None, None)``.

    O marcador pode estar na própria raiz ou em um filho direto dela
    (arquivos que agrupam a nota e seus eventos).
    """
    candidatos = [raiz] + list(raiz)
    for familia in FAMILIAS:
        inicio, resto = familia.marcador[0], "/".join(familia.marcador[1:])
        for candidato in candidatos:
            if nome_local(candidato.tag) != inicio:
                continue
            documento = buscar(candidato, resto) if resto else candidato
            if documento is not None:
                return familia, documento
    return None, None


def _cnpj_ou_cpf(no: Optional[ET.Element]) -> str:
    return primeiro_texto(no, ("CNPJ", "CPF"))


def _extrair_cliente(info: Optional[ET.Element]) -> Cliente:
    dest = filho(info, "dest")
    endereco = filho(dest, "enderDest")
    return Cliente(
        nome=texto(dest, "xNome"),
        cnpj_cpf=_cnpj_ou_cpf(dest),
        endereco=juntar_nao_vazios([texto(endereco, campo) for campo in CAMPOS_ENDERECO]),
    )


def _extrair_transportadora(info: Optional[ET.Element], familia: FamiliaDocumento) -> Transportadora:
    no = buscar(info, familia.caminho_transportadora)
    return Transportadora(nome=texto(no, "xNome"), cnpj_cpf=_cnpj_ou_cpf(no))


def _extrair_item(det: ET.Element) -> Item:
    prod = filho(det, "prod")
    imposto = filho(det, "imposto")
    return Item(
        codigo=texto(prod, "cProd"),
        nome=texto(prod, "xProd"),
        quantidade=converter_decimal(texto(prod, "qCom")),
        unidade=texto(prod, "uCom"),
        valor_unitario=converter_decimal(texto(prod, "vUnCom")),
        valor_total=converter_decimal(texto(prod, "vProd")),
        impostos=ImpostosItem(
            icms=extrair_valor_imposto(filho(imposto, "ICMS")),
            ipi=extrair_valor_imposto(filho(imposto, "IPI")),
            pis=extrair_valor_imposto(filho(imposto, "PIS")),
            cofins=extrair_valor_imposto(filho(imposto, "COFINS")),
        ),
    )


def _extrair_itens(info: Optional[ET.Element]) -> List[Item]:
    return [_extrair_item(det) for det in filhos(info, "det")]


def _extrair_totais_impostos(info: Optional[ET.Element]) -> ImpostosTotais:
    totais = buscar(info, "total/ICMSTot")
    return ImpostosTotais(
        icms_total=converter_decimal(texto(totais, "vICMS")),
        ipi_total=converter_decimal(texto(totais, "vIPI")),
        pis_total=converter_decimal(texto(totais, "vPIS")),
        cofins_total=converter_decimal(texto(totais, "vCOFINS")),
    )


def _montar_documento(
    raiz: ET.Element, nome_arquivo: str, id_documento: str
) -> Documento:
    familia, no_documento = identificar_familia(raiz)
    if familia is None:
        log.info("Documento não reconhecido: %s (raiz %s)", nome_arquivo, nome_local(raiz.tag))
        return Documento(id=id_documento, nome_arquivo=nome_arquivo)

    info = filho(no_documento, familia.no_info)
    log.debug("Arquivo %s identificado como %s", nome_arquivo, familia.tipo.value)

    situacao = detectar_cancelamento(raiz)
    chave = somente_digitos(info.get("Id")) if info is not None else ""

    return Documento(
        id=id_documento,
        nome_arquivo=nome_arquivo,
        tipo=familia.tipo,
        chave=chave,
        numero=primeiro_texto(info, CAMINHOS_NUMERO),
        data=primeiro_texto(info, CAMINHOS_DATA),
        valor_total=converter_decimal(primeiro_texto(info, familia.caminhos_valor_total)),
        cliente=_extrair_cliente(info),
        transportadora=_extrair_transportadora(info, familia),
        itens=tuple(_extrair_itens(info)) if familia.le_itens else (),
        impostos=_extrair_totais_impostos(info) if familia.le_totais_impostos else ImpostosTotais(),
        status=situacao.status,
        motivo=situacao.motivo,
    )


def documento_com_erro(nome_arquivo: str, id_documento: str, erro: Exception) -> Documento:
    """Documento ``Desconhecido`` que registra a falha de leitura ou de parse."""
    return Documento(
        id=id_documento,
        nome_arquivo=nome_arquivo,
        motivo=f"Erro ao processar: {erro}",
    )


def ler_documento(
    conteudo: Conteudo,
    nome_arquivo: str,
    gerar_id: Optional[Callable[[], str]] = None,
) -> Documento:
    """Converte o conteúdo de um XML de NF-e ou CT-e em ``Documento``.

    Nunca lança exceção: XML malformado ou qualquer falha interna resulta em
    um documento ``Desconhecido`` com a descrição do erro em ``motivo``.
    """
    id_documento = (gerar_id or gerar_id_aleatorio)()

    try:
        raiz = ET.fromstring(conteudo)
    except ET.ParseError as e:
        log.error(f"Erro de parse em {nome_arquivo}: {e}")
        return documento_com_erro(nome_arquivo, id_documento, e)
    except Exception as e:
        log.error(f"Erro ao ler conteúdo de {nome_arquivo}: {e}")
        return documento_com_erro(nome_arquivo, id_documento, e)

    try:
        return _montar_documento(raiz, nome_arquivo, id_documento)
    except Exception as e:
        log.exception("Erro geral ao processar XML %s", nome_arquivo)
        return documento_com_erro(nome_arquivo, id_documento, e)
