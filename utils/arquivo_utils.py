"""Leitura de arquivos XML em disco e em pacotes ZIP."""

import logging
import os
import unicodedata
import zipfile
from typing import List, Sequence, Tuple

log = logging.getLogger(__name__)


def normalizar_nome_arquivo(nome: str) -> str:
    """Normaliza nome de arquivo removendo acentos e caracteres especiais."""
    nome_normalizado = unicodedata.normalize("NFD", nome)
    nome_sem_acento = "".join(c for c in nome_normalizado if unicodedata.category(c) != "Mn")

    # mantém separadores de pasta para preservar a estrutura do ZIP
    return "".join(c for c in nome_sem_acento if c.isalnum() or c in "._-/")


def extrair_zip_seguro(zip_path: str, dest_dir: str, extensoes: Sequence[str] = (".xml",)) -> List[str]:
    """Extrai ZIP de forma segura, prevenindo Zip Slip attacks."""
    xml_paths = []
    dest_dir = os.path.abspath(dest_dir)

    try:
        with zipfile.ZipFile(zip_path, "r") as zip_ref:
            for member in zip_ref.namelist():
                if member.endswith("/"):
                    continue
                if not member.lower().endswith(tuple(extensoes)):
                    continue

                nome_normalizado = normalizar_nome_arquivo(member)
                member_path = os.path.abspath(os.path.join(dest_dir, nome_normalizado))

                if not member_path.startswith(dest_dir + os.sep):
                    log.warning(f"Tentativa de Zip Slip detectada, ignorando: {member}")
                    continue

                os.makedirs(os.path.dirname(member_path), exist_ok=True)
                try:
                    with zip_ref.open(member) as source, open(member_path, "wb") as target:
                        target.write(source.read())
                    xml_paths.append(member_path)
                    log.info(f"XML extraído: {member} -> {nome_normalizado}")
                except (OSError, zipfile.BadZipFile) as e:
                    log.error(f"Erro ao extrair {member}: {e}")
                    continue

    except zipfile.BadZipFile as e:
        log.error(f"Arquivo ZIP inválido: {zip_path} - {e}")
        raise
    except OSError as e:
        log.error(f"Erro ao extrair ZIP {zip_path}: {e}")
        raise

    return xml_paths


def listar_xmls(diretorio: str, extensoes: Sequence[str] = (".xml",)) -> List[str]:
    """Lista, em ordem alfabética, os XMLs de ``diretorio`` e subpastas."""
    caminhos = []
    for raiz, _, arquivos in os.walk(diretorio):
        for arquivo in arquivos:
            if arquivo.lower().endswith(tuple(extensoes)):
                caminhos.append(os.path.join(raiz, arquivo))
    return sorted(caminhos)


def ler_arquivo(caminho: str) -> Tuple[bytes, str]:
    """Lê o arquivo como bytes e devolve ``(conteudo, nome)``.

    O XML traz a própria declaração de encoding, por isso o conteúdo não é
    decodificado aqui.
    """
    with open(caminho, "rb") as f:
        return f.read(), os.path.basename(caminho)
