import os
import argparse
import logging
import shutil
import tempfile

# Configuração de logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler("app.log"),
        logging.StreamHandler()
    ]
)
log = logging.getLogger(__name__)

# Importações relativas
try:
    from modules.processador_lote import CONFIG_PROCESSAMENTO, processar_arquivos
    from modules.relatorios_fiscais import gerar_relatorios
    from modules.exportador_planilha import exportar_lote_zip, exportar_relatorios_excel
    from utils.arquivo_utils import extrair_zip_seguro, listar_xmls
    from utils.filtros_utils import PeriodoFiltro, filtrar_por_periodo, obter_anos_meses_unicos
    from utils.formatador_utils import formatar_moeda, formatar_percentual
except ImportError as e:
    log.error(f"Erro ao importar módulos: {e}. Verifique se as dependências estão corretas e o PYTHONPATH configurado.")
    raise SystemExit(1)


def registrar_relatorios(relatorios):
    resumo = relatorios.resumo_notas
    impostos = relatorios.resumo_impostos
    fretes = relatorios.resumo_fretes
    canceladas = relatorios.notas_canceladas

    log.info("=== Resumo ===")
    log.info(f"Notas: {resumo.total_notas} | Valor: {formatar_moeda(resumo.total_valor)} | Média: {formatar_moeda(resumo.media_valor)}")
    log.info(f"Vendas: {resumo.por_tipo.venda} | Canceladas: {resumo.por_tipo.cancelada}")
    log.info(
        f"Impostos: {formatar_moeda(impostos.total_impostos)} "
        f"({formatar_percentual(impostos.percentual_sobre_receita)} da receita)"
    )
    log.info(f"Fretes: {fretes.total_servicos} serviços, {formatar_moeda(fretes.total_frete)}")
    log.info(f"Canceladas: {canceladas.total} ({formatar_percentual(canceladas.percentual)})")
    for cliente in relatorios.ranking_clientes[:5]:
        log.info(f"Cliente {cliente.nome} ({cliente.cnpj_cpf}): {formatar_moeda(cliente.total_valor)}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Lê XMLs de NF-e e CT-e e gera relatórios fiscais em Excel.")
    parser.add_argument("--xml-dir", help="Diretório contendo os arquivos XML.")
    parser.add_argument("--zip-file", help="Caminho para o arquivo ZIP contendo os XMLs.")
    parser.add_argument(
        "--periodo",
        choices=[p.value for p in PeriodoFiltro],
        default=CONFIG_PROCESSAMENTO.get("periodo_padrao", PeriodoFiltro.TODOS.value),
        help="Período de emissão considerado nos relatórios.",
    )
    parser.add_argument("--output", default="relatorio_fiscal.xlsx", help="Caminho para o arquivo de saída Excel.")
    parser.add_argument("--pacote-zip", help="Gera também um ZIP com uma planilha por documento.")
    parser.add_argument("--max-paralelo", type=int, help="Quantidade máxima de XMLs lidos em paralelo.")

    args = parser.parse_args(argv)

    if not args.xml_dir and not args.zip_file:
        log.error("É necessário fornecer --xml-dir ou --zip-file.")
        parser.print_help()
        return 1

    extensoes = CONFIG_PROCESSAMENTO.get("extensoes", [".xml"])
    xml_paths = []
    temp_dir = None

    if args.zip_file:
        if not os.path.exists(args.zip_file):
            log.error(f"Arquivo ZIP não encontrado: {args.zip_file}")
            return 1

        try:
            temp_dir = tempfile.mkdtemp(prefix="xml_fiscal_")
            log.info(f"Extraindo ZIP para diretório temporário: {temp_dir}")
            xml_paths = extrair_zip_seguro(args.zip_file, temp_dir, extensoes)
        except Exception as e:
            log.error(f"Erro ao extrair arquivo ZIP: {e}")
            if temp_dir:
                shutil.rmtree(temp_dir, ignore_errors=True)
            return 1
    elif args.xml_dir:
        if not os.path.isdir(args.xml_dir):
            log.error(f"Diretório XML não encontrado: {args.xml_dir}")
            return 1
        xml_paths = listar_xmls(args.xml_dir, extensoes)

    if not xml_paths:
        log.warning("Nenhum arquivo XML encontrado para processamento.")
        if temp_dir:
            shutil.rmtree(temp_dir, ignore_errors=True)
        return 1

    log.info(f"Processando {len(xml_paths)} arquivos XML")

    try:
        resultado = processar_arquivos(xml_paths, max_paralelo=args.max_paralelo)
        anos, meses = obter_anos_meses_unicos(resultado.validos)
        log.info(f"Anos presentes: {anos} | Meses presentes: {meses}")
        documentos = filtrar_por_periodo(resultado.validos, args.periodo)
        log.info(f"{len(documentos)} documentos no período '{args.periodo}'")

        relatorios = gerar_relatorios(documentos)
        registrar_relatorios(relatorios)

        exportar_relatorios_excel(relatorios, documentos, args.output)
        if args.pacote_zip:
            exportar_lote_zip(documentos, args.pacote_zip)
            log.info(f"Pacote de planilhas salvo em: {args.pacote_zip}")
        log.info("Pipeline executado com sucesso")
        return 0

    except Exception as e:
        log.error(f"Erro durante o pipeline de processamento: {e}", exc_info=True)
        log.error("Falha no processamento")
        return 1
    finally:
        if temp_dir:
            log.info(f"Removendo diretório temporário: {temp_dir}")
            shutil.rmtree(temp_dir, ignore_errors=True)


if __name__ == "__main__":
    raise SystemExit(main())
