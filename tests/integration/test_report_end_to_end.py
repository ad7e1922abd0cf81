from datetime import datetime
from pathlib import Path

import pytest
from openpyxl import Workbook, load_workbook

from giro.report import main


SALES_ROWS = [
    ["Vendas por Produto"],
    ["Data", "Loja", "Código", "Descrição", "Cor", "Tamanho", "Coleção", "Categoria", "Modelo", "Qtde", "Valor Total", "Estoque"],
    ["15/03/2024", "Loja Centro", "A1", "Camisa", "Azul", "M", "Verão 24", "Camisas", "Slim", 2, "R$ 200,00", 5],
    [datetime(2024, 1, 10), "Loja Norte", "B2", "Calça", "Preto", "40", "Inverno 23", "Calças", "Reta", 1, "1.250,00", 0],
    [45366, "Loja Centro", "a1", "Camisa", "AZUL", "G", "Verão 24", "Camisas", "Slim", 3, 300, 1],
]

CUT_ROWS = [
    ["Referência", "Descrição", "Cor", "Tamanho", "Qtd Cortada"],
    ["A1", "Camisa", "Azul", "M", 10],
    ["A1", "Camisa", "Azul", "G", 5],
    ["Z9", "Saia", "Verde", "P", 4],
]

SHEETS = ["Resumo", "Lojas", "Categorias", "Subcategorias", "Cores", "Colecoes", "Modelos", "Tamanhos", "Detalhe"]


def _write_workbook(path: Path, rows) -> Path:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    wb.save(path)
    return path


def _sheet_rows(path: Path, sheet: str):
    wb = load_workbook(path, data_only=True)
    try:
        return [list(row) for row in wb[sheet].iter_rows(values_only=True)]
    finally:
        wb.close()


@pytest.fixture
def inputs(tmp_path):
    config_path = tmp_path / "giro.yaml"
    config_path.write_text(
        f"""
paths:
  logs_dir: {tmp_path / 'logs'}
logging:
  level: DEBUG
report:
  top_n: 5
        """.strip(),
        encoding="utf-8",
    )
    sales = _write_workbook(tmp_path / "vendas.xlsx", SALES_ROWS)
    cuts = _write_workbook(tmp_path / "cortes.xlsx", CUT_ROWS)
    return {"config": config_path, "sales": sales, "cuts": cuts, "output": tmp_path / "out" / "giro.xlsx"}


def _argv(inputs, *extra):
    return [
        "--sales", str(inputs["sales"]),
        "--cuts", str(inputs["cuts"]),
        "--config", str(inputs["config"]),
        "--output", str(inputs["output"]),
        *extra,
    ]


def test_report_writes_every_sheet(inputs):
    assert main(_argv(inputs)) == 0

    output = inputs["output"]
    wb = load_workbook(output)
    assert wb.sheetnames == SHEETS
    wb.close()

    summary = dict((row[0], row[1]) for row in _sheet_rows(output, "Resumo")[1:])
    assert summary["Faturamento total"] == "R$ 1.750,00"
    assert summary["Itens vendidos"] == "6"
    assert summary["Loja destaque"] == "Loja Norte"
    assert summary["Total cortado"] == "19"

    stores = _sheet_rows(output, "Lojas")
    assert stores[0] == ["Grupo", "Valor", "Qtd. Vendida", "Estoque"]
    assert [row[0] for row in stores[1:]] == ["Loja Norte", "Loja Centro"]

    sizes = _sheet_rows(output, "Tamanhos")
    assert [row[0] for row in sizes[1:]] == ["M", "G", "40"]

    detail = _sheet_rows(output, "Detalhe")
    assert detail[0][0] == "Código"
    codes = [(row[0], row[3]) for row in detail[1:]]
    assert codes == [("B2", "40"), ("a1", "G"), ("A1", "M"), ("Z9", "P")]
    by_size = {row[3]: row for row in detail[1:]}
    assert by_size["M"][7] == pytest.approx(20.0)
    assert by_size["G"][7] == pytest.approx(60.0)
    assert by_size["P"][1] == "Sem Venda"

    log_text = (Path(inputs["config"]).parent / "logs" / "giro.log").read_text(encoding="utf-8")
    assert "stores [Loja Centro, Loja Norte]" in log_text
    assert "collections [Inverno 23, Verão 24]" in log_text


def test_report_filters_and_sort_options(inputs):
    argv = _argv(inputs, "--store", "Loja Centro", "--sort-key", "item_code", "--ascending", "--metric", "quantity")
    assert main(argv) == 0

    output = inputs["output"]
    stores = _sheet_rows(output, "Lojas")
    assert stores[1:] == [["Loja Centro", 5, 5, 6]]

    # Cuts ignore the store restriction, so the cut-only key is still present.
    detail = _sheet_rows(output, "Detalhe")
    assert [row[0] for row in detail[1:]] == ["A1", "a1", "Z9"]


def test_report_without_sales_rows_exits_1(inputs, tmp_path):
    header_only = _write_workbook(tmp_path / "vazio.xlsx", SALES_ROWS[:2])
    argv = ["--sales", str(header_only), "--config", str(inputs["config"]), "--output", str(inputs["output"])]
    assert main(argv) == 1
    assert not inputs["output"].exists()


def test_report_ingestion_errors_exit_2(inputs, tmp_path):
    broken = tmp_path / "quebrado.xlsx"
    broken.write_bytes(b"not a zip archive")
    base = ["--config", str(inputs["config"]), "--output", str(inputs["output"])]

    assert main(["--sales", str(broken), *base]) == 2
    assert main(["--sales", str(tmp_path / "nao_existe.xlsx"), *base]) == 2
    assert main(["--sales", str(inputs["sales"]), "--cuts", str(broken), *base]) == 2
    assert not inputs["output"].exists()
