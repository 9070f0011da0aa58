# backend/src/sheet_parser.py
"""
Leitura da planilha de balanço patrimonial e mapeamento para itens financeiros.

Layout esperado (posicional, a primeira linha é sempre cabeçalho):
    colunas 0, 1, 2 -> Ativo   (descrição, valor 2025, valor 2024)
    colunas 4, 5, 6 -> Passivo (descrição, valor 2025, valor 2024)
"""

import csv
import logging
import math
import numbers
import os
import re
from collections import Counter
from io import BytesIO, StringIO
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from dashboard_dataclass import FinancialItem

logger = logging.getLogger(__name__)

ASSET_SECTION = "ativo"
LIABILITY_SECTION = "passivo"

ASSET_COLUMNS = (0, 1, 2)
LIABILITY_COLUMNS = (4, 5, 6)
ROW_WIDTH = 7

# Marcadores textuais usados para classificar as linhas. Casamento exato de
# substring, sem normalização de acentos.
TOTAL_MARKERS = ("total",)
GROUP_MARKERS = {
    ASSET_SECTION: ("circulante",),
    LIABILITY_SECTION: ("circulante", "líquido"),
}

EXCEL_ENGINES = {".xlsx": "openpyxl", ".xls": "xlrd"}
DELIMITED_EXTENSIONS = (".csv", ".txt")
CSV_ENCODINGS = ("utf-8-sig", "latin1")
CANDIDATE_DELIMITERS = (",", ";", "\t", "|")
DELIMITER_SAMPLE_LINES = 50

_CURRENCY_NOISE = re.compile(r"[R$.\s]")
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_PLAIN_NUMBER = re.compile(r"^\s*-?\d+(?:\.\d+)?\s*$")


class SheetReadError(Exception):
    """Arquivo de planilha ausente, de formato não suportado ou ilegível."""


def parse_moeda(value: Any) -> float:
    """
    Converte uma célula monetária em número.

    Números são devolvidos sem alteração; vazios viram 0. Textos seguem o
    padrão brasileiro: remove "R$", pontos de milhar e espaços, troca a
    vírgula decimal por ponto e lê o maior prefixo numérico válido.
    Qualquer falha resulta em 0.
    """
    if isinstance(value, bool) or _is_empty(value):
        return 0
    if isinstance(value, numbers.Number):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return 0
        return value
    if not value:
        return 0

    clean = _CURRENCY_NOISE.sub("", str(value)).replace(",", ".", 1)
    match = _FLOAT_PREFIX.match(clean)
    if not match:
        return 0
    try:
        parsed = float(match.group(0))
    except ValueError:
        return 0
    if math.isinf(parsed):
        return 0
    return parsed


def is_total_row(description: str) -> bool:
    lowered = description.lower()
    return any(marker in lowered for marker in TOTAL_MARKERS)


def is_group_header_row(description: str, section: str) -> bool:
    if section not in GROUP_MARKERS:
        raise ValueError(f"Seção desconhecida: {section}")
    lowered = description.lower()
    return any(marker in lowered for marker in GROUP_MARKERS[section])


def classify_description(description: str, section: str) -> Tuple[bool, bool]:
    """Retorna (is_total, is_group) para a descrição de uma linha da seção."""
    return is_total_row(description), is_group_header_row(description, section)


def _is_empty(value: Any) -> bool:
    # NaN e NaT (datas vazias do Excel) contam como célula vazia
    return value is None or (pd.api.types.is_scalar(value) and bool(pd.isna(value)))


def _is_filled(value: Any) -> bool:
    if _is_empty(value):
        return False
    return bool(value)


def _cell_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _build_item(cells: Sequence[Any], columns: Tuple[int, int, int], section: str) -> FinancialItem:
    desc_col, current_col, prior_col = columns
    description = _cell_text(cells[desc_col])
    is_total, is_group = classify_description(description, section)
    return FinancialItem(
        description=description,
        value_current=parse_moeda(cells[current_col]),
        value_prior=parse_moeda(cells[prior_col]),
        is_total=is_total,
        is_group=is_group,
    )


def map_rows(rows: Sequence[Sequence[Any]]) -> Tuple[List[FinancialItem], List[FinancialItem]]:
    """
    Mapeia as linhas da planilha em (ativo, passivo).

    A linha 0 é descartada. Cada linha seguinte pode gerar um item de ativo
    (coluna 0 preenchida) e/ou um item de passivo (coluna 4 preenchida),
    de forma independente.
    """
    assets: List[FinancialItem] = []
    liabilities: List[FinancialItem] = []

    for index, row in enumerate(rows):
        if index == 0:
            continue
        cells = list(row or [])
        if len(cells) < ROW_WIDTH:
            cells.extend([None] * (ROW_WIDTH - len(cells)))

        if _is_filled(cells[ASSET_COLUMNS[0]]):
            assets.append(_build_item(cells, ASSET_COLUMNS, ASSET_SECTION))
        if _is_filled(cells[LIABILITY_COLUMNS[0]]):
            liabilities.append(_build_item(cells, LIABILITY_COLUMNS, LIABILITY_SECTION))

    logger.info(f"Planilha mapeada: {len(assets)} itens de ativo, {len(liabilities)} itens de passivo.")
    return assets, liabilities


def _coerce_delimited_cell(value: Any) -> Any:
    if value is None or value == "":
        return None
    if isinstance(value, str) and _PLAIN_NUMBER.match(value):
        number = float(value)
        return int(number) if number.is_integer() and "." not in value else number
    return value


def _normalize_cell(value: Any) -> Any:
    if isinstance(value, np.generic):
        value = value.item()
    if _is_empty(value):
        return None
    return value


def _guess_delimiter(lines: List[str]) -> str:
    """
    Escolhe o separador que produz mais colunas de forma consistente nas
    linhas de dados. O cabeçalho é ignorado porque pode ter qualquer formato.
    """
    sample = [line for line in lines[1:] if line.strip()][:DELIMITER_SAMPLE_LINES] or lines[:1]
    best, best_width = CANDIDATE_DELIMITERS[0], 0
    for candidate in CANDIDATE_DELIMITERS:
        widths = Counter(len(fields) for fields in csv.reader(sample, delimiter=candidate))
        width = widths.most_common(1)[0][0] if widths else 0
        if width > best_width:
            best, best_width = candidate, width
    return best


def _decode(content: bytes) -> str:
    last_error: Optional[Exception] = None
    for encoding in CSV_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError as e:
            logger.debug(f"Falha ao decodificar CSV com {encoding}: {e}")
            last_error = e
    raise SheetReadError(f"Não foi possível decodificar o arquivo CSV: {last_error}")


def _read_delimited(content: bytes) -> pd.DataFrame:
    text = _decode(content)
    lines = text.splitlines()
    sep = _guess_delimiter(lines)
    # Linhas podem ter quantidades diferentes de campos (cabeçalho curto, por exemplo).
    width = max((len(fields) for fields in csv.reader(lines, delimiter=sep)), default=1)

    df = pd.read_csv(
        StringIO(text),
        sep=sep,
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=False,
    )
    return df.apply(lambda column: column.map(_coerce_delimited_cell))


def read_rows(content: bytes, filename: str) -> List[List[Any]]:
    """
    Lê a primeira aba de uma planilha (xlsx/xls) ou um arquivo delimitado
    (csv/txt) e devolve as linhas com os valores brutos das células.
    Células vazias viram None.
    """
    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in EXCEL_ENGINES and extension not in DELIMITED_EXTENSIONS:
        raise SheetReadError(f"Formato de arquivo não suportado: '{filename}'")
    if not content:
        raise SheetReadError("O arquivo enviado está vazio.")

    try:
        if extension in EXCEL_ENGINES:
            df = pd.read_excel(BytesIO(content), sheet_name=0, header=None, engine=EXCEL_ENGINES[extension])
        else:
            df = _read_delimited(content)
    except SheetReadError:
        raise
    except Exception as e:
        logger.error(f"Erro ao ler a planilha '{filename}': {e}")
        raise SheetReadError(f"Não foi possível ler a planilha '{filename}'.") from e

    rows = [[_normalize_cell(value) for value in row] for row in df.astype(object).values.tolist()]
    logger.info(f"Planilha '{filename}' lida com {len(rows)} linhas.")
    return rows


def parse_sheet(content: bytes, filename: str) -> Tuple[List[FinancialItem], List[FinancialItem]]:
    """Lê o arquivo e devolve as listas (ativo, passivo)."""
    return map_rows(read_rows(content, filename))
