# backend/src/utils.py

import math
from typing import Any, Union

Number = Union[int, float]


def _swap_separators(text: str) -> str:
    # Formato en-US -> pt-BR: "1,234.56" vira "1.234,56"
    return text.replace(",", "X").replace(".", ",").replace("X", ".")


def format_currency_brl(value: Number) -> str:
    """Formata um valor em Reais (ex: R$ 1.234,56)."""
    value = value or 0
    formatted = f"R$ {_swap_separators(f'{abs(value):,.2f}')}"
    return f"-{formatted}" if value < 0 else formatted


def format_number_ptbr(value: Number, max_decimals: int = 3) -> str:
    """
    Formata um número no padrão pt-BR com separador de milhar e até
    `max_decimals` casas decimais, sem zeros à direita (ex: 1234.5 -> "1.234,5").
    """
    value = value or 0
    text = f"{value:,.{max_decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return _swap_separators(text)


def calculate_variance_pct(current: Number, prior: Number) -> float:
    """Análise horizontal (AH%): variação percentual do período anterior para o atual."""
    if not prior:
        return 0.0
    return ((current / prior) - 1) * 100


def clean_data_for_json(obj: Any) -> Any:
    """Substitui recursivamente NaN e infinitos por None para serialização JSON."""
    if isinstance(obj, dict):
        return {key: clean_data_for_json(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [clean_data_for_json(value) for value in obj]
    if isinstance(obj, float) and (math.isnan(obj) or math.isinf(obj)):
        return None
    return obj
