# backend/src/dashboard_dataclass.py

import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

KPIValue = Union[str, int, float]


def _require(data: Dict[str, Any], key: str) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"Esperado um objeto, recebido {type(data).__name__}")
    if key not in data:
        raise ValueError(f"Campo obrigatório ausente: '{key}'")
    return data[key]


def _require_list(data: Dict[str, Any], key: str) -> list:
    value = _require(data, key)
    if not isinstance(value, list):
        raise ValueError(f"Campo '{key}' deveria ser uma lista")
    return value


def _require_number(data: Dict[str, Any], key: str) -> Union[int, float]:
    value = _require(data, key)
    # bool é subclasse de int, mas não é um valor monetário
    if isinstance(value, bool) or not isinstance(value, numbers.Number):
        raise ValueError(f"Campo '{key}' deveria ser numérico")
    return value


@dataclass(frozen=True)
class FinancialItem:
    """
    Uma linha do balanço patrimonial (ex: "Caixa", "Total do Ativo").
    Os flags is_total e is_group são derivados da descrição durante o parsing.
    """
    description: str
    value_current: float
    value_prior: float
    is_total: bool = False
    is_group: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "value_current": self.value_current,
            "value_prior": self.value_prior,
            "is_total": self.is_total,
            "is_group": self.is_group,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FinancialItem":
        return cls(
            description=str(_require(data, "description")),
            value_current=_require_number(data, "value_current"),
            value_prior=_require_number(data, "value_prior"),
            is_total=bool(_require(data, "is_total")),
            is_group=bool(_require(data, "is_group")),
        )


@dataclass(frozen=True)
class KPI:
    """Indicador financeiro com valores já prontos para exibição."""
    name: str
    value_current: KPIValue
    value_prior: KPIValue
    description: str
    unit: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "value_current": self.value_current,
            "value_prior": self.value_prior,
            "description": self.description,
        }
        if self.unit is not None:
            data["unit"] = self.unit
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KPI":
        return cls(
            name=str(_require(data, "name")),
            value_current=_require(data, "value_current"),
            value_prior=_require(data, "value_prior"),
            description=str(_require(data, "description")),
            unit=data.get("unit"),
        )


@dataclass
class DashboardData:
    """
    Estado completo do painel: ativo, passivo, KPIs e a data da última carga.
    Uma nova carga de planilha substitui a instância inteira (sem merge).
    """
    assets: List[FinancialItem] = field(default_factory=list)
    liabilities: List[FinancialItem] = field(default_factory=list)
    kpis: List[KPI] = field(default_factory=list)
    last_updated: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assets": [item.to_dict() for item in self.assets],
            "liabilities": [item.to_dict() for item in self.liabilities],
            "kpis": [kpi.to_dict() for kpi in self.kpis],
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DashboardData":
        """
        Reconstrói o agregado a partir de um dicionário.
        Lança ValueError se a estrutura não corresponder à esperada.
        """
        return cls(
            assets=[FinancialItem.from_dict(item) for item in _require_list(data, "assets")],
            liabilities=[FinancialItem.from_dict(item) for item in _require_list(data, "liabilities")],
            kpis=[KPI.from_dict(kpi) for kpi in _require_list(data, "kpis")],
            last_updated=str(_require(data, "last_updated")),
        )
