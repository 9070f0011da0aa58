# backend/src/dashboard_state.py

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from dashboard_dataclass import KPI, DashboardData, FinancialItem
from database_manager import DashboardDatabase
from default_kpis import DEFAULT_KPIS
from insights_service import TextGenerator, get_financial_insights
from sheet_parser import parse_sheet
from utils import calculate_variance_pct

logger = logging.getLogger(__name__)


class DashboardError(Exception):
    """Erro base das operações do painel."""


class NoDashboardDataError(DashboardError):
    """Operação exige dados carregados, mas o painel está vazio."""


class InsightsInProgressError(DashboardError):
    """Já existe uma geração de insights em andamento."""


@dataclass(frozen=True)
class SummaryTotals:
    assets_current: float = 0
    assets_prior: float = 0
    liabilities_current: float = 0
    liabilities_prior: float = 0

    def to_dict(self) -> Dict[str, float]:
        return {
            "assets_current": self.assets_current,
            "assets_prior": self.assets_prior,
            "liabilities_current": self.liabilities_current,
            "liabilities_prior": self.liabilities_prior,
        }


def first_total(items: Sequence[FinancialItem]) -> Optional[FinancialItem]:
    """Primeira linha marcada como total; as demais são ignoradas."""
    return next((item for item in items if item.is_total), None)


def compute_summary_totals(data: Optional[DashboardData]) -> SummaryTotals:
    if data is None:
        return SummaryTotals()
    assets_total = first_total(data.assets)
    liabilities_total = first_total(data.liabilities)
    return SummaryTotals(
        assets_current=(assets_total.value_current or 0) if assets_total else 0,
        assets_prior=(assets_total.value_prior or 0) if assets_total else 0,
        liabilities_current=(liabilities_total.value_current or 0) if liabilities_total else 0,
        liabilities_prior=(liabilities_total.value_prior or 0) if liabilities_total else 0,
    )


def find_missing_totals(data: Optional[DashboardData]) -> List[str]:
    """Seções sem linha de total; seus totais aparecem como 0."""
    if data is None:
        return []
    missing = []
    if first_total(data.assets) is None:
        missing.append("ativo")
    if first_total(data.liabilities) is None:
        missing.append("passivo")
    return missing


def variance_pct(item: FinancialItem) -> float:
    """AH% da linha: variação de 2024 para 2025."""
    return calculate_variance_pct(item.value_current, item.value_prior)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DashboardController:
    """
    Mantém o estado atual do painel e coordena parsing, persistência e insights.

    Todas as mutações passam pelo lock. A chamada ao serviço de IA acontece
    fora dele; um resultado que chega depois de um reset ou de uma nova carga
    é descartado.
    """

    def __init__(
        self,
        database: DashboardDatabase,
        text_generator: TextGenerator,
        kpis: Optional[List[KPI]] = None,
        clock: Optional[Callable[[], str]] = None,
    ):
        self.database = database
        self.text_generator = text_generator
        self.kpis = list(DEFAULT_KPIS if kpis is None else kpis)
        self.clock = clock or _utc_timestamp

        self._lock = threading.Lock()
        self._generation = 0
        self.insights_text = ""
        self.is_ai_loading = False

        self.current_data: Optional[DashboardData] = database.load_data()
        if self.current_data is not None:
            logger.info(f"Dados restaurados do armazenamento (última atualização: {self.current_data.last_updated}).")
        else:
            logger.info("Nenhum dado salvo encontrado. Painel iniciado vazio.")

    @property
    def has_data(self) -> bool:
        return self.current_data is not None

    def upload(self, content: bytes, filename: str) -> DashboardData:
        """
        Lê a planilha e substitui integralmente os dados atuais.
        Em caso de falha de leitura (SheetReadError) o estado não é alterado.
        """
        assets, liabilities = parse_sheet(content, filename)
        new_data = DashboardData(
            assets=assets,
            liabilities=liabilities,
            kpis=list(self.kpis),
            last_updated=self.clock(),
        )

        with self._lock:
            self.current_data = new_data
            self.insights_text = ""
            self._generation += 1
            self.database.save_data(new_data)

        logger.info(f"Planilha '{filename}' carregada com sucesso.")
        return new_data

    def reset(self) -> None:
        """Apaga os dados salvos e limpa o estado em memória."""
        with self._lock:
            self.database.clear_data()
            self.current_data = None
            self.insights_text = ""
            self._generation += 1
        logger.info("Painel reiniciado: dados removidos.")

    def request_insights(self) -> Optional[str]:
        """
        Gera insights para os dados atuais.

        Returns:
            O texto gerado (ou a mensagem de fallback do serviço), ou None se
            os dados mudaram enquanto a requisição estava em andamento.

        Raises:
            NoDashboardDataError: se não houver dados carregados
            InsightsInProgressError: se outra geração já estiver em andamento
        """
        with self._lock:
            if self.current_data is None:
                raise NoDashboardDataError("Nenhum dado carregado no sistema.")
            if self.is_ai_loading:
                raise InsightsInProgressError("Já existe uma análise em andamento.")
            self.is_ai_loading = True
            data = self.current_data
            generation = self._generation

        try:
            text = get_financial_insights(data, self.text_generator)
        finally:
            with self._lock:
                self.is_ai_loading = False

        with self._lock:
            if generation != self._generation:
                logger.warning("Resposta de insights descartada: os dados mudaram durante a análise.")
                return None
            self.insights_text = text
        return text

    def summary_totals(self) -> SummaryTotals:
        return compute_summary_totals(self.current_data)

    def missing_totals(self) -> List[str]:
        return find_missing_totals(self.current_data)
