# backend/tests/test_dashboard_state.py

import pytest

from dashboard_dataclass import DashboardData, FinancialItem
from dashboard_state import (
    DashboardController,
    InsightsInProgressError,
    NoDashboardDataError,
    SummaryTotals,
    compute_summary_totals,
    variance_pct,
)
from default_kpis import DEFAULT_KPIS
from insights_service import FALLBACK_SERVICE_ERROR
from sheet_parser import SheetReadError
from conftest import StubTextGenerator

SINGLE_ROW_CSV = (
    "Ativo,2025,2024,,Passivo,2025,2024\n"
    "Caixa,100,80,,Fornecedores,40,30\n"
).encode("utf-8")


def test_starts_empty_without_saved_data(controller):
    assert controller.current_data is None
    assert not controller.has_data
    assert controller.summary_totals() == SummaryTotals()


def test_restores_saved_data_on_start(database, generator, sample_data):
    database.save_data(sample_data)
    controller = DashboardController(database, generator)
    assert controller.current_data == sample_data


def test_upload_single_row_sheet(controller, database):
    data = controller.upload(SINGLE_ROW_CSV, "balanco.csv")

    assert data.assets == [FinancialItem("Caixa", 100, 80, False, False)]
    assert data.liabilities == [FinancialItem("Fornecedores", 40, 30, False, False)]
    assert data.kpis == DEFAULT_KPIS
    assert data.last_updated == "2025-02-01T09:30:00.000Z"
    assert controller.summary_totals() == SummaryTotals(0, 0, 0, 0)
    assert controller.missing_totals() == ["ativo", "passivo"]
    assert database.load_data() == data


def test_upload_replaces_data_and_clears_insights(controller, sample_csv):
    controller.upload(SINGLE_ROW_CSV, "primeira.csv")
    controller.request_insights()
    assert controller.insights_text

    data = controller.upload(sample_csv, "segunda.csv")

    assert controller.current_data is data
    assert controller.insights_text == ""
    assert [item.description for item in data.assets] == ["Ativo Circulante", "Caixa", "Total do Ativo"]
    assert controller.summary_totals() == SummaryTotals(1000, 900, 1000, 900)
    assert controller.missing_totals() == []


def test_failed_upload_keeps_current_state(controller, sample_csv):
    controller.upload(sample_csv, "balanco.csv")
    before = controller.current_data

    with pytest.raises(SheetReadError):
        controller.upload(b"conteudo", "balanco.docx")
    assert controller.current_data is before


def test_reset_clears_memory_and_storage(controller, database, sample_csv):
    controller.upload(sample_csv, "balanco.csv")
    controller.request_insights()

    controller.reset()

    assert controller.current_data is None
    assert controller.insights_text == ""
    assert database.load_data() is None
    controller.reset()


def test_request_insights_requires_data(controller, generator):
    with pytest.raises(NoDashboardDataError):
        controller.request_insights()
    assert generator.prompts == []


def test_request_insights_stores_text(controller, generator, sample_csv):
    controller.upload(sample_csv, "balanco.csv")

    text = controller.request_insights()

    assert text == generator.response
    assert controller.insights_text == generator.response
    assert not controller.is_ai_loading
    assert "ATIVO TOTAL 2025: R$ 1.000" in generator.prompts[0]


def test_request_insights_failure_stores_fallback(database, sample_csv):
    controller = DashboardController(database, StubTextGenerator(error=RuntimeError("offline")))
    controller.upload(sample_csv, "balanco.csv")

    assert controller.request_insights() == FALLBACK_SERVICE_ERROR
    assert not controller.is_ai_loading


def test_request_insights_rejects_concurrent_call(database, sample_csv):
    holder = {}

    def reenter():
        with pytest.raises(InsightsInProgressError):
            holder["controller"].request_insights()

    controller = DashboardController(database, StubTextGenerator(on_generate=reenter))
    holder["controller"] = controller
    controller.upload(sample_csv, "balanco.csv")

    assert controller.request_insights() is not None
    assert not controller.is_ai_loading


def test_late_insights_after_reset_are_discarded(database, sample_csv):
    holder = {}
    controller = DashboardController(
        database, StubTextGenerator(on_generate=lambda: holder["controller"].reset())
    )
    holder["controller"] = controller
    controller.upload(sample_csv, "balanco.csv")

    assert controller.request_insights() is None
    assert controller.current_data is None
    assert controller.insights_text == ""
    assert database.load_data() is None
    assert not controller.is_ai_loading


def test_late_insights_after_new_upload_are_discarded(database, sample_csv):
    holder = {}
    controller = DashboardController(
        database,
        StubTextGenerator(on_generate=lambda: holder["controller"].upload(SINGLE_ROW_CSV, "nova.csv")),
    )
    holder["controller"] = controller
    controller.upload(sample_csv, "balanco.csv")

    assert controller.request_insights() is None
    assert controller.insights_text == ""
    assert [item.description for item in controller.current_data.assets] == ["Caixa"]


def test_summary_totals_use_first_total_row():
    data = DashboardData(
        assets=[
            FinancialItem("Caixa", 100, 50),
            FinancialItem("Total do Ativo", 1000, 900, is_total=True),
            FinancialItem("Total Geral", 5000, 4000, is_total=True),
        ],
    )
    totals = compute_summary_totals(data)
    assert (totals.assets_current, totals.assets_prior) == (1000, 900)
    assert (totals.liabilities_current, totals.liabilities_prior) == (0, 0)


@pytest.mark.parametrize("current, prior, expected", [
    (110, 100, 10.0),
    (50, 100, -50.0),
    (100, 0, 0.0),
    (0, 0, 0.0),
])
def test_variance_pct(current, prior, expected):
    assert variance_pct(FinancialItem("Linha", current, prior)) == pytest.approx(expected)
