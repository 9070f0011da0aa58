# backend/tests/conftest.py

import pytest

from config import Settings
from dashboard_dataclass import DashboardData, FinancialItem, KPI
from dashboard_state import DashboardController
from database_manager import DashboardDatabase
from key_value_store import InMemoryKeyValueStore


class StubTextGenerator:
    """Gerador determinístico que registra os prompts recebidos."""

    def __init__(self, response="## Análise\nSaúde financeira estável.", error=None, on_generate=None):
        self.response = response
        self.error = error
        self.on_generate = on_generate
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.on_generate:
            self.on_generate()
        if self.error:
            raise self.error
        return self.response


SAMPLE_CSV = (
    "Ativo,2025,2024,,Passivo,2025,2024\n"
    "Ativo Circulante,,,,Passivo Circulante,,\n"
    "Caixa,100,50,,Fornecedores,40,30\n"
    "Total do Ativo,1000,900,,Patrimônio Líquido,960,870\n"
    ",,,,Total do Passivo,1000,900\n"
).encode("utf-8")


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def sample_data():
    return DashboardData(
        assets=[
            FinancialItem("Caixa", 100, 50, False, False),
            FinancialItem("Total do Ativo", 1000, 900, True, False),
        ],
        liabilities=[
            FinancialItem("Fornecedores", 40, 30, False, False),
            FinancialItem("Total do Passivo", 1000.5, 900.25, True, False),
        ],
        kpis=[KPI("ROE", "21.4%", "24.5%", "Retorno s/ PL"), KPI("Giro do Ativo", 1.15, 1.08, "Eficiência vendas", "x")],
        last_updated="2025-01-31T12:00:00.000Z",
    )


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def database(store):
    return DashboardDatabase(store)


@pytest.fixture
def generator():
    return StubTextGenerator()


@pytest.fixture
def controller(database, generator):
    return DashboardController(database, generator, clock=lambda: "2025-02-01T09:30:00.000Z")


@pytest.fixture
def app(controller):
    from main import create_app

    app = create_app(controller=controller, settings=Settings(storage_backend="memory"))
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
