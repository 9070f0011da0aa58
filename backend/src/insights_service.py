# backend/src/insights_service.py
"""
Geração de insights financeiros com um modelo de linguagem (Gemini).

O modelo é acessado por trás do protocolo TextGenerator para que os testes
possam usar um gerador determinístico.
"""

import logging
from typing import List, Optional, Protocol

from google import genai
from google.genai import types

from dashboard_dataclass import DashboardData, FinancialItem
from utils import format_number_ptbr

logger = logging.getLogger(__name__)

FALLBACK_EMPTY_RESPONSE = "Não foi possível gerar insights no momento."
FALLBACK_SERVICE_ERROR = "Erro ao conectar com o serviço de IA. Verifique sua conexão."

PROMPT_TEMPLATE = """
    Analise os seguintes dados financeiros da Pro Active para o ano de 2025 comparado a 2024:

    ATIVO TOTAL 2025: R$ {total_assets}
    PASSIVO TOTAL 2025: R$ {total_liabilities}

    KPIs Atuais:
    {kpi_lines}

    Por favor, forneça um resumo executivo em português (formato Markdown) com:
    1. Uma análise rápida da saúde financeira.
    2. Identificação de 3 pontos críticos ou de melhoria.
    3. Uma conclusão estratégica curta.
    Seja profissional e direto como um Head Controller.
"""


class TextGenerationError(Exception):
    """Falha ao obter texto do serviço de geração (rede, autenticação, resposta inválida)."""


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str:
        ...


class GeminiTextGenerator:
    """
    Cliente do Gemini via SDK google-genai.
    Faz uma única chamada a generate_content por pedido, sem retentativas.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-3-pro-preview",
        timeout: float = 60.0,
        client: Optional[genai.Client] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.client = client

        if self.client is None and api_key:
            # HttpOptions.timeout é em milissegundos
            self.client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(timeout=int(timeout * 1000)),
            )
        if not api_key:
            logger.warning("GEMINI_API_KEY não configurada. A geração de insights irá falhar.")

    def generate(self, prompt: str) -> str:
        """
        Envia o prompt ao modelo e devolve o texto gerado.

        Args:
            prompt: Texto completo a ser enviado

        Returns:
            Texto da resposta (pode ser vazio)

        Raises:
            TextGenerationError: em qualquer falha do SDK (rede, autenticação, cota)
        """
        if not self.api_key or self.client is None:
            raise TextGenerationError("GEMINI_API_KEY não configurada")

        try:
            response = self.client.models.generate_content(model=self.model, contents=prompt)
        except Exception as e:
            raise TextGenerationError(f"Erro na chamada ao Gemini: {e}") from e

        return getattr(response, "text", None) or ""


def _first_total_current(items: List[FinancialItem]) -> float:
    total = next((item for item in items if item.is_total), None)
    return (total.value_current or 0) if total else 0


def build_insights_prompt(data: DashboardData) -> str:
    """Monta o prompt com os totais de 2025 e os KPIs atuais."""
    kpi_lines = "\n".join(
        f"- {kpi.name}: 2025 ({kpi.value_current}) vs 2024 ({kpi.value_prior})" for kpi in data.kpis
    )
    return PROMPT_TEMPLATE.format(
        total_assets=format_number_ptbr(_first_total_current(data.assets)),
        total_liabilities=format_number_ptbr(_first_total_current(data.liabilities)),
        kpi_lines=kpi_lines,
    )


def get_financial_insights(data: DashboardData, generator: TextGenerator) -> str:
    """
    Solicita ao modelo um resumo executivo dos dados do painel.
    Nunca lança exceção: falhas viram uma mensagem fixa para o usuário.
    """
    try:
        prompt = build_insights_prompt(data)
        text = generator.generate(prompt)
    except Exception as e:
        logger.error(f"Erro no serviço de IA: {e}", exc_info=True)
        return FALLBACK_SERVICE_ERROR

    if not isinstance(text, str) or not text.strip():
        logger.warning("O serviço de IA retornou uma resposta vazia.")
        return FALLBACK_EMPTY_RESPONSE
    return text
