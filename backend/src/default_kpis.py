# backend/src/default_kpis.py
# Conjunto fixo de indicadores exibido no painel. Os KPIs ainda não são
# extraídos da planilha; toda nova carga recebe esta lista.

from dashboard_dataclass import KPI

DEFAULT_KPIS = [
    KPI(name="Liquidez Corrente", value_current="8.42", value_prior="9.23", description="Capacidade curto prazo"),
    KPI(name="Liquidez Seca", value_current="5.26", value_prior="4.84", description="Sem estoques"),
    KPI(name="ROI", value_current="18.6%", value_prior="22.1%", description="Retorno s/ Ativo"),
    KPI(name="Endividamento", value_current="11.8%", value_prior="10.8%", description="Exigível / Ativo"),
    KPI(name="Giro do Ativo", value_current="1.15", value_prior="1.08", description="Eficiência vendas"),
    KPI(name="Margem Bruta", value_current="42.5%", value_prior="40.2%", description="Resultado bruto"),
    KPI(name="Margem Líquida", value_current="15.2%", value_prior="14.8%", description="Lucro / Receita"),
    KPI(name="ROE", value_current="21.4%", value_prior="24.5%", description="Retorno s/ PL"),
]
