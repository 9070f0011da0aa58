# backend/src/routes/dashboard.py

import logging
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from dashboard_dataclass import FinancialItem
from dashboard_state import (
    DashboardController,
    InsightsInProgressError,
    NoDashboardDataError,
    compute_summary_totals,
    find_missing_totals,
    variance_pct,
)
from key_value_store import StorageError
from sheet_parser import SheetReadError
from utils import clean_data_for_json, format_currency_brl

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard', __name__)

CONTROLLER_EXTENSION = 'dashboard_controller'

# Filtro de período do painel: quais exercícios ficam em destaque.
VIEW_MODES = {
    'COMPARATIVO': ['2025', '2024'],
    '2025': ['2025'],
    '2024': ['2024'],
}

NO_DATA_MESSAGE = "Nenhum dado carregado no sistema."


def get_controller() -> DashboardController:
    return current_app.extensions[CONTROLLER_EXTENSION]


def _error(message: str, status_code: int):
    return jsonify({"status": "error", "message": message}), status_code


def _item_payload(item: FinancialItem) -> dict:
    ah = variance_pct(item)
    payload = item.to_dict()
    payload.update({
        "value_current_brl": format_currency_brl(item.value_current),
        "value_prior_brl": format_currency_brl(item.value_prior),
        "variance_pct": ah,
        "variance_label": f"{ah:.1f}%",
        "trend": "up" if ah >= 0 else "down",
    })
    return payload


def build_dashboard_payload(controller: DashboardController, view: str = 'COMPARATIVO') -> dict:
    """Monta a resposta do painel com totais, AH% e valores formatados em R$."""
    data = controller.current_data
    if data is None:
        return {"status": "empty", "message": NO_DATA_MESSAGE, "view": view, "visible_periods": VIEW_MODES[view]}

    # Totais e avisos vêm do mesmo snapshot lido acima
    totals = compute_summary_totals(data)
    warnings = [
        f"Nenhuma linha de total encontrada no {section}; o total exibido é R$ 0,00."
        for section in find_missing_totals(data)
    ]
    payload = {
        "status": "success",
        "view": view,
        "visible_periods": VIEW_MODES[view],
        "last_updated": data.last_updated,
        "summary": {
            **totals.to_dict(),
            "formatted": {name: format_currency_brl(value) for name, value in totals.to_dict().items()},
        },
        "assets": [_item_payload(item) for item in data.assets],
        "liabilities": [_item_payload(item) for item in data.liabilities],
        "kpis": [kpi.to_dict() for kpi in data.kpis],
        "warnings": warnings,
    }
    return clean_data_for_json(payload)


@dashboard_bp.app_errorhandler(RequestEntityTooLarge)
def handle_file_too_large(e):
    return _error("Arquivo excede o tamanho máximo permitido.", 413)


@dashboard_bp.route('/health', methods=['GET'])
def health_check():
    """Endpoint para verificar se a API está rodando."""
    return jsonify({'status': 'healthy', 'timestamp': datetime.now().isoformat()}), 200


@dashboard_bp.route('/dashboard', methods=['GET'])
def get_dashboard():
    """Retorna o estado atual do painel, ou o aviso de painel vazio."""
    view = request.args.get('view', 'COMPARATIVO').upper()
    if view not in VIEW_MODES:
        return _error(f"Filtro de período inválido: {view}. Use COMPARATIVO, 2025 ou 2024.", 400)
    try:
        return jsonify(build_dashboard_payload(get_controller(), view))
    except Exception as e:
        logger.error(f"Erro em /dashboard: {e}", exc_info=True)
        return _error("Erro ao montar o painel.", 500)


@dashboard_bp.route('/upload', methods=['POST'])
def upload_sheet():
    """Recebe a planilha (campo 'file') e substitui os dados do painel."""
    uploaded = request.files.get('file')
    if uploaded is None or not uploaded.filename:
        return _error("Nenhum arquivo enviado. Envie a planilha no campo 'file'.", 400)

    controller = get_controller()
    try:
        controller.upload(uploaded.read(), uploaded.filename)
    except SheetReadError as e:
        logger.warning(f"Planilha rejeitada: {e}")
        return _error(str(e), 400)
    except StorageError as e:
        logger.error(f"Erro ao salvar os dados da planilha: {e}", exc_info=True)
        return _error("Planilha lida, mas não foi possível salvar os dados.", 500)
    except Exception as e:
        logger.error(f"Erro catastrófico em /upload: {e}", exc_info=True)
        return _error("Um erro interno crítico ocorreu no servidor.", 500)

    return jsonify(build_dashboard_payload(controller)), 201


@dashboard_bp.route('/dashboard', methods=['DELETE'])
def reset_dashboard():
    """Apaga todos os dados salvos."""
    try:
        get_controller().reset()
    except StorageError as e:
        logger.error(f"Erro ao apagar os dados salvos: {e}", exc_info=True)
        return _error("Não foi possível apagar os dados salvos.", 500)
    return jsonify({"status": "success", "message": "Dados removidos."}), 200


@dashboard_bp.route('/kpis', methods=['GET'])
def get_kpis():
    data = get_controller().current_data
    kpis = [kpi.to_dict() for kpi in data.kpis] if data else []
    return jsonify({"kpis": kpis, "total": len(kpis)})


@dashboard_bp.route('/insights', methods=['POST'])
def generate_insights():
    """Solicita ao serviço de IA uma análise dos dados atuais."""
    controller = get_controller()
    try:
        text = controller.request_insights()
    except NoDashboardDataError as e:
        return _error(str(e), 400)
    except InsightsInProgressError as e:
        return _error(str(e), 409)
    except Exception as e:
        logger.error(f"Erro catastrófico em /insights: {e}", exc_info=True)
        return _error("Um erro interno crítico ocorreu no servidor.", 500)

    if text is None:
        return _error("Os dados foram alterados durante a análise. Solicite novamente.", 409)
    return jsonify({"status": "success", "insights": text})


@dashboard_bp.route('/insights', methods=['GET'])
def get_insights():
    controller = get_controller()
    return jsonify({"insights": controller.insights_text, "loading": controller.is_ai_loading})
