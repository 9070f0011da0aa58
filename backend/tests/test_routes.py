# backend/tests/test_routes.py

from io import BytesIO

import pytest

from config import Settings
from insights_service import FALLBACK_EMPTY_RESPONSE
from routes.dashboard import build_dashboard_payload


def _upload(client, content, filename="balanco.csv"):
    return client.post(
        '/api/v1/upload',
        data={'file': (BytesIO(content), filename)},
        content_type='multipart/form-data',
    )


def test_index(client):
    response = client.get('/')
    assert response.status_code == 200


def test_health(client):
    response = client.get('/api/v1/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_dashboard_without_data_reports_empty_state(client):
    body = client.get('/api/v1/dashboard').get_json()

    assert body['status'] == 'empty'
    assert body['message'] == "Nenhum dado carregado no sistema."
    assert 'summary' not in body


def test_upload_returns_dashboard_payload(client, sample_csv):
    response = _upload(client, sample_csv)
    assert response.status_code == 201

    body = response.get_json()
    assert body['status'] == 'success'
    assert body['last_updated'] == "2025-02-01T09:30:00.000Z"
    assert body['summary']['assets_current'] == 1000
    assert body['summary']['formatted']['assets_current'] == "R$ 1.000,00"
    assert body['warnings'] == []

    caixa = body['assets'][1]
    assert caixa['description'] == "Caixa"
    assert caixa['value_current_brl'] == "R$ 100,00"
    assert caixa['variance_pct'] == pytest.approx(100.0)
    assert caixa['variance_label'] == "100.0%"
    assert caixa['trend'] == "up"
    assert len(body['kpis']) == 8


def test_dashboard_after_upload_and_view_filter(client, sample_csv):
    _upload(client, sample_csv)

    body = client.get('/api/v1/dashboard?view=2024').get_json()
    assert body['view'] == '2024'
    assert body['visible_periods'] == ['2024']
    assert body['liabilities'][-1]['description'] == "Total do Passivo"


def test_invalid_view_is_rejected(client):
    response = client.get('/api/v1/dashboard?view=2023')
    assert response.status_code == 400
    assert response.get_json()['status'] == 'error'


def test_upload_without_total_rows_reports_warnings(client):
    content = "Ativo,2025,2024,,Passivo,2025,2024\nCaixa,100,80,,Fornecedores,40,30\n".encode("utf-8")
    body = _upload(client, content).get_json()

    assert body['summary']['assets_current'] == 0
    assert body['summary']['liabilities_current'] == 0
    assert len(body['warnings']) == 2


def test_upload_without_file_is_rejected(client):
    response = client.post('/api/v1/upload', data={}, content_type='multipart/form-data')
    assert response.status_code == 400


def test_upload_with_unsupported_file_is_rejected(client):
    response = _upload(client, b"%PDF-1.4", "balanco.pdf")
    assert response.status_code == 400
    assert "não suportado" in response.get_json()['message']


def test_upload_too_large_is_rejected(controller):
    from main import create_app

    app = create_app(controller=controller, settings=Settings(max_upload_mb=0))
    response = _upload(app.test_client(), b"x" * 2048)
    assert response.status_code == 413


def test_reset_removes_data(client, sample_csv, database):
    _upload(client, sample_csv)

    response = client.delete('/api/v1/dashboard')

    assert response.status_code == 200
    assert database.load_data() is None
    assert client.get('/api/v1/dashboard').get_json()['status'] == 'empty'
    assert client.get('/api/v1/kpis').get_json()['total'] == 0


def test_insights_require_data(client, generator):
    response = client.post('/api/v1/insights')
    assert response.status_code == 400
    assert generator.prompts == []


def test_insights_flow(client, sample_csv, generator):
    _upload(client, sample_csv)

    response = client.post('/api/v1/insights')
    assert response.status_code == 200
    assert response.get_json()['insights'] == generator.response

    body = client.get('/api/v1/insights').get_json()
    assert body == {'insights': generator.response, 'loading': False}


def test_insights_empty_response_uses_fallback(client, sample_csv, generator):
    generator.response = ""
    _upload(client, sample_csv)

    response = client.post('/api/v1/insights')
    assert response.get_json()['insights'] == FALLBACK_EMPTY_RESPONSE


def test_insights_in_progress_returns_conflict(client, sample_csv, controller):
    _upload(client, sample_csv)
    controller.is_ai_loading = True

    response = client.post('/api/v1/insights')
    assert response.status_code == 409


def test_insights_discarded_after_reset_returns_conflict(client, sample_csv, controller, generator):
    _upload(client, sample_csv)
    generator.on_generate = controller.reset

    response = client.post('/api/v1/insights')
    assert response.status_code == 409
    assert client.get('/api/v1/insights').get_json()['insights'] == ""


def test_payload_totals_come_from_the_same_snapshot(controller, sample_csv, monkeypatch):
    controller.upload(sample_csv, "balanco.csv")

    def _changed_meanwhile():
        raise AssertionError("o payload deve usar apenas o snapshot lido")

    monkeypatch.setattr(controller, "summary_totals", _changed_meanwhile)
    monkeypatch.setattr(controller, "missing_totals", _changed_meanwhile)

    body = build_dashboard_payload(controller)

    assert body['summary']['assets_current'] == 1000
    assert body['warnings'] == []
