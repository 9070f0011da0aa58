# backend/main.py

import os
import sys
import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

# --- Configuração do Logging ---
# Primeira coisa a ser feita para que os logs da inicialização também sejam capturados.
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s [%(levelname)s] - %(message)s'
)

# --- Configuração do Path da Aplicação ---
# Adiciona o diretório 'src' ao path do sistema para que os módulos locais
# (como 'routes' e 'dashboard_state') sejam encontrados.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), 'src')))

from config import Settings
from dashboard_state import DashboardController
from database_manager import DashboardDatabase
from insights_service import GeminiTextGenerator
from key_value_store import build_key_value_store
from routes.dashboard import CONTROLLER_EXTENSION, dashboard_bp

logger = logging.getLogger(__name__)


def build_controller(settings: Settings) -> DashboardController:
    """Monta o controlador com o armazenamento e o cliente de IA configurados."""
    database = DashboardDatabase(build_key_value_store(settings))
    generator = GeminiTextGenerator(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        timeout=settings.request_timeout,
    )
    return DashboardController(database, generator)


def create_app(controller: Optional[DashboardController] = None, settings: Optional[Settings] = None) -> Flask:
    """
    Cria a aplicação Flask. Testes podem injetar um controlador próprio.
    """
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = settings.max_upload_mb * 1024 * 1024

    # Restringe o CORS aos endpoints da API que começam com /api/.
    CORS(app, resources={r"/api/*": {"origins": settings.cors_origins}})

    app.extensions[CONTROLLER_EXTENSION] = controller or build_controller(settings)

    # Todas as rotas do painel ficam sob '/api/v1'.
    app.register_blueprint(dashboard_bp, url_prefix='/api/v1')

    @app.route("/")
    def index():
        """Confirmação de que o serviço está no ar."""
        return "API do Painel de Balanço está no ar. Acesse os endpoints em /api/v1/."

    return app


# --- Bloco de Execução para Desenvolvimento Local ---
# Em produção, o Gunicorn usa a fábrica: `gunicorn "main:create_app()"`.
if __name__ == '__main__':
    settings = Settings.from_env()
    app = create_app(settings=settings)
    logger.info(f"API iniciando em modo de desenvolvimento em http://0.0.0.0:{settings.port}")
    app.run(host='0.0.0.0', port=settings.port, debug=False)
