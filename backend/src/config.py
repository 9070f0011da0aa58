# backend/src/config.py

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Carrega variáveis de ambiente de um .env (somente em desenvolvimento local)
load_dotenv()

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("memory", "file", "postgres")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"Valor inválido para {name}; usando padrão {default}.")
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"Valor inválido para {name}; usando padrão {default}.")
        return default


@dataclass
class Settings:
    """Configuração da aplicação, lida das variáveis de ambiente."""
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-3-pro-preview"
    request_timeout: float = 60.0
    storage_backend: str = "file"
    storage_path: str = "dashboard_store.json"
    database_url: Optional[str] = None
    max_upload_mb: int = 10
    cors_origins: str = "*"
    log_level: str = "INFO"
    port: int = 5000

    @classmethod
    def from_env(cls) -> "Settings":
        storage_backend = os.getenv("STORAGE_BACKEND", "file").strip().lower()
        if storage_backend not in STORAGE_BACKENDS:
            logger.warning(f"STORAGE_BACKEND '{storage_backend}' desconhecido; usando 'file'.")
            storage_backend = "file"

        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", cls.gemini_model),
            request_timeout=_env_float("REQUEST_TIMEOUT", cls.request_timeout),
            storage_backend=storage_backend,
            storage_path=os.getenv("STORAGE_PATH", cls.storage_path),
            database_url=os.getenv("DATABASE_URL"),
            max_upload_mb=_env_int("MAX_UPLOAD_MB", cls.max_upload_mb),
            cors_origins=os.getenv("CORS_ORIGINS", cls.cors_origins),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            port=_env_int("PORT", cls.port),
        )
