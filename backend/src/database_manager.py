# backend/src/database_manager.py

import json
import logging
from typing import Optional

from dashboard_dataclass import DashboardData
from key_value_store import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

STORAGE_KEY = "PRO_ACTIVE_DASHBOARD_DATA"


class DashboardDatabase:
    """
    Persiste o agregado DashboardData como um único JSON sob uma chave fixa.
    Não guarda cópia em memória: cada chamada lê ou escreve direto no store.
    """

    def __init__(self, store: KeyValueStore, key: str = STORAGE_KEY):
        self.store = store
        self.key = key

    def save_data(self, data: DashboardData) -> None:
        """Serializa e grava o agregado, sobrescrevendo qualquer valor anterior."""
        payload = json.dumps(data.to_dict(), ensure_ascii=False)
        self.store.set(self.key, payload)
        logger.info(
            f"Dados do painel salvos ({len(data.assets)} ativos, {len(data.liabilities)} passivos)."
        )

    def load_data(self) -> Optional[DashboardData]:
        """
        Lê o agregado salvo. Retorna None se não houver dados ou se o
        conteúdo gravado estiver corrompido ou com estrutura incompatível.
        """
        try:
            saved = self.store.get(self.key)
        except StorageError:
            logger.exception("Erro ao ler os dados salvos do painel")
            return None

        if not saved:
            return None

        try:
            return DashboardData.from_dict(json.loads(saved))
        except (ValueError, TypeError) as e:
            logger.error(f"Falha ao interpretar os dados salvos: {e}")
            return None

    def clear_data(self) -> None:
        """Remove os dados salvos. Pode ser chamado mesmo sem dados gravados."""
        self.store.delete(self.key)
        logger.info("Dados salvos do painel removidos.")
