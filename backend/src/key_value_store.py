# backend/src/key_value_store.py
"""
Armazenamento chave-valor usado pela persistência do painel.

Qualquer backend que implemente get/set/delete por chave serve:
memória (testes), arquivo JSON local ou uma tabela no Postgres.
"""

import json
import logging
import os
import tempfile
import threading
from typing import Dict, Optional, Protocol

from config import Settings
from db.database import delete_value, ensure_kv_table, fetch_value, get_connection, upsert_value

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Falha do backend de armazenamento (disco, banco de dados)."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Armazenamento em memória, útil para testes e desenvolvimento."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """
    Guarda todas as chaves em um único documento JSON no disco.
    A escrita é feita em arquivo temporário e depois substitui o original.
    """

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Erro ao ler o arquivo de armazenamento {self.path}: {e}") from e
        if not isinstance(content, dict):
            raise StorageError(f"Arquivo de armazenamento {self.path} com formato inesperado.")
        return content

    def _write_all(self, content: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(content, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Erro ao gravar o arquivo de armazenamento {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            content = self._read_all()
            content[key] = value
            self._write_all(content)

    def delete(self, key: str) -> None:
        with self._lock:
            content = self._read_all()
            if key in content:
                del content[key]
                self._write_all(content)


class PostgresKeyValueStore:
    """Chaves gravadas na tabela public.kv_store (uma conexão por operação)."""

    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn
        self._table_ready = False

    def _get_connection(self):
        try:
            conn = get_connection(self.dsn)
        except RuntimeError as e:
            raise StorageError(str(e)) from e
        if not self._table_ready:
            try:
                ensure_kv_table(conn)
            except Exception as e:
                conn.close()
                raise StorageError(f"Erro ao preparar a tabela kv_store: {e}") from e
            self._table_ready = True
        return conn

    def _close_connection(self, conn) -> None:
        try:
            conn.close()
        except Exception as e:
            logger.warning(f"Erro ao fechar conexão: {e}")

    def get(self, key: str) -> Optional[str]:
        conn = self._get_connection()
        try:
            return fetch_value(conn, key)
        except Exception as e:
            raise StorageError(f"Erro ao ler a chave '{key}': {e}") from e
        finally:
            self._close_connection(conn)

    def set(self, key: str, value: str) -> None:
        conn = self._get_connection()
        try:
            upsert_value(conn, key, value)
        except RuntimeError as e:
            raise StorageError(str(e)) from e
        finally:
            self._close_connection(conn)

    def delete(self, key: str) -> None:
        conn = self._get_connection()
        try:
            delete_value(conn, key)
        except RuntimeError as e:
            raise StorageError(str(e)) from e
        finally:
            self._close_connection(conn)


def build_key_value_store(settings: Settings) -> KeyValueStore:
    """Escolhe o backend de armazenamento conforme STORAGE_BACKEND."""
    if settings.storage_backend == "memory":
        logger.info("Usando armazenamento em memória (os dados não sobrevivem a reinícios).")
        return InMemoryKeyValueStore()
    if settings.storage_backend == "postgres":
        logger.info("Usando armazenamento no Postgres (tabela public.kv_store).")
        return PostgresKeyValueStore(settings.database_url)
    logger.info(f"Usando armazenamento em arquivo: {settings.storage_path}")
    return JsonFileKeyValueStore(settings.storage_path)
