# backend/src/db/database.py

import os
from typing import Optional

import psycopg2
from dotenv import load_dotenv

# Carrega variáveis de ambiente de um .env (somente em desenvolvimento local)
load_dotenv()

KV_TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS public.kv_store (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
"""


def get_connection(dsn: Optional[str] = None):
    """
    Retorna uma conexão psycopg2 ao banco Postgres.
    Usa `dsn` (ou DATABASE_URL); na ausência, monta a conexão a partir de:
      - DB_HOST
      - DB_PORT
      - DB_USER
      - DB_PASSWORD
      - DB_NAME
    """
    dsn = dsn or os.getenv("DATABASE_URL")
    try:
        if dsn:
            return psycopg2.connect(dsn, connect_timeout=10)
        return psycopg2.connect(
            host=os.getenv("DB_HOST"),
            port=os.getenv("DB_PORT"),
            user=os.getenv("DB_USER"),
            password=os.getenv("DB_PASSWORD"),
            dbname=os.getenv("DB_NAME"),
            connect_timeout=10,
        )
    except Exception as e:
        raise RuntimeError(f"Erro ao conectar ao banco: {e}")


def ensure_kv_table(conn) -> None:
    """Cria a tabela `kv_store` se ainda não existir."""
    with conn.cursor() as cur:
        cur.execute(KV_TABLE_DDL)
    conn.commit()


def fetch_value(conn, key: str) -> Optional[str]:
    with conn.cursor() as cur:
        cur.execute("SELECT value FROM public.kv_store WHERE key = %s;", (key,))
        row = cur.fetchone()
    return row[0] if row else None


def upsert_value(conn, key: str, value: str) -> None:
    """
    Grava o valor da chave, sobrescrevendo o anterior (UPSERT em `key`).
    """
    try:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO public.kv_store (key, value)
                VALUES (%s, %s)
                ON CONFLICT (key) DO UPDATE
                  SET value = EXCLUDED.value,
                      updated_at = now();
                """,
                (key, value),
            )
        conn.commit()
    except Exception as e:
        conn.rollback()
        raise RuntimeError(f"Erro em upsert_value: {e}")


def delete_value(conn, key: str) -> None:
    try:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM public.kv_store WHERE key = %s;", (key,))
        conn.commit()
    except Exception as e:
        conn.rollback()
        raise RuntimeError(f"Erro em delete_value: {e}")
