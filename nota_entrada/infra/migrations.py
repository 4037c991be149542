# nota_entrada/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: notas (documento JSON), sequências de ID e colaboradores
    (estoque, financeiro, assistência)
V2: colunas de resumo da nota (atuador, valores) usadas pelas views
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Contadores de identificadores (NE-, PROD-, REV-NOTA-, CRED-)
    """
    CREATE TABLE IF NOT EXISTS sequencia (
        chave TEXT PRIMARY KEY,
        valor INTEGER NOT NULL DEFAULT 0
    );
    """,
    # Nota de entrada: grafo completo em `documento`, colunas para filtro
    """
    CREATE TABLE IF NOT EXISTS nota_entrada (
        id TEXT PRIMARY KEY,
        fornecedor TEXT NOT NULL,
        status TEXT NOT NULL,
        tipo_pagamento TEXT NOT NULL,
        qtd_informada INTEGER DEFAULT 0,
        qtd_cadastrada INTEGER DEFAULT 0,
        qtd_conferida INTEGER DEFAULT 0,
        data_criacao TEXT,
        documento TEXT NOT NULL
    );
    """,
    # Aparelhos migrados após a conferência (Novo -> Estoque, Seminovo -> Pendentes)
    """
    CREATE TABLE IF NOT EXISTS estoque_aparelho (
        produto_id TEXT PRIMARY KEY,
        nota_id TEXT NOT NULL,
        imei TEXT,
        marca TEXT,
        modelo TEXT,
        cor TEXT,
        categoria TEXT,
        saude_bateria INTEGER,
        custo REAL,
        destino TEXT NOT NULL, -- 'Estoque' | 'Pendentes'
        data_entrada TEXT
    );
    """,
    # Unidades liberadas para o financeiro (caminho verde)
    """
    CREATE TABLE IF NOT EXISTS repasse_financeiro (
        produto_id TEXT PRIMARY KEY,
        nota_id TEXT NOT NULL,
        imei TEXT,
        custo_total REAL,
        data_repasse TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS nota_credito (
        id TEXT PRIMARY KEY,
        fornecedor TEXT NOT NULL,
        valor REAL NOT NULL,
        nota_origem_id TEXT NOT NULL,
        emitida_em TEXT
    );
    """,
    # Lotes de reparo (caminho amarelo)
    """
    CREATE TABLE IF NOT EXISTS lote_reparo (
        id TEXT PRIMARY KEY,
        nota_id TEXT NOT NULL,
        fornecedor TEXT,
        valor_original_nota REAL,
        responsavel TEXT,
        criado_em TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS lote_reparo_item (
        lote_id TEXT NOT NULL,
        produto_id TEXT NOT NULL,
        marca TEXT,
        modelo TEXT,
        imei TEXT,
        motivo_defeito TEXT NOT NULL,
        custo_reparo REAL DEFAULT 0,
        PRIMARY KEY (lote_id, produto_id),
        FOREIGN KEY (lote_id) REFERENCES lote_reparo(id) ON DELETE CASCADE
    );
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    _ensure_column(conn, "nota_entrada", "atuador", "atuador TEXT")
    _ensure_column(conn, "nota_entrada", "valor_total", "valor_total REAL DEFAULT 0")
    _ensure_column(conn, "nota_entrada", "valor_pago", "valor_pago REAL DEFAULT 0")
    _ensure_column(conn, "nota_entrada", "urgente", "urgente INTEGER DEFAULT 0")


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2
