# nota_entrada/usecases/servicos.py
"""
Montagem dos casos de uso sobre o banco SQLite.

Usado pela CLI e pelos casos de uso orientados a arquivo; os testes de
regra montam os mesmos casos de uso com as implementações em memória.
"""

from __future__ import annotations

from nota_entrada.config import DB_PATH
from nota_entrada.domain.policies import PoliticaCredito, credito_pagamento_antecipado
from nota_entrada.infra.migrations import apply_migrations
from nota_entrada.infra.repositories import (
    AssistenciaSqlite,
    EstoqueSqlite,
    FinanceiroSqlite,
    GeradorIdsSqlite,
    NotaRepoSqlite,
)
from nota_entrada.usecases.conferencia import ConferenciaNota
from nota_entrada.usecases.triagem import TriagemNota
from nota_entrada.usecases.verificar_imei import VerificadorImei


def montar_conferencia(db_path: str = DB_PATH) -> ConferenciaNota:
    apply_migrations(db_path)
    return ConferenciaNota(NotaRepoSqlite(db_path), EstoqueSqlite(db_path), GeradorIdsSqlite(db_path))


def montar_triagem(db_path: str = DB_PATH, politica_credito: PoliticaCredito = credito_pagamento_antecipado) -> TriagemNota:
    apply_migrations(db_path)
    return TriagemNota(
        NotaRepoSqlite(db_path),
        FinanceiroSqlite(db_path),
        AssistenciaSqlite(db_path),
        GeradorIdsSqlite(db_path),
        politica_credito=politica_credito,
    )


def montar_verificador(db_path: str = DB_PATH) -> VerificadorImei:
    apply_migrations(db_path)
    return VerificadorImei(NotaRepoSqlite(db_path), EstoqueSqlite(db_path))
