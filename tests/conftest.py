from datetime import datetime
from types import SimpleNamespace

import pytest

from nota_entrada.domain.numeracao import GeradorIdsMemoria
from nota_entrada.infra.memoria import (
    AssistenciaMemoria,
    EstoqueMemoria,
    FinanceiroMemoria,
    NotaRepoMemoria,
)
from nota_entrada.usecases.conferencia import ConferenciaNota
from nota_entrada.usecases.triagem import TriagemNota

AGORA = datetime(2025, 3, 10, 9, 0, 0)


@pytest.fixture
def ambiente():
    """Casos de uso montados sobre os colaboradores em memória, com relógio fixo."""
    notas = NotaRepoMemoria()
    estoque = EstoqueMemoria()
    financeiro = FinanceiroMemoria()
    assistencia = AssistenciaMemoria()
    ids = GeradorIdsMemoria()
    relogio = lambda: AGORA  # noqa: E731
    return SimpleNamespace(
        notas=notas,
        estoque=estoque,
        financeiro=financeiro,
        assistencia=assistencia,
        ids=ids,
        conferencia=ConferenciaNota(notas, estoque, ids, relogio=relogio),
        triagem=TriagemNota(notas, financeiro, assistencia, ids, relogio=relogio),
    )


@pytest.fixture
def criar_nota(ambiente):
    def _criar(tipo_pagamento="POS", **kwargs):
        dados = {
            "fornecedor": "Distribuidora Alfa",
            "data_entrada": "2025-03-10",
            "responsavel": "Ana",
            "tipo_pagamento": tipo_pagamento,
        }
        dados.update(kwargs)
        return ambiente.conferencia.criar_nota(**dados)
    return _criar
