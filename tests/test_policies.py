from datetime import datetime

import pytest

from nota_entrada.domain.erros import DivergenciaDetectada, TransicaoInvalida
from nota_entrada.domain.models import (
    Atuador,
    ProdutoNota,
    NotaEntrada,
    StatusConferencia,
    StatusNota,
    TipoPagamento,
    TipoProduto,
)
from nota_entrada.domain.policies import (
    ATUADOR_INICIAL,
    ATUADOR_POR_ACAO,
    ATUADOR_POS_CONFERENCIA,
    STATUS_POR_ACAO,
    TRANSICOES,
    Acao,
    alertas_nota,
    atuador_inicial,
    credito_pagamento_antecipado,
    exigir_acao,
    nunca_emitir_credito,
    pode_realizar_acao,
    pode_transicionar,
    sempre_emitir_credito,
)

AGORA = datetime(2025, 3, 10, 9, 0, 0)


def _nota(**kwargs) -> NotaEntrada:
    dados = {
        "id": "NE-2025-00001",
        "fornecedor": "Distribuidora Alfa",
        "data_entrada": "2025-03-01",
        "responsavel": "Ana",
        "tipo_pagamento": TipoPagamento.POS,
        "atuador": Atuador.ESTOQUE,
        "data_criacao": "2025-03-01T09:00:00",
    }
    dados.update(kwargs)
    return NotaEntrada(**dados)


def _aparelho(id_, **kwargs) -> ProdutoNota:
    return ProdutoNota(id=id_, tipo_produto=TipoProduto.APARELHO, marca="Apple", modelo="iPhone 13", **kwargs)


@pytest.mark.parametrize(
    "tabela,enum_cls",
    [
        (ATUADOR_INICIAL, TipoPagamento),
        (ATUADOR_POS_CONFERENCIA, TipoPagamento),
        (TRANSICOES, StatusNota),
        (STATUS_POR_ACAO, Acao),
        (ATUADOR_POR_ACAO, Acao),
    ],
)
def test_tabelas_cobrem_todos_os_membros(tabela, enum_cls):
    assert set(tabela) == set(enum_cls)


@pytest.mark.parametrize(
    "tipo,esperado",
    [
        (TipoPagamento.POS, Atuador.ESTOQUE),
        (TipoPagamento.PARCIAL, Atuador.FINANCEIRO),
        (TipoPagamento.ANTECIPADO, Atuador.FINANCEIRO),
    ],
)
def test_atuador_inicial(tipo, esperado):
    assert atuador_inicial(tipo) is esperado


@pytest.mark.parametrize(
    "atual,novo,ok",
    [
        (StatusNota.ABERTA, StatusNota.AGUARDANDO_ESTOQUE, True),
        (StatusNota.AGUARDANDO_FINANCEIRO, StatusNota.AGUARDANDO_ESTOQUE, True),
        (StatusNota.AGUARDANDO_FINANCEIRO, StatusNota.CONFERENCIA_PARCIAL, False),
        (StatusNota.CONFERENCIA_PARCIAL, StatusNota.CONFERENCIA_CONCLUIDA, True),
        (StatusNota.CONFERENCIA_CONCLUIDA, StatusNota.CONFERENCIA_PARCIAL, False),
        (StatusNota.CONFERENCIA_CONCLUIDA, StatusNota.FINALIZADA, True),
        (StatusNota.CONFERENCIA_PARCIAL, StatusNota.FINALIZADA, False),
        (StatusNota.CONFERENCIA_PARCIAL, StatusNota.COM_DIVERGENCIA, True),
        (StatusNota.CONFERENCIA_PARCIAL, StatusNota.CONFERENCIA_PARCIAL, True),
        (StatusNota.FINALIZADA, StatusNota.FINALIZADA, False),
        (StatusNota.COM_DIVERGENCIA, StatusNota.ABERTA, False),
    ],
)
def test_pode_transicionar(atual, novo, ok):
    assert pode_transicionar(atual, novo) is ok


def test_acao_exige_status_e_atuador():
    nota = _nota(status=StatusNota.AGUARDANDO_ESTOQUE)
    assert pode_realizar_acao(nota, Acao.CONFERIR)
    assert not pode_realizar_acao(nota, Acao.PAGAR)
    assert not pode_realizar_acao(nota, Acao.TRIAR)

    nota.atuador = Atuador.FINANCEIRO
    assert not pode_realizar_acao(nota, Acao.CONFERIR)
    with pytest.raises(TransicaoInvalida) as exc:
        exigir_acao(nota, Acao.CONFERIR)
    assert exc.value.campo == "atuador"


def test_exigir_acao_nota_travada():
    with pytest.raises(DivergenciaDetectada):
        exigir_acao(_nota(status=StatusNota.COM_DIVERGENCIA), Acao.CONFERIR)
    with pytest.raises(TransicaoInvalida):
        exigir_acao(_nota(status=StatusNota.FINALIZADA), Acao.PAGAR)


def _tipos(alertas):
    return {a.tipo for a in alertas}


def test_alerta_quantidade_excedida():
    nota = _nota(qtd_informada=2, qtd_cadastrada=3)
    assert "qtd_excedida" in _tipos(alertas_nota(nota, agora=AGORA))
    nota.qtd_informada = 0
    assert "qtd_excedida" not in _tipos(alertas_nota(nota, agora=AGORA))


@pytest.mark.parametrize("quantidade", [1, 2])
def test_alerta_imei_ausente_em_aparelho_conferido(quantidade):
    nota = _nota(produtos=[_aparelho("P1", quantidade=quantidade, status_conferencia=StatusConferencia.CONFERIDO)])
    assert "imei_ausente" in _tipos(alertas_nota(nota, agora=AGORA))


def test_alerta_conferencia_parcial_longa():
    nota = _nota(
        status=StatusNota.CONFERENCIA_PARCIAL,
        produtos=[_aparelho("P1", status_conferencia=StatusConferencia.CONFERIDO,
                            data_conferencia="2025-03-01T10:00:00", imei="352099001761481")],
    )
    assert "conferencia_parcial_longa" in _tipos(alertas_nota(nota, agora=AGORA))
    assert "conferencia_parcial_longa" not in _tipos(alertas_nota(nota, agora=datetime(2025, 3, 3)))


def test_alerta_status_critico():
    nota = _nota(status=StatusNota.AGUARDANDO_FINANCEIRO, atuador=Atuador.FINANCEIRO)
    assert "status_critico" in _tipos(alertas_nota(nota, agora=AGORA))
    assert "status_critico" not in _tipos(alertas_nota(nota, agora=datetime(2025, 3, 2)))


def test_alerta_divergencia_valor():
    nota = _nota(
        status=StatusNota.CONFERENCIA_CONCLUIDA,
        valor_pago=900.0,
        produtos=[_aparelho("P1", custo_unitario=1000.0, custo_total=1000.0,
                            status_conferencia=StatusConferencia.CONFERIDO, imei="352099001761481")],
    )
    assert "divergencia_valor" in _tipos(alertas_nota(nota, agora=AGORA))
    nota.valor_pago = 1000.0
    assert "divergencia_valor" not in _tipos(alertas_nota(nota, agora=AGORA))


def test_politicas_de_credito():
    unidade = [_aparelho("P1")]
    antecipado = _nota(tipo_pagamento=TipoPagamento.ANTECIPADO)
    pos = _nota()
    assert credito_pagamento_antecipado(antecipado, unidade) is True
    assert credito_pagamento_antecipado(antecipado, []) is False
    assert credito_pagamento_antecipado(pos, unidade) is False
    assert sempre_emitir_credito(pos, unidade) is True
    assert sempre_emitir_credito(pos, []) is False
    assert nunca_emitir_credito(antecipado, unidade) is False
