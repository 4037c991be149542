from datetime import datetime, timedelta

import pytest

from nota_entrada.domain.erros import ErroValidacao
from nota_entrada.domain.models import CaminhoTriagem, DecisaoTriagem
from nota_entrada.infra.repositories import AssistenciaSqlite
from nota_entrada.usecases.relatorios import (
    relatorio_abatimento,
    relatorio_alertas,
    relatorio_estoque_destino,
    relatorio_notas_pendentes,
    relatorio_notas_por_status,
    relatorio_progresso,
    resumo_nota,
)
from nota_entrada.usecases.servicos import montar_conferencia, montar_triagem


def _seminovo(imei, custo="1.000,00"):
    return {"tipo_produto": "Aparelho", "marca": "Apple", "modelo": "iPhone 12", "quantidade": 1,
            "custo_unitario": custo, "imei": imei, "cor": "Branco", "categoria": "Seminovo", "saude_bateria": 82}


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "relatorios.db")


@pytest.fixture
def nota_concluida(db):
    """Nota POS com dois seminovos de R$ 1.000,00, 100% conferida e migrada."""
    conf = montar_conferencia(db)
    nota = conf.criar_nota(
        "Distribuidora Beta", "2025-03-10", "Ana", "POS",
        produtos=[_seminovo("352099001761481"), _seminovo("352099001761482")],
    )
    conf.confirmar_conferencia(nota.id, [p.id for p in nota.produtos], "Ana")
    conf.migrar_conferidos_por_categoria(nota.id, "Ana")
    return conf.notas.obter(nota.id)


def test_resumo_nota(nota_concluida):
    resumo = resumo_nota(nota_concluida)
    assert resumo["progresso"] == 100
    assert resumo["valor_total"] == 2000.0
    assert resumo["valor_pendente"] == 2000.0
    assert resumo["status"] == "Conferencia Concluida"
    assert resumo["atuador"] == "Financeiro"


def test_pendentes_urgentes_primeiro(db):
    conf = montar_conferencia(db)
    normal = conf.criar_nota("Fornecedor A", "2025-03-10", "Ana", "POS")
    urgente = conf.criar_nota("Fornecedor B", "2025-03-10", "Ana", "ANTECIPADO", urgente=True)

    rows = relatorio_notas_pendentes(db_path=db)
    assert [r["id"] for r in rows] == [urgente.id, normal.id]
    assert rows[0]["atuador"] == "Financeiro"
    assert rows[1]["percentual_conferido"] == 0


def test_notas_por_status(db, nota_concluida):
    conf = montar_conferencia(db)
    aberta = conf.criar_nota("Fornecedor A", "2025-03-10", "Ana", "POS")

    contagem = {r["status"]: r["quantidade"] for r in relatorio_notas_por_status(db_path=db)}
    assert contagem == {"Aberta": 1, "Conferencia Concluida": 1}

    rows = relatorio_notas_por_status("ABERTA", db_path=db)
    assert [r["id"] for r in rows] == [aberta.id]

    with pytest.raises(ErroValidacao):
        relatorio_notas_por_status("Inexistente", db_path=db)


def test_progresso_lista_linhas_pendentes(db):
    conf = montar_conferencia(db)
    nota = conf.criar_nota(
        "Fornecedor A", "2025-03-10", "Ana", "POS",
        produtos=[
            {"tipo_produto": "Acessorio", "marca": "X", "modelo": "Capa", "quantidade": 3},
            {"tipo_produto": "Acessorio", "marca": "X", "modelo": "Pelicula", "quantidade": 1},
        ],
    )
    conf.confirmar_conferencia(nota.id, [nota.produtos[0].id], "Ana")

    rel = relatorio_progresso(nota.id, db_path=db)
    assert rel["progresso"] == 75
    assert rel["pendentes"] == [nota.produtos[1].id]


def test_alertas_de_quantidade_e_status_critico(db):
    conf = montar_conferencia(db)
    excedida = conf.criar_nota(
        "Fornecedor A", "2025-03-10", "Ana", "POS", qtd_informada=1,
        produtos=[{"tipo_produto": "Acessorio", "marca": "X", "modelo": "Capa", "quantidade": 2}],
    )
    parada = conf.criar_nota("Fornecedor B", "2025-03-10", "Ana", "PARCIAL")
    conf.encaminhar_nota(parada.id, "Ana")

    alertas = relatorio_alertas(agora=datetime.now() + timedelta(days=10), db_path=db)
    tipos = {(a["nota_id"], a["tipo"]) for a in alertas}
    assert (excedida.id, "qtd_excedida") in tipos
    assert (parada.id, "status_critico") in tipos


def test_abatimento_do_lote_de_reparo(db, nota_concluida):
    triagem = montar_triagem(db)
    decisoes = [
        DecisaoTriagem(nota_concluida.produtos[0].id, CaminhoTriagem.VERDE),
        DecisaoTriagem(nota_concluida.produtos[1].id, CaminhoTriagem.AMARELO, "Tela com manchas"),
    ]
    res = triagem.executar(nota_concluida.id, decisoes, "Carla")
    lote_id = res.lote_reparo.id

    rel = relatorio_abatimento(lote_id, db_path=db)
    assert (rel["valor_nota"], rel["custo_reparos"], rel["valor_liquido"]) == (2000.0, 0.0, 2000.0)
    assert rel["alerta_critico"] is False

    AssistenciaSqlite(db).atualizar_custo_reparo(lote_id, nota_concluida.produtos[1].id, 400.0)
    rel = relatorio_abatimento(lote_id, db_path=db)
    assert rel["valor_liquido"] == 1600.0
    assert rel["percentual_reparo"] == 20.0
    assert rel["alerta_critico"] is True

    assert [r["id"] for r in relatorio_notas_pendentes(db_path=db)] == []


def test_abatimento_lote_inexistente(db):
    with pytest.raises(ErroValidacao):
        relatorio_abatimento("REV-NOTA-00042", db_path=db)


def test_estoque_por_destino(db, nota_concluida):
    rows = relatorio_estoque_destino(db_path=db)
    assert rows == [{"nota_id": nota_concluida.id, "destino": "Pendentes", "quantidade": 2, "custo_total": 2000.0}]
