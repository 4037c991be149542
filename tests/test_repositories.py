from datetime import datetime

import pytest

from nota_entrada.domain.erros import ErroValidacao, NotaNaoEncontrada
from nota_entrada.domain.models import (
    Categoria,
    ItemReparo,
    LoteReparo,
    NotaCredito,
    ProdutoNota,
    StatusNota,
    TipoProduto,
)
from nota_entrada.infra.db import connect
from nota_entrada.infra.migrations import apply_migrations
from nota_entrada.infra.repositories import (
    AssistenciaSqlite,
    EstoqueSqlite,
    FinanceiroSqlite,
    GeradorIdsSqlite,
    NotaRepoSqlite,
)
from nota_entrada.usecases.conferencia import ConferenciaNota

AGORA = datetime(2025, 3, 10, 9, 0, 0)


@pytest.fixture
def db(tmp_path):
    path = str(tmp_path / "notas.db")
    apply_migrations(path)
    return path


@pytest.fixture
def conferencia(db):
    return ConferenciaNota(NotaRepoSqlite(db), EstoqueSqlite(db), GeradorIdsSqlite(db), relogio=lambda: AGORA)


def _unidade(id_, imei, categoria):
    return ProdutoNota(
        id=id_, tipo_produto=TipoProduto.APARELHO, marca="Apple", modelo="iPhone 13",
        custo_unitario=2000.0, custo_total=2000.0, imei=imei, cor="Preto", categoria=categoria,
    )


def test_migrations_sao_idempotentes(db):
    apply_migrations(db)
    with connect(db) as c:
        assert c.execute("PRAGMA user_version;").fetchone()[0] == 2
        cols = [r[1] for r in c.execute("PRAGMA table_info(nota_entrada);").fetchall()]
    assert {"atuador", "valor_total", "valor_pago", "urgente", "documento"} <= set(cols)


def test_nota_salva_e_recuperada_integralmente(db, conferencia):
    nota = conferencia.criar_nota(
        "Distribuidora Alfa", "2025-03-10", "Ana", "POS", urgente=True, observacoes="Caixa avariada",
        produtos=[
            {"tipo_produto": "Aparelho", "marca": "Apple", "modelo": "iPhone 13", "quantidade": 2,
             "custo_unitario": "2.000,00"},
            {"tipo_produto": "Acessorio", "marca": "Baseus", "modelo": "Cabo", "quantidade": 3,
             "custo_unitario": "15"},
        ],
    )
    u1, u2 = conferencia.explodir_linha(nota.id, nota.produtos[0].id, "Ana")
    conferencia.informar_campos(nota.id, u1.id, "Ana", "352099001761481", "Preto", "Seminovo", saude_bateria=87)
    nota = conferencia.confirmar_conferencia(nota.id, [u1.id], "Ana")

    carregada = NotaRepoSqlite(db).obter(nota.id)
    assert carregada == nota
    assert carregada.produtos[0].categoria is Categoria.SEMINOVO
    assert carregada.status is StatusNota.CONFERENCIA_PARCIAL
    assert carregada.urgente is True

    with connect(db) as c:
        row = c.execute(
            "SELECT status, atuador, qtd_cadastrada, qtd_conferida, valor_total FROM nota_entrada WHERE id = ?",
            (nota.id,),
        ).fetchone()
    assert tuple(row) == ("Conferencia Parcial", "Estoque", 5, 1, 4045.0)


def test_obter_nota_inexistente(db):
    with pytest.raises(NotaNaoEncontrada) as exc:
        NotaRepoSqlite(db).obter("NE-2025-99999")
    assert exc.value.nota_id == "NE-2025-99999"


def test_listar_por_status(db, conferencia):
    a = conferencia.criar_nota("Fornecedor A", "2025-03-10", "Ana", "POS")
    b = conferencia.criar_nota("Fornecedor B", "2025-03-10", "Ana", "POS")
    conferencia.encaminhar_nota(b.id, "Ana")

    repo = NotaRepoSqlite(db)
    assert [n.id for n in repo.listar_por_status(StatusNota.ABERTA)] == [a.id]
    assert [n.id for n in repo.listar_por_status(StatusNota.AGUARDANDO_ESTOQUE)] == [b.id]
    assert [n.id for n in repo.listar(lambda n: n.fornecedor.endswith("B"))] == [b.id]


def test_erro_nao_altera_nota_gravada(db, conferencia):
    nota = conferencia.criar_nota(
        "Distribuidora Alfa", "2025-03-10", "Ana", "POS",
        produtos=[{"tipo_produto": "Aparelho", "marca": "Apple", "modelo": "iPhone 13", "quantidade": 1}],
    )
    antes = NotaRepoSqlite(db).obter(nota.id)
    with pytest.raises(ErroValidacao):
        conferencia.confirmar_conferencia(nota.id, [nota.produtos[0].id], "Ana")
    assert NotaRepoSqlite(db).obter(nota.id) == antes


def test_sequencias_persistem_entre_instancias(db):
    ids = GeradorIdsSqlite(db)
    assert ids.proximo_id_nota(2025) == "NE-2025-00001"
    assert ids.proximo_id_nota(2025) == "NE-2025-00002"
    assert ids.proximo_id_nota(2026) == "NE-2026-00001"
    assert ids.proximo_id_linha("NE-2025-00001") == "PROD-NE-2025-00001-001"

    outro = GeradorIdsSqlite(db)
    assert outro.proximo_id_nota(2025) == "NE-2025-00003"
    assert outro.proximo_id_lote() == "REV-NOTA-00001"
    assert outro.proximo_id_credito() == "CRED-00001"


def test_estoque_migracao_idempotente(db):
    estoque = EstoqueSqlite(db)
    novos = [_unidade("P1", "352099001761481", Categoria.NOVO)]
    seminovos = [_unidade("P2", "352099001761482", Categoria.SEMINOVO)]

    estoque.receber_migracao("NE-2025-00001", novos, seminovos)
    estoque.receber_migracao("NE-2025-00001", novos, seminovos)

    aparelhos = estoque.aparelhos("NE-2025-00001")
    assert [(a["produto_id"], a["destino"], a["categoria"]) for a in aparelhos] == [
        ("P1", "Estoque", "Novo"),
        ("P2", "Pendentes", "Seminovo"),
    ]
    assert estoque.existe_imei("352099001761482")
    assert not estoque.existe_imei("352099001761489")
    assert estoque.aparelhos("NE-2025-00002") == []


def test_financeiro_unidades_e_creditos(db):
    fin = FinanceiroSqlite(db)
    itens = [{"produto_id": "P1", "imei": "352099001761481", "custo_total": 2000.0}]
    fin.receber_unidades("NE-2025-00001", itens)
    fin.receber_unidades("NE-2025-00001", itens)
    assert fin.unidades("NE-2025-00001") == itens

    credito = NotaCredito("CRED-00001", "Distribuidora Alfa", 350.0, "NE-2025-00001", "2025-03-10T09:00:00")
    fin.registrar_nota_credito(credito)
    assert fin.creditos_por_fornecedor("Distribuidora Alfa") == [credito]
    assert fin.creditos_por_fornecedor("Outro") == []


def _lote():
    return LoteReparo(
        id="REV-NOTA-00001",
        nota_id="NE-2025-00001",
        fornecedor="Distribuidora Alfa",
        valor_original_nota=10000.0,
        responsavel="Carla",
        criado_em="2025-03-10T09:00:00",
        itens=[
            ItemReparo("P1", "Apple", "iPhone 12", "352099001761481", "Tela trincada"),
            ItemReparo("P2", "Samsung", "S21", "352099001761482", "Bateria"),
        ],
    )


def test_lote_reparo_e_custos(db):
    assist = AssistenciaSqlite(db)
    assist.receber_lote(_lote())
    assert assist.obter_lote("REV-NOTA-00001") == _lote()
    assert assist.obter_lote("REV-NOTA-99999") is None

    assist.atualizar_custo_reparo("REV-NOTA-00001", "P1", 700.0)
    lote = assist.atualizar_custo_reparo("REV-NOTA-00001", "P2", 500.0)
    assert lote.custo_total_reparos() == 1200.0


def test_lote_reparo_custo_invalido(db):
    assist = AssistenciaSqlite(db)
    assist.receber_lote(_lote())
    with pytest.raises(ErroValidacao) as exc:
        assist.atualizar_custo_reparo("REV-NOTA-00001", "P1", -1)
    assert exc.value.campo == "custo_reparo"
    with pytest.raises(ErroValidacao) as exc:
        assist.atualizar_custo_reparo("REV-NOTA-00001", "P9", 10)
    assert exc.value.campo == "produto_id"
    assert assist.obter_lote("REV-NOTA-00001").custo_total_reparos() == 0.0


def test_estorno_de_unidades_credito_e_lote(db):
    fin = FinanceiroSqlite(db)
    fin.receber_unidades("NE-2025-00001", [
        {"produto_id": "P1", "imei": "352099001761481", "custo_total": 2000.0},
        {"produto_id": "P2", "imei": "352099001761482", "custo_total": 1500.0},
    ])
    fin.estornar_unidades("NE-2025-00001", ["P1"])
    assert [u["produto_id"] for u in fin.unidades("NE-2025-00001")] == ["P2"]

    fin.registrar_nota_credito(NotaCredito("CRED-00001", "Distribuidora Alfa", 350.0, "NE-2025-00001", "2025-03-10"))
    fin.cancelar_nota_credito("CRED-00001")
    assert fin.creditos_por_fornecedor("Distribuidora Alfa") == []

    assist = AssistenciaSqlite(db)
    assist.receber_lote(_lote())
    assist.cancelar_lote("REV-NOTA-00001")
    assert assist.obter_lote("REV-NOTA-00001") is None
    assist.receber_lote(_lote())
    assert assist.obter_lote("REV-NOTA-00001") == _lote()
