import pandas as pd
import pytest

from nota_entrada.adapters.planilhas import _slug, load_produtos_from_xlsx
from nota_entrada.domain.erros import ErroValidacao
from nota_entrada.domain.models import Categoria, TipoProduto
from nota_entrada.usecases.importar_produtos import run_importar_produtos
from nota_entrada.usecases.servicos import montar_conferencia

COLUNAS = ["Tipo de Produto", "Fabricante", "Descrição", "Qtde", "Preço Unitário", "IMEI 1", "Cor", "Condição",
           "Saúde da Bateria", "Observação"]


def _xlsx(path, linhas):
    df = pd.DataFrame(linhas, columns=COLUNAS)
    df.to_excel(path, index=False)
    return str(path)


@pytest.fixture
def planilha(tmp_path):
    return _xlsx(tmp_path / "produtos.xlsx", [
        ["Celular", "Apple", "iPhone 13", "1", "R$ 3.500,00", "352099001761481", "Preto", "Lacrado", None, "ok"],
        [None] * len(COLUNAS),
        ["Acessório", "Baseus", "Cabo USB-C", None, None, None, None, None, None, None],
        ["Smartphone", "Samsung", "Galaxy A54", "3 UN", "1.200,00", None, None, "Semi novo", "88", None],
    ])


@pytest.mark.parametrize(
    "cabecalho,esperado",
    [
        ("Preço Unitário", "preco unitario"),
        ("  Saúde da Bateria ", "saude da bateria"),
        ("IMEI-1", "imei 1"),
        (None, ""),
    ],
)
def test_slug(cabecalho, esperado):
    assert _slug(cabecalho) == esperado


def test_load_produtos_normaliza_cabecalhos_e_sinonimos(planilha):
    rows = load_produtos_from_xlsx(planilha)
    assert len(rows) == 3

    aparelho, acessorio, agrupado = rows
    assert aparelho == {
        "tipo_produto": "APARELHO",
        "marca": "Apple",
        "modelo": "iPhone 13",
        "quantidade": "1",
        "custo_unitario": "R$ 3.500,00",
        "imei": "352099001761481",
        "cor": "Preto",
        "categoria": "NOVO",
        "saude_bateria": None,
    }
    assert acessorio["tipo_produto"] == "ACESSORIO"
    assert (acessorio["quantidade"], acessorio["custo_unitario"]) == ("1", "0")
    assert agrupado["categoria"] == "SEMINOVO"
    assert agrupado["quantidade"] == "3 UN"


def test_importar_produtos_cadastra_na_nota(tmp_path, planilha):
    db = str(tmp_path / "notas.db")
    conf = montar_conferencia(db)
    nota = conf.criar_nota("Distribuidora Alfa", "2025-03-10", "Ana", "POS")

    res = run_importar_produtos(planilha, nota.id, "Ana", db_path=db)
    assert res == {"arquivo": planilha, "nota_id": nota.id, "linhas_inseridas": 3, "qtd_cadastrada": 5}

    produtos = conf.notas.obter(nota.id).produtos
    assert [p.tipo_produto for p in produtos] == [TipoProduto.APARELHO, TipoProduto.ACESSORIO, TipoProduto.APARELHO]
    assert produtos[0].imei == "352099001761481"
    assert produtos[0].categoria is Categoria.NOVO
    assert produtos[0].saude_bateria == 100
    assert produtos[2].custo_total == 3600.0


def test_importar_linha_invalida_rejeita_planilha_inteira(tmp_path):
    db = str(tmp_path / "notas.db")
    conf = montar_conferencia(db)
    nota = conf.criar_nota("Distribuidora Alfa", "2025-03-10", "Ana", "POS")
    path = _xlsx(tmp_path / "ruim.xlsx", [
        ["Acessório", "Baseus", "Cabo", "2", "10", None, None, None, None, None],
        ["Acessório", "Baseus", "Capa", "0", "10", None, None, None, None, None],
    ])

    with pytest.raises(ErroValidacao) as exc:
        run_importar_produtos(path, nota.id, "Ana", db_path=db)
    assert exc.value.linha_id == "#2"
    assert conf.notas.obter(nota.id).produtos == []


def test_importar_planilha_vazia(tmp_path):
    db = str(tmp_path / "notas.db")
    nota = montar_conferencia(db).criar_nota("Distribuidora Alfa", "2025-03-10", "Ana", "POS")
    path = _xlsx(tmp_path / "vazia.xlsx", [])
    with pytest.raises(ErroValidacao) as exc:
        run_importar_produtos(path, nota.id, "Ana", db_path=db)
    assert exc.value.campo == "produtos"
