import json
import re
from pathlib import Path

from typer.testing import CliRunner

from nota_entrada.adapters.cli import app

runner = CliRunner()


def _criar_nota(db: str, *extra: str) -> str:
    result = runner.invoke(
        app,
        [
            "nota", "criar",
            "--fornecedor", "Distribuidora Alfa",
            "--responsavel", "Ana",
            "--tipo-pagamento", "POS",
            "--data-entrada", "2025-03-10",
            "--db", db,
            *extra,
        ],
    )
    assert result.exit_code == 0, result.output
    return re.search(r">> Nota criada: (NE-\d{4}-\d{5})", result.stdout).group(1)


def test_cli_migrate(tmp_path: Path):
    db = str(tmp_path / "notas.sqlite")
    result = runner.invoke(app, ["migrate", "--db", db])
    assert result.exit_code == 0, result.output
    assert db in result.stdout


def test_cli_fluxo_completo(tmp_path: Path):
    db = str(tmp_path / "notas.sqlite")
    nota_id = _criar_nota(db)
    linha = f"PROD-{nota_id}-001"

    result = runner.invoke(app, [
        "nota", "cadastrar", nota_id,
        "--tipo", "APARELHO", "--marca", "Apple", "--modelo", "iPhone 13",
        "--quantidade", "2", "--custo", "3.500,00", "--ator", "Ana", "--db", db,
    ])
    assert result.exit_code == 0, result.output
    assert f">> Linha cadastrada: {linha} (total cadastrado: 2)" in result.stdout

    result = runner.invoke(app, ["conferencia", "explodir", nota_id, linha, "--ator", "Ana", "--db", db])
    assert result.exit_code == 0, result.output
    u1, u2 = f"{linha}-U001", f"{linha}-U002"
    assert u1 in result.stdout and u2 in result.stdout

    for unidade, imei, categoria in ((u1, "352099001761481", "NOVO"), (u2, "352099001761482", "SEMINOVO")):
        result = runner.invoke(app, [
            "conferencia", "campos", nota_id, unidade,
            "--imei", imei, "--cor", "Preto", "--categoria", categoria, "--bateria", "85",
            "--ator", "Ana", "--db", db,
        ])
        assert result.exit_code == 0, result.output
        assert f">> Campos gravados em {unidade}" in result.stdout

    result = runner.invoke(app, ["conferencia", "confirmar", nota_id, u1, u2, "--ator", "Ana", "--db", db])
    assert result.exit_code == 0, result.output
    assert ">> Conferido 2/2; status Conferencia Concluida" in result.stdout

    result = runner.invoke(app, ["conferencia", "migrar", nota_id, "--ator", "Ana", "--db", db])
    assert result.exit_code == 0, result.output
    assert ">> Migrados: 1 novo(s), 1 seminovo(s)" in result.stdout

    decisoes = tmp_path / "decisoes.json"
    decisoes.write_text(json.dumps([
        {"produto_id": u1, "caminho": "Verde"},
        {"produto_id": u2, "caminho": "Amarelo", "motivo_defeito": "Tela com manchas"},
    ]), encoding="utf-8")
    result = runner.invoke(app, ["triagem", nota_id, str(decisoes), "--ator", "Carla", "--db", db])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["reparo", "custo", "REV-NOTA-00001", u2, "400", "--db", db])
    assert result.exit_code == 0, result.output
    assert "R$ 400,00" in result.stdout

    result = runner.invoke(app, ["nota", "mostrar", nota_id, "--json", "--db", db])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["status"] == "Finalizada"
    assert data["atuador"] == "Encerrado"
    assert data["lote_reparo_id"] == "REV-NOTA-00001"
    assert [e["acao"] for e in data["timeline"]][-1] == "Triagem Concluida"
    assert len(data["timeline"]) == 8


def test_cli_erro_de_regra_sai_com_codigo_1(tmp_path: Path):
    db = str(tmp_path / "notas.sqlite")
    nota_id = _criar_nota(db)
    result = runner.invoke(app, [
        "nota", "cadastrar", nota_id,
        "--tipo", "APARELHO", "--marca", "Apple", "--modelo", "iPhone 13",
        "--custo", "3500", "--ator", "Ana", "--db", db,
    ])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["conferencia", "confirmar", nota_id, f"PROD-{nota_id}-001", "--ator", "Ana", "--db", db])
    assert result.exit_code == 1
    assert "imei" in result.output

    result = runner.invoke(app, ["nota", "mostrar", "NE-2025-99999", "--db", db])
    assert result.exit_code == 1


def test_cli_criar_tipo_pagamento_invalido(tmp_path: Path):
    db = str(tmp_path / "notas.sqlite")
    result = runner.invoke(app, [
        "nota", "criar", "--fornecedor", "X", "--responsavel", "Ana", "--tipo-pagamento", "fiado", "--db", db,
    ])
    assert result.exit_code == 1


def test_cli_imei(tmp_path: Path):
    db = str(tmp_path / "notas.sqlite")
    nota_id = _criar_nota(db)
    result = runner.invoke(app, [
        "nota", "cadastrar", nota_id,
        "--tipo", "APARELHO", "--marca", "Apple", "--modelo", "iPhone 13",
        "--custo", "3500", "--imei", "35-209900-176148-1", "--ator", "Ana", "--db", db,
    ])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["imei", "352099001761481", "--db", db])
    assert result.exit_code == 1
    assert f"DUPLICADO: Nota {nota_id}" in result.stdout

    result = runner.invoke(app, ["imei", "352099001761481", "--excluir-nota", nota_id, "--db", db])
    assert result.exit_code == 0
    assert "OK: IMEI disponível" in result.stdout


def test_cli_pagamento_e_relatorios(tmp_path: Path):
    db = str(tmp_path / "notas.sqlite")
    result = runner.invoke(app, [
        "nota", "criar", "--fornecedor", "Fornecedor B", "--responsavel", "Ana",
        "--tipo-pagamento", "ANTECIPADO", "--urgente", "--db", db,
    ])
    assert result.exit_code == 0, result.output
    nota_id = re.search(r"(NE-\d{4}-\d{5})", result.stdout).group(1)

    result = runner.invoke(app, ["nota", "pagar", nota_id, "--valor", "1.000,00", "--forma", "PIX",
                                 "--ator", "Bruno", "--db", db])
    assert result.exit_code == 0, result.output
    assert "status Aguardando Estoque; atuador Estoque" in result.stdout

    for args in (["rel", "pendentes"], ["rel", "status"], ["rel", "progresso", nota_id], ["rel", "destino"],
                 ["alertas"], ["nota", "listar", "--status", "AGUARDANDO_ESTOQUE"]):
        result = runner.invoke(app, [*args, "--db", db])
        assert result.exit_code == 0, result.output
