# nota_entrada/adapters/cli.py
"""
CLI do fluxo de notas de entrada (Typer).

Comandos principais:
- migrate                          -> aplica migrações e cria views
- nota criar/encaminhar/cadastrar  -> registro da nota e dos produtos
- nota importar <xlsx>             -> cadastra produtos a partir de planilha
- nota editar/pagar/mostrar/listar
- conferencia explodir/agrupar/campos/confirmar/migrar
- triagem <nota> <decisoes.json>   -> roteia as unidades e finaliza a nota
- reparo custo                     -> atualiza custo de reparo de um item de lote
- imei <imei>                      -> verifica unicidade
- alertas                          -> alertas das notas em andamento
- rel pendentes/status/progresso/abatimento/destino
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from nota_entrada.adapters.parsers import exibir_imei
from nota_entrada.config import DB_PATH
from nota_entrada.domain.erros import ErroNotaEntrada, ErroValidacao
from nota_entrada.domain.models import NotaEntrada, StatusNota
from nota_entrada.domain.timeline import eventos_recentes
from nota_entrada.infra.migrations import apply_migrations
from nota_entrada.infra.repositories import AssistenciaSqlite, NotaRepoSqlite
from nota_entrada.infra.views import create_views
from nota_entrada.usecases.importar_produtos import run_importar_produtos
from nota_entrada.usecases.relatorios import (
    relatorio_abatimento,
    relatorio_alertas,
    relatorio_estoque_destino,
    relatorio_notas_pendentes,
    relatorio_notas_por_status,
    relatorio_progresso,
    resumo_nota,
)
from nota_entrada.usecases.servicos import montar_conferencia, montar_triagem, montar_verificador
from nota_entrada.usecases.validacao import enum_de


app = typer.Typer(help="CLI de Notas de Entrada")
console = Console()

DB_OPTION = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
ATOR_OPTION = typer.Option(..., "--ator", help="Responsável pela operação")


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2))


def _fmt(val: Any) -> str:
    if isinstance(val, bool):
        return "sim" if val else "não"
    if isinstance(val, float):
        return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    if val is None:
        return "-"
    return str(val)


def _display_table(data: Dict[str, Any] | List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Exibe os dados em tabelas formatadas usando Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    if isinstance(data, dict):
        table = Table(title=title, box=box.ROUNDED)
        table.add_column("Campo")
        table.add_column("Valor")
        for chave, valor in data.items():
            table.add_row(chave, _fmt(valor))
        console.print(table)
        return

    table = Table(title=title, box=box.ROUNDED)
    columns = list(data[0].keys())
    for column in columns:
        if column.lower().startswith(("qtd", "valor", "custo", "quantidade", "percentual")):
            table.add_column(column, justify="right")
        else:
            table.add_column(column)
    for row in data:
        table.add_row(*[_fmt(row.get(col)) for col in columns])
    console.print(table)


def _display_nota(nota: NotaEntrada) -> None:
    _display_table(resumo_nota(nota), title=f"Nota {nota.id}")

    produtos = Table(title="Produtos", box=box.ROUNDED)
    for col in ("id", "tipo", "marca/modelo", "qtd", "custo total", "imei", "cor", "categoria", "conferência"):
        produtos.add_column(col, justify="right" if col in ("qtd", "custo total") else "left")
    for p in nota.produtos:
        conf = "[bold green]Conferido[/]" if p.conferido else "[yellow]Pendente[/]"
        if p.imei_duplicado:
            conf += " [bold red](IMEI duplicado)[/]"
        produtos.add_row(
            p.id,
            p.tipo_produto.value,
            f"{p.marca} {p.modelo}",
            str(p.quantidade),
            _fmt(p.custo_total),
            exibir_imei(p.imei),
            p.cor or "-",
            p.categoria.value if p.categoria else "-",
            conf,
        )
    console.print(produtos)

    timeline = Table(title="Timeline", box=box.SIMPLE)
    for col in ("data/hora", "ator", "ação", "status", "detalhes"):
        timeline.add_column(col)
    for ev in eventos_recentes(nota):
        mudanca = ev.status_novo.value
        if ev.status_anterior is not ev.status_novo:
            mudanca = f"{ev.status_anterior.value} -> {ev.status_novo.value}"
        timeline.add_row(ev.data_hora, ev.ator, ev.acao, mudanca, ev.detalhes)
    console.print(timeline)


@contextmanager
def _tratando_erros():
    """Erros de regra viram uma mensagem acionável e exit code 1."""
    try:
        yield
    except ErroNotaEntrada as e:
        console.print(Panel(str(e), title=f"Erro ({e.tipo})", border_style="red"))
        raise typer.Exit(code=1)


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPTION):
    """Aplica migrações e recria as views auxiliares."""
    apply_migrations(db_path)
    create_views(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


# -----------------------
# nota
# -----------------------

nota_app = typer.Typer(help="Registro, produtos e pagamentos da nota.")
app.add_typer(nota_app, name="nota")


@nota_app.command("criar")
def cmd_nota_criar(
    fornecedor: str = typer.Option(..., help="Fornecedor"),
    responsavel: str = typer.Option(..., help="Responsável pelo registro"),
    tipo_pagamento: str = typer.Option(..., "--tipo-pagamento", help="POS | PARCIAL | ANTECIPADO"),
    data_entrada: Optional[str] = typer.Option(None, "--data-entrada", help="YYYY-MM-DD (padrão: hoje)"),
    forma_pagamento: Optional[str] = typer.Option(None, "--forma", help="DINHEIRO | PIX"),
    pix_banco: Optional[str] = typer.Option(None, "--pix-banco"),
    pix_recebedor: Optional[str] = typer.Option(None, "--pix-recebedor"),
    pix_chave: Optional[str] = typer.Option(None, "--pix-chave"),
    qtd_informada: int = typer.Option(0, "--qtd-informada", help="Quantidade declarada na nota"),
    numero_nota: Optional[str] = typer.Option(None, "--numero", help="Número da nota fiscal"),
    urgente: bool = typer.Option(False, "--urgente"),
    db_path: str = DB_OPTION,
):
    """Registra uma nova nota em status Aberta."""
    with _tratando_erros():
        nota = montar_conferencia(db_path).criar_nota(
            fornecedor=fornecedor,
            data_entrada=data_entrada or datetime.now().date().isoformat(),
            responsavel=responsavel,
            tipo_pagamento=tipo_pagamento,
            forma_pagamento=forma_pagamento,
            pix_banco=pix_banco,
            pix_recebedor=pix_recebedor,
            pix_chave=pix_chave,
            qtd_informada=qtd_informada,
            numero_nota=numero_nota,
            urgente=urgente,
        )
    typer.echo(f">> Nota criada: {nota.id}")
    _display_table(resumo_nota(nota), title=f"Nota {nota.id}")


@nota_app.command("encaminhar")
def cmd_nota_encaminhar(nota_id: str, ator: str = ATOR_OPTION, db_path: str = DB_OPTION):
    """Encaminha a nota aberta para o setor que atua primeiro."""
    with _tratando_erros():
        nota = montar_conferencia(db_path).encaminhar_nota(nota_id, ator)
    typer.echo(f">> Nota {nota.id}: {nota.status.value}")


@nota_app.command("cadastrar")
def cmd_nota_cadastrar(
    nota_id: str,
    tipo: str = typer.Option(..., help="APARELHO | ACESSORIO"),
    marca: str = typer.Option(...),
    modelo: str = typer.Option(...),
    quantidade: int = typer.Option(1),
    custo: str = typer.Option(..., help="Custo unitário (ex.: 1.234,56)"),
    imei: Optional[str] = typer.Option(None),
    cor: Optional[str] = typer.Option(None),
    categoria: Optional[str] = typer.Option(None, help="NOVO | SEMINOVO"),
    bateria: Optional[int] = typer.Option(None, help="Saúde da bateria (0-100)"),
    ator: str = ATOR_OPTION,
    db_path: str = DB_OPTION,
):
    """Cadastra uma linha de produto na nota."""
    produto = {
        "tipo_produto": tipo,
        "marca": marca,
        "modelo": modelo,
        "quantidade": quantidade,
        "custo_unitario": custo,
        "imei": imei,
        "cor": cor,
        "categoria": categoria,
        "saude_bateria": bateria,
    }
    with _tratando_erros():
        nota = montar_conferencia(db_path).cadastrar_produtos(nota_id, [produto], ator)
    typer.echo(f">> Linha cadastrada: {nota.produtos[-1].id} (total cadastrado: {nota.qtd_cadastrada})")


@nota_app.command("importar")
def cmd_nota_importar(
    nota_id: str,
    path: str = typer.Argument(..., help="Caminho do XLSX de PRODUTOS"),
    ator: str = ATOR_OPTION,
    db_path: str = DB_OPTION,
):
    """Cadastra os produtos de uma planilha XLSX na nota."""
    with _tratando_erros():
        info = run_importar_produtos(path, nota_id, ator, db_path=db_path)
    _display_table(info, title="Importação de Produtos")


@nota_app.command("editar")
def cmd_nota_editar(
    nota_id: str,
    linha_id: str,
    quantidade: Optional[int] = typer.Option(None),
    custo: Optional[str] = typer.Option(None, help="Novo custo unitário"),
    ator: str = ATOR_OPTION,
    db_path: str = DB_OPTION,
):
    """Altera quantidade e/ou custo unitário de uma linha pendente."""
    with _tratando_erros():
        linha = montar_conferencia(db_path).editar_linha(
            nota_id, linha_id, ator, quantidade=quantidade, custo_unitario=custo
        )
    typer.echo(f">> {linha.id}: {linha.quantidade} x {_fmt(linha.custo_unitario)} = {_fmt(linha.custo_total)}")


@nota_app.command("pagar")
def cmd_nota_pagar(
    nota_id: str,
    valor: str = typer.Option(..., help="Valor pago"),
    forma: str = typer.Option(..., help="DINHEIRO | PIX"),
    tipo: str = typer.Option("inicial", help="inicial | parcial | final"),
    ator: str = ATOR_OPTION,
    db_path: str = DB_OPTION,
):
    """Registra um pagamento da nota."""
    with _tratando_erros():
        nota = montar_conferencia(db_path).registrar_pagamento(nota_id, valor, forma, ator, tipo=tipo)
    typer.echo(f">> Pago R$ {_fmt(nota.valor_pago)}; status {nota.status.value}; atuador {nota.atuador.value}")


@nota_app.command("mostrar")
def cmd_nota_mostrar(
    nota_id: str,
    as_json: bool = typer.Option(False, "--json", help="Saída em JSON"),
    db_path: str = DB_OPTION,
):
    """Exibe a nota com produtos e timeline (mais recente primeiro)."""
    apply_migrations(db_path)
    with _tratando_erros():
        nota = NotaRepoSqlite(db_path).obter(nota_id)
    if as_json:
        _print_json(nota.para_dict())
    else:
        _display_nota(nota)


@nota_app.command("listar")
def cmd_nota_listar(
    status: Optional[str] = typer.Option(None, help="Filtra por status"),
    db_path: str = DB_OPTION,
):
    """Lista as notas (opcionalmente de um status)."""
    apply_migrations(db_path)
    with _tratando_erros():
        repo = NotaRepoSqlite(db_path)
        if status:
            notas = repo.listar_por_status(enum_de(StatusNota, status, "status"))
        else:
            notas = repo.listar()
    _display_table([resumo_nota(n) for n in notas], title="Notas de Entrada")


# -----------------------
# conferência
# -----------------------

conf_app = typer.Typer(help="Conferência unitária dos produtos.")
app.add_typer(conf_app, name="conferencia")


@conf_app.command("explodir")
def cmd_conf_explodir(nota_id: str, linha_id: str, ator: str = ATOR_OPTION, db_path: str = DB_OPTION):
    """Divide uma linha agrupada em unidades."""
    with _tratando_erros():
        unidades = montar_conferencia(db_path).explodir_linha(nota_id, linha_id, ator)
    typer.echo(f">> {linha_id} explodida em {len(unidades)} unidade(s): {', '.join(u.id for u in unidades)}")


@conf_app.command("agrupar")
def cmd_conf_agrupar(nota_id: str, linha_pai_id: str, ator: str = ATOR_OPTION, db_path: str = DB_OPTION):
    """Recompõe as unidades explodidas de uma linha."""
    with _tratando_erros():
        linha = montar_conferencia(db_path).agrupar_linhas(nota_id, linha_pai_id, ator)
    typer.echo(f">> {linha.id} agrupada com quantidade {linha.quantidade}")


@conf_app.command("campos")
def cmd_conf_campos(
    nota_id: str,
    linha_id: str,
    imei: str = typer.Option(...),
    cor: str = typer.Option(...),
    categoria: str = typer.Option(..., help="NOVO | SEMINOVO"),
    bateria: Optional[int] = typer.Option(None, help="Saúde da bateria (0-100)"),
    ator: str = ATOR_OPTION,
    db_path: str = DB_OPTION,
):
    """Informa IMEI, cor e categoria de um aparelho unitário."""
    with _tratando_erros():
        res = montar_conferencia(db_path).informar_campos(
            nota_id, linha_id, ator, imei=imei, cor=cor, categoria=categoria, saude_bateria=bateria
        )
    if res.duplicado:
        console.print(Panel(
            f"IMEI já existe em {res.local_existente}. A linha não poderá ser conferida até ser corrigida.",
            title="IMEI duplicado", border_style="yellow",
        ))
    else:
        typer.echo(f">> Campos gravados em {linha_id}")


@conf_app.command("confirmar")
def cmd_conf_confirmar(
    nota_id: str,
    linha_ids: List[str] = typer.Argument(..., help="Linhas a conferir"),
    ator: str = ATOR_OPTION,
    db_path: str = DB_OPTION,
):
    """Marca as linhas como conferidas."""
    with _tratando_erros():
        nota = montar_conferencia(db_path).confirmar_conferencia(nota_id, linha_ids, ator)
    typer.echo(f">> Conferido {nota.qtd_conferida}/{nota.qtd_cadastrada}; status {nota.status.value}")


@conf_app.command("migrar")
def cmd_conf_migrar(nota_id: str, ator: str = ATOR_OPTION, db_path: str = DB_OPTION):
    """Envia os aparelhos conferidos ao estoque (Novo) e aos pendentes (Seminovo)."""
    with _tratando_erros():
        res = montar_conferencia(db_path).migrar_conferidos_por_categoria(nota_id, ator)
    typer.echo(f">> Migrados: {res.novos} novo(s), {res.seminovos} seminovo(s)")


# -----------------------
# triagem e reparo
# -----------------------

@app.command("triagem")
def cmd_triagem(
    nota_id: str,
    decisoes_path: str = typer.Argument(..., help="JSON: lista de {produto_id, caminho, motivo_defeito, creditar}"),
    ator: str = ATOR_OPTION,
    db_path: str = DB_OPTION,
):
    """Aplica as decisões de triagem e finaliza a nota."""
    with _tratando_erros():
        try:
            with open(decisoes_path, "r", encoding="utf-8") as f:
                decisoes = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ErroValidacao(f"Arquivo de decisões inválido: {e}", nota_id=nota_id, campo="decisoes") from e
        if not isinstance(decisoes, list):
            raise ErroValidacao("O arquivo de decisões deve conter uma lista", nota_id=nota_id, campo="decisoes")
        res = montar_triagem(db_path).executar(nota_id, decisoes, ator)
    out = {
        "nota_id": res.nota.id,
        "status": res.nota.status.value,
        "verdes": len(res.verdes),
        "lote_reparo": res.lote_reparo.id if res.lote_reparo else None,
        "amarelos": len(res.lote_reparo.itens) if res.lote_reparo else 0,
        "nota_credito": res.nota_credito.id if res.nota_credito else None,
        "valor_credito": res.nota_credito.valor if res.nota_credito else None,
    }
    _display_table(out, title="Triagem Concluída")


reparo_app = typer.Typer(help="Acompanhamento de lotes de reparo.")
app.add_typer(reparo_app, name="reparo")


@reparo_app.command("custo")
def cmd_reparo_custo(
    lote_id: str,
    produto_id: str,
    custo: float = typer.Argument(..., help="Custo do reparo"),
    db_path: str = DB_OPTION,
):
    """Atualiza o custo de reparo de um item do lote."""
    apply_migrations(db_path)
    with _tratando_erros():
        lote = AssistenciaSqlite(db_path).atualizar_custo_reparo(lote_id, produto_id, custo)
    typer.echo(f">> Lote {lote.id}: custo total de reparos R$ {_fmt(lote.custo_total_reparos())}")


# -----------------------
# consultas
# -----------------------

@app.command("imei")
def cmd_imei(
    imei: str,
    excluir_nota: Optional[str] = typer.Option(None, "--excluir-nota", help="Ignora as linhas desta nota"),
    db_path: str = DB_OPTION,
):
    """Verifica se um IMEI já existe em outra nota ou no estoque."""
    res = montar_verificador(db_path).verificar(imei, excluir_nota_id=excluir_nota)
    if res.duplicado:
        typer.echo(f"DUPLICADO: {res.local_existente}")
        raise typer.Exit(code=1)
    typer.echo("OK: IMEI disponível")


@app.command("alertas")
def cmd_alertas(db_path: str = DB_OPTION):
    """Lista os alertas das notas em andamento."""
    _display_table(relatorio_alertas(db_path=db_path), title="Alertas")


rel_app = typer.Typer(help="Relatórios de notas de entrada")
app.add_typer(rel_app, name="rel")


@rel_app.command("pendentes")
def rel_pendentes(db_path: str = DB_OPTION):
    """Notas ainda não finalizadas."""
    _display_table(relatorio_notas_pendentes(db_path=db_path), title="Notas Pendentes")


@rel_app.command("status")
def rel_status(
    status: Optional[str] = typer.Option(None, help="Status a detalhar"),
    db_path: str = DB_OPTION,
):
    """Contagem de notas por status (ou as notas de um status)."""
    with _tratando_erros():
        res = relatorio_notas_por_status(status=status, db_path=db_path)
    _display_table(res, title="Notas por Status")


@rel_app.command("progresso")
def rel_progresso(nota_id: str, db_path: str = DB_OPTION):
    """Progresso de conferência de uma nota."""
    with _tratando_erros():
        res = relatorio_progresso(nota_id, db_path=db_path)
    pendentes = res.pop("pendentes")
    _display_table(res, title=f"Progresso {nota_id}")
    if pendentes:
        console.print(f"[dim]Linhas pendentes: {', '.join(pendentes)}[/dim]")


@rel_app.command("abatimento")
def rel_abatimento(lote_id: str, db_path: str = DB_OPTION):
    """Valor líquido da nota após os custos de reparo."""
    with _tratando_erros():
        res = relatorio_abatimento(lote_id, db_path=db_path)
    _display_table(res, title=f"Abatimento {lote_id}")
    if res["alerta_critico"]:
        console.print("[bold red]Custo de reparo acima do limite crítico[/]")


@rel_app.command("destino")
def rel_destino(db_path: str = DB_OPTION):
    """Aparelhos migrados por nota e destino."""
    _display_table(relatorio_estoque_destino(db_path=db_path), title="Estoque por Destino")


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
