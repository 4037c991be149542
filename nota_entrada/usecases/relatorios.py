# nota_entrada/usecases/relatorios.py
"""
Relatórios do fluxo de notas de entrada:
- notas pendentes (não finalizadas)
- notas por status
- progresso/resumo de uma nota
- alertas das notas em andamento
- abatimento de um lote de reparo
- aparelhos migrados por destino
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from nota_entrada.config import DB_PATH, DEFAULTS
from nota_entrada.domain.erros import ErroValidacao
from nota_entrada.domain.formulas import calcular_abatimento, progresso_conferencia
from nota_entrada.domain.models import NotaEntrada, StatusNota
from nota_entrada.domain.policies import alertas_nota
from nota_entrada.infra.db import connect, rows_to_dicts
from nota_entrada.infra.logger import log_database_operation, log_system_event, system_logger
from nota_entrada.infra.migrations import apply_migrations
from nota_entrada.infra.repositories import AssistenciaSqlite, NotaRepoSqlite
from nota_entrada.infra.views import create_views
from nota_entrada.usecases.validacao import enum_de


# ----------------------
# util
# ----------------------

def _preparar(db_path: str) -> None:
    apply_migrations(db_path)
    create_views(db_path)
    log_database_operation("views", "CREATE", 0)


def resumo_nota(nota: NotaEntrada, agora: Optional[datetime] = None) -> Dict[str, Any]:
    """Resumo de uma nota (sem acesso ao banco)."""
    return {
        "id": nota.id,
        "fornecedor": nota.fornecedor,
        "status": nota.status.value,
        "atuador": nota.atuador.value,
        "tipo_pagamento": nota.tipo_pagamento.value,
        "qtd_informada": nota.qtd_informada,
        "qtd_cadastrada": nota.qtd_cadastrada,
        "qtd_conferida": nota.qtd_conferida,
        "progresso": progresso_conferencia(nota.qtd_conferida, nota.qtd_cadastrada),
        "valor_total": nota.valor_total(),
        "valor_conferido": nota.valor_conferido(),
        "valor_pago": nota.valor_pago,
        "valor_pendente": nota.valor_pendente(),
        "alertas": len(alertas_nota(nota, agora=agora)),
    }


# ----------------------
# 1) Notas pendentes / por status
# ----------------------

def relatorio_notas_pendentes(db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Notas ainda não finalizadas, urgentes primeiro e depois as mais antigas."""
    log_system_event("relatorio_notas_pendentes_start", {"db_path": db_path})
    _preparar(db_path)
    with connect(db_path) as c:
        rows = rows_to_dicts(c.execute(
            "SELECT * FROM vw_notas_pendentes ORDER BY urgente DESC, data_criacao, id"
        ))
    log_database_operation("vw_notas_pendentes", "SELECT", len(rows))
    return rows


def relatorio_notas_por_status(status: Any = None, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Sem ``status``: contagem por status. Com ``status``: as notas nesse status."""
    _preparar(db_path)
    with connect(db_path) as c:
        if status is None:
            rows = rows_to_dicts(c.execute(
                """
                SELECT status, COUNT(*) AS quantidade, COALESCE(SUM(valor_total), 0) AS valor
                FROM vw_notas_resumo
                GROUP BY status
                ORDER BY status
                """
            ))
        else:
            st = enum_de(StatusNota, status, "status")
            rows = rows_to_dicts(c.execute(
                "SELECT * FROM vw_notas_resumo WHERE status = ? ORDER BY id", (st.value,)
            ))
    log_database_operation("vw_notas_resumo", "SELECT", len(rows), status=str(status))
    return rows


# ----------------------
# 2) Progresso de uma nota
# ----------------------

def relatorio_progresso(nota_id: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    apply_migrations(db_path)
    nota = NotaRepoSqlite(db_path).obter(nota_id)
    out = resumo_nota(nota)
    out["pendentes"] = [p.id for p in nota.produtos if not p.conferido]
    system_logger.info(f"REPORT_PROGRESSO: {nota_id} {out['progresso']}%")
    return out


# ----------------------
# 3) Alertas
# ----------------------

def relatorio_alertas(agora: Optional[datetime] = None, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Alertas de todas as notas não finalizadas."""
    log_system_event("relatorio_alertas_start", {"db_path": db_path})
    apply_migrations(db_path)
    notas = NotaRepoSqlite(db_path).listar(lambda n: n.status is not StatusNota.FINALIZADA)
    out: List[Dict[str, Any]] = []
    for nota in notas:
        for alerta in alertas_nota(nota, agora=agora, config=DEFAULTS):
            out.append({
                "nota_id": nota.id,
                "fornecedor": nota.fornecedor,
                "status": nota.status.value,
                "tipo": alerta.tipo,
                "mensagem": alerta.mensagem,
            })
    log_system_event("relatorio_alertas_success", {"notas": len(notas), "alertas": len(out)})
    return out


# ----------------------
# 4) Abatimento de lote de reparo
# ----------------------

def relatorio_abatimento(lote_id: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Valor líquido da nota após os custos de reparo do lote."""
    apply_migrations(db_path)
    lote = AssistenciaSqlite(db_path).obter_lote(lote_id)
    if lote is None:
        raise ErroValidacao(f"Lote {lote_id} não encontrado", campo="lote_id")
    ab = calcular_abatimento(
        lote.valor_original_nota,
        lote.custo_total_reparos(),
        limite_critico=DEFAULTS.percentual_reparo_critico,
    )
    if ab.alerta_critico:
        log_system_event(
            "lote_reparo_critico",
            {"lote_id": lote_id, "percentual": ab.percentual_reparo},
            level="warning",
        )
    return {
        "lote_id": lote.id,
        "nota_id": lote.nota_id,
        "fornecedor": lote.fornecedor,
        "itens": len(lote.itens),
        "valor_nota": ab.valor_nota,
        "custo_reparos": ab.custo_reparos,
        "valor_liquido": ab.valor_liquido,
        "percentual_reparo": ab.percentual_reparo,
        "alerta_critico": ab.alerta_critico,
    }


# ----------------------
# 5) Aparelhos migrados por destino
# ----------------------

def relatorio_estoque_destino(db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    _preparar(db_path)
    with connect(db_path) as c:
        rows = rows_to_dicts(c.execute("SELECT * FROM vw_estoque_destino ORDER BY nota_id, destino"))
    log_database_operation("vw_estoque_destino", "SELECT", len(rows))
    return rows
