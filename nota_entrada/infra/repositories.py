# nota_entrada/infra/repositories.py
"""
Repositórios (DAO) SQLite para notas de entrada e colaboradores.

Classes:
- NotaRepoSqlite
- GeradorIdsSqlite
- EstoqueSqlite
- FinanceiroSqlite
- AssistenciaSqlite

Todas assumem que ``apply_migrations`` já foi executado no banco.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .db import connect, rows_to_dicts
from .logger import log_database_operation
from nota_entrada.domain.erros import ErroValidacao, NotaNaoEncontrada
from nota_entrada.domain.models import (
    ItemReparo,
    LoteReparo,
    NotaCredito,
    NotaEntrada,
    ProdutoNota,
    StatusNota,
)
from nota_entrada.domain.numeracao import GeradorIds


def _agora() -> str:
    return datetime.now().isoformat(timespec="seconds")


# -------------------------
# Notas
# -------------------------

class NotaRepoSqlite:
    """Uma linha por nota; o grafo completo (produtos + timeline) fica em `documento`."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def obter(self, nota_id: str) -> NotaEntrada:
        with connect(self.db_path) as c:
            row = c.execute("SELECT documento FROM nota_entrada WHERE id = ?", (nota_id,)).fetchone()
        if row is None:
            raise NotaNaoEncontrada(f"Nota {nota_id} não encontrada", nota_id=nota_id)
        return NotaEntrada.de_dict(json.loads(row[0]))

    def salvar(self, nota: NotaEntrada) -> None:
        payload = {
            "id": nota.id,
            "fornecedor": nota.fornecedor,
            "status": nota.status.value,
            "tipo_pagamento": nota.tipo_pagamento.value,
            "atuador": nota.atuador.value,
            "qtd_informada": nota.qtd_informada,
            "qtd_cadastrada": nota.qtd_cadastrada,
            "qtd_conferida": nota.qtd_conferida,
            "valor_total": nota.valor_total(),
            "valor_pago": nota.valor_pago,
            "urgente": 1 if nota.urgente else 0,
            "data_criacao": nota.data_criacao,
            "documento": json.dumps(nota.para_dict(), ensure_ascii=False),
        }
        with connect(self.db_path) as c:
            c.execute(
                """
                INSERT INTO nota_entrada
                    (id, fornecedor, status, tipo_pagamento, atuador,
                     qtd_informada, qtd_cadastrada, qtd_conferida,
                     valor_total, valor_pago, urgente, data_criacao, documento)
                VALUES
                    (:id, :fornecedor, :status, :tipo_pagamento, :atuador,
                     :qtd_informada, :qtd_cadastrada, :qtd_conferida,
                     :valor_total, :valor_pago, :urgente, :data_criacao, :documento)
                ON CONFLICT(id) DO UPDATE SET
                    fornecedor=excluded.fornecedor,
                    status=excluded.status,
                    tipo_pagamento=excluded.tipo_pagamento,
                    atuador=excluded.atuador,
                    qtd_informada=excluded.qtd_informada,
                    qtd_cadastrada=excluded.qtd_cadastrada,
                    qtd_conferida=excluded.qtd_conferida,
                    valor_total=excluded.valor_total,
                    valor_pago=excluded.valor_pago,
                    urgente=excluded.urgente,
                    documento=excluded.documento
                """,
                payload,
            )
        log_database_operation("nota_entrada", "UPSERT", 1, id=nota.id, status=nota.status.value)

    def listar(self, filtro: Optional[Callable[[NotaEntrada], bool]] = None) -> List[NotaEntrada]:
        with connect(self.db_path) as c:
            rows = c.execute("SELECT documento FROM nota_entrada ORDER BY id").fetchall()
        notas = [NotaEntrada.de_dict(json.loads(r[0])) for r in rows]
        if filtro is None:
            return notas
        return [n for n in notas if filtro(n)]

    def listar_por_status(self, status: StatusNota) -> List[NotaEntrada]:
        with connect(self.db_path) as c:
            rows = c.execute(
                "SELECT documento FROM nota_entrada WHERE status = ? ORDER BY id", (status.value,)
            ).fetchall()
        return [NotaEntrada.de_dict(json.loads(r[0])) for r in rows]


# -------------------------
# Sequências de ID
# -------------------------

class GeradorIdsSqlite(GeradorIds):
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _proximo(self, chave: str) -> int:
        with connect(self.db_path) as c:
            c.execute(
                """
                INSERT INTO sequencia (chave, valor) VALUES (?, 1)
                ON CONFLICT(chave) DO UPDATE SET valor = valor + 1
                """,
                (chave,),
            )
            return int(c.execute("SELECT valor FROM sequencia WHERE chave = ?", (chave,)).fetchone()[0])


# -------------------------
# Estoque
# -------------------------

DESTINO_ESTOQUE = "Estoque"
DESTINO_PENDENTES = "Pendentes"


class EstoqueSqlite:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def existe_imei(self, imei: str) -> bool:
        with connect(self.db_path) as c:
            row = c.execute("SELECT 1 FROM estoque_aparelho WHERE imei = ? LIMIT 1", (imei,)).fetchone()
        return row is not None

    def receber_migracao(self, nota_id: str, novos: List[ProdutoNota], seminovos: List[ProdutoNota]) -> None:
        rows = [
            self._row(nota_id, p, destino)
            for destino, produtos in ((DESTINO_ESTOQUE, novos), (DESTINO_PENDENTES, seminovos))
            for p in produtos
        ]
        if not rows:
            return
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO estoque_aparelho
                    (produto_id, nota_id, imei, marca, modelo, cor, categoria,
                     saude_bateria, custo, destino, data_entrada)
                VALUES
                    (:produto_id, :nota_id, :imei, :marca, :modelo, :cor, :categoria,
                     :saude_bateria, :custo, :destino, :data_entrada)
                ON CONFLICT(produto_id) DO NOTHING
                """,
                rows,
            )
        log_database_operation("estoque_aparelho", "INSERT_MANY", len(rows), nota_id=nota_id)

    @staticmethod
    def _row(nota_id: str, p: ProdutoNota, destino: str) -> Dict[str, Any]:
        return {
            "produto_id": p.id,
            "nota_id": nota_id,
            "imei": p.imei,
            "marca": p.marca,
            "modelo": p.modelo,
            "cor": p.cor,
            "categoria": p.categoria.value if p.categoria else None,
            "saude_bateria": p.saude_bateria,
            "custo": p.custo_total,
            "destino": destino,
            "data_entrada": _agora(),
        }

    def aparelhos(self, nota_id: Optional[str] = None) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM estoque_aparelho"
        params: tuple = ()
        if nota_id:
            sql += " WHERE nota_id = ?"
            params = (nota_id,)
        with connect(self.db_path) as c:
            return rows_to_dicts(c.execute(sql + " ORDER BY produto_id", params))


# -------------------------
# Financeiro
# -------------------------

class FinanceiroSqlite:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def receber_unidades(self, nota_id: str, itens: List[Dict[str, Any]]) -> None:
        if not itens:
            return
        rows = [{**i, "nota_id": nota_id, "data_repasse": _agora()} for i in itens]
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO repasse_financeiro (produto_id, nota_id, imei, custo_total, data_repasse)
                VALUES (:produto_id, :nota_id, :imei, :custo_total, :data_repasse)
                ON CONFLICT(produto_id) DO NOTHING
                """,
                rows,
            )
        log_database_operation("repasse_financeiro", "INSERT_MANY", len(rows), nota_id=nota_id)

    def estornar_unidades(self, nota_id: str, produto_ids: List[str]) -> None:
        if not produto_ids:
            return
        with connect(self.db_path) as c:
            c.executemany(
                "DELETE FROM repasse_financeiro WHERE nota_id = ? AND produto_id = ?",
                [(nota_id, pid) for pid in produto_ids],
            )
        log_database_operation("repasse_financeiro", "DELETE", len(produto_ids), nota_id=nota_id)

    def registrar_nota_credito(self, nota_credito: NotaCredito) -> None:
        with connect(self.db_path) as c:
            c.execute(
                """
                INSERT INTO nota_credito (id, fornecedor, valor, nota_origem_id, emitida_em)
                VALUES (:id, :fornecedor, :valor, :nota_origem_id, :emitida_em)
                """,
                nota_credito.para_dict(),
            )
        log_database_operation("nota_credito", "INSERT", 1, id=nota_credito.id, valor=nota_credito.valor)

    def cancelar_nota_credito(self, nota_credito_id: str) -> None:
        with connect(self.db_path) as c:
            c.execute("DELETE FROM nota_credito WHERE id = ?", (nota_credito_id,))
        log_database_operation("nota_credito", "DELETE", 1, id=nota_credito_id)

    def creditos_por_fornecedor(self, fornecedor: str) -> List[NotaCredito]:
        with connect(self.db_path) as c:
            rows = rows_to_dicts(c.execute(
                "SELECT id, fornecedor, valor, nota_origem_id, emitida_em FROM nota_credito "
                "WHERE fornecedor = ? ORDER BY id",
                (fornecedor,),
            ))
        return [NotaCredito(**r) for r in rows]

    def unidades(self, nota_id: str) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            return rows_to_dicts(c.execute(
                "SELECT produto_id, imei, custo_total FROM repasse_financeiro WHERE nota_id = ? ORDER BY produto_id",
                (nota_id,),
            ))


# -------------------------
# Assistência
# -------------------------

class AssistenciaSqlite:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def receber_lote(self, lote: LoteReparo) -> None:
        with connect(self.db_path) as c:
            c.execute(
                """
                INSERT INTO lote_reparo (id, nota_id, fornecedor, valor_original_nota, responsavel, criado_em)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (lote.id, lote.nota_id, lote.fornecedor, lote.valor_original_nota, lote.responsavel, lote.criado_em),
            )
            c.executemany(
                """
                INSERT INTO lote_reparo_item
                    (lote_id, produto_id, marca, modelo, imei, motivo_defeito, custo_reparo)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (lote.id, i.produto_id, i.marca, i.modelo, i.imei, i.motivo_defeito, i.custo_reparo)
                    for i in lote.itens
                ],
            )
        log_database_operation("lote_reparo", "INSERT", 1, id=lote.id, itens=len(lote.itens))

    def cancelar_lote(self, lote_id: str) -> None:
        with connect(self.db_path) as c:
            c.execute("DELETE FROM lote_reparo_item WHERE lote_id = ?", (lote_id,))
            c.execute("DELETE FROM lote_reparo WHERE id = ?", (lote_id,))
        log_database_operation("lote_reparo", "DELETE", 1, id=lote_id)

    def obter_lote(self, lote_id: str) -> Optional[LoteReparo]:
        with connect(self.db_path) as c:
            cab = c.execute(
                "SELECT id, nota_id, fornecedor, valor_original_nota, responsavel, criado_em "
                "FROM lote_reparo WHERE id = ?",
                (lote_id,),
            ).fetchone()
            if cab is None:
                return None
            itens = rows_to_dicts(c.execute(
                "SELECT produto_id, marca, modelo, imei, motivo_defeito, custo_reparo "
                "FROM lote_reparo_item WHERE lote_id = ? ORDER BY produto_id",
                (lote_id,),
            ))
        return LoteReparo(**dict(cab), itens=[ItemReparo(**i) for i in itens])

    def atualizar_custo_reparo(self, lote_id: str, produto_id: str, custo: float) -> LoteReparo:
        if custo < 0:
            raise ErroValidacao("Custo de reparo não pode ser negativo", linha_id=produto_id, campo="custo_reparo")
        with connect(self.db_path) as c:
            cur = c.execute(
                "UPDATE lote_reparo_item SET custo_reparo = ? WHERE lote_id = ? AND produto_id = ?",
                (float(custo), lote_id, produto_id),
            )
            if cur.rowcount == 0:
                raise ErroValidacao(
                    f"Item {produto_id} não pertence ao lote {lote_id}", linha_id=produto_id, campo="produto_id"
                )
        log_database_operation("lote_reparo_item", "UPDATE", 1, lote_id=lote_id, produto_id=produto_id)
        return self.obter_lote(lote_id)
