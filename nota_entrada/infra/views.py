# nota_entrada/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_notas_resumo:     uma linha por nota com contadores e percentual conferido.
- vw_notas_pendentes:  notas ainda não finalizadas (inclui as com divergência).
- vw_estoque_destino:  aparelhos migrados por nota e destino (Estoque/Pendentes).
- vw_lotes_reparo:     lotes de reparo com quantidade de itens e custo acumulado.

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
- Um conjunto de índices úteis também é criado, caso não existam.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        c.executescript(
            """
            DROP VIEW IF EXISTS vw_notas_resumo;
            CREATE VIEW vw_notas_resumo AS
            SELECT
                id,
                fornecedor,
                status,
                atuador,
                tipo_pagamento,
                qtd_informada,
                qtd_cadastrada,
                qtd_conferida,
                CASE WHEN qtd_cadastrada > 0
                     THEN ROUND(qtd_conferida * 100.0 / qtd_cadastrada, 0)
                     ELSE 0 END AS percentual_conferido,
                valor_total,
                valor_pago,
                urgente,
                date(data_criacao) AS data_criacao
            FROM nota_entrada;

            DROP VIEW IF EXISTS vw_notas_pendentes;
            CREATE VIEW vw_notas_pendentes AS
            SELECT *
            FROM vw_notas_resumo
            WHERE status <> 'Finalizada';

            DROP VIEW IF EXISTS vw_estoque_destino;
            CREATE VIEW vw_estoque_destino AS
            SELECT
                nota_id,
                destino,
                COUNT(*)                AS quantidade,
                COALESCE(SUM(custo), 0) AS custo_total
            FROM estoque_aparelho
            GROUP BY nota_id, destino;

            DROP VIEW IF EXISTS vw_lotes_reparo;
            CREATE VIEW vw_lotes_reparo AS
            SELECT
                l.id,
                l.nota_id,
                l.fornecedor,
                l.valor_original_nota,
                COUNT(i.produto_id)              AS itens,
                COALESCE(SUM(i.custo_reparo), 0) AS custo_total_reparos
            FROM lote_reparo l
            LEFT JOIN lote_reparo_item i ON i.lote_id = l.id
            GROUP BY l.id;
            """
        )

        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_nota_status      ON nota_entrada(status);
            CREATE INDEX IF NOT EXISTS idx_nota_fornecedor  ON nota_entrada(fornecedor);
            CREATE INDEX IF NOT EXISTS idx_estoque_imei     ON estoque_aparelho(imei);
            CREATE INDEX IF NOT EXISTS idx_estoque_nota     ON estoque_aparelho(nota_id);
            CREATE INDEX IF NOT EXISTS idx_credito_forn     ON nota_credito(fornecedor);
            """
        )
