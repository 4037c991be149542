# nota_entrada/usecases/importar_produtos.py
"""
UC: Importar PRODUTOS de uma planilha XLSX para uma nota existente.

A planilha inteira é cadastrada em uma única chamada de
``cadastrar_produtos``: uma linha inválida rejeita o arquivo todo.
"""
from __future__ import annotations

from typing import Any, Dict

from nota_entrada.adapters.planilhas import load_produtos_from_xlsx
from nota_entrada.config import DB_PATH
from nota_entrada.domain.erros import ErroValidacao
from nota_entrada.infra.logger import log_file_operation, log_system_event, log_transaction
from nota_entrada.usecases.servicos import montar_conferencia


def run_importar_produtos(path: str, nota_id: str, ator: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê o XLSX e cadastra as linhas na nota ``nota_id``."""
    log_system_event("importar_produtos_start", {"file_path": path, "nota_id": nota_id})
    log_file_operation("import", path)

    try:
        rows = load_produtos_from_xlsx(path)
        log_file_operation("import", path, rows_processed=len(rows))
        if not rows:
            raise ErroValidacao(f"Planilha sem produtos: {path}", nota_id=nota_id, campo="produtos")

        nota = montar_conferencia(db_path).cadastrar_produtos(nota_id, rows, ator)

        result = {
            "arquivo": path,
            "nota_id": nota.id,
            "linhas_inseridas": len(rows),
            "qtd_cadastrada": nota.qtd_cadastrada,
        }
        log_transaction("importar_produtos", {"file": path, "rows_count": len(rows)}, result=result)
        log_system_event("importar_produtos_success", result)
        return result

    except Exception as e:
        error_msg = str(e)
        log_transaction("importar_produtos", {"file": path, "nota_id": nota_id}, error=error_msg)
        log_system_event("importar_produtos_error", {"file_path": path, "error": error_msg}, level="error")
        raise
