# nota_entrada/infra/logger.py
"""
Sistema de logging para o fluxo de notas de entrada.

Este módulo configura e fornece loggers para registrar todas as operações
críticas do fluxo: transações dos casos de uso, eventos de conferência,
triagem, operações no banco de dados e eventos de sistema.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from nota_entrada.config import LOGS_DIR as _LOGS_DIR


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = False
# Flag global para habilitar/desabilitar prints/output
ENABLE_OUTPUT = False

def print_system(*args, **kwargs):
    """Print controlado pelo ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)

# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    O arquivo só é criado na primeira mensagem emitida (``delay=True``).

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Remove handlers anteriores (reconfiguração idempotente)
    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger

LOGS_DIR = Path(_LOGS_DIR)

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "conferencia": LOGS_DIR / "conferencia.log",
    "triagem": LOGS_DIR / "triagem.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
}

# Loggers específicos para cada operação
transaction_logger = setup_logger('nota_entrada.transactions', str(LOG_FILES["transactions"]))
conferencia_logger = setup_logger('nota_entrada.conferencia', str(LOG_FILES["conferencia"]))
triagem_logger = setup_logger('nota_entrada.triagem', str(LOG_FILES["triagem"]))
database_logger = setup_logger('nota_entrada.database', str(LOG_FILES["database"]))
system_logger = setup_logger('nota_entrada.system', str(LOG_FILES["system"]))

def _ativo() -> bool:
    return ENABLE_LOGGING or ENABLE_OUTPUT

def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Caso de uso executado (criar_nota, confirmar_conferencia, ...)
        data: Dados da transação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not _ativo():
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")

def log_conferencia(action: str, nota_id: str, linhas: Any = None, **kwargs) -> None:
    """
    Log específico para operações de conferência.

    Args:
        action: Ação realizada (explodir, agrupar, campos, confirmar, migrar)
        nota_id: Nota afetada
        linhas: Linhas envolvidas (opcional)
        **kwargs: Dados adicionais
    """
    if not _ativo():
        return
    log_data = {"action": action, "nota_id": nota_id, "linhas": linhas, **kwargs}
    conferencia_logger.info(f"CONFERENCIA_{action.upper()}: {log_data}")

def log_triagem(action: str, nota_id: str, **kwargs) -> None:
    """Log específico para a triagem pós-conferência."""
    if not _ativo():
        return
    log_data = {"action": action, "nota_id": nota_id, **kwargs}
    triagem_logger.info(f"TRIAGEM_{action.upper()}: {log_data}")

def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log específico para operações no banco de dados.

    Args:
        table: Nome da tabela
        operation: Operação SQL (INSERT, UPDATE, UPSERT, SELECT)
        affected_rows: Número de linhas afetadas
        **kwargs: Dados adicionais
    """
    if not _ativo():
        return
    log_data = {"table": table, "operation": operation, "affected_rows": affected_rows, **kwargs}
    database_logger.info(f"DB_{operation}: {log_data}")

def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not _ativo():
        return
    log_data = {"event": event, "details": details or {}, "at": datetime.now().isoformat()}
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")

def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Log para operações de arquivo (importação de planilhas de produtos).

    Args:
        operation: Tipo de operação (import, export)
        file_path: Caminho do arquivo
        rows_processed: Número de linhas processadas
        **kwargs: Dados adicionais
    """
    if not _ativo():
        return
    log_data = {"operation": operation, "file_path": file_path, "rows_processed": rows_processed, **kwargs}
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")

def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (transactions, conferencia, triagem, database, system)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string (None se o logging estiver desligado)
    """
    if not _ativo():
        return None

    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
            recent_lines = all_lines[-lines:] if len(all_lines) > lines else all_lines
            return ''.join(recent_lines)
    except OSError as e:
        return f"Erro ao ler log {log_type}: {str(e)}"
