# nota_entrada/config.py
"""
Configurações globais e valores padrão do fluxo de notas de entrada.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("NOTA_ENTRADA_DB", os.path.join(os.getcwd(), "notas_entrada.db"))

# Diretório dos arquivos de log
LOGS_DIR = os.environ.get("NOTA_ENTRADA_LOGS", os.path.join(os.getcwd(), "logs"))


@dataclass
class DefaultConfig:
    """Valores padrão para as regras de alerta e abatimento."""
    percentual_reparo_critico: float = 15.0  # acima disso o lote de reparo é crítico
    dias_conferencia_parada: int = 5  # conferência parcial sem movimento
    dias_status_critico: int = 3  # nota parada aguardando financeiro / com divergência
    tolerancia_divergencia: float = 0.0001  # 0,01% do valor da nota


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
