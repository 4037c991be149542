"""
Reconciliação de quantidades da nota.

Os contadores são estado derivado, recalculado após toda mutação em
``produtos``:

    qtd_cadastrada = soma de quantidade de todas as linhas
    qtd_conferida  = soma de quantidade das linhas conferidas

Invariante: ``qtd_conferida <= qtd_cadastrada``.
"""

from __future__ import annotations

from nota_entrada.domain.models import NotaEntrada


def recalcular_quantidades(nota: NotaEntrada) -> None:
    nota.qtd_cadastrada = sum(p.quantidade for p in nota.produtos)
    nota.qtd_conferida = sum(p.quantidade for p in nota.produtos if p.conferido)


def invariantes_ok(nota: NotaEntrada) -> bool:
    return nota.qtd_conferida <= nota.qtd_cadastrada


def reconciliar(nota: NotaEntrada) -> bool:
    """Recalcula os contadores e retorna se o invariante se mantém."""
    recalcular_quantidades(nota)
    return invariantes_ok(nota)


def conferencia_completa(nota: NotaEntrada) -> bool:
    return nota.qtd_cadastrada > 0 and nota.qtd_conferida == nota.qtd_cadastrada
