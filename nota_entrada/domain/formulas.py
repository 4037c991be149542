"""
Monetary and progress formulas for incoming notes.

These functions compute line totals, conference progress and the
repair abatement suggested to the supplier once a repair batch has
been costed. All functions are pure: they depend solely on their
inputs and do not modify any external state.
"""

from dataclasses import dataclass
from typing import Iterable


def custo_total(quantidade: int, custo_unitario: float) -> float:
    """Return the total cost of a product line.

    Parameters
    ----------
    quantidade: int
        Number of units (>= 1).
    custo_unitario: float
        Unit cost in BRL.

    Returns
    -------
    float
        ``quantidade * custo_unitario`` rounded to cents.
    """
    return round(int(quantidade) * float(custo_unitario), 2)


def soma_custos(custos: Iterable[float]) -> float:
    return round(sum(float(c) for c in custos), 2)


def progresso_conferencia(conferidos: int, cadastrados: int) -> int:
    """Return the conference progress as an integer percentage (0-100).

    A note without registered products has 0% progress.
    """
    if cadastrados <= 0:
        return 0
    return min(100, round(conferidos * 100 / cadastrados))


@dataclass
class Abatimento:
    valor_nota: float
    custo_reparos: float
    valor_liquido: float
    percentual_reparo: float
    alerta_critico: bool


def calcular_abatimento(valor_nota: float, custo_reparos: float, limite_critico: float = 15.0) -> Abatimento:
    """Compute the net note value after repair costs.

    Parameters
    ----------
    valor_nota: float
        Original value of the incoming note.
    custo_reparos: float
        Sum of repair costs of the note's repair batch.
    limite_critico: float
        Repair percentage above which the batch is flagged as critical.

    Returns
    -------
    Abatimento
        Net value, repair percentage and the critical flag
        (``percentual_reparo > limite_critico``).
    """
    percentual = round(custo_reparos * 100 / valor_nota, 4) if valor_nota > 0 else 0.0
    return Abatimento(
        valor_nota=round(valor_nota, 2),
        custo_reparos=round(custo_reparos, 2),
        valor_liquido=round(valor_nota - custo_reparos, 2),
        percentual_reparo=round(percentual, 2),
        alerta_critico=percentual > limite_critico,
    )
