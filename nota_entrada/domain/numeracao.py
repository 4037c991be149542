"""
Geração de identificadores estáveis.

Formatos:
    nota            NE-<ano>-nnnnn
    linha           PROD-<nota>-nnn
    unidade         <linha pai>-Unnn   (explosão de linha agrupada)
    lote de reparo  REV-NOTA-nnnnn
    nota de crédito CRED-nnnnn

A única fonte de estado é o contador por chave; a implementação do
contador (memória ou SQLite) é injetada.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict


def formatar_id_nota(ano: int, seq: int) -> str:
    return f"NE-{ano}-{seq:05d}"


def formatar_id_linha(nota_id: str, seq: int) -> str:
    return f"PROD-{nota_id}-{seq:03d}"


def formatar_id_unidade(linha_pai_id: str, seq: int) -> str:
    return f"{linha_pai_id}-U{seq:03d}"


class GeradorIds:
    """Base: subclasses implementam apenas ``_proximo(chave)``."""

    def _proximo(self, chave: str) -> int:
        raise NotImplementedError

    def proximo_id_nota(self, ano: int) -> str:
        return formatar_id_nota(ano, self._proximo(f"nota:{ano}"))

    def proximo_id_linha(self, nota_id: str) -> str:
        return formatar_id_linha(nota_id, self._proximo(f"linha:{nota_id}"))

    def proximo_id_lote(self) -> str:
        return f"REV-NOTA-{self._proximo('lote_reparo'):05d}"

    def proximo_id_credito(self) -> str:
        return f"CRED-{self._proximo('nota_credito'):05d}"


class GeradorIdsMemoria(GeradorIds):
    """Contadores em memória (testes e uso embarcado)."""

    def __init__(self) -> None:
        self._contadores: Dict[str, int] = defaultdict(int)

    def _proximo(self, chave: str) -> int:
        self._contadores[chave] += 1
        return self._contadores[chave]
