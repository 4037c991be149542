# nota_entrada/infra/memoria.py
"""
Implementações em memória dos repositórios e colaboradores.

Usadas nos testes e em execuções sem banco. Todo objeto entregue ao
chamador é uma cópia profunda: alterar a nota devolvida por ``obter`` não
altera o estado armazenado até que ``salvar`` seja chamado.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Callable, Dict, List, Optional

from nota_entrada.domain.erros import ErroValidacao, NotaNaoEncontrada
from nota_entrada.domain.models import LoteReparo, NotaCredito, NotaEntrada, ProdutoNota


class NotaRepoMemoria:
    def __init__(self) -> None:
        self._notas: Dict[str, NotaEntrada] = {}

    def obter(self, nota_id: str) -> NotaEntrada:
        if nota_id not in self._notas:
            raise NotaNaoEncontrada(f"Nota {nota_id} não encontrada", nota_id=nota_id)
        return deepcopy(self._notas[nota_id])

    def salvar(self, nota: NotaEntrada) -> None:
        self._notas[nota.id] = deepcopy(nota)

    def listar(self, filtro: Optional[Callable[[NotaEntrada], bool]] = None) -> List[NotaEntrada]:
        notas = [deepcopy(n) for n in self._notas.values()]
        if filtro is None:
            return notas
        return [n for n in notas if filtro(n)]


class EstoqueMemoria:
    def __init__(self, imeis: Optional[List[str]] = None) -> None:
        self.aparelhos: Dict[str, Dict[str, Any]] = {}
        self._imeis_externos = set(imeis or [])

    def existe_imei(self, imei: str) -> bool:
        if imei in self._imeis_externos:
            return True
        return any(a["imei"] == imei for a in self.aparelhos.values())

    def receber_migracao(self, nota_id: str, novos: List[ProdutoNota], seminovos: List[ProdutoNota]) -> None:
        for destino, produtos in (("Estoque", novos), ("Pendentes", seminovos)):
            for p in produtos:
                self.aparelhos.setdefault(p.id, {
                    "nota_id": nota_id,
                    "imei": p.imei,
                    "modelo": p.modelo,
                    "destino": destino,
                })

    def contar(self, destino: str) -> int:
        return sum(1 for a in self.aparelhos.values() if a["destino"] == destino)


class FinanceiroMemoria:
    def __init__(self) -> None:
        self.unidades: List[Dict[str, Any]] = []
        self.creditos: List[NotaCredito] = []

    def receber_unidades(self, nota_id: str, itens: List[Dict[str, Any]]) -> None:
        existentes = {u["produto_id"] for u in self.unidades}
        for i in itens:
            if i["produto_id"] not in existentes:
                self.unidades.append({**i, "nota_id": nota_id})
                existentes.add(i["produto_id"])

    def estornar_unidades(self, nota_id: str, produto_ids: List[str]) -> None:
        alvo = set(produto_ids)
        self.unidades = [u for u in self.unidades if not (u["nota_id"] == nota_id and u["produto_id"] in alvo)]

    def registrar_nota_credito(self, nota_credito: NotaCredito) -> None:
        self.creditos.append(nota_credito)

    def cancelar_nota_credito(self, nota_credito_id: str) -> None:
        self.creditos = [c for c in self.creditos if c.id != nota_credito_id]

    def creditos_por_fornecedor(self, fornecedor: str) -> List[NotaCredito]:
        return [c for c in self.creditos if c.fornecedor == fornecedor]


class AssistenciaMemoria:
    def __init__(self) -> None:
        self.lotes: Dict[str, LoteReparo] = {}

    def receber_lote(self, lote: LoteReparo) -> None:
        self.lotes[lote.id] = deepcopy(lote)

    def cancelar_lote(self, lote_id: str) -> None:
        self.lotes.pop(lote_id, None)

    def obter_lote(self, lote_id: str) -> Optional[LoteReparo]:
        lote = self.lotes.get(lote_id)
        return deepcopy(lote) if lote else None

    def atualizar_custo_reparo(self, lote_id: str, produto_id: str, custo: float) -> LoteReparo:
        if custo < 0:
            raise ErroValidacao("Custo de reparo não pode ser negativo", linha_id=produto_id, campo="custo_reparo")
        lote = self.lotes.get(lote_id)
        item = next((i for i in lote.itens if i.produto_id == produto_id), None) if lote else None
        if item is None:
            raise ErroValidacao(
                f"Item {produto_id} não pertence ao lote {lote_id}", linha_id=produto_id, campo="produto_id"
            )
        item.custo_reparo = float(custo)
        return deepcopy(lote)
