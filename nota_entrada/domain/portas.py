"""
Interfaces dos colaboradores externos do fluxo de notas.

Os casos de uso recebem essas dependências no construtor; as implementações
concretas (SQLite e memória) ficam em ``nota_entrada.infra``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol

from nota_entrada.domain.models import LoteReparo, NotaCredito, NotaEntrada, ProdutoNota


class NotaRepo(Protocol):
    def obter(self, nota_id: str) -> NotaEntrada:
        """Retorna uma cópia da nota ou levanta ``NotaNaoEncontrada``."""
        ...

    def salvar(self, nota: NotaEntrada) -> None: ...

    def listar(self, filtro: Optional[Callable[[NotaEntrada], bool]] = None) -> List[NotaEntrada]: ...


class EstoqueGateway(Protocol):
    def existe_imei(self, imei: str) -> bool: ...

    def receber_migracao(self, nota_id: str, novos: List[ProdutoNota], seminovos: List[ProdutoNota]) -> None:
        """Novos vão para o estoque vendável, seminovos para aparelhos pendentes.

        Deve ser idempotente por id de produto.
        """
        ...


class FinanceiroGateway(Protocol):
    def receber_unidades(self, nota_id: str, itens: List[Dict[str, Any]]) -> None:
        """Itens ``{produto_id, imei, custo_total}`` liberados para venda.

        Deve ser idempotente por id de produto.
        """
        ...

    def estornar_unidades(self, nota_id: str, produto_ids: List[str]) -> None: ...

    def registrar_nota_credito(self, nota_credito: NotaCredito) -> None: ...

    def cancelar_nota_credito(self, nota_credito_id: str) -> None: ...

    def creditos_por_fornecedor(self, fornecedor: str) -> List[NotaCredito]: ...


class AssistenciaGateway(Protocol):
    def receber_lote(self, lote: LoteReparo) -> None: ...

    def cancelar_lote(self, lote_id: str) -> None: ...

    def obter_lote(self, lote_id: str) -> Optional[LoteReparo]: ...

    def atualizar_custo_reparo(self, lote_id: str, produto_id: str, custo: float) -> LoteReparo: ...
