# nota_entrada/usecases/verificar_imei.py
"""
UC: Verificar unicidade de IMEI.

Varre as linhas de todas as outras notas e o estoque vendável. A
comparação é feita sempre sobre o IMEI normalizado (somente dígitos).
A verificação é síncrona e não altera nenhum estado.
"""

from __future__ import annotations

from typing import Optional

from nota_entrada.adapters.parsers import normalizar_imei
from nota_entrada.domain.models import ResultadoImei
from nota_entrada.domain.portas import EstoqueGateway, NotaRepo
from nota_entrada.infra.logger import log_system_event


class VerificadorImei:
    def __init__(self, notas: NotaRepo, estoque: EstoqueGateway):
        self.notas = notas
        self.estoque = estoque

    def verificar(
        self,
        imei: str,
        excluir_nota_id: Optional[str] = None,
        excluir_linha_id: Optional[str] = None,
    ) -> ResultadoImei:
        """
        Retorna ``ResultadoImei(duplicado, local_existente)``.

        ``excluir_nota_id`` ignora a nota inteira (uso a partir da própria
        nota); ``excluir_linha_id`` ignora apenas a linha sendo editada.
        """
        alvo = normalizar_imei(imei)
        if not alvo:
            return ResultadoImei(duplicado=False)

        for nota in self.notas.listar():
            if nota.id == excluir_nota_id:
                continue
            for p in nota.produtos:
                # linha marcada como duplicada não é dona do IMEI
                if p.id == excluir_linha_id or p.imei_duplicado:
                    continue
                if normalizar_imei(p.imei) == alvo:
                    local = f"Nota {nota.id} / linha {p.id}"
                    log_system_event("imei_duplicado", {"imei": alvo, "local": local}, level="warning")
                    return ResultadoImei(duplicado=True, local_existente=local)

        if self.estoque.existe_imei(alvo):
            log_system_event("imei_duplicado", {"imei": alvo, "local": "Estoque"}, level="warning")
            return ResultadoImei(duplicado=True, local_existente="Estoque")

        return ResultadoImei(duplicado=False)
