# nota_entrada/usecases/triagem.py
"""
UC: Triagem pós-conferência.

Com a nota em ``CONFERENCIA_CONCLUIDA``, cada linha conferida recebe uma
decisão:
- Verde   -> unidade liberada ao financeiro (disponível para venda);
- Amarelo -> unidade com defeito, agrupada em um único lote de reparo
             enviado à assistência.

Opcionalmente (política plugável) é emitida uma nota de crédito ao
fornecedor com o custo das unidades amarelas marcadas para crédito.

Obs.:
- Todas as validações acontecem antes de qualquer chamada aos
  colaboradores; uma decisão inválida não deixa nenhum efeito.
- Uma falha durante a entrega aos colaboradores desfaz as entregas já
  feitas; a nota só é gravada como finalizada depois de todas elas.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from nota_entrada.domain.erros import ErroValidacao, RegraNegocioViolada
from nota_entrada.domain.formulas import soma_custos
from nota_entrada.domain.models import (
    Atuador,
    CaminhoTriagem,
    Categoria,
    DecisaoTriagem,
    ItemReparo,
    LoteReparo,
    NotaCredito,
    NotaEntrada,
    ProdutoNota,
    ResultadoTriagem,
    StatusNota,
)
from nota_entrada.domain.numeracao import GeradorIds
from nota_entrada.domain.policies import Acao, PoliticaCredito, credito_pagamento_antecipado, exigir_acao
from nota_entrada.domain.portas import AssistenciaGateway, FinanceiroGateway, NotaRepo
from nota_entrada.domain.timeline import AcaoTimeline, registrar_evento
from nota_entrada.infra.logger import log_system_event, log_transaction, log_triagem, print_system
from nota_entrada.usecases.validacao import enum_de


DecisaoEntrada = Union[DecisaoTriagem, Dict[str, Any]]


def _decisao(d: DecisaoEntrada, nota_id: str) -> DecisaoTriagem:
    if isinstance(d, DecisaoTriagem):
        return d
    produto_id = str(d.get("produto_id") or "").strip()
    if not produto_id:
        raise ErroValidacao("Decisão sem produto_id", nota_id=nota_id, campo="produto_id")
    caminho = enum_de(CaminhoTriagem, d.get("caminho"), "caminho", nota_id=nota_id, linha_id=produto_id)
    return DecisaoTriagem.de_dict({**d, "produto_id": produto_id, "caminho": caminho.value})


class TriagemNota:
    def __init__(
        self,
        notas: NotaRepo,
        financeiro: FinanceiroGateway,
        assistencia: AssistenciaGateway,
        ids: GeradorIds,
        politica_credito: PoliticaCredito = credito_pagamento_antecipado,
        relogio: Callable[[], datetime] = datetime.now,
    ):
        self.notas = notas
        self.financeiro = financeiro
        self.assistencia = assistencia
        self.ids = ids
        self.politica_credito = politica_credito
        self.relogio = relogio

    def _validar(self, nota: NotaEntrada, decisoes: List[DecisaoTriagem]) -> Dict[str, ProdutoNota]:
        """Confere o conjunto de decisões contra as linhas conferidas da nota."""
        conferidos = {p.id: p for p in nota.conferidos()}
        vistos = set()
        for d in decisoes:
            if d.produto_id not in conferidos:
                raise ErroValidacao(
                    f"Produto {d.produto_id} não é uma linha conferida da nota",
                    nota_id=nota.id, linha_id=d.produto_id, campo="produto_id",
                )
            if d.produto_id in vistos:
                raise ErroValidacao(
                    f"Mais de uma decisão para {d.produto_id}",
                    nota_id=nota.id, linha_id=d.produto_id, campo="produto_id",
                )
            vistos.add(d.produto_id)
        faltando = [pid for pid in conferidos if pid not in vistos]
        if faltando:
            raise ErroValidacao(
                f"Sem decisão de triagem para: {', '.join(faltando)}",
                nota_id=nota.id, linha_id=faltando[0], campo="caminho",
            )

        for d in decisoes:
            p = conferidos[d.produto_id]
            if p.categoria is Categoria.NOVO and d.caminho is CaminhoTriagem.AMARELO:
                raise RegraNegocioViolada(
                    "Aparelho Novo só pode seguir pelo caminho Verde",
                    nota_id=nota.id, linha_id=p.id, campo="caminho",
                )

        sem_imei = [p.id for p in nota.produtos if p.is_aparelho and not p.imei]
        if sem_imei:
            raise ErroValidacao(
                f"IMEI ausente em: {', '.join(sem_imei)}",
                nota_id=nota.id, linha_id=sem_imei[0], campo="imei",
            )

        for d in decisoes:
            if d.caminho is CaminhoTriagem.AMARELO and not (d.motivo_defeito or "").strip():
                raise ErroValidacao(
                    "Motivo do defeito obrigatório no caminho Amarelo",
                    nota_id=nota.id, linha_id=d.produto_id, campo="motivo_defeito",
                )
        return conferidos

    def _entregar(
        self,
        nota: NotaEntrada,
        verdes: List[Dict[str, Any]],
        lote: Optional[LoteReparo],
        credito: Optional[NotaCredito],
    ) -> None:
        """
        Entrega os resultados aos colaboradores e grava a nota (tudo ou nada).

        Se qualquer passo falhar, as entregas já feitas são desfeitas em
        ordem inversa antes de propagar o erro.
        """
        desfazer: List[Callable[[], None]] = []
        try:
            if verdes:
                self.financeiro.receber_unidades(nota.id, verdes)
                ids = [v["produto_id"] for v in verdes]
                desfazer.append(lambda: self.financeiro.estornar_unidades(nota.id, ids))
            if lote:
                self.assistencia.receber_lote(lote)
                desfazer.append(lambda: self.assistencia.cancelar_lote(lote.id))
            if credito:
                self.financeiro.registrar_nota_credito(credito)
                desfazer.append(lambda: self.financeiro.cancelar_nota_credito(credito.id))
            self.notas.salvar(nota)
        except Exception as e:
            log_system_event(
                "triagem_compensacao", {"nota_id": nota.id, "passos": len(desfazer), "error": str(e)},
                level="warning",
            )
            for acao in reversed(desfazer):
                acao()
            raise

    def executar(self, nota_id: str, decisoes: Sequence[DecisaoEntrada], ator: str) -> ResultadoTriagem:
        dados = {"nota_id": nota_id, "decisoes": len(decisoes or [])}
        log_triagem("start", nota_id, decisoes=dados["decisoes"])
        try:
            nota = self.notas.obter(nota_id)
            exigir_acao(nota, Acao.TRIAR)
            lista = [_decisao(d, nota_id) for d in decisoes or []]
            conferidos = self._validar(nota, lista)

            agora = self.relogio().isoformat(timespec="seconds")
            verdes_d = [d for d in lista if d.caminho is CaminhoTriagem.VERDE]
            amarelos_d = [d for d in lista if d.caminho is CaminhoTriagem.AMARELO]

            verdes = [
                {
                    "produto_id": d.produto_id,
                    "imei": conferidos[d.produto_id].imei,
                    "custo_total": conferidos[d.produto_id].custo_total,
                }
                for d in verdes_d
            ]

            lote = None
            if amarelos_d:
                lote = LoteReparo(
                    id=self.ids.proximo_id_lote(),
                    nota_id=nota.id,
                    fornecedor=nota.fornecedor,
                    valor_original_nota=nota.valor_total(),
                    responsavel=ator,
                    criado_em=agora,
                    itens=[
                        ItemReparo(
                            produto_id=d.produto_id,
                            marca=conferidos[d.produto_id].marca,
                            modelo=conferidos[d.produto_id].modelo,
                            imei=conferidos[d.produto_id].imei,
                            motivo_defeito=d.motivo_defeito.strip(),
                        )
                        for d in amarelos_d
                    ],
                )
                nota.lote_reparo_id = lote.id

            credito = None
            para_credito = [conferidos[d.produto_id] for d in amarelos_d if d.creditar]
            if para_credito and self.politica_credito(nota, para_credito):
                credito = NotaCredito(
                    id=self.ids.proximo_id_credito(),
                    fornecedor=nota.fornecedor,
                    valor=soma_custos(p.custo_total for p in para_credito),
                    nota_origem_id=nota.id,
                    emitida_em=agora,
                )
                nota.nota_credito_id = credito.id

            detalhes = f"{len(verdes_d)} verde(s), {len(amarelos_d)} amarelo(s)"
            if lote:
                detalhes += f"; lote {lote.id}"
            if credito:
                detalhes += f"; crédito {credito.id} R$ {credito.valor:.2f}"
            nota.atuador = Atuador.ENCERRADO
            nota.data_finalizacao = agora
            registrar_evento(
                nota, ator, AcaoTimeline.TRIAGEM_CONCLUIDA, detalhes,
                status_novo=StatusNota.FINALIZADA, agora=self.relogio(),
            )
            self._entregar(nota, verdes, lote, credito)

            print_system(f">> Nota {nota.id} finalizada: {detalhes}")
            log_triagem(
                "concluida", nota_id,
                verdes=len(verdes_d), amarelos=len(amarelos_d),
                lote=lote.id if lote else None, credito=credito.valor if credito else None,
            )
            log_transaction("triagem", dados, result=detalhes)
            return ResultadoTriagem(nota=nota, verdes=verdes, lote_reparo=lote, nota_credito=credito)
        except Exception as e:
            log_transaction("triagem", dados, error=str(e))
            log_system_event("triagem_error", {**dados, "error": str(e)}, level="error")
            raise
