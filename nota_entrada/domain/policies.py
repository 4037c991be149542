"""
Políticas e regras de negócio do fluxo de notas de entrada.

Este módulo contém as tabelas que governam a máquina de estados (atuador
inicial, transições válidas e ações permitidas por status), os alertas
derivados de uma nota e as políticas plugáveis de emissão de nota de
crédito na triagem. Todas as tabelas indexadas por enum são verificadas na
importação: um membro novo sem entrada na tabela quebra o carregamento.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional

from nota_entrada.config import DEFAULTS, DefaultConfig
from nota_entrada.domain.erros import DivergenciaDetectada, TransicaoInvalida
from nota_entrada.domain.models import (
    Atuador,
    NotaEntrada,
    ProdutoNota,
    StatusNota,
    TipoPagamento,
)


def _exaustivo(tabela: Mapping, enum_cls) -> None:
    faltando = [m for m in enum_cls if m not in tabela]
    if faltando:
        raise RuntimeError(f"Tabela sem tratamento para {enum_cls.__name__}: {faltando}")


# -------------------------
# Atuador inicial
# -------------------------

ATUADOR_INICIAL: Dict[TipoPagamento, Atuador] = {
    TipoPagamento.POS: Atuador.ESTOQUE,         # estoque confere antes de qualquer pagamento
    TipoPagamento.PARCIAL: Atuador.FINANCEIRO,  # primeiro pagamento parcial precede o cadastro
    TipoPagamento.ANTECIPADO: Atuador.FINANCEIRO,
}
_exaustivo(ATUADOR_INICIAL, TipoPagamento)


def atuador_inicial(tipo_pagamento: TipoPagamento) -> Atuador:
    """Define quem atua primeiro na nota em função do tipo de pagamento."""
    return ATUADOR_INICIAL[tipo_pagamento]


# Após 100% de conferência, quem assume a nota
ATUADOR_POS_CONFERENCIA: Dict[TipoPagamento, Optional[Atuador]] = {
    TipoPagamento.POS: Atuador.FINANCEIRO,  # pagamento só após a conferência
    TipoPagamento.PARCIAL: Atuador.FINANCEIRO,  # saldo restante
    TipoPagamento.ANTECIPADO: None,  # None = mantém o atuador atual
}
_exaustivo(ATUADOR_POS_CONFERENCIA, TipoPagamento)


# -------------------------
# Transições de status
# -------------------------

TRANSICOES: Dict[StatusNota, FrozenSet[StatusNota]] = {
    StatusNota.ABERTA: frozenset({
        StatusNota.AGUARDANDO_FINANCEIRO,
        StatusNota.AGUARDANDO_ESTOQUE,
        StatusNota.CONFERENCIA_PARCIAL,
        StatusNota.CONFERENCIA_CONCLUIDA,
        StatusNota.COM_DIVERGENCIA,
    }),
    StatusNota.AGUARDANDO_FINANCEIRO: frozenset({
        StatusNota.AGUARDANDO_ESTOQUE,
        StatusNota.COM_DIVERGENCIA,
    }),
    StatusNota.AGUARDANDO_ESTOQUE: frozenset({
        StatusNota.CONFERENCIA_PARCIAL,
        StatusNota.CONFERENCIA_CONCLUIDA,
        StatusNota.COM_DIVERGENCIA,
    }),
    StatusNota.CONFERENCIA_PARCIAL: frozenset({
        StatusNota.CONFERENCIA_CONCLUIDA,
        StatusNota.COM_DIVERGENCIA,
    }),
    StatusNota.CONFERENCIA_CONCLUIDA: frozenset({
        StatusNota.FINALIZADA,
        StatusNota.COM_DIVERGENCIA,
    }),
    StatusNota.FINALIZADA: frozenset(),
    # saída apenas por resolução manual, fora deste fluxo
    StatusNota.COM_DIVERGENCIA: frozenset(),
}
_exaustivo(TRANSICOES, StatusNota)


def pode_transicionar(atual: StatusNota, novo: StatusNota) -> bool:
    """Permanecer no mesmo status é sempre permitido para notas não terminais."""
    if atual == novo:
        return bool(TRANSICOES[atual])
    return novo in TRANSICOES[atual]


def exigir_transicao(nota: NotaEntrada, novo: StatusNota) -> None:
    if not pode_transicionar(nota.status, novo):
        raise TransicaoInvalida(
            f"Transição inválida: {nota.status.value} -> {novo.value}",
            nota_id=nota.id,
            campo="status",
        )


# -------------------------
# Ações permitidas
# -------------------------

class Acao(str, Enum):
    ENCAMINHAR = "encaminhar"
    CADASTRAR_PRODUTOS = "cadastrar_produtos"
    CONFERIR = "conferir"
    PAGAR = "pagar"
    TRIAR = "triar"


_EM_CONFERENCIA = frozenset({
    StatusNota.ABERTA,
    StatusNota.AGUARDANDO_ESTOQUE,
    StatusNota.CONFERENCIA_PARCIAL,
})

STATUS_POR_ACAO: Dict[Acao, FrozenSet[StatusNota]] = {
    Acao.ENCAMINHAR: frozenset({StatusNota.ABERTA}),
    Acao.CADASTRAR_PRODUTOS: _EM_CONFERENCIA,
    Acao.CONFERIR: _EM_CONFERENCIA,
    Acao.PAGAR: frozenset({
        StatusNota.ABERTA,
        StatusNota.AGUARDANDO_FINANCEIRO,
        StatusNota.AGUARDANDO_ESTOQUE,
        StatusNota.CONFERENCIA_PARCIAL,
        StatusNota.CONFERENCIA_CONCLUIDA,
    }),
    Acao.TRIAR: frozenset({StatusNota.CONFERENCIA_CONCLUIDA}),
}
_exaustivo(STATUS_POR_ACAO, Acao)

ATUADOR_POR_ACAO: Dict[Acao, Optional[Atuador]] = {
    Acao.ENCAMINHAR: None,
    Acao.CADASTRAR_PRODUTOS: Atuador.ESTOQUE,
    Acao.CONFERIR: Atuador.ESTOQUE,
    Acao.PAGAR: Atuador.FINANCEIRO,
    Acao.TRIAR: None,
}
_exaustivo(ATUADOR_POR_ACAO, Acao)


def pode_realizar_acao(nota: NotaEntrada, acao: Acao) -> bool:
    if nota.status not in STATUS_POR_ACAO[acao]:
        return False
    atuador = ATUADOR_POR_ACAO[acao]
    return atuador is None or nota.atuador is atuador


def exigir_acao(nota: NotaEntrada, acao: Acao) -> None:
    """Levanta o erro adequado quando a ação não é permitida na nota."""
    if nota.status is StatusNota.COM_DIVERGENCIA:
        raise DivergenciaDetectada(
            "Nota com divergência de quantidades; resolução manual necessária",
            nota_id=nota.id,
        )
    if nota.status is StatusNota.FINALIZADA:
        raise TransicaoInvalida("Nota finalizada não pode ser alterada", nota_id=nota.id)
    if nota.status not in STATUS_POR_ACAO[acao]:
        raise TransicaoInvalida(
            f"Ação '{acao.value}' não permitida no status {nota.status.value}",
            nota_id=nota.id,
            campo="status",
        )
    atuador = ATUADOR_POR_ACAO[acao]
    if atuador is not None and nota.atuador is not atuador:
        raise TransicaoInvalida(
            f"Ação '{acao.value}' exige atuação de {atuador.value}; "
            f"a nota está com {nota.atuador.value}",
            nota_id=nota.id,
            campo="atuador",
        )


# -------------------------
# Alertas derivados
# -------------------------

@dataclass
class Alerta:
    tipo: str  # qtd_excedida | imei_ausente | conferencia_parcial_longa | status_critico | divergencia_valor
    mensagem: str


_STATUS_CRITICOS = frozenset({StatusNota.AGUARDANDO_FINANCEIRO, StatusNota.COM_DIVERGENCIA})


def _dias_desde(iso: Optional[str], agora: datetime) -> Optional[int]:
    if not iso:
        return None
    try:
        inicio = datetime.fromisoformat(iso)
    except ValueError:
        return None
    return (agora - inicio).days


def alertas_nota(
    nota: NotaEntrada,
    agora: Optional[datetime] = None,
    config: DefaultConfig = DEFAULTS,
) -> List[Alerta]:
    """Calcula os alertas atuais da nota. Nada é persistido."""
    agora = agora or datetime.now()
    out: List[Alerta] = []

    if nota.qtd_informada > 0 and nota.qtd_cadastrada > nota.qtd_informada:
        out.append(Alerta(
            "qtd_excedida",
            f"Quantidade de produtos ({nota.qtd_cadastrada}) excede o informado ({nota.qtd_informada})",
        ))

    sem_imei = [p for p in nota.conferidos() if p.is_aparelho and not p.imei]
    if sem_imei:
        out.append(Alerta("imei_ausente", f"{len(sem_imei)} aparelho(s) conferido(s) aguardando IMEI"))

    if nota.status is StatusNota.CONFERENCIA_PARCIAL:
        datas = sorted(p.data_conferencia for p in nota.produtos if p.data_conferencia)
        dias = _dias_desde(datas[-1], agora) if datas else None
        if dias is not None and dias >= config.dias_conferencia_parada:
            out.append(Alerta(
                "conferencia_parcial_longa",
                f"Nota parada há {dias} dias em conferência parcial",
            ))

    if nota.status in _STATUS_CRITICOS:
        dias = _dias_desde(nota.data_criacao, agora)
        if dias is not None and dias >= config.dias_status_critico:
            out.append(Alerta(
                "status_critico",
                f"Nota parada há {dias} dias em status crítico: {nota.status.value}",
            ))

    if nota.status is StatusNota.CONFERENCIA_CONCLUIDA and nota.valor_pago > 0:
        tolerancia = nota.valor_total() * config.tolerancia_divergencia
        if abs(nota.valor_pago - nota.valor_conferido()) > tolerancia:
            out.append(Alerta(
                "divergencia_valor",
                f"Divergência: pago R$ {nota.valor_pago:.2f}, conferido R$ {nota.valor_conferido():.2f}",
            ))

    return out


# -------------------------
# Nota de crédito (triagem)
# -------------------------

PoliticaCredito = Callable[[NotaEntrada, List[ProdutoNota]], bool]


def credito_pagamento_antecipado(nota: NotaEntrada, unidades: List[ProdutoNota]) -> bool:
    """Emite crédito apenas quando o fornecedor já recebeu 100% antecipado."""
    return bool(unidades) and nota.tipo_pagamento is TipoPagamento.ANTECIPADO


def sempre_emitir_credito(nota: NotaEntrada, unidades: List[ProdutoNota]) -> bool:
    return bool(unidades)


def nunca_emitir_credito(nota: NotaEntrada, unidades: List[ProdutoNota]) -> bool:
    return False
