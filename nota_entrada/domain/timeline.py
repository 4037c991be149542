"""
Timeline (log de auditoria) da nota.

Somente inclusão: eventos nunca são editados ou removidos. A ordem interna
é cronológica (mais antigo primeiro); ``eventos_recentes`` devolve a visão
invertida usada pelas telas.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from nota_entrada.domain.models import EventoTimeline, NotaEntrada, StatusNota
from nota_entrada.domain.policies import exigir_transicao


class AcaoTimeline:
    CRIADA = "Nota Criada"
    ENCAMINHADA = "Nota Encaminhada"
    PRODUTOS_CADASTRADOS = "Produtos Cadastrados"
    LINHA_EDITADA = "Linha Editada"
    EXPLODIDA = "Linha Explodida"
    AGRUPADA = "Linhas Agrupadas"
    CAMPOS_INFORMADOS = "Campos Informados"
    CONFERIDA = "Conferencia Registrada"
    PAGAMENTO = "Pagamento Registrado"
    MIGRADA = "Conferidos Migrados"
    DIVERGENCIA = "Divergencia Detectada"
    TRIAGEM_CONCLUIDA = "Triagem Concluida"


def registrar_evento(
    nota: NotaEntrada,
    ator: str,
    acao: str,
    detalhes: str = "",
    status_novo: Optional[StatusNota] = None,
    agora: Optional[datetime] = None,
    validar_transicao: bool = True,
) -> EventoTimeline:
    """Acrescenta um evento à nota e aplica a mudança de status, se houver."""
    novo = status_novo or nota.status
    if validar_transicao:
        exigir_transicao(nota, novo)
    evento = EventoTimeline(
        id=f"TL-{nota.id}-{len(nota.timeline) + 1:04d}",
        data_hora=(agora or datetime.now()).isoformat(timespec="seconds"),
        ator=ator,
        acao=acao,
        status_anterior=nota.status,
        status_novo=novo,
        detalhes=detalhes,
    )
    nota.timeline.append(evento)
    nota.status = novo
    return evento


def eventos_recentes(nota: NotaEntrada) -> List[EventoTimeline]:
    return list(reversed(nota.timeline))
