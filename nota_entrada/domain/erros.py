"""
Erros tipados do fluxo de notas de entrada.

Todas as falhas de regra chegam ao chamador como uma subclasse de
``ErroNotaEntrada`` com contexto suficiente (nota, linha e campo) para que
a interface monte uma mensagem precisa. Nenhum desses erros é fatal para o
processo: uma nota com problema não afeta as demais.
"""

from __future__ import annotations

from typing import Optional


class ErroNotaEntrada(Exception):
    """Base de todos os erros do fluxo de notas."""

    tipo = "erro"

    def __init__(
        self,
        mensagem: str,
        *,
        nota_id: Optional[str] = None,
        linha_id: Optional[str] = None,
        campo: Optional[str] = None,
    ) -> None:
        super().__init__(mensagem)
        self.mensagem = mensagem
        self.nota_id = nota_id
        self.linha_id = linha_id
        self.campo = campo

    def contexto(self) -> dict:
        return {
            "tipo": self.tipo,
            "mensagem": self.mensagem,
            "nota_id": self.nota_id,
            "linha_id": self.linha_id,
            "campo": self.campo,
        }

    def __str__(self) -> str:
        partes = [self.mensagem]
        if self.nota_id:
            partes.append(f"nota={self.nota_id}")
        if self.linha_id:
            partes.append(f"linha={self.linha_id}")
        if self.campo:
            partes.append(f"campo={self.campo}")
        return " | ".join(partes)


class ErroValidacao(ErroNotaEntrada):
    """Campo obrigatório ausente ou entrada mal formada."""
    tipo = "validacao"


class TransicaoInvalida(ErroNotaEntrada):
    """Operação tentada em um estado que não a permite."""
    tipo = "transicao_invalida"


class ImeiDuplicado(ErroNotaEntrada):
    """IMEI já existente em outra nota ou no estoque."""
    tipo = "imei_duplicado"

    def __init__(self, mensagem: str, *, local_existente: Optional[str] = None, **kwargs) -> None:
        super().__init__(mensagem, **kwargs)
        self.local_existente = local_existente


class RegraNegocioViolada(ErroNotaEntrada):
    """Decisão que fere uma regra de negócio (ex.: aparelho Novo no caminho amarelo)."""
    tipo = "regra_negocio"


class DivergenciaDetectada(ErroNotaEntrada):
    """Invariante de reconciliação quebrado; a nota fica travada."""
    tipo = "divergencia"


class NotaNaoEncontrada(ErroNotaEntrada):
    """Nota inexistente no repositório."""
    tipo = "nao_encontrada"
