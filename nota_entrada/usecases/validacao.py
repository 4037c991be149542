"""
Validação de entradas dos casos de uso.

Converte valores vindos da CLI, de planilhas ou de dicionários nos tipos
do domínio, levantando ``ErroValidacao`` com o campo exato em caso de
problema. Nenhum valor inválido é corrigido silenciosamente.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Type, TypeVar

from nota_entrada.adapters.parsers import (
    imei_valido,
    normalizar_imei,
    parse_quantidade,
    parse_valor_brl,
)
from nota_entrada.domain.erros import ErroValidacao
from nota_entrada.domain.models import Categoria, TipoProduto

E = TypeVar("E")


def enum_de(cls: Type[E], valor: Any, campo: str, **ctx) -> E:
    """Aceita o próprio membro, o valor (``"Pagamento Pos"``) ou o nome (``"POS"``)."""
    if isinstance(valor, cls):
        return valor
    if valor is None or str(valor).strip() == "":
        raise ErroValidacao(f"Campo obrigatório: {campo}", campo=campo, **ctx)
    texto = str(valor).strip()
    try:
        return cls(texto)
    except ValueError:
        pass
    try:
        return cls[texto.upper()]
    except KeyError:
        opcoes = ", ".join(m.value for m in cls)
        raise ErroValidacao(
            f"Valor inválido para {campo}: {texto!r} (opções: {opcoes})", campo=campo, **ctx
        ) from None


def exigir_texto(valor: Any, campo: str, **ctx) -> str:
    texto = "" if valor is None else str(valor).strip()
    if not texto:
        raise ErroValidacao(f"Campo obrigatório: {campo}", campo=campo, **ctx)
    return texto


def texto_ou_none(valor: Any) -> Optional[str]:
    if valor is None:
        return None
    texto = str(valor).strip()
    return texto or None


def validar_imei(valor: Any, **ctx) -> str:
    if not imei_valido(valor):
        raise ErroValidacao(f"IMEI inválido: {valor!r} (15 dígitos)", campo="imei", **ctx)
    return normalizar_imei(valor)


def validar_quantidade(valor: Any, **ctx) -> int:
    qtd = parse_quantidade(valor)
    if qtd is None or qtd < 1:
        raise ErroValidacao(f"Quantidade inválida: {valor!r} (inteiro >= 1)", campo="quantidade", **ctx)
    return qtd


def validar_custo(valor: Any, campo: str = "custo_unitario", **ctx) -> float:
    custo = parse_valor_brl(valor)
    if custo is None or custo < 0:
        raise ErroValidacao(f"Valor inválido para {campo}: {valor!r}", campo=campo, **ctx)
    return custo


def validar_bateria(categoria: Optional[Categoria], valor: Any, **ctx) -> Optional[int]:
    """Aparelho novo tem sempre 100%; seminovo aceita 0-100 ou vazio."""
    if categoria is Categoria.NOVO:
        return 100
    if valor is None or str(valor).strip() == "":
        return None
    bateria = parse_quantidade(valor)
    if bateria is None or not 0 <= bateria <= 100:
        raise ErroValidacao(f"Saúde da bateria inválida: {valor!r} (0-100)", campo="saude_bateria", **ctx)
    return bateria


def validar_produto(dados: Dict[str, Any], indice: int) -> Dict[str, Any]:
    """Normaliza uma linha de produto a cadastrar.

    ``indice`` (base 1) identifica a linha na mensagem de erro, já que o id
    ainda não foi gerado.
    """
    ctx = {"linha_id": f"#{indice}"}
    tipo = enum_de(TipoProduto, dados.get("tipo_produto"), "tipo_produto", **ctx)
    quantidade = validar_quantidade(dados.get("quantidade", 1), **ctx)
    out: Dict[str, Any] = {
        "tipo_produto": tipo,
        "marca": exigir_texto(dados.get("marca"), "marca", **ctx),
        "modelo": exigir_texto(dados.get("modelo"), "modelo", **ctx),
        "quantidade": quantidade,
        "custo_unitario": validar_custo(dados.get("custo_unitario", 0), **ctx),
        "imei": None,
        "cor": texto_ou_none(dados.get("cor")),
        "categoria": None,
        "saude_bateria": None,
    }

    imei = texto_ou_none(dados.get("imei"))
    if imei:
        if tipo is not TipoProduto.APARELHO or quantidade != 1:
            raise ErroValidacao(
                "IMEI só pode ser informado em aparelho com quantidade 1", campo="imei", **ctx
            )
        out["imei"] = validar_imei(imei, **ctx)

    if texto_ou_none(dados.get("categoria")):
        out["categoria"] = enum_de(Categoria, dados.get("categoria"), "categoria", **ctx)
        out["saude_bateria"] = validar_bateria(out["categoria"], dados.get("saude_bateria"), **ctx)
    return out
