"""
Utilidades de parsing para IMEI, valores monetários e quantidades.

Este módulo concentra a interpretação de textos digitados ou lidos de
planilhas: IMEIs com máscara (``35-209900-176148-1``), valores em reais
(``"R$ 1.234,56"``) e quantidades inteiras (``"3 UN"``). A comparação de
IMEIs em todo o sistema usa sempre a forma normalizada (somente dígitos).
"""

from __future__ import annotations

import re
from typing import Any, Optional

_NAO_DIGITO_RE = re.compile(r"\D")
_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)*")

IMEI_DIGITOS = 15


def normalizar_imei(valor: Any) -> Optional[str]:
    """Remove máscara e caracteres não numéricos do IMEI.

    Exemplos:
        "35-209900-176148-1" → "352099001761481"
        "  " → None

    Returns:
        Somente os dígitos, ou ``None`` se não sobrar nenhum.
    """
    if valor is None:
        return None
    digitos = _NAO_DIGITO_RE.sub("", str(valor))
    return digitos or None


def imei_valido(valor: Any) -> bool:
    """IMEI válido tem exatamente 15 dígitos após a normalização."""
    digitos = normalizar_imei(valor)
    return digitos is not None and len(digitos) == IMEI_DIGITOS


def formatar_imei(valor: Any) -> str:
    """Aplica a máscara ``WW-XXXXXX-YYYYYY-Z`` (limitada a 15 dígitos)."""
    digitos = (normalizar_imei(valor) or "")[:IMEI_DIGITOS]
    out = []
    for i, ch in enumerate(digitos):
        if i in (2, 8, 14):
            out.append("-")
        out.append(ch)
    return "".join(out)


def exibir_imei(valor: Any) -> str:
    """Formata para exibição; retorna o original se não tiver 15 dígitos."""
    if not valor:
        return "-"
    if not imei_valido(valor):
        return str(valor)
    return formatar_imei(valor)


def parse_valor_brl(txt: Any) -> Optional[float]:
    """Interpreta um valor monetário em formato brasileiro ou decimal simples.

    Exemplos:
        "R$ 1.234,56" → 1234.56
        "1234.56"     → 1234.56
        "3.500"       → 3500.0
        ""            → None
    """
    if txt is None:
        return None
    if isinstance(txt, (int, float)):
        return float(txt)
    s = str(txt).strip().replace("R$", "").replace(" ", "")
    if not s:
        return None
    if "," in s:
        s = s.replace(".", "").replace(",", ".")
    elif s.count(".") > 1 or re.fullmatch(r"\d{1,3}(\.\d{3})+", s):
        s = s.replace(".", "")
    try:
        return float(s)
    except ValueError:
        return None


def parse_quantidade(txt: Any) -> Optional[int]:
    """Extrai a quantidade inteira de textos como ``"3"``, ``"3 UN"`` ou ``3.0``.

    Quantidades fracionadas não são aceitas (retorna ``None``).
    """
    if txt is None:
        return None
    if isinstance(txt, bool):
        return None
    if isinstance(txt, int):
        return txt
    if isinstance(txt, float):
        return int(txt) if txt.is_integer() else None
    m = _NUM_RE.search(str(txt))
    if not m:
        return None
    try:
        val = float(m.group(0).replace(",", "."))
    except ValueError:
        return None
    return int(val) if val.is_integer() else None
