# nota_entrada/adapters/planilhas.py
"""
Loader de planilhas (XLSX) de PRODUTOS de uma nota de entrada.

A função:
- lê a planilha usando pandas;
- normaliza cabeçalhos (acentos, variações, sinônimos);
- retorna uma lista de dicionários com as chaves esperadas por
  ``ConferenciaNota.cadastrar_produtos``.

Observações:
- Quantidade, custo e IMEI são preservados como texto; a validação e a
  conversão ficam no caso de uso.
- Linhas totalmente vazias são ignoradas.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import pandas as pd


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: Any) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _safe_get(row, key) -> Optional[str]:
    """Lê o valor da linha tratando NA/vazio como None."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    val = str(val).strip()
    return val or None


_ALIASES = {
    "tipo": "tipo_produto",
    "tipo produto": "tipo_produto",
    "tipo de produto": "tipo_produto",

    "marca": "marca",
    "fabricante": "marca",

    "modelo": "modelo",
    "produto": "modelo",
    "descricao": "modelo",

    "quantidade": "quantidade",
    "qtde": "quantidade",
    "qtd": "quantidade",

    "custo": "custo_unitario",
    "custo unitario": "custo_unitario",
    "valor": "custo_unitario",
    "valor unitario": "custo_unitario",
    "preco": "custo_unitario",
    "preco unitario": "custo_unitario",

    "imei": "imei",
    "imei 1": "imei",
    "serial": "imei",

    "cor": "cor",

    "categoria": "categoria",
    "condicao": "categoria",
    "estado": "categoria",

    "bateria": "saude_bateria",
    "saude bateria": "saude_bateria",
    "saude da bateria": "saude_bateria",
}

_TIPOS = {
    "aparelho": "APARELHO",
    "celular": "APARELHO",
    "smartphone": "APARELHO",
    "acessorio": "ACESSORIO",
}

_CATEGORIAS = {
    "novo": "NOVO",
    "lacrado": "NOVO",
    "seminovo": "SEMINOVO",
    "semi novo": "SEMINOVO",
    "usado": "SEMINOVO",
}

CAMPOS = ("tipo_produto", "marca", "modelo", "quantidade", "custo_unitario", "imei", "cor", "categoria", "saude_bateria")


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = _ALIASES.get(key, key)  # se não houver alias, mantém slug
    return df.rename(columns=new_cols)


def _mapear(valor: Optional[str], tabela: Dict[str, str]) -> Optional[str]:
    """Traduz sinônimos conhecidos para o nome do membro; demais valores passam intactos."""
    if valor is None:
        return None
    return tabela.get(_slug(valor), valor)


# ---------------------------
# loader público (XLSX)
# ---------------------------

def load_produtos_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de PRODUTOS e retorna uma linha de cadastro por registro.

    Campos de saída (chaves do dict por linha):
      - tipo_produto: "APARELHO" | "ACESSORIO" | texto original
      - marca, modelo, cor: str | None
      - quantidade: str | None   (ex.: "3", "3 UN"; default 1 no cadastro)
      - custo_unitario: str | None  (ex.: "R$ 1.234,56")
      - imei: str | None
      - categoria: "NOVO" | "SEMINOVO" | texto original | None
      - saude_bateria: str | None
    """
    df = pd.read_excel(path, dtype="string")
    df = _normalize_columns(df)
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        rec = {campo: _safe_get(row, campo) for campo in CAMPOS}
        if not any(rec.values()):
            continue
        rec["tipo_produto"] = _mapear(rec["tipo_produto"], _TIPOS)
        rec["categoria"] = _mapear(rec["categoria"], _CATEGORIAS)
        if rec["quantidade"] is None:
            rec["quantidade"] = "1"
        if rec["custo_unitario"] is None:
            rec["custo_unitario"] = "0"
        out.append(rec)
    return out
