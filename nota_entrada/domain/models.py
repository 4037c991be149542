# nota_entrada/domain/models.py
"""
Modelos (dataclasses) do domínio de notas de entrada.

Observação importante:
- Os estados da nota, do produto e da triagem são enums fechados; nenhuma
  função de transição aceita strings soltas.
- ``para_dict``/``de_dict`` definem o formato persistido pelos repositórios
  (documento JSON com produtos e timeline da nota).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from nota_entrada.domain.formulas import custo_total, soma_custos


class StatusNota(str, Enum):
    ABERTA = "Aberta"
    AGUARDANDO_FINANCEIRO = "Aguardando Financeiro"
    AGUARDANDO_ESTOQUE = "Aguardando Estoque"
    CONFERENCIA_PARCIAL = "Conferencia Parcial"
    CONFERENCIA_CONCLUIDA = "Conferencia Concluida"
    FINALIZADA = "Finalizada"
    COM_DIVERGENCIA = "Com Divergencia"


class TipoPagamento(str, Enum):
    POS = "Pagamento Pos"
    PARCIAL = "Pagamento Parcial"
    ANTECIPADO = "Pagamento 100% Antecipado"


class FormaPagamento(str, Enum):
    DINHEIRO = "Dinheiro"
    PIX = "Pix"


class Atuador(str, Enum):
    ESTOQUE = "Estoque"
    FINANCEIRO = "Financeiro"
    ENCERRADO = "Encerrado"


class TipoProduto(str, Enum):
    APARELHO = "Aparelho"
    ACESSORIO = "Acessorio"


class Categoria(str, Enum):
    NOVO = "Novo"
    SEMINOVO = "Seminovo"


class StatusConferencia(str, Enum):
    PENDENTE = "Pendente"
    CONFERIDO = "Conferido"


class CaminhoTriagem(str, Enum):
    VERDE = "Verde"
    AMARELO = "Amarelo"


def _enum_ou_none(cls, valor):
    if valor is None or valor == "":
        return None
    return cls(valor)


def _serializa(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: _serializa(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serializa(v) for v in obj]
    return obj


@dataclass
class ProdutoNota:
    """Linha de produto da nota (agrupada ou unitária)."""
    id: str
    tipo_produto: TipoProduto
    marca: str
    modelo: str
    quantidade: int = 1
    custo_unitario: float = 0.0
    custo_total: float = 0.0
    imei: Optional[str] = None
    cor: Optional[str] = None
    categoria: Optional[Categoria] = None
    saude_bateria: Optional[int] = None
    status_conferencia: StatusConferencia = StatusConferencia.PENDENTE
    linha_pai_id: Optional[str] = None          # preenchido nas unidades explodidas
    imei_duplicado: bool = False
    imei_duplicado_local: Optional[str] = None
    data_conferencia: Optional[str] = None
    responsavel_conferencia: Optional[str] = None

    @property
    def conferido(self) -> bool:
        return self.status_conferencia is StatusConferencia.CONFERIDO

    @property
    def is_aparelho(self) -> bool:
        return self.tipo_produto is TipoProduto.APARELHO

    def exige_campos_unitarios(self) -> bool:
        """Aparelho unitário precisa de IMEI, cor e categoria antes da conferência."""
        return self.is_aparelho and self.quantidade == 1

    def campos_unitarios_completos(self) -> bool:
        return bool(self.imei and self.cor and self.categoria)

    def campos_faltantes(self) -> List[str]:
        return [c for c in ("imei", "cor", "categoria") if not getattr(self, c)]

    def recalcular_custo(self) -> None:
        self.custo_total = custo_total(self.quantidade, self.custo_unitario)

    def limpar_campos_unitarios(self) -> None:
        self.imei = None
        self.cor = None
        self.categoria = None
        self.saude_bateria = None
        self.imei_duplicado = False
        self.imei_duplicado_local = None

    def para_dict(self) -> Dict[str, Any]:
        return _serializa(asdict(self))

    @classmethod
    def de_dict(cls, d: Dict[str, Any]) -> "ProdutoNota":
        dados = dict(d)
        dados["tipo_produto"] = TipoProduto(dados["tipo_produto"])
        dados["categoria"] = _enum_ou_none(Categoria, dados.get("categoria"))
        dados["status_conferencia"] = StatusConferencia(
            dados.get("status_conferencia") or StatusConferencia.PENDENTE.value
        )
        return cls(**dados)


@dataclass(frozen=True)
class EventoTimeline:
    """Entrada imutável da timeline da nota."""
    id: str
    data_hora: str
    ator: str
    acao: str
    status_anterior: StatusNota
    status_novo: StatusNota
    detalhes: str = ""

    def para_dict(self) -> Dict[str, Any]:
        return _serializa(asdict(self))

    @classmethod
    def de_dict(cls, d: Dict[str, Any]) -> "EventoTimeline":
        dados = dict(d)
        dados["status_anterior"] = StatusNota(dados["status_anterior"])
        dados["status_novo"] = StatusNota(dados["status_novo"])
        return cls(**dados)


@dataclass
class Pagamento:
    data: str
    valor: float
    forma: FormaPagamento
    responsavel: str
    tipo: str = "inicial"  # 'inicial' | 'parcial' | 'final'

    @classmethod
    def de_dict(cls, d: Dict[str, Any]) -> "Pagamento":
        dados = dict(d)
        dados["forma"] = FormaPagamento(dados["forma"])
        return cls(**dados)


@dataclass
class ResultadoMigracao:
    novos: int = 0
    seminovos: int = 0


@dataclass
class NotaEntrada:
    """Nota de entrada com produtos, contadores de reconciliação e timeline."""
    id: str
    fornecedor: str
    data_entrada: str
    responsavel: str
    tipo_pagamento: TipoPagamento
    atuador: Atuador
    status: StatusNota = StatusNota.ABERTA
    forma_pagamento: Optional[FormaPagamento] = None
    pix_banco: Optional[str] = None
    pix_recebedor: Optional[str] = None
    pix_chave: Optional[str] = None
    numero_nota: Optional[str] = None
    qtd_informada: int = 0
    qtd_cadastrada: int = 0
    qtd_conferida: int = 0
    produtos: List[ProdutoNota] = field(default_factory=list)
    timeline: List[EventoTimeline] = field(default_factory=list)
    pagamentos: List[Pagamento] = field(default_factory=list)
    valor_pago: float = 0.0
    urgente: bool = False
    migracao: Optional[ResultadoMigracao] = None
    lote_reparo_id: Optional[str] = None
    nota_credito_id: Optional[str] = None
    data_criacao: Optional[str] = None
    data_finalizacao: Optional[str] = None
    observacoes: Optional[str] = None

    # helpers
    def produto(self, linha_id: str) -> Optional[ProdutoNota]:
        for p in self.produtos:
            if p.id == linha_id:
                return p
        return None

    def conferidos(self) -> List[ProdutoNota]:
        return [p for p in self.produtos if p.conferido]

    def valor_total(self) -> float:
        return soma_custos(p.custo_total for p in self.produtos)

    def valor_conferido(self) -> float:
        return soma_custos(p.custo_total for p in self.conferidos())

    def valor_pendente(self) -> float:
        return max(0.0, round(self.valor_total() - self.valor_pago, 2))

    def para_dict(self) -> Dict[str, Any]:
        d = _serializa(asdict(self))
        d["produtos"] = [p.para_dict() for p in self.produtos]
        d["timeline"] = [e.para_dict() for e in self.timeline]
        return d

    @classmethod
    def de_dict(cls, d: Dict[str, Any]) -> "NotaEntrada":
        dados = dict(d)
        dados["tipo_pagamento"] = TipoPagamento(dados["tipo_pagamento"])
        dados["atuador"] = Atuador(dados["atuador"])
        dados["status"] = StatusNota(dados["status"])
        dados["forma_pagamento"] = _enum_ou_none(FormaPagamento, dados.get("forma_pagamento"))
        dados["produtos"] = [ProdutoNota.de_dict(p) for p in dados.get("produtos") or []]
        dados["timeline"] = [EventoTimeline.de_dict(e) for e in dados.get("timeline") or []]
        dados["pagamentos"] = [Pagamento.de_dict(p) for p in dados.get("pagamentos") or []]
        if dados.get("migracao"):
            dados["migracao"] = ResultadoMigracao(**dados["migracao"])
        return cls(**dados)


@dataclass
class DecisaoTriagem:
    """Destino de uma unidade conferida após 100% da conferência."""
    produto_id: str
    caminho: CaminhoTriagem
    motivo_defeito: Optional[str] = None
    creditar: bool = False  # unidade amarela abatida do fornecedor via nota de crédito

    @classmethod
    def de_dict(cls, d: Dict[str, Any]) -> "DecisaoTriagem":
        return cls(
            produto_id=str(d["produto_id"]),
            caminho=CaminhoTriagem(d["caminho"]),
            motivo_defeito=d.get("motivo_defeito"),
            creditar=bool(d.get("creditar", False)),
        )


@dataclass
class NotaCredito:
    id: str
    fornecedor: str
    valor: float
    nota_origem_id: str
    emitida_em: str

    def para_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ItemReparo:
    produto_id: str
    marca: str
    modelo: str
    imei: Optional[str]
    motivo_defeito: str
    custo_reparo: float = 0.0


@dataclass
class LoteReparo:
    """Lote de aparelhos com defeito encaminhado à assistência."""
    id: str
    nota_id: str
    fornecedor: str
    valor_original_nota: float
    responsavel: str
    criado_em: str
    itens: List[ItemReparo] = field(default_factory=list)

    def custo_total_reparos(self) -> float:
        return soma_custos(i.custo_reparo for i in self.itens)

    def para_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def de_dict(cls, d: Dict[str, Any]) -> "LoteReparo":
        dados = dict(d)
        dados["itens"] = [ItemReparo(**i) for i in dados.get("itens") or []]
        return cls(**dados)


@dataclass
class ResultadoImei:
    duplicado: bool
    local_existente: Optional[str] = None


@dataclass
class ResultadoTriagem:
    nota: NotaEntrada
    verdes: List[Dict[str, Any]] = field(default_factory=list)
    lote_reparo: Optional[LoteReparo] = None
    nota_credito: Optional[NotaCredito] = None
