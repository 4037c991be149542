# nota_entrada/usecases/conferencia.py
"""
UC: Conferência de notas de entrada.

Máquina de estados central da nota: criação, cadastro e edição de produtos,
explosão/agrupamento de linhas, preenchimento de campos unitários,
confirmação de conferência, pagamentos e migração dos conferidos.

Obs.:
- Toda operação lê uma cópia da nota, valida tudo, altera a cópia e só
  então salva. Um erro levantado não deixa nada gravado.
- Toda operação que altera a nota acrescenta exatamente um evento à timeline.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from nota_entrada.domain.erros import (
    DivergenciaDetectada,
    ErroValidacao,
    ImeiDuplicado,
    TransicaoInvalida,
)
from nota_entrada.domain.formulas import custo_total
from nota_entrada.domain.models import (
    Atuador,
    Categoria,
    FormaPagamento,
    NotaEntrada,
    Pagamento,
    ProdutoNota,
    ResultadoImei,
    ResultadoMigracao,
    StatusConferencia,
    StatusNota,
    TipoPagamento,
)
from nota_entrada.domain.numeracao import GeradorIds, formatar_id_unidade
from nota_entrada.domain.policies import (
    ATUADOR_POS_CONFERENCIA,
    Acao,
    alertas_nota,
    atuador_inicial,
    exigir_acao,
)
from nota_entrada.domain.portas import EstoqueGateway, NotaRepo
from nota_entrada.domain.reconciliacao import conferencia_completa, reconciliar
from nota_entrada.domain.timeline import AcaoTimeline, registrar_evento
from nota_entrada.infra.logger import (
    log_conferencia,
    log_system_event,
    log_transaction,
    print_system,
)
from nota_entrada.usecases.validacao import (
    enum_de,
    exigir_texto,
    texto_ou_none,
    validar_bateria,
    validar_custo,
    validar_imei,
    validar_produto,
    validar_quantidade,
)
from nota_entrada.usecases.verificar_imei import VerificadorImei


TIPOS_PAGAMENTO_REGISTRO = ("inicial", "parcial", "final")


def _falha(operacao: str, dados: Dict[str, Any], erro: Exception) -> None:
    log_transaction(operacao, dados, error=str(erro))
    log_system_event(f"{operacao}_error", {**dados, "error": str(erro)}, level="error")


class ConferenciaNota:
    def __init__(
        self,
        notas: NotaRepo,
        estoque: EstoqueGateway,
        ids: GeradorIds,
        relogio: Callable[[], datetime] = datetime.now,
    ):
        self.notas = notas
        self.estoque = estoque
        self.ids = ids
        self.relogio = relogio
        self.verificador = VerificadorImei(notas, estoque)

    # -------------------------
    # util
    # -------------------------

    def _agora_iso(self) -> str:
        return self.relogio().isoformat(timespec="seconds")

    def _evento(self, nota: NotaEntrada, ator: str, acao: str, detalhes: str = "",
                status_novo: Optional[StatusNota] = None) -> None:
        registrar_evento(nota, ator, acao, detalhes, status_novo=status_novo, agora=self.relogio())

    def _reconciliar_ou_divergir(self, nota: NotaEntrada, ator: str) -> None:
        """Recalcula os contadores; invariante quebrado trava a nota."""
        if reconciliar(nota):
            return
        detalhes = f"conferido={nota.qtd_conferida} > cadastrado={nota.qtd_cadastrada}"
        self._evento(nota, ator, AcaoTimeline.DIVERGENCIA, detalhes, status_novo=StatusNota.COM_DIVERGENCIA)
        self.notas.salvar(nota)
        log_system_event("divergencia_detectada", {"nota_id": nota.id, "detalhes": detalhes}, level="warning")
        raise DivergenciaDetectada(f"Divergência de quantidades: {detalhes}", nota_id=nota.id, campo="qtd_conferida")

    def _linha(self, nota: NotaEntrada, linha_id: str) -> ProdutoNota:
        linha = nota.produto(linha_id)
        if linha is None:
            raise ErroValidacao(f"Linha {linha_id} não existe na nota", nota_id=nota.id, linha_id=linha_id)
        return linha

    def _imeis_em_uso(self, imeis: Iterable[str], nota: NotaEntrada) -> None:
        """Bloqueia IMEIs repetidos no lote ou já presentes no sistema."""
        vistos = set()
        for imei in imeis:
            if imei in vistos:
                raise ImeiDuplicado(f"IMEI {imei} repetido no cadastro", nota_id=nota.id, campo="imei")
            vistos.add(imei)
            res = self.verificador.verificar(imei)
            if res.duplicado:
                raise ImeiDuplicado(
                    f"IMEI {imei} já cadastrado em {res.local_existente}",
                    local_existente=res.local_existente,
                    nota_id=nota.id,
                    campo="imei",
                )

    def _novas_linhas(self, nota: NotaEntrada, validados: List[Dict[str, Any]]) -> List[ProdutoNota]:
        linhas = []
        for dados in validados:
            linha = ProdutoNota(id=self.ids.proximo_id_linha(nota.id), **dados)
            linha.recalcular_custo()
            linhas.append(linha)
        return linhas

    # -------------------------
    # criação e encaminhamento
    # -------------------------

    def criar_nota(
        self,
        fornecedor: str,
        data_entrada: str,
        responsavel: str,
        tipo_pagamento: Any,
        forma_pagamento: Any = None,
        pix_banco: Optional[str] = None,
        pix_recebedor: Optional[str] = None,
        pix_chave: Optional[str] = None,
        qtd_informada: Any = 0,
        numero_nota: Optional[str] = None,
        urgente: bool = False,
        observacoes: Optional[str] = None,
        produtos: Optional[List[Dict[str, Any]]] = None,
    ) -> NotaEntrada:
        """Registra a nota em ``ABERTA`` com o atuador definido pelo tipo de pagamento."""
        dados = {"fornecedor": fornecedor, "tipo_pagamento": str(tipo_pagamento)}
        log_system_event("criar_nota_start", dados)
        try:
            fornecedor = exigir_texto(fornecedor, "fornecedor")
            data_entrada = exigir_texto(data_entrada, "data_entrada")
            responsavel = exigir_texto(responsavel, "responsavel")
            tipo = enum_de(TipoPagamento, tipo_pagamento, "tipo_pagamento")
            forma = enum_de(FormaPagamento, forma_pagamento, "forma_pagamento") if forma_pagamento else None
            if forma is FormaPagamento.PIX:
                pix_banco = exigir_texto(pix_banco, "pix_banco")
                pix_recebedor = exigir_texto(pix_recebedor, "pix_recebedor")
                pix_chave = exigir_texto(pix_chave, "pix_chave")
            informada = 0
            if qtd_informada not in (None, "", 0, "0"):
                informada = validar_quantidade(qtd_informada)
            validados = [validar_produto(p, i) for i, p in enumerate(produtos or [], start=1)]

            agora = self.relogio()
            nota = NotaEntrada(
                id=self.ids.proximo_id_nota(agora.year),
                fornecedor=fornecedor,
                data_entrada=data_entrada,
                responsavel=responsavel,
                tipo_pagamento=tipo,
                atuador=atuador_inicial(tipo),
                forma_pagamento=forma,
                pix_banco=pix_banco if forma is FormaPagamento.PIX else None,
                pix_recebedor=pix_recebedor if forma is FormaPagamento.PIX else None,
                pix_chave=pix_chave if forma is FormaPagamento.PIX else None,
                numero_nota=texto_ou_none(numero_nota),
                qtd_informada=informada,
                urgente=bool(urgente),
                data_criacao=agora.isoformat(timespec="seconds"),
                observacoes=texto_ou_none(observacoes),
            )
            self._imeis_em_uso([d["imei"] for d in validados if d["imei"]], nota)
            nota.produtos = self._novas_linhas(nota, validados)
            reconciliar(nota)
            self._evento(
                nota, responsavel, AcaoTimeline.CRIADA,
                f"{tipo.value}; atuador {nota.atuador.value}; {nota.qtd_cadastrada} item(ns) cadastrado(s)",
            )
            self.notas.salvar(nota)

            print_system(f">> Nota {nota.id} criada.")
            log_transaction("criar_nota", dados, result=nota.id)
            log_system_event("criar_nota_success", {"nota_id": nota.id})
            return nota
        except Exception as e:
            _falha("criar_nota", dados, e)
            raise

    def encaminhar_nota(self, nota_id: str, ator: str) -> NotaEntrada:
        """``ABERTA`` → aguardando o setor que atua primeiro na nota."""
        dados = {"nota_id": nota_id, "ator": ator}
        try:
            nota = self.notas.obter(nota_id)
            exigir_acao(nota, Acao.ENCAMINHAR)
            if nota.atuador is Atuador.FINANCEIRO:
                novo = StatusNota.AGUARDANDO_FINANCEIRO
            else:
                novo = StatusNota.AGUARDANDO_ESTOQUE
            self._evento(nota, ator, AcaoTimeline.ENCAMINHADA, f"Encaminhada para {nota.atuador.value}", status_novo=novo)
            self.notas.salvar(nota)
            log_transaction("encaminhar_nota", dados, result=novo.value)
            return nota
        except Exception as e:
            _falha("encaminhar_nota", dados, e)
            raise

    # -------------------------
    # cadastro e edição de produtos
    # -------------------------

    def cadastrar_produtos(self, nota_id: str, produtos: List[Dict[str, Any]], ator: str) -> NotaEntrada:
        """Acrescenta linhas de produto; exceder a quantidade informada só gera alerta."""
        dados = {"nota_id": nota_id, "linhas": len(produtos or [])}
        try:
            nota = self.notas.obter(nota_id)
            exigir_acao(nota, Acao.CADASTRAR_PRODUTOS)
            if not produtos:
                raise ErroValidacao("Nenhum produto informado", nota_id=nota_id, campo="produtos")
            validados = [validar_produto(p, i) for i, p in enumerate(produtos, start=1)]
            self._imeis_em_uso([d["imei"] for d in validados if d["imei"]], nota)

            novas = self._novas_linhas(nota, validados)
            nota.produtos.extend(novas)
            self._reconciliar_ou_divergir(nota, ator)
            self._evento(
                nota, ator, AcaoTimeline.PRODUTOS_CADASTRADOS,
                f"{len(novas)} linha(s), {sum(p.quantidade for p in novas)} unidade(s); "
                f"total cadastrado {nota.qtd_cadastrada}",
            )
            self.notas.salvar(nota)

            for alerta in alertas_nota(nota, agora=self.relogio()):
                if alerta.tipo == "qtd_excedida":
                    log_system_event("qtd_excedida", {"nota_id": nota.id, "mensagem": alerta.mensagem}, level="warning")
                    print_system(f"!! {alerta.mensagem}")
            log_transaction("cadastrar_produtos", dados, result=[p.id for p in novas])
            return nota
        except Exception as e:
            _falha("cadastrar_produtos", dados, e)
            raise

    def editar_linha(
        self,
        nota_id: str,
        linha_id: str,
        ator: str,
        quantidade: Any = None,
        custo_unitario: Any = None,
    ) -> ProdutoNota:
        dados = {"nota_id": nota_id, "linha_id": linha_id, "quantidade": quantidade, "custo_unitario": custo_unitario}
        try:
            nota = self.notas.obter(nota_id)
            exigir_acao(nota, Acao.CADASTRAR_PRODUTOS)
            linha = self._linha(nota, linha_id)
            if linha.conferido:
                raise TransicaoInvalida("Linha já conferida não pode ser editada", nota_id=nota_id, linha_id=linha_id)
            if linha.linha_pai_id:
                raise TransicaoInvalida(
                    f"Unidade explodida; agrupe {linha.linha_pai_id} antes de editar",
                    nota_id=nota_id, linha_id=linha_id,
                )
            if quantidade is None and custo_unitario is None:
                raise ErroValidacao("Nada a alterar", nota_id=nota_id, linha_id=linha_id)

            ctx = {"nota_id": nota_id, "linha_id": linha_id}
            nova_qtd = validar_quantidade(quantidade, **ctx) if quantidade is not None else linha.quantidade
            novo_custo = validar_custo(custo_unitario, **ctx) if custo_unitario is not None else linha.custo_unitario

            antes = f"{linha.quantidade} x {linha.custo_unitario:.2f}"
            if linha.quantidade == 1 and nova_qtd > 1:
                linha.limpar_campos_unitarios()
            linha.quantidade = nova_qtd
            linha.custo_unitario = novo_custo
            linha.recalcular_custo()
            self._reconciliar_ou_divergir(nota, ator)
            self._evento(
                nota, ator, AcaoTimeline.LINHA_EDITADA,
                f"{linha_id}: {antes} -> {linha.quantidade} x {linha.custo_unitario:.2f}",
            )
            self.notas.salvar(nota)
            log_transaction("editar_linha", dados, result=linha.custo_total)
            return linha
        except Exception as e:
            _falha("editar_linha", dados, e)
            raise

    # -------------------------
    # explosão / agrupamento
    # -------------------------

    def explodir_linha(self, nota_id: str, linha_id: str, ator: str) -> List[ProdutoNota]:
        """Divide uma linha agrupada em ``quantidade`` unidades irmãs."""
        dados = {"nota_id": nota_id, "linha_id": linha_id}
        try:
            nota = self.notas.obter(nota_id)
            exigir_acao(nota, Acao.CONFERIR)
            linha = self._linha(nota, linha_id)
            if linha.conferido:
                raise TransicaoInvalida("Linha já conferida não pode ser explodida", nota_id=nota_id, linha_id=linha_id)
            if linha.quantidade <= 1:
                raise TransicaoInvalida("Linha com quantidade 1 não pode ser explodida", nota_id=nota_id, linha_id=linha_id)

            unidades = [
                ProdutoNota(
                    id=formatar_id_unidade(linha.id, seq),
                    tipo_produto=linha.tipo_produto,
                    marca=linha.marca,
                    modelo=linha.modelo,
                    quantidade=1,
                    custo_unitario=linha.custo_unitario,
                    custo_total=custo_total(1, linha.custo_unitario),
                    linha_pai_id=linha.id,
                )
                for seq in range(1, linha.quantidade + 1)
            ]
            pos = nota.produtos.index(linha)
            nota.produtos[pos:pos + 1] = unidades
            self._reconciliar_ou_divergir(nota, ator)
            self._evento(nota, ator, AcaoTimeline.EXPLODIDA, f"{linha_id} -> {len(unidades)} unidade(s)")
            self.notas.salvar(nota)

            log_conferencia("explodir", nota_id, [u.id for u in unidades])
            log_transaction("explodir_linha", dados, result=len(unidades))
            return unidades
        except Exception as e:
            _falha("explodir_linha", dados, e)
            raise

    def agrupar_linhas(self, nota_id: str, linha_pai_id: str, ator: str) -> ProdutoNota:
        """Recompõe as unidades explodidas de ``linha_pai_id`` em uma única linha."""
        dados = {"nota_id": nota_id, "linha_pai_id": linha_pai_id}
        try:
            nota = self.notas.obter(nota_id)
            exigir_acao(nota, Acao.CONFERIR)
            irmas = [p for p in nota.produtos if p.linha_pai_id == linha_pai_id]
            if not irmas:
                raise TransicaoInvalida(
                    f"Nenhuma unidade explodida de {linha_pai_id}", nota_id=nota_id, linha_id=linha_pai_id
                )
            conferidas = [p.id for p in irmas if p.conferido]
            if conferidas:
                raise TransicaoInvalida(
                    f"Não é possível agrupar unidades conferidas: {', '.join(conferidas)}",
                    nota_id=nota_id, linha_id=linha_pai_id,
                )

            base = irmas[0]
            agrupada = ProdutoNota(
                id=linha_pai_id,
                tipo_produto=base.tipo_produto,
                marca=base.marca,
                modelo=base.modelo,
                quantidade=len(irmas),
                custo_unitario=base.custo_unitario,
            )
            agrupada.recalcular_custo()
            pos = nota.produtos.index(base)
            ids_irmas = {p.id for p in irmas}
            restantes = [p for p in nota.produtos if p.id not in ids_irmas]
            restantes.insert(pos, agrupada)
            nota.produtos = restantes
            self._reconciliar_ou_divergir(nota, ator)
            self._evento(nota, ator, AcaoTimeline.AGRUPADA, f"{len(irmas)} unidade(s) -> {linha_pai_id}")
            self.notas.salvar(nota)

            log_conferencia("agrupar", nota_id, sorted(ids_irmas))
            log_transaction("agrupar_linhas", dados, result=agrupada.quantidade)
            return agrupada
        except Exception as e:
            _falha("agrupar_linhas", dados, e)
            raise

    # -------------------------
    # campos unitários e conferência
    # -------------------------

    def informar_campos(
        self,
        nota_id: str,
        linha_id: str,
        ator: str,
        imei: Any,
        cor: Any,
        categoria: Any,
        saude_bateria: Any = None,
    ) -> ResultadoImei:
        """
        Grava IMEI, cor e categoria de um aparelho unitário.

        Um IMEI duplicado não impede a gravação: a linha fica marcada e a
        conferência dela é bloqueada até que outro IMEI seja informado.
        """
        dados = {"nota_id": nota_id, "linha_id": linha_id, "imei": imei}
        try:
            nota = self.notas.obter(nota_id)
            exigir_acao(nota, Acao.CONFERIR)
            linha = self._linha(nota, linha_id)
            ctx = {"nota_id": nota_id, "linha_id": linha_id}
            if linha.conferido:
                raise TransicaoInvalida("Linha já conferida", **ctx)
            if not linha.exige_campos_unitarios():
                raise ErroValidacao("Campos unitários só se aplicam a aparelho com quantidade 1", **ctx)

            imei_norm = validar_imei(imei, **ctx)
            cor_txt = exigir_texto(cor, "cor", **ctx)
            cat = enum_de(Categoria, categoria, "categoria", **ctx)
            bateria = validar_bateria(cat, saude_bateria, **ctx)

            resultado = self.verificador.verificar(imei_norm, excluir_linha_id=linha_id)
            linha.imei = imei_norm
            linha.cor = cor_txt
            linha.categoria = cat
            linha.saude_bateria = bateria
            linha.imei_duplicado = resultado.duplicado
            linha.imei_duplicado_local = resultado.local_existente

            detalhes = f"{linha_id}: IMEI {imei_norm}, {cor_txt}, {cat.value}"
            if resultado.duplicado:
                detalhes += f" (IMEI duplicado em {resultado.local_existente})"
            self._evento(nota, ator, AcaoTimeline.CAMPOS_INFORMADOS, detalhes)
            self.notas.salvar(nota)

            log_conferencia("campos", nota_id, [linha_id], duplicado=resultado.duplicado)
            log_transaction("informar_campos", dados, result=resultado.duplicado)
            return resultado
        except Exception as e:
            _falha("informar_campos", dados, e)
            raise

    def confirmar_conferencia(self, nota_id: str, linha_ids: List[str], ator: str) -> NotaEntrada:
        """
        Marca as linhas como conferidas (tudo ou nada).

        Ao atingir 100% a nota vai para ``CONFERENCIA_CONCLUIDA``; caso
        contrário fica em ``CONFERENCIA_PARCIAL``.
        """
        dados = {"nota_id": nota_id, "linhas": list(linha_ids or [])}
        log_conferencia("confirmar_start", nota_id, dados["linhas"])
        try:
            nota = self.notas.obter(nota_id)
            exigir_acao(nota, Acao.CONFERIR)
            if not linha_ids:
                raise ErroValidacao("Nenhuma linha selecionada para conferência", nota_id=nota_id, campo="linha_ids")

            linhas: List[ProdutoNota] = []
            for linha_id in dict.fromkeys(linha_ids):
                linha = self._linha(nota, linha_id)
                ctx = {"nota_id": nota_id, "linha_id": linha_id}
                if linha.conferido:
                    raise ErroValidacao("Linha já conferida", **ctx)
                if linha.is_aparelho and linha.quantidade > 1:
                    raise ErroValidacao(
                        f"Aparelho com quantidade {linha.quantidade}: explodir a linha antes de conferir",
                        campo="imei", **ctx,
                    )
                if linha.imei_duplicado:
                    raise ImeiDuplicado(
                        f"IMEI {linha.imei} duplicado em {linha.imei_duplicado_local}; informe outro IMEI",
                        local_existente=linha.imei_duplicado_local, campo="imei", **ctx,
                    )
                if linha.exige_campos_unitarios() and not linha.campos_unitarios_completos():
                    faltantes = linha.campos_faltantes()
                    raise ErroValidacao(
                        f"Preencha {', '.join(faltantes)} antes de conferir", campo=faltantes[0], **ctx
                    )
                linhas.append(linha)

            vistos: Dict[str, str] = {}
            for linha in linhas:
                if not linha.imei:
                    continue
                ctx = {"nota_id": nota_id, "linha_id": linha.id, "campo": "imei"}
                if linha.imei in vistos:
                    local = f"linha {vistos[linha.imei]}"
                    raise ImeiDuplicado(f"IMEI {linha.imei} repetido na {local}", local_existente=local, **ctx)
                vistos[linha.imei] = linha.id
                res = self.verificador.verificar(linha.imei, excluir_linha_id=linha.id)
                if res.duplicado:
                    raise ImeiDuplicado(
                        f"IMEI {linha.imei} já cadastrado em {res.local_existente}",
                        local_existente=res.local_existente, **ctx,
                    )

            agora = self._agora_iso()
            for linha in linhas:
                linha.status_conferencia = StatusConferencia.CONFERIDO
                linha.data_conferencia = agora
                linha.responsavel_conferencia = ator
            self._reconciliar_ou_divergir(nota, ator)

            if conferencia_completa(nota):
                novo = StatusNota.CONFERENCIA_CONCLUIDA
                proximo = ATUADOR_POS_CONFERENCIA[nota.tipo_pagamento]
                if proximo is not None:
                    nota.atuador = proximo
            else:
                novo = StatusNota.CONFERENCIA_PARCIAL
            self._evento(
                nota, ator, AcaoTimeline.CONFERIDA,
                f"Linhas: {', '.join(p.id for p in linhas)}; conferido {nota.qtd_conferida}/{nota.qtd_cadastrada}",
                status_novo=novo,
            )
            self.notas.salvar(nota)

            log_conferencia("confirmar", nota_id, [p.id for p in linhas], status=novo.value)
            log_transaction("confirmar_conferencia", dados, result=novo.value)
            return nota
        except Exception as e:
            _falha("confirmar_conferencia", dados, e)
            raise

    # -------------------------
    # financeiro
    # -------------------------

    def registrar_pagamento(
        self,
        nota_id: str,
        valor: Any,
        forma: Any,
        ator: str,
        tipo: str = "inicial",
    ) -> NotaEntrada:
        """Pagamento inicial em nota ainda não conferida passa a vez para o estoque."""
        dados = {"nota_id": nota_id, "valor": valor, "tipo": tipo}
        try:
            nota = self.notas.obter(nota_id)
            exigir_acao(nota, Acao.PAGAR)
            valor_ok = validar_custo(valor, campo="valor", nota_id=nota_id)
            if valor_ok <= 0:
                raise ErroValidacao("Valor do pagamento deve ser positivo", nota_id=nota_id, campo="valor")
            forma_ok = enum_de(FormaPagamento, forma, "forma", nota_id=nota_id)
            if tipo not in TIPOS_PAGAMENTO_REGISTRO:
                raise ErroValidacao(
                    f"Tipo de pagamento inválido: {tipo!r} ({', '.join(TIPOS_PAGAMENTO_REGISTRO)})",
                    nota_id=nota_id, campo="tipo",
                )

            nota.pagamentos.append(Pagamento(self._agora_iso(), valor_ok, forma_ok, ator, tipo))
            nota.valor_pago = round(nota.valor_pago + valor_ok, 2)
            novo = None
            if nota.status in (StatusNota.ABERTA, StatusNota.AGUARDANDO_FINANCEIRO):
                novo = StatusNota.AGUARDANDO_ESTOQUE
                nota.atuador = Atuador.ESTOQUE
            self._evento(
                nota, ator, AcaoTimeline.PAGAMENTO,
                f"R$ {valor_ok:.2f} ({forma_ok.value}, {tipo}); pago R$ {nota.valor_pago:.2f}",
                status_novo=novo,
            )
            self.notas.salvar(nota)
            log_transaction("registrar_pagamento", dados, result=nota.valor_pago)
            return nota
        except Exception as e:
            _falha("registrar_pagamento", dados, e)
            raise

    # -------------------------
    # migração pós-conferência
    # -------------------------

    def migrar_conferidos_por_categoria(self, nota_id: str, ator: str) -> ResultadoMigracao:
        """
        Envia os aparelhos conferidos ao estoque: Novo → estoque vendável,
        Seminovo → aparelhos pendentes.

        Idempotente: uma nota já migrada devolve as mesmas contagens sem
        reenviar nada ao estoque nem gerar novo evento.
        """
        dados = {"nota_id": nota_id}
        try:
            nota = self.notas.obter(nota_id)
            if nota.migracao is not None:
                log_conferencia("migrar_repetida", nota_id)
                return nota.migracao
            if nota.status is StatusNota.COM_DIVERGENCIA:
                raise DivergenciaDetectada("Nota com divergência não pode ser migrada", nota_id=nota_id)
            if nota.status is not StatusNota.CONFERENCIA_CONCLUIDA:
                raise TransicaoInvalida(
                    f"Migração exige conferência concluída (status atual: {nota.status.value})",
                    nota_id=nota_id, campo="status",
                )

            aparelhos = [p for p in nota.conferidos() if p.is_aparelho]
            novos = [p for p in aparelhos if p.categoria is Categoria.NOVO]
            seminovos = [p for p in aparelhos if p.categoria is Categoria.SEMINOVO]
            self.estoque.receber_migracao(nota.id, novos, seminovos)

            nota.migracao = ResultadoMigracao(novos=len(novos), seminovos=len(seminovos))
            self._evento(
                nota, ator, AcaoTimeline.MIGRADA,
                f"{len(novos)} novo(s) para o estoque, {len(seminovos)} seminovo(s) para pendentes",
            )
            self.notas.salvar(nota)

            log_conferencia("migrar", nota_id, novos=len(novos), seminovos=len(seminovos))
            log_transaction("migrar_conferidos", dados, result=nota.migracao)
            return nota.migracao
        except Exception as e:
            _falha("migrar_conferidos", dados, e)
            raise
