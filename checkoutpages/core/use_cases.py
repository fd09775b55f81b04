# checkoutpages/core/use_cases.py
"""
Implementação dos Casos de Uso (Lógica de Negócio) da aplicação.
Esta camada depende apenas das Entidades, das funções puras do Core e da
Porta do serviço de dados, garantindo o isolamento da lógica de negócio.

Nenhum caso de uso repete operações automaticamente: toda falha é
reportada uma vez e o usuário reenvia.
"""
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional

# Entidades e Exceções
from checkoutpages.core.entities import AnalyticsSummary, CatalogProduct, CheckoutPage, Order
from checkoutpages.core.exceptions import (
    DadosInvalidosError,
    DescontoInvalidoError,
    ItemNaoEncontradoError,
    NenhumProdutoSelecionadoError,
    NomeProdutoInvalidoError,
    PaginaNaoEncontradaError,
    PrecoInvalidoError,
    ProdutoNaoEncontradoError,
    SlugEmUsoError,
    UrlInvalidaError,
)
from checkoutpages.core.mappers import CatalogProductMapper, PaginaMapper, PedidoMapper
from checkoutpages.core.pagina import url_valida, validate_page
from checkoutpages.core.pedido import (
    ProductSelection, build_order, requires_shipping, validate_customer_info,
)
from checkoutpages.core.renderizacao import render_page
from checkoutpages.core.slug import (
    Debouncer, SlugAssignment, SlugUniquenessChecker, slug_com_sufixo,
)

# Porta (Interface) - Importada de checkoutpages/core/ports.py
from checkoutpages.core.ports import (
    Aviso, EventoAlteracao, IAssinatura, IServicoDados,
    TABELA_PAGINAS, TABELA_PEDIDOS, TABELA_PRODUTOS,
)

logger = logging.getLogger(__name__)


# ====================================================================
# 1. CASOS DE USO DO CONSTRUTOR DE PÁGINAS
# ====================================================================

@dataclass
class ResultadoSalvamento:
    """Resultado do envio do construtor: página gravada ou slug renomeado para reenvio."""
    salvo: bool
    pagina: CheckoutPage
    avisos: List[Aviso] = field(default_factory=list)


class SalvarPaginaUseCase:
    """Valida e grava (insere ou atualiza) uma página do usuário."""

    def __init__(self, servico_dados: IServicoDados):
        self.servico_dados = servico_dados

    def executar(
        self,
        pagina: CheckoutPage,
        usuario_id: str,
        atribuicao: Optional[SlugAssignment] = None,
        agora_ms: Optional[int] = None,
    ) -> ResultadoSalvamento:
        """
        Nada é gravado se a validação falhar. Se o slug estiver em uso, a página
        volta com o slug renomeado e um aviso; o reenvio fica com o chamador.
        """
        pagina = replace(pagina, user_id=usuario_id)
        validate_page(pagina)

        linha = PaginaMapper.to_row(pagina)
        try:
            if pagina.id:
                patch = {k: v for k, v in linha.items() if k not in ('id', 'user_id')}
                self.servico_dados.update(TABELA_PAGINAS, pagina.id, patch, {'user_id': usuario_id})
                salva = DetalharPaginaUseCase(self.servico_dados).executar(pagina.id, usuario_id)
            else:
                salva = PaginaMapper.to_entity(self.servico_dados.insert(TABELA_PAGINAS, linha))
        except SlugEmUsoError:
            atribuicao = atribuicao or SlugAssignment.para_pagina_existente(pagina.slug)
            atribuicao.slug = pagina.slug
            aviso = atribuicao.resolve_conflict(agora_ms)
            return ResultadoSalvamento(salvo=False, pagina=replace(pagina, slug=atribuicao.slug), avisos=[aviso])

        logger.info("Página %s salva (slug '%s')", salva.id, salva.slug)
        return ResultadoSalvamento(salvo=True, pagina=salva)


class FetchGuard:
    """No máximo uma busca em andamento; um disparo sobreposto não faz nada."""

    def __init__(self):
        self._lock = threading.Lock()

    @property
    def em_andamento(self) -> bool:
        return self._lock.locked()

    def executar(self, funcao: Callable, *args, **kwargs):
        if not self._lock.acquire(blocking=False):
            logger.debug("Busca ignorada: outra já está em andamento")
            return None
        try:
            return funcao(*args, **kwargs)
        finally:
            self._lock.release()


class ListarPaginasUseCase:
    """Lista as páginas do usuário, mais recentes primeiro."""

    def __init__(self, servico_dados: IServicoDados, guard: Optional[FetchGuard] = None):
        self.servico_dados = servico_dados
        self.guard = guard or FetchGuard()

    def _buscar(self, usuario_id: str) -> List[CheckoutPage]:
        linhas = self.servico_dados.select(TABELA_PAGINAS, {'user_id': usuario_id}, ordem='-created_at')
        return [PaginaMapper.to_entity(linha) for linha in linhas]

    def executar(self, usuario_id: str) -> Optional[List[CheckoutPage]]:
        """Retorna None quando outra busca do mesmo guard ainda está em andamento."""
        return self.guard.executar(self._buscar, usuario_id)


class DetalharPaginaUseCase:
    """Caso de Uso para obter uma página do próprio usuário."""

    def __init__(self, servico_dados: IServicoDados):
        self.servico_dados = servico_dados

    def executar(self, pagina_id: str, usuario_id: str) -> CheckoutPage:
        linhas = self.servico_dados.select(TABELA_PAGINAS, {'id': pagina_id, 'user_id': usuario_id})
        if not linhas:
            raise PaginaNaoEncontradaError()
        return PaginaMapper.to_entity(linhas[0])


class DuplicarPaginaUseCase:
    """Cria uma cópia da página com título '(Copy)' e slug com sufixo de tempo."""

    def __init__(self, servico_dados: IServicoDados):
        self.servico_dados = servico_dados

    def executar(self, pagina_id: str, usuario_id: str, agora_ms: Optional[int] = None) -> CheckoutPage:
        original = DetalharPaginaUseCase(self.servico_dados).executar(pagina_id, usuario_id)
        copia = replace(
            original,
            id=None,
            title=f"{original.title} (Copy)",
            slug=slug_com_sufixo(original.slug, agora_ms),
            created_at=None,
            updated_at=None,
        )
        linha = self.servico_dados.insert(TABELA_PAGINAS, PaginaMapper.to_row(copia))
        logger.info("Página %s duplicada como '%s'", pagina_id, copia.slug)
        return PaginaMapper.to_entity(linha)


class DeletarPaginaUseCase:

    def __init__(self, servico_dados: IServicoDados):
        self.servico_dados = servico_dados

    def executar(self, pagina_id: str, usuario_id: str) -> None:
        try:
            self.servico_dados.delete(TABELA_PAGINAS, pagina_id, {'user_id': usuario_id})
        except ItemNaoEncontradoError as e:
            raise PaginaNaoEncontradaError() from e
        logger.info("Página %s removida pelo usuário %s", pagina_id, usuario_id)


class VerificarSlugUseCase:
    """Consulta consultiva de disponibilidade do slug (a gravação é quem decide)."""

    def __init__(self, checker: SlugUniquenessChecker):
        self.checker = checker

    def executar(self, slug: str, usuario_id: str, agora_ms: Optional[int] = None) -> Dict[str, Any]:
        atribuicao = SlugAssignment.para_pagina_existente(slug)
        aviso = self.checker.check(atribuicao, usuario_id, agora_ms)
        if aviso is None:
            return {'slug': slug, 'disponivel': True, 'sugestao': None, 'aviso': None}
        em_uso = aviso.codigo == 'SlugInUse'
        return {
            'slug': slug,
            # Falha na consulta: disponibilidade desconhecida.
            'disponivel': False if em_uso else None,
            'sugestao': atribuicao.slug if em_uso else None,
            'aviso': aviso,
        }


class SessaoEdicaoPagina:
    """
    Sessão de edição de uma página aberta no construtor.

    Enquanto aberta, assina o feed de alterações da página e aplica as
    atualizações recebidas campo a campo (a última escrita vence: edições
    locais não salvas nos mesmos campos são sobrescritas). A assinatura é
    cancelada ao sair do bloco `with`, em qualquer caminho de saída.

    Com um checker, editar_slug() agenda a verificação de unicidade para depois
    da pausa na digitação; fechar() descarta a verificação pendente.
    """

    def __init__(
        self,
        servico_dados: IServicoDados,
        pagina: CheckoutPage,
        ao_alterar: Optional[Callable[[CheckoutPage], None]] = None,
        checker: Optional[SlugUniquenessChecker] = None,
    ):
        self.servico_dados = servico_dados
        self.pagina = pagina
        self.ao_alterar = ao_alterar
        self.checker = checker
        self.removida = False
        self.assinatura: Optional[IAssinatura] = None
        self.atribuicao = SlugAssignment.para_pagina_existente(pagina.slug)
        self._verificacao: Optional[Debouncer] = None
        self._ao_avisar: Optional[Callable[[Aviso], None]] = None
        self._lock = threading.Lock()

    def __enter__(self) -> 'SessaoEdicaoPagina':
        self.assinatura = self.servico_dados.subscribe(TABELA_PAGINAS, {'id': self.pagina.id}, self._receber)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.fechar()

    def fechar(self) -> None:
        if self._verificacao is not None:
            self._verificacao.cancel()
        if self.assinatura is not None:
            self.assinatura.unsubscribe()
            self.assinatura = None

    def editar_slug(self, valor: str, ao_avisar: Optional[Callable[[Aviso], None]] = None) -> str:
        """Aplica o slug digitado e reinicia a janela da verificação de unicidade."""
        with self._lock:
            slug = self.atribuicao.edit_slug(valor)
            self.pagina = replace(self.pagina, slug=slug)
            self._ao_avisar = ao_avisar
        if self.checker is not None:
            if self._verificacao is None:
                self._verificacao = self.checker.agendado(
                    self.atribuicao, self.pagina.user_id, self._slug_verificado)
            self._verificacao()
        return slug

    def _slug_verificado(self, aviso: Aviso) -> None:
        with self._lock:
            self.pagina = replace(self.pagina, slug=self.atribuicao.slug)
            ao_avisar = self._ao_avisar
        if ao_avisar is not None:
            ao_avisar(aviso)

    @staticmethod
    def reconciliar(pagina: CheckoutPage, linha: Mapping[str, Any]) -> CheckoutPage:
        """Campos presentes na linha recebida substituem os locais; os demais ficam."""
        atual = PaginaMapper.to_row(pagina)
        atual['user_id'] = pagina.user_id
        atual['created_at'] = pagina.created_at
        atual['updated_at'] = pagina.updated_at
        atual.update(linha)
        return PaginaMapper.to_entity(atual)

    def _receber(self, evento: EventoAlteracao) -> None:
        with self._lock:
            if evento.tipo == 'DELETE':
                self.removida = True
                logger.info("Página %s removida durante a edição", self.pagina.id)
                return
            if evento.tipo != 'UPDATE' or not evento.novo:
                return
            self.pagina = self.reconciliar(self.pagina, evento.novo)
            pagina = self.pagina
        if self.ao_alterar is not None:
            self.ao_alterar(pagina)


# ====================================================================
# 2. CASOS DE USO DA VITRINE (PÚBLICOS)
# ====================================================================

class CarregarPaginaPublicaUseCase:
    """Busca uma página ativa pelo slug para exibição na vitrine."""

    def __init__(self, servico_dados: IServicoDados):
        self.servico_dados = servico_dados

    def carregar(self, slug: str) -> CheckoutPage:
        linhas = self.servico_dados.select(TABELA_PAGINAS, {'slug': slug, 'is_active': True})
        if not linhas:
            raise PaginaNaoEncontradaError(f"Página '{slug}' não encontrada.")
        return PaginaMapper.to_entity(linhas[0])

    def executar(self, slug: str) -> Dict[str, Any]:
        return render_page(self.carregar(slug))


class FinalizarPedidoUseCase:
    """Valida o formulário do cliente, monta o pedido e o registra como 'pending'."""

    def __init__(self, servico_dados: IServicoDados):
        self.servico_dados = servico_dados

    def executar(self, slug: str, selecao: ProductSelection, formulario: Mapping[str, Any]) -> Order:
        pagina = CarregarPaginaPublicaUseCase(self.servico_dados).carregar(slug)

        ids = selecao.selected_product_ids
        if not ids:
            raise NenhumProdutoSelecionadoError()
        validate_customer_info(formulario, requires_shipping(pagina, ids), pagina.custom_fields)

        pedido = build_order(pagina, selecao, formulario)
        linha = self.servico_dados.insert(TABELA_PEDIDOS, PedidoMapper.to_row(pedido))
        pedido_salvo = PedidoMapper.to_entity(linha)
        logger.info(
            "Pedido %s registrado na página %s (total %s)",
            pedido_salvo.id, pagina.id, pedido_salvo.total_amount,
        )
        return pedido_salvo


# ====================================================================
# 3. CASOS DE USO DE ANÁLISE E CATÁLOGO
# ====================================================================

PERIODOS = {'7d': 7, '30d': 30, '90d': 90, '1y': 365}


class ResumoAnaliticoUseCase:
    """Agrega os pedidos das páginas do usuário em um período."""

    def __init__(self, servico_dados: IServicoDados, visitas_estimadas: int = 1000):
        self.servico_dados = servico_dados
        self.visitas_estimadas = visitas_estimadas

    def executar(self, usuario_id: str, periodo: str = '7d', agora: Optional[datetime] = None) -> AnalyticsSummary:
        if periodo not in PERIODOS:
            raise DadosInvalidosError(f"Período inválido: '{periodo}'. Use {', '.join(PERIODOS)}.")

        paginas = self.servico_dados.select(TABELA_PAGINAS, {'user_id': usuario_id})
        if not paginas:
            return AnalyticsSummary()

        agora = agora or datetime.now(timezone.utc)
        inicio = agora - timedelta(days=PERIODOS[periodo])
        linhas = self.servico_dados.select(
            TABELA_PEDIDOS,
            {'checkout_page_id__in': [p['id'] for p in paginas], 'created_at__gte': inicio},
            ordem='-created_at',
        )
        pedidos = [PedidoMapper.to_entity(linha) for linha in linhas]

        total_vendas = sum((p.total_amount for p in pedidos), Decimal('0.00'))
        total_pedidos = len(pedidos)

        receita_por_dia: Dict[str, Decimal] = defaultdict(Decimal)
        vendas_por_produto: Dict[str, int] = defaultdict(int)
        for pedido in pedidos:
            receita_por_dia[pedido.created_at.date().isoformat()] += pedido.total_amount
            for item in pedido.products:
                vendas_por_produto[item.name] += item.quantity

        top = sorted(vendas_por_produto.items(), key=lambda par: par[1], reverse=True)[:5]

        return AnalyticsSummary(
            total_sales=total_vendas,
            total_orders=total_pedidos,
            conversion_rate=(total_pedidos / self.visitas_estimadas) * 100 if total_pedidos else 0.0,
            revenue_by_day=[{'date': dia, 'revenue': receita} for dia, receita in sorted(receita_por_dia.items())],
            top_products=[{'name': nome, 'sales': vendas} for nome, vendas in top],
            recent_orders=pedidos,
            active_pages=sum(1 for p in paginas if p.get('is_active')),
        )


def validar_produto_catalogo(produto: CatalogProduct) -> None:
    if not (produto.name or '').strip():
        raise NomeProdutoInvalidoError("Nome do produto é obrigatório.", product_id=produto.id)
    try:
        preco = Decimal(str(produto.price))
    except ArithmeticError:
        preco = None
    if preco is None or not preco.is_finite() or preco <= 0:
        raise PrecoInvalidoError(product_id=produto.id)
    if produto.image_url and not url_valida(produto.image_url):
        raise UrlInvalidaError("URL da imagem inválida.", product_id=produto.id)
    if produto.type == 'digital':
        if not produto.digital_file_url:
            raise UrlInvalidaError("URL do arquivo digital é obrigatória.", product_id=produto.id)
        if not url_valida(produto.digital_file_url):
            raise UrlInvalidaError("URL do arquivo digital inválida.", product_id=produto.id)
    if produto.discount is not None and not 0 <= produto.discount <= 100:
        raise DescontoInvalidoError(product_id=produto.id)


class GerenciarProdutosUseCase:
    """Catálogo de produtos do usuário (tabela products)."""

    def __init__(self, servico_dados: IServicoDados):
        self.servico_dados = servico_dados

    def listar(self, usuario_id: str) -> List[CatalogProduct]:
        linhas = self.servico_dados.select(TABELA_PRODUTOS, {'user_id': usuario_id}, ordem='-created_at')
        return [CatalogProductMapper.to_entity(linha) for linha in linhas]

    def detalhar(self, produto_id: str, usuario_id: str) -> CatalogProduct:
        linhas = self.servico_dados.select(TABELA_PRODUTOS, {'id': produto_id, 'user_id': usuario_id})
        if not linhas:
            raise ProdutoNaoEncontradoError()
        return CatalogProductMapper.to_entity(linhas[0])

    def salvar(self, produto: CatalogProduct, usuario_id: str) -> CatalogProduct:
        produto = replace(produto, user_id=usuario_id)
        validar_produto_catalogo(produto)
        linha = CatalogProductMapper.to_row(produto)
        if produto.id:
            patch = {k: v for k, v in linha.items() if k not in ('id', 'user_id')}
            self.servico_dados.update(TABELA_PRODUTOS, produto.id, patch, {'user_id': usuario_id})
            return self.detalhar(produto.id, usuario_id)
        return CatalogProductMapper.to_entity(self.servico_dados.insert(TABELA_PRODUTOS, linha))

    def deletar(self, produto_id: str, usuario_id: str) -> None:
        try:
            self.servico_dados.delete(TABELA_PRODUTOS, produto_id, {'user_id': usuario_id})
        except ItemNaoEncontradoError as e:
            raise ProdutoNaoEncontradoError() from e
