# checkoutpages/core/dependency_injection.py
"""
Módulo de Injeção de Dependência (DI).
Responsável por instanciar os Use Cases com o serviço de dados concreto
da camada de Infraestrutura e com os parâmetros lidos do settings.
"""
import threading
import weakref

from django.conf import settings

from checkoutpages.infrastructure.instances import servico_dados
from .slug import SlugUniquenessChecker
from .use_cases import (
    CarregarPaginaPublicaUseCase,
    DeletarPaginaUseCase,
    DetalharPaginaUseCase,
    DuplicarPaginaUseCase,
    FetchGuard,
    FinalizarPedidoUseCase,
    GerenciarProdutosUseCase,
    ListarPaginasUseCase,
    ResumoAnaliticoUseCase,
    SalvarPaginaUseCase,
    SessaoEdicaoPagina,
    VerificarSlugUseCase,
)

# Um guard por usuário: buscas de usuários diferentes não se bloqueiam.
# A entrada some quando nenhum caso de uso segura mais o guard.
_guards = weakref.WeakValueDictionary()
_guards_lock = threading.Lock()


def _guard_do_usuario(usuario_id) -> FetchGuard:
    with _guards_lock:
        guard = _guards.get(str(usuario_id))
        if guard is None:
            guard = FetchGuard()
            _guards[str(usuario_id)] = guard
        return guard


# ====================================================================
# Use Cases do Construtor de Páginas
# ====================================================================

def get_salvar_pagina_use_case() -> SalvarPaginaUseCase:
    return SalvarPaginaUseCase(servico_dados)

def get_listar_paginas_use_case(usuario_id) -> ListarPaginasUseCase:
    return ListarPaginasUseCase(servico_dados, guard=_guard_do_usuario(usuario_id))

def get_detalhar_pagina_use_case() -> DetalharPaginaUseCase:
    return DetalharPaginaUseCase(servico_dados)

def get_duplicar_pagina_use_case() -> DuplicarPaginaUseCase:
    return DuplicarPaginaUseCase(servico_dados)

def get_deletar_pagina_use_case() -> DeletarPaginaUseCase:
    return DeletarPaginaUseCase(servico_dados)

def get_verificar_slug_use_case() -> VerificarSlugUseCase:
    checker = SlugUniquenessChecker(servico_dados, atraso=settings.SLUG_DEBOUNCE_SEGUNDOS)
    return VerificarSlugUseCase(checker)

def get_sessao_edicao_pagina(pagina, ao_alterar=None) -> SessaoEdicaoPagina:
    checker = SlugUniquenessChecker(servico_dados, atraso=settings.SLUG_DEBOUNCE_SEGUNDOS)
    return SessaoEdicaoPagina(servico_dados, pagina, ao_alterar, checker=checker)


# ====================================================================
# Use Cases da Vitrine, Análise e Catálogo
# ====================================================================

def get_carregar_pagina_publica_use_case() -> CarregarPaginaPublicaUseCase:
    return CarregarPaginaPublicaUseCase(servico_dados)

def get_finalizar_pedido_use_case() -> FinalizarPedidoUseCase:
    return FinalizarPedidoUseCase(servico_dados)

def get_resumo_analitico_use_case() -> ResumoAnaliticoUseCase:
    return ResumoAnaliticoUseCase(servico_dados, visitas_estimadas=settings.ANALYTICS_VISITAS_ESTIMADAS)

def get_gerenciar_produtos_use_case() -> GerenciarProdutosUseCase:
    return GerenciarProdutosUseCase(servico_dados)
