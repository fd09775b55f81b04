# checkoutpages/core/slug.py
"""
Atribuição de slug de uma página.

O slug nasce derivado do título (estado DRAFT). Quando o usuário digita no campo
de slug, ele passa a ser do usuário (USER_EDITED) e mudanças de título não o
alteram mais. Páginas existentes carregam em USER_EDITED.

A verificação de unicidade durante a digitação é apenas uma dica de latência:
quem decide é a restrição única do banco no momento da gravação.
"""
import enum
import logging
import threading
import time
from typing import Callable, Optional

from checkoutpages.core.exceptions import BaseErroCore
from checkoutpages.core.pagina import normalize_slug
from checkoutpages.core.ports import Aviso, IServicoDados, TABELA_PAGINAS

logger = logging.getLogger(__name__)

ATRASO_PADRAO = 0.5
MENSAGEM_SLUG_EM_USO = "Este slug já está em uso. Escolha outro."


class SlugState(enum.Enum):
    DRAFT = 'draft'
    USER_EDITED = 'user_edited'


def agora_em_ms() -> int:
    return int(time.time() * 1000)


def slug_com_sufixo(slug: str, agora_ms: Optional[int] = None) -> str:
    """Renomeação de conflito: '{slug}-{unix_millis}'."""
    return f"{slug}-{agora_ms if agora_ms is not None else agora_em_ms()}"


def aviso_slug_renomeado(original: str, novo: str) -> Aviso:
    return Aviso(
        codigo='SlugInUse',
        mensagem=MENSAGEM_SLUG_EM_USO,
        dados={'slug_original': original, 'slug_sugerido': novo},
    )


class SlugAssignment:
    """Máquina de estados do slug durante a edição de uma página."""

    def __init__(self, slug: str = '', estado: SlugState = SlugState.DRAFT):
        self.slug = slug
        self.estado = estado

    @classmethod
    def para_pagina_existente(cls, slug: str) -> 'SlugAssignment':
        return cls(slug=slug, estado=SlugState.USER_EDITED)

    def change_title(self, title: str) -> str:
        if self.estado is SlugState.DRAFT:
            self.slug = normalize_slug(title)
        return self.slug

    def edit_slug(self, valor: str) -> str:
        self.estado = SlugState.USER_EDITED
        self.slug = valor
        return self.slug

    def resolve_conflict(self, agora_ms: Optional[int] = None) -> Aviso:
        """Nunca mantém o valor em conflito: troca pelo slug com sufixo e devolve o aviso."""
        original = self.slug
        self.slug = slug_com_sufixo(original, agora_ms)
        logger.info("Slug '%s' em uso, sugerido '%s'", original, self.slug)
        return aviso_slug_renomeado(original, self.slug)


class Debouncer:
    """
    Agrupa chamadas dentro de uma janela: só a última chamada da janela executa.
    flush() executa a chamada pendente imediatamente.
    """

    def __init__(self, funcao: Callable, atraso: float = ATRASO_PADRAO, timer_factory=threading.Timer):
        self.funcao = funcao
        self.atraso = atraso
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer = None
        self._pendente = None

    def __call__(self, *args, **kwargs) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pendente = (args, kwargs)
            self._timer = self._timer_factory(self.atraso, self._disparar)
            self._timer.daemon = True
            self._timer.start()

    @property
    def pendente(self) -> bool:
        return self._pendente is not None

    def _retirar_pendente(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            pendente, self._pendente, self._timer = self._pendente, None, None
        return pendente

    def _disparar(self) -> None:
        pendente = self._retirar_pendente()
        if pendente is not None:
            args, kwargs = pendente
            self.funcao(*args, **kwargs)

    def flush(self):
        pendente = self._retirar_pendente()
        if pendente is None:
            return None
        args, kwargs = pendente
        return self.funcao(*args, **kwargs)

    def cancel(self) -> None:
        self._retirar_pendente()


class SlugUniquenessChecker:
    """Consulta de existência do slug entre páginas de outros usuários."""

    def __init__(self, servico_dados: IServicoDados, atraso: float = ATRASO_PADRAO,
                 timer_factory=threading.Timer):
        self.servico_dados = servico_dados
        self.atraso = atraso
        self.timer_factory = timer_factory

    def slug_em_uso(self, slug: str, user_id: str) -> bool:
        linhas = self.servico_dados.select(TABELA_PAGINAS, {'slug': slug, 'user_id__ne': user_id})
        return bool(linhas)

    def check(self, atribuicao: SlugAssignment, user_id: str,
              agora_ms: Optional[int] = None) -> Optional[Aviso]:
        """Renomeia a atribuição se o slug estiver em uso. Falhas viram aviso, sem repetir."""
        if not atribuicao.slug or not user_id:
            return None
        try:
            em_uso = self.slug_em_uso(atribuicao.slug, user_id)
        except BaseErroCore as erro:
            logger.warning("Erro ao verificar slug '%s': %s", atribuicao.slug, erro)
            return Aviso(codigo=erro.codigo, mensagem="Erro ao verificar slug")
        if em_uso:
            return atribuicao.resolve_conflict(agora_ms)
        return None

    def agendado(self, atribuicao: SlugAssignment, user_id: str,
                 ao_avisar: Callable[[Aviso], None]) -> Debouncer:
        """Verificação com debounce para ser chamada a cada alteração do campo."""
        def verificar():
            aviso = self.check(atribuicao, user_id)
            if aviso is not None:
                ao_avisar(aviso)
            return aviso
        return Debouncer(verificar, self.atraso, timer_factory=self.timer_factory)
