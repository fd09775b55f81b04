"""
Camada de Infraestrutura: Implementação do Serviço de Dados.

Esta camada traduz as operações abstratas definidas na Porta IServicoDados
em chamadas concretas ao Django ORM. As linhas trafegam como dicionários
(coluna -> valor) e os erros do banco viram exceções da Core.

O feed de alterações é entregue pelos sinais post_save/post_delete, sempre
depois do commit da transação que gravou a linha.
"""
import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

from django.apps import apps
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.db.utils import IntegrityError, InterfaceError, OperationalError

# Importações da Camada CORE (EXCEÇÕES e INTERFACES)
from checkoutpages.core.exceptions import (
    ConflitoError,
    DadosInvalidosError,
    FalhaDeRedeError,
    ItemNaoEncontradoError,
    PermissaoNegadaError,
    SlugEmUsoError,
)
from checkoutpages.core.ports import (
    EventoAlteracao,
    Filtro,
    IAssinatura,
    IServicoDados,
    Linha,
    TABELA_PAGINAS,
    TABELA_PEDIDOS,
    TABELA_PRODUTOS,
    linha_atende_filtro,
    separar_operador,
)

logger = logging.getLogger(__name__)

MODELOS_POR_TABELA = {
    TABELA_PAGINAS: 'CheckoutPageModel',
    TABELA_PRODUTOS: 'ProductModel',
    TABELA_PEDIDOS: 'OrderModel',
}


# Helper para Lazy Loading
def get_model(app_label, model_name):
    """Busca o modelo Django de forma segura (Lazy Loading)."""
    return apps.get_model(app_label, model_name)


def modelo_da_tabela(tabela: str):
    try:
        return get_model('infrastructure', MODELOS_POR_TABELA[tabela])
    except KeyError:
        raise DadosInvalidosError(f"Tabela desconhecida: '{tabela}'.")


@contextmanager
def traduzir_erros_do_banco(tabela: str):
    """Converte os erros do Django ORM nas exceções da Core."""
    try:
        yield
    except IntegrityError as e:
        logger.info("Violação de restrição em %s: %s", tabela, e)
        if tabela == TABELA_PAGINAS and 'slug' in str(e).lower():
            raise SlugEmUsoError() from e
        raise ConflitoError() from e
    except (OperationalError, InterfaceError) as e:
        logger.error("Falha de conexão com o banco ao acessar %s: %s", tabela, e)
        raise FalhaDeRedeError() from e
    except ValidationError as e:
        raise DadosInvalidosError("; ".join(e.messages)) from e


def aplicar_filtro(qs, filtro: Filtro):
    for chave, valor in filtro.items():
        coluna, operador = separar_operador(chave)
        if operador == 'eq':
            qs = qs.filter(**{coluna: valor})
        elif operador == 'ne':
            qs = qs.exclude(**{coluna: valor})
        else:
            qs = qs.filter(**{f"{coluna}__{operador}": valor})
    return qs


def _colunas(Modelo, registro: Linha) -> Dict:
    """Mantém só as colunas do modelo (pelo attname, ex: 'user_id')."""
    nomes = {campo.attname for campo in Modelo._meta.concrete_fields}
    return {coluna: valor for coluna, valor in registro.items() if coluna in nomes}


# ====================================================================
# 1. FEED DE ALTERAÇÕES
# ====================================================================

class AssinaturaDjango(IAssinatura):
    """Assinatura do feed de uma tabela, ligada aos sinais do modelo até o unsubscribe()."""

    def __init__(self, Modelo, tabela: str, filtro: Filtro, ao_alterar: Callable[[EventoAlteracao], None]):
        self.Modelo = Modelo
        self.tabela = tabela
        self.filtro = dict(filtro)
        self.ao_alterar = ao_alterar
        self._uid = f"checkoutpages-assinatura-{uuid.uuid4().hex}"
        self._lock = threading.Lock()
        self._ativa = True
        post_save.connect(self._ao_salvar, sender=Modelo, weak=False, dispatch_uid=self._uid)
        post_delete.connect(self._ao_remover, sender=Modelo, weak=False, dispatch_uid=self._uid)

    @property
    def ativa(self) -> bool:
        return self._ativa

    def unsubscribe(self) -> None:
        with self._lock:
            if not self._ativa:
                return
            self._ativa = False
        post_save.disconnect(sender=self.Modelo, dispatch_uid=self._uid)
        post_delete.disconnect(sender=self.Modelo, dispatch_uid=self._uid)
        logger.debug("Assinatura de %s cancelada", self.tabela)

    def _ao_salvar(self, sender, instance, created=False, **kwargs):
        linha = instance.como_linha()
        if linha_atende_filtro(linha, self.filtro):
            self._entregar(EventoAlteracao('INSERT' if created else 'UPDATE', self.tabela, novo=linha))

    def _ao_remover(self, sender, instance, **kwargs):
        linha = instance.como_linha()
        if linha_atende_filtro(linha, self.filtro):
            self._entregar(EventoAlteracao('DELETE', self.tabela, antigo=linha))

    def _entregar(self, evento: EventoAlteracao) -> None:
        def despachar():
            # Cancelada entre a gravação e o commit: nada é entregue.
            if self._ativa:
                self.ao_alterar(evento)
        transaction.on_commit(despachar, robust=True)


# ====================================================================
# 2. SERVIÇO DE DADOS (Implementação Django ORM)
# ====================================================================

class ServicoDadosDjango(IServicoDados):
    """Implementação do IServicoDados usando o Django ORM."""

    def _buscar(self, Modelo, registro_id: str):
        try:
            return Modelo.objects.select_for_update().get(pk=registro_id)
        except (Modelo.DoesNotExist, ValidationError, ValueError):
            raise ItemNaoEncontradoError(f"Registro {registro_id} não encontrado.")

    def select(self, tabela: str, filtro: Filtro, ordem: Optional[str] = None) -> List[Linha]:
        Modelo = modelo_da_tabela(tabela)
        with traduzir_erros_do_banco(tabela):
            qs = aplicar_filtro(Modelo.objects.all(), filtro)
            if ordem:
                qs = qs.order_by(ordem)
            return [instancia.como_linha() for instancia in qs]

    def insert(self, tabela: str, registro: Linha) -> Linha:
        Modelo = modelo_da_tabela(tabela)
        with traduzir_erros_do_banco(tabela), transaction.atomic():
            instancia = Modelo(**_colunas(Modelo, registro))
            instancia.save(force_insert=True)
        logger.debug("Inserido %s em %s", instancia.pk, tabela)
        return instancia.como_linha()

    def update(self, tabela: str, registro_id: str, patch: Linha, filtro_dono: Filtro) -> None:
        Modelo = modelo_da_tabela(tabela)
        chave_primaria = Modelo._meta.pk.attname
        with traduzir_erros_do_banco(tabela), transaction.atomic():
            instancia = self._buscar(Modelo, registro_id)
            if not linha_atende_filtro(instancia.como_linha(), filtro_dono):
                logger.warning("Atualização negada em %s para o registro %s", tabela, registro_id)
                raise PermissaoNegadaError()
            for coluna, valor in _colunas(Modelo, patch).items():
                if coluna != chave_primaria:
                    setattr(instancia, coluna, valor)
            # save() dispara post_save, que alimenta o feed.
            instancia.save()

    def delete(self, tabela: str, registro_id: str, filtro_dono: Filtro) -> None:
        Modelo = modelo_da_tabela(tabela)
        with traduzir_erros_do_banco(tabela), transaction.atomic():
            instancia = self._buscar(Modelo, registro_id)
            # Linhas de outro dono ficam invisíveis: mesmo efeito de não existirem.
            if not linha_atende_filtro(instancia.como_linha(), filtro_dono):
                raise ItemNaoEncontradoError(f"Registro {registro_id} não encontrado.")
            instancia.delete()
        logger.debug("Removido %s de %s", registro_id, tabela)

    def subscribe(
        self, tabela: str, filtro: Filtro, ao_alterar: Callable[[EventoAlteracao], None]
    ) -> AssinaturaDjango:
        return AssinaturaDjango(modelo_da_tabela(tabela), tabela, filtro, ao_alterar)
