# checkoutpages/infrastructure/testes.py

import gc
import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from checkoutpages.core import dependency_injection as di
from checkoutpages.core.entities import CheckoutPage, Product
from checkoutpages.core.exceptions import (
    ItemNaoEncontradoError,
    PermissaoNegadaError,
    SlugEmUsoError,
)
from checkoutpages.core.mappers import PaginaMapper
from checkoutpages.core.pagina import default_layout
from checkoutpages.core.pedido import ProductSelection
from checkoutpages.core.ports import TABELA_PAGINAS
from checkoutpages.core.use_cases import (
    FinalizarPedidoUseCase, ResumoAnaliticoUseCase, SalvarPaginaUseCase, SessaoEdicaoPagina,
)
from checkoutpages.infrastructure.repositories import ServicoDadosDjango

User = get_user_model()


def pagina_de(usuario, slug='curso-premium', **kwargs) -> CheckoutPage:
    dados = dict(
        user_id=str(usuario.pk),
        title='Curso Premium',
        slug=slug,
        layout=default_layout('Curso Premium'),
        products=[
            Product(id='p1', name='Book', price=Decimal('29.90'), order=0,
                    digital_file_url='https://example.com/book.pdf'),
            Product(id='p2', name='Shipping Protector', price=Decimal('5.00'), order=1, type='physical'),
        ],
    )
    dados.update(kwargs)
    return CheckoutPage(**dados)


class ServicoDadosDjangoTestCase(TestCase):

    def setUp(self):
        self.servico = ServicoDadosDjango()
        self.dono = User.objects.create_user(email='dono@example.com', password='senha-forte')
        self.outro = User.objects.create_user(email='outro@example.com', password='senha-forte')
        self.linha = self.servico.insert(TABELA_PAGINAS, PaginaMapper.to_row(pagina_de(self.dono)))
        self.pagina_id = str(self.linha['id'])

    def test_insert_e_select(self):
        linhas = self.servico.select(TABELA_PAGINAS, {'slug': 'curso-premium'})
        self.assertEqual(len(linhas), 1)

        pagina = PaginaMapper.to_entity(linhas[0])
        self.assertEqual(pagina.id, self.pagina_id)
        self.assertEqual(pagina.user_id, str(self.dono.pk))
        self.assertEqual(pagina.products[0].price, Decimal('29.90'))
        self.assertTrue(pagina.products[1].requires_shipping)
        self.assertIsNotNone(pagina.created_at)

    def test_slug_duplicado_vira_conflito(self):
        with self.assertRaises(SlugEmUsoError):
            self.servico.insert(TABELA_PAGINAS, PaginaMapper.to_row(pagina_de(self.outro)))

    def test_filtro_diferente_de(self):
        filtro = {'slug': 'curso-premium', 'user_id__ne': str(self.dono.pk)}
        self.assertEqual(self.servico.select(TABELA_PAGINAS, filtro), [])
        filtro['user_id__ne'] = str(self.outro.pk)
        self.assertEqual(len(self.servico.select(TABELA_PAGINAS, filtro)), 1)

    def test_update_de_outro_dono_e_negado(self):
        with self.assertRaises(PermissaoNegadaError):
            self.servico.update(TABELA_PAGINAS, self.pagina_id, {'title': 'Invadido'}, {'user_id': str(self.outro.pk)})
        linha = self.servico.select(TABELA_PAGINAS, {'id': self.pagina_id})[0]
        self.assertEqual(linha['title'], 'Curso Premium')

    def test_update_inexistente(self):
        with self.assertRaises(ItemNaoEncontradoError):
            self.servico.update(TABELA_PAGINAS, str(uuid.uuid4()), {'title': 'X'}, {'user_id': str(self.dono.pk)})

    def test_delete_com_filtro_do_dono(self):
        with self.assertRaises(ItemNaoEncontradoError):
            self.servico.delete(TABELA_PAGINAS, self.pagina_id, {'user_id': str(self.outro.pk)})
        self.assertEqual(len(self.servico.select(TABELA_PAGINAS, {'id': self.pagina_id})), 1)

        self.servico.delete(TABELA_PAGINAS, self.pagina_id, {'user_id': str(self.dono.pk)})
        self.assertEqual(self.servico.select(TABELA_PAGINAS, {'id': self.pagina_id}), [])

    def test_feed_entrega_apos_commit_e_para_apos_unsubscribe(self):
        eventos = []
        assinatura = self.servico.subscribe(TABELA_PAGINAS, {'id': self.pagina_id}, eventos.append)

        with self.captureOnCommitCallbacks(execute=True):
            self.servico.update(TABELA_PAGINAS, self.pagina_id, {'title': 'Novo'}, {'user_id': str(self.dono.pk)})
        self.assertEqual([e.tipo for e in eventos], ['UPDATE'])
        self.assertEqual(eventos[0].novo['title'], 'Novo')

        assinatura.unsubscribe()
        self.assertFalse(assinatura.ativa)
        with self.captureOnCommitCallbacks(execute=True):
            self.servico.update(TABELA_PAGINAS, self.pagina_id, {'title': 'Outro'}, {'user_id': str(self.dono.pk)})
        self.assertEqual(len(eventos), 1)

    def test_feed_ignora_outras_linhas(self):
        eventos = []
        assinatura = self.servico.subscribe(TABELA_PAGINAS, {'id': self.pagina_id}, eventos.append)
        with self.captureOnCommitCallbacks(execute=True):
            self.servico.insert(TABELA_PAGINAS, PaginaMapper.to_row(pagina_de(self.outro, slug='outra')))
        assinatura.unsubscribe()
        self.assertEqual(eventos, [])


class FluxoCompletoTestCase(TestCase):
    """Casos de uso da Core rodando sobre o banco real."""

    def setUp(self):
        self.servico = ServicoDadosDjango()
        self.ana = User.objects.create_user(email='ana@example.com', password='senha-forte')
        self.bruno = User.objects.create_user(email='bruno@example.com', password='senha-forte')
        self.salvar = SalvarPaginaUseCase(self.servico)

    def test_dois_usuarios_disputam_o_mesmo_slug(self):
        primeiro = self.salvar.executar(pagina_de(self.ana, slug='promo'), str(self.ana.pk))
        self.assertTrue(primeiro.salvo)

        segundo = self.salvar.executar(pagina_de(self.bruno, slug='promo'), str(self.bruno.pk), agora_ms=1700000000000)
        self.assertFalse(segundo.salvo)
        self.assertEqual(segundo.pagina.slug, 'promo-1700000000000')

        reenvio = self.salvar.executar(segundo.pagina, str(self.bruno.pk))
        self.assertTrue(reenvio.salvo)
        self.assertEqual(len(self.servico.select(TABELA_PAGINAS, {'user_id': str(self.bruno.pk)})), 1)

    def test_sessao_de_edicao_recebe_alteracao_remota(self):
        salva = self.salvar.executar(pagina_de(self.ana), str(self.ana.pk)).pagina

        with SessaoEdicaoPagina(self.servico, salva) as sessao:
            with self.captureOnCommitCallbacks(execute=True):
                self.servico.update(
                    TABELA_PAGINAS, salva.id, {'title': 'Editado em outra aba'}, {'user_id': str(self.ana.pk)})
            self.assertEqual(sessao.pagina.title, 'Editado em outra aba')
            assinatura = sessao.assinatura

        self.assertFalse(assinatura.ativa)

    def test_pedido_e_resumo_analitico(self):
        salva = self.salvar.executar(pagina_de(self.ana), str(self.ana.pk)).pagina
        formulario = {
            'name': 'Carla', 'email': 'carla@example.com', 'phone': '11988887777', 'cpf': '98765432100',
            'address_street': 'Rua A', 'address_number': '1', 'address_neighborhood': 'Centro',
            'address_city': 'Recife', 'address_state': 'PE', 'address_zip': '50000-000',
        }
        pedido = FinalizarPedidoUseCase(self.servico).executar(
            salva.slug, ProductSelection(['p1', 'p2'], {'p2': 2}), formulario)

        self.assertEqual(pedido.status, 'pending')
        self.assertEqual(pedido.total_amount, Decimal('39.90'))
        self.assertEqual(pedido.customer_info.address.city, 'Recife')

        resumo = ResumoAnaliticoUseCase(self.servico).executar(str(self.ana.pk), '7d')
        self.assertEqual(resumo.total_orders, 1)
        self.assertEqual(resumo.total_sales, Decimal('39.90'))
        self.assertEqual(resumo.top_products[0], {'name': 'Shipping Protector', 'sales': 2})
        self.assertEqual(resumo.active_pages, 1)


class InjecaoDeDependenciaTestCase(TestCase):

    def test_guard_do_usuario_e_descartado_sem_referencias(self):
        listar_uc = di.get_listar_paginas_use_case('user-gc')
        self.assertIs(di.get_listar_paginas_use_case('user-gc').guard, listar_uc.guard)
        self.assertIsNot(di.get_listar_paginas_use_case('outro-usuario').guard, listar_uc.guard)

        del listar_uc
        gc.collect()

        self.assertNotIn('user-gc', di._guards)

    @override_settings(SLUG_DEBOUNCE_SEGUNDOS=0.25)
    def test_sessao_de_edicao_usa_o_atraso_configurado(self):
        pagina = pagina_de(User.objects.create_user(email='dani@example.com', password='senha-forte'))

        sessao = di.get_sessao_edicao_pagina(pagina)

        self.assertEqual(sessao.checker.atraso, 0.25)
        self.assertIs(sessao.servico_dados, sessao.checker.servico_dados)
