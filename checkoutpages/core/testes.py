# checkoutpages/core/testes.py

import unittest
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import Mock

# Importamos as funções e classes que queremos testar
from checkoutpages.core.entities import (
    CatalogProduct, CheckoutPage, CustomField, LayoutContent, LayoutElement, Product,
)
from checkoutpages.core.exceptions import (
    CampoDesvinculadoError,
    ConflitoError,
    DadosClienteInvalidosError,
    DadosInvalidosError,
    FalhaDeRedeError,
    ItemNaoEncontradoError,
    NenhumProdutoSelecionadoError,
    PaginaNaoEncontradaError,
    PaginaSemProdutosError,
    PrecoInvalidoError,
    QuantidadeInvalidaError,
    SlugEmUsoError,
    UrlInvalidaError,
)
from checkoutpages.core.mappers import LayoutElementMapper, PaginaMapper
from checkoutpages.core.pagina import (
    add_custom_field, add_product, collect_page_errors, default_layout, insert_layout_element,
    move_custom_field, move_layout_element, move_product, normalize_field_name, normalize_slug,
    remove_field_and_linked_elements, remove_layout_element, remove_product, sort_by_order,
    update_layout_element, update_product, validate_page,
)
from checkoutpages.core.pedido import (
    ProductSelection, build_order, calculate_total, requires_shipping, validate_customer_info,
)
from checkoutpages.core.ports import EventoAlteracao, TABELA_PAGINAS, TABELA_PEDIDOS, linha_atende_filtro
from checkoutpages.core.renderizacao import render_page
from checkoutpages.core.slug import Debouncer, SlugAssignment, SlugState, SlugUniquenessChecker
from checkoutpages.core.use_cases import (
    DeletarPaginaUseCase, DuplicarPaginaUseCase, FetchGuard, FinalizarPedidoUseCase,
    GerenciarProdutosUseCase, ListarPaginasUseCase, ResumoAnaliticoUseCase,
    SalvarPaginaUseCase, SessaoEdicaoPagina, VerificarSlugUseCase,
)

AGORA_MS = 1700000000000


# ====================================================================
# CONFIGURAÇÃO DE FIXTURES (Dados Mock)
# ====================================================================

def nova_pagina(**kwargs) -> CheckoutPage:
    dados = dict(
        user_id='user-1',
        title='Curso Premium',
        slug='curso-premium',
        products=[
            Product(id='p1', name='Book', price=Decimal('29.90'), order=0,
                    digital_file_url='https://example.com/book.pdf'),
            Product(id='p2', name='Shipping Protector', price=Decimal('5.00'), order=1, type='physical'),
        ],
    )
    dados.update(kwargs)
    return CheckoutPage(**dados)


def formulario_cliente(**kwargs) -> dict:
    dados = {
        'name': 'Ana Souza',
        'email': 'ana@example.com',
        'phone': '11999999999',
        'cpf': '12345678900',
        'address_street': 'Rua das Flores',
        'address_number': '10',
        'address_neighborhood': 'Centro',
        'address_city': 'São Paulo',
        'address_state': 'SP',
        'address_zip': '01000-000',
    }
    dados.update(kwargs)
    return dados


def ordens(colecao):
    return [item.order for item in colecao]


# ====================================================================
# TESTES DO MODELO DA PÁGINA
# ====================================================================

class TestNormalizeSlug(unittest.TestCase):

    def test_titulo_com_espacos_e_pontuacao(self):
        self.assertEqual(normalize_slug("  Curso Premium!! 2024  "), "curso-premium-2024")

    def test_idempotente_e_no_formato_permitido(self):
        for titulo in ("Promo -- Black Friday", "Ação & Reação", "---", "", "a  b\tc", "Já 100% OFF!"):
            slug = normalize_slug(titulo)
            self.assertEqual(normalize_slug(slug), slug)
            self.assertRegex(slug, r'^[a-z0-9-]*$')

    def test_nome_do_campo(self):
        self.assertEqual(normalize_field_name("Nome da Empresa"), "nome_da_empresa")

    def test_nome_do_campo_troca_cada_espaco(self):
        self.assertEqual(normalize_field_name("a  b"), "a__b")
        self.assertEqual(normalize_field_name(" Cargo\t"), "_cargo_")


class TestValidatePage(unittest.TestCase):

    def test_pagina_valida_nao_levanta(self):
        validate_page(nova_pagina())

    def test_pagina_sem_produtos(self):
        with self.assertRaises(PaginaSemProdutosError):
            validate_page(nova_pagina(products=[]))

    def test_primeiro_produto_invalido_e_reportado(self):
        pagina = nova_pagina(products=[
            Product(id='a', name='Ok', price=Decimal('1.00')),
            Product(id='b', name='Grátis', price=Decimal('0')),
            Product(id='c', name='Negativo', price=Decimal('-3')),
        ])
        with self.assertRaises(PrecoInvalidoError) as ctx:
            validate_page(pagina)
        self.assertEqual(ctx.exception.product_id, 'b')

    def test_url_invalida(self):
        pagina = nova_pagina(products=[Product(name='Ebook', price=Decimal('10'), image_url='nao-e-url')])
        with self.assertRaises(UrlInvalidaError):
            validate_page(pagina)

    def test_url_absoluta_com_qualquer_esquema(self):
        pagina = nova_pagina(
            logo_url='http://cdn_host.internal/a.png',
            products=[
                Product(name='Ebook', price=Decimal('10'), digital_file_url='s3://bucket/ebook.pdf'),
                Product(name='Suporte', price=Decimal('5'), image_url='https://example.com/p.png',
                        digital_file_url='mailto:suporte@example.com'),
            ],
        )
        self.assertEqual(collect_page_errors(pagina), [])

    def test_url_relativa_ou_com_espaco_e_invalida(self):
        for url in ('/imagens/a.png', 'example.com/a.png', 'https://exa mple.com/a.png', '1http://x'):
            pagina = nova_pagina(logo_url=url)
            self.assertEqual([e.codigo for e in collect_page_errors(pagina)], ['InvalidUrl'], url)

    def test_text_field_sem_campo_personalizado(self):
        pagina = nova_pagina(layout=[
            LayoutElement(id='element-fantasma', type='text_field',
                          content=LayoutContent(field_id='field_fantasma'), order=0),
        ])
        with self.assertRaises(CampoDesvinculadoError) as ctx:
            validate_page(pagina)
        self.assertEqual(ctx.exception.element_id, 'element-fantasma')

    def test_text_field_vinculado_e_valido(self):
        pagina = insert_layout_element(nova_pagina(layout=default_layout('Curso Premium')), 'text_field')
        validate_page(pagina)

    def test_coleta_todas_as_falhas_em_ordem(self):
        pagina = nova_pagina(title='', slug='Slug Inválido', products=[])
        codigos = [erro.codigo for erro in collect_page_errors(pagina)]
        self.assertEqual(codigos, ['EmptyProducts', 'InvalidTitle', 'InvalidSlug'])


class TestOrdemDensa(unittest.TestCase):

    def test_campos_personalizados(self):
        pagina = nova_pagina()
        for label in ('Empresa', 'Cargo', 'Cidade'):
            pagina = add_custom_field(pagina, label=label)
        self.assertEqual(ordens(pagina.custom_fields), [0, 1, 2])
        self.assertEqual([f.name for f in pagina.custom_fields], ['field_1', 'field_2', 'field_3'])

        pagina = move_custom_field(pagina, 2, 0)
        self.assertEqual([f.label for f in pagina.custom_fields], ['Cidade', 'Empresa', 'Cargo'])
        self.assertEqual(ordens(pagina.custom_fields), [0, 1, 2])

        pagina = remove_field_and_linked_elements(pagina, pagina.custom_fields[1].id)
        self.assertEqual(ordens(pagina.custom_fields), [0, 1])

    def test_produtos(self):
        pagina = add_product(nova_pagina(), name='Bônus', price='9.90')
        self.assertEqual(ordens(pagina.products), [0, 1, 2])
        self.assertEqual(pagina.products[2].price, Decimal('9.90'))

        pagina = move_product(pagina, 0, 2)
        self.assertEqual([p.id for p in pagina.products][-1], 'p1')
        pagina = remove_product(pagina, 'p2')
        self.assertEqual(ordens(pagina.products), [0, 1])

    def test_layout(self):
        pagina = nova_pagina(layout=default_layout('Curso Premium'))
        pagina = insert_layout_element(pagina, 'divider', posicao=1)
        self.assertEqual(pagina.layout[1].type, 'divider')
        self.assertEqual(ordens(pagina.layout), list(range(7)))

        pagina = move_layout_element(pagina, 0, 6)
        pagina = remove_layout_element(pagina, pagina.layout[0].id)
        self.assertEqual(ordens(pagina.layout), list(range(6)))

    def test_carga_sem_order_usa_a_posicao(self):
        campos = [CustomField(name='b', label='B', order=None), CustomField(name='a', label='A', order=None)]
        self.assertEqual([f.name for f in sort_by_order(campos)], ['b', 'a'])

    def test_produto_fisico_exige_envio(self):
        pagina = update_product(nova_pagina(), 'p1', type='physical')
        self.assertTrue(pagina.buscar_produto('p1').requires_shipping)


class TestCascataCampoLayout(unittest.TestCase):

    def setUp(self):
        pagina = nova_pagina(layout=default_layout('Curso Premium'))
        self.pagina = insert_layout_element(pagina, 'text_field', content=LayoutContent(placeholder='Empresa'))
        self.elemento = next(e for e in self.pagina.layout if e.type == 'text_field')

    def test_text_field_cria_campo_vinculado(self):
        self.assertEqual(len(self.pagina.custom_fields), 1)
        self.assertEqual(self.elemento.content.field_id, self.pagina.custom_fields[0].id)
        self.assertEqual(self.pagina.custom_fields[0].label, 'Empresa')

    def test_remover_elemento_remove_campo(self):
        pagina = remove_layout_element(self.pagina, self.elemento.id)
        self.assertEqual(pagina.custom_fields, [])
        self.assertFalse(any(e.type == 'text_field' for e in pagina.layout))

    def test_remover_campo_remove_elemento(self):
        pagina = remove_field_and_linked_elements(self.pagina, self.elemento.content.field_id)
        self.assertEqual(pagina.custom_fields, [])
        self.assertNotIn(self.elemento.id, [e.id for e in pagina.layout])
        self.assertEqual(ordens(pagina.layout), list(range(len(pagina.layout))))

    def test_remover_campo_inexistente_falha(self):
        with self.assertRaises(ItemNaoEncontradoError):
            remove_field_and_linked_elements(self.pagina, 'field_nao_existe')

    def test_editar_elemento_atualiza_campo(self):
        pagina = update_layout_element(
            self.pagina, self.elemento.id, LayoutContent(placeholder='Razão social', required=True))
        campo = pagina.custom_fields[0]
        self.assertTrue(campo.required)
        self.assertEqual(campo.placeholder, 'Razão social')
        self.assertEqual(pagina.layout[self.elemento.order].content.field_id, campo.id)


# ====================================================================
# TESTES DO CÁLCULO DO PEDIDO
# ====================================================================

class TestCalculateTotal(unittest.TestCase):

    def setUp(self):
        self.pagina = nova_pagina()

    def test_total_com_quantidade_padrao(self):
        total = calculate_total(self.pagina, ['p1', 'p2'], {'p2': 2})
        self.assertEqual(total, Decimal('39.90'))

    def test_independe_da_ordem(self):
        self.assertEqual(
            calculate_total(self.pagina, ['p2', 'p1'], {'p2': 2}),
            calculate_total(self.pagina, ['p1', 'p2'], {'p2': 2}),
        )

    def test_desconto_nao_e_aplicado(self):
        pagina = update_product(self.pagina, 'p1', discount=50)
        self.assertEqual(calculate_total(pagina, ['p1']), Decimal('29.90'))

    def test_quantidade_invalida(self):
        with self.assertRaises(QuantidadeInvalidaError):
            calculate_total(self.pagina, ['p1'], {'p1': 0})

    def test_produto_desconhecido_nao_soma(self):
        self.assertEqual(calculate_total(self.pagina, ['x']), Decimal('0.00'))


class TestSelecaoDeProdutos(unittest.TestCase):

    def test_estado_inicial(self):
        selecao = ProductSelection.inicial(nova_pagina())
        self.assertEqual(selecao.selected_product_ids, ['p1'])
        self.assertEqual(selecao.quantities, {'p1': 1, 'p2': 1})

    def test_quantidade_nao_positiva_e_ignorada(self):
        selecao = ProductSelection(['p1'], {'p1': 3})
        self.assertFalse(selecao.update_quantity('p1', 0))
        self.assertFalse(selecao.update_quantity('p1', -2))
        self.assertEqual(selecao.quantities['p1'], 3)

    def test_toggle(self):
        selecao = ProductSelection(['p1'])
        selecao.toggle('p2')
        selecao.toggle('p1')
        self.assertEqual(selecao.selected_product_ids, ['p2'])


class TestValidateCustomerInfo(unittest.TestCase):

    def test_cidade_obrigatoria_somente_com_envio(self):
        formulario = formulario_cliente(address_city='')
        pagina = nova_pagina()

        with self.assertRaises(DadosClienteInvalidosError) as ctx:
            validate_customer_info(formulario, requires_shipping(pagina, ['p2']))
        self.assertIn('address_city', ctx.exception.campos)

        validate_customer_info(formulario, requires_shipping(pagina, ['p1']))

    def test_todas_as_falhas_sao_reportadas(self):
        campos = [CustomField(name='empresa', label='Empresa', required=True)]
        with self.assertRaises(DadosClienteInvalidosError) as ctx:
            validate_customer_info({'email': 'invalido'}, False, campos)
        self.assertEqual(ctx.exception.campos, ['name', 'phone', 'cpf', 'email', 'empresa'])


class TestBuildOrder(unittest.TestCase):

    def test_snapshot_sem_endereco_quando_digital(self):
        pagina = add_custom_field(nova_pagina(), label='Empresa', name='empresa')
        pedido = build_order(pagina, ProductSelection(['p1']), formulario_cliente(empresa='ACME'))

        self.assertEqual(pedido.status, 'pending')
        self.assertIsNone(pedido.customer_info.address)
        self.assertEqual(pedido.customer_info.custom_fields, {'empresa': 'ACME'})
        self.assertEqual(pedido.products[0].name, 'Book')
        self.assertEqual(pedido.total_amount, Decimal('29.90'))

    def test_endereco_quando_fisico(self):
        pedido = build_order(nova_pagina(), ProductSelection(['p1', 'p2'], {'p2': 2}), formulario_cliente())
        self.assertEqual(pedido.customer_info.address.city, 'São Paulo')
        self.assertEqual(pedido.total_amount, Decimal('39.90'))

    def test_sem_produtos_selecionados(self):
        with self.assertRaises(NenhumProdutoSelecionadoError):
            build_order(nova_pagina(), ProductSelection([]), formulario_cliente())


# ====================================================================
# TESTES DO SLUG
# ====================================================================

class TestSlugAssignment(unittest.TestCase):

    def test_rascunho_segue_o_titulo(self):
        atribuicao = SlugAssignment()
        atribuicao.change_title("Promo de Natal")
        self.assertEqual(atribuicao.slug, 'promo-de-natal')

    def test_edicao_manual_congela(self):
        atribuicao = SlugAssignment()
        atribuicao.edit_slug('minha-promo')
        atribuicao.change_title("Outro Título")
        self.assertEqual(atribuicao.slug, 'minha-promo')
        self.assertIs(atribuicao.estado, SlugState.USER_EDITED)

    def test_conflito_renomeia_e_avisa(self):
        atribuicao = SlugAssignment.para_pagina_existente('promo')
        aviso = atribuicao.resolve_conflict(AGORA_MS)
        self.assertEqual(atribuicao.slug, f'promo-{AGORA_MS}')
        self.assertEqual(aviso.codigo, 'SlugInUse')
        self.assertEqual(aviso.dados['slug_sugerido'], f'promo-{AGORA_MS}')


class TimerFalso:

    def __init__(self, atraso, funcao):
        self.atraso = atraso
        self.funcao = funcao
        self.cancelado = False
        self.iniciado = False
        self.daemon = False

    def start(self):
        self.iniciado = True

    def cancel(self):
        self.cancelado = True


class TestDebouncer(unittest.TestCase):

    def setUp(self):
        self.timers = []
        self.funcao = Mock(return_value='ok')
        self.debouncer = Debouncer(self.funcao, 0.5, timer_factory=self._timer)

    def _timer(self, atraso, funcao):
        timer = TimerFalso(atraso, funcao)
        self.timers.append(timer)
        return timer

    def test_somente_a_ultima_chamada_executa(self):
        for valor in ('p', 'pr', 'pro'):
            self.debouncer(valor)

        self.assertEqual([t.cancelado for t in self.timers], [True, True, False])
        self.funcao.assert_not_called()

        self.timers[-1].funcao()
        self.funcao.assert_called_once_with('pro')
        self.assertFalse(self.debouncer.pendente)

    def test_flush_executa_imediatamente(self):
        self.debouncer('promo')
        self.assertEqual(self.debouncer.flush(), 'ok')
        self.assertTrue(self.timers[0].cancelado)
        self.assertIsNone(self.debouncer.flush())
        self.funcao.assert_called_once_with('promo')


class TestSlugUniquenessChecker(unittest.TestCase):

    def setUp(self):
        self.servico_dados_mock = Mock()
        self.checker = SlugUniquenessChecker(self.servico_dados_mock)

    def test_slug_em_uso_por_outro_usuario(self):
        self.servico_dados_mock.select.return_value = [{'id': 'outra'}]
        atribuicao = SlugAssignment.para_pagina_existente('promo')

        aviso = self.checker.check(atribuicao, 'user-2', AGORA_MS)

        self.servico_dados_mock.select.assert_called_once_with(
            TABELA_PAGINAS, {'slug': 'promo', 'user_id__ne': 'user-2'})
        self.assertEqual(aviso.codigo, 'SlugInUse')
        self.assertEqual(atribuicao.slug, f'promo-{AGORA_MS}')

    def test_falha_na_consulta_vira_aviso(self):
        self.servico_dados_mock.select.side_effect = FalhaDeRedeError()
        atribuicao = SlugAssignment.para_pagina_existente('promo')

        aviso = self.checker.check(atribuicao, 'user-2')

        self.assertEqual(aviso.codigo, 'NetworkError')
        self.assertEqual(atribuicao.slug, 'promo')
        self.servico_dados_mock.select.assert_called_once()

    def test_verificar_slug_disponivel(self):
        self.servico_dados_mock.select.return_value = []
        resultado = VerificarSlugUseCase(self.checker).executar('promo', 'user-2')
        self.assertTrue(resultado['disponivel'])
        self.assertIsNone(resultado['sugestao'])


# ====================================================================
# TESTES DOS CASOS DE USO DE PÁGINA
# ====================================================================

class TestSalvarPagina(unittest.TestCase):

    def setUp(self):
        self.servico_dados_mock = Mock()
        self.use_case = SalvarPaginaUseCase(servico_dados=self.servico_dados_mock)

    def test_pagina_sem_produtos_nao_e_inserida(self):
        with self.assertRaises(PaginaSemProdutosError):
            self.use_case.executar(nova_pagina(products=[]), 'user-1')
        self.servico_dados_mock.insert.assert_not_called()

    def test_text_field_desvinculado_nao_e_inserido(self):
        pagina = nova_pagina(layout=[
            LayoutElement(type='text_field', content=LayoutContent(field_id='field_fantasma'), order=0),
        ])
        with self.assertRaises(CampoDesvinculadoError):
            self.use_case.executar(pagina, 'user-1')
        self.servico_dados_mock.insert.assert_not_called()

    def test_outro_conflito_nao_renomeia_o_slug(self):
        self.servico_dados_mock.insert.side_effect = ConflitoError()

        with self.assertRaises(ConflitoError) as ctx:
            self.use_case.executar(nova_pagina(slug='promo'), 'user-1', agora_ms=AGORA_MS)

        self.assertNotIsInstance(ctx.exception, SlugEmUsoError)
        self.assertEqual(self.servico_dados_mock.insert.call_count, 1)

    def test_conflito_de_slug_e_reenvio(self):
        """
        Cenário: dois usuários tentam o slug 'promo'; o segundo recebe conflito,
        a página volta renomeada e o reenvio é aceito.
        """
        def inserir(tabela, registro):
            if registro['slug'] == 'promo':
                raise SlugEmUsoError()
            return {**registro, 'id': 'page-2'}
        self.servico_dados_mock.insert.side_effect = inserir

        resultado = self.use_case.executar(nova_pagina(slug='promo'), 'user-2', agora_ms=AGORA_MS)

        self.assertFalse(resultado.salvo)
        self.assertEqual(resultado.pagina.slug, f'promo-{AGORA_MS}')
        self.assertEqual(resultado.avisos[0].codigo, 'SlugInUse')
        self.assertEqual(self.servico_dados_mock.insert.call_count, 1)

        reenvio = self.use_case.executar(resultado.pagina, 'user-2')

        self.assertTrue(reenvio.salvo)
        self.assertEqual(reenvio.pagina.id, 'page-2')
        self.assertEqual(reenvio.pagina.slug, f'promo-{AGORA_MS}')

    def test_atualizacao_usa_filtro_do_dono(self):
        pagina = nova_pagina(id='page-1')
        self.servico_dados_mock.select.return_value = [
            {**PaginaMapper.to_row(pagina), 'user_id': 'user-1', 'title': 'Curso Premium'}]

        resultado = self.use_case.executar(pagina, 'user-1')

        tabela, registro_id, patch, filtro = self.servico_dados_mock.update.call_args[0]
        self.assertEqual((tabela, registro_id, filtro), (TABELA_PAGINAS, 'page-1', {'user_id': 'user-1'}))
        self.assertNotIn('user_id', patch)
        self.assertNotIn('id', patch)
        self.assertTrue(resultado.salvo)


class TestFetchGuard(unittest.TestCase):

    def test_disparo_sobreposto_nao_faz_nada(self):
        guard = FetchGuard()
        internos = []

        def buscar():
            internos.append(guard.executar(lambda: 'interna'))
            return 'externa'

        self.assertEqual(guard.executar(buscar), 'externa')
        self.assertEqual(internos, [None])
        self.assertFalse(guard.em_andamento)

    def test_listar_paginas_mais_recentes_primeiro(self):
        servico_dados_mock = Mock()
        servico_dados_mock.select.return_value = [PaginaMapper.to_row(nova_pagina(id='page-1'))]

        paginas = ListarPaginasUseCase(servico_dados_mock).executar('user-1')

        servico_dados_mock.select.assert_called_once_with(TABELA_PAGINAS, {'user_id': 'user-1'}, ordem='-created_at')
        self.assertEqual(paginas[0].id, 'page-1')


class TestDuplicarEDeletar(unittest.TestCase):

    def setUp(self):
        self.servico_dados_mock = Mock()
        self.servico_dados_mock.select.return_value = [PaginaMapper.to_row(nova_pagina(id='page-1'))]
        self.servico_dados_mock.insert.side_effect = lambda tabela, registro: {**registro, 'id': 'page-9'}

    def test_duplicar(self):
        copia = DuplicarPaginaUseCase(self.servico_dados_mock).executar('page-1', 'user-1', agora_ms=AGORA_MS)

        registro = self.servico_dados_mock.insert.call_args[0][1]
        self.assertNotIn('id', registro)
        self.assertEqual(copia.title, 'Curso Premium (Copy)')
        self.assertEqual(copia.slug, f'curso-premium-{AGORA_MS}')
        self.assertEqual(copia.id, 'page-9')

    def test_deletar_pagina_inexistente(self):
        self.servico_dados_mock.delete.side_effect = ItemNaoEncontradoError()
        with self.assertRaises(PaginaNaoEncontradaError):
            DeletarPaginaUseCase(self.servico_dados_mock).executar('page-1', 'user-1')
        self.servico_dados_mock.delete.assert_called_once_with(TABELA_PAGINAS, 'page-1', {'user_id': 'user-1'})


class TestSessaoEdicaoPagina(unittest.TestCase):

    def setUp(self):
        self.servico_dados_mock = Mock()
        self.assinatura_mock = Mock()
        self.servico_dados_mock.subscribe.return_value = self.assinatura_mock
        self.pagina = nova_pagina(id='page-1')

    def test_atualizacao_remota_vence_campo_a_campo(self):
        recebidas = []
        with SessaoEdicaoPagina(self.servico_dados_mock, self.pagina, recebidas.append) as sessao:
            tabela, filtro, callback = self.servico_dados_mock.subscribe.call_args[0]
            self.assertEqual((tabela, filtro), (TABELA_PAGINAS, {'id': 'page-1'}))

            callback(EventoAlteracao('UPDATE', TABELA_PAGINAS, novo={'id': 'page-1', 'title': 'Título Remoto'}))

            self.assertEqual(sessao.pagina.title, 'Título Remoto')
            self.assertEqual(sessao.pagina.slug, 'curso-premium')
            self.assertEqual(len(recebidas), 1)

        self.assinatura_mock.unsubscribe.assert_called_once()

    def test_cancela_assinatura_mesmo_com_erro(self):
        with self.assertRaises(RuntimeError):
            with SessaoEdicaoPagina(self.servico_dados_mock, self.pagina):
                raise RuntimeError("falha no construtor")
        self.assinatura_mock.unsubscribe.assert_called_once()


class TestSessaoEdicaoSlug(unittest.TestCase):

    def setUp(self):
        self.servico_dados_mock = Mock()
        self.timers = []
        self.checker = SlugUniquenessChecker(self.servico_dados_mock, atraso=0.5, timer_factory=self._timer)
        self.pagina = nova_pagina(id='page-1', slug='curso-premium')

    def _timer(self, atraso, funcao):
        timer = TimerFalso(atraso, funcao)
        self.timers.append(timer)
        return timer

    def test_digitacao_verifica_so_o_ultimo_valor(self):
        self.servico_dados_mock.select.return_value = [{'id': 'outra'}]
        avisos = []

        with SessaoEdicaoPagina(self.servico_dados_mock, self.pagina, checker=self.checker) as sessao:
            for valor in ('p', 'pr', 'promo'):
                sessao.editar_slug(valor, avisos.append)

            self.assertEqual(sessao.pagina.slug, 'promo')
            self.assertEqual([t.atraso for t in self.timers], [0.5, 0.5, 0.5])
            self.assertEqual([t.cancelado for t in self.timers], [True, True, False])
            self.servico_dados_mock.select.assert_not_called()

            self.timers[-1].funcao()

        self.servico_dados_mock.select.assert_called_once_with(
            TABELA_PAGINAS, {'slug': 'promo', 'user_id__ne': 'user-1'})
        self.assertEqual(avisos[0].codigo, 'SlugInUse')
        self.assertTrue(sessao.pagina.slug.startswith('promo-'))
        self.assertEqual(sessao.pagina.slug, avisos[0].dados['slug_sugerido'])

    def test_fechar_descarta_verificacao_pendente(self):
        with SessaoEdicaoPagina(self.servico_dados_mock, self.pagina, checker=self.checker) as sessao:
            sessao.editar_slug('promo')

        self.assertTrue(self.timers[0].cancelado)
        self.timers[0].funcao()
        self.servico_dados_mock.select.assert_not_called()
        self.assertEqual(sessao.pagina.slug, 'promo')

    def test_sem_checker_so_aplica_o_slug(self):
        sessao = SessaoEdicaoPagina(self.servico_dados_mock, self.pagina)
        self.assertEqual(sessao.editar_slug('novo-slug'), 'novo-slug')
        self.assertEqual(sessao.atribuicao.estado, SlugState.USER_EDITED)
        self.assertEqual(self.timers, [])


# ====================================================================
# TESTES DA VITRINE, PEDIDOS, ANÁLISE E CATÁLOGO
# ====================================================================

class TestRenderPage(unittest.TestCase):

    def test_deterministica_e_com_fallbacks(self):
        pagina = nova_pagina(layout=[
            LayoutElement(type='title', order=0),
            LayoutElement(type='logo', order=1),
            LayoutElement(type='product_list', order=2),
            LayoutElement(type='text_field', content=LayoutContent(field_id='field_orfao'), order=3),
            LayoutElement(type='button', content=LayoutContent(text='Comprar'), order=4),
        ])
        estrutura = render_page(pagina)

        self.assertEqual(estrutura, render_page(pagina))
        self.assertEqual([b['type'] for b in estrutura['blocks']], ['title', 'product_list', 'button'])
        self.assertEqual(estrutura['blocks'][0]['text'], 'Curso Premium')
        self.assertEqual([p['id'] for p in estrutura['blocks'][1]['products']], ['p1', 'p2'])
        self.assertEqual(estrutura['blocks'][2]['border_radius'], '8px')

    def test_formulario_com_endereco_quando_ha_envio(self):
        pagina = nova_pagina(layout=[LayoutElement(type='customer_info_form', order=0)])
        formulario = render_page(pagina)['blocks'][0]

        self.assertEqual([c['name'] for c in formulario['fields']], ['name', 'email', 'phone', 'cpf'])
        endereco = formulario['address']
        self.assertEqual(endereco['required_when'], 'requires_shipping')
        obrigatorios = {c['name']: c['required'] for c in endereco['fields']}
        self.assertEqual(set(obrigatorios), {
            'address_street', 'address_number', 'address_complement', 'address_neighborhood',
            'address_city', 'address_state', 'address_zip',
        })
        self.assertFalse(obrigatorios.pop('address_complement'))
        self.assertTrue(all(obrigatorios.values()))

    def test_formulario_sem_endereco_para_produtos_digitais(self):
        pagina = nova_pagina(layout=[LayoutElement(type='customer_info_form', order=0)])
        pagina = remove_product(pagina, 'p2')

        formulario = render_page(pagina)['blocks'][0]

        self.assertNotIn('address', formulario)


class TestFinalizarPedido(unittest.TestCase):

    def setUp(self):
        self.servico_dados_mock = Mock()
        self.servico_dados_mock.select.return_value = [PaginaMapper.to_row(nova_pagina(id='page-1'))]
        self.servico_dados_mock.insert.side_effect = lambda tabela, registro: {
            **registro, 'id': 'order-1', 'created_at': datetime(2024, 5, 1, tzinfo=timezone.utc)}
        self.use_case = FinalizarPedidoUseCase(self.servico_dados_mock)

    def test_pedido_registrado_como_pendente(self):
        pedido = self.use_case.executar(
            'curso-premium', ProductSelection(['p1', 'p2'], {'p2': 2}), formulario_cliente())

        tabela, registro = self.servico_dados_mock.insert.call_args[0]
        self.assertEqual(tabela, TABELA_PEDIDOS)
        self.assertEqual(registro['status'], 'pending')
        self.assertEqual(registro['checkout_page_id'], 'page-1')
        self.assertEqual(pedido.total_amount, Decimal('39.90'))
        self.assertEqual(pedido.id, 'order-1')

    def test_formulario_invalido_nao_registra(self):
        with self.assertRaises(DadosClienteInvalidosError):
            self.use_case.executar('curso-premium', ProductSelection(['p2']), formulario_cliente(address_city=''))
        self.servico_dados_mock.insert.assert_not_called()

    def test_pagina_inexistente(self):
        self.servico_dados_mock.select.return_value = []
        with self.assertRaises(PaginaNaoEncontradaError):
            self.use_case.executar('nao-existe', ProductSelection(['p1']), formulario_cliente())


class TestResumoAnalitico(unittest.TestCase):

    def setUp(self):
        self.servico_dados_mock = Mock()
        paginas = [{'id': 'page-1', 'is_active': True}, {'id': 'page-2', 'is_active': False}]
        pedidos = [
            {'id': 'o2', 'checkout_page_id': 'page-1', 'total_amount': '10.00',
             'created_at': datetime(2024, 5, 2, 12, tzinfo=timezone.utc),
             'products': [{'product_id': 'p2', 'name': 'Protector', 'price': '5.00', 'quantity': 2}]},
            {'id': 'o1', 'checkout_page_id': 'page-1', 'total_amount': '29.90',
             'created_at': datetime(2024, 5, 1, 9, tzinfo=timezone.utc),
             'products': [{'product_id': 'p1', 'name': 'Book', 'price': '29.90', 'quantity': 1}]},
        ]
        self.servico_dados_mock.select.side_effect = lambda tabela, filtro, ordem=None: (
            paginas if tabela == TABELA_PAGINAS else pedidos)
        self.use_case = ResumoAnaliticoUseCase(self.servico_dados_mock, visitas_estimadas=1000)

    def test_resumo_do_periodo(self):
        resumo = self.use_case.executar('user-1', '30d', agora=datetime(2024, 5, 10, tzinfo=timezone.utc))

        self.assertEqual(resumo.total_sales, Decimal('39.90'))
        self.assertEqual(resumo.total_orders, 2)
        self.assertAlmostEqual(resumo.conversion_rate, 0.2)
        self.assertEqual([d['date'] for d in resumo.revenue_by_day], ['2024-05-01', '2024-05-02'])
        self.assertEqual(resumo.top_products[0], {'name': 'Protector', 'sales': 2})
        self.assertEqual(resumo.active_pages, 1)

        filtro = self.servico_dados_mock.select.call_args[0][1]
        self.assertEqual(filtro['checkout_page_id__in'], ['page-1', 'page-2'])
        self.assertEqual(filtro['created_at__gte'], datetime(2024, 4, 10, tzinfo=timezone.utc))

    def test_periodo_invalido(self):
        with self.assertRaises(DadosInvalidosError):
            self.use_case.executar('user-1', '2w')


class TestGerenciarProdutos(unittest.TestCase):

    def test_produto_digital_exige_arquivo(self):
        servico_dados_mock = Mock()
        produto = CatalogProduct(user_id='user-1', name='Ebook', price=Decimal('19.90'), type='digital')
        with self.assertRaises(UrlInvalidaError):
            GerenciarProdutosUseCase(servico_dados_mock).salvar(produto, 'user-1')
        servico_dados_mock.insert.assert_not_called()


class TestMappersEFiltros(unittest.TestCase):

    def test_layout_mantem_chaves_gravadas(self):
        linha = {'id': 'element-1', 'type': 'text_field', 'order': 0,
                 'content': {'fieldId': 'field_1', 'style': {'fontSize': '16px'}}}
        elemento = LayoutElementMapper.to_entity(linha)
        self.assertEqual(elemento.content.field_id, 'field_1')
        self.assertEqual(elemento.content.style.font_size, '16px')
        self.assertEqual(LayoutElementMapper.to_row(elemento)['content'], linha['content'])

    def test_itens_sem_id_recebem_id_gerado(self):
        pagina = PaginaMapper.to_entity({
            'user_id': 'user-1', 'title': 'T', 'slug': 't',
            'products': [{'name': 'Book', 'price': '10.00'}],
            'layout': [{'type': 'divider'}],
        })
        self.assertTrue(pagina.products[0].id)
        self.assertTrue(pagina.layout[0].id.startswith('element-'))

    def test_filtro_com_operadores(self):
        linha = {'slug': 'promo', 'user_id': 'user-1'}
        self.assertTrue(linha_atende_filtro(linha, {'slug': 'promo', 'user_id__ne': 'user-2'}))
        self.assertFalse(linha_atende_filtro(linha, {'user_id__in': ['user-2', 'user-3']}))


if __name__ == '__main__':
    unittest.main()
