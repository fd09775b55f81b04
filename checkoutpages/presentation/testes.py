# checkoutpages/presentation/testes.py

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

User = get_user_model()


def payload_pagina(**kwargs):
    dados = {
        'title': 'Curso Premium',
        'slug': '',
        'products': [
            {'id': 'p1', 'name': 'Book', 'price': '29.90', 'type': 'digital',
             'digital_file_url': 'https://example.com/book.pdf', 'order': 0},
            {'id': 'p2', 'name': 'Shipping Protector', 'price': '5.00', 'type': 'physical', 'order': 1},
        ],
    }
    dados.update(kwargs)
    return dados


FORMULARIO_COMPLETO = {
    'name': 'Carla', 'email': 'carla@example.com', 'phone': '11988887777', 'cpf': '98765432100',
    'address_street': 'Rua A', 'address_number': '1', 'address_neighborhood': 'Centro',
    'address_city': 'Recife', 'address_state': 'PE', 'address_zip': '50000-000',
}


class BaseAPITestCase(APITestCase):

    def setUp(self):
        self.ana = User.objects.create_user(email='ana@example.com', password='senha-forte')
        self.bruno = User.objects.create_user(email='bruno@example.com', password='senha-forte')
        self.client.force_authenticate(user=self.ana)

    def criar_pagina(self, usuario=None, **kwargs):
        if usuario is not None:
            self.client.force_authenticate(user=usuario)
        resposta = self.client.post(reverse('api_paginas'), payload_pagina(**kwargs), format='json')
        self.client.force_authenticate(user=self.ana)
        self.assertEqual(resposta.status_code, status.HTTP_201_CREATED, resposta.data)
        return resposta.data


class PaginasAPITestCase(BaseAPITestCase):

    def test_cria_pagina_com_slug_derivado_do_titulo(self):
        pagina = self.criar_pagina()

        self.assertEqual(pagina['slug'], 'curso-premium')
        self.assertEqual(pagina['user_id'], str(self.ana.pk))
        self.assertEqual(pagina['products'][0]['price'], '29.90')
        self.assertTrue(pagina['products'][1]['requires_shipping'])
        self.assertEqual([e['type'] for e in pagina['layout']][0], 'title')
        self.assertEqual([e['order'] for e in pagina['layout']], list(range(len(pagina['layout']))))

    def test_pagina_sem_produtos_e_rejeitada(self):
        resposta = self.client.post(reverse('api_paginas'), payload_pagina(products=[]), format='json')

        self.assertEqual(resposta.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resposta.data['codigo'], 'EmptyProducts')

    def test_preco_invalido_informa_o_produto(self):
        produtos = payload_pagina()['products']
        produtos[1]['price'] = '0.00'
        resposta = self.client.post(reverse('api_paginas'), payload_pagina(products=produtos), format='json')

        self.assertEqual(resposta.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resposta.data['codigo'], 'InvalidPrice')
        self.assertEqual(resposta.data['product_id'], 'p2')

    def test_text_field_sem_campo_personalizado_e_rejeitado(self):
        layout = [{'id': 'element-fantasma', 'type': 'text_field', 'order': 0,
                   'content': {'fieldId': 'field_fantasma'}}]
        resposta = self.client.post(
            reverse('api_paginas'), payload_pagina(layout=layout, custom_fields=[]), format='json')

        self.assertEqual(resposta.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resposta.data['codigo'], 'DanglingFieldReference')
        self.assertEqual(resposta.data['element_id'], 'element-fantasma')
        self.assertEqual(self.client.get(reverse('api_paginas')).data, [])

    def test_url_de_arquivo_fora_de_http_e_aceita(self):
        produtos = payload_pagina()['products']
        produtos[0]['digital_file_url'] = 's3://bucket/ebook.pdf'

        pagina = self.criar_pagina(products=produtos)

        self.assertEqual(pagina['products'][0]['digital_file_url'], 's3://bucket/ebook.pdf')

    def test_slug_em_uso_devolve_sugestao_sem_gravar(self):
        self.criar_pagina(self.bruno, slug='promo')

        resposta = self.client.post(reverse('api_paginas'), payload_pagina(slug='promo'), format='json')

        self.assertEqual(resposta.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(resposta.data['slug_sugerido'].startswith('promo-'))
        self.assertEqual(resposta.data['avisos'][0]['codigo'], 'SlugInUse')
        self.assertEqual(resposta.data['pagina']['slug'], resposta.data['slug_sugerido'])
        self.assertEqual(self.client.get(reverse('api_paginas')).data, [])

        reenvio = self.client.post(reverse('api_paginas'), resposta.data['pagina'], format='json')
        self.assertEqual(reenvio.status_code, status.HTTP_201_CREATED)
        self.assertEqual(reenvio.data['slug'], resposta.data['slug_sugerido'])

    def test_lista_somente_paginas_do_usuario(self):
        self.criar_pagina(slug='da-ana')
        self.criar_pagina(self.bruno, slug='do-bruno')

        resposta = self.client.get(reverse('api_paginas'))

        self.assertEqual(resposta.status_code, status.HTTP_200_OK)
        self.assertEqual([p['slug'] for p in resposta.data], ['da-ana'])

    def test_exige_autenticacao(self):
        self.client.force_authenticate(user=None)
        resposta = self.client.get(reverse('api_paginas'))
        self.assertEqual(resposta.status_code, status.HTTP_401_UNAUTHORIZED)


class PaginaDetalheAPITestCase(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.pagina = self.criar_pagina()
        self.url = reverse('api_pagina_detalhe', args=[self.pagina['id']])

    def test_detalhe_e_atualizacao(self):
        self.assertEqual(self.client.get(self.url).data['title'], 'Curso Premium')

        dados = payload_pagina(title='Curso Avançado', slug='curso-premium', layout=self.pagina['layout'])
        resposta = self.client.put(self.url, dados, format='json')

        self.assertEqual(resposta.status_code, status.HTTP_200_OK)
        self.assertEqual(resposta.data['title'], 'Curso Avançado')
        self.assertEqual(resposta.data['slug'], 'curso-premium')
        self.assertEqual(resposta.data['id'], self.pagina['id'])

    def test_atualizacao_por_outro_usuario_e_negada(self):
        self.client.force_authenticate(user=self.bruno)
        resposta = self.client.put(self.url, payload_pagina(title='Invadido', slug='curso-premium'), format='json')

        self.assertEqual(resposta.status_code, status.HTTP_403_FORBIDDEN)
        self.client.force_authenticate(user=self.ana)
        self.assertEqual(self.client.get(self.url).data['title'], 'Curso Premium')

    def test_pagina_de_outro_usuario_nao_aparece(self):
        self.client.force_authenticate(user=self.bruno)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.delete(self.url).status_code, status.HTTP_404_NOT_FOUND)

    def test_remocao(self):
        self.assertEqual(self.client.delete(self.url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_404_NOT_FOUND)

    def test_duplicacao(self):
        resposta = self.client.post(reverse('api_pagina_duplicar', args=[self.pagina['id']]))

        self.assertEqual(resposta.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resposta.data['title'], 'Curso Premium (Copy)')
        self.assertTrue(resposta.data['slug'].startswith('curso-premium-'))
        self.assertNotEqual(resposta.data['id'], self.pagina['id'])
        self.assertEqual(len(self.client.get(reverse('api_paginas')).data), 2)


class VerificarSlugAPITestCase(BaseAPITestCase):

    def test_slug_livre(self):
        resposta = self.client.get(reverse('api_verificar_slug'), {'slug': 'livre'})

        self.assertEqual(resposta.status_code, status.HTTP_200_OK)
        self.assertTrue(resposta.data['disponivel'])
        self.assertIsNone(resposta.data['aviso'])

    def test_slug_de_outro_usuario(self):
        self.criar_pagina(self.bruno, slug='promo')

        resposta = self.client.get(reverse('api_verificar_slug'), {'slug': 'promo'})

        self.assertFalse(resposta.data['disponivel'])
        self.assertTrue(resposta.data['sugestao'].startswith('promo-'))
        self.assertEqual(resposta.data['aviso']['codigo'], 'SlugInUse')

    def test_slug_proprio_nao_conta_como_em_uso(self):
        self.criar_pagina(slug='minha')
        resposta = self.client.get(reverse('api_verificar_slug'), {'slug': 'minha'})
        self.assertTrue(resposta.data['disponivel'])

    def test_exige_parametro(self):
        resposta = self.client.get(reverse('api_verificar_slug'))
        self.assertEqual(resposta.status_code, status.HTTP_400_BAD_REQUEST)


class VitrineAPITestCase(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.pagina = self.criar_pagina()
        self.client.force_authenticate(user=None)

    def test_pagina_publica_renderizada(self):
        resposta = self.client.get(reverse('api_checkout_publico', args=['curso-premium']))

        self.assertEqual(resposta.status_code, status.HTTP_200_OK)
        self.assertEqual(resposta.data['slug'], 'curso-premium')
        tipos = [bloco['type'] for bloco in resposta.data['blocks']]
        self.assertEqual(tipos[0], 'title')
        self.assertIn('product_list', tipos)

    def test_pagina_inativa_nao_e_publicada(self):
        self.client.force_authenticate(user=self.ana)
        self.client.put(
            reverse('api_pagina_detalhe', args=[self.pagina['id']]),
            payload_pagina(slug='curso-premium', is_active=False),
            format='json',
        )
        self.client.force_authenticate(user=None)

        resposta = self.client.get(reverse('api_checkout_publico', args=['curso-premium']))
        self.assertEqual(resposta.status_code, status.HTTP_404_NOT_FOUND)

    def test_pedido_registrado_como_pendente(self):
        resposta = self.client.post(
            reverse('api_finalizar_pedido', args=['curso-premium']),
            {'selected_product_ids': ['p1', 'p2'], 'quantities': {'p2': 2}, 'formulario': FORMULARIO_COMPLETO},
            format='json',
        )

        self.assertEqual(resposta.status_code, status.HTTP_201_CREATED, resposta.data)
        self.assertEqual(resposta.data['status'], 'pending')
        self.assertEqual(resposta.data['total_amount'], '39.90')
        self.assertEqual(resposta.data['customer_info']['address']['city'], 'Recife')

    def test_pedido_com_dados_faltando_lista_todos_os_campos(self):
        resposta = self.client.post(
            reverse('api_finalizar_pedido', args=['curso-premium']),
            {'selected_product_ids': ['p1'], 'formulario': {'name': 'Carla'}},
            format='json',
        )

        self.assertEqual(resposta.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resposta.data['codigo'], 'CustomerInfoInvalid')
        self.assertEqual([e['campo'] for e in resposta.data['erros']], ['email', 'phone', 'cpf'])

    def test_pedido_sem_produtos(self):
        resposta = self.client.post(
            reverse('api_finalizar_pedido', args=['curso-premium']),
            {'selected_product_ids': [], 'formulario': FORMULARIO_COMPLETO},
            format='json',
        )
        self.assertEqual(resposta.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resposta.data['codigo'], 'NoProductSelected')


class AnalyticsAPITestCase(BaseAPITestCase):

    def test_resumo_com_um_pedido(self):
        self.criar_pagina()
        self.client.post(
            reverse('api_finalizar_pedido', args=['curso-premium']),
            {'selected_product_ids': ['p1', 'p2'], 'quantities': {'p2': 2}, 'formulario': FORMULARIO_COMPLETO},
            format='json',
        )

        resposta = self.client.get(reverse('api_analytics'), {'periodo': '30d'})

        self.assertEqual(resposta.status_code, status.HTTP_200_OK)
        self.assertEqual(resposta.data['total_orders'], 1)
        self.assertEqual(resposta.data['total_sales'], '39.90')
        self.assertEqual(resposta.data['active_pages'], 1)
        self.assertEqual(resposta.data['top_products'][0], {'name': 'Shipping Protector', 'sales': 2})

    def test_periodo_invalido(self):
        resposta = self.client.get(reverse('api_analytics'), {'periodo': '2w'})
        self.assertEqual(resposta.status_code, status.HTTP_400_BAD_REQUEST)


class ProdutosAPITestCase(BaseAPITestCase):

    EBOOK = {
        'name': 'Ebook', 'price': '19.90', 'type': 'digital',
        'digital_file_url': 'https://example.com/ebook.pdf',
    }

    def test_crud_do_catalogo(self):
        criado = self.client.post(reverse('api_produtos'), self.EBOOK, format='json')
        self.assertEqual(criado.status_code, status.HTTP_201_CREATED, criado.data)
        self.assertEqual(criado.data['price'], '19.90')

        url = reverse('api_produto_detalhe', args=[criado.data['id']])
        atualizado = self.client.put(url, {**self.EBOOK, 'price': '24.90'}, format='json')
        self.assertEqual(atualizado.data['price'], '24.90')

        self.assertEqual(len(self.client.get(reverse('api_produtos')).data), 1)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)

    def test_produto_digital_sem_arquivo(self):
        resposta = self.client.post(
            reverse('api_produtos'), {**self.EBOOK, 'digital_file_url': ''}, format='json')

        self.assertEqual(resposta.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resposta.data['codigo'], 'InvalidUrl')

    def test_produto_de_outro_usuario(self):
        criado = self.client.post(reverse('api_produtos'), self.EBOOK, format='json')
        url = reverse('api_produto_detalhe', args=[criado.data['id']])

        self.client.force_authenticate(user=self.bruno)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)
        resposta = self.client.put(url, {**self.EBOOK, 'name': 'Meu'}, format='json')
        self.assertEqual(resposta.status_code, status.HTTP_403_FORBIDDEN)
