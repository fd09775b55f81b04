"""
Rotas da API REST do construtor de páginas de checkout, da vitrine pública,
da análise de vendas e do catálogo de produtos.
"""
from django.urls import path

from . import views

urlpatterns = [
    # ====================================================================
    # 1. CONSTRUTOR DE PÁGINAS
    # ====================================================================
    path('paginas/', views.PaginasAPIView.as_view(), name='api_paginas'),
    path('paginas/<uuid:pagina_id>/', views.PaginaDetalheAPIView.as_view(), name='api_pagina_detalhe'),
    path('paginas/<uuid:pagina_id>/duplicar/', views.DuplicarPaginaAPIView.as_view(), name='api_pagina_duplicar'),
    path('slugs/verificar/', views.VerificarSlugAPIView.as_view(), name='api_verificar_slug'),

    # ====================================================================
    # 2. VITRINE (sem autenticação)
    # ====================================================================
    path('checkout/<slug:slug>/', views.CheckoutPublicoAPIView.as_view(), name='api_checkout_publico'),
    path('checkout/<slug:slug>/pedido/', views.FinalizarPedidoAPIView.as_view(), name='api_finalizar_pedido'),

    # ====================================================================
    # 3. ANÁLISE E CATÁLOGO
    # ====================================================================
    path('analytics/', views.AnalyticsAPIView.as_view(), name='api_analytics'),
    path('produtos/', views.ProdutosAPIView.as_view(), name='api_produtos'),
    path('produtos/<uuid:produto_id>/', views.ProdutoDetalheAPIView.as_view(), name='api_produto_detalhe'),
]
