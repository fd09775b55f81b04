# checkoutpages/core/apps.py

from django.apps import AppConfig

class CoreConfig(AppConfig):
    # O nome completo do path da aplicação
    name = 'checkoutpages.core'
    label = 'core'
    verbose_name = 'Modelo de Páginas de Checkout e Pedidos (Core)'

    # Sem modelos nesta camada: as tabelas ficam na Infrastructure.
    default_auto_field = 'django.db.models.BigAutoField'
