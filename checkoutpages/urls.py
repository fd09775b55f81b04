# checkoutpages/urls.py
"""
Configuração principal de URL do projeto Checkout Pages.

1. Rotas do Admin (Django Admin)
2. Rotas da API (checkoutpages.presentation)
3. Rotas de Autenticação JWT
4. Rotas da Documentação da API (Swagger/Redoc)
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView


urlpatterns = [
    path('admin/', admin.site.urls),

    # API do construtor, da vitrine, da análise e do catálogo
    path('api/', include('checkoutpages.presentation.urls')),

    # ====================================================================
    # AUTENTICAÇÃO COM JWT
    # ====================================================================
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # ====================================================================
    # ROTAS DE DOCUMENTAÇÃO DA API (DRF SPECTACULAR)
    # ====================================================================
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/swagger/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/docs/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
