# Define os modelos do banco de dados para a camada de infraestrutura.

import uuid

from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

# ====================================================================
# GERENCIADOR DE USUÁRIOS PERSONALIZADO (Para usar email como login)
# ====================================================================

class CustomUserManager(BaseUserManager):
    """
    Gerenciador de modelos de usuário onde o email é o identificador único
    para autenticação, em vez dos nomes de usuário.
    """
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('O e-mail deve ser definido')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


# ====================================================================
# MODELO DE USUÁRIO (dono das páginas e do catálogo)
# ====================================================================

class Usuario(AbstractUser):
    """Usuário que faz login com 'email' em vez de 'username'."""
    username = None
    email = models.EmailField('Endereço de E-mail', unique=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = CustomUserManager()

    class Meta:
        verbose_name = 'Usuário'
        verbose_name_plural = 'Usuários'
        db_table = 'infra_usuario'

    def __str__(self):
        return self.email


class LinhaMixin:
    """Converte a instância na linha (coluna -> valor) trafegada pelo serviço de dados."""

    def como_linha(self):
        return {campo.attname: getattr(self, campo.attname) for campo in self._meta.concrete_fields}


# ====================================================================
# TABELAS DO DOMÍNIO
# ====================================================================

class CheckoutPageModel(LinhaMixin, models.Model):
    """Página de checkout. Tema, campos, produtos e layout ficam em colunas JSON."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='checkout_pages')
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    description = models.TextField(blank=True, null=True)
    logo_url = models.CharField(max_length=500, blank=True, null=True)
    theme = models.JSONField(default=dict, encoder=DjangoJSONEncoder)
    custom_fields = models.JSONField(default=list, encoder=DjangoJSONEncoder)
    products = models.JSONField(default=list, encoder=DjangoJSONEncoder)
    layout = models.JSONField(default=list, encoder=DjangoJSONEncoder)
    is_active = models.BooleanField(default=True)
    pixels = models.JSONField(default=list, blank=True)
    utmify_key = models.CharField(max_length=255, blank=True, null=True)
    delivery_email = models.EmailField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Página de Checkout'
        verbose_name_plural = 'Páginas de Checkout'
        db_table = 'checkout_pages'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} ({self.slug})"


class ProductModel(LinhaMixin, models.Model):
    """Produto do catálogo do usuário."""
    TIPO_CHOICES = (
        ('digital', 'Digital'),
        ('physical', 'Físico'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    type = models.CharField(max_length=10, choices=TIPO_CHOICES, default='digital')
    image_url = models.CharField(max_length=500, blank=True, null=True)
    digital_file_url = models.CharField(max_length=500, blank=True, null=True)
    discount = models.PositiveSmallIntegerField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Produto'
        verbose_name_plural = 'Produtos'
        db_table = 'products'
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class OrderModel(LinhaMixin, models.Model):
    """Pedido registrado por uma página de checkout (pagamento não é processado aqui)."""
    STATUS_CHOICES = (
        ('pending', 'Pendente'),
        ('completed', 'Concluído'),
        ('cancelled', 'Cancelado'),
        ('refunded', 'Reembolsado'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    checkout_page = models.ForeignKey(CheckoutPageModel, on_delete=models.CASCADE, related_name='orders')
    customer_info = models.JSONField(default=dict, encoder=DjangoJSONEncoder)
    products = models.JSONField(default=list, encoder=DjangoJSONEncoder)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    payment_method = models.CharField(max_length=50, default='pix')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Pedido'
        verbose_name_plural = 'Pedidos'
        db_table = 'orders'
        ordering = ['-created_at']

    def __str__(self):
        return f"Pedido {self.id} - {self.status}"
