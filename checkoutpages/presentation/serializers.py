from dataclasses import asdict, replace

from rest_framework import serializers

from checkoutpages.core.entities import (
    ESTILOS_BOTAO, TIPOS_CAMPO, TIPOS_ELEMENTO, TIPOS_PRODUTO, CatalogProduct, CheckoutPage,
)
from checkoutpages.core.mappers import CatalogProductMapper, PaginaMapper
from checkoutpages.core.pagina import default_layout
from checkoutpages.core.pedido import ProductSelection

# As regras de negócio (preço > 0, URLs, slug...) ficam na Core, que devolve
# erros com 'codigo'. Aqui só se valida o formato da requisição.


# ====================================================================
# SERIALIZERS DA PÁGINA DE CHECKOUT
# ====================================================================

class ThemeSerializer(serializers.Serializer):
    primary_color = serializers.CharField(max_length=20, default='#3B82F6')
    secondary_color = serializers.CharField(max_length=20, default='#1E40AF')
    background_color = serializers.CharField(max_length=20, default='#FFFFFF')
    text_color = serializers.CharField(max_length=20, default='#1F2937')
    font_family = serializers.CharField(max_length=100, default='Inter')
    border_radius = serializers.CharField(max_length=20, default='8px')
    button_style = serializers.ChoiceField(choices=ESTILOS_BOTAO, default='rounded')


class CustomFieldSerializer(serializers.Serializer):
    id = serializers.CharField(required=False)
    name = serializers.CharField(max_length=100)
    label = serializers.CharField(max_length=255)
    type = serializers.ChoiceField(choices=TIPOS_CAMPO, default='text')
    required = serializers.BooleanField(default=False)
    options = serializers.ListField(child=serializers.CharField(), required=False)
    placeholder = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    order = serializers.IntegerField(required=False, allow_null=True)


class ProductSerializer(serializers.Serializer):
    """Produto embutido na página."""
    id = serializers.CharField(required=False)
    name = serializers.CharField(max_length=255, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    type = serializers.ChoiceField(choices=TIPOS_PRODUTO, default='digital')
    image_url = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    digital_file_url = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    discount = serializers.IntegerField(required=False, allow_null=True)
    is_active = serializers.BooleanField(default=True)
    requires_shipping = serializers.BooleanField(default=False)
    order = serializers.IntegerField(required=False, allow_null=True)


class LayoutStyleSerializer(serializers.Serializer):
    fontSize = serializers.CharField(required=False)
    fontWeight = serializers.CharField(required=False)
    align = serializers.ChoiceField(choices=('left', 'center', 'right'), required=False)
    height = serializers.CharField(required=False)
    color = serializers.CharField(required=False)


class LayoutContentSerializer(serializers.Serializer):
    """Mesmas chaves gravadas na coluna JSON 'layout' (fieldId, fontSize...)."""
    text = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    url = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    placeholder = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    required = serializers.BooleanField(required=False, allow_null=True)
    fieldId = serializers.CharField(required=False, allow_null=True)
    style = LayoutStyleSerializer(required=False)


class LayoutElementSerializer(serializers.Serializer):
    id = serializers.CharField(required=False)
    type = serializers.ChoiceField(choices=TIPOS_ELEMENTO)
    content = LayoutContentSerializer(required=False)
    order = serializers.IntegerField(required=False, allow_null=True)


class CheckoutPageSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    user_id = serializers.CharField(read_only=True)
    title = serializers.CharField(allow_blank=True)
    slug = serializers.CharField(allow_blank=True, default='')
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    logo_url = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    theme = ThemeSerializer(required=False)
    custom_fields = CustomFieldSerializer(many=True, required=False)
    products = ProductSerializer(many=True, required=False)
    layout = LayoutElementSerializer(many=True, required=False)
    is_active = serializers.BooleanField(default=True)
    pixels = serializers.ListField(child=serializers.CharField(), required=False)
    utmify_key = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    delivery_email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)

    def to_entity(self, usuario_id, pagina_id=None) -> CheckoutPage:
        """Página sem layout recebe o layout inicial do construtor."""
        dados = dict(self.validated_data)
        pagina = PaginaMapper.to_entity({**dados, 'id': pagina_id, 'user_id': usuario_id})
        if 'layout' not in dados:
            pagina = replace(pagina, layout=default_layout(pagina.title, pagina.description, pagina.logo_url))
        return pagina


def pagina_para_dados(pagina: CheckoutPage) -> dict:
    linha = PaginaMapper.to_row(pagina)
    linha.update(id=pagina.id, created_at=pagina.created_at, updated_at=pagina.updated_at)
    return CheckoutPageSerializer(linha).data


class AvisoSerializer(serializers.Serializer):
    codigo = serializers.CharField()
    mensagem = serializers.CharField()
    dados = serializers.DictField()


# ====================================================================
# SERIALIZER PARA O PEDIDO (VITRINE)
# ====================================================================

class PedidoSerializer(serializers.Serializer):
    """
    Envio do formulário da vitrine. 'formulario' traz os campos do cliente
    (name, email, phone, cpf, address_*) e as respostas dos campos personalizados.
    """
    selected_product_ids = serializers.ListField(child=serializers.CharField(), allow_empty=True)
    quantities = serializers.DictField(child=serializers.IntegerField(), required=False)
    formulario = serializers.DictField()

    def to_selection(self) -> ProductSelection:
        return ProductSelection(
            selected=self.validated_data['selected_product_ids'],
            quantities=self.validated_data.get('quantities'),
        )


# ====================================================================
# SERIALIZER DO CATÁLOGO DE PRODUTOS
# ====================================================================

class CatalogProductSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    name = serializers.CharField(max_length=255, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    type = serializers.ChoiceField(choices=TIPOS_PRODUTO, default='digital')
    image_url = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    digital_file_url = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    discount = serializers.IntegerField(required=False, allow_null=True)
    is_active = serializers.BooleanField(default=True)
    created_at = serializers.DateTimeField(read_only=True)

    def to_entity(self, usuario_id, produto_id=None) -> CatalogProduct:
        return CatalogProductMapper.to_entity({**self.validated_data, 'id': produto_id, 'user_id': usuario_id})


def produto_para_dados(produto: CatalogProduct) -> dict:
    return CatalogProductSerializer(asdict(produto)).data
