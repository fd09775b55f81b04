"""
Mapeadores (Mappers) para converter entre:
1. Linhas do serviço de dados (dicionários com os nomes das colunas)
2. Entidades de Domínio (checkoutpages.core.entities)

As colunas JSON (theme, custom_fields, products, layout, customer_info)
mantêm o formato já gravado no banco, incluindo as chaves camelCase do
conteúdo do layout (fieldId, fontSize, fontWeight).
"""
from dataclasses import asdict
from decimal import Decimal
from typing import Any, Dict, Optional

from checkoutpages.core.entities import (
    Address, AnalyticsSummary, CatalogProduct, CheckoutPage, CheckoutTheme, CustomField,
    CustomerInfo, LayoutContent, LayoutElement, LayoutStyle, Order, OrderProduct, Product,
)
from checkoutpages.core.pagina import sort_by_order

Linha = Dict[str, Any]


def _decimal(valor, padrao: str = '0') -> Decimal:
    if valor is None or valor == '':
        return Decimal(padrao)
    return Decimal(str(valor))


def _id(valor) -> Optional[str]:
    return str(valor) if valor is not None else None


def _sem_nulos(dados: Dict[str, Any]) -> Dict[str, Any]:
    return {chave: valor for chave, valor in dados.items() if valor is not None}


def _id_informado(dados: dict) -> Dict[str, str]:
    """Itens recebidos sem id ganham o id gerado pela entidade."""
    return {'id': str(dados['id'])} if dados.get('id') else {}


# ====================================================================
# MAPPERS DA PÁGINA
# ====================================================================

class ThemeMapper:

    @staticmethod
    def to_entity(dados: Optional[dict]) -> CheckoutTheme:
        padrao = asdict(CheckoutTheme())
        padrao.update({k: v for k, v in (dados or {}).items() if k in padrao and v is not None})
        return CheckoutTheme(**padrao)

    @staticmethod
    def to_row(theme: CheckoutTheme) -> dict:
        return asdict(theme)


class CustomFieldMapper:

    @staticmethod
    def to_entity(dados: dict) -> CustomField:
        return CustomField(
            **_id_informado(dados),
            name=dados.get('name', ''),
            label=dados.get('label', ''),
            type=dados.get('type', 'text'),
            required=bool(dados.get('required', False)),
            options=list(dados.get('options') or []),
            placeholder=dados.get('placeholder'),
            order=dados.get('order'),
        )

    @staticmethod
    def to_row(field: CustomField) -> dict:
        linha = asdict(field)
        linha['options'] = field.options or None
        linha['placeholder'] = field.placeholder or None
        return _sem_nulos(linha)


class ProductMapper:

    @staticmethod
    def to_entity(dados: dict) -> Product:
        return Product(
            **_id_informado(dados),
            name=dados.get('name', ''),
            description=dados.get('description') or '',
            price=_decimal(dados.get('price')),
            type=dados.get('type', 'digital'),
            image_url=dados.get('image_url') or None,
            digital_file_url=dados.get('digital_file_url') or None,
            discount=dados.get('discount'),
            is_active=bool(dados.get('is_active', True)),
            requires_shipping=bool(dados.get('requires_shipping', False)),
            order=dados.get('order'),
        )

    @staticmethod
    def to_row(produto: Product) -> dict:
        return _sem_nulos(asdict(produto))


class LayoutElementMapper:
    _ESTILO_JSON = {'font_size': 'fontSize', 'font_weight': 'fontWeight'}

    @classmethod
    def to_entity(cls, dados: dict) -> LayoutElement:
        conteudo = dados.get('content') or {}
        estilo = conteudo.get('style') or {}
        return LayoutElement(
            **_id_informado(dados),
            type=dados.get('type'),
            order=dados.get('order'),
            content=LayoutContent(
                text=conteudo.get('text'),
                url=conteudo.get('url'),
                placeholder=conteudo.get('placeholder'),
                required=conteudo.get('required'),
                field_id=conteudo.get('fieldId', conteudo.get('field_id')),
                style=LayoutStyle(
                    font_size=estilo.get('fontSize'),
                    font_weight=estilo.get('fontWeight'),
                    align=estilo.get('align'),
                    height=estilo.get('height'),
                    color=estilo.get('color'),
                ),
            ),
        )

    @classmethod
    def to_row(cls, elemento: LayoutElement) -> dict:
        estilo = {
            cls._ESTILO_JSON.get(chave, chave): valor
            for chave, valor in asdict(elemento.content.style).items()
            if valor is not None
        }
        conteudo = _sem_nulos({
            'text': elemento.content.text,
            'url': elemento.content.url,
            'placeholder': elemento.content.placeholder,
            'required': elemento.content.required,
            'fieldId': elemento.content.field_id,
        })
        if estilo:
            conteudo['style'] = estilo
        return {'id': elemento.id, 'type': elemento.type, 'content': conteudo, 'order': elemento.order}


class PaginaMapper:
    """Linha de checkout_pages <-> CheckoutPage."""

    @staticmethod
    def to_entity(linha: Linha) -> CheckoutPage:
        return CheckoutPage(
            id=_id(linha.get('id')),
            user_id=_id(linha.get('user_id')),
            title=linha.get('title', ''),
            slug=linha.get('slug', ''),
            description=linha.get('description') or None,
            logo_url=linha.get('logo_url') or None,
            theme=ThemeMapper.to_entity(linha.get('theme')),
            custom_fields=sort_by_order([CustomFieldMapper.to_entity(f) for f in linha.get('custom_fields') or []]),
            products=sort_by_order([ProductMapper.to_entity(p) for p in linha.get('products') or []]),
            layout=sort_by_order([LayoutElementMapper.to_entity(e) for e in linha.get('layout') or []]),
            is_active=bool(linha.get('is_active', True)),
            pixels=list(linha.get('pixels') or []),
            utmify_key=linha.get('utmify_key') or None,
            delivery_email=linha.get('delivery_email') or None,
            created_at=linha.get('created_at'),
            updated_at=linha.get('updated_at'),
        )

    @staticmethod
    def to_row(page: CheckoutPage) -> Linha:
        linha = {
            'id': page.id,
            'user_id': page.user_id,
            'title': page.title,
            'slug': page.slug,
            'description': page.description,
            'logo_url': page.logo_url.strip() if page.logo_url else None,
            'theme': ThemeMapper.to_row(page.theme),
            'custom_fields': [CustomFieldMapper.to_row(f) for f in page.custom_fields],
            'products': [ProductMapper.to_row(p) for p in page.products],
            'layout': [LayoutElementMapper.to_row(e) for e in page.layout],
            'is_active': page.is_active,
            'pixels': list(page.pixels),
            'utmify_key': page.utmify_key,
            'delivery_email': page.delivery_email,
        }
        if linha['id'] is None:
            del linha['id']
        return linha


# ====================================================================
# MAPPERS DE PEDIDO E CATÁLOGO
# ====================================================================

class PedidoMapper:
    """Linha de orders <-> Order."""

    @staticmethod
    def to_entity(linha: Linha) -> Order:
        info = linha.get('customer_info') or {}
        endereco = info.get('address')
        return Order(
            id=_id(linha.get('id')),
            checkout_page_id=_id(linha.get('checkout_page_id')),
            customer_info=CustomerInfo(
                name=info.get('name', ''),
                email=info.get('email', ''),
                phone=info.get('phone', ''),
                cpf=info.get('cpf', ''),
                address=Address(**endereco) if endereco else None,
                custom_fields=dict(info.get('custom_fields') or {}),
            ),
            products=[
                OrderProduct(
                    product_id=_id(p.get('product_id')),
                    name=p.get('name', ''),
                    price=_decimal(p.get('price')),
                    quantity=int(p.get('quantity') or 0),
                )
                for p in linha.get('products') or []
            ],
            total_amount=_decimal(linha.get('total_amount')),
            status=linha.get('status', 'pending'),
            payment_method=linha.get('payment_method', ''),
            created_at=linha.get('created_at'),
            updated_at=linha.get('updated_at'),
        )

    @staticmethod
    def to_row(pedido: Order) -> Linha:
        info = asdict(pedido.customer_info)
        if info['address'] is None:
            del info['address']
        return _sem_nulos({
            'id': pedido.id,
            'checkout_page_id': pedido.checkout_page_id,
            'customer_info': info,
            'products': [asdict(p) for p in pedido.products],
            'total_amount': pedido.total_amount,
            'status': pedido.status,
            'payment_method': pedido.payment_method,
        })


class CatalogProductMapper:
    """Linha de products <-> CatalogProduct."""

    @staticmethod
    def to_entity(linha: Linha) -> CatalogProduct:
        return CatalogProduct(
            id=_id(linha.get('id')),
            user_id=_id(linha.get('user_id')),
            name=linha.get('name', ''),
            description=linha.get('description') or None,
            price=_decimal(linha.get('price')),
            type=linha.get('type', 'digital'),
            image_url=linha.get('image_url') or None,
            digital_file_url=linha.get('digital_file_url') or None,
            discount=linha.get('discount'),
            is_active=bool(linha.get('is_active', True)),
            created_at=linha.get('created_at'),
        )

    @staticmethod
    def to_row(produto: CatalogProduct) -> Linha:
        linha = asdict(produto)
        linha.pop('created_at')
        if linha['id'] is None:
            del linha['id']
        return linha


def resumo_to_dict(resumo: AnalyticsSummary) -> Dict[str, Any]:
    return {
        'total_sales': str(resumo.total_sales),
        'total_orders': resumo.total_orders,
        'conversion_rate': resumo.conversion_rate,
        'revenue_by_day': [
            {'date': dia['date'], 'revenue': str(dia['revenue'])} for dia in resumo.revenue_by_day
        ],
        'top_products': list(resumo.top_products),
        'recent_orders': [pedido_to_dict(p) for p in resumo.recent_orders],
        'active_pages': resumo.active_pages,
    }


def pedido_to_dict(pedido: Order) -> Dict[str, Any]:
    dados = PedidoMapper.to_row(pedido)
    dados['total_amount'] = str(pedido.total_amount)
    dados['products'] = [
        {**p, 'price': str(p['price'])} for p in dados['products']
    ]
    dados['created_at'] = pedido.created_at.isoformat() if pedido.created_at else None
    return dados
