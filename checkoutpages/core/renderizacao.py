# checkoutpages/core/renderizacao.py
"""
Contrato de renderização: converte a definição salva de uma página em uma
estrutura determinística de blocos e campos de formulário, pronta para a vitrine.
"""
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from checkoutpages.core.entities import CheckoutPage, CustomField, LayoutElement, Product
from checkoutpages.core.pagina import sort_by_order

CAMPOS_BASE = (
    {'name': 'name', 'type': 'text', 'placeholder': 'Nome Completo', 'required': True},
    {'name': 'email', 'type': 'email', 'placeholder': 'Endereço de Email', 'required': True},
    {'name': 'phone', 'type': 'phone', 'placeholder': 'Número de Telefone', 'required': True},
    {'name': 'cpf', 'type': 'text', 'placeholder': 'CPF', 'required': True},
)

CAMPOS_ENDERECO_RENDER = (
    {'name': 'address_street', 'type': 'text', 'placeholder': 'Nome da rua', 'required': True},
    {'name': 'address_number', 'type': 'text', 'placeholder': '123', 'required': True},
    {'name': 'address_complement', 'type': 'text', 'placeholder': 'Apto, sala, etc.', 'required': False},
    {'name': 'address_neighborhood', 'type': 'text', 'placeholder': 'Bairro', 'required': True},
    {'name': 'address_city', 'type': 'text', 'placeholder': 'Cidade', 'required': True},
    {'name': 'address_state', 'type': 'text', 'placeholder': 'SP', 'required': True},
    {'name': 'address_zip', 'type': 'text', 'placeholder': '00000-000', 'required': True},
)


def _estilo(elemento: LayoutElement) -> Dict[str, str]:
    return {chave: valor for chave, valor in asdict(elemento.content.style).items() if valor is not None}


def _raio_botao(page: CheckoutPage) -> str:
    if page.theme.button_style == 'pill':
        return '9999px'
    if page.theme.button_style == 'square':
        return '0'
    return page.theme.border_radius


def render_field(field: CustomField) -> Dict[str, Any]:
    return {
        'id': field.id,
        'name': field.name,
        'label': field.label,
        'type': field.type,
        'required': field.required,
        'placeholder': field.placeholder or field.label,
        'options': list(field.options) if field.type == 'select' else [],
    }


def render_product(produto: Product) -> Dict[str, Any]:
    return {
        'id': produto.id,
        'name': produto.name,
        'description': produto.description,
        'price': str(produto.price),
        'type': produto.type,
        'image_url': produto.image_url,
        'requires_shipping': produto.requires_shipping,
    }


def _render_bloco(page: CheckoutPage, elemento: LayoutElement,
                  campos: Dict[str, CustomField]) -> Optional[Dict[str, Any]]:
    bloco: Dict[str, Any] = {'id': elemento.id, 'type': elemento.type, 'style': _estilo(elemento)}
    tipo = elemento.type
    conteudo = elemento.content

    if tipo == 'title':
        bloco['text'] = conteudo.text or page.title
    elif tipo == 'description':
        bloco['text'] = conteudo.text or page.description
    elif tipo in ('logo', 'image'):
        if not conteudo.url:
            return None
        bloco['url'] = conteudo.url
    elif tipo == 'text_field':
        campo = campos.get(conteudo.field_id)
        if campo is None:
            return None
        bloco['field'] = render_field(campo)
    elif tipo == 'button':
        bloco['text'] = conteudo.text
        bloco['background_color'] = page.theme.primary_color
        bloco['border_radius'] = _raio_botao(page)
    elif tipo == 'product_list':
        bloco['products'] = [render_product(p) for p in page.produtos_ativos]
    elif tipo == 'customer_info_form':
        bloco['fields'] = [dict(campo) for campo in CAMPOS_BASE] + [
            render_field(f) for f in sort_by_order(page.custom_fields)
        ]
        # obrigatório só quando a seleção do cliente inclui produto com envio
        if any(p.requires_shipping for p in page.produtos_ativos):
            bloco['address'] = {
                'required_when': 'requires_shipping',
                'fields': [dict(campo) for campo in CAMPOS_ENDERECO_RENDER],
            }
    return bloco


def render_page(page: CheckoutPage) -> Dict[str, Any]:
    """Mesma definição, mesma estrutura: blocos na ordem do layout."""
    campos = {f.id: f for f in page.custom_fields}
    blocos: List[Dict[str, Any]] = []
    for elemento in sort_by_order(page.layout):
        bloco = _render_bloco(page, elemento, campos)
        if bloco is not None:
            blocos.append(bloco)
    return {
        'id': page.id,
        'title': page.title,
        'slug': page.slug,
        'description': page.description,
        'logo_url': page.logo_url,
        'theme': asdict(page.theme),
        'blocks': blocos,
    }
