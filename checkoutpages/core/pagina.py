# checkoutpages/core/pagina.py
"""
Modelo de definição da página de checkout.

Funções puras sobre as Entidades: validação antes da persistência, derivação
do slug, e as mutações do construtor (campos, produtos e layout). Toda mutação
devolve uma nova CheckoutPage e deixa as coleções com 'order' denso (0..n-1).
"""
import logging
import re
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Sequence, TypeVar
from urllib.parse import urlsplit

from checkoutpages.core.entities import (
    CheckoutPage, CustomField, LayoutContent, LayoutElement, LayoutStyle, Product,
    TIPOS_CAMPO, TIPOS_ELEMENTO, TIPOS_PRODUTO,
)
from checkoutpages.core.exceptions import (
    CampoDesvinculadoError,
    DadosInvalidosError,
    DescontoInvalidoError,
    DescricaoInvalidaError,
    ItemNaoEncontradoError,
    NomeProdutoInvalidoError,
    PaginaSemProdutosError,
    PrecoInvalidoError,
    SlugInvalidoError,
    TituloInvalidoError,
    UrlInvalidaError,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')

TITULO_MAX = 255
SLUG_MAX = 100
DESCRICAO_MAX = 1000
SLUG_REGEX = re.compile(r'^[a-z0-9-]+$')
ESQUEMA_URL_REGEX = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.-]*$')


# ====================================================================
# 1. SLUG E NOMES
# ====================================================================

def normalize_slug(title: str) -> str:
    """Deriva o slug do título: minúsculas, [a-z0-9-], hífens simples nas pontas aparadas."""
    slug = (title or '').lower()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug)
    return slug.strip('-')


def normalize_field_name(label: str) -> str:
    """Chave de máquina de um campo: minúsculas, cada caractere de espaço vira '_'."""
    return re.sub(r'\s', '_', (label or '').lower())


def url_valida(url: Optional[str]) -> bool:
    """
    Aceita qualquer URL absoluta: esquema seguido de host ou caminho
    (https://..., s3://bucket/arquivo, mailto:...). Espaços invalidam.
    """
    if not url or any(c.isspace() for c in url):
        return False
    try:
        partes = urlsplit(url)
    except ValueError:
        return False
    if not ESQUEMA_URL_REGEX.match(partes.scheme):
        return False
    return bool(partes.netloc or partes.path)


# ====================================================================
# 2. VALIDAÇÃO
# ====================================================================

def _como_decimal(valor) -> Optional[Decimal]:
    try:
        return Decimal(str(valor))
    except (InvalidOperation, TypeError, ValueError):
        return None


def _erros_produto(produto: Product) -> List[DadosInvalidosError]:
    erros = []
    nome = (produto.name or '').strip()
    if not nome:
        erros.append(NomeProdutoInvalidoError(product_id=produto.id))

    preco = _como_decimal(produto.price)
    if preco is None or not preco.is_finite() or preco <= 0:
        erros.append(PrecoInvalidoError(
            f'O preço do produto "{nome}" deve ser maior que zero', product_id=produto.id))

    if produto.image_url and not url_valida(produto.image_url.strip()):
        erros.append(UrlInvalidaError(
            f'URL da imagem inválida para o produto "{nome}"', product_id=produto.id))

    if produto.digital_file_url and not url_valida(produto.digital_file_url.strip()):
        erros.append(UrlInvalidaError(
            f'URL do arquivo digital inválida para o produto "{nome}"', product_id=produto.id))

    if produto.discount is not None and not 0 <= produto.discount <= 100:
        erros.append(DescontoInvalidoError(product_id=produto.id))
    return erros


def collect_page_errors(page: CheckoutPage) -> List[DadosInvalidosError]:
    """Todas as falhas da página, em ordem estável: produtos (na ordem da coleção) e depois o formulário."""
    erros: List[DadosInvalidosError] = []
    if not page.products:
        erros.append(PaginaSemProdutosError())
    for produto in page.products:
        erros.extend(_erros_produto(produto))

    titulo = (page.title or '').strip()
    if not titulo or len(titulo) > TITULO_MAX:
        erros.append(TituloInvalidoError())
    if not page.slug or len(page.slug) > SLUG_MAX or not SLUG_REGEX.match(page.slug):
        erros.append(SlugInvalidoError())
    if page.description and len(page.description) > DESCRICAO_MAX:
        erros.append(DescricaoInvalidaError())
    if page.logo_url and not url_valida(page.logo_url.strip()):
        erros.append(UrlInvalidaError("URL do logo inválida"))

    ids_campos = {campo.id for campo in page.custom_fields}
    for elemento in page.layout:
        if elemento.type == 'text_field' and elemento.content.field_id not in ids_campos:
            erros.append(CampoDesvinculadoError(element_id=elemento.id))
    return erros


def validate_page(page: CheckoutPage) -> None:
    """Levanta a primeira falha encontrada; não faz nada se a página é válida."""
    erros = collect_page_errors(page)
    if erros:
        logger.info("Página '%s' rejeitada: %s", page.slug, erros[0].codigo)
        raise erros[0]


# ====================================================================
# 3. ORDENAÇÃO DENSA
# ====================================================================

def renumber(collection: Iterable[T]) -> List[T]:
    """Reatribui 'order' = 0..n-1 seguindo a sequência atual da coleção."""
    return [replace(item, order=indice) for indice, item in enumerate(collection)]


def sort_by_order(collection: Sequence[T]) -> List[T]:
    """Ordena pelo 'order' salvo (ausente usa a posição) e renumera."""
    indexados = [
        (item.order if item.order is not None else indice, indice, item)
        for indice, item in enumerate(collection)
    ]
    indexados.sort(key=lambda tripla: (tripla[0], tripla[1]))
    return renumber(item for _, _, item in indexados)


def _mover(collection: Sequence[T], origem: int, destino: int) -> List[T]:
    itens = list(collection)
    if not 0 <= origem < len(itens) or not 0 <= destino < len(itens):
        raise DadosInvalidosError("Posição fora da coleção.")
    item = itens.pop(origem)
    itens.insert(destino, item)
    return renumber(itens)


def _indice(collection: Sequence, item_id: str, erro=ItemNaoEncontradoError) -> int:
    for indice, item in enumerate(collection):
        if item.id == item_id:
            return indice
    raise erro()


# ====================================================================
# 4. CAMPOS PERSONALIZADOS
# ====================================================================

def _proximo_nome_campo(fields: Sequence[CustomField]) -> str:
    usados = {f.name for f in fields}
    numero = len(fields) + 1
    while f"field_{numero}" in usados:
        numero += 1
    return f"field_{numero}"


def add_custom_field(
    page: CheckoutPage,
    label: str = 'Novo Campo',
    type: str = 'text',
    required: bool = False,
    placeholder: str = '',
    options: Optional[List[str]] = None,
    name: Optional[str] = None,
) -> CheckoutPage:
    if type not in TIPOS_CAMPO:
        raise DadosInvalidosError(f"Tipo de campo inválido: {type}")
    campo = CustomField(
        name=normalize_field_name(name) if name else _proximo_nome_campo(page.custom_fields),
        label=label,
        type=type,
        required=required,
        placeholder=placeholder,
        options=_limpar_opcoes(options),
        order=len(page.custom_fields),
    )
    return replace(page, custom_fields=renumber([*page.custom_fields, campo]))


def _limpar_opcoes(options: Optional[Iterable[str]]) -> List[str]:
    return [opt.strip() for opt in (options or []) if opt and opt.strip()]


def update_custom_field(page: CheckoutPage, field_id: str, **mudancas) -> CheckoutPage:
    indice = _indice(page.custom_fields, field_id)
    if 'name' in mudancas:
        mudancas['name'] = normalize_field_name(mudancas['name'])
    if 'options' in mudancas:
        mudancas['options'] = _limpar_opcoes(mudancas['options'])
    if mudancas.get('type', 'text') not in TIPOS_CAMPO:
        raise DadosInvalidosError(f"Tipo de campo inválido: {mudancas['type']}")
    fields = list(page.custom_fields)
    fields[indice] = replace(fields[indice], **mudancas)
    return replace(page, custom_fields=fields)


def _remover_vinculo(page: CheckoutPage, field_id: str) -> CheckoutPage:
    fields = [f for f in page.custom_fields if f.id != field_id]
    layout = [e for e in page.layout if e.content.field_id != field_id]
    return replace(page, custom_fields=renumber(fields), layout=renumber(layout))


def remove_field_and_linked_elements(page: CheckoutPage, field_id: str) -> CheckoutPage:
    """Remove o campo e todo elemento text_field que aponta para ele, numa única operação."""
    _indice(page.custom_fields, field_id)
    return _remover_vinculo(page, field_id)


def move_custom_field(page: CheckoutPage, origem: int, destino: int) -> CheckoutPage:
    return replace(page, custom_fields=_mover(page.custom_fields, origem, destino))


# ====================================================================
# 5. PRODUTOS
# ====================================================================

def _limpar_url(url: Optional[str]) -> Optional[str]:
    if url is None:
        return None
    return url.strip() or None


def add_product(page: CheckoutPage, **dados) -> CheckoutPage:
    dados.setdefault('name', '')
    dados.setdefault('price', Decimal('0'))
    produto = Product(**dados)
    if produto.type not in TIPOS_PRODUTO:
        raise DadosInvalidosError(f"Tipo de produto inválido: {produto.type}")
    produto = replace(
        produto,
        price=_como_decimal(produto.price),
        image_url=_limpar_url(produto.image_url),
        digital_file_url=_limpar_url(produto.digital_file_url),
    )
    return replace(page, products=renumber([*page.products, produto]))


def update_product(page: CheckoutPage, product_id: str, **mudancas) -> CheckoutPage:
    """Atualiza um produto. Tornar o produto físico força requires_shipping."""
    indice = _indice(page.products, product_id)
    if mudancas.get('type', 'digital') not in TIPOS_PRODUTO:
        raise DadosInvalidosError(f"Tipo de produto inválido: {mudancas['type']}")
    if 'price' in mudancas:
        mudancas['price'] = _como_decimal(mudancas['price'])
    for chave in ('image_url', 'digital_file_url'):
        if chave in mudancas:
            mudancas[chave] = _limpar_url(mudancas[chave])
    if mudancas.get('type') == 'physical':
        mudancas['requires_shipping'] = True
    products = list(page.products)
    products[indice] = replace(products[indice], **mudancas)
    return replace(page, products=products)


def remove_product(page: CheckoutPage, product_id: str) -> CheckoutPage:
    _indice(page.products, product_id)
    return replace(page, products=renumber(p for p in page.products if p.id != product_id))


def move_product(page: CheckoutPage, origem: int, destino: int) -> CheckoutPage:
    return replace(page, products=_mover(page.products, origem, destino))


# ====================================================================
# 6. LAYOUT
# ====================================================================

def conteudo_padrao(tipo: str, page: CheckoutPage) -> LayoutContent:
    """Conteúdo inicial de cada bloco da caixa de ferramentas."""
    if tipo == 'title':
        return LayoutContent(
            text=page.title or 'Título da Página',
            style=LayoutStyle(font_size='24px', font_weight='bold', align='center'))
    if tipo == 'description':
        return LayoutContent(
            text=page.description or 'Descrição da Página',
            style=LayoutStyle(font_size='16px', align='center'))
    if tipo == 'logo':
        return LayoutContent(url=page.logo_url, style=LayoutStyle(align='center'))
    if tipo == 'text_field':
        return LayoutContent(placeholder='Novo Campo', required=False)
    if tipo == 'button':
        return LayoutContent(text='Finalizar Compra', style=LayoutStyle(align='center'))
    if tipo == 'image':
        return LayoutContent(style=LayoutStyle(align='center'))
    if tipo == 'spacer':
        return LayoutContent(style=LayoutStyle(height='20px'))
    if tipo == 'divider':
        return LayoutContent(style=LayoutStyle(color='#e5e7eb'))
    return LayoutContent()


def default_layout(title: str = '', description: Optional[str] = None,
                   logo_url: Optional[str] = None) -> List[LayoutElement]:
    """Layout inicial de uma página nova."""
    rascunho = CheckoutPage(user_id='', title=title, slug='', description=description, logo_url=logo_url)
    tipos = ('title', 'description', 'logo', 'product_list', 'customer_info_form', 'button')
    return renumber(LayoutElement(type=tipo, content=conteudo_padrao(tipo, rascunho)) for tipo in tipos)


def insert_layout_element(
    page: CheckoutPage,
    tipo: str,
    posicao: Optional[int] = None,
    content: Optional[LayoutContent] = None,
) -> CheckoutPage:
    """Insere um bloco na posição dada. Um text_field cria o CustomField vinculado."""
    if tipo not in TIPOS_ELEMENTO:
        raise DadosInvalidosError(f"Tipo de elemento inválido: {tipo}")
    content = content or conteudo_padrao(tipo, page)
    fields = list(page.custom_fields)

    if tipo == 'text_field':
        campo = CustomField(
            name=_proximo_nome_campo(fields),
            label=content.placeholder or 'Novo Campo',
            type='text',
            required=bool(content.required),
            placeholder=content.placeholder,
            order=len(fields),
        )
        fields.append(campo)
        content = replace(content, field_id=campo.id)

    layout = list(page.layout)
    if posicao is None or posicao > len(layout):
        posicao = len(layout)
    layout.insert(max(posicao, 0), LayoutElement(type=tipo, content=content))
    return replace(page, layout=renumber(layout), custom_fields=renumber(fields))


def update_layout_element(page: CheckoutPage, element_id: str, content: LayoutContent) -> CheckoutPage:
    """Troca o conteúdo do bloco; num text_field, 'required' e 'placeholder' seguem para o campo."""
    indice = _indice(page.layout, element_id)
    elemento = page.layout[indice]
    if elemento.type == 'text_field':
        content = replace(content, field_id=elemento.content.field_id)
    layout = list(page.layout)
    layout[indice] = replace(elemento, content=content)
    page = replace(page, layout=layout)

    vinculado = content.field_id
    if elemento.type == 'text_field' and vinculado and any(f.id == vinculado for f in page.custom_fields):
        mudancas = {}
        if content.required is not None:
            mudancas['required'] = bool(content.required)
        if content.placeholder is not None:
            mudancas['placeholder'] = content.placeholder
        if mudancas:
            page = update_custom_field(page, vinculado, **mudancas)
    return page


def remove_layout_element(page: CheckoutPage, element_id: str) -> CheckoutPage:
    """Remove o bloco; se for um text_field, o campo vinculado sai junto."""
    elemento = page.layout[_indice(page.layout, element_id)]
    if elemento.type == 'text_field' and elemento.content.field_id:
        return _remover_vinculo(page, elemento.content.field_id)
    return replace(page, layout=renumber(e for e in page.layout if e.id != element_id))


def move_layout_element(page: CheckoutPage, origem: int, destino: int) -> CheckoutPage:
    return replace(page, layout=_mover(page.layout, origem, destino))
