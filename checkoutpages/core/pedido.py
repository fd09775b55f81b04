# checkoutpages/core/pedido.py
"""
Cálculo do pedido a partir de uma página e da seleção do cliente.

O desconto dos produtos é armazenado mas não entra no total.
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from django.core.exceptions import ValidationError
from django.core.validators import validate_email

from checkoutpages.core.entities import (
    Address, CheckoutPage, CustomField, CustomerInfo, Order, OrderProduct,
)
from checkoutpages.core.exceptions import (
    CampoObrigatorioError,
    DadosClienteInvalidosError,
    EmailInvalidoError,
    NenhumProdutoSelecionadoError,
    ProdutoNaoEncontradoError,
    QuantidadeInvalidaError,
)

CENTAVOS = Decimal('0.01')

CAMPOS_CLIENTE = (
    ('name', 'Nome é obrigatório'),
    ('email', 'Email é obrigatório'),
    ('phone', 'Telefone é obrigatório'),
    ('cpf', 'CPF é obrigatório'),
)

CAMPOS_ENDERECO = (
    ('address_street', 'Endereço é obrigatório'),
    ('address_number', 'Número é obrigatório'),
    ('address_neighborhood', 'Bairro é obrigatório'),
    ('address_city', 'Cidade é obrigatória'),
    ('address_state', 'Estado é obrigatório'),
    ('address_zip', 'CEP é obrigatório'),
)


class ProductSelection:
    """Seleção de produtos e quantidades feita pelo cliente na vitrine."""

    def __init__(self, selected: Optional[Iterable[str]] = None,
                 quantities: Optional[Mapping[str, int]] = None):
        self._selected: List[str] = list(dict.fromkeys(selected or []))
        self.quantities: Dict[str, int] = dict(quantities or {})

    @classmethod
    def inicial(cls, page: CheckoutPage) -> 'ProductSelection':
        """Primeiro produto ativo selecionado; quantidade 1 para todos os ativos."""
        ativos = page.produtos_ativos
        return cls(
            selected=[ativos[0].id] if ativos else [],
            quantities={p.id: 1 for p in ativos},
        )

    @property
    def selected_product_ids(self) -> List[str]:
        return list(self._selected)

    def toggle(self, product_id: str) -> None:
        if product_id in self._selected:
            self._selected.remove(product_id)
            self.quantities.pop(product_id, None)
        else:
            self._selected.append(product_id)
            self.quantities[product_id] = 1

    def update_quantity(self, product_id: str, quantidade) -> bool:
        """Quantidades não positivas são ignoradas e a anterior é mantida."""
        if isinstance(quantidade, bool) or not isinstance(quantidade, int) or quantidade <= 0:
            return False
        self.quantities[product_id] = quantidade
        return True


def _quantidade(quantities: Optional[Mapping[str, int]], product_id: str) -> int:
    quantidade = (quantities or {}).get(product_id)
    if quantidade is None:
        return 1
    if isinstance(quantidade, bool) or not isinstance(quantidade, int) or quantidade <= 0:
        raise QuantidadeInvalidaError()
    return quantidade


def calculate_total(page: CheckoutPage, selected_product_ids: Iterable[str],
                    quantities: Optional[Mapping[str, int]] = None) -> Decimal:
    """Soma de preço * quantidade dos produtos selecionados."""
    total = Decimal('0')
    for product_id in dict.fromkeys(selected_product_ids):
        produto = page.buscar_produto(product_id)
        if produto is None:
            continue
        total += Decimal(str(produto.price)) * _quantidade(quantities, product_id)
    return total.quantize(CENTAVOS)


def requires_shipping(page: CheckoutPage, selected_product_ids: Iterable[str]) -> bool:
    selecionados = set(selected_product_ids)
    return any(p.requires_shipping for p in page.products if p.id in selecionados)


def _vazio(valor) -> bool:
    if valor is None or valor is False:
        return True
    if isinstance(valor, str):
        return not valor.strip()
    if isinstance(valor, (list, tuple, dict)):
        return not valor
    return False


def validate_customer_info(form: Mapping, requires_shipping: bool,
                           custom_fields: Sequence[CustomField] = ()) -> None:
    """Levanta DadosClienteInvalidosError com todas as falhas do formulário."""
    erros = []
    for campo, mensagem in CAMPOS_CLIENTE:
        if _vazio(form.get(campo)):
            erros.append(CampoObrigatorioError(campo, mensagem))

    email = form.get('email')
    if not _vazio(email):
        try:
            validate_email(str(email).strip())
        except ValidationError:
            erros.append(EmailInvalidoError())

    if requires_shipping:
        for campo, mensagem in CAMPOS_ENDERECO:
            if _vazio(form.get(campo)):
                erros.append(CampoObrigatorioError(campo, mensagem))

    for field in sorted(custom_fields, key=lambda f: f.order):
        if field.required and _vazio(form.get(field.name)):
            erros.append(CampoObrigatorioError(field.name, f"{field.label} é obrigatório"))

    if erros:
        raise DadosClienteInvalidosError(erros)


def _texto(form: Mapping, campo: str) -> Optional[str]:
    valor = form.get(campo)
    if valor is None:
        return None
    return str(valor).strip()


def build_order(page: CheckoutPage, selection: ProductSelection, form: Mapping) -> Order:
    """Monta o pedido com snapshots dos produtos no momento da compra."""
    ids = selection.selected_product_ids
    if not ids:
        raise NenhumProdutoSelecionadoError()

    snapshots = []
    for product_id in ids:
        produto = page.buscar_produto(product_id)
        if produto is None or not produto.is_active:
            raise ProdutoNaoEncontradoError(f"Produto {product_id} não está disponível nesta página.")
        snapshots.append(OrderProduct(
            product_id=produto.id,
            name=produto.name,
            price=Decimal(str(produto.price)),
            quantity=_quantidade(selection.quantities, product_id),
        ))

    endereco = None
    if requires_shipping(page, ids):
        endereco = Address(
            street=_texto(form, 'address_street'),
            number=_texto(form, 'address_number'),
            complement=_texto(form, 'address_complement') or None,
            neighborhood=_texto(form, 'address_neighborhood'),
            city=_texto(form, 'address_city'),
            state=_texto(form, 'address_state'),
            zip_code=_texto(form, 'address_zip'),
        )

    cliente = CustomerInfo(
        name=_texto(form, 'name'),
        email=_texto(form, 'email'),
        phone=_texto(form, 'phone'),
        cpf=_texto(form, 'cpf'),
        address=endereco,
        custom_fields={field.name: form.get(field.name) for field in page.custom_fields},
    )

    return Order(
        checkout_page_id=page.id,
        customer_info=cliente,
        products=snapshots,
        total_amount=calculate_total(page, ids, selection.quantities),
        payment_method=_texto(form, 'payment_method') or 'pix',
    )
