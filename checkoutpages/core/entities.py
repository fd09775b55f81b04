from dataclasses import dataclass, field
from decimal import Decimal
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

# ====================================================================
# ENTIDADES CORE
# Representam a definição de uma página de checkout e os pedidos
# gerados a partir dela. Os nomes de campo seguem as colunas das tabelas.
# ====================================================================

TIPOS_CAMPO = ('text', 'email', 'phone', 'select', 'textarea', 'checkbox')
TIPOS_PRODUTO = ('digital', 'physical')
ESTILOS_BOTAO = ('rounded', 'square', 'pill')
TIPOS_ELEMENTO = (
    'title', 'description', 'logo', 'text_field', 'button',
    'image', 'spacer', 'divider', 'product_list', 'customer_info_form',
)
STATUS_PEDIDO = ('pending', 'completed', 'cancelled', 'refunded')


def _novo_id() -> str:
    return str(uuid.uuid4())


@dataclass
class CheckoutTheme:
    """Tema visual da página. Valor puro, sempre embutido em uma CheckoutPage."""
    primary_color: str = '#3B82F6'
    secondary_color: str = '#1E40AF'
    background_color: str = '#FFFFFF'
    text_color: str = '#1F2937'
    font_family: str = 'Inter'
    border_radius: str = '8px'
    button_style: str = 'rounded'


@dataclass
class CustomField:
    """Campo personalizado do formulário do cliente."""
    name: str
    label: str
    type: str = 'text'
    required: bool = False
    options: List[str] = field(default_factory=list)
    placeholder: Optional[str] = None
    order: int = 0
    id: str = field(default_factory=lambda: f"field_{uuid.uuid4().hex[:12]}")


@dataclass
class Product:
    """Produto oferecido na página (cópia embutida, não é referência ao catálogo)."""
    name: str
    price: Decimal
    description: str = ''
    type: str = 'digital'
    image_url: Optional[str] = None
    digital_file_url: Optional[str] = None
    discount: Optional[int] = None
    is_active: bool = True
    requires_shipping: bool = False
    order: int = 0
    id: str = field(default_factory=_novo_id)

    def __post_init__(self):
        # Produto físico sempre exige envio.
        if self.type == 'physical':
            self.requires_shipping = True


@dataclass
class LayoutStyle:
    font_size: Optional[str] = None
    font_weight: Optional[str] = None
    align: Optional[str] = None
    height: Optional[str] = None
    color: Optional[str] = None


@dataclass
class LayoutContent:
    """Conteúdo variável de um bloco do layout; o significado depende do tipo."""
    text: Optional[str] = None
    url: Optional[str] = None
    placeholder: Optional[str] = None
    required: Optional[bool] = None
    field_id: Optional[str] = None
    style: LayoutStyle = field(default_factory=LayoutStyle)


@dataclass
class LayoutElement:
    """Bloco posicionado do layout (título, imagem, lista de produtos...)."""
    type: str
    content: LayoutContent = field(default_factory=LayoutContent)
    order: int = 0
    id: str = field(default_factory=lambda: f"element-{uuid.uuid4().hex[:12]}")


@dataclass
class CheckoutPage:
    """Entidade da Página de Checkout, pertencente a um único usuário."""
    user_id: str
    title: str
    slug: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    theme: CheckoutTheme = field(default_factory=CheckoutTheme)
    custom_fields: List[CustomField] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)
    layout: List[LayoutElement] = field(default_factory=list)
    is_active: bool = True
    pixels: List[str] = field(default_factory=list)
    utmify_key: Optional[str] = None
    delivery_email: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def buscar_produto(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    @property
    def produtos_ativos(self) -> List[Product]:
        return sorted((p for p in self.products if p.is_active), key=lambda p: p.order)


@dataclass
class Address:
    """Endereço de entrega, presente apenas quando algum produto exige envio."""
    street: str
    number: str
    neighborhood: str
    city: str
    state: str
    zip_code: str
    complement: Optional[str] = None


@dataclass
class CustomerInfo:
    name: str
    email: str
    phone: str
    cpf: str
    address: Optional[Address] = None
    custom_fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OrderProduct:
    """Snapshot de um produto no momento da compra (imutável)."""
    product_id: str
    name: str
    price: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class Order:
    """Entidade do Pedido gerado pela página de checkout."""
    checkout_page_id: str
    customer_info: CustomerInfo
    products: List[OrderProduct]
    total_amount: Decimal
    status: str = 'pending'
    payment_method: str = 'pix'
    id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: Optional[datetime] = None


@dataclass
class CatalogProduct:
    """Produto do catálogo do usuário (tabela products)."""
    user_id: str
    name: str
    price: Decimal
    description: Optional[str] = None
    type: str = 'digital'
    image_url: Optional[str] = None
    digital_file_url: Optional[str] = None
    discount: Optional[int] = None
    is_active: bool = True
    id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class AnalyticsSummary:
    total_sales: Decimal = Decimal('0.00')
    total_orders: int = 0
    conversion_rate: float = 0.0
    revenue_by_day: List[Dict[str, Any]] = field(default_factory=list)
    top_products: List[Dict[str, Any]] = field(default_factory=list)
    recent_orders: List[Order] = field(default_factory=list)
    active_pages: int = 0
