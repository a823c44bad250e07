# ==============================================================================
# ENTIDADES DO DOMÍNIO - Definições de dataclasses
# ==============================================================================
# Cada entidade representa um conceito do negócio da sorveteria/açaiteria.
# Projetadas para serem independentes do mecanismo de persistência:
# to_dict() produz estruturas compatíveis com JSON (datas em ISO-8601).
# ==============================================================================

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple
from enum import Enum
from datetime import datetime


# ==============================================================================
# ENUMERAÇÕES - Estados e tipos válidos
# ==============================================================================

class ProductType(str, Enum):
    """Forma de venda de um produto."""
    UNIT = "unit"        # Vendido por unidade
    WEIGHT = "weight"    # Preço por kg, vendido em gramas
    OPTION = "option"    # Personalizável (frutas, cremes, acompanhamentos)
    ADDON = "addon"      # Adicional cobrado à parte


class PaymentMethod(str, Enum):
    """Métodos de pagamento aceitos no caixa."""
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"
    CASH = "CASH"
    PIX = "PIX"


class OrderStatus(str, Enum):
    """Estados de uma comanda."""
    OPEN = "open"
    COMPLETED = "completed"


class ErrorType(str, Enum):
    """Taxonomia de erros do PDV (extensível)."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MAX_ITEMS_EXCEEDED = "MAX_ITEMS_EXCEEDED"
    INVALID_PRODUCT = "INVALID_PRODUCT"
    WEIGHT_REQUIRED = "WEIGHT_REQUIRED"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    STORAGE_ERROR = "STORAGE_ERROR"
    MINIMUM_VALUE_NOT_MET = "MINIMUM_VALUE_NOT_MET"
    MAXIMUM_VALUE_EXCEEDED = "MAXIMUM_VALUE_EXCEEDED"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    OPERATION_NOT_ALLOWED = "OPERATION_NOT_ALLOWED"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    CUSTOMER_NAME_REQUIRED = "CUSTOMER_NAME_REQUIRED"
    ITEMS_REQUIRED = "ITEMS_REQUIRED"
    INSUFFICIENT_CASH = "INSUFFICIENT_CASH"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_ADJUSTMENT = "INVALID_ADJUSTMENT"


ERROR_MESSAGES = {
    ErrorType.VALIDATION_ERROR: "Erro de validação do item",
    ErrorType.MAX_ITEMS_EXCEEDED: "Número máximo de itens excedido",
    ErrorType.INVALID_PRODUCT: "Produto inválido",
    ErrorType.WEIGHT_REQUIRED: "Peso é obrigatório para este produto",
    ErrorType.INVALID_QUANTITY: "Quantidade inválida",
    ErrorType.STORAGE_ERROR: "Erro ao salvar dados",
    ErrorType.MINIMUM_VALUE_NOT_MET: "Valor mínimo do carrinho não atingido",
    ErrorType.MAXIMUM_VALUE_EXCEEDED: "Valor máximo do carrinho excedido",
    ErrorType.ITEM_NOT_FOUND: "Item não encontrado",
    ErrorType.OPERATION_NOT_ALLOWED: "Operação não permitida",
    ErrorType.ORDER_NOT_FOUND: "Comanda não encontrada",
    ErrorType.CUSTOMER_NAME_REQUIRED: "Nome do cliente é obrigatório",
    ErrorType.ITEMS_REQUIRED: "Pelo menos um item deve ser adicionado à venda",
    ErrorType.INSUFFICIENT_CASH: "Valor em dinheiro insuficiente",
    ErrorType.INVALID_AMOUNT: "Por favor, insira um valor válido.",
    ErrorType.INVALID_ADJUSTMENT: "O ajuste máximo permitido é de 10%",
}


# ==============================================================================
# FUNÇÕES AUXILIARES DE SERIALIZAÇÃO
# ==============================================================================

def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Converte um valor persistido (ISO-8601) em datetime.
    Retorna None se não puder converter.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except (ValueError, TypeError):
        return None


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    """Serializa datetime em ISO-8601 (None permanece None)."""
    return value.isoformat() if value else None


def parse_payment_method(value: Any) -> Any:
    """Converte para PaymentMethod; valores desconhecidos são mantidos como estão."""
    if value is None or isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod(value)
    except ValueError:
        return value


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


# ==============================================================================
# ERROS E RESULTADOS
# ==============================================================================

@dataclass
class PdvError:
    """
    Erro detalhado de uma operação do PDV.

    Attributes:
        type: Tipo do erro
        message: Mensagem legível (usa a padrão do tipo se vazia)
        details: Dados adicionais (índice, produto, valor atual/esperado)
        timestamp: Momento em que o erro ocorreu
    """
    type: ErrorType
    message: str = ''
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if not self.message:
            self.message = ERROR_MESSAGES.get(self.type, '')

    @property
    def code(self) -> str:
        """Código único do erro."""
        return f"PDV_{self.type.value}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'code': self.code,
            'message': self.message,
            'details': self.details,
            'timestamp': format_datetime(self.timestamp),
        }


@dataclass
class OperationResult:
    """
    Resultado de uma operação que pode falhar.

    Attributes:
        ok: Se a operação foi bem-sucedida
        data: Dados retornados em caso de sucesso
        error: Erro detalhado em caso de falha
        message: Mensagem de sucesso
    """
    ok: bool
    data: Any = None
    error: Optional[PdvError] = None
    message: str = ''

    @classmethod
    def success(cls, data: Any = None, message: str = '') -> 'OperationResult':
        return cls(ok=True, data=data, message=message)

    @classmethod
    def failure(
        cls,
        error_type: ErrorType,
        message: str = '',
        details: Dict[str, Any] = None
    ) -> 'OperationResult':
        return cls(ok=False, error=PdvError(error_type, message, details or {}))

    @classmethod
    def from_error(cls, error: PdvError) -> 'OperationResult':
        return cls(ok=False, error=error)


@dataclass
class ItemValidation:
    """Resultado da validação de um item (ou do carrinho inteiro)."""
    is_valid: bool
    errors: List[PdvError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


# ==============================================================================
# ENTIDADES DE CATÁLOGO
# ==============================================================================

@dataclass(frozen=True)
class Product:
    """
    Produto do catálogo (dado de referência, imutável).

    Attributes:
        id: Identificador único e estável
        name: Nome exibido
        price: Preço (por unidade, ou por kg quando type=weight)
        category: Categoria para agrupamento
        type: Forma de venda
        options: Máximo de escolhas por categoria de personalização,
                 ex: {'frutas': 2, 'cremes': 2, 'acompanhamentos': 4}
    """
    id: Any
    name: str
    price: float
    category: str = ''
    type: ProductType = ProductType.UNIT
    options: Optional[Dict[str, int]] = None

    @property
    def is_weight(self) -> bool:
        """Verifica se o produto é vendido por peso."""
        return self.type == ProductType.WEIGHT

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'id': self.id,
            'name': self.name,
            'price': self.price,
            'category': self.category,
            'type': _enum_value(self.type),
        }
        if self.options is not None:
            d['options'] = dict(self.options)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        try:
            product_type = ProductType(data.get('type', 'unit'))
        except ValueError:
            product_type = ProductType.UNIT
        options = data.get('options')
        return cls(
            id=data.get('id'),
            name=data.get('name', ''),
            price=float(data.get('price', 0) or 0),
            category=data.get('category', ''),
            type=product_type,
            options=dict(options) if options is not None else None
        )


@dataclass
class SelectedOptions:
    """
    Escolhas de personalização de um item (categoria -> nomes escolhidos).
    Cada categoria é limitada por Product.options[categoria].
    """
    choices: Dict[str, List[str]] = field(default_factory=dict)

    def get(self, category: str) -> List[str]:
        return list(self.choices.get(category) or [])

    def count(self, category: str) -> int:
        return len(self.choices.get(category) or [])

    def violations(self, limits: Optional[Dict[str, int]]) -> List[str]:
        """
        Lista as categorias que excedem o limite do produto
        (ou que o produto não oferece).
        """
        limits = limits or {}
        problems = []
        for category, selected in self.choices.items():
            if not selected:
                continue
            if category not in limits:
                problems.append(
                    f"Categoria '{category}' não disponível para este produto"
                )
            elif len(selected) > limits[category]:
                problems.append(
                    f"Máximo de {limits[category]} opção(ões) em '{category}' "
                    f"(selecionadas: {len(selected)})"
                )
        return problems

    def same_choices(self, other: Optional['SelectedOptions']) -> bool:
        """Compara escolhas ignorando a ordem (listas vazias == ausentes)."""
        other_choices = other.choices if other else {}
        categories = set(self.choices) | set(other_choices)
        return all(
            sorted(self.choices.get(c) or []) == sorted(other_choices.get(c) or [])
            for c in categories
        )

    def to_dict(self) -> Dict[str, List[str]]:
        return {category: list(names) for category, names in self.choices.items()}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'SelectedOptions':
        return cls({k: list(v or []) for k, v in (data or {}).items()})


# ==============================================================================
# ENTIDADES DE VENDA
# ==============================================================================

@dataclass
class SaleItem:
    """
    Item de linha dentro de um carrinho ou comanda.

    Attributes:
        product: Produto referenciado
        quantity: Quantidade (produtos não vendidos por peso)
        weight: Peso em gramas (produtos vendidos por peso)
        addons: Adicionais, cada um cobrado por unidade do item
        selected_options: Personalização escolhida
        notes: Observações do item
    """
    product: Optional[Product]
    quantity: Optional[int] = None
    weight: Optional[float] = None
    addons: List[Product] = field(default_factory=list)
    selected_options: Optional[SelectedOptions] = None
    notes: str = ''

    @property
    def category(self) -> Optional[str]:
        return self.product.category if self.product else None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'product': self.product.to_dict() if self.product else None,
            'quantity': self.quantity,
            'weight': self.weight,
            'addons': [a.to_dict() for a in self.addons],
        }
        if self.selected_options is not None:
            d['selected_options'] = self.selected_options.to_dict()
        if self.notes:
            d['notes'] = self.notes
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SaleItem':
        product_data = data.get('product')
        options_data = data.get('selected_options')
        return cls(
            product=Product.from_dict(product_data) if product_data else None,
            quantity=data.get('quantity'),
            weight=data.get('weight'),
            addons=[Product.from_dict(a) for a in data.get('addons') or []],
            selected_options=(
                SelectedOptions.from_dict(options_data)
                if options_data is not None else None
            ),
            notes=data.get('notes', '')
        )


@dataclass
class Order:
    """
    Comanda: conta aberta de um cliente que acumula itens até o pagamento.

    Attributes:
        id: Identificador gerado
        customer_name: Nome do cliente (obrigatório)
        items: Itens da comanda
        status: open ou completed
        created_at / updated_at: Datas de criação e última alteração
        payment_method, total, finalizada_em, change: Preenchidos na finalização
    """
    id: str
    customer_name: str
    items: List[SaleItem] = field(default_factory=list)
    status: OrderStatus = OrderStatus.OPEN
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    payment_method: Optional[Any] = None
    total: Optional[float] = None
    finalizada_em: Optional[datetime] = None
    change: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.status == OrderStatus.OPEN

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'customer_name': self.customer_name,
            'items': [item.to_dict() for item in self.items],
            'status': _enum_value(self.status),
            'created_at': format_datetime(self.created_at),
            'updated_at': format_datetime(self.updated_at),
            'payment_method': _enum_value(self.payment_method),
            'total': self.total,
            'finalizada_em': format_datetime(self.finalizada_em),
            'change': self.change,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Order':
        return cls(
            id=data['id'],
            customer_name=data.get('customer_name', ''),
            items=[SaleItem.from_dict(i) for i in data.get('items') or []],
            status=OrderStatus(data.get('status', 'open')),
            created_at=parse_datetime(data.get('created_at')),
            updated_at=parse_datetime(data.get('updated_at')),
            payment_method=parse_payment_method(data.get('payment_method')),
            total=data.get('total'),
            finalizada_em=parse_datetime(data.get('finalizada_em')),
            change=data.get('change')
        )


@dataclass(frozen=True)
class CompletedSale:
    """
    Venda finalizada: registro imutável do livro de vendas.
    Só sai do livro por cancelamento explícito.
    """
    id: str
    customer_name: str
    items: Tuple[SaleItem, ...]
    payment_method: Any
    total: float
    change: float
    finalizada_em: datetime
    created_at: datetime
    updated_at: datetime
    discount: float = 0.0
    notes: str = ''
    status: OrderStatus = OrderStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'customer_name': self.customer_name,
            'items': [item.to_dict() for item in self.items],
            'status': _enum_value(self.status),
            'payment_method': _enum_value(self.payment_method),
            'total': self.total,
            'change': self.change,
            'discount': self.discount,
            'notes': self.notes,
            'finalizada_em': format_datetime(self.finalizada_em),
            'created_at': format_datetime(self.created_at),
            'updated_at': format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CompletedSale':
        finalizada_em = parse_datetime(data.get('finalizada_em'))
        created_at = parse_datetime(data.get('created_at')) or finalizada_em
        return cls(
            id=data['id'],
            customer_name=data.get('customer_name', ''),
            items=tuple(SaleItem.from_dict(i) for i in data.get('items') or []),
            payment_method=parse_payment_method(data.get('payment_method')),
            total=float(data.get('total', 0) or 0),
            change=float(data.get('change', 0) or 0),
            finalizada_em=finalizada_em,
            created_at=created_at,
            updated_at=parse_datetime(data.get('updated_at')) or created_at,
            discount=float(data.get('discount', 0) or 0),
            notes=data.get('notes', '')
        )


# ==============================================================================
# VALORES DERIVADOS (não persistidos)
# ==============================================================================

@dataclass
class CartStatistics:
    """Estatísticas agregadas de um conjunto de itens."""
    unique_items: int = 0
    total_quantity: int = 0
    subtotal: float = 0.0
    total_tax: float = 0.0
    total: float = 0.0
    average_item_value: float = 0.0
    categories: List[str] = field(default_factory=list)
    total_weight: Optional[float] = 0
    most_expensive_item: Optional[SaleItem] = None
    cheapest_item: Optional[SaleItem] = None


@dataclass
class TopProduct:
    """Linha do ranking de produtos por faturamento."""
    name: str
    quantity: int = 0
    revenue: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'quantity': self.quantity, 'revenue': self.revenue}


@dataclass
class SalesReport:
    """
    Relatório de vendas de um período.

    Attributes:
        total_sales: Quantidade de vendas
        total_revenue: Faturamento (soma dos totais)
        average_ticket: Ticket médio
        total_items: Unidades vendidas
        sales_by_payment_method: Faturamento por método de pagamento
        sales_by_category: Unidades por categoria
        sales_by_hour: Faturamento por hora (0-23)
        top_products: Produtos de maior faturamento
    """
    total_sales: int = 0
    total_revenue: float = 0.0
    average_ticket: float = 0.0
    total_items: int = 0
    sales_by_payment_method: Dict[str, float] = field(default_factory=dict)
    sales_by_category: Dict[str, int] = field(default_factory=dict)
    sales_by_hour: Dict[int, float] = field(default_factory=dict)
    top_products: List[TopProduct] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_sales': self.total_sales,
            'total_revenue': self.total_revenue,
            'average_ticket': self.average_ticket,
            'total_items': self.total_items,
            'sales_by_payment_method': dict(self.sales_by_payment_method),
            'sales_by_category': dict(self.sales_by_category),
            'sales_by_hour': {str(h): v for h, v in self.sales_by_hour.items()},
            'top_products': [p.to_dict() for p in self.top_products],
        }
