# ==============================================================================
# VALIDAÇÃO E ESTATÍSTICAS DE CARRINHO
# ==============================================================================
# Funções puras sobre listas de SaleItem: validação de item, estatísticas,
# filtro, ordenação, agrupamento e equivalência.
# Não conhecem armazenamento nem sessão.
# ==============================================================================

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from pdv_acai import config
from pdv_acai.models.entities import (
    CartStatistics,
    ErrorType,
    ItemValidation,
    PdvError,
    ProductType,
    SaleItem,
)
from pdv_acai.services.pricing import item_total


# Validador customizado: recebe o item e retorna um erro ou None
CustomValidator = Callable[[SaleItem], Optional[PdvError]]

UNCATEGORIZED = 'Sem categoria'


@dataclass
class CartValidationConfig:
    """
    Opções de validação de itens.

    Attributes:
        require_weight_for_weight_products: Exige peso em produtos por peso
        minimum_weight / maximum_weight: Limites de peso em gramas
        minimum_quantity / maximum_quantity: Limites de quantidade
        prevent_duplicates: Rejeita item equivalente a um já existente
        custom_validators: Validadores adicionais
    """
    require_weight_for_weight_products: bool = True
    minimum_weight: float = config.MIN_WEIGHT
    maximum_weight: float = config.MAX_WEIGHT
    minimum_quantity: int = config.MIN_QUANTITY
    maximum_quantity: int = config.MAX_QUANTITY
    prevent_duplicates: bool = False
    custom_validators: List[CustomValidator] = field(default_factory=list)


def create_error(
    error_type: ErrorType,
    message: str = '',
    details: Dict[str, Any] = None
) -> PdvError:
    """Cria um erro padronizado (mensagem padrão do tipo se vazia)."""
    return PdvError(error_type, message, details or {})


def has_product_id(item: Optional[SaleItem]) -> bool:
    return (
        item is not None
        and item.product is not None
        and item.product.id not in (None, '')
    )


# ==============================================================================
# VALIDAÇÃO
# ==============================================================================

def validate_item(
    item: SaleItem,
    validation_config: Optional[CartValidationConfig] = None
) -> ItemValidation:
    """
    Valida um item individual.

    Regras, acumuladas em ordem:
        1. Produto sem id -> INVALID_PRODUCT
        2. Produto por peso sem peso positivo -> WEIGHT_REQUIRED;
           fora dos limites -> VALIDATION_ERROR
        3. Quantidade informada fora dos limites -> INVALID_QUANTITY
        4. Opções acima do permitido pelo produto -> VALIDATION_ERROR
        5. Validadores customizados
    Preço zero gera apenas um aviso.
    """
    cfg = validation_config or CartValidationConfig()
    errors: List[PdvError] = []
    warnings: List[str] = []
    product = item.product
    product_id = product.id if product else None

    if not has_product_id(item):
        errors.append(create_error(
            ErrorType.INVALID_PRODUCT, "Item deve ter um produto válido"
        ))

    if (cfg.require_weight_for_weight_products
            and product is not None and product.type == ProductType.WEIGHT):
        if not item.weight or item.weight <= 0:
            errors.append(create_error(
                ErrorType.WEIGHT_REQUIRED,
                "Peso é obrigatório para produtos vendidos por peso",
                {'product_id': product_id, 'current_value': item.weight,
                 'expected_value': '> 0'}
            ))
        else:
            min_weight = cfg.minimum_weight or config.MIN_WEIGHT
            max_weight = cfg.maximum_weight or config.MAX_WEIGHT
            if item.weight < min_weight:
                errors.append(create_error(
                    ErrorType.VALIDATION_ERROR,
                    f"Peso mínimo é {min_weight}g",
                    {'product_id': product_id, 'current_value': item.weight,
                     'expected_value': f'>= {min_weight}'}
                ))
            if item.weight > max_weight:
                errors.append(create_error(
                    ErrorType.VALIDATION_ERROR,
                    f"Peso máximo é {max_weight}g",
                    {'product_id': product_id, 'current_value': item.weight,
                     'expected_value': f'<= {max_weight}'}
                ))

    if item.quantity is not None:
        min_quantity = cfg.minimum_quantity or config.MIN_QUANTITY
        max_quantity = cfg.maximum_quantity or config.MAX_QUANTITY
        if item.quantity < min_quantity:
            errors.append(create_error(
                ErrorType.INVALID_QUANTITY,
                f"Quantidade mínima é {min_quantity}",
                {'product_id': product_id, 'current_value': item.quantity,
                 'expected_value': f'>= {min_quantity}'}
            ))
        if item.quantity > max_quantity:
            errors.append(create_error(
                ErrorType.INVALID_QUANTITY,
                f"Quantidade máxima é {max_quantity}",
                {'product_id': product_id, 'current_value': item.quantity,
                 'expected_value': f'<= {max_quantity}'}
            ))

    if item.selected_options is not None and product is not None:
        for problem in item.selected_options.violations(product.options):
            errors.append(create_error(
                ErrorType.VALIDATION_ERROR, problem, {'product_id': product_id}
            ))

    for validator in cfg.custom_validators:
        custom_error = validator(item)
        if custom_error:
            errors.append(custom_error)

    if product is not None and product.price == 0:
        warnings.append("Produto com preço zero")

    return ItemValidation(is_valid=not errors, errors=errors, warnings=warnings)


# ==============================================================================
# ESTATÍSTICAS
# ==============================================================================

def cart_statistics(
    items: Sequence[SaleItem],
    tax_rate: float = config.DEFAULT_TAX_RATE
) -> CartStatistics:
    """
    Calcula estatísticas de um conjunto de itens.

    Carrinho vazio retorna a identidade (tudo zero, sem mais caro/mais barato).
    Em carrinho não vazio, total_weight é None quando nenhum item tem peso.
    """
    if not items:
        return CartStatistics()

    totals = [(item, item_total(item)) for item in items]
    subtotal = sum(total for _, total in totals)
    total_tax = subtotal * tax_rate
    total_weight = sum(item.weight or 0 for item in items)

    # sorted() é estável: empates mantêm a ordem do carrinho
    by_price = sorted(totals, key=lambda pair: pair[1])

    categories: List[str] = []
    for item in items:
        category = item.category
        if category and category not in categories:
            categories.append(category)

    return CartStatistics(
        unique_items=len(items),
        total_quantity=sum(item.quantity or 1 for item in items),
        subtotal=subtotal,
        total_tax=total_tax,
        total=subtotal + total_tax,
        average_item_value=subtotal / len(items),
        categories=categories,
        total_weight=total_weight if total_weight > 0 else None,
        most_expensive_item=by_price[-1][0],
        cheapest_item=by_price[0][0],
    )


# ==============================================================================
# FILTRO, ORDENAÇÃO E AGRUPAMENTO
# ==============================================================================

def _outside(value: float, value_range: Optional[Dict[str, float]]) -> bool:
    if not value_range:
        return False
    minimum = value_range.get('min')
    maximum = value_range.get('max')
    if minimum and value < minimum:
        return True
    if maximum and value > maximum:
        return True
    return False


def filter_items(
    items: Sequence[SaleItem],
    category: Optional[str] = None,
    product_type: Optional[ProductType] = None,
    price_range: Optional[Dict[str, float]] = None,
    weight_range: Optional[Dict[str, float]] = None,
    quantity_range: Optional[Dict[str, float]] = None,
    predicate: Optional[Callable[[SaleItem], bool]] = None
) -> List[SaleItem]:
    """
    Filtra itens por critérios combinados.
    Faixas são dicts {'min': x, 'max': y}; limites ausentes não filtram.
    Faixas de peso/quantidade só se aplicam a itens que têm o valor.
    """
    result = []
    for item in items:
        if category and item.category != category:
            continue
        if product_type and (item.product is None or item.product.type != product_type):
            continue
        if price_range and _outside(item_total(item), price_range):
            continue
        if item.weight and _outside(item.weight, weight_range):
            continue
        if item.quantity and _outside(item.quantity, quantity_range):
            continue
        if predicate and not predicate(item):
            continue
        result.append(item)
    return result


_SORT_KEYS: Dict[str, Callable[[SaleItem], Any]] = {
    'name': lambda i: (i.product.name if i.product else '').casefold(),
    'price': lambda i: i.product.price if i.product else 0,
    'category': lambda i: (i.category or '').casefold(),
    'quantity': lambda i: i.quantity or 0,
    'weight': lambda i: i.weight or 0,
    'total': item_total,
}


def sort_items(
    items: Sequence[SaleItem],
    field_name: str,
    direction: str = 'asc'
) -> List[SaleItem]:
    """
    Retorna uma nova lista ordenada por name, price, category, quantity,
    weight ou total. Campo desconhecido mantém a ordem original.
    """
    key = _SORT_KEYS.get(field_name)
    if key is None:
        return list(items)
    return sorted(items, key=key, reverse=(direction == 'desc'))


def group_by_category(items: Sequence[SaleItem]) -> Dict[str, List[SaleItem]]:
    groups: Dict[str, List[SaleItem]] = {}
    for item in items:
        groups.setdefault(item.category or UNCATEGORIZED, []).append(item)
    return groups


def items_equivalent(item_a: SaleItem, item_b: SaleItem) -> bool:
    """Mesmo produto, mesmos adicionais (por id) e mesmas opções escolhidas."""
    id_a = item_a.product.id if item_a.product else None
    id_b = item_b.product.id if item_b.product else None
    if id_a != id_b:
        return False

    addons_a = sorted(str(a.id) for a in item_a.addons)
    addons_b = sorted(str(a.id) for a in item_b.addons)
    if addons_a != addons_b:
        return False

    options_a = item_a.selected_options
    options_b = item_b.selected_options
    if options_a is None and options_b is None:
        return True
    if options_a is None or options_b is None:
        return False
    return options_a.same_choices(options_b)
