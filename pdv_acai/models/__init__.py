# ==============================================================================
# CAMADA DE MODELOS - Estruturas de dados do PDV
# ==============================================================================
# Este módulo define todas as entidades do domínio usando dataclasses.
# Benefícios:
#   - Type hints para documentação e autocompletar
#   - Serialização simples para JSON (to_dict / from_dict)
#   - Independente do mecanismo de persistência
# ==============================================================================

from .entities import (
    # Enumerações
    ProductType,
    PaymentMethod,
    OrderStatus,
    ErrorType,
    ERROR_MESSAGES,

    # Erros e resultados
    PdvError,
    OperationResult,
    ItemValidation,

    # Catálogo
    Product,
    SelectedOptions,

    # Vendas
    SaleItem,
    Order,
    CompletedSale,

    # Valores derivados
    CartStatistics,
    TopProduct,
    SalesReport,

    # Serialização
    parse_datetime,
    format_datetime,
    parse_payment_method,
)

__all__ = [
    'ProductType',
    'PaymentMethod',
    'OrderStatus',
    'ErrorType',
    'ERROR_MESSAGES',

    'PdvError',
    'OperationResult',
    'ItemValidation',

    'Product',
    'SelectedOptions',

    'SaleItem',
    'Order',
    'CompletedSale',

    'CartStatistics',
    'TopProduct',
    'SalesReport',

    'parse_datetime',
    'format_datetime',
    'parse_payment_method',
]
