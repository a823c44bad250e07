# ==============================================================================
# CAMADA DE SERVIÇOS - Lógica de negócio
# ==============================================================================
# Esta camada contém TODA a lógica de negócio do PDV.
#
# PRINCÍPIOS:
# 1. Os serviços orquestram operações sobre o armazenamento
# 2. Aplicam regras de negócio e validações
# 3. Falhas de negócio retornam OperationResult, nunca exceções
# 4. Os serviços NÃO conhecem o tipo de armazenamento (memória/JSON/sessão)
#
# ESTRUTURA:
# ├── pricing.py          → Preço de item e total de coleção (implementação única)
# ├── cart_validation.py  → Validação de item, estatísticas, filtro/ordenação
# ├── cart_service.py     → Carrinho do caixa
# ├── order_service.py    → Comandas
# ├── sales_service.py    → Finalização e livro de vendas
# ├── stats_service.py    → Relatórios de vendas
# ├── checkout_service.py → Fluxo carrinho/comanda/venda
# └── catalog_service.py  → Consulta ao catálogo
# ==============================================================================

from pdv_acai.services.pricing import item_total, collection_total
from pdv_acai.services.cart_validation import (
    CartValidationConfig,
    validate_item,
    cart_statistics,
)
from pdv_acai.services.cart_service import CartService
from pdv_acai.services.order_service import OrderService, validate_order
from pdv_acai.services.sales_service import (
    SalesService,
    validate_adjusted_total,
    validate_cash_amount,
    calculate_change,
)
from pdv_acai.services.stats_service import StatsService, build_report, get_date_range
from pdv_acai.services.checkout_service import CheckoutService
from pdv_acai.services.catalog_service import CatalogService, PRODUCT_CATEGORIES

__all__ = [
    'item_total',
    'collection_total',
    'CartValidationConfig',
    'validate_item',
    'cart_statistics',
    'CartService',
    'OrderService',
    'validate_order',
    'SalesService',
    'validate_adjusted_total',
    'validate_cash_amount',
    'calculate_change',
    'StatsService',
    'build_report',
    'get_date_range',
    'CheckoutService',
    'CatalogService',
    'PRODUCT_CATEGORIES',
]
