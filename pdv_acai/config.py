# ==============================================================================
# CONFIGURAÇÃO DO PDV
# ==============================================================================
# Constantes de negócio e caminhos do sistema.
# Valores sensíveis ao ambiente podem ser sobrescritos por variáveis de ambiente.
# ==============================================================================

import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'sim', 'on')


# ═══════════════════════════════════════════════════════════════════════════
# CAMINHOS
# ═══════════════════════════════════════════════════════════════════════════
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Export: PDV_DATA_DIR="/var/lib/pdv"
DATA_DIR = os.environ.get('PDV_DATA_DIR', os.path.join(BASE_DIR, 'data'))
DATA_FILE_NAME = 'pdv_data.json'

LOGS_DIR = os.environ.get('PDV_LOGS_DIR', os.path.join(BASE_DIR, 'logs'))

# ═══════════════════════════════════════════════════════════════════════════
# PROFILING
# ═══════════════════════════════════════════════════════════════════════════
ENABLE_PROFILING = _env_bool('PDV_ENABLE_PROFILING', True)

# Limites de tempo (em milissegundos)
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

# ═══════════════════════════════════════════════════════════════════════════
# CARRINHO
# ═══════════════════════════════════════════════════════════════════════════
MIN_WEIGHT = 1          # gramas
MAX_WEIGHT = 10000      # gramas
MIN_QUANTITY = 1
MAX_QUANTITY = 999
MIN_CART_VALUE = 0.01
DEFAULT_MAX_ITEMS = 50
DEFAULT_TAX_RATE = 0.0

# ═══════════════════════════════════════════════════════════════════════════
# VENDAS E RELATÓRIOS
# ═══════════════════════════════════════════════════════════════════════════
# Ajuste máximo do total no momento do pagamento (10% para mais ou para menos)
MAX_ADJUSTMENT_RATIO = 0.10

DEFAULT_TOP_PRODUCTS = 10
DEFAULT_CUSTOMER_NAME = 'Venda Direta'
OTHER_PAYMENT_METHOD = 'other'

# ═══════════════════════════════════════════════════════════════════════════
# CHAVES DE ARMAZENAMENTO
# ═══════════════════════════════════════════════════════════════════════════
CART_STORAGE_KEY = 'cart-items'
ORDERS_STORAGE_KEY = 'orders'
SALES_STORAGE_KEY = 'sales-storage'
PRODUCTS_STORAGE_KEY = 'products'
