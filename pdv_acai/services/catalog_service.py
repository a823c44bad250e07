# ==============================================================================
# SERVIÇO DE CATÁLOGO
# ==============================================================================
# Consulta somente-leitura de produtos por id e por categoria.
# O catálogo é dado de referência: o caixa nunca o altera.
# ==============================================================================

import logging
from typing import Any, Dict, Iterable, List, Optional

from pdv_acai import config
from pdv_acai.models.entities import ErrorType, PdvError, Product, ProductType
from pdv_acai.repositories.interfaces import IKeyValueStorage

logger = logging.getLogger(__name__)


# Categorias exibidas no caixa, na ordem de exibição
PRODUCT_CATEGORIES = (
    'Sorvetes',
    'Milkshakes',
    'Milkshakes Premium',
    'Açaí',
    'Monte do Seu Jeito',
    'Bebidas',
    'Salgados',
    'Sobremesas',
    'Embarcados',
    'Outros',
)


class CatalogService:
    """
    Serviço de consulta ao catálogo de produtos.

    Os produtos vêm de uma lista passada no construtor ou, na falta dela,
    da chave 'products' de um armazenamento.
    """

    def __init__(
        self,
        products: Optional[Iterable[Product]] = None,
        storage: Optional[IKeyValueStorage] = None,
        storage_key: str = config.PRODUCTS_STORAGE_KEY
    ):
        self.storage = storage
        self.storage_key = storage_key
        self.error: Optional[PdvError] = None
        self._products: Dict[str, Product] = {}

        if products is not None:
            self._index(products)
        else:
            self.reload()

    def _index(self, products: Iterable[Product]) -> None:
        self._products = {str(p.id): p for p in products}

    def reload(self) -> None:
        """Recarrega os produtos do armazenamento (se houver)."""
        if self.storage is None:
            return
        try:
            raw = self.storage.get(self.storage_key) or []
            self._index(Product.from_dict(data) for data in raw)
            self.error = None
        except Exception as exc:
            logger.error("Erro ao carregar catálogo (%s): %s", self.storage_key, exc)
            self._products = {}
            self.error = PdvError(
                ErrorType.STORAGE_ERROR,
                "Erro ao carregar produtos do storage",
                {'reason': str(exc)}
            )

    @property
    def products(self) -> List[Product]:
        return list(self._products.values())

    def get_product(self, product_id: Any) -> Optional[Product]:
        """Busca por id (aceita int ou str)."""
        return self._products.get(str(product_id))

    def get_products_by_category(self, category: str) -> List[Product]:
        return [p for p in self._products.values() if p.category == category]

    @property
    def categories(self) -> List[str]:
        """Categorias conhecidas que têm produtos, na ordem de exibição."""
        present = {p.category for p in self._products.values()}
        return [c for c in PRODUCT_CATEGORIES if c in present]

    @property
    def addons(self) -> List[Product]:
        """Produtos cobrados como adicionais."""
        return [p for p in self._products.values() if p.type == ProductType.ADDON]
