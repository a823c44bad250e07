# ==============================================================================
# CONTÊINER DE DEPENDÊNCIAS - Injeção de serviços
# ==============================================================================
# Ponto central para obter o armazenamento e os serviços do PDV. Facilita:
#   - Injeção de dependências
#   - Testes (cada teste monta o próprio contêiner, isolado)
#   - Trocar o armazenamento sem tocar nos serviços
#
# Não há instância global: a aplicação cria UM contêiner na inicialização
# e o passa adiante.
# ==============================================================================

import os
from typing import Optional

from pdv_acai import config

# ═══════════════════════════════════════════════════════════════════════════════
# ARMAZENAMENTO
# ═══════════════════════════════════════════════════════════════════════════════
from pdv_acai.repositories import IKeyValueStorage, JsonFileStorage, MemoryStorage

# ═══════════════════════════════════════════════════════════════════════════════
# SERVIÇOS
# ═══════════════════════════════════════════════════════════════════════════════
from pdv_acai.services import (
    CartService,
    CatalogService,
    CheckoutService,
    OrderService,
    SalesService,
    StatsService,
)


class AppContainer:
    """
    Contêiner de dependências da aplicação.

    Cada serviço é criado sob demanda e reaproveitado dentro do contêiner.

    Uso:
        container = AppContainer(data_dir='/var/lib/pdv')
        container.checkout_service.finalize('PIX')
        container.stats_service.report_for_period('daily')
    """

    def __init__(
        self,
        data_dir: str = None,
        storage: Optional[IKeyValueStorage] = None,
        cart_storage: Optional[IKeyValueStorage] = None
    ):
        """
        Inicializa o contêiner.

        Args:
            data_dir: Diretório do arquivo de dados (padrão: config.DATA_DIR)
            storage: Armazenamento durável (padrão: JsonFileStorage em data_dir)
            cart_storage: Armazenamento do carrinho (padrão: memória;
                          FlaskSessionStorage para um carrinho por sessão)
        """
        self._data_dir = data_dir or config.DATA_DIR
        self._storage = storage
        self._cart_storage = cart_storage

        # Inicialização sob demanda
        self._catalog_service: Optional[CatalogService] = None
        self._cart_service: Optional[CartService] = None
        self._order_service: Optional[OrderService] = None
        self._sales_service: Optional[SalesService] = None
        self._stats_service: Optional[StatsService] = None
        self._checkout_service: Optional[CheckoutService] = None

    # =========================================================================
    # ARMAZENAMENTO
    # =========================================================================

    @property
    def storage(self) -> IKeyValueStorage:
        """Armazenamento durável de comandas, vendas e catálogo."""
        if self._storage is None:
            self._storage = JsonFileStorage(
                os.path.join(self._data_dir, config.DATA_FILE_NAME)
            )
        return self._storage

    @property
    def cart_storage(self) -> IKeyValueStorage:
        if self._cart_storage is None:
            self._cart_storage = MemoryStorage()
        return self._cart_storage

    # =========================================================================
    # SERVIÇOS
    # =========================================================================

    @property
    def catalog_service(self) -> CatalogService:
        if self._catalog_service is None:
            self._catalog_service = CatalogService(storage=self.storage)
        return self._catalog_service

    @property
    def cart_service(self) -> CartService:
        if self._cart_service is None:
            self._cart_service = CartService(storage=self.cart_storage)
        return self._cart_service

    @property
    def order_service(self) -> OrderService:
        if self._order_service is None:
            self._order_service = OrderService(storage=self.storage)
        return self._order_service

    @property
    def sales_service(self) -> SalesService:
        if self._sales_service is None:
            self._sales_service = SalesService(storage=self.storage)
        return self._sales_service

    @property
    def stats_service(self) -> StatsService:
        """Relatórios sobre o livro do sales_service."""
        if self._stats_service is None:
            sales_service = self.sales_service
            self._stats_service = StatsService(
                sales_loader=lambda: sales_service.completed_sales
            )
        return self._stats_service

    @property
    def checkout_service(self) -> CheckoutService:
        if self._checkout_service is None:
            self._checkout_service = CheckoutService(
                self.cart_service,
                self.order_service,
                self.sales_service,
                self.catalog_service
            )
        return self._checkout_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Descarta os serviços criados (o próximo acesso recarrega do armazenamento).
        """
        self._catalog_service = None
        self._cart_service = None
        self._order_service = None
        self._sales_service = None
        self._stats_service = None
        self._checkout_service = None
