# ==============================================================================
# SERVIÇO DE CHECKOUT
# ==============================================================================
# Orquestra carrinho, comandas e vendas no fluxo do caixa:
#
#   produto -> carrinho ─┬─> nova comanda / comanda existente
#                        └─> finalizar (venda direta)
#   comanda aberta ────────> finalizar (venda da comanda)
#
# A finalização só limpa o carrinho ou remove a comanda DEPOIS que a venda
# foi registrada; em caso de falha nada muda.
# ==============================================================================

import logging
from typing import Any, Optional, Sequence

from pdv_acai import config
from pdv_acai.models.entities import ErrorType, OperationResult, Product
from pdv_acai.services.cart_service import CartService, first_validation_error, make_sale_item
from pdv_acai.services.catalog_service import CatalogService
from pdv_acai.services.order_service import OrderService
from pdv_acai.services.pricing import collection_total
from pdv_acai.services.sales_service import SalesService, validate_adjusted_total

logger = logging.getLogger(__name__)


class CheckoutService:
    """
    Fluxo de atendimento do caixa.

    Responsabilidades:
    - Lançar produtos no carrinho ou direto em uma comanda aberta
    - Transformar o carrinho em comanda (nova ou existente)
    - Finalizar vendas diretas e de comandas, com ajuste de total opcional
    """

    def __init__(
        self,
        cart_service: CartService,
        order_service: OrderService,
        sales_service: SalesService,
        catalog_service: Optional[CatalogService] = None
    ):
        self.cart_service = cart_service
        self.order_service = order_service
        self.sales_service = sales_service
        self.catalog_service = catalog_service

    # =========================================================================
    # LANÇAMENTO DE PRODUTOS
    # =========================================================================

    def add_product(
        self,
        product: Product,
        order_id: Optional[str] = None,
        quantity: Optional[int] = 1,
        weight: Optional[float] = None,
        addons: Optional[Sequence[Product]] = None,
        selected_options: Any = None,
        notes: Optional[str] = None
    ) -> OperationResult:
        """
        Lança um produto no carrinho, ou na comanda aberta order_id.
        As regras de entrada são as mesmas nos dois destinos.
        """
        if order_id is None:
            return self.cart_service.add_item(
                product, quantity, weight, addons, selected_options, notes
            )

        item, error = make_sale_item(product, quantity, weight, addons, selected_options, notes)
        if error is None and self.cart_service.validate_items:
            error = first_validation_error(item, self.cart_service.validation_config)
        if error:
            return OperationResult.from_error(error)

        return self.order_service.add_items(order_id, [item])

    def add_product_by_id(self, product_id: Any, order_id: Optional[str] = None, **options: Any) -> OperationResult:
        """Como add_product, buscando o produto no catálogo."""
        product = self.catalog_service.get_product(product_id) if self.catalog_service else None
        if product is None:
            return OperationResult.failure(
                ErrorType.INVALID_PRODUCT,
                "Produto não encontrado",
                {'product_id': product_id}
            )
        return self.add_product(product, order_id, **options)

    # =========================================================================
    # COMANDAS
    # =========================================================================

    def open_order_from_cart(self, customer_name: str) -> OperationResult:
        """Cria uma comanda aberta com os itens do carrinho e esvazia o carrinho."""
        result = self.order_service.add_order(customer_name, self.cart_service.items)
        if result.ok:
            self.cart_service.clear_cart()
        return result

    def add_cart_to_order(self, order_id: str) -> OperationResult:
        """Acrescenta os itens do carrinho a uma comanda aberta e esvazia o carrinho."""
        result = self.order_service.add_items(order_id, self.cart_service.items)
        if result.ok:
            self.cart_service.clear_cart()
        return result

    def order_total(self, order_id: str) -> Optional[float]:
        order = self.order_service.get_order(order_id)
        return collection_total(order.items) if order else None

    # =========================================================================
    # FINALIZAÇÃO
    # =========================================================================

    def finalize(
        self,
        payment_method: Any,
        order_id: Optional[str] = None,
        cash_amount: Optional[float] = None,
        adjusted_total: Optional[float] = None,
        notes: Optional[str] = None
    ) -> OperationResult:
        """
        Finaliza a venda da comanda order_id, ou do carrinho (venda direta).

        Args:
            payment_method: Método de pagamento
            order_id: Comanda a finalizar (None = carrinho)
            cash_amount: Dinheiro recebido (pagamento em CASH)
            adjusted_total: Total ajustado pelo operador (até ±10%),
                            convertido em desconto
            notes: Observações da venda

        Returns:
            OperationResult da finalização (CompletedSale em data)
        """
        # venda só é registrada se a origem puder ser baixada
        source_enabled = self.order_service.enabled if order_id is not None else self.cart_service.enabled
        if not source_enabled:
            return OperationResult.failure(
                ErrorType.OPERATION_NOT_ALLOWED,
                "Comandas desabilitadas" if order_id is not None else "Carrinho desabilitado"
            )

        if order_id is not None:
            order = self.order_service.get_order(order_id)
            if order is None:
                return OperationResult.failure(ErrorType.ORDER_NOT_FOUND, details={'order_id': order_id})
            if not order.is_open:
                return OperationResult.failure(
                    ErrorType.OPERATION_NOT_ALLOWED, "Comanda já finalizada", {'order_id': order_id}
                )
            customer_name = order.customer_name
            items = order.items
            created_at = order.created_at
        else:
            customer_name = config.DEFAULT_CUSTOMER_NAME
            items = self.cart_service.items
            created_at = None

        discount = None
        if adjusted_total is not None:
            original_total = collection_total(items)
            error = validate_adjusted_total(original_total, adjusted_total)
            if error:
                return OperationResult.from_error(error)
            discount = original_total - adjusted_total

        result = self.sales_service.complete_sale(
            customer_name,
            items,
            payment_method,
            cash_amount=cash_amount,
            discount=discount,
            notes=notes,
            created_at=created_at
        )
        if not result.ok:
            return result

        if order_id is not None:
            cleanup = self.order_service.remove_order(order_id)
        else:
            cleanup = self.cart_service.clear_cart()
        if not cleanup.ok:
            logger.error(
                "Venda %s registrada, mas a origem não foi baixada: %s",
                result.data.id, cleanup.error.message
            )

        logger.info("Atendimento encerrado para %s", customer_name)
        return result
