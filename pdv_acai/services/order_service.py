# ==============================================================================
# SERVIÇO DE COMANDAS
# ==============================================================================
# Gerencia as comandas (contas abertas por cliente) até o pagamento.
# Cada mutação regrava a coleção inteira no armazenamento.
# ==============================================================================

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pdv_acai import config
from pdv_acai.models.entities import (
    ErrorType,
    OperationResult,
    Order,
    OrderStatus,
    PdvError,
    SaleItem,
    parse_payment_method,
)
from pdv_acai.repositories.interfaces import IKeyValueStorage
from pdv_acai.services.pricing import collection_total

logger = logging.getLogger(__name__)

VALID_STATUSES = frozenset(status.value for status in OrderStatus)

# Campos que update_order aceita
UPDATABLE_FIELDS = frozenset([
    'customer_name', 'items', 'status', 'payment_method',
    'total', 'finalizada_em', 'change',
])


def validate_order(data: Dict[str, Any], partial: bool = False) -> Optional[PdvError]:
    """
    Valida os dados de uma comanda.

    Args:
        data: Campos da comanda (customer_name, items, status)
        partial: Valida apenas os campos presentes (atualização parcial)

    Returns:
        O primeiro erro encontrado, ou None
    """
    if not partial or 'customer_name' in data:
        name = data.get('customer_name')
        if not isinstance(name, str) or not name.strip():
            return PdvError(ErrorType.CUSTOMER_NAME_REQUIRED, "Nome do cliente é obrigatório")

    return validate_order_shape(data, partial)


def validate_order_shape(data: Dict[str, Any], partial: bool = False) -> Optional[PdvError]:
    """
    Tipos mínimos para montar a comanda (items em lista, status conhecido).
    Vale mesmo com a validação de negócio desligada.
    """
    if not partial or 'items' in data:
        if not isinstance(data.get('items'), (list, tuple)):
            return PdvError(ErrorType.VALIDATION_ERROR, "Items do pedido devem ser um array")

    if not partial or 'status' in data:
        status = data.get('status')
        if isinstance(status, OrderStatus):
            status = status.value
        if status not in VALID_STATUSES:
            return PdvError(
                ErrorType.VALIDATION_ERROR,
                "Status do pedido deve ser 'open' ou 'completed'"
            )

    return None


def order_total(order: Order) -> float:
    """Total armazenado (se não zero) ou o calculado sobre os itens."""
    return order.total or collection_total(order.items)


class OrderService:
    """
    Serviço de gestão de comandas.

    Responsabilidades:
    - Criar, atualizar e remover comandas (com validação opcional)
    - Manipular os itens de uma comanda aberta
    - Persistir a coleção e restaurar as datas ao carregar
    """

    def __init__(
        self,
        storage: Optional[IKeyValueStorage] = None,
        storage_key: str = config.ORDERS_STORAGE_KEY,
        enabled: bool = True,
        validate_orders: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None
    ):
        """
        Args:
            storage: Armazenamento chave/valor (None = só memória)
            storage_key: Chave da coleção no armazenamento
            enabled: Serviço desabilitado rejeita todas as mutações
            validate_orders: Aplica validate_order em add/update
            clock: Fonte de "agora" (injetável em testes)
            id_factory: Gerador de ids únicos
        """
        self.storage = storage
        self.storage_key = storage_key
        self.enabled = enabled
        self.validate_orders = validate_orders
        self.clock = clock or datetime.now
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

        self._orders: List[Order] = []
        self.error: Optional[PdvError] = None
        self.error_history: List[PdvError] = []

        self.reload()

    # =========================================================================
    # PERSISTÊNCIA E ERROS
    # =========================================================================

    def reload(self) -> OperationResult:
        """
        Carrega a coleção do armazenamento.
        Conteúdo malformado deixa a coleção vazia e registra o erro.
        """
        if self.storage is None:
            return OperationResult.success(self.orders)

        try:
            raw = self.storage.get(self.storage_key)
            if raw is not None and not isinstance(raw, list):
                raise ValueError(f"esperada uma lista, obtido {type(raw).__name__}")
            self._orders = [Order.from_dict(data) for data in raw or []]
        except Exception as exc:
            logger.error("Erro ao carregar pedidos do storage (%s): %s", self.storage_key, exc)
            self._orders = []
            return OperationResult.from_error(self._record_error(PdvError(
                ErrorType.STORAGE_ERROR,
                "Erro ao carregar pedidos do storage",
                {'reason': str(exc)}
            )))
        return OperationResult.success(self.orders)

    def _persist(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.set(self.storage_key, [order.to_dict() for order in self._orders])
        except Exception as exc:
            logger.warning("Erro ao salvar pedidos no storage (%s): %s", self.storage_key, exc)
            self._record_error(PdvError(
                ErrorType.STORAGE_ERROR,
                "Erro ao salvar pedidos no storage",
                {'reason': str(exc)}
            ))

    def _record_error(self, error: PdvError) -> PdvError:
        self.error = error
        self.error_history.append(error)
        return error

    def _reject(self, error: PdvError) -> OperationResult:
        return OperationResult.from_error(self._record_error(error))

    def _commit(self, data: Any = None, message: str = '') -> OperationResult:
        self.error = None
        self._persist()
        return OperationResult.success(data, message)

    def _check_enabled(self) -> Optional[PdvError]:
        if not self.enabled:
            return PdvError(ErrorType.OPERATION_NOT_ALLOWED, "Comandas desabilitadas")
        return None

    def clear_error(self) -> None:
        self.error = None

    # =========================================================================
    # VALORES DERIVADOS
    # =========================================================================

    @property
    def orders(self) -> List[Order]:
        return list(self._orders)

    @property
    def open_orders(self) -> List[Order]:
        return [order for order in self._orders if order.is_open]

    @property
    def order_count(self) -> int:
        return len(self._orders)

    @property
    def total_value(self) -> float:
        return sum(order_total(order) for order in self._orders)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def _index_of(self, order_id: str) -> int:
        for index, order in enumerate(self._orders):
            if order.id == order_id:
                return index
        return -1

    def get_order(self, order_id: str) -> Optional[Order]:
        """Busca uma comanda por id (None se não existir)."""
        index = self._index_of(order_id)
        return self._orders[index] if index != -1 else None

    # =========================================================================
    # MUTAÇÕES
    # =========================================================================

    def add_order(
        self,
        customer_name: str,
        items: Optional[Iterable[SaleItem]] = None,
        status: Any = OrderStatus.OPEN
    ) -> OperationResult:
        """
        Cria uma nova comanda com id e datas gerados.

        Returns:
            OperationResult com a comanda criada em data
        """
        error = self._check_enabled()
        if error:
            return self._reject(error)

        if items is None:
            items = []
        data = {'customer_name': customer_name, 'items': items, 'status': status}
        if self.validate_orders:
            error = validate_order(data)
        else:
            error = validate_order_shape(data)
        if error:
            return self._reject(error)

        now = self.clock()
        order = Order(
            id=self.id_factory(),
            customer_name=customer_name,
            items=list(items),
            status=OrderStatus(status),
            created_at=now,
            updated_at=now
        )
        self._orders.append(order)
        return self._commit(order, "Comanda criada")

    def update_order(self, order_id: str, **updates: Any) -> OperationResult:
        """
        Atualização parcial: valida apenas os campos informados e
        renova updated_at. Id desconhecido não altera nada.
        """
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"Campos não atualizáveis: {', '.join(sorted(unknown))}")

        error = self._check_enabled()
        if error:
            return self._reject(error)

        if self.validate_orders:
            error = validate_order(updates, partial=True)
        else:
            error = validate_order_shape(updates, partial=True)
        if error:
            return self._reject(error)

        index = self._index_of(order_id)
        if index == -1:
            return self._reject(PdvError(ErrorType.ORDER_NOT_FOUND, details={'order_id': order_id}))

        changes = dict(updates)
        if 'status' in changes:
            changes['status'] = OrderStatus(changes['status'])
        if 'items' in changes:
            changes['items'] = list(changes['items'])
        if 'payment_method' in changes:
            changes['payment_method'] = parse_payment_method(changes['payment_method'])

        updated = replace(self._orders[index], updated_at=self.clock(), **changes)
        self._orders[index] = updated
        return self._commit(updated, "Comanda atualizada")

    def remove_order(self, order_id: str) -> OperationResult:
        """Remove uma comanda por id (ausente = nada muda)."""
        error = self._check_enabled()
        if error:
            return self._reject(error)

        index = self._index_of(order_id)
        if index == -1:
            return self._reject(PdvError(ErrorType.ORDER_NOT_FOUND, details={'order_id': order_id}))

        removed = self._orders.pop(index)
        return self._commit(removed, "Comanda removida")

    def clear_orders(self) -> OperationResult:
        error = self._check_enabled()
        if error:
            return self._reject(error)

        self._orders = []
        return self._commit([], "Comandas removidas")

    # =========================================================================
    # ITENS DE UMA COMANDA ABERTA
    # =========================================================================

    def _open_order_index(self, order_id: str) -> Tuple[int, Optional[PdvError]]:
        error = self._check_enabled()
        if error:
            return -1, error
        index = self._index_of(order_id)
        if index == -1:
            return -1, PdvError(ErrorType.ORDER_NOT_FOUND, details={'order_id': order_id})
        if not self._orders[index].is_open:
            return -1, PdvError(
                ErrorType.OPERATION_NOT_ALLOWED,
                "Comanda já finalizada",
                {'order_id': order_id}
            )
        return index, None

    def _replace_items(self, index: int, items: List[SaleItem], message: str) -> OperationResult:
        updated = replace(self._orders[index], items=items, updated_at=self.clock())
        self._orders[index] = updated
        return self._commit(updated, message)

    def add_items(self, order_id: str, items: Iterable[SaleItem]) -> OperationResult:
        """Acrescenta itens ao final de uma comanda aberta."""
        index, error = self._open_order_index(order_id)
        if error:
            return self._reject(error)

        items = list(items or [])
        if not items:
            return self._reject(PdvError(ErrorType.ITEMS_REQUIRED))

        return self._replace_items(
            index, self._orders[index].items + items, "Itens adicionados à comanda"
        )

    def update_order_item(self, order_id: str, item_index: int, item: SaleItem) -> OperationResult:
        """Substitui o item de uma posição de uma comanda aberta."""
        index, error = self._open_order_index(order_id)
        if error:
            return self._reject(error)

        items = list(self._orders[index].items)
        if not 0 <= item_index < len(items):
            return self._reject(PdvError(
                ErrorType.ITEM_NOT_FOUND, details={'order_id': order_id, 'index': item_index}
            ))

        items[item_index] = item
        return self._replace_items(index, items, "Item da comanda atualizado")

    def remove_order_item(self, order_id: str, item_index: int) -> OperationResult:
        """Remove o item de uma posição de uma comanda aberta."""
        index, error = self._open_order_index(order_id)
        if error:
            return self._reject(error)

        items = list(self._orders[index].items)
        if not 0 <= item_index < len(items):
            return self._reject(PdvError(
                ErrorType.ITEM_NOT_FOUND, details={'order_id': order_id, 'index': item_index}
            ))

        del items[item_index]
        return self._replace_items(index, items, "Item removido da comanda")
