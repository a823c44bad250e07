# ==============================================================================
# SERVIÇO DE VENDAS
# ==============================================================================
# Finaliza vendas e mantém o livro de vendas concluídas.
# A finalização é atômica: ou o registro completo entra no livro, ou nada
# muda e o chamador recebe uma falha tipada.
# ==============================================================================

import copy
import logging
import threading
import uuid
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from pdv_acai import config
from pdv_acai.models.entities import (
    CompletedSale,
    ErrorType,
    OperationResult,
    PaymentMethod,
    PdvError,
    SaleItem,
    parse_payment_method,
)
from pdv_acai.performance_logger import profile_function
from pdv_acai.repositories.interfaces import IKeyValueStorage
from pdv_acai.services.pricing import collection_total

logger = logging.getLogger(__name__)

# Tolerância para comparações de valores monetários em float
_EPSILON = 1e-9


# ==============================================================================
# VALIDAÇÕES DE PAGAMENTO
# ==============================================================================

def validate_adjusted_total(
    original_total: float,
    adjusted_total: Any,
    max_ratio: float = config.MAX_ADJUSTMENT_RATIO
) -> Optional[PdvError]:
    """
    Valida o total ajustado pelo operador no momento do pagamento.

    O valor deve ser maior que zero e não pode se afastar do original
    mais que max_ratio (10%) para cima ou para baixo.

    Returns:
        None se válido, ou o erro para exibir ao operador
    """
    if (isinstance(adjusted_total, bool)
            or not isinstance(adjusted_total, (int, float))
            or adjusted_total <= 0):
        return PdvError(
            ErrorType.INVALID_AMOUNT,
            "Por favor, insira um valor válido maior que zero.",
            {'current_value': adjusted_total, 'expected_value': '> 0'}
        )

    max_adjustment = original_total * max_ratio
    if abs(original_total - adjusted_total) > max_adjustment + _EPSILON:
        return PdvError(
            ErrorType.INVALID_ADJUSTMENT,
            f"O ajuste máximo permitido é de {max_ratio * 100:.0f}% "
            f"({max_adjustment:.2f})",
            {'current_value': adjusted_total,
             'expected_value': f'{original_total - max_adjustment:.2f} - '
                               f'{original_total + max_adjustment:.2f}',
             'max_adjustment': max_adjustment}
        )
    return None


def validate_discount(
    original_total: float,
    discount: Any,
    max_ratio: float = config.MAX_ADJUSTMENT_RATIO
) -> Optional[PdvError]:
    """
    Desconto sobre o total dos itens; negativo é acréscimo.
    Em módulo, não pode passar de max_ratio do total original.
    """
    max_adjustment = original_total * max_ratio
    if (isinstance(discount, bool)
            or not isinstance(discount, (int, float))
            or abs(discount) > max_adjustment + _EPSILON
            or discount >= original_total):
        return PdvError(
            ErrorType.INVALID_ADJUSTMENT,
            f"O ajuste máximo permitido é de {max_ratio * 100:.0f}% "
            f"({max_adjustment:.2f})",
            {'current_value': discount,
             'expected_value': f'-{max_adjustment:.2f} - {max_adjustment:.2f}',
             'max_adjustment': max_adjustment}
        )
    return None


def validate_cash_amount(cash_amount: Optional[float], total: float) -> Optional[PdvError]:
    """Dinheiro recebido precisa cobrir o total (ausente conta como insuficiente)."""
    if cash_amount is None or cash_amount < total - _EPSILON:
        return PdvError(
            ErrorType.INSUFFICIENT_CASH,
            "Valor em dinheiro insuficiente",
            {'current_value': cash_amount, 'expected_value': f'>= {total}'}
        )
    return None


def calculate_change(cash_amount: Optional[float], total: float) -> float:
    """Troco a devolver (0 se não houver dinheiro suficiente)."""
    if cash_amount is None or cash_amount <= total:
        return 0.0
    return cash_amount - total


# ==============================================================================
# SERVIÇO
# ==============================================================================

class SalesService:
    """
    Serviço do livro de vendas.

    Responsabilidades:
    - Finalizar vendas (validação + registro atômico)
    - Cancelar/consultar vendas
    - Métricas do livro (quantidade, faturamento, ticket médio)

    Todas as mutações passam pelo mesmo RLock: observadores veem o
    livro antes ou depois de uma finalização, nunca um estado parcial.
    """

    def __init__(
        self,
        storage: Optional[IKeyValueStorage] = None,
        storage_key: str = config.SALES_STORAGE_KEY,
        enabled: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None
    ):
        """
        Args:
            storage: Armazenamento chave/valor (None = só memória)
            storage_key: Chave do livro no armazenamento
            enabled: Serviço desabilitado rejeita finalizações
            clock: Fonte de "agora" (injetável em testes)
            id_factory: Gerador de ids únicos
        """
        self.storage = storage
        self.storage_key = storage_key
        self.enabled = enabled
        self.clock = clock or datetime.now
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

        self._lock = threading.RLock()
        self._sales: List[CompletedSale] = []
        self.error: Optional[PdvError] = None

        self.reload()

    # =========================================================================
    # PERSISTÊNCIA
    # =========================================================================

    def reload(self) -> OperationResult:
        """Carrega o livro do armazenamento (conteúdo malformado = livro vazio)."""
        if self.storage is None:
            return OperationResult.success(self.completed_sales)

        with self._lock:
            try:
                raw = self.storage.get(self.storage_key)
                if raw is not None and not isinstance(raw, list):
                    raise ValueError(f"esperada uma lista, obtido {type(raw).__name__}")
                self._sales = [CompletedSale.from_dict(data) for data in raw or []]
            except Exception as exc:
                logger.error("Erro ao carregar vendas (%s): %s", self.storage_key, exc)
                self._sales = []
                self.error = PdvError(
                    ErrorType.STORAGE_ERROR,
                    "Erro ao carregar vendas do storage",
                    {'reason': str(exc)}
                )
                return OperationResult.from_error(self.error)
            return OperationResult.success(self.completed_sales)

    def _persist(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.set(self.storage_key, [sale.to_dict() for sale in self._sales])
        except Exception as exc:
            logger.warning("Erro ao salvar vendas (%s): %s", self.storage_key, exc)
            self.error = PdvError(
                ErrorType.STORAGE_ERROR,
                "Erro ao salvar vendas no storage",
                {'reason': str(exc)}
            )

    def _reject(self, error: PdvError) -> OperationResult:
        self.error = error
        logger.info("Venda rejeitada: %s", error.message)
        return OperationResult.from_error(error)

    def clear_error(self) -> None:
        self.error = None

    # =========================================================================
    # FINALIZAÇÃO
    # =========================================================================

    @profile_function(name="Finalizar venda")
    def complete_sale(
        self,
        customer_name: str,
        items: Iterable[SaleItem],
        payment_method: Any,
        cash_amount: Optional[float] = None,
        discount: Optional[float] = None,
        notes: Optional[str] = None,
        created_at: Optional[datetime] = None
    ) -> OperationResult:
        """
        Finaliza uma venda e a registra no livro.
        Esta é a ÚNICA função que cria vendas concluídas.

        Args:
            customer_name: Nome do cliente (obrigatório)
            items: Itens vendidos (copiados para o registro)
            payment_method: PaymentMethod ou seu valor ('CASH', 'PIX', ...)
            cash_amount: Dinheiro recebido (obrigatório em CASH)
            discount: Desconto sobre o total dos itens
            notes: Observações
            created_at: Abertura da conta (comanda); padrão = agora

        Returns:
            OperationResult com a CompletedSale em data
        """
        with self._lock:
            if not self.enabled:
                return self._reject(PdvError(ErrorType.OPERATION_NOT_ALLOWED, "Vendas desabilitadas"))

            if not customer_name or not customer_name.strip():
                return self._reject(PdvError(ErrorType.CUSTOMER_NAME_REQUIRED))

            items = list(items or [])
            if not items:
                return self._reject(PdvError(ErrorType.ITEMS_REQUIRED))

            method = parse_payment_method(payment_method)
            if not isinstance(method, PaymentMethod):
                return self._reject(PdvError(
                    ErrorType.VALIDATION_ERROR,
                    "Método de pagamento inválido",
                    {'current_value': payment_method}
                ))

            original_total = collection_total(items)
            discount = discount or 0.0
            if discount:
                error = validate_discount(original_total, discount)
                if error:
                    return self._reject(error)
            total = original_total - discount

            change = 0.0
            if method == PaymentMethod.CASH:
                error = validate_cash_amount(cash_amount, total)
                if error:
                    return self._reject(error)
                change = calculate_change(cash_amount, total)

            now = self.clock()
            sale = CompletedSale(
                id=self.id_factory(),
                customer_name=customer_name,
                items=tuple(copy.deepcopy(items)),
                payment_method=method,
                total=total,
                change=change,
                finalizada_em=now,
                created_at=created_at or now,
                updated_at=now,
                discount=discount,
                notes=notes or ''
            )

            self._sales.append(sale)
            self.error = None
            self._persist()

            logger.info(
                "Venda %s finalizada: cliente=%s total=%.2f método=%s",
                sale.id, customer_name, total, method.value
            )
            return OperationResult.success(sale, "Venda finalizada com sucesso")

    # =========================================================================
    # LIVRO DE VENDAS
    # =========================================================================

    def cancel_sale(self, sale_id: str) -> OperationResult:
        """Remove uma venda do livro, sem revalidar regras de negócio."""
        with self._lock:
            for index, sale in enumerate(self._sales):
                if sale.id == sale_id:
                    removed = self._sales.pop(index)
                    self._persist()
                    logger.info("Venda %s cancelada", sale_id)
                    return OperationResult.success(removed, "Venda cancelada")
            return self._reject(PdvError(
                ErrorType.ITEM_NOT_FOUND, "Venda não encontrada", {'sale_id': sale_id}
            ))

    def get_sale(self, sale_id: str) -> Optional[CompletedSale]:
        with self._lock:
            for sale in self._sales:
                if sale.id == sale_id:
                    return sale
            return None

    def clear_sales(self) -> OperationResult:
        with self._lock:
            self._sales = []
            self._persist()
            return OperationResult.success([], "Livro de vendas limpo")

    @property
    def completed_sales(self) -> List[CompletedSale]:
        with self._lock:
            return list(self._sales)

    @property
    def total_sales(self) -> int:
        return len(self.completed_sales)

    @property
    def total_revenue(self) -> float:
        return sum(sale.total or 0 for sale in self.completed_sales)

    @property
    def average_ticket(self) -> float:
        sales = self.completed_sales
        if not sales:
            return 0.0
        return sum(sale.total or 0 for sale in sales) / len(sales)
