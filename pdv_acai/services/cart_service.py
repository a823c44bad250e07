# ==============================================================================
# SERVIÇO DE CARRINHO
# ==============================================================================
# Centraliza toda a lógica de negócio do carrinho do caixa.
# O carrinho vive em memória e é espelhado (opcionalmente) em um
# IKeyValueStorage: sessão Flask no caixa, memória nos testes.
# ==============================================================================

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pdv_acai import config
from pdv_acai.models.entities import (
    CartStatistics,
    ErrorType,
    ItemValidation,
    OperationResult,
    PdvError,
    Product,
    SaleItem,
    SelectedOptions,
)
from pdv_acai.repositories.interfaces import IKeyValueStorage
from pdv_acai.services.cart_validation import (
    CartValidationConfig,
    cart_statistics,
    create_error,
    items_equivalent,
    validate_item,
)
from pdv_acai.services.pricing import collection_total, item_total

logger = logging.getLogger(__name__)

# Campos de SaleItem que podem ser alterados em update_item
UPDATABLE_FIELDS = frozenset(['quantity', 'weight', 'addons', 'selected_options', 'notes'])


def _to_selected_options(value: Any) -> Optional[SelectedOptions]:
    if value is None or isinstance(value, SelectedOptions):
        return value
    return SelectedOptions.from_dict(value)


def make_sale_item(
    product: Optional[Product],
    quantity: Optional[int] = 1,
    weight: Optional[float] = None,
    addons: Optional[Sequence[Product]] = None,
    selected_options: Any = None,
    notes: Optional[str] = None
) -> Tuple[Optional[SaleItem], Optional[PdvError]]:
    """
    Monta um SaleItem aplicando as regras de entrada do caixa.
    Quantidade e peso são exclusivos conforme o tipo do produto.

    Returns:
        (item, None) ou (None, erro)
    """
    if product is None or product.id in (None, ''):
        return None, create_error(ErrorType.INVALID_PRODUCT, "Produto inválido")

    if quantity is None:
        quantity = 1

    if product.is_weight and (not weight or weight <= 0):
        return None, create_error(
            ErrorType.WEIGHT_REQUIRED,
            details={'product_id': product.id, 'current_value': weight,
                     'expected_value': '> 0'}
        )

    if quantity <= 0:
        return None, create_error(
            ErrorType.INVALID_QUANTITY,
            "Quantidade deve ser maior que zero",
            {'product_id': product.id, 'current_value': quantity,
             'expected_value': '> 0'}
        )

    return SaleItem(
        product=product,
        quantity=None if product.is_weight else quantity,
        weight=weight if product.is_weight else None,
        addons=list(addons or []),
        selected_options=_to_selected_options(selected_options),
        notes=notes or ''
    ), None


def first_validation_error(
    item: SaleItem,
    validation_config: Optional[CartValidationConfig] = None
) -> Optional[PdvError]:
    """Primeiro erro de validate_item (com todas as mensagens em details)."""
    validation = validate_item(item, validation_config)
    if validation.is_valid:
        return None
    first = validation.errors[0]
    first.details.setdefault('errors', [e.message for e in validation.errors])
    return first


class CartService:
    """
    Serviço de gestão do carrinho.

    Responsabilidades:
    - Adicionar/remover/atualizar itens (individualmente ou em lote)
    - Respeitar capacidade e regras de validação
    - Calcular totais e estatísticas
    - Persistir a cada mutação sem desfazer o estado em memória em caso de falha

    Toda operação que altera o carrinho retorna um OperationResult;
    uma rejeição nunca altera os itens.
    """

    def __init__(
        self,
        storage: Optional[IKeyValueStorage] = None,
        storage_key: str = config.CART_STORAGE_KEY,
        max_items: int = config.DEFAULT_MAX_ITEMS,
        enabled: bool = True,
        validate_items: bool = True,
        validation_config: Optional[CartValidationConfig] = None,
        on_error: Optional[Callable[[PdvError], None]] = None,
        max_cart_value: Optional[float] = None
    ):
        """
        Inicializa o carrinho e carrega os itens já persistidos.

        Args:
            storage: Armazenamento chave/valor (None = só memória)
            storage_key: Chave dos itens no armazenamento
            max_items: Capacidade máxima
            enabled: Carrinho desabilitado rejeita todas as mutações
            validate_items: Aplica validate_item ao adicionar/atualizar
            validation_config: Opções de validação
            on_error: Callback chamado a cada erro registrado
            max_cart_value: Valor máximo aceito em validate_cart (opcional)
        """
        self.storage = storage
        self.storage_key = storage_key
        self.max_items = max_items
        self.enabled = enabled
        self.validate_items = validate_items
        self.validation_config = validation_config or CartValidationConfig()
        self.on_error = on_error
        self.max_cart_value = max_cart_value

        self._items: List[SaleItem] = []
        self.error: Optional[PdvError] = None
        self.error_history: List[PdvError] = []

        self.reload()

    # =========================================================================
    # PERSISTÊNCIA E ERROS
    # =========================================================================

    def reload(self) -> OperationResult:
        """
        Recarrega os itens do armazenamento.
        Conteúdo ilegível resulta em carrinho vazio e STORAGE_ERROR.
        """
        if self.storage is None:
            return OperationResult.success(self.items)

        try:
            raw = self.storage.get(self.storage_key)
            self._items = [SaleItem.from_dict(data) for data in raw or []]
        except Exception as exc:
            logger.warning("Falha ao carregar carrinho (%s): %s", self.storage_key, exc)
            self._items = []
            return OperationResult.from_error(self._record_error(create_error(
                ErrorType.STORAGE_ERROR,
                "Falha ao carregar carrinho do armazenamento",
                {'reason': str(exc)}
            )))
        return OperationResult.success(self.items)

    def _persist(self) -> None:
        """Grava o carrinho inteiro; falhas viram STORAGE_ERROR sem rollback."""
        if self.storage is None:
            return
        try:
            self.storage.set(self.storage_key, [item.to_dict() for item in self._items])
        except Exception as exc:
            logger.warning("Falha ao salvar carrinho (%s): %s", self.storage_key, exc)
            self._record_error(create_error(
                ErrorType.STORAGE_ERROR,
                "Falha ao salvar carrinho no armazenamento",
                {'reason': str(exc)}
            ))
            return
        self.error = None

    def _record_error(self, error: PdvError) -> PdvError:
        self.error = error
        self.error_history.append(error)
        if self.on_error:
            self.on_error(error)
        return error

    def _reject(self, error: PdvError) -> OperationResult:
        return OperationResult.from_error(self._record_error(error))

    def clear_error(self) -> None:
        self.error = None

    def clear_error_history(self) -> None:
        self.error_history = []

    # =========================================================================
    # VALORES DERIVADOS
    # =========================================================================

    @property
    def items(self) -> List[SaleItem]:
        """Cópia rasa da lista de itens (a ordem é a de inserção)."""
        return list(self._items)

    @property
    def total_items(self) -> int:
        """Unidades no carrinho; itens por peso contam como 1."""
        return sum(item.quantity or 1 for item in self._items)

    @property
    def total_value(self) -> float:
        return collection_total(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def validation_errors(self) -> List[str]:
        """Capacidade + verificação de cada item (vazio se a validação estiver desligada)."""
        if not self.validate_items:
            return []

        errors = []
        if len(self._items) > self.max_items:
            errors.append(f"Carrinho excede o limite de {self.max_items} itens")
        for index, item in enumerate(self._items):
            for error in validate_item(item, self.validation_config).errors:
                errors.append(f"Item {index + 1}: {error.message}")
        return errors

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors

    @property
    def statistics(self) -> CartStatistics:
        return cart_statistics(self._items)

    def get_statistics(self, tax_rate: float = config.DEFAULT_TAX_RATE) -> CartStatistics:
        return cart_statistics(self._items, tax_rate)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_item_total(self, item: Union[SaleItem, int]) -> float:
        """Preço de linha de um item (aceita o item ou sua posição)."""
        if isinstance(item, int):
            if not 0 <= item < len(self._items):
                return 0.0
            item = self._items[item]
        return item_total(item)

    def find_item_index(self, product_id: Any) -> int:
        """Posição do primeiro item do produto, ou -1."""
        for index, item in enumerate(self._items):
            if item.product is not None and item.product.id == product_id:
                return index
        return -1

    def has_item(self, product_id: Any) -> bool:
        return self.find_item_index(product_id) != -1

    def _check_can_add(self, product: Optional[Product], pending: int = 0) -> Optional[PdvError]:
        if not self.enabled:
            return create_error(ErrorType.OPERATION_NOT_ALLOWED, "Carrinho desabilitado")
        if len(self._items) + pending >= self.max_items:
            return create_error(
                ErrorType.MAX_ITEMS_EXCEEDED,
                f"Carrinho atingiu o limite de {self.max_items} itens",
                {'current_value': len(self._items) + pending,
                 'expected_value': f'< {self.max_items}'}
            )
        if product is None or product.id in (None, ''):
            return create_error(ErrorType.INVALID_PRODUCT, "Produto inválido")
        return None

    def can_add_item(self, product: Optional[Product]) -> bool:
        """Carrinho habilitado, abaixo da capacidade e produto com id."""
        return self._check_can_add(product) is None

    def validate_item(self, index: int) -> ItemValidation:
        """Valida o item em uma posição."""
        if not 0 <= index < len(self._items):
            return ItemValidation(False, [create_error(
                ErrorType.ITEM_NOT_FOUND, details={'index': index}
            )])
        return validate_item(self._items[index], self.validation_config)

    def validate_cart(self) -> ItemValidation:
        """
        Validação completa do carrinho: capacidade, cada item e
        limites de valor total.
        """
        errors: List[PdvError] = []
        warnings: List[str] = []

        if len(self._items) > self.max_items:
            errors.append(create_error(
                ErrorType.MAX_ITEMS_EXCEEDED,
                f"Carrinho excede o limite de {self.max_items} itens",
                {'current_value': len(self._items), 'expected_value': f'<= {self.max_items}'}
            ))

        for index, item in enumerate(self._items):
            result = validate_item(item, self.validation_config)
            for error in result.errors:
                error.details.setdefault('index', index)
                errors.append(error)
            warnings.extend(f"Item {index + 1}: {w}" for w in result.warnings)

        total = self.total_value
        if self._items and total < config.MIN_CART_VALUE:
            errors.append(create_error(
                ErrorType.MINIMUM_VALUE_NOT_MET,
                details={'current_value': total, 'expected_value': f'>= {config.MIN_CART_VALUE}'}
            ))
        if self.max_cart_value is not None and total > self.max_cart_value:
            errors.append(create_error(
                ErrorType.MAXIMUM_VALUE_EXCEEDED,
                details={'current_value': total, 'expected_value': f'<= {self.max_cart_value}'}
            ))

        return ItemValidation(is_valid=not errors, errors=errors, warnings=warnings)

    def get_subtotal(self) -> float:
        return self.total_value

    def get_total_with_tax(self, tax_rate: float = 0) -> float:
        return self.total_value * (1 + tax_rate)

    def get_items_by_category(self, category: str) -> List[SaleItem]:
        return [item for item in self._items if item.category == category]

    def get_tax_summary(self, tax_rate: float = config.DEFAULT_TAX_RATE) -> Dict[str, float]:
        """
        Resumo de impostos.

        Returns:
            Dict com subtotal, tax_rate, tax e total
        """
        subtotal = self.total_value
        tax = subtotal * tax_rate
        return {
            'subtotal': subtotal,
            'tax_rate': tax_rate,
            'tax': tax,
            'total': subtotal + tax,
        }

    # =========================================================================
    # MUTAÇÕES
    # =========================================================================

    def _build_item(
        self,
        product: Optional[Product],
        quantity: Optional[int] = 1,
        weight: Optional[float] = None,
        addons: Optional[Sequence[Product]] = None,
        selected_options: Any = None,
        notes: Optional[str] = None,
        pending: Sequence[SaleItem] = ()
    ) -> Tuple[Optional[SaleItem], Optional[PdvError]]:
        """
        Capacidade + make_sale_item + validação + duplicados.
        """
        error = self._check_can_add(product, len(pending))
        if error:
            return None, error

        item, error = make_sale_item(product, quantity, weight, addons, selected_options, notes)
        if error:
            return None, error

        if self.validate_items:
            error = first_validation_error(item, self.validation_config)
            if error:
                return None, error

        if self.validation_config.prevent_duplicates:
            for existing in list(self._items) + list(pending):
                if items_equivalent(item, existing):
                    return None, create_error(
                        ErrorType.VALIDATION_ERROR,
                        "Item já existe no carrinho",
                        {'product_id': product.id}
                    )

        return item, None

    def add_item(
        self,
        product: Optional[Product],
        quantity: Optional[int] = 1,
        weight: Optional[float] = None,
        addons: Optional[Sequence[Product]] = None,
        selected_options: Any = None,
        notes: Optional[str] = None
    ) -> OperationResult:
        """
        Adiciona um item ao final do carrinho.

        Args:
            product: Produto do catálogo
            quantity: Quantidade (ignorada para produtos por peso)
            weight: Peso em gramas (obrigatório para produtos por peso)
            addons: Adicionais
            selected_options: SelectedOptions ou dict {categoria: [nomes]}
            notes: Observações

        Returns:
            OperationResult com o item criado em data
        """
        item, error = self._build_item(
            product, quantity, weight, addons, selected_options, notes
        )
        if error:
            return self._reject(error)

        self._items.append(item)
        self._persist()
        return OperationResult.success(item, "Item adicionado ao carrinho")

    def remove_item(self, index: int) -> OperationResult:
        """Remove o item de uma posição (posição inválida não altera nada)."""
        if not self.enabled:
            return self._reject(create_error(ErrorType.OPERATION_NOT_ALLOWED, "Carrinho desabilitado"))
        if not 0 <= index < len(self._items):
            return self._reject(create_error(ErrorType.ITEM_NOT_FOUND, details={'index': index}))

        removed = self._items.pop(index)
        self._persist()
        return OperationResult.success(removed, "Item removido do carrinho")

    def _updated_item(
        self,
        items: Sequence[SaleItem],
        index: int,
        updates: Dict[str, Any]
    ) -> Tuple[Optional[SaleItem], Optional[PdvError]]:
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"Campos não atualizáveis: {', '.join(sorted(unknown))}")

        if not 0 <= index < len(items):
            return None, create_error(ErrorType.ITEM_NOT_FOUND, details={'index': index})

        current = items[index]
        quantity = updates.get('quantity')
        if quantity is not None and quantity <= 0:
            return None, create_error(
                ErrorType.INVALID_QUANTITY,
                "Quantidade deve ser maior que zero",
                {'index': index, 'current_value': quantity, 'expected_value': '> 0'}
            )

        weight = updates.get('weight')
        product = current.product
        # quantidade e peso são exclusivos
        if product is not None and product.is_weight and quantity is not None:
            return None, create_error(
                ErrorType.VALIDATION_ERROR,
                "Produto por peso não aceita quantidade",
                {'index': index, 'field': 'quantity', 'current_value': quantity}
            )
        if product is not None and not product.is_weight and weight is not None:
            return None, create_error(
                ErrorType.VALIDATION_ERROR,
                "Produto por unidade não aceita peso",
                {'index': index, 'field': 'weight', 'current_value': weight}
            )

        if weight is not None and product is not None and product.is_weight and weight <= 0:
            return None, create_error(
                ErrorType.WEIGHT_REQUIRED,
                details={'index': index, 'current_value': weight, 'expected_value': '> 0'}
            )

        changes = dict(updates)
        if 'selected_options' in changes:
            changes['selected_options'] = _to_selected_options(changes['selected_options'])
        if 'addons' in changes:
            changes['addons'] = list(changes['addons'] or [])
        updated = replace(current, **changes)

        if self.validate_items:
            validation = validate_item(updated, self.validation_config)
            if not validation.is_valid:
                first = validation.errors[0]
                first.details.setdefault('index', index)
                return None, first

        return updated, None

    def update_item(self, index: int, **updates: Any) -> OperationResult:
        """
        Altera campos de um item (quantity, weight, addons, selected_options, notes).
        Valores inválidos são rejeitados com falha explícita e nada muda.
        """
        if not self.enabled:
            return self._reject(create_error(ErrorType.OPERATION_NOT_ALLOWED, "Carrinho desabilitado"))

        updated, error = self._updated_item(self._items, index, updates)
        if error:
            return self._reject(error)

        self._items[index] = updated
        self._persist()
        return OperationResult.success(updated, "Item atualizado")

    def clear_cart(self) -> OperationResult:
        """Esvazia o carrinho e limpa o erro atual."""
        if not self.enabled:
            return self._reject(create_error(ErrorType.OPERATION_NOT_ALLOWED, "Carrinho desabilitado"))

        self._items = []
        self.error = None
        self._persist()
        return OperationResult.success([], "Carrinho esvaziado")

    # =========================================================================
    # OPERAÇÕES EM LOTE
    # =========================================================================

    def add_multiple_items(self, entries: Iterable[Dict[str, Any]]) -> List[OperationResult]:
        """
        Adiciona vários itens; cada entrada é um dict com 'product' e as
        mesmas opções de add_item. As entradas são avaliadas de forma
        independente e o resultado de cada uma é retornado na mesma ordem.
        """
        results: List[OperationResult] = []
        accepted: List[SaleItem] = []

        for entry in entries:
            options = dict(entry)
            product = options.pop('product', None)
            item, error = self._build_item(product, pending=accepted, **options)
            if error:
                results.append(self._reject(error))
                continue
            accepted.append(item)
            results.append(OperationResult.success(item))

        if accepted:
            self._items.extend(accepted)
            self._persist()
        return results

    def remove_multiple_items(self, indices: Iterable[int]) -> List[OperationResult]:
        """
        Remove várias posições de uma vez.
        Posições referem-se ao carrinho antes da remoção; a exclusão é feita em
        ordem decrescente para não deslocar as posições restantes.
        """
        indices = list(indices)
        if not self.enabled:
            error = create_error(ErrorType.OPERATION_NOT_ALLOWED, "Carrinho desabilitado")
            return [self._reject(error) for _ in indices]

        valid = {i for i in indices if 0 <= i < len(self._items)}
        removed = {}
        for index in sorted(valid, reverse=True):
            removed[index] = self._items.pop(index)

        results = []
        for index in indices:
            if index in removed:
                results.append(OperationResult.success(removed[index]))
            else:
                results.append(self._reject(create_error(
                    ErrorType.ITEM_NOT_FOUND, details={'index': index}
                )))

        if removed:
            self._persist()
        return results

    def update_multiple_items(
        self,
        updates: Iterable[Tuple[int, Dict[str, Any]]]
    ) -> List[OperationResult]:
        """Aplica várias atualizações (index, campos) em sequência."""
        updates = list(updates)
        if not self.enabled:
            error = create_error(ErrorType.OPERATION_NOT_ALLOWED, "Carrinho desabilitado")
            return [self._reject(error) for _ in updates]

        working = list(self._items)
        results = []
        changed = False
        for index, fields in updates:
            updated, error = self._updated_item(working, index, fields)
            if error:
                results.append(self._reject(error))
                continue
            working[index] = updated
            changed = True
            results.append(OperationResult.success(updated))

        if changed:
            self._items = working
            self._persist()
        return results
