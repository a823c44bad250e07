# ==============================================================================
# CÁLCULO DE PREÇOS
# ==============================================================================
# Implementação ÚNICA do preço de um item e do total de uma coleção.
# Carrinho, comandas, vendas e relatórios usam estas funções.
#
# REGRAS:
# - Produto por peso com peso informado: preço (por kg) * peso (g) / 1000
# - Demais: preço * quantidade (quantidade ausente conta como 1)
# - Adicionais: soma dos preços * quantidade (ausente conta como 1)
# - Sem arredondamento; formatação é responsabilidade da exibição
# ==============================================================================

from typing import Callable, Dict, Iterable, Optional

from pdv_acai.models.entities import ProductType, SaleItem


def _unit_price(item: SaleItem) -> float:
    return item.product.price * (item.quantity or 1)


def _weight_price(item: SaleItem) -> float:
    # Sem peso informado cai na regra por unidade
    if item.weight:
        return item.product.price * item.weight / 1000
    return _unit_price(item)


# Tabela de precificação base por tipo de produto
BASE_PRICERS: Dict[ProductType, Callable[[SaleItem], float]] = {
    ProductType.UNIT: _unit_price,
    ProductType.WEIGHT: _weight_price,
    ProductType.OPTION: _unit_price,
    ProductType.ADDON: _unit_price,
}


def addons_total(item: SaleItem) -> float:
    """Valor dos adicionais de um item (cobrados por unidade)."""
    if not item.addons:
        return 0.0
    return sum(addon.price for addon in item.addons) * (item.quantity or 1)


def item_total(item: Optional[SaleItem]) -> float:
    """
    Preço de linha de um item, incluindo adicionais.

    Returns:
        0 para item ou produto ausente
    """
    if item is None or item.product is None:
        return 0.0
    pricer = BASE_PRICERS.get(item.product.type, _unit_price)
    return pricer(item) + addons_total(item)


def collection_total(items: Optional[Iterable[SaleItem]]) -> float:
    """Soma dos preços de linha (0 para coleção vazia)."""
    if not items:
        return 0.0
    return sum(item_total(item) for item in items)
