# ==============================================================================
# SERVIÇO DE RELATÓRIOS DE VENDAS
# ==============================================================================
# Pipeline de funções puras sobre o livro de vendas e uma janela [início, fim]
# (inclusiva nos dois extremos):
#   filtro -> métricas -> agrupamentos -> ranking de produtos
#
# A data de uma venda é a de finalização; sem ela, a de criação.
# Datas sem fuso são interpretadas no horário local.
# ==============================================================================

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from datetime import datetime, timedelta

from pdv_acai import config
from pdv_acai.models.entities import SalesReport, TopProduct, parse_datetime
from pdv_acai.performance_logger import profile_function
from pdv_acai.services.cart_validation import UNCATEGORIZED


# ==============================================================================
# DATAS
# ==============================================================================

def _as_local(value: datetime) -> datetime:
    """Normaliza para datetime com fuso local (naive = horário local)."""
    return value.astimezone()


def sale_instant(sale: Any) -> Optional[datetime]:
    """Instante de referência de uma venda (finalização, senão criação)."""
    value = getattr(sale, 'finalizada_em', None) or getattr(sale, 'created_at', None)
    value = parse_datetime(value)
    return _as_local(value) if value else None


def get_date_range(report_type: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Calcula a janela de um tipo de relatório.

    Args:
        report_type: 'daily', 'weekly' (semana começa na segunda) ou 'monthly';
                     tipo desconhecido usa 'daily'
        now: Momento de referência (padrão = agora)

    Returns:
        Tupla (início, fim) com fim = último instante do dia de hoje
    """
    now = now or datetime.now()
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end_of_today = now.replace(hour=23, minute=59, second=59, microsecond=999999)

    if report_type == 'weekly':
        return start_of_today - timedelta(days=start_of_today.weekday()), end_of_today
    if report_type == 'monthly':
        return start_of_today.replace(day=1), end_of_today
    return start_of_today, end_of_today


# ==============================================================================
# PIPELINE
# ==============================================================================

def filter_by_period(sales: Sequence[Any], date_from: datetime, date_to: datetime) -> List[Any]:
    """Vendas cujo instante de referência está em [date_from, date_to]."""
    start = _as_local(date_from)
    end = _as_local(date_to)
    result = []
    for sale in sales:
        instant = sale_instant(sale)
        if instant is not None and start <= instant <= end:
            result.append(sale)
    return result


def calculate_sales_metrics(sales: Sequence[Any]) -> Dict[str, Any]:
    """
    Returns:
        {total_sales, total_revenue, average_ticket, total_items}
    """
    total_sales = len(sales)
    total_revenue = sum(sale.total or 0 for sale in sales)
    return {
        'total_sales': total_sales,
        'total_revenue': total_revenue,
        'average_ticket': total_revenue / total_sales if total_sales > 0 else 0.0,
        'total_items': sum(
            item.quantity or 1 for sale in sales for item in sale.items
        ),
    }


def _method_key(method: Any) -> str:
    if not method:
        return config.OTHER_PAYMENT_METHOD
    return getattr(method, 'value', method)


def group_by_payment_method(sales: Sequence[Any]) -> Dict[str, float]:
    """Faturamento por método de pagamento (ausente -> 'other')."""
    result: Dict[str, float] = {}
    for sale in sales:
        key = _method_key(sale.payment_method)
        result[key] = result.get(key, 0) + (sale.total or 0)
    return result


def group_by_category(sales: Sequence[Any]) -> Dict[str, int]:
    """Unidades vendidas por categoria de produto."""
    result: Dict[str, int] = {}
    for sale in sales:
        for item in sale.items:
            category = item.category or UNCATEGORIZED
            result[category] = result.get(category, 0) + (item.quantity or 1)
    return result


def group_by_hour(sales: Sequence[Any]) -> Dict[int, float]:
    """Faturamento por hora local (0-23) da venda."""
    result: Dict[int, float] = {}
    for sale in sales:
        instant = sale_instant(sale)
        if instant is None:
            continue
        result[instant.hour] = result.get(instant.hour, 0) + (sale.total or 0)
    return result


def top_selling_products(
    sales: Sequence[Any],
    limit: int = config.DEFAULT_TOP_PRODUCTS
) -> List[TopProduct]:
    """
    Ranking de produtos por faturamento bruto (preço * quantidade),
    agrupado por id do produto.
    """
    stats: Dict[str, TopProduct] = {}
    for sale in sales:
        for item in sale.items:
            if item.product is None:
                continue
            key = str(item.product.id)
            entry = stats.setdefault(key, TopProduct(name=item.product.name))
            quantity = item.quantity or 1
            entry.quantity += quantity
            entry.revenue += item.product.price * quantity

    ranked = sorted(stats.values(), key=lambda p: p.revenue, reverse=True)
    return ranked[:limit]


@profile_function(name="Gerar relatório de vendas")
def build_report(
    sales: Sequence[Any],
    date_from: datetime,
    date_to: datetime,
    limit: int = config.DEFAULT_TOP_PRODUCTS
) -> SalesReport:
    """
    Relatório completo de uma janela.
    Janela sem vendas retorna os valores identidade (zeros e coleções vazias).
    """
    filtered = filter_by_period(sales, date_from, date_to)
    if not filtered:
        return SalesReport()

    metrics = calculate_sales_metrics(filtered)
    return SalesReport(
        total_sales=metrics['total_sales'],
        total_revenue=metrics['total_revenue'],
        average_ticket=metrics['average_ticket'],
        total_items=metrics['total_items'],
        sales_by_payment_method=group_by_payment_method(filtered),
        sales_by_category=group_by_category(filtered),
        sales_by_hour=group_by_hour(filtered),
        top_products=top_selling_products(filtered, limit),
    )


# ==============================================================================
# SERVIÇO
# ==============================================================================

class StatsService:
    """
    Serviço de relatórios sobre o livro de vendas.

    Responsabilidades:
    - Resolver a janela de um período nomeado (daily/weekly/monthly)
    - Gerar relatórios para períodos nomeados ou janelas customizadas

    O livro é obtido por um sales_loader injetável, o que desacopla o
    relatório da origem das vendas.
    """

    def __init__(
        self,
        sales_loader: Optional[Callable[[], Sequence[Any]]] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Args:
            sales_loader: Função que retorna a lista de vendas concluídas
            clock: Fonte de "agora" para os períodos nomeados
        """
        self._sales_loader = sales_loader
        self.clock = clock or datetime.now

    def set_sales_loader(self, loader: Callable[[], Sequence[Any]]) -> None:
        """Configura o carregador de vendas"""
        self._sales_loader = loader

    def _load_sales(self) -> List[Any]:
        if self._sales_loader:
            return list(self._sales_loader())
        return []

    def report_for_period(
        self,
        report_type: str = 'daily',
        limit: int = config.DEFAULT_TOP_PRODUCTS
    ) -> SalesReport:
        """Relatório de hoje, da semana corrente ou do mês corrente."""
        date_from, date_to = get_date_range(report_type, self.clock())
        return build_report(self._load_sales(), date_from, date_to, limit)

    def report_for_range(
        self,
        date_from: datetime,
        date_to: datetime,
        limit: int = config.DEFAULT_TOP_PRODUCTS
    ) -> SalesReport:
        """Relatório de uma janela customizada [date_from, date_to]."""
        return build_report(self._load_sales(), date_from, date_to, limit)

    def filtered_sales(self, date_from: datetime, date_to: datetime) -> List[Any]:
        """Vendas da janela (para listagens como 'vendas recentes')."""
        return filter_by_period(self._load_sales(), date_from, date_to)
