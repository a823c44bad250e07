import threading
from datetime import datetime

import pytest

from pdv_acai import performance_logger
from pdv_acai.models.entities import ErrorType, PaymentMethod, SaleItem
from pdv_acai.repositories.base import MemoryStorage
from pdv_acai.services.sales_service import (
    SalesService,
    calculate_change,
    validate_adjusted_total,
    validate_cash_amount,
    validate_discount,
)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def sales(storage, clock, id_factory):
    return SalesService(storage=storage, clock=clock, id_factory=id_factory)


@pytest.fixture
def two_cones(picole):
    # 2 x 4.50 = 9.00
    return [SaleItem(product=picole, quantity=2)]


def test_insufficient_cash_leaves_ledger_unchanged(sales, two_cones):
    result = sales.complete_sale('Ana', two_cones, PaymentMethod.CASH, cash_amount=5.0)
    assert not result.ok
    assert result.error.type == ErrorType.INSUFFICIENT_CASH
    assert result.error.message == 'Valor em dinheiro insuficiente'
    assert sales.completed_sales == []


def test_cash_sale_records_change(sales, clock, two_cones):
    result = sales.complete_sale('Ana', two_cones, 'CASH', cash_amount=20.0)
    assert result.ok
    sale = result.data
    assert sale.id == 'id-1'
    assert sale.total == pytest.approx(9.0)
    assert sale.change == pytest.approx(11.0)
    assert sale.payment_method == PaymentMethod.CASH
    assert sale.finalizada_em == clock.current
    assert sale.created_at == clock.current
    assert sales.completed_sales == [sale]


def test_exact_cash_has_no_change(sales, two_cones):
    result = sales.complete_sale('Ana', two_cones, PaymentMethod.CASH, cash_amount=9.0)
    assert result.ok
    assert result.data.change == 0


def test_cash_without_amount_is_insufficient(sales, two_cones):
    result = sales.complete_sale('Ana', two_cones, PaymentMethod.CASH)
    assert result.error.type == ErrorType.INSUFFICIENT_CASH


def test_non_cash_sale_has_no_change(sales, two_cones):
    result = sales.complete_sale('Ana', two_cones, PaymentMethod.PIX, cash_amount=50.0)
    assert result.ok
    assert result.data.change == 0


@pytest.mark.parametrize('name', ['', '   ', None])
def test_customer_name_required(sales, two_cones, name):
    result = sales.complete_sale(name, two_cones, PaymentMethod.DEBIT)
    assert result.error.type == ErrorType.CUSTOMER_NAME_REQUIRED
    assert sales.total_sales == 0


def test_items_required(sales):
    result = sales.complete_sale('Ana', [], PaymentMethod.DEBIT)
    assert result.error.type == ErrorType.ITEMS_REQUIRED
    assert result.error.message == 'Pelo menos um item deve ser adicionado à venda'


def test_unknown_payment_method(sales, two_cones):
    result = sales.complete_sale('Ana', two_cones, 'BOLETO')
    assert result.error.type == ErrorType.VALIDATION_ERROR
    assert sales.total_sales == 0


def test_disabled_service(clock, two_cones):
    sales = SalesService(enabled=False, clock=clock)
    result = sales.complete_sale('Ana', two_cones, PaymentMethod.PIX)
    assert result.error.type == ErrorType.OPERATION_NOT_ALLOWED


def test_discount_applied_before_cash_check(sales, two_cones):
    result = sales.complete_sale(
        'Ana', two_cones, PaymentMethod.CASH, cash_amount=8.5, discount=0.5, notes='cortesia'
    )
    assert result.ok
    assert result.data.total == pytest.approx(8.5)
    assert result.data.discount == pytest.approx(0.5)
    assert result.data.notes == 'cortesia'


def test_discount_beyond_bound_leaves_ledger_unchanged(sales, two_cones):
    result = sales.complete_sale('Ana', two_cones, PaymentMethod.CASH, cash_amount=1.0, discount=100.0)
    assert result.error.type == ErrorType.INVALID_ADJUSTMENT
    assert sales.completed_sales == []

    assert sales.complete_sale('Ana', two_cones, PaymentMethod.PIX, discount=1.0).error.type \
        == ErrorType.INVALID_ADJUSTMENT
    assert sales.complete_sale('Ana', two_cones, PaymentMethod.PIX, discount=-1.0).error.type \
        == ErrorType.INVALID_ADJUSTMENT
    assert sales.total_sales == 0


def test_negative_discount_within_bound_is_a_surcharge(sales, two_cones):
    result = sales.complete_sale('Ana', two_cones, PaymentMethod.CASH, cash_amount=10.0, discount=-0.9)
    assert result.ok
    assert result.data.total == pytest.approx(9.9)
    assert result.data.change == pytest.approx(0.1)


def test_sale_keeps_order_open_time(sales, two_cones):
    opened = datetime(2024, 5, 16, 12, 0)
    sale = sales.complete_sale('Ana', two_cones, PaymentMethod.CREDIT, created_at=opened).data
    assert sale.created_at == opened
    assert sale.finalizada_em > opened


def test_sale_items_are_a_snapshot(sales, picole, granola):
    items = [SaleItem(product=picole, quantity=1, addons=[granola])]
    sale = sales.complete_sale('Ana', items, PaymentMethod.PIX).data

    items[0].quantity = 10
    items.append(SaleItem(product=picole, quantity=1))

    assert len(sale.items) == 1
    assert sale.items[0].quantity == 1
    assert sale.total == pytest.approx(7.5)


def test_cancel_and_get_sale(sales, two_cones):
    first = sales.complete_sale('Ana', two_cones, PaymentMethod.PIX).data
    second = sales.complete_sale('Bia', two_cones, PaymentMethod.PIX).data

    assert sales.get_sale(second.id) is second
    assert sales.cancel_sale(first.id).ok
    assert [s.id for s in sales.completed_sales] == [second.id]

    result = sales.cancel_sale(first.id)
    assert result.error.type == ErrorType.ITEM_NOT_FOUND
    assert result.error.message == 'Venda não encontrada'
    assert sales.get_sale(first.id) is None


def test_ledger_metrics(sales, picole):
    assert sales.average_ticket == 0
    sales.complete_sale('Ana', [SaleItem(product=picole, quantity=2)], PaymentMethod.PIX)
    sales.complete_sale('Bia', [SaleItem(product=picole, quantity=4)], PaymentMethod.PIX)
    assert sales.total_sales == 2
    assert sales.total_revenue == pytest.approx(27.0)
    assert sales.average_ticket == pytest.approx(13.5)


def test_clear_sales(sales, two_cones):
    sales.complete_sale('Ana', two_cones, PaymentMethod.PIX)
    assert sales.clear_sales().ok
    assert sales.completed_sales == []


def test_ledger_survives_reload(storage, sales, clock, two_cones):
    sale = sales.complete_sale('Ana', two_cones, PaymentMethod.CASH, cash_amount=10.0).data

    reloaded = SalesService(storage=storage)
    restored = reloaded.get_sale(sale.id)
    assert restored.finalizada_em == clock.current
    assert restored.payment_method == PaymentMethod.CASH
    assert restored.change == pytest.approx(1.0)
    assert restored.items[0].product == two_cones[0].product


def test_malformed_ledger_loads_empty():
    sales = SalesService(storage=MemoryStorage({'sales-storage': 'oops'}))
    assert sales.completed_sales == []
    assert sales.error.type == ErrorType.STORAGE_ERROR


def test_storage_failure_still_records_sale(failing_storage, two_cones):
    sales = SalesService(storage=failing_storage)
    result = sales.complete_sale('Ana', two_cones, PaymentMethod.PIX)
    assert result.ok
    assert sales.total_sales == 1
    assert sales.error.type == ErrorType.STORAGE_ERROR


def test_concurrent_sales_all_recorded(picole):
    sales = SalesService()
    items = [SaleItem(product=picole, quantity=1)]

    def sell():
        for _ in range(25):
            sales.complete_sale('Ana', items, PaymentMethod.PIX)

    threads = [threading.Thread(target=sell) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sales.total_sales == 100
    assert len({s.id for s in sales.completed_sales}) == 100


def test_complete_sale_is_profiled(sales, two_cones):
    if not performance_logger.ENABLE_PROFILING:
        pytest.skip('profiling disabled')
    performance_logger.reset_stats()
    sales.complete_sale('Ana', two_cones, PaymentMethod.PIX)
    sales.complete_sale('Ana', two_cones, PaymentMethod.CASH, cash_amount=1.0)
    assert performance_logger.get_function_stats()['Finalizar venda']['calls'] == 2


# ---- payment helpers ----

@pytest.mark.parametrize('adjusted', [9.0, 10.0, 11.0, 10.5])
def test_adjusted_total_within_ten_percent(adjusted):
    assert validate_adjusted_total(10.0, adjusted) is None


@pytest.mark.parametrize('adjusted', [8.99, 11.01, 20.0])
def test_adjusted_total_outside_ten_percent(adjusted):
    error = validate_adjusted_total(10.0, adjusted)
    assert error.type == ErrorType.INVALID_ADJUSTMENT
    assert error.message == 'O ajuste máximo permitido é de 10% (1.00)'


@pytest.mark.parametrize('adjusted', [0, -5.0, None, 'abc', True])
def test_adjusted_total_must_be_positive_number(adjusted):
    error = validate_adjusted_total(10.0, adjusted)
    assert error.type == ErrorType.INVALID_AMOUNT


def test_validate_cash_amount():
    assert validate_cash_amount(10.0, 9.0) is None
    assert validate_cash_amount(9.0, 9.0) is None
    assert validate_cash_amount(8.99, 9.0).type == ErrorType.INSUFFICIENT_CASH
    assert validate_cash_amount(None, 9.0).type == ErrorType.INSUFFICIENT_CASH


def test_calculate_change():
    assert calculate_change(20.0, 9.0) == pytest.approx(11.0)
    assert calculate_change(9.0, 9.0) == 0
    assert calculate_change(5.0, 9.0) == 0
    assert calculate_change(None, 9.0) == 0



def test_validate_discount():
    assert validate_discount(9.0, 0.9) is None
    assert validate_discount(9.0, -0.9) is None
    assert validate_discount(9.0, 0.91).type == ErrorType.INVALID_ADJUSTMENT
    assert validate_discount(9.0, '1').type == ErrorType.INVALID_ADJUSTMENT
