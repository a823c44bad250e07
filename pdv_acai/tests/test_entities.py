from datetime import datetime, timezone

from pdv_acai.models.entities import (
    CompletedSale,
    ErrorType,
    OperationResult,
    Order,
    OrderStatus,
    PaymentMethod,
    PdvError,
    SaleItem,
    SelectedOptions,
    parse_datetime,
    parse_payment_method,
)


def test_error_defaults_to_type_message():
    error = PdvError(ErrorType.ORDER_NOT_FOUND)
    assert error.message == 'Comanda não encontrada'
    assert error.code == 'PDV_ORDER_NOT_FOUND'
    assert error.to_dict()['type'] == 'ORDER_NOT_FOUND'


def test_operation_result_factories():
    ok = OperationResult.success([1], 'feito')
    assert ok.ok and ok.data == [1] and ok.error is None

    failed = OperationResult.failure(ErrorType.INVALID_AMOUNT, details={'current_value': 0})
    assert not failed.ok
    assert failed.error.details == {'current_value': 0}


def test_parse_datetime():
    assert parse_datetime('2024-05-16T10:00:00Z') == datetime(2024, 5, 16, 10, tzinfo=timezone.utc)
    assert parse_datetime('2024-05-16T10:00:00') == datetime(2024, 5, 16, 10)
    assert parse_datetime('ontem') is None
    assert parse_datetime(None) is None


def test_parse_payment_method():
    assert parse_payment_method('PIX') == PaymentMethod.PIX
    assert parse_payment_method('VALE') == 'VALE'
    assert parse_payment_method(None) is None


def test_selected_options_comparison():
    a = SelectedOptions({'frutas': ['Uva', 'Kiwi'], 'cremes': []})
    b = SelectedOptions({'frutas': ['Kiwi', 'Uva']})
    assert a.same_choices(b)
    assert not a.same_choices(SelectedOptions({'frutas': ['Uva']}))
    assert a.count('frutas') == 2
    assert b.get('cremes') == []


def test_order_restores_types(picole):
    order = Order(
        id='o1',
        customer_name='Ana',
        items=[SaleItem(product=picole, quantity=2, selected_options=SelectedOptions({'caldas': ['Chocolate']}))],
        created_at=datetime(2024, 5, 16, 9, 0),
        updated_at=datetime(2024, 5, 16, 9, 5),
        payment_method=PaymentMethod.DEBIT,
    )
    restored = Order.from_dict(order.to_dict())
    assert restored == order
    assert restored.status == OrderStatus.OPEN


def test_completed_sale_from_legacy_record():
    sale = CompletedSale.from_dict({
        'id': 's1',
        'customer_name': 'Ana',
        'items': [],
        'payment_method': 'CASH',
        'total': 12,
        'finalizada_em': '2024-05-16T10:00:00',
    })
    assert sale.created_at == sale.finalizada_em
    assert sale.updated_at == sale.finalizada_em
    assert sale.change == 0
    assert sale.status == OrderStatus.COMPLETED
