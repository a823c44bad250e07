from datetime import datetime, timedelta, timezone

import pytest

from pdv_acai.models.entities import CompletedSale, Order, PaymentMethod, Product, SaleItem, SalesReport
from pdv_acai.services.stats_service import (
    StatsService,
    build_report,
    calculate_sales_metrics,
    filter_by_period,
    get_date_range,
    group_by_category,
    group_by_hour,
    group_by_payment_method,
    top_selling_products,
)


DAY_START = datetime(2024, 5, 16, 0, 0)
DAY_END = datetime(2024, 5, 16, 23, 59, 59, 999999)


def make_sale(sale_id, total, when, method=PaymentMethod.PIX, items=()):
    return CompletedSale(
        id=sale_id,
        customer_name='Cliente',
        items=tuple(items),
        payment_method=method,
        total=total,
        change=0.0,
        finalizada_em=when,
        created_at=when,
        updated_at=when,
    )


@pytest.fixture
def ledger(picole, acai, milkshake):
    return [
        make_sale('s1', 10.0, datetime(2024, 5, 16, 9, 15), PaymentMethod.PIX,
                  [SaleItem(product=picole, quantity=2)]),
        make_sale('s2', 20.0, datetime(2024, 5, 16, 15, 40), PaymentMethod.CASH,
                  [SaleItem(product=acai, weight=300), SaleItem(product=milkshake, quantity=1)]),
        make_sale('s3', 99.0, datetime(2024, 5, 15, 22, 0), PaymentMethod.CASH,
                  [SaleItem(product=picole, quantity=9)]),
    ]


def test_report_for_window(ledger):
    report = build_report(ledger, DAY_START, DAY_END)
    assert report.total_sales == 2
    assert report.total_revenue == pytest.approx(30.0)
    assert report.average_ticket == pytest.approx(15.0)
    assert report.total_items == 4


def test_report_groupings_are_consistent(ledger):
    report = build_report(ledger, DAY_START, DAY_END)
    assert report.sales_by_payment_method == {'PIX': 10.0, 'CASH': 20.0}
    assert sum(report.sales_by_payment_method.values()) == pytest.approx(report.total_revenue)
    assert sum(report.sales_by_hour.values()) == pytest.approx(report.total_revenue)
    assert sum(report.sales_by_category.values()) == report.total_items
    assert report.sales_by_hour == {9: 10.0, 15: 20.0}
    assert report.sales_by_category == {'Sorvetes': 2, 'Açaí': 1, 'Monte do Seu Jeito': 1}


def test_empty_window_returns_identity(ledger):
    report = build_report(ledger, datetime(2023, 1, 1), datetime(2023, 1, 2))
    assert report == SalesReport()
    assert report.average_ticket == 0
    assert report.top_products == []


def test_window_is_inclusive(ledger):
    when = datetime(2024, 5, 16, 9, 15)
    assert [s.id for s in filter_by_period(ledger, when, when)] == ['s1']


def test_sale_without_finish_time_uses_creation_time(picole):
    order = Order(id='o1', customer_name='Ana', items=[SaleItem(product=picole, quantity=1)],
                  created_at=datetime(2024, 5, 16, 10, 0), total=4.5)
    assert filter_by_period([order], DAY_START, DAY_END) == [order]


def test_aware_timestamps_are_compared_by_instant():
    utc_sale = make_sale('u1', 5.0, datetime(2024, 5, 16, 12, 0, tzinfo=timezone.utc))
    start = datetime(2024, 5, 16, 11, 0, tzinfo=timezone.utc)
    end = datetime(2024, 5, 16, 13, 0, tzinfo=timezone.utc)
    assert filter_by_period([utc_sale], start, end) == [utc_sale]
    assert filter_by_period([utc_sale], end, end + timedelta(hours=1)) == []


def test_missing_payment_method_goes_to_other():
    sales = [make_sale('a', 7.0, DAY_START, None), make_sale('b', 3.0, DAY_START, PaymentMethod.DEBIT)]
    assert group_by_payment_method(sales) == {'other': 7.0, 'DEBIT': 3.0}


def test_metrics_of_empty_list():
    assert calculate_sales_metrics([]) == {
        'total_sales': 0,
        'total_revenue': 0,
        'average_ticket': 0.0,
        'total_items': 0,
    }


def test_group_by_hour_accumulates():
    sales = [
        make_sale('a', 1.0, datetime(2024, 5, 16, 8, 5)),
        make_sale('b', 2.0, datetime(2024, 5, 16, 8, 55)),
        make_sale('c', 4.0, datetime(2024, 5, 16, 20, 0)),
    ]
    assert group_by_hour(sales) == {8: 3.0, 20: 4.0}


def test_group_by_category_counts_units(picole, acai):
    sales = [make_sale('a', 0, DAY_START, items=[
        SaleItem(product=picole, quantity=3), SaleItem(product=acai, weight=700),
    ])]
    assert group_by_category(sales) == {'Sorvetes': 3, 'Açaí': 1}


def test_items_without_product_are_uncategorized(picole):
    sales = [make_sale('a', 0, DAY_START, items=[
        SaleItem(product=None, quantity=2), SaleItem(product=picole, quantity=1),
    ])]
    assert group_by_category(sales) == {'Sem categoria': 2, 'Sorvetes': 1}


def test_top_products_ranked_by_revenue():
    products = [Product(id=i, name=f'P{i}', price=float(i)) for i in range(1, 6)]
    sales = [make_sale('a', 0, DAY_START, items=[SaleItem(product=p, quantity=2) for p in products])]
    sales.append(make_sale('b', 0, DAY_START, items=[SaleItem(product=products[0], quantity=10)]))

    top = top_selling_products(sales, limit=3)
    assert [p.name for p in top] == ['P1', 'P5', 'P4']
    assert top[0].quantity == 12
    assert top[0].revenue == pytest.approx(12.0)


def test_top_products_group_by_id():
    same = [Product(id=1, name='Cascão', price=5.0), Product(id='1', name='Cascão', price=5.0)]
    sales = [make_sale('a', 0, DAY_START, items=[SaleItem(product=p, quantity=1) for p in same])]
    top = top_selling_products(sales)
    assert len(top) == 1
    assert top[0].quantity == 2


def test_report_limit(ledger):
    report = build_report(ledger, DAY_START, DAY_END, limit=1)
    assert len(report.top_products) == 1
    # gross price * units: the weighed açaí counts one unit at its per-kg price
    assert report.top_products[0].name == 'Açaí no Peso'


def test_report_to_dict_uses_string_hours(ledger):
    data = build_report(ledger, DAY_START, DAY_END).to_dict()
    assert data['sales_by_hour'] == {'9': 10.0, '15': 20.0}
    assert data['top_products'][0]['name']


# ---- date ranges ----

NOW = datetime(2024, 5, 16, 14, 30)  # a Thursday


def test_daily_range():
    start, end = get_date_range('daily', NOW)
    assert start == DAY_START
    assert end == DAY_END


def test_weekly_range_starts_on_monday():
    start, end = get_date_range('weekly', NOW)
    assert start == datetime(2024, 5, 13)
    assert end == DAY_END


def test_monthly_range():
    start, _ = get_date_range('monthly', NOW)
    assert start == datetime(2024, 5, 1)


def test_unknown_range_is_daily():
    assert get_date_range('yearly', NOW) == get_date_range('daily', NOW)


# ---- service ----

def test_stats_service_periods(ledger, clock):
    stats = StatsService(sales_loader=lambda: ledger, clock=clock)
    assert stats.report_for_period('daily').total_sales == 2
    assert stats.report_for_period('weekly').total_sales == 3
    assert stats.report_for_range(datetime(2024, 5, 15), datetime(2024, 5, 15, 23)).total_revenue == 99.0
    assert [s.id for s in stats.filtered_sales(DAY_START, DAY_END)] == ['s1', 's2']


def test_stats_service_without_loader(clock):
    stats = StatsService(clock=clock)
    assert stats.report_for_period() == SalesReport()
    stats.set_sales_loader(lambda: [make_sale('x', 1.0, clock.current)])
    assert stats.report_for_period().total_sales == 1
