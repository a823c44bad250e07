import itertools
from datetime import datetime, timedelta

import pytest

from pdv_acai.models.entities import Product, ProductType
from pdv_acai.repositories.base import MemoryStorage


class FakeClock:
    """Controllable replacement for datetime.now"""

    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class FailingStorage(MemoryStorage):
    """Reads work, every write fails"""

    def set(self, key, value):
        raise OSError('disco cheio')


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 16, 14, 30))


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f'id-{next(counter)}'


@pytest.fixture
def picole():
    return Product(id=1, name='Picolé de Limão', price=4.5, category='Sorvetes')


@pytest.fixture
def acai():
    return Product(id=2, name='Açaí no Peso', price=47.0, category='Açaí', type=ProductType.WEIGHT)


@pytest.fixture
def milkshake():
    return Product(
        id=3,
        name='Milkshake Monte do Seu Jeito',
        price=18.0,
        category='Monte do Seu Jeito',
        type=ProductType.OPTION,
        options={'frutas': 2, 'cremes': 2, 'acompanhamentos': 4},
    )


@pytest.fixture
def granola():
    return Product(id=10, name='Granola', price=3.0, category='Outros', type=ProductType.ADDON)


@pytest.fixture
def leite_ninho():
    return Product(id=11, name='Leite Ninho', price=2.5, category='Outros', type=ProductType.ADDON)


@pytest.fixture
def catalog_products(picole, acai, milkshake, granola, leite_ninho):
    return [picole, acai, milkshake, granola, leite_ninho]


@pytest.fixture
def failing_storage():
    return FailingStorage()
