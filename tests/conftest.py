import pytest

from pricematch.extraction import to_product
from pricematch.text import SynonymDictionary


@pytest.fixture
def synonyms():
    return SynonymDictionary([
        ["chiclete", "goma"],
        ["bolacha", "biscoito"],
        ["refrigerante", "refri"],
        ["sabao", "detergente"],
    ])


@pytest.fixture
def make_product():
    def _make(store, position, name, price=None, **fields):
        record = {"name": name, **fields}
        if price is not None:
            record["price"] = price
        return to_product(store, position, record)
    return _make


@pytest.fixture
def mixed_catalogs():
    italo = [
        {"name": "Arroz Tio João 5kg", "gtin": "7891234567895", "price": "R$ 24,90"},
        {"name": "Chiclete Trident Menta 8g", "price": 3.50},
        {"name": "Refrigerante Cola 350ml", "price": 4.00},
        {"name": "Detergente Ype Neutro 500ml", "price": "R$ 2,49"},
    ]
    marcon = [
        {"name": "Arroz Tio Joao 5kg", "gtin": "7891234567895", "price": 22.50},
        {"name": "Goma de Mascar Trident Menta 8g", "price": 3.20},
        {"name": "Refrigerante Cola 2L", "price": 9.00},
        {"name": "Detergente Ypê Neutro 500ml", "pricing": {"price": 2.79, "promotionalPrice": 2.59}},
    ]
    alfa = [
        {"name": "Detergente Ype Neutro 500 ml", "price": 2.39},
        {"name": "Arroz Tio Joao 5kg", "ean": "7891234567895", "price": "23,10"},
    ]
    return italo, marcon, alfa
