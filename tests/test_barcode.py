"""Barcode catalog lookup with the HTTP call patched out."""
import requests
from purepick.barcode import lookup_barcode


class FakeResponse:
    def __init__(self, status_code: int, data: dict | None = None) -> None:
        self.status_code = status_code
        self._data = data

    def json(self) -> dict:
        if self._data is None:
            raise ValueError("no JSON body")
        return self._data


def test_found(monkeypatch) -> None:
    data = {
        "status": 1,
        "product": {
            "product_name": "Oat Drink",
            "brands": "Oatly",
            "categories_tags": ["en:plant-based-foods", "en:beverages"],
            "ingredients_text": "Water, oats 10%, rapeseed oil, salt",
            "image_front_url": "https://images.example/oat.jpg",
        },
    }
    calls = []

    def fake_get(url, **kwargs):
        calls.append((url, kwargs))
        return FakeResponse(200, data)

    monkeypatch.setattr(requests, "get", fake_get)
    product = lookup_barcode(" 7394376616037 ", timeout=5)
    assert product.found is True
    assert product.name == "Oat Drink"
    assert product.brand == "Oatly"
    assert product.category == "Food & Beverages"
    assert product.ingredients_text.startswith("Water")
    assert product.image_url == "https://images.example/oat.jpg"
    assert calls[0][0].endswith("/7394376616037.json")
    assert calls[0][1]["timeout"] == 5


def test_not_in_catalog(monkeypatch) -> None:
    monkeypatch.setattr(requests, "get", lambda url, **kwargs: FakeResponse(200, {"status": 0}))
    assert lookup_barcode("000").found is False
    monkeypatch.setattr(requests, "get", lambda url, **kwargs: FakeResponse(404))
    assert lookup_barcode("000").found is False


def test_network_error(monkeypatch) -> None:
    def fake_get(url, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(requests, "get", fake_get)
    assert lookup_barcode("000").found is False
