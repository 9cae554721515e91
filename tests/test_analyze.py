"""Analysis orchestration with stub oracles: no network, no API keys."""
import asyncio
import json
from pathlib import Path
from typing import List
import pytest
from purepick.analyze import analyze_barcode, analyze_product, build_oracle_request, parse_oracle_response, proxy_oracle
from purepick.fallback import FALLBACK_WARNING
from purepick.nutrition import ANALYSIS_HEADER
from purepick.schemas import DEFAULT_DISCLAIMER, Allergy, BarcodeProduct, OracleRequest, UserProfile

GOOD_BODY = json.dumps(
    {
        "product": {"name": "Choco Cookies", "category": "Snacks"},
        "ingredients": [
            {
                "name": "Sugar",
                "category": "Sweetener",
                "description": "Added sugar.",
                "healthRating": "warning",
                "concerns": ["High added sugar"],
                "benefits": [],
                "isVegan": True,
                "isNatural": True,
                "tags": ["nutritional concern"],
            },
            {"name": "Soy Lecithin", "healthRating": "SAFE"},
        ],
        "overall_rating": 72,
        "letter_grade": "B",
        "personalized_warnings": ["Contains soy"],
        "personalized_advice": ["Check the allergen statement"],
        "confidence": 0.8,
    }
)


class StubOracle:
    """Records requests and answers with a fixed body."""

    def __init__(self, body: str) -> None:
        self.body = body
        self.requests: List[OracleRequest] = []

    def __call__(self, request: OracleRequest) -> str:
        self.requests.append(request)
        return self.body


def _events(audit_path: Path) -> List[str]:
    return [json.loads(line)["event_type"] for line in audit_path.read_text(encoding="utf-8").splitlines()]


def test_valid_response_builds_product(tmp_path: Path) -> None:
    audit = tmp_path / "audit.jsonl"
    oracle = StubOracle(GOOD_BODY)
    product = analyze_product(
        "Cookies", "Snacks", "Ingredients: Sugar, Soy Lecithin", brand="ACME", oracle=oracle, audit_path=audit, run_id="r1"
    )
    assert product.degraded is False
    assert product.name == "Choco Cookies"
    assert product.brand == "ACME"
    assert product.overall_score == 72
    assert product.letter_grade == "B"
    assert product.confidence == 0.8
    assert product.disclaimer == DEFAULT_DISCLAIMER
    assert [i.name for i in product.ingredients] == ["Sugar", "Soy Lecithin"]
    assert product.ingredients[0].health_rating == "warning"
    assert product.ingredients[1].health_rating == "safe"
    assert product.ingredients[1].category == "Unknown"
    assert product.personalized_warnings == ["Contains soy"]
    assert product.raw_ingredient_text == "Sugar, Soy Lecithin"
    assert _events(audit) == ["analysis_requested", "text_classified", "analysis_ok"]


def test_request_carries_cleaned_text_and_region() -> None:
    oracle = StubOracle(GOOD_BODY)
    analyze_product("Cookies", "Snacks", "ACME\nIngredients: Water, Sugar, Salt", None, "US", oracle=oracle)
    request = oracle.requests[0]
    assert request.raw_ingredients == "Water, Sugar, Salt"
    payload = request.to_payload()
    assert set(payload) == {"productName", "productCategory", "rawIngredients", "country"}
    assert payload["country"] == "US"


def test_nutrition_panel_is_sent_formatted() -> None:
    oracle = StubOracle(GOOD_BODY)
    analyze_product("Cereal", "Food", "Nutrition Facts\nServing Size 1 cup\nCalories 120\nSodium 200mg 9%", oracle=oracle)
    assert oracle.requests[0].raw_ingredients.startswith(ANALYSIS_HEADER)
    assert "Sodium: 200mg (9% of daily value)" in oracle.requests[0].raw_ingredients


def test_profile_summary_omits_empty_fields() -> None:
    request = build_oracle_request("X", "Snacks", "water", UserProfile())
    assert "userProfile" not in request.to_payload()

    profile = UserProfile(allergies=[Allergy(name="peanut", severity="severe")], avoid_list=["sugar"])
    payload = build_oracle_request("X", "Snacks", "water", profile).to_payload()
    assert payload["userProfile"] == {"allergies": ["peanut (severe)"], "avoidList": ["sugar"]}


def test_truncated_response_is_repaired(tmp_path: Path) -> None:
    audit = tmp_path / "audit.jsonl"
    product = analyze_product(
        "Cookies", "Snacks", "Ingredients: Sugar", oracle=StubOracle('{"product":{'), audit_path=audit, run_id="r1"
    )
    assert product.degraded is False
    assert product.name == "Cookies"
    assert product.overall_score == 50
    assert product.letter_grade == "C"
    assert product.confidence == 0.5
    assert product.ingredients == []
    assert "oracle_repair_attempt" in _events(audit)
    assert "oracle_repaired" in _events(audit)


def test_out_of_range_and_null_fields_are_sanitized() -> None:
    body = json.dumps(
        {
            "ingredients": [{"name": "Water", "healthRating": "unknown"}, "Salt", None, {"name": ""}],
            "overall_rating": 150,
            "letter_grade": "b+",
            "confidence": 3,
            "personalized_warnings": None,
            "disclaimer": None,
        }
    )
    product = analyze_product("Soup", "Food", "Ingredients: Water, Salt", oracle=StubOracle(body))
    assert product.overall_score == 100
    assert product.letter_grade == "B"
    assert product.confidence == 1.0
    assert product.personalized_warnings == []
    assert product.disclaimer == DEFAULT_DISCLAIMER
    assert [(i.name, i.health_rating) for i in product.ingredients] == [("Water", "caution"), ("Salt", "caution")]


def test_garbage_response_falls_back(tmp_path: Path) -> None:
    audit = tmp_path / "audit.jsonl"
    product = analyze_product(
        "Cookies",
        "Snacks",
        "Ingredients: Water, Sugar",
        oracle=StubOracle("I'm sorry, I can't help with that."),
        audit_path=audit,
        run_id="r1",
    )
    assert product.degraded is True
    assert product.personalized_warnings == [FALLBACK_WARNING]
    assert [i.name for i in product.ingredients] == ["Water", "Sugar"]
    events = _events(audit)
    assert "oracle_failed" in events
    assert events[-1] == "fallback_used"


def test_non_object_response_falls_back() -> None:
    assert parse_oracle_response("[1, 2, 3]") is None
    product = analyze_product("X", "Y", "Ingredients: Water", oracle=StubOracle("[1, 2, 3]"))
    assert product.degraded is True


def test_oracle_error_falls_back() -> None:
    def failing(request: OracleRequest) -> str:
        raise TimeoutError("oracle did not answer in time")

    product = analyze_product(None, None, "Ingredients: Water, Sugar", oracle=failing)
    assert product.degraded is True
    assert product.name == "Unknown Product"
    assert product.category == "Uncategorized"
    assert product.overall_score == 50
    assert product.letter_grade == "C"
    assert all(i.health_rating == "caution" for i in product.ingredients)


def test_empty_response_falls_back() -> None:
    product = analyze_product("X", "Y", "Ingredients: Water", oracle=StubOracle("   "))
    assert product.degraded is True


def test_missing_proxy_url_falls_back(monkeypatch) -> None:
    monkeypatch.delenv("ORACLE_PROXY_URL", raising=False)
    product = analyze_product("X", "Y", "Ingredients: Water", oracle=proxy_oracle)
    assert product.degraded is True


def test_barcode_found_is_analyzed() -> None:
    oracle = StubOracle(GOOD_BODY)

    def lookup(code: str) -> BarcodeProduct:
        return BarcodeProduct(
            name="Oat Drink",
            brand="Oatly",
            category="Food & Beverages",
            ingredients_text="Water, oats 10%, rapeseed oil, salt",
            image_url="https://images.example/oat.jpg",
            found=True,
        )

    product = analyze_barcode("7394376616037", lookup=lookup, oracle=oracle)
    assert product is not None
    assert product.barcode == "7394376616037"
    assert product.brand == "Oatly"
    assert product.image_ref == "https://images.example/oat.jpg"
    assert oracle.requests[0].product_name == "Oat Drink"


def test_barcode_not_found_or_without_ingredients() -> None:
    oracle = StubOracle(GOOD_BODY)
    assert analyze_barcode("000", lookup=lambda code: BarcodeProduct(found=False), oracle=oracle) is None
    assert analyze_barcode("000", lookup=lambda code: BarcodeProduct(name="Mystery", found=True), oracle=oracle) is None
    assert oracle.requests == []


def test_prose_after_json_keeps_oracle_fields(tmp_path: Path) -> None:
    audit = tmp_path / "audit.jsonl"
    body = '{"overall_rating": 80, "letter_grade": "A"}\nHope this helps!'
    product = analyze_product("Juice", "Beverages", "Ingredients: Water, Apple", oracle=StubOracle(body), audit_path=audit, run_id="r1")
    assert product.degraded is False
    assert product.overall_score == 80
    assert product.letter_grade == "A"
    assert "oracle_repair_attempt" not in _events(audit)


def _cancelled(request: OracleRequest) -> str:
    raise asyncio.CancelledError()


def _unavailable(request: OracleRequest) -> str:
    raise ConnectionError("oracle unreachable")


@pytest.mark.parametrize("raw_text", ["", "  \n\t"])
@pytest.mark.parametrize("oracle", [StubOracle('{"product":{'), _unavailable])
def test_empty_or_blank_text_yields_valid_product(raw_text: str, oracle) -> None:
    product = analyze_product("X", "Y", raw_text, oracle=oracle)
    assert 0 <= product.overall_score <= 100
    assert product.letter_grade in ("A", "B", "C", "D", "F")
    assert product.ingredients == []


def test_cancelled_oracle_falls_back(tmp_path: Path) -> None:
    audit = tmp_path / "audit.jsonl"
    product = analyze_product("X", "Y", "Ingredients: Water, Sugar", oracle=_cancelled, audit_path=audit, run_id="r1")
    assert product.degraded is True
    assert [i.name for i in product.ingredients] == ["Water", "Sugar"]
    assert _events(audit)[-1] == "fallback_used"
