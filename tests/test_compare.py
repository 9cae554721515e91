"""Product comparison: ranking and differing ingredients (deterministic)."""
from datetime import datetime, timezone
from typing import Sequence
from purepick.compare import NO_PRODUCTS_SUMMARY, compare_products
from purepick.schemas import HealthRating, Ingredient, Product


def _product(pid: str, score: int, ingredients: Sequence[str], ratings: dict | None = None, warnings: int = 0) -> Product:
    ratings = ratings or {}
    return Product(
        id=pid,
        name=pid,
        brand="ACME",
        category="Snacks",
        ingredients=[
            Ingredient(
                name=name,
                category="Unknown",
                description="",
                health_rating=ratings.get(name, "caution"),
                is_vegan=True,
                is_natural=False,
            )
            for name in ingredients
        ],
        raw_ingredient_text=", ".join(ingredients),
        overall_score=score,
        letter_grade="C",
        personalized_warnings=[f"warning {n}" for n in range(warnings)],
        scanned_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def _rating(result, name: str) -> HealthRating:
    return next(d.rating for d in result.differing_ingredients if d.ingredient_name == name)


def test_no_products() -> None:
    result = compare_products([])
    assert result.ranked_order == []
    assert result.summary == NO_PRODUCTS_SUMMARY
    assert result.differing_ingredients == []


def test_single_product_has_nothing_differing() -> None:
    result = compare_products([_product("X", 80, ["Water", "Sugar"])])
    assert result.ranked_order == ["X"]
    assert result.differing_ingredients == []


def test_rank_and_differing_ingredients() -> None:
    x = _product("X", 80, ["Water", "Sugar"], warnings=1)
    y = _product("Y", 60, ["Water", "Salt"])
    z = _product("Z", 70, ["Water"])
    result = compare_products([x, y, z])

    assert result.ranked_order == ["X", "Z", "Y"]
    assert [d.ingredient_name for d in result.differing_ingredients] == ["Sugar", "Salt"]
    assert result.differing_ingredients[0].present_in == ["X"]
    assert result.differing_ingredients[1].present_in == ["Y"]
    assert result.summary == "X ranks highest with a score of 80. It has 1 warnings based on your profile."


def test_ties_keep_input_order() -> None:
    result = compare_products([_product("A", 70, []), _product("B", 70, []), _product("C", 90, [])])
    assert result.ranked_order == ["C", "A", "B"]


def test_repeated_ingredient_counts_once_per_product() -> None:
    result = compare_products([_product("A", 50, ["Water", "Water"]), _product("B", 60, ["Sugar"])])
    water = next(d for d in result.differing_ingredients if d.ingredient_name == "Water")
    assert water.present_in == ["A"]


def test_rating_comes_from_first_product_with_the_ingredient() -> None:
    a = _product("A", 50, ["Sugar"], ratings={"Sugar": "warning"})
    b = _product("B", 60, ["Salt"])
    c = _product("C", 70, ["Sugar"], ratings={"Sugar": "safe"})
    result = compare_products([a, b, c])
    assert _rating(result, "Sugar") == "warning"
    sugar = next(d for d in result.differing_ingredients if d.ingredient_name == "Sugar")
    assert sugar.present_in == ["A", "C"]


def test_ingredient_in_every_product_is_not_differing() -> None:
    result = compare_products([_product("A", 50, ["Water", "Sugar"]), _product("B", 60, ["Sugar", "Water"])])
    assert result.differing_ingredients == []
