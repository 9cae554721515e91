"""Category lookups: image labels, OCR text, catalog tags."""
from purepick.categories import detect_category, map_catalog_category, suggest_category


def test_suggest_category_uses_best_scoring_label() -> None:
    labels = [("Food", 0.55), ("Shampoo bottle", 0.91), ("Plastic", 0.97)]
    assert suggest_category(labels) == ("Hair Care", 0.91)


def test_suggest_category_without_match() -> None:
    assert suggest_category([("Plastic", 0.97)]) == ("Uncategorized", 0.0)
    assert suggest_category([]) == ("Uncategorized", 0.0)


def test_detect_category_from_text() -> None:
    assert detect_category("Ingredients: Pasteurized milk, cheese cultures, salt") == "Dairy"
    assert detect_category("Potato chips. Ingredients: potatoes, sunflower oil") == "Snacks"
    assert detect_category("Ingredients: water") == "Food & Beverages"
    assert detect_category("") == "Food & Beverages"


def test_map_catalog_category() -> None:
    assert map_catalog_category(["en:plant-based-foods", "en:beverages"]) == "Food & Beverages"
    assert map_catalog_category(["en:shampoos"]) == "Hair Care"
    assert map_catalog_category(["en:pet-food"]) == "Pet Food"
    assert map_catalog_category([]) == "Uncategorized"
