"""Decide whether OCR text is a nutrition-facts panel or an ingredient list (deterministic, no LLM)."""
from typing import Literal

TextKind = Literal["nutrition_table", "ingredient_list"]

NUTRITION_TABLE: TextKind = "nutrition_table"
INGREDIENT_LIST: TextKind = "ingredient_list"

NUTRITION_KEYWORDS = [
    "nutrition facts",
    "nutritional information",
    "serving size",
    "calories",
    "total fat",
    "saturated fat",
    "cholesterol",
    "sodium",
    "carbohydrate",
    "protein",
    "vitamin",
    "daily value",
]

# An ingredient list may mention one or two of these ("soy protein", "sodium benzoate").
MIN_NUTRITION_KEYWORDS = 3


def nutrition_keyword_count(text: str) -> int:
    lower = (text or "").lower()
    return sum(1 for keyword in NUTRITION_KEYWORDS if keyword in lower)


def classify_text(text: str) -> TextKind:
    """Nutrition table if at least 3 distinct panel keywords appear, otherwise ingredient list."""
    if nutrition_keyword_count(text) >= MIN_NUTRITION_KEYWORDS:
        return NUTRITION_TABLE
    return INGREDIENT_LIST


def is_nutrition_table(text: str) -> bool:
    return classify_text(text) == NUTRITION_TABLE
