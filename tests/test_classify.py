"""Text classification: nutrition panel vs ingredient list."""
from purepick.classify import INGREDIENT_LIST, NUTRITION_TABLE, classify_text, is_nutrition_table, nutrition_keyword_count


def test_nutrition_panel_detected() -> None:
    text = "Nutrition Facts\nServing Size 1 cup (228g)\nCalories 250\nTotal Fat 12g (18%)"
    assert nutrition_keyword_count(text) == 4
    assert classify_text(text) == NUTRITION_TABLE
    assert is_nutrition_table(text) is True


def test_ingredient_list_mentioning_nutrients_stays_ingredient_list() -> None:
    # "protein" and "sodium" appear, but two keywords are not enough
    text = "Ingredients: Water, Soy Protein Isolate, Sodium Benzoate, Natural Flavor"
    assert nutrition_keyword_count(text) == 2
    assert classify_text(text) == INGREDIENT_LIST


def test_three_keywords_is_the_threshold() -> None:
    assert classify_text("sodium, protein, vitamin") == NUTRITION_TABLE


def test_keywords_are_counted_once_and_case_insensitively() -> None:
    assert nutrition_keyword_count("SODIUM sodium Sodium") == 1


def test_empty_text_is_ingredient_list() -> None:
    assert classify_text("") == INGREDIENT_LIST
    assert classify_text(None) == INGREDIENT_LIST
