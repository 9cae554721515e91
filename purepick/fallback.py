"""
Heuristic step: raw OCR text → degraded Product (deterministic, no LLM).

Used only when the oracle is unreachable or its answer is unusable. Every ingredient (or
nutrient, for nutrition panels) gets the same placeholder: rated caution, marked unavailable.
The Product is flagged degraded so the UI can show an offline indicator.
"""
from typing import List
from purepick.classify import is_nutrition_table
from purepick.ingredients import parse_ingredients
from purepick.nutrition import extract_nutrition
from purepick.schemas import Ingredient, Product, UserProfile
from purepick.utils import generate_product_id, utcnow

FALLBACK_SCORE = 50
FALLBACK_GRADE = "C"
FALLBACK_CONFIDENCE = 0.0
UNAVAILABLE_DESCRIPTION = "Analysis unavailable - please try again later."
UNAVAILABLE_CONCERN = "Unable to analyze - AI analysis service unavailable"
FALLBACK_WARNING = "Analysis incomplete - AI service temporarily unavailable"
FALLBACK_ADVICE = "Try scanning again when connected to the internet"
FALLBACK_DISCLAIMER = "Partial analysis: ingredient ratings could not be verified."


def _profile_tags(name: str, profile: UserProfile | None) -> List[str]:
    if profile is None:
        return []
    lower = name.lower()
    tags = []
    if any(a.name and a.name.lower() in lower for a in profile.allergies):
        tags.append("allergen")
    if any(item and item.lower() in lower for item in profile.avoid_list):
        tags.append("avoid")
    return tags


def _display_name(name: str) -> str:
    return name[:1].upper() + name[1:]


def _item_names(raw_text: str) -> List[str]:
    # Nutrition panels contribute their nutrient names; nothing is rated from the numbers.
    if is_nutrition_table(raw_text):
        return [n.name for n in extract_nutrition(raw_text).nutrients]
    return parse_ingredients(raw_text)


def _placeholder_entries(raw_text: str, profile: UserProfile | None) -> List[Ingredient]:
    return [
        Ingredient(
            name=_display_name(name),
            category="Unknown",
            description=UNAVAILABLE_DESCRIPTION,
            health_rating="caution",
            concerns=[UNAVAILABLE_CONCERN],
            benefits=[],
            is_vegan=True,
            is_natural=False,
            tags=_profile_tags(name, profile),
        )
        for name in _item_names(raw_text)
    ]


def analyze_fallback(
    raw_text: str,
    profile: UserProfile | None = None,
    *,
    product_name: str | None = None,
    category: str | None = None,
    brand: str | None = None,
    barcode: str | None = None,
    image_ref: str | None = None,
) -> Product:
    """Build the degraded placeholder Product for raw_text. Pure; never calls the network."""
    raw_text = raw_text or ""
    ingredients = _placeholder_entries(raw_text, profile)

    return Product(
        id=generate_product_id(),
        name=product_name or "Unknown Product",
        brand=brand or "Unknown Brand",
        category=category or "Uncategorized",
        image_ref=image_ref,
        barcode=barcode,
        ingredients=ingredients,
        raw_ingredient_text=raw_text,
        overall_score=FALLBACK_SCORE,
        letter_grade=FALLBACK_GRADE,
        personalized_warnings=[FALLBACK_WARNING],
        personalized_advice=[FALLBACK_ADVICE],
        confidence=FALLBACK_CONFIDENCE,
        disclaimer=FALLBACK_DISCLAIMER,
        degraded=True,
        scanned_at=utcnow(),
    )
