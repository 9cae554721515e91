"""
Comparison step: analyzed Products → ComparisonResult (deterministic, no LLM).

Ranks by overall score (stable: ties keep the caller's order) and lists the ingredients
that are not shared by every product.
"""
from typing import Dict, List
from purepick.schemas import ComparisonResult, DifferingIngredient, HealthRating, Product

MAX_COMPARE_PRODUCTS = 5
NO_PRODUCTS_SUMMARY = "No products to compare"


def _summary(best: Product) -> str:
    return (
        f"{best.name} ranks highest with a score of {best.overall_score}. "
        f"It has {len(best.personalized_warnings)} warnings based on your profile."
    )


def compare_products(products: List[Product]) -> ComparisonResult:
    """Rank products and find differing ingredients."""
    if not products:
        return ComparisonResult(ranked_order=[], summary=NO_PRODUCTS_SUMMARY, differing_ingredients=[])

    ranked = sorted(products, key=lambda p: p.overall_score, reverse=True)

    present_in: Dict[str, List[str]] = {}
    product_count: Dict[str, int] = {}
    rating: Dict[str, HealthRating] = {}
    for product in products:
        seen = set()
        for ing in product.ingredients:
            if ing.name in seen:
                continue
            seen.add(ing.name)
            product_count[ing.name] = product_count.get(ing.name, 0) + 1
            names = present_in.setdefault(ing.name, [])
            if product.name not in names:
                names.append(product.name)
            rating.setdefault(ing.name, ing.health_rating)

    differing = [
        DifferingIngredient(ingredient_name=name, present_in=present_in[name], rating=rating[name])
        for name in present_in
        if product_count[name] < len(products)
    ]

    return ComparisonResult(
        ranked_order=[p.id for p in ranked],
        summary=_summary(ranked[0]),
        differing_ingredients=differing,
    )
