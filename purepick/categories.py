"""
Product category lookup tables: flat, ordered (category, keywords) pairs.

Three sources need a category: image labels from the OCR provider, the OCR text itself,
and the category tags of a barcode catalog entry.
"""
from typing import Iterable, List, Tuple

DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_TEXT_CATEGORY = "Food & Beverages"

LABEL_CATEGORIES: List[Tuple[str, List[str]]] = [
    ("Skincare", ["skin care", "lotion", "cream", "moisturizer", "serum", "face", "skincare"]),
    ("Hair Care", ["shampoo", "conditioner", "hair", "hair care"]),
    ("Body Care", ["body", "soap", "wash", "shower"]),
    ("Food & Beverages", ["food", "drink", "beverage", "snack", "cereal", "juice"]),
    ("Household Cleaning", ["cleaning", "detergent", "cleaner", "household"]),
    ("Baby Products", ["baby", "infant", "diaper"]),
    ("Oral Care", ["toothpaste", "mouthwash", "dental", "oral"]),
    ("Cosmetics", ["makeup", "cosmetic", "lipstick", "mascara", "foundation"]),
    ("Supplements", ["vitamin", "supplement", "pill", "capsule"]),
    ("Sunscreen", ["sunscreen", "spf", "sun protection"]),
]

TEXT_CATEGORIES: List[Tuple[str, List[str]]] = [
    ("Beverages", ["beverage", "drink", "juice"]),
    ("Snacks", ["snack", "chip", "cookie"]),
    ("Dairy", ["dairy", "milk", "cheese"]),
    ("Meat & Seafood", ["meat", "chicken", "beef"]),
]

# Catalog category (title-cased tag) keyword → app category
CATALOG_CATEGORIES: List[Tuple[str, List[str]]] = [
    ("Food & Beverages", [
        "beverages", "drinks", "snacks", "cereals", "dairy", "meats", "fruits",
        "vegetables", "breads", "sweets", "chocolates",
    ]),
    ("Skincare", ["beauty"]),
    ("Cosmetics", ["cosmetics"]),
    ("Hair Care", ["shampoos", "conditioners"]),
    ("Body Care", ["soaps"]),
    ("Oral Care", ["toothpastes"]),
    ("Baby Products", ["baby"]),
    ("Household Cleaning", ["cleaning"]),
    ("Supplements", ["supplements", "vitamins"]),
]


def suggest_category(labels: Iterable[Tuple[str, float]]) -> Tuple[str, float]:
    """Pick the category whose keyword matches the highest-scoring image label."""
    labels = [(desc.lower(), score) for desc, score in labels]
    best, best_score = DEFAULT_CATEGORY, 0.0
    for category, keywords in LABEL_CATEGORIES:
        for keyword in keywords:
            for desc, score in labels:
                if keyword in desc and score > best_score:
                    best, best_score = category, score
    return best, best_score


def detect_category(text: str) -> str:
    lower = (text or "").lower()
    for category, keywords in TEXT_CATEGORIES:
        if any(k in lower for k in keywords):
            return category
    return DEFAULT_TEXT_CATEGORY


def map_catalog_category(tags: List[str]) -> str:
    """Most specific catalog tag ("en:plant-based-beverages") → app category, else the cleaned tag."""
    if not tags:
        return DEFAULT_CATEGORY
    raw = tags[-1].replace("en:", "").replace("-", " ")
    category = " ".join(word[:1].upper() + word[1:] for word in raw.split())
    lower = category.lower()
    for app_category, keywords in CATALOG_CATEGORIES:
        if any(k in lower for k in keywords):
            return app_category
    return category or DEFAULT_CATEGORY
