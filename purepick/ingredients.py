"""
Ingredient list step: noisy OCR text → cleaned, comma-delimited ingredient text → ingredient names.

1. Locate the ingredient section (section marker, else a heuristic ingredient-looking line).
2. Drop lines that are nutrition rows, boilerplate, metadata or OCR garbage.
3. Reassemble into one line and tidy separators.

extract_ingredients() is a fixed point: running it on its own output changes nothing.
An empty result means extraction failed; callers fall back to the raw text.
"""
import re
from typing import List, Optional

SECTION_MARKERS = [
    "ingredients:",
    "ingredient list:",
    "contains:",
    "made with:",
    "composition:",
    "ingrédients:",  # French
    "ingredientes:",  # Spanish
    "composición:",  # Spanish
    "zutaten:",  # German
    "inhaltsstoffe:",  # German
]

_MARKER_RE = re.compile("|".join(re.escape(m) for m in SECTION_MARKERS), re.IGNORECASE)

# Allergen statements share the marker syntax; a list marker anywhere in the text wins over them.
ALLERGEN_MARKERS = ["contains:"]

# Used only when no section marker is present.
INGREDIENT_HINT_PATTERNS = [
    re.compile(r"\b(?:water|sugar|salt|flour|oil|milk|egg|wheat|corn|soy|rice)\b.*[,;]", re.IGNORECASE),
    re.compile(r"\b\w+\s+(?:acid|extract|powder|syrup|starch|protein)\b", re.IGNORECASE),
    re.compile(r"\b(?:natural|artificial)\s+\w+", re.IGNORECASE),
]

STOP_PHRASES = [
    # nutrition panel
    "nutrition facts",
    "nutritional information",
    "serving size",
    "servings per",
    "amount per serving",
    "calories",
    "total fat",
    "saturated fat",
    "trans fat",
    "cholesterol",
    "total carb",
    "dietary fiber",
    "total sugars",
    "added sugars",
    "% daily value",
    "daily value",
    # allergen / warning boilerplate
    "allergen",
    "allergy",
    "warning",
    "caution",
    "keep refrigerated",
    "storage",
    "store in a cool",
    # manufacturer, dates, lot
    "manufactured by",
    "distributed by",
    "packed by",
    "best before",
    "expiry date",
    "exp date",
    "use by",
    "net weight",
    "net wt",
    "product of",
    "made in",
    "upc",
    "barcode",
    "lot no",
    "lot:",
    "batch no",
    "batch:",
]

_NUMBER_UNIT_LINE = re.compile(r"^\d+\s*(?:g|mg|mcg|iu|%)\s*$", re.IGNORECASE)
_MOSTLY_NUMBERS_LINE = re.compile(r"^\d+[\d\s%.,]*$")
_CALORIES_LINE = re.compile(r"^\d+\s*calories?\s*$", re.IGNORECASE)
_CUP_FRACTION_LINE = re.compile(r"^\d+/\d+\s*cup", re.IGNORECASE)
# "Sodium 170mg 8%": nutrient rows leaking in from a neighbouring panel
_NUTRIENT_ROW_LINE = re.compile(
    r"^[a-z][a-z ]*\s\d+(?:\.\d+)?\s*(?:mcg|mg|g|iu)\b\s*\(?\s*(?:\d+(?:\.\d+)?\s*%)?\s*\)?$", re.IGNORECASE
)
_NON_WORD = re.compile(r"[^\w\s]")
MAX_PUNCTUATION_RATIO = 0.3
MIN_LINE_LENGTH = 3

MAX_INGREDIENTS = 50
MIN_TOKEN_LENGTH = 2
MAX_TOKEN_LENGTH = 100
TOKEN_STOP_WORDS = ["serving", "calorie", "daily value"]
_TOKEN_SPLIT = re.compile(r"[,;•·]")
_NUMERIC_TOKEN = re.compile(r"^\d+[\d\s%]*$")

_MAX_TIDY_PASSES = 10


def _section_start(text: str) -> Optional[int]:
    """Offset where the ingredient section begins, or None if nothing looks like one."""
    markers = list(_MARKER_RE.finditer(text))
    for m in markers:
        if m.group(0).lower() not in ALLERGEN_MARKERS:
            return m.end()
    if markers:
        return markers[0].end()

    hits = [m.start() for m in (p.search(text) for p in INGREDIENT_HINT_PATTERNS) if m]
    if hits:
        earliest = min(hits)
        return text.rfind("\n", 0, earliest) + 1
    return None


def _is_noise_line(line: str) -> bool:
    if len(line) < MIN_LINE_LENGTH:
        return True
    if _NUMBER_UNIT_LINE.match(line) or _MOSTLY_NUMBERS_LINE.match(line):
        return True
    if _CALORIES_LINE.match(line) or _CUP_FRACTION_LINE.match(line):
        return True
    if _NUTRIENT_ROW_LINE.match(line):
        return True
    lower = line.lower()
    if any(phrase in lower for phrase in STOP_PHRASES):
        return True
    # formatting artifacts / OCR garbage
    return len(_NON_WORD.findall(line)) > len(line) * MAX_PUNCTUATION_RATIO


def _truncate_at_marker(text: str) -> str:
    # A second section header ("Contains: milk") ends the ingredient section.
    m = _MARKER_RE.search(text)
    return text[: m.start()] if m else text


def _cleanup_once(text: str) -> str:
    text = re.sub(r"[|\\]", "", text)
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"[,;](?:\s*[,;])+", ",", text)
    text = re.sub(r"\s*,\s*", ", ", text)
    text = re.sub(r"\s*;\s*", "; ", text)
    text = re.sub(r"^(?:\d+\s+)+", "", text)
    text = re.sub(r"(?:\s+\d+(?:\.\d+)?%)+(?=[\s,;]|$)", "", text)
    text = re.sub(r"^[,;\s]+", "", text)
    text = re.sub(r"[,;\s]+$", "", text)
    return text.strip()


def _tidy(text: str) -> str:
    for _ in range(_MAX_TIDY_PASSES):
        tidied = _cleanup_once(_truncate_at_marker(text))
        if tidied == text:
            break
        text = tidied
    return text


def extract_ingredients(text: str) -> str:
    """Return the cleaned ingredient section of OCR text ("" if nothing usable was found)."""
    if not text or not text.strip():
        return ""

    start = _section_start(text)
    candidate = text[start:] if start is not None else text

    kept = []
    for line in candidate.split("\n"):
        line = line.strip()
        if not _is_noise_line(line):
            kept.append(line)

    result = _tidy(" ".join(kept))
    if not result or _is_noise_line(result):
        return ""
    return result


def parse_ingredients(text: str) -> List[str]:
    """Split the cleaned ingredient section into lower-cased ingredient names (at most 50)."""
    cleaned = extract_ingredients(text)
    if not cleaned:
        return []

    names: List[str] = []
    for token in _TOKEN_SPLIT.split(cleaned):
        token = token.strip().strip(".:*").strip().lower()
        if len(token) < MIN_TOKEN_LENGTH or len(token) > MAX_TOKEN_LENGTH:
            continue
        if _NUMERIC_TOKEN.match(token):
            continue
        if any(word in token for word in TOKEN_STOP_WORDS):
            continue
        names.append(token)
        if len(names) == MAX_INGREDIENTS:
            break
    return names
