"""
Nutrition panel step: OCR text of a nutrition-facts table → NutritionFacts → analysis text.

Line-oriented and tolerant: lines that match no known shape are dropped, since OCR of
panels is full of rules, headers and half-read numbers.
"""
import re
from typing import List, Optional
from purepick.schemas import Nutrient, NutritionFacts

_AMOUNT = r"\d+(?:\.\d+)?\s*(?:mcg|mg|g|iu)\b"

# Tried in order; only the first match is used.
NUTRIENT_PATTERNS = [
    # "Total Fat 8g (10%)", "Total Fat 8g (10% DV)"
    re.compile(rf"^([\w\s]+?)\s+({_AMOUNT})\s*\(\s*(\d+(?:\.\d+)?)\s*%?\s*(?:dv|daily value)?\s*\)", re.IGNORECASE),
    # "Sodium 170mg 8%"
    re.compile(rf"^([\w\s]+?)\s+({_AMOUNT})\s+(\d+(?:\.\d+)?)\s*%", re.IGNORECASE),
    # "Protein 3g"
    re.compile(rf"^([\w\s]+?)\s+({_AMOUNT})$", re.IGNORECASE),
]

HEADER_ARTIFACTS = ["amount per", "% daily value"]

_SERVING_RE = re.compile(r"serving size\s*:?|serving\s*:", re.IGNORECASE)
_CALORIES_RE = re.compile(r"calories\s*:?\s*(\d+)", re.IGNORECASE)

ANALYSIS_HEADER = "Product Nutrition Analysis Request:"
ANALYSIS_NOTE = (
    "[Note: This is a nutrition facts table. Analyze the nutritional content for health implications, "
    "high sodium/sugar/fat concerns, and provide health advice based on these values. "
    "Treat each nutrient as an analyzable component.]"
)


def _match_nutrient(line: str) -> Optional[Nutrient]:
    for pattern in NUTRIENT_PATTERNS:
        m = pattern.match(line)
        if not m:
            continue
        name = m.group(1).strip()
        if any(h in name.lower() for h in HEADER_ARTIFACTS):
            return None
        pct = m.group(3) if m.lastindex and m.lastindex >= 3 else None
        return Nutrient(
            name=name,
            amount=m.group(2).strip(),
            daily_value_percent=f"{pct}%" if pct else None,
        )
    return None


def extract_nutrition(text: str) -> NutritionFacts:
    """Parse serving size, calories and nutrient rows from a nutrition panel."""
    lines = [l.strip() for l in (text or "").split("\n")]
    serving_size: Optional[str] = None
    calories: Optional[str] = None
    nutrients: List[Nutrient] = []

    for line in lines:
        if not line:
            continue
        lower = line.lower()

        if "serving size" in lower or "serving:" in lower:
            serving_size = _SERVING_RE.sub("", line, count=1).strip() or serving_size
            continue

        if "calories" in lower and "from" not in lower:
            m = _CALORIES_RE.search(line)
            if m and calories is None:
                calories = m.group(1)
            continue

        nutrient = _match_nutrient(line)
        if nutrient:
            nutrients.append(nutrient)

    return NutritionFacts(serving_size=serving_size, calories=calories, nutrients=nutrients)


def format_for_analysis(facts: NutritionFacts) -> str:
    """Render the panel as ingredient-shaped text for the oracle prompt."""
    lines = [ANALYSIS_HEADER, ""]
    if facts.serving_size:
        lines.append(f"Serving Size: {facts.serving_size}")
    if facts.calories:
        lines.append(f"Calories: {facts.calories} per serving")
    if facts.nutrients:
        lines.append("")
        lines.append("Nutritional Content:")
        for n in facts.nutrients:
            line = f"{n.name}: {n.amount}"
            if n.daily_value_percent:
                line += f" ({n.daily_value_percent} of daily value)"
            lines.append(line)
    lines.append("")
    lines.append(ANALYSIS_NOTE)
    return "\n".join(lines)
