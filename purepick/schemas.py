"""
Data shapes for the ingredient analysis pipeline.

- Ingredient / Product: the finished, immutable analysis of one scan.
- UserProfile: the consumer's allergies and preferences (read-only input).
- NutritionFacts: intermediate parse of a nutrition-facts panel.
- OracleRequest / OracleAnalysis: what we send to and accept from the LLM analyzer.
- ComparisonResult: ranking of several analyzed products.
"""
from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer

HealthRating = Literal["safe", "caution", "warning", "danger"]
LetterGrade = Literal["A", "B", "C", "D", "F"]
SeverityLevel = Literal["mild", "moderate", "severe"]

HEALTH_RATING_ORDER: Dict[str, int] = {"safe": 0, "caution": 1, "warning": 2, "danger": 3}
LETTER_GRADES = ("A", "B", "C", "D", "F")

DEFAULT_SCORE = 50
DEFAULT_GRADE = "C"
DEFAULT_CONFIDENCE = 0.5
DEFAULT_RATING = "caution"
DEFAULT_DISCLAIMER = "This information is educational and not medical or professional advice."


def rating_severity(rating: str) -> int:
    """Ordinal severity of a health rating (safe=0 … danger=3)."""
    return HEALTH_RATING_ORDER[rating]


# --- Analyzed product (output of the pipeline; never mutated) ---

class Ingredient(BaseModel):
    """One analyzed ingredient (or nutrient, for nutrition panels)."""

    model_config = ConfigDict(frozen=True)

    name: str
    category: str
    description: str
    health_rating: HealthRating
    concerns: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    is_vegan: bool
    is_natural: bool
    tags: List[str] = Field(default_factory=list)  # allergen, irritant, avoid, ...


class Product(BaseModel):
    """One scan's assessment. A rescan produces a new Product with a new id."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    brand: str
    category: str
    image_ref: Optional[str] = None
    barcode: Optional[str] = None
    ingredients: List[Ingredient] = Field(default_factory=list)
    raw_ingredient_text: str
    overall_score: int = Field(ge=0, le=100)
    letter_grade: LetterGrade
    personalized_warnings: List[str] = Field(default_factory=list)
    personalized_advice: List[str] = Field(default_factory=list)
    confidence: float = Field(default=DEFAULT_CONFIDENCE, ge=0.0, le=1.0)
    disclaimer: str = DEFAULT_DISCLAIMER
    degraded: bool = False  # True when built by the heuristic fallback, not the oracle
    scanned_at: datetime


# --- Consumer profile (owned by the app shell) ---

class Allergy(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    severity: SeverityLevel = "moderate"


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    allergies: List[Allergy] = Field(default_factory=list)
    sensitivities: List[str] = Field(default_factory=list)
    dietary_preferences: List[str] = Field(default_factory=list)
    priorities: List[str] = Field(default_factory=list)
    avoid_list: List[str] = Field(default_factory=list)
    seek_list: List[str] = Field(default_factory=list)
    onboarding_complete: bool = False


# --- Nutrition panel (intermediate, not persisted) ---

class Nutrient(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    amount: str  # number + unit, e.g. "170mg"
    daily_value_percent: Optional[str] = None  # e.g. "8%"


class NutritionFacts(BaseModel):
    model_config = ConfigDict(frozen=True)

    serving_size: Optional[str] = None
    calories: Optional[str] = None
    nutrients: List[Nutrient] = Field(default_factory=list)


# --- Comparison ---

class DifferingIngredient(BaseModel):
    """An ingredient that is not shared by every compared product."""

    model_config = ConfigDict(frozen=True)

    ingredient_name: str
    present_in: List[str] = Field(default_factory=list)  # product names, no duplicates
    rating: HealthRating


class ComparisonResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ranked_order: List[str] = Field(default_factory=list)  # product ids, best first
    summary: str
    differing_ingredients: List[DifferingIngredient] = Field(default_factory=list)


# --- Oracle request (what we send to the LLM analyzer) ---

class ProfileSummary(BaseModel):
    """Profile fields relevant to the analysis. Empty fields are left out of the payload."""

    allergies: List[str] = Field(default_factory=list)  # "peanut (severe)"
    sensitivities: List[str] = Field(default_factory=list)
    dietary_preferences: List[str] = Field(default_factory=list, serialization_alias="dietaryPreferences")
    priorities: List[str] = Field(default_factory=list)
    avoid_list: List[str] = Field(default_factory=list, serialization_alias="avoidList")
    seek_list: List[str] = Field(default_factory=list, serialization_alias="seekList")

    def is_empty(self) -> bool:
        return not any(
            [self.allergies, self.sensitivities, self.dietary_preferences, self.priorities, self.avoid_list, self.seek_list]
        )

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler):
        return {k: v for k, v in handler(self).items() if v}


class OracleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_name: str = Field(alias="productName")
    product_category: str = Field(alias="productCategory")
    raw_ingredients: str = Field(alias="rawIngredients")
    user_profile: Optional[ProfileSummary] = Field(default=None, alias="userProfile")
    country: Optional[str] = None

    def to_payload(self) -> dict:
        """JSON-ready dict with camelCase keys; absent optional fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Oracle response (untrusted; every field defaulted) ---

class OracleProductInfo(BaseModel):
    name: str = ""
    category: str = ""


class OracleIngredient(BaseModel):
    name: str
    category: str = "Unknown"
    description: str = ""
    healthRating: HealthRating = DEFAULT_RATING
    concerns: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    isVegan: bool = False
    isNatural: bool = False
    tags: List[str] = Field(default_factory=list)

    @field_validator("healthRating", mode="before")
    @classmethod
    def _known_rating(cls, v):
        v = str(v).strip().lower()
        return v if v in HEALTH_RATING_ORDER else DEFAULT_RATING


class OracleIssue(BaseModel):
    ingredient: str = ""
    tags: List[str] = Field(default_factory=list)
    severity: Literal["low", "medium", "high"] = "medium"
    confidence: float = DEFAULT_CONFIDENCE
    explanation: str = ""
    advice: str = ""

    @field_validator("severity", mode="before")
    @classmethod
    def _known_severity(cls, v):
        v = str(v).strip().lower()
        return v if v in ("low", "medium", "high") else "medium"


class ScoreBreakdown(BaseModel):
    allergy_risk: int = DEFAULT_SCORE
    toxicological_concerns: int = DEFAULT_SCORE
    nutrition_or_usage: int = DEFAULT_SCORE
    user_priority_alignment: int = DEFAULT_SCORE


class AnalysisSummary(BaseModel):
    main_takeaway: str = ""
    recommended_next_steps: List[str] = Field(default_factory=list)


class OracleAnalysis(BaseModel):
    """LLM analysis result. Missing fields take the documented defaults."""

    product: OracleProductInfo = Field(default_factory=OracleProductInfo)
    ingredients: List[OracleIngredient] = Field(default_factory=list)
    issues: List[OracleIssue] = Field(default_factory=list)
    overall_rating: int = Field(default=DEFAULT_SCORE, ge=0, le=100)
    letter_grade: LetterGrade = DEFAULT_GRADE
    score_breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    personalized_warnings: List[str] = Field(default_factory=list)
    personalized_advice: List[str] = Field(default_factory=list)
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)
    confidence: float = Field(default=DEFAULT_CONFIDENCE, ge=0.0, le=1.0)
    disclaimer: str = DEFAULT_DISCLAIMER

    @field_validator("letter_grade", mode="before")
    @classmethod
    def _known_grade(cls, v):
        v = str(v).strip().upper()[:1]
        return v if v in LETTER_GRADES else DEFAULT_GRADE


# --- Barcode lookup (external catalog) ---

class BarcodeProduct(BaseModel):
    name: str = ""
    brand: str = ""
    category: str = ""
    ingredients_text: str = ""
    image_url: Optional[str] = None
    found: bool = False
