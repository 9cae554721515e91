"""
Analysis step: OCR text (+ product metadata + user profile) → Product.

1. Classify the text and prepare what the oracle should read (cleaned ingredient list,
   or a formatted nutrition panel).
2. Ask the oracle (LLM analyzer) for a JSON assessment, with a bounded wait.
3. Parse the answer; one bracket-balancing repair if it was cut off.
4. Sanitize and default every field before it reaches the data model.

analyze_product() never raises: any failure ends in the heuristic fallback (degraded=True).
"""
import asyncio
import json
import os
from pathlib import Path
from typing import Any, Callable, Optional
from purepick.audit import log_event
from purepick.barcode import lookup_barcode
from purepick.classify import NUTRITION_TABLE, TextKind, classify_text
from purepick.fallback import analyze_fallback
from purepick.ingredients import extract_ingredients
from purepick.llm import (
    complete,
    extract_json_from_response,
    get_model,
    get_timeout,
    post_json,
    repair_truncated_json,
)
from purepick.nutrition import extract_nutrition, format_for_analysis
from purepick.schemas import (
    DEFAULT_DISCLAIMER,
    BarcodeProduct,
    Ingredient,
    OracleAnalysis,
    OracleRequest,
    Product,
    ProfileSummary,
    UserProfile,
)
from purepick.utils import generate_product_id, utcnow

PROMPT_VERSION = os.getenv("PROMPT_VERSION", "ingredient-analysis-001")

Oracle = Callable[[OracleRequest], str]

ANALYSIS_SYSTEM = """You are an expert ingredient analyst for consumer products (food, cosmetics, household, supplements).
You receive a JSON request with productName, productCategory, rawIngredients (cleaned OCR text or a nutrition panel),
and optionally userProfile (allergies, sensitivities, dietaryPreferences, priorities, avoidList, seekList) and country.
Output ONLY valid JSON matching this schema (no markdown, no explanation outside JSON):

{
  "product": {"name": "string", "category": "string"},
  "ingredients": [
    {
      "name": "canonical ingredient name",
      "category": "e.g. Sweetener, Preservative, Emulsifier, Nutrient",
      "description": "one plain-language sentence",
      "healthRating": "safe | caution | warning | danger",
      "concerns": ["short strings"],
      "benefits": ["short strings"],
      "isVegan": true or false,
      "isNatural": true or false,
      "tags": ["allergen", "irritant", "endocrine disruptor", "nutritional concern", ...]
    }
  ],
  "issues": [
    {"ingredient": "string", "tags": [], "severity": "low | medium | high", "confidence": 0.0, "explanation": "string", "advice": "string"}
  ],
  "overall_rating": 0-100 (100 = lowest concern),
  "letter_grade": "A | B | C | D | F",
  "score_breakdown": {"allergy_risk": 0, "toxicological_concerns": 0, "nutrition_or_usage": 0, "user_priority_alignment": 0},
  "personalized_warnings": ["strings"],
  "personalized_advice": ["strings"],
  "summary": {"main_takeaway": "string", "recommended_next_steps": ["strings"]},
  "confidence": 0.0-1.0,
  "disclaimer": "This information is educational and not medical or professional advice."
}

Rules:
- Normalize the text into an ordered list of canonical ingredient names; merge synonyms; keep label order.
- Be neutral and precise. No medical diagnoses. Distinguish proven risks from potential or dose-dependent concerns.
- If the user profile lists allergies, avoid-list or priorities, raise related issues and name the conflicting ingredients in personalized_warnings.
- For a nutrition panel, treat each nutrient as an ingredient and flag high sodium, sugar, saturated or trans fat.
- Analyze at most 30 ingredients so the answer is not cut off.
"""


# --- Preparing the request ---

def prepare_analysis_text(raw_text: str) -> tuple[TextKind, str]:
    """Classify OCR text and return what the oracle should read."""
    kind = classify_text(raw_text)
    if kind == NUTRITION_TABLE:
        return kind, format_for_analysis(extract_nutrition(raw_text))
    # Empty extraction is a failure to find the list, not an empty product.
    return kind, extract_ingredients(raw_text) or raw_text


def build_profile_summary(profile: UserProfile | None) -> ProfileSummary | None:
    """Profile fields the oracle should weigh; None when the profile has nothing to say."""
    if profile is None:
        return None
    summary = ProfileSummary(
        allergies=[f"{a.name} ({a.severity})" for a in profile.allergies],
        sensitivities=list(profile.sensitivities),
        dietary_preferences=list(profile.dietary_preferences),
        priorities=list(profile.priorities),
        avoid_list=list(profile.avoid_list),
        seek_list=list(profile.seek_list),
    )
    return None if summary.is_empty() else summary


def build_oracle_request(
    product_name: str,
    category: str,
    analysis_text: str,
    profile: UserProfile | None = None,
    region: str | None = None,
) -> OracleRequest:
    return OracleRequest(
        product_name=product_name,
        product_category=category,
        raw_ingredients=analysis_text,
        user_profile=build_profile_summary(profile),
        country=region or None,
    )


def build_user_message(request: OracleRequest) -> str:
    """JSON request for the LLM."""
    payload = json.dumps(request.to_payload(), indent=2, ensure_ascii=False)
    return "Analyze this product and return the JSON assessment.\n\nRequest:\n" + payload


# --- Oracle transports ---

def llm_oracle(request: OracleRequest) -> str:
    """Ask the configured chat model directly."""
    return complete(ANALYSIS_SYSTEM, build_user_message(request), model=get_model(), timeout=get_timeout())


def proxy_oracle(request: OracleRequest) -> str:
    """POST the request to an analysis proxy (ORACLE_PROXY_URL) that fronts the model."""
    url = os.getenv("ORACLE_PROXY_URL")
    if not url:
        raise ValueError("ORACLE_PROXY_URL not set. Set ORACLE_TRANSPORT=chat or point ORACLE_PROXY_URL at the proxy.")
    return post_json(url, request.to_payload(), timeout=get_timeout())


def get_oracle() -> Oracle:
    """Oracle transport from ORACLE_TRANSPORT: chat (default) or proxy."""
    transport = (os.getenv("ORACLE_TRANSPORT") or "chat").strip().lower()
    if transport == "proxy":
        return proxy_oracle
    return llm_oracle


# --- Sanitizing the oracle's answer ---

def _as_score(value: Any) -> int | None:
    try:
        return max(0, min(100, int(round(float(value)))))
    except (TypeError, ValueError, OverflowError):
        return None


def _as_confidence(value: Any) -> float | None:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if v != v:  # NaN
        return None
    return max(0.0, min(1.0, v))


def _as_str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and not isinstance(v, (dict, list)) and str(v).strip()]
    return []


def _as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v in ("true", "yes"):
            return True
        if v in ("false", "no"):
            return False
    return None


def _as_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    s = str(value).strip()
    return s or None


def _put(out: dict, key: str, value: Any) -> None:
    if value is not None:
        out[key] = value


def _normalize_ingredient(item: Any) -> dict | None:
    if isinstance(item, str):
        return {"name": item.strip()} if item.strip() else None
    if not isinstance(item, dict):
        return None
    name = _as_str(item.get("name"))
    if not name:
        return None
    out: dict = {"name": name}
    _put(out, "category", _as_str(item.get("category")))
    _put(out, "description", _as_str(item.get("description")))
    _put(out, "healthRating", _as_str(item.get("healthRating", item.get("health_rating"))))
    out["concerns"] = _as_str_list(item.get("concerns"))
    out["benefits"] = _as_str_list(item.get("benefits"))
    out["tags"] = _as_str_list(item.get("tags"))
    _put(out, "isVegan", _as_bool(item.get("isVegan")))
    _put(out, "isNatural", _as_bool(item.get("isNatural")))
    return out


def _normalize_issue(item: Any) -> dict | None:
    if not isinstance(item, dict):
        return None
    out: dict = {"tags": _as_str_list(item.get("tags"))}
    for key in ("ingredient", "severity", "explanation", "advice"):
        _put(out, key, _as_str(item.get(key)))
    _put(out, "confidence", _as_confidence(item.get("confidence")))
    return out


def _normalize_analysis(data: dict) -> dict:
    """Coerce an untrusted oracle payload into something OracleAnalysis accepts; unusable values fall back to defaults."""
    out: dict = {}

    product = data.get("product")
    if isinstance(product, dict):
        out["product"] = {}
        for key in ("name", "category"):
            _put(out["product"], key, _as_str(product.get(key)))

    ingredients = data.get("ingredients")
    if isinstance(ingredients, list):
        out["ingredients"] = [i for i in (_normalize_ingredient(x) for x in ingredients) if i]
    issues = data.get("issues")
    if isinstance(issues, list):
        out["issues"] = [i for i in (_normalize_issue(x) for x in issues) if i]

    _put(out, "overall_rating", _as_score(data.get("overall_rating")))
    _put(out, "letter_grade", _as_str(data.get("letter_grade")))
    _put(out, "confidence", _as_confidence(data.get("confidence")))
    _put(out, "disclaimer", _as_str(data.get("disclaimer")))
    out["personalized_warnings"] = _as_str_list(data.get("personalized_warnings"))
    out["personalized_advice"] = _as_str_list(data.get("personalized_advice"))

    breakdown = data.get("score_breakdown")
    if isinstance(breakdown, dict):
        out["score_breakdown"] = {}
        for key, value in breakdown.items():
            _put(out["score_breakdown"], str(key), _as_score(value))

    summary = data.get("summary")
    if isinstance(summary, str):
        out["summary"] = {"main_takeaway": summary}
    elif isinstance(summary, dict):
        out["summary"] = {"recommended_next_steps": _as_str_list(summary.get("recommended_next_steps"))}
        _put(out["summary"], "main_takeaway", _as_str(summary.get("main_takeaway")))
    return out


def parse_oracle_response(
    body: str,
    audit_path: Path | None = None,
    run_id: str | None = None,
    model_name: str | None = None,
) -> OracleAnalysis | None:
    """Parse → (one repair) → validate. None when the body cannot be turned into an analysis."""
    try:
        data = extract_json_from_response(body)
    except (ValueError, RecursionError) as e:
        log_event(audit_path, run_id, "oracle_repair_attempt", {"error": str(e), "length": len(body)}, model_name=model_name)
        try:
            data = json.loads(repair_truncated_json(body))
        except (ValueError, RecursionError) as e2:
            log_event(audit_path, run_id, "oracle_failed", {"stage": "parse", "error": str(e2)}, model_name=model_name)
            return None
        log_event(audit_path, run_id, "oracle_repaired", {}, model_name=model_name)

    if not isinstance(data, dict):
        log_event(audit_path, run_id, "oracle_failed", {"stage": "parse", "error": "not a JSON object"}, model_name=model_name)
        return None
    try:
        return OracleAnalysis.model_validate(_normalize_analysis(data))
    except Exception as e:
        log_event(audit_path, run_id, "oracle_failed", {"stage": "validate", "error": str(e)}, model_name=model_name)
        return None


def _to_product(
    analysis: OracleAnalysis,
    analysis_text: str,
    product_name: str,
    category: str,
    brand: str | None,
    barcode: str | None,
    image_ref: str | None,
) -> Product:
    ingredients = [
        Ingredient(
            name=i.name,
            category=i.category or "Unknown",
            description=i.description,
            health_rating=i.healthRating,
            concerns=i.concerns,
            benefits=i.benefits,
            is_vegan=i.isVegan,
            is_natural=i.isNatural,
            tags=i.tags,
        )
        for i in analysis.ingredients
    ]
    # letter_grade is taken as the oracle gave it; it is not recomputed from overall_rating.
    return Product(
        id=generate_product_id(),
        name=analysis.product.name or product_name,
        brand=brand or "Unknown Brand",
        category=analysis.product.category or category,
        image_ref=image_ref,
        barcode=barcode,
        ingredients=ingredients,
        raw_ingredient_text=analysis_text,
        overall_score=analysis.overall_rating,
        letter_grade=analysis.letter_grade,
        personalized_warnings=analysis.personalized_warnings,
        personalized_advice=analysis.personalized_advice,
        confidence=analysis.confidence,
        disclaimer=analysis.disclaimer or DEFAULT_DISCLAIMER,
        degraded=False,
        scanned_at=utcnow(),
    )


# --- Entry points ---

def analyze_product(
    product_name: str | None,
    category: str | None,
    raw_text: str,
    profile: UserProfile | None = None,
    region: str | None = None,
    *,
    brand: str | None = None,
    barcode: str | None = None,
    image_ref: str | None = None,
    oracle: Oracle | None = None,
    audit_path: Path | None = None,
    run_id: str | None = None,
) -> Product:
    """Analyze one scan. Always returns a Product; degraded=True means the heuristic fallback was used."""
    product_name = product_name or "Unknown Product"
    category = category or "Uncategorized"
    raw_text = raw_text or ""
    model_name = get_model() if oracle is None else None
    log_event(audit_path, run_id, "analysis_requested", {"length": len(raw_text), "prompt_version": PROMPT_VERSION})

    def fallback(stage: str, error: str) -> Product:
        log_event(audit_path, run_id, "fallback_used", {"stage": stage, "error": error}, model_name=model_name)
        return analyze_fallback(
            raw_text, profile, product_name=product_name, category=category, brand=brand, barcode=barcode, image_ref=image_ref
        )

    try:
        kind, analysis_text = prepare_analysis_text(raw_text)
        request = build_oracle_request(product_name, category, analysis_text, profile, region)
    except Exception as e:
        return fallback("prepare", str(e))
    log_event(audit_path, run_id, "text_classified", {"kind": kind, "analysis_length": len(analysis_text)})

    try:
        body = (oracle or get_oracle())(request)
        if not body or not body.strip():
            raise ValueError("Empty response from oracle")
    except (Exception, asyncio.CancelledError) as e:
        log_event(audit_path, run_id, "oracle_failed", {"stage": "call", "error": str(e)}, model_name=model_name)
        return fallback("call", str(e))

    analysis = parse_oracle_response(body, audit_path, run_id, model_name)
    if analysis is None:
        return fallback("parse", "unusable oracle response")

    try:
        product = _to_product(analysis, analysis_text, product_name, category, brand, barcode, image_ref)
    except Exception as e:
        return fallback("build", str(e))
    log_event(
        audit_path,
        run_id,
        "analysis_ok",
        {"product_name": product.name, "ingredients_count": len(product.ingredients), "overall_score": product.overall_score},
        model_name=model_name,
    )
    return product


def analyze_barcode(
    barcode: str,
    profile: UserProfile | None = None,
    region: str | None = None,
    *,
    lookup: Callable[[str], BarcodeProduct] | None = None,
    oracle: Oracle | None = None,
    audit_path: Path | None = None,
    run_id: str | None = None,
) -> Optional[Product]:
    """Look up a barcode and analyze its catalog ingredient text like OCR text. None if not found or no ingredients."""
    found = (lookup or lookup_barcode)(barcode)
    log_event(audit_path, run_id, "barcode_lookup", {"barcode": barcode, "found": found.found})
    if not found.found or not found.ingredients_text.strip():
        return None
    return analyze_product(
        found.name or None,
        found.category or None,
        found.ingredients_text,
        profile,
        region,
        brand=found.brand or None,
        barcode=barcode,
        image_ref=found.image_url,
        oracle=oracle,
        audit_path=audit_path,
        run_id=run_id,
    )
