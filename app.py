"""
Streamlit UI: paste label text (OCR output), analyze it, see ingredients, score and warnings,
then compare products analyzed in this session.

Run: streamlit run app.py
"""
from pathlib import Path
import streamlit as st
from purepick.analyze import analyze_product
from purepick.audit import log_event
from purepick.categories import detect_category
from purepick.compare import MAX_COMPARE_PRODUCTS, compare_products
from purepick.schemas import Allergy, UserProfile
from purepick.utils import ensure_output_dir, generate_run_id

PROJECT_ROOT = Path(__file__).resolve().parent
OUTPUTS = PROJECT_ROOT / "outputs"

RATING_BADGE = {"safe": "🟢 safe", "caution": "🟡 caution", "warning": "🟠 warning", "danger": "🔴 danger"}


def _split(text: str) -> list[str]:
    return [s.strip() for s in text.split(",") if s.strip()]


st.set_page_config(page_title="Ingredient Check", layout="wide")
st.title("Ingredient Check")
st.caption("Paste label text → Classify (ingredients / nutrition panel) → Extract → AI analysis (or offline heuristic) → Score")

if "products" not in st.session_state:
    st.session_state.products = []

with st.sidebar:
    st.subheader("Your profile")
    allergies = _split(st.text_input("Allergies (comma-separated)", ""))
    severity = st.selectbox("Allergy severity", ["mild", "moderate", "severe"], index=1)
    avoid = _split(st.text_input("Ingredients to avoid", ""))
    seek = _split(st.text_input("Ingredients to seek", ""))
    dietary = st.multiselect("Dietary preferences", ["vegan", "vegetarian", "gluten-free", "dairy-free", "low sugar", "low sodium"])
    region = st.text_input("Country / region", "")
profile = UserProfile(
    allergies=[Allergy(name=a, severity=severity) for a in allergies],
    dietary_preferences=dietary,
    avoid_list=avoid,
    seek_list=seek,
)

col1, col2, col3 = st.columns(3)
name = col1.text_input("Product name", "")
brand = col2.text_input("Brand", "")
category = col3.text_input("Category (optional)", "")
label_text = st.text_area("Label text (OCR output)", height=180, placeholder="Ingredients: Water, Sugar, ...")

if st.button("Analyze", type="primary") and label_text.strip():
    run_id = generate_run_id()
    out_dir = ensure_output_dir(OUTPUTS, run_id)
    audit_path = out_dir / "audit.jsonl"
    log_event(audit_path, run_id, "input_received", {"length": len(label_text)})

    with st.spinner("Analyzing ingredients…"):
        product = analyze_product(
            name or None,
            category or detect_category(label_text),
            label_text,
            profile,
            region or None,
            brand=brand or None,
            audit_path=audit_path,
            run_id=run_id,
        )
    (out_dir / "product.json").write_text(product.model_dump_json(indent=2), encoding="utf-8")
    log_event(audit_path, run_id, "outputs_written", {"product_id": product.id})
    st.session_state.products.append(product)

    if product.degraded:
        st.warning("Offline analysis: the AI service was unavailable, ratings below are placeholders.")
    st.success(f"{product.name} ({product.brand}, {product.category})")
    m1, m2, m3 = st.columns(3)
    m1.metric("Score", f"{product.overall_score}/100")
    m2.metric("Grade", product.letter_grade)
    m3.metric("Confidence", f"{product.confidence:.0%}")

    for w in product.personalized_warnings:
        st.error(w)
    for a in product.personalized_advice:
        st.info(a)

    st.subheader("Ingredients")
    if product.ingredients:
        st.dataframe(
            [
                {
                    "Name": i.name,
                    "Category": i.category,
                    "Rating": RATING_BADGE[i.health_rating],
                    "Concerns": "; ".join(i.concerns),
                    "Vegan": i.is_vegan,
                    "Natural": i.is_natural,
                    "Tags": ", ".join(i.tags),
                }
                for i in product.ingredients
            ],
            use_container_width=True,
        )
    else:
        st.info("No ingredients found")
    with st.expander("Analyzed text"):
        st.text(product.raw_ingredient_text)
    st.caption(product.disclaimer)

products = st.session_state.products
if len(products) >= 2:
    st.subheader("Compare")
    labels = {f"{p.name} ({p.scanned_at:%H:%M:%S}, {p.id[:8]})": p for p in products}
    chosen = st.multiselect("Products", list(labels), default=list(labels)[-MAX_COMPARE_PRODUCTS:], max_selections=MAX_COMPARE_PRODUCTS)
    if len(chosen) >= 2:
        selected = [labels[c] for c in chosen]
        result = compare_products(selected)
        by_id = {p.id: p for p in selected}
        st.write(result.summary)
        st.dataframe(
            [{"Rank": n, "Product": by_id[pid].name, "Score": by_id[pid].overall_score, "Grade": by_id[pid].letter_grade}
             for n, pid in enumerate(result.ranked_order, start=1)],
            use_container_width=True,
        )
        if result.differing_ingredients:
            st.dataframe(
                [{"Ingredient": d.ingredient_name, "In": ", ".join(d.present_in), "Rating": RATING_BADGE[d.rating]}
                 for d in result.differing_ingredients],
                use_container_width=True,
            )
