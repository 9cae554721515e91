"""
CLI: run the pipeline on a label.

  analyze:  OCR text (.txt) → classify → extract → oracle (or heuristic) → product.json
  barcode:  barcode → catalog ingredients → same pipeline → product.json
  compare:  product.json files → comparison.json

Outputs go to outputs/<run_id>/ together with audit.jsonl.
"""
import argparse
from pathlib import Path
from purepick.analyze import analyze_barcode, analyze_product
from purepick.audit import log_event
from purepick.categories import DEFAULT_CATEGORY, detect_category, suggest_category
from purepick.compare import MAX_COMPARE_PRODUCTS, compare_products
from purepick.fallback import analyze_fallback
from purepick.schemas import Product, rating_severity
from purepick.utils import ensure_output_dir, generate_run_id, read_product, read_profile, read_text


def _label(value: str) -> tuple[str, float]:
    """argparse type for "description:score" image labels."""
    desc, sep, score = value.rpartition(":")
    if not sep or not desc.strip():
        raise argparse.ArgumentTypeError(f"expected description:score, got {value!r}")
    try:
        return desc.strip(), float(score)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected description:score, got {value!r}") from None


def _label_category(labels: list[tuple[str, float]]) -> str | None:
    if not labels:
        return None
    category, _ = suggest_category(labels)
    return None if category == DEFAULT_CATEGORY else category


def _write_product(product: Product, out_dir: Path, audit_path: Path, run_id: str) -> None:
    (out_dir / "product.json").write_text(product.model_dump_json(indent=2), encoding="utf-8")
    log_event(audit_path, run_id, "outputs_written", {"product_id": product.id})
    if product.degraded:
        print("(Degraded: AI analysis unavailable; heuristic placeholder ratings)")
    print(f"Run ID: {run_id}")
    print(f"Product: {product.name} ({product.category})")
    print(f"Score: {product.overall_score}/100 ({product.letter_grade}), {len(product.ingredients)} ingredients")
    flagged = [i.name for i in product.ingredients if rating_severity(i.health_rating) >= rating_severity("warning")]
    if flagged:
        print(f"Flagged (warning or worse): {', '.join(flagged)}")
    for w in product.personalized_warnings:
        print(f"  ! {w}")
    print(f"Output folder: {out_dir}")


def run_analyze(args: argparse.Namespace) -> None:
    run_id = generate_run_id()
    out_dir = ensure_output_dir(args.out, run_id)
    audit_path = out_dir / "audit.jsonl"

    text = read_text(args.input)
    profile = read_profile(args.profile)
    category = args.category or _label_category(args.labels) or detect_category(text)
    log_event(audit_path, run_id, "input_received", {"input_path": str(args.input), "length": len(text), "demo": args.demo})

    if args.demo:
        product = analyze_fallback(text, profile, product_name=args.name, category=category, brand=args.brand)
        log_event(audit_path, run_id, "fallback_used", {"stage": "demo"})
    else:
        product = analyze_product(
            args.name, category, text, profile, args.region, brand=args.brand, audit_path=audit_path, run_id=run_id
        )
    _write_product(product, out_dir, audit_path, run_id)


def run_barcode(args: argparse.Namespace) -> None:
    run_id = generate_run_id()
    out_dir = ensure_output_dir(args.out, run_id)
    audit_path = out_dir / "audit.jsonl"

    product = analyze_barcode(args.code, read_profile(args.profile), args.region, audit_path=audit_path, run_id=run_id)
    if product is None:
        print(f"Barcode {args.code}: no catalog entry with an ingredient list. Scan the label instead.")
        return
    _write_product(product, out_dir, audit_path, run_id)


def run_compare(args: argparse.Namespace) -> None:
    if len(args.products) > MAX_COMPARE_PRODUCTS:
        raise SystemExit(f"Compare at most {MAX_COMPARE_PRODUCTS} products.")
    run_id = generate_run_id()
    out_dir = ensure_output_dir(args.out, run_id)
    audit_path = out_dir / "audit.jsonl"

    products = [read_product(p) for p in args.products]
    result = compare_products(products)
    log_event(audit_path, run_id, "comparison_done", {"products": len(products), "differing": len(result.differing_ingredients)})

    (out_dir / "comparison.json").write_text(result.model_dump_json(indent=2), encoding="utf-8")
    log_event(audit_path, run_id, "outputs_written", {})

    by_id = {p.id: p for p in products}
    print(result.summary)
    for rank, pid in enumerate(result.ranked_order, start=1):
        p = by_id[pid]
        print(f"  {rank}. {p.name}: {p.overall_score} ({p.letter_grade})")
    print(f"Differing ingredients: {', '.join(d.ingredient_name for d in result.differing_ingredients) or 'None'}")
    print(f"Output folder: {out_dir}")


def main() -> None:
    p = argparse.ArgumentParser(description="Ingredient check: label text → classify → extract → analyze → score")
    sub = p.add_subparsers(dest="command", required=True)

    a = sub.add_parser("analyze", help="Analyze OCR text of an ingredient list or nutrition panel")
    a.add_argument("--input", required=True, help="Path to OCR text .txt")
    a.add_argument("--name", default=None, help="Product name")
    a.add_argument("--category", default=None, help="Product category (guessed from --labels or the text if omitted)")
    a.add_argument(
        "--labels", nargs="+", type=_label, default=[], help="Image labels from the OCR provider, as description:score"
    )
    a.add_argument("--brand", default=None, help="Brand")
    a.add_argument("--region", default=None, help="Country/regulatory context, e.g. US, EU")
    a.add_argument("--profile", default=None, help="Path to user profile .json")
    a.add_argument("--out", default="outputs", help="Output folder")
    a.add_argument("--demo", action="store_true", help="Skip LLM; heuristic analysis only")
    a.set_defaults(func=run_analyze)

    b = sub.add_parser("barcode", help="Look up a barcode and analyze its catalog ingredients")
    b.add_argument("--code", required=True, help="EAN/UPC barcode")
    b.add_argument("--region", default=None)
    b.add_argument("--profile", default=None, help="Path to user profile .json")
    b.add_argument("--out", default="outputs", help="Output folder")
    b.set_defaults(func=run_barcode)

    c = sub.add_parser("compare", help="Rank analyzed products")
    c.add_argument("--products", nargs="+", required=True, help="product.json files from earlier runs")
    c.add_argument("--out", default="outputs", help="Output folder")
    c.set_defaults(func=run_compare)

    args = p.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
