"""Barcode → catalog product (Open Food Facts). Its ingredient text feeds the same pipeline as OCR text."""
import requests
from purepick.categories import map_catalog_category
from purepick.llm import get_timeout
from purepick.schemas import BarcodeProduct

OFF_PRODUCT_URL = "https://world.openfoodfacts.org/api/v2/product/{barcode}.json"
USER_AGENT = "PurePick/1.0 (ingredient-analyzer)"
FIELDS = "product_name,product_name_en,brands,categories_tags,ingredients_text,ingredients_text_en,image_front_url,image_url"


def lookup_barcode(barcode: str, timeout: float | None = None) -> BarcodeProduct:
    """Look up a barcode. Any network or catalog failure comes back as found=False."""
    try:
        resp = requests.get(
            OFF_PRODUCT_URL.format(barcode=barcode.strip()),
            params={"fields": FIELDS},
            headers={"User-Agent": USER_AGENT},
            timeout=timeout or get_timeout(),
        )
        if resp.status_code != 200:
            return BarcodeProduct(found=False)
        data = resp.json() or {}
    except (requests.RequestException, ValueError):
        return BarcodeProduct(found=False)

    product = data.get("product")
    if data.get("status") != 1 or not isinstance(product, dict):
        return BarcodeProduct(found=False)

    return BarcodeProduct(
        name=product.get("product_name") or product.get("product_name_en") or "",
        brand=product.get("brands") or "",
        category=map_catalog_category(product.get("categories_tags") or []),
        ingredients_text=product.get("ingredients_text") or product.get("ingredients_text_en") or "",
        image_url=product.get("image_front_url") or product.get("image_url"),
        found=True,
    )
