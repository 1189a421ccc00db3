"""Normalizer for product records coming from either catalog backend.

The commerce backend returns products shaped like its store API
(``handle``, ``title``, ``thumbnail``, nested variant prices) while the
content backend returns CMS documents (``_id``, ``swellSlug``/``slug``,
``imageUrl``, flat ``price``). Both become a ``Product``.
"""

from typing import Any, Dict, List, Optional

from src.models.data_models import Product


def _first_str(raw: Dict, fields: List[str]) -> Optional[str]:
    for field in fields:
        value = raw.get(field)
        if isinstance(value, dict):
            # CMS slugs arrive as {"current": "..."}
            value = value.get("current")
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def _extract_price(raw_product: Dict) -> Optional[float]:
    """
    Extract and normalize price.

    Tries flat fields first (price, price_usd, amount), then the first
    variant's calculated price as the commerce store API nests it.
    Handles string prices such as "$10.99" and "10,99".
    """
    candidates: List[Any] = [raw_product.get(f) for f in ("price", "price_usd", "amount")]

    variants = raw_product.get("variants")
    if isinstance(variants, list) and variants and isinstance(variants[0], dict):
        calculated = variants[0].get("calculated_price")
        if isinstance(calculated, dict):
            candidates.append(calculated.get("calculated_amount"))
        else:
            candidates.append(calculated)

    for value in candidates:
        if value is None or isinstance(value, bool):
            continue

        if isinstance(value, (int, float)):
            if value >= 0:
                return round(float(value), 2)
            continue

        if isinstance(value, str):
            try:
                cleaned = value.strip().replace("$", "").replace("€", "").replace("£", "")
                # Comma as decimal separator
                if "," in cleaned and "." not in cleaned:
                    cleaned = cleaned.replace(",", ".")
                cleaned = cleaned.replace(",", "")
                price = float(cleaned)
                if price >= 0:
                    return round(price, 2)
            except ValueError:
                continue

    return None


def _extract_image(raw_product: Dict) -> Optional[str]:
    image = _first_str(raw_product, ["thumbnail", "imageUrl", "image_url"])
    if image:
        return image
    main_image = raw_product.get("mainImage")
    if isinstance(main_image, dict):
        asset = main_image.get("asset")
        if isinstance(asset, dict) and asset.get("url"):
            return str(asset["url"])
    images = raw_product.get("images")
    if isinstance(images, list) and images and isinstance(images[0], dict):
        return images[0].get("url") or images[0].get("src")
    return None


def normalize_product(raw_product: Dict, source: str) -> Optional[Product]:
    """
    Normalize one raw product record.

    Args:
        raw_product: Product dict as returned by a backend
        source: Backend name ("commerce" or "content")

    Returns:
        Product, or None when the record has no usable handle
    """
    if not isinstance(raw_product, dict):
        return None

    handle = _first_str(raw_product, ["handle", "swellSlug", "slug", "sku"])
    product_id = _first_str(raw_product, ["id", "swellProductId", "_id"])
    if not handle:
        return None

    currency = _first_str(raw_product, ["currency_code", "currency", "swellCurrency"]) or "USD"

    return Product(
        id=product_id or handle,
        handle=handle,
        title=_first_str(raw_product, ["title", "name"]) or "Untitled",
        source=source,
        price=_extract_price(raw_product),
        currency=currency.upper(),
        image_url=_extract_image(raw_product),
    )


def normalize_batch(raw_products: List[Dict], source: str) -> List[Product]:
    """
    Normalize a page of products, preserving backend order.

    Records without a handle are dropped; a later record repeating an
    earlier handle is dropped too.
    """
    products = []
    seen = set()
    for raw in raw_products or []:
        product = normalize_product(raw, source)
        if product is None or product.handle in seen:
            continue
        seen.add(product.handle)
        products.append(product)
    return products
