"""
catalog.py — Product catalog, collections and admin product management

Read side (shop pages):
    list_products(category, sort_by)   → filtered + sorted product dicts
    category_counts()                  → {"all": n, "Tops": n, ...}
    get_product_detail(product_id)     → product + gallery images
    list_collections()                 → active carousel entries

Write side (admin pages):
    parse_product_form(form)           → validated product fields
    create_product / update_product / delete_product
    save_product_image(file_storage)   → public URL under /media/product-images/
"""

import os
import time
import logging

from werkzeug.utils import secure_filename

from yewa.core import db
from yewa.core.paths import PRODUCT_IMAGES_DIR
from yewa.core.validators import ValidationError, require_positive_number

log = logging.getLogger("yewa.catalog")

SORT_OPTIONS = ("name", "price-low", "price-high", "rating")
IMAGE_URL_PREFIX = "/media/product-images/"
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}


# ═══════════════════════════════════════════════════════════════════════
# Shop
# ═══════════════════════════════════════════════════════════════════════

def sort_products(products: list, sort_by: str = "name") -> list:
    """Sort a product list. There is no rating column, so "rating" sorts by name."""
    if sort_by == "price-low":
        return sorted(products, key=lambda p: float(p.get("price") or 0))
    if sort_by == "price-high":
        return sorted(products, key=lambda p: float(p.get("price") or 0), reverse=True)
    return sorted(products, key=lambda p: (p.get("name") or "").casefold())


def list_products(category: str = "all", sort_by: str | None = None) -> list:
    products = db.list_products()
    if category and category != "all":
        products = [p for p in products if p.get("category") == category]
    if sort_by:
        products = sort_products(products, sort_by)
    return products


def category_counts() -> dict:
    counts = {"all": 0}
    for p in db.list_products():
        counts["all"] += 1
        cat = p.get("category") or "Uncategorized"
        counts[cat] = counts.get(cat, 0) + 1
    return counts


def get_product_detail(product_id: str) -> dict | None:
    product = db.get_product(product_id)
    if not product:
        return None
    images = [img["image_url"] for img in db.list_product_images(product_id)]
    # Main image first, then the gallery
    product["images"] = ([product["image_url"]] if product.get("image_url") else []) + \
        [u for u in images if u != product.get("image_url")]
    return product


def list_collections() -> list:
    return db.list_active_collections()


# ═══════════════════════════════════════════════════════════════════════
# Admin
# ═══════════════════════════════════════════════════════════════════════

def _split_list(value) -> list:
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _as_bool(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "on", "yes")


def parse_product_form(form, partial: bool = False) -> dict:
    """Turn submitted admin form/JSON fields into product columns.

    With partial=True only the fields present are returned and validated
    (used for updates). Raises ValidationError with per-field messages.
    """
    errors = {}
    fields = {}

    def present(key):
        return not partial or key in form

    for key in ("name", "category", "gender"):
        if present(key):
            val = (form.get(key) or "").strip()
            if not val:
                errors[key] = f"{key.capitalize()} is required"
            fields[key] = val

    if present("price"):
        try:
            fields["price"] = require_positive_number(form.get("price"), "price")
        except ValidationError as e:
            errors.update(e.errors)

    if "original_price" in form:
        raw = form.get("original_price")
        if raw in (None, ""):
            fields["original_price"] = None
        else:
            try:
                fields["original_price"] = require_positive_number(raw, "original_price")
            except ValidationError as e:
                errors.update(e.errors)

    if present("description"):
        fields["description"] = (form.get("description") or "").strip() or None
    if present("image_url"):
        fields["image_url"] = (form.get("image_url") or "").strip() or None
    for key in ("colors", "sizes"):
        if present(key):
            fields[key] = _split_list(form.get(key))
    if present("in_stock"):
        fields["in_stock"] = _as_bool(form.get("in_stock"), True)
    if present("is_on_sale"):
        fields["is_on_sale"] = _as_bool(form.get("is_on_sale"), False)

    if errors:
        raise ValidationError(errors)
    return fields


def create_product(form) -> dict:
    product = db.insert_product(parse_product_form(form))
    log.info("Product created: %s (%s)", product["name"], product["id"])
    return product


def update_product(product_id: str, form) -> dict | None:
    if not db.get_product(product_id):
        return None
    product = db.update_product(product_id, parse_product_form(form, partial=True))
    log.info("Product updated: %s", product_id)
    return product


def delete_product(product_id: str) -> bool:
    deleted = db.delete_product(product_id)
    if deleted:
        log.info("Product deleted: %s", product_id)
    return deleted


def save_product_image(file_storage, images_dir: str | None = None) -> str:
    """Store an uploaded image as <epoch ms>-<name> and return its public URL."""
    filename = secure_filename(file_storage.filename or "")
    ext = os.path.splitext(filename)[1].lower()
    if not filename or ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError({"image": "Upload a .jpg, .png, .webp or .gif image"})
    target_dir = images_dir or PRODUCT_IMAGES_DIR
    os.makedirs(target_dir, exist_ok=True)
    stored = f"{int(time.time() * 1000)}-{filename}"
    file_storage.save(os.path.join(target_dir, stored))
    log.info("Product image stored: %s", stored)
    return IMAGE_URL_PREFIX + stored


# ═══════════════════════════════════════════════════════════════════════
# Demo catalog
# ═══════════════════════════════════════════════════════════════════════

DEMO_PRODUCTS = [
    {"name": "Classic Black Sleeveless", "price": 75, "colors": ["black", "white", "grey"],
     "image_url": "/static/products/classic-black-sleeveless.jpg"},
    {"name": "Classic White T-shirt", "price": 75, "original_price": 94, "is_on_sale": True,
     "colors": ["white", "black"], "image_url": "/static/products/classic-white-tshirt.jpg"},
    {"name": "Half Sleeve T-shirts", "price": 55, "colors": ["red", "green", "blue", "orange"],
     "image_url": "/static/products/half-sleeve-tshirts.jpg"},
    {"name": "Modern T-shirts", "price": 117, "original_price": 146, "is_on_sale": True,
     "colors": ["white", "black"], "image_url": "/static/products/modern-tshirts.jpg"},
    {"name": "Casual Beige Set", "price": 95, "original_price": 119, "is_on_sale": True,
     "colors": ["beige", "white"], "image_url": "/static/products/casual-beige-set.jpg"},
    {"name": "Premium Black Tee", "price": 85, "colors": ["black", "white", "grey"],
     "image_url": "/static/products/premium-black-tee.jpg"},
]


def seed_demo_products() -> int:
    """Load the demo catalog into an empty products table. Returns rows added."""
    if db.get_stats()["products"]:
        return 0
    for p in DEMO_PRODUCTS:
        db.insert_product({
            "description": f"{p['name']} in soft everyday cotton.",
            "category": "Tops",
            "gender": "Unisex",
            "sizes": ["S", "M", "L", "XL"],
            "in_stock": True,
            **p,
        })
    log.info("Seeded %d demo products", len(DEMO_PRODUCTS))
    return len(DEMO_PRODUCTS)
