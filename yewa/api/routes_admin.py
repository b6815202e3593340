"""
routes_admin.py — Admin product management and order overview

Every route is gated by admin_required (admins table).
"""

import logging

from flask import Blueprint, request

from yewa.core import db
from yewa.core.security import admin_required
from yewa.core.validators import ValidationError
from yewa.shop import catalog
from yewa.api.helpers import toast, json_response, json_error

log = logging.getLogger("yewa.admin")

bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _form_data(partial: bool = False):
    """JSON body or multipart form. Fields are validated before an uploaded image is stored."""
    data = dict(request.get_json(silent=True) or request.form.to_dict())
    catalog.parse_product_form(data, partial)
    image = request.files.get("image")
    if image and image.filename:
        data["image_url"] = catalog.save_product_image(image)
    return data


@bp.route("/products")
@admin_required
def admin_products(user=None):
    products = catalog.list_products()
    return json_response({"products": products, "count": len(products)})


@bp.route("/products", methods=["POST"])
@admin_required
def admin_create_product(user=None):
    try:
        product = catalog.create_product(_form_data())
    except ValidationError as e:
        return json_response({"errors": e.errors}, 400)
    except db.StoreError as e:
        log.error("Product insert failed: %s", e, extra={"user": user.user_id})
        toast("Error", "Failed to add product", "destructive")
        return json_error("Failed to add product", 500)
    toast("Success", "Product added successfully")
    return json_response({"product": product}, 201)


@bp.route("/products/<product_id>", methods=["POST", "PUT", "PATCH"])
@admin_required
def admin_update_product(product_id, user=None):
    try:
        if not db.get_product(product_id):
            return json_error("Product not found", 404)
        product = catalog.update_product(product_id, _form_data(partial=True))
    except ValidationError as e:
        return json_response({"errors": e.errors}, 400)
    except db.StoreError as e:
        log.error("Product update failed for %s: %s", product_id, e,
                  extra={"user": user.user_id})
        toast("Error", "Failed to update product", "destructive")
        return json_error("Failed to update product", 500)
    if not product:
        return json_error("Product not found", 404)
    toast("Success", "Product updated successfully")
    return json_response({"product": product})


@bp.route("/products/<product_id>", methods=["DELETE"])
@admin_required
def admin_delete_product(product_id, user=None):
    try:
        deleted = catalog.delete_product(product_id)
    except db.StoreError as e:
        log.error("Product delete failed for %s: %s", product_id, e,
                  extra={"user": user.user_id})
        toast("Error", "Failed to delete product", "destructive")
        return json_error("Failed to delete product", 500)
    if not deleted:
        return json_error("Product not found", 404)
    toast("Success", "Product deleted successfully")
    return json_response({"deleted": product_id})


@bp.route("/upload-image", methods=["POST"])
@admin_required
def admin_upload_image(user=None):
    image = request.files.get("image")
    if not image:
        return json_error("No image uploaded")
    try:
        url = catalog.save_product_image(image)
    except ValidationError as e:
        return json_response({"errors": e.errors}, 400)
    return json_response({"image_url": url}, 201)


@bp.route("/orders")
@admin_required
def admin_orders(user=None):
    orders = db.list_orders()
    return json_response({"orders": orders, "count": len(orders)})
