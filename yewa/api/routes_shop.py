"""
routes_shop.py — Storefront JSON endpoints

Catalog, cart, wishlist, sign-in/up, checkout, payment return and account.
"""

import logging

from flask import Blueprint, request, session

from yewa.core import auth, db
from yewa.core.security import current_user, login_required
from yewa.core.validators import ValidationError
from yewa.shop import catalog, checkout
from yewa.api.helpers import (
    toast, json_response, json_error, load_cart, save_cart, load_wishlist, save_wishlist,
    refresh_wishlist,
)

log = logging.getLogger("yewa.shop")

bp = Blueprint("shop", __name__)


# ═══════════════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/products")
def api_products():
    sort_by = request.args.get("sort") or None
    if sort_by and sort_by not in catalog.SORT_OPTIONS:
        return json_error(f"Unknown sort: {sort_by}")
    category = request.args.get("category", "all")
    products = catalog.list_products(category, sort_by)
    return json_response({"products": products, "count": len(products),
                          "categories": catalog.category_counts()})


@bp.route("/api/products/<product_id>")
def api_product_detail(product_id):
    product = catalog.get_product_detail(product_id)
    if not product:
        return json_error("Product not found", 404)
    return json_response({"product": product})


@bp.route("/api/collections")
def api_collections():
    return json_response({"collections": catalog.list_collections()})


# ═══════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════

def _cart_reply(cart):
    save_cart(cart)
    return json_response({"cart": cart.to_dict()})


@bp.route("/api/cart")
def api_cart():
    return json_response({"cart": load_cart().to_dict()})


@bp.route("/api/cart/add", methods=["POST"])
def api_cart_add():
    data = request.get_json(silent=True) or {}
    product = db.get_product(data.get("product_id") or "")
    if not product:
        return json_error("Product not found", 404)
    try:
        qty = int(data.get("quantity", 1))
    except (TypeError, ValueError):
        return json_error("Quantity must be a whole number")
    if qty < 1:
        return json_error("Quantity must be at least 1")
    cart = load_cart()
    cart.add_item(product, data.get("color"), data.get("size"), qty)
    return _cart_reply(cart)


@bp.route("/api/cart/update", methods=["POST"])
def api_cart_update():
    data = request.get_json(silent=True) or {}
    try:
        qty = int(data.get("quantity", 0))
    except (TypeError, ValueError):
        return json_error("Quantity must be a whole number")
    cart = load_cart()
    cart.update_quantity(data.get("key", ""), qty)
    return _cart_reply(cart)


@bp.route("/api/cart/remove", methods=["POST"])
def api_cart_remove():
    data = request.get_json(silent=True) or {}
    cart = load_cart()
    cart.remove_item(data.get("key", ""))
    return _cart_reply(cart)


@bp.route("/api/cart/clear", methods=["POST"])
def api_cart_clear():
    cart = load_cart()
    cart.clear_cart()
    return _cart_reply(cart)


@bp.route("/api/cart/<action>", methods=["POST"])
def api_cart_visibility(action):
    cart = load_cart()
    handler = {"toggle": cart.toggle_cart, "open": cart.open_cart, "close": cart.close_cart}.get(action)
    if not handler:
        return json_error(f"Unknown cart action: {action}", 404)
    handler()
    return _cart_reply(cart)


# ═══════════════════════════════════════════════════════════════════════
# Auth
# ═══════════════════════════════════════════════════════════════════════

def _start_session(user):
    session[auth.SESSION_USER_KEY] = user.user_id
    refresh_wishlist(user)


@bp.route("/api/auth/sign-up", methods=["POST"])
def api_sign_up():
    data = request.get_json(silent=True) or request.form
    try:
        user = auth.sign_up(data.get("email"), data.get("password"), data.get("full_name"))
    except ValidationError as e:
        return json_response({"errors": e.errors}, 400)
    _start_session(user)
    toast("Account created", "Welcome to Yewa")
    return json_response({"user": user.to_dict()})


@bp.route("/api/auth/sign-in", methods=["POST"])
def api_sign_in():
    data = request.get_json(silent=True) or request.form
    user = auth.sign_in(data.get("email"), data.get("password"))
    if not user:
        return json_error("Invalid email or password", 401)
    _start_session(user)
    return json_response({"user": user.to_dict()})


@bp.route("/api/auth/sign-out", methods=["POST"])
def api_sign_out():
    auth.sign_out(session)
    refresh_wishlist(current_user())
    return json_response({"user": current_user().to_dict()})


@bp.route("/api/auth/me")
def api_me():
    return json_response({"user": current_user().to_dict()})


# ═══════════════════════════════════════════════════════════════════════
# Wishlist
# ═══════════════════════════════════════════════════════════════════════

def _wishlist_reply(store, changed: bool):
    save_wishlist(store)
    return json_response({"wishlist": store.items, "count": store.count},
                         200 if changed else 400)


@bp.route("/api/wishlist")
def api_wishlist():
    store = load_wishlist(current_user())
    return json_response({"wishlist": store.items, "count": store.count})


@bp.route("/api/wishlist/products")
@login_required
def api_wishlist_products(user=None):
    return json_response({"products": db.wishlist_with_products(user.user_id)})


@bp.route("/api/wishlist/add", methods=["POST"])
def api_wishlist_add():
    user = current_user()
    data = request.get_json(silent=True) or {}
    product_id = data.get("product_id") or ""
    store = load_wishlist(user)
    if user.is_authenticated and not db.get_product(product_id):
        return json_error("Product not found", 404)
    changed = store.add_to_wishlist(product_id)
    if not user.is_authenticated:
        return json_error("Sign in required", 401)
    return _wishlist_reply(store, changed)


@bp.route("/api/wishlist/remove", methods=["POST"])
@login_required
def api_wishlist_remove(user=None):
    data = request.get_json(silent=True) or {}
    store = load_wishlist(user)
    return _wishlist_reply(store, store.remove_from_wishlist(data.get("product_id", "")))


@bp.route("/api/wishlist/contains/<product_id>")
def api_wishlist_contains(product_id):
    store = load_wishlist(current_user())
    return json_response({"product_id": product_id, "in_wishlist": store.is_in_wishlist(product_id)})


# ═══════════════════════════════════════════════════════════════════════
# Checkout
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/checkout/validate", methods=["POST"])
def api_checkout_validate():
    try:
        details = checkout.validate_delivery(request.get_json(silent=True) or {})
    except ValidationError as e:
        return json_response({"errors": e.errors}, 400)
    return json_response({"delivery": details})


@bp.route("/api/checkout", methods=["POST"])
def api_checkout():
    user = current_user()
    cart = load_cart()
    try:
        form = checkout.begin_checkout(user, cart.state, request.get_json(silent=True) or {},
                                       request.host_url)
    except checkout.CheckoutError as e:
        toast("Error", str(e), "destructive")
        return json_error(str(e), 401 if not user.is_authenticated else 400)
    except ValidationError as e:
        return json_response({"errors": e.errors}, 400)
    except db.StoreError as e:
        log.error("Order creation failed: %s", e, extra={"user": user.user_id})
        toast("Error", "Failed to create order. Please try again.", "destructive")
        return json_error("Failed to create order", 500)
    return json_response(form)


@bp.route("/payment-success")
def payment_success():
    """Browser return page after PayFast.

    Finalizes the order and empties the cart, but only for the signed-in
    owner of the order. Anyone else gets finalized: false and nothing changes.
    """
    payment_id = request.args.get("pf_payment_id")
    order_id = request.args.get("m_payment_id")
    if not (payment_id and order_id):
        return json_response({"finalized": False})
    user = current_user()
    try:
        order = db.get_order(order_id)
        if not order or not user.is_authenticated or order.get("user_id") != user.user_id:
            log.warning("Payment return for order %s ignored: not the owner", order_id,
                        extra={"order_id": order_id, "user": user.user_id})
            return json_response({"finalized": False})
        finalized = checkout.complete_payment(payment_id, order_id)
    except db.StoreError as e:
        log.error("Payment return failed for %s: %s", order_id, e, extra={"order_id": order_id})
        toast("Error", "There was an error processing your order. Please contact support.",
              "destructive")
        return json_error("Failed to update order", 500)
    cart = load_cart()
    cart.clear_cart()
    save_cart(cart)
    toast("Payment successful!", "Your order has been processed successfully")
    return json_response({"finalized": finalized, "order_id": order_id})


# ═══════════════════════════════════════════════════════════════════════
# Account
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/account/profile")
@login_required
def api_profile(user=None):
    profile = db.get_profile(user.user_id) or {}
    profile.pop("password_hash", None)
    return json_response({"profile": profile})


@bp.route("/api/account/profile", methods=["POST"])
@login_required
def api_profile_update(user=None):
    data = request.get_json(silent=True) or request.form
    full_name = (data.get("full_name") or "").strip() or None
    if not db.update_profile(user.user_id, full_name):
        return json_error("Profile not found", 404)
    toast("Profile updated", "Your profile has been updated successfully")
    return json_response({"full_name": full_name})


@bp.route("/api/account/orders")
@login_required
def api_orders(user=None):
    return json_response({"orders": db.list_orders(user.user_id)})
