"""
helpers.py — Shared plumbing for the route modules

Toasts are Flask flash messages. Every JSON response drains them into a
"messages" list so the browser can show them.
"""

from flask import session, jsonify, flash, get_flashed_messages

from yewa.shop.cart import Cart
from yewa.shop.wishlist import WishlistStore

CART_SESSION_KEY = "cart"
WISHLIST_SESSION_KEY = "wishlist"


def toast(title: str, description: str = "", variant: str = "default"):
    flash({"title": title, "description": description}, variant)


def json_response(payload: dict | None = None, code: int = 200):
    body = {"ok": code < 400}
    body.update(payload or {})
    messages = [{"variant": variant if variant != "message" else "default", **msg}
                for variant, msg in get_flashed_messages(with_categories=True)]
    if messages:
        body["messages"] = messages
    return jsonify(body), code


def json_error(error: str, code: int = 400, **extra):
    return json_response({"error": error, **extra}, code)


# ── Session-held state ───────────────────────────────────────────────────────

def load_cart() -> Cart:
    return Cart(session.get(CART_SESSION_KEY), notify=toast)


def save_cart(cart: Cart):
    session[CART_SESSION_KEY] = cart.state


def load_wishlist(user) -> WishlistStore:
    """The signed-in user's wishlist, using the id list cached in the session."""
    cached = session.get(WISHLIST_SESSION_KEY)
    if cached is None or not user.is_authenticated:
        store = WishlistStore.load(user, notify=toast)
        save_wishlist(store)
        return store
    return WishlistStore(user, cached, notify=toast)


def save_wishlist(store: WishlistStore):
    session[WISHLIST_SESSION_KEY] = store.items


def refresh_wishlist(user) -> WishlistStore:
    """Reload the cached id list; called whenever the signed-in user changes."""
    store = WishlistStore.load(user, notify=toast)
    save_wishlist(store)
    return store
