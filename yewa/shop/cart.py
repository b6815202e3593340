"""
cart.py — Shopping cart state

The cart belongs to the browser session: its state is a plain dict stored in
the signed session cookie and is never written to the database before
checkout.

    state = {"items": [line, ...], "is_open": bool}
    line  = {"product": {id, name, price, image_url},
             "quantity": int, "selected_color": str|None, "selected_size": str|None}

cart_reducer() is pure: it returns a new state and never mutates the one it
was given. The Cart wrapper adds the derived totals and the "added to cart"
notification.
"""

import copy

# ── Actions ──────────────────────────────────────────────────────────────────
ADD_ITEM = "ADD_ITEM"
REMOVE_ITEM = "REMOVE_ITEM"
UPDATE_QUANTITY = "UPDATE_QUANTITY"
CLEAR_CART = "CLEAR_CART"
TOGGLE_CART = "TOGGLE_CART"
OPEN_CART = "OPEN_CART"
CLOSE_CART = "CLOSE_CART"

EMPTY_CART = {"items": [], "is_open": False}

# Product fields copied into a cart line
PRODUCT_SNAPSHOT_FIELDS = ("id", "name", "price", "image_url")


def line_key(product_id, color=None) -> str:
    """Identity of a cart line: one line per (product, color)."""
    return f"{product_id}-{color or ''}"


def key_of(line: dict) -> str:
    return line_key(line["product"]["id"], line.get("selected_color"))


def snapshot_product(product: dict) -> dict:
    return {k: product.get(k) for k in PRODUCT_SNAPSHOT_FIELDS}


def cart_reducer(state: dict, action: dict) -> dict:
    """Apply one action to the cart state and return the new state."""
    kind = action.get("type")
    payload = action.get("payload")
    items = state.get("items", [])

    if kind == ADD_ITEM:
        product = payload["product"]
        color = payload.get("selected_color")
        qty = payload.get("quantity") or 1
        if qty < 1:
            return state
        key = line_key(product["id"], color)
        if any(key_of(it) == key for it in items):
            return {**state, "items": [
                {**it, "quantity": it["quantity"] + qty} if key_of(it) == key else it
                for it in items
            ]}
        return {**state, "items": [*items, {
            "product": snapshot_product(product),
            "quantity": qty,
            "selected_color": color,
            "selected_size": payload.get("selected_size"),
        }]}

    if kind == REMOVE_ITEM:
        return {**state, "items": [it for it in items if key_of(it) != payload]}

    if kind == UPDATE_QUANTITY:
        key, qty = payload["id"], payload["quantity"]
        if qty <= 0:
            return {**state, "items": [it for it in items if key_of(it) != key]}
        return {**state, "items": [
            {**it, "quantity": qty} if key_of(it) == key else it for it in items
        ]}

    if kind == CLEAR_CART:
        return {**state, "items": []}
    if kind == TOGGLE_CART:
        return {**state, "is_open": not state.get("is_open", False)}
    if kind == OPEN_CART:
        return {**state, "is_open": True}
    if kind == CLOSE_CART:
        return {**state, "is_open": False}

    return state


def total_items(state: dict) -> int:
    return sum(it["quantity"] for it in state.get("items", []))


def total_price(state: dict) -> float:
    return sum(float(it["product"]["price"]) * it["quantity"] for it in state.get("items", []))


class Cart:
    """Cart operations over a state dict, with the add-to-cart notification.

    `notify(title, description, variant)` is called after add_item; pass
    None to stay silent.
    """

    def __init__(self, state: dict | None = None, notify=None):
        self.state = copy.deepcopy(state) if state else copy.deepcopy(EMPTY_CART)
        self._notify = notify

    def dispatch(self, kind: str, payload=None) -> dict:
        self.state = cart_reducer(self.state, {"type": kind, "payload": payload})
        return self.state

    def add_item(self, product: dict, color=None, size=None, quantity: int = 1):
        self.dispatch(ADD_ITEM, {"product": product, "selected_color": color,
                                 "selected_size": size, "quantity": quantity})
        if self._notify:
            self._notify("Added to cart", f"{product['name']} has been added to your cart")

    def remove_item(self, key: str):
        self.dispatch(REMOVE_ITEM, key)

    def update_quantity(self, key: str, quantity: int):
        self.dispatch(UPDATE_QUANTITY, {"id": key, "quantity": quantity})

    def clear_cart(self):
        self.dispatch(CLEAR_CART)

    def toggle_cart(self):
        self.dispatch(TOGGLE_CART)

    def open_cart(self):
        self.dispatch(OPEN_CART)

    def close_cart(self):
        self.dispatch(CLOSE_CART)

    @property
    def items(self) -> list:
        return self.state["items"]

    @property
    def is_open(self) -> bool:
        return self.state.get("is_open", False)

    @property
    def total_items(self) -> int:
        return total_items(self.state)

    @property
    def total_price(self) -> float:
        return total_price(self.state)

    def to_dict(self) -> dict:
        return {
            "items": [{**it, "key": key_of(it)} for it in self.items],
            "is_open": self.is_open,
            "total_items": self.total_items,
            "total_price": round(self.total_price, 2),
        }
