"""
checkout.py — Delivery details, order creation and the PayFast hand-off

Flow:
  1. validate_delivery()   — reject bad phone/email/address before anything is written
  2. begin_checkout()      — snapshot the cart into a pending order + order_items,
                             return the PayFast form the browser auto-submits
  3. PayFast confirms out-of-band:
       - POST /payfast-notify (server webhook)       ┐ both call
       - GET  /payment-success (browser return page) ┘ complete_payment()
     finalize_order_payment() is idempotent, so whichever arrives second
     rewrites the same values.
"""

import logging

from yewa.core import db, secrets
from yewa.core.validators import ValidationError, is_valid_email, is_valid_sa_phone
from yewa.shop.cart import total_price

log = logging.getLogger("yewa.checkout")

SA_PROVINCES = (
    "Eastern Cape", "Free State", "Gauteng", "KwaZulu-Natal", "Limpopo",
    "Mpumalanga", "Northern Cape", "North West", "Western Cape",
)

ITEM_NAME = "Yewa Fashion Order"

# Order of the hidden inputs PayFast expects on the form
PAYFAST_FIELD_ORDER = (
    "merchant_id", "merchant_key", "return_url", "cancel_url", "notify_url",
    "name_first", "name_last", "email_address", "m_payment_id", "amount",
    "item_name", "item_description", "custom_str1", "custom_str2",
)


class CheckoutError(Exception):
    """Checkout cannot start (signed out, empty cart)."""


def validate_delivery(details: dict) -> dict:
    """Normalize delivery details or raise ValidationError(field → message)."""
    d = {k: (details.get(k) or "").strip() for k in
         ("phone", "email", "address", "city", "province", "postal_code")}
    errors = {}

    if not d["phone"]:
        errors["phone"] = "Phone number is required"
    elif not is_valid_sa_phone(d["phone"]):
        errors["phone"] = "Please enter a valid South African phone number"
    d["phone"] = "".join(d["phone"].split())

    if not d["email"]:
        errors["email"] = "Email is required"
    elif not is_valid_email(d["email"]):
        errors["email"] = "Please enter a valid email address"

    for key, label in (("address", "Address"), ("city", "City"),
                       ("postal_code", "Postal code")):
        if not d[key]:
            errors[key] = f"{label} is required"

    if not d["province"]:
        errors["province"] = "Province is required"
    elif d["province"] not in SA_PROVINCES:
        errors["province"] = "Please choose a South African province"

    if errors:
        raise ValidationError(errors)
    return d


def _split_name(full_name: str | None) -> tuple:
    parts = (full_name or "").split()
    if not parts:
        return "Customer", ""
    return parts[0], " ".join(parts[1:])


def build_payfast_fields(order: dict, user, base_url: str, item_count: int) -> dict:
    """Hidden inputs for the PayFast process form. Empty values are left out."""
    base_url = base_url.rstrip("/")
    first, last = _split_name(user.full_name)
    fields = {
        "merchant_id": secrets.get_key("payfast_merchant_id"),
        "merchant_key": secrets.get_key("payfast_merchant_key"),
        "return_url": f"{base_url}/payment-success",
        "cancel_url": f"{base_url}/cart",
        "notify_url": secrets.get_key("payfast_notify_url") or f"{base_url}/payfast-notify",
        "name_first": first,
        "name_last": last,
        "email_address": user.email,
        "m_payment_id": order["id"],
        "amount": f"{order['total_amount']:.2f}",
        "item_name": ITEM_NAME,
        "item_description": f"Order for {item_count} items",
        "custom_str1": user.user_id,
        "custom_str2": order["id"],
    }
    return {k: str(fields[k]) for k in PAYFAST_FIELD_ORDER if fields.get(k)}


def begin_checkout(user, cart_state: dict, delivery: dict, base_url: str) -> dict:
    """Create the pending order and return {order_id, action, fields}.

    Raises CheckoutError for a signed-out user or an empty cart and
    ValidationError for bad delivery details. Nothing is written in either case.
    """
    if not user.is_authenticated:
        raise CheckoutError("Authentication required")
    lines = cart_state.get("items") or []
    if not lines:
        raise CheckoutError("Cart is empty")
    details = validate_delivery(delivery)

    amount = round(total_price(cart_state), 2)
    order = db.create_order({
        "user_id": user.user_id,
        "email": user.email,
        "products": lines,
        "total_amount": amount,
        "delivery_phone": details["phone"],
        "delivery_email": details["email"],
        "delivery_address": details["address"],
        "delivery_city": details["city"],
        "delivery_province": details["province"],
        "delivery_postal_code": details["postal_code"],
    }, [{
        "product_id": ln["product"]["id"],
        "product_name": ln["product"].get("name"),
        "product_image": ln["product"].get("image_url"),
        "quantity": ln["quantity"],
        "price": float(ln["product"]["price"]),
        "selected_color": ln.get("selected_color"),
        "selected_size": ln.get("selected_size"),
    } for ln in lines])

    item_count = sum(ln["quantity"] for ln in lines)
    return {
        "order_id": order["id"],
        "action": secrets.get_key("payfast_process_url"),
        "fields": build_payfast_fields(order, user, base_url, item_count),
    }


def complete_payment(payment_id: str | None, order_id: str | None) -> bool:
    """Mark the order paid. Returns False when there is nothing to finalize."""
    if not order_id:
        return False
    updated = db.finalize_order_payment(order_id, payment_id)
    if updated:
        log.info("Order %s paid", order_id,
                 extra={"order_id": order_id, "payment_id": payment_id})
    else:
        log.warning("Payment for unknown order %s", order_id,
                    extra={"order_id": order_id, "payment_id": payment_id})
    return updated
