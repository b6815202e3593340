"""
yewa/core/db.py — Persistent SQLite Data Layer

Stands in for the hosted backend tables the storefront reads and writes.
Route handlers never issue SQL; they call the named helpers below, one
group per table.

TABLES:
  products        — catalog rows (colors/sizes stored as JSON arrays)
  product_images  — extra gallery images per product
  collections     — homepage carousel entries
  profiles        — registered users (password hash lives here)
  admins          — admin allow-list, the single source of admin truth
  wishlist        — (user_id, product_id) unique pairs
  orders          — checkout orders, pending → paid
  order_items     — line items copied from the cart snapshot
"""

import os
import json
import uuid
import sqlite3
import logging
import threading
from datetime import datetime, timezone
from contextlib import contextmanager

from yewa.core.paths import DATA_DIR

log = logging.getLogger("yewa.db")

DB_PATH = os.path.join(DATA_DIR, "yewa.db")

_db_lock = threading.Lock()


class StoreError(Exception):
    """A read or write against the data layer failed."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Connection factory ────────────────────────────────────────────────────────
@contextmanager
def get_db():
    """Thread-safe SQLite connection; commits on success, rolls back on error."""
    with _db_lock:
        conn = sqlite3.connect(DB_PATH, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


# ── Schema ────────────────────────────────────────────────────────────────────
SCHEMA = """
CREATE TABLE IF NOT EXISTS products (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    description     TEXT,
    price           REAL NOT NULL,
    original_price  REAL,
    category        TEXT NOT NULL,
    gender          TEXT NOT NULL,
    colors          TEXT,           -- JSON array
    sizes           TEXT,           -- JSON array
    image_url       TEXT,
    in_stock        INTEGER DEFAULT 1,
    is_on_sale      INTEGER DEFAULT 0,
    created_at      TEXT NOT NULL,
    updated_at      TEXT
);

CREATE INDEX IF NOT EXISTS idx_products_category ON products(category);

CREATE TABLE IF NOT EXISTS product_images (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id      TEXT NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    image_url       TEXT NOT NULL,
    sort_order      INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS collections (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    description     TEXT,
    image_url       TEXT,
    link_url        TEXT,
    is_active       INTEGER DEFAULT 1,
    sort_order      INTEGER DEFAULT 0,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS profiles (
    id              TEXT PRIMARY KEY,
    email           TEXT UNIQUE NOT NULL,
    full_name       TEXT,
    password_hash   TEXT,
    created_at      TEXT NOT NULL,
    updated_at      TEXT
);

CREATE TABLE IF NOT EXISTS admins (
    email           TEXT PRIMARY KEY,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS wishlist (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT NOT NULL,
    product_id      TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    UNIQUE (user_id, product_id)
);

CREATE INDEX IF NOT EXISTS idx_wishlist_user ON wishlist(user_id);

CREATE TABLE IF NOT EXISTS orders (
    id                  TEXT PRIMARY KEY,
    user_id             TEXT NOT NULL,
    email               TEXT,
    products            TEXT,       -- JSON cart snapshot
    total_amount        REAL NOT NULL,
    status              TEXT DEFAULT 'pending',
    payment_id          TEXT,
    delivery_phone      TEXT,
    delivery_email      TEXT,
    delivery_address    TEXT,
    delivery_city       TEXT,
    delivery_province   TEXT,
    delivery_postal_code TEXT,
    created_at          TEXT NOT NULL,
    updated_at          TEXT
);

CREATE INDEX IF NOT EXISTS idx_orders_user ON orders(user_id);

CREATE TABLE IF NOT EXISTS order_items (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    order_id        TEXT NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
    product_id      TEXT,
    product_name    TEXT,
    product_image   TEXT,
    quantity        INTEGER NOT NULL,
    price           REAL NOT NULL,
    selected_color  TEXT,
    selected_size   TEXT
);
"""

TABLES = ("products", "product_images", "collections", "profiles",
          "admins", "wishlist", "orders", "order_items")


def init_db():
    with get_db() as conn:
        conn.executescript(SCHEMA)


def get_stats() -> dict:
    """Row counts per table."""
    with get_db() as conn:
        return {t: conn.execute(f"SELECT COUNT(*) FROM {t}").fetchone()[0] for t in TABLES}


def startup(admin_emails=None) -> dict:
    """Create the schema and seed the admins table. Called once from create_app()."""
    init_db()
    for email in admin_emails or []:
        add_admin(email)
    stats = get_stats()
    log.info("DB ready: %s (%d products, %d orders, %d admins)",
             DB_PATH, stats["products"], stats["orders"], stats["admins"])
    return {"db_path": DB_PATH, "stats": stats}


# ═══════════════════════════════════════════════════════════════════════
# Products
# ═══════════════════════════════════════════════════════════════════════

def _product_from_row(row) -> dict:
    p = dict(row)
    p["colors"] = json.loads(p["colors"]) if p.get("colors") else []
    p["sizes"] = json.loads(p["sizes"]) if p.get("sizes") else []
    p["in_stock"] = bool(p.get("in_stock"))
    p["is_on_sale"] = bool(p.get("is_on_sale"))
    return p


def list_products() -> list:
    """All products, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM products ORDER BY created_at DESC, rowid DESC").fetchall()
    return [_product_from_row(r) for r in rows]


def get_product(product_id: str) -> dict | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM products WHERE id = ?", (product_id,)).fetchone()
    return _product_from_row(row) if row else None


def insert_product(product: dict) -> dict:
    """Insert a product; id and created_at are assigned when missing."""
    row = dict(product)
    row.setdefault("id", str(uuid.uuid4()))
    row.setdefault("created_at", _now())
    with get_db() as conn:
        conn.execute("""
            INSERT INTO products (id, name, description, price, original_price, category,
                gender, colors, sizes, image_url, in_stock, is_on_sale, created_at, updated_at)
            VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?)
        """, (
            row["id"], row["name"], row.get("description"), row["price"],
            row.get("original_price"), row["category"], row["gender"],
            json.dumps(row.get("colors") or []), json.dumps(row.get("sizes") or []),
            row.get("image_url"), int(row.get("in_stock", True)),
            int(row.get("is_on_sale", False)), row["created_at"], row.get("updated_at"),
        ))
    return get_product(row["id"])


_PRODUCT_COLUMNS = ("name", "description", "price", "original_price", "category", "gender",
                    "colors", "sizes", "image_url", "in_stock", "is_on_sale")


def update_product(product_id: str, fields: dict) -> dict | None:
    """Patch the given columns. Unknown keys are ignored."""
    updates = {k: v for k, v in fields.items() if k in _PRODUCT_COLUMNS}
    if not updates:
        return get_product(product_id)
    for k in ("colors", "sizes"):
        if k in updates:
            updates[k] = json.dumps(updates[k] or [])
    for k in ("in_stock", "is_on_sale"):
        if k in updates:
            updates[k] = int(bool(updates[k]))
    updates["updated_at"] = _now()
    cols = ", ".join(f"{k} = ?" for k in updates)
    with get_db() as conn:
        conn.execute(f"UPDATE products SET {cols} WHERE id = ?",
                     (*updates.values(), product_id))
    return get_product(product_id)


def delete_product(product_id: str) -> bool:
    with get_db() as conn:
        cur = conn.execute("DELETE FROM products WHERE id = ?", (product_id,))
    return cur.rowcount > 0


def list_product_images(product_id: str) -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM product_images WHERE product_id = ? ORDER BY sort_order, id",
            (product_id,)).fetchall()
    return [dict(r) for r in rows]


def add_product_image(product_id: str, image_url: str, sort_order: int = 0) -> dict:
    with get_db() as conn:
        cur = conn.execute(
            "INSERT INTO product_images (product_id, image_url, sort_order) VALUES (?,?,?)",
            (product_id, image_url, sort_order))
        row = conn.execute("SELECT * FROM product_images WHERE id = ?",
                           (cur.lastrowid,)).fetchone()
    return dict(row)


# ═══════════════════════════════════════════════════════════════════════
# Collections
# ═══════════════════════════════════════════════════════════════════════

def list_active_collections() -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM collections WHERE is_active = 1 ORDER BY sort_order ASC").fetchall()
    return [dict(r) for r in rows]


def insert_collection(collection: dict) -> dict:
    row = dict(collection)
    row.setdefault("id", str(uuid.uuid4()))
    with get_db() as conn:
        conn.execute("""
            INSERT INTO collections (id, name, description, image_url, link_url,
                is_active, sort_order, created_at)
            VALUES (?,?,?,?,?,?,?,?)
        """, (row["id"], row["name"], row.get("description"), row.get("image_url"),
              row.get("link_url"), int(row.get("is_active", True)),
              row.get("sort_order", 0), _now()))
    return row


# ═══════════════════════════════════════════════════════════════════════
# Profiles + Admins
# ═══════════════════════════════════════════════════════════════════════

def get_profile(user_id: str) -> dict | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM profiles WHERE id = ?", (user_id,)).fetchone()
    return dict(row) if row else None


def get_profile_by_email(email: str) -> dict | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM profiles WHERE email = ?",
                           (email.strip().lower(),)).fetchone()
    return dict(row) if row else None


def insert_profile(email: str, full_name: str | None = None,
                   password_hash: str | None = None, user_id: str | None = None) -> dict:
    profile = {
        "id": user_id or str(uuid.uuid4()),
        "email": email.strip().lower(),
        "full_name": full_name,
        "password_hash": password_hash,
        "created_at": _now(),
    }
    with get_db() as conn:
        conn.execute(
            "INSERT INTO profiles (id, email, full_name, password_hash, created_at) "
            "VALUES (?,?,?,?,?)",
            (profile["id"], profile["email"], profile["full_name"],
             profile["password_hash"], profile["created_at"]))
    return profile


def update_profile(user_id: str, full_name: str | None) -> bool:
    with get_db() as conn:
        cur = conn.execute(
            "UPDATE profiles SET full_name = ?, updated_at = ? WHERE id = ?",
            (full_name, _now(), user_id))
    return cur.rowcount > 0


def add_admin(email: str):
    with get_db() as conn:
        conn.execute("INSERT OR IGNORE INTO admins (email, created_at) VALUES (?, ?)",
                     (email.strip().lower(), _now()))


def is_admin_email(email: str | None) -> bool:
    if not email:
        return False
    with get_db() as conn:
        row = conn.execute("SELECT 1 FROM admins WHERE email = ?",
                           (email.strip().lower(),)).fetchone()
    return row is not None


# ═══════════════════════════════════════════════════════════════════════
# Wishlist
# ═══════════════════════════════════════════════════════════════════════

def wishlist_product_ids(user_id: str) -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT product_id FROM wishlist WHERE user_id = ? ORDER BY id",
            (user_id,)).fetchall()
    return [r["product_id"] for r in rows]


def wishlist_insert(user_id: str, product_id: str):
    """Raises StoreError on a duplicate pair, mirroring the table's unique constraint."""
    with get_db() as conn:
        conn.execute(
            "INSERT INTO wishlist (user_id, product_id, created_at) VALUES (?,?,?)",
            (user_id, product_id, _now()))


def wishlist_delete(user_id: str, product_id: str) -> int:
    with get_db() as conn:
        cur = conn.execute(
            "DELETE FROM wishlist WHERE user_id = ? AND product_id = ?",
            (user_id, product_id))
    return cur.rowcount


def wishlist_with_products(user_id: str) -> list:
    """Wishlist rows joined with their product, for the wishlist page."""
    with get_db() as conn:
        rows = conn.execute("""
            SELECT w.id AS wishlist_id, w.created_at AS added_at, p.*
            FROM wishlist w JOIN products p ON p.id = w.product_id
            WHERE w.user_id = ?
            ORDER BY w.id DESC
        """, (user_id,)).fetchall()
    return [_product_from_row(r) for r in rows]


# ═══════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════

def _order_from_row(row) -> dict:
    o = dict(row)
    o["products"] = json.loads(o["products"]) if o.get("products") else []
    return o


def create_order(order: dict, items: list) -> dict:
    """Insert a pending order and its items in one transaction."""
    order_id = order.get("id") or str(uuid.uuid4())
    now = _now()
    with get_db() as conn:
        conn.execute("""
            INSERT INTO orders (id, user_id, email, products, total_amount, status,
                delivery_phone, delivery_email, delivery_address, delivery_city,
                delivery_province, delivery_postal_code, created_at, updated_at)
            VALUES (?,?,?,?,?,'pending',?,?,?,?,?,?,?,?)
        """, (
            order_id, order["user_id"], order.get("email"),
            json.dumps(order.get("products") or [], default=str),
            order["total_amount"], order.get("delivery_phone"), order.get("delivery_email"),
            order.get("delivery_address"), order.get("delivery_city"),
            order.get("delivery_province"), order.get("delivery_postal_code"), now, now,
        ))
        conn.executemany("""
            INSERT INTO order_items (order_id, product_id, product_name, product_image,
                quantity, price, selected_color, selected_size)
            VALUES (?,?,?,?,?,?,?,?)
        """, [(
            order_id, it.get("product_id"), it.get("product_name"), it.get("product_image"),
            it["quantity"], it["price"], it.get("selected_color"), it.get("selected_size"),
        ) for it in items])
    log.info("Order %s created (%d items, R%.2f)", order_id, len(items),
             order["total_amount"], extra={"order_id": order_id})
    return get_order(order_id)


def get_order(order_id: str) -> dict | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM orders WHERE id = ?", (order_id,)).fetchone()
        if not row:
            return None
        items = conn.execute(
            "SELECT * FROM order_items WHERE order_id = ? ORDER BY id", (order_id,)).fetchall()
    order = _order_from_row(row)
    order["order_items"] = [dict(i) for i in items]
    return order


def list_orders(user_id: str | None = None) -> list:
    """Orders newest first, each with its order_items. All users when user_id is None."""
    with get_db() as conn:
        if user_id is None:
            rows = conn.execute("SELECT * FROM orders ORDER BY created_at DESC, rowid DESC").fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM orders WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (user_id,)).fetchall()
        orders = [_order_from_row(r) for r in rows]
        for o in orders:
            o["order_items"] = [dict(i) for i in conn.execute(
                "SELECT * FROM order_items WHERE order_id = ? ORDER BY id", (o["id"],))]
    return orders


def finalize_order_payment(order_id: str, payment_id: str | None) -> bool:
    """Mark an order paid. Idempotent and keyed by order id.

    Both the PayFast webhook and the browser's return handler call this; a
    second delivery rewrites the same values. An unknown order id touches no
    rows and returns False.
    """
    with get_db() as conn:
        cur = conn.execute(
            "UPDATE orders SET status = 'paid', payment_id = COALESCE(?, payment_id), "
            "updated_at = ? WHERE id = ?",
            (payment_id, _now(), order_id))
    return cur.rowcount > 0
