"""
Shared pytest fixtures for the Yewa test suite.

YEWA_DATA_DIR is pointed at a scratch directory BEFORE any yewa import so
the module-level app in app.py never touches the real data/ folder.
"""
import os
import tempfile

os.environ.setdefault("YEWA_DATA_DIR", tempfile.mkdtemp(prefix="yewa-test-"))
os.environ.setdefault("YEWA_SEED_DEMO", "false")

import pytest

from app import create_app
from yewa.core import db, paths
from yewa.core.auth import SESSION_USER_KEY
from yewa.shop import catalog


# ── Temp data directory (per-test isolation) ──────────────────────────────────

@pytest.fixture(autouse=True)
def temp_data_dir(tmp_path, monkeypatch):
    """Fresh SQLite file and media dir for every test."""
    data = str(tmp_path / "data")
    media = os.path.join(data, "media")
    images = os.path.join(media, "product-images")
    os.makedirs(images, exist_ok=True)

    monkeypatch.setattr(db, "DB_PATH", os.path.join(data, "yewa.db"))
    monkeypatch.setattr(paths, "MEDIA_DIR", media)
    monkeypatch.setattr(catalog, "PRODUCT_IMAGES_DIR", images)
    db.init_db()
    return data


# ── Flask test clients ────────────────────────────────────────────────────────

@pytest.fixture
def app(temp_data_dir):
    """Create Flask app configured for testing."""
    return create_app({"TESTING": True, "SECRET_KEY": "test-secret"})


@pytest.fixture
def anon_client(app):
    """Client with no signed-in user."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def client(app, shopper):
    """Client signed in as a regular shopper."""
    with app.test_client() as c:
        with c.session_transaction() as s:
            s[SESSION_USER_KEY] = shopper["id"]
        yield c


@pytest.fixture
def admin_client(app, admin_user):
    """Client signed in as an email listed in the admins table."""
    with app.test_client() as c:
        with c.session_transaction() as s:
            s[SESSION_USER_KEY] = admin_user["id"]
        yield c


# ── Seed helpers ──────────────────────────────────────────────────────────────

@pytest.fixture
def shopper():
    return db.insert_profile("thandi@example.co.za", full_name="Thandi Mokoena",
                             user_id="user-thandi")


@pytest.fixture
def admin_user():
    db.add_admin("owner@yewa.co.za")
    return db.insert_profile("owner@yewa.co.za", full_name="Yewa Owner",
                             user_id="user-owner")


@pytest.fixture
def sample_product():
    return db.insert_product({
        "id": "prod-tee",
        "name": "Premium Black Tee",
        "description": "Heavyweight cotton tee",
        "price": 85.0,
        "category": "Tops",
        "gender": "Unisex",
        "colors": ["black", "white"],
        "sizes": ["S", "M", "L"],
        "image_url": "/media/product-images/tee.jpg",
    })


@pytest.fixture
def second_product():
    return db.insert_product({
        "id": "prod-set",
        "name": "Casual Beige Set",
        "price": 95.0,
        "original_price": 119.0,
        "is_on_sale": True,
        "category": "Sets",
        "gender": "Women",
        "colors": ["beige"],
    })


# ── Sample data factories ─────────────────────────────────────────────────────

@pytest.fixture
def make_release():
    """Factory for OCDS release dicts."""
    def _make(ocid="ocds-abc-001", title="Supply of laptops", status="active",
              category="goods", amount=None, currency="ZAR", date="2026-09-01T00:00:00Z",
              end_date=None, buyer="Gauteng Department of Education", description="",
              additional=None, with_tender=True):
        release = {"ocid": ocid, "id": f"{ocid}-r1", "date": date, "tag": ["tender"],
                   "buyer": {"name": buyer}}
        if with_tender:
            tender = {
                "title": title,
                "description": description,
                "status": status,
                "mainProcurementCategory": category,
                "procuringEntity": {"name": buyer},
                "tenderPeriod": {"endDate": end_date} if end_date else {},
                "documents": [],
            }
            if amount is not None:
                tender["value"] = {"amount": amount, "currency": currency}
            if additional:
                tender["additionalProcurementCategories"] = additional
            release["tender"] = tender
        return release
    return _make


@pytest.fixture
def delivery():
    return {
        "phone": "082 123 4567",
        "email": "thandi@example.co.za",
        "address": "12 Jan Smuts Ave",
        "city": "Johannesburg",
        "province": "Gauteng",
        "postal_code": "2196",
    }
