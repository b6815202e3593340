"""Tests for /etenders-proxy, /pdf-proxy and /payfast-notify."""

from unittest.mock import patch, MagicMock

import requests

from yewa.core import db
from yewa.api.proxies import looks_like_pdf


def _upstream(status=200, payload=None, content=b"", content_type="application/json"):
    r = MagicMock()
    r.status_code = status
    r.ok = status < 400
    r.reason = "OK" if r.ok else "Service Unavailable"
    r.json.return_value = payload
    r.content = content
    r.headers = {"Content-Type": content_type}
    return r


def _pending_order(order_id="order-1"):
    return db.create_order({"id": order_id, "user_id": "user-1", "email": "a@b.co.za",
                            "total_amount": 85.0},
                           [{"product_id": "p1", "product_name": "Tee", "quantity": 1,
                             "price": 85.0}])


# ═══════════════════════════════════════════════════════════════════════
# eTenders relay
# ═══════════════════════════════════════════════════════════════════════

class TestEtendersProxy:
    def test_missing_path(self, anon_client):
        r = anon_client.get("/etenders-proxy")
        assert r.status_code == 400
        assert r.get_json() == {"error": "Path parameter is required"}
        assert r.headers["Access-Control-Allow-Origin"] == "*"

    @patch("yewa.api.proxies.requests.get")
    def test_get_forwards_path_and_params(self, mock_get, anon_client):
        mock_get.return_value = _upstream(payload={"releases": [1, 2]})
        r = anon_client.get("/etenders-proxy", query_string={
            "path": "/api/OCDSReleases", "params": "PageNumber=1&PageSize=5"})
        assert r.status_code == 200
        assert r.get_json() == {"releases": [1, 2]}
        assert mock_get.call_args.args[0] == \
            "https://ocds-api.etenders.gov.za/api/OCDSReleases?PageNumber=1&PageSize=5"

    @patch("yewa.api.proxies.requests.get")
    def test_post_body(self, mock_get, anon_client):
        mock_get.return_value = _upstream(payload={"ok": 1})
        r = anon_client.post("/etenders-proxy", json={"path": "/api/OCDSReleases"})
        assert r.status_code == 200
        assert mock_get.call_args.args[0].endswith("/api/OCDSReleases")

    @patch("yewa.api.proxies.requests.get")
    def test_upstream_failure(self, mock_get, anon_client):
        mock_get.return_value = _upstream(status=503)
        r = anon_client.get("/etenders-proxy?path=/api/OCDSReleases")
        assert r.status_code == 500
        assert "503" in r.get_json()["error"]

    @patch("yewa.api.proxies.requests.get", side_effect=requests.exceptions.ConnectionError("dns"))
    def test_network_failure(self, _, anon_client):
        r = anon_client.get("/etenders-proxy?path=/api/OCDSReleases")
        assert r.status_code == 500
        assert r.get_json()["error"]

    def test_preflight(self, anon_client):
        r = anon_client.options("/etenders-proxy")
        assert r.status_code == 204
        assert "content-type" in r.headers["Access-Control-Allow-Headers"]


# ═══════════════════════════════════════════════════════════════════════
# PDF relay
# ═══════════════════════════════════════════════════════════════════════

class TestPdfProxy:
    def test_missing_url(self, anon_client):
        r = anon_client.get("/pdf-proxy")
        assert r.status_code == 400
        assert r.get_json()["error"] == "URL parameter is required"

    @patch("yewa.api.proxies.requests.get")
    def test_pdf_passthrough(self, mock_get, anon_client):
        mock_get.return_value = _upstream(content=b"%PDF-1.7 body",
                                          content_type="application/pdf")
        r = anon_client.get("/pdf-proxy?url=https://docs.example/notice")
        assert r.status_code == 200
        assert r.data == b"%PDF-1.7 body"
        assert r.headers["Content-Type"] == "application/pdf"
        assert r.headers["Content-Length"] == str(len(b"%PDF-1.7 body"))
        assert r.headers["Cache-Control"] == "public, max-age=3600"
        assert r.headers["Content-Disposition"] == "inline"
        assert r.headers["X-Content-Type-Options"] == "nosniff"
        sent = mock_get.call_args.kwargs["headers"]
        assert sent["Accept"].startswith("application/pdf")
        assert "Mozilla/5.0" in sent["User-Agent"]

    @patch("yewa.api.proxies.requests.get")
    def test_html_rejected(self, mock_get, anon_client):
        mock_get.return_value = _upstream(content=b"<html>", content_type="text/html")
        r = anon_client.get("/pdf-proxy?url=https://docs.example/notice")
        assert r.status_code == 500
        body = r.get_json()
        assert body["error"] == "Response does not appear to be a PDF document"
        assert "CORS" in body["details"]

    @patch("yewa.api.proxies.requests.get")
    def test_pdf_extension_accepted_with_any_type(self, mock_get, anon_client):
        mock_get.return_value = _upstream(content=b"%PDF", content_type="text/plain")
        assert anon_client.get("/pdf-proxy?url=https://x/DOC.PDF").status_code == 200

    @patch("yewa.api.proxies.requests.get")
    def test_upstream_404(self, mock_get, anon_client):
        mock_get.return_value = _upstream(status=404, content_type="application/pdf")
        r = anon_client.get("/pdf-proxy?url=https://x/a.pdf")
        assert r.status_code == 500
        assert "details" in r.get_json()

    def test_looks_like_pdf(self):
        assert looks_like_pdf("application/octet-stream", "https://x/file")
        assert looks_like_pdf(None, "https://x/file.pdf?dl=1")
        assert not looks_like_pdf("text/html", "https://x/file")


# ═══════════════════════════════════════════════════════════════════════
# PayFast webhook
# ═══════════════════════════════════════════════════════════════════════

class TestPayfastNotify:
    def test_complete_marks_paid(self, anon_client):
        _pending_order()
        r = anon_client.post("/payfast-notify", data={
            "payment_status": "COMPLETE", "m_payment_id": "order-1", "pf_payment_id": "pf-77"})
        assert r.status_code == 200
        assert r.data == b"OK"
        assert r.mimetype == "text/plain"
        order = db.get_order("order-1")
        assert order["status"] == "paid"
        assert order["payment_id"] == "pf-77"

    def test_custom_str2_preferred(self, anon_client):
        _pending_order("order-2")
        anon_client.post("/payfast-notify", data={
            "payment_status": "COMPLETE", "custom_str2": "order-2",
            "m_payment_id": "other", "pf_payment_id": "pf-1"})
        assert db.get_order("order-2")["status"] == "paid"

    def test_not_complete_leaves_pending(self, anon_client):
        _pending_order()
        r = anon_client.post("/payfast-notify", data={
            "payment_status": "CANCELLED", "m_payment_id": "order-1"})
        assert r.status_code == 200
        assert db.get_order("order-1")["status"] == "pending"

    def test_duplicate_delivery_is_idempotent(self, anon_client):
        _pending_order()
        form = {"payment_status": "COMPLETE", "m_payment_id": "order-1", "pf_payment_id": "pf-9"}
        anon_client.post("/payfast-notify", data=form)
        first = db.get_order("order-1")
        anon_client.post("/payfast-notify", data=form)
        second = db.get_order("order-1")
        assert (first["status"], first["payment_id"]) == (second["status"], second["payment_id"])

    def test_unknown_order_is_ok(self, anon_client):
        r = anon_client.post("/payfast-notify", data={
            "payment_status": "COMPLETE", "m_payment_id": "ghost", "pf_payment_id": "pf-1"})
        assert r.status_code == 200

    def test_complete_without_order_id_is_noop(self, anon_client):
        _pending_order()
        with patch("yewa.shop.checkout.db.finalize_order_payment") as mock_finalize:
            r = anon_client.post("/payfast-notify", data={
                "payment_status": "COMPLETE", "pf_payment_id": "pf-1"})
        assert r.status_code == 200
        assert r.data == b"OK"
        mock_finalize.assert_not_called()
        assert db.get_order("order-1")["status"] == "pending"

    def test_store_failure_returns_500(self, anon_client):
        with patch("yewa.shop.checkout.db.finalize_order_payment",
                   side_effect=db.StoreError("disk I/O error")):
            r = anon_client.post("/payfast-notify", data={
                "payment_status": "COMPLETE", "m_payment_id": "order-1"})
        assert r.status_code == 500
        assert r.get_json() == {"error": "disk I/O error"}
