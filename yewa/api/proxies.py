"""
proxies.py — Browser-facing relays and the PayFast webhook

/etenders-proxy   GET ?path=&params=  or  POST {"path", "params"}
                  → upstream OCDS JSON, verbatim
/pdf-proxy        GET ?url=  → tender document bytes served inline
/payfast-notify   POST (form-encoded ITN) → "OK"

These keep their own error bodies ({error} / {error, details}) rather than
the {"ok": ...} envelope the /api routes use, and carry CORS headers so
pages on other origins can call them.
"""

import logging

import requests
from flask import Blueprint, request, jsonify, Response

from yewa.core import secrets
from yewa.core.db import StoreError
from yewa.core.security import cors_enabled
from yewa.shop import checkout

log = logging.getLogger("proxies")

bp = Blueprint("proxies", __name__)

UPSTREAM_TIMEOUT = 30

PDF_REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Accept": "application/pdf,application/octet-stream,*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

PDF_ERROR_DETAILS = "This may be due to CORS restrictions or the document may not be accessible."


class UpstreamError(Exception):
    """The relayed request did not produce a usable response."""


class UpstreamTimeout(UpstreamError):
    """The upstream API did not answer in time."""


# ═══════════════════════════════════════════════════════════════════════
# eTenders relay
# ═══════════════════════════════════════════════════════════════════════

def build_target_url(path: str, params: str | None = None) -> str:
    url = secrets.get_key("etenders_base_url").rstrip("/") + path
    if params:
        url += f"?{params}"
    return url


def relay_get(path: str, params: str | None = None, timeout: int = UPSTREAM_TIMEOUT):
    """GET an eTenders API path and return the decoded JSON.

    Shared by the /etenders-proxy view and the server-side tender client.
    Raises UpstreamTimeout after `timeout` seconds, UpstreamError otherwise.
    """
    target = build_target_url(path, params)
    log.info("Proxying request to: %s", target, extra={"upstream": target})
    try:
        resp = requests.get(target, headers={"Accept": "application/json",
                                             "Content-Type": "application/json"},
                            timeout=timeout)
    except requests.exceptions.Timeout:
        raise UpstreamTimeout(f"The tender service did not respond within {timeout} seconds")
    except requests.exceptions.RequestException as e:
        raise UpstreamError(f"Could not reach the tender service: {e}")
    if not resp.ok:
        raise UpstreamError(f"API request failed: {resp.status_code} {resp.reason}")
    try:
        return resp.json()
    except ValueError:
        raise UpstreamError("Failed to fetch data from eTenders API")


@bp.route("/etenders-proxy", methods=["GET", "POST", "OPTIONS"])
@cors_enabled
def etenders_proxy():
    if request.method == "GET":
        path = request.args.get("path")
        params = request.args.get("params")
    else:
        body = request.get_json(silent=True) or {}
        path = body.get("path")
        params = body.get("params")

    if not path:
        return jsonify({"error": "Path parameter is required"}), 400

    try:
        data = relay_get(path, params)
    except UpstreamError as e:
        log.error("Error in etenders-proxy: %s", e, extra={"upstream": path})
        return jsonify({"error": str(e) or "Failed to fetch data from eTenders API"}), 500
    return jsonify(data)


# ═══════════════════════════════════════════════════════════════════════
# PDF relay
# ═══════════════════════════════════════════════════════════════════════

def looks_like_pdf(content_type: str | None, url: str) -> bool:
    content_type = content_type or ""
    return ("application/pdf" in content_type
            or "application/octet-stream" in content_type
            or ".pdf" in url.lower())


@bp.route("/pdf-proxy", methods=["GET", "OPTIONS"])
@cors_enabled
def pdf_proxy():
    target = request.args.get("url")
    if not target:
        return jsonify({"error": "URL parameter is required"}), 400

    log.info("Proxying PDF request to: %s", target, extra={"upstream": target})
    try:
        resp = requests.get(target, headers=PDF_REQUEST_HEADERS, timeout=UPSTREAM_TIMEOUT)
        if not resp.ok:
            raise UpstreamError(f"Failed to fetch PDF: {resp.status_code} {resp.reason}")
        if not looks_like_pdf(resp.headers.get("Content-Type"), target):
            raise UpstreamError("Response does not appear to be a PDF document")
    except (requests.exceptions.RequestException, UpstreamError) as e:
        log.error("Error in pdf-proxy: %s", e, extra={"upstream": target})
        return jsonify({"error": str(e) or "Failed to fetch PDF document",
                        "details": PDF_ERROR_DETAILS}), 500

    body = resp.content
    return Response(body, status=200, headers={
        "Content-Type": "application/pdf",
        "Content-Length": str(len(body)),
        "Cache-Control": "public, max-age=3600",
        "X-Content-Type-Options": "nosniff",
        "Content-Disposition": "inline",
    })


# ═══════════════════════════════════════════════════════════════════════
# PayFast ITN webhook
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/payfast-notify", methods=["POST", "OPTIONS"])
@cors_enabled
def payfast_notify():
    data = request.form.to_dict()
    payment_status = data.get("payment_status")
    order_id = data.get("custom_str2") or data.get("m_payment_id")
    payment_id = data.get("pf_payment_id")
    log.info("PayFast notification: status=%s", payment_status,
             extra={"order_id": order_id, "payment_id": payment_id})

    if payment_status == "COMPLETE" and order_id:
        try:
            checkout.complete_payment(payment_id, order_id)
        except StoreError as e:
            log.error("Failed to update order %s: %s", order_id, e,
                      extra={"order_id": order_id})
            return jsonify({"error": str(e)}), 500

    return Response("OK", status=200, mimetype="text/plain")
