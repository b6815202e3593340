"""
routes_tenders.py — Tender search endpoints

GET /api/tenders?q=&status=&category=&province=&sort=&page=&page_size=
GET /api/tenders/<ocid>

Upstream failures come back as {"ok": false, "error", "retryable": true}
with 504 for a timeout and 502 for anything else.
"""

import logging

from flask import Blueprint, request

from yewa.tenders import client, pipeline
from yewa.api.helpers import json_response, json_error

log = logging.getLogger("tenders")

bp = Blueprint("tenders", __name__, url_prefix="/api/tenders")

MAX_PAGE_SIZE = 100


def _upstream_error(e: client.TenderApiError):
    code = 504 if isinstance(e, client.TenderTimeoutError) else 502
    return json_error(str(e), code, retryable=e.retryable)


def _decorate(release: dict) -> dict:
    """Release plus display strings; the release itself is left untouched."""
    tender = release.get("tender") or {}
    value = tender.get("value") or {}
    return {
        **release,
        "display": {
            "value": client.format_currency(value.get("amount"), value.get("currency")),
            "closing_date": client.format_date((tender.get("tenderPeriod") or {}).get("endDate")),
            "status_variant": client.status_badge_variant(tender.get("status")),
        },
    }


@bp.route("")
def api_tenders():
    args = request.args
    try:
        page = int(args.get("page", 1))
        page_size = min(int(args.get("page_size", pipeline.DEFAULT_PAGE_SIZE)), MAX_PAGE_SIZE)
    except ValueError:
        return json_error("page and page_size must be numbers")
    filters = pipeline.make_filters(
        search_query=args.get("q"),
        status=args.get("status"),
        category=args.get("category"),
        province=args.get("province"),
        sort_by=args.get("sort"),
    )
    try:
        result = client.search_tenders(filters, page, page_size)
    except client.TenderApiError as e:
        return _upstream_error(e)
    result["items"] = [_decorate(r) for r in result["items"]]
    return json_response({**result, "filters": filters})


@bp.route("/options")
def api_tender_options():
    return json_response({
        "statuses": list(pipeline.TENDER_STATUSES),
        "categories": list(pipeline.CATEGORY_ALIASES),
        "provinces": client.PROVINCES,
        "sort_keys": list(pipeline.SORT_KEYS),
        "defaults": pipeline.DEFAULT_FILTERS,
    })


@bp.route("/<path:ocid>")
def api_tender_detail(ocid):
    try:
        release = client.get_tender_by_ocid(ocid)
    except client.TenderApiError as e:
        return _upstream_error(e)
    if not release:
        return json_error("Tender not found", 404)
    return json_response({"release": _decorate(release)}, 200)
