"""
client.py — eTenders OCDS client (shares the /etenders-proxy relay)

Upstream calls run proxies.relay_get in-process, the same code behind
/etenders-proxy. Setting ETENDERS_PROXY_URL sends them to an external relay
instead. Releases are fetched in one large page for a rolling 90-day
window; filtering, sorting and paging happen in pipeline.py.
"""

import logging
from datetime import date, timedelta
from urllib.parse import urlencode, quote

import requests
from dateutil import parser as date_parser

from yewa.api import proxies
from yewa.core import secrets
from yewa.tenders import pipeline

log = logging.getLogger("tenders")

RELEASES_PATH = "/api/OCDSReleases"
RELEASE_PATH = "/api/OCDSReleases/release/{ocid}"
FETCH_TIMEOUT = 30
WINDOW_DAYS = 90
FETCH_PAGE_SIZE = 2000

PROVINCES = {
    "eastern-cape": "Eastern Cape",
    "free-state": "Free State",
    "gauteng": "Gauteng",
    "kwazulu-natal": "KwaZulu-Natal",
    "limpopo": "Limpopo",
    "mpumalanga": "Mpumalanga",
    "northern-cape": "Northern Cape",
    "north-west": "North West",
    "western-cape": "Western Cape",
    "national": "National",
}

CURRENCY_SYMBOLS = {"ZAR": "R", "USD": "US$", "EUR": "€", "GBP": "£"}


class TenderApiError(Exception):
    """The relay or the upstream API failed."""

    retryable = True


class TenderTimeoutError(TenderApiError):
    """No answer within FETCH_TIMEOUT seconds."""


# ═══════════════════════════════════════════════════════════════════════
# Fetching
# ═══════════════════════════════════════════════════════════════════════

def map_province(province: str | None) -> str | None:
    """Filter key → upstream province name. "all" and empty mean no filter."""
    if not province or province == "all":
        return None
    return PROVINCES.get(province.lower(), province)


def build_release_params(page: int = 1, page_size: int = FETCH_PAGE_SIZE,
                         province: str | None = None, today: date | None = None) -> dict:
    today = today or date.today()
    params = {
        "PageNumber": page,
        "PageSize": page_size,
        "dateFrom": (today - timedelta(days=WINDOW_DAYS)).isoformat(),
        "dateTo": today.isoformat(),
    }
    mapped = map_province(province)
    if mapped:
        params["province"] = mapped
    return params


def _relay_http(proxy_url: str, path: str, query: str):
    """POST {path, params} to an external relay and return its JSON."""
    try:
        resp = requests.post(proxy_url, json={"path": path, "params": query},
                             timeout=FETCH_TIMEOUT)
    except requests.exceptions.Timeout:
        log.warning("Tender fetch timed out after %ss: %s", FETCH_TIMEOUT, path,
                    extra={"upstream": path})
        raise TenderTimeoutError(
            f"The tender service did not respond within {FETCH_TIMEOUT} seconds")
    except requests.exceptions.RequestException as e:
        log.error("Tender fetch failed: %s", e, extra={"upstream": path})
        raise TenderApiError(f"Could not reach the tender service: {e}")

    try:
        data = resp.json()
    except ValueError:
        data = None

    if resp.status_code >= 400 or not isinstance(data, dict):
        msg = (data or {}).get("error") if isinstance(data, dict) else None
        log.error("Tender relay returned %s: %s", resp.status_code, msg or resp.text[:200],
                  extra={"upstream": path, "status": resp.status_code})
        raise TenderApiError(msg or f"Tender service returned {resp.status_code}")
    return data


def _relay(path: str, params: dict | None = None) -> dict:
    """Fetch an upstream path and return its JSON object.

    Runs the relay in-process unless ETENDERS_PROXY_URL points at an
    external one.
    """
    query = urlencode(params) if params else ""
    proxy_url = secrets.get_key("etenders_proxy_url")
    if proxy_url:
        data = _relay_http(proxy_url, path, query)
    else:
        try:
            data = proxies.relay_get(path, query, timeout=FETCH_TIMEOUT)
        except proxies.UpstreamTimeout as e:
            log.warning("Tender fetch timed out after %ss: %s", FETCH_TIMEOUT, path,
                        extra={"upstream": path})
            raise TenderTimeoutError(str(e))
        except proxies.UpstreamError as e:
            log.error("Tender fetch failed: %s", e, extra={"upstream": path})
            raise TenderApiError(str(e))
        if not isinstance(data, dict):
            log.error("Tender API returned %s, expected an object", type(data).__name__,
                      extra={"upstream": path})
            raise TenderApiError("Unexpected response from the tender service")

    if data.get("error"):
        log.error("Tender relay error: %s", data["error"], extra={"upstream": path})
        raise TenderApiError(data["error"])
    return data


def fetch_releases(page: int = 1, page_size: int = FETCH_PAGE_SIZE,
                   province: str | None = None) -> dict:
    """One release package: {"releases": [...], ...}."""
    params = build_release_params(page, page_size, province)
    data = _relay(RELEASES_PATH, params)
    data.setdefault("releases", [])
    log.info("Fetched %d tender releases", len(data["releases"]),
             extra={"count": len(data["releases"]), "upstream": RELEASES_PATH})
    return data


def get_tender_by_ocid(ocid: str) -> dict | None:
    """The first release for an ocid, or None when the package is empty."""
    data = _relay(RELEASE_PATH.format(ocid=quote(ocid, safe="")))
    releases = data.get("releases")
    if releases:
        return releases[0]
    # The single-release endpoint may return the release itself
    return data if data.get("ocid") else None


def search_tenders(filters: dict | None = None, page: int = 1,
                   page_size: int = pipeline.DEFAULT_PAGE_SIZE) -> dict:
    """Fetch the window for the filter's province and run the query pipeline."""
    filters = pipeline.make_filters(**(filters or {}))
    package = fetch_releases(province=filters["province"])
    return pipeline.run_query(package["releases"], filters, page, page_size)


# ═══════════════════════════════════════════════════════════════════════
# Display helpers
# ═══════════════════════════════════════════════════════════════════════

def format_currency(amount, currency: str | None = None) -> str:
    """R 1 234.5 style; unknown currencies fall back to "<CUR> 1,234.5"."""
    code = (currency or "ZAR").upper()
    try:
        value = float(amount or 0)
    except (TypeError, ValueError):
        return f"{code} {amount}"
    symbol = CURRENCY_SYMBOLS.get(code)
    text = f"{value:,.2f}".rstrip("0").rstrip(".")
    if symbol is None:
        return f"{code} {text}"
    return f"{symbol} {text.replace(',', ' ')}"


def format_date(value: str | None) -> str:
    if not value:
        return "Not specified"
    try:
        dt = date_parser.parse(value)
    except (ValueError, OverflowError):
        return value
    return f"{dt.day} {dt.strftime('%B %Y')}"


def status_badge_variant(status: str | None) -> str:
    s = (status or "").lower()
    if not s:
        return "default"
    if "active" in s or "open" in s:
        return "success"
    if "closed" in s or "complete" in s:
        return "default"
    if "cancelled" in s or "withdrawn" in s:
        return "destructive"
    if "planning" in s or "pending" in s:
        return "warning"
    return "default"
