"""
pipeline.py — Tender search: filter → sort → paginate

Pure functions over OCDS release dicts. Nothing here does I/O and no input
release is modified; every step returns a new list.

    releases = client.fetch_releases(...)
    page = run_query(releases, make_filters(search_query="water"), page=2)
"""

import math
import logging

log = logging.getLogger("tenders")

# Category filter keys → phrases looked for in the main and additional
# procurement categories.
# Any phrase contained in the (lowercased) category is a match.
CATEGORY_ALIASES = {
    "programming": ["programming"],
    "informationServiceActivities": ["information service activities", "information service"],
    "informationAndCommunication": ["information and communication",
                                    "information communication"],
    "computerProgrammingConsultancy": ["computer programming",
                                       "consultancy and related activities",
                                       "computer consultancy"],
    "goods": ["goods"],
    "services": ["services"],
    "works": ["works"],
    "consultingServices": ["consulting services", "consulting"],
}

# Status choices offered by the search form
TENDER_STATUSES = ("active", "open", "closed", "complete", "cancelled", "planning")

SORT_KEYS = ("date", "title", "value", "status", "closingDate")

DEFAULT_FILTERS = {
    "search_query": "",
    "status": "all",
    "category": "all",
    "province": "gauteng",
    "sort_by": "date",
}

DEFAULT_PAGE_SIZE = 10


def make_filters(**overrides) -> dict:
    """SearchFilters with defaults for anything not given. Unknown keys are dropped."""
    filters = dict(DEFAULT_FILTERS)
    for k, v in overrides.items():
        if k in filters and v is not None:
            filters[k] = v
    return filters


# ── Filter ────────────────────────────────────────────────────────────────────

def _searchable_text(release: dict) -> list:
    tender = release.get("tender") or {}
    return [
        tender.get("title"),
        tender.get("description"),
        release.get("ocid"),
        (release.get("buyer") or {}).get("name"),
        (tender.get("procuringEntity") or {}).get("name"),
    ]


def category_matches(category_key: str, category: str | None) -> bool:
    if category_key == "all":
        return True
    category = (category or "").lower()
    terms = CATEGORY_ALIASES.get(category_key)
    if terms is None:
        return category_key.lower() in category
    return any(term in category for term in terms)


def matches_filters(release: dict, filters: dict) -> bool:
    tender = release.get("tender")
    if not tender:
        return False

    query = (filters.get("search_query") or "").strip().lower()
    if query and query not in " ".join(t for t in _searchable_text(release) if t).lower():
        return False

    status = filters.get("status") or "all"
    if status != "all" and status.lower() not in (tender.get("status") or "").lower():
        return False

    key = filters.get("category") or "all"
    categories = [tender.get("mainProcurementCategory"),
                  *(tender.get("additionalProcurementCategories") or [])]
    return key == "all" or any(category_matches(key, c) for c in categories if c)


def filter_releases(releases: list, filters: dict) -> list:
    return [r for r in releases if matches_filters(r, filters)]


# ── Sort ──────────────────────────────────────────────────────────────────────

def _amount(release: dict) -> float:
    value = (release.get("tender") or {}).get("value") or {}
    try:
        return float(value.get("amount") or 0)
    except (TypeError, ValueError):
        return 0.0


def _closing_date(release: dict) -> str:
    period = (release.get("tender") or {}).get("tenderPeriod") or {}
    return period.get("endDate") or ""


def sort_releases(releases: list, sort_by: str = "date") -> list:
    """Stable sort. value/closingDate/date are newest or largest first."""
    if sort_by == "title":
        return sorted(releases, key=lambda r: (r["tender"].get("title") or "").casefold())
    if sort_by == "status":
        return sorted(releases, key=lambda r: (r["tender"].get("status") or "").casefold())
    if sort_by == "value":
        return sorted(releases, key=_amount, reverse=True)
    if sort_by == "closingDate":
        return sorted(releases, key=_closing_date, reverse=True)
    return sorted(releases, key=lambda r: r.get("date") or "", reverse=True)


# ── Paginate ──────────────────────────────────────────────────────────────────

def paginate(items: list, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> dict:
    page_size = max(1, int(page_size))
    page = max(1, int(page))
    start = (page - 1) * page_size
    return {
        "items": items[start:start + page_size],
        "page": page,
        "page_size": page_size,
        "total": len(items),
        "total_pages": math.ceil(len(items) / page_size),
    }


def run_query(releases: list, filters: dict, page: int = 1,
              page_size: int = DEFAULT_PAGE_SIZE) -> dict:
    """Filter, sort and slice one page of releases."""
    matched = filter_releases(releases, filters)
    ordered = sort_releases(matched, filters.get("sort_by") or "date")
    result = paginate(ordered, page, page_size)
    log.debug("Tender query: %d fetched, %d matched, page %d/%d",
              len(releases), len(matched), result["page"], result["total_pages"],
              extra={"count": len(matched)})
    return result
