"""
secrets.py — Centralized Secret + Settings Registry for Yewa

Single source of truth for every environment-driven value the app reads.

Env vars:
  SECRET_KEY             — Flask session signing key (cart + login cookie)
  PAYFAST_MERCHANT_ID    — PayFast merchant id
  PAYFAST_MERCHANT_KEY   — PayFast merchant key
  PAYFAST_PROCESS_URL    — PayFast hosted checkout form action
  PAYFAST_NOTIFY_URL     — Public URL PayFast posts ITN notifications to
  ETENDERS_BASE_URL      — Upstream OCDS API host
  ETENDERS_PROXY_URL     — Optional external relay (default: in-process)
  ADMIN_EMAILS           — Comma-separated emails seeded into the admins table

Security:
  - Values are never logged in full (masked to first 8 chars)
  - Health endpoint shows which keys are set (not values)
"""

import os
import logging

log = logging.getLogger("yewa.secrets")

# ─── Secret Definitions ─────────────────────────────────────────────────────

_REGISTRY = {
    "secret_key": {
        "env": "SECRET_KEY",
        "required": True,
        "desc": "Flask session signing key",
        "used_by": ["app"],
        "default": "yewa-dev-secret",
        "sensitive": True,
    },
    # PayFast
    "payfast_merchant_id": {
        "env": "PAYFAST_MERCHANT_ID",
        "required": True,
        "desc": "PayFast merchant id (defaults to the public sandbox merchant)",
        "used_by": ["checkout"],
        "default": "10000100",
    },
    "payfast_merchant_key": {
        "env": "PAYFAST_MERCHANT_KEY",
        "required": True,
        "desc": "PayFast merchant key",
        "used_by": ["checkout"],
        "default": "46f0cd694581a",
        "sensitive": True,
    },
    "payfast_process_url": {
        "env": "PAYFAST_PROCESS_URL",
        "required": False,
        "desc": "PayFast hosted checkout form action",
        "used_by": ["checkout"],
        "default": "https://www.payfast.co.za/eng/process",
    },
    "payfast_notify_url": {
        "env": "PAYFAST_NOTIFY_URL",
        "required": False,
        "desc": "Public webhook URL for PayFast notifications",
        "used_by": ["checkout"],
    },
    # eTenders
    "etenders_base_url": {
        "env": "ETENDERS_BASE_URL",
        "required": False,
        "desc": "Upstream OCDS releases API",
        "used_by": ["proxies"],
        "default": "https://ocds-api.etenders.gov.za",
    },
    "etenders_proxy_url": {
        "env": "ETENDERS_PROXY_URL",
        "required": False,
        "desc": "External relay for the tender pipeline (unset: relay in-process)",
        "used_by": ["tenders"],
    },
    # Admin seeding
    "admin_emails": {
        "env": "ADMIN_EMAILS",
        "required": False,
        "desc": "Comma-separated admin emails seeded into the admins table",
        "used_by": ["db"],
    },
}


# ─── Public API ──────────────────────────────────────────────────────────────

def get_key(name: str) -> str:
    """Get a value by registry name. Returns empty string if not set."""
    entry = _REGISTRY.get(name)
    if not entry:
        log.warning("Unknown secret requested: %s", name)
        return ""

    val = os.environ.get(entry["env"], "")
    if not val and "default" in entry:
        val = entry["default"]
    return val


def get_list(name: str) -> list:
    """Comma-separated registry value as a cleaned list."""
    return [v.strip() for v in get_key(name).split(",") if v.strip()]


def mask(value: str) -> str:
    """Mask a secret for safe logging. Shows first 8 chars."""
    if not value:
        return "(not set)"
    if len(value) <= 12:
        return value[:4] + "****"
    return value[:8] + "****" + f"({len(value)} chars)"


def validate_all() -> dict:
    """Validate all registry entries. Returns status report."""
    results = {}
    warnings = []
    for name, entry in _REGISTRY.items():
        val = get_key(name)
        is_set = bool(val)
        results[name] = {
            "set": is_set,
            "env": entry["env"],
            "desc": entry["desc"],
            "masked": mask(val) if not entry.get("sensitive") else ("set" if is_set else "not set"),
            "required": entry.get("required", False),
            "using_default": is_set and not os.environ.get(entry["env"]),
            "used_by": entry["used_by"],
        }
        if entry.get("required") and not is_set:
            warnings.append(f"REQUIRED secret missing: {entry['env']} ({entry['desc']})")
        if entry.get("sensitive") and results[name]["using_default"]:
            warnings.append(f"{entry['env']} is using its development default")

    return {
        "secrets": results,
        "total": len(results),
        "set": sum(1 for r in results.values() if r["set"]),
        "missing": sum(1 for r in results.values() if not r["set"]),
        "warnings": warnings,
    }


def startup_check():
    """Run on startup. Logs warnings for missing or defaulted secrets."""
    report = validate_all()
    log.info("Secrets: %d/%d configured", report["set"], report["total"])
    for w in report["warnings"]:
        log.warning("SECRET: %s", w)
    return report
