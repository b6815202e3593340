"""
yewa/core/paths.py — Centralized Path Configuration

Single source of truth for directory paths. Every module imports from here
instead of computing its own DATA_DIR.

Priority: YEWA_DATA_DIR env → project data/ folder.
"""

import os
import logging

log = logging.getLogger("yewa.paths")

# ── Project Root ──────────────────────────────────────────────────────────────
_THIS_FILE = os.path.abspath(__file__)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(_THIS_FILE)))

_DEFAULT_DATA_DIR = os.path.join(PROJECT_ROOT, "data")


def _resolve_data_dir() -> str:
    """Find the data directory (sqlite file, logs, uploaded media)."""
    env_dir = os.environ.get("YEWA_DATA_DIR", "")
    if env_dir:
        os.makedirs(env_dir, exist_ok=True)
        return env_dir
    return _DEFAULT_DATA_DIR


DATA_DIR = _resolve_data_dir()

# ── Derived Directories ──────────────────────────────────────────────────────
LOG_DIR = os.path.join(DATA_DIR, "logs")
MEDIA_DIR = os.path.join(DATA_DIR, "media")
PRODUCT_IMAGES_DIR = os.path.join(MEDIA_DIR, "product-images")

for _d in (DATA_DIR, PRODUCT_IMAGES_DIR):
    os.makedirs(_d, exist_ok=True)


def validate_paths() -> dict:
    """Runtime validation — call at app startup to catch path issues early.

    Returns:
        {"ok": bool, "errors": [str], "resolved": {name: path}}
    """
    result = {"ok": True, "errors": [], "resolved": {
        "PROJECT_ROOT": PROJECT_ROOT,
        "DATA_DIR": DATA_DIR,
        "MEDIA_DIR": MEDIA_DIR,
    }}

    test_file = os.path.join(DATA_DIR, ".write_test")
    try:
        with open(test_file, "w") as f:
            f.write("ok")
        os.remove(test_file)
    except OSError as e:
        result["errors"].append(f"DATA_DIR not writable: {e}")
        result["ok"] = False

    return result
