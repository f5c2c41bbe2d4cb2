"""
Attribution settings: paths, header fragments, sentinels and output options.

Contains all configurable parameters for the attribution engine:
- Directory paths
- Column fragments used to locate logical fields in report headers
- Sentinel labels for rows with missing values
- Ranking and output settings
"""

from __future__ import annotations

import json
import warnings
from pathlib import Path
from typing import Any


# ============================================================================
# DIRECTORY PATHS
# ============================================================================

# Project root directory (parent of attribution/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Input directory scanned by the CLI when no files are given
DROPZONE_PATH = PROJECT_ROOT / "01_dropzone"

# Output directory for exported workbooks
OUTPUT_PATH = PROJECT_ROOT / "02_output"

# Configuration file directory
CONFIG_DIR = PROJECT_ROOT / "config"


# ============================================================================
# COLUMN FRAGMENTS
# ============================================================================
# Logical role -> substring searched for in the report headers.
# Labels follow the native export of the attribution report.
#
# Note: Fragments are overridable from config/column_mapping.json (see bottom
# of file). Default values are defined in _COLUMN_FRAGMENTS_DEFAULT below.

COLUMN_ROLES = (
    "order_id",
    "quantity",
    "creator",
    "content_id",
    "product_name",
    "sku",
)


# ============================================================================
# SENTINEL LABELS
# ============================================================================
# Bucket names used when a row has no value for a role.

UNKNOWN_CONTENT = "未知内容"
UNKNOWN_CREATOR = "未知达人"
UNSET_SKU = "未设置SKU"
UNNAMED_PRODUCT = "未命名商品"

# Missing order ids get a per-row synthetic id so they are never merged
SYNTHETIC_ORDER_PREFIX = "row-"


# ============================================================================
# RANKING & PRESENTATION
# ============================================================================

CONTENT_URL_TEMPLATE = "https://www.tiktok.com/@/video/{content_id}"

OUTPUT_SETTINGS = {
    "workbook_name_pattern": "Attribution_{scope}_{timestamp}.xlsx",
    "timestamp_format": "%Y%m%d_%H%M%S",
    "integer_format": "#,##0",
}

ALLOWED_SUFFIXES = (".csv",)


# ============================================================================
# CONFIG LOADING AND VALIDATION
# ============================================================================

def _load_column_fragments_from_json(defaults: dict[str, str]) -> dict[str, str]:
    """Load column fragments from JSON file, merge with defaults."""
    mapping_file = CONFIG_DIR / "column_mapping.json"
    if mapping_file.exists():
        try:
            with open(mapping_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            if "mappings" in data:
                merged = defaults.copy()
                for role, fragment in data["mappings"].items():
                    if role not in defaults:
                        warnings.warn(f"Ignoring unknown column role in {mapping_file.name}: {role}")
                        continue
                    merged[role] = str(fragment)
                return merged
        except Exception as e:
            warnings.warn(f"Failed to load column mapping from JSON: {e}. Using defaults.")
    return defaults


def _load_settings_from_json(defaults: dict[str, Any]) -> dict[str, Any]:
    """Load scalar settings (top_n, content_url_template) from JSON file."""
    settings_file = CONFIG_DIR / "settings.json"
    if settings_file.exists():
        try:
            with open(settings_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            merged = defaults.copy()
            merged.update({k: v for k, v in data.items() if k in defaults})
            return merged
        except Exception as e:
            warnings.warn(f"Failed to load settings from JSON: {e}. Using defaults.")
    return defaults


_COLUMN_FRAGMENTS_DEFAULT = {
    "order_id": "订单 ID",
    "quantity": "下单件数",
    "creator": "达人用户名",
    "content_id": "内容ID",
    "product_name": "商品名称",
    "sku": "Seller Sku",
}

_SETTINGS_DEFAULT: dict[str, Any] = {
    "top_n": 3,
    "content_url_template": CONTENT_URL_TEMPLATE,
}

# Load from JSON if available, otherwise use defaults
COLUMN_FRAGMENTS = _load_column_fragments_from_json(_COLUMN_FRAGMENTS_DEFAULT)
SETTINGS = _load_settings_from_json(_SETTINGS_DEFAULT)
TOP_N: int = SETTINGS["top_n"]


def load_config() -> dict[str, Any]:
    """
    Load and return all configuration as a dictionary.

    Returns:
        Dictionary with all configuration values.
    """
    return {
        "project_root": PROJECT_ROOT,
        "dropzone_path": DROPZONE_PATH,
        "output_path": OUTPUT_PATH,
        "config_dir": CONFIG_DIR,
        "column_fragments": COLUMN_FRAGMENTS,
        "top_n": TOP_N,
        "content_url_template": SETTINGS["content_url_template"],
        "output_settings": OUTPUT_SETTINGS,
    }


def validate_config() -> tuple[bool, list[str]]:
    """
    Validate configuration settings.

    Returns:
        Tuple of (is_valid, list_of_errors).
    """
    errors = []

    for role in COLUMN_ROLES:
        fragment = COLUMN_FRAGMENTS.get(role)
        if not fragment:
            errors.append(f"Missing column fragment for role: {role}")

    if not isinstance(TOP_N, int) or isinstance(TOP_N, bool) or TOP_N < 1:
        errors.append(f"Invalid top_n: {TOP_N}")

    if "{content_id}" not in str(SETTINGS["content_url_template"]):
        errors.append("content_url_template must contain '{content_id}'")

    return len(errors) == 0, errors


def ensure_directories() -> None:
    """Create required directories if they don't exist."""
    DROPZONE_PATH.mkdir(parents=True, exist_ok=True)
    OUTPUT_PATH.mkdir(parents=True, exist_ok=True)
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def content_url(content_id: str) -> str:
    """Public link for a content id."""
    return str(SETTINGS["content_url_template"]).format(content_id=content_id)


if __name__ == "__main__":
    is_valid, errors = validate_config()
    print(f"Attribution config: {'valid' if is_valid else 'INVALID'}")
    for error in errors:
        print(f"  ! {error}")

    for key, value in load_config().items():
        if isinstance(value, dict):
            print(f"{key}:")
            for sub_key, sub_value in value.items():
                print(f"    {sub_key:<22} {sub_value}")
        else:
            print(f"{key:<26} {value}")
