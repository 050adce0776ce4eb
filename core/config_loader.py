"""
Configuration loader for the violation lookup service.

This module loads crawler configuration from YAML file
and supports environment variable overrides.
"""

import copy
import os
import yaml
from typing import Dict, Any, Optional
from pathlib import Path
from core.logger import get_logger

logger = get_logger("violation_lookup.config_loader")

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "crawler.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "site": {
        "name": "csgt",
        "display_name": "Cục Cảnh sát giao thông",
        "search_url": "https://www.csgt.vn/tra-cuu-phat-nguoi",
        "selectors": {
            "form": "form#violationsForm",
            "vehicle_type": 'select[name="vehicle_type"]',
            "plate_number": 'input[name="plate_number"]',
            "submit": "#submitBtn",
            "result_card": ".violation-card",
        },
    },
    "timeouts": {"navigation_ms": 30000, "form_ms": 20000, "submit_ms": 15000},
    "settle": {"select_ms": 500, "fill_ms": 500, "render_ms": 3000},
    "browser": {
        "headless": True,
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        ),
        "viewport": {"width": 1366, "height": 768},
        "ignore_https_errors": True,
        "args": [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
            "--no-first-run",
            "--no-zygote",
            "--disable-extensions",
        ],
    },
    "pacing": {"enabled": True, "between_requests_ms": 1000},
    "cache": {"ttl_seconds": 3600, "cleanup_interval_seconds": 600},
    "batch": {"max_targets": 20},
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base, recursing into nested dicts."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_crawler_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load crawler configuration from YAML file with environment variable overrides.

    Values from the YAML file are merged over the built-in defaults, so a
    partial file only needs the keys it changes.

    Environment variable overrides:
    - VIOLATION_LOOKUP_HEADLESS: "false" to run the browser headed
    - VIOLATION_LOOKUP_SEARCH_URL: Override the search page URL
    - VIOLATION_LOOKUP_CACHE_TTL: Override cache TTL in seconds
    - VIOLATION_LOOKUP_PACING_MS: Override delay between batch lookups

    Args:
        config_path: Optional path to a YAML file (default: config/crawler.yaml)

    Returns:
        Dictionary containing crawler configuration

    Raises:
        yaml.YAMLError: If YAML parsing fails
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            file_config: Dict[str, Any] = yaml.safe_load(f) or {}
        config = _deep_merge(DEFAULT_CONFIG, file_config)
    else:
        logger.warning(f"Crawler config file not found: {path}, using defaults")
        config = copy.deepcopy(DEFAULT_CONFIG)

    headless = os.environ.get("VIOLATION_LOOKUP_HEADLESS", "")
    if headless.lower() in ("false", "0", "no"):
        config["browser"]["headless"] = False
        logger.info("Headed browser enabled via environment variable")

    if search_url := os.environ.get("VIOLATION_LOOKUP_SEARCH_URL"):
        config["site"]["search_url"] = search_url
        logger.info(f"Search URL overridden via environment: {search_url}")

    if cache_ttl := os.environ.get("VIOLATION_LOOKUP_CACHE_TTL"):
        try:
            config["cache"]["ttl_seconds"] = float(cache_ttl)
            logger.info(f"Cache TTL overridden via environment: {cache_ttl}s")
        except ValueError:
            logger.warning(f"Invalid VIOLATION_LOOKUP_CACHE_TTL value: {cache_ttl}")

    if pacing_ms := os.environ.get("VIOLATION_LOOKUP_PACING_MS"):
        try:
            config["pacing"]["between_requests_ms"] = int(pacing_ms)
            logger.info(f"Pacing delay overridden via environment: {pacing_ms}ms")
        except ValueError:
            logger.warning(f"Invalid VIOLATION_LOOKUP_PACING_MS value: {pacing_ms}")

    return config
