"""
Configuration Loader (``erp_config.loader``).

Responsibility
--------------
Loads company settings YAML files and parses them into
``erp_config.schema`` dataclasses.  Callers use
``erp_config.get_company_settings()``; this module is the parsing layer
beneath it.

Invariants enforced
-------------------
* Unknown top-level keys are rejected, so typos do not silently fall back
  to defaults.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad values  -> ``ValueError`` from the schema dataclasses.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from erp_config.schema import CompanySettings, NumberingSettings

_TOP_LEVEL_KEYS = frozenset({
    "company_code",
    "currency",
    "rounding",
    "default_tax_code",
    "payment_terms_days",
    "enforce_credit_limits",
    "receipt_allocation",
    "max_conflict_retries",
    "pagination",
    "numbering",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file gives an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_numbering(data: dict[str, Any] | None) -> NumberingSettings:
    if not data:
        return NumberingSettings()
    defaults = NumberingSettings()
    prefixes = dict(defaults.prefixes)
    prefixes.update(data.get("prefixes") or {})
    return NumberingSettings(
        prefixes=tuple(sorted(prefixes.items())),
        width=int(data.get("width", defaults.width)),
    )


def parse_company_settings(data: dict[str, Any], company_code: str) -> CompanySettings:
    """
    Parse settings for ``company_code``.

    A ``company_code`` key inside the file, when present, must match; the
    default set omits it and is applied to any company.
    """
    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        raise ValueError(f"Unknown settings keys: {sorted(unknown)}")
    declared = data.get("company_code")
    if declared is not None and declared != company_code:
        raise ValueError(
            f"Settings file declares company {declared!r}, requested {company_code!r}"
        )

    pagination = data.get("pagination") or {}
    kwargs: dict[str, Any] = {
        key: data[key]
        for key in (
            "currency",
            "rounding",
            "payment_terms_days",
            "enforce_credit_limits",
            "receipt_allocation",
            "max_conflict_retries",
        )
        if key in data
    }
    if "default_tax_code" in data:
        kwargs["default_tax_code"] = data["default_tax_code"]
    if "default_page_size" in pagination:
        kwargs["default_page_size"] = int(pagination["default_page_size"])
    if "max_page_size" in pagination:
        kwargs["max_page_size"] = int(pagination["max_page_size"])

    return CompanySettings(
        company_code=company_code,
        numbering=parse_numbering(data.get("numbering")),
        checksum=compute_checksum(data),
        **kwargs,
    )
