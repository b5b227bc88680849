"""
erp_config -- single public entrypoint for company settings.

Responsibility:
    Provides the way to obtain a company's settings at runtime through
    ``get_company_settings()``.  Settings are YAML files under ``sets/``:
    ``<company_code>.yaml`` when present, otherwise ``default.yaml``.

Architecture position:
    Configuration.  Sits above ``erp_kernel``; the kernel never imports from
    ``erp_config``.  ``erp_config.bridges`` turns settings into the kernel's
    ``PostingPolicy``.

Failure modes:
    - ``FileNotFoundError`` -- neither a company file nor default.yaml.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful call emits an ``ERP_CONFIG_TRACE`` log entry with the
    company, source file and settings checksum, tying postings to the exact
    settings that governed them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from erp_config.loader import load_yaml_file, parse_company_settings
from erp_config.schema import CompanySettings, NumberingSettings

_logger = logging.getLogger("erp_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

__all__ = ["CompanySettings", "NumberingSettings", "get_company_settings"]


def get_company_settings(company_code: str, config_dir: Path | None = None) -> CompanySettings:
    """
    Load and validate the settings of one company.

    Args:
        company_code: Company (tenant) code.
        config_dir: Override path to the settings directory.  Defaults to
            erp_config/sets/.
    """
    if not company_code:
        raise ValueError("company_code is required")
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    if not sets_dir.is_dir():
        raise FileNotFoundError(f"Configuration sets directory not found: {sets_dir}")

    path = sets_dir / f"{company_code}.yaml"
    if not path.exists():
        path = sets_dir / "default.yaml"
    if not path.exists():
        raise FileNotFoundError(
            f"No settings for company {company_code!r} and no default.yaml in {sets_dir}"
        )

    settings = parse_company_settings(load_yaml_file(path), company_code)
    _logger.info(
        "ERP_CONFIG_TRACE",
        extra={
            "trace_type": "ERP_CONFIG_TRACE",
            "company_code": company_code,
            "source": path.name,
            "checksum": settings.checksum,
        },
    )
    return settings
