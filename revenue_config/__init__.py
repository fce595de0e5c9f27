"""
revenue_config -- single public entrypoint for revenue configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``: the default currency and the CRM mapping
    (project type labels, tag and name rules, invoice basis ids).

Architecture position:
    Configuration -- YAML-driven. Sits beside ``revenue_engines`` above
    ``revenue_kernel``. The engines MUST NEVER import from this package;
    ``revenue_ingestion`` translates configured strings into engine enums.

Invariants enforced:
    - Single entrypoint: runtime config flows through ``get_active_config()``.
    - Deterministic: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ConfigurationError`` -- required keys missing or ill-typed.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``REVENUE_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from revenue_config.loader import load_yaml_file, parse_engine_config
from revenue_config.schema import CrmMappingDef, EngineConfig, NameRuleDef, TagRuleDef

_logger = logging.getLogger("revenue_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Override path to a configuration file. Defaults to
            revenue_config/sets/default.yaml.

    Returns:
        Frozen ``EngineConfig``.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_engine_config(load_yaml_file(config_path), source=str(config_path))

    _logger.info(
        "REVENUE_CONFIG_TRACE",
        extra={
            "trace_type": "REVENUE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "default_currency": config.default_currency,
            "crm_source": config.crm.source,
            "project_type_label_count": len(config.crm.project_type_labels),
            "invoice_basis_count": len(config.crm.invoice_bases),
            "fallback_project_type": config.crm.fallback_project_type,
        },
    )
    return config


__all__ = [
    "CrmMappingDef",
    "EngineConfig",
    "NameRuleDef",
    "TagRuleDef",
    "get_active_config",
]
