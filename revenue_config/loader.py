"""
Configuration Loader (``revenue_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen
``revenue_config.schema`` dataclasses. Callers use
``revenue_config.get_active_config()``; the functions here are its
building blocks and test tooling.

Architecture position
---------------------
**Config layer**. Depends on ``revenue_kernel`` for currency validation
and its exception types only; never on engines or ingestion.

Invariants enforced
-------------------
* Required keys are checked; no silent defaults for them.
* The default currency is a known ISO 4217 code.
* ``compute_checksum`` is a deterministic SHA-256 over the parsed mapping.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or ill-typed keys  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from revenue_config.schema import CrmMappingDef, EngineConfig, NameRuleDef, TagRuleDef
from revenue_kernel.domain.currency import CurrencyRegistry
from revenue_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def _require(data: dict[str, Any], key: str, source: str) -> Any:
    if key not in data or data[key] is None:
        raise ConfigurationError(source, f"missing required key '{key}'")
    return data[key]


def parse_tag_rule(data: dict[str, Any], source: str = "<dict>") -> TagRuleDef:
    """Parse one ``project_type_tags`` item; it needs an id or a searchname."""
    tag_id = data.get("id")
    searchname = data.get("searchname")
    if tag_id is None and searchname is None:
        raise ConfigurationError(source, "tag rule needs an 'id' or a 'searchname'")
    return TagRuleDef(
        project_type=str(_require(data, "project_type", source)),
        tag_id=str(tag_id) if tag_id is not None else None,
        searchname=str(searchname) if searchname is not None else None,
    )


def parse_name_rule(data: dict[str, Any], source: str = "<dict>") -> NameRuleDef:
    contains = _require(data, "contains", source)
    if isinstance(contains, str):
        contains = [contains]
    if not contains:
        raise ConfigurationError(source, "name rule needs at least one marker")
    return NameRuleDef(
        contains=tuple(str(marker).lower() for marker in contains),
        project_type=str(_require(data, "project_type", source)),
    )


def parse_crm_mapping(data: dict[str, Any], source: str = "<dict>") -> CrmMappingDef:
    """Parse the ``crm`` section."""
    labels = data.get("project_type_labels") or {}
    bases = data.get("invoice_bases") or {}
    if not isinstance(labels, dict) or not isinstance(bases, dict):
        raise ConfigurationError(
            source, "project_type_labels and invoice_bases must be mappings"
        )

    try:
        invoice_bases = tuple(
            sorted((int(basis_id), str(basis)) for basis_id, basis in bases.items())
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(source, f"invoice basis ids must be integers: {e}") from e

    fallback = data.get("fallback_project_type", "fixed_price")

    return CrmMappingDef(
        source=str(_require(data, "source", source)),
        project_type_labels=tuple(
            sorted((str(label), str(project_type)) for label, project_type in labels.items())
        ),
        project_type_tags=tuple(
            parse_tag_rule(item, source) for item in data.get("project_type_tags") or ()
        ),
        quote_discriminators=tuple(
            str(d).lower() for d in data.get("quote_discriminators") or ()
        ),
        name_rules=tuple(
            parse_name_rule(item, source) for item in data.get("name_rules") or ()
        ),
        invoice_bases=invoice_bases,
        fallback_project_type=str(fallback) if fallback else None,
    )


def parse_engine_config(data: dict[str, Any], source: str = "<dict>") -> EngineConfig:
    """
    Parse a complete ``EngineConfig`` from a loaded YAML mapping.

    Raises:
        ConfigurationError: on missing keys or an unknown currency.
    """
    engine = data.get("engine") or {}
    currency = str(engine.get("default_currency", "EUR")).upper()
    if not CurrencyRegistry.is_valid(currency):
        raise ConfigurationError(source, f"unknown default_currency '{currency}'")

    try:
        version = int(data.get("version", 1))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(source, f"version must be an integer: {e}") from e

    return EngineConfig(
        config_id=str(_require(data, "config_id", source)),
        version=version,
        default_currency=currency,
        crm=parse_crm_mapping(_require(data, "crm", source), source),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
