"""
Revenue configuration schema.

Frozen dataclasses the YAML configuration is parsed into. Values that name
engine enums (project types, invoice bases) are kept as plain strings here;
this package never imports the engines.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# CRM mapping
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TagRuleDef:
    """A project tag that decides the project type."""

    project_type: str
    tag_id: str | None = None
    searchname: str | None = None


@dataclass(frozen=True)
class NameRuleDef:
    """Project type derived from markers in the project name."""

    contains: tuple[str, ...]
    project_type: str


@dataclass(frozen=True)
class CrmMappingDef:
    """How mirrored CRM records translate into engine vocabulary."""

    source: str
    project_type_labels: tuple[tuple[str, str], ...] = ()  # (label, project_type)
    project_type_tags: tuple[TagRuleDef, ...] = ()
    quote_discriminators: tuple[str, ...] = ()
    name_rules: tuple[NameRuleDef, ...] = ()
    invoice_bases: tuple[tuple[int, str], ...] = ()  # (crm id, invoice_basis)
    # Type of projects no label or rule identifies; None rejects them
    fallback_project_type: str | None = "fixed_price"

    def project_type_for_label(self, label: str) -> str | None:
        folded = label.strip().casefold()
        for known, project_type in self.project_type_labels:
            if known.casefold() == folded:
                return project_type
        return None

    def invoice_basis_for_id(self, basis_id: int) -> str | None:
        for known, basis in self.invoice_bases:
            if known == basis_id:
                return basis
        return None


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfig:
    """The active revenue configuration."""

    config_id: str
    version: int
    default_currency: str
    crm: CrmMappingDef
    checksum: str = ""
