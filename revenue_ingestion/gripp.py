"""
Gripp mapping: pure transformation from mirrored CRM records to engine input.

The storage mirror hands over plain dicts using the CRM's own field names
(``amount``, ``amountwritten``, ``sellingprice``, ``invoicebasis``,
``projectType``, ``monthlyItems`` ...). This module turns them into
``ProjectLine``, ``TimeEntry`` and ``Project`` values. Configured labels and
ids are resolved to engine enums once, here, so raw CRM ids never reach the
engine. ZERO I/O.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from revenue_config import CrmMappingDef, EngineConfig, get_active_config
from revenue_engines.models import (
    MONTHS,
    InvoiceBasis,
    Project,
    ProjectLine,
    ProjectType,
    TimeEntry,
)
from revenue_kernel.exceptions import ConfigurationError, UnknownProjectTypeError
from revenue_kernel.logging_config import get_logger

logger = get_logger("ingestion.gripp")


# -----------------------------------------------------------------------------
# Coercion (pure)
# -----------------------------------------------------------------------------


def to_decimal(value: Any) -> Decimal | None:
    """CRM numbers arrive as numbers or strings; anything unreadable is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return None if value.is_nan() else value
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return None if result.is_nan() or result.is_infinite() else result


def to_int(value: Any) -> int | None:
    number = to_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def _tags(record: dict[str, Any]) -> list[dict[str, Any]]:
    """Tags are a list of dicts or a JSON string of one."""
    tags = record.get("tags")
    if isinstance(tags, str):
        try:
            tags = json.loads(tags)
        except ValueError:
            logger.warning(
                "project_tags_unparseable",
                extra={"project_id": record.get("id"), "tags": tags},
            )
            return []
    if not isinstance(tags, list):
        return []
    return [tag for tag in tags if isinstance(tag, dict)]


# -----------------------------------------------------------------------------
# Corrections
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectCorrection:
    """Manual override for project data that is wrong in the CRM."""

    project_id: int
    project_type: str | None = None  # CRM label, e.g. "Vaste Prijs"
    total_budget: Decimal | None = None
    previous_year_budget_used: Decimal | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ProjectCorrection:
        project_id = to_int(record.get("project_id"))
        if project_id is None:
            raise ValueError(f"Correction without a project_id: {record!r}")
        return cls(
            project_id=project_id,
            project_type=record.get("project_type") or None,
            total_budget=to_decimal(record.get("budget")),
            previous_year_budget_used=to_decimal(record.get("previous_year_budget_used")),
        )


# -----------------------------------------------------------------------------
# Mapper
# -----------------------------------------------------------------------------


def _project_type(value: str, source: str) -> ProjectType:
    try:
        return ProjectType(value)
    except ValueError:
        raise ConfigurationError(source, f"unknown project type '{value}'") from None


def _invoice_basis(value: str, source: str) -> InvoiceBasis:
    try:
        return InvoiceBasis(value)
    except ValueError:
        raise ConfigurationError(source, f"unknown invoice basis '{value}'") from None


class GrippMapper:
    """
    Maps Gripp mirror records into engine input types.

    Contract:
        Built from a ``CrmMappingDef``; every configured project type and
        invoice basis is resolved to its enum at construction.
    Guarantees:
        - Unknown invoice basis ids map to None (FIXED_PRICE by the
          classifier); non-numeric numbers map to None (zero at the
          engine boundary).
        - A project type is always resolved. A project whose label is
          unknown, or that matches no rule at all, gets the configured
          ``fallback_project_type`` (fixed price by default) with a
          ``project_type_fallback`` warning; with no fallback configured
          it is rejected with ``UnknownProjectTypeError``.
        - Corrections name their project type explicitly, so an unknown
          correction label is always rejected.
    Non-goals:
        - Does not fetch records or decide which year they belong to.
    """

    def __init__(self, crm: CrmMappingDef, default_currency: str = "EUR"):
        source = f"crm:{crm.source}"
        self.crm = crm
        self.default_currency = default_currency
        for _, value in crm.project_type_labels:
            _project_type(value, source)
        for _, value in crm.invoice_bases:
            _invoice_basis(value, source)
        self.fallback_project_type = (
            _project_type(crm.fallback_project_type, source)
            if crm.fallback_project_type is not None
            else None
        )
        self._tags = [
            (rule.tag_id, rule.searchname, _project_type(rule.project_type, source))
            for rule in crm.project_type_tags
        ]
        self._name_rules = [
            (rule.contains, _project_type(rule.project_type, source))
            for rule in crm.name_rules
        ]

    @classmethod
    def from_config(cls, config: EngineConfig | None = None) -> GrippMapper:
        config = config or get_active_config()
        return cls(config.crm, default_currency=config.default_currency)

    # -- classification ------------------------------------------------------

    def project_type_for_label(self, label: str, project_id: Any = None) -> ProjectType:
        value = self.crm.project_type_for_label(str(label))
        if value is None:
            raise UnknownProjectTypeError(label, project_id)
        return ProjectType(value)

    def _fallback(self, label: Any, project_id: Any) -> ProjectType:
        if self.fallback_project_type is None:
            raise UnknownProjectTypeError(label, project_id)
        logger.warning(
            "project_type_fallback",
            extra={
                "project_id": project_id,
                "label": label,
                "project_type": self.fallback_project_type.value,
            },
        )
        return self.fallback_project_type

    def resolve_project_type(self, record: dict[str, Any]) -> ProjectType:
        """
        Project type of a mirrored project.

        Precedence: explicit ``projectType`` label, quote discriminator,
        tags, then name markers, then the configured fallback.
        """
        project_id = record.get("projectId", record.get("id"))
        label = record.get("projectType") or record.get("type")
        if label:
            value = self.crm.project_type_for_label(str(label))
            if value is None:
                return self._fallback(label, project_id)
            return ProjectType(value)

        discr = str(record.get("discr") or record.get("offerprojectbase_discr") or "").lower()
        if discr and any(marker in discr for marker in self.crm.quote_discriminators):
            return ProjectType.QUOTE

        for tag in _tags(record):
            tag_id = str(tag.get("id", ""))
            searchname = str(tag.get("searchname", "")).strip().casefold()
            for rule_id, rule_name, project_type in self._tags:
                if (rule_id is not None and tag_id == rule_id) or (
                    rule_name is not None and searchname == rule_name.casefold()
                ):
                    return project_type

        name = str(record.get("projectName") or record.get("name") or "").lower()
        for markers, project_type in self._name_rules:
            if all(marker in name for marker in markers):
                logger.info(
                    "project_type_from_name",
                    extra={"project_id": project_id, "project_type": project_type.value},
                )
                return project_type

        return self._fallback(None, project_id)

    def resolve_invoice_basis(self, value: Any) -> InvoiceBasis | None:
        """``invoicebasis`` is ``{"id": ..., "searchname": ...}`` or a bare id."""
        basis_id = value.get("id") if isinstance(value, dict) else value
        basis_id = to_int(basis_id)
        if basis_id is None:
            return None
        value = self.crm.invoice_basis_for_id(basis_id)
        if value is None:
            logger.warning("unknown_invoice_basis_id", extra={"invoice_basis_id": basis_id})
            return None
        return InvoiceBasis(value)

    # -- records -------------------------------------------------------------

    def map_line(self, record: dict[str, Any]) -> ProjectLine:
        line_id = to_int(record.get("id"))
        if line_id is None:
            raise ValueError(f"Project line without an id: {record!r}")
        return ProjectLine(
            line_id=line_id,
            budgeted_hours=to_decimal(record.get("amount")),
            hours_written=to_decimal(record.get("amountwritten")),
            hourly_rate=to_decimal(record.get("sellingprice")),
            invoice_basis=self.resolve_invoice_basis(record.get("invoicebasis")),
            name=str(record.get("searchname") or record.get("description") or ""),
        )

    def map_entry(
        self,
        record: dict[str, Any],
        project_id: int,
        month: int | None = None,
    ) -> TimeEntry:
        """
        Map one hours record. ``month`` (the bucket it came from) wins over
        the record's own month field.
        """
        entry_id = to_int(record.get("id"))
        if entry_id is None:
            raise ValueError(f"Hours record without an id: {record!r}")
        own_month = to_int(record.get("month"))
        if month is not None and own_month is not None and own_month != month:
            logger.warning(
                "entry_month_mismatch",
                extra={"entry_id": entry_id, "record_month": own_month, "bucket_month": month},
            )
        return TimeEntry(
            entry_id=entry_id,
            project_id=project_id,
            project_line_id=to_int(record.get("projectLineId")),
            month=month if month is not None else own_month,
            hours=to_decimal(record.get("hours")),
            hourly_rate=to_decimal(record.get("hourlyRate")),
            employee=str(record.get("employeeName") or record.get("employee") or ""),
            description=str(record.get("description") or record.get("projectLineName") or ""),
        )

    def map_project(
        self,
        record: dict[str, Any],
        correction: ProjectCorrection | None = None,
    ) -> Project:
        """
        Map a project record with its ``projectLines`` and twelve
        ``monthlyItems`` buckets into a ``Project``.
        """
        project_id = to_int(record.get("projectId", record.get("id")))
        if project_id is None:
            raise ValueError(f"Project without an id: {record!r}")

        if correction is not None and correction.project_id != project_id:
            raise ValueError(
                f"Correction for project {correction.project_id} applied to {project_id}"
            )

        if correction is not None and correction.project_type:
            project_type = self.project_type_for_label(correction.project_type, project_id)
        else:
            project_type = self.resolve_project_type(record)

        total_budget = to_decimal(record.get("projectBudget"))
        previous = to_decimal(record.get("previousYearBudgetUsed"))
        if correction is not None:
            if correction.total_budget is not None:
                total_budget = correction.total_budget
            if correction.previous_year_budget_used is not None:
                previous = correction.previous_year_budget_used

        monthly = record.get("monthlyItems") or []
        if len(monthly) > MONTHS:
            raise ValueError(f"Project {project_id} has {len(monthly)} month buckets")
        buckets = tuple(
            tuple(self.map_entry(item, project_id, month=index + 1) for item in bucket or ())
            for index, bucket in enumerate(monthly)
        )

        project = Project(
            project_id=project_id,
            name=str(record.get("projectName") or record.get("name") or ""),
            project_type=project_type,
            total_budget=total_budget,
            previous_year_budget_used=previous,
            lines=tuple(self.map_line(line) for line in record.get("projectLines") or ()),
            monthly_entries=buckets,
            currency=record.get("currency") or self.default_currency,
        )
        logger.debug(
            "project_mapped",
            extra={
                "project_id": project_id,
                "project_type": project_type.value,
                "line_count": len(project.lines),
                "entry_count": len(project.entries),
                "corrected": correction is not None,
            },
        )
        return project
