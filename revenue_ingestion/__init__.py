"""Ingestion: mapping mirrored CRM records into revenue engine input."""

from revenue_ingestion.gripp import GrippMapper, ProjectCorrection, to_decimal, to_int

__all__ = [
    "GrippMapper",
    "ProjectCorrection",
    "to_decimal",
    "to_int",
]
