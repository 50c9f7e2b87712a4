"""Behavioral-health CPT code registry reconciliation."""

from __future__ import annotations

from typing import Any

from regwatch.core.constants import CPT_REGISTRY_SOURCE_URL
from regwatch.core.logging import get_logger
from regwatch.processing.models import (
    CodeDefinition,
    CodeUpsertOutcome,
    Severity,
    SyncResult,
    SyncSource,
)
from regwatch.sources.base import ComplianceSource, utcnow

logger = get_logger(__name__)

CODE_CHANGE_CATEGORY = "cpt_code_change"


def _code(
    code: str, description: str, category: str, min_minutes: int, max_minutes: int
) -> CodeDefinition:
    return CodeDefinition(
        code=code,
        description=description,
        category=category,
        min_duration_min=min_minutes,
        max_duration_min=max_minutes,
        source_url=CPT_REGISTRY_SOURCE_URL,
    )


# Authoritative definitions; the stored registry is reconciled against this list
CANONICAL_CODES: tuple[CodeDefinition, ...] = (
    _code("90791", "Psychiatric diagnostic evaluation", "Evaluation", 60, 90),
    _code("90792", "Psychiatric diagnostic evaluation with medical services", "Evaluation", 60, 90),
    _code("90832", "Psychotherapy, 30 min", "Individual Therapy", 16, 37),
    _code("90834", "Psychotherapy, 45 min", "Individual Therapy", 38, 52),
    _code("90837", "Psychotherapy, 60 min", "Individual Therapy", 53, 60),
    _code("90839", "Psychotherapy for crisis; first 60 min", "Crisis", 30, 74),
    _code("90840", "Psychotherapy for crisis; each additional 30 min", "Crisis", 30, 60),
    _code("90846", "Family psychotherapy without patient present", "Family Therapy", 50, 60),
    _code("90847", "Family psychotherapy with patient present", "Family Therapy", 50, 60),
    _code("90853", "Group psychotherapy", "Group Therapy", 90, 120),
    _code("99213", "Office visit, established patient, low complexity", "E&M", 20, 29),
    _code("99214", "Office visit, established patient, moderate complexity", "E&M", 30, 39),
    _code("99215", "Office visit, established patient, high complexity", "E&M", 40, 54),
    _code("96130", "Psychological testing evaluation, first hour", "Testing", 60, 60),
    _code("96131", "Psychological testing evaluation, each additional hour", "Testing", 60, 60),
    _code("96136", "Psychological testing administration, first 30 min", "Testing", 30, 30),
    _code(
        "96138",
        "Psychological testing administration by technician, first 30 min",
        "Testing",
        30,
        30,
    ),
    _code(
        "99492",
        "Initial psychiatric collaborative care management, first 70 min",
        "Collaborative Care",
        70,
        70,
    ),
    _code(
        "99493",
        "Subsequent psychiatric collaborative care management, first 60 min",
        "Collaborative Care",
        60,
        60,
    ),
    _code(
        "99494",
        "Initial/subsequent psychiatric collaborative care, each additional 30 min",
        "Collaborative Care",
        30,
        30,
    ),
)


def describe_code(definition: CodeDefinition) -> str:
    """Render e.g. ``Psychotherapy, 60 min (53-60 min)``."""
    return (
        f"{definition.description} "
        f"({definition.min_duration_min}-{definition.max_duration_min} min)"
    )


class CodeRegistrySource(ComplianceSource):
    """Reconciles the stored code registry against CANONICAL_CODES.

    New codes raise a warning alert; a changed description or duration
    range is a critical alert because existing billing records may no
    longer match.
    """

    source = SyncSource.CMS
    sync_type = "cpt_codes"
    label = "CMS CPT Code Registry"

    def __init__(
        self, *args: Any, codes: tuple[CodeDefinition, ...] = CANONICAL_CODES, **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)
        self._codes = codes

    async def _sync(self, result: SyncResult) -> None:
        result.records_checked = len(self._codes)
        verified_at = utcnow()

        for definition in self._codes:
            outcome, previous = await self._db.upsert_code(definition, verified_at=verified_at)

            if outcome == CodeUpsertOutcome.inserted:
                result.record_change()
                await self._raise_alert(
                    severity=Severity.warning,
                    category=CODE_CHANGE_CATEGORY,
                    title=f"New CPT Code Added: {definition.code}",
                    description=(
                        f"CPT code {definition.code} ({definition.description}) has been added "
                        "to the registry. Verify billing workflows are updated."
                    ),
                    source_url=definition.source_url,
                )
            elif outcome == CodeUpsertOutcome.updated and previous is not None:
                result.record_change()
                logger.info(
                    "CPT code definition changed",
                    code=definition.code,
                    previous=describe_code(previous),
                    current=describe_code(definition),
                )
                await self._raise_alert(
                    severity=Severity.critical,
                    category=CODE_CHANGE_CATEGORY,
                    title=f"CPT Code Updated: {definition.code}",
                    description=(
                        f"CPT code {definition.code} has been modified.\n\n"
                        f"Previous: {describe_code(previous)}\n"
                        f"New: {describe_code(definition)}\n\n"
                        "Review all session notes and billing records using this code."
                    ),
                    source_url=definition.source_url,
                )
