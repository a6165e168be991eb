"""
Repair pricing and pre-upload validation.

Checks that a save can succeed before any network traffic happens, and
builds the create/update-repair payload from reconciled findings.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from gearsync.models import (
    RepairContext,
    RepairFinding,
    RepairItemPayload,
    RepairSubmission,
    SubmissionValidationError,
)
from gearsync.reconciler import all_image_urls

REQUIRED_CONTEXT_FIELDS: tuple[str, ...] = ("lead_id", "firestation_id", "gear_id", "franchise_id")


def repair_sub_total(findings: Iterable[RepairFinding]) -> Decimal:
    """Sum of unit_cost * quantity, rounded to cents."""
    total = sum((f.sub_total for f in findings), Decimal("0"))
    return total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def validate_submission(context: RepairContext, findings: list[RepairFinding]) -> None:
    """
    Fatal checks run before any upload starts.

    Raises:
        SubmissionValidationError: Missing required field, no findings,
            or a repair total of zero.
    """
    missing = [name for name in REQUIRED_CONTEXT_FIELDS if getattr(context, name) is None]
    if missing:
        raise SubmissionValidationError(f"Missing required field: {', '.join(missing)}")

    if not findings:
        raise SubmissionValidationError("Select at least one repair item")

    if repair_sub_total(findings) <= 0:
        raise SubmissionValidationError("Repair total is zero, nothing to save")


def build_submission(context: RepairContext, findings: list[RepairFinding]) -> RepairSubmission:
    """
    Payload for POST /gear-repair/ or PUT /gear-repair/{id}/.

    Expects reconciled findings; images are copied as-is.
    """
    validate_submission(context, findings)

    return RepairSubmission(
        lead_id=context.lead_id,
        firestation_id=context.firestation_id,
        gear_id=context.gear_id,
        roster_id=context.roster_id,
        franchise_id=context.franchise_id,
        repair_status=context.repair_status,
        repair_sub_total=float(repair_sub_total(findings)),
        repair_image_url=all_image_urls(findings),
        remarks=context.remarks,
        repair_qty=sum(f.quantity for f in findings),
        repair_tag=context.repair_tag,
        spear_gear=context.spear_gear,
        slug=context.slug,
        repair_items=[
            RepairItemPayload(
                repair_finding_id=f.finding_id,
                name=f.name,
                repair_quantity=f.quantity,
                repair_cost=f"{f.unit_cost:.2f}",
                images=list(f.images),
            )
            for f in findings
        ],
    )
