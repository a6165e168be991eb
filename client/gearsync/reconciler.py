"""
Payload reconciler - rewrites finding image lists to confirmed remote URLs.

Pure functions over (findings, ReconciliationMap). Output keeps each
finding's original image order, drops images that never resolved, and
never contains a local locator.
"""

from typing import Iterable

from gearsync.locators import is_local
from gearsync.models import ReconciliationMap, RepairFinding


def reconcile(
    findings: Iterable[RepairFinding],
    reconciliation: ReconciliationMap,
) -> list[RepairFinding]:
    """
    Returns new findings whose images are remote-only, deduplicated per finding.

    Remote locators are kept, local ones are swapped for their uploaded URL
    or dropped when the upload failed. Inputs are not modified.
    """
    return [
        finding.model_copy(update={"images": reconcile_images(finding.images, reconciliation)})
        for finding in findings
    ]


def reconcile_images(images: Iterable[str], reconciliation: ReconciliationMap) -> tuple[str, ...]:
    resolved: dict[str, None] = {}
    for locator in images:
        url = reconciliation.resolve(locator)
        if url is not None:
            resolved.setdefault(url, None)

    # Final guard: a bad map entry must not leak a device path to the server
    return tuple(url for url in resolved if not is_local(url))


def lost_images(
    findings: Iterable[RepairFinding],
    reconciliation: ReconciliationMap,
) -> dict[int, list[str]]:
    """Per finding id, the local locators that will be dropped (order-preserving, distinct)."""
    lost: dict[int, list[str]] = {}
    for finding in findings:
        dropped = [
            loc for loc in dict.fromkeys(finding.images)
            if is_local(loc) and reconciliation.resolve(loc) is None
        ]
        if dropped:
            lost[finding.finding_id] = dropped
    return lost


def all_image_urls(findings: Iterable[RepairFinding]) -> list[str]:
    """Every image URL across findings, first-seen order, no duplicates."""
    urls: dict[str, None] = {}
    for finding in findings:
        for url in finding.images:
            urls.setdefault(url, None)
    return list(urls)
