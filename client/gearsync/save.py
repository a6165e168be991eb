"""
Save repair action - validation, upload, reconciliation, submission.

Coordinates the pipeline for one "save repair" tap. Owns the transient
upload state for that save and throws it away when the save ends.

No business logic lives here beyond sequencing and the liveness check.
"""

import logging
from typing import Callable

import httpx

from gearsync.models import (
    Failed,
    RepairContext,
    SaveCancelledError,
    SaveInProgressError,
    SaveResult,
    UploadFailure,
    UploadProgress,
)
from gearsync.orchestrator import BatchUploadOrchestrator, pending_local_locators
from gearsync.pricing import build_submission, validate_submission
from gearsync.reconciler import lost_images, reconcile
from gearsync.repair_api import RepairApi
from gearsync.store import ImageSession, ReconciliationApplied
from gearsync.executor import UploadExecutor
from gearsync.config import UPLOAD_MAX_ATTEMPTS

logger = logging.getLogger(__name__)


class SaveRepairAction:
    """
    One save button. A second run() while one is in flight is rejected;
    the UI reads in_flight to disable the button.
    """

    def __init__(self, orchestrator: BatchUploadOrchestrator, repair_api: RepairApi) -> None:
        self._orchestrator = orchestrator
        self._repair_api = repair_api
        self._in_flight = False
        self._live = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def cancel(self) -> None:
        """
        Marks the running save as abandoned (user navigated away).

        The upload in flight finishes, but nothing is committed to the
        session and no create/update request is sent.
        """
        if self._in_flight:
            logger.info("Save cancelled by user")
        self._live = False

    async def run(
        self,
        session: ImageSession,
        context: RepairContext,
        on_progress: Callable[[UploadProgress], None] | None = None,
        on_warning: Callable[[UploadFailure], None] | None = None,
    ) -> SaveResult:
        """
        Uploads pending images, reconciles findings, commits, and submits.

        Images that fail permanently are dropped from their findings and
        reported through on_warning and SaveResult.failures; the save
        still goes through with whatever resolved.

        Raises:
            SaveInProgressError: Another save is running.
            SubmissionValidationError: Nothing to save or a required field
                is missing. Raised before any upload.
            SaveCancelledError: cancel() was called; nothing applied.
            SubmissionError: The create/update request failed. The
                reconciliation is already committed, so a retry will not
                upload the same images again.
        """
        if self._in_flight:
            raise SaveInProgressError("A save is already in progress")

        self._in_flight = True
        self._live = True
        try:
            findings = list(session.state.findings)
            validate_submission(context, findings)

            pending = pending_local_locators(findings)
            failures: list[UploadFailure] = []

            def _on_failure(locator: str, outcome: Failed) -> None:
                failure = UploadFailure(
                    locator=locator,
                    reason=outcome.reason,
                    code=outcome.code,
                    finding_ids=[f.finding_id for f in findings if locator in f.images],
                )
                failures.append(failure)
                if on_warning is not None:
                    on_warning(failure)

            logger.info(
                "Saving repair",
                extra={"gear_id": context.gear_id, "findings": len(findings), "pending_uploads": len(pending)},
            )
            reconciliation = await self._orchestrator.upload_all(
                pending,
                on_progress=on_progress,
                on_failure=_on_failure,
                is_live=lambda: self._live,
            )

            if not self._live:
                raise SaveCancelledError("Save cancelled before results were applied")

            reconciled = reconcile(findings, reconciliation)
            submission = build_submission(context, reconciled)

            # Applied to the live findings, so edits made during the uploads survive
            session.dispatch(ReconciliationApplied(
                reconciliation=reconciliation,
                failed=tuple(f.locator for f in failures),
            ))

            response = await self._repair_api.save(submission, context.gear_repair_id)
            logger.info(
                "Repair saved",
                extra={"gear_id": context.gear_id, "failed_images": len(failures)},
            )
            return SaveResult(
                response=response,
                findings=reconciled,
                failures=failures,
                lost_images=lost_images(findings, reconciliation),
                reconciliation=reconciliation,
            )
        finally:
            self._in_flight = False
            self._live = False


def create_save_action(
    client: httpx.AsyncClient,
    gear_id: int,
    max_attempts: int = UPLOAD_MAX_ATTEMPTS,
) -> SaveRepairAction:
    """Wires executor, orchestrator, and repair API onto one shared client."""
    executor = UploadExecutor(client, entity_id=gear_id)
    orchestrator = BatchUploadOrchestrator(executor.attempt_upload, max_attempts=max_attempts)
    return SaveRepairAction(orchestrator, RepairApi(client))
