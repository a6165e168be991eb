"""
Batch upload orchestrator - drives the retry controller over every pending image.

Uploads run one at a time, in first-seen order, so peak memory stays at
one image and progress only moves forward. Individual failures never stop
the batch; only a cancelled save does.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from gearsync.locators import is_local
from gearsync.models import (
    Failed,
    ReconciliationMap,
    RepairFinding,
    SaveCancelledError,
    UploadAttempt,
    UploadOutcome,
    UploadProgress,
    Uploaded,
)
from gearsync.retry import upload_with_retry
from gearsync.config import UPLOAD_MAX_ATTEMPTS, RETRY_BASE_DELAY_SECONDS

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[UploadProgress], None]
FailureCallback = Callable[[str, Failed], None]


def pending_local_locators(findings: Iterable[RepairFinding]) -> list[str]:
    """
    Distinct local locators referenced by any finding, in first-seen order.

    Remote URLs are already resolved and never make it into the batch.
    """
    seen: dict[str, None] = {}
    for finding in findings:
        for locator in finding.images:
            if is_local(locator):
                seen.setdefault(locator, None)
    return list(seen)


class BatchUploadOrchestrator:
    """Sequential uploader producing the ReconciliationMap for one save."""

    def __init__(
        self,
        attempt_upload: Callable[[str], Awaitable[UploadOutcome]],
        max_attempts: int = UPLOAD_MAX_ATTEMPTS,
        base_delay: float = RETRY_BASE_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._attempt_upload = attempt_upload
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._sleep = sleep

    async def upload_all(
        self,
        locators: Iterable[str],
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        is_live: Callable[[], bool] | None = None,
    ) -> ReconciliationMap:
        """
        Uploads each distinct local locator once and maps it to its remote URL.

        on_progress fires with attempt counters during retries and once
        after every locator reaches a terminal outcome. on_failure fires
        for every locator whose retries are exhausted or whose failure is
        terminal; those locators are left out of the returned map. A
        callback that raises is logged and the batch carries on.

        Raises:
            SaveCancelledError: If is_live() turns False between uploads.
                The attempt in flight is allowed to finish, nothing after
                it is started.
        """
        batch = list(dict.fromkeys(loc for loc in locators if is_local(loc)))
        total = len(batch)
        reconciliation = ReconciliationMap()

        for index, locator in enumerate(batch):
            if is_live is not None and not is_live():
                logger.info("Upload batch cancelled", extra={"completed": index, "total": total})
                raise SaveCancelledError(f"Save cancelled after {index} of {total} uploads")

            def _on_attempt(record: UploadAttempt, completed: int = index) -> None:
                _emit(on_progress, UploadProgress(
                    completed=completed,
                    total=total,
                    locator=record.locator,
                    attempt=record.attempt,
                    max_attempts=record.max_attempts,
                ))

            outcome = await upload_with_retry(
                self._attempt_upload,
                locator,
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                on_attempt=_on_attempt,
                sleep=self._sleep,
            )

            if isinstance(outcome, Uploaded):
                reconciliation = reconciliation.with_entry(locator, outcome.remote_url)
            else:
                logger.warning(
                    "Image upload failed permanently: %s",
                    outcome.reason,
                    extra={"locator": locator, "code": outcome.code.value},
                )
                if on_failure is not None:
                    try:
                        on_failure(locator, outcome)
                    except Exception:
                        logger.exception("Upload failure callback raised", extra={"locator": locator})

            _emit(on_progress, UploadProgress(completed=index + 1, total=total, locator=locator))

        logger.info(
            "Upload batch finished",
            extra={"uploaded": len(reconciliation), "failed": total - len(reconciliation), "total": total},
        )
        return reconciliation


# --- Internal ---

def _emit(on_progress: ProgressCallback | None, progress: UploadProgress) -> None:
    if on_progress is None:
        return
    try:
        on_progress(progress)
    except Exception:
        logger.exception("Upload progress callback raised", extra={"locator": progress.locator})
