"""
Retry controller - bounded retries with linear backoff around the executor.

Retryable failures (timeouts, dropped connections) are attempted again
after attempt * base_delay seconds. Terminal failures return immediately.
The returned outcome is always the last one produced by the executor.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt, wait_incrementing

from gearsync.models import Failed, UploadAttempt, UploadOutcome
from gearsync.config import UPLOAD_MAX_ATTEMPTS, RETRY_BASE_DELAY_SECONDS

logger = logging.getLogger(__name__)

AttemptUpload = Callable[[str], Awaitable[UploadOutcome]]
AttemptObserver = Callable[[UploadAttempt], None]


async def upload_with_retry(
    attempt_upload: AttemptUpload,
    locator: str,
    max_attempts: int = UPLOAD_MAX_ATTEMPTS,
    base_delay: float = RETRY_BASE_DELAY_SECONDS,
    on_attempt: AttemptObserver | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> UploadOutcome:
    """
    Uploads locator, retrying retryable failures up to max_attempts total.

    Every attempt is logged and passed to on_attempt. Observers cannot
    change the outcome; an observer that raises is logged and ignored.

    Raises:
        ValueError: If max_attempts < 1.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    attempt_number = 0

    async def _attempt() -> UploadOutcome:
        nonlocal attempt_number
        attempt_number += 1
        outcome = await attempt_upload(locator)
        _observe(
            UploadAttempt(
                locator=locator,
                attempt=attempt_number,
                max_attempts=max_attempts,
                outcome=outcome,
            ),
            on_attempt,
        )
        return outcome

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_incrementing(start=base_delay, increment=base_delay),
        retry=retry_if_result(is_retryable),
        retry_error_callback=_last_outcome,
        before_sleep=_log_backoff,
        sleep=sleep,
    )
    return await retrying(_attempt)


def is_retryable(outcome: UploadOutcome) -> bool:
    return isinstance(outcome, Failed) and outcome.retryable


# --- Internal ---

def _last_outcome(retry_state: RetryCallState) -> UploadOutcome:
    """Attempts exhausted: hand back the final Failed instead of raising RetryError."""
    return retry_state.outcome.result()


def _observe(record: UploadAttempt, on_attempt: AttemptObserver | None) -> None:
    outcome = record.outcome
    if isinstance(outcome, Failed):
        logger.warning(
            "Upload attempt %d/%d failed: %s",
            record.attempt,
            record.max_attempts,
            outcome.reason,
            extra={
                "locator": record.locator,
                "attempt": record.attempt,
                "code": outcome.code.value,
                "retryable": outcome.retryable,
            },
        )
    else:
        logger.info(
            "Upload attempt %d/%d succeeded",
            record.attempt,
            record.max_attempts,
            extra={"locator": record.locator, "attempt": record.attempt, "remote_url": outcome.remote_url},
        )

    if on_attempt is None:
        return
    try:
        on_attempt(record)
    except Exception:
        logger.exception("Upload attempt observer raised", extra={"locator": record.locator})


def _log_backoff(retry_state: RetryCallState) -> None:
    logger.info(
        "Retrying upload in %.1fs",
        retry_state.next_action.sleep,
        extra={"attempt": retry_state.attempt_number},
    )
