"""
Repair API - create/update gear repair requests.

All create/update-repair HTTP interaction is isolated here.
"""

import logging
from typing import Any

import httpx

from gearsync.models import RepairSubmission, SubmissionError
from gearsync.config import REPAIR_ENDPOINT

logger = logging.getLogger(__name__)


class RepairApi:

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def create_gear_repair(self, submission: RepairSubmission) -> dict[str, Any]:
        """
        POST /gear-repair/

        Raises:
            SubmissionError: On transport failure, HTTP error, or status: false.
        """
        return await self._send("POST", REPAIR_ENDPOINT, submission)

    async def update_gear_repair(self, gear_repair_id: int, submission: RepairSubmission) -> dict[str, Any]:
        """
        PUT /gear-repair/{gear_repair_id}/

        Raises:
            SubmissionError: On transport failure, HTTP error, or status: false.
        """
        return await self._send("PUT", f"{REPAIR_ENDPOINT}{gear_repair_id}/", submission)

    async def save(self, submission: RepairSubmission, gear_repair_id: int | None = None) -> dict[str, Any]:
        """Update when gear_repair_id is known, create otherwise."""
        if gear_repair_id is None:
            return await self.create_gear_repair(submission)
        return await self.update_gear_repair(gear_repair_id, submission)

    async def _send(self, method: str, path: str, submission: RepairSubmission) -> dict[str, Any]:
        logger.info("Submitting gear repair", extra={"method": method, "path": path})
        try:
            response = await self._client.request(
                method,
                path,
                json=submission.model_dump(mode="json"),
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise SubmissionError(
                f"Repair {method} {path} failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise SubmissionError(f"Repair {method} {path} failed: {e}") from e
        except ValueError as e:
            raise SubmissionError(f"Repair {method} {path} returned invalid JSON") from e

        if not isinstance(body, dict):
            raise SubmissionError(f"Repair {method} {path} returned unexpected body")
        if body.get("status") is False:
            raise SubmissionError(body.get("message") or f"Repair {method} {path} was rejected")

        return body
