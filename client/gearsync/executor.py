"""
Upload executor - one multipart upload attempt per call.

Packages a local image, posts it to the upload endpoint, and classifies
the result as Uploaded or Failed. Never retries and never touches
session state; the retry controller decides what happens next.
"""

import os
from pathlib import Path
from typing import Callable

import httpx
from PIL import Image

from gearsync.locators import filename_of, is_local, local_path
from gearsync.models import Failed, FailureCode, Uploaded, UploadOutcome
from gearsync.config import (
    UPLOAD_ENDPOINT,
    UPLOAD_TIMEOUT_SECONDS,
    UPLOAD_FILE_FIELD,
    UPLOAD_ENTITY_FIELD,
    DEFAULT_IMAGE_FILENAME,
    DEFAULT_IMAGE_TYPE,
)

ImageReader = Callable[[str], bytes]


def read_local_image(locator: str) -> bytes:
    """Default reader for file:// locators and bare paths."""
    return Path(local_path(locator)).read_bytes()


def content_type_for(filename: str) -> str:
    """
    Best-effort MIME type from the file extension.

    Uses Pillow's registered formats so anything Pillow can open gets its
    proper type. Unknown or missing extensions fall back to image/jpeg.
    """
    ext = os.path.splitext(filename)[1].lower()
    image_format = Image.registered_extensions().get(ext)
    if image_format is None:
        return DEFAULT_IMAGE_TYPE
    return Image.MIME.get(image_format, DEFAULT_IMAGE_TYPE)


class UploadExecutor:
    """Single-attempt uploader bound to one gear (the upload's entity id)."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        entity_id: int,
        reader: ImageReader = read_local_image,
        timeout: float = UPLOAD_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._entity_id = entity_id
        self._reader = reader
        self._timeout = timeout

    async def attempt_upload(self, locator: str) -> UploadOutcome:
        """
        Uploads the image behind a local locator once.

        Retryable failures: timeout, no response / dropped connection.
        Everything else (HTTP error status, server-side rejection,
        malformed or undecodable body, unreadable file) is terminal.

        Raises:
            ValueError: If locator is already a remote URL.
        """
        if not is_local(locator):
            raise ValueError(f"Not a local image locator: {locator!r}")

        filename = filename_of(locator, DEFAULT_IMAGE_FILENAME)

        try:
            payload = self._reader(locator)
        except OSError as e:
            return Failed(
                reason=f"Could not read image {filename}: {e}",
                retryable=False,
                code=FailureCode.FILE_UNREADABLE,
            )

        try:
            response = await self._client.post(
                UPLOAD_ENDPOINT,
                data={UPLOAD_ENTITY_FIELD: str(self._entity_id)},
                files={UPLOAD_FILE_FIELD: (filename, payload, content_type_for(filename))},
                timeout=self._timeout,
            )
        except httpx.TimeoutException:
            return Failed(
                reason=f"Upload timed out after {self._timeout:.0f}s",
                retryable=True,
                code=FailureCode.TIMEOUT,
            )
        except httpx.TransportError as e:
            return Failed(
                reason=f"Network error during upload: {e}",
                retryable=True,
                code=FailureCode.NETWORK_ERROR,
            )
        except httpx.RequestError as e:
            # Undecodable body, redirect loop
            return Failed(
                reason=f"Upload request could not complete: {e}",
                retryable=False,
                code=FailureCode.INVALID_RESPONSE,
            )

        return _classify_response(response)


# --- Internal ---

def _classify_response(response: httpx.Response) -> UploadOutcome:
    """
    Maps an upload response to an outcome.

    Expected body: {"status": true, "uploaded": [{"filename", "public_image_url"}], "errors": []}
    A failed status or anything other than exactly one accepted file is a
    failure, whatever the HTTP status says.
    """
    body = _json_or_none(response)

    if response.is_error:
        message = None
        if isinstance(body, dict):
            message = body.get("message") or _first_error(body)
        return Failed(
            reason=message or f"Upload failed with status {response.status_code}",
            retryable=False,
            code=FailureCode.UPLOAD_FAILED,
        )

    if not isinstance(body, dict):
        return Failed(
            reason="Unexpected response format from server",
            retryable=False,
            code=FailureCode.INVALID_RESPONSE,
        )

    uploaded = body.get("uploaded") or []
    if not isinstance(uploaded, list):
        uploaded = []
    accepted = [u for u in uploaded if isinstance(u, dict) and u.get("public_image_url")]
    if body.get("status") and len(uploaded) == 1 and len(accepted) == 1:
        return Uploaded(
            remote_url=accepted[0]["public_image_url"],
            filename=accepted[0].get("filename") or "",
        )

    error = _first_error(body)
    if error:
        return Failed(reason=error, retryable=False, code=FailureCode.SERVER_ERROR)

    if body.get("status"):
        return Failed(
            reason=f"Server accepted {len(uploaded)} files, expected 1",
            retryable=False,
            code=FailureCode.INVALID_RESPONSE,
        )

    return Failed(
        reason=body.get("message") or "Upload rejected by server",
        retryable=False,
        code=FailureCode.SERVER_ERROR,
    )


def _json_or_none(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


def _first_error(body: dict) -> str | None:
    errors = body.get("errors") or []
    if not errors:
        return None
    first = errors[0]
    if isinstance(first, dict):
        return first.get("error") or first.get("message") or str(first)
    return str(first)
