"""
Domain models for the repair image upload pipeline.

All Pydantic models in one place. Imported by store, executor, retry,
orchestrator, reconciler, and save modules. Single source of truth for
data contracts.
"""

import uuid
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from gearsync.locators import is_remote


# --- Domain Enums ---

class FailureCode(str, Enum):
    """
    Why an upload attempt failed. Inherits str so Pydantic serializes
    to "TIMEOUT" / "NETWORK_ERROR" without extra conversion.
    """
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    SERVER_ERROR = "SERVER_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    FILE_UNREADABLE = "FILE_UNREADABLE"


class RepairStatus(str, Enum):
    COMPLETED = "completed"
    REJECTED = "rejected"


# --- Session Context ---

class ImageReference(BaseModel):
    """An image attached during the current editing session."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    locator: str


class RepairFinding(BaseModel):
    """A billable repair line item with its evidence photos."""
    model_config = ConfigDict(frozen=True)

    finding_id: int
    name: str = ""
    category: str = ""
    quantity: int = Field(1, ge=0)
    unit_cost: Decimal = Field(Decimal("0"), ge=0)
    images: tuple[str, ...] = ()

    @property
    def sub_total(self) -> Decimal:
        return self.unit_cost * self.quantity

    @field_serializer("unit_cost")
    def _serialize_cost(self, value: Decimal) -> str:
        return f"{value:.2f}"


# --- Upload Context ---

class Uploaded(BaseModel):
    """Endpoint confirmed the image and returned its public URL."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["uploaded"] = "uploaded"
    remote_url: str
    filename: str = ""


class Failed(BaseModel):
    """Attempt did not produce a remote URL."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    reason: str
    retryable: bool
    code: FailureCode


UploadOutcome = Annotated[Union[Uploaded, Failed], Field(discriminator="kind")]


class ReconciliationMap(BaseModel):
    """
    Local locator -> remote URL for images uploaded during one save.

    Built once per save by the orchestrator and never persisted. Every key
    is a local locator that was successfully uploaded; anything missing is
    unresolved. with_entry() returns a new map, the instance is frozen.
    """
    model_config = ConfigDict(frozen=True)

    entries: dict[str, str] = {}

    def with_entry(self, local: str, remote: str) -> "ReconciliationMap":
        return ReconciliationMap(entries={**self.entries, local: remote})

    def resolve(self, locator: str) -> str | None:
        if is_remote(locator):
            return locator
        return self.entries.get(locator)

    def __contains__(self, locator: object) -> bool:
        return locator in self.entries

    def __len__(self) -> int:
        return len(self.entries)


class UploadAttempt(BaseModel):
    """One upload attempt, recorded for diagnostics."""
    locator: str
    attempt: int = Field(ge=1)
    max_attempts: int = Field(ge=1)
    outcome: UploadOutcome


class UploadProgress(BaseModel):
    """Progress snapshot pushed to the UI during a save."""
    completed: int = Field(ge=0)
    total: int = Field(ge=0)
    locator: str | None = None
    attempt: int = 0
    max_attempts: int = 0

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 100
        return round(self.completed * 100 / self.total)


class UploadFailure(BaseModel):
    """Non-blocking warning for an image that permanently failed to upload."""
    locator: str
    reason: str
    code: FailureCode
    finding_ids: list[int] = []


# --- Submission Context ---

class RepairContext(BaseModel):
    """Non-image form fields of a create/update-repair request."""
    lead_id: int | None = None
    firestation_id: int | None = None
    gear_id: int | None = None
    roster_id: int | None = None
    franchise_id: int | None = None
    repair_status: RepairStatus = RepairStatus.COMPLETED
    remarks: str = ""
    repair_tag: str = ""
    spear_gear: bool = False
    slug: str | None = None

    # Set when editing an existing repair, selects PUT instead of POST
    gear_repair_id: int | None = None


class RepairItemPayload(BaseModel):
    repair_finding_id: int
    name: str
    repair_quantity: int
    repair_cost: str
    images: list[str]


class RepairSubmission(BaseModel):
    """JSON body for POST /gear-repair/ and PUT /gear-repair/{id}/."""
    lead_id: int
    firestation_id: int
    gear_id: int
    roster_id: int | None = None
    franchise_id: int
    repair_status: RepairStatus
    repair_sub_total: float = Field(ge=0.0)
    repair_image_url: list[str] = []
    remarks: str = ""
    repair_qty: int = Field(0, ge=0)
    repair_tag: str = ""
    spear_gear: bool = False
    slug: str | None = None
    repair_items: list[RepairItemPayload] = []


class SaveResult(BaseModel):
    """Outcome of a completed save."""
    response: dict[str, Any]
    findings: list[RepairFinding]
    failures: list[UploadFailure] = []
    # finding id -> local locators dropped from it
    lost_images: dict[int, list[str]] = {}
    reconciliation: ReconciliationMap = ReconciliationMap()


# --- Exceptions ---

class GearSyncError(Exception):
    """Base for all pipeline errors."""
    pass


class SubmissionValidationError(GearSyncError):
    """Save cannot succeed (zero total, missing field). Raised before any upload."""
    pass


class SaveInProgressError(GearSyncError):
    """A save for this form is already in flight."""
    pass


class SaveCancelledError(GearSyncError):
    """Save was cancelled; nothing was applied or submitted."""
    pass


class SubmissionError(GearSyncError):
    """Create/update-repair request failed."""
    pass
