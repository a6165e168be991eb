"""
Image reference store - session state for attached repair photos.

State is immutable. Every UI interaction is an event, and reduce() maps
(state, event) to the next state. Async upload completions never touch
the state directly; the save action dispatches a single
ReconciliationApplied event once the whole batch is terminal.
"""

from typing import Union

from pydantic import BaseModel, ConfigDict

from gearsync.models import ImageReference, RepairFinding, ReconciliationMap


# --- State ---

class RemovedImage(BaseModel):
    """Soft-deleted reference plus the findings it was attached to."""
    model_config = ConfigDict(frozen=True)

    reference: ImageReference
    finding_ids: tuple[int, ...] = ()


class ImageStoreState(BaseModel):
    model_config = ConfigDict(frozen=True)

    images: tuple[ImageReference, ...] = ()
    removed: tuple[RemovedImage, ...] = ()
    findings: tuple[RepairFinding, ...] = ()
    # Reference id added for an already-held locator -> id of the reference holding it
    aliases: dict[str, str] = {}


# --- Events ---

class FindingsLoaded(BaseModel):
    """Pricing calculator selection changed."""
    findings: tuple[RepairFinding, ...]


class ImageAdded(BaseModel):
    """Photo captured or picked, optionally attached to one finding."""
    reference: ImageReference
    finding_id: int | None = None


class ImageAssigned(BaseModel):
    reference_id: str
    finding_id: int


class ImageUnassigned(BaseModel):
    """Detach a locator from one finding only."""
    finding_id: int
    locator: str


class ImageReplaced(BaseModel):
    """Annotation editor produced a new file for an existing reference."""
    reference_id: str
    locator: str


class ImageRemoved(BaseModel):
    reference_id: str


class ImageRestored(BaseModel):
    reference_id: str


class ReconciliationApplied(BaseModel):
    """
    Commit of a finished save, applied to the findings as they are now.

    Uploaded locators become their remote URL and failed ones are dropped.
    Local images attached while the save was running are left alone.
    """
    reconciliation: ReconciliationMap
    failed: tuple[str, ...] = ()


class SessionCleared(BaseModel):
    pass


StoreEvent = Union[
    FindingsLoaded,
    ImageAdded,
    ImageAssigned,
    ImageUnassigned,
    ImageReplaced,
    ImageRemoved,
    ImageRestored,
    ReconciliationApplied,
    SessionCleared,
]


# --- Public API ---

def reduce(state: ImageStoreState, event: StoreEvent) -> ImageStoreState:
    """
    Returns the state that follows event.

    Unknown reference or finding ids leave the state unchanged.

    Raises:
        TypeError: If event is not a StoreEvent.
    """
    if isinstance(event, FindingsLoaded):
        return _load_findings(state, event.findings)

    if isinstance(event, ImageAdded):
        images = state.images
        aliases = state.aliases
        holder = next((r for r in images if r.locator == event.reference.locator), None)
        if holder is None:
            images = images + (event.reference,)
        elif holder.id != event.reference.id:
            aliases = {**aliases, event.reference.id: holder.id}
        findings = state.findings
        if event.finding_id is not None:
            findings = _attach(findings, event.finding_id, event.reference.locator)
        return state.model_copy(update={"images": images, "findings": findings, "aliases": aliases})

    if isinstance(event, ImageAssigned):
        ref = _find(state, event.reference_id)
        if ref is None:
            return state
        return state.model_copy(
            update={"findings": _attach(state.findings, event.finding_id, ref.locator)}
        )

    if isinstance(event, ImageUnassigned):
        findings = tuple(
            _with_images(f, tuple(i for i in f.images if i != event.locator))
            if f.finding_id == event.finding_id else f
            for f in state.findings
        )
        return state.model_copy(update={"findings": findings})

    if isinstance(event, ImageReplaced):
        ref = _find(state, event.reference_id)
        if ref is None:
            return state
        updated = ref.model_copy(update={"locator": event.locator})
        images = tuple(updated if r.id == ref.id else r for r in state.images)
        findings = tuple(
            _with_images(f, _dedupe(event.locator if i == ref.locator else i for i in f.images))
            for f in state.findings
        )
        return state.model_copy(update={"images": images, "findings": findings})

    if isinstance(event, ImageRemoved):
        ref = _find(state, event.reference_id)
        if ref is None:
            return state
        attached_to = tuple(f.finding_id for f in state.findings if ref.locator in f.images)
        findings = tuple(
            _with_images(f, tuple(i for i in f.images if i != ref.locator))
            for f in state.findings
        )
        return state.model_copy(update={
            "images": tuple(r for r in state.images if r.id != ref.id),
            "removed": state.removed + (RemovedImage(reference=ref, finding_ids=attached_to),),
            "findings": findings,
        })

    if isinstance(event, ImageRestored):
        reference_id = state.aliases.get(event.reference_id, event.reference_id)
        entry = next((r for r in state.removed if r.reference.id == reference_id), None)
        if entry is None:
            return state
        findings = state.findings
        for finding_id in entry.finding_ids:
            findings = _attach(findings, finding_id, entry.reference.locator)
        return state.model_copy(update={
            "images": state.images + (entry.reference,),
            "removed": tuple(r for r in state.removed if r is not entry),
            "findings": findings,
        })

    if isinstance(event, ReconciliationApplied):
        mapping = event.reconciliation.entries
        failed = set(event.failed)
        findings = tuple(
            _with_images(f, _dedupe(mapping.get(i, i) for i in f.images if i not in failed))
            for f in state.findings
        )
        return state.model_copy(update={
            "images": tuple(_relocate(r, mapping) for r in state.images),
            "removed": tuple(
                r.model_copy(update={"reference": _relocate(r.reference, mapping)})
                for r in state.removed
            ),
            "findings": findings,
        })

    if isinstance(event, SessionCleared):
        return ImageStoreState()

    raise TypeError(f"Unsupported store event: {type(event).__name__}")


def images_for(state: ImageStoreState, finding_id: int) -> tuple[str, ...]:
    """Locators currently attached to a finding."""
    for finding in state.findings:
        if finding.finding_id == finding_id:
            return finding.images
    return ()


# --- Internal ---

def _load_findings(state: ImageStoreState, findings: tuple[RepairFinding, ...]) -> ImageStoreState:
    """Keeps images of findings that stay selected, unless the new finding brings its own."""
    previous = {f.finding_id: f.images for f in state.findings}
    merged = tuple(
        f if f.images or f.finding_id not in previous else _with_images(f, previous[f.finding_id])
        for f in findings
    )
    return state.model_copy(update={"findings": merged})


def _find(state: ImageStoreState, reference_id: str) -> ImageReference | None:
    reference_id = state.aliases.get(reference_id, reference_id)
    return next((r for r in state.images if r.id == reference_id), None)


def _relocate(reference: ImageReference, mapping: dict[str, str]) -> ImageReference:
    if reference.locator not in mapping:
        return reference
    return reference.model_copy(update={"locator": mapping[reference.locator]})


def _attach(findings: tuple[RepairFinding, ...], finding_id: int, locator: str) -> tuple[RepairFinding, ...]:
    return tuple(
        _with_images(f, f.images + (locator,))
        if f.finding_id == finding_id and locator not in f.images else f
        for f in findings
    )


def _with_images(finding: RepairFinding, images) -> RepairFinding:
    return finding.model_copy(update={"images": tuple(images)})


def _dedupe(locators) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for locator in locators:
        seen.setdefault(locator, None)
    return tuple(seen)


class ImageSession:
    """
    Holder for the live store state of one repair form.

    Only the UI interaction thread calls dispatch(); everything else reads
    state snapshots.
    """

    def __init__(self, state: ImageStoreState | None = None) -> None:
        self.state = state or ImageStoreState()

    def dispatch(self, event: StoreEvent) -> ImageStoreState:
        self.state = reduce(self.state, event)
        return self.state
