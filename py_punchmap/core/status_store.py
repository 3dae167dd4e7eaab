"""
Persisted per-feature inspection status.

Every table has a completion stage, a selection flag and a list of punch
markers. The store is the only writer of these records. Each committed
mutation notifies observers and is written through to the persistence
medium; a corrupt or missing blob at startup gives an empty store.
"""

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Protocol, Tuple, Union

import structlog
from pydantic import BaseModel, Field, ValidationError, model_validator

from .caps import END, START

logger = structlog.get_logger()

FREE_GROUP_ID = "__free__"
SCHEMA_VERSION = 1

# Each table has two caps; finishing a cap completes two of its four units
CAPS_PER_TABLE = 2
UNITS_PER_CAP = 2


class Stage(str, Enum):
    """Completion stage of a table."""

    UNMARKED = "unmarked"
    PARTIAL = "partial"
    COMPLETE = "complete"


NEXT_STAGE = {
    Stage.UNMARKED: Stage.PARTIAL,
    Stage.PARTIAL: Stage.COMPLETE,
    Stage.COMPLETE: Stage.COMPLETE,
}

# Stage for 0, 1 and 2 finished caps
STAGE_BY_CAPS = (Stage.UNMARKED, Stage.PARTIAL, Stage.COMPLETE)


class MarkerRecord(BaseModel):
    """A punch: note, photo and subcontractor tag attached to a table."""

    marker_id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Stable marker id")
    note: str = Field(default="", description="Free-text description")
    photo_ref: Optional[str] = Field(default=None, description="Opaque photo reference (path or data URL)")
    tag: str = Field(default="", description="Subcontractor tag")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Creation time (UTC)"
    )
    location: Optional[Tuple[float, float]] = Field(
        default=None, description="World position; only set for free markers"
    )


class FeatureStatus(BaseModel):
    """
    Annotation state of one feature.

    The stage counts finished caps: PARTIAL means one cap is done, COMPLETE
    both. Records written without cap flags get them from the stage, with
    PARTIAL mapped to the start cap.
    """

    feature_id: str
    stage: Stage = Stage.UNMARKED
    start_cap: bool = Field(default=False, description="Start cap finished")
    end_cap: bool = Field(default=False, description="End cap finished")
    markers: List[MarkerRecord] = Field(default_factory=list)
    selected: bool = False

    @model_validator(mode="after")
    def _caps_follow_stage(self) -> "FeatureStatus":
        if self.caps_on != STAGE_BY_CAPS.index(self.stage):
            self.apply_stage(self.stage)
        return self

    @property
    def caps_on(self) -> int:
        return int(self.start_cap) + int(self.end_cap)

    def cap(self, edge_role: str) -> bool:
        if edge_role == START:
            return self.start_cap
        if edge_role == END:
            return self.end_cap
        raise ValueError(f"Unknown cap role: {edge_role!r}")

    def apply_stage(self, stage: Stage) -> None:
        """Set the stage and bring the cap flags in line with it."""
        self.stage = stage
        if stage == Stage.UNMARKED:
            self.start_cap = self.end_cap = False
        elif stage == Stage.COMPLETE:
            self.start_cap = self.end_cap = True
        elif self.caps_on != 1:
            self.start_cap, self.end_cap = True, False

    def apply_cap(self, edge_role: str, done: bool) -> None:
        """Set one cap flag and derive the stage from the flags."""
        if edge_role == START:
            self.start_cap = done
        elif edge_role == END:
            self.end_cap = done
        else:
            raise ValueError(f"Unknown cap role: {edge_role!r}")
        self.stage = STAGE_BY_CAPS[self.caps_on]

    def is_default(self) -> bool:
        return self.stage == Stage.UNMARKED and not self.markers and not self.selected


class StatusSnapshot(BaseModel):
    """Serialized form of the whole store."""

    version: int = SCHEMA_VERSION
    statuses: Dict[str, FeatureStatus] = Field(default_factory=dict)
    free_markers: List[MarkerRecord] = Field(default_factory=list)


@dataclass
class StatusChange:
    """
    Observer notification.

    ``feature_id``/``status`` are set for a single-feature change;
    ``snapshot`` is set instead after a bulk reset. Changes to free markers
    carry ``FREE_GROUP_ID`` and the current ``free_markers`` list.
    """

    feature_id: Optional[str] = None
    status: Optional[FeatureStatus] = None
    snapshot: Optional[Dict[str, FeatureStatus]] = None
    free_markers: Optional[List[MarkerRecord]] = None

    @property
    def is_snapshot(self) -> bool:
        return self.snapshot is not None


@dataclass
class ProgressSummary:
    total: int = 0
    unmarked: int = 0
    partial: int = 0
    complete: int = 0
    selected: int = 0
    markers: int = 0
    caps_on: int = 0

    @property
    def tables_done(self) -> int:
        return self.complete

    @property
    def units_done(self) -> int:
        return self.caps_on * UNITS_PER_CAP

    @property
    def units_total(self) -> int:
        return self.total * CAPS_PER_TABLE * UNITS_PER_CAP


class PersistenceReadError(Exception):
    """The persisted blob could not be decoded."""


class BlobStore(Protocol):
    """Storage medium for the serialized store."""

    def load_blob(self) -> Optional[str]:
        ...

    def save_blob(self, blob: str) -> None:
        ...


class MemoryBlobStore:
    """Keeps the blob in memory."""

    def __init__(self, blob: Optional[str] = None):
        self.blob = blob
        self.save_count = 0

    def load_blob(self) -> Optional[str]:
        return self.blob

    def save_blob(self, blob: str) -> None:
        self.blob = blob
        self.save_count += 1


class FileBlobStore:
    """Keeps the blob in a local JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load_blob(self) -> Optional[str]:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def save_blob(self, blob: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(blob, encoding="utf-8")
        tmp.replace(self.path)


def serialize_statuses(statuses: Dict[str, FeatureStatus],
                       free_markers: Iterable[MarkerRecord] = ()) -> str:
    snapshot = StatusSnapshot(statuses=statuses, free_markers=list(free_markers))
    return snapshot.model_dump_json()


def deserialize_statuses(blob: str) -> StatusSnapshot:
    """Decode a blob written by ``serialize_statuses``."""
    try:
        data = json.loads(blob)
    except (TypeError, ValueError) as e:
        raise PersistenceReadError(f"Blob is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise PersistenceReadError("Blob root is not an object")
    if data.get("version") != SCHEMA_VERSION:
        raise PersistenceReadError(f"Unsupported blob version: {data.get('version')!r}")
    try:
        snapshot = StatusSnapshot.model_validate(data)
    except ValidationError as e:
        raise PersistenceReadError(f"Blob failed validation: {e}") from e

    for key, status in snapshot.statuses.items():
        if status.feature_id != key:
            raise PersistenceReadError(f"Status keyed {key!r} belongs to {status.feature_id!r}")
    return snapshot


Observer = Callable[[StatusChange], None]


class StatusStore:
    """Feature id -> FeatureStatus map with write-through persistence."""

    def __init__(self, medium: Optional[BlobStore] = None):
        self.medium = medium
        self._statuses: Dict[str, FeatureStatus] = {}
        self._free_markers: List[MarkerRecord] = []
        self._observers: List[Observer] = []

    # Lifecycle

    def load(self) -> bool:
        """
        Read the persisted map from the medium.

        Returns True when a blob was restored. Missing or corrupt blobs leave
        the store empty.
        """
        self._statuses = {}
        self._free_markers = []
        if self.medium is None:
            return False

        try:
            blob = self.medium.load_blob()
            if blob is None:
                raise PersistenceReadError("No persisted status blob")
            snapshot = deserialize_statuses(blob)
        except (PersistenceReadError, OSError) as e:
            logger.warning("Starting with empty status store", reason=str(e))
            return False

        self._statuses = dict(snapshot.statuses)
        self._free_markers = list(snapshot.free_markers)
        logger.info("Status store loaded", features=len(self._statuses),
                    free_markers=len(self._free_markers))
        return True

    def serialize(self) -> str:
        return serialize_statuses(self._statuses, self._free_markers)

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    # Queries

    def get_status(self, feature_id: str) -> FeatureStatus:
        """
        Copy of a feature's status.

        A default UNMARKED record is created on first access, so this never
        returns None.
        """
        return self._record(feature_id).model_copy(deep=True)

    def peek(self, feature_id: str) -> Optional[FeatureStatus]:
        """Copy of the status if one exists, without creating it."""
        status = self._statuses.get(feature_id)
        return status.model_copy(deep=True) if status is not None else None

    def items(self, feature_ids: Optional[Iterable[str]] = None) -> Iterator[Tuple[str, FeatureStatus]]:
        """
        Read-only (feature id, status copy) pairs for export tooling.

        With ``feature_ids`` only those ids are visited, in that order, so
        statuses of features that are no longer loaded are skipped.
        """
        if feature_ids is None:
            for fid, status in list(self._statuses.items()):
                yield fid, status.model_copy(deep=True)
            return
        for fid in feature_ids:
            status = self._statuses.get(fid)
            if status is None:
                status = FeatureStatus(feature_id=fid)
            yield fid, status.model_copy(deep=True)

    def selected_ids(self) -> List[str]:
        return [fid for fid, status in self._statuses.items() if status.selected]

    def free_markers(self) -> List[MarkerRecord]:
        return [m.model_copy() for m in self._free_markers]

    def summary(self, feature_ids: Iterable[str]) -> ProgressSummary:
        summary = ProgressSummary()
        for fid in feature_ids:
            summary.total += 1
            status = self._statuses.get(fid)
            if status is None:
                summary.unmarked += 1
                continue
            if status.stage == Stage.COMPLETE:
                summary.complete += 1
            elif status.stage == Stage.PARTIAL:
                summary.partial += 1
            else:
                summary.unmarked += 1
            summary.caps_on += status.caps_on
            summary.selected += int(status.selected)
            summary.markers += len(status.markers)
        return summary

    # Stage

    def advance_stage(self, feature_id: str) -> bool:
        """UNMARKED -> PARTIAL -> COMPLETE. No-op on COMPLETE. Returns whether it changed."""
        status = self._staged_record(feature_id)
        nxt = NEXT_STAGE[status.stage]
        if nxt == status.stage:
            return False
        status.apply_stage(nxt)
        self._commit(feature_id)
        return True

    def reset_stage(self, feature_id: str) -> bool:
        status = self._staged_record(feature_id)
        if status.stage == Stage.UNMARKED:
            return False
        status.apply_stage(Stage.UNMARKED)
        self._commit(feature_id)
        return True

    def set_cap(self, feature_id: str, edge_role: str, done: bool) -> bool:
        """
        Mark one cap (START or END) as finished or not.

        The stage follows the number of finished caps. Returns whether
        anything changed.
        """
        status = self._staged_record(feature_id)
        if status.cap(edge_role) == done:
            return False
        status.apply_cap(edge_role, done)
        self._commit(feature_id)
        return True

    # Selection

    def set_selected(self, feature_id: str, selected: bool) -> bool:
        status = self._staged_record(feature_id)
        if status.selected == selected:
            return False
        status.selected = selected
        self._commit(feature_id)
        return True

    def set_selection(self, feature_ids: Iterable[str]) -> List[str]:
        """
        Make ``feature_ids`` exactly the selected set.

        Observers hear about each changed feature; the medium is written once.
        Returns the ids whose flag changed.
        """
        ids = list(feature_ids)
        if FREE_GROUP_ID in ids:
            raise ValueError("Free markers cannot be selected")
        wanted = set(ids)
        changed = []
        for fid in self.selected_ids():
            if fid not in wanted:
                self._statuses[fid].selected = False
                changed.append(fid)
        for fid in ids:
            status = self._record(fid)
            if not status.selected:
                status.selected = True
                changed.append(fid)
        if changed:
            for fid in changed:
                self._notify(StatusChange(fid, self._statuses[fid].model_copy(deep=True)))
            self._save()
        return changed

    def clear_all_selected(self) -> List[str]:
        return self.set_selection(())

    # Markers

    def add_marker(self, feature_id: str, record: MarkerRecord) -> None:
        if feature_id == FREE_GROUP_ID:
            if record.location is None:
                raise ValueError("Free markers need a world location")
            self._free_markers.append(record)
            self._commit_free()
            return
        self._record(feature_id).markers.append(record)
        self._commit(feature_id)

    def remove_marker(self, feature_id: str, marker_id: str) -> bool:
        if feature_id == FREE_GROUP_ID:
            kept = [m for m in self._free_markers if m.marker_id != marker_id]
            if len(kept) == len(self._free_markers):
                return False
            self._free_markers = kept
            self._commit_free()
            return True

        status = self._statuses.get(feature_id)
        if status is None:
            return False
        kept = [m for m in status.markers if m.marker_id != marker_id]
        if len(kept) == len(status.markers):
            return False
        status.markers = kept
        self._commit(feature_id)
        return True

    def clear_markers(self, feature_id: str) -> int:
        """Delete every marker of a feature. Returns how many were removed."""
        status = self._statuses.get(feature_id)
        if status is None or not status.markers:
            return 0
        removed = len(status.markers)
        status.markers = []
        self._commit(feature_id)
        return removed

    # Reset

    def reset_all(self) -> None:
        """Return every feature to defaults with a single snapshot notification."""
        self._statuses = {}
        self._free_markers = []
        logger.info("Status store reset")
        self._notify(StatusChange(snapshot={}))
        self._save()

    # Internals

    def _staged_record(self, feature_id: str) -> FeatureStatus:
        if feature_id == FREE_GROUP_ID:
            raise ValueError(f"{FREE_GROUP_ID!r} holds free markers and has no stage or selection")
        return self._record(feature_id)

    def _record(self, feature_id: str) -> FeatureStatus:
        status = self._statuses.get(feature_id)
        if status is None:
            status = FeatureStatus(feature_id=feature_id)
            self._statuses[feature_id] = status
        return status

    def _commit(self, feature_id: str) -> None:
        self._notify(StatusChange(feature_id, self._statuses[feature_id].model_copy(deep=True)))
        self._save()

    def _commit_free(self) -> None:
        self._notify(StatusChange(FREE_GROUP_ID, free_markers=self.free_markers()))
        self._save()

    def _notify(self, change: StatusChange) -> None:
        for observer in list(self._observers):
            observer(change)

    def _save(self) -> None:
        if self.medium is None:
            return
        self.medium.save_blob(self.serialize())
