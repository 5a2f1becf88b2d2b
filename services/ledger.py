"""
Topic History Ledger
====================

A topic is tracked as one record per distinct subject. Re-submitting a topic
does not create a second record: the current values are frozen into an
append-only list of review-cycle snapshots and the record is overwritten with
the new submission.

Key rules:
- Identity is the normalized name key; records stored before the key existed
  are matched on their exact display name instead
- History is chronological (oldest first) and only changes by appending on
  update or by removing a single snapshot by position
- The cycle count is the history length, never stored on its own
- Functions here never mutate their inputs; they hand back new records
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional

from utils.datetime_utils import now_local, to_iso
from utils.text_utils import normalize_hashtags, normalize_text


@dataclass(frozen=True)
class CycleSnapshot:
    """Pre-update values of a topic, captured when it was re-submitted"""

    date: Any
    result_before: str = ""
    result_after: str = ""
    confidence: str = ""
    percent_before: Optional[float] = None
    percent_after: Optional[float] = None

    def to_dict(self) -> Dict:
        return {
            "date": to_iso(self.date),
            "result_before": self.result_before,
            "result_after": self.result_after,
            "confidence": self.confidence,
            "percent_before": self.percent_before,
            "percent_after": self.percent_after,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "CycleSnapshot":
        return cls(
            date=data.get("date"),
            result_before=data.get("result_before") or "",
            result_after=data.get("result_after") or "",
            confidence=data.get("confidence") or "",
            percent_before=data.get("percent_before"),
            percent_after=data.get("percent_after"),
        )


@dataclass
class TopicRecord:
    """
    One tracked subject with its current results and past cycles.

    ``last_revision`` keeps whatever storage returned (datetime, ISO string or
    nothing) and is parsed at the point of use. The urgency tier is not a
    field: it depends on "now" and is always computed on read.
    """

    id: str
    name: str
    name_key: str = ""
    last_revision: Any = None
    revision_timestamp: Optional[float] = None
    result_before: str = ""
    result_after: str = ""
    percent_before: Optional[float] = None
    percent_after: Optional[float] = None
    confidence: str = ""
    tags: List[str] = field(default_factory=list)
    history: List[CycleSnapshot] = field(default_factory=list)
    owner_uid: Optional[str] = None

    @property
    def cycles(self) -> int:
        return len(self.history)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "name_key": self.name_key,
            "last_revision": to_iso(self.last_revision),
            "revision_timestamp": self.revision_timestamp,
            "result_before": self.result_before,
            "result_after": self.result_after,
            "percent_before": self.percent_before,
            "percent_after": self.percent_after,
            "confidence": self.confidence,
            "tags": list(self.tags),
            "history": [snapshot.to_dict() for snapshot in self.history],
            "cycles": self.cycles,
            "owner_uid": self.owner_uid,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "TopicRecord":
        """Build a record from a storage payload; legacy rows may lack keys"""
        timestamp = data.get("revision_timestamp")
        try:
            timestamp = float(timestamp) if timestamp is not None else None
        except (TypeError, ValueError):
            timestamp = None

        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            name_key=data.get("name_key") or "",
            last_revision=data.get("last_revision"),
            revision_timestamp=timestamp,
            result_before=data.get("result_before") or "",
            result_after=data.get("result_after") or "",
            percent_before=data.get("percent_before"),
            percent_after=data.get("percent_after"),
            confidence=data.get("confidence") or "",
            tags=normalize_hashtags(data.get("tags") or []),
            history=[
                CycleSnapshot.from_dict(item) for item in (data.get("history") or [])
            ],
            owner_uid=data.get("owner_uid"),
        )


@dataclass(frozen=True)
class TopicSubmission:
    """Validated form input for one study cycle (see services.submissions)"""

    name: str
    result_before: str
    result_after: str
    percent_before: float
    percent_after: float
    confidence: str
    tags: List[str] = field(default_factory=list)


class UpsertResult(NamedTuple):
    record: TopicRecord
    created: bool
    snapshot: Optional[CycleSnapshot]


def find_match(records: List[TopicRecord], name: str) -> Optional[TopicRecord]:
    """Record for ``name``: normalized key first, then exact display name"""
    key = normalize_text(name)
    for record in records:
        if record.name_key and record.name_key == key:
            return record
    for record in records:
        if record.name == name:
            return record
    return None


def snapshot_of(record: TopicRecord, now: datetime) -> CycleSnapshot:
    """Freeze the current values of ``record`` as a history entry"""
    return CycleSnapshot(
        date=record.last_revision or now,
        result_before=record.result_before,
        result_after=record.result_after,
        confidence=record.confidence,
        percent_before=record.percent_before,
        percent_after=record.percent_after,
    )


def upsert(
    records: List[TopicRecord],
    submission: TopicSubmission,
    now: Optional[datetime] = None,
    new_id: Optional[str] = None,
) -> UpsertResult:
    """
    Apply a submission against the existing record set.

    A matching record gets its current state appended to history before the
    submission overwrites it; otherwise a fresh record with empty history is
    created. Storage re-derives the pushed snapshot from its own copy, so a
    stale ``records`` list cannot drop a cycle written in the meantime.
    """
    if now is None:
        now = now_local()
    key = normalize_text(submission.name)
    match = find_match(records, submission.name)

    if match is not None:
        snapshot = snapshot_of(match, now)
        updated = replace(
            match,
            name=submission.name,
            name_key=key,
            result_before=submission.result_before,
            result_after=submission.result_after,
            percent_before=submission.percent_before,
            percent_after=submission.percent_after,
            confidence=submission.confidence,
            tags=list(submission.tags),
            history=list(match.history) + [snapshot],
            last_revision=now,
            revision_timestamp=now.timestamp(),
        )
        return UpsertResult(updated, False, snapshot)

    record = TopicRecord(
        id=new_id or uuid.uuid4().hex,
        name=submission.name,
        name_key=key,
        last_revision=now,
        revision_timestamp=now.timestamp(),
        result_before=submission.result_before,
        result_after=submission.result_after,
        percent_before=submission.percent_before,
        percent_after=submission.percent_after,
        confidence=submission.confidence,
        tags=list(submission.tags),
        history=[],
    )
    return UpsertResult(record, True, None)


def delete_cycle_at(record: TopicRecord, index: int) -> TopicRecord:
    """
    Drop the snapshot at ``index``. Out-of-range indices are ignored and the
    same record is returned. Later snapshots shift down by one.
    """
    if not isinstance(index, int) or isinstance(index, bool):
        return record
    if not 0 <= index < len(record.history):
        return record

    history = list(record.history)
    del history[index]
    return replace(record, history=history)
