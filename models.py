"""
Database Models and SQL Storage Adapter
=======================================

Persists topic records for the engine through Flask-SQLAlchemy.

Key Design Principles:
- Owner-scoped rows (an opaque owner id, no authentication here)
- History lives in its own table; ``position`` keeps snapshot order
- The urgency tier is never a column: it is derived on every read
- An update with history push lands in a single commit
"""

import json
from datetime import datetime, timezone
from typing import List

import pytz
from sqlalchemy.exc import SQLAlchemyError

from db import db
from services.ledger import CycleSnapshot, TopicRecord, snapshot_of
from services.store import RecordNotFoundError, TopicStore
from utils.datetime_utils import local_tz, now_local, parse_revision_date
from utils.logging_utils import get_logger

logger = get_logger(__name__)


def _to_db(value):
    """Aware UTC datetime for storage, None when the value is not a date"""
    parsed = parse_revision_date(value)
    return parsed.astimezone(pytz.utc) if parsed else None


def _from_db(value):
    # SQLite hands back naive values; they were written as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(local_tz)


class Topic(db.Model):
    """One tracked subject and its current cycle"""

    __tablename__ = "topics"

    id = db.Column(db.Integer, primary_key=True)
    owner_uid = db.Column(db.String(128), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    name_key = db.Column(db.String(200), nullable=True, index=True)

    last_revision = db.Column(db.DateTime(timezone=True), nullable=True)
    revision_timestamp = db.Column(db.Float, nullable=True)

    # Raw "acertos/total" strings and their derived percentages
    result_before = db.Column(db.String(20), nullable=True)
    result_after = db.Column(db.String(20), nullable=True)
    percent_before = db.Column(db.Float, nullable=True)
    percent_after = db.Column(db.Float, nullable=True)

    confidence = db.Column(db.String(20), nullable=True)
    tags = db.Column(db.Text, nullable=True)  # JSON array of tags

    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    review_cycles = db.relationship(
        "ReviewCycle",
        backref="topic",
        order_by="ReviewCycle.position",
        cascade="all, delete-orphan",
    )

    def __init__(self, owner_uid: str, name: str, **kwargs):
        super().__init__()
        self.owner_uid = owner_uid
        self.name = name

        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def get_tags(self) -> List[str]:
        try:
            tags = json.loads(self.tags) if self.tags else []
        except (json.JSONDecodeError, TypeError):
            return []
        return tags if isinstance(tags, list) else []

    def apply_record(self, record: TopicRecord):
        """Copy the top-level fields of an engine record onto this row"""
        self.name = record.name
        self.name_key = record.name_key or None
        self.last_revision = _to_db(record.last_revision)
        self.revision_timestamp = record.revision_timestamp
        self.result_before = record.result_before
        self.result_after = record.result_after
        self.percent_before = record.percent_before
        self.percent_after = record.percent_after
        self.confidence = record.confidence
        self.tags = json.dumps(list(record.tags))

    def to_record(self) -> TopicRecord:
        return TopicRecord(
            id=str(self.id),
            name=self.name,
            name_key=self.name_key or "",
            last_revision=_from_db(self.last_revision),
            revision_timestamp=self.revision_timestamp,
            result_before=self.result_before or "",
            result_after=self.result_after or "",
            percent_before=self.percent_before,
            percent_after=self.percent_after,
            confidence=self.confidence or "",
            tags=self.get_tags(),
            history=[cycle.to_snapshot() for cycle in self.review_cycles],
            owner_uid=self.owner_uid,
        )

    def __repr__(self):
        return f"<Topic {self.id} {self.name!r} cycles={len(self.review_cycles)}>"


class ReviewCycle(db.Model):
    """Immutable snapshot of a past cycle"""

    __tablename__ = "review_cycles"

    id = db.Column(db.Integer, primary_key=True)
    topic_id = db.Column(
        db.Integer, db.ForeignKey("topics.id"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False)  # 0 = oldest

    revised_on = db.Column(db.DateTime(timezone=True), nullable=True)
    result_before = db.Column(db.String(20), nullable=True)
    result_after = db.Column(db.String(20), nullable=True)
    percent_before = db.Column(db.Float, nullable=True)
    percent_after = db.Column(db.Float, nullable=True)
    confidence = db.Column(db.String(20), nullable=True)

    @classmethod
    def from_snapshot(cls, snapshot: CycleSnapshot, position: int) -> "ReviewCycle":
        cycle = cls()
        cycle.position = position
        cycle.revised_on = _to_db(snapshot.date)
        cycle.result_before = snapshot.result_before
        cycle.result_after = snapshot.result_after
        cycle.percent_before = snapshot.percent_before
        cycle.percent_after = snapshot.percent_after
        cycle.confidence = snapshot.confidence
        return cycle

    def to_snapshot(self) -> CycleSnapshot:
        return CycleSnapshot(
            date=_from_db(self.revised_on),
            result_before=self.result_before or "",
            result_after=self.result_after or "",
            confidence=self.confidence or "",
            percent_before=self.percent_before,
            percent_after=self.percent_after,
        )


# ============================================================================
# STORAGE ADAPTER
# ============================================================================


class SqlTopicStore(TopicStore):
    """TopicStore backed by the Flask-SQLAlchemy session"""

    def _get(self, owner_uid: str, record_id: str, lock: bool = False) -> Topic:
        try:
            pk = int(record_id)
        except (TypeError, ValueError):
            raise RecordNotFoundError(record_id) from None

        query = Topic.query.filter_by(id=pk, owner_uid=owner_uid)
        if lock:
            # Row lock, then reload so the snapshot sees the latest commit
            query = query.with_for_update().populate_existing()
        topic = query.first()
        if topic is None:
            raise RecordNotFoundError(record_id)
        return topic

    def _commit(self, action: str):
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Database error while trying to %s", action)
            raise

    def list_records(self, owner_uid: str) -> List[TopicRecord]:
        topics = Topic.query.filter_by(owner_uid=owner_uid).order_by(Topic.id).all()
        return [topic.to_record() for topic in topics]

    def create_record(self, owner_uid: str, record: TopicRecord) -> TopicRecord:
        topic = Topic(owner_uid=owner_uid, name=record.name)
        topic.apply_record(record)
        topic.review_cycles = [
            ReviewCycle.from_snapshot(snapshot, position)
            for position, snapshot in enumerate(record.history)
        ]
        db.session.add(topic)
        self._commit(f"create topic {record.name!r}")
        logger.debug("Created topic %s for %s", topic.id, owner_uid)
        return topic.to_record()

    def update_record_with_history_push(
        self, owner_uid: str, record: TopicRecord
    ) -> TopicRecord:
        topic = self._get(owner_uid, record.id, lock=True)

        # History is pushed from the row itself, never from the caller's copy
        snapshot = snapshot_of(topic.to_record(), record.last_revision or now_local())
        topic.review_cycles.append(
            ReviewCycle.from_snapshot(snapshot, len(topic.review_cycles))
        )
        topic.apply_record(record)

        self._commit(f"update topic {record.id}")
        logger.debug("Updated topic %s (%d cycles)", topic.id, len(topic.review_cycles))
        return topic.to_record()

    def delete_record(self, owner_uid: str, record_id: str) -> None:
        topic = self._get(owner_uid, record_id)
        db.session.delete(topic)
        self._commit(f"delete topic {record_id}")
        logger.debug("Deleted topic %s", record_id)

    def delete_cycle(self, owner_uid: str, record_id: str, index: int) -> TopicRecord:
        topic = self._get(owner_uid, record_id)
        cycles = topic.review_cycles
        if not 0 <= index < len(cycles):
            return topic.to_record()

        cycles.pop(index)
        for position, cycle in enumerate(cycles):
            cycle.position = position

        self._commit(f"delete cycle {index} of topic {record_id}")
        logger.debug("Deleted cycle %d of topic %s", index, record_id)
        return topic.to_record()
