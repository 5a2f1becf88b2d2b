"""
Study Tracker Controller
========================

Owns the only mutable state of the engine: the owner's full record list and
the subset currently displayed (after filtering or re-sorting). Every read
goes through the pure services with an explicit "now"; every write goes
through the ledger first and is then handed to the injected store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from services.aggregator import (
    DashboardMetrics,
    daily_question_volume,
    dashboard_metrics,
    recent_revision_log,
)
from services.aura import AuraClassifier, default_classifier
from services.heatmap import DEFAULT_WINDOW_DAYS, HeatmapCell, build_activity_grid
from services.ledger import TopicRecord, TopicSubmission, delete_cycle_at, upsert
from services.priority import (
    DEFAULT_FOCUS_LIMIT,
    filter_records,
    select_focus_set,
    sort_by_date,
    sort_by_urgency,
)
from services.store import RecordNotFoundError, TopicStore
from utils.datetime_utils import ensure_timezone_aware, now_local
from utils.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass
class TrackerState:
    owner_uid: str
    all_records: List[TopicRecord] = field(default_factory=list)
    displayed_records: List[TopicRecord] = field(default_factory=list)


@dataclass(frozen=True)
class DashboardSummary:
    metrics: DashboardMetrics
    focus: List[TopicRecord]
    activity: List[HeatmapCell]
    revision_log: List[Dict]
    auras: Dict[str, str]

    def to_dict(self) -> Dict:
        return {
            "metrics": self.metrics.to_dict(),
            "focus": [
                dict(record.to_dict(), aura=self.auras.get(record.id))
                for record in self.focus
            ],
            "activity": [cell.to_dict() for cell in self.activity],
            "revision_log": list(self.revision_log),
        }


class StudyTracker:
    """Entry point used by the HTTP layer (or any other presentation)"""

    def __init__(
        self,
        store: TopicStore,
        owner_uid: str,
        focus_limit: int = DEFAULT_FOCUS_LIMIT,
        heatmap_days: int = DEFAULT_WINDOW_DAYS,
        classifier: Optional[AuraClassifier] = None,
    ):
        self.store = store
        self.state = TrackerState(owner_uid=owner_uid)
        self.focus_limit = focus_limit
        self.heatmap_days = heatmap_days
        self.classifier = classifier or default_classifier

    # =========================================================================
    # LOADING
    # =========================================================================

    def refresh(self) -> List[TopicRecord]:
        records = self.store.list_records(self.state.owner_uid)
        self.state.all_records = list(records)
        self.state.displayed_records = list(records)
        logger.info(
            "Loaded %d topics for %s", len(records), self.state.owner_uid
        )
        return records

    def get(self, record_id: str) -> TopicRecord:
        for record in self.state.all_records:
            if record.id == record_id:
                return record
        raise RecordNotFoundError(record_id)

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def _replace_everywhere(self, record: TopicRecord):
        for records in (self.state.all_records, self.state.displayed_records):
            for i, existing in enumerate(records):
                if existing.id == record.id:
                    records[i] = record
                    break

    def submit(self, submission: TopicSubmission, now: datetime = None) -> TopicRecord:
        """Record a study cycle: create the topic or push its history"""
        now = ensure_timezone_aware(now) if now else now_local()
        result = upsert(self.state.all_records, submission, now)
        owner = self.state.owner_uid

        if result.created:
            stored = self.store.create_record(owner, result.record)
            self.state.all_records.append(stored)
            self.state.displayed_records.append(stored)
            logger.info("Created topic %r (%s)", stored.name, stored.id)
        else:
            stored = self.store.update_record_with_history_push(owner, result.record)
            self._replace_everywhere(stored)
            logger.info("Topic %r now has %d cycles", stored.name, stored.cycles)
        return stored

    def delete_topic(self, record_id: str) -> None:
        self.get(record_id)
        self.store.delete_record(self.state.owner_uid, record_id)
        for records in (self.state.all_records, self.state.displayed_records):
            records[:] = [r for r in records if r.id != record_id]
        logger.info("Deleted topic %s", record_id)

    def delete_cycle(self, record_id: str, index: int) -> TopicRecord:
        """Remove one past cycle; an index outside the history changes nothing"""
        record = self.get(record_id)
        if delete_cycle_at(record, index) is record:
            logger.info("Ignored cycle deletion %s[%s]: out of range", record_id, index)
            return record

        stored = self.store.delete_cycle(self.state.owner_uid, record_id, index)
        self._replace_everywhere(stored)
        logger.info("Deleted cycle %d of topic %s", index, record_id)
        return stored

    # =========================================================================
    # DISPLAY STATE
    # =========================================================================

    def apply_filter(self, term: str, now: datetime = None) -> List[TopicRecord]:
        now = now or now_local()
        self.state.displayed_records = filter_records(
            self.state.all_records, term, now, self.classifier
        )
        return self.state.displayed_records

    def sort_displayed_by_urgency(self, now: datetime = None) -> List[TopicRecord]:
        now = now or now_local()
        self.state.displayed_records = sort_by_urgency(
            self.state.displayed_records, now, self.classifier
        )
        return self.state.displayed_records

    def sort_displayed_by_date(self, descending: bool = True) -> List[TopicRecord]:
        self.state.displayed_records = sort_by_date(
            self.state.displayed_records, descending
        )
        return self.state.displayed_records

    def reset_display(self) -> List[TopicRecord]:
        self.state.displayed_records = list(self.state.all_records)
        return self.state.displayed_records

    # =========================================================================
    # PRESENTATION VALUES
    # =========================================================================

    def auras(self, records: List[TopicRecord], now: datetime) -> Dict[str, str]:
        return {r.id: self.classifier.classify(r, now).value for r in records}

    def annotated(self, records: List[TopicRecord], now: datetime = None) -> List[Dict]:
        """Records as dicts with their freshly computed tier"""
        now = now or now_local()
        return [
            dict(record.to_dict(), aura=self.classifier.classify(record, now).value)
            for record in records
        ]

    def dashboard(self, now: datetime = None) -> DashboardSummary:
        now = ensure_timezone_aware(now) if now else now_local()
        records = self.state.all_records
        focus = select_focus_set(records, now, self.focus_limit, self.classifier)
        activity = build_activity_grid(
            daily_question_volume(records), now.date(), self.heatmap_days
        )
        return DashboardSummary(
            metrics=dashboard_metrics(records),
            focus=focus,
            activity=activity,
            revision_log=recent_revision_log(records),
            auras=self.auras(focus, now),
        )
