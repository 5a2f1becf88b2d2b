"""
Performance Aggregation
=======================

Dashboard statistics over a whole record set, history included:
question volume, the pooled (volume-weighted) after-study percentage, the
most recently revised topic and question volume per calendar day.

Empty input always yields the identity value (0, "—", {} or []).
"""

from collections import defaultdict
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Iterable, List

import pytz

from services.ledger import TopicRecord
from services.parsers import parse_fraction, parse_fraction_total, round_half_up
from utils.datetime_utils import date_portion, parse_revision_date
from utils.text_utils import display_or_dash

NO_TOPIC = "—"

_EPOCH = datetime(1970, 1, 1, tzinfo=pytz.utc)


@dataclass(frozen=True)
class DashboardMetrics:
    total_questions: int
    pooled_performance: int
    most_recent_topic: str

    def to_dict(self) -> Dict:
        return asdict(self)


def _cycle_totals(record: TopicRecord) -> int:
    return parse_fraction_total(record.result_before) + parse_fraction_total(
        record.result_after
    )


def total_questions(records: Iterable[TopicRecord]) -> int:
    """Questions answered across current results and every past cycle"""
    total = 0
    for record in records:
        total += _cycle_totals(record)
        for snapshot in record.history:
            total += parse_fraction_total(snapshot.result_before)
            total += parse_fraction_total(snapshot.result_after)
    return total


def pooled_after_performance(records: Iterable[TopicRecord]) -> int:
    """
    Correct/total of every after-study result (current and historical),
    summed before dividing so larger quizzes weigh more.
    """
    correct_sum = 0
    total_sum = 0
    for record in records:
        results = [record.result_after] + [s.result_after for s in record.history]
        for raw in results:
            fraction = parse_fraction(raw)
            if fraction:
                correct_sum += fraction[0]
                total_sum += fraction[1]

    if total_sum == 0:
        return 0
    return round_half_up(correct_sum / total_sum * 100)


def most_recent_topic(records: Iterable[TopicRecord]) -> str:
    """Name of the record with the latest revision instant"""
    candidates = [r for r in records if r.revision_timestamp]
    if not candidates:
        return NO_TOPIC
    latest = max(candidates, key=lambda r: r.revision_timestamp)
    return display_or_dash(latest.name)


def daily_question_volume(records: Iterable[TopicRecord]) -> Dict[str, int]:
    """Questions of each record's current cycle, keyed by revision date"""
    volume = defaultdict(int)
    for record in records:
        day = date_portion(record.last_revision)
        if day is None:
            continue
        volume[day] += _cycle_totals(record)
    return dict(volume)


def recent_revision_log(records: Iterable[TopicRecord], limit: int = 3) -> List[Dict]:
    """Latest revisions, newest first; records without a date sort last"""

    def revised_at(record):
        return parse_revision_date(record.last_revision) or _EPOCH

    ordered = sorted(records, key=revised_at, reverse=True)
    return [
        {
            "date": display_or_dash(date_portion(record.last_revision)),
            "name": record.name or "Unknown topic",
            "confidence": (record.confidence or "").lower() or "sem confiança",
        }
        for record in ordered[:limit]
    ]


def dashboard_metrics(records: List[TopicRecord]) -> DashboardMetrics:
    return DashboardMetrics(
        total_questions=total_questions(records),
        pooled_performance=pooled_after_performance(records),
        most_recent_topic=most_recent_topic(records),
    )
