"""
Focus Set Selection
===================

The compact dashboard shows a bounded shortlist: urgent topics first, then
unstable ones, then whatever was revised longest ago. Relative order is
preserved at each stage; only the fallback stage sorts (by date).
"""

from datetime import datetime
from typing import List, Optional

from services.aura import Aura, AuraClassifier, default_classifier
from services.ledger import TopicRecord
from utils.datetime_utils import parse_revision_date
from utils.text_utils import normalize_text

DEFAULT_FOCUS_LIMIT = 5


def _revision_sort_key(record: TopicRecord) -> float:
    """Epoch seconds of the revision date; unparsable dates come first"""
    parsed = parse_revision_date(record.last_revision)
    return parsed.timestamp() if parsed else float("-inf")


def select_focus_set(
    records: List[TopicRecord],
    now: datetime,
    limit: int = DEFAULT_FOCUS_LIMIT,
    classifier: Optional[AuraClassifier] = None,
) -> List[TopicRecord]:
    """At most ``limit`` records, each once: urgent, then unstable, then oldest"""
    if not records or limit <= 0:
        return []
    classifier = classifier or default_classifier

    auras = [classifier.classify(record, now) for record in records]
    urgent = [i for i, aura in enumerate(auras) if aura == Aura.URGENT]
    if len(urgent) >= limit:
        return [records[i] for i in urgent[:limit]]

    chosen = list(urgent)
    for i, aura in enumerate(auras):
        if len(chosen) >= limit:
            break
        if aura == Aura.UNSTABLE:
            chosen.append(i)

    if len(chosen) < limit:
        taken = set(chosen)
        remaining = [i for i in range(len(records)) if i not in taken]
        remaining.sort(key=lambda i: _revision_sort_key(records[i]))
        chosen.extend(remaining[: limit - len(chosen)])

    return [records[i] for i in chosen]


def sort_by_urgency(
    records: List[TopicRecord],
    now: datetime,
    classifier: Optional[AuraClassifier] = None,
) -> List[TopicRecord]:
    """Urgent on top; ties keep their current order"""
    classifier = classifier or default_classifier
    return sorted(records, key=lambda r: classifier.classify(r, now).rank)


def sort_by_date(records: List[TopicRecord], descending: bool = True) -> List[TopicRecord]:
    """By revision date; records without a usable date count as oldest"""
    return sorted(records, key=_revision_sort_key, reverse=descending)


def filter_records(
    records: List[TopicRecord],
    term: str,
    now: datetime,
    classifier: Optional[AuraClassifier] = None,
) -> List[TopicRecord]:
    """Accent/case-insensitive substring search over name, tier, confidence and tags"""
    classifier = classifier or default_classifier
    needle = normalize_text(term or "")
    matches = []
    for record in records:
        aura = classifier.classify(record, now)
        haystack = normalize_text(
            f"{record.name} {aura.value} {record.confidence} {' '.join(record.tags)}"
        )
        if needle in haystack:
            matches.append(record)
    return matches
