"""
Aura (Urgency Tier) Classification
==================================

Every topic is scored from three independent signals and bucketed into a
tier used to order review work:

- Performance: weighted before/after self-test percentages, plus a penalty
  when the after-study result regressed
- Recency: whole days since the last revision
- Confidence: the learner's own label for the topic

The tier depends on "now", so it is recomputed on every read and never
stored on the record.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from services.ledger import TopicRecord
from services.parsers import clamp_percent
from utils.datetime_utils import days_since


class Aura(str, Enum):
    """Urgency tiers, most urgent first"""

    URGENT = "urgent"
    UNSTABLE = "unstable"
    CONSOLIDATED = "consolidated"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {Aura.URGENT: 1, Aura.UNSTABLE: 2, Aura.CONSOLIDATED: 3}


@dataclass(frozen=True)
class AuraScore:
    performance: int
    recency: int
    confidence: int

    @property
    def total(self) -> int:
        return self.performance + self.recency + self.confidence

    @property
    def aura(self) -> Aura:
        if self.total >= AuraClassifier.URGENT_THRESHOLD:
            return Aura.URGENT
        if self.total >= AuraClassifier.UNSTABLE_THRESHOLD:
            return Aura.UNSTABLE
        return Aura.CONSOLIDATED


class AuraClassifier:
    """Three-signal urgency scoring"""

    BEFORE_WEIGHT = 0.7
    AFTER_WEIGHT = 0.3
    WEAK_PERFORMANCE = 50  # below: +3
    FAIR_PERFORMANCE = 80  # below: +2, otherwise +1

    STALE_DAYS = 14  # at least: +3
    AGING_DAYS = 7  # at least: +2, otherwise +1

    # Both grammatical genders of each label are in use
    LOW_CONFIDENCE = ("baixo", "baixa")
    MEDIUM_CONFIDENCE = ("médio", "média")

    URGENT_THRESHOLD = 7
    UNSTABLE_THRESHOLD = 4

    def performance_points(self, record: TopicRecord) -> int:
        before = clamp_percent(record.percent_before)
        after = clamp_percent(record.percent_after)
        performance = before * self.BEFORE_WEIGHT + after * self.AFTER_WEIGHT

        if performance < self.WEAK_PERFORMANCE:
            points = 3
        elif performance < self.FAIR_PERFORMANCE:
            points = 2
        else:
            points = 1

        if after < before:  # got worse after studying
            points += 1
        return points

    def recency_points(self, record: TopicRecord, now: datetime) -> int:
        days = days_since(record.last_revision, now)
        # An unparsable date has no day count and lands in the lowest bucket
        if days is not None and days >= self.STALE_DAYS:
            return 3
        if days is not None and days >= self.AGING_DAYS:
            return 2
        return 1

    def confidence_points(self, record: TopicRecord) -> int:
        label = (record.confidence or "").strip().lower()
        if label in self.LOW_CONFIDENCE:
            return 2
        if label in self.MEDIUM_CONFIDENCE:
            return 1
        return 0

    def score(self, record: TopicRecord, now: datetime) -> AuraScore:
        return AuraScore(
            performance=self.performance_points(record),
            recency=self.recency_points(record, now),
            confidence=self.confidence_points(record),
        )

    def classify(self, record: TopicRecord, now: datetime) -> Aura:
        return self.score(record, now).aura


default_classifier = AuraClassifier()


def classify(record: TopicRecord, now: datetime) -> Aura:
    return default_classifier.classify(record, now)


def score(record: TopicRecord, now: datetime) -> AuraScore:
    return default_classifier.score(record, now)
