"""
Shared fixtures: a fixed "now", a topic-record factory and a Flask client
backed by in-memory SQLite.
"""

from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestingConfig
from db import db
from services.ledger import CycleSnapshot, TopicRecord
from services.parsers import parse_fraction_to_percent
from utils.datetime_utils import local_tz
from utils.text_utils import normalize_text

FIXED_NOW = local_tz.localize(datetime(2025, 10, 18, 12, 0, 0))


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def make_record():
    """Build a TopicRecord revised ``days_ago`` days before FIXED_NOW"""
    counter = {"n": 0}

    def _make(
        name="Cardiologia",
        before="5/10",
        after="8/10",
        confidence="Alta",
        days_ago=0,
        history=(),
        **overrides,
    ):
        counter["n"] += 1
        revised = FIXED_NOW - timedelta(days=days_ago)
        fields = dict(
            id=f"rec-{counter['n']}",
            name=name,
            name_key=normalize_text(name),
            last_revision=revised,
            revision_timestamp=revised.timestamp(),
            result_before=before,
            result_after=after,
            percent_before=parse_fraction_to_percent(before),
            percent_after=parse_fraction_to_percent(after),
            confidence=confidence,
            tags=[],
            history=list(history),
        )
        fields.update(overrides)
        return TopicRecord(**fields)

    return _make


@pytest.fixture
def snapshot():
    def _snapshot(before="2/5", after="3/5", confidence="Média", date="2025-10-01"):
        return CycleSnapshot(
            date=date,
            result_before=before,
            result_after=after,
            confidence=confidence,
            percent_before=parse_fraction_to_percent(before),
            percent_after=parse_fraction_to_percent(after),
        )

    return _snapshot


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()
