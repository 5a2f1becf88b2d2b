"""
Tests for the topic history ledger.

Validates:
1. First submission creates a record with empty history
2. Re-submission snapshots the pre-update values before overwriting
3. Identity uses the normalized key, with exact-name fallback for legacy rows
4. Cycle deletion is positional and guarded
"""

from datetime import timedelta

import pytest

from services.ledger import TopicRecord, delete_cycle_at, find_match, upsert
from services.submissions import SubmissionError, build_submission


def submit(name="Cardiologia", before="5/10", after="8/10", confidence="Média", tags=""):
    return build_submission(name, before, after, confidence, tags)


class TestUpsert:
    def test_first_submission_creates_record(self, now):
        result = upsert([], submit(tags="#cardio ecg"), now)

        assert result.created
        assert result.snapshot is None
        record = result.record
        assert record.name == "Cardiologia"
        assert record.name_key == "cardiologia"
        assert record.history == []
        assert record.cycles == 0
        assert record.last_revision == now
        assert record.revision_timestamp == now.timestamp()
        assert record.percent_before == 50
        assert record.percent_after == 80
        assert record.tags == ["cardio", "ecg"]

    def test_resubmission_pushes_previous_state(self, now):
        first = upsert([], submit(before="3/10", after="7/10", confidence="Baixa"), now).record
        later = now + timedelta(days=3)

        result = upsert([first], submit(before="8/10", after="9/10", confidence="Alta"), later)

        assert not result.created
        updated = result.record
        assert updated.id == first.id
        assert updated.cycles == 1
        snapshot = updated.history[0]
        assert snapshot.date == now
        assert snapshot.result_before == "3/10"
        assert snapshot.result_after == "7/10"
        assert snapshot.confidence == "Baixa"
        assert updated.result_before == "8/10"
        assert updated.confidence == "Alta"
        assert updated.last_revision == later

    def test_match_ignores_accents_and_case(self, now):
        first = upsert([], submit(name="Fisiologia Cardíaca"), now).record
        result = upsert([first], submit(name="  fisiologia cardiaca "), now)
        assert not result.created
        assert result.record.cycles == 1

    def test_n_submissions_leave_n_minus_one_cycles(self, now):
        records = []
        for i in range(5):
            result = upsert(records, submit(before=f"{i}/10"), now + timedelta(days=i))
            records = [result.record]

        assert records[0].cycles == 4
        assert len(records[0].history) == 4
        assert [s.result_before for s in records[0].history] == ["0/10", "1/10", "2/10", "3/10"]

    def test_legacy_record_matched_by_exact_name(self, now):
        legacy = TopicRecord(id="old", name="Nefrologia", name_key="", result_before="1/2")
        result = upsert([legacy], submit(name="Nefrologia"), now)

        assert not result.created
        assert result.record.id == "old"
        assert result.record.name_key == "nefrologia"
        # No revision date on the legacy row: the snapshot is stamped with now
        assert result.record.history[0].date == now

    def test_legacy_fallback_requires_exact_name(self, now):
        legacy = TopicRecord(id="old", name="Nefrologia", name_key="")
        assert find_match([legacy], "nefrologia") is None

    def test_inputs_are_not_mutated(self, now):
        first = upsert([], submit(), now).record
        records = [first]
        upsert(records, submit(before="9/10"), now)

        assert records == [first]
        assert first.history == []
        assert first.result_before == "5/10"


class TestDeleteCycle:
    def _with_cycles(self, now, count):
        records = []
        for i in range(count + 1):
            records = [upsert(records, submit(before=f"{i}/10"), now).record]
        return records[0]

    def test_removes_by_position_and_shifts(self, now):
        record = self._with_cycles(now, 3)
        updated = delete_cycle_at(record, 1)

        assert updated.cycles == 2
        assert [s.result_before for s in updated.history] == ["0/10", "2/10"]
        assert record.cycles == 3

    @pytest.mark.parametrize("index", [-1, 3, 99])
    def test_out_of_range_is_noop(self, now, index):
        record = self._with_cycles(now, 3)
        assert delete_cycle_at(record, index) is record


class TestRecordSerialization:
    def test_round_trip_keeps_history_and_cycles(self, now):
        record = upsert([upsert([], submit(), now).record], submit(), now).record
        payload = record.to_dict()

        assert payload["cycles"] == 1
        assert payload["last_revision"] == now.isoformat()
        restored = TopicRecord.from_dict(payload)
        assert restored.cycles == 1
        assert restored.history[0].result_after == "8/10"

    def test_from_dict_tolerates_missing_keys(self):
        record = TopicRecord.from_dict({"id": 7, "name": "Anatomia"})
        assert record.id == "7"
        assert record.history == []
        assert record.tags == []
        assert record.revision_timestamp is None


class TestSubmissionValidation:
    def test_requires_name_and_confidence(self):
        with pytest.raises(SubmissionError):
            build_submission("  ", "1/2", "1/2", "Alta")
        with pytest.raises(SubmissionError):
            build_submission("Anatomia", "1/2", "1/2", "")

    def test_rejects_malformed_results(self):
        with pytest.raises(SubmissionError):
            build_submission("Anatomia", "sete de dez", "1/2", "Alta")

    def test_rejects_percent_above_hundred(self):
        with pytest.raises(SubmissionError):
            build_submission("Anatomia", "12/10", "1/2", "Alta")
        with pytest.raises(SubmissionError):
            build_submission("Anatomia", "150", "1/2", "Alta")

    def test_accepts_bare_percentages(self):
        submission = build_submission("Anatomia", "70", "7,10", "Alta")
        assert submission.percent_before == 70
        assert submission.percent_after == 70
