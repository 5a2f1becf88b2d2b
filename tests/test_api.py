"""
Integration tests for the JSON endpoints over SQLite.

Validates:
1. Submissions create a topic, then push history on the same topic
2. Cycle and topic deletion reach the database
3. Dashboard payload shape (metrics, focus, 60-day grid, revision log)
4. Validation and lookup errors map to 400 / 404
"""

from datetime import timedelta

from db import db
from models import SqlTopicStore, Topic
from services.submissions import build_submission
from services.tracker import StudyTracker


def post_topic(client, owner=None, **overrides):
    payload = {
        "name": "Cardiologia",
        "result_before": "5/10",
        "result_after": "8/10",
        "confidence": "Baixa",
        "tags": "#cardio, ecg",
    }
    payload.update(overrides)
    url = "/api/topics" + (f"?owner={owner}" if owner else "")
    return client.post(url, json=payload)


class TestSubmitEndpoint:
    def test_create_then_update(self, client):
        first = post_topic(client)
        assert first.status_code == 201
        body = first.get_json()
        assert body["created"] is True
        assert body["topic"]["cycles"] == 0
        assert body["topic"]["tags"] == ["cardio", "ecg"]
        assert body["topic"]["aura"] in {"urgent", "unstable", "consolidated"}

        second = post_topic(client, name="cardiología", result_before="9/10")
        assert second.status_code == 200
        topic = second.get_json()["topic"]
        assert topic["id"] == body["topic"]["id"]
        assert topic["cycles"] == 1
        assert topic["history"][0]["result_before"] == "5/10"
        assert topic["result_before"] == "9/10"

    def test_invalid_submission(self, client):
        response = post_topic(client, result_before="sete")
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_missing_body(self, client):
        response = client.post("/api/topics", data="not json")
        assert response.status_code == 400


class TestSqlStoreHistoryPush:
    def test_interleaved_submissions_keep_both_cycles(self, app, now):
        """A tracker loaded before another one's write still appends"""

        def cycle(before):
            return build_submission("Cardiologia", before, "8/10", "Baixa")

        with app.app_context():
            store = SqlTopicStore()
            StudyTracker(store, "tester").submit(cycle("1/10"), now)

            first = StudyTracker(store, "tester")
            second = StudyTracker(store, "tester")
            first.refresh()
            second.refresh()

            first.submit(cycle("2/10"), now + timedelta(hours=1))
            second.submit(cycle("3/10"), now + timedelta(hours=2))

            (record,) = store.list_records("tester")
            assert [s.result_before for s in record.history] == ["1/10", "2/10"]
            assert record.result_before == "3/10"
            assert [c.position for c in db.session.get(Topic, int(record.id)).review_cycles] == [0, 1]


class TestTopicsEndpoint:
    def test_list_with_search_and_sort(self, client):
        post_topic(client, name="Anatomia", confidence="Alta", result_before="10/10", result_after="10/10")
        post_topic(client, name="Cardiologia", result_before="1/10", result_after="0/10")

        listing = client.get("/api/topics?sort=urgency").get_json()
        assert listing["total"] == 2
        assert [t["name"] for t in listing["topics"]] == ["Cardiologia", "Anatomia"]

        found = client.get("/api/topics?q=anat").get_json()
        assert [t["name"] for t in found["topics"]] == ["Anatomia"]

    def test_owner_scope(self, client):
        post_topic(client, owner="bia")
        assert client.get("/api/topics").get_json()["total"] == 0
        assert client.get("/api/topics?owner=bia").get_json()["total"] == 1

    def test_detail_and_not_found(self, client):
        topic_id = post_topic(client).get_json()["topic"]["id"]
        assert client.get(f"/api/topics/{topic_id}").get_json()["name"] == "Cardiologia"
        assert client.get("/api/topics/9999").status_code == 404
        assert client.get("/api/topics/abc").status_code == 404


class TestDeleteEndpoints:
    def test_delete_cycle_renumbers(self, client, app):
        for before in ("1/10", "2/10", "3/10"):
            response = post_topic(client, result_before=before)
        topic_id = response.get_json()["topic"]["id"]

        deleted = client.delete(f"/api/topics/{topic_id}/cycles/0")
        assert deleted.status_code == 200
        topic = deleted.get_json()["topic"]
        assert topic["cycles"] == 1
        assert topic["history"][0]["result_before"] == "2/10"

        with app.app_context():
            cycles = db.session.get(Topic, int(topic_id)).review_cycles
            assert [c.position for c in cycles] == [0]

    def test_delete_cycle_out_of_range(self, client):
        topic_id = post_topic(client).get_json()["topic"]["id"]
        response = client.delete(f"/api/topics/{topic_id}/cycles/3")
        assert response.status_code == 200
        assert response.get_json()["topic"]["cycles"] == 0

    def test_delete_topic(self, client, app):
        topic_id = post_topic(client).get_json()["topic"]["id"]
        assert client.delete(f"/api/topics/{topic_id}").status_code == 200
        assert client.delete(f"/api/topics/{topic_id}").status_code == 404

        with app.app_context():
            assert SqlTopicStore().list_records("tester") == []


class TestDashboardEndpoint:
    def test_payload(self, client):
        post_topic(client, result_before="3/5", result_after="6/8")
        payload = client.get("/api/dashboard").get_json()

        assert payload["metrics"] == {
            "total_questions": 13,
            "pooled_performance": 75,
            "most_recent_topic": "Cardiologia",
        }
        assert len(payload["activity"]) == 60
        assert payload["activity"][0]["is_today"] is True
        assert payload["activity"][0]["count"] == 13
        assert payload["activity"][0]["tier"] == 1
        assert [t["name"] for t in payload["focus"]] == ["Cardiologia"]
        assert payload["revision_log"][0]["confidence"] == "baixa"

    def test_empty(self, client):
        payload = client.get("/api/dashboard").get_json()
        assert payload["metrics"]["total_questions"] == 0
        assert payload["focus"] == []
