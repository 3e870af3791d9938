import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from helpers import failing_extractor, make_tasks, static_extractor, statuses
from jobs import JobManager
from main import create_app

CHAIN = {"A": [], "B": ["A"], "C": ["A", "B"]}


def _client(extract, submit_wait=1.0):
    manager = JobManager(extract=extract, persist=False, submit_wait=submit_wait)
    return TestClient(create_app(manager=manager))


def _poll(client, job_id, attempts=200):
    for _ in range(attempts):
        body = client.get(f"/api/jobs/{job_id}").json()
        if body["status"] in ("completed", "failed"):
            return body
        time.sleep(0.02)
    raise AssertionError(f"job {job_id} never finished")


def test_submit_fast_path_returns_data():
    with _client(static_extractor(CHAIN)) as client:
        resp = client.post("/api/transcripts", json={"transcript": "Do A, B, C"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["status"] == "completed"
        assert body["cached"] is False
        assert statuses(body["data"]["tasks"]) == {"A": "ready", "B": "blocked", "C": "blocked"}
        assert body["data"]["hasCycles"] is False
        assert body["data"]["cycleDetails"] == []
        assert body["data"]["completedAt"]


def test_submit_then_poll_until_completed():
    async def slow(transcript):
        await asyncio.sleep(0.1)
        return make_tasks(CHAIN)

    with _client(slow, submit_wait=0) as client:
        resp = client.post("/api/transcripts", json={"transcript": "slow one"})
        assert resp.status_code == 202
        body = resp.json()
        assert body["status"] in ("pending", "processing")
        assert "data" not in body
        final = _poll(client, body["jobId"])
        assert final["status"] == "completed"
        assert len(final["data"]["tasks"]) == 3
        assert "error" not in final


def test_cached_resubmission():
    with _client(static_extractor(CHAIN)) as client:
        first = client.post("/api/transcripts", json={"transcript": "same text"}).json()
        second = client.post("/api/transcripts", json={"transcript": "same   text\n"}).json()
        assert second["cached"] is True
        assert second["jobId"] == first["jobId"]
        assert second["data"]["tasks"] == first["data"]["tasks"]


@pytest.mark.parametrize("payload", [{"transcript": ""}, {"transcript": "   "}, {}])
def test_blank_transcript_is_400(payload):
    with _client(static_extractor(CHAIN)) as client:
        resp = client.post("/api/transcripts", json=payload)
        assert resp.status_code == 400
        assert resp.json()["code"] == "ValidationFailure"
        assert client.get("/api/jobs").json()["jobs"] == []


def test_failed_job_reports_error():
    with _client(failing_extractor) as client:
        body = client.post("/api/transcripts", json={"transcript": "???"}).json()
        final = _poll(client, body["jobId"])
        assert final["status"] == "failed"
        assert final["error"] == "could not parse transcript"
        assert "data" not in final


def test_cycle_surfaces_as_data():
    with _client(static_extractor({"A": ["B"], "B": ["A"]})) as client:
        body = client.post("/api/transcripts", json={"transcript": "loop"}).json()
        assert body["status"] == "completed"
        assert body["data"]["hasCycles"] is True
        assert body["data"]["cycleDetails"] == ["A → B → A"]
        tasks = {t["id"]: t for t in body["data"]["tasks"]}
        assert tasks["A"]["status"] == "error"
        assert tasks["A"]["errorMessage"] == "circular dependency: A → B → A"


def test_complete_task_flow():
    with _client(static_extractor(CHAIN)) as client:
        job_id = client.post("/api/transcripts", json={"transcript": "chain"}).json()["jobId"]

        blocked = client.put(f"/api/jobs/{job_id}/tasks/C/complete")
        assert blocked.status_code == 409
        assert blocked.json()["code"] == "InvalidState"

        resp = client.put(f"/api/jobs/{job_id}/tasks/A/complete")
        assert resp.status_code == 200
        assert statuses(resp.json()["updatedTasks"]) == {"A": "completed", "B": "ready", "C": "blocked"}

        polled = client.get(f"/api/jobs/{job_id}").json()
        assert polled["status"] == "completed"
        assert statuses(polled["data"]["tasks"]) == {"A": "completed", "B": "ready", "C": "blocked"}


def test_unknown_ids_are_404():
    with _client(static_extractor(CHAIN)) as client:
        job_id = client.post("/api/transcripts", json={"transcript": "chain"}).json()["jobId"]
        assert client.get("/api/jobs/job_nope").status_code == 404
        assert client.put("/api/jobs/job_nope/tasks/A/complete").status_code == 404
        missing_task = client.put(f"/api/jobs/{job_id}/tasks/Z/complete")
        assert missing_task.status_code == 404
        assert missing_task.json() == {
            "success": False,
            "error": f"Task Z not found in job {job_id}",
            "code": "NotFound",
        }


def test_list_jobs():
    with _client(static_extractor(CHAIN)) as client:
        a = client.post("/api/transcripts", json={"transcript": "one"}).json()["jobId"]
        b = client.post("/api/transcripts", json={"transcript": "two"}).json()["jobId"]
        jobs = client.get("/api/jobs").json()["jobs"]
        assert {j["jobId"] for j in jobs} == {a, b}
        assert all(j["taskCount"] == 3 for j in jobs)


def test_settings_roundtrip_and_validation():
    with _client(static_extractor(CHAIN)) as client:
        assert client.get("/api/settings").json()["settings"] == {"aiMode": "mock"}
        assert client.post("/api/settings", json={"aiMode": "llm", "model": "gpt-4o"}).json() == {"success": True}
        assert client.get("/api/settings").json()["settings"] == {"aiMode": "llm", "model": "gpt-4o"}
        assert client.post("/api/settings", json={"aiMode": "telepathy"}).status_code == 422


def test_health():
    with _client(static_extractor(CHAIN)) as client:
        assert client.get("/api/health").json() == {"status": "ok", "jobs": 0}


def test_archived_jobs_listed_and_cleared():
    manager = JobManager(extract=static_extractor(CHAIN), persist=True, submit_wait=1.0)
    with TestClient(create_app(manager=manager)) as client:
        job_id = client.post("/api/transcripts", json={"transcript": "archive me"}).json()["jobId"]
        assert client.get("/api/db/jobs").json()["jobIds"] == [job_id]
        assert client.post("/api/db/clear").json()["removed"] == [job_id]
        assert client.get("/api/db/jobs").json()["jobIds"] == []
