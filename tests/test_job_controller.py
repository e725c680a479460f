import os
import time

import pytest
from fastapi.testclient import TestClient

from conftest import envelope_text

from dream2design.api.jobs.job_controller import get_job_service
from dream2design.main import app
from dream2design.run_utils.state import JobStatus


@pytest.fixture
def api(make_service):
    def _api(**kw):
        service, client = make_service(**kw)
        app.dependency_overrides[get_job_service] = lambda: service
        return TestClient(app), service, client

    yield _api
    app.dependency_overrides.clear()


def _poll(client, job_id, attempts=100):
    for _ in range(attempts):
        body = client.get(f"/status/{job_id}").json()
        if body["status"] in ("done", "error"):
            return body
        time.sleep(0.02)
    raise AssertionError("job did not finish")


def test_generate_and_poll(api):
    http, service, _ = api(replies=[envelope_text({"index.html": "<h1>x</h1>", "app.js": "1;"}, "<p>prev</p>")])
    with http:
        resp = http.post("/api/generate", json={"prompt": "todo list app"})
        assert resp.status_code == 200
        job_id = resp.json()["jobId"]

        body = _poll(http, job_id)
        assert body["status"] == "done"
        assert body["result"]["files"]["app.js"] == "1;"

        tree = http.get(f"/api/jobs/{job_id}/files").json()
        assert tree == {"app.js": "file", "index.html": "file"}

        preview = http.get(f"/api/jobs/{job_id}/preview")
        assert preview.status_code == 200
        assert preview.text == "<p>prev</p>"
        assert preview.headers["content-type"].startswith("text/html")


def test_generate_accepts_form_data(api):
    http, _, client = api(replies=[envelope_text({"index.html": "<h1>form</h1>"})])
    with http:
        resp = http.post("/api/generate", data={"prompt": "portfolio site"})
        assert resp.status_code == 200
        body = _poll(http, resp.json()["jobId"])
    assert body["status"] == "done"
    assert "portfolio site" in client.calls[0]["messages"][1]["content"]

    assert http.post("/api/generate", data={"prompt": " "}).status_code == 400
    bad_json = http.post(
        "/api/generate", content=b"{oops", headers={"content-type": "application/json"}
    )
    assert bad_json.status_code == 400


def test_generate_rejects_empty_prompt(api):
    http, _, client = api()
    resp = http.post("/api/generate", json={"prompt": "  "})
    assert resp.status_code == 400
    assert client.calls == []


def test_status_unknown_job(api):
    http, _, _ = api()
    assert http.get("/status/nope").status_code == 404
    assert http.get("/api/jobs/nope/files").status_code == 404
    assert http.get("/api/jobs/nope/preview").status_code == 404
    assert http.post("/api/chat/nope", json={"message": "hi"}).status_code == 404


def test_file_read_write_roundtrip(api):
    http, _, _ = api()
    resp = http.put("/api/jobs/abc/file", json={"path": "frontend/app.js", "content": "let x = 1;"})
    assert resp.json() == {"success": True}

    resp = http.get("/api/jobs/abc/file", params={"path": "frontend/app.js"})
    assert resp.status_code == 200
    assert resp.text == "let x = 1;"
    assert resp.headers["content-type"].startswith("text/plain")

    assert http.get("/api/jobs/abc/file", params={"path": "missing.js"}).status_code == 404
    assert http.put("/api/jobs/abc/file", json={"path": "../x", "content": ""}).status_code == 400


def test_chat_endpoint(api):
    http, service, _ = api(replies=[envelope_text({"styles.css": "h1 { color: red; }"})])
    job = service.jobs.create("seed")
    service.projects.write_files(job.id, {"a.html": "<h1/>", "a.css": ""})
    service.projects.build_manifest(job.id)
    job.status = JobStatus.DONE

    resp = http.post(f"/api/chat/{job.id}", json={"message": "red headings"})
    assert resp.status_code == 200
    assert resp.json() == {
        "reply": "Updated: a.css",
        "filesUpdated": True,
        "updatedPaths": ["a.css"],
        "newFiles": ["a.css"],
    }

    assert http.post(f"/api/chat/{job.id}", json={"message": ""}).status_code == 400


def test_write_file_rejects_bad_job_id(api):
    http, service, _ = api()
    resp = http.put("/api/jobs/bad.id/file", json={"path": "x.js", "content": "1"})
    assert resp.status_code == 400
    assert os.listdir(service.projects.jobs_dir) == []
