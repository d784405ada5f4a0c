import csv
import io
import json

import pytest
from conftest import count_pages, make_png
from fastapi.testclient import TestClient

from inspection.main import app, get_service


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_project(client, name="P1"):
    resp = client.post("/api/projects", json={"name": name, "building": "A栋", "unit": "1单元"})
    assert resp.status_code == 200
    return resp.json()["project"]


def create_issue(client, project_id, **overrides):
    payload = {"project_id": project_id, "category": "waterproof", "title": "leak"}
    payload.update(overrides)
    resp = client.post("/api/issues", json=payload)
    assert resp.status_code == 200
    return resp.json()["issue"]


def test_project_validation_error(client):
    resp = client.post("/api/projects", json={"name": "  "})
    assert resp.status_code == 400
    assert resp.json()["ok"] is False


def test_issue_lifecycle(client):
    project = create_project(client)
    issue = create_issue(client, project["id"], severity="critical")
    assert issue["category"] == "防水工程"
    assert issue["severity"] == "严重"
    assert issue["status"] == "待整改"
    assert issue["projectName"] == "P1"

    resp = client.put(f"/api/issues/{issue['id']}/status", json={"status": "done"})
    assert resp.json()["issue"]["status"] == "已完成"

    resp = client.get("/api/issues", params={"status": "pending"})
    assert resp.json()["issues"] == []
    resp = client.get("/api/issues", params={"status": "done", "q": "leak"})
    assert [i["id"] for i in resp.json()["issues"]] == [issue["id"]]

    assert client.delete(f"/api/issues/{issue['id']}").json() == {"ok": True}
    assert client.delete(f"/api/issues/{issue['id']}").status_code == 404


def test_issue_without_title_is_rejected(client):
    project = create_project(client)
    resp = client.post("/api/issues", json={"project_id": project["id"], "title": ""})
    assert resp.status_code == 400


def test_unknown_status_filter_is_rejected(client):
    assert client.get("/api/issues", params={"status": "whatever"}).status_code == 400


def test_dashboard_json_and_page(client):
    project = create_project(client)
    create_issue(client, project["id"], title="渗漏")
    data = client.get("/api/dashboard").json()["dashboard"]
    assert data["pending"] == 1
    assert data["recent"][0]["title"] == "渗漏"
    page = client.get("/")
    assert page.status_code == 200
    assert "渗漏" in page.text


def test_templates_round_trip(client):
    assert len(client.get("/api/templates").json()["templates"]) == 5
    resp = client.put("/api/templates", json=[{"id": "t1", "name": "电梯", "items": ["轿厢平层准确"]}])
    assert resp.status_code == 200
    assert client.get("/api/templates").json()["templates"] == [
        {"id": "t1", "name": "电梯", "items": ["轿厢平层准确"]}
    ]
    assert client.put("/api/templates", json=[{"name": " "}]).status_code == 400


def test_csv_download(client):
    project = create_project(client)
    create_issue(client, project["id"], title='He said "leak"')
    resp = client.get("/api/export/issues.csv", params={"project_id": project["id"]})
    assert resp.status_code == 200
    assert "attachment" in resp.headers["content-disposition"]
    assert "remediation-list-" in resp.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(resp.content.decode("utf-8"))))
    assert len(rows) == 2
    assert rows[1][2] == 'He said "leak"'


def test_pdf_downloads(client, png_payload):
    project = create_project(client, name="一期")
    issue = create_issue(client, project["id"], images=[png_payload])
    resp = client.get(f"/api/export/projects/{project['id']}/report.pdf")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert count_pages(resp.content) == 1

    resp = client.get(f"/api/export/issues/{issue['id']}/report.pdf")
    assert resp.status_code == 200
    assert "remediation-" in resp.headers["content-disposition"]
    assert client.get("/api/export/issues/nope/report.pdf").status_code == 404


def test_export_reports_writes_files(client, monkeypatch, tmp_path):
    monkeypatch.setenv("INSPECTION_DATA_DIR", str(tmp_path / "data"))
    project = create_project(client)
    create_issue(client, project["id"])
    resp = client.post("/api/export/reports")
    assert resp.status_code == 200
    files = resp.json()["files"]
    assert len(files) == 1
    assert files[0].startswith(str(tmp_path / "data" / "exports"))


def test_export_reports_with_no_data(client):
    assert client.post("/api/export/reports").status_code == 400


def test_backup_export_and_import(client):
    project = create_project(client)
    create_issue(client, project["id"], title="old")
    resp = client.get("/api/backup")
    assert resp.status_code == 200
    assert "backup-" in resp.headers["content-disposition"]
    assert json.loads(resp.content)["issues"][0]["title"] == "old"

    bad = client.post("/api/backup", content=json.dumps({"templates": []}))
    assert bad.status_code == 400
    assert sorted(bad.json()["missing"]) == ["issues", "projects"]
    assert len(client.get("/api/issues").json()["issues"]) == 1

    good = {"projects": [], "issues": [], "templates": []}
    resp = client.post("/api/backup", content=json.dumps(good))
    assert resp.json() == {"ok": True, "projects": 0, "issues": 0, "templates": 0}
    assert client.get("/api/issues").json()["issues"] == []


def test_image_upload_returns_data_uri(client):
    resp = client.post("/api/images", content=make_png(), headers={"content-type": "image/png"})
    assert resp.status_code == 200
    assert resp.json()["image"].startswith("data:image/png;base64,")
    assert client.post("/api/images", content=b"plain text").status_code == 400


def test_project_report_for_unknown_project_is_404(client):
    assert client.get("/api/export/projects/nope/report.pdf").status_code == 404


def test_dashboard_page_renders_empty_store(client):
    page = client.get("/")
    assert page.status_code == 200
    assert "text/html" in page.headers["content-type"]


def test_keyword_search_after_importing_numeric_fields(client):
    doc = {"projects": [{"id": "p1", "name": "P1"}], "issues": [{"id": "i1", "projectId": "p1", "title": 123}]}
    assert client.post("/api/backup", content=json.dumps(doc)).status_code == 200
    resp = client.get("/api/issues", params={"q": "23"})
    assert resp.status_code == 200
    assert [i["title"] for i in resp.json()["issues"]] == ["123"]
