"""Tests for server.py Flask endpoints - orchestrator and provider calls are mocked."""

import io
import zipfile
from unittest.mock import MagicMock, patch

import pytest

from agents.deployer import DeployResult, RenderOwner
from agents.github_pusher import PushResult
from core.errors import DeployerError, ErrorKind
from core.state import AnalysisResult, DeploymentPlan, StopReason, SuggestedFix, freeze_files


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _zip_bytes(entries):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buf.getvalue()


def _make_result():
    plan = DeploymentPlan(
        project_type="Python web service",
        render_yaml="services:\n  - type: web\n",
        build_command="pip install -r requirements.txt",
        start_command="gunicorn app:app",
        explanation="Binds to $PORT.",
        suggested_fixes=[SuggestedFix("app.py", "modified", "print(2)")],
    )
    return AnalysisResult(
        plan=plan,
        files=freeze_files({".replit": "run = 1", "app.py": "print(2)"}),
        model_calls=2,
        stop_reason=StopReason.STABLE,
    )


def _upload(client, entries, filename="project.zip"):
    return client.post(
        "/api/analyze",
        data={"archive": (io.BytesIO(_zip_bytes(entries)), filename)},
        content_type="multipart/form-data",
    )


@pytest.fixture
def server_module():
    import server
    server.app.config["TESTING"] = True
    server._jobs.clear()
    return server


@pytest.fixture
def client(server_module):
    """Flask test client with a fresh job store each test."""
    with server_module.app.test_client() as c:
        yield c


@pytest.fixture
def orchestrator(server_module):
    """Replace the real orchestrator (and its model client) with a mock."""
    from core.orchestrator import Orchestrator

    mock = MagicMock()
    mock.run.return_value = _make_result()
    mock.build_archive.side_effect = lambda result, name: Orchestrator(MagicMock()).build_archive(result, name)
    with patch.object(server_module, "get_orchestrator", return_value=mock), \
         patch.object(server_module, "get_diagnoser", return_value=MagicMock()):
        yield mock


def _analyzed_job(client):
    resp = _upload(client, {".replit": "run = 1", "app.py": "print(1)"})
    assert resp.status_code == 200
    return resp.get_json()["job_id"]


# ---------------------------------------------------------------------------
# POST /api/analyze
# ---------------------------------------------------------------------------

def test_analyze_missing_upload(client):
    resp = client.post("/api/analyze", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400


def test_analyze_returns_plan(client, orchestrator):
    resp = _upload(client, {"proj/.replit": "run = 1", "proj/app.py": "print(1)"})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["plan"]["projectType"] == "Python web service"
    assert data["plan"]["suggestedFixes"][0]["fileName"] == "app.py"
    assert data["files"] == [".replit", "app.py"]
    assert data["model_calls"] == 2
    assert data["stop_reason"] == "stable"
    assert "job_id" in data

    files_sent = orchestrator.run.call_args.args[0]
    assert files_sent == {".replit": "run = 1", "app.py": "print(1)"}


def test_analyze_missing_replit_is_400(client, orchestrator):
    resp = _upload(client, {"app.py": "print(1)"})
    assert resp.status_code == 400
    data = resp.get_json()
    assert data["kind"] == "precondition_missing"
    assert ".replit" in data["error"]
    orchestrator.run.assert_not_called()


def test_analyze_model_failure_is_502(client, orchestrator):
    orchestrator.run.side_effect = DeployerError(
        "Received an invalid response from the AI", ErrorKind.MODEL_SCHEMA, iteration=1,
    )
    resp = _upload(client, {".replit": "run = 1"})
    assert resp.status_code == 502
    data = resp.get_json()
    assert data["kind"] == "model_schema"
    assert data["iteration"] == 1
    assert "plan" not in data


# ---------------------------------------------------------------------------
# GET /api/download/<job_id>
# ---------------------------------------------------------------------------

def test_download_fixed_archive(client, orchestrator):
    job_id = _analyzed_job(client)
    resp = client.get(f"/api/download/{job_id}")
    assert resp.status_code == 200
    assert "project-fixed.zip" in resp.headers["Content-Disposition"]
    with zipfile.ZipFile(io.BytesIO(resp.data)) as zf:
        assert set(zf.namelist()) == {".replit", "app.py", "render.yaml"}


def test_download_unknown_job(client):
    assert client.get("/api/download/nope").status_code == 404


# ---------------------------------------------------------------------------
# POST /api/push
# ---------------------------------------------------------------------------

def test_push_requires_token(client, orchestrator):
    job_id = _analyzed_job(client)
    resp = client.post("/api/push", json={"job_id": job_id, "repo_name": "my-app"})
    assert resp.status_code == 401


def test_push_requires_repo_name(client, orchestrator):
    job_id = _analyzed_job(client)
    resp = client.post("/api/push", json={"job_id": job_id},
                       headers={"X-GitHub-Token": "ghp"})
    assert resp.status_code == 400


def test_push_success_records_repo(client, orchestrator, server_module):
    orchestrator.publish.return_value = PushResult("https://github.com/octo/my-app", "octo/my-app")
    job_id = _analyzed_job(client)

    resp = client.post("/api/push", json={"job_id": job_id, "repo_name": "my-app"},
                       headers={"X-GitHub-Token": "ghp"})

    assert resp.status_code == 200
    assert resp.get_json()["url"] == "https://github.com/octo/my-app"
    assert server_module._jobs[job_id]["repo"] == {
        "url": "https://github.com/octo/my-app", "name": "my-app",
    }


def test_push_failure_returns_diagnosis(client, orchestrator):
    orchestrator.publish.side_effect = DeployerError(
        "The name is already taken.", ErrorKind.PROVIDER_REQUEST, status=422,
    )
    job_id = _analyzed_job(client)
    resp = client.post("/api/push", json={"job_id": job_id, "repo_name": "taken"},
                       headers={"X-GitHub-Token": "ghp"})
    assert resp.status_code == 502
    assert resp.get_json()["error"] == "The name is already taken."


def test_push_non_string_job_id_is_404(client):
    resp = client.post("/api/push", json={"job_id": ["x"], "repo_name": "my-app"},
                       headers={"X-GitHub-Token": "ghp"})
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Render endpoints
# ---------------------------------------------------------------------------

def test_owners_requires_token(client):
    assert client.get("/api/render/owners").status_code == 401


def test_owners_listed(client, server_module):
    with patch.object(server_module, "RenderDeployer") as deployer_cls:
        deployer_cls.return_value.list_owners.return_value = [
            RenderOwner("usr-1", "Ada", "ada@example.com", "user"),
        ]
        resp = client.get("/api/render/owners", headers={"X-Render-Token": "rnd"})
    assert resp.status_code == 200
    assert resp.get_json() == [
        {"id": "usr-1", "name": "Ada", "email": "ada@example.com", "type": "user"},
    ]
    deployer_cls.assert_called_once_with("rnd")


def test_deploy_non_string_job_id_is_404(client):
    resp = client.post("/api/deploy", json={"job_id": {"id": 1}},
                       headers={"X-Render-Token": "rnd"})
    assert resp.status_code == 404


def test_deploy_requires_push_first(client, orchestrator):
    job_id = _analyzed_job(client)
    resp = client.post("/api/deploy", json={"job_id": job_id},
                       headers={"X-Render-Token": "rnd"})
    assert resp.status_code == 400


def test_deploy_after_push(client, orchestrator, server_module):
    orchestrator.publish.return_value = PushResult("https://github.com/octo/my-app", "octo/my-app")
    job_id = _analyzed_job(client)
    client.post("/api/push", json={"job_id": job_id, "repo_name": "my-app"},
                headers={"X-GitHub-Token": "ghp"})

    with patch.object(server_module, "RenderDeployer") as deployer_cls:
        deployer_cls.return_value.deploy.return_value = DeployResult(
            "srv-1", "https://dashboard.render.com/web/srv-1",
        )
        resp = client.post("/api/deploy", json={"job_id": job_id, "owner_id": "usr-1"},
                           headers={"X-Render-Token": "rnd"})

    assert resp.status_code == 200
    assert resp.get_json()["dashboard_url"] == "https://dashboard.render.com/web/srv-1"
    deployer_cls.return_value.deploy.assert_called_once_with(
        "https://github.com/octo/my-app", "my-app", owner_id="usr-1",
    )


# ---------------------------------------------------------------------------
# GET /api/status/<job_id>
# ---------------------------------------------------------------------------

def test_status_found(client, orchestrator):
    job_id = _analyzed_job(client)
    resp = client.get(f"/api/status/{job_id}")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["job_id"] == job_id
    assert data["repo"] is None


def test_status_not_found(client):
    assert client.get("/api/status/nonexistent").status_code == 404


# ---------------------------------------------------------------------------
# Job store
# ---------------------------------------------------------------------------

def test_expired_job_removed(server_module):
    job_id = server_module._store_job(_make_result(), "p.zip")
    server_module._jobs[job_id]["created"] -= 10 * 3600
    assert server_module._get_job(job_id) is None
    assert job_id not in server_module._jobs


def test_job_store_capped(server_module):
    from config.defaults import DEFAULTS
    for _ in range(DEFAULTS["max_jobs"] + 5):
        server_module._store_job(_make_result(), "p.zip")
    assert len(server_module._jobs) <= DEFAULTS["max_jobs"] + 1
