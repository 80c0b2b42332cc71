#!/usr/bin/env python3
"""Replit Deployer - web API server."""

import io
import logging
import os
import threading
import time
import uuid

from dotenv import load_dotenv
from flask import Flask, jsonify, request, send_file

from agents.analyzer import DeploymentAnalyzer
from agents.deployer import RenderDeployer
from agents.diagnoser import ErrorDiagnoser
from agents.github_pusher import GitHubPusher
from config.defaults import DEFAULTS
from core.errors import DeployerError, ErrorKind
from core.orchestrator import Orchestrator
from utils.archive import read_archive
from utils.llm import LLMClient

load_dotenv()
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Finished analyses keyed by job_id: {id: {"result": ..., "archive_name": ..., "created": timestamp}}
_jobs = {}
_jobs_lock = threading.Lock()

_llm = None
_llm_lock = threading.Lock()


def get_llm():
    """Build the shared model client on first use."""
    global _llm
    with _llm_lock:
        if _llm is None:
            _llm = LLMClient(api_key=os.environ.get("ANTHROPIC_API_KEY"))
        return _llm


def get_orchestrator():
    return Orchestrator(DeploymentAnalyzer(get_llm()))


def get_diagnoser():
    return ErrorDiagnoser(get_llm())


def _cleanup_jobs():
    """Remove expired jobs. Called under _jobs_lock."""
    now = time.time()
    expired = [jid for jid, job in _jobs.items() if now - job["created"] > DEFAULTS["job_ttl"]]
    for jid in expired:
        del _jobs[jid]
    # If still over limit, remove oldest
    if len(_jobs) > DEFAULTS["max_jobs"]:
        by_age = sorted(_jobs.items(), key=lambda x: x[1]["created"])
        for jid, _ in by_age[:len(_jobs) - DEFAULTS["max_jobs"]]:
            del _jobs[jid]


def _store_job(result, archive_name):
    """Store a finished analysis and return its ID."""
    job_id = str(uuid.uuid4())[:8]
    with _jobs_lock:
        _cleanup_jobs()
        _jobs[job_id] = {
            "result": result,
            "archive_name": archive_name,
            "repo": None,
            "created": time.time(),
        }
    return job_id


def _get_job(job_id):
    """Get a job by ID, or None if not found/expired."""
    if not isinstance(job_id, str):
        return None
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job and time.time() - job["created"] > DEFAULTS["job_ttl"]:
            _jobs.pop(job_id, None)
            return None
    return job


def _result_to_dict(result):
    """Serialize AnalysisResult to a JSON-safe dict."""
    return {
        "plan": result.plan.to_dict(),
        "files": sorted(result.files),
        "model_calls": result.model_calls,
        "stop_reason": result.stop_reason.value,
        "skipped_paths": result.skipped_paths,
    }


def _error_response(error: DeployerError):
    status = 400 if error.kind is ErrorKind.PRECONDITION_MISSING else 502
    return jsonify(error.to_dict()), status


@app.route("/api/analyze", methods=["POST"])
def api_analyze():
    """Analyze an uploaded archive and run the fix loop to convergence."""
    upload = request.files.get("archive")
    if upload is None or not upload.filename:
        return jsonify({"error": "Missing archive upload"}), 400

    progress = []
    try:
        files = read_archive(upload.read())
        result = get_orchestrator().run(files, on_progress=progress.append)
    except DeployerError as e:
        logger.error("Analysis failed: %s", e.message)
        return _error_response(e)

    data = _result_to_dict(result)
    data["progress"] = progress
    data["job_id"] = _store_job(result, upload.filename)
    return jsonify(data)


@app.route("/api/download/<job_id>")
def api_download(job_id):
    """Download the fixed archive with render.yaml injected."""
    job = _get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found or expired"}), 404

    name, data = get_orchestrator().build_archive(job["result"], job["archive_name"])
    return send_file(
        io.BytesIO(data),
        mimetype="application/zip",
        as_attachment=True,
        download_name=name,
    )


@app.route("/api/push", methods=["POST"])
def api_push():
    """Create a GitHub repository and commit the fixed project to it."""
    data = request.get_json(silent=True) or {}
    token = request.headers.get("X-GitHub-Token")
    repo_name = (data.get("repo_name") or "").strip()
    if not token:
        return jsonify({"error": "Missing X-GitHub-Token header"}), 401
    if not repo_name:
        return jsonify({"error": "Missing repo_name"}), 400

    job = _get_job(data.get("job_id"))
    if not job:
        return jsonify({"error": "Job not found or expired"}), 404

    try:
        pushed = get_orchestrator().publish(
            job["result"], GitHubPusher(token), repo_name, diagnoser=get_diagnoser(),
        )
    except DeployerError as e:
        return _error_response(e)

    job["repo"] = {"url": pushed.html_url, "name": repo_name}
    return jsonify({"url": pushed.html_url, "full_name": pushed.full_name})


@app.route("/api/render/owners")
def api_render_owners():
    token = request.headers.get("X-Render-Token")
    if not token:
        return jsonify({"error": "Missing X-Render-Token header"}), 401
    try:
        owners = RenderDeployer(token).list_owners()
    except DeployerError as e:
        return _error_response(e)
    return jsonify([
        {"id": o.id, "name": o.name, "email": o.email, "type": o.type} for o in owners
    ])


@app.route("/api/deploy", methods=["POST"])
def api_deploy():
    """Create a Render blueprint from the repository pushed for this job."""
    data = request.get_json(silent=True) or {}
    token = request.headers.get("X-Render-Token")
    if not token:
        return jsonify({"error": "Missing X-Render-Token header"}), 401

    job = _get_job(data.get("job_id"))
    if not job:
        return jsonify({"error": "Job not found or expired"}), 404
    if not job["repo"]:
        return jsonify({"error": "Push the project to GitHub before deploying"}), 400

    try:
        deployed = RenderDeployer(token).deploy(
            job["repo"]["url"], job["repo"]["name"], owner_id=data.get("owner_id"),
        )
    except DeployerError as e:
        return _error_response(e)

    return jsonify({"service_id": deployed.service_id, "dashboard_url": deployed.dashboard_url})


@app.route("/api/status/<job_id>")
def api_status(job_id):
    job = _get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found"}), 404
    result = _result_to_dict(job["result"])
    result["job_id"] = job_id
    result["repo"] = job["repo"]
    return jsonify(result)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    port = int(os.environ.get("PORT", 5001))
    print(f"Replit Deployer running at http://localhost:{port}")
    app.run(debug=False, port=port)
