"""Tests for the main.py CLI - model and provider calls are mocked."""

import io
import sys
import zipfile
from unittest.mock import MagicMock, patch

import pytest

import main
from core.state import AnalysisResult, DeploymentPlan, StopReason, freeze_files


def _write_zip(path, entries):
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)


def _result():
    return AnalysisResult(
        plan=DeploymentPlan("Node.js", "services: []\n", "npm install", "npm start", "ok"),
        files=freeze_files({".replit": "run = 1", "index.js": "listen(process.env.PORT)"}),
        model_calls=1,
        stop_reason=StopReason.STABLE,
    )


def _run_cli(argv):
    with patch.object(sys, "argv", ["main.py"] + argv):
        main.main()


@patch("main.LLMClient")
@patch("main.Orchestrator.run")
def test_analyze_writes_fixed_archive(mock_run, mock_llm, tmp_path, capsys):
    mock_run.return_value = _result()
    archive = tmp_path / "proj.zip"
    _write_zip(archive, {".replit": "run = 1", "index.js": "listen(3000)"})
    out_dir = tmp_path / "out"

    _run_cli(["analyze", str(archive), "--output", str(out_dir)])

    fixed = out_dir / "proj-fixed.zip"
    assert fixed.exists()
    with zipfile.ZipFile(io.BytesIO(fixed.read_bytes())) as zf:
        assert zf.read("render.yaml").decode() == "services: []\n"
        assert zf.read("index.js").decode() == "listen(process.env.PORT)"

    out = capsys.readouterr().out
    assert "Project type:  Node.js" in out
    assert "No file changes were needed." in out


def test_missing_replit_exits_with_error(tmp_path, capsys):
    archive = tmp_path / "proj.zip"
    _write_zip(archive, {"index.js": "x"})

    with pytest.raises(SystemExit) as exc:
        _run_cli(["analyze", str(archive)])

    assert exc.value.code == 1
    assert ".replit" in capsys.readouterr().err


@patch("main.RenderDeployer")
def test_owners_command(mock_deployer, capsys):
    owner = MagicMock(id="usr-1", type="user", email="ada@example.com")
    owner.name = "Ada"
    mock_deployer.return_value.list_owners.return_value = [owner]

    _run_cli(["owners"])

    assert "usr-1" in capsys.readouterr().out


def test_no_command_prints_help():
    with pytest.raises(SystemExit) as exc:
        _run_cli([])
    assert exc.value.code == 1


def test_missing_archive_file_exits_with_error(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        _run_cli(["analyze", str(tmp_path / "missing.zip")])

    assert exc.value.code == 1
    assert "missing.zip" in capsys.readouterr().err
