import json
import subprocess
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from swagger_changelog.engine.base import parse_entries
from swagger_changelog.engine.oasdiff_api import OasdiffApiEngine
from swagger_changelog.engine.oasdiff_cli import OasdiffCliEngine
from swagger_changelog.errors import ConfigurationError, DiffEngineFailure

BASE = {"info": {"version": "1.0"}, "paths": {}}
REVISION = {"info": {"version": "1.0"}, "paths": {"/pets": {"get": {"summary": "List"}}}}

OASDIFF_CHANGES = [
    {
        "id": "endpoint-added",
        "text": "endpoint added",
        "level": 1,
        "operation": "GET",
        "operationId": "listPets",
        "path": "/pets",
        "source": "",
    }
]


def _response(status: int = 200, body=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(response=resp)
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body
    return resp


class TestParseEntries:
    def test_rejects_non_list(self):
        with pytest.raises(DiffEngineFailure):
            parse_entries({"changes": []})

    def test_rejects_entry_without_text(self):
        with pytest.raises(DiffEngineFailure):
            parse_entries([{"path": "/pets"}])


class TestOasdiffApiEngine:
    def test_requires_tenant(self):
        with pytest.raises(ConfigurationError):
            OasdiffApiEngine(None)

    def test_posts_form_encoded_documents(self):
        session = MagicMock()
        session.post.return_value = _response(body={"changes": OASDIFF_CHANGES})

        engine = OasdiffApiEngine("tenant-1", base_url="https://oasdiff.test/", timeout=5, session=session)
        entries = engine.diff(BASE, REVISION)

        assert len(entries) == 1
        assert entries[0].operation == "GET"
        assert entries[0].path == "/pets"

        args, kwargs = session.post.call_args
        assert args[0] == "https://oasdiff.test/tenants/tenant-1/changelog"
        assert json.loads(kwargs["data"]["base"]) == BASE
        assert json.loads(kwargs["data"]["revision"]) == REVISION
        assert kwargs["timeout"] == 5

    def test_null_changes_means_none(self):
        session = MagicMock()
        session.post.return_value = _response(body={"changes": None})
        assert OasdiffApiEngine("t", session=session).diff(BASE, BASE) == []

    def test_error_status(self):
        session = MagicMock()
        session.post.return_value = _response(status=502)
        with pytest.raises(DiffEngineFailure, match="502"):
            OasdiffApiEngine("t", session=session).diff(BASE, REVISION)

    def test_timeout(self):
        session = MagicMock()
        session.post.side_effect = requests.exceptions.Timeout()
        with pytest.raises(DiffEngineFailure, match="timed out"):
            OasdiffApiEngine("t", session=session).diff(BASE, REVISION)

    def test_connection_error(self):
        session = MagicMock()
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(DiffEngineFailure):
            OasdiffApiEngine("t", session=session).diff(BASE, REVISION)

    def test_body_not_json(self):
        session = MagicMock()
        session.post.return_value = _response(body=ValueError("no json"))
        with pytest.raises(DiffEngineFailure, match="not JSON"):
            OasdiffApiEngine("t", session=session).diff(BASE, REVISION)

    def test_body_without_changes(self):
        session = MagicMock()
        session.post.return_value = _response(body={"message": "nope"})
        with pytest.raises(DiffEngineFailure):
            OasdiffApiEngine("t", session=session).diff(BASE, REVISION)

    @patch("swagger_changelog.engine.oasdiff_api.requests.Session")
    def test_one_session_per_thread(self, mock_session_cls):
        def new_session():
            session = MagicMock()
            session.post.return_value = _response(body={"changes": []})
            return session

        mock_session_cls.side_effect = new_session
        engine = OasdiffApiEngine("t")

        engine.diff(BASE, REVISION)
        engine.diff(BASE, REVISION)
        main_session = engine.session
        assert mock_session_cls.call_count == 1

        seen = []
        worker = threading.Thread(target=lambda: seen.append(engine.session))
        worker.start()
        worker.join()

        assert mock_session_cls.call_count == 2
        assert seen[0] is not main_session
        assert engine.session is main_session

    def test_injected_session_is_shared(self):
        session = MagicMock()
        engine = OasdiffApiEngine("t", session=session)

        seen = []
        worker = threading.Thread(target=lambda: seen.append(engine.session))
        worker.start()
        worker.join()

        assert engine.session is session
        assert seen == [session]


class TestOasdiffCliEngine:
    def test_local_command(self, tmp_path):
        engine = OasdiffCliEngine(command="/usr/local/bin/oasdiff")
        cmd = engine.build_command(tmp_path)
        assert cmd == [
            "/usr/local/bin/oasdiff", "changelog",
            str(tmp_path / "base.json"), str(tmp_path / "revision.json"),
            "--format", "json",
        ]

    def test_docker_command(self, tmp_path):
        engine = OasdiffCliEngine(docker_image="tufin/oasdiff")
        cmd = engine.build_command(tmp_path)
        assert cmd[:3] == ["docker", "run", "--rm"]
        assert f"{tmp_path}:/specs" in cmd
        assert "/specs/base.json" in cmd

    @patch("swagger_changelog.engine.oasdiff_cli.subprocess.run")
    def test_writes_documents_and_parses_output(self, mock_run):
        seen = {}

        def fake_run(cmd, **kwargs):
            workdir = Path(cmd[2]).parent
            seen["workdir"] = workdir
            seen["base"] = json.loads((workdir / "base.json").read_text(encoding="utf-8"))
            seen["revision"] = json.loads((workdir / "revision.json").read_text(encoding="utf-8"))
            return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(OASDIFF_CHANGES), stderr="")

        mock_run.side_effect = fake_run

        entries = OasdiffCliEngine(timeout=7).diff(BASE, REVISION)

        assert [e.text for e in entries] == ["endpoint added"]
        assert seen["base"] == BASE
        assert seen["revision"] == REVISION
        assert not seen["workdir"].exists()
        assert mock_run.call_args[1]["timeout"] == 7

    @patch("swagger_changelog.engine.oasdiff_cli.subprocess.run")
    def test_empty_output_means_no_changes(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess([], 0, stdout="", stderr="")
        assert OasdiffCliEngine().diff(BASE, BASE) == []

    @patch("swagger_changelog.engine.oasdiff_cli.subprocess.run")
    def test_non_zero_exit_cleans_up(self, mock_run):
        seen = {}

        def fake_run(cmd, **kwargs):
            seen["workdir"] = Path(cmd[2]).parent
            return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="failed to load base spec")

        mock_run.side_effect = fake_run

        with pytest.raises(DiffEngineFailure, match="failed to load base spec"):
            OasdiffCliEngine().diff(BASE, REVISION)
        assert not seen["workdir"].exists()

    @patch("swagger_changelog.engine.oasdiff_cli.subprocess.run")
    def test_missing_executable(self, mock_run):
        mock_run.side_effect = FileNotFoundError()
        with pytest.raises(DiffEngineFailure, match="not found"):
            OasdiffCliEngine().diff(BASE, REVISION)

    @patch("swagger_changelog.engine.oasdiff_cli.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="oasdiff", timeout=1)
        with pytest.raises(DiffEngineFailure, match="timed out"):
            OasdiffCliEngine(timeout=1).diff(BASE, REVISION)

    @patch("swagger_changelog.engine.oasdiff_cli.subprocess.run")
    def test_invalid_output(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess([], 0, stdout="not json", stderr="")
        with pytest.raises(DiffEngineFailure, match="invalid JSON"):
            OasdiffCliEngine().diff(BASE, REVISION)

    @patch("swagger_changelog.engine.oasdiff_cli.shutil.rmtree")
    @patch("swagger_changelog.engine.oasdiff_cli.subprocess.run")
    def test_cleanup_failure_does_not_mask_error(self, mock_run, mock_rmtree):
        mock_run.return_value = subprocess.CompletedProcess([], 2, stdout="", stderr="bad")
        mock_rmtree.side_effect = OSError("busy")
        with pytest.raises(DiffEngineFailure, match="bad"):
            OasdiffCliEngine().diff(BASE, REVISION)
        mock_rmtree.assert_called_once()
