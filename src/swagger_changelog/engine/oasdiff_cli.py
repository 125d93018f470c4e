"""Diff engine backed by the oasdiff command line tool.

The tool reads files, so each comparison writes both documents into its
own temporary directory. The directory is removed whatever the outcome.
"""

import json
import logging
import shutil
import subprocess
import tempfile
from pathlib import Path

from swagger_changelog.errors import DiffEngineFailure
from swagger_changelog.parser.base import DiffEntry

from .base import DiffEngine, parse_entries

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "oasdiff"
DEFAULT_DOCKER_IMAGE = "tufin/oasdiff"
CONTAINER_MOUNT = "/specs"


class OasdiffCliEngine(DiffEngine):
    """Runs ``oasdiff changelog`` locally, or inside a container when ``docker_image`` is set."""

    name = "cli"

    def __init__(
        self,
        command: str = DEFAULT_COMMAND,
        docker_image: str | None = None,
        timeout: float = 60.0,
    ):
        self.command = command
        self.docker_image = docker_image
        self.timeout = timeout

    def build_command(self, workdir: Path) -> list[str]:
        if self.docker_image:
            return [
                "docker", "run", "--rm",
                "-v", f"{workdir}:{CONTAINER_MOUNT}",
                self.docker_image,
                "changelog",
                f"{CONTAINER_MOUNT}/base.json",
                f"{CONTAINER_MOUNT}/revision.json",
                "--format", "json",
            ]
        return [
            self.command,
            "changelog",
            str(workdir / "base.json"),
            str(workdir / "revision.json"),
            "--format", "json",
        ]

    def diff(self, base: dict, revision: dict) -> list[DiffEntry]:
        workdir = Path(tempfile.mkdtemp(prefix="swagger-changelog-"))
        try:
            (workdir / "base.json").write_text(json.dumps(base), encoding="utf-8")
            (workdir / "revision.json").write_text(json.dumps(revision), encoding="utf-8")
            stdout = self._run(self.build_command(workdir))
        finally:
            _remove_workdir(workdir)

        try:
            raw = json.loads(stdout) if stdout.strip() else []
        except json.JSONDecodeError as e:
            raise DiffEngineFailure(f"oasdiff printed invalid JSON: {e}") from e

        entries = parse_entries(raw)
        logger.info("oasdiff CLI reported %d changes", len(entries))
        return entries

    def _run(self, cmd: list[str]) -> str:
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise DiffEngineFailure(f"{cmd[0]} executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise DiffEngineFailure(f"{cmd[0]} timed out after {self.timeout}s") from e

        if result.returncode != 0:
            stderr = (result.stderr or result.stdout).strip()
            logger.error("%s exited with %d: %s", cmd[0], result.returncode, stderr[:500])
            raise DiffEngineFailure(f"{cmd[0]} exited with status {result.returncode}: {stderr[:500]}")
        return result.stdout


def _remove_workdir(workdir: Path) -> None:
    try:
        shutil.rmtree(workdir)
    except OSError as e:
        logger.warning("Could not remove temporary directory %s: %s", workdir, e)
