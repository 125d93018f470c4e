"""Diff engine backed by the hosted oasdiff changelog API."""

import json
import logging
import threading

import requests

from swagger_changelog.errors import ConfigurationError, DiffEngineFailure
from swagger_changelog.parser.base import DiffEntry

from .base import DiffEngine, parse_entries

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.oasdiff.com"
DEFAULT_TIMEOUT = 60.0


class OasdiffApiEngine(DiffEngine):
    """Posts document pairs to ``/tenants/{tenant}/changelog``.

    Without an explicit ``session`` each thread gets its own
    ``requests.Session``, so the engine can be shared by a thread pool. An
    explicit session is used as-is by every thread.
    """

    name = "api"

    def __init__(
        self,
        tenant_id: str | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        if not tenant_id:
            raise ConfigurationError("An oasdiff tenant id is required for the hosted engine (set OASDIFF_ID)")
        self.tenant_id = tenant_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._local = threading.local()

    @property
    def url(self) -> str:
        return f"{self.base_url}/tenants/{self.tenant_id}/changelog"

    @property
    def session(self) -> requests.Session:
        if self._session is not None:
            return self._session
        if not hasattr(self._local, "session"):
            self._local.session = requests.Session()
        return self._local.session

    def diff(self, base: dict, revision: dict) -> list[DiffEntry]:
        data = {"base": json.dumps(base), "revision": json.dumps(revision)}
        logger.debug("POST %s", self.url)

        try:
            response = self.session.post(self.url, data=data, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            logger.error("oasdiff API responded with status code %s", status)
            raise DiffEngineFailure(f"API responded with status code {status}") from e
        except requests.exceptions.Timeout as e:
            logger.error("oasdiff API timed out after %ss", self.timeout)
            raise DiffEngineFailure(f"request timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            logger.error("oasdiff API request failed: %s", e)
            raise DiffEngineFailure(str(e)) from e

        try:
            result = response.json()
        except ValueError as e:
            raise DiffEngineFailure("API returned a body that is not JSON") from e

        if not isinstance(result, dict) or "changes" not in result:
            raise DiffEngineFailure("API response has no 'changes' list")
        # oasdiff sends null instead of [] when nothing changed
        entries = parse_entries(result["changes"] or [])
        logger.info("oasdiff API reported %d changes", len(entries))
        return entries
