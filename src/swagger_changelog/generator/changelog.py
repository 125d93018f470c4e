"""Changelog renderers that turn change records into Markdown."""

import logging
import re
import sys
from collections.abc import Iterable
from datetime import date, datetime, timezone

import requests

from swagger_changelog.errors import ConfigurationError, RendererFailure
from swagger_changelog.parser.base import ChangeRecord

logger = logging.getLogger(__name__)

GROUP_BY_CHOICES = ("work-package", "operation")

_FIRST_API_NUMBER = re.compile(r"API#(\d+)")


def unique_records(records: Iterable[ChangeRecord]) -> list[ChangeRecord]:
    """Drop repeated records, keeping the first occurrence."""
    seen = set()
    result = []
    for record in records:
        key = (record.api_number, record.description, record.path)
        if key not in seen:
            seen.add(key)
            result.append(record)
    return result


def sort_key(record: ChangeRecord) -> int:
    """Numeric value of the first API number; records without one sort last."""
    match = _FIRST_API_NUMBER.search(record.api_number)
    return int(match.group(1)) if match else sys.maxsize


def format_date(day: date) -> str:
    return f"{day.day:02d}/{day.month:02d}/{day.year}"


def render_changelog(
    version: str | None,
    work_package: str,
    changes: Iterable[ChangeRecord],
    group_by: str = "work-package",
    today: date | None = None,
) -> str:
    """Render change records as a Markdown changelog section.

    ``group_by="work-package"`` lists every change under one heading named
    after the work package; ``group_by="operation"`` writes one heading per
    API number. Repeated records are listed once.
    """
    if group_by not in GROUP_BY_CHOICES:
        raise ValueError(f"group_by must be one of {GROUP_BY_CHOICES}, got {group_by!r}")

    today = today or datetime.now(timezone.utc).date()
    header = f"\n## Latest Change {format_date(today)} {version or ''}".rstrip()
    ordered = sorted(unique_records(changes), key=sort_key)

    if group_by == "work-package":
        return header + _render_section(work_package, ordered)

    groups: dict[str, list[ChangeRecord]] = {}
    for record in ordered:
        groups.setdefault(record.api_number, []).append(record)
    sections = [_render_section(f"Changes to {api_number}", records) for api_number, records in groups.items()]
    return header + "\n".join(sections)


def _render_section(title: str, records: list[ChangeRecord]) -> str:
    lines = "\n".join(
        f"{idx}. {record.api_number} - {record.description}"
        for idx, record in enumerate(records, start=1)
    )
    return f"\n---\n\n### {title}\n\nChange Summary:\n\n{lines}\n"


class MarkdownRenderer:
    """Renders changelogs in-process."""

    def __init__(self, group_by: str = "work-package"):
        if group_by not in GROUP_BY_CHOICES:
            raise ValueError(f"group_by must be one of {GROUP_BY_CHOICES}, got {group_by!r}")
        self.group_by = group_by

    def render(self, version: str | None, work_package: str, changes: list[ChangeRecord]) -> str:
        try:
            return render_changelog(version, work_package, changes, group_by=self.group_by)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e


class RemoteRenderer:
    """Delegates rendering to a hosted changelog endpoint.

    The endpoint receives ``{"version", "workPackage", "changes"}`` as JSON
    and answers with the Markdown text.
    """

    def __init__(self, url: str, timeout: float = 60.0, session: requests.Session | None = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def render(self, version: str | None, work_package: str, changes: list[ChangeRecord]) -> str:
        payload = {
            "version": version,
            "workPackage": work_package,
            "changes": [c.model_dump(by_alias=True) for c in changes],
        }
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            logger.error("Renderer responded with status code %s", status)
            raise RendererFailure(f"renderer responded with status code {status}") from e
        except requests.exceptions.RequestException as e:
            logger.error("Renderer request failed: %s", e)
            raise RendererFailure(str(e)) from e
        return response.text
