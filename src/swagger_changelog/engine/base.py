"""Diff engine interface.

A diff engine compares two specification documents and reports the
changes between them. The structural diff itself always happens in an
external tool; implementations only move documents in and entries out.
"""

from swagger_changelog.errors import DiffEngineFailure
from swagger_changelog.parser.base import DiffEntry


class DiffEngine:
    """Base class for diff engine adapters."""

    name = "base"

    def diff(self, base: dict, revision: dict) -> list[DiffEntry]:
        """Return the changes from ``base`` to ``revision``."""
        raise NotImplementedError


def parse_entries(raw: object) -> list[DiffEntry]:
    """Convert a decoded list of change objects into DiffEntry models."""
    if not isinstance(raw, list):
        raise DiffEngineFailure(f"expected a list of changes, got {type(raw).__name__}")
    entries = []
    for item in raw:
        if not isinstance(item, dict):
            raise DiffEngineFailure(f"unexpected change entry: {item!r}")
        try:
            entries.append(DiffEntry.model_validate(item))
        except ValueError as e:
            raise DiffEngineFailure(f"malformed change entry: {e}") from e
    return entries
