"""OpenAPI / Swagger operation helpers.

Walks the operations of a document and resolves the API number
(``API#<digits>``) that identifies an operation in the changelog.
"""

import re
from collections.abc import Iterable, Iterator

from .base import HTTP_METHODS, SpecDocument

UNKNOWN_API = "Unknown API"

# Dots inside or after the number are separators, e.g. "API#12.3" or "API#7."
API_NUMBER_PATTERN = re.compile(r"API#\d[\d.]*(?:/API#\d[\d.]*)?", re.IGNORECASE)


def iter_operations(document: SpecDocument) -> Iterator[tuple[str, str, dict]]:
    """Yield (path, method, operation) for every operation in the document."""
    for path, methods in document.paths.items():
        if not isinstance(methods, dict):
            continue
        for method, operation in methods.items():
            if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            yield path, method.lower(), operation


def parse_api_number(description: str | None, summary: str | None) -> str | None:
    """Extract a normalized API number from an operation's texts.

    The description is searched before the summary. Without a match the
    summary is returned as-is.
    """
    for text in (description, summary):
        if not isinstance(text, str):
            continue
        match = API_NUMBER_PATTERN.search(text)
        if match:
            return match.group(0).replace(".", "").upper()
    return summary if isinstance(summary, str) else None


def find_operation(documents: Iterable[SpecDocument], path: str, method: str | None) -> dict | None:
    if not method:
        return None
    method = method.lower()
    for document in documents:
        methods = document.paths.get(path)
        if not isinstance(methods, dict):
            continue
        operation = methods.get(method)
        if isinstance(operation, dict):
            return operation
    return None


def extract_api_number(path: str, method: str | None, documents: Iterable[SpecDocument]) -> str:
    """Resolve the API number for an operation looked up in the given documents."""
    operation = find_operation(documents, path, method)
    if operation is None:
        return UNKNOWN_API
    api_number = parse_api_number(operation.get("description"), operation.get("summary"))
    return api_number if api_number is not None else UNKNOWN_API
