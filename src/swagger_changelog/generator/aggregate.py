"""Change aggregator: turns two sets of specification documents into change records."""

import logging
from concurrent.futures import ThreadPoolExecutor

from swagger_changelog.engine.base import DiffEngine
from swagger_changelog.errors import VersionMismatch
from swagger_changelog.generator.changelog import unique_records
from swagger_changelog.parser.base import ChangeRecord, Changes, DiffEntry, FileSetDiff, SpecDocument
from swagger_changelog.parser.swagger import extract_api_number, iter_operations

logger = logging.getLogger(__name__)

ADDED = "New API added"
REMOVED = "API removed"

DEFAULT_MAX_WORKERS = 4


def diff_file_sets(old_specs: dict[str, SpecDocument], new_specs: dict[str, SpecDocument]) -> FileSetDiff:
    """Find specification files that exist on only one side."""
    added = sorted(set(new_specs) - set(old_specs))
    removed = sorted(set(old_specs) - set(new_specs))
    return FileSetDiff(added=tuple(added), removed=tuple(removed))


def aggregate_changes(
    old_specs: dict[str, SpecDocument],
    new_specs: dict[str, SpecDocument],
    engine: DiffEngine,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Changes:
    """Collect every change between two sets of documents.

    Records are ordered additions first, then removals, then the changes
    the diff engine reports for files present on both sides. Within each
    group files are visited in path order. A record repeated with the same
    API number, description and path is kept once.

    Raises VersionMismatch before any diff engine call if the new-side
    documents disagree on ``info.version``.
    """
    file_diff = diff_file_sets(old_specs, new_specs)
    matched = sorted(set(old_specs) & set(new_specs))

    version = _check_versions([new_specs[name] for name in (*matched, *file_diff.added)])

    records: list[ChangeRecord] = []
    for name in file_diff.added:
        records.extend(_whole_file_records(new_specs[name], ADDED))
    for name in file_diff.removed:
        records.extend(_whole_file_records(old_specs[name], REMOVED))

    logger.info(
        "%d files added, %d removed, %d to compare",
        len(file_diff.added), len(file_diff.removed), len(matched),
    )

    pairs = [(old_specs[name], new_specs[name]) for name in matched]
    for (old_doc, new_doc), entries in zip(pairs, _run_engine(engine, pairs, max_workers)):
        for entry in entries:
            records.append(_diff_record(entry, new_doc, old_doc))

    return Changes(version=version, records=tuple(unique_records(records)))


def compare_documents(old_doc: SpecDocument, new_doc: SpecDocument, engine: DiffEngine) -> list[ChangeRecord]:
    """Diff two standalone documents and resolve the API number of each change."""
    entries = engine.diff(old_doc.content, new_doc.content)
    return [_diff_record(entry, new_doc, old_doc) for entry in entries]


def _check_versions(documents: list[SpecDocument]) -> str | None:
    version = None
    for index, document in enumerate(documents):
        if index == 0:
            version = document.version
        elif document.version != version:
            raise VersionMismatch(document.name, version, document.version)
    return version


def _whole_file_records(document: SpecDocument, description: str) -> list[ChangeRecord]:
    return [
        ChangeRecord(
            api_number=extract_api_number(path, method, [document]),
            description=description,
            path=path,
        )
        for path, method, _ in iter_operations(document)
    ]


def _diff_record(entry: DiffEntry, new_doc: SpecDocument, old_doc: SpecDocument) -> ChangeRecord:
    return ChangeRecord(
        api_number=extract_api_number(entry.path, entry.operation, [new_doc, old_doc]),
        description=entry.text,
        path=entry.path,
    )


def _run_engine(
    engine: DiffEngine,
    pairs: list[tuple[SpecDocument, SpecDocument]],
    max_workers: int,
) -> list[list[DiffEntry]]:
    """Diff every pair; results come back in the order of ``pairs``."""
    if not pairs:
        return []
    if max_workers <= 1 or len(pairs) == 1:
        return [engine.diff(old.content, new.content) for old, new in pairs]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(pairs))) as executor:
        futures = [executor.submit(engine.diff, old.content, new.content) for old, new in pairs]
        try:
            return [future.result() for future in futures]
        except BaseException:
            for future in futures:
                future.cancel()
            raise
