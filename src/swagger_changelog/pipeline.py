"""End-to-end changelog pipeline: archives in, Markdown out."""

import logging
from pathlib import Path

from swagger_changelog.engine.base import DiffEngine
from swagger_changelog.errors import MalformedSpecFile
from swagger_changelog.generator.aggregate import DEFAULT_MAX_WORKERS, aggregate_changes, compare_documents
from swagger_changelog.parser.archive import DEFAULT_SPEC_DIR, extract_specs
from swagger_changelog.parser.base import ChangeRecord, Changes, SpecDocument
from swagger_changelog.parser.detect import parse_spec_text

logger = logging.getLogger(__name__)


def collect_changes(
    previous_zip: bytes,
    new_zip: bytes,
    engine: DiffEngine,
    spec_dir: str | None = DEFAULT_SPEC_DIR,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Changes:
    """Extract both archives and aggregate the changes between them."""
    old_specs = extract_specs(previous_zip, spec_dir=spec_dir)
    new_specs = extract_specs(new_zip, spec_dir=spec_dir)
    return aggregate_changes(old_specs, new_specs, engine, max_workers=max_workers)


def generate_changelog(
    previous_zip: bytes,
    new_zip: bytes,
    engine: DiffEngine,
    renderer,
    work_package: str = "",
    spec_dir: str | None = DEFAULT_SPEC_DIR,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> str:
    """Build the Markdown changelog for two spec archives."""
    changes = collect_changes(previous_zip, new_zip, engine, spec_dir=spec_dir, max_workers=max_workers)
    logger.info("Rendering %d changes for version %s", len(changes.records), changes.version)
    return renderer.render(changes.version, work_package, list(changes.records))


def load_spec_file(file_path: Path) -> SpecDocument:
    """Load a standalone JSON or YAML specification file."""
    try:
        content = parse_spec_text(file_path.name, file_path.read_text(encoding="utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedSpecFile(str(file_path), str(e)) from e
    return SpecDocument(name=file_path.name, content=content)


def compare_spec_files(old_path: Path, new_path: Path, engine: DiffEngine) -> list[ChangeRecord]:
    """Diff two standalone specification files."""
    return compare_documents(load_spec_file(old_path), load_spec_file(new_path), engine)
