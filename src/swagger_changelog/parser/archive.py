"""ZIP archive reader.

Extracts the specification files of an uploaded archive into
SpecDocument models keyed by their path inside the spec directory.
"""

import io
import logging
import zipfile

from swagger_changelog.errors import MalformedArchive, MalformedSpecFile

from .base import SpecDocument
from .detect import is_spec_file, parse_spec_text

logger = logging.getLogger(__name__)

DEFAULT_SPEC_DIR = "spec-files"
METADATA_DIR = "__MACOSX"


def extract_specs(zip_bytes: bytes, spec_dir: str | None = DEFAULT_SPEC_DIR) -> dict[str, SpecDocument]:
    """Read every specification file from a ZIP archive.

    Entries are keyed by their path relative to ``spec_dir`` so that two
    archives with different root folders produce the same keys. With
    ``spec_dir`` set to None the full entry name is used.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(zip_bytes))
    except zipfile.BadZipFile as e:
        raise MalformedArchive(str(e)) from e

    specs: dict[str, SpecDocument] = {}
    with archive:
        for info in archive.infolist():
            relative_path = _relative_path(info, spec_dir)
            if relative_path is None:
                continue

            try:
                text = archive.read(info).decode("utf-8-sig")
                content = parse_spec_text(info.filename, text)
            except (UnicodeDecodeError, ValueError) as e:
                logger.error("Error parsing specification file %s: %s", info.filename, e)
                raise MalformedSpecFile(info.filename, str(e)) from e
            except (zipfile.BadZipFile, OSError) as e:
                raise MalformedArchive(f"{info.filename}: {e}") from e

            logger.debug("Loaded %s as %s", info.filename, relative_path)
            specs[relative_path] = SpecDocument(name=relative_path, content=content)

    logger.info("Extracted %d specification files", len(specs))
    return dict(sorted(specs.items()))


def _relative_path(info: zipfile.ZipInfo, spec_dir: str | None) -> str | None:
    """Return the key for an archive entry, or None if it should be skipped."""
    name = info.filename
    if info.is_dir() or not is_spec_file(name):
        return None

    parts = name.split("/")
    if METADATA_DIR in parts or parts[-1].startswith("."):
        return None

    if not spec_dir:
        return name

    marker = spec_dir.strip("/") + "/"
    if marker not in name:
        return None
    return name[name.rindex(marker) + len(marker):]
