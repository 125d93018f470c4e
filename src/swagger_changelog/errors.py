"""Error hierarchy for changelog generation.

Client input errors (bad archives, inconsistent versions) are kept apart
from upstream errors (diff engine, renderer) so callers know whether a
retry can help.
"""


class ChangelogError(Exception):
    """Base class for all errors raised while building a changelog."""

    exit_code = 1

    def to_payload(self) -> dict:
        return {"error": str(self)}


class ClientInputError(ChangelogError):
    """The uploaded archives or documents are unusable."""

    exit_code = 1


class UpstreamError(ChangelogError):
    """An external collaborator failed."""

    exit_code = 3


class ConfigurationError(ChangelogError):
    """Settings are missing or invalid."""

    exit_code = 4


class MalformedArchive(ClientInputError):
    def __init__(self, reason: str):
        super().__init__(f"Archive could not be opened: {reason}")


class MalformedSpecFile(ClientInputError):
    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f'Error parsing specification file "{path}": {reason}')


class VersionMismatch(ClientInputError):
    def __init__(self, path: str, expected: str | None, found: str | None):
        self.path = path
        self.expected = expected
        self.found = found
        super().__init__(
            f'Version mismatch in "{path}": expected {expected!r}, found {found!r}'
        )


class DiffEngineFailure(UpstreamError):
    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(f"Diff engine failed: {cause}")


class RendererFailure(UpstreamError):
    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(f"Changelog rendering failed: {cause}")
