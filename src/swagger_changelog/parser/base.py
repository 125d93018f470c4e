"""Data models shared by the archive reader, diff engines and renderers.

Every model is scoped to a single changelog run; nothing here is cached
or shared between runs.
"""

from pydantic import BaseModel, ConfigDict, Field

HTTP_METHODS = ("get", "post", "put", "delete", "patch")


class SpecDocument(BaseModel):
    """A parsed OpenAPI/Swagger document taken from an archive."""

    model_config = ConfigDict(frozen=True)

    name: str  # path relative to the spec directory
    content: dict

    @property
    def version(self) -> str | None:
        info = self.content.get("info")
        if not isinstance(info, dict):
            return None
        version = info.get("version")
        return None if version is None else str(version)

    @property
    def paths(self) -> dict:
        paths = self.content.get("paths")
        return paths if isinstance(paths, dict) else {}


class DiffEntry(BaseModel):
    """One change reported by the diff engine for a pair of documents."""

    model_config = ConfigDict(populate_by_name=True)

    path: str
    text: str
    operation: str | None = None  # HTTP method, any case
    id: str | None = None
    level: int | None = None
    operation_id: str | None = Field(None, alias="operationId")


class ChangeRecord(BaseModel):
    """A single changelog line: which API changed, how, and where."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_number: str = Field(..., alias="apiNumber")
    description: str
    path: str


class FileSetDiff(BaseModel):
    """Specification files that exist on only one side of a comparison."""

    model_config = ConfigDict(frozen=True)

    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()


class Changes(BaseModel):
    """Aggregated result handed to a changelog renderer."""

    model_config = ConfigDict(frozen=True)

    version: str | None = None
    records: tuple[ChangeRecord, ...] = ()

    def to_payload(self) -> dict:
        return {
            "version": self.version,
            "changes": [r.model_dump(by_alias=True) for r in self.records],
        }
