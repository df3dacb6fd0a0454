"""Core data models for dependsight."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ImportKind(str, Enum):
    """How a source file binds a dependency."""

    NAMED = "named"
    DEFAULT = "default"
    NAMESPACE = "namespace"
    SIDE_EFFECT = "side-effect"


class ChangeType(str, Enum):
    """Semantic-version magnitude of a release relative to the declared version."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class Dependency(BaseModel):
    """A dependency declared in package.json."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Package name")
    version: str = Field(..., description="Declared version, range prefix stripped")
    is_dev: bool = Field(default=False, description="Whether this is a devDependency")


class UsageRecord(BaseModel):
    """One import or require site of a known dependency."""

    model_config = ConfigDict(frozen=True)

    dependency: Dependency
    file: str = Field(..., description="Path relative to the project root")
    import_kind: ImportKind
    imported_members: list[str] | None = Field(
        default=None,
        description="Imported names of named bindings, in source order",
    )


class ChangelogEntry(BaseModel):
    """One upstream release between the declared and latest version."""

    model_config = ConfigDict(frozen=True)

    version: str
    date: str | None = None
    changes: list[str] = Field(default_factory=list)
    change_type: ChangeType


class UpdateImpact(BaseModel):
    """An available update for one dependency and how much it matters."""

    model_config = ConfigDict(frozen=True)

    dependency: Dependency
    latest_version: str
    affected_files: list[str] = Field(default_factory=list)
    changelog_entries: list[ChangelogEntry] = Field(default_factory=list)
    relevance_score: int = Field(..., ge=0, le=100)


class AnalysisSnapshot(BaseModel):
    """Handoff between the analyze and report stages."""

    dependencies: list[Dependency] = Field(default_factory=list)
    usages: list[UsageRecord] = Field(default_factory=list)
    project_root: str = Field(..., description="Absolute path of the analyzed project")
