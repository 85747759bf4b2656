"""Pydantic v2 models for the UI-generation sub-pipeline.

Artifacts, specs, validation issues and the final bundle are immutable once
constructed: corrections happen by producing a new value (a retry), never by
editing one in place.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ROOT_CONTAINER_NAME = "App"
ARTIFACT_EXTENSION = ".js"


def artifact_filename(name: str) -> str:
    """Return the bundle filename for the artifact binding *name*."""
    return f"{name}{ARTIFACT_EXTENSION}"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ArtifactKind(str, Enum):
    """Classification that selects the generation prompt for an artifact."""
    NAVIGATION = "navigation"
    SIDEBAR = "sidebar"
    FOOTER = "footer"
    MODAL = "modal"
    FORM = "form"
    DATA_DISPLAY = "data-display"
    CARD = "card"
    VISUALIZATION = "visualization"
    CONTAINER = "container"
    PAGE = "page"
    GENERIC = "generic"
    BOOTSTRAP = "bootstrap"


class IssueKind(str, Enum):
    """Validation failure modes."""
    SYNTAX_ERROR = "syntax_error"
    MISSING_BINDING = "missing_binding"
    MARKDOWN_LEAKAGE = "markdown_leakage"
    INCOMPLETE = "incomplete"


FATAL_ISSUE_KINDS = frozenset({IssueKind.SYNTAX_ERROR, IssueKind.INCOMPLETE})


# ---------------------------------------------------------------------------
# Specs & context
# ---------------------------------------------------------------------------

class ArtifactSpec(BaseModel):
    """What to generate: a symbol name and its kind."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    kind: ArtifactKind = ArtifactKind.GENERIC
    route: Optional[str] = Field(default=None, description="Route a synthesized page serves")
    layout_dependency: Optional[str] = Field(
        default=None, description="Navigation artifact a page may wrap itself in"
    )

    @property
    def filename(self) -> str:
        return artifact_filename(self.name)


class DesignTokens(BaseModel):
    """Colors, spacing and patterns every artifact is asked to follow."""
    model_config = ConfigDict(frozen=True)

    primary_color: str = "blue-600"
    accent_color: str = "indigo-500"
    background_color: str = "gray-50"
    spacing_scale: tuple[str, ...] = ("p-2", "p-4", "p-6", "space-y-4")
    patterns: tuple[str, ...] = ("rounded-lg", "shadow-md")

    def describe(self) -> str:
        return (
            f"primary bg-{self.primary_color}, accent {self.accent_color}, "
            f"background bg-{self.background_color}; spacing {', '.join(self.spacing_scale)}; "
            f"patterns {', '.join(self.patterns)}"
        )


class GenerationContext(BaseModel):
    """Project-level context shared by every artifact of a run."""
    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    other_names: tuple[str, ...] = Field(
        default=(), description="Names of the other artifacts, for cross-referencing"
    )
    failed_names: tuple[str, ...] = Field(
        default=(), description="Artifacts that failed generation; still reached through the lookup"
    )
    tokens: DesignTokens = Field(default_factory=DesignTokens)
    guidance: Optional[str] = None
    layout: str = ""
    interactions: tuple[str, ...] = ()
    routes: tuple[str, ...] = Field(default=(), description="Routes served by synthesized pages")
    single_file: bool = Field(
        default=False, description="Inline every planned component into one container"
    )

    def for_spec(self, spec: ArtifactSpec) -> "GenerationContext":
        """Return a copy whose ``other_names`` excludes *spec* itself."""
        return self.model_copy(
            update={"other_names": tuple(n for n in self.other_names if n != spec.name)}
        )


# ---------------------------------------------------------------------------
# Validation & artifacts
# ---------------------------------------------------------------------------

class ValidationIssue(BaseModel):
    """A single problem found in generated text."""
    model_config = ConfigDict(frozen=True)

    kind: IssueKind
    message: str
    location: Optional[str] = None

    @property
    def fatal(self) -> bool:
        return self.kind in FATAL_ISSUE_KINDS


class GeneratedArtifact(BaseModel):
    """One generated unit of output."""
    model_config = ConfigDict(frozen=True)

    filename: str
    name: str
    content: str
    kind: ArtifactKind
    issues: tuple[ValidationIssue, ...] = ()
    attempts: int = Field(default=1, ge=1)

    @property
    def has_fatal_issues(self) -> bool:
        return any(issue.fatal for issue in self.issues)


class ArtifactFailure(BaseModel):
    """Record of an artifact dropped after exhausting its retries."""
    model_config = ConfigDict(frozen=True)

    name: str
    filename: str
    kind: ArtifactKind
    issues: tuple[ValidationIssue, ...] = ()
    attempts: int = 0


class ScanResult(BaseModel):
    """Unresolved references discovered in a set of artifacts."""
    model_config = ConfigDict(frozen=True)

    routes: frozenset[str] = frozenset()
    unresolved_names: frozenset[str] = frozenset()

    @property
    def empty(self) -> bool:
        return not self.routes and not self.unresolved_names


class Bundle(BaseModel):
    """The final, internally-consistent artifact set of one run."""
    model_config = ConfigDict(frozen=True)

    artifacts: tuple[GeneratedArtifact, ...]
    registry: dict[str, str] = Field(default_factory=dict, description="Artifact name -> filename")
    issues: dict[str, tuple[ValidationIssue, ...]] = Field(default_factory=dict)
    failures: tuple[ArtifactFailure, ...] = ()
    routes: dict[str, str] = Field(default_factory=dict, description="Route -> page artifact name")
    entry_filename: str = "index.html"
    strategy: str = "multi_file"

    @property
    def filenames(self) -> list[str]:
        return [a.filename for a in self.artifacts]

    def get(self, filename: str) -> GeneratedArtifact | None:
        for artifact in self.artifacts:
            if artifact.filename == filename:
                return artifact
        return None


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ArtifactValidationFailure(Exception):
    """An artifact still carried fatal issues after every retry."""

    def __init__(
        self, spec: ArtifactSpec, issues: tuple[ValidationIssue, ...], attempts: int
    ) -> None:
        self.spec = spec
        self.issues = issues
        self.attempts = attempts
        summary = "; ".join(issue.message for issue in issues[:3]) or "no output"
        super().__init__(f"{spec.name} failed validation after {attempts} attempt(s): {summary}")

    def to_failure(self) -> ArtifactFailure:
        return ArtifactFailure(
            name=self.spec.name,
            filename=self.spec.filename,
            kind=self.spec.kind,
            issues=self.issues,
            attempts=self.attempts,
        )


class DuplicateArtifactError(ValueError):
    """Two stages produced the same filename."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"Duplicate artifact filename in bundle: {filename}")
