"""UI generation: artifact planning, generation, reference healing and bundling."""

from .models import (
    ArtifactFailure,
    ArtifactKind,
    ArtifactSpec,
    ArtifactValidationFailure,
    Bundle,
    DesignTokens,
    DuplicateArtifactError,
    GeneratedArtifact,
    GenerationContext,
    IssueKind,
    ScanResult,
    ValidationIssue,
)
from .spec_resolver import ArtifactSpecResolver
from .generator import ComponentGenerator
from .references import ReferenceResolver
from .manifest import ManifestBuilder
from .pipeline import UIGenerationError, UIGenerationPipeline, UIGenerationResult

__all__ = [
    "ArtifactFailure",
    "ArtifactKind",
    "ArtifactSpec",
    "ArtifactSpecResolver",
    "ArtifactValidationFailure",
    "Bundle",
    "ComponentGenerator",
    "DesignTokens",
    "DuplicateArtifactError",
    "GeneratedArtifact",
    "GenerationContext",
    "IssueKind",
    "ManifestBuilder",
    "ReferenceResolver",
    "ScanResult",
    "UIGenerationError",
    "UIGenerationPipeline",
    "UIGenerationResult",
    "ValidationIssue",
]
