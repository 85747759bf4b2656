"""ComponentGenerator: one artifact per spec, validated, with escalating retries.

Every attempt is a single provider call whose output is sanitised, checked
and, when only the ``window.<Name>`` binding is missing, repaired in place.
Attempts after the first use a stricter system instruction naming the
problems found previously. After ``max_attempts`` escalated retries an
artifact that still carries fatal issues is reported through
``ArtifactValidationFailure`` and dropped by the caller.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from ..config import GenerationConfig
from ..context import RunContext
from ..events import NodeStatus
from ..providers.base import CompletionOptions, ProviderError, TextGenerationProvider
from . import prompts
from .models import (
    ArtifactFailure,
    ArtifactSpec,
    ArtifactValidationFailure,
    GeneratedArtifact,
    GenerationContext,
    IssueKind,
    ValidationIssue,
)
from .sanitize import ensure_binding, sanitize
from .validation import needs_retry, validate_artifact, validate_content

UI_NODE = "GenerateUI"


def artifact_node(name: str) -> str:
    """Progress node id for the artifact *name*."""
    return f"UI-{name}"


class ComponentGenerator:
    """Generate and validate UI artifacts through a text-generation provider.

    Attributes:
        provider: Backend used for every attempt.
        generation: Retry bound, length floor and temperature.
    """

    def __init__(self, provider: TextGenerationProvider, generation: GenerationConfig) -> None:
        self.provider = provider
        self.generation = generation

    # ------------------------------------------------------------------
    # Single attempt
    # ------------------------------------------------------------------

    async def generate(
        self,
        ctx: RunContext,
        spec: ArtifactSpec,
        context: GenerationContext,
        attempt: int = 0,
        previous_issues: list[ValidationIssue] | None = None,
    ) -> GeneratedArtifact:
        """Run one attempt and return the (possibly invalid) artifact.

        Raises:
            ProviderError: If the backend fails.
            RunCancelled: If the run is cancelled mid-call.
        """
        options = CompletionOptions(
            temperature=self.generation.code_temperature,
            system_instruction=prompts.system_instruction(spec, attempt, previous_issues),
        )
        raw = await ctx.complete(
            self.provider, prompts.build_messages(spec, context.for_spec(spec)), options
        )

        content = sanitize(raw, spec.name, (*context.other_names, *context.failed_names))
        issues: list[ValidationIssue] = []
        if content:
            content, repaired = ensure_binding(content, spec.name)
            if repaired:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.MISSING_BINDING,
                        message=f"Missing window.{spec.name} assignment (appended)",
                    )
                )
        issues.extend(validate_content(content, spec.name, self.generation.min_artifact_length))
        return GeneratedArtifact(
            filename=spec.filename,
            name=spec.name,
            content=content,
            kind=spec.kind,
            issues=tuple(issues),
            attempts=attempt + 1,
        )

    def validate(self, artifact: GeneratedArtifact) -> list[ValidationIssue]:
        return validate_artifact(artifact, self.generation.min_artifact_length)

    # ------------------------------------------------------------------
    # Bounded retry
    # ------------------------------------------------------------------

    def announce(
        self,
        ctx: RunContext,
        spec: ArtifactSpec,
        parent_id: str = UI_NODE,
        node_id: str | None = None,
    ) -> None:
        """Emit the ``pending`` event for an artifact about to be scheduled."""
        ctx.emit(node_id or artifact_node(spec.name), NodeStatus.PENDING, parent_id=parent_id)

    async def generate_validated(
        self,
        ctx: RunContext,
        spec: ArtifactSpec,
        context: GenerationContext,
        parent_id: str = UI_NODE,
        node_id: str | None = None,
    ) -> GeneratedArtifact:
        """Generate *spec*, retrying with stricter instructions until it validates.

        At most ``max_attempts + 1`` provider calls are made. A provider
        error consumes an attempt. When the last usable attempt carries only
        non-fatal issues it is returned with those issues attached.

        Raises:
            ArtifactValidationFailure: If every attempt left fatal issues.
            RunCancelled: If the run is cancelled.
        """
        node = node_id or artifact_node(spec.name)
        total = self.generation.max_attempts + 1
        previous: list[ValidationIssue] = []
        usable: GeneratedArtifact | None = None

        for attempt in range(total):
            message = "generating" if attempt == 0 else f"retry {attempt}/{total - 1}"
            ctx.emit(node, NodeStatus.IN_PROGRESS, message, parent_id)
            try:
                artifact = await self.generate(ctx, spec, context, attempt, previous)
            except ProviderError as exc:
                previous = [
                    ValidationIssue(kind=IssueKind.INCOMPLETE, message=f"Provider error: {exc}")
                ]
                continue

            if not needs_retry(artifact.issues):
                ctx.emit(node, NodeStatus.SUCCESS, _describe(artifact), parent_id)
                return artifact
            if not artifact.has_fatal_issues:
                usable = artifact
            previous = list(artifact.issues)

        if usable is not None:
            ctx.emit(node, NodeStatus.SUCCESS, _describe(usable), parent_id)
            return usable

        failure = ArtifactValidationFailure(spec, tuple(previous), total)
        ctx.emit(node, NodeStatus.ERROR, str(failure), parent_id)
        raise failure


def _describe(artifact: GeneratedArtifact) -> str:
    if not artifact.issues:
        return f"{artifact.filename} ({len(artifact.content)} chars)"
    return f"{artifact.filename} with {len(artifact.issues)} issue(s)"


@dataclass
class GenerationBatch:
    """Artifacts produced by one bounded-parallel batch, in input order."""

    artifacts: list[GeneratedArtifact] = field(default_factory=list)
    failures: list[ArtifactFailure] = field(default_factory=list)


async def generate_batch(
    ctx: RunContext,
    generator: ComponentGenerator,
    specs: list[ArtifactSpec],
    context: GenerationContext,
    max_parallel: int,
    parent_id: str = UI_NODE,
) -> GenerationBatch:
    """Generate *specs* concurrently, at most *max_parallel* at a time.

    Each task owns only its own artifact; results are merged here, after
    every task has finished. Validation failures become ``ArtifactFailure``
    records. Any other exception (including ``RunCancelled``) propagates.
    """
    semaphore = asyncio.Semaphore(max_parallel)

    for spec in specs:
        generator.announce(ctx, spec, parent_id)

    async def _generate_one(spec: ArtifactSpec) -> GeneratedArtifact | ArtifactFailure:
        async with semaphore:
            try:
                return await generator.generate_validated(ctx, spec, context, parent_id)
            except ArtifactValidationFailure as exc:
                return exc.to_failure()

    results = await asyncio.gather(*(_generate_one(spec) for spec in specs))

    batch = GenerationBatch()
    for result in results:
        if isinstance(result, ArtifactFailure):
            batch.failures.append(result)
        else:
            batch.artifacts.append(result)
    return batch
