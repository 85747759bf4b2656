"""UI-generation sub-pipeline.

Primary (multi-file) strategy::

    resolve specs -> generate in parallel -> join -> ResolveReferences
        -> synthesise pages/stubs -> generate App last -> ManifestBuilder

The root container is generated after the single resolution pass so it can
reference every artifact by its final name. If the primary strategy fails
(the container exhausts its retries, or anything unexpected happens) the
single-file strategy asks for one self-contained ``App`` instead. Only when
that also fails is ``UIGenerationError`` raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import GenerationConfig
from ..context import RunCancelled, RunContext
from ..events import NodeStatus
from ..planning.models import ProjectIdea, UIPlan, UIStrategy
from ..providers.base import TextGenerationProvider
from ..utils import print_warning
from .generator import ComponentGenerator, artifact_node, generate_batch
from .manifest import ManifestBuilder
from .models import (
    ArtifactFailure,
    ArtifactValidationFailure,
    Bundle,
    DesignTokens,
    GenerationContext,
)
from .references import RESOLVE_NODE, ReferenceResolver
from .rendering import TemplateRenderer
from .spec_resolver import ArtifactSpecResolver, container_spec

SINGLE_FILE_NODE = artifact_node("App") + "-single"


class UIGenerationError(Exception):
    """Every UI strategy failed."""


@dataclass
class UIGenerationResult:
    """Outcome of the UI stage."""

    bundle: Bundle
    strategy: UIStrategy
    failures: list[ArtifactFailure] = field(default_factory=list)
    primary_error: str | None = None

    @property
    def fell_back(self) -> bool:
        return self.primary_error is not None


def design_tokens(plan: UIPlan | None) -> DesignTokens:
    """Design tokens from the plan's design system, defaults elsewhere."""
    defaults = DesignTokens()
    system = plan.design_system if plan is not None else None
    if system is None:
        return defaults
    return DesignTokens(
        primary_color=system.primary_color or defaults.primary_color,
        accent_color=system.accent_color or defaults.accent_color,
        background_color=system.background_color or defaults.background_color,
        spacing_scale=tuple(system.spacing_scale) or defaults.spacing_scale,
        patterns=tuple(system.component_patterns) or defaults.patterns,
    )


class UIGenerationPipeline:
    """Drives ArtifactSpecResolver, ComponentGenerator, ReferenceResolver and ManifestBuilder."""

    def __init__(
        self,
        provider: TextGenerationProvider,
        generation: GenerationConfig,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.generation = generation
        self.generator = ComponentGenerator(provider, generation)
        self.spec_resolver = ArtifactSpecResolver()
        self.references = ReferenceResolver(self.generator, generation.max_parallel_generators)
        self.manifest = ManifestBuilder(renderer)

    def build_context(
        self, project: ProjectIdea, plan: UIPlan | None, guidance: str | None = None
    ) -> GenerationContext:
        return GenerationContext(
            title=project.title,
            description=project.description,
            tokens=design_tokens(plan),
            guidance=guidance,
            layout=plan.layout if plan is not None else "",
            interactions=tuple(plan.user_interactions) if plan is not None else (),
        )

    async def run(
        self,
        ctx: RunContext,
        project: ProjectIdea,
        plan: UIPlan | None,
        strategy: UIStrategy = UIStrategy.MULTI_FILE,
        guidance: str | None = None,
    ) -> UIGenerationResult:
        """Generate the bundle with *strategy*, falling back to a single file.

        Raises:
            UIGenerationError: If no strategy produced a bundle.
            RunCancelled: If the run is cancelled.
        """
        context = self.build_context(project, plan, guidance)
        if strategy is UIStrategy.SINGLE_FILE:
            try:
                return await self.run_single_file(ctx, project, plan, context)
            except ArtifactValidationFailure as exc:
                raise UIGenerationError(f"Single-file generation failed: {exc}") from exc

        try:
            return await self.run_multi_file(ctx, project, plan, context)
        except RunCancelled:
            raise
        except Exception as exc:  # noqa: BLE001
            primary_error = f"{type(exc).__name__}: {exc}"
            print_warning(f"  Multi-file UI generation failed ({primary_error}); trying single file")

        try:
            result = await self.run_single_file(ctx, project, plan, context)
        except ArtifactValidationFailure as exc:
            raise UIGenerationError(
                f"Multi-file generation failed ({primary_error}) and the single-file "
                f"fallback failed: {exc}"
            ) from exc
        result.primary_error = primary_error
        return result

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def run_multi_file(
        self,
        ctx: RunContext,
        project: ProjectIdea,
        plan: UIPlan | None,
        context: GenerationContext,
    ) -> UIGenerationResult:
        specs = self.spec_resolver.resolve(plan)
        context = context.model_copy(update={"other_names": tuple(s.name for s in specs)})
        ctx.emit(RESOLVE_NODE, NodeStatus.PENDING, parent_id="GenerateUI")

        batch = await generate_batch(
            ctx, self.generator, specs, context, self.generation.max_parallel_generators
        )

        excluded = {failure.name for failure in batch.failures}
        outcome = await self.references.resolve(ctx, batch.artifacts, context, excluded)
        artifacts = [*batch.artifacts, *outcome.artifacts]
        failures = [*batch.failures, *outcome.failures]

        root = container_spec()
        root_context = context.model_copy(
            update={
                "other_names": tuple(a.name for a in artifacts),
                "failed_names": tuple(f.name for f in failures),
                "routes": tuple(outcome.routes),
            }
        )
        self.generator.announce(ctx, root)
        app = await self.generator.generate_validated(ctx, root, root_context)

        bundle = self.manifest.build(
            [*artifacts, app],
            title=project.title,
            failures=failures,
            routes=outcome.routes,
            tokens=context.tokens,
            strategy=UIStrategy.MULTI_FILE.value,
        )
        return UIGenerationResult(bundle=bundle, strategy=UIStrategy.MULTI_FILE, failures=failures)

    async def run_single_file(
        self,
        ctx: RunContext,
        project: ProjectIdea,
        plan: UIPlan | None,
        context: GenerationContext,
    ) -> UIGenerationResult:
        """One self-contained ``App`` that inlines the planned components."""
        names = tuple(spec.name for spec in self.spec_resolver.resolve(plan))
        context = context.model_copy(update={"other_names": names, "single_file": True})

        root = container_spec()
        self.generator.announce(ctx, root, node_id=SINGLE_FILE_NODE)
        app = await self.generator.generate_validated(ctx, root, context, node_id=SINGLE_FILE_NODE)

        bundle = self.manifest.build(
            [app],
            title=project.title,
            tokens=context.tokens,
            strategy=UIStrategy.SINGLE_FILE.value,
        )
        return UIGenerationResult(bundle=bundle, strategy=UIStrategy.SINGLE_FILE)
