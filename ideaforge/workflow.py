"""IdeaForge workflow engine.

Runs the generation DAG for one idea::

    ProcessIdea -> GenerateRequirements -> { GenerateChecklist,
                                             GenerateNotes,
                                             GenerateUIPlan }   (parallel, wait-for-all)
        -> DetermineStrategy -> GenerateUI -> AugmentChecklist -> Persist

ProcessIdea, GenerateUI and Persist are fatal on failure. Every other stage
degrades to a documented default and the run continues. Stage outputs are
folded into ``WorkflowState`` only through the per-field merge functions in
``FIELD_MERGERS``, and only at the engine's join points.

Usage::

    engine = WorkflowEngine(Config.from_env())
    result = await engine.run("A habit tracker with streaks")
    if result.success:
        print(result.project_id)
"""

from __future__ import annotations

import asyncio
import time
import traceback
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from rich.panel import Panel

from .config import Config
from .context import CancellationToken, RunCancelled, RunContext
from .events import NodeStatus, ProgressChannel, ProgressSink, RichProgressSink
from .planning.models import (
    ChatTurn,
    ChecklistItem,
    DesignNotes,
    ProjectIdea,
    Requirements,
    UIPlan,
    UIStrategy,
)
from .planning.stages import (
    PlanningStages,
    augment_checklist,
    determine_strategy,
    fallback_requirements,
    fallback_ui_plan,
)
from .providers import ProviderError, TextGenerationProvider, create_provider
from .storage import FileSystemStore, PersistenceStore, ProjectDocuments
from .ui.models import ArtifactFailure, Bundle, GeneratedArtifact, ValidationIssue
from .ui.pipeline import UIGenerationError, UIGenerationPipeline
from .utils import (
    console,
    format_duration,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
)

T = TypeVar("T")

PROCESS_IDEA = "ProcessIdea"
GENERATE_REQUIREMENTS = "GenerateRequirements"
GENERATE_CHECKLIST = "GenerateChecklist"
GENERATE_NOTES = "GenerateNotes"
GENERATE_UI_PLAN = "GenerateUIPlan"
DETERMINE_STRATEGY = "DetermineStrategy"
GENERATE_UI = "GenerateUI"
AUGMENT_CHECKLIST = "AugmentChecklist"
PERSIST = "Persist"

# Each stage may start only after every stage it depends on has finished.
STAGE_DEPENDENCIES: dict[str, tuple[str, ...]] = {
    PROCESS_IDEA: (),
    GENERATE_REQUIREMENTS: (PROCESS_IDEA,),
    GENERATE_CHECKLIST: (GENERATE_REQUIREMENTS,),
    GENERATE_NOTES: (GENERATE_REQUIREMENTS,),
    GENERATE_UI_PLAN: (GENERATE_REQUIREMENTS,),
    DETERMINE_STRATEGY: (GENERATE_CHECKLIST, GENERATE_NOTES, GENERATE_UI_PLAN),
    GENERATE_UI: (DETERMINE_STRATEGY,),
    AUGMENT_CHECKLIST: (GENERATE_UI,),
    PERSIST: (AUGMENT_CHECKLIST,),
}

# Errors a degradable stage recovers from. Parsing failures surface as ValueError.
RECOVERABLE_ERRORS: tuple[type[Exception], ...] = (ProviderError, ValueError)


# ---------------------------------------------------------------------------
# Errors & results
# ---------------------------------------------------------------------------


class FatalWorkflowError(Exception):
    """Raised when a fatal stage fails; aborts the run."""

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


class DegradedStageResult(BaseModel):
    """A stage that failed and was replaced by its documented default."""

    model_config = ConfigDict(frozen=True)

    stage: str
    reason: str
    fallback: str


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


class WorkflowState(BaseModel):
    """Everything one run accumulates. Owned by the engine for that run only."""

    idea: str
    history: list[ChatTurn] = Field(default_factory=list)
    run_id: str
    project: Optional[ProjectIdea] = None
    requirements: Optional[Requirements] = None
    checklist: list[ChecklistItem] = Field(default_factory=list)
    notes: Optional[DesignNotes] = None
    ui_plan: Optional[UIPlan] = None
    strategy: Optional[UIStrategy] = None
    artifacts: list[GeneratedArtifact] = Field(default_factory=list)
    bundle: Optional[Bundle] = None
    validation_issues: dict[str, list[ValidationIssue]] = Field(default_factory=dict)
    failures: list[ArtifactFailure] = Field(default_factory=list)
    degraded: list[DegradedStageResult] = Field(default_factory=list)
    completed: list[str] = Field(default_factory=list)
    current_stage: Optional[str] = None
    fatal_error: Optional[str] = None

    def begin(self, stage: str) -> None:
        """Mark *stage* as running.

        Raises:
            RuntimeError: If a stage *stage* depends on has not completed.
        """
        missing = [dep for dep in STAGE_DEPENDENCIES[stage] if dep not in self.completed]
        if missing:
            raise RuntimeError(f"{stage} cannot start before {', '.join(missing)}")
        self.current_stage = stage

    def finish(self, stage: str) -> None:
        if stage not in self.completed:
            self.completed.append(stage)
        if self.current_stage == stage:
            self.current_stage = None


# -- Per-field merge functions ------------------------------------------------


def _replace(state: WorkflowState, name: str, value: Any) -> None:
    setattr(state, name, value)


def _replace_list(state: WorkflowState, name: str, value: Any) -> None:
    setattr(state, name, list(value))


def _append(state: WorkflowState, name: str, value: Any) -> None:
    getattr(state, name).append(value)


def _extend(state: WorkflowState, name: str, value: Any) -> None:
    getattr(state, name).extend(value)


def _merge_issues(state: WorkflowState, name: str, value: Any) -> None:
    merged: dict[str, list[ValidationIssue]] = getattr(state, name)
    for filename, issues in value.items():
        bucket = merged.setdefault(filename, [])
        bucket.extend(issue for issue in issues if issue not in bucket)


FIELD_MERGERS: dict[str, Callable[[WorkflowState, str, Any], None]] = {
    "project": _replace,
    "requirements": _replace,
    "checklist": _replace_list,
    "notes": _replace,
    "ui_plan": _replace,
    "strategy": _replace,
    "artifacts": _replace_list,
    "bundle": _replace,
    "validation_issues": _merge_issues,
    "failures": _extend,
    "degraded": _append,
}


@dataclass
class StageOutcome:
    """What one stage hands back to the engine for merging."""

    stage: str
    updates: dict[str, Any] = field(default_factory=dict)
    degraded: DegradedStageResult | None = None


def merge_outcome(state: WorkflowState, outcome: StageOutcome) -> None:
    """Fold *outcome* into *state* through ``FIELD_MERGERS``.

    Raises:
        KeyError: If the outcome updates a field without a merge function.
    """
    for name, value in outcome.updates.items():
        FIELD_MERGERS[name](state, name, value)
    if outcome.degraded is not None:
        FIELD_MERGERS["degraded"](state, "degraded", outcome.degraded)
    state.finish(outcome.stage)


class WorkflowResult(BaseModel):
    """How a run ended."""

    success: bool
    project_id: Optional[str] = None
    error: Optional[str] = None
    cancelled: bool = False
    state: WorkflowState


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class WorkflowEngine:
    """Runs the idea-to-bundle DAG.

    Attributes:
        config: Global configuration.
        provider: Text-generation backend shared by every stage.
        store: Where finished projects are persisted.
        sinks: Progress sinks attached to each run's channel.
    """

    def __init__(
        self,
        config: Config,
        provider: TextGenerationProvider | None = None,
        store: PersistenceStore | None = None,
        sinks: list[ProgressSink] | None = None,
    ) -> None:
        self.config = config
        self.provider = provider or create_provider(config.provider)
        self.store = store or FileSystemStore(config.projects_dir)
        self.sinks: list[ProgressSink] = list(sinks) if sinks is not None else [RichProgressSink()]
        self.stages = PlanningStages(self.provider, config.generation)
        self.ui = UIGenerationPipeline(self.provider, config.generation)

    async def run(
        self,
        idea: str,
        history: list[ChatTurn] | None = None,
        token: CancellationToken | None = None,
    ) -> WorkflowResult:
        """Run the whole workflow for *idea*.

        Never raises for stage failures: the result carries either the
        project id of the persisted bundle, the fatal error text, or the
        cancellation flag.
        """
        channel = ProgressChannel(self.sinks)
        channel.start()
        ctx = RunContext(channel, token)
        state = WorkflowState(idea=idea, history=list(history or []), run_id=ctx.run_id)
        run_start = time.monotonic()

        console.print(
            Panel(
                f"[bold bright_cyan]IdeaForge[/bold bright_cyan]\n"
                f"Run      : {ctx.run_id}\n"
                f"Provider : {self.config.provider.kind} ({self.config.provider.model})\n"
                f"Output   : {self.config.projects_dir.resolve()}",
                title="[bold]Workflow Start[/bold]",
                border_style="bright_cyan",
            )
        )
        for stage in STAGE_DEPENDENCIES:
            ctx.emit(stage, NodeStatus.PENDING)

        try:
            await self._execute(ctx, state)
        except RunCancelled as exc:
            if state.current_stage:
                ctx.emit(state.current_stage, NodeStatus.ERROR, f"cancelled: {exc.reason}")
            print_warning(f"Run cancelled: {exc.reason}. Nothing was persisted.")
            result = WorkflowResult(success=False, cancelled=True, error=exc.reason, state=state)
        except FatalWorkflowError as exc:
            state.fatal_error = str(exc)
            ctx.emit(exc.stage, NodeStatus.ERROR, exc.message)
            print_error(f"Workflow failed: {exc}")
            result = WorkflowResult(success=False, error=str(exc), state=state)
        except Exception as exc:  # noqa: BLE001
            fatal = FatalWorkflowError(state.current_stage or "Workflow", f"{type(exc).__name__}: {exc}")
            state.fatal_error = str(fatal)
            ctx.emit(fatal.stage, NodeStatus.ERROR, fatal.message)
            print_error(f"Workflow failed: {fatal}")
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
            result = WorkflowResult(success=False, error=str(fatal), state=state)
        else:
            result = WorkflowResult(success=True, project_id=state.run_id, state=state)
        finally:
            await channel.aclose()

        self._print_final_summary(result, time.monotonic() - run_start)
        return result

    # ------------------------------------------------------------------
    # DAG
    # ------------------------------------------------------------------

    async def _execute(self, ctx: RunContext, state: WorkflowState) -> None:
        merge_outcome(state, await self._process_idea(ctx, state))
        merge_outcome(state, await self._generate_requirements(ctx, state))

        print_stage_header("Planning")
        for stage in (GENERATE_CHECKLIST, GENERATE_NOTES, GENERATE_UI_PLAN):
            state.begin(stage)
        outcomes = await asyncio.gather(
            self._generate_checklist(ctx, state),
            self._generate_notes(ctx, state),
            self._generate_ui_plan(ctx, state),
        )
        for outcome in outcomes:
            merge_outcome(state, outcome)

        merge_outcome(state, self._determine_strategy(ctx, state))
        merge_outcome(state, await self._generate_ui(ctx, state))
        merge_outcome(state, self._augment_checklist(ctx, state))
        merge_outcome(state, await self._persist(ctx, state))

    async def _degradable(
        self,
        ctx: RunContext,
        stage: str,
        call: Awaitable[T],
        fallback: Callable[[], T],
        fallback_label: str,
    ) -> tuple[T, DegradedStageResult | None]:
        """Await *call*; on a recoverable error return ``fallback()`` instead."""
        ctx.emit(stage, NodeStatus.IN_PROGRESS)
        try:
            value = await call
        except RECOVERABLE_ERRORS as exc:
            reason = f"{type(exc).__name__}: {exc}"
            ctx.emit(stage, NodeStatus.ERROR, f"{reason}; using {fallback_label}")
            print_warning(f"  {stage} degraded ({reason}); using {fallback_label}")
            return fallback(), DegradedStageResult(stage=stage, reason=reason, fallback=fallback_label)
        ctx.emit(stage, NodeStatus.SUCCESS)
        return value, None

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _process_idea(self, ctx: RunContext, state: WorkflowState) -> StageOutcome:
        print_stage_header("Idea")
        state.begin(PROCESS_IDEA)
        ctx.emit(PROCESS_IDEA, NodeStatus.IN_PROGRESS)
        try:
            project = await self.stages.process_idea(ctx, state.idea, state.history)
        except RECOVERABLE_ERRORS as exc:
            raise FatalWorkflowError(PROCESS_IDEA, str(exc)) from exc
        ctx.emit(PROCESS_IDEA, NodeStatus.SUCCESS, project.title)
        console.print(f"  [green]+[/green] Project: [bold]{project.title}[/bold]")
        return StageOutcome(PROCESS_IDEA, {"project": project})

    async def _generate_requirements(self, ctx: RunContext, state: WorkflowState) -> StageOutcome:
        state.begin(GENERATE_REQUIREMENTS)
        project = state.project
        assert project is not None
        requirements, degraded = await self._degradable(
            ctx,
            GENERATE_REQUIREMENTS,
            self.stages.generate_requirements(ctx, project),
            lambda: fallback_requirements(state.idea, project),
            "requirements built from the raw idea",
        )
        return StageOutcome(GENERATE_REQUIREMENTS, {"requirements": requirements}, degraded)

    async def _generate_checklist(self, ctx: RunContext, state: WorkflowState) -> StageOutcome:
        requirements = state.requirements
        assert requirements is not None
        checklist, degraded = await self._degradable(
            ctx,
            GENERATE_CHECKLIST,
            self.stages.generate_checklist(ctx, requirements),
            list,
            "an empty checklist",
        )
        return StageOutcome(GENERATE_CHECKLIST, {"checklist": checklist}, degraded)

    async def _generate_notes(self, ctx: RunContext, state: WorkflowState) -> StageOutcome:
        assert state.project is not None and state.requirements is not None
        notes, degraded = await self._degradable(
            ctx,
            GENERATE_NOTES,
            self.stages.generate_notes(ctx, state.project, state.requirements),
            lambda: None,
            "no design notes",
        )
        return StageOutcome(GENERATE_NOTES, {"notes": notes}, degraded)

    async def _generate_ui_plan(self, ctx: RunContext, state: WorkflowState) -> StageOutcome:
        assert state.project is not None and state.requirements is not None
        plan, degraded = await self._degradable(
            ctx,
            GENERATE_UI_PLAN,
            self.stages.generate_ui_plan(ctx, state.project, state.requirements),
            fallback_ui_plan,
            "the default three-component plan",
        )
        return StageOutcome(GENERATE_UI_PLAN, {"ui_plan": plan}, degraded)

    def _determine_strategy(self, ctx: RunContext, state: WorkflowState) -> StageOutcome:
        state.begin(DETERMINE_STRATEGY)
        ctx.emit(DETERMINE_STRATEGY, NodeStatus.IN_PROGRESS)
        strategy = determine_strategy(state.ui_plan)
        ctx.emit(DETERMINE_STRATEGY, NodeStatus.SUCCESS, strategy.value)
        return StageOutcome(DETERMINE_STRATEGY, {"strategy": strategy})

    async def _generate_ui(self, ctx: RunContext, state: WorkflowState) -> StageOutcome:
        print_stage_header("UI Generation")
        state.begin(GENERATE_UI)
        ctx.emit(GENERATE_UI, NodeStatus.IN_PROGRESS)
        assert state.project is not None
        guidance = "; ".join(state.notes.decisions) if state.notes and state.notes.decisions else None
        try:
            result = await self.ui.run(
                ctx,
                state.project,
                state.ui_plan,
                state.strategy or UIStrategy.MULTI_FILE,
                guidance=guidance,
            )
        except UIGenerationError as exc:
            raise FatalWorkflowError(GENERATE_UI, str(exc)) from exc

        bundle = result.bundle
        issues: dict[str, list[ValidationIssue]] = {
            filename: list(found) for filename, found in bundle.issues.items()
        }
        for failure in result.failures:
            issues.setdefault(failure.filename, []).extend(failure.issues)

        degraded = None
        if result.fell_back:
            degraded = DegradedStageResult(
                stage=GENERATE_UI,
                reason=result.primary_error or "",
                fallback="single-file UI",
            )
        ctx.emit(
            GENERATE_UI,
            NodeStatus.SUCCESS,
            f"{len(bundle.registry)} artifact(s), {len(result.failures)} dropped",
        )
        for failure in result.failures:
            print_warning(f"  Dropped {failure.filename} after {failure.attempts} attempt(s)")
        return StageOutcome(
            GENERATE_UI,
            {
                "bundle": bundle,
                "artifacts": bundle.artifacts,
                "strategy": result.strategy,
                "validation_issues": issues,
                "failures": result.failures,
            },
            degraded,
        )

    def _augment_checklist(self, ctx: RunContext, state: WorkflowState) -> StageOutcome:
        state.begin(AUGMENT_CHECKLIST)
        ctx.emit(AUGMENT_CHECKLIST, NodeStatus.IN_PROGRESS)
        assert state.bundle is not None
        try:
            checklist = augment_checklist(state.checklist, state.bundle)
        except Exception as exc:  # noqa: BLE001
            reason = f"{type(exc).__name__}: {exc}"
            ctx.emit(AUGMENT_CHECKLIST, NodeStatus.ERROR, reason)
            return StageOutcome(
                AUGMENT_CHECKLIST,
                degraded=DegradedStageResult(
                    stage=AUGMENT_CHECKLIST, reason=reason, fallback="checklist left unchanged"
                ),
            )
        added = len(checklist) - len(state.checklist)
        ctx.emit(AUGMENT_CHECKLIST, NodeStatus.SUCCESS, f"{added} row(s) added")
        return StageOutcome(AUGMENT_CHECKLIST, {"checklist": checklist})

    async def _persist(self, ctx: RunContext, state: WorkflowState) -> StageOutcome:
        state.begin(PERSIST)
        ctx.token.raise_if_cancelled()
        ctx.emit(PERSIST, NodeStatus.IN_PROGRESS)
        assert state.project is not None and state.bundle is not None
        documents = ProjectDocuments(
            title=state.project.title,
            idea=state.idea,
            requirements=state.requirements,
            checklist=state.checklist,
            notes=state.notes,
            ui_plan=state.ui_plan,
            strategy=(state.strategy or UIStrategy.MULTI_FILE).value,
            history=state.history,
        )
        try:
            await self.store.save(state.run_id, state.bundle, documents)
        except Exception as exc:  # noqa: BLE001
            raise FatalWorkflowError(PERSIST, f"{type(exc).__name__}: {exc}") from exc
        ctx.emit(PERSIST, NodeStatus.SUCCESS, state.run_id)
        return StageOutcome(PERSIST)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _print_final_summary(self, result: WorkflowResult, elapsed: float) -> None:
        state = result.state
        rows = {
            "Run": state.run_id,
            "Title": state.project.title if state.project else "-",
            "Stages completed": str(len(state.completed)),
            "Degraded stages": ", ".join(d.stage for d in state.degraded) or "none",
            "Strategy": state.strategy.value if state.strategy else "-",
            "Artifacts": str(len(state.artifacts)),
            "Dropped artifacts": ", ".join(f.name for f in state.failures) or "none",
            "Checklist items": str(len(state.checklist)),
            "Duration": format_duration(elapsed),
        }
        print_summary_table(rows, title="Workflow Summary")

        if result.success:
            print_success(f"Project {result.project_id} saved.")
            border, status = "green", "[bold green]SUCCESS[/bold green]"
        elif result.cancelled:
            border, status = "yellow", "[bold yellow]CANCELLED[/bold yellow]"
        else:
            border, status = "red", f"[bold red]FAILED[/bold red]\n{result.error}"
        console.print(Panel(status, title="[bold]Workflow Complete[/bold]", border_style=border))
