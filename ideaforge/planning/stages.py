"""Planning stages: idea, requirements, checklist, notes, UI plan.

Each ``PlanningStages`` method performs one guarded provider call and parses
the answer. Failures are raised, never papered over here: the workflow engine
owns the degrade-vs-fail policy and calls the ``fallback_*`` helpers below
when a stage may be recovered.
"""

from __future__ import annotations

import re
from typing import Any

from ..config import GenerationConfig
from ..context import RunContext
from ..providers.base import ChatMessage, CompletionOptions, TextGenerationProvider
from ..ui.models import ArtifactKind, Bundle
from ..utils import extract_json_array, extract_json_object
from . import prompts
from .models import (
    ChatTurn,
    ChecklistItem,
    DesignNotes,
    ProjectIdea,
    Requirements,
    UIPlan,
    UIStrategy,
)

DEFAULT_TITLE = "Untitled React App"
FALLBACK_COMPONENTS: tuple[str, ...] = ("Header", "MainContent", "Footer")

_TITLE_PREFIX = re.compile(r"^(?:#+\s*|\*+|title\s*:\s*)", re.IGNORECASE)
_DESCRIPTION_PREFIX = re.compile(r"^description\s*:\s*", re.IGNORECASE)


class PlanningStages:
    """Provider-backed planning stages for one engine.

    Attributes:
        provider: Text-generation backend used for every call.
        generation: Temperature and related knobs.
    """

    def __init__(self, provider: TextGenerationProvider, generation: GenerationConfig) -> None:
        self.provider = provider
        self.generation = generation

    async def _ask(self, ctx: RunContext, prompt: str, system: str) -> str:
        options = CompletionOptions(
            temperature=self.generation.temperature, system_instruction=system
        )
        return await ctx.complete(
            self.provider, [ChatMessage(role="user", content=prompt)], options
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def process_idea(
        self, ctx: RunContext, idea: str, history: list[ChatTurn] | None = None
    ) -> ProjectIdea:
        """Normalise the raw idea into a title and a description.

        Raises:
            ValueError: If the idea is blank or the answer is empty.
            ProviderError: If the backend fails.
        """
        if not idea.strip():
            raise ValueError("Idea text is empty")
        text = await self._ask(ctx, prompts.idea_prompt(idea, history or []), prompts.IDEA_SYSTEM)
        return parse_idea_response(text, idea)

    async def generate_requirements(self, ctx: RunContext, project: ProjectIdea) -> Requirements:
        text = await self._ask(ctx, prompts.requirements_prompt(project), prompts.REQUIREMENTS_SYSTEM)
        return Requirements.model_validate(extract_json_object(text))

    async def generate_checklist(
        self, ctx: RunContext, requirements: Requirements
    ) -> list[ChecklistItem]:
        """Return development tasks; ``[]`` without a call when nothing is actionable."""
        if not requirements.has_actionable_items:
            return []
        text = await self._ask(ctx, prompts.checklist_prompt(requirements), prompts.CHECKLIST_SYSTEM)
        return parse_checklist(extract_json_array(text))

    async def generate_notes(
        self, ctx: RunContext, project: ProjectIdea, requirements: Requirements
    ) -> DesignNotes:
        text = await self._ask(ctx, prompts.notes_prompt(project, requirements), prompts.NOTES_SYSTEM)
        return DesignNotes.model_validate(extract_json_object(text))

    async def generate_ui_plan(
        self, ctx: RunContext, project: ProjectIdea, requirements: Requirements
    ) -> UIPlan:
        text = await self._ask(ctx, prompts.ui_plan_prompt(project, requirements), prompts.UI_PLAN_SYSTEM)
        return UIPlan.model_validate(extract_json_object(text))


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_idea_response(text: str, idea: str) -> ProjectIdea:
    """First non-blank line is the title, the rest is the description."""
    lines = [line.strip() for line in text.strip().splitlines() if line.strip()]
    if not lines:
        raise ValueError("Idea processing returned an empty response")
    title = _TITLE_PREFIX.sub("", lines[0]).strip().strip("\"'*").strip()
    description = _DESCRIPTION_PREFIX.sub("", "\n".join(lines[1:])).strip()
    return ProjectIdea(title=title or DEFAULT_TITLE, description=description or idea.strip())


def parse_checklist(raw: list[Any]) -> list[ChecklistItem]:
    """Accept plain strings or ``{"text"|"task": ..., "done": ...}`` objects."""
    items: list[ChecklistItem] = []
    for entry in raw:
        if isinstance(entry, str):
            text, done = entry, False
        elif isinstance(entry, dict):
            text = entry.get("text") or entry.get("task") or ""
            done = bool(entry.get("done", False))
        else:
            continue
        if isinstance(text, str) and text.strip():
            items.append(ChecklistItem(text=text.strip(), done=done))
    return items


# ---------------------------------------------------------------------------
# Fallbacks & pure stages
# ---------------------------------------------------------------------------


def fallback_requirements(idea: str, project: ProjectIdea | None = None) -> Requirements:
    """Minimal requirements built from the raw idea text."""
    scope = project.description if project else idea
    return Requirements(problem=idea.strip(), scope=scope.strip())


def fallback_ui_plan() -> UIPlan:
    return UIPlan(
        components=list(FALLBACK_COMPONENTS),
        layout="Header at the top, main content area, footer at the bottom",
    )


def determine_strategy(plan: UIPlan | None) -> UIStrategy:
    """Pick the UI strategy. Any anomaly yields ``MULTI_FILE``."""
    preferred = getattr(plan, "preferred_strategy", None)
    if isinstance(preferred, str):
        try:
            return UIStrategy(preferred.strip().lower().replace("-", "_"))
        except ValueError:
            pass
    return UIStrategy.MULTI_FILE


def augment_checklist(checklist: list[ChecklistItem], bundle: Bundle) -> list[ChecklistItem]:
    """Return *checklist* extended with rows derived from the bundle.

    Rows already present (by text) are not repeated.
    """
    rows: list[str] = []
    for artifact in bundle.artifacts:
        if artifact.kind is ArtifactKind.BOOTSTRAP:
            continue
        rows.append(f"Implement {artifact.name} ({artifact.kind.value})")
    for route, page in bundle.routes.items():
        rows.append(f"Wire route '{route}' to {page}")
    for filename in bundle.issues:
        rows.append(f"Review {filename}")
    for failure in bundle.failures:
        rows.append(f"Review {failure.filename}")

    seen = {item.text for item in checklist}
    augmented = list(checklist)
    for text in rows:
        if text not in seen:
            seen.add(text)
            augmented.append(ChecklistItem(text=text))
    return augmented
