"""Pydantic v2 models for the planning stages.

Defines the documents produced ahead of UI generation: the normalised idea,
the requirements document, the development checklist, the optional design
notes and the UI plan that drives artifact generation.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class UIStrategy(str, Enum):
    """How the UI stage produces artifacts."""
    MULTI_FILE = "multi_file"
    SINGLE_FILE = "single_file"


# ---------------------------------------------------------------------------
# Conversation & idea
# ---------------------------------------------------------------------------

class ChatTurn(BaseModel):
    """One prior message of the conversation that led to the idea."""
    role: Literal["user", "assistant"]
    content: str
    timestamp: Optional[str] = None


class ProjectIdea(BaseModel):
    """The normalised idea: a short title and a clean description."""
    title: str = Field(..., min_length=1)
    description: str = Field(default="")


# ---------------------------------------------------------------------------
# Requirements
# ---------------------------------------------------------------------------

def _coerce_str_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return value


class Requirements(BaseModel):
    """Product requirements document."""
    problem: str = Field(default="")
    goals: list[str] = Field(default_factory=list)
    scope: str = Field(default="")
    constraints: list[str] = Field(default_factory=list)
    success_criteria: list[str] = Field(default_factory=list)

    @field_validator("goals", "constraints", "success_criteria", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> Any:
        return _coerce_str_list(value)

    @property
    def has_actionable_items(self) -> bool:
        """True when there are goals or constraints to derive tasks from."""
        return bool(self.goals or self.constraints)

    def to_markdown(self, title: str = "") -> str:
        lines = [f"# {title or 'Product Requirements'}", "", "## Problem Statement", "", self.problem or "-", ""]
        lines += ["## Goals", ""] + [f"- {g}" for g in self.goals] + [""]
        lines += ["## Scope", "", self.scope or "-", ""]
        lines += ["## Constraints", ""] + [f"- {c}" for c in self.constraints] + [""]
        lines += ["## Success Criteria", ""] + [f"- {s}" for s in self.success_criteria] + [""]
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Checklist & notes
# ---------------------------------------------------------------------------

class ChecklistItem(BaseModel):
    """A single development task."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    text: str = Field(..., min_length=1)
    done: bool = False


def checklist_to_markdown(items: list[ChecklistItem]) -> str:
    lines = ["# Development Checklist", ""]
    lines += [f"- [{'x' if item.done else ' '}] {item.text}" for item in items]
    return "\n".join(lines) + "\n"


class DesignNotes(BaseModel):
    """Assumptions and technical decisions recorded alongside the plan."""
    assumptions: list[str] = Field(default_factory=list)
    decisions: list[str] = Field(default_factory=list)
    context_links: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("context_links", "contextLinks"),
    )

    @field_validator("assumptions", "decisions", "context_links", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> Any:
        return _coerce_str_list(value)

    def to_markdown(self) -> str:
        lines = ["# Design Notes", "", "## Assumptions", ""]
        lines += [f"- {a}" for a in self.assumptions] + ["", "## Decisions", ""]
        lines += [f"- {d}" for d in self.decisions] + ["", "## Context", ""]
        lines += [f"- {c}" for c in self.context_links]
        return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# UI plan
# ---------------------------------------------------------------------------

class DesignSystem(BaseModel):
    """Visual tokens proposed by the UI planner."""
    primary_color: str = Field(default="blue-600")
    accent_color: str = Field(default="indigo-500")
    background_color: str = Field(default="gray-50")
    text_hierarchy: list[str] = Field(default_factory=list)
    spacing_scale: list[str] = Field(default_factory=list)
    component_patterns: list[str] = Field(default_factory=list)


class UIPlan(BaseModel):
    """Loosely-structured UI plan as returned by the planner."""
    components: list[str] = Field(default_factory=list)
    layout: str = Field(default="")
    user_interactions: list[str] = Field(default_factory=list)
    design_system: Optional[DesignSystem] = None
    preferred_strategy: Optional[str] = None

    @field_validator("components", mode="before")
    @classmethod
    def _component_names(cls, value: Any) -> Any:
        """Accept ``["Header"]`` as well as ``[{"name": "Header", ...}]``."""
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        names: list[str] = []
        for item in value:
            if isinstance(item, dict):
                item = item.get("name", "")
            if isinstance(item, str) and item.strip():
                names.append(item.strip())
        return names

    @field_validator("user_interactions", mode="before")
    @classmethod
    def _interactions(cls, value: Any) -> Any:
        return _coerce_str_list(value)
