"""Planning stages that precede UI generation."""

from .models import (
    ChatTurn,
    ChecklistItem,
    DesignNotes,
    DesignSystem,
    ProjectIdea,
    Requirements,
    UIPlan,
    UIStrategy,
    checklist_to_markdown,
)
from .stages import (
    PlanningStages,
    augment_checklist,
    determine_strategy,
    fallback_requirements,
    fallback_ui_plan,
)

__all__ = [
    "ChatTurn",
    "ChecklistItem",
    "DesignNotes",
    "DesignSystem",
    "PlanningStages",
    "ProjectIdea",
    "Requirements",
    "UIPlan",
    "UIStrategy",
    "augment_checklist",
    "checklist_to_markdown",
    "determine_strategy",
    "fallback_requirements",
    "fallback_ui_plan",
]
