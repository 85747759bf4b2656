"""Prompt text for the planning stages."""

from __future__ import annotations

import textwrap

from .models import ChatTurn, ProjectIdea, Requirements

IDEA_SYSTEM = (
    "Extract a project title and a clean description for a REACT WEB APPLICATION "
    "from the user's idea. Answer with the title (3-5 words) on the first line and "
    "the description on the following lines."
)

REQUIREMENTS_SYSTEM = "You are a product manager writing a PRD. Return only valid JSON."
CHECKLIST_SYSTEM = "You are a technical lead creating a development checklist. Return only a valid JSON array."
NOTES_SYSTEM = "You are a technical architect documenting project decisions. Return only valid JSON."
UI_PLAN_SYSTEM = (
    "You are a UI/UX designer planning the interface. Return only valid JSON. "
    "Be specific with component names that clearly indicate their purpose."
)


def idea_prompt(idea: str, history: list[ChatTurn]) -> str:
    if not history:
        return f"Create a React web application for: {idea}"
    transcript = "\n".join(f"{turn.role}: {turn.content}" for turn in history[-12:])
    return (
        f"Conversation so far:\n{transcript}\n\n"
        f"Create a React web application for: {idea}"
    )


def requirements_prompt(project: ProjectIdea) -> str:
    return textwrap.dedent(
        f"""\
        Based on this project idea, create a Product Requirements Document.

        Title: {project.title}
        Description: {project.description}

        Respond with JSON:
        {{
          "problem": "...",
          "goals": ["..."],
          "scope": "...",
          "constraints": ["..."],
          "success_criteria": ["..."]
        }}
        """
    )


def checklist_prompt(requirements: Requirements) -> str:
    return textwrap.dedent(
        f"""\
        Based on this PRD, create a development checklist of 8-12 specific,
        actionable tasks covering setup, core features, testing and documentation.

        Problem: {requirements.problem}
        Goals: {', '.join(requirements.goals)}
        Constraints: {', '.join(requirements.constraints)}
        Scope: {requirements.scope}

        Respond with a JSON array: [{{"text": "...", "done": false}}]
        """
    )


def notes_prompt(project: ProjectIdea, requirements: Requirements) -> str:
    return textwrap.dedent(
        f"""\
        Identify the key assumptions and technical decisions for this project.

        Project: {project.title}
        Problem: {requirements.problem}
        Goals: {', '.join(requirements.goals)}

        Respond with JSON:
        {{"assumptions": ["..."], "decisions": ["..."], "contextLinks": ["..."]}}
        """
    )


def ui_plan_prompt(project: ProjectIdea, requirements: Requirements) -> str:
    return textwrap.dedent(
        f"""\
        Create a UI plan for a REACT WEB APPLICATION.

        Title: {project.title}
        Problem: {requirements.problem}
        Goals: {', '.join(requirements.goals)}

        List every major component with a descriptive name (e.g. "TaskList",
        "AddTaskModal"). Do not include "App" or "Main"; the root container is
        generated automatically.

        Respond with JSON:
        {{
          "components": ["..."],
          "layout": "...",
          "user_interactions": ["..."],
          "design_system": {{
            "primary_color": "blue-600",
            "accent_color": "indigo-500",
            "background_color": "gray-50",
            "spacing_scale": ["..."],
            "component_patterns": ["..."]
          }}
        }}
        """
    )
