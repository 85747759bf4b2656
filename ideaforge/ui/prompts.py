"""Prompt construction for artifact generation.

Attempt 0 uses the standard instruction. Every later attempt adds a strict
section that names the issues found in the previous attempt and forbids
those failure modes explicitly.
"""

from __future__ import annotations

import textwrap

from ..providers.base import ChatMessage
from .models import ArtifactKind, ArtifactSpec, GenerationContext, IssueKind, ValidationIssue

BASE_SYSTEM = textwrap.dedent(
    """\
    You are an expert React developer writing browser scripts for a page that
    loads React 18 and Tailwind CSS from a CDN.

    Rules:
    - Output ONLY JavaScript. No markdown, no code fences, no explanations.
    - No JSX, no TypeScript, no import or export statements.
    - Build elements with React.createElement and call hooks as React.useState,
      React.useEffect and so on.
    - Use Tailwind utility classes through the className prop.
    - Render other components ONLY through resolveComponent('Name'), never by
      referring to them directly.
    - Navigate with navigate('route-name').
    - End the file with window.<ComponentName> = <ComponentName>;
    """
)

KIND_GUIDANCE: dict[ArtifactKind, str] = {
    ArtifactKind.NAVIGATION: (
        "A responsive top navigation bar showing the app title and a link for each "
        "main section. Links call navigate('<section>') with a lowercase route name."
    ),
    ArtifactKind.SIDEBAR: "A collapsible side menu with icons (emoji are fine) and section links.",
    ArtifactKind.FOOTER: "A simple footer with the app name, a short tagline and secondary links.",
    ArtifactKind.MODAL: (
        "A modal dialog that accepts isOpen and onClose props, renders nothing when "
        "closed and closes on backdrop click."
    ),
    ArtifactKind.FORM: (
        "A form with controlled inputs held in React.useState, basic validation "
        "messages and a submit handler that accepts an onSubmit prop."
    ),
    ArtifactKind.DATA_DISPLAY: "A list or table rendering realistic sample data held in state.",
    ArtifactKind.CARD: "A reusable card accepting title, description and optional action props.",
    ArtifactKind.VISUALIZATION: (
        "A data visualisation built from plain divs (bars, progress rings or "
        "sparklines). Do not use chart libraries."
    ),
    ArtifactKind.CONTAINER: (
        "The root App component. Compose every other component through "
        "resolveComponent('Name') in a sensible layout and keep shared state here."
    ),
    ArtifactKind.PAGE: "A full page with a heading, explanatory copy and realistic content.",
    ArtifactKind.GENERIC: "A self-contained, functional component that fits the project.",
}

_ISSUE_RULES: dict[IssueKind, str] = {
    IssueKind.SYNTAX_ERROR: (
        "The code MUST parse as plain ES2017 JavaScript: balanced brackets, no JSX, "
        "no TypeScript, no optional chaining."
    ),
    IssueKind.MARKDOWN_LEAKAGE: (
        "Do NOT write markdown, code fences, headings or any sentence of explanation. "
        "The first line must be code."
    ),
    IssueKind.INCOMPLETE: (
        "Write a COMPLETE component with real content built from React.createElement; "
        "placeholders and stubs are rejected."
    ),
    IssueKind.MISSING_BINDING: "The last line MUST be window.{name} = {name};",
}


def system_instruction(
    spec: ArtifactSpec, attempt: int, previous_issues: list[ValidationIssue] | None = None
) -> str:
    """Return the system prompt for *attempt* (0-based)."""
    if attempt == 0:
        return BASE_SYSTEM
    issues = previous_issues or []
    lines = [
        BASE_SYSTEM,
        f"STRICT MODE (attempt {attempt + 1}): your previous answer was rejected.",
    ]
    if issues:
        lines.append("Problems found:")
        lines += [f"- {issue.message}" for issue in issues]
    kinds = [kind for kind in IssueKind if any(issue.kind is kind for issue in issues)]
    if not kinds:
        kinds = [IssueKind.SYNTAX_ERROR, IssueKind.MARKDOWN_LEAKAGE]
    lines.append("You MUST follow these rules:")
    lines += [f"- {_ISSUE_RULES[kind].format(name=spec.name)}" for kind in kinds]
    return "\n".join(lines) + "\n"


def artifact_prompt(spec: ArtifactSpec, context: GenerationContext) -> str:
    """User prompt describing the artifact to generate."""
    lines = [
        f"Component: {spec.name}",
        f"Kind: {spec.kind.value}",
        f"Project: {context.title}",
    ]
    if context.description:
        lines.append(f"Description: {context.description}")
    lines.append(f"Purpose: {KIND_GUIDANCE[spec.kind]}")
    if spec.route:
        lines.append(f"Route: this page is shown for navigate('{spec.route}').")
    if spec.layout_dependency:
        lines.append(
            f"Layout: you may render resolveComponent('{spec.layout_dependency}') at the top of the page."
        )
    if context.layout:
        lines.append(f"Overall layout: {context.layout}")
    if context.interactions:
        lines.append("User interactions: " + "; ".join(context.interactions))
    lines.append(f"Design tokens: {context.tokens.describe()}")
    if context.other_names and not context.single_file:
        lines.append(
            "Other components available through resolveComponent: "
            + ", ".join(context.other_names)
        )
    if context.routes and spec.kind in (ArtifactKind.CONTAINER, ArtifactKind.NAVIGATION):
        lines.append(
            "Routes: "
            + ", ".join(context.routes)
            + ". Read the current route with window.useRoute() and render the page "
            "component for it with resolveRoute(route)."
        )
    if context.single_file:
        names = ", ".join(context.other_names) or "Header, MainContent, Footer"
        lines.append(
            "Single file: define these components inline in this file, before "
            f"{spec.name}, and render them directly: {names}."
        )
    if context.guidance:
        lines.append(f"Additional guidance: {context.guidance}")
    lines.append(f"Remember: finish with window.{spec.name} = {spec.name};")
    return "\n".join(lines)


def build_messages(spec: ArtifactSpec, context: GenerationContext) -> list[ChatMessage]:
    return [ChatMessage(role="user", content=artifact_prompt(spec, context))]
