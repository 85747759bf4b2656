"""Validation checks for generated artifacts.

Checks are independent of the artifact kind:

* ``syntax_error``: the text does not parse as a browser script (esprima).
* ``markdown_leakage``: fences, markdown headings/bullets/rules or
  explanatory prose survived sanitation.
* ``missing_binding``: ``window.<Name> = ...`` is absent.
* ``incomplete``: suspiciously short, no ``React.createElement`` call, or the
  component itself is never declared.
"""

from __future__ import annotations

import re

import esprima
from esprima.error_handler import Error as EsprimaError

from .models import GeneratedArtifact, IssueKind, ValidationIssue
from .sanitize import has_binding, is_declared

# Issue kinds that make the generator try again.
RETRY_ISSUE_KINDS = frozenset(
    {IssueKind.SYNTAX_ERROR, IssueKind.INCOMPLETE, IssueKind.MARKDOWN_LEAKAGE}
)

_MARKDOWN_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"```"), "Contains a markdown code fence"),
    (re.compile(r"^#{1,6}\s", re.MULTILINE), "Contains a markdown heading"),
    (re.compile(r"^\*{1,3}\s", re.MULTILINE), "Contains a markdown bullet or emphasis line"),
    (re.compile(r"^-{3,}\s*$", re.MULTILINE), "Contains a markdown horizontal rule"),
)

_PROSE_RE = re.compile(
    r"^(?:Here's|Here is|This is|This component|I'll|I will|Let me|Note:|Explanation:)",
    re.MULTILINE | re.IGNORECASE,
)


def check_syntax(content: str) -> ValidationIssue | None:
    """Parse *content* as a script; return a ``syntax_error`` issue on failure."""
    try:
        esprima.parseScript(content)
    except EsprimaError as exc:
        line = getattr(exc, "lineNumber", None)
        column = getattr(exc, "column", None)
        location = f"line {line}, column {column}" if line is not None else None
        description = getattr(exc, "description", None) or str(exc)
        return ValidationIssue(
            kind=IssueKind.SYNTAX_ERROR, message=f"Syntax error: {description}", location=location
        )
    except RecursionError:
        return ValidationIssue(
            kind=IssueKind.SYNTAX_ERROR, message="Syntax error: nesting too deep to parse"
        )
    return None


def check_leakage(content: str) -> list[ValidationIssue]:
    issues = [
        ValidationIssue(kind=IssueKind.MARKDOWN_LEAKAGE, message=message)
        for pattern, message in _MARKDOWN_PATTERNS
        if pattern.search(content)
    ]
    prose = _PROSE_RE.search(content)
    if prose:
        line = content.count("\n", 0, prose.start()) + 1
        issues.append(
            ValidationIssue(
                kind=IssueKind.MARKDOWN_LEAKAGE,
                message="Contains explanatory prose",
                location=f"line {line}",
            )
        )
    return issues


def check_completeness(content: str, min_length: int) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if len(content.strip()) < min_length:
        issues.append(
            ValidationIssue(
                kind=IssueKind.INCOMPLETE,
                message=f"Output is too short ({len(content.strip())} < {min_length} characters)",
            )
        )
    if "React.createElement" not in content:
        issues.append(
            ValidationIssue(kind=IssueKind.INCOMPLETE, message="No React.createElement calls found")
        )
    return issues


def validate_content(content: str, name: str, min_length: int) -> list[ValidationIssue]:
    """Run every check against *content* for the artifact bound as *name*."""
    issues: list[ValidationIssue] = []
    syntax = check_syntax(content)
    if syntax is not None:
        issues.append(syntax)
    issues.extend(check_leakage(content))
    if not has_binding(content, name):
        issues.append(
            ValidationIssue(
                kind=IssueKind.MISSING_BINDING, message=f"Missing window.{name} assignment"
            )
        )
    if content.strip() and not is_declared(content, name):
        issues.append(
            ValidationIssue(
                kind=IssueKind.INCOMPLETE, message=f"Component {name} is never declared"
            )
        )
    issues.extend(check_completeness(content, min_length))
    return issues


def validate_artifact(artifact: GeneratedArtifact, min_length: int) -> list[ValidationIssue]:
    return validate_content(artifact.content, artifact.name, min_length)


def needs_retry(issues: list[ValidationIssue] | tuple[ValidationIssue, ...]) -> bool:
    return any(issue.kind in RETRY_ISSUE_KINDS for issue in issues)
